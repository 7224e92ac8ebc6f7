"""
Invitation lifecycle.

An invitation leaves ``pending`` exactly once. Accept and reject claim it
with a single conditional UPDATE guarded on ``status = 'pending'`` and
``expires_at > now``; whoever loses the race sees zero affected rows and
gets ``InvalidState``. The accept side effects (contract, project binding,
notification, audit) share the claiming transaction, and a project holds
at most one contract whichever of its invitations is accepted first.
"""
import copy
import logging
from datetime import timedelta

from marshmallow import ValidationError as SchemaValidationError, validate
from sqlalchemy.exc import IntegrityError

from freelancedash.models.contract import Contract
from freelancedash.models.invitation import Invitation
from freelancedash.models.project import INVITABLE_STATUSES, Project
from freelancedash.models.user import User
from freelancedash.services.audit_service import record_event
from freelancedash.services.change_feed import publish
from freelancedash.services.notification_service import notify_user
from freelancedash.utils.exceptions import (
    Conflict,
    InvalidState,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from freelancedash.utils.transactions import atomic, config_value, retry_transient, utcnow

logger = logging.getLogger(__name__)

_email_validator = validate.Email(error="Not a valid email address.")


def normalise_email(email):
    email = (email or "").strip().lower()
    try:
        _email_validator(email)
    except SchemaValidationError as e:
        raise ValidationError("Invalid client email", details={"fields": {"clientEmail": e.messages}}) from e
    return email


def _live_pending(session, project_id, client_email, now):
    return (
        session.query(Invitation)
        .filter(
            Invitation.project_id == project_id,
            Invitation.client_email == client_email,
            Invitation.status == "pending",
            Invitation.expires_at > now,
        )
        .first()
    )


@retry_transient()
def issue_invitation(session, project_id, freelancer_id, client_email, now=None, ttl_days=None, feed=None):
    now = now or utcnow()
    email = normalise_email(client_email)
    ttl = ttl_days or config_value("INVITATION_TTL_DAYS", 7)

    with atomic(session):
        # serialises concurrent issuers for the same project
        project = (
            session.query(Project)
            .filter(Project.id == project_id)
            .with_for_update()
            .first()
        )
        if not project:
            raise NotFound("Project not found", details={"projectId": project_id})
        if freelancer_id and project.freelancer_id != freelancer_id:
            raise PermissionDenied("Only the project owner can invite a client")
        if project.status not in INVITABLE_STATUSES:
            raise InvalidState(
                f"Cannot invite a client to a {project.status} project",
                details={"projectStatus": project.status},
            )
        if session.query(Contract.id).filter(Contract.project_id == project.id).first():
            raise Conflict("Project already has a contract", details={"projectId": project.id})

        existing = _live_pending(session, project.id, email, now)
        if existing:
            raise Conflict(
                "A pending invitation already exists for this client",
                details={"invitationId": existing.id, "expiresAt": existing.expires_at.isoformat() + "Z"},
            )

        invitation = Invitation(
            project_id=project.id,
            freelancer_id=project.freelancer_id,
            client_email=email,
            status="pending",
            created_at=now,
            expires_at=now + timedelta(days=ttl),
        )
        session.add(invitation)
        session.flush()
        record_event(
            session, "invitation", invitation.id, "issued",
            actor_id=project.freelancer_id,
            details={"projectId": project.id, "clientEmail": email},
        )

    logger.info("Invitation %s issued for project %s to %s", invitation.id, project.id, email)
    publish(feed, "invitations", "created", invitation.to_dict(now))
    return invitation


def get_invitation(session, token):
    invitation = session.query(Invitation).filter_by(token=token).first()
    if not invitation:
        raise NotFound("Invitation not found")
    return invitation


def get_invitation_project(session, token):
    invitation = get_invitation(session, token)
    project = session.get(Project, invitation.project_id)
    if not project:
        raise NotFound("Project not found", details={"projectId": invitation.project_id})
    freelancer = session.get(User, project.freelancer_id)
    return invitation, project, freelancer


def check_client(session, email):
    email = normalise_email(email)
    return session.query(User).filter_by(email=email, role="client").first()


def list_invitations_by_email(session, email, status=None, now=None):
    now = now or utcnow()
    email = normalise_email(email)
    invitations = (
        session.query(Invitation)
        .filter(Invitation.client_email == email)
        .order_by(Invitation.created_at.desc())
        .all()
    )
    if status:
        invitations = [i for i in invitations if i.effective_status(now) == status]
    return invitations


def _claim(session, token, new_status, now, extra=None):
    values = {"status": new_status, "responded_at": now}
    values.update(extra or {})
    claimed = (
        session.query(Invitation)
        .filter(
            Invitation.token == token,
            Invitation.status == "pending",
            Invitation.expires_at > now,
        )
        .update(values, synchronize_session=False)
    )
    if claimed:
        return session.query(Invitation).populate_existing().filter_by(token=token).one()

    invitation = session.query(Invitation).populate_existing().filter_by(token=token).first()
    if not invitation:
        raise NotFound("Invitation not found")
    status = invitation.effective_status(now)
    raise InvalidState(
        f"Invitation is already {status}",
        details={"invitationId": invitation.id, "status": status},
    )


def _snapshot_contract(invitation, project, freelancer, client, now):
    return Contract(
        project_id=project.id,
        invitation_id=invitation.id,
        freelancer_id=project.freelancer_id,
        client_id=client.id,
        title=project.title,
        scope=project.description,
        hourly_rate=project.hourly_rate,
        fixed_price=project.budget,
        deposit_amount=project.deposit_amount,
        payment_terms=project.payment_terms,
        start_date=project.start_date,
        end_date=project.end_date,
        milestones=copy.deepcopy(project.milestones or []),
        enable_billable_hours=project.enable_billable_hours,
        max_billable_hours=project.max_billable_hours,
        status="pending",
        # issuing the invitation is the freelancer's signature
        freelancer_signature=freelancer.display_name if freelancer else project.freelancer_id,
        freelancer_signed_at=now,
        created_at=now,
    )


@retry_transient()
def accept_invitation(session, token, client_id, now=None, feed=None):
    """
    Claim the invitation for ``client_id`` and create its contract.

    Returns ``(invitation, contract, project)``. Nothing is written unless
    every step succeeds.
    """
    now = now or utcnow()
    client = session.get(User, client_id) if client_id else None
    if not client:
        raise NotFound("Client account not found", details={"clientId": client_id})
    if client.role != "client":
        raise PermissionDenied("Only client accounts can accept invitations")

    try:
        with atomic(session):
            invitation = _claim(session, token, "accepted", now, extra={"client_id": client.id})
            if invitation.client_email != client.email:
                raise PermissionDenied(
                    "This invitation was sent to a different email address",
                    details={"invitationId": invitation.id},
                )

            project = (
                session.query(Project)
                .populate_existing()
                .filter(Project.id == invitation.project_id)
                .with_for_update()
                .one()
            )
            # another invitation for this project may already have been accepted
            if session.query(Contract.id).filter(Contract.project_id == project.id).first():
                raise Conflict(
                    "Project already has a contract",
                    details={"projectId": project.id, "invitationId": invitation.id},
                )
            freelancer = session.get(User, project.freelancer_id)

            contract = _snapshot_contract(invitation, project, freelancer, client, now)
            session.add(contract)

            project.client_id = client.id
            project.client_email = invitation.client_email
            project.status = "pending_approval"
            project.client_visible = True
            project.archived_by_client_at = None

            notify_user(
                session,
                project.freelancer_id,
                title="Invitation accepted",
                message=f"{client.display_name} accepted your invitation to {project.title}",
                notif_type="invitation_accepted",
                details={"projectId": project.id, "invitationId": invitation.id},
                sender_id=client.id,
            )
            session.flush()
            record_event(
                session, "invitation", invitation.id, "accepted",
                actor_id=client.id,
                details={"projectId": project.id, "contractId": contract.id},
            )
    except IntegrityError as e:
        raise Conflict("Project or invitation already has a contract") from e

    logger.info("Invitation %s accepted by %s, contract %s", invitation.id, client.id, contract.id)
    publish(feed, "invitations", "updated", invitation.to_dict(now))
    publish(feed, "contracts", "created", contract.to_dict())
    publish(feed, "projects", "updated", project.to_dict())
    return invitation, contract, project


@retry_transient()
def reject_invitation(session, token, client_id=None, now=None, feed=None):
    """Terminal rejection. The project is left exactly as it was."""
    now = now or utcnow()

    with atomic(session):
        invitation = _claim(session, token, "rejected", now)
        project = session.get(Project, invitation.project_id)
        notify_user(
            session,
            invitation.freelancer_id,
            title="Invitation declined",
            message=f"{invitation.client_email} declined your invitation to {project.title}",
            notif_type="invitation_rejected",
            details={"projectId": project.id, "invitationId": invitation.id},
            sender_id=client_id,
        )
        record_event(
            session, "invitation", invitation.id, "rejected",
            actor_id=client_id,
            details={"projectId": project.id},
        )

    logger.info("Invitation %s rejected", invitation.id)
    publish(feed, "invitations", "updated", invitation.to_dict(now))
    return invitation


@retry_transient()
def expire_stale_invitations(session, now=None):
    """
    Persist ``expired`` on pending rows past their expiry. Reporting only;
    every read already derives the status from ``expires_at``.
    """
    now = now or utcnow()
    with atomic(session):
        count = (
            session.query(Invitation)
            .filter(Invitation.status == "pending", Invitation.expires_at <= now)
            .update({"status": "expired"}, synchronize_session=False)
        )
    if count:
        logger.info("Marked %d stale invitations as expired", count)
    return count
