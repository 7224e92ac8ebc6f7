"""
Milestone sign-off.

The freelancer submits a finished milestone and the client either approves
it, which raises that milestone's invoice, or sends it back for revision.
Milestone state lives in the project's ``milestones`` JSON; invoice amounts
come from the contract snapshot. Each transition locks the project row and
checks the current milestone status, so a second approval of the same
milestone gets ``InvalidState`` instead of a second invoice.
"""
import copy
import logging

from sqlalchemy.exc import IntegrityError

from freelancedash.models.contract import Contract
from freelancedash.models.project import Project
from freelancedash.models.project_comment import ProjectComment
from freelancedash.services.audit_service import record_event
from freelancedash.services.change_feed import publish
from freelancedash.services.invoice_service import create_milestone_invoice, get_milestone_invoice
from freelancedash.services.notification_service import notify_user
from freelancedash.services.progress_service import WORKABLE_STATUSES
from freelancedash.utils.exceptions import (
    Conflict,
    InvalidState,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from freelancedash.utils.transactions import atomic, config_value, retry_transient, utcnow

logger = logging.getLogger(__name__)

SUBMITTABLE_STATUSES = ("pending", "in-progress", "revision_requested")
SIGNED_OFF_STATUSES = ("approved", "invoiced", "paid")


def _stamp(now):
    return now.isoformat() + "Z"


def _lock_project(session, project_id):
    project = (
        session.query(Project)
        .populate_existing()
        .filter(Project.id == project_id)
        .with_for_update()
        .first()
    )
    if not project:
        raise NotFound("Project not found", details={"projectId": project_id})
    return project


def _executed_contract(session, project):
    contract = session.query(Contract).filter_by(project_id=project.id).one_or_none()
    if not contract or not contract.fully_executed:
        raise InvalidState(
            "Milestones are signed off only under an executed contract",
            details={"projectId": project.id},
        )
    if project.status not in WORKABLE_STATUSES:
        raise InvalidState(
            f"Milestones cannot change while the project is {project.status}",
            details={"projectStatus": project.status},
        )
    return contract


def _milestones_with(project, index):
    # the JSON column only notices a new list, never in-place edits
    milestones = copy.deepcopy(project.milestones or [])
    if not 0 <= index < len(milestones):
        raise NotFound("Milestone not found", details={"projectId": project.id, "milestoneIndex": index})
    return milestones, milestones[index]


def _require_status(milestone, index, allowed):
    status = milestone.get("status") or "pending"
    if status not in allowed:
        raise InvalidState(
            f"Milestone is {status}",
            details={"milestoneIndex": index, "status": status},
        )


@retry_transient()
def submit_milestone(session, project_id, index, freelancer_id, evidence=None, now=None, feed=None):
    """Freelancer marks a milestone finished and asks the client to sign it off."""
    now = now or utcnow()
    with atomic(session):
        project = _lock_project(session, project_id)
        if project.freelancer_id != freelancer_id:
            raise PermissionDenied("Only the project owner can submit milestones")
        _executed_contract(session, project)
        milestones, milestone = _milestones_with(project, index)
        _require_status(milestone, index, SUBMITTABLE_STATUSES)

        milestone["status"] = "completed"
        milestone["completedAt"] = _stamp(now)
        if evidence:
            milestone["evidence"] = evidence.strip()
        project.milestones = milestones

        notify_user(
            session,
            project.client_id,
            title="Milestone ready for review",
            message=f'"{milestone.get("title")}" on {project.title} is ready for your approval',
            notif_type="milestone_submitted",
            details={"projectId": project.id, "milestoneIndex": index},
            sender_id=freelancer_id,
        )
        record_event(
            session, "project", project.id, "milestone_submitted",
            actor_id=freelancer_id, details={"milestoneIndex": index},
        )

    publish(feed, "projects", "updated", project.to_dict())
    return project, milestone


@retry_transient()
def approve_milestone(session, project_id, index, client_id, now=None, feed=None):
    """
    Client sign-off. Raises the milestone's invoice unless the contract
    signature already did, and completes the project once every milestone
    is signed off. Returns ``(project, milestone, invoice)``.
    """
    now = now or utcnow()
    try:
        with atomic(session):
            project = _lock_project(session, project_id)
            if project.client_id != client_id:
                raise PermissionDenied("Only the project's client can approve milestones")
            contract = _executed_contract(session, project)
            milestones, milestone = _milestones_with(project, index)
            _require_status(milestone, index, ("completed",))

            invoice = get_milestone_invoice(session, contract, index)
            if invoice is None:
                invoice = create_milestone_invoice(session, contract, index=index, now=now)
            session.flush()

            milestone["approvedAt"] = _stamp(now)
            milestone["approvedBy"] = client_id
            if invoice is not None:
                milestone["status"] = "invoiced"
                milestone["invoiceId"] = invoice.id
            else:
                milestone["status"] = "approved"
            project.milestones = milestones

            if all(m.get("status") in SIGNED_OFF_STATUSES for m in milestones):
                project.status = "completed"

            notify_user(
                session,
                project.freelancer_id,
                title="Milestone approved",
                message=f'Client approved "{milestone.get("title")}" for {project.title}',
                notif_type="milestone_approved",
                details={
                    "projectId": project.id,
                    "milestoneIndex": index,
                    "invoiceId": invoice.id if invoice is not None else None,
                },
                sender_id=client_id,
            )
            record_event(
                session, "project", project.id, "milestone_approved",
                actor_id=client_id, details={"milestoneIndex": index},
            )
    except IntegrityError as e:
        raise Conflict("Milestone already invoiced", details={"milestoneIndex": index}) from e

    logger.info("Milestone %d of project %s approved by %s", index, project.id, client_id)
    publish(feed, "projects", "updated", project.to_dict())
    if invoice is not None:
        publish(feed, "invoices", "created", invoice.to_dict())
    return project, milestone, invoice


@retry_transient()
def request_milestone_revision(session, project_id, index, client_id, comment, now=None, feed=None):
    now = now or utcnow()
    comment = (comment or "").strip()
    if not comment:
        raise ValidationError(
            "A revision comment is required",
            details={"fields": {"revisionComment": ["Missing data for required field."]}},
        )
    max_revisions = config_value("MILESTONE_MAX_REVISIONS", 2)

    with atomic(session):
        project = _lock_project(session, project_id)
        if project.client_id != client_id:
            raise PermissionDenied("Only the project's client can request revisions")
        _executed_contract(session, project)
        milestones, milestone = _milestones_with(project, index)
        _require_status(milestone, index, ("completed",))

        count = milestone.get("revisionCount") or 0
        if count >= max_revisions:
            raise InvalidState(
                f"Maximum revisions ({max_revisions}) reached for this milestone",
                details={"milestoneIndex": index, "revisionCount": count},
            )

        milestone["revisionCount"] = count + 1
        milestone["status"] = "revision_requested"
        milestone["revisionComment"] = comment
        milestone.setdefault("revisionHistory", []).append({
            "revisionNumber": count + 1,
            "comment": comment,
            "requestedAt": _stamp(now),
        })
        project.milestones = milestones

        session.add(ProjectComment(
            project_id=project.id,
            author_id=client_id,
            body=f'Revision requested for "{milestone.get("title")}": {comment}',
            kind="client_feedback",
        ))
        notify_user(
            session,
            project.freelancer_id,
            title="Revision requested",
            message=f'Client requested a revision of "{milestone.get("title")}" on {project.title}',
            notif_type="milestone_revision_requested",
            details={"projectId": project.id, "milestoneIndex": index, "comment": comment},
            sender_id=client_id,
        )
        record_event(
            session, "project", project.id, "milestone_revision_requested",
            actor_id=client_id, details={"milestoneIndex": index, "revisionCount": count + 1},
        )

    publish(feed, "projects", "updated", project.to_dict())
    return project, milestone


def list_pending_approvals(session, client_id):
    """Submitted milestones waiting on this client, oldest submission first."""
    projects = session.query(Project).filter(Project.client_id == client_id).all()
    max_revisions = config_value("MILESTONE_MAX_REVISIONS", 2)

    pending = []
    for project in projects:
        for index, milestone in enumerate(project.milestones or []):
            if milestone.get("status") != "completed":
                continue
            pending.append({
                "projectId": project.id,
                "projectTitle": project.title,
                "milestoneIndex": index,
                "milestoneTitle": milestone.get("title"),
                "amount": milestone.get("amount"),
                "dueDate": milestone.get("dueDate"),
                "completedAt": milestone.get("completedAt"),
                "evidence": milestone.get("evidence"),
                "revisionCount": milestone.get("revisionCount") or 0,
                "maxRevisions": max_revisions,
            })
    pending.sort(key=lambda item: item["completedAt"] or "")
    return pending
