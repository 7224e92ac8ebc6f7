from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity

from freelancedash.extensions import db
from freelancedash.models.user import User
from freelancedash.schemas.invitation_schema import (
    CheckClientSchema,
    InvitationAcceptSchema,
    InvitationCreateSchema,
    InvitationRejectSchema,
)
from freelancedash.services.email_service import (
    build_invitation_link,
    deliver_best_effort,
    send_invitation_accepted_email,
    send_invitation_email,
    send_invitation_rejected_email,
)
from freelancedash.services.invitation_service import (
    accept_invitation,
    check_client,
    get_invitation,
    get_invitation_project,
    issue_invitation,
    list_invitations_by_email,
    reject_invitation,
)
from freelancedash.utils.exceptions import PermissionDenied
from freelancedash.utils.response_formatter import success_response
from freelancedash.utils.transactions import utcnow
from freelancedash.utils.validation import load_or_raise

bp = Blueprint("invitations", __name__, url_prefix="/api/invitations")


def _freelancer_summary(user):
    if not user:
        return None
    return {"id": user.id, "fullName": user.full_name, "email": user.email}


# ------------------------------------------------------------
#  POST /invitations/create: freelancer invites a client
# ------------------------------------------------------------
@bp.route("/create", methods=["POST"])
@jwt_required()
def create_invitation():
    uid = get_jwt_identity()
    data = load_or_raise(InvitationCreateSchema(), request.get_json(silent=True))
    if data.get("freelancer_id") and data["freelancer_id"] != uid:
        raise PermissionDenied("Cannot issue invitations on behalf of another freelancer")

    invitation = issue_invitation(db.session, data["project_id"], uid, data["client_email"])
    link = build_invitation_link(invitation.token)

    freelancer = db.session.get(User, invitation.freelancer_id)
    message_id = deliver_best_effort(
        send_invitation_email,
        invitation.client_email,
        link,
        invitation.project.title,
        freelancer_name=freelancer.display_name,
        freelancer_email=freelancer.email,
    )
    if message_id is None:
        current_app.logger.error("Invitation %s stored but email was not sent", invitation.id)

    return success_response({
        "invitationId": invitation.id,
        "token": invitation.token,
        "invitationLink": link,
        "expiresAt": invitation.expires_at.isoformat() + "Z",
        "emailSent": message_id is not None,
    }, status=201)


@bp.route("/check-client", methods=["POST"])
def check_client_exists():
    data = load_or_raise(CheckClientSchema(), request.get_json(silent=True))
    client = check_client(db.session, data["email"])
    return success_response({
        "exists": client is not None,
        "client": client.to_dict() if client else None,
    })


@bp.route("/accept", methods=["POST"])
@jwt_required()
def accept():
    uid = get_jwt_identity()
    data = load_or_raise(InvitationAcceptSchema(), request.get_json(silent=True))
    if data.get("client_id") and data["client_id"] != uid:
        raise PermissionDenied("Cannot accept an invitation on behalf of another client")

    invitation, contract, project = accept_invitation(db.session, data["token"], uid)

    freelancer = db.session.get(User, project.freelancer_id)
    deliver_best_effort(send_invitation_accepted_email, freelancer, project, invitation.client_email)

    return success_response({
        "data": {
            "invitationId": invitation.id,
            "contractId": contract.id,
            "projectId": project.id,
            "projectStatus": project.status,
            "contract": contract.to_dict(),
        }
    })


@bp.route("/reject", methods=["POST"])
@jwt_required(optional=True)
def reject():
    data = load_or_raise(InvitationRejectSchema(), request.get_json(silent=True))
    invitation = reject_invitation(db.session, data["token"], client_id=get_jwt_identity())

    project = invitation.project
    freelancer = db.session.get(User, invitation.freelancer_id)
    deliver_best_effort(send_invitation_rejected_email, freelancer, project, invitation.client_email)

    return success_response(message="Invitation declined")


@bp.route("/by-email/<path:email>", methods=["GET"])
@jwt_required()
def invitations_for_email(email):
    user = db.session.get(User, get_jwt_identity())
    if not user or user.email != email.strip().lower():
        raise PermissionDenied("You can only list your own invitations")

    now = utcnow()
    invitations = list_invitations_by_email(db.session, email, status=request.args.get("status"), now=now)
    results = []
    for inv in invitations:
        item = inv.to_dict(now)
        item["projectTitle"] = inv.project.title
        item["freelancerName"] = inv.freelancer.display_name if inv.freelancer else None
        results.append(item)
    return success_response({"invitations": results})


@bp.route("/<token>", methods=["GET"])
def read_invitation(token):
    invitation = get_invitation(db.session, token)
    return success_response({"invitation": invitation.to_dict(utcnow())})


@bp.route("/<token>/project", methods=["GET"])
def read_invitation_project(token):
    invitation, project, freelancer = get_invitation_project(db.session, token)
    return success_response({
        "invitation": invitation.to_dict(utcnow()),
        "project": project.to_dict(),
        "freelancer": _freelancer_summary(freelancer),
    })
