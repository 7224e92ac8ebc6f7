import smtplib

from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required

from freelancedash.schemas.invitation_schema import InvitationEmailSchema
from freelancedash.services.email_service import send_invitation_email
from freelancedash.utils.response_formatter import success_response, error_response
from freelancedash.utils.validation import load_or_raise

bp = Blueprint("email", __name__, url_prefix="/api/email")


@bp.route("/send-invitation", methods=["POST"])
@jwt_required()
def send_invitation():
    data = load_or_raise(InvitationEmailSchema(), request.get_json(silent=True))
    try:
        message_id = send_invitation_email(
            data["client_email"],
            data["invitation_link"],
            data["project_title"],
            freelancer_name=data.get("freelancer_name"),
            freelancer_email=data.get("freelancer_email"),
        )
    except (smtplib.SMTPException, OSError) as e:
        current_app.logger.exception("Failed to send invitation email to %s", data["client_email"])
        return error_response("EMAIL_SEND_FAILED", "Failed to send invitation email", {"reason": str(e)}, status=502, retryable=True)

    return success_response({"messageId": message_id})
