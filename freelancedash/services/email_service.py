import logging
import smtplib

from flask import current_app, render_template

from freelancedash.utils.mailer import send_email
from freelancedash.utils.transactions import utcnow

logger = logging.getLogger(__name__)

COMPANY_NAME = "FreelanceDash"


def build_invitation_link(token):
    return f"{current_app.config['FRONTEND_URL']}/invite/{token}"


def send_invitation_email(client_email, invitation_link, project_title, freelancer_name=None, freelancer_email=None):
    html = render_template(
        "emails/invitation.html",
        title="Project Invitation",
        project_title=project_title,
        freelancer_name=freelancer_name or "A freelancer",
        invitation_link=invitation_link,
        ttl_days=current_app.config["INVITATION_TTL_DAYS"],
        company_name=COMPANY_NAME,
        year=utcnow().year,
    )
    return send_email(
        to=client_email,
        subject=f"You're invited to collaborate on {project_title}",
        html=html,
        reply_to=freelancer_email,
    )


def send_invitation_accepted_email(freelancer, project, client_email):
    return send_email(
        to=freelancer.email,
        subject=f"{client_email} accepted your invitation",
        html=render_template(
            "emails/invitation_accepted.html",
            title="Invitation Accepted",
            full_name=freelancer.display_name,
            project_title=project.title,
            client_email=client_email,
            dashboard_link=f"{current_app.config['FRONTEND_URL']}/projects/{project.id}",
            company_name=COMPANY_NAME,
        ),
    )


def send_invitation_rejected_email(freelancer, project, client_email):
    return send_email(
        to=freelancer.email,
        subject=f"{client_email} declined your invitation",
        html=render_template(
            "emails/invitation_rejected.html",
            title="Invitation Declined",
            full_name=freelancer.display_name,
            project_title=project.title,
            client_email=client_email,
            company_name=COMPANY_NAME,
        ),
    )


def deliver_best_effort(send_fn, *args, **kwargs):
    """
    Run an email send whose failure must not undo committed work.
    Returns the message id, or None when delivery failed.
    """
    try:
        return send_fn(*args, **kwargs)
    except (smtplib.SMTPException, OSError):
        logger.exception("Email delivery failed in %s", send_fn.__name__)
        return None
