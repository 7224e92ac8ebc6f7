import logging
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid
from flask import current_app

logger = logging.getLogger(__name__)


def send_email(to: str, subject: str, html: str, reply_to: str = None) -> str:
    """Send an HTML email and return its Message-ID."""
    from_address = current_app.config["EMAIL_FROM_ADDRESS"]
    message_id = make_msgid(domain=from_address.split("@")[-1])

    msg = EmailMessage()
    msg["From"] = f"{current_app.config['EMAIL_FROM_NAME']} <{from_address}>"
    msg["To"] = to
    msg["Subject"] = subject
    msg["Reply-To"] = reply_to or from_address
    msg["Message-ID"] = message_id

    msg.set_content("This is an automated message. Please view in HTML.")
    msg.add_alternative(html, subtype="html")

    if not current_app.config.get("EMAIL_ENABLED"):
        logger.info("Email delivery disabled, not sending %s to %s", message_id, to)
        return message_id

    host = current_app.config["SMTP_HOST"]
    port = current_app.config["SMTP_PORT"]
    logger.debug("Connecting to SMTP %s:%s", host, port)

    with smtplib.SMTP_SSL(host, port) as server:
        server.login(from_address, current_app.config["SMTP_PASSWORD"])
        server.send_message(msg)

    logger.info("Email %s sent to %s", message_id, to)
    return message_id
