"""
Background tasks using RQ (Redis Queue).
Run a worker with ``rq worker default``.
"""

import smtplib
from email.message import EmailMessage
from typing import Any

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

RESET_EMAIL_SUBJECT = "Password Reset Request"


def build_password_reset_email(to: str, token: str) -> EmailMessage:
    """Render the reset email with the token and its expiry."""
    minutes = settings.RESET_TOKEN_EXPIRE_MINUTES
    lifetime = "1 hour" if minutes == 60 else f"{minutes} minutes"

    message = EmailMessage()
    message["From"] = settings.MAIL_FROM
    message["To"] = to
    message["Subject"] = RESET_EMAIL_SUBJECT
    message.set_content(
        "You have requested to reset your password.\n"
        f"Use the following token to reset it:\n\n{token}\n\n"
        f"This token will expire in {lifetime}.\n"
        "If you did not request this password reset, please ignore this email.\n"
    )
    message.add_alternative(
        "<h1>Password Reset Request</h1>"
        "<p>You have requested to reset your password. "
        "Please use the following token to reset your password:</p>"
        f"<p><strong>{token}</strong></p>"
        f"<p>This token will expire in {lifetime}.</p>"
        "<p>If you did not request this password reset, please ignore this email.</p>",
        subtype="html",
    )
    return message


def send_password_reset_email_task(to: str, token: str) -> dict[str, Any]:
    """
    Deliver a password reset email over SMTP.

    Without ``SMTP_HOST`` configured the message is only logged, which is
    what local development wants. SMTP failures propagate so RQ records the
    job as failed; nothing retries it.

    Args:
        to: Recipient email address
        token: The reset token to include

    Returns:
        Task result dictionary
    """
    message = build_password_reset_email(to, token)

    if not settings.SMTP_HOST:
        logger.info(f"SMTP not configured; reset email for {to} not sent")
        return {"to": to, "status": "skipped", "message": "SMTP not configured"}

    logger.info(f"Sending reset email to: {to}")
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as smtp:
        if settings.SMTP_USE_TLS:
            smtp.starttls()
        if settings.SMTP_USERNAME and settings.SMTP_PASSWORD:
            smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        smtp.send_message(message)

    logger.info(f"Reset email sent to {to}")
    return {
        "to": to,
        "subject": RESET_EMAIL_SUBJECT,
        "status": "sent",
        "message": "Email sent successfully",
    }
