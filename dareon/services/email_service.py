"""
📧 Transactional email through SendGrid.

Used by the auth flows (email verification, password reset). Sending is a
blocking SDK call, so it runs in a worker thread.
"""

import asyncio
import logging

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from dareon.config import settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised when SendGrid is not configured or rejects a message."""


def _send_sync(message: Mail) -> int:
    client = SendGridAPIClient(settings.SENDGRID_API_KEY)
    response = client.send(message)
    return int(getattr(response, "status_code", 0))


async def send_email(to_email: str, subject: str, text: str) -> None:
    api_key = str(settings.SENDGRID_API_KEY or "").strip()
    if not api_key:
        raise EmailDeliveryError("SENDGRID_API_KEY not configured")

    message = Mail(
        from_email=settings.SENDER_EMAIL,
        to_emails=to_email,
        subject=subject,
        plain_text_content=text,
        html_content=f"<p>{text}</p><br><em>Sent by {settings.APP_NAME}</em>",
    )

    try:
        status_code = await asyncio.to_thread(_send_sync, message)
    except Exception as e:
        logger.error(f"❌ SendGrid error for {to_email}: {e}")
        raise EmailDeliveryError(str(e)) from e

    if not 200 <= status_code < 300:
        logger.error(f"❌ SendGrid rejected email to {to_email}: status={status_code}")
        raise EmailDeliveryError(f"SendGrid returned {status_code}")

    logger.info(f"📧 Email sent to {to_email} (subject: {subject})")


async def send_verification_email(to_email: str, verification_url: str) -> None:
    await send_email(
        to_email,
        "Email Verification",
        f"Please click on the link to verify your email: {verification_url}",
    )


async def send_password_reset_email(to_email: str, reset_url: str) -> None:
    await send_email(
        to_email,
        "Password Reset",
        "You are receiving this email because you (or someone else) has requested "
        f"the reset of a password. Please click on the link to reset your password: {reset_url}",
    )
