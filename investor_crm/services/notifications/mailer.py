"""
Mailer
SMTP delivery for notification emails
"""
import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

from investor_crm.core.config import settings
from investor_crm.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)

SMTP_TIMEOUT = 15


def is_email_configured() -> bool:
    return bool(settings.smtp_host and settings.smtp_user and settings.smtp_password)


def build_email(to: str, subject: str, text: str, html: Optional[str] = None) -> EmailMessage:
    """
    Plain-text message with an optional HTML alternative.

    In test mode the recipient is swapped for email_test_recipient and the
    intended address is kept in the subject.
    """
    if settings.email_test_mode and settings.email_test_recipient:
        subject = f"[TEST for {to}] {subject}"
        to = settings.email_test_recipient

    message = EmailMessage()
    message["From"] = formataddr((settings.smtp_from_name, settings.smtp_from_email or settings.smtp_user))
    message["To"] = to
    message["Subject"] = subject
    message.set_content(text)
    if html:
        message.add_alternative(html, subtype="html")
    return message


def _deliver(message: EmailMessage) -> None:
    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=SMTP_TIMEOUT) as server:
        if settings.smtp_use_tls:
            server.starttls()
        server.login(settings.smtp_user, settings.smtp_password)
        server.send_message(message)


async def send_email_message(to: str, subject: str, text: str, html: Optional[str] = None) -> None:
    if not is_email_configured():
        raise ExternalServiceError("Email delivery is not configured")

    message = build_email(to, subject, text, html)
    try:
        await asyncio.to_thread(_deliver, message)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"❌ SMTP delivery to {message['To']} failed: {e}")
        raise ExternalServiceError(f"Failed to send email: {e}")

    logger.info(f"📧 Sent '{subject}' to {message['To']}")
