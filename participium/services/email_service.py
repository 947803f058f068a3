"""
Email Service - outgoing mail over SMTP.

Uses aiosmtplib. When SMTP_USER is not configured the message is only
logged, which is the normal setup for local development.
"""

from email.message import EmailMessage
import logging

import aiosmtplib

from participium.core.settings import settings

logger = logging.getLogger(__name__)


class EmailService:
    """Sends transactional e-mails (verification codes)."""

    def __init__(self):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.username = settings.SMTP_USER
        self.password = settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS
        self.sender = settings.EMAIL_FROM

    @property
    def is_configured(self) -> bool:
        return bool(self.username)

    async def send_email(self, to_email: str, subject: str, body: str) -> bool:
        """
        Send a plain-text e-mail.

        Returns:
            True when handed to the SMTP server, False otherwise
        """
        if not self.is_configured:
            logger.warning(f"SMTP not configured, e-mail to {to_email} not sent. Subject: {subject}")
            logger.info(f"E-mail body for {to_email}:\n{body}")
            return False

        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to_email
        message["Subject"] = subject
        message.set_content(body)

        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                start_tls=self.use_tls,
            )
            logger.info(f"E-mail sent to {to_email}: {subject}")
            return True
        except aiosmtplib.SMTPException as e:
            logger.error(f"Failed to send e-mail to {to_email}: {e}", exc_info=True)
            return False

    async def send_verification_code(self, to_email: str, code: str, expiry_minutes: int) -> bool:
        body = (
            "Welcome to Participium!\n\n"
            f"Your verification code is: {code}\n\n"
            f"The code expires in {expiry_minutes} minutes.\n"
        )
        return await self.send_email(to_email, "Participium - Verify your e-mail", body)


# Global service instance (singleton pattern)
_email_service = None


def get_email_service() -> EmailService:
    """Get or create EmailService singleton."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
