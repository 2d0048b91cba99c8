"""
Outgoing email over SMTP.
"""
import logging
import smtplib
from email.message import EmailMessage

from starlette.concurrency import run_in_threadpool

from bootcamp_api.config import get_settings
from bootcamp_api.errors import UpstreamFailure

settings = get_settings()
logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending plain-text emails."""

    def __init__(self):
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.username = settings.smtp_username
        self.password = settings.smtp_password
        self.sender = settings.email_from

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=10) as smtp:
            smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(msg)

    async def send_email(self, to: str, subject: str, message: str) -> None:
        """
        Send one email.

        Raises:
            UpstreamFailure: SMTP is not configured or delivery failed
        """
        if not self.host:
            raise UpstreamFailure("Email delivery is not configured", status_code=500)

        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(message)

        try:
            await run_in_threadpool(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("Failed to send '%s' email: %s", subject, e)
            raise UpstreamFailure("There was an error sending the email", status_code=500)

        logger.info("Sent '%s' email", subject)
