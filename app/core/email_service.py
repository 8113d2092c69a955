import smtplib
import ssl
import time
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.mime.base import MIMEBase
from email import encoders
from typing import Optional, List, Dict, Union
from contextlib import contextmanager
from dataclasses import dataclass

from app.config import settings
from app.core.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class EmailAttachment:
    """Email attachment data structure"""
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


class EmailService:
    """SMTP email delivery with retries; every message goes out from the configured sender"""

    def __init__(
        self,
        smtp_server: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_username: Optional[str] = None,
        smtp_password: Optional[str] = None,
        sender_email: Optional[str] = None,
        sender_name: Optional[str] = None,
        enabled: Optional[bool] = None,
    ):
        self.smtp_server = smtp_server if smtp_server is not None else settings.SMTP_SERVER
        self.smtp_port = smtp_port if smtp_port is not None else settings.SMTP_PORT
        self.smtp_username = smtp_username if smtp_username is not None else settings.SMTP_USERNAME
        self.smtp_password = smtp_password if smtp_password is not None else settings.SMTP_PASSWORD
        self.smtp_use_tls = settings.SMTP_USE_TLS
        self.smtp_use_ssl = settings.SMTP_USE_SSL
        self.app_name = settings.APP_NAME
        self.email_enabled = enabled if enabled is not None else settings.EMAIL_ENABLED
        self.retry_attempts = max(settings.EMAIL_RETRY_ATTEMPTS, 1)
        self.retry_delay = settings.EMAIL_RETRY_DELAY

        self.sender_email = sender_email if sender_email is not None else settings.SENDER_EMAIL
        self.sender_name = sender_name if sender_name is not None else settings.SENDER_NAME

        self.is_configured = self._validate_config()

        self._emails_sent = 0
        self._emails_failed = 0

    def _missing_settings(self) -> List[str]:
        required = {
            "SMTP_SERVER": self.smtp_server,
            "SMTP_PORT": self.smtp_port,
            "SMTP_USERNAME": self.smtp_username,
            "SMTP_PASSWORD": self.smtp_password,
            "SENDER_EMAIL": self.sender_email,
        }
        return [name for name, value in required.items() if not value]

    def _validate_config(self) -> bool:
        """Validate SMTP configuration"""
        if not self.email_enabled:
            logger.info("Email service is disabled by configuration")
            return False

        missing = self._missing_settings()
        if missing:
            logger.warning(f"SMTP configuration incomplete ({', '.join(missing)} not set), emails will not be sent")
            return False

        logger.info(f"Email service configured with {self.smtp_server}:{self.smtp_port} as {self.sender_email}")
        return True

    @contextmanager
    def _create_smtp_connection(self):
        """Logged-in SMTP connection: implicit SSL on 465-style setups, else optional STARTTLS"""
        if self.smtp_use_ssl:
            server = smtplib.SMTP_SSL(self.smtp_server, self.smtp_port, context=ssl.create_default_context())
        else:
            server = smtplib.SMTP(self.smtp_server, self.smtp_port)
        try:
            if not self.smtp_use_ssl and self.smtp_use_tls:
                server.starttls(context=ssl.create_default_context())
            server.login(self.smtp_username, self.smtp_password)
            yield server
        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"SMTP authentication failed for {self.smtp_username}: {e}")
            raise
        finally:
            try:
                server.quit()
            except (smtplib.SMTPException, OSError):
                logger.debug("SMTP connection already closed")

    def _create_message(
        self,
        to_emails: List[str],
        subject: str,
        html_content: Optional[str] = None,
        text_content: Optional[str] = None,
        attachments: Optional[List[EmailAttachment]] = None,
        reply_to: Optional[str] = None,
    ) -> MIMEMultipart:
        msg = MIMEMultipart('mixed')
        msg['Subject'] = subject
        msg['From'] = f"{self.sender_name} <{self.sender_email}>"
        msg['To'] = ', '.join(to_emails)

        if reply_to:
            msg['Reply-To'] = reply_to

        body = MIMEMultipart('alternative')
        if text_content:
            body.attach(MIMEText(text_content, 'plain', 'utf-8'))
        if html_content:
            body.attach(MIMEText(html_content, 'html', 'utf-8'))
        msg.attach(body)

        if attachments:
            for attachment in attachments:
                maintype, _, subtype = attachment.content_type.partition('/')
                part = MIMEBase(maintype, subtype or 'octet-stream')
                part.set_payload(attachment.content)
                encoders.encode_base64(part)
                part.add_header(
                    'Content-Disposition',
                    f'attachment; filename="{attachment.filename}"'
                )
                msg.attach(part)

        return msg

    def send_email(
        self,
        to_emails: Union[str, List[str]],
        subject: str,
        html_content: Optional[str] = None,
        text_content: Optional[str] = None,
        attachments: Optional[List[EmailAttachment]] = None,
        reply_to: Optional[str] = None,
    ) -> bool:
        """
        Send email with HTML/text content and optional attachments

        Returns:
            bool: True if email sent successfully, False otherwise
        """
        if not self.is_configured:
            logger.warning(f"Email service not configured, skipping '{subject}'")
            return False

        if isinstance(to_emails, str):
            to_emails = [to_emails]
        to_emails = [email for email in to_emails if email]

        if not to_emails or not subject:
            logger.error("to_emails and subject are required")
            return False

        if not html_content and not text_content:
            logger.error("Either html_content or text_content is required")
            return False

        for attempt in range(self.retry_attempts):
            try:
                msg = self._create_message(
                    to_emails=to_emails,
                    subject=subject,
                    html_content=html_content,
                    text_content=text_content,
                    attachments=attachments,
                    reply_to=reply_to or self.sender_email,
                )

                with self._create_smtp_connection() as server:
                    server.send_message(msg, to_addrs=to_emails)

                self._emails_sent += 1
                logger.info(f"Email sent successfully to {', '.join(to_emails)} - Subject: {subject}")
                return True

            except (smtplib.SMTPException, OSError) as e:
                logger.warning(f"Email send attempt {attempt + 1}/{self.retry_attempts} failed: {str(e)}")
                if attempt < self.retry_attempts - 1:
                    time.sleep(self.retry_delay)

        self._emails_failed += 1
        logger.error(f"Failed to send email to {', '.join(to_emails)} after {self.retry_attempts} attempts")
        return False

    def get_email_stats(self) -> Dict[str, float]:
        """Get email service statistics"""
        return {
            'emails_sent': self._emails_sent,
            'emails_failed': self._emails_failed,
            'success_rate': round(
                (self._emails_sent / max(self._emails_sent + self._emails_failed, 1)) * 100, 2
            )
        }


email_service = EmailService()


def get_email_service() -> EmailService:
    """Dependency injection for email service"""
    return email_service
