"""
Email Service
Sends transactional emails (OTP codes, password reset codes) over SMTP.
"""

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

from ..config import get_settings

logger = logging.getLogger(__name__)


class EmailService:
    """SMTP email sender."""

    def __init__(
        self,
        host: Optional[str],
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        sender_name: str = "PicX Support",
        sender_address: str = "no-reply@picx.com",
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = formataddr((sender_name, sender_address))

    @property
    def enabled(self) -> bool:
        return bool(self.host)

    def send_email(self, to: str, subject: str, html_body: str) -> bool:
        """
        Send an HTML email.

        Returns:
            False when SMTP is not configured or the server could not deliver
        """
        if not self.enabled:
            logger.warning(f"SMTP not configured, skipping email to {to}: {subject}")
            return False

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.sender
        message["To"] = to
        message.set_content("Please view this email in an HTML-capable client.")
        message.add_alternative(html_body, subtype="html")

        try:
            with smtplib.SMTP(self.host, self.port, timeout=30) as server:
                if self.use_tls:
                    server.starttls()
                if self.username:
                    server.login(self.username, self.password or "")
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to}: {e}", exc_info=True)
            return False

        logger.info(f"Email sent to {to}: {subject}")
        return True

    def send_otp_email(self, to: str, code: str, expire_minutes: int) -> bool:
        html = f"""
        <div style="font-family: Arial, sans-serif; max-width: 480px; margin: auto;">
          <h2 style="color: #2ad69e;">PicX email verification</h2>
          <p>Your verification code is:</p>
          <p style="font-size: 28px; font-weight: bold; letter-spacing: 6px;">{code}</p>
          <p>The code expires in {expire_minutes} minutes.</p>
        </div>
        """
        return self.send_email(to, "Your PicX verification code", html)

    def send_reset_code_email(self, to: str, code: str, expire_minutes: int) -> bool:
        html = f"""
        <div style="font-family: Arial, sans-serif; max-width: 480px; margin: auto;">
          <h2 style="color: #2ad69e;">Reset your PicX password</h2>
          <p>Use this code to choose a new password:</p>
          <p style="font-size: 28px; font-weight: bold; letter-spacing: 6px;">{code}</p>
          <p>The code expires in {expire_minutes} minutes. Ignore this email if you
          did not ask for a reset.</p>
        </div>
        """
        return self.send_email(to, "PicX password reset code", html)


_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Get email service (singleton)."""
    global _email_service
    if _email_service is None:
        settings = get_settings()
        _email_service = EmailService(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            sender_name=settings.email_sender_name,
            sender_address=settings.email_sender_address,
        )
    return _email_service
