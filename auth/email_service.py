"""Email notifier for verification, welcome and password-reset messages."""

import smtplib
import logging
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.utils import formataddr
from typing import Optional

from . import email_templates

logger = logging.getLogger(__name__)


class EmailService:
    """Sends messages over SMTP with fallback to console.

    Delivery is best-effort: every method returns a bool and never raises, so
    a mail failure cannot fail the operation that triggered it.
    """

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: int = 587,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        smtp_from_email: Optional[str] = None,
        sender_name: str = "TruPath Services",
        admin_email: Optional[str] = None,
    ):
        """Initialize email service."""
        self._smtp_host = smtp_host
        self._smtp_port = smtp_port
        self._smtp_user = smtp_user
        self._smtp_password = smtp_password
        self._smtp_from_email = smtp_from_email or smtp_user
        self._sender_name = sender_name
        self._admin_email = admin_email

    @classmethod
    def from_settings(cls, settings) -> "EmailService":
        return cls(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_user=settings.smtp_user,
            smtp_password=settings.smtp_password,
            smtp_from_email=settings.smtp_from_email,
            sender_name=settings.mail_sender_name,
            admin_email=settings.admin_email,
        )

    @property
    def is_configured(self) -> bool:
        """Check if SMTP is properly configured."""
        return bool(
            self._smtp_host
            and self._smtp_user
            and self._smtp_password
            and self._smtp_from_email
        )

    def _console(self, to: str, subject: str, hint: Optional[str], reason: str = "") -> None:
        print(f"\n{'='*50}")
        print(f"EMAIL to {to}: {subject}")
        if hint:
            print(hint)
        if reason:
            print(reason)
        print(f"{'='*50}\n")

    def send(self, to: str, subject: str, html: str, hint: Optional[str] = None) -> bool:
        """
        Send an HTML message.
        Returns True if delivered over SMTP or shown on the console fallback.
        ``hint`` is the short text shown by the console fallback.
        """
        if not self.is_configured:
            self._console(to, subject, hint)
            logger.info(f"Email '{subject}' for {to} printed to console (SMTP not configured)")
            return True

        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = formataddr((self._sender_name, self._smtp_from_email))
            msg["To"] = to
            if hint:
                msg.attach(MIMEText(hint, "plain"))
            msg.attach(MIMEText(html, "html"))

            with smtplib.SMTP(self._smtp_host, self._smtp_port, timeout=10) as server:
                server.starttls()
                server.login(self._smtp_user, self._smtp_password)
                server.sendmail(self._smtp_from_email, to, msg.as_string())

            logger.info(f"Email '{subject}' sent to {to}")
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return False

    def send_user_otp(self, name: str, email: str, otp: str, expiry_minutes: int) -> bool:
        subject, html = email_templates.user_otp_email(self._sender_name, name, otp, expiry_minutes)
        return self.send(email, subject, html, hint=f"Your verification code is: {otp}")

    def send_admin_otp(self, name: str, email: str, otp: str, expiry_minutes: int) -> bool:
        subject, html = email_templates.admin_otp_email(
            self._sender_name, name, email, otp, expiry_minutes
        )
        if not self._admin_email:
            logger.warning("ADMIN_EMAIL not set, admin approval code shown on console only")
            self._console("<admin>", subject, f"Approval code for {email}: {otp}")
            return False
        return self.send(self._admin_email, subject, html, hint=f"Approval code for {email}: {otp}")

    def send_welcome(self, name: str, email: str) -> bool:
        subject, html = email_templates.welcome_email(self._sender_name, name, email)
        return self.send(email, subject, html)

    def send_password_reset(
        self, name: str, email: str, reset_url: str, expiry_minutes: int
    ) -> bool:
        subject, html = email_templates.password_reset_email(
            self._sender_name, name, reset_url, expiry_minutes
        )
        return self.send(email, subject, html, hint=f"Reset link: {reset_url}")

    def send_password_reset_success(self, name: str, email: str) -> bool:
        subject, html = email_templates.password_reset_success_email(self._sender_name, name)
        return self.send(email, subject, html)
