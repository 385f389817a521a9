"""
auth/mailer.py -- Outbound email for reset and verification links.

Fire-and-forget from the authenticator's point of view: send() never raises
for delivery problems. SMTP failures are logged and reported as False; the
authenticator logs a warning and moves on without retrying.

Without SMTP_HOST / EMAIL_FROM configured the service runs in dev mode and
logs the message instead of sending it, so local flows work without a mail
server. Recipient addresses are redacted in every log line.
"""

from __future__ import annotations

import logging
import smtplib
import ssl
from email.mime.text import MIMEText

logger = logging.getLogger("authledger.email")

RESET_PASSWORD_SUBJECT = "Reset password"
VERIFY_EMAIL_SUBJECT = "Email Verification"


def redact_email(email: str) -> str:
    """Redact an email address for logging to avoid PII leakage."""
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


class EmailService:
    def __init__(
        self,
        *,
        smtp_host: str = "",
        smtp_port: int = 587,
        smtp_username: str = "",
        smtp_password: str = "",
        smtp_use_tls: bool = True,
        from_email: str = "",
        base_url: str = "http://localhost:3000",
    ) -> None:
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_username = smtp_username
        self.smtp_password = smtp_password
        self.smtp_use_tls = smtp_use_tls
        self.from_email = from_email or smtp_username
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings) -> "EmailService":
        return cls(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_username=settings.smtp_username,
            smtp_password=settings.smtp_password,
            smtp_use_tls=settings.smtp_use_tls,
            from_email=settings.email_from,
            base_url=settings.app_base_url,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.from_email)

    def send(self, to: str, subject: str, body: str) -> bool:
        """Send a plain-text email. Returns True on success (or dev-mode log), False on failure."""
        if not self.is_configured:
            logger.info("Email dev mode: to=%s subject=%r (SMTP not configured)", redact_email(to), subject)
            return True

        msg = MIMEText(body, "plain", "utf-8")
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = to

        context = ssl.create_default_context()
        try:
            if self.smtp_use_tls:
                with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                    server.starttls(context=context)
                    self._login(server)
                    server.sendmail(self.from_email, [to], msg.as_string())
            else:
                with smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, context=context, timeout=30) as server:
                    self._login(server)
                    server.sendmail(self.from_email, [to], msg.as_string())
        except smtplib.SMTPException as exc:
            logger.error("Email to %s failed: %s", redact_email(to), exc)
            return False
        except OSError as exc:
            logger.error("Could not reach SMTP server %s:%d: %s", self.smtp_host, self.smtp_port, exc)
            return False

        logger.info("Email sent to %s (%s)", redact_email(to), subject)
        return True

    def send_reset_password_email(self, to: str, token: str) -> bool:
        url = f"{self.base_url}/reset-password?token={token}"
        body = (
            "Dear user,\n"
            f"To reset your password, click on this link: {url}\n"
            "If you did not request any password resets, then ignore this email."
        )
        return self.send(to, RESET_PASSWORD_SUBJECT, body)

    def send_verification_email(self, to: str, token: str) -> bool:
        url = f"{self.base_url}/verify-email?token={token}"
        body = f"Dear user,\nTo verify your email, click on this link: {url}"
        return self.send(to, VERIFY_EMAIL_SUBJECT, body)

    def _login(self, server: smtplib.SMTP) -> None:
        if self.smtp_username and self.smtp_password:
            server.login(self.smtp_username, self.smtp_password)
