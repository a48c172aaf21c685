"""Email delivery for verification and password reset links."""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from kombu.exceptions import OperationalError

from marketplace.config import Settings, get_settings
from marketplace.services.errors import DispatchError

logger = logging.getLogger(__name__)

APP_NAME = "Marketplace Platform"


def verification_url(settings: Settings, token: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/verify-email?token={token}"


def reset_url(settings: Settings, token: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/reset-password?token={token}"


def _html_page(heading: str, paragraphs: list[str], link: str, button: str) -> str:
    body = "\n".join(f"    <p>{p}</p>" for p in paragraphs)
    return f"""<!DOCTYPE html>
<html>
  <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
    <h2>{heading}</h2>
{body}
    <a href="{link}" style="display: inline-block; padding: 12px 24px; background-color: #3b82f6;
       color: white; text-decoration: none; border-radius: 5px; margin: 20px 0;">{button}</a>
    <p>Or copy and paste this link into your browser:</p>
    <p style="word-break: break-all; color: #3b82f6;">{link}</p>
    </div>
  </body>
</html>
"""


class EmailDispatcher:
    """Sends transactional email over SMTP.

    Without SMTP credentials the dispatcher logs the link instead of sending,
    which keeps local development and tests working.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.enabled = self.settings.smtp_configured
        if self.enabled:
            logger.info(
                f"SMTP email enabled via {self.settings.smtp_host}:{self.settings.smtp_port}"
            )
        else:
            logger.warning(
                "SMTP credentials not configured, emails will be logged instead of sent"
            )

    def send_verification_email(self, address: str, display_name: str, token: str) -> None:
        """Send the email verification link."""
        link = verification_url(self.settings, token)
        hours = self.settings.verification_token_ttl_hours
        greeting = f"Hello {display_name}," if display_name else "Hello,"

        text_body = (
            f"{greeting}\n\n"
            f"Thank you for registering with {APP_NAME}!\n\n"
            f"Please verify your email address by opening the link below:\n{link}\n\n"
            f"This link will expire in {hours} hours.\n\n"
            "If you didn't create an account, you can safely ignore this email.\n"
        )
        html_body = _html_page(
            f"Welcome to {APP_NAME}!",
            [
                greeting,
                "Please verify your email address to complete your registration.",
                f"This link will expire in {hours} hours.",
            ],
            link,
            "Verify Email Address",
        )
        self._send(address, f"Verify Your Email - {APP_NAME}", text_body, html_body, link)

    def send_password_reset_email(self, address: str, token: str) -> None:
        """Send the password reset link."""
        link = reset_url(self.settings, token)
        hours = self.settings.reset_token_ttl_hours

        text_body = (
            "Hello,\n\n"
            f"We received a request to reset the password for your {APP_NAME} account.\n\n"
            f"Reset your password by opening the link below:\n{link}\n\n"
            f"This link will expire in {hours} hour(s) and can only be used once.\n\n"
            "If you didn't request a password reset, you can safely ignore this email.\n"
        )
        html_body = _html_page(
            "Reset Your Password",
            [
                f"We received a request to reset the password for your {APP_NAME} account.",
                f"This link will expire in {hours} hour(s) and can only be used once.",
            ],
            link,
            "Reset Password",
        )
        self._send(address, f"Reset Your Password - {APP_NAME}", text_body, html_body, link)

    def _send(self, address: str, subject: str, text_body: str, html_body: str, link: str) -> None:
        if not self.enabled:
            logger.warning(f"[email disabled] {subject} for {address}: {link}")
            return

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.settings.email_from
        msg["To"] = address
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            with smtplib.SMTP(
                self.settings.smtp_host,
                self.settings.smtp_port,
                timeout=self.settings.smtp_timeout_seconds,
            ) as server:
                if self.settings.smtp_use_tls:
                    server.starttls()
                server.login(self.settings.smtp_username, self.settings.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise DispatchError(f"Failed to send '{subject}' to {address}: {e}") from e

        logger.info(f"Sent '{subject}' to {address}")

    def close(self) -> None:
        """Release transport resources (connections are opened per message)."""
        logger.debug("Email dispatcher closed")


class QueuedEmailDispatcher:
    """Hands emails to Celery workers instead of sending in the request."""

    def __init__(self) -> None:
        from marketplace.tasks import email as email_tasks

        self._tasks = email_tasks
        logger.info("Queued email delivery enabled")

    def send_verification_email(self, address: str, display_name: str, token: str) -> None:
        self._enqueue(self._tasks.send_verification_email, address, display_name, token)

    def send_password_reset_email(self, address: str, token: str) -> None:
        self._enqueue(self._tasks.send_password_reset_email, address, token)

    def _enqueue(self, task, *args: str) -> None:
        try:
            task.delay(*args)
        except (OperationalError, OSError) as e:
            raise DispatchError(f"Failed to enqueue {task.name}: {e}") from e

    def close(self) -> None:
        logger.debug("Queued email dispatcher closed")


def build_email_dispatcher(settings: Settings | None = None) -> EmailDispatcher | QueuedEmailDispatcher:
    """Create the dispatcher selected by ``EMAIL_DELIVERY``."""
    settings = settings or get_settings()
    if settings.email_delivery == "queue":
        return QueuedEmailDispatcher()
    return EmailDispatcher(settings)
