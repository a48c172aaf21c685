"""Celery tasks for delivering verification and password reset email."""

import logging

from marketplace.celery_app import app as celery_app
from marketplace.services.email_service import EmailDispatcher
from marketplace.services.errors import DispatchError

logger = logging.getLogger(__name__)

# Retry transient SMTP failures with backoff; the account change is already
# committed so a lost email only means the user asks for a new link.
RETRY_OPTIONS = {
    "autoretry_for": (DispatchError,),
    "retry_backoff": True,
    "max_retries": 3,
}


@celery_app.task(name="marketplace.send_verification_email", **RETRY_OPTIONS)
def send_verification_email(address: str, display_name: str, token: str) -> None:
    """Deliver an email verification link."""
    logger.info(f"Delivering verification email to {address}")
    EmailDispatcher().send_verification_email(address, display_name, token)


@celery_app.task(name="marketplace.send_password_reset_email", **RETRY_OPTIONS)
def send_password_reset_email(address: str, token: str) -> None:
    """Deliver a password reset link."""
    logger.info(f"Delivering password reset email to {address}")
    EmailDispatcher().send_password_reset_email(address, token)
