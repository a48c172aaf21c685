"""Registration, email verification, login and password reset workflow."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from marketplace.config import Settings, get_settings
from marketplace.models.user import User
from marketplace.services.errors import (
    AlreadyVerifiedError,
    EmailExistsError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    MissingCredentialsError,
    MissingEmailError,
    MissingPasswordError,
    MissingTokenError,
    NoAccountFoundError,
    UsernameExistsError,
    ValidationError,
    WeakPasswordError,
)
from marketplace.services.security import (
    create_access_token,
    dummy_verify,
    ensure_signing_configured,
    get_password_hash,
    verify_password,
)
from marketplace.services.tokens import Clock, TokenIssuer, is_expired, utc_now
from marketplace.services.user_store import UserStore
from marketplace.services.validation import validate_password, validate_registration

logger = logging.getLogger(__name__)


class EmailSender(Protocol):
    """Interface of the email dispatchers the workflow talks to."""

    def send_verification_email(self, address: str, display_name: str, token: str) -> None: ...

    def send_password_reset_email(self, address: str, token: str) -> None: ...


@dataclass
class LoginResult:
    """Signed session token plus the authenticated user."""

    token: str
    user: User


class AuthService:
    """Credential lifecycle state machine over ``User`` records.

    The service keeps no state between calls: every operation re-reads the
    user from the store. Email delivery happens after the state change is
    committed, and a delivery failure is logged without undoing it.
    """

    def __init__(
        self,
        store: UserStore,
        dispatcher: EmailSender,
        settings: Settings | None = None,
        issuer: TokenIssuer | None = None,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.settings = settings or get_settings()
        self.clock = clock
        self.issuer = issuer or TokenIssuer(clock=clock)

    def _dispatch(self, description: str, send: Callable[..., None], *args: str) -> None:
        """Attempt delivery; failures never propagate to the caller."""
        try:
            send(*args)
        except Exception:
            logger.exception(f"Failed to send {description} to {args[0]}")

    def register(
        self,
        email: str | None,
        username: str | None,
        password: str | None,
        location: str | None = None,
    ) -> User:
        """Create an unverified account and send its verification link.

        Raises:
            ValidationError: one or more fields are invalid (all listed in details).
            EmailExistsError: the email is already registered.
            UsernameExistsError: the username is taken.
        """
        errors = validate_registration(email, username, password, location)
        if errors:
            raise ValidationError(details=errors)

        if self.store.find_by_email(email) is not None:
            raise EmailExistsError()
        if self.store.find_by_username(username) is not None:
            raise UsernameExistsError()

        issued = self.issuer.issue_verification_token()
        user = self.store.create(
            email=email,
            username=username,
            password_hash=get_password_hash(password),
            location=location.strip() if location and location.strip() else None,
            email_verified=False,
            verification_token=issued.value,
            verification_token_expires_at=issued.expires_at,
        )
        logger.info(f"Registered user {user.id} ({user.username})")

        self._dispatch(
            "verification email",
            self.dispatcher.send_verification_email,
            user.email,
            user.username,
            issued.value,
        )
        return user

    def verify_email(self, token: str | None) -> User:
        """Consume a verification token and mark its owner verified."""
        token = (token or "").strip()
        if not token:
            raise MissingTokenError("Verification token is required")

        invalid = InvalidOrExpiredTokenError("Invalid or expired verification token")
        user = self.store.find_by_verification_token(token)
        if user is None:
            logger.info("Email verification failed: unknown token")
            raise invalid
        if user.email_verified:
            logger.info(f"Email verification failed: user {user.id} already verified")
            raise invalid

        now = self.clock()
        if is_expired(user.verification_token_expires_at, now):
            logger.info(f"Email verification failed: token expired for user {user.id}")
            raise invalid

        if not self.store.consume_verification_token(token, now):
            logger.info(f"Email verification failed: token for user {user.id} already consumed")
            raise invalid

        logger.info(f"Email verified for user {user.id}")
        return self.store.find_by_id(user.id)

    def resend_verification_email(self, email: str | None) -> str:
        """Replace the outstanding verification token and resend the link.

        Raises:
            NoAccountFoundError: nobody registered this email. Callers answer
                with the same message as the success case.
            AlreadyVerifiedError: the account needs no verification.
        """
        if not email or not email.strip():
            raise MissingEmailError()

        user = self.store.find_by_email(email)
        if user is None:
            logger.info("Verification resend requested for unknown email")
            raise NoAccountFoundError()
        if user.email_verified:
            raise AlreadyVerifiedError()

        issued = self.issuer.issue_verification_token()
        self.store.update(
            user,
            verification_token=issued.value,
            verification_token_expires_at=issued.expires_at,
        )
        logger.info(f"Verification token reissued for user {user.id}")

        self._dispatch(
            "verification email",
            self.dispatcher.send_verification_email,
            user.email,
            user.username,
            issued.value,
        )
        return issued.value

    def login_user(self, email: str | None, password: str | None) -> LoginResult:
        """Check credentials and issue a session token.

        Unknown email and wrong password fail with the same error. The
        unverified error is only raised once the password has matched.
        """
        if not email or not password:
            raise MissingCredentialsError()

        ensure_signing_configured(self.settings)

        user = self.store.find_by_email(email)
        if user is None:
            dummy_verify()
            logger.info("Login failed: unknown email")
            raise InvalidCredentialsError()
        if not verify_password(password, user.password_hash):
            logger.info(f"Login failed: wrong password for user {user.id}")
            raise InvalidCredentialsError()
        if not user.email_verified:
            logger.info(f"Login refused: user {user.id} has not verified their email")
            raise EmailNotVerifiedError()

        token = create_access_token(user, self.settings)
        logger.info(f"User {user.id} logged in")
        return LoginResult(token=token, user=user)

    def request_password_reset(self, email: str | None) -> str | None:
        """Issue a one-hour reset token for a verified account.

        Returns None, without sending anything, when the account is unknown
        or unverified.
        """
        if not email or not email.strip():
            raise MissingEmailError()

        user = self.store.find_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return None
        if not user.email_verified:
            logger.info(f"Password reset requested for unverified user {user.id}")
            return None

        issued = self.issuer.issue_reset_token()
        self.store.update(
            user,
            reset_token=issued.value,
            reset_token_expires_at=issued.expires_at,
        )
        logger.info(f"Password reset token issued for user {user.id}")

        self._dispatch(
            "password reset email",
            self.dispatcher.send_password_reset_email,
            user.email,
            issued.value,
        )
        return issued.value

    def reset_password(self, token: str | None, new_password: str | None) -> None:
        """Consume a reset token and store the new password hash.

        Raises:
            WeakPasswordError: the password breaks one or more strength rules.
            InvalidOrExpiredTokenError: unknown, expired or already used token.
        """
        token = (token or "").strip()
        if not token:
            raise MissingTokenError("Password reset token is required")
        if not new_password:
            raise MissingPasswordError()

        errors = validate_password(new_password)
        if errors:
            raise WeakPasswordError(details=errors)

        invalid = InvalidOrExpiredTokenError("Invalid or expired password reset token")
        user = self.store.find_by_reset_token(token)
        if user is None:
            logger.info("Password reset failed: unknown token")
            raise invalid

        now = self.clock()
        if is_expired(user.reset_token_expires_at, now):
            logger.info(f"Password reset failed: token expired for user {user.id}")
            self.store.clear_reset_token(user.id, token)
            raise invalid

        if not self.store.consume_reset_token(token, get_password_hash(new_password), now):
            logger.info(f"Password reset failed: token for user {user.id} already consumed")
            raise invalid

        logger.info(f"Password reset completed for user {user.id}")

    def get_user(self, user_id: str) -> User | None:
        """Look up a user by id for session-authenticated requests."""
        return self.store.find_by_id(user_id)
