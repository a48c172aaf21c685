"""Issuer for single-use email verification and password reset tokens."""

import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

# 32 random bytes, hex encoded (64 URL-safe characters)
TOKEN_BYTES = 32

VERIFICATION_TOKEN_TTL = timedelta(hours=24)
RESET_TOKEN_TTL = timedelta(hours=1)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current UTC time."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def is_expired(expires_at: datetime | None, now: datetime) -> bool:
    """Check whether a token expiry has been reached.

    A token is valid strictly before ``expires_at``; a missing expiry counts
    as expired.
    """
    if expires_at is None:
        return True
    return as_utc(now) >= as_utc(expires_at)


@dataclass(frozen=True)
class IssuedToken:
    """An opaque token value with its expiry."""

    value: str
    expires_at: datetime


class TokenIssuer:
    """Generates opaque tokens with fixed validity windows."""

    def __init__(
        self,
        clock: Clock = utc_now,
        verification_ttl: timedelta = VERIFICATION_TOKEN_TTL,
        reset_ttl: timedelta = RESET_TOKEN_TTL,
    ):
        self.clock = clock
        self.verification_ttl = verification_ttl
        self.reset_ttl = reset_ttl

    def _issue(self, ttl: timedelta) -> IssuedToken:
        return IssuedToken(
            value=secrets.token_hex(TOKEN_BYTES),
            expires_at=self.clock() + ttl,
        )

    def issue_verification_token(self) -> IssuedToken:
        """Issue an email verification token."""
        return self._issue(self.verification_ttl)

    def issue_reset_token(self) -> IssuedToken:
        """Issue a password reset token."""
        return self._issue(self.reset_ttl)
