"""Password hashing and signed session tokens."""

import logging
from datetime import UTC, datetime, timedelta

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from marketplace.config import Settings, get_settings
from marketplace.models.user import User
from marketplace.services.errors import (
    ConfigurationError,
    InvalidSessionError,
    SessionExpiredError,
)

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=get_settings().bcrypt_rounds,
)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def dummy_verify() -> None:
    """Spend the same time as a real verification when no user matched."""
    pwd_context.dummy_verify()


def _require_secret(settings: Settings) -> str:
    if not settings.jwt_secret or not settings.jwt_secret.strip():
        logger.error("JWT_SECRET environment variable is not set")
        raise ConfigurationError()
    return settings.jwt_secret


def ensure_signing_configured(settings: Settings | None = None) -> None:
    """Fail fast if session tokens cannot be signed."""
    _require_secret(settings or get_settings())


def create_access_token(user: User, settings: Settings | None = None) -> str:
    """Create a signed JWT session token for a user."""
    settings = settings or get_settings()
    secret = _require_secret(settings)
    now = datetime.now(UTC)
    to_encode = {
        "sub": str(user.id),
        "email": user.email,
        "username": user.username,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_expiration_minutes),
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
    }
    return jwt.encode(to_encode, secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings | None = None) -> dict:
    """Decode and validate a JWT session token.

    Raises:
        SessionExpiredError: the token's ``exp`` has passed.
        InvalidSessionError: bad signature, issuer, audience or format.
    """
    settings = settings or get_settings()
    secret = _require_secret(settings)
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
        )
    except ExpiredSignatureError as e:
        raise SessionExpiredError() from e
    except JWTError as e:
        logger.info(f"Rejected session token: {e}")
        raise InvalidSessionError() from e
