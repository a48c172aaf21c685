"""Authentication schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

# Request fields are optional so the workflow, not pydantic, decides which
# error code a missing field produces.


class UserRegister(BaseModel):
    """User registration request."""

    email: str | None = None
    username: str | None = None
    password: str | None = None
    location: str | None = None


class ResendVerificationRequest(BaseModel):
    """Resend verification email request."""

    email: str | None = None


class UserLogin(BaseModel):
    """User login request."""

    email: str | None = None
    password: str | None = None


class PasswordResetRequest(BaseModel):
    """Request a password reset link."""

    email: str | None = None


class PasswordResetComplete(BaseModel):
    """Set a new password with a reset token."""

    password: str | None = None


class UserResponse(BaseModel):
    """Sanitized user projection (no password hash, no tokens)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    username: str
    email_verified: bool
    location: str | None
    join_date: datetime


class MessageResponse(BaseModel):
    """Plain message response."""

    message: str


class RegisterResponse(BaseModel):
    """Registration response."""

    message: str
    user: UserResponse


class LoginResponse(BaseModel):
    """Login response with session token and user info."""

    message: str
    token: str
    token_type: str = "bearer"  # noqa: S105
    user: UserResponse
