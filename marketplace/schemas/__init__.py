"""Pydantic request and response schemas."""

from marketplace.schemas.auth import (
    LoginResponse,
    MessageResponse,
    PasswordResetComplete,
    PasswordResetRequest,
    RegisterResponse,
    ResendVerificationRequest,
    UserLogin,
    UserRegister,
    UserResponse,
)

__all__ = [
    "UserRegister",
    "ResendVerificationRequest",
    "UserLogin",
    "PasswordResetRequest",
    "PasswordResetComplete",
    "UserResponse",
    "MessageResponse",
    "RegisterResponse",
    "LoginResponse",
]
