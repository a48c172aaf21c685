"""Authentication API endpoints.

Handlers are plain ``def`` functions so FastAPI runs them in its thread pool;
bcrypt hashing never blocks the event loop.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from marketplace.api.dependencies import get_auth_service, get_current_user
from marketplace.api.rate_limit import limiter
from marketplace.config import get_settings
from marketplace.models.user import User
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
from marketplace.services.auth_service import AuthService
from marketplace.services.errors import NoAccountFoundError

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/auth", tags=["auth"])

RESEND_VERIFICATION_MESSAGE = (
    "If an unverified account exists with this email, a new verification email has been sent."
)
RESET_REQUESTED_MESSAGE = (
    "If an account exists with this email, a password reset link has been sent."
)


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    user_data: UserRegister,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Register a new user and send a verification email."""
    user = auth_service.register(
        user_data.email,
        user_data.username,
        user_data.password,
        user_data.location,
    )
    return RegisterResponse(
        message="Registration successful. Please check your email to verify your account.",
        user=UserResponse.model_validate(user),
    )


@router.get("/verify-email/{token}", response_model=MessageResponse)
def verify_email(
    token: str,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Verify an email address with the token from the verification link."""
    auth_service.verify_email(token)
    return MessageResponse(message="Email verified successfully. You can now log in.")


@router.post("/resend-verification", response_model=MessageResponse)
@limiter.limit(settings.password_reset_rate_limit)
def resend_verification(
    request: Request,
    body: ResendVerificationRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Send a fresh verification link.

    Unknown emails get the same answer as real ones.
    """
    try:
        auth_service.resend_verification_email(body.email)
    except NoAccountFoundError:
        logger.debug("Answering resend request for unknown email with the generic message")
    return MessageResponse(message=RESEND_VERIFICATION_MESSAGE)


@router.post("/login", response_model=LoginResponse)
@limiter.limit(settings.login_rate_limit)
def login(
    request: Request,
    credentials: UserLogin,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Login with email and password."""
    result = auth_service.login_user(credentials.email, credentials.password)
    return LoginResponse(
        message="Login successful",
        token=result.token,
        user=UserResponse.model_validate(result.user),
    )


@router.post("/reset-password", response_model=MessageResponse)
@limiter.limit(settings.password_reset_rate_limit)
def request_password_reset(
    request: Request,
    body: PasswordResetRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Email a password reset link if the account exists."""
    auth_service.request_password_reset(body.email)
    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.post("/reset-password/{token}", response_model=MessageResponse)
def complete_password_reset(
    token: str,
    body: PasswordResetComplete,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Set a new password using a reset token."""
    auth_service.reset_password(token, body.password)
    return MessageResponse(
        message="Password reset successful. You can now log in with your new password."
    )


@router.get("/me", response_model=UserResponse)
def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Get current user information."""
    return current_user
