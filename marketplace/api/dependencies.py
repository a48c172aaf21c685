"""FastAPI dependencies for authentication and database."""

from datetime import timedelta
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from marketplace.config import Settings, get_settings
from marketplace.database import get_db
from marketplace.models.user import User
from marketplace.services.auth_service import AuthService, EmailSender
from marketplace.services.errors import InvalidSessionError, MissingSessionError
from marketplace.services.security import decode_access_token
from marketplace.services.tokens import TokenIssuer
from marketplace.services.user_store import UserStore

security = HTTPBearer(auto_error=False)


def get_user_store(db: Annotated[Session, Depends(get_db)]) -> UserStore:
    """Get the credential store bound to the request's session."""
    return UserStore(db)


def get_email_dispatcher(request: Request) -> EmailSender:
    """Get the dispatcher created at startup."""
    return request.app.state.email_dispatcher


def get_auth_service(
    store: Annotated[UserStore, Depends(get_user_store)],
    dispatcher: Annotated[EmailSender, Depends(get_email_dispatcher)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthService:
    """Get auth workflow with dependencies."""
    issuer = TokenIssuer(
        verification_ttl=timedelta(hours=settings.verification_token_ttl_hours),
        reset_ttl=timedelta(hours=settings.reset_token_ttl_hours),
    )
    return AuthService(store, dispatcher, settings=settings, issuer=issuer)


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    """Get the current authenticated user from the bearer session token."""
    if credentials is None:
        raise MissingSessionError()

    payload = decode_access_token(credentials.credentials, settings)

    user_id = payload.get("sub")
    if user_id is None:
        raise InvalidSessionError()

    user = auth_service.get_user(user_id)
    if user is None:
        raise InvalidSessionError("User not found")

    return user
