"""Persistence for user credential records."""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.models.user import User
from marketplace.services.errors import EmailExistsError, UsernameExistsError
from marketplace.services.validation import normalize_email

logger = logging.getLogger(__name__)


class UserStore:
    """Reads and writes ``User`` rows.

    Each write commits its own transaction. Token consumption is a single
    conditional UPDATE, so when two requests race on the same token only the
    first one changes a row.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, user_id: str) -> User | None:
        return self.db.query(User).filter(User.id == user_id).first()

    def find_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def find_by_username(self, username: str) -> User | None:
        return self.db.query(User).filter(User.username == username).first()

    def find_by_verification_token(self, token: str) -> User | None:
        return self.db.query(User).filter(User.verification_token == token).first()

    def find_by_reset_token(self, token: str) -> User | None:
        return self.db.query(User).filter(User.reset_token == token).first()

    def create(self, **fields: Any) -> User:
        """Insert a new user.

        Raises:
            EmailExistsError / UsernameExistsError: a concurrent insert won
                the unique constraint after the caller's pre-check.
        """
        fields["email"] = normalize_email(fields["email"])
        user = User(**fields)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Unique constraint hit creating user {fields['username']!r}: {e.orig}")
            if self.find_by_email(fields["email"]) is not None:
                raise EmailExistsError() from e
            if self.find_by_username(fields["username"]) is not None:
                raise UsernameExistsError() from e
            raise
        self.db.refresh(user)
        return user

    def update(self, user: User, **fields: Any) -> User:
        """Apply field changes to a user and commit."""
        for key, value in fields.items():
            setattr(user, key, value)
        self.db.commit()
        self.db.refresh(user)
        return user

    def consume_verification_token(self, token: str, now: datetime) -> bool:
        """Mark the token owner verified if the token is still valid.

        Returns True when this call consumed the token.
        """
        result = self.db.execute(
            update(User)
            .where(
                User.verification_token == token,
                User.email_verified.is_(False),
                User.verification_token_expires_at > now,
            )
            .values(
                email_verified=True,
                verification_token=None,
                verification_token_expires_at=None,
            ),
            execution_options={"synchronize_session": False},
        )
        self.db.commit()
        return result.rowcount == 1

    def consume_reset_token(self, token: str, password_hash: str, now: datetime) -> bool:
        """Store a new password hash if the reset token is still valid.

        Returns True when this call consumed the token.
        """
        result = self.db.execute(
            update(User)
            .where(
                User.reset_token == token,
                User.reset_token_expires_at > now,
            )
            .values(
                password_hash=password_hash,
                reset_token=None,
                reset_token_expires_at=None,
            ),
            execution_options={"synchronize_session": False},
        )
        self.db.commit()
        return result.rowcount == 1

    def clear_reset_token(self, user_id: str, token: str) -> bool:
        """Drop a reset token if it is still the one on record.

        A token issued after ``token`` was read is left in place. Returns True
        when a row was cleared.
        """
        result = self.db.execute(
            update(User)
            .where(User.id == user_id, User.reset_token == token)
            .values(reset_token=None, reset_token_expires_at=None),
            execution_options={"synchronize_session": False},
        )
        self.db.commit()
        return result.rowcount == 1
