"""User model."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, String, false, func

from marketplace.database import Base
from marketplace.models.mixins import TimestampMixin


def _new_user_id() -> str:
    return str(uuid.uuid4())


class User(Base, TimestampMixin):
    """Marketplace account with its credential lifecycle state.

    A verification token and its expiry are always set or cleared together,
    and the same holds for the reset token pair.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_user_id)
    email = Column(String(255), unique=True, nullable=False, index=True)
    username = Column(String(20), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    email_verified = Column(Boolean, nullable=False, default=False, server_default=false())

    verification_token = Column(String(64), unique=True, nullable=True, index=True)
    verification_token_expires_at = Column(DateTime(timezone=True), nullable=True)
    reset_token = Column(String(64), unique=True, nullable=True, index=True)
    reset_token_expires_at = Column(DateTime(timezone=True), nullable=True)

    location = Column(String(100), nullable=True)
    join_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} verified={self.email_verified}>"
