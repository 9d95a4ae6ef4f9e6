"""User model."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """Application user.

    Pending accounts have ``is_active=False`` and an activation token; activation
    clears the token for good. ``reset_token`` and ``reset_token_expires_at`` are
    set and cleared together.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(256), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    is_active = Column(Boolean, nullable=False, default=False)
    activation_token = Column(String(128), nullable=True, unique=True, index=True)
    reset_token = Column(String(128), nullable=True, unique=True, index=True)
    reset_token_expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
    version_id = Column(Integer, nullable=False)

    # UPDATEs match on the version read, so a stale write affects no rows.
    __mapper_args__ = {"version_id_col": version_id}
