"""
ChatSphere Backend: User SQLAlchemy Model
=========================================

What:  ORM model representing the `users` table.
Who:   Used by the auth, user, contact and message services, and by Alembic.

Table Design:
    - UUID primary key: non-sequential, safe to expose in URLs
    - email: unique, stored lowercase so lookups are case-insensitive
    - password_hash: passlib hash string, never serialized by any schema
    - avatar: public URL returned by the image host (nullable)
    - is_online / last_seen: presence, updated on login and logout
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from chatsphere.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    A registered ChatSphere account.

    Query Patterns:
        - Login: SELECT ... WHERE email = :email  (unique index)
        - Token check: SELECT ... WHERE id = :uuid  (primary key)
        - Search: WHERE lower(name) LIKE ... OR lower(email) LIKE ...
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Display name, trimmed, at least 2 characters",
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Login identifier, stored lowercase",
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="passlib hash of the account password",
    )

    avatar: Mapped[str | None] = mapped_column(
        String(512),
        nullable=True,
        default=None,
        comment="Public avatar URL on the image host",
    )

    is_online: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    last_seen: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', online={self.is_online})>"
