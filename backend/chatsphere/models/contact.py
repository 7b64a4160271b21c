"""
ChatSphere Backend: Contact and ContactRequest Models
=====================================================

What:  ORM models for the friend-request lifecycle and the resulting
       contact list.

Lifecycle:
    1. A sends B a request            → ContactRequest(A → B, 'pending')
    2. B accepts                      → status 'accepted',
                                        Contact(A, B) and Contact(B, A)
    3. B rejects                      → status 'rejected', no contacts
    4. Either side removes the other  → both Contact rows deleted

    Contacts are stored as two directed rows so "my contacts" is a single
    indexed lookup on user_id.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from chatsphere.database import Base
from chatsphere.models.user import utcnow


REQUEST_PENDING = "pending"
REQUEST_ACCEPTED = "accepted"
REQUEST_REJECTED = "rejected"


class ContactRequest(Base):
    """A friend request from one user to another."""

    __tablename__ = "contact_requests"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    from_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    to_user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Values: 'pending' → 'accepted' | 'rejected'
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=REQUEST_PENDING,
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

    __table_args__ = (
        Index("idx_contact_requests_to_status", "to_user_id", "status"),
        Index("idx_contact_requests_from_status", "from_user_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<ContactRequest(id={self.id}, from={self.from_user_id}, "
            f"to={self.to_user_id}, status='{self.status}')>"
        )


class Contact(Base):
    """One direction of an accepted contact relation."""

    __tablename__ = "contacts"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    contact_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "contact_id", name="uq_contacts_user_contact"),
    )

    def __repr__(self) -> str:
        return f"<Contact(user={self.user_id}, contact={self.contact_id})>"
