"""
ChatSphere Backend: Message SQLAlchemy Model
============================================

What:  ORM model for direct messages between two users.

Query Patterns:
    - Conversation page: WHERE (sender, receiver) IN ((a, b), (b, a))
      AND created_at < :cursor ORDER BY created_at DESC LIMIT :n
    - Unread badge: WHERE receiver_id = :me AND is_read = false
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from chatsphere.database import Base
from chatsphere.models.user import utcnow


class Message(Base):
    """A text message from sender to receiver."""

    __tablename__ = "messages"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    sender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    receiver_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    content: Mapped[str] = mapped_column(Text, nullable=False)

    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    read_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        Index("idx_messages_pair_created", "sender_id", "receiver_id", "created_at"),
        Index("idx_messages_receiver_unread", "receiver_id", "is_read"),
    )

    def __repr__(self) -> str:
        return (
            f"<Message(id={self.id}, sender={self.sender_id}, "
            f"receiver={self.receiver_id}, read={self.is_read})>"
        )
