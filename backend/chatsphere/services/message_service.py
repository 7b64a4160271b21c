"""
ChatSphere Backend: Message Service
===================================

What:  Sending, reading and deleting direct messages; conversation list and
       unread counters.
How:   SQLAlchemy core/ORM queries. The conversation list uses a
       row_number() window over the conversation partner so the database
       returns exactly one (latest) message per partner.
Who:   Called by the /api/messages route handlers.

Rules:
    - Messages may only be sent between contacts
    - Only the sender may delete a message
    - Reading a conversation does not mark it read; PUT /{userId}/read does
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy import and_, case, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from chatsphere.exceptions import (
    DatabaseError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from chatsphere.models.message import Message
from chatsphere.models.user import User
from chatsphere.schemas.message import (
    MAX_MESSAGE_LENGTH,
    ConversationItem,
    ConversationPage,
    MessageOut,
)
from chatsphere.schemas.user import UserOut
from chatsphere.services.contact_service import contact_service

logger = logging.getLogger(__name__)


CURSOR_SEPARATOR = "_"


def _make_cursor(message: Message) -> str:
    return f"{message.created_at.isoformat()}{CURSOR_SEPARATOR}{message.id}"


def _parse_cursor(cursor: Optional[str]) -> Optional[Tuple[datetime, Optional[uuid.UUID]]]:
    """
    Cursors are "<created_at ISO>_<message id>". A bare timestamp is also
    accepted. Invalid cursors are ignored and the first page is returned.
    """
    if not cursor:
        return None
    stamp, _, message_id = cursor.partition(CURSOR_SEPARATOR)
    try:
        return datetime.fromisoformat(stamp), uuid.UUID(message_id) if message_id else None
    except ValueError:
        logger.debug("Ignoring invalid cursor: %s", cursor)
        return None


def _older_than(created_at: datetime, message_id: Optional[uuid.UUID]):
    """Rows after (created_at, id) in newest-first order."""
    if message_id is None:
        return Message.created_at < created_at
    return or_(
        Message.created_at < created_at,
        and_(Message.created_at == created_at, Message.id < message_id),
    )


def _between(user_id: uuid.UUID, other_id: uuid.UUID):
    return or_(
        and_(Message.sender_id == user_id, Message.receiver_id == other_id),
        and_(Message.sender_id == other_id, Message.receiver_id == user_id),
    )


class MessageService:
    """
    Responsibilities:
        - send(): validate and store a message to a contact
        - get_conversation(): cursor-paginated history with one partner
        - list_conversations(): latest message + unread count per partner
        - unread_count(), mark_read(), delete()
    """

    async def send(
        self,
        db: AsyncSession,
        user: User,
        receiver_id: uuid.UUID,
        content: Optional[str],
    ) -> MessageOut:
        """
        Raises:
            ValidationError: empty or too long content, message to self
            NotFoundError: receiver does not exist
            PermissionDeniedError: receiver is not a contact
        """
        text = (content or "").strip()
        if not text:
            raise ValidationError(message="Message content is required", field="content")
        if len(text) > MAX_MESSAGE_LENGTH:
            raise ValidationError(
                message=f"Message content must be at most {MAX_MESSAGE_LENGTH} characters",
                field="content",
                context={"max_length": MAX_MESSAGE_LENGTH, "actual_length": len(text)},
            )
        if receiver_id == user.id:
            raise ValidationError(message="Cannot send message to yourself", field="receiverId")

        receiver = await db.get(User, receiver_id)
        if receiver is None:
            raise NotFoundError(resource="User", resource_id=str(receiver_id))

        if not await contact_service.are_contacts(db, user.id, receiver_id):
            raise PermissionDeniedError("You can only message your contacts")

        message = Message(sender_id=user.id, receiver_id=receiver_id, content=text)
        db.add(message)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to store message: %s", str(e), exc_info=True)
            raise DatabaseError(context={"operation": "send_message"})

        logger.info("Message %s: %s → %s (%d chars)", message.id, user.id, receiver_id, len(text))
        return MessageOut.model_validate(message)

    async def get_conversation(
        self,
        db: AsyncSession,
        user: User,
        other_id: uuid.UUID,
        limit: int = 50,
        cursor: Optional[str] = None,
    ) -> ConversationPage:
        """
        One page of the history with `other_id`.

        The query walks backwards from `cursor` (newest first) and fetches
        one extra row to detect whether older messages remain; the page is
        then returned oldest first. The cursor is the (created_at, id) key
        of the oldest message on the page, matching the sort order, so
        messages sharing a timestamp are never skipped.
        """
        partner = await db.get(User, other_id)
        if partner is None:
            raise NotFoundError(resource="User", resource_id=str(other_id))

        query = select(Message).where(_between(user.id, other_id))
        position = _parse_cursor(cursor)
        if position is not None:
            query = query.where(_older_than(*position))

        result = await db.execute(
            query.order_by(Message.created_at.desc(), Message.id.desc()).limit(limit + 1)
        )
        rows = list(result.scalars().all())

        has_more = len(rows) > limit
        page = rows[:limit]
        next_cursor = _make_cursor(page[-1]) if has_more and page else None
        page.reverse()

        return ConversationPage(
            messages=[MessageOut.model_validate(m) for m in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def list_conversations(self, db: AsyncSession, user: User) -> list[ConversationItem]:
        """Every partner the user has exchanged messages with, newest first."""
        partner_id = case(
            (Message.sender_id == user.id, Message.receiver_id),
            else_=Message.sender_id,
        )
        ranked = (
            select(
                Message.id.label("message_id"),
                partner_id.label("partner_id"),
                func.row_number()
                .over(partition_by=partner_id, order_by=Message.created_at.desc())
                .label("rn"),
            )
            .where(or_(Message.sender_id == user.id, Message.receiver_id == user.id))
            .subquery()
        )

        latest = await db.execute(
            select(Message, User)
            .join(ranked, ranked.c.message_id == Message.id)
            .join(User, User.id == ranked.c.partner_id)
            .where(ranked.c.rn == 1)
            .order_by(Message.created_at.desc())
        )

        unread = await db.execute(
            select(Message.sender_id, func.count(Message.id))
            .where(Message.receiver_id == user.id, Message.is_read.is_(False))
            .group_by(Message.sender_id)
        )
        unread_by_partner = {sender_id: count for sender_id, count in unread.all()}

        return [
            ConversationItem(
                user=UserOut.model_validate(partner),
                last_message=MessageOut.model_validate(message),
                unread_count=unread_by_partner.get(partner.id, 0),
            )
            for message, partner in latest.all()
        ]

    async def unread_count(self, db: AsyncSession, user: User) -> int:
        result = await db.execute(
            select(func.count(Message.id)).where(
                Message.receiver_id == user.id, Message.is_read.is_(False)
            )
        )
        return result.scalar_one()

    async def mark_read(self, db: AsyncSession, user: User, other_id: uuid.UUID) -> int:
        """Mark every unread message from `other_id` to the user as read."""
        result = await db.execute(
            update(Message)
            .where(
                Message.sender_id == other_id,
                Message.receiver_id == user.id,
                Message.is_read.is_(False),
            )
            .values(is_read=True, read_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        logger.debug("Marked %d messages from %s read for %s", result.rowcount, other_id, user.id)
        return result.rowcount

    async def delete(self, db: AsyncSession, user: User, message_id: uuid.UUID) -> None:
        message = await db.get(Message, message_id)
        if message is None:
            raise NotFoundError(
                resource="Message", resource_id=str(message_id), message="Message not found"
            )
        if message.sender_id != user.id:
            raise PermissionDeniedError("Not authorized to delete this message")

        await db.delete(message)
        await db.flush()
        logger.info("Message %s deleted by %s", message_id, user.id)


message_service = MessageService()
