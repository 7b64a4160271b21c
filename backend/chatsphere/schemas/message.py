"""
ChatSphere Backend: Message Schemas
===================================

What:  Payloads for /api/messages.

Pagination:
    Conversation history uses cursor-based pagination: `next_cursor` is the
    (created_at, id) key of the oldest message in the page; the client sends it back
    as `cursor` to load older messages. Messages inside a page are in
    chronological order.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from chatsphere.schemas.common import CamelModel
from chatsphere.schemas.user import UserOut


MAX_MESSAGE_LENGTH = 5000


class MessageOut(CamelModel):
    id: uuid.UUID
    sender_id: uuid.UUID
    receiver_id: uuid.UUID
    content: str
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class MessageData(CamelModel):
    message: MessageOut


class ConversationPage(CamelModel):
    messages: list[MessageOut]
    next_cursor: Optional[str] = Field(
        default=None,
        description="Cursor for older messages (created_at and id of the oldest message). Null if none.",
    )
    has_more: bool


class ConversationItem(CamelModel):
    user: UserOut = Field(description="Conversation partner")
    last_message: MessageOut
    unread_count: int = Field(description="Unread messages from this partner")


class ConversationListData(CamelModel):
    conversations: list[ConversationItem]


class UnreadCountData(CamelModel):
    count: int


class MarkReadData(CamelModel):
    updated: int = Field(description="Number of messages marked read")


class SendMessageBody(CamelModel):
    receiver_id: uuid.UUID
    content: str = Field(default="")
