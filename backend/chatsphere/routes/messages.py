"""
ChatSphere Backend: Message Route Handlers
==========================================

What:  /api/messages: send, conversation history, conversation list,
       unread counter, mark read, delete.
How:   Delegates to MessageService. `/conversations` and `/unread-count`
       are declared before `/{user_id}`.

Pagination (GET /{user_id}):
    ?limit=50            newest 50 messages, oldest first in the array
    ?cursor=<nextCursor> the 50 before that
    hasMore=false        beginning of the conversation reached
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from chatsphere.database import get_db_session
from chatsphere.dependencies import get_current_user
from chatsphere.models.user import User
from chatsphere.schemas.common import APIResponse, ErrorResponse
from chatsphere.schemas.message import (
    ConversationListData,
    ConversationPage,
    MarkReadData,
    MessageData,
    SendMessageBody,
    UnreadCountData,
)
from chatsphere.services.message_service import message_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/messages", tags=["Messages"])


@router.post(
    "",
    status_code=201,
    response_model=APIResponse[MessageData],
    responses={
        400: {"description": "Empty/too long content or message to self", "model": ErrorResponse},
        403: {"description": "Receiver is not a contact", "model": ErrorResponse},
        404: {"description": "Receiver not found", "model": ErrorResponse},
    },
    summary="Send a message to a contact",
)
async def send_message(
    body: SendMessageBody,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[MessageData]:
    message = await message_service.send(
        db=db, user=current_user, receiver_id=body.receiver_id, content=body.content
    )
    return APIResponse(message="Message sent successfully", data=MessageData(message=message))


@router.get(
    "/conversations",
    response_model=APIResponse[ConversationListData],
    summary="Conversation list, most recent first",
)
async def list_conversations(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[ConversationListData]:
    conversations = await message_service.list_conversations(db=db, user=current_user)
    return APIResponse(
        message="Conversations fetched successfully",
        data=ConversationListData(conversations=conversations),
    )


@router.get(
    "/unread-count",
    response_model=APIResponse[UnreadCountData],
    summary="Number of unread messages addressed to the signed-in user",
)
async def unread_count(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[UnreadCountData]:
    count = await message_service.unread_count(db=db, user=current_user)
    return APIResponse(message="Unread count fetched successfully", data=UnreadCountData(count=count))


@router.get(
    "/{user_id}",
    response_model=APIResponse[ConversationPage],
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Conversation history with a user",
)
async def get_conversation(
    user_id: UUID,
    limit: int = Query(default=50, ge=1, le=100, description="Messages per page"),
    cursor: Optional[str] = Query(
        default=None,
        description="nextCursor from the previous page",
    ),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[ConversationPage]:
    page = await message_service.get_conversation(
        db=db, user=current_user, other_id=user_id, limit=limit, cursor=cursor
    )
    return APIResponse(message="Messages fetched successfully", data=page)


@router.put(
    "/{user_id}/read",
    response_model=APIResponse[MarkReadData],
    summary="Mark every message from a user as read",
)
async def mark_read(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[MarkReadData]:
    updated = await message_service.mark_read(db=db, user=current_user, other_id=user_id)
    return APIResponse(message="Messages marked as read", data=MarkReadData(updated=updated))


@router.delete(
    "/{message_id}",
    response_model=APIResponse[None],
    responses={
        403: {"description": "Not the sender", "model": ErrorResponse},
        404: {"description": "Message not found", "model": ErrorResponse},
    },
    summary="Delete a message you sent",
)
async def delete_message(
    message_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[None]:
    await message_service.delete(db=db, user=current_user, message_id=message_id)
    return APIResponse(message="Message deleted successfully")
