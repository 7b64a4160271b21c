"""
ChatSphere Backend: Contact Route Handlers
==========================================

What:  /api/contacts: friend requests, contact list, user search.
How:   Delegates to ContactService. Static paths (`/request`, `/requests/...`,
       `/search`) are declared before `DELETE /{contact_id}`.
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
from chatsphere.schemas.contact import (
    ContactListData,
    ContactRequestData,
    ContactRequestListData,
    SendContactRequestBody,
)
from chatsphere.schemas.user import UserListData
from chatsphere.services.contact_service import contact_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contacts", tags=["Contacts"])


@router.post(
    "/request",
    status_code=201,
    response_model=APIResponse[ContactRequestData],
    responses={
        400: {"description": "Self, already contacts, or already pending", "model": ErrorResponse},
        404: {"description": "User not found", "model": ErrorResponse},
    },
    summary="Send a contact request",
)
async def send_request(
    body: SendContactRequestBody,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[ContactRequestData]:
    request = await contact_service.send_request(db=db, user=current_user, target_id=body.user_id)
    return APIResponse(
        message="Contact request sent successfully",
        data=ContactRequestData(request=request),
    )


@router.get(
    "/requests/pending",
    response_model=APIResponse[ContactRequestListData],
    summary="Pending requests received",
)
async def pending_requests(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[ContactRequestListData]:
    requests = await contact_service.list_pending(db=db, user=current_user)
    return APIResponse(
        message="Pending requests fetched successfully",
        data=ContactRequestListData(requests=requests),
    )


@router.get(
    "/requests/sent",
    response_model=APIResponse[ContactRequestListData],
    summary="Pending requests sent",
)
async def sent_requests(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[ContactRequestListData]:
    requests = await contact_service.list_sent(db=db, user=current_user)
    return APIResponse(
        message="Sent requests fetched successfully",
        data=ContactRequestListData(requests=requests),
    )


@router.put(
    "/requests/{request_id}/accept",
    response_model=APIResponse[ContactRequestData],
    responses={
        400: {"description": "Request already processed", "model": ErrorResponse},
        403: {"description": "Not the recipient", "model": ErrorResponse},
        404: {"description": "Contact request not found", "model": ErrorResponse},
    },
    summary="Accept a contact request",
)
async def accept_request(
    request_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[ContactRequestData]:
    request = await contact_service.accept_request(db=db, user=current_user, request_id=request_id)
    return APIResponse(
        message="Contact request accepted",
        data=ContactRequestData(request=request),
    )


@router.put(
    "/requests/{request_id}/reject",
    response_model=APIResponse[None],
    responses={
        400: {"description": "Request already processed", "model": ErrorResponse},
        403: {"description": "Not the recipient", "model": ErrorResponse},
        404: {"description": "Contact request not found", "model": ErrorResponse},
    },
    summary="Reject a contact request",
)
async def reject_request(
    request_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[None]:
    await contact_service.reject_request(db=db, user=current_user, request_id=request_id)
    return APIResponse(message="Contact request rejected")


@router.get(
    "/search",
    response_model=APIResponse[UserListData],
    responses={400: {"description": "Missing query", "model": ErrorResponse}},
    summary="Search users by name or email",
)
async def search_users(
    query: Optional[str] = Query(default=None, description="Name or email fragment"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[UserListData]:
    users = await contact_service.search_users(db=db, user=current_user, query=query)
    return APIResponse(message="Users fetched successfully", data=UserListData(users=users))


@router.get(
    "",
    response_model=APIResponse[ContactListData],
    summary="The signed-in user's contacts",
)
async def list_contacts(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[ContactListData]:
    contacts = await contact_service.list_contacts(db=db, user=current_user)
    return APIResponse(
        message="Contacts fetched successfully",
        data=ContactListData(contacts=contacts),
    )


@router.delete(
    "/{contact_id}",
    response_model=APIResponse[None],
    summary="Remove a contact (both directions)",
)
async def remove_contact(
    contact_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> APIResponse[None]:
    await contact_service.remove_contact(db=db, user=current_user, contact_id=contact_id)
    return APIResponse(message="Contact removed successfully")
