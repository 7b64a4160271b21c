"""
ChatSphere Backend: Contact Schemas
===================================

What:  Payloads for /api/contacts.

Wire shape of a request:
    {
        "id": "...",
        "from": {"id": "...", "name": "Ada", ...},
        "to":   {"id": "...", "name": "Linus", ...},
        "status": "pending",
        "createdAt": "...",
        "updatedAt": "..."
    }
"""

import uuid
from datetime import datetime

from pydantic import Field

from chatsphere.schemas.common import CamelModel
from chatsphere.schemas.user import UserOut


class ContactRequestOut(CamelModel):
    id: uuid.UUID
    # `from` is a keyword, hence the explicit aliases
    from_user: UserOut = Field(alias="from")
    to_user: UserOut = Field(alias="to")
    status: str
    created_at: datetime
    updated_at: datetime


class ContactRequestData(CamelModel):
    request: ContactRequestOut


class ContactRequestListData(CamelModel):
    requests: list[ContactRequestOut]


class ContactListData(CamelModel):
    contacts: list[UserOut]


class SendContactRequestBody(CamelModel):
    user_id: uuid.UUID = Field(description="User to send the request to")
