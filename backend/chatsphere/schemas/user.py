"""
ChatSphere Backend: User and Auth Schemas
=========================================

What:  Request bodies and payloads for /api/auth and /api/users.
Why:   The password hash never leaves the server; UserOut is the only
       representation of a user that is serialized.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from chatsphere.schemas.common import CamelModel


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserOut(CamelModel):
    """Public view of a user, also used as the summary inside contacts."""

    id: uuid.UUID
    name: str
    email: str
    avatar: Optional[str] = None
    is_online: bool = False
    last_seen: Optional[datetime] = None


class UserData(CamelModel):
    user: UserOut


class UserListData(CamelModel):
    users: list[UserOut]


class AuthData(CamelModel):
    """Returned by register and login."""

    token: str = Field(description="Signed access token (Bearer)")
    user: UserOut


class AvatarData(CamelModel):
    avatar: str = Field(description="New avatar URL")
    user: UserOut


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(CamelModel):
    name: str = Field(description="Display name (at least 2 characters)")
    email: EmailStr
    password: str = Field(description="Password (at least 6 characters)")


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class UpdateProfileRequest(CamelModel):
    """
    Either field may be omitted; the service rejects a body with neither.
    Empty strings count as omitted.
    """

    name: Optional[str] = None
    avatar: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    # Optional so the service can answer with its own message when missing
    current_password: Optional[str] = None
    new_password: Optional[str] = None
