"""
ChatSphere Backend: Authentication Dependency
=============================================

What:  Resolves the Bearer token on a request to a User row.
How:   FastAPI dependency; protected routes declare
       `current_user: User = Depends(get_current_user)`.

Failure messages:
    no token              → 401 "No token provided. Authorization denied."
    bad/expired token     → 401 "Invalid token. Authorization denied."
    user no longer exists → 401 "User not found. Authorization denied."
"""

import logging
import uuid
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from chatsphere.database import get_db_session
from chatsphere.exceptions import AuthenticationError
from chatsphere.models.user import User
from chatsphere.security import decode_access_token

logger = logging.getLogger(__name__)


def extract_token(authorization: Optional[str]) -> Optional[str]:
    """Returns the second word of an `Authorization: Bearer <token>` header."""
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) < 2 or not parts[1]:
        return None
    return parts[1]


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    token = extract_token(authorization)
    if not token:
        raise AuthenticationError("No token provided. Authorization denied.")

    try:
        payload = decode_access_token(token)
        user_id = uuid.UUID(str(payload["id"]))
    except (AuthenticationError, ValueError):
        raise AuthenticationError("Invalid token. Authorization denied.")

    user = await db.get(User, user_id)
    if user is None:
        logger.info("Token for deleted user %s rejected", user_id)
        raise AuthenticationError("User not found. Authorization denied.")

    return user
