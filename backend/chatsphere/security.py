"""
ChatSphere Backend: Passwords and Signed Tokens
===============================================

What:  Password hashing (passlib) and access-token signing/verification
       (PyJWT).
Who:   AuthService and UserService for passwords; AuthService and the
       `get_current_user` dependency for tokens.

Token format:
    HS256 JWT, payload {"id": "<user uuid>", "iat": ..., "exp": ...}.
    Lifetime comes from settings.jwt_expires_days.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt
from passlib.context import CryptContext

from chatsphere.config import settings
from chatsphere.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

# pbkdf2_sha256 is pure Python on top of hashlib; no native backend needed
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Returns False for malformed hashes instead of raising."""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        logger.warning("Stored password hash could not be parsed")
        return False


def create_access_token(user_id: Any) -> str:
    """Signs a token identifying `user_id`."""
    now = datetime.now(timezone.utc)
    payload = {
        "id": str(user_id),
        "iat": now,
        "exp": now + timedelta(days=settings.jwt_expires_days),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verifies signature and expiry and returns the payload.

    Raises:
        AuthenticationError: expired, tampered, malformed, or missing `id`.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "id"]},
        )
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError as e:
        logger.info("Rejected invalid token: %s", str(e))
        raise AuthenticationError("Invalid token")
    return payload
