"""
ChatSphere Backend: Auth Service
================================

What:  Registration, login and logout.
How:   Validates input, hashes/verifies passwords, toggles presence, signs
       access tokens.
Who:   Called by the /api/auth route handlers.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from chatsphere.exceptions import AuthenticationError, DatabaseError, ValidationError
from chatsphere.models.user import User
from chatsphere.schemas.user import AuthData, UserOut
from chatsphere.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 2
MIN_PASSWORD_LENGTH = 6


class AuthService:
    """
    Responsibilities:
        - register(): create an account and sign the caller in
        - login(): verify credentials, mark online, issue a token
        - logout(): mark offline and stamp last_seen
    """

    async def register(
        self,
        db: AsyncSession,
        name: str,
        email: str,
        password: str,
    ) -> AuthData:
        """
        Create a user and return a token for it.

        Raises:
            ValidationError: short name/password or email already registered
            DatabaseError: insert failed for another reason
        """
        clean_name = (name or "").strip()
        if len(clean_name) < MIN_NAME_LENGTH:
            raise ValidationError(
                message="Name must be at least 2 characters long", field="name"
            )
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                message="Password must be at least 6 characters long", field="password"
            )

        clean_email = email.strip().lower()

        existing = await db.execute(select(User.id).where(User.email == clean_email))
        if existing.scalar_one_or_none() is not None:
            raise ValidationError(
                message="User already exists with this email", field="email"
            )

        user = User(
            name=clean_name,
            email=clean_email,
            password_hash=hash_password(password),
            is_online=True,
            last_seen=datetime.now(timezone.utc),
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            # Concurrent registration with the same email won the race
            raise ValidationError(
                message="User already exists with this email", field="email"
            )
        except SQLAlchemyError as e:
            logger.error("Failed to create user: %s", str(e), exc_info=True)
            raise DatabaseError(context={"operation": "register"})

        logger.info("User registered: %s", user.id)
        return AuthData(
            token=create_access_token(user.id),
            user=UserOut.model_validate(user),
        )

    async def login(self, db: AsyncSession, email: str, password: str) -> AuthData:
        """
        Raises:
            AuthenticationError: unknown email or wrong password (same message
            for both so accounts cannot be probed)
        """
        result = await db.execute(
            select(User).where(User.email == email.strip().lower())
        )
        user = result.scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")

        user.is_online = True
        user.last_seen = datetime.now(timezone.utc)
        await db.flush()

        logger.info("User logged in: %s", user.id)
        return AuthData(
            token=create_access_token(user.id),
            user=UserOut.model_validate(user),
        )

    async def logout(self, db: AsyncSession, user: User) -> None:
        user.is_online = False
        user.last_seen = datetime.now(timezone.utc)
        await db.flush()
        logger.info("User logged out: %s", user.id)


auth_service = AuthService()
