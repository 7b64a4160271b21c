"""
ChatSphere Backend: User Service
================================

What:  Profile reads and updates, avatar replacement, password change and
       account deletion.
How:   Composes FileService (staging), the Cloudinary image host and
       database operations.
Who:   Called by the /api/users route handlers.

Avatar Flow (PUT /api/users/avatar):
    ┌──────────┐    ┌─────────────┐    ┌──────────────┐    ┌──────────┐
    │  Upload  │───▶│  Validate   │───▶│  Cloudinary  │───▶│  Update  │
    │  (Route) │    │  & Stage    │    │  upload      │    │  user    │
    └──────────┘    │  (FileServ) │    └──────────────┘    └──────────┘
                    └─────────────┘
    The previous avatar is deleted from Cloudinary only after the new URL is
    committed (best effort), so a failed save never leaves the user pointing
    at a destroyed image. The staged file is removed in every outcome.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import delete, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from chatsphere.exceptions import (
    AuthenticationError,
    ChatSphereError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from chatsphere.models.contact import Contact, ContactRequest
from chatsphere.models.message import Message
from chatsphere.models.user import User
from chatsphere.schemas.user import AvatarData, UserOut
from chatsphere.security import hash_password, verify_password
from chatsphere.services.cloudinary_service import cloudinary_service
from chatsphere.services.file_service import file_service

logger = logging.getLogger(__name__)


class UserService:
    """
    Business logic for the signed-in user's own account plus public
    profile lookups.
    """

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> UserOut:
        """
        Raises:
            NotFoundError: no user with this id (→ 404 "User not found")
        """
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(resource="User", resource_id=str(user_id))
        return UserOut.model_validate(user)

    async def update_profile(
        self,
        db: AsyncSession,
        user: User,
        name: Optional[str] = None,
        avatar: Optional[str] = None,
    ) -> UserOut:
        """
        Update name and/or avatar URL. Empty values count as not provided.

        Raises:
            ValidationError: nothing to update, or name shorter than 2 chars
        """
        if not name and not avatar:
            raise ValidationError(message="Please provide name or avatar to update")

        if name:
            clean_name = name.strip()
            if len(clean_name) < 2:
                raise ValidationError(
                    message="Name must be at least 2 characters long", field="name"
                )
            user.name = clean_name
        if avatar:
            user.avatar = avatar

        await db.flush()
        logger.info("Profile updated for user %s", user.id)
        return UserOut.model_validate(user)

    async def update_avatar(
        self,
        db: AsyncSession,
        user: User,
        content: Optional[bytes],
        content_type: Optional[str],
    ) -> AvatarData:
        """
        Replace the user's avatar with an uploaded image.

        Raises:
            ValidationError: missing file, wrong type, too large
            FileStorageError: staging failed
            ImageHostError / CircuitBreakerOpenError: Cloudinary unavailable
        """
        extension = file_service.validate_avatar(content, content_type)
        staged_path = await file_service.stage(content, extension)

        try:
            previous_avatar = user.avatar
            avatar_url = await cloudinary_service.upload_image(staged_path)

            user.avatar = avatar_url
            try:
                await db.commit()
            except SQLAlchemyError as e:
                logger.error("Failed to save avatar for user %s: %s", user.id, str(e), exc_info=True)
                await db.rollback()
                await self._delete_remote_avatar(avatar_url)
                raise DatabaseError(context={"operation": "update_avatar"})
            logger.info("Avatar updated for user %s", user.id)

            if previous_avatar:
                await self._delete_remote_avatar(previous_avatar)
        finally:
            await file_service.cleanup_file(staged_path)

        return AvatarData(avatar=avatar_url, user=UserOut.model_validate(user))

    async def change_password(
        self,
        db: AsyncSession,
        user: User,
        current_password: Optional[str],
        new_password: Optional[str],
    ) -> None:
        """
        Raises:
            ValidationError: a field is missing or the new password is short
            AuthenticationError: current password does not match
        """
        if not current_password or not new_password:
            raise ValidationError(
                message="Current password and new password are required"
            )
        if len(new_password) < 6:
            raise ValidationError(
                message="New password must be at least 6 characters long",
                field="newPassword",
            )
        if not verify_password(current_password, user.password_hash):
            raise AuthenticationError("Current password is incorrect")

        user.password_hash = hash_password(new_password)
        await db.flush()
        logger.info("Password changed for user %s", user.id)

    async def delete_account(self, db: AsyncSession, user: User) -> None:
        """
        Delete the user together with everything that references them:
        contacts (both directions), contact requests and messages.
        The avatar is removed from Cloudinary on a best-effort basis once
        the deletion is committed.
        """
        user_id = user.id
        avatar_url = user.avatar
        try:
            await db.execute(
                delete(Message).where(
                    or_(Message.sender_id == user_id, Message.receiver_id == user_id)
                )
            )
            await db.execute(
                delete(Contact).where(
                    or_(Contact.user_id == user_id, Contact.contact_id == user_id)
                )
            )
            await db.execute(
                delete(ContactRequest).where(
                    or_(
                        ContactRequest.from_user_id == user_id,
                        ContactRequest.to_user_id == user_id,
                    )
                )
            )
            await db.delete(user)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Failed to delete account %s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not delete the account. Please try again.",
                context={"user_id": str(user_id)},
            )

        logger.info("Account deleted: %s", user_id)

        if avatar_url:
            await self._delete_remote_avatar(avatar_url)

    async def _delete_remote_avatar(self, avatar_url: str) -> None:
        """Failure to delete an old avatar never fails the request."""
        public_id = cloudinary_service.public_id_from_url(avatar_url)
        try:
            await cloudinary_service.delete_file(public_id)
            logger.info("Old avatar %s deleted from Cloudinary", public_id)
        except ChatSphereError as e:
            logger.warning("Failed to delete avatar %s: %s", public_id, e.message)


user_service = UserService()
