"""
ChatSphere Backend: Avatar Upload Staging Service
=================================================

What:  Validates avatar uploads and stages them on local disk until they
       are pushed to the image host.
How:   Checks presence, declared MIME type and size; writes the bytes with
       aiofiles under a UUID filename; removes the file afterwards.
Who:   Called by UserService.update_avatar().

Lifecycle of an uploaded avatar:
    1. Client sends multipart upload (field "avatar")
    2. validate_avatar(): missing file, MIME type, size
    3. stage(): bytes written to UPLOAD_TMP_DIR/<uuid><ext>
    4. UserService uploads the staged path to Cloudinary
    5. cleanup_file() removes the staged copy in every outcome

Attack vectors prevented:
    - Path traversal: UUID filenames contain no user input
    - DoS via large files: size limit checked before anything is written
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Optional

import aiofiles

from chatsphere.config import settings
from chatsphere.exceptions import ValidationError, FileStorageError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
# Mapping of accepted MIME types to the extension used for the staged file
ALLOWED_MIME_TYPES = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


class FileService:
    """
    Manages validation and the short local life of uploaded avatar files.
    """

    def __init__(self, upload_dir: Optional[str] = None):
        """
        Args:
            upload_dir: Override the staging directory (used in tests).
                        If None, uses settings.upload_tmp_dir.
        """
        self.upload_dir = Path(upload_dir or settings.upload_tmp_dir).resolve()

    def validate_avatar(
        self,
        content: Optional[bytes],
        content_type: Optional[str],
    ) -> str:
        """
        Validate an avatar upload.

        Returns:
            Extension for the staged file (".jpg", ".png", ".webp").

        Raises:
            ValidationError with the user-facing message for each failure.
        """
        if not content:
            raise ValidationError(message="Please upload an image file", field="avatar")

        mime = (content_type or "").lower()
        if mime not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message="Only JPEG, PNG, and WebP images are allowed",
                field="avatar",
                context={"content_type": mime, "allowed": sorted(ALLOWED_MIME_TYPES)},
            )

        if len(content) > settings.max_avatar_size:
            max_mb = settings.max_avatar_size / (1024 * 1024)
            raise ValidationError(
                message=f"File size must be less than {max_mb:.0f}MB",
                field="avatar",
                context={"max_size": settings.max_avatar_size, "actual_size": len(content)},
            )

        return ALLOWED_MIME_TYPES[mime]

    async def stage(self, content: bytes, extension: str) -> str:
        """
        Write validated bytes to the staging directory.

        Returns:
            Absolute path of the staged file.

        Raises:
            FileStorageError if the directory or the file cannot be written.
        """
        path = self.upload_dir / f"{uuid.uuid4()}{extension}"

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to stage upload at %s: %s", path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(path), "os_error": str(e)},
            )

        logger.info("Upload staged: %s (%d bytes)", path.name, len(content))
        return str(path)

    async def cleanup_file(self, file_path: str) -> None:
        """
        Remove a staged file if it still exists.

        Best effort: failures are logged, never raised, because the
        request outcome has already been decided by the time this runs.
        """
        try:
            path = Path(file_path)
            if path.exists():
                os.remove(path)
                logger.debug("Cleaned up staged file: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", file_path, str(e))


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService()
