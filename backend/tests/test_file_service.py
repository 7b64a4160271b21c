"""
ChatSphere Backend: File Service Unit Tests
===========================================

What:  Avatar validation (presence, MIME type, size) and local staging.
How:   Fresh FileService per test, staging into pytest's tmp_path.

Test Strategy:
    ✅ Accepted types map to the staged extension
    ✅ Missing file, wrong type, oversized file rejected with user messages
    ✅ Staged file written under a UUID name and removed by cleanup
    ✅ Cleanup of a missing file is silent
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from chatsphere.config import settings
from chatsphere.exceptions import FileStorageError, ValidationError
from chatsphere.services.file_service import FileService


class TestAvatarValidation:

    def setup_method(self):
        self.service = FileService()

    @pytest.mark.parametrize(
        "content_type, extension",
        [
            ("image/jpeg", ".jpg"),
            ("image/jpg", ".jpg"),
            ("image/png", ".png"),
            ("image/webp", ".webp"),
            ("IMAGE/PNG", ".png"),
        ],
    )
    def test_allowed_types(self, sample_image_bytes, content_type, extension):
        assert self.service.validate_avatar(sample_image_bytes, content_type) == extension

    def test_missing_file_rejected(self):
        with pytest.raises(ValidationError, match="Please upload an image file"):
            self.service.validate_avatar(None, "image/png")

    def test_empty_file_rejected(self):
        with pytest.raises(ValidationError, match="Please upload an image file"):
            self.service.validate_avatar(b"", "image/png")

    @pytest.mark.parametrize("content_type", ["image/gif", "application/pdf", "text/plain", None])
    def test_unsupported_type_rejected(self, sample_image_bytes, content_type):
        with pytest.raises(ValidationError, match="Only JPEG, PNG, and WebP images are allowed"):
            self.service.validate_avatar(sample_image_bytes, content_type)

    def test_oversized_file_rejected(self):
        content = b"x" * (settings.max_avatar_size + 1)
        with pytest.raises(ValidationError, match="File size must be less than 5MB") as exc_info:
            self.service.validate_avatar(content, "image/jpeg")
        assert exc_info.value.context["field"] == "avatar"

    def test_exact_limit_accepted(self):
        content = b"x" * settings.max_avatar_size
        assert self.service.validate_avatar(content, "image/jpeg") == ".jpg"


class TestStaging:

    @pytest.mark.asyncio
    async def test_stage_and_cleanup(self, tmp_path, sample_image_bytes):
        service = FileService(upload_dir=str(tmp_path / "staging"))

        path = await service.stage(sample_image_bytes, ".jpg")

        staged = Path(path)
        assert staged.exists()
        assert staged.suffix == ".jpg"
        assert staged.parent == (tmp_path / "staging").resolve()
        assert staged.read_bytes() == sample_image_bytes

        await service.cleanup_file(path)
        assert not staged.exists()

    @pytest.mark.asyncio
    async def test_staged_names_are_unique(self, tmp_path, sample_image_bytes):
        service = FileService(upload_dir=str(tmp_path))
        first = await service.stage(sample_image_bytes, ".png")
        second = await service.stage(sample_image_bytes, ".png")
        assert first != second

    @pytest.mark.asyncio
    async def test_cleanup_missing_file_is_silent(self, tmp_path):
        service = FileService(upload_dir=str(tmp_path))
        await service.cleanup_file(str(tmp_path / "does-not-exist.jpg"))

    @pytest.mark.asyncio
    async def test_stage_failure_raises_storage_error(self, tmp_path, sample_image_bytes):
        service = FileService(upload_dir=str(tmp_path))
        with patch("chatsphere.services.file_service.aiofiles.open", side_effect=OSError("disk full")):
            with pytest.raises(FileStorageError):
                await service.stage(sample_image_bytes, ".jpg")
        assert os.listdir(tmp_path) == []
