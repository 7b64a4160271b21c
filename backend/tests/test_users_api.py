"""
ChatSphere Backend: User Endpoint Tests
=======================================

What:  /api/users profile, avatar, password, account deletion, lookup.
How:   The Cloudinary singleton is patched inside user_service so no
       network call is made; file staging runs for real in a temp dir.
"""

import os
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from chatsphere.exceptions import ImageHostError
from chatsphere.models.contact import Contact, ContactRequest
from chatsphere.models.message import Message
from chatsphere.services.file_service import file_service
from chatsphere.services.image_host_base import ImageHostService
from conftest import auth_header

NEW_AVATAR = "https://res.cloudinary.com/demo/image/upload/v2/chatsphere/new-avatar.jpg"
OLD_AVATAR = "https://res.cloudinary.com/demo/image/upload/v1/chatsphere/old-avatar.jpg"


def _mock_image_host(upload_result=NEW_AVATAR):
    host = MagicMock()
    host.upload_image = AsyncMock(return_value=upload_result)
    host.delete_file = AsyncMock()
    host.public_id_from_url = ImageHostService.public_id_from_url
    return host


def _staged_files():
    if not file_service.upload_dir.exists():
        return []
    return os.listdir(file_service.upload_dir)


class TestProfile:

    @pytest.mark.asyncio
    async def test_update_name(self, test_client, register_user):
        token, _ = await register_user("Ada", "ada@example.com")

        response = await test_client.put(
            "/api/users/profile", json={"name": "  Countess Ada "}, headers=auth_header(token)
        )

        assert response.status_code == 200
        assert response.json()["data"]["user"]["name"] == "Countess Ada"

    @pytest.mark.asyncio
    async def test_update_avatar_url(self, test_client, register_user):
        token, _ = await register_user("Ada", "ada@example.com")

        response = await test_client.put(
            "/api/users/profile", json={"avatar": NEW_AVATAR}, headers=auth_header(token)
        )

        assert response.status_code == 200
        assert response.json()["data"]["user"]["avatar"] == NEW_AVATAR

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload, message",
        [
            ({}, "Please provide name or avatar to update"),
            ({"name": "", "avatar": ""}, "Please provide name or avatar to update"),
            ({"name": " A "}, "Name must be at least 2 characters long"),
        ],
    )
    async def test_invalid_updates(self, test_client, register_user, payload, message):
        token, _ = await register_user("Ada", "ada@example.com")
        response = await test_client.put(
            "/api/users/profile", json=payload, headers=auth_header(token)
        )
        assert response.status_code == 400
        assert response.json()["message"] == message


class TestAvatarUpload:

    @pytest.mark.asyncio
    async def test_upload_replaces_avatar_and_cleans_up(
        self, test_client, register_user, sample_image_bytes
    ):
        token, _ = await register_user("Ada", "ada@example.com")
        await test_client.put(
            "/api/users/profile", json={"avatar": OLD_AVATAR}, headers=auth_header(token)
        )
        host = _mock_image_host()

        with patch("chatsphere.services.user_service.cloudinary_service", host):
            response = await test_client.put(
                "/api/users/avatar",
                files={"avatar": ("me.jpg", sample_image_bytes, "image/jpeg")},
                headers=auth_header(token),
            )

        assert response.status_code == 200, response.text
        data = response.json()["data"]
        assert data["avatar"] == NEW_AVATAR
        assert data["user"]["avatar"] == NEW_AVATAR
        host.upload_image.assert_awaited_once()
        host.delete_file.assert_awaited_once_with("chatsphere/old-avatar")
        assert _staged_files() == []

    @pytest.mark.asyncio
    async def test_old_avatar_delete_failure_is_ignored(
        self, test_client, register_user, sample_image_bytes
    ):
        token, _ = await register_user("Ada", "ada@example.com")
        await test_client.put(
            "/api/users/profile", json={"avatar": OLD_AVATAR}, headers=auth_header(token)
        )
        host = _mock_image_host()
        host.delete_file = AsyncMock(side_effect=ImageHostError("delete failed"))

        with patch("chatsphere.services.user_service.cloudinary_service", host):
            response = await test_client.put(
                "/api/users/avatar",
                files={"avatar": ("me.png", sample_image_bytes, "image/png")},
                headers=auth_header(token),
            )

        assert response.status_code == 200
        assert response.json()["data"]["avatar"] == NEW_AVATAR

    @pytest.mark.asyncio
    async def test_upload_failure_is_503_and_keeps_old_avatar(
        self, test_client, register_user, sample_image_bytes
    ):
        token, _ = await register_user("Ada", "ada@example.com")
        await test_client.put(
            "/api/users/profile", json={"avatar": OLD_AVATAR}, headers=auth_header(token)
        )
        host = _mock_image_host()
        host.upload_image = AsyncMock(side_effect=ImageHostError("upload failed", retry_after=60))

        with patch("chatsphere.services.user_service.cloudinary_service", host):
            response = await test_client.put(
                "/api/users/avatar",
                files={"avatar": ("me.jpg", sample_image_bytes, "image/jpeg")},
                headers=auth_header(token),
            )

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "60"
        assert response.json()["error"] == "image_host_error"
        host.delete_file.assert_not_awaited()
        assert _staged_files() == []

        me = await test_client.get("/api/users/me", headers=auth_header(token))
        assert me.json()["data"]["user"]["avatar"] == OLD_AVATAR

    @pytest.mark.asyncio
    async def test_missing_file(self, test_client, register_user):
        token, _ = await register_user("Ada", "ada@example.com")
        response = await test_client.put("/api/users/avatar", headers=auth_header(token))
        assert response.status_code == 400
        assert response.json()["message"] == "Please upload an image file"

    @pytest.mark.asyncio
    async def test_wrong_type(self, test_client, register_user):
        token, _ = await register_user("Ada", "ada@example.com")
        response = await test_client.put(
            "/api/users/avatar",
            files={"avatar": ("anim.gif", b"GIF89a", "image/gif")},
            headers=auth_header(token),
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Only JPEG, PNG, and WebP images are allowed"


class TestPassword:

    @pytest.mark.asyncio
    async def test_change_password(self, test_client, register_user):
        token, _ = await register_user("Ada", "ada@example.com", password="secret123")

        response = await test_client.put(
            "/api/users/password",
            json={"currentPassword": "secret123", "newPassword": "better456"},
            headers=auth_header(token),
        )
        assert response.status_code == 200

        old_login = await test_client.post(
            "/api/auth/login", json={"email": "ada@example.com", "password": "secret123"}
        )
        new_login = await test_client.post(
            "/api/auth/login", json={"email": "ada@example.com", "password": "better456"}
        )
        assert old_login.status_code == 401
        assert new_login.status_code == 200

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload, status, message",
        [
            ({"currentPassword": "secret123"}, 400,
             "Current password and new password are required"),
            ({"currentPassword": "secret123", "newPassword": "123"}, 400,
             "New password must be at least 6 characters long"),
            ({"currentPassword": "wrong-one", "newPassword": "better456"}, 401,
             "Current password is incorrect"),
        ],
    )
    async def test_rejections(self, test_client, register_user, payload, status, message):
        token, _ = await register_user("Ada", "ada@example.com", password="secret123")
        response = await test_client.put(
            "/api/users/password", json=payload, headers=auth_header(token)
        )
        assert response.status_code == status
        assert response.json()["message"] == message


class TestLookupAndDeletion:

    @pytest.mark.asyncio
    async def test_get_user_by_id(self, test_client, register_user):
        token, _ = await register_user("Ada", "ada@example.com")
        _, linus = await register_user("Linus", "linus@example.com")

        response = await test_client.get(f"/api/users/{linus['id']}", headers=auth_header(token))

        assert response.status_code == 200
        assert response.json()["data"]["user"]["name"] == "Linus"

    @pytest.mark.asyncio
    async def test_get_unknown_user(self, test_client, register_user):
        token, _ = await register_user("Ada", "ada@example.com")
        response = await test_client.get(f"/api/users/{uuid4()}", headers=auth_header(token))
        assert response.status_code == 404
        assert response.json()["message"] == "User not found"

    @pytest.mark.asyncio
    async def test_malformed_id_is_a_400(self, test_client, register_user):
        token, _ = await register_user("Ada", "ada@example.com")
        response = await test_client.get("/api/users/not-a-uuid", headers=auth_header(token))
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_account_removes_related_rows(
        self, test_client, register_user, make_contacts, db_session
    ):
        ada_token, ada = await register_user("Ada", "ada@example.com")
        linus_token, linus = await register_user("Linus", "linus@example.com")
        await make_contacts(ada_token, linus_token, linus["id"])
        await test_client.post(
            "/api/messages",
            json={"receiverId": linus["id"], "content": "hello"},
            headers=auth_header(ada_token),
        )
        await test_client.put(
            "/api/users/profile", json={"avatar": OLD_AVATAR}, headers=auth_header(ada_token)
        )
        host = _mock_image_host()

        with patch("chatsphere.services.user_service.cloudinary_service", host):
            response = await test_client.delete("/api/users/account", headers=auth_header(ada_token))

        assert response.status_code == 200
        host.delete_file.assert_awaited_once_with("chatsphere/old-avatar")

        for model in (Contact, ContactRequest, Message):
            count = await db_session.execute(select(func.count()).select_from(model))
            assert count.scalar_one() == 0

        contacts = await test_client.get("/api/contacts", headers=auth_header(linus_token))
        assert contacts.json()["data"]["contacts"] == []
