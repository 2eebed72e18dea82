"""Tests for attachment storage."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from agentchat.errors import StorageError, ValidationError
from agentchat.integrations.storage import (
    HttpObjectStorage,
    attachment_key,
    delete_with_retry,
    is_own_attachment,
    validate_attachment,
)


def storage_with(handler) -> HttpObjectStorage:
    storage = HttpObjectStorage("https://bucket.local/files", public_url="https://cdn.local/files", token="t")
    storage._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return storage


class TestAttachmentRules:
    """Tests for attachment validation and naming."""

    def test_key_sanitized(self):
        assert attachment_key("user-1", "my photo (1).png", timestamp_ms=42) == (
            "chat-attachments/user-1/42-my_photo__1_.png"
        )

    def test_allowed(self):
        validate_attachment("image/png", 1024)

    def test_wrong_type(self):
        with pytest.raises(ValidationError, match="Invalid file type"):
            validate_attachment("application/pdf", 10)

    def test_too_large(self):
        with pytest.raises(ValidationError, match="File size exceeds 5MB"):
            validate_attachment("image/jpeg", 5 * 1024 * 1024 + 1)

    def test_own_attachment(self):
        assert is_own_attachment("chat-attachments/user-1/42-cat.png", "user-1")

    @pytest.mark.parametrize(
        "key",
        [
            "chat-attachments/user-2/42-cat.png",
            "chat-attachments/user-1/../user-2/42-cat.png",
            "chat-attachments/user-1/nested/42-cat.png",
            "chat-attachments/user-1/..",
            "chat-attachments/user-10/42-cat.png",
            "other/user-1/42-cat.png",
        ],
    )
    def test_foreign_attachment(self, key):
        assert not is_own_attachment(key, "user-1")

    @pytest.mark.parametrize(
        "path",
        ["a/../b.png", "a/./b.png", "a//b.png", "a/%2e%2e/b.png", "a/%2E/b.png"],
    )
    def test_key_from_url_rejects_dot_segments(self, path):
        storage = HttpObjectStorage("https://bucket.local/files", public_url="https://cdn.local/files")

        with pytest.raises(ValidationError, match="Invalid object key"):
            storage.key_from_url(f"https://cdn.local/files/{path}")


@pytest.mark.asyncio
class TestHttpObjectStorage:
    """Tests for the HTTP bucket client."""

    async def test_upload_returns_public_url(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["type"] = request.headers["content-type"]
            return httpx.Response(200)

        storage = storage_with(handler)
        url = await storage.upload("chat-attachments/u/1-a.png", b"data", "image/png")

        assert url == "https://cdn.local/files/chat-attachments/u/1-a.png"
        assert seen == {
            "method": "PUT",
            "url": "https://bucket.local/files/chat-attachments/u/1-a.png",
            "type": "image/png",
        }

    async def test_upload_failure(self):
        storage = storage_with(lambda request: httpx.Response(500))
        with pytest.raises(StorageError):
            await storage.upload("k", b"", "image/png")

    async def test_delete_missing_is_ok(self):
        storage = storage_with(lambda request: httpx.Response(404))
        await storage.delete("k")

    def test_key_from_url(self):
        storage = HttpObjectStorage("https://bucket.local/files", public_url="https://cdn.local/files")

        assert storage.key_from_url("https://cdn.local/files/a/b.png") == "a/b.png"
        with pytest.raises(ValidationError):
            storage.key_from_url("https://elsewhere/a/b.png")


@pytest.mark.asyncio
class TestDeleteWithRetry:
    """Tests for retried deletion."""

    async def test_succeeds_after_failure(self):
        storage = AsyncMock()
        storage.delete.side_effect = [StorageError("busy"), None]

        with patch("agentchat.integrations.storage.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            assert await delete_with_retry(storage, "k", attempts=3, delay=1.0) is True

        mock_sleep.assert_awaited_once_with(1.0)

    async def test_gives_up(self):
        storage = AsyncMock()
        storage.delete.side_effect = StorageError("down")

        with patch("agentchat.integrations.storage.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            assert await delete_with_retry(storage, "k", attempts=3, delay=1.0) is False

        assert storage.delete.await_count == 3
        assert [c.args[0] for c in mock_sleep.await_args_list] == [1.0, 2.0]
