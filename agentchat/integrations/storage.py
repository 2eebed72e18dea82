"""Object storage for chat attachments."""

import asyncio
import re
import time
from typing import Protocol
from urllib.parse import unquote

import httpx
import structlog

from agentchat.config import settings
from agentchat.errors import StorageError, ValidationError

logger = structlog.get_logger()

ATTACHMENT_PREFIX = "chat-attachments"
DELETE_ATTEMPTS = 3
DELETE_RETRY_DELAY = 1.0

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")
_ATTACHMENT_NAME = re.compile(r"[a-zA-Z0-9._-]+")


class ObjectStorage(Protocol):
    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        """Store ``data`` under ``key`` and return its public URL."""
        ...

    async def delete(self, key: str) -> None:
        ...


class HttpObjectStorage:
    """Bucket reached over plain HTTP PUT/DELETE with a bearer token."""

    def __init__(
        self,
        base_url: str,
        public_url: str | None = None,
        token: str | None = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.public_url = (public_url or base_url).rstrip("/")
        self.headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, headers=self.headers)
        return self._client

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def upload(self, key: str, data: bytes, content_type: str) -> str:
        url = f"{self.base_url}/{key}"
        try:
            response = await self.client.put(url, content=data, headers={"Content-Type": content_type})
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("storage_upload_error", key=key, error=str(e))
            raise StorageError(f"Upload failed: {e}") from e
        return f"{self.public_url}/{key}"

    async def delete(self, key: str) -> None:
        url = f"{self.base_url}/{key}"
        try:
            response = await self.client.delete(url)
            # Already gone counts as deleted
            if response.status_code != 404:
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("storage_delete_error", key=key, error=str(e))
            raise StorageError(f"Delete failed: {e}") from e

    def key_from_url(self, url: str) -> str:
        """Object key of a public URL produced by ``upload``.

        Keys with empty, ``.`` or ``..`` segments (percent-encoded or not) are
        rejected.
        """
        prefix = f"{self.public_url}/"
        if not url.startswith(prefix):
            raise ValidationError("URL does not belong to this storage")
        key = url[len(prefix):]
        if any(unquote(segment) in ("", ".", "..") for segment in key.split("/")):
            raise ValidationError("Invalid object key")
        return key


def sanitize_filename(filename: str) -> str:
    return _UNSAFE_FILENAME_CHARS.sub("_", filename)


def attachment_key(user_id: str, filename: str, timestamp_ms: int | None = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{ATTACHMENT_PREFIX}/{user_id}/{timestamp_ms}-{sanitize_filename(filename)}"


def is_own_attachment(key: str, user_id: str) -> bool:
    """True for a single object directly under the user's attachment prefix."""
    owner, _, name = key.removeprefix(f"{ATTACHMENT_PREFIX}/").partition("/")
    return (
        key.startswith(f"{ATTACHMENT_PREFIX}/")
        and owner == user_id
        and _ATTACHMENT_NAME.fullmatch(name) is not None
        and name not in (".", "..")
    )


def validate_attachment(content_type: str, size: int) -> None:
    """Raise ValidationError for a disallowed type or an oversized file."""
    allowed = settings.attachment_content_types
    if content_type not in allowed:
        raise ValidationError(f"Invalid file type. Allowed: {', '.join(allowed)}.")
    if size > settings.attachment_max_bytes:
        raise ValidationError(f"File size exceeds {settings.attachment_max_bytes // (1024 * 1024)}MB.")


async def delete_with_retry(
    storage: ObjectStorage,
    key: str,
    attempts: int = DELETE_ATTEMPTS,
    delay: float = DELETE_RETRY_DELAY,
) -> bool:
    """Delete an object, retrying with a linearly growing delay.

    Returns True once deleted, False when every attempt failed.
    """
    for attempt in range(1, attempts + 1):
        try:
            await storage.delete(key)
            return True
        except StorageError as e:
            logger.warning("attachment_delete_retry", key=key, attempt=attempt, error=str(e))
            if attempt < attempts:
                await asyncio.sleep(delay * attempt)
    logger.error("attachment_delete_failed", key=key, attempts=attempts)
    return False


_storage: HttpObjectStorage | None = None


def get_storage() -> HttpObjectStorage:
    """Get or create the object storage singleton."""
    global _storage
    if _storage is None:
        _storage = HttpObjectStorage(
            settings.storage_base_url,
            public_url=settings.storage_public_url,
            token=settings.storage_token,
        )
    return _storage
