"""Jina reader integration: fetches a web page as plain text."""

import httpx
import structlog

from agentchat.config import settings

logger = structlog.get_logger()

JINA_READER_URL = "https://r.jina.ai"


class JinaReaderClient:
    """Client for the Jina reader endpoint."""

    def __init__(self, api_key: str | None = None, timeout: float = 30.0):
        self.headers = {"X-Return-Format": "text", "Accept": "text/plain"}
        if api_key:
            self.headers["Authorization"] = f"Bearer {api_key}"
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self.headers,
                follow_redirects=True,
            )
        return self._client

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def read(self, url: str) -> str:
        """Return the readable text of ``url``."""
        reader_url = f"{JINA_READER_URL}/{url}"
        try:
            response = await self.client.get(reader_url)
            response.raise_for_status()
            return response.text
        except httpx.HTTPStatusError as e:
            logger.error(
                "jina_api_error",
                status_code=e.response.status_code,
                url=url,
                response=e.response.text[:500],
            )
            raise
        except httpx.RequestError as e:
            logger.error("jina_request_error", url=url, error=str(e))
            raise


_reader: JinaReaderClient | None = None


def get_reader_client() -> JinaReaderClient:
    global _reader
    if _reader is None:
        _reader = JinaReaderClient(settings.jina_api_key, timeout=settings.tool_request_timeout)
    return _reader
