"""Chat API client that consumes the data stream like the web UI does."""

import asyncio
from typing import Any, AsyncIterator

import httpx
import structlog

from agentchat.chat.orchestrator import NEW_CHAT_TITLE, ChatRequest
from agentchat.errors import InsufficientCreditsError, PermissionDeniedError
from agentchat.streaming import ArtifactState, MessageAccumulator, StreamPart, StreamPartType

logger = structlog.get_logger()

TITLE_RETRIES = 2
TITLE_RETRY_DELAY = 3.0


class ChatStreamClient:
    """Client for the chat endpoints of an agentchat server."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 300.0):
        """
        Initialize chat client.

        Args:
            base_url: Server root, e.g. "http://localhost:8000"
            api_key: User API key (``ak_...``)
            timeout: Read timeout; a turn with many tool steps can be slow
        """
        self.base_url = base_url.rstrip("/")
        self.headers = {"Authorization": f"Bearer {api_key}"}
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout, connect=10.0),
                headers=self.headers,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        try:
            detail = response.json().get("detail")
        except ValueError:
            detail = response.text[:500]
        if response.status_code == 401:
            raise PermissionDeniedError(detail or "Unauthorized")
        if response.status_code == 402:
            raise InsufficientCreditsError(detail) if detail else InsufficientCreditsError()
        logger.error(
            "chat_api_error",
            status_code=response.status_code,
            url=str(response.url),
            response=str(detail)[:500],
        )
        response.raise_for_status()

    async def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        """Make an API request."""
        try:
            response = await self.client.request(method, endpoint, **kwargs)
        except httpx.RequestError as e:
            logger.error("chat_request_error", endpoint=endpoint, error=str(e))
            raise
        self._raise_for_status(response)
        return response.json()

    async def stream_chat(
        self,
        request: ChatRequest,
        accumulator: MessageAccumulator | None = None,
        artifact: ArtifactState | None = None,
    ) -> AsyncIterator[StreamPart]:
        """
        Send one turn and yield its stream parts as they arrive.

        The accumulator is fed every part and the artifact state every data
        event, so after the stream ends they hold the assistant message and
        the artifact panel as the UI would show them.

        Raises:
            PermissionDeniedError: Bad API key or somebody else's chat
            InsufficientCreditsError: No credits left
        """
        accumulator = accumulator if accumulator is not None else MessageAccumulator()
        body = request.model_dump(by_alias=True, mode="json", exclude_none=True)

        async with self.client.stream("POST", "/api/chat", json=body) as response:
            if response.status_code >= 400:
                await response.aread()
                self._raise_for_status(response)

            async for line in response.aiter_lines():
                part = accumulator.feed_line(line)
                if part is None:
                    continue
                if artifact is not None and part.type == StreamPartType.DATA:
                    artifact.apply_all(part.value)
                yield part

    async def list_models(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/api/models")

    async def get_messages(self, chat_id: str) -> list[dict[str, Any]]:
        return await self._request("GET", f"/api/chats/{chat_id}/messages")

    async def get_title(self, chat_id: str) -> str:
        data = await self._request("GET", f"/api/chats/{chat_id}/title")
        return data["title"]

    async def fetch_title_with_retry(
        self,
        chat_id: str,
        retries: int = TITLE_RETRIES,
        delay: float = TITLE_RETRY_DELAY,
    ) -> str:
        """Poll the title of a new chat until it has been generated.

        Gives up after ``retries`` extra attempts and returns whatever the
        server has then.
        """
        title = await self.get_title(chat_id)
        for _ in range(retries):
            if title != NEW_CHAT_TITLE:
                break
            await asyncio.sleep(delay)
            title = await self.get_title(chat_id)
        return title

    async def delete_chat(self, chat_id: str) -> None:
        await self._request("DELETE", "/api/chat", params={"id": chat_id})
