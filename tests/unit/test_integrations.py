"""Unit tests for external integrations."""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from agentchat.integrations.images import ImageGenerationClient
from agentchat.integrations.jina import JinaReaderClient
from agentchat.integrations.tavily import TavilyClient


def mocked(client, handler):
    client._client = httpx.AsyncClient(headers=client.headers, transport=httpx.MockTransport(handler))
    return client


class TestTavilyIntegration:
    """Tests for the Tavily search client."""

    @pytest.mark.asyncio
    async def test_search_payload_and_shape(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers["authorization"]
            return httpx.Response(
                200,
                json={
                    "query": "rust 2026",
                    "answer": "It shipped.",
                    "images": ["https://img/1.png"],
                    "results": [
                        {"title": "News", "url": "https://n", "content": "c", "score": 0.9, "published_date": "2026-01-02"}
                    ],
                },
            )

        client = mocked(TavilyClient("tvly-test"), handler)
        data = await client.search("rust 2026", topic="news", days=3, include_domains=["n"])

        assert seen["auth"] == "Bearer tvly-test"
        assert seen["body"]["topic"] == "news"
        assert seen["body"]["days"] == 3
        assert seen["body"]["include_domains"] == ["n"]
        assert "exclude_domains" not in seen["body"]
        assert data["results"][0]["published_date"] == "2026-01-02"
        assert data["answer"] == "It shipped."

    @pytest.mark.asyncio
    async def test_search_error(self):
        client = mocked(TavilyClient("tvly-test"), lambda r: httpx.Response(401, json={"detail": "bad key"}))

        with pytest.raises(httpx.HTTPStatusError):
            await client.search("anything")

    def test_missing_key(self):
        from agentchat.errors import ToolExecutionError
        from agentchat.integrations import tavily

        with (
            patch.object(tavily, "_tavily_client", None),
            patch.object(tavily.settings, "tavily_api_key", None),
        ):
            with pytest.raises(ToolExecutionError):
                tavily.get_tavily_client()


class TestJinaIntegration:
    """Tests for the page reader."""

    @pytest.mark.asyncio
    async def test_read(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            return httpx.Response(200, text="Readable page")

        client = mocked(JinaReaderClient(), handler)

        assert await client.read("https://example.com/post") == "Readable page"
        assert seen["url"] == "https://r.jina.ai/https://example.com/post"


class TestImageIntegration:
    """Tests for image generation."""

    @pytest.mark.asyncio
    async def test_generate(self):
        client = ImageGenerationClient("sk-test", model="dall-e-3")

        with patch.object(client, "_request", new_callable=AsyncMock) as mock_req:
            mock_req.return_value = {"data": [{"b64_json": "aW1n"}]}
            image = await client.generate("a lighthouse", size="512x512")

        assert image == "aW1n"
        assert mock_req.await_args.kwargs["json"]["size"] == "512x512"

    @pytest.mark.asyncio
    async def test_generate_without_image(self):
        client = ImageGenerationClient("sk-test")

        with patch.object(client, "_request", new_callable=AsyncMock) as mock_req:
            mock_req.return_value = {"data": []}
            with pytest.raises(ValueError):
                await client.generate("a lighthouse")
