"""Tavily web search integration."""

from typing import Any

import httpx
import structlog

from agentchat.config import settings
from agentchat.errors import ToolExecutionError

logger = structlog.get_logger()

TAVILY_BASE_URL = "https://api.tavily.com"


class TavilyClient:
    """Client for the Tavily search API."""

    def __init__(self, api_key: str, timeout: float = 30.0):
        self.base_url = TAVILY_BASE_URL
        self.headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, headers=self.headers)
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, endpoint: str, **kwargs) -> dict[str, Any]:
        """Make an API request."""
        url = f"{self.base_url}/{endpoint}"

        try:
            response = await self.client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "tavily_api_error",
                status_code=e.response.status_code,
                url=url,
                response=e.response.text[:500],
            )
            raise
        except httpx.RequestError as e:
            logger.error("tavily_request_error", url=url, error=str(e))
            raise

    async def search(
        self,
        query: str,
        *,
        topic: str = "general",
        max_results: int = 5,
        include_answer: bool = True,
        include_domains: list[str] | None = None,
        exclude_domains: list[str] | None = None,
        days: int | None = None,
    ) -> dict[str, Any]:
        """
        Run a basic-depth search.

        Returns:
            Dict with ``results`` (title, url, content, score), ``answer``
            and ``images`` (list of URLs).
        """
        payload: dict[str, Any] = {
            "query": query,
            "topic": topic,
            "search_depth": "basic",
            "max_results": max_results,
            "include_answer": include_answer,
            "include_images": True,
        }
        if include_domains:
            payload["include_domains"] = include_domains
        if exclude_domains:
            payload["exclude_domains"] = exclude_domains
        if days is not None:
            payload["days"] = days

        data = await self._request("POST", "search", json=payload)
        return {
            "query": data.get("query", query),
            "results": [
                {
                    "title": r.get("title", ""),
                    "url": r.get("url", ""),
                    "content": r.get("content", ""),
                    "score": r.get("score"),
                    **({"published_date": r["published_date"]} if r.get("published_date") else {}),
                }
                for r in data.get("results", [])
            ],
            "answer": data.get("answer"),
            "images": data.get("images") or [],
        }


_tavily_client: TavilyClient | None = None


def get_tavily_client() -> TavilyClient:
    """Get or create the Tavily client singleton."""
    global _tavily_client
    if _tavily_client is None:
        if not settings.tavily_api_key:
            raise ToolExecutionError("Tavily API key is not configured (TAVILY_API_KEY).")
        _tavily_client = TavilyClient(settings.tavily_api_key, timeout=settings.tool_request_timeout)
    return _tavily_client
