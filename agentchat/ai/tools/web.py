"""Web tools: page retrieval and Tavily-backed search."""

from typing import Any

import httpx
import structlog
from pydantic import BaseModel, Field

from agentchat.ai.tools.base import ToolContext, ToolDefinition
from agentchat.config import settings
from agentchat.errors import ToolExecutionError
from agentchat.integrations.jina import get_reader_client
from agentchat.integrations.tavily import get_tavily_client

logger = structlog.get_logger()

EMPTY_RETRIEVAL = {"results": [], "images": [], "query": ""}


class RetrieveParams(BaseModel):
    url: str = Field(description="The url to retrieve")


class SearchParams(BaseModel):
    query: str = Field(description="The search query to execute with Tavily.")
    max_results: int = Field(
        default=5,
        ge=1,
        le=10,
        description="The maximum number of search results to return. Max 10.",
    )
    include_answer: bool = Field(
        default=True,
        description="Include an LLM-generated answer to the query in the response.",
    )
    include_domains: list[str] | None = Field(
        default=None,
        description="A list of domains to specifically include in the search results.",
    )
    exclude_domains: list[str] | None = Field(
        default=None,
        description="A list of domains to specifically exclude from the search results.",
    )


class NewsSearchParams(BaseModel):
    query: str = Field(description="The news topic to search for.")
    max_results: int = Field(default=5, ge=1, le=10)
    days: int = Field(default=7, ge=1, le=365, description="How many days back to search.")


class ImageSearchParams(BaseModel):
    query: str = Field(description="What the images should show.")
    max_results: int = Field(default=5, ge=1, le=10)


async def _retrieve(params: RetrieveParams, context: ToolContext) -> dict[str, Any]:
    try:
        text = await get_reader_client().read(params.url)
    except httpx.HTTPError as e:
        logger.warning("retrieve_failed", url=params.url, error=str(e))
        return dict(EMPTY_RETRIEVAL)

    return {
        "results": [
            {
                "title": "",
                "content": text[: settings.retrieve_content_limit],
                "url": params.url,
            }
        ],
        "query": "",
        "images": [],
    }


async def _search(params: SearchParams, context: ToolContext) -> dict[str, Any]:
    try:
        data = await get_tavily_client().search(
            params.query,
            max_results=params.max_results,
            include_answer=params.include_answer,
            include_domains=params.include_domains,
            exclude_domains=params.exclude_domains,
        )
    except (httpx.HTTPError, ToolExecutionError) as e:
        logger.warning("web_search_failed", query=params.query, error=str(e))
        return {"error": f"Failed to execute web search: {e}"}

    logger.info("web_search_completed", query=params.query, results=len(data["results"]))
    return {
        "query": data["query"],
        "results": data["results"],
        "answer": data["answer"],
        "images": data["images"],
    }


async def _news_search(params: NewsSearchParams, context: ToolContext) -> dict[str, Any]:
    try:
        data = await get_tavily_client().search(
            params.query,
            topic="news",
            max_results=params.max_results,
            days=params.days,
        )
    except (httpx.HTTPError, ToolExecutionError) as e:
        logger.warning("news_search_failed", query=params.query, error=str(e))
        return {"error": f"Failed to execute news search: {e}"}

    return {
        "query": data["query"],
        "results": data["results"],
        "answer": data["answer"],
        "images": data["images"],
    }


async def _image_search(params: ImageSearchParams, context: ToolContext) -> dict[str, Any]:
    try:
        data = await get_tavily_client().search(
            params.query,
            max_results=params.max_results,
            include_answer=False,
        )
    except (httpx.HTTPError, ToolExecutionError) as e:
        logger.warning("image_search_failed", query=params.query, error=str(e))
        return {"error": f"Failed to execute image search: {e}"}

    return {"query": data["query"], "images": data["images"][: params.max_results]}


def web_tools() -> dict[str, ToolDefinition]:
    return {
        "retrieveTool": ToolDefinition(
            name="retrieveTool",
            description="Retrieve content from the web",
            parameters=RetrieveParams,
            execute=_retrieve,
        ),
        "searchTool": ToolDefinition(
            name="searchTool",
            description=(
                "Searches the web for a given 'query'. Returns a list of search results "
                "(title, URL and content snippet), an AI-generated 'answer' summarizing the "
                "findings, and relevant 'images'. Control 'max_results' (1-10, default 5) and "
                "refine with 'include_domains' or 'exclude_domains'. Ideal for current "
                "information, facts or general knowledge."
            ),
            parameters=SearchParams,
            execute=_search,
        ),
        "newsSearch": ToolDefinition(
            name="newsSearch",
            description="Searches recent news articles about a 'query' from the last 'days' days.",
            parameters=NewsSearchParams,
            execute=_news_search,
        ),
        "imageSearch": ToolDefinition(
            name="imageSearch",
            description="Finds images on the web matching a 'query'. Returns image URLs.",
            parameters=ImageSearchParams,
            execute=_image_search,
        ),
    }
