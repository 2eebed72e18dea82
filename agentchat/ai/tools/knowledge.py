"""Retrieval over the agent's knowledge base."""

from typing import Any

from pydantic import BaseModel, Field

from agentchat.ai.tools.base import ToolContext, ToolDefinition
from agentchat.config import settings
from agentchat.database import get_session_context
from agentchat.integrations.knowledge_base import get_kb_client


class KnowledgeSearchParams(BaseModel):
    query: str = Field(description="What to look up in the agent's knowledge base")


async def _knowledge_search(params: KnowledgeSearchParams, context: ToolContext) -> dict[str, Any]:
    async with get_session_context() as session:
        results = await get_kb_client().search(
            session,
            context.agent_id,
            params.query,
            top_k=settings.kb_retrieval_top_k,
            threshold=settings.kb_similarity_threshold,
        )
    return {"query": params.query, "results": results}


def knowledge_tool() -> ToolDefinition:
    return ToolDefinition(
        name="knowledgeSearch",
        description=(
            "Search this agent's knowledge base for passages relevant to a query. "
            "Use it before answering questions about the agent's own subject matter."
        ),
        parameters=KnowledgeSearchParams,
        execute=_knowledge_search,
    )
