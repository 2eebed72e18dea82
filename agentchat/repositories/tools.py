"""Tool groups and the tools enabled on an agent."""

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from agentchat.cache import agent_tools_key, get_cache
from agentchat.config import settings
from agentchat.models import AgentToolGroup, Tool, ToolGroup, ToolGroupTool
from agentchat.repositories.records import AgentToolRecord

logger = structlog.get_logger()


async def invalidate_agent_tools_cache(agent_id: str) -> None:
    await get_cache().delete(agent_tools_key(agent_id))


async def get_agent_tools(session: AsyncSession, agent_id: str) -> list[AgentToolRecord]:
    """Get every tool reachable through the agent's tool groups, in one query."""
    cache = get_cache()
    cached = await cache.get_json(agent_tools_key(agent_id))
    if isinstance(cached, list):
        try:
            return [AgentToolRecord.model_validate(item) for item in cached]
        except ValueError:
            logger.warning("cached_agent_tools_invalid", agent_id=agent_id)

    result = await session.execute(
        select(Tool.tool, ToolGroup.id)
        .select_from(AgentToolGroup)
        .join(ToolGroup, AgentToolGroup.tool_group_id == ToolGroup.id)
        .join(ToolGroupTool, ToolGroupTool.tool_group_id == ToolGroup.id)
        .join(Tool, ToolGroupTool.tool_id == Tool.id)
        .where(AgentToolGroup.agent_id == agent_id)
    )
    tools = [AgentToolRecord(tool=tool, tool_group_id=group_id) for tool, group_id in result.all()]

    await cache.set_json(
        agent_tools_key(agent_id),
        [t.model_dump() for t in tools],
        settings.agent_tools_cache_ttl,
    )
    return tools


async def get_all_tool_groups(session: AsyncSession) -> list[ToolGroup]:
    result = await session.execute(
        select(ToolGroup).options(selectinload(ToolGroup.tools)).order_by(ToolGroup.name)
    )
    return list(result.scalars().all())


async def set_agent_tool_groups(session: AsyncSession, agent_id: str, tool_group_ids: list[str]) -> None:
    """Replace the tool groups enabled on an agent."""
    existing = await session.execute(
        select(AgentToolGroup).where(AgentToolGroup.agent_id == agent_id)
    )
    for row in existing.scalars().all():
        await session.delete(row)
    for group_id in dict.fromkeys(tool_group_ids):
        session.add(AgentToolGroup(agent_id=agent_id, tool_group_id=group_id))
    await session.flush()
    await invalidate_agent_tools_cache(agent_id)
