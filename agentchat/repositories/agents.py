"""Agent persistence: agents, model bindings, suggested prompts and knowledge."""

from typing import Any

import structlog
from sqlalchemy import delete, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from agentchat.models import (
    Agent,
    AgentModel,
    AgentTag,
    KnowledgeItem,
    SuggestedPrompts,
    Tag,
    Visibility,
)
from agentchat.utils import generate_agent_slug, generate_uuid

logger = structlog.get_logger()

DEFAULT_PAGE_SIZE = 20


def _with_details():
    return (
        selectinload(Agent.agent_models).joinedload(AgentModel.model),
        selectinload(Agent.tags),
        selectinload(Agent.suggested_prompts),
    )


async def insert_agent(
    session: AsyncSession,
    *,
    name: str,
    system_prompt: str,
    creator_id: str,
    description: str | None = None,
    visibility: str = Visibility.PUBLIC.value,
    artifacts_enabled: bool = True,
    thumbnail_url: str | None = None,
    avatar_url: str | None = None,
    customization: dict[str, Any] | None = None,
) -> Agent:
    """Insert an agent. Its slug embeds the generated id."""
    Visibility(visibility)
    agent_id = generate_uuid()
    agent = Agent(
        id=agent_id,
        agent=generate_agent_slug(name, agent_id),
        agent_display_name=name,
        system_prompt=system_prompt,
        description=description,
        visibility=visibility,
        creator_id=creator_id,
        artifacts_enabled=artifacts_enabled,
        thumbnail_url=thumbnail_url,
        avatar_url=avatar_url,
        customization=customization,
    )
    session.add(agent)
    await session.flush()
    logger.info("agent_created", agent_id=agent_id, creator_id=creator_id)
    return agent


async def select_agent_by_id(session: AsyncSession, agent_id: str) -> Agent | None:
    result = await session.execute(
        select(Agent).options(*_with_details()).where(Agent.id == agent_id)
    )
    return result.scalar_one_or_none()


async def select_agent_by_slug(session: AsyncSession, slug: str) -> Agent | None:
    result = await session.execute(
        select(Agent).options(*_with_details()).where(Agent.agent == slug)
    )
    return result.scalar_one_or_none()


async def update_agent(session: AsyncSession, agent_id: str, **values: Any) -> Agent | None:
    agent = await select_agent_by_id(session, agent_id)
    if agent is None:
        return None
    if "visibility" in values:
        Visibility(values["visibility"])
    if "agent_display_name" in values:
        agent.agent = generate_agent_slug(values["agent_display_name"], agent.id)
    for field, value in values.items():
        setattr(agent, field, value)
    await session.flush()
    return agent


async def delete_agent(session: AsyncSession, agent_id: str) -> None:
    await session.execute(delete(Agent).where(Agent.id == agent_id))
    logger.info("agent_deleted", agent_id=agent_id)


def _filters(tag_name: str | None, search: str | None) -> list:
    conditions = [Agent.visibility == Visibility.PUBLIC.value]
    if tag_name:
        tagged = (
            select(AgentTag.agent_id)
            .join(Tag, AgentTag.tag_id == Tag.id)
            .where(Tag.name == tag_name)
        )
        conditions.append(Agent.id.in_(tagged))
    if search:
        pattern = f"%{search}%"
        tag_match = (
            select(AgentTag.agent_id)
            .join(Tag, AgentTag.tag_id == Tag.id)
            .where(Tag.name.ilike(pattern))
        )
        conditions.append(
            or_(
                Agent.agent_display_name.ilike(pattern),
                Agent.description.ilike(pattern),
                Agent.id.in_(tag_match),
            )
        )
    return conditions


async def select_recent_agents(
    session: AsyncSession,
    tag_name: str | None = None,
    search: str | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> list[Agent]:
    """Public agents, newest first, optionally filtered by tag or search term.

    The search term matches display name, description or any tag name.
    """
    result = await session.execute(
        select(Agent)
        .options(selectinload(Agent.tags))
        .where(*_filters(tag_name, search))
        .order_by(desc(Agent.created_at))
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())


async def count_agents(
    session: AsyncSession,
    tag_name: str | None = None,
    search: str | None = None,
) -> int:
    result = await session.execute(
        select(func.count(Agent.id)).where(*_filters(tag_name, search))
    )
    return result.scalar_one()


async def select_featured_agents(session: AsyncSession, limit: int = 10) -> list[Agent]:
    result = await session.execute(
        select(Agent)
        .options(selectinload(Agent.tags))
        .where(Agent.featured.is_(True), Agent.visibility == Visibility.PUBLIC.value)
        .order_by(desc(Agent.created_at))
        .limit(limit)
    )
    return list(result.scalars().all())


async def select_agents_by_creator_id(session: AsyncSession, creator_id: str) -> list[Agent]:
    result = await session.execute(
        select(Agent)
        .options(*_with_details())
        .where(Agent.creator_id == creator_id)
        .order_by(desc(Agent.created_at))
    )
    return list(result.scalars().all())


def default_model_id(agent: Agent) -> str | None:
    """The agent's default model, or its first binding when none is marked."""
    if not agent.agent_models:
        return None
    for binding in agent.agent_models:
        if binding.is_default:
            return binding.model_id
    return agent.agent_models[0].model_id


async def set_agent_models(
    session: AsyncSession,
    agent_id: str,
    model_ids: list[str],
    default_model_id: str | None = None,
) -> None:
    """Replace the model bindings of an agent.

    Exactly one binding ends up default: ``default_model_id`` if given,
    otherwise the first model.
    """
    await session.execute(delete(AgentModel).where(AgentModel.agent_id == agent_id))
    unique_ids = list(dict.fromkeys(model_ids))
    default = default_model_id if default_model_id in unique_ids else (unique_ids[0] if unique_ids else None)
    for model_id in unique_ids:
        session.add(AgentModel(agent_id=agent_id, model_id=model_id, is_default=model_id == default))
    await session.flush()


async def get_suggested_prompts(session: AsyncSession, agent_id: str) -> list[str]:
    result = await session.execute(
        select(SuggestedPrompts).where(SuggestedPrompts.agent_id == agent_id)
    )
    row = result.scalar_one_or_none()
    return list(row.prompts) if row else []


async def upsert_suggested_prompts(session: AsyncSession, agent_id: str, prompts: list[str]) -> None:
    cleaned = [p.strip() for p in prompts if p and p.strip()]
    result = await session.execute(
        select(SuggestedPrompts).where(SuggestedPrompts.agent_id == agent_id)
    )
    row = result.scalar_one_or_none()
    if row is None:
        session.add(SuggestedPrompts(agent_id=agent_id, prompts=cleaned))
    else:
        row.prompts = cleaned
    await session.flush()


async def select_knowledge_by_agent_id(session: AsyncSession, agent_id: str) -> list[KnowledgeItem]:
    result = await session.execute(
        select(KnowledgeItem)
        .where(KnowledgeItem.agent_id == agent_id)
        .order_by(KnowledgeItem.created_at)
    )
    return list(result.scalars().all())


async def insert_knowledge(
    session: AsyncSession,
    agent_id: str,
    title: str,
    content: dict[str, Any],
    type: str = "text",
    source_url: str | None = None,
) -> KnowledgeItem:
    item = KnowledgeItem(
        agent_id=agent_id,
        title=title,
        content=content,
        type=type,
        source_url=source_url,
    )
    session.add(item)
    await session.flush()
    return item


async def delete_knowledge(session: AsyncSession, agent_id: str, item_id: str) -> bool:
    """Delete one knowledge item of an agent; its chunks go with it."""
    result = await session.execute(
        delete(KnowledgeItem).where(KnowledgeItem.id == item_id, KnowledgeItem.agent_id == agent_id)
    )
    return result.rowcount > 0
