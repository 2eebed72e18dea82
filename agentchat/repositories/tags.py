"""Tag persistence."""

import structlog
from sqlalchemy import delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from agentchat.models import AgentTag, Tag

logger = structlog.get_logger()


async def insert_tag(session: AsyncSession, name: str) -> Tag:
    tag = Tag(name=name.strip())
    session.add(tag)
    await session.flush()
    return tag


async def get_or_create_tag(session: AsyncSession, name: str) -> Tag:
    tag = await select_tag_by_name(session, name)
    if tag is None:
        tag = await insert_tag(session, name)
    return tag


async def select_tag_by_id(session: AsyncSession, tag_id: str) -> Tag | None:
    result = await session.execute(select(Tag).where(Tag.id == tag_id))
    return result.scalar_one_or_none()


async def select_tag_by_name(session: AsyncSession, name: str) -> Tag | None:
    result = await session.execute(select(Tag).where(Tag.name == name.strip()))
    return result.scalar_one_or_none()


async def select_all_tags(session: AsyncSession) -> list[Tag]:
    result = await session.execute(select(Tag).order_by(Tag.name))
    return list(result.scalars().all())


async def search_tags(session: AsyncSession, term: str) -> list[Tag]:
    result = await session.execute(
        select(Tag).where(Tag.name.ilike(f"%{term}%")).order_by(Tag.name)
    )
    return list(result.scalars().all())


async def update_tag(session: AsyncSession, tag_id: str, name: str) -> Tag | None:
    tag = await select_tag_by_id(session, tag_id)
    if tag is None:
        return None
    tag.name = name.strip()
    await session.flush()
    return tag


async def delete_tag(session: AsyncSession, tag_id: str) -> None:
    """Delete a tag and detach it from every agent."""
    await session.execute(delete(AgentTag).where(AgentTag.tag_id == tag_id))
    await session.execute(delete(Tag).where(Tag.id == tag_id))
    logger.info("tag_deleted", tag_id=tag_id)


async def select_tags_by_agent_id(session: AsyncSession, agent_id: str) -> list[Tag]:
    result = await session.execute(
        select(Tag)
        .join(AgentTag, AgentTag.tag_id == Tag.id)
        .where(AgentTag.agent_id == agent_id)
        .order_by(Tag.name)
    )
    return list(result.scalars().all())


async def set_agent_tags(session: AsyncSession, agent_id: str, tag_ids: list[str]) -> None:
    """Replace the tags of an agent."""
    await session.execute(delete(AgentTag).where(AgentTag.agent_id == agent_id))
    for tag_id in dict.fromkeys(tag_ids):
        session.add(AgentTag(agent_id=agent_id, tag_id=tag_id))
    await session.flush()


async def select_top_tags(session: AsyncSession, limit: int = 10) -> list[tuple[Tag, int]]:
    """Tags ordered by how many agents use them."""
    usage = func.count(AgentTag.agent_id).label("usage")
    result = await session.execute(
        select(Tag, usage)
        .join(AgentTag, AgentTag.tag_id == Tag.id)
        .group_by(Tag.id)
        .order_by(desc(usage), Tag.name)
        .limit(limit)
    )
    return [(tag, count) for tag, count in result.all()]
