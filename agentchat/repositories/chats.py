"""Chat persistence with keyed caching of single-chat lookups."""

from datetime import datetime, UTC
from typing import Any

import structlog
from sqlalchemy import String, cast, delete, desc, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from agentchat.cache import chat_key, get_cache
from agentchat.config import settings
from agentchat.database import after_commit
from agentchat.models import Agent, Chat, Message, Visibility
from agentchat.repositories.records import ChatRecord, ChatSummary

logger = structlog.get_logger()

SNIPPET_CONTEXT = 40
MAX_SNIPPETS_PER_CHAT = 3


async def save_chat(
    session: AsyncSession,
    chat_id: str,
    user_id: str,
    title: str,
    agent_id: str | None = None,
) -> Chat:
    """Insert a new chat."""
    chat = Chat(
        id=chat_id,
        user_id=user_id,
        agent_id=agent_id,
        title=title,
        visibility=Visibility.PRIVATE.value,
        created_at=datetime.now(UTC),
    )
    session.add(chat)
    await session.flush()
    logger.info("chat_saved", chat_id=chat_id, agent_id=agent_id)
    return chat


async def invalidate_chat_cache(chat_id: str) -> None:
    await get_cache().delete(chat_key(chat_id))


async def get_chat_by_id(session: AsyncSession, chat_id: str) -> ChatRecord | None:
    """Get a chat, from the cache when possible."""
    cache = get_cache()
    cached = await cache.get_json(chat_key(chat_id))
    if cached is not None:
        try:
            return ChatRecord.model_validate(cached)
        except ValueError:
            logger.warning("cached_chat_invalid", chat_id=chat_id)

    result = await session.execute(select(Chat).where(Chat.id == chat_id))
    chat = result.scalar_one_or_none()
    if chat is None:
        return None

    record = ChatRecord.model_validate(chat)
    await cache.set_json(chat_key(chat_id), record.model_dump(mode="json"), settings.chat_cache_ttl)
    return record


def _summary_query():
    return (
        select(Chat, Agent.agent_display_name)
        .outerjoin(Agent, Chat.agent_id == Agent.id)
        .order_by(desc(Chat.created_at))
    )


def _to_summary(chat: Chat, agent_display_name: str | None, **extra: Any) -> ChatSummary:
    return ChatSummary(
        **ChatRecord.model_validate(chat).model_dump(),
        agent_display_name=agent_display_name,
        **extra,
    )


async def get_chats_by_user_id(session: AsyncSession, user_id: str) -> list[ChatSummary]:
    """Get all chats of a user, newest first."""
    result = await session.execute(_summary_query().where(Chat.user_id == user_id))
    return [_to_summary(chat, name) for chat, name in result.all()]


async def update_chat_title(session: AsyncSession, chat_id: str, title: str) -> None:
    await session.execute(update(Chat).where(Chat.id == chat_id).values(title=title))
    after_commit(session, lambda: invalidate_chat_cache(chat_id))


async def update_chat_visibility(session: AsyncSession, chat_id: str, visibility: str) -> None:
    Visibility(visibility)
    await session.execute(update(Chat).where(Chat.id == chat_id).values(visibility=visibility))
    after_commit(session, lambda: invalidate_chat_cache(chat_id))


async def delete_chat_by_id(session: AsyncSession, chat_id: str) -> None:
    """Delete a chat and its messages."""
    await session.execute(delete(Message).where(Message.chat_id == chat_id))
    await session.execute(delete(Chat).where(Chat.id == chat_id))
    after_commit(session, lambda: invalidate_chat_cache(chat_id))
    logger.info("chat_deleted", chat_id=chat_id)


def extract_part_text(parts: Any) -> str:
    """Flatten the searchable text of a message's parts."""
    if isinstance(parts, str):
        return parts
    if isinstance(parts, dict):
        parts = [parts]
    texts = []
    for part in parts or []:
        if not isinstance(part, dict):
            continue
        for field in ("text", "value", "content"):
            value = part.get(field)
            if isinstance(value, str) and value:
                texts.append(value)
                break
    return " ".join(texts)


def make_snippet(text: str, term: str) -> str | None:
    """Cut a snippet of ``text`` around the first occurrence of ``term``."""
    index = text.lower().find(term.lower())
    if index < 0:
        return None
    start = max(0, index - SNIPPET_CONTEXT)
    end = min(len(text), index + len(term) + SNIPPET_CONTEXT)
    snippet = text[start:end]
    if start > 0:
        snippet = "..." + snippet
    if end < len(text):
        snippet = snippet + "..."
    return snippet


async def search_chats(session: AsyncSession, user_id: str, term: str) -> list[ChatSummary]:
    """Search a user's chats by message content.

    Chats are ranked by the number of matching messages. When no message
    matches, chat titles and agent names are searched instead.
    """
    term = term.strip()
    if not term:
        return await get_chats_by_user_id(session, user_id)

    pattern = f"%{term}%"
    result = await session.execute(
        select(Message.id, Message.chat_id, Message.parts)
        .join(Chat, Message.chat_id == Chat.id)
        .where(Chat.user_id == user_id, cast(Message.parts, String).ilike(pattern))
    )
    matches = result.all()

    if not matches:
        fallback = await session.execute(
            _summary_query().where(
                Chat.user_id == user_id,
                or_(Chat.title.ilike(pattern), Agent.agent_display_name.ilike(pattern)),
            )
        )
        return [_to_summary(chat, name) for chat, name in fallback.all()]

    counts: dict[str, int] = {}
    snippets: dict[str, list[dict[str, str]]] = {}
    for message_id, chat_id, parts in matches:
        text = extract_part_text(parts)
        if not text:
            continue
        counts[chat_id] = counts.get(chat_id, 0) + 1
        chat_snippets = snippets.setdefault(chat_id, [])
        if len(chat_snippets) < MAX_SNIPPETS_PER_CHAT:
            snippet = make_snippet(text, term)
            if snippet:
                chat_snippets.append({"text": snippet, "message_id": message_id})

    if not counts:
        return []

    chats = await session.execute(_summary_query().where(Chat.id.in_(list(counts))))
    summaries = [
        _to_summary(
            chat,
            name,
            match_count=counts.get(chat.id, 0),
            match_snippets=snippets.get(chat.id, []),
        )
        for chat, name in chats.all()
    ]
    summaries.sort(key=lambda s: s.match_count, reverse=True)
    return summaries
