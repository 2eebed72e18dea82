"""Message persistence."""

from datetime import datetime, UTC
from typing import Any

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from agentchat.models import Message
from agentchat.repositories.records import MessageRecord

logger = structlog.get_logger()


async def save_messages(
    session: AsyncSession,
    messages: list[dict[str, Any]],
    model_id: str | None = None,
) -> list[Message]:
    """Insert messages, skipping ids that are already stored.

    Each item needs ``id``, ``chat_id``, ``role`` and ``parts``;
    ``attachments`` and ``created_at`` are optional.
    """
    if not messages:
        return []

    ids = [m["id"] for m in messages]
    existing = await session.execute(select(Message.id).where(Message.id.in_(ids)))
    stored = set(existing.scalars().all())

    rows = []
    for item in messages:
        if item["id"] in stored:
            continue
        rows.append(
            Message(
                id=item["id"],
                chat_id=item["chat_id"],
                role=item["role"],
                parts=item.get("parts") or [],
                attachments=item.get("attachments") or [],
                model_id=model_id or item.get("model_id"),
                created_at=item.get("created_at") or datetime.now(UTC),
            )
        )
        stored.add(item["id"])

    session.add_all(rows)
    await session.flush()
    logger.info("messages_saved", count=len(rows), skipped=len(messages) - len(rows))
    return rows


async def get_messages_by_chat_id(session: AsyncSession, chat_id: str) -> list[MessageRecord]:
    result = await session.execute(
        select(Message).where(Message.chat_id == chat_id).order_by(Message.created_at)
    )
    return [MessageRecord.model_validate(m) for m in result.scalars().all()]


async def get_message_by_id(session: AsyncSession, message_id: str) -> MessageRecord | None:
    result = await session.execute(select(Message).where(Message.id == message_id))
    message = result.scalar_one_or_none()
    return MessageRecord.model_validate(message) if message else None


async def delete_messages_after(session: AsyncSession, chat_id: str, timestamp: datetime) -> int:
    """Delete the messages of a chat created at or after ``timestamp``."""
    result = await session.execute(
        delete(Message).where(Message.chat_id == chat_id, Message.created_at >= timestamp)
    )
    return result.rowcount or 0
