"""Artifact documents and suggestions. Every save of a document is a new version."""

from datetime import datetime, UTC
from typing import Any

from sqlalchemy import delete, desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from agentchat.models import ArtifactKind, Document, Suggestion


async def save_document(
    session: AsyncSession,
    document_id: str,
    title: str,
    kind: str,
    content: str,
    user_id: str,
) -> Document:
    document = Document(
        id=document_id,
        title=title,
        kind=ArtifactKind(kind).value,
        content=content,
        user_id=user_id,
        created_at=datetime.now(UTC),
    )
    session.add(document)
    await session.flush()
    return document


async def get_documents_by_id(session: AsyncSession, document_id: str) -> list[Document]:
    """All versions of a document, oldest first."""
    result = await session.execute(
        select(Document).where(Document.id == document_id).order_by(Document.created_at)
    )
    return list(result.scalars().all())


async def get_document_by_id(session: AsyncSession, document_id: str) -> Document | None:
    """The latest version of a document."""
    result = await session.execute(
        select(Document)
        .where(Document.id == document_id)
        .order_by(desc(Document.created_at))
        .limit(1)
    )
    return result.scalar_one_or_none()


async def delete_documents_after(session: AsyncSession, document_id: str, timestamp: datetime) -> None:
    """Drop the versions (and their suggestions) newer than ``timestamp``."""
    await session.execute(
        delete(Suggestion).where(
            Suggestion.document_id == document_id,
            Suggestion.document_created_at > timestamp,
        )
    )
    await session.execute(
        delete(Document).where(Document.id == document_id, Document.created_at > timestamp)
    )


async def save_suggestions(session: AsyncSession, suggestions: list[dict[str, Any]]) -> list[Suggestion]:
    rows = [Suggestion(**s) for s in suggestions]
    session.add_all(rows)
    await session.flush()
    return rows


async def get_suggestions_by_document_id(session: AsyncSession, document_id: str) -> list[Suggestion]:
    result = await session.execute(
        select(Suggestion).where(Suggestion.document_id == document_id).order_by(Suggestion.created_at)
    )
    return list(result.scalars().all())
