"""Embedded knowledge chunks for retrieval."""

from typing import Any, Optional

from pgvector.sqlalchemy import Vector
from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from agentchat.models.base import Base, TimestampMixin, UUIDMixin


class KnowledgeChunk(Base, UUIDMixin, TimestampMixin):
    """A chunk of an agent's knowledge item, with embedding."""

    __tablename__ = "knowledge_chunks"

    agent_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("agents.id", ondelete="CASCADE"),
        nullable=False,
    )
    knowledge_item_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("knowledge_items.id", ondelete="CASCADE"),
    )

    source_url: Mapped[Optional[str]] = mapped_column(String(2048))
    title: Mapped[Optional[str]] = mapped_column(String(512))
    content: Mapped[str] = mapped_column(Text, nullable=False)
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    embedding: Mapped[Any] = mapped_column(Vector(1536), nullable=False)

    extra_data: Mapped[dict[str, Any]] = mapped_column(JSONB, default=dict)

    __table_args__ = (
        Index(
            "ix_knowledge_chunks_embedding",
            "embedding",
            postgresql_using="hnsw",
            postgresql_with={"m": 16, "ef_construction": 64},
            postgresql_ops={"embedding": "vector_cosine_ops"},
        ),
        Index("ix_knowledge_chunks_agent_id", "agent_id"),
    )

    def __repr__(self) -> str:
        return f"<KnowledgeChunk {self.title} [{self.chunk_index}]>"
