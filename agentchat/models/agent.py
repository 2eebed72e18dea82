"""Agent models: the persona, its model bindings, prompts and knowledge."""

from enum import StrEnum
from typing import Any

from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agentchat.models.base import Base, TimestampMixin, UUIDMixin


class Visibility(StrEnum):
    """Who can see an agent or chat."""

    PUBLIC = "public"
    PRIVATE = "private"
    LINK = "link"


class KnowledgeType(StrEnum):
    TEXT = "text"
    MARKDOWN = "markdown"
    URL = "url"
    FILE = "file"


class Agent(Base, UUIDMixin, TimestampMixin):
    """A configurable AI persona users chat with."""

    __tablename__ = "agents"

    agent: Mapped[str] = mapped_column(String(255), nullable=False, index=True)  # slug
    agent_display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    system_prompt: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    visibility: Mapped[str] = mapped_column(String(20), default=Visibility.PUBLIC.value)
    featured: Mapped[bool] = mapped_column(Boolean, default=False)
    artifacts_enabled: Mapped[bool] = mapped_column(Boolean, default=True)

    creator_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    thumbnail_url: Mapped[str | None] = mapped_column(String(1024))
    avatar_url: Mapped[str | None] = mapped_column(String(1024))
    customization: Mapped[dict[str, Any] | None] = mapped_column(JSONB)

    # Relationships
    agent_models: Mapped[list["AgentModel"]] = relationship(
        "AgentModel",
        back_populates="agent",
        cascade="all, delete-orphan",
    )
    tags = relationship("Tag", secondary="agent_tags", order_by="Tag.name")
    tool_groups = relationship("ToolGroup", secondary="agent_tool_groups")
    knowledge_items: Mapped[list["KnowledgeItem"]] = relationship(
        "KnowledgeItem",
        back_populates="agent",
        cascade="all, delete-orphan",
        order_by="KnowledgeItem.created_at",
    )
    suggested_prompts: Mapped["SuggestedPrompts | None"] = relationship(
        "SuggestedPrompts",
        back_populates="agent",
        cascade="all, delete-orphan",
        uselist=False,
    )

    __table_args__ = (Index("ix_agents_visibility_created", "visibility", "created_at"),)

    def __repr__(self) -> str:
        return f"<Agent {self.agent}>"


class AgentModel(Base):
    """Model binding of an agent. One binding per agent is the default."""

    __tablename__ = "agent_models"

    agent_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("agents.id", ondelete="CASCADE"),
        primary_key=True,
    )
    model_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("models.id", ondelete="CASCADE"),
        primary_key=True,
    )
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)

    agent = relationship("Agent", back_populates="agent_models")
    model = relationship("Model", lazy="joined")


class SuggestedPrompts(Base):
    """Starter prompts shown on an agent's welcome screen."""

    __tablename__ = "suggested_prompts"

    agent_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("agents.id", ondelete="CASCADE"),
        primary_key=True,
    )
    prompts: Mapped[list[str]] = mapped_column(JSONB, default=list)

    agent = relationship("Agent", back_populates="suggested_prompts")


class KnowledgeItem(Base, UUIDMixin, TimestampMixin):
    """A knowledge source attached to an agent."""

    __tablename__ = "knowledge_items"

    agent_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("agents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    agent = relationship("Agent", back_populates="knowledge_items")

    title: Mapped[str] = mapped_column(String(512), nullable=False)
    type: Mapped[str] = mapped_column(String(20), default=KnowledgeType.TEXT.value)
    content: Mapped[dict[str, Any]] = mapped_column(JSONB, default=dict)
    source_url: Mapped[str | None] = mapped_column(String(2048))

    def __repr__(self) -> str:
        return f"<KnowledgeItem {self.title[:30]}>"
