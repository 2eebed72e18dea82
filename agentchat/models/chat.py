"""Chat and Message models."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agentchat.models.agent import Visibility
from agentchat.models.base import Base, TimestampMixin, UUIDMixin


class MessageRole(StrEnum):
    """Message sender role."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Chat(Base, UUIDMixin, TimestampMixin):
    """A conversation between one user and, optionally, one agent."""

    __tablename__ = "chats"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    agent_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("agents.id", ondelete="CASCADE"),
        index=True,
    )
    agent = relationship("Agent")

    title: Mapped[str] = mapped_column(Text, nullable=False)
    visibility: Mapped[str] = mapped_column(String(20), default=Visibility.PRIVATE.value)

    messages: Mapped[list["Message"]] = relationship(
        "Message",
        back_populates="chat",
        order_by="Message.created_at",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (Index("ix_chats_created_at", "created_at"),)

    def __repr__(self) -> str:
        return f"<Chat {self.id[:8]} {self.title[:30]}>"


class Message(Base, UUIDMixin):
    """A message in a chat. ``parts`` holds text and tool-invocation segments."""

    __tablename__ = "messages"

    chat_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("chats.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    chat = relationship("Chat", back_populates="messages")

    role: Mapped[str] = mapped_column(String(20), nullable=False)
    parts: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    attachments: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    model_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("models.id", ondelete="SET NULL"),
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Message {self.role} {self.id[:8]}>"
