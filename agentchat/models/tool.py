"""Tools, tool groups and their assignment to agents."""

from typing import Any

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agentchat.models.base import Base, TimestampMixin, UUIDMixin


class Tool(Base, UUIDMixin, TimestampMixin):
    """A tool known to the registry, by registry name."""

    __tablename__ = "tools"

    tool: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    tool_display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    parameter_schema: Mapped[dict[str, Any] | None] = mapped_column(JSONB)
    config: Mapped[dict[str, Any] | None] = mapped_column(JSONB)

    def __repr__(self) -> str:
        return f"<Tool {self.tool}>"


class ToolGroup(Base, UUIDMixin, TimestampMixin):
    """A named bundle of tools that can be enabled on an agent."""

    __tablename__ = "tool_groups"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    tools: Mapped[list["Tool"]] = relationship(
        "Tool",
        secondary="tool_group_tools",
        order_by="Tool.tool",
    )

    def __repr__(self) -> str:
        return f"<ToolGroup {self.name}>"


class ToolGroupTool(Base):
    __tablename__ = "tool_group_tools"

    tool_group_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("tool_groups.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tool_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("tools.id", ondelete="CASCADE"),
        primary_key=True,
    )


class AgentToolGroup(Base):
    __tablename__ = "agent_tool_groups"

    agent_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("agents.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tool_group_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("tool_groups.id", ondelete="CASCADE"),
        primary_key=True,
    )
