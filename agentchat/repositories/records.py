"""Read models returned by repositories and stored in the cache."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChatRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    agent_id: str | None = None
    title: str
    visibility: str = "private"
    created_at: datetime


class ChatSummary(ChatRecord):
    """A chat as listed in history, with search match details."""

    agent_display_name: str | None = None
    match_count: int = 0
    match_snippets: list[dict[str, str]] = Field(default_factory=list)


class ModelRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    id: str
    model_display_name: str
    model: str
    provider: str
    model_type: str
    description: str | None = None
    cost_per_million_input_tokens: Decimal | None = None
    cost_per_million_output_tokens: Decimal | None = None
    provider_options: dict[str, Any] | None = None


class AgentToolRecord(BaseModel):
    tool: str
    tool_group_id: str


class MessageRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    chat_id: str
    role: str
    parts: list[dict[str, Any]] = Field(default_factory=list)
    attachments: list[dict[str, Any]] = Field(default_factory=list)
    model_id: str | None = None
    created_at: datetime | None = None
