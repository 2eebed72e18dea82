"""API request/response schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

VisibilityLiteral = Literal["public", "private", "link"]


# === Chat Schemas ===


class ChatUpdateRequest(BaseModel):
    """Rename a chat or change who can see it."""

    title: str | None = Field(None, min_length=1, max_length=255)
    visibility: VisibilityLiteral | None = None


class ChatTitleResponse(BaseModel):
    id: str
    title: str


# === Agent Schemas ===


class TagResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str


class AgentSummary(BaseModel):
    """An agent as listed in the directory."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    agent: str
    agent_display_name: str
    description: str | None = None
    visibility: str
    featured: bool = False
    thumbnail_url: str | None = None
    avatar_url: str | None = None
    creator_id: str
    created_at: datetime | None = None
    tags: list[TagResponse] = []


class AgentModelResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    model_id: str
    is_default: bool
    model_display_name: str | None = None
    model: str | None = None
    provider: str | None = None


class AgentDetail(AgentSummary):
    """Everything needed to start a chat with an agent."""

    system_prompt: str
    artifacts_enabled: bool = True
    customization: dict[str, Any] | None = None
    models: list[AgentModelResponse] = []
    default_model_id: str | None = None
    suggested_prompts: list[str] = []


class AgentMinimal(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    agent: str
    agent_display_name: str
    creator_id: str
    visibility: str


class AgentListResponse(BaseModel):
    agents: list[AgentSummary]
    total_count: int
    page: int
    page_size: int


class AgentCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    system_prompt: str = Field(..., min_length=1)
    description: str | None = None
    visibility: VisibilityLiteral = "public"
    artifacts_enabled: bool = True
    thumbnail_url: str | None = None
    avatar_url: str | None = None
    customization: dict[str, Any] | None = None
    model_ids: list[str] = []
    default_model_id: str | None = None
    tag_ids: list[str] = []
    tool_group_ids: list[str] = []
    suggested_prompts: list[str] = []


class AgentUpdateRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    system_prompt: str | None = Field(None, min_length=1)
    description: str | None = None
    visibility: VisibilityLiteral | None = None
    artifacts_enabled: bool | None = None
    thumbnail_url: str | None = None
    avatar_url: str | None = None
    customization: dict[str, Any] | None = None
    model_ids: list[str] | None = None
    default_model_id: str | None = None
    tag_ids: list[str] | None = None
    tool_group_ids: list[str] | None = None
    suggested_prompts: list[str] | None = None


class KnowledgeCreateRequest(BaseModel):
    """Knowledge to attach to an agent: inline text or a site to crawl."""

    title: str = Field(..., min_length=1, max_length=512)
    type: Literal["text", "markdown", "url"] = "text"
    text: str | None = None
    url: str | None = None
    max_pages: int = Field(default=20, ge=1, le=200)


class KnowledgeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    agent_id: str
    title: str
    type: str
    source_url: str | None = None
    created_at: datetime | None = None


class KnowledgeIngestResponse(BaseModel):
    item: KnowledgeResponse
    chunks_created: int


# === Model Schemas ===


class ModelCreateRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_display_name: str = Field(..., min_length=1, max_length=255)
    model: str = Field(..., min_length=1, max_length=255)
    provider: str
    model_type: str = "text-large"
    description: str | None = None
    cost_per_million_input_tokens: Decimal | None = None
    cost_per_million_output_tokens: Decimal | None = None
    provider_options: dict[str, Any] | None = None


class ModelUpdateRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_display_name: str | None = None
    model: str | None = None
    provider: str | None = None
    model_type: str | None = None
    description: str | None = None
    cost_per_million_input_tokens: Decimal | None = None
    cost_per_million_output_tokens: Decimal | None = None
    provider_options: dict[str, Any] | None = None


# === Tag Schemas ===


class TagCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class TopTagResponse(BaseModel):
    id: str
    name: str
    count: int


# === Tool Schemas ===


class ToolResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tool: str
    tool_display_name: str
    description: str | None = None


class ToolGroupResponse(BaseModel):
    """A bundle of tools an agent can enable."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    display_name: str
    description: str | None = None
    tools: list[ToolResponse] = []


# === Credit Schemas ===


class CreditsResponse(BaseModel):
    credit_balance: Decimal | None


class AddCreditsRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    type: Literal["purchase", "refund", "promotional", "adjustment"] = "promotional"
    description: str | None = None


class TransactionQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=100)
    type: str | None = None
    start_date: date | None = None
    end_date: date | None = None


# === Document Schemas ===


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    kind: str
    content: str | None = None
    user_id: str
    created_at: datetime


class SuggestionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    document_id: str
    document_created_at: datetime
    original_text: str
    suggested_text: str
    description: str | None = None
    is_resolved: bool = False
    created_at: datetime | None = None


# === Attachment Schemas ===


class AttachmentResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str
    name: str
    content_type: str = Field(alias="contentType")


class AttachmentDeleteRequest(BaseModel):
    url: str
