"""Language model catalogue."""

from decimal import Decimal
from enum import StrEnum
from typing import Any

from sqlalchemy import Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from agentchat.models.base import Base, TimestampMixin, UUIDMixin


class ModelType(StrEnum):
    """Model capability class."""

    TEXT_LARGE = "text-large"
    TEXT_SMALL = "text-small"
    REASONING = "reasoning"
    IMAGE = "image"
    SEARCH = "search"


class Model(Base, UUIDMixin, TimestampMixin):
    """A language model agents can be bound to."""

    __tablename__ = "models"

    model_display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Provider identifier, e.g. "gpt-4o" or "llama-3.3-70b-versatile"
    model: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    model_type: Mapped[str] = mapped_column(String(20), default=ModelType.TEXT_LARGE.value)
    description: Mapped[str | None] = mapped_column(Text)
    cost_per_million_input_tokens: Mapped[Decimal | None] = mapped_column(Numeric(19, 9))
    cost_per_million_output_tokens: Mapped[Decimal | None] = mapped_column(Numeric(19, 9))
    provider_options: Mapped[dict[str, Any] | None] = mapped_column(JSONB)

    def __repr__(self) -> str:
        return f"<Model {self.model} ({self.provider})>"
