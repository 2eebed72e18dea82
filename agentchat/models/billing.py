"""Credit ledger models."""

from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from agentchat.models.base import Base, UUIDMixin


class TransactionType(StrEnum):
    """Kinds of credit movement."""

    USAGE = "usage"
    PURCHASE = "purchase"
    REFUND = "refund"
    PROMOTIONAL = "promotional"
    ADJUSTMENT = "adjustment"
    SELF_USAGE = "self_usage"


class TokenType(StrEnum):
    INPUT = "input"
    OUTPUT = "output"


class Transaction(Base, UUIDMixin):
    """A single movement of credits for a user.

    Usage rows carry the token count and token type they were charged for;
    top-ups leave both empty.
    """

    __tablename__ = "user_transactions"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(19, 9), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    message_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("messages.id", ondelete="SET NULL"),
        index=True,
    )
    model_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("models.id", ondelete="SET NULL"),
    )
    agent_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("agents.id", ondelete="SET NULL"),
        index=True,
    )
    token_amount: Mapped[int | None] = mapped_column(Integer)
    token_type: Mapped[str | None] = mapped_column(String(10))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_user_transactions_user_created", "user_id", "created_at"),
        Index("ix_user_transactions_amount_type", "amount", "type"),
    )

    def __repr__(self) -> str:
        return f"<Transaction {self.type} {self.amount}>"
