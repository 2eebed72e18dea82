"""User, credit balance and API key models."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from agentchat.models.base import Base, TimestampMixin, UUIDMixin


class User(Base, UUIDMixin, TimestampMixin):
    """A registered user. Identity itself lives with the auth provider."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    user_name: Mapped[str | None] = mapped_column(String(100), unique=True)
    name: Mapped[str | None] = mapped_column(String(255))
    image: Mapped[str | None] = mapped_column(String(500))
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False)

    credits: Mapped["UserCredits | None"] = relationship(
        "UserCredits",
        back_populates="user",
        uselist=False,
    )
    api_keys: Mapped[list["UserAPIKey"]] = relationship(
        "UserAPIKey",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<User {self.email}>"


class UserCredits(Base):
    """Current credit balance of a user."""

    __tablename__ = "user_credits"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    credit_balance: Mapped[Decimal] = mapped_column(Numeric(19, 9), default=Decimal("0"))
    lifetime_credits: Mapped[Decimal] = mapped_column(Numeric(19, 9), default=Decimal("0"))

    user = relationship("User", back_populates="credits")

    def __repr__(self) -> str:
        return f"<UserCredits {self.user_id[:8]} {self.credit_balance}>"


class UserAPIKey(Base, UUIDMixin, TimestampMixin):
    """API key a user authenticates with."""

    __tablename__ = "user_api_keys"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user = relationship("User", back_populates="api_keys")

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    key_prefix: Mapped[str] = mapped_column(String(12), nullable=False, index=True)
    key_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<UserAPIKey {self.key_prefix}...>"
