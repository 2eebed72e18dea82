"""Initial schema: users, agents, models, tools, chats, documents, credits, knowledge.

Revision ID: 0001
Revises:
Create Date: 2026-03-01 12:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from pgvector.sqlalchemy import Vector

# Revision identifiers
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UUID = postgresql.UUID(as_uuid=False)
MONEY = sa.Numeric(19, 9)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create initial database schema."""

    op.execute("CREATE EXTENSION IF NOT EXISTS vector")

    # Users and credentials
    op.create_table(
        "users",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("user_name", sa.String(100), unique=True),
        sa.Column("name", sa.String(255)),
        sa.Column("image", sa.String(500)),
        sa.Column("is_admin", sa.Boolean, server_default="false"),
        *_timestamps(),
    )
    op.create_table(
        "user_credits",
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("credit_balance", MONEY, server_default="0"),
        sa.Column("lifetime_credits", MONEY, server_default="0"),
    )
    op.create_table(
        "user_api_keys",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("key_prefix", sa.String(12), nullable=False),
        sa.Column("key_hash", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean, server_default="true"),
        sa.Column("last_used_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index("ix_user_api_keys_user_id", "user_api_keys", ["user_id"])
    op.create_index("ix_user_api_keys_key_prefix", "user_api_keys", ["key_prefix"])

    # Model catalogue
    op.create_table(
        "models",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("model_display_name", sa.String(255), nullable=False),
        sa.Column("model", sa.String(255), nullable=False, unique=True),
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column("model_type", sa.String(20), server_default="text-large"),
        sa.Column("description", sa.Text),
        sa.Column("cost_per_million_input_tokens", MONEY),
        sa.Column("cost_per_million_output_tokens", MONEY),
        sa.Column("provider_options", postgresql.JSONB),
        *_timestamps(),
    )

    # Agents
    op.create_table(
        "agents",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("agent", sa.String(255), nullable=False),
        sa.Column("agent_display_name", sa.String(255), nullable=False),
        sa.Column("system_prompt", sa.Text, nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("visibility", sa.String(20), server_default="public"),
        sa.Column("featured", sa.Boolean, server_default="false"),
        sa.Column("artifacts_enabled", sa.Boolean, server_default="true"),
        sa.Column("creator_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("thumbnail_url", sa.String(1024)),
        sa.Column("avatar_url", sa.String(1024)),
        sa.Column("customization", postgresql.JSONB),
        *_timestamps(),
    )
    op.create_index("ix_agents_agent", "agents", ["agent"])
    op.create_index("ix_agents_creator_id", "agents", ["creator_id"])
    op.create_index("ix_agents_visibility_created", "agents", ["visibility", "created_at"])

    op.create_table(
        "agent_models",
        sa.Column("agent_id", UUID, sa.ForeignKey("agents.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("model_id", UUID, sa.ForeignKey("models.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("is_default", sa.Boolean, server_default="false"),
    )
    op.create_table(
        "suggested_prompts",
        sa.Column("agent_id", UUID, sa.ForeignKey("agents.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("prompts", postgresql.JSONB, nullable=False, server_default="[]"),
    )

    # Knowledge
    op.create_table(
        "knowledge_items",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("agent_id", UUID, sa.ForeignKey("agents.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(512), nullable=False),
        sa.Column("type", sa.String(20), server_default="text"),
        sa.Column("content", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("source_url", sa.String(2048)),
        *_timestamps(),
    )
    op.create_index("ix_knowledge_items_agent_id", "knowledge_items", ["agent_id"])

    op.create_table(
        "knowledge_chunks",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("agent_id", UUID, sa.ForeignKey("agents.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "knowledge_item_id",
            UUID,
            sa.ForeignKey("knowledge_items.id", ondelete="CASCADE"),
        ),
        sa.Column("source_url", sa.String(2048)),
        sa.Column("title", sa.String(512)),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("chunk_index", sa.Integer, nullable=False, server_default="0"),
        sa.Column("embedding", Vector(1536), nullable=False),
        sa.Column("extra_data", postgresql.JSONB, nullable=False, server_default="{}"),
        *_timestamps(),
    )
    op.create_index("ix_knowledge_chunks_agent_id", "knowledge_chunks", ["agent_id"])
    op.execute(
        "CREATE INDEX ix_knowledge_chunks_embedding ON knowledge_chunks "
        "USING hnsw (embedding vector_cosine_ops) WITH (m = 16, ef_construction = 64)"
    )

    # Tags
    op.create_table(
        "tags",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        *_timestamps(),
    )
    op.create_table(
        "agent_tags",
        sa.Column("agent_id", UUID, sa.ForeignKey("agents.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("tag_id", UUID, sa.ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
    )

    # Tools
    op.create_table(
        "tools",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("tool", sa.String(100), nullable=False, unique=True),
        sa.Column("tool_display_name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("parameter_schema", postgresql.JSONB),
        sa.Column("config", postgresql.JSONB),
        *_timestamps(),
    )
    op.create_table(
        "tool_groups",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text),
        *_timestamps(),
    )
    op.create_table(
        "tool_group_tools",
        sa.Column(
            "tool_group_id", UUID, sa.ForeignKey("tool_groups.id", ondelete="CASCADE"), primary_key=True
        ),
        sa.Column("tool_id", UUID, sa.ForeignKey("tools.id", ondelete="CASCADE"), primary_key=True),
    )
    op.create_table(
        "agent_tool_groups",
        sa.Column("agent_id", UUID, sa.ForeignKey("agents.id", ondelete="CASCADE"), primary_key=True),
        sa.Column(
            "tool_group_id", UUID, sa.ForeignKey("tool_groups.id", ondelete="CASCADE"), primary_key=True
        ),
    )

    # Chats and messages
    op.create_table(
        "chats",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("agent_id", UUID, sa.ForeignKey("agents.id", ondelete="CASCADE")),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("visibility", sa.String(20), server_default="private"),
        *_timestamps(),
    )
    op.create_index("ix_chats_user_id", "chats", ["user_id"])
    op.create_index("ix_chats_agent_id", "chats", ["agent_id"])
    op.create_index("ix_chats_created_at", "chats", ["created_at"])

    op.create_table(
        "messages",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("chat_id", UUID, sa.ForeignKey("chats.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("parts", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("attachments", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("model_id", UUID, sa.ForeignKey("models.id", ondelete="SET NULL")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_messages_chat_id", "messages", ["chat_id"])
    op.create_index("ix_messages_model_id", "messages", ["model_id"])
    op.create_index("ix_messages_created_at", "messages", ["created_at"])

    # Artifacts
    op.create_table(
        "documents",
        sa.Column("id", UUID, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("content", sa.Text),
        sa.Column("kind", sa.String(20), server_default="text"),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.PrimaryKeyConstraint("id", "created_at"),
    )
    op.create_index("ix_documents_user_id", "documents", ["user_id"])

    op.create_table(
        "suggestions",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("document_id", UUID, nullable=False),
        sa.Column("document_created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("original_text", sa.Text, nullable=False),
        sa.Column("suggested_text", sa.Text, nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("is_resolved", sa.Boolean, server_default="false"),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(
            ["document_id", "document_created_at"],
            ["documents.id", "documents.created_at"],
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_suggestions_document", "suggestions", ["document_id", "document_created_at"])

    # Credit ledger
    op.create_table(
        "user_transactions",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("message_id", UUID, sa.ForeignKey("messages.id", ondelete="SET NULL")),
        sa.Column("model_id", UUID, sa.ForeignKey("models.id", ondelete="SET NULL")),
        sa.Column("agent_id", UUID, sa.ForeignKey("agents.id", ondelete="SET NULL")),
        sa.Column("token_amount", sa.Integer),
        sa.Column("token_type", sa.String(10)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_user_transactions_user_id", "user_transactions", ["user_id"])
    op.create_index("ix_user_transactions_message_id", "user_transactions", ["message_id"])
    op.create_index("ix_user_transactions_agent_id", "user_transactions", ["agent_id"])
    op.create_index("ix_user_transactions_user_created", "user_transactions", ["user_id", "created_at"])
    op.create_index("ix_user_transactions_amount_type", "user_transactions", ["amount", "type"])


def downgrade() -> None:
    """Drop all tables."""
    for table in (
        "user_transactions",
        "suggestions",
        "documents",
        "messages",
        "chats",
        "agent_tool_groups",
        "tool_group_tools",
        "tool_groups",
        "tools",
        "agent_tags",
        "tags",
        "knowledge_chunks",
        "knowledge_items",
        "suggested_prompts",
        "agent_models",
        "agents",
        "models",
        "user_api_keys",
        "user_credits",
        "users",
    ):
        op.drop_table(table)
    op.execute("DROP EXTENSION IF EXISTS vector")
