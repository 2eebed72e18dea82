"""Database models."""

from agentchat.models.agent import (
    Agent,
    AgentModel,
    KnowledgeItem,
    KnowledgeType,
    SuggestedPrompts,
    Visibility,
)
from agentchat.models.base import Base
from agentchat.models.billing import TokenType, Transaction, TransactionType
from agentchat.models.chat import Chat, Message, MessageRole
from agentchat.models.document import ArtifactKind, Document, Suggestion
from agentchat.models.knowledge import KnowledgeChunk
from agentchat.models.model import Model, ModelType
from agentchat.models.tag import AgentTag, Tag
from agentchat.models.tool import AgentToolGroup, Tool, ToolGroup, ToolGroupTool
from agentchat.models.user import User, UserAPIKey, UserCredits

__all__ = [
    "Base",
    "User",
    "UserCredits",
    "UserAPIKey",
    "Agent",
    "AgentModel",
    "SuggestedPrompts",
    "KnowledgeItem",
    "KnowledgeType",
    "Visibility",
    "Model",
    "ModelType",
    "Tag",
    "AgentTag",
    "Tool",
    "ToolGroup",
    "ToolGroupTool",
    "AgentToolGroup",
    "Chat",
    "Message",
    "MessageRole",
    "Document",
    "Suggestion",
    "ArtifactKind",
    "Transaction",
    "TransactionType",
    "TokenType",
    "KnowledgeChunk",
]
