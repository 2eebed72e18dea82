"""Server-side tools the model can invoke."""

from agentchat.ai.tools.base import ToolContext, ToolDefinition
from agentchat.ai.tools.registry import select_tools, tool_registry

__all__ = ["ToolContext", "ToolDefinition", "select_tools", "tool_registry"]
