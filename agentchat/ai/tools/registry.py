"""Tool registry for a chat turn."""

import structlog

from agentchat.ai.tools.base import ToolContext, ToolDefinition
from agentchat.ai.tools.documents import document_tools
from agentchat.ai.tools.images import image_tools
from agentchat.ai.tools.knowledge import knowledge_tool
from agentchat.ai.tools.weather import weather_tool
from agentchat.ai.tools.web import web_tools

logger = structlog.get_logger()

SEARCH_TOOL_NAMES = ("searchTool", "retrieveTool")


def tool_registry(context: ToolContext) -> dict[str, ToolDefinition]:
    """Every tool available in ``context``.

    Document tools need a signed-in user and a stream to write to, and
    knowledge search needs an agent.
    """
    registry: dict[str, ToolDefinition] = {"getWeather": weather_tool()}
    if context.user_id and context.writer is not None:
        registry.update(document_tools())
    registry.update(web_tools())
    registry.update(image_tools())
    if context.agent_id:
        registry["knowledgeSearch"] = knowledge_tool()
    return registry


def select_tools(
    registry: dict[str, ToolDefinition],
    names: list[str],
    search_enabled: bool | None = None,
) -> dict[str, ToolDefinition]:
    """The agent's tools, in order, that the registry can actually run.

    Search tools are dropped only when search is explicitly disabled.
    """
    selected: dict[str, ToolDefinition] = {}
    for name in names:
        if name in selected:
            continue
        if search_enabled is False and name in SEARCH_TOOL_NAMES:
            continue
        tool = registry.get(name)
        if tool is None:
            logger.debug("tool_not_available", tool=name)
            continue
        selected[name] = tool
    return selected
