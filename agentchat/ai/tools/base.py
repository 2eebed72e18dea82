"""Tool contract: a validated parameter model plus an async executor."""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import pydantic
from langchain_core.messages import BaseMessage
from langchain_core.utils.function_calling import convert_to_openai_tool
from pydantic import BaseModel

from agentchat.errors import ToolExecutionError
from agentchat.streaming import DataStreamWriter


@dataclass
class ToolContext:
    """What a tool can see of the turn it runs in."""

    user_id: str | None = None
    writer: DataStreamWriter | None = None
    messages: list[BaseMessage] = field(default_factory=list)
    agent_id: str | None = None
    chat_id: str | None = None
    model_id: str | None = None


Executor = Callable[[Any, ToolContext], Awaitable[Any]]


@dataclass
class ToolDefinition:
    name: str
    description: str
    parameters: type[BaseModel]
    execute: Executor

    def to_openai_tool(self) -> dict[str, Any]:
        """Function schema handed to ``bind_tools``."""
        schema = convert_to_openai_tool(self.parameters)
        schema["function"]["name"] = self.name
        schema["function"]["description"] = self.description
        return schema

    async def run(self, args: dict[str, Any], context: ToolContext) -> Any:
        """Validate model-supplied arguments and execute.

        Raises:
            ToolExecutionError: The arguments do not match the parameters.
        """
        try:
            params = self.parameters.model_validate(args or {})
        except pydantic.ValidationError as e:
            raise ToolExecutionError(f"Invalid arguments for {self.name}: {e}") from e
        return await self.execute(params, context)
