"""UI message shape and conversion to LangChain chat messages."""

import json
from datetime import datetime
from typing import Any

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)
from pydantic import BaseModel, Field


class Attachment(BaseModel):
    url: str
    name: str | None = None
    content_type: str | None = Field(default=None, alias="contentType")

    model_config = {"populate_by_name": True}


class UIMessage(BaseModel):
    """A chat message as exchanged with clients and stored in ``parts``."""

    id: str
    role: str
    content: str = ""
    parts: list[dict[str, Any]] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list, alias="experimental_attachments")
    created_at: datetime | None = Field(default=None, alias="createdAt")

    model_config = {"populate_by_name": True}

    def text(self) -> str:
        """Text content, from parts when present."""
        texts = [p.get("text", "") for p in self.parts if p.get("type") == "text"]
        if texts:
            return "".join(texts)
        return self.content

    def stored_parts(self) -> list[dict[str, Any]]:
        """Parts to persist; a bare content string becomes one text part."""
        if self.parts:
            return self.parts
        return [{"type": "text", "text": self.content}] if self.content else []


def get_most_recent_user_message(messages: list[UIMessage]) -> UIMessage | None:
    for message in reversed(messages):
        if message.role == "user":
            return message
    return None


def get_trailing_message_id(messages: list[dict[str, Any]]) -> str | None:
    if not messages:
        return None
    return messages[-1].get("id")


def _human_message(message: UIMessage) -> HumanMessage:
    images = [
        a for a in message.attachments
        if (a.content_type or "").startswith("image/")
    ]
    if not images:
        return HumanMessage(content=message.text(), id=message.id)
    content: list[str | dict] = [{"type": "text", "text": message.text()}]
    content.extend({"type": "image_url", "image_url": {"url": a.url}} for a in images)
    return HumanMessage(content=content, id=message.id)


def _serialize_result(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, default=str)


def _assistant_messages(message: UIMessage) -> list[BaseMessage]:
    """Split an assistant UI message into AI and tool messages per step.

    Tool invocations without a result were interrupted and are dropped.
    """
    steps: dict[int, dict[str, Any]] = {}
    order: list[int] = []
    step = 0

    def current(index: int) -> dict[str, Any]:
        if index not in steps:
            steps[index] = {"text": "", "calls": []}
            order.append(index)
        return steps[index]

    for part in message.parts:
        part_type = part.get("type")
        if part_type == "step-start":
            if steps:
                step = max(steps) + 1
        elif part_type == "text":
            current(step)["text"] += part.get("text", "")
        elif part_type == "tool-invocation":
            invocation = part.get("toolInvocation") or {}
            if invocation.get("state") != "result":
                continue
            current(invocation.get("step", step))["calls"].append(invocation)

    if not steps and message.content:
        return [AIMessage(content=message.content, id=message.id)]

    converted: list[BaseMessage] = []
    for index in order:
        entry = steps[index]
        calls = entry["calls"]
        converted.append(
            AIMessage(
                content=entry["text"],
                tool_calls=[
                    {
                        "id": call["toolCallId"],
                        "name": call["toolName"],
                        "args": call.get("args") or {},
                    }
                    for call in calls
                ],
            )
        )
        converted.extend(
            ToolMessage(
                content=_serialize_result(call.get("result")),
                tool_call_id=call["toolCallId"],
                name=call["toolName"],
            )
            for call in calls
        )
    return converted


def to_langchain_messages(messages: list[UIMessage]) -> list[BaseMessage]:
    """Convert UI messages into model input."""
    converted: list[BaseMessage] = []
    for message in messages:
        if message.role == "user":
            converted.append(_human_message(message))
        elif message.role == "assistant":
            converted.extend(_assistant_messages(message))
        elif message.role == "system":
            converted.append(SystemMessage(content=message.text()))
    return converted
