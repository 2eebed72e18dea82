"""Rebuild UI message state from a data stream.

``MessageAccumulator`` is the consumer half of the protocol: it folds parsed
parts into an assistant message the way the chat UI renders it, with text,
reasoning and tool-invocation parts grouped by step. ``ArtifactState`` folds
the custom ``data`` events that drive the artifact panel.
"""

import copy
import json
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from agentchat.streaming.protocol import StreamPart, StreamPartType, parse_stream_part


class ToolInvocationState(StrEnum):
    PARTIAL_CALL = "partial-call"
    CALL = "call"
    RESULT = "result"


def _close_json(prefix: str) -> str | None:
    """Close the open strings and containers of a JSON prefix."""
    stack: list[str] = []
    in_string = False
    escaped = False
    for char in prefix:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in "{[":
            stack.append("}" if char == "{" else "]")
        elif char in "}]":
            if not stack or stack.pop() != char:
                return None
    if escaped:
        return None
    suffix = '"' if in_string else ""
    return prefix + suffix + "".join(reversed(stack))


def parse_partial_json(text: str | None) -> Any:
    """Best-effort parse of JSON that is still being streamed.

    Returns the value of the longest prefix that can be completed into valid
    JSON, or None when nothing usable has arrived yet.
    """
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        pass
    for end in range(len(text), 0, -1):
        candidate = _close_json(text[:end].rstrip())
        if candidate is None:
            continue
        try:
            return json.loads(candidate)
        except ValueError:
            continue
    return None


class MessageAccumulator:
    """Fold stream parts into one assistant UI message."""

    def __init__(self, message_id: str | None = None):
        self.message_id = message_id
        self.content = ""
        self.parts: list[dict[str, Any]] = []
        self.data: list[Any] = []
        self.annotations: list[Any] = []
        self.error: str | None = None
        self.finish_reason: str | None = None
        self.usage: dict[str, int | None] = {}
        self.step = 0

        self._text_part: dict[str, Any] | None = None
        self._reasoning_part: dict[str, Any] | None = None
        self._invocations: dict[str, dict[str, Any]] = {}
        self._partial_args: dict[str, str] = {}

    @property
    def tool_invocations(self) -> list[dict[str, Any]]:
        return list(self._invocations.values())

    @property
    def has_content(self) -> bool:
        return any(p["type"] != "step-start" for p in self.parts)

    def feed_line(self, line: str) -> StreamPart | None:
        line = line.strip()
        if not line:
            return None
        part = parse_stream_part(line)
        self.feed(part)
        return part

    def feed(self, part: StreamPart) -> None:
        handler = getattr(self, f"_on_{part.type.value}")
        handler(part.value)

    def _on_start_step(self, value: dict[str, Any]) -> None:
        if value.get("messageId") and self.message_id is None:
            self.message_id = value["messageId"]
        self.parts.append({"type": "step-start"})

    def _on_text(self, value: str) -> None:
        if self._text_part is None:
            self._text_part = {"type": "text", "text": value}
            self.parts.append(self._text_part)
        else:
            self._text_part["text"] += value
        self.content += value

    def _on_reasoning(self, value: str) -> None:
        if self._reasoning_part is None:
            self._reasoning_part = {"type": "reasoning", "reasoning": value}
            self.parts.append(self._reasoning_part)
        else:
            self._reasoning_part["reasoning"] += value

    def _upsert_invocation(self, tool_call_id: str, invocation: dict[str, Any]) -> None:
        existing = self._invocations.get(tool_call_id)
        if existing is not None:
            existing.clear()
            existing.update(invocation)
            return
        self._invocations[tool_call_id] = invocation
        self.parts.append({"type": "tool-invocation", "toolInvocation": invocation})

    def _on_tool_call_streaming_start(self, value: dict[str, Any]) -> None:
        tool_call_id = value["toolCallId"]
        self._partial_args[tool_call_id] = ""
        self._upsert_invocation(
            tool_call_id,
            {
                "state": ToolInvocationState.PARTIAL_CALL.value,
                "step": self.step,
                "toolCallId": tool_call_id,
                "toolName": value["toolName"],
                "args": None,
            },
        )

    def _on_tool_call_delta(self, value: dict[str, Any]) -> None:
        tool_call_id = value["toolCallId"]
        invocation = self._invocations.get(tool_call_id)
        if invocation is None:
            raise ValueError(f"Tool call delta for unknown call {tool_call_id}")
        text = self._partial_args.get(tool_call_id, "") + value["argsTextDelta"]
        self._partial_args[tool_call_id] = text
        invocation["args"] = parse_partial_json(text)

    def _on_tool_call(self, value: dict[str, Any]) -> None:
        tool_call_id = value["toolCallId"]
        self._partial_args.pop(tool_call_id, None)
        self._upsert_invocation(
            tool_call_id,
            {
                "state": ToolInvocationState.CALL.value,
                "step": self.step,
                "toolCallId": tool_call_id,
                "toolName": value["toolName"],
                "args": value["args"],
            },
        )

    def _on_tool_result(self, value: dict[str, Any]) -> None:
        invocation = self._invocations.get(value["toolCallId"])
        if invocation is None:
            raise ValueError(f"Tool result for unknown call {value['toolCallId']}")
        invocation["state"] = ToolInvocationState.RESULT.value
        invocation["result"] = value["result"]

    def _on_data(self, value: list[Any]) -> None:
        self.data.extend(value)

    def _on_message_annotations(self, value: list[Any]) -> None:
        self.annotations.extend(value)

    def _on_error(self, value: str) -> None:
        self.error = value

    def _on_finish_step(self, value: dict[str, Any]) -> None:
        self.step += 1
        self._text_part = None
        self._reasoning_part = None
        self.finish_reason = value.get("finishReason")

    def _on_finish_message(self, value: dict[str, Any]) -> None:
        self.finish_reason = value.get("finishReason")
        self.usage = value.get("usage") or {}

    def to_message(self) -> dict[str, Any]:
        """Snapshot of the message in its UI shape."""
        message: dict[str, Any] = {
            "id": self.message_id,
            "role": "assistant",
            "content": self.content,
            "parts": copy.deepcopy(self.parts),
        }
        if self._invocations:
            message["toolInvocations"] = copy.deepcopy(self.tool_invocations)
        if self.annotations:
            message["annotations"] = list(self.annotations)
        return message


class ArtifactStatus(StrEnum):
    IDLE = "idle"
    STREAMING = "streaming"


REPLACING_DELTAS = {"code-delta", "sheet-delta", "image-delta", "react-delta"}


@dataclass
class ArtifactState:
    """State of the artifact panel, driven by data events."""

    document_id: str = "init"
    title: str = ""
    kind: str = "text"
    content: str = ""
    status: str = ArtifactStatus.IDLE.value
    is_visible: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)
    suggestions: list[dict[str, Any]] = field(default_factory=list)

    def apply(self, event: dict[str, Any]) -> None:
        event_type = event.get("type")
        content = event.get("content")

        if event_type == "kind":
            self.kind = content
        elif event_type == "id":
            self.document_id = content
        elif event_type == "title":
            self.title = content
        elif event_type == "clear":
            self.content = ""
            self.status = ArtifactStatus.STREAMING.value
        elif event_type == "text-delta":
            self.content += content or ""
            self.status = ArtifactStatus.STREAMING.value
            self.is_visible = True
        elif event_type in REPLACING_DELTAS:
            # These deltas carry the whole draft so far
            self.content = content or ""
            self.status = ArtifactStatus.STREAMING.value
            self.is_visible = True
        elif event_type == "metadata-update":
            if isinstance(content, dict):
                self.metadata.update(content)
            else:
                self.metadata["name"] = content
        elif event_type == "suggestion":
            self.suggestions.append(content)
        elif event_type == "finish":
            self.status = ArtifactStatus.IDLE.value

    def apply_all(self, events: list[Any]) -> None:
        for event in events:
            if isinstance(event, dict):
                self.apply(event)
