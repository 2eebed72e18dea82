"""Line-oriented data stream protocol spoken between server and chat clients.

Each part is one line, ``<code>:<json>\\n``. Text and tool events follow the
model as it streams; ``data`` parts carry custom events such as artifact
deltas.
"""

import asyncio
import json
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, AsyncIterator, Callable

import structlog

logger = structlog.get_logger()


class StreamPartType(StrEnum):
    TEXT = "text"
    REASONING = "reasoning"
    DATA = "data"
    ERROR = "error"
    MESSAGE_ANNOTATIONS = "message_annotations"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
    TOOL_CALL_STREAMING_START = "tool_call_streaming_start"
    TOOL_CALL_DELTA = "tool_call_delta"
    FINISH_MESSAGE = "finish_message"
    FINISH_STEP = "finish_step"
    START_STEP = "start_step"


PART_CODES: dict[StreamPartType, str] = {
    StreamPartType.TEXT: "0",
    StreamPartType.DATA: "2",
    StreamPartType.ERROR: "3",
    StreamPartType.MESSAGE_ANNOTATIONS: "8",
    StreamPartType.TOOL_CALL: "9",
    StreamPartType.TOOL_RESULT: "a",
    StreamPartType.TOOL_CALL_STREAMING_START: "b",
    StreamPartType.TOOL_CALL_DELTA: "c",
    StreamPartType.FINISH_MESSAGE: "d",
    StreamPartType.FINISH_STEP: "e",
    StreamPartType.START_STEP: "f",
    StreamPartType.REASONING: "g",
}
PART_TYPES: dict[str, StreamPartType] = {code: t for t, code in PART_CODES.items()}

# Required keys for object-valued parts
_REQUIRED_KEYS: dict[StreamPartType, tuple[str, ...]] = {
    StreamPartType.TOOL_CALL: ("toolCallId", "toolName", "args"),
    StreamPartType.TOOL_RESULT: ("toolCallId", "result"),
    StreamPartType.TOOL_CALL_STREAMING_START: ("toolCallId", "toolName"),
    StreamPartType.TOOL_CALL_DELTA: ("toolCallId", "argsTextDelta"),
    StreamPartType.FINISH_MESSAGE: ("finishReason",),
    StreamPartType.FINISH_STEP: ("finishReason",),
    StreamPartType.START_STEP: ("messageId",),
}


@dataclass(frozen=True)
class StreamPart:
    type: StreamPartType
    value: Any


def _validate(part_type: StreamPartType, value: Any) -> None:
    if part_type in (StreamPartType.TEXT, StreamPartType.REASONING, StreamPartType.ERROR):
        if not isinstance(value, str):
            raise ValueError(f'"{part_type}" parts expect a string value')
    elif part_type in (StreamPartType.DATA, StreamPartType.MESSAGE_ANNOTATIONS):
        if not isinstance(value, list):
            raise ValueError(f'"{part_type}" parts expect an array value')
    else:
        if not isinstance(value, dict):
            raise ValueError(f'"{part_type}" parts expect an object value')
        missing = [k for k in _REQUIRED_KEYS[part_type] if k not in value]
        if missing:
            raise ValueError(f'"{part_type}" part is missing {", ".join(missing)}')


def format_stream_part(part_type: StreamPartType | str, value: Any) -> str:
    """Encode one stream part as a protocol line."""
    part_type = StreamPartType(part_type)
    _validate(part_type, value)
    payload = json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    return f"{PART_CODES[part_type]}:{payload}\n"


def parse_stream_part(line: str) -> StreamPart:
    """Decode one protocol line.

    Raises:
        ValueError: Unknown code, malformed line or invalid JSON.
    """
    line = line.rstrip("\n")
    code, sep, payload = line.partition(":")
    if not sep:
        raise ValueError("Failed to parse stream string. No separator found.")
    part_type = PART_TYPES.get(code)
    if part_type is None:
        raise ValueError(f"Failed to parse stream string. Invalid code {code}.")
    try:
        value = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse stream string. Invalid JSON: {e}") from e
    _validate(part_type, value)
    return StreamPart(part_type, value)


def usage_payload(prompt_tokens: int | None, completion_tokens: int | None) -> dict[str, int | None]:
    return {"promptTokens": prompt_tokens, "completionTokens": completion_tokens}


class DataStreamWriter:
    """Queue-backed producer side of a data stream.

    Writers call the ``write_*`` methods from any coroutine; the HTTP response
    iterates the writer to drain encoded lines until ``close()``. Listeners
    see every part as it is written, before it is queued.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._closed = False
        self._listeners: list[Callable[[StreamPart], None]] = []

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: Callable[[StreamPart], None]) -> None:
        self._listeners.append(listener)

    def write(self, part_type: StreamPartType | str, value: Any) -> None:
        if self._closed:
            logger.debug("stream_write_after_close", part_type=str(part_type))
            return
        line = format_stream_part(part_type, value)
        part = StreamPart(StreamPartType(part_type), value)
        for listener in self._listeners:
            listener(part)
        self._queue.put_nowait(line)

    def write_text(self, text: str) -> None:
        if text:
            self.write(StreamPartType.TEXT, text)

    def write_reasoning(self, text: str) -> None:
        if text:
            self.write(StreamPartType.REASONING, text)

    def write_data(self, event: Any) -> None:
        """Write a single custom data event."""
        self.write(StreamPartType.DATA, [event])

    def write_error(self, message: str) -> None:
        self.write(StreamPartType.ERROR, message)

    def write_tool_call_streaming_start(self, tool_call_id: str, tool_name: str) -> None:
        self.write(
            StreamPartType.TOOL_CALL_STREAMING_START,
            {"toolCallId": tool_call_id, "toolName": tool_name},
        )

    def write_tool_call_delta(self, tool_call_id: str, args_text_delta: str) -> None:
        self.write(
            StreamPartType.TOOL_CALL_DELTA,
            {"toolCallId": tool_call_id, "argsTextDelta": args_text_delta},
        )

    def write_tool_call(self, tool_call_id: str, tool_name: str, args: dict[str, Any]) -> None:
        self.write(
            StreamPartType.TOOL_CALL,
            {"toolCallId": tool_call_id, "toolName": tool_name, "args": args},
        )

    def write_tool_result(self, tool_call_id: str, result: Any) -> None:
        self.write(StreamPartType.TOOL_RESULT, {"toolCallId": tool_call_id, "result": result})

    def write_start_step(self, message_id: str) -> None:
        self.write(StreamPartType.START_STEP, {"messageId": message_id})

    def write_finish_step(
        self,
        finish_reason: str,
        usage: dict[str, int | None],
        is_continued: bool = False,
    ) -> None:
        self.write(
            StreamPartType.FINISH_STEP,
            {"finishReason": finish_reason, "usage": usage, "isContinued": is_continued},
        )

    def write_finish_message(self, finish_reason: str, usage: dict[str, int | None]) -> None:
        self.write(StreamPartType.FINISH_MESSAGE, {"finishReason": finish_reason, "usage": usage})

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(None)

    async def __aiter__(self) -> AsyncIterator[str]:
        while True:
            line = await self._queue.get()
            if line is None:
                return
            yield line
