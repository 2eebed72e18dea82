"""LangGraph workflow for one chat turn.

The model is called, its output streamed to the client, requested tools run
and their results fed back, until the model stops asking for tools or the
step limit is reached.
"""

import json
from dataclasses import dataclass, field, replace
from operator import add
from typing import Annotated, Any, TypedDict

import structlog
from langchain_core.messages import (
    AIMessage,
    AIMessageChunk,
    BaseMessage,
    ToolMessage,
    message_chunk_to_message,
)
from langchain_core.runnables import RunnableConfig
from langgraph.graph import END, StateGraph

from agentchat.ai.providers import get_chat_model, supports_reasoning
from agentchat.ai.tools import ToolContext, ToolDefinition
from agentchat.streaming import DataStreamWriter
from agentchat.streaming.protocol import usage_payload

logger = structlog.get_logger()

FINISH_REASONS = {
    "stop": "stop",
    "length": "length",
    "tool_calls": "tool-calls",
    "function_call": "tool-calls",
    "content_filter": "content-filter",
}


def map_finish_reason(reason: str | None) -> str:
    if reason is None:
        return "unknown"
    return FINISH_REASONS.get(reason, "other")


@dataclass
class UsageTally:
    """Token usage summed over every step of a turn."""

    prompt_tokens: int = 0
    completion_tokens: int = 0

    def add(self, prompt_tokens: int, completion_tokens: int) -> None:
        self.prompt_tokens += prompt_tokens
        self.completion_tokens += completion_tokens

    def as_payload(self) -> dict[str, int | None]:
        return usage_payload(self.prompt_tokens, self.completion_tokens)


class ThinkTagSplitter:
    """Separates ``<think>...</think>`` reasoning from answer text in a stream.

    Tags may be split across chunks, so a possible partial tag at the end
    of a chunk is held back until the next one arrives.
    """

    OPEN = "<think>"
    CLOSE = "</think>"

    def __init__(self) -> None:
        self._buffer = ""
        self._inside = False

    def _emit(self, out: list[tuple[str, str]], text: str) -> None:
        if text:
            out.append(("reasoning" if self._inside else "text", text))

    def feed(self, text: str) -> list[tuple[str, str]]:
        self._buffer += text
        out: list[tuple[str, str]] = []
        while self._buffer:
            tag = self.CLOSE if self._inside else self.OPEN
            index = self._buffer.find(tag)
            if index >= 0:
                self._emit(out, self._buffer[:index])
                self._buffer = self._buffer[index + len(tag):]
                self._inside = not self._inside
                continue
            keep = 0
            for size in range(min(len(tag) - 1, len(self._buffer)), 0, -1):
                if tag.startswith(self._buffer[-size:]):
                    keep = size
                    break
            self._emit(out, self._buffer[: len(self._buffer) - keep])
            self._buffer = self._buffer[len(self._buffer) - keep:]
            break
        return out

    def flush(self) -> list[tuple[str, str]]:
        out: list[tuple[str, str]] = []
        self._emit(out, self._buffer)
        self._buffer = ""
        return out


@dataclass
class ChatTurn:
    """Per-turn dependencies handed to the graph nodes through the run config."""

    model: str
    writer: DataStreamWriter
    message_id: str
    tools: dict[str, ToolDefinition] = field(default_factory=dict)
    context: ToolContext = field(default_factory=ToolContext)
    usage: UsageTally = field(default_factory=UsageTally)
    model_options: dict[str, Any] = field(default_factory=dict)
    # Finish-step part held back until the step's tool results are written
    pending_finish: tuple[str, dict[str, int | None]] | None = None


class ChatState(TypedDict, total=False):
    messages: Annotated[list[BaseMessage], add]
    step: int
    max_steps: int
    finish_reason: str


def _turn(config: RunnableConfig) -> ChatTurn:
    return config["configurable"]["turn"]


def _usage_counts(message: AIMessageChunk) -> tuple[int, int]:
    usage = message.usage_metadata or {}
    return int(usage.get("input_tokens") or 0), int(usage.get("output_tokens") or 0)


async def call_model(state: ChatState, config: RunnableConfig) -> dict[str, Any]:
    """Stream one model step to the client."""
    turn = _turn(config)
    writer = turn.writer

    llm = get_chat_model(turn.model, **turn.model_options)
    runnable = llm.bind_tools([t.to_openai_tool() for t in turn.tools.values()]) if turn.tools else llm
    splitter = ThinkTagSplitter() if supports_reasoning(turn.model) else None

    writer.write_start_step(turn.message_id)

    aggregate: AIMessageChunk | None = None
    text = ""
    call_ids: dict[int, str] = {}

    def emit_text(chunks: list[tuple[str, str]]) -> None:
        nonlocal text
        for kind, value in chunks:
            if kind == "reasoning":
                writer.write_reasoning(value)
            else:
                text += value
                writer.write_text(value)

    async for chunk in runnable.astream(state["messages"]):
        aggregate = chunk if aggregate is None else aggregate + chunk

        reasoning = chunk.additional_kwargs.get("reasoning_content")
        if reasoning:
            writer.write_reasoning(reasoning)

        if isinstance(chunk.content, str) and chunk.content:
            emit_text(splitter.feed(chunk.content) if splitter else [("text", chunk.content)])

        for tool_chunk in chunk.tool_call_chunks:
            index = tool_chunk.get("index") or 0
            if tool_chunk.get("id") and index not in call_ids:
                call_ids[index] = tool_chunk["id"]
                writer.write_tool_call_streaming_start(tool_chunk["id"], tool_chunk.get("name") or "")
            if tool_chunk.get("args") and index in call_ids:
                writer.write_tool_call_delta(call_ids[index], tool_chunk["args"])

    if splitter:
        emit_text(splitter.flush())

    if aggregate is None:
        aggregate = AIMessageChunk(content="")
    message = message_chunk_to_message(aggregate)
    if splitter and isinstance(message, AIMessage):
        message.content = text

    for invalid in getattr(message, "invalid_tool_calls", []) or []:
        logger.warning("invalid_tool_call", tool=invalid.get("name"), error=invalid.get("error"))

    for call in message.tool_calls:
        writer.write_tool_call(call["id"], call["name"], call["args"])

    prompt_tokens, completion_tokens = _usage_counts(aggregate)
    turn.usage.add(prompt_tokens, completion_tokens)
    finish_reason = map_finish_reason(aggregate.response_metadata.get("finish_reason"))
    if message.tool_calls:
        finish_reason = "tool-calls"
    step_usage = usage_payload(prompt_tokens, completion_tokens)

    if message.tool_calls:
        turn.pending_finish = (finish_reason, step_usage)
    else:
        writer.write_finish_step(finish_reason, step_usage)

    logger.debug(
        "model_step_completed",
        step=state.get("step", 0),
        finish_reason=finish_reason,
        tool_calls=len(message.tool_calls),
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
    )

    return {
        "messages": [message],
        "step": state.get("step", 0) + 1,
        "finish_reason": finish_reason,
    }


async def run_tools(state: ChatState, config: RunnableConfig) -> dict[str, Any]:
    """Execute the tool calls of the last model step.

    A failing tool produces an ``{"error": ...}`` result so the model can
    see the failure and carry on.
    """
    turn = _turn(config)
    writer = turn.writer
    last = state["messages"][-1]
    context = replace(turn.context, messages=list(state["messages"]))

    results: list[BaseMessage] = []
    for call in last.tool_calls:
        tool = turn.tools.get(call["name"])
        if tool is None:
            result: Any = {"error": f"Tool not available: {call['name']}"}
        else:
            try:
                result = await tool.run(call["args"], context)
            except Exception as e:
                logger.warning("tool_execution_failed", tool=call["name"], error=str(e))
                result = {"error": str(e)}

        writer.write_tool_result(call["id"], result)
        results.append(
            ToolMessage(
                content=json.dumps(result, default=str),
                tool_call_id=call["id"],
                name=call["name"],
            )
        )

    if turn.pending_finish is not None:
        finish_reason, step_usage = turn.pending_finish
        writer.write_finish_step(finish_reason, step_usage, is_continued=False)
        turn.pending_finish = None

    return {"messages": results}


def route_after_model(state: ChatState) -> str:
    last = state["messages"][-1]
    if isinstance(last, AIMessage) and last.tool_calls:
        return "tools"
    return "end"


def route_after_tools(state: ChatState) -> str:
    if state.get("step", 0) < state.get("max_steps", 1):
        return "continue"
    return "end"


def create_chat_graph() -> StateGraph:
    graph = StateGraph(ChatState)

    graph.add_node("call_model", call_model)
    graph.add_node("run_tools", run_tools)

    graph.set_entry_point("call_model")
    graph.add_conditional_edges(
        "call_model",
        route_after_model,
        {"tools": "run_tools", "end": END},
    )
    graph.add_conditional_edges(
        "run_tools",
        route_after_tools,
        {"continue": "call_model", "end": END},
    )
    return graph


_compiled_graph = None


def get_compiled_graph():
    """Get or create the compiled graph."""
    global _compiled_graph
    if _compiled_graph is None:
        _compiled_graph = create_chat_graph().compile()
    return _compiled_graph


async def run_chat_graph(turn: ChatTurn, messages: list[BaseMessage], max_steps: int) -> ChatState:
    """Run a whole turn and return the final graph state."""
    initial: ChatState = {
        "messages": messages,
        "step": 0,
        "max_steps": max_steps,
        "finish_reason": "unknown",
    }
    return await get_compiled_graph().ainvoke(
        initial,
        config={
            "configurable": {"turn": turn},
            # Two nodes per step plus headroom
            "recursion_limit": max_steps * 2 + 5,
        },
    )
