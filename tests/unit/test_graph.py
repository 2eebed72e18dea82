"""Unit tests for the chat turn graph."""

import json

import pytest
from langchain_core.messages import AIMessageChunk, HumanMessage, SystemMessage, ToolMessage
from langchain_core.messages.tool import tool_call_chunk
from pydantic import BaseModel

from agentchat.ai.tools import ToolContext, ToolDefinition
from agentchat.chat.graph import ChatTurn, ThinkTagSplitter, map_finish_reason, run_chat_graph
from agentchat.streaming import DataStreamWriter, MessageAccumulator, parse_stream_part


class WeatherArgs(BaseModel):
    latitude: float
    longitude: float


def weather_tool(result=None, error: Exception | None = None) -> ToolDefinition:
    async def execute(params: WeatherArgs, context: ToolContext):
        if error:
            raise error
        return result if result is not None else {"temperature": 21, "latitude": params.latitude}

    return ToolDefinition(
        name="getWeather",
        description="Get the current weather at a location",
        parameters=WeatherArgs,
        execute=execute,
    )


def tool_step(call_id: str = "call_1") -> list[AIMessageChunk]:
    return [
        AIMessageChunk(
            content="",
            tool_call_chunks=[tool_call_chunk(name="getWeather", args='{"latitude": 48.8', id=call_id, index=0)],
        ),
        AIMessageChunk(
            content="",
            tool_call_chunks=[tool_call_chunk(name=None, args=', "longitude": 2.3}', id=None, index=0)],
        ),
        AIMessageChunk(
            content="",
            usage_metadata={"input_tokens": 20, "output_tokens": 8, "total_tokens": 28},
            response_metadata={"finish_reason": "tool_calls"},
        ),
    ]


def text_step(*texts: str, finish_reason: str = "stop") -> list[AIMessageChunk]:
    chunks = [AIMessageChunk(content=t) for t in texts]
    chunks.append(
        AIMessageChunk(
            content="",
            usage_metadata={"input_tokens": 30, "output_tokens": 6, "total_tokens": 36},
            response_metadata={"finish_reason": finish_reason},
        )
    )
    return chunks


def make_turn(tools: dict | None = None, model: str = "gpt-4o") -> ChatTurn:
    return ChatTurn(
        model=model,
        writer=DataStreamWriter(),
        message_id="msg-1",
        tools=tools or {},
        context=ToolContext(user_id="user-1"),
    )


async def drain(writer: DataStreamWriter) -> list[str]:
    writer.close()
    return [line async for line in writer]


def codes(lines: list[str]) -> str:
    return "".join(line[0] for line in lines)


INPUT = [SystemMessage(content="You are helpful."), HumanMessage(content="Weather in Paris?")]


class TestMapFinishReason:
    """Tests for provider finish reason mapping."""

    def test_known(self):
        assert map_finish_reason("stop") == "stop"
        assert map_finish_reason("tool_calls") == "tool-calls"
        assert map_finish_reason("content_filter") == "content-filter"

    def test_unknown(self):
        assert map_finish_reason(None) == "unknown"
        assert map_finish_reason("weird") == "other"


class TestThinkTagSplitter:
    """Tests for separating reasoning from answer text."""

    def test_single_chunk(self):
        splitter = ThinkTagSplitter()
        out = splitter.feed("<think>plan</think>Answer")
        assert out == [("reasoning", "plan"), ("text", "Answer")]

    def test_tag_split_across_chunks(self):
        splitter = ThinkTagSplitter()
        out = splitter.feed("<thi") + splitter.feed("nk>deep") + splitter.feed(" thought</th")
        out += splitter.feed("ink>Done") + splitter.flush()

        assert "".join(v for k, v in out if k == "reasoning") == "deep thought"
        assert "".join(v for k, v in out if k == "text") == "Done"

    def test_plain_text_with_angle_bracket(self):
        splitter = ThinkTagSplitter()
        out = splitter.feed("a <") + splitter.feed("b") + splitter.flush()
        assert "".join(v for _, v in out) == "a <b"


@pytest.mark.asyncio
class TestRunChatGraph:
    """Tests for streaming a whole turn through the graph."""

    async def test_text_only(self, fake_llm):
        model = fake_llm(text_step("Hello", " there"))
        turn = make_turn()

        final = await run_chat_graph(turn, INPUT, max_steps=5)
        lines = await drain(turn.writer)

        assert codes(lines) == "f00e"
        assert final["finish_reason"] == "stop"
        assert turn.usage.prompt_tokens == 30
        assert model.bound_tools is None
        finish = parse_stream_part(lines[-1]).value
        assert finish["usage"] == {"promptTokens": 30, "completionTokens": 6}

    async def test_tool_round_trip_ordering(self, fake_llm):
        model = fake_llm(tool_step(), text_step("It is 21 degrees."))
        turn = make_turn({"getWeather": weather_tool()})

        final = await run_chat_graph(turn, INPUT, max_steps=5)
        lines = await drain(turn.writer)

        # The first step's finish part waits for the tool result
        assert codes(lines) == "fbcc9aef0e"
        call = parse_stream_part(lines[4]).value
        assert call == {"toolCallId": "call_1", "toolName": "getWeather", "args": {"latitude": 48.8, "longitude": 2.3}}
        result = parse_stream_part(lines[5]).value
        assert result["result"]["temperature"] == 21
        assert parse_stream_part(lines[6]).value["finishReason"] == "tool-calls"

        assert final["finish_reason"] == "stop"
        assert turn.usage.prompt_tokens == 50
        assert turn.usage.completion_tokens == 14
        assert model.bound_tools[0]["function"]["name"] == "getWeather"

        second_call = model.calls[1]
        assert isinstance(second_call[-1], ToolMessage)
        assert json.loads(second_call[-1].content)["temperature"] == 21

    async def test_accumulated_message(self, fake_llm):
        fake_llm(tool_step(), text_step("Sunny."))
        turn = make_turn({"getWeather": weather_tool()})
        accumulator = MessageAccumulator("msg-1")
        turn.writer.subscribe(accumulator.feed)

        await run_chat_graph(turn, INPUT, max_steps=5)

        message = accumulator.to_message()
        assert [p["type"] for p in message["parts"]] == ["step-start", "tool-invocation", "step-start", "text"]
        assert message["parts"][1]["toolInvocation"]["state"] == "result"

    async def test_failing_tool_reported_to_model(self, fake_llm):
        model = fake_llm(tool_step(), text_step("Sorry, no weather."))
        turn = make_turn({"getWeather": weather_tool(error=RuntimeError("service down"))})

        await run_chat_graph(turn, INPUT, max_steps=5)
        lines = await drain(turn.writer)

        result = parse_stream_part(next(line for line in lines if line.startswith("a:"))).value
        assert result["result"] == {"error": "service down"}
        assert "service down" in model.calls[1][-1].content

    async def test_unavailable_tool(self, fake_llm):
        fake_llm(tool_step(), text_step("Ok."))
        turn = make_turn({})

        await run_chat_graph(turn, INPUT, max_steps=5)
        lines = await drain(turn.writer)

        result = parse_stream_part(next(line for line in lines if line.startswith("a:"))).value
        assert result["result"] == {"error": "Tool not available: getWeather"}

    async def test_step_limit(self, fake_llm):
        model = fake_llm(tool_step("call_1"), tool_step("call_2"))
        turn = make_turn({"getWeather": weather_tool()})

        final = await run_chat_graph(turn, INPUT, max_steps=1)
        lines = await drain(turn.writer)

        assert len(model.calls) == 1
        assert final["finish_reason"] == "tool-calls"
        assert codes(lines).endswith("ae")

    async def test_reasoning_model_think_tags(self, fake_llm):
        fake_llm(text_step("<think>hmm</think>", "Answer"))
        turn = make_turn(model="qwen-qwq-32b")

        final = await run_chat_graph(turn, INPUT, max_steps=5)
        lines = await drain(turn.writer)

        assert codes(lines) == "fg0e"
        assert final["messages"][-1].content == "Answer"

    async def test_model_error_propagates(self, fake_llm):
        fake_llm([AIMessageChunk(content="Partial"), RuntimeError("connection reset")])
        turn = make_turn()

        with pytest.raises(RuntimeError, match="connection reset"):
            await run_chat_graph(turn, INPUT, max_steps=5)
