"""Tests for rebuilding messages and artifacts from a stream."""

import pytest

from agentchat.streaming import ArtifactState, MessageAccumulator, format_stream_part, parse_partial_json


class TestParsePartialJson:
    """Tests for best-effort JSON parsing."""

    def test_complete(self):
        assert parse_partial_json('{"a": 1}') == {"a": 1}

    def test_open_string(self):
        assert parse_partial_json('{"code": "print(') == {"code": "print("}

    def test_open_nested(self):
        assert parse_partial_json('{"items": [{"x": 1}, {"x"') == {"items": [{"x": 1}, {}]}

    def test_dangling_key(self):
        assert parse_partial_json('{"city": "Paris", "lat') == {"city": "Paris"}

    def test_empty(self):
        assert parse_partial_json("") is None
        assert parse_partial_json(None) is None

    def test_trailing_escape(self):
        assert parse_partial_json('{"text": "line\\') == {}

    def test_garbage(self):
        assert parse_partial_json("}{") is None


def feed(accumulator: MessageAccumulator, *parts: tuple[str, object]) -> None:
    for part_type, value in parts:
        accumulator.feed_line(format_stream_part(part_type, value))


USAGE = {"promptTokens": 10, "completionTokens": 5}


class TestMessageAccumulator:
    """Tests for folding parts into a UI message."""

    def test_text_only_turn(self):
        acc = MessageAccumulator()
        feed(
            acc,
            ("start_step", {"messageId": "msg-1"}),
            ("text", "Hello"),
            ("text", " world"),
            ("finish_step", {"finishReason": "stop", "usage": USAGE, "isContinued": False}),
            ("finish_message", {"finishReason": "stop", "usage": USAGE}),
        )

        message = acc.to_message()
        assert message["id"] == "msg-1"
        assert message["content"] == "Hello world"
        assert message["parts"] == [{"type": "step-start"}, {"type": "text", "text": "Hello world"}]
        assert acc.finish_reason == "stop"
        assert acc.usage == USAGE
        assert "toolInvocations" not in message

    def test_tool_call_lifecycle(self):
        acc = MessageAccumulator("msg-1")
        feed(
            acc,
            ("start_step", {"messageId": "msg-1"}),
            ("tool_call_streaming_start", {"toolCallId": "c1", "toolName": "getWeather"}),
            ("tool_call_delta", {"toolCallId": "c1", "argsTextDelta": '{"latitude": 48.8'}),
        )
        invocation = acc.tool_invocations[0]
        assert invocation["state"] == "partial-call"
        assert invocation["args"] == {"latitude": 48.8}

        feed(
            acc,
            ("tool_call", {"toolCallId": "c1", "toolName": "getWeather", "args": {"latitude": 48.8, "longitude": 2.3}}),
        )
        assert acc.tool_invocations[0]["state"] == "call"

        feed(
            acc,
            ("tool_result", {"toolCallId": "c1", "result": {"temperature": 21}}),
            ("finish_step", {"finishReason": "tool-calls", "usage": USAGE, "isContinued": False}),
            ("start_step", {"messageId": "msg-1"}),
            ("text", "It is 21 degrees."),
        )

        message = acc.to_message()
        invocations = [p for p in message["parts"] if p["type"] == "tool-invocation"]
        assert len(invocations) == 1
        assert invocations[0]["toolInvocation"]["state"] == "result"
        assert invocations[0]["toolInvocation"]["result"] == {"temperature": 21}
        assert invocations[0]["toolInvocation"]["step"] == 0
        assert [p["type"] for p in message["parts"]] == [
            "step-start",
            "tool-invocation",
            "step-start",
            "text",
        ]
        assert message["toolInvocations"][0]["toolCallId"] == "c1"

    def test_text_split_by_steps(self):
        acc = MessageAccumulator()
        feed(
            acc,
            ("text", "one"),
            ("finish_step", {"finishReason": "stop", "usage": USAGE, "isContinued": False}),
            ("text", "two"),
        )
        texts = [p["text"] for p in acc.parts if p["type"] == "text"]
        assert texts == ["one", "two"]

    def test_reasoning(self):
        acc = MessageAccumulator()
        feed(acc, ("reasoning", "hmm"), ("reasoning", "..."), ("text", "Answer"))
        assert acc.parts[0] == {"type": "reasoning", "reasoning": "hmm..."}

    def test_result_for_unknown_call(self):
        acc = MessageAccumulator()
        with pytest.raises(ValueError, match="unknown call"):
            feed(acc, ("tool_result", {"toolCallId": "nope", "result": {}}))

    def test_error_and_data(self):
        acc = MessageAccumulator()
        feed(acc, ("data", [{"type": "id", "content": "d1"}]), ("error", "boom"))
        assert acc.data == [{"type": "id", "content": "d1"}]
        assert acc.error == "boom"

    def test_has_content(self):
        acc = MessageAccumulator()
        feed(acc, ("start_step", {"messageId": "m"}))
        assert not acc.has_content
        feed(acc, ("text", "x"))
        assert acc.has_content

    def test_blank_line_ignored(self):
        acc = MessageAccumulator()
        assert acc.feed_line("\n") is None


class TestArtifactState:
    """Tests for the artifact panel state."""

    def test_text_document_stream(self):
        state = ArtifactState()
        state.apply_all(
            [
                {"type": "kind", "content": "text"},
                {"type": "id", "content": "doc-1"},
                {"type": "title", "content": "Essay"},
                {"type": "clear", "content": ""},
                {"type": "text-delta", "content": "Once "},
                {"type": "text-delta", "content": "upon"},
            ]
        )
        assert state.document_id == "doc-1"
        assert state.content == "Once upon"
        assert state.status == "streaming"
        assert state.is_visible

        state.apply({"type": "finish", "content": ""})
        assert state.status == "idle"

    def test_code_delta_replaces(self):
        state = ArtifactState()
        state.apply({"type": "code-delta", "content": "print("})
        state.apply({"type": "code-delta", "content": "print('hi')"})
        assert state.content == "print('hi')"

    def test_metadata_and_suggestions(self):
        state = ArtifactState()
        state.apply({"type": "metadata-update", "content": {"componentName": "Counter"}})
        state.apply({"type": "suggestion", "content": {"id": "s1"}})
        state.apply_all(["not-a-dict"])
        assert state.metadata == {"componentName": "Counter"}
        assert state.suggestions == [{"id": "s1"}]
