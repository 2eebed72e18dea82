"""Tests for prompt assembly and conversation condensing."""

import json

from langchain_core.messages import AIMessage, HumanMessage, ToolMessage

from agentchat.ai.prompts import system_prompt, update_document_prompt
from agentchat.artifacts import filter_messages, format_tool_result
from agentchat.artifacts.text import conversation_text, summarize_search_result


class TestSystemPrompt:
    """Tests for the per-turn system prompt."""

    def test_agent_prompt_first(self):
        prompt = system_prompt("You are a travel agent.", has_search_tool=False, artifacts_enabled=False)
        assert prompt == "You are a travel agent."

    def test_sections_appended(self):
        bare = system_prompt("Agent", artifacts_enabled=False)
        full = system_prompt("Agent", has_search_tool=True, artifacts_enabled=True)

        assert full.startswith("Agent")
        assert len(full) > len(bare)

    def test_default_prompt(self):
        assert system_prompt(None, artifacts_enabled=False)

    def test_update_prompt_by_kind(self):
        assert "code snippet" in update_document_prompt("x = 1", "code")
        assert "spreadsheet" in update_document_prompt("a,b", "sheet")
        assert update_document_prompt(None, "text").endswith("\n\n\n")


class TestToolResultSummaries:
    """Tests for summarizing tool output."""

    def test_code_result(self):
        summary = format_tool_result("runCode", {"code": "print(1)", "language": "python"})
        assert summary.startswith("runCode result (python):")
        assert "print(1)" in summary

    def test_json_result_truncated(self):
        summary = format_tool_result("getWeather", {"data": "x" * 500})
        assert summary.endswith("...")

    def test_string_and_empty(self):
        assert format_tool_result("echo", "hi") == "echo result: hi"
        assert format_tool_result(None, None) == "Unknown tool result: Tool completed successfully"

    def test_search_summary(self):
        result = {
            "query": "llamas",
            "results": [{"title": f"T{i}", "url": f"https://x/{i}", "content": "c"} for i in range(7)],
        }
        summary = summarize_search_result(result)

        assert summary.startswith('Search results for "llamas" (7 results found):')
        assert "Only showing 5 of 7 results" in summary
        assert "Result 5: T4" in summary
        assert "Result 6" not in summary


class TestFilterMessages:
    """Tests for condensing history for artifact prompts."""

    def test_roles(self):
        messages = [
            HumanMessage(content="Find llama facts"),
            AIMessage(content="", tool_calls=[{"id": "c1", "name": "searchTool", "args": {}}]),
            ToolMessage(
                content=json.dumps({"query": "llamas", "results": []}),
                tool_call_id="c1",
                name="searchTool",
            ),
            AIMessage(content=[{"type": "text", "text": "Here you go"}]),
        ]

        filtered = filter_messages(messages)

        assert [m["role"] for m in filtered] == ["user", "assistant", "tool", "assistant"]
        assert filtered[2]["content"].startswith('Search results for "llamas"')
        assert filtered[3]["content"] == "Here you go"

    def test_conversation_text(self):
        text = conversation_text([HumanMessage(content="Hi"), AIMessage(content="Hello")])
        assert text == "USER: Hi\n\nASSISTANT: Hello"
