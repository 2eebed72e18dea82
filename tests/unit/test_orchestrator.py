"""Tests for chat turn orchestration."""

import json
from contextlib import asynccontextmanager
from datetime import datetime, UTC
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from langchain_core.messages import AIMessage, AIMessageChunk
from langchain_core.messages.tool import tool_call_chunk
from pydantic import ValidationError as PydanticValidationError

from agentchat.chat.messages import UIMessage
from agentchat.chat.orchestrator import (
    ChatRequest,
    ChatTurnRunner,
    PreparedChat,
    delete_chat,
    generate_title_from_user_message,
    prepare_chat,
)
from agentchat.errors import InsufficientCreditsError, NotFoundError, PermissionDeniedError, ValidationError
from agentchat.repositories.records import AgentToolRecord, ChatRecord, ModelRecord

ORCHESTRATOR = "agentchat.chat.orchestrator"


def chat_request(**overrides) -> ChatRequest:
    values = {
        "id": "chat-1",
        "messages": [UIMessage(id="u1", role="user", content="Weather in Paris?")],
        "selectedChatModel": "gpt-4o",
        "selectedModelId": "model-1",
    }
    values.update(overrides)
    return ChatRequest.model_validate(values)


def chat_record(user_id: str = "user-1") -> ChatRecord:
    return ChatRecord(
        id="chat-1",
        user_id=user_id,
        title="New Chat",
        created_at=datetime(2026, 3, 1, tzinfo=UTC),
    )


def model_record() -> ModelRecord:
    return ModelRecord(
        id="model-1",
        model_display_name="GPT-4o",
        model="gpt-4o",
        provider="openai",
        model_type="text-large",
        cost_per_million_input_tokens=Decimal("2.5"),
        cost_per_million_output_tokens=Decimal("10"),
    )


def text_step(text: str) -> list[AIMessageChunk]:
    return [
        AIMessageChunk(content=text),
        AIMessageChunk(
            content="",
            usage_metadata={"input_tokens": 12, "output_tokens": 4, "total_tokens": 16},
            response_metadata={"finish_reason": "stop"},
        ),
    ]


def weather_call_step() -> list[AIMessageChunk]:
    return [
        AIMessageChunk(
            content="",
            tool_call_chunks=[tool_call_chunk(name="getWeather", args='{"city": "Paris"}', id="call_1", index=0)],
        ),
        AIMessageChunk(
            content="",
            usage_metadata={"input_tokens": 30, "output_tokens": 8, "total_tokens": 38},
            response_metadata={"finish_reason": "tool_calls"},
        ),
    ]


@pytest.mark.asyncio
class TestPrepareChat:
    """Tests for validating a turn before streaming."""

    async def test_new_chat_created(self, db_session, session_user):
        with (
            patch(f"{ORCHESTRATOR}.has_credits", new_callable=AsyncMock, return_value=True),
            patch(f"{ORCHESTRATOR}.get_chat_by_id", new_callable=AsyncMock, return_value=None),
            patch(f"{ORCHESTRATOR}.save_messages", new_callable=AsyncMock) as mock_save,
            patch(f"{ORCHESTRATOR}.get_model_by_id", new_callable=AsyncMock, return_value=model_record()),
        ):
            prepared = await prepare_chat(db_session, chat_request(agentId="agent-1"), session_user)

        assert prepared.is_new
        assert prepared.chat.title == "New Chat"
        assert prepared.chat.agent_id == "agent-1"
        assert prepared.model.id == "model-1"
        stored = mock_save.await_args.args[1][0]
        assert stored["role"] == "user"
        assert stored["parts"] == [{"type": "text", "text": "Weather in Paris?"}]

    async def test_no_credits(self, db_session, session_user):
        with patch(f"{ORCHESTRATOR}.has_credits", new_callable=AsyncMock, return_value=False):
            with pytest.raises(InsufficientCreditsError):
                await prepare_chat(db_session, chat_request(), session_user)

    async def test_no_user_message(self, db_session, session_user):
        request = chat_request(messages=[UIMessage(id="a1", role="assistant", content="Hi")])
        with patch(f"{ORCHESTRATOR}.has_credits", new_callable=AsyncMock, return_value=True):
            with pytest.raises(ValidationError):
                await prepare_chat(db_session, request, session_user)

    async def test_someone_elses_chat(self, db_session, session_user):
        with (
            patch(f"{ORCHESTRATOR}.has_credits", new_callable=AsyncMock, return_value=True),
            patch(f"{ORCHESTRATOR}.get_model_by_id", new_callable=AsyncMock, return_value=model_record()),
            patch(f"{ORCHESTRATOR}.get_chat_by_id", new_callable=AsyncMock, return_value=chat_record("other")),
        ):
            with pytest.raises(PermissionDeniedError):
                await prepare_chat(db_session, chat_request(), session_user)

    async def test_unknown_model(self, db_session, session_user):
        with (
            patch(f"{ORCHESTRATOR}.has_credits", new_callable=AsyncMock, return_value=True),
            patch(f"{ORCHESTRATOR}.get_model_by_id", new_callable=AsyncMock, return_value=None),
            patch(f"{ORCHESTRATOR}.save_chat", new_callable=AsyncMock) as mock_chat,
            patch(f"{ORCHESTRATOR}.save_messages", new_callable=AsyncMock) as mock_save,
        ):
            with pytest.raises(NotFoundError, match="Model not found"):
                await prepare_chat(db_session, chat_request(selectedModelId="retired"), session_user)

        mock_chat.assert_not_awaited()
        mock_save.assert_not_awaited()

    async def test_model_id_required(self):
        with pytest.raises(PydanticValidationError):
            ChatRequest.model_validate(
                {"id": "chat-1", "messages": [{"id": "u1", "role": "user", "content": "hi"}]}
            )


@pytest.fixture
def persistence(db_session):
    """Patch out the database work a turn does after streaming."""

    @asynccontextmanager
    async def session_context():
        yield db_session

    with (
        patch(f"{ORCHESTRATOR}.get_session_context", session_context),
        patch(f"{ORCHESTRATOR}.get_agent_tools", new_callable=AsyncMock, return_value=[]) as mock_tools,
        patch(f"{ORCHESTRATOR}.save_messages", new_callable=AsyncMock) as mock_save,
        patch(f"{ORCHESTRATOR}.record_usage", new_callable=AsyncMock) as mock_usage,
    ):
        yield MagicMock(tools=mock_tools, save=mock_save, usage=mock_usage)


def make_runner(request: ChatRequest, user, is_new: bool = False) -> ChatTurnRunner:
    prepared = PreparedChat(
        chat=chat_record(),
        user_message=request.messages[-1],
        model=model_record(),
        is_new=is_new,
    )
    return ChatTurnRunner(request, prepared, user)


async def collect(runner: ChatTurnRunner) -> list[str]:
    return [line async for line in runner.stream()]


@pytest.mark.asyncio
class TestChatTurnRunner:
    """Tests for streaming and settling a turn."""

    async def test_successful_turn(self, fake_llm, persistence, session_user):
        fake_llm(text_step("Sunny and 21."))
        runner = make_runner(chat_request(), session_user)

        lines = await collect(runner)

        assert "".join(line[0] for line in lines) == "f0ed"
        saved = persistence.save.await_args.args[1][0]
        assert saved["role"] == "assistant"
        assert saved["id"] == runner.message_id
        assert saved["parts"][-1] == {"type": "text", "text": "Sunny and 21."}

        usage = persistence.usage.await_args.kwargs
        assert usage["prompt_tokens"] == 12
        assert usage["completion_tokens"] == 4
        assert usage["transaction_type"] == "usage"
        assert usage["message_id"] == runner.message_id

    async def test_creator_billed_as_self_usage(self, fake_llm, persistence, session_user):
        fake_llm(text_step("Hi"))
        runner = make_runner(chat_request(creatorId=session_user.id), session_user)

        await collect(runner)

        assert persistence.usage.await_args.kwargs["transaction_type"] == "self_usage"

    async def test_agent_tools_offered(self, fake_llm, persistence, session_user):
        persistence.tools.return_value = [
            AgentToolRecord(tool="getWeather", tool_group_id="g1"),
            AgentToolRecord(tool="searchTool", tool_group_id="g2"),
        ]
        model = fake_llm(text_step("Hi"))
        runner = make_runner(chat_request(agentId="agent-1", searchEnabled=False), session_user)

        await collect(runner)

        assert [t["function"]["name"] for t in model.bound_tools] == ["getWeather"]

    async def test_failure_saves_partial_and_reports(self, fake_llm, persistence, session_user):
        fake_llm([AIMessageChunk(content="Partial answer"), RuntimeError("upstream closed")])
        runner = make_runner(chat_request(), session_user)

        lines = await collect(runner)

        assert lines[-1].startswith("3:")
        assert "upstream closed" in lines[-1]
        assert "Usage tally" in lines[-1]
        persistence.save.assert_awaited_once()
        persistence.usage.assert_not_awaited()

    async def test_failure_after_tool_step_bills_tally(self, fake_llm, persistence, session_user):
        fake_llm(weather_call_step(), [RuntimeError("upstream closed")])
        runner = make_runner(chat_request(), session_user)

        lines = await collect(runner)

        assert lines[-1].startswith("3:")
        assert '"promptTokens": 30' in json.loads(lines[-1][2:])
        saved = persistence.save.await_args.args[1][0]
        assert saved["id"] == runner.message_id
        usage = persistence.usage.await_args.kwargs
        assert usage["prompt_tokens"] == 30
        assert usage["completion_tokens"] == 8
        assert usage["message_id"] == runner.message_id

    async def test_unsaved_partial_not_linked_to_usage(self, fake_llm, persistence, session_user):
        fake_llm(weather_call_step(), [RuntimeError("upstream closed")])
        persistence.save.side_effect = RuntimeError("database gone")
        runner = make_runner(chat_request(), session_user)

        await collect(runner)

        usage = persistence.usage.await_args.kwargs
        assert usage["prompt_tokens"] == 30
        assert usage["message_id"] is None

    async def test_new_chat_gets_title(self, fake_llm, persistence, session_user):
        fake_llm(text_step("Hi"))
        runner = make_runner(chat_request(), session_user, is_new=True)

        with patch(f"{ORCHESTRATOR}.schedule_title_generation") as mock_title:
            await collect(runner)

        mock_title.assert_called_once_with("chat-1", runner.prepared.user_message)


@pytest.mark.asyncio
class TestTitlesAndDeletion:
    """Tests for title generation and chat deletion."""

    async def test_title_cleaned(self):
        llm = MagicMock()
        llm.ainvoke = AsyncMock(return_value=AIMessage(content=' "Trip: Lisbon in May" '))

        with patch(f"{ORCHESTRATOR}.get_chat_model", return_value=llm):
            title = await generate_title_from_user_message(UIMessage(id="u1", role="user", content="Plan a trip"))

        assert title == "Trip Lisbon in May"

    async def test_empty_title_falls_back(self):
        llm = MagicMock()
        llm.ainvoke = AsyncMock(return_value=AIMessage(content='""'))

        with patch(f"{ORCHESTRATOR}.get_chat_model", return_value=llm):
            title = await generate_title_from_user_message(UIMessage(id="u1", role="user", content="?"))

        assert title == "New Chat"

    async def test_delete_missing(self, db_session, session_user):
        with patch(f"{ORCHESTRATOR}.get_chat_by_id", new_callable=AsyncMock, return_value=None):
            with pytest.raises(NotFoundError):
                await delete_chat(db_session, "chat-1", session_user)

    async def test_delete_foreign(self, db_session, session_user):
        with patch(f"{ORCHESTRATOR}.get_chat_by_id", new_callable=AsyncMock, return_value=chat_record("other")):
            with pytest.raises(PermissionDeniedError):
                await delete_chat(db_session, "chat-1", session_user)
