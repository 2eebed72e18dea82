"""Tests for artifact document handlers and the suggestions tool."""

from contextlib import asynccontextmanager
from datetime import datetime, UTC
from unittest.mock import AsyncMock, patch

import pytest
from langchain_core.messages import HumanMessage

from agentchat.ai.tools import ToolContext
from agentchat.ai.tools.documents import RequestSuggestionsParams, UpdateDocumentParams, _request_suggestions, _update_document
from agentchat.artifacts import get_document_handler
from agentchat.models import Document
from agentchat.streaming import ArtifactState, DataStreamWriter, StreamPartType


def streamed(*values):
    async def fake(*args, **kwargs):
        for value in values:
            yield value

    return fake


def recording_writer() -> tuple[DataStreamWriter, ArtifactState, list[dict]]:
    writer = DataStreamWriter()
    state = ArtifactState()
    events: list[dict] = []

    def listener(part):
        if part.type == StreamPartType.DATA:
            events.extend(part.value)
            state.apply_all(part.value)

    writer.subscribe(listener)
    return writer, state, events


def stored_document(kind: str = "text", content: str = "The cat sat. It was happy.") -> Document:
    return Document(
        id="doc-1",
        title="Cat story",
        kind=kind,
        content=content,
        user_id="user-1",
        created_at=datetime(2026, 3, 1, tzinfo=UTC),
    )


@pytest.fixture
def saved(db_session):
    @asynccontextmanager
    async def session_context():
        yield db_session

    with (
        patch("agentchat.artifacts.base.get_session_context", session_context),
        patch("agentchat.artifacts.base.save_document", new_callable=AsyncMock) as mock_save,
    ):
        yield mock_save


@pytest.mark.asyncio
class TestTextDocuments:
    """Tests for text artifacts."""

    async def test_create_streams_and_saves(self, saved):
        writer, state, _ = recording_writer()
        handler = get_document_handler("text")

        with patch("agentchat.artifacts.text.stream_text", streamed("Once ", "upon ", "a time")):
            content = await handler.create_document(
                document_id="doc-1",
                title="Story",
                writer=writer,
                messages=[HumanMessage(content="Write a story")],
                user_id="user-1",
            )

        assert content == "Once upon a time"
        assert state.content == "Once upon a time"
        saved.assert_awaited_once()
        assert saved.await_args.args[1:] == ("doc-1", "Story", handler.kind, "Once upon a time", "user-1")

    async def test_anonymous_not_saved(self, saved):
        writer, _, _ = recording_writer()

        with patch("agentchat.artifacts.text.stream_text", streamed("x")):
            await get_document_handler("text").create_document(
                document_id="doc-1", title="T", writer=writer, messages=[], user_id=None
            )

        saved.assert_not_awaited()


@pytest.mark.asyncio
class TestStructuredDocuments:
    """Tests for artifacts generated as structured objects."""

    async def test_code_deltas_replace(self, saved):
        writer, state, events = recording_writer()

        with patch("agentchat.artifacts.code.stream_object", streamed({}, {"code": "print("}, {"code": "print('hi')"})):
            content = await get_document_handler("code").create_document(
                document_id="doc-1", title="Hello", writer=writer, messages=[], user_id="user-1"
            )

        assert content == "print('hi')"
        assert [e["type"] for e in events] == ["code-delta", "code-delta"]
        assert state.content == "print('hi')"

    async def test_sheet_ends_with_full_draft(self, saved):
        writer, _, events = recording_writer()

        with patch("agentchat.artifacts.sheet.stream_object", streamed({"csv": "a,b"}, {"csv": "a,b\n1,2"})):
            content = await get_document_handler("sheet").create_document(
                document_id="doc-1", title="Numbers", writer=writer, messages=[], user_id="user-1"
            )

        assert content == "a,b\n1,2"
        assert events[-1] == {"type": "sheet-delta", "content": "a,b\n1,2"}

    async def test_react_component_name(self, saved):
        writer, state, events = recording_writer()
        partials = streamed({"componentName": "Counter"}, {"componentName": "Counter", "code": "function Counter() {}"})

        with patch("agentchat.artifacts.react.stream_object", partials):
            await get_document_handler("react").create_document(
                document_id="doc-1", title="Counter", writer=writer, messages=[], user_id="user-1"
            )

        assert {"type": "metadata-update", "content": "Counter"} in events
        assert state.content == "function Counter() {}"

    async def test_image(self, saved):
        writer, _, events = recording_writer()
        images = AsyncMock()
        images.generate.return_value = "aW1hZ2U="

        with patch("agentchat.artifacts.image.get_image_client", return_value=images):
            content = await get_document_handler("image").create_document(
                document_id="doc-1", title="A lighthouse", writer=writer, messages=[], user_id="user-1"
            )

        assert content == "aW1hZ2U="
        assert events == [{"type": "image-delta", "content": "aW1hZ2U="}]


@pytest.fixture
def document_store(db_session):
    @asynccontextmanager
    async def session_context():
        yield db_session

    with (
        patch("agentchat.ai.tools.documents.get_session_context", session_context),
        patch("agentchat.ai.tools.documents.get_document_by_id", new_callable=AsyncMock) as mock_get,
        patch("agentchat.ai.tools.documents.save_suggestions", new_callable=AsyncMock) as mock_save,
    ):
        yield mock_get, mock_save


@pytest.mark.asyncio
class TestDocumentTools:
    """Tests for tools that work on stored documents."""

    async def test_update_document(self, saved, document_store):
        get_document, _ = document_store
        get_document.return_value = stored_document()
        writer, state, events = recording_writer()

        with patch("agentchat.artifacts.text.stream_text", streamed("The dog sat.")):
            result = await _update_document(
                UpdateDocumentParams(id="doc-1", description="Make it about a dog"),
                ToolContext(user_id="user-1", writer=writer),
            )

        assert result["content"] == "The document has been updated successfully."
        assert events[0] == {"type": "clear", "content": "Cat story"}
        assert events[-1]["type"] == "finish"
        assert state.content == "The dog sat."
        saved.assert_awaited_once()

    async def test_update_missing_document(self, document_store):
        get_document, _ = document_store
        get_document.return_value = None

        result = await _update_document(
            UpdateDocumentParams(id="nope", description="x"),
            ToolContext(user_id="user-1", writer=DataStreamWriter()),
        )

        assert result == {"error": "Document not found"}

    async def test_suggestions_streamed_and_saved(self, document_store):
        get_document, save_suggestions = document_store
        get_document.return_value = stored_document()
        writer, state, _ = recording_writer()
        first = {"originalSentence": "The cat sat.", "suggestedSentence": "The cat sat down.", "description": "Clearer"}
        second = {"originalSentence": "It was happy.", "suggestedSentence": "It purred.", "description": "Show"}
        partials = streamed(
            {"suggestions": [first]},
            {"suggestions": [first, {"originalSentence": "It was"}]},
            {"suggestions": [first, second]},
        )

        with patch("agentchat.ai.tools.documents.stream_object", partials):
            result = await _request_suggestions(
                RequestSuggestionsParams(documentId="doc-1"),
                ToolContext(user_id="user-1", writer=writer),
            )

        assert result["message"] == "Suggestions have been added to the document"
        assert [s["originalText"] for s in state.suggestions] == ["The cat sat.", "It was happy."]
        rows = save_suggestions.await_args.args[1]
        assert len(rows) == 2
        assert rows[1]["suggested_text"] == "It purred."
        assert rows[0]["document_created_at"] == datetime(2026, 3, 1, tzinfo=UTC)
