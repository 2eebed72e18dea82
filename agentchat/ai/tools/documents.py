"""Artifact tools: create and update documents, request edit suggestions."""

from typing import Any

import structlog
from pydantic import BaseModel, Field

from agentchat.ai.prompts import SUGGESTIONS_PROMPT
from agentchat.ai.tools.base import ToolContext, ToolDefinition
from agentchat.artifacts import ARTIFACT_KINDS, get_document_handler
from agentchat.artifacts.base import stream_object
from agentchat.database import get_session_context
from agentchat.errors import ToolExecutionError
from agentchat.models import ArtifactKind, Document
from agentchat.repositories.documents import get_document_by_id, save_suggestions
from agentchat.utils import generate_uuid

logger = structlog.get_logger()

CREATED_MESSAGE = "A document was created and is now visible to the user."
UPDATED_MESSAGE = "The document has been updated successfully."
SUGGESTIONS_MESSAGE = "Suggestions have been added to the document"


class CreateDocumentParams(BaseModel):
    title: str
    kind: ArtifactKind


class TitleParams(BaseModel):
    title: str


class UpdateDocumentParams(BaseModel):
    id: str = Field(description="The ID of the document to update")
    description: str = Field(description="The description of changes that need to be made")


class RequestSuggestionsParams(BaseModel):
    documentId: str = Field(description="The ID of the document to request edits")


async def create_document(title: str, kind: str, context: ToolContext) -> dict[str, Any]:
    writer = context.writer
    if writer is None:
        raise ToolExecutionError("Documents can only be created in a streaming chat")

    handler = get_document_handler(kind)
    if handler is None:
        raise ToolExecutionError(f"No document handler found for kind: {kind}")

    document_id = generate_uuid()
    writer.write_data({"type": "kind", "content": kind})
    writer.write_data({"type": "id", "content": document_id})
    writer.write_data({"type": "title", "content": title})
    writer.write_data({"type": "clear", "content": ""})

    await handler.create_document(
        document_id=document_id,
        title=title,
        writer=writer,
        messages=context.messages,
        user_id=context.user_id,
    )

    writer.write_data({"type": "finish", "content": ""})
    return {"id": document_id, "title": title, "kind": kind, "content": CREATED_MESSAGE}


async def _create_document(params: CreateDocumentParams, context: ToolContext) -> dict[str, Any]:
    return await create_document(params.title, params.kind.value, context)


def _create_of_kind(kind: str):
    async def execute(params: TitleParams, context: ToolContext) -> dict[str, Any]:
        return await create_document(params.title, kind, context)

    return execute


async def _load_document(
    document_id: str, context: ToolContext
) -> tuple[Document | None, dict[str, Any] | None]:
    """The latest version of a document, or the error result to return instead."""
    async with get_session_context() as session:
        document = await get_document_by_id(session, document_id)
    if document is None:
        return None, {"error": "Document not found"}
    if document.user_id != context.user_id:
        logger.warning("document_access_denied", document_id=document_id, user_id=context.user_id)
        return None, {"error": "Unauthorized"}
    return document, None


async def _update_document(params: UpdateDocumentParams, context: ToolContext) -> dict[str, Any]:
    document, error = await _load_document(params.id, context)
    if error:
        return error

    handler = get_document_handler(document.kind)
    if handler is None:
        raise ToolExecutionError(f"No document handler found for kind: {document.kind}")

    writer = context.writer
    writer.write_data({"type": "clear", "content": document.title})
    await handler.update_document(
        document=document,
        description=params.description,
        writer=writer,
        user_id=context.user_id,
    )
    writer.write_data({"type": "finish", "content": ""})

    return {
        "id": params.id,
        "title": document.title,
        "kind": document.kind,
        "content": UPDATED_MESSAGE,
    }


SUGGESTIONS_SCHEMA = {
    "title": "suggestions",
    "description": "Edits that improve a piece of writing",
    "type": "object",
    "properties": {
        "suggestions": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "originalSentence": {"type": "string", "description": "The original sentence"},
                    "suggestedSentence": {"type": "string", "description": "The suggested sentence"},
                    "description": {"type": "string", "description": "The description of the suggestion"},
                },
                "required": ["originalSentence", "suggestedSentence", "description"],
            },
        }
    },
    "required": ["suggestions"],
}


def _suggestion(document_id: str, item: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": generate_uuid(),
        "documentId": document_id,
        "originalText": item.get("originalSentence", ""),
        "suggestedText": item.get("suggestedSentence", ""),
        "description": item.get("description", ""),
        "isResolved": False,
    }


async def _request_suggestions(params: RequestSuggestionsParams, context: ToolContext) -> dict[str, Any]:
    document, error = await _load_document(params.documentId, context)
    if error:
        return error
    if not document.content:
        return {"error": "Document not found"}

    writer = context.writer
    suggestions: list[dict[str, Any]] = []

    def emit(items: list[dict[str, Any]]) -> None:
        for item in items:
            suggestion = _suggestion(params.documentId, item)
            writer.write_data({"type": "suggestion", "content": suggestion})
            suggestions.append(suggestion)

    items: list[dict[str, Any]] = []
    async for partial in stream_object(SUGGESTIONS_PROMPT, document.content, SUGGESTIONS_SCHEMA):
        items = partial.get("suggestions") or []
        # The last item may still be streaming
        emit(items[len(suggestions) : len(items) - 1])
    emit(items[len(suggestions) :])

    if context.user_id and suggestions:
        async with get_session_context() as session:
            await save_suggestions(
                session,
                [
                    {
                        "id": s["id"],
                        "document_id": document.id,
                        "document_created_at": document.created_at,
                        "original_text": s["originalText"],
                        "suggested_text": s["suggestedText"],
                        "description": s["description"],
                        "user_id": context.user_id,
                    }
                    for s in suggestions
                ],
            )

    logger.info("suggestions_created", document_id=document.id, count=len(suggestions))
    return {
        "id": params.documentId,
        "title": document.title,
        "kind": document.kind,
        "message": SUGGESTIONS_MESSAGE,
    }


def document_tools() -> dict[str, ToolDefinition]:
    tools = {
        "createDocument": ToolDefinition(
            name="createDocument",
            description=f"Create a document with a specific type. Kinds: {', '.join(ARTIFACT_KINDS)}",
            parameters=CreateDocumentParams,
            execute=_create_document,
        ),
        "updateDocument": ToolDefinition(
            name="updateDocument",
            description="Update a document with the given description.",
            parameters=UpdateDocumentParams,
            execute=_update_document,
        ),
        "requestSuggestions": ToolDefinition(
            name="requestSuggestions",
            description="Request suggestions for a document",
            parameters=RequestSuggestionsParams,
            execute=_request_suggestions,
        ),
    }
    for name, kind, description in (
        ("createTextDocument", "text", "Create a new text document"),
        ("createCodeDocument", "code", "Create a new code document"),
        ("createImageDocument", "image", "Create a new image document"),
        ("createSheetDocument", "sheet", "Create a new spreadsheet document"),
        ("createReactDocument", "react", "Create a new React component document"),
    ):
        tools[name] = ToolDefinition(
            name=name,
            description=description,
            parameters=TitleParams,
            execute=_create_of_kind(kind),
        )
    return tools
