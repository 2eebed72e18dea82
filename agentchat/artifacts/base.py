"""Document handler contract shared by every artifact kind."""

from typing import Any, AsyncIterator

import structlog
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from agentchat.ai.providers import ARTIFACT_MODEL, get_chat_model
from agentchat.database import get_session_context
from agentchat.models import ArtifactKind, Document
from agentchat.repositories.documents import save_document
from agentchat.streaming import DataStreamWriter

logger = structlog.get_logger()


async def stream_text(system: str, prompt: str) -> AsyncIterator[str]:
    """Text deltas of the artifact model."""
    llm = get_chat_model(ARTIFACT_MODEL)
    async for chunk in llm.astream([SystemMessage(content=system), HumanMessage(content=prompt)]):
        if isinstance(chunk.content, str) and chunk.content:
            yield chunk.content


async def stream_object(
    system: str,
    prompt: str | list[BaseMessage],
    schema: dict[str, Any],
) -> AsyncIterator[dict[str, Any]]:
    """Progressively more complete objects matching ``schema``."""
    llm = get_chat_model(ARTIFACT_MODEL)
    structured = llm.with_structured_output(schema, method="function_calling")
    if isinstance(prompt, str):
        messages: list[BaseMessage] = [SystemMessage(content=system), HumanMessage(content=prompt)]
    else:
        messages = [SystemMessage(content=system), *prompt]
    async for partial in structured.astream(messages):
        if isinstance(partial, dict):
            yield partial


class DocumentHandler:
    """Generates the content of one artifact kind and saves every version.

    Subclasses implement ``on_create_document`` and ``on_update_document``,
    streaming deltas to the writer and returning the final content.
    """

    kind: ArtifactKind

    async def on_create_document(
        self,
        *,
        title: str,
        writer: DataStreamWriter,
        messages: list[BaseMessage],
    ) -> str:
        raise NotImplementedError

    async def on_update_document(
        self,
        *,
        document: Document,
        description: str,
        writer: DataStreamWriter,
    ) -> str:
        raise NotImplementedError

    async def create_document(
        self,
        *,
        document_id: str,
        title: str,
        writer: DataStreamWriter,
        messages: list[BaseMessage],
        user_id: str | None,
    ) -> str:
        content = await self.on_create_document(title=title, writer=writer, messages=messages)
        if user_id:
            async with get_session_context() as session:
                await save_document(session, document_id, title, self.kind, content, user_id)
        logger.info("document_created", document_id=document_id, kind=str(self.kind), length=len(content))
        return content

    async def update_document(
        self,
        *,
        document: Document,
        description: str,
        writer: DataStreamWriter,
        user_id: str | None,
    ) -> str:
        content = await self.on_update_document(document=document, description=description, writer=writer)
        if user_id:
            async with get_session_context() as session:
                await save_document(session, document.id, document.title, self.kind, content, user_id)
        logger.info("document_updated", document_id=document.id, kind=str(self.kind), length=len(content))
        return content
