"""Code documents."""

from langchain_core.messages import BaseMessage

from agentchat.ai.prompts import CODE_PROMPT, update_document_prompt
from agentchat.artifacts.base import DocumentHandler, stream_object
from agentchat.models import ArtifactKind, Document
from agentchat.streaming import DataStreamWriter

CODE_SCHEMA = {
    "title": "code_snippet",
    "description": "A self-contained code snippet",
    "type": "object",
    "properties": {"code": {"type": "string", "description": "The code"}},
    "required": ["code"],
}


class CodeDocumentHandler(DocumentHandler):
    kind = ArtifactKind.CODE

    async def _stream_code(self, system: str, prompt: str, writer: DataStreamWriter) -> str:
        draft = ""
        async for partial in stream_object(system, prompt, CODE_SCHEMA):
            code = partial.get("code")
            if code:
                writer.write_data({"type": "code-delta", "content": code})
                draft = code
        return draft

    async def on_create_document(
        self,
        *,
        title: str,
        writer: DataStreamWriter,
        messages: list[BaseMessage],
    ) -> str:
        return await self._stream_code(CODE_PROMPT, title, writer)

    async def on_update_document(
        self,
        *,
        document: Document,
        description: str,
        writer: DataStreamWriter,
    ) -> str:
        return await self._stream_code(update_document_prompt(document.content, "code"), description, writer)
