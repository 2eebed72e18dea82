"""Spreadsheet documents, stored as CSV."""

from langchain_core.messages import BaseMessage

from agentchat.ai.prompts import SHEET_PROMPT, update_document_prompt
from agentchat.artifacts.base import DocumentHandler, stream_object
from agentchat.models import ArtifactKind, Document
from agentchat.streaming import DataStreamWriter

SHEET_SCHEMA = {
    "title": "spreadsheet",
    "description": "A spreadsheet in CSV format",
    "type": "object",
    "properties": {"csv": {"type": "string", "description": "CSV data"}},
    "required": ["csv"],
}


class SheetDocumentHandler(DocumentHandler):
    kind = ArtifactKind.SHEET

    async def _stream_csv(self, system: str, prompt: str, writer: DataStreamWriter) -> str:
        draft = ""
        async for partial in stream_object(system, prompt, SHEET_SCHEMA):
            csv = partial.get("csv")
            if csv:
                writer.write_data({"type": "sheet-delta", "content": csv})
                draft = csv
        return draft

    async def on_create_document(
        self,
        *,
        title: str,
        writer: DataStreamWriter,
        messages: list[BaseMessage],
    ) -> str:
        draft = await self._stream_csv(SHEET_PROMPT, title, writer)
        # Final full draft so clients end on the complete sheet
        writer.write_data({"type": "sheet-delta", "content": draft})
        return draft

    async def on_update_document(
        self,
        *,
        document: Document,
        description: str,
        writer: DataStreamWriter,
    ) -> str:
        return await self._stream_csv(update_document_prompt(document.content, "sheet"), description, writer)
