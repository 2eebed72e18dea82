"""React component documents."""

from langchain_core.messages import BaseMessage, HumanMessage

from agentchat.ai.prompts import REACT_PROMPT, update_document_prompt
from agentchat.artifacts.base import DocumentHandler, stream_object
from agentchat.artifacts.text import conversation_text
from agentchat.models import ArtifactKind, Document
from agentchat.streaming import DataStreamWriter

COMPONENT_SCHEMA = {
    "title": "react_component",
    "description": "A React component definition",
    "type": "object",
    "properties": {
        "componentName": {"type": "string", "description": "PascalCase component name"},
        "code": {"type": "string", "description": "Component definition without imports or exports"},
    },
    "required": ["componentName", "code"],
}

UPDATE_SCHEMA = {
    "title": "react_component_update",
    "description": "Updated React component code",
    "type": "object",
    "properties": {"code": {"type": "string"}},
    "required": ["code"],
}


class ReactDocumentHandler(DocumentHandler):
    kind = ArtifactKind.REACT

    async def on_create_document(
        self,
        *,
        title: str,
        writer: DataStreamWriter,
        messages: list[BaseMessage],
    ) -> str:
        prompt = f"Conversation history:\n{conversation_text(messages)}\n\nComponent: {title}"
        draft = ""
        async for partial in stream_object(REACT_PROMPT, [HumanMessage(content=prompt)], COMPONENT_SCHEMA):
            if partial.get("componentName"):
                writer.write_data({"type": "metadata-update", "content": partial["componentName"]})
            if partial.get("code"):
                writer.write_data({"type": "react-delta", "content": partial["code"]})
                draft = partial["code"]
        return draft

    async def on_update_document(
        self,
        *,
        document: Document,
        description: str,
        writer: DataStreamWriter,
    ) -> str:
        draft = ""
        async for partial in stream_object(update_document_prompt(document.content, "react"), description, UPDATE_SCHEMA):
            if partial.get("code"):
                writer.write_data({"type": "react-delta", "content": partial["code"]})
                draft = partial["code"]
        return draft
