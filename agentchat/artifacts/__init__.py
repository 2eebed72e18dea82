"""Artifact document handlers by kind."""

from agentchat.artifacts.base import DocumentHandler
from agentchat.artifacts.code import CodeDocumentHandler
from agentchat.artifacts.image import ImageDocumentHandler
from agentchat.artifacts.react import ReactDocumentHandler
from agentchat.artifacts.sheet import SheetDocumentHandler
from agentchat.artifacts.text import TextDocumentHandler, filter_messages, format_tool_result
from agentchat.models import ArtifactKind

ARTIFACT_KINDS = [kind.value for kind in ArtifactKind]

document_handlers_by_kind: dict[str, DocumentHandler] = {
    handler.kind.value: handler
    for handler in (
        TextDocumentHandler(),
        CodeDocumentHandler(),
        ImageDocumentHandler(),
        SheetDocumentHandler(),
        ReactDocumentHandler(),
    )
}


def get_document_handler(kind: str) -> DocumentHandler | None:
    return document_handlers_by_kind.get(kind)


__all__ = [
    "ARTIFACT_KINDS",
    "DocumentHandler",
    "document_handlers_by_kind",
    "filter_messages",
    "format_tool_result",
    "get_document_handler",
]
