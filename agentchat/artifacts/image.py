"""Image documents, stored as base64 image data."""

from langchain_core.messages import BaseMessage

from agentchat.artifacts.base import DocumentHandler
from agentchat.integrations.images import get_image_client
from agentchat.models import ArtifactKind, Document
from agentchat.streaming import DataStreamWriter


class ImageDocumentHandler(DocumentHandler):
    kind = ArtifactKind.IMAGE

    async def on_create_document(
        self,
        *,
        title: str,
        writer: DataStreamWriter,
        messages: list[BaseMessage],
    ) -> str:
        image = await get_image_client().generate(title)
        writer.write_data({"type": "image-delta", "content": image})
        return image

    async def on_update_document(
        self,
        *,
        document: Document,
        description: str,
        writer: DataStreamWriter,
    ) -> str:
        image = await get_image_client().generate(description)
        writer.write_data({"type": "image-delta", "content": image})
        return image
