"""Image generation tools. Generated images are stored and returned by URL."""

import base64
import time
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, Field

from agentchat.ai.tools.base import ToolContext, ToolDefinition
from agentchat.errors import StorageError
from agentchat.integrations.images import get_image_client
from agentchat.integrations.storage import get_storage

logger = structlog.get_logger()

GENERATED_PREFIX = "generated-images"

LOGO_STYLE = (
    "A clean, professional logo on a plain background. Simple shapes, "
    "strong contrast, no photographic detail. Logo brief: "
)


class ImageParams(BaseModel):
    prompt: str = Field(description="The text prompt for the image generation.")
    size: str = Field(default="1024x1024", description="Image size, e.g. 1024x1024")


class LogoParams(BaseModel):
    prompt: str = Field(description="The text prompt for the logo generation.")


async def generate_and_store(prompt: str, owner: str | None, size: str = "1024x1024") -> str:
    """Generate one image and return its public URL."""
    image = await get_image_client().generate(prompt, size=size)
    key = f"{GENERATED_PREFIX}/{owner or 'anonymous'}/{int(time.time() * 1000)}.png"
    return await get_storage().upload(key, base64.b64decode(image), "image/png")


async def _create_image(params: ImageParams, context: ToolContext) -> dict[str, Any]:
    try:
        url = await generate_and_store(params.prompt, context.user_id, size=params.size)
    except (httpx.HTTPError, StorageError, ValueError) as e:
        logger.warning("create_image_failed", error=str(e))
        return {"error": f"Failed to generate image: {e}"}
    return {"prompt": params.prompt, "images": [{"url": url, "content_type": "image/png"}]}


async def _create_logo(params: LogoParams, context: ToolContext) -> dict[str, Any]:
    try:
        url = await generate_and_store(LOGO_STYLE + params.prompt, context.user_id)
    except (httpx.HTTPError, StorageError, ValueError) as e:
        logger.warning("create_logo_failed", error=str(e))
        return {"error": f"Failed to generate logo: {e}"}
    return {"images": [{"url": url, "content_type": "image/png"}]}


def image_tools() -> dict[str, ToolDefinition]:
    return {
        "createImage": ToolDefinition(
            name="createImage",
            description="Generates an image from a text 'prompt'. Returns the generated image URL.",
            parameters=ImageParams,
            execute=_create_image,
        ),
        "createLogo": ToolDefinition(
            name="createLogo",
            description="Generates a logo from a text 'prompt'. Returns the generated image URL.",
            parameters=LogoParams,
            execute=_create_logo,
        ),
    }
