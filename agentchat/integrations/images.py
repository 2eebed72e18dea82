"""Image generation through the OpenAI images endpoint."""

from typing import Any

import httpx
import structlog

from agentchat.config import settings

logger = structlog.get_logger()

OPENAI_BASE_URL = "https://api.openai.com/v1"


class ImageGenerationClient:
    """Generates images and returns them base64 encoded."""

    def __init__(
        self,
        api_key: str,
        model: str = "dall-e-3",
        base_url: str | None = None,
        timeout: float = 120.0,
    ):
        self.model = model
        self.base_url = (base_url or OPENAI_BASE_URL).rstrip("/")
        self.headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, headers=self.headers)
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, endpoint: str, **kwargs) -> dict[str, Any]:
        """Make an API request."""
        url = f"{self.base_url}/{endpoint}"

        try:
            response = await self.client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "image_api_error",
                status_code=e.response.status_code,
                url=url,
                response=e.response.text[:500],
            )
            raise
        except httpx.RequestError as e:
            logger.error("image_request_error", url=url, error=str(e))
            raise

    async def generate(self, prompt: str, size: str = "1024x1024") -> str:
        """
        Generate one image.

        Args:
            prompt: Description of the image
            size: Output size, e.g. "1024x1024"

        Returns:
            Base64 encoded image data
        """
        data = await self._request(
            "POST",
            "images/generations",
            json={
                "model": self.model,
                "prompt": prompt,
                "n": 1,
                "size": size,
                "response_format": "b64_json",
            },
        )
        images = data.get("data") or []
        if not images or not images[0].get("b64_json"):
            raise ValueError("Image generation returned no image")

        logger.info("image_generated", model=self.model, size=size)
        return images[0]["b64_json"]


_image_client: ImageGenerationClient | None = None


def get_image_client() -> ImageGenerationClient:
    """Get or create the image generation client singleton."""
    global _image_client
    if _image_client is None:
        _image_client = ImageGenerationClient(
            settings.openai_api_key,
            model=settings.image_model,
            base_url=settings.openai_base_url,
        )
    return _image_client
