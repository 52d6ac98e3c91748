import logging
from dataclasses import dataclass
from typing import Protocol

import openai
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from .config import require_configured
from .errors import InvalidInput, ThumbnailGenerationFailed, UpstreamError
from .store import ThumbnailUploader

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "dalle"

STYLE_DIRECTIVES = (
    "Make it bold and dramatic with bright colors (red, yellow, blue), "
    "include shocked/excited expressions, and make it instantly clickable with "
    "exaggerated elements. Use high contrast and dynamic composition. "
    "Make it look professional and photorealistic."
)


def enhance_prompt(prompt: str) -> str:
    return f"Create a YouTube thumbnail in a viral creator's style: {prompt.strip()}. {STYLE_DIRECTIVES}"


@dataclass
class GeneratedThumbnail:
    url: str


class ThumbnailProvider(Protocol):
    name: str

    def generate(self, prompt: str) -> str: ...


class DalleProvider:
    name = "dalle"

    def __init__(self, client: openai.OpenAI | None, model: str = "dall-e-3", size: str = "1792x1024", quality: str = "standard"):
        self.client = client
        self.model = model
        self.size = size
        self.quality = quality

    def generate(self, prompt: str) -> str:
        try:
            client = require_configured(self.client, "OPENAI_API_KEY")
            response = client.images.generate(
                model=self.model,
                prompt=prompt,
                n=1,
                size=self.size,
                quality=self.quality,
            )
        except openai.OpenAIError as e:
            logger.error("DALL-E API error: %s", e)
            raise UpstreamError(f"DALL-E API request failed: {e}") from e

        data = getattr(response, "data", None) or []
        url = getattr(data[0], "url", None) if data else None
        if not url:
            raise ThumbnailGenerationFailed("DALL-E response did not include an image URL")
        return url


class ImagenProvider:
    """Imagen returns raw bytes, so the image is uploaded and its public URL returned."""

    name = "imagen"

    def __init__(
        self,
        client: genai.Client | None,
        model: str = "imagen-3.0-generate-002",
        uploader: ThumbnailUploader | None = None,
    ):
        self.client = client
        self.model = model
        self.uploader = uploader or ThumbnailUploader(None)

    def generate(self, prompt: str) -> str:
        try:
            client = require_configured(self.client, "GEMINI_API_KEY")
            response = client.models.generate_images(
                model=self.model,
                prompt=prompt,
                config=types.GenerateImagesConfig(number_of_images=1, aspect_ratio="16:9"),
            )
        except genai_errors.APIError as e:
            logger.error("Imagen API error: %s", e.message)
            raise UpstreamError(f"Imagen API request failed: {e.message or 'Unknown error'}") from e

        images = getattr(response, "generated_images", None) or []
        image = getattr(images[0], "image", None) if images else None
        image_bytes = getattr(image, "image_bytes", None)
        if not image_bytes:
            raise ThumbnailGenerationFailed("Imagen response did not include an image")

        mime_type = getattr(image, "mime_type", None) or "image/png"
        return self.uploader.upload(image_bytes, mime_type)


class ThumbnailGenerator:
    def __init__(self, providers: dict[str, ThumbnailProvider]):
        self.providers = providers

    def generate(self, prompt: str, model: str | None = None) -> GeneratedThumbnail:
        name = model or DEFAULT_PROVIDER
        provider = self.providers.get(name)
        if provider is None:
            raise InvalidInput(f"Unsupported model: {name}")

        logger.info("Generating thumbnail with %s", name)
        return GeneratedThumbnail(url=provider.generate(enhance_prompt(prompt)))
