"""
Image generation provider.

Wraps the OpenAI Images API. The provider returns the hosted image URL;
downloading and post-processing happen in image_processing.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from specgen.errors import UpstreamGenerationError

logger = logging.getLogger(__name__)

STAGE = "image"


@dataclass
class ImageGenerationResult:
    """Result from image generation."""
    url: str
    model: str
    revised_prompt: Optional[str] = None


class ImageProvider(ABC):
    """Abstract base class for image providers."""

    @abstractmethod
    def generate(
        self,
        prompt: str,
        model: str,
        size: str,
        quality: str,
    ) -> ImageGenerationResult:
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass


class OpenAIImageProvider(ImageProvider):
    """OpenAI Images API (DALL-E) provider."""

    def __init__(self, api_key: str, timeout: float = 120.0):
        self.api_key = api_key
        self.timeout = timeout

    @property
    def provider_name(self) -> str:
        return "openai"

    def generate(
        self,
        prompt: str,
        model: str,
        size: str,
        quality: str,
    ) -> ImageGenerationResult:
        """Request one image and return its URL."""
        import openai

        logger.info(f"[OpenAIImageProvider] Calling OpenAI API: model='{model}', size='{size}'")
        client = openai.OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)

        try:
            response = client.images.generate(
                model=model,
                prompt=prompt,
                size=size,
                quality=quality,
                n=1,
            )
        except openai.APITimeoutError as e:
            logger.error(f"[OpenAIImageProvider] Image generation timed out: {e}")
            raise UpstreamGenerationError(STAGE, str(e), timeout=True) from e
        except openai.OpenAIError as e:
            logger.error(f"[OpenAIImageProvider] Image generation failed: {e}")
            raise UpstreamGenerationError(STAGE, str(e)) from e

        if not getattr(response, "data", None):
            raise UpstreamGenerationError(STAGE, "response contained no images")

        first_item = response.data[0]
        if not getattr(first_item, "url", None):
            raise UpstreamGenerationError(STAGE, "response contained no image URL")

        logger.info("[OpenAIImageProvider] Image generated")
        return ImageGenerationResult(
            url=first_item.url,
            model=model,
            revised_prompt=getattr(first_item, "revised_prompt", None),
        )
