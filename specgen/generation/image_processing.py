"""
Image post-processing capability.

When Pillow is installed, generated images are downloaded, re-encoded to
PNG and given a 150x150 centre-cropped thumbnail (blob mode). Without it
the orchestrator keeps only the provider URL (URL mode). The choice is made
once, by get_image_processor(), and exposed as ImageProcessor.available.
"""

import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from specgen.errors import UpstreamGenerationError

logger = logging.getLogger(__name__)

# Try to import Pillow
try:
    from PIL import Image, ImageOps, UnidentifiedImageError
    PIL_AVAILABLE = True
except ImportError:
    PIL_AVAILABLE = False
    logger.warning("[ImageProcessing] Pillow not available - images will be kept as URLs")

THUMBNAIL_SIZE = (150, 150)
CANONICAL_FORMAT = "png"
DOWNLOAD_TIMEOUT = 30.0


@dataclass
class ProcessedImage:
    """Re-encoded image plus its thumbnail."""
    image_bytes: bytes
    thumbnail_bytes: bytes
    format: str = CANONICAL_FORMAT

    @property
    def image_size(self) -> int:
        return len(self.image_bytes)

    @property
    def thumbnail_size(self) -> int:
        return len(self.thumbnail_bytes)


class ImageProcessor(ABC):
    """Download-and-process capability."""

    available: bool = False

    @abstractmethod
    def download(self, url: str) -> bytes:
        pass

    @abstractmethod
    def process(self, raw: bytes) -> ProcessedImage:
        pass

    def download_and_process(self, url: str) -> ProcessedImage:
        return self.process(self.download(url))


class PillowImageProcessor(ImageProcessor):
    """Blob mode: httpx download, Pillow re-encode and thumbnail."""

    available = True

    def __init__(self, timeout: float = DOWNLOAD_TIMEOUT, client: Optional[httpx.Client] = None):
        self.timeout = timeout
        self._client = client

    def download(self, url: str) -> bytes:
        logger.info(f"[ImageProcessing] Downloading image: {url[:60]}...")
        try:
            if self._client is not None:
                response = self._client.get(url, timeout=self.timeout)
            else:
                response = httpx.get(url, timeout=self.timeout, follow_redirects=True)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise UpstreamGenerationError("image", f"image download timed out: {e}", timeout=True) from e
        except httpx.HTTPError as e:
            raise UpstreamGenerationError("image", f"image download failed: {e}") from e

        logger.info(f"[ImageProcessing] Downloaded {len(response.content)} bytes")
        return response.content

    def process(self, raw: bytes) -> ProcessedImage:
        """
        Re-encode to PNG and derive a cover-cropped thumbnail.

        Raises:
            UpstreamGenerationError: If the bytes are not a readable image
        """
        try:
            with Image.open(io.BytesIO(raw)) as source:
                source.load()
                image = source.convert("RGBA") if source.mode not in ("RGB", "RGBA") else source.copy()
        except (UnidentifiedImageError, OSError) as e:
            raise UpstreamGenerationError("image", f"unreadable image data: {e}") from e

        original = io.BytesIO()
        image.save(original, format="PNG")

        thumbnail = ImageOps.fit(image, THUMBNAIL_SIZE, method=Image.Resampling.LANCZOS)
        thumb_buffer = io.BytesIO()
        thumbnail.save(thumb_buffer, format="PNG")

        return ProcessedImage(
            image_bytes=original.getvalue(),
            thumbnail_bytes=thumb_buffer.getvalue(),
        )


class UnavailableImageProcessor(ImageProcessor):
    """URL mode: post-processing is not installed."""

    available = False

    def download(self, url: str) -> bytes:
        raise RuntimeError("Image post-processing is not available")

    def process(self, raw: bytes) -> ProcessedImage:
        raise RuntimeError("Image post-processing is not available")


def get_image_processor(timeout: float = DOWNLOAD_TIMEOUT) -> ImageProcessor:
    """Pick the processor for this installation."""
    if PIL_AVAILABLE:
        return PillowImageProcessor(timeout=timeout)
    return UnavailableImageProcessor()
