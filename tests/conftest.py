"""
Pytest configuration and shared fixtures.
"""

import io
import os
import pytest

from specgen.generation.image_processing import ImageProcessor, ProcessedImage
from specgen.generation.image_provider import ImageGenerationResult, ImageProvider
from specgen.generation.model_provider import GenerationResult, ModelProvider
from specgen.infra.config import GenerationConfig, StoreConfig
from specgen.store.database import SpecGenStore


SAMPLE_STORY = (
    "**Title: The Last Signal**\n\n"
    "Captain Mira Vance stood on the bridge as the station lights dimmed. "
    "Raj walked through the ancient temple under a golden glow."
)


@pytest.fixture(autouse=True)
def clean_env():
    """Keep provider credentials from the developer shell out of tests."""
    keys = ("ANTHROPIC_API_KEY", "OPENAI_API_KEY", "DATABASE_PATH", "SEED_DATA_PATH")
    saved = {key: os.environ.pop(key) for key in keys if key in os.environ}

    yield

    for key in keys:
        os.environ.pop(key, None)
    os.environ.update(saved)


@pytest.fixture
def store_config(tmp_path):
    return StoreConfig(db_path=tmp_path / "test.db")


@pytest.fixture
def store(store_config):
    """A migrated store backed by a temporary file."""
    return SpecGenStore(store_config)


@pytest.fixture
def generation_config():
    return GenerationConfig(
        anthropic_api_key="test-anthropic-key",
        openai_api_key="test-openai-key",
        image_style_suffix="Cinematic lighting.",
    )


class FakeTextProvider(ModelProvider):
    """Returns a canned story and records every prompt it receives."""

    def __init__(self, text=SAMPLE_STORY, error=None):
        self.text = text
        self.error = error
        self.calls = []

    @property
    def provider_name(self):
        return "fake-text"

    def generate(self, system_prompt, user_prompt, config):
        self.calls.append({"system": system_prompt, "prompt": user_prompt, "config": config})
        if self.error is not None:
            raise self.error
        return GenerationResult(
            text=self.text,
            usage={"input_tokens": 10, "output_tokens": 40, "total_tokens": 50},
            provider=self.provider_name,
            model="fake-model",
        )


class FakeImageProvider(ImageProvider):
    """Returns a fixed URL and records prompts."""

    def __init__(self, url="https://images.example.com/generated.png", error=None):
        self.url = url
        self.error = error
        self.calls = []

    @property
    def provider_name(self):
        return "fake-image"

    def generate(self, prompt, model, size, quality):
        self.calls.append({"prompt": prompt, "model": model, "size": size, "quality": quality})
        if self.error is not None:
            raise self.error
        return ImageGenerationResult(url=self.url, model=model, revised_prompt="revised")


class FakeImageProcessor(ImageProcessor):
    """Blob-mode processor that skips the network and Pillow."""

    available = True

    def __init__(self, image_bytes=b"\x89PNG-original", thumbnail_bytes=b"\x89PNG-thumb"):
        self.image_bytes = image_bytes
        self.thumbnail_bytes = thumbnail_bytes
        self.downloaded = []

    def download(self, url):
        self.downloaded.append(url)
        return b"raw"

    def process(self, raw):
        return ProcessedImage(image_bytes=self.image_bytes, thumbnail_bytes=self.thumbnail_bytes)


class UrlOnlyImageProcessor(ImageProcessor):
    """Stands in for an installation without post-processing."""

    available = False

    def download(self, url):
        raise AssertionError("download must not be called without post-processing")

    def process(self, raw):
        raise AssertionError("process must not be called without post-processing")


@pytest.fixture
def text_provider():
    return FakeTextProvider()


@pytest.fixture
def image_provider():
    return FakeImageProvider()


@pytest.fixture
def image_processor():
    return FakeImageProcessor()


def make_png(size=(320, 200), color=(200, 40, 40)) -> bytes:
    """Encode a solid-colour PNG in memory."""
    from PIL import Image

    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()
