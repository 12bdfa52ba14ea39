"""
Generation orchestrator.

Runs one generation request as a sequential pipeline:

    Started -> TextGenerated -> (ImageRequested -> ImageReady | ImageSkipped) -> Persisted

Fiction is always generated before the image it illustrates, and the image
prompt is grounded in the fiction through the visual extractor. Nothing is
retried here; a failure surfaces to the caller. A completed record is only
written after every requested stage succeeded.
"""

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from specgen.errors import (
    GenerationCancelledError,
    GenerationDisabledError,
    SettingNotFoundError,
    SpecGenError,
    UpstreamGenerationError,
)
from specgen.infra.config import GenerationConfig
from specgen.infra.logging_config import generation_context
from specgen.store.database import SpecGenStore
from specgen.store.entities import (
    IMAGE_PROMPT_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    ContentStatus,
    ContentType,
    GeneratedContent,
    generate_uuid,
)
from .image_processing import ImageProcessor, get_image_processor
from .image_provider import ImageProvider, OpenAIImageProvider
from .model_provider import ModelProvider, get_provider
from .prompt_builder import (
    build_fiction_prompt,
    build_image_prompt,
    count_words,
    extract_title,
)

logger = logging.getLogger(__name__)

STORED_PROMPT_PREVIEW = 100

IMAGE_GENERATION_SETTING = "enable_image_generation"


def _as_text(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"expected non-empty text, got {value!r}")
    return value


def _as_float(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"expected a number, got {value!r}")
    return float(value)


def _as_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or int(value) != value:
        raise ValueError(f"expected an integer, got {value!r}")
    if value <= 0:
        raise ValueError(f"expected a positive integer, got {value!r}")
    return int(value)


# Stored settings that override GenerationConfig fields: key -> (field, coercion)
SETTING_OVERRIDES: Dict[str, Tuple[str, Callable[[Any], Any]]] = {
    "ai.models.image": ("image_model", _as_text),
    "ai.parameters.image.size": ("image_size", _as_text),
    "ai.parameters.image.quality": ("image_quality", _as_text),
    "ai.parameters.fiction.temperature": ("temperature", _as_float),
    "ai.parameters.fiction.max_tokens": ("max_tokens", _as_int),
    "ai.parameters.fiction.system_prompt": ("system_prompt", _as_text),
}


GenerationType = ContentType


@dataclass
class GenerationRequest:
    """What to generate: {type, parameters, year?}."""

    type: GenerationType
    parameters: Dict[str, Any] = field(default_factory=dict)
    year: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenerationRequest":
        return cls(
            type=GenerationType(data.get("type", "combined")),
            parameters=data.get("parameters") or {},
            year=data.get("year"),
        )


@dataclass
class FictionResult:
    title: str
    content: str
    word_count: int
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ImageResult:
    """
    Image stage output.

    Blob mode fills image_blob/image_thumbnail and sizes; URL mode fills
    only image_url. The two are never populated together.
    """

    image_prompt: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    image_blob: Optional[bytes] = None
    image_thumbnail: Optional[bytes] = None
    image_format: str = "png"
    image_size_bytes: int = 0
    thumbnail_size_bytes: int = 0
    image_url: Optional[str] = None

    @property
    def is_blob_mode(self) -> bool:
        return self.image_blob is not None


@dataclass
class CombinedResult:
    fiction: FictionResult
    image: ImageResult

    @property
    def metadata(self) -> Dict[str, Any]:
        return {"fiction": self.fiction.metadata, "image": self.image.metadata}


def _preview(prompt: str) -> str:
    return (prompt[:STORED_PROMPT_PREVIEW] + "...")[:IMAGE_PROMPT_MAX_LENGTH]


class GenerationOrchestrator:
    """
    Sequences text generation, visual extraction, image generation and
    persistence for one request at a time.

    Collaborators may be injected; otherwise they are built from config.
    Whether image post-processing is available is decided here, once.
    """

    def __init__(
        self,
        config: GenerationConfig,
        store: Optional[SpecGenStore] = None,
        text_provider: Optional[ModelProvider] = None,
        image_provider: Optional[ImageProvider] = None,
        image_processor: Optional[ImageProcessor] = None,
    ):
        self.config = config
        self.store = store

        self._default_text_provider = text_provider is None
        self.text_provider = text_provider or get_provider(config)
        self._image_provider = image_provider

        self.image_processor = image_processor or get_image_processor(timeout=config.timeout)
        self.has_post_processing = self.image_processor.available

        logger.info(
            f"[Orchestrator] Ready - text: {self.text_provider.provider_name}, "
            f"image mode: {'blob' if self.has_post_processing else 'url'}"
        )

    @property
    def image_provider(self) -> ImageProvider:
        if self._image_provider is None:
            self.config.require_image_credentials()
            self._image_provider = OpenAIImageProvider(
                api_key=self.config.openai_api_key,
                timeout=self.config.timeout,
            )
        return self._image_provider

    # =========================================================================
    # Stored settings
    # =========================================================================

    def _read_setting(self, key: str) -> Any:
        if self.store is None:
            return None
        try:
            return self.store.get_setting(key)
        except SettingNotFoundError:
            return None

    def runtime_config(self) -> GenerationConfig:
        """
        GenerationConfig with stored ai.* settings applied on top.

        Settings that are absent keep the configured value; settings of the
        wrong type are logged and ignored.
        """
        overrides: Dict[str, Any] = {}
        for key, (field_name, coerce) in SETTING_OVERRIDES.items():
            value = self._read_setting(key)
            if value is None:
                continue
            try:
                overrides[field_name] = coerce(value)
            except ValueError as e:
                logger.warning(f"[Orchestrator] Ignoring setting {key}: {e}")

        if not overrides:
            return self.config
        return replace(self.config, **overrides)

    def require_image_enabled(self) -> None:
        """Raise GenerationDisabledError when image generation is switched off."""
        enabled = self._read_setting(IMAGE_GENERATION_SETTING)
        if enabled is False or (isinstance(enabled, str) and enabled.strip().lower() == "false"):
            logger.info("[Orchestrator] Image generation is disabled in settings")
            raise GenerationDisabledError(IMAGE_GENERATION_SETTING)

    def _check_cancelled(self, cancel_event: Optional[threading.Event], stage: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"[Orchestrator] Cancelled during {stage}")
            raise GenerationCancelledError(stage)

    # =========================================================================
    # Stages
    # =========================================================================

    def generate_fiction(
        self,
        parameters: Dict[str, Any],
        year: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> FictionResult:
        """
        Generate story text from a parameter set.

        Raises:
            ConfigurationError: If the text provider credential is missing
            UpstreamGenerationError: If the provider fails or times out
        """
        if self._default_text_provider:
            self.config.require_text_credentials()

        config = self.runtime_config()
        prompt = build_fiction_prompt(parameters, year)
        provider_config = {
            "api_key": config.anthropic_api_key,
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
            "timeout": config.timeout,
        }

        try:
            result = self.text_provider.generate(config.system_prompt, prompt, provider_config)
        except SpecGenError:
            raise
        except Exception as e:
            logger.error(f"[Orchestrator] Fiction provider error: {e}")
            raise UpstreamGenerationError("fiction", str(e)) from e

        self._check_cancelled(cancel_event, "fiction")

        content = result.text or ""
        if not content.strip():
            raise UpstreamGenerationError("fiction", "provider returned empty text")

        usage = result.usage or {}
        metadata = {
            "provider": result.provider,
            "model": result.model,
            "tokens": usage.get("total_tokens"),
            "usage": usage,
        }

        title = extract_title(content)
        word_count = count_words(content)
        logger.info(f"[Orchestrator] Fiction ready: '{title}' ({word_count} words)")

        return FictionResult(title=title, content=content, word_count=word_count, metadata=metadata)

    def generate_image(
        self,
        parameters: Dict[str, Any],
        year: Optional[int] = None,
        generated_text: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ImageResult:
        """
        Generate an image, grounded in generated_text when given.

        With post-processing the image is downloaded and stored as blobs;
        without it only the provider URL is returned.

        Raises:
            ConfigurationError: If the image provider credential is missing
            UpstreamGenerationError: If generation or download fails
        """
        self.require_image_enabled()
        provider = self.image_provider
        config = self.runtime_config()
        prompt = build_image_prompt(
            year=year,
            generated_text=generated_text,
            style_suffix=config.image_style_suffix,
        )
        stored_prompt = _preview(prompt)

        try:
            generated = provider.generate(
                prompt=prompt,
                model=config.image_model,
                size=config.image_size,
                quality=config.image_quality,
            )
        except SpecGenError:
            raise
        except Exception as e:
            logger.error(f"[Orchestrator] Image provider error: {e}")
            raise UpstreamGenerationError("image", str(e)) from e

        self._check_cancelled(cancel_event, "image")

        metadata: Dict[str, Any] = {
            "provider": provider.provider_name,
            "model": generated.model,
            "prompt": stored_prompt,
        }
        if generated.revised_prompt:
            metadata["revised_prompt"] = generated.revised_prompt

        if not self.has_post_processing:
            logger.info("[Orchestrator] Post-processing unavailable, keeping image URL")
            metadata["image_url"] = generated.url
            return ImageResult(image_prompt=stored_prompt, metadata=metadata, image_url=generated.url)

        try:
            processed = self.image_processor.download_and_process(generated.url)
        except SpecGenError:
            raise
        except Exception as e:
            logger.error(f"[Orchestrator] Image processing error: {e}")
            raise UpstreamGenerationError("image", f"image processing failed: {e}") from e

        self._check_cancelled(cancel_event, "image")

        metadata["original_size"] = processed.image_size
        metadata["thumbnail_size"] = processed.thumbnail_size

        return ImageResult(
            image_prompt=stored_prompt,
            metadata=metadata,
            image_blob=processed.image_bytes,
            image_thumbnail=processed.thumbnail_bytes,
            image_format=processed.format,
            image_size_bytes=processed.image_size,
            thumbnail_size_bytes=processed.thumbnail_size,
        )

    def generate_combined(
        self,
        parameters: Dict[str, Any],
        year: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> CombinedResult:
        """Fiction first; the image stage runs only after fiction succeeded."""
        # Fail on a disabled image stage or missing credential before spending a fiction call
        self.require_image_enabled()
        self.image_provider
        fiction = self.generate_fiction(parameters, year, cancel_event=cancel_event)
        image = self.generate_image(
            parameters, year, generated_text=fiction.content, cancel_event=cancel_event
        )
        return CombinedResult(fiction=fiction, image=image)

    # =========================================================================
    # Request handling
    # =========================================================================

    def generate(
        self,
        request: GenerationRequest,
        cancel_event: Optional[threading.Event] = None,
    ) -> GeneratedContent:
        """
        Run a request end to end and persist the result.

        On upstream failure a separate failed-status record is stored (when
        enabled) and the error is re-raised. Cancellation persists nothing.
        """
        with generation_context(f"{request.type.value}-{generate_uuid()[:8]}"):
            started = time.monotonic()
            logger.info(f"[Orchestrator] Generating {request.type.value} (year={request.year})")

            try:
                content = self._run(request, cancel_event)
            except UpstreamGenerationError as e:
                self._record_failure(request, e, started)
                raise

            content.generation_time = int((time.monotonic() - started) * 1000)
            self._check_cancelled(cancel_event, "persist")

            if self.store is not None:
                self.store.create_content(content)
            logger.info(f"[Orchestrator] Completed {content.id} in {content.generation_time}ms")
            return content

    def _run(
        self,
        request: GenerationRequest,
        cancel_event: Optional[threading.Event],
    ) -> GeneratedContent:
        base_metadata = {"type": request.type.value, "year": request.year}
        record_fields = {"type": request.type, "year": request.year, "prompt_data": request.parameters}

        if request.type == GenerationType.FICTION:
            fiction = self.generate_fiction(request.parameters, request.year, cancel_event)
            return GeneratedContent.create(
                title=fiction.title[:TITLE_MAX_LENGTH],
                fiction_content=fiction.content,
                word_count=fiction.word_count,
                **record_fields,
                metadata={**base_metadata, "fiction": fiction.metadata},
                status=ContentStatus.COMPLETED,
            )

        if request.type == GenerationType.IMAGE:
            image = self.generate_image(request.parameters, request.year, cancel_event=cancel_event)
            title = f"Image {datetime.now(timezone.utc).strftime('%Y-%m-%d')}"
            return self._with_image(
                GeneratedContent.create(
                    title=title,
                    **record_fields,
                    metadata={**base_metadata, "image": image.metadata},
                    status=ContentStatus.COMPLETED,
                ),
                image,
            )

        combined = self.generate_combined(request.parameters, request.year, cancel_event)
        return self._with_image(
            GeneratedContent.create(
                title=combined.fiction.title[:TITLE_MAX_LENGTH],
                fiction_content=combined.fiction.content,
                word_count=combined.fiction.word_count,
                **record_fields,
                metadata={**base_metadata, **combined.metadata},
                status=ContentStatus.COMPLETED,
            ),
            combined.image,
        )

    def _with_image(self, content: GeneratedContent, image: ImageResult) -> GeneratedContent:
        content.image_prompt = image.image_prompt
        if image.is_blob_mode:
            content.image_blob = image.image_blob
            content.image_thumbnail = image.image_thumbnail
            content.image_format = image.image_format
            content.image_size_bytes = image.image_size_bytes
            content.thumbnail_size_bytes = image.thumbnail_size_bytes
        return content

    def _record_failure(
        self,
        request: GenerationRequest,
        error: UpstreamGenerationError,
        started: float,
    ) -> None:
        if self.store is None or not self.config.persist_failures:
            return

        failed = GeneratedContent.create(
            title=f"Failed {request.type.value} generation",
            type=request.type,
            year=request.year,
            prompt_data=request.parameters,
            metadata={
                "type": request.type.value,
                "year": request.year,
                "stage": error.stage,
                "timeout": error.timeout,
            },
            generation_time=int((time.monotonic() - started) * 1000),
            status=ContentStatus.FAILED,
            error_message=str(error),
        )
        try:
            self.store.create_content(failed)
        except SpecGenError as store_error:
            # The upstream error is the one reported to the caller
            logger.error(f"[Orchestrator] Could not record failed generation: {store_error}")
