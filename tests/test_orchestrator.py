"""Tests for the generation orchestrator."""

import threading
from unittest.mock import patch

import pytest

from conftest import (
    SAMPLE_STORY,
    FakeImageProcessor,
    FakeImageProvider,
    FakeTextProvider,
    UrlOnlyImageProcessor,
)
from specgen.errors import (
    ConfigurationError,
    GenerationCancelledError,
    GenerationDisabledError,
    UpstreamGenerationError,
)
from specgen.generation.model_provider import GenerationResult, OllamaProvider
from specgen.generation.orchestrator import (
    GenerationOrchestrator,
    GenerationRequest,
    GenerationType,
)
from specgen.infra.config import GenerationConfig
from specgen.store.entities import ContentStatus, ContentType


PARAMETERS = {"science-fiction": {"technology-level": "Advanced"}}


@pytest.fixture
def orchestrator(generation_config, store, text_provider, image_provider, image_processor):
    return GenerationOrchestrator(
        generation_config,
        store=store,
        text_provider=text_provider,
        image_provider=image_provider,
        image_processor=image_processor,
    )


class TestGenerationRequest:
    """Tests for GenerationRequest parsing."""

    def test_from_dict(self):
        request = GenerationRequest.from_dict({"type": "fiction", "parameters": PARAMETERS, "year": 2150})
        assert request.type == GenerationType.FICTION
        assert request.year == 2150

    def test_from_dict_defaults(self):
        request = GenerationRequest.from_dict({})
        assert request.type == GenerationType.COMBINED
        assert request.parameters == {}
        assert request.year is None

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            GenerationRequest.from_dict({"type": "audio"})


class TestGenerateFiction:
    """Tests for the fiction stage."""

    def test_fiction_result(self, orchestrator, text_provider):
        result = orchestrator.generate_fiction(PARAMETERS, year=2150)

        assert result.title == "The Last Signal"
        assert result.word_count > 0
        assert result.metadata["model"] == "fake-model"
        assert result.metadata["tokens"] == 50

        call = text_provider.calls[0]
        assert "Setting: Year 2150" in call["prompt"]
        assert "technology level: Advanced" in call["prompt"]
        assert call["config"]["api_key"] == "test-anthropic-key"

    def test_missing_text_credential(self, store):
        orchestrator = GenerationOrchestrator(
            GenerationConfig(openai_api_key="k"),
            store=store,
            image_processor=FakeImageProcessor(),
        )
        with pytest.raises(ConfigurationError):
            orchestrator.generate_fiction(PARAMETERS)

    def test_ollama_needs_no_credential(self, store):
        orchestrator = GenerationOrchestrator(
            GenerationConfig(fiction_model="ollama:llama3"),
            store=store,
            image_processor=FakeImageProcessor(),
        )
        assert isinstance(orchestrator.text_provider, OllamaProvider)

        with patch.object(OllamaProvider, "generate", return_value=GenerationResult(
            text=SAMPLE_STORY, usage=None, provider="ollama", model="llama3"
        )):
            result = orchestrator.generate_fiction(PARAMETERS)

        assert result.title == "The Last Signal"
        assert result.metadata["provider"] == "ollama"

    def test_unexpected_provider_error_wrapped(self, generation_config, store):
        orchestrator = GenerationOrchestrator(
            generation_config,
            store=store,
            text_provider=FakeTextProvider(error=RuntimeError("socket closed")),
            image_processor=FakeImageProcessor(),
        )
        with pytest.raises(UpstreamGenerationError) as exc_info:
            orchestrator.generate_fiction(PARAMETERS)
        assert exc_info.value.stage == "fiction"

    def test_empty_text_is_upstream_error(self, generation_config, store):
        orchestrator = GenerationOrchestrator(
            generation_config,
            store=store,
            text_provider=FakeTextProvider(text="   "),
            image_processor=FakeImageProcessor(),
        )
        with pytest.raises(UpstreamGenerationError):
            orchestrator.generate_fiction(PARAMETERS)


class TestGenerateImage:
    """Tests for the image stage."""

    def test_blob_mode(self, orchestrator, image_provider, image_processor):
        result = orchestrator.generate_image(PARAMETERS, year=2150)

        assert result.is_blob_mode
        assert result.image_blob == image_processor.image_bytes
        assert result.image_size_bytes == len(image_processor.image_bytes)
        assert result.thumbnail_size_bytes == len(image_processor.thumbnail_bytes)
        assert result.image_url is None
        assert image_processor.downloaded == [image_provider.url]
        assert image_provider.calls[0]["model"] == "dall-e-3"

    def test_url_mode(self, generation_config, store, image_provider):
        orchestrator = GenerationOrchestrator(
            generation_config,
            store=store,
            text_provider=FakeTextProvider(),
            image_provider=image_provider,
            image_processor=UrlOnlyImageProcessor(),
        )
        assert orchestrator.has_post_processing is False

        result = orchestrator.generate_image(PARAMETERS)

        assert not result.is_blob_mode
        assert result.image_url == image_provider.url
        assert result.image_size_bytes == 0
        assert result.metadata["image_url"] == image_provider.url

    def test_prompt_grounded_in_text(self, orchestrator, image_provider):
        orchestrator.generate_image(
            PARAMETERS,
            year=2150,
            generated_text="Raj walked through the ancient temple under a golden glow",
        )
        prompt = image_provider.calls[0]["prompt"]
        assert "showing: Raj, ancient temple, golden glow" in prompt
        assert "Set in year 2150." in prompt
        assert prompt.endswith("Cinematic lighting.")

    def test_stored_prompt_is_preview(self, orchestrator):
        result = orchestrator.generate_image(PARAMETERS, year=2150)
        assert result.image_prompt.endswith("...")
        assert len(result.image_prompt) <= 103

    def test_missing_image_credential(self, store):
        orchestrator = GenerationOrchestrator(
            GenerationConfig(anthropic_api_key="k"),
            store=store,
            text_provider=FakeTextProvider(),
            image_processor=FakeImageProcessor(),
        )
        with pytest.raises(ConfigurationError):
            orchestrator.generate_image(PARAMETERS)


class TestGenerateCombined:
    """Tests for the combined pipeline."""

    def test_fiction_feeds_image(self, orchestrator, text_provider, image_provider):
        result = orchestrator.generate_combined(PARAMETERS, year=2150)

        assert result.fiction.title == "The Last Signal"
        assert result.image.is_blob_mode
        assert len(text_provider.calls) == 1
        assert "Captain Mira Vance" in image_provider.calls[0]["prompt"]
        assert set(result.metadata) == {"fiction", "image"}

    def test_image_never_called_after_fiction_failure(self, generation_config, store, image_provider):
        orchestrator = GenerationOrchestrator(
            generation_config,
            store=store,
            text_provider=FakeTextProvider(error=UpstreamGenerationError("fiction", "overloaded")),
            image_provider=image_provider,
            image_processor=FakeImageProcessor(),
        )
        with pytest.raises(UpstreamGenerationError):
            orchestrator.generate_combined(PARAMETERS)
        assert image_provider.calls == []

    def test_missing_image_credential_checked_before_fiction(self, store):
        text_provider = FakeTextProvider()
        orchestrator = GenerationOrchestrator(
            GenerationConfig(anthropic_api_key="k"),
            store=store,
            text_provider=text_provider,
            image_processor=FakeImageProcessor(),
        )
        with pytest.raises(ConfigurationError):
            orchestrator.generate_combined(PARAMETERS)
        assert text_provider.calls == []


class TestGenerate:
    """Tests for end-to-end request handling and persistence."""

    def test_fiction_request_persisted(self, orchestrator, store):
        content = orchestrator.generate(
            GenerationRequest(type=GenerationType.FICTION, parameters=PARAMETERS, year=2150)
        )

        stored = store.get_content(content.id)
        assert stored.title == "The Last Signal"
        assert stored.status == ContentStatus.COMPLETED
        assert stored.prompt_data == PARAMETERS
        assert stored.metadata["type"] == "fiction"
        assert stored.metadata["year"] == 2150
        assert stored.type == ContentType.FICTION
        assert stored.year == 2150
        assert stored.image_size_bytes == 0
        assert stored.generation_time >= 0

    def test_combined_request_persists_blobs(self, orchestrator, store, image_processor):
        content = orchestrator.generate(GenerationRequest(type=GenerationType.COMBINED, parameters=PARAMETERS))

        image_bytes, image_format = store.get_image(content.id, "original")
        assert image_bytes == image_processor.image_bytes
        assert image_format == "png"
        assert store.get_content(content.id).fiction_content.startswith("**Title:")

    def test_image_request_title(self, orchestrator):
        content = orchestrator.generate(GenerationRequest(type=GenerationType.IMAGE, parameters=PARAMETERS))
        assert content.title.startswith("Image ")
        assert content.fiction_content == ""
        assert content.word_count == 0

    def test_url_mode_record_keeps_provider_url(self, generation_config, store, image_provider):
        orchestrator = GenerationOrchestrator(
            generation_config,
            store=store,
            text_provider=FakeTextProvider(),
            image_provider=image_provider,
            image_processor=UrlOnlyImageProcessor(),
        )
        content = orchestrator.generate(GenerationRequest(type=GenerationType.COMBINED, parameters=PARAMETERS))

        stored = store.get_content(content.id)
        assert stored.image_blob is None
        assert stored.image_urls() == {"image_url": None, "thumbnail_url": None}
        assert stored.metadata["image"]["image_url"] == image_provider.url

    def test_failure_recorded_and_reraised(self, generation_config, store):
        orchestrator = GenerationOrchestrator(
            generation_config,
            store=store,
            text_provider=FakeTextProvider(error=UpstreamGenerationError("fiction", "overloaded")),
            image_processor=FakeImageProcessor(),
        )
        with pytest.raises(UpstreamGenerationError):
            orchestrator.generate(GenerationRequest(type=GenerationType.FICTION, parameters=PARAMETERS))

        assert store.count_content(ContentStatus.COMPLETED) == 0
        failed = store.list_recent_content(status=ContentStatus.FAILED)
        assert len(failed) == 1
        assert "overloaded" in failed[0].error_message
        assert failed[0].metadata["stage"] == "fiction"

    def test_failure_not_recorded_when_disabled(self, generation_config, store):
        generation_config.persist_failures = False
        orchestrator = GenerationOrchestrator(
            generation_config,
            store=store,
            text_provider=FakeTextProvider(error=UpstreamGenerationError("fiction", "overloaded")),
            image_processor=FakeImageProcessor(),
        )
        with pytest.raises(UpstreamGenerationError):
            orchestrator.generate(GenerationRequest(type=GenerationType.FICTION))

        assert store.count_content() == 0

    def test_configuration_error_persists_nothing(self, store):
        orchestrator = GenerationOrchestrator(
            GenerationConfig(),
            store=store,
            image_processor=FakeImageProcessor(),
        )
        with pytest.raises(ConfigurationError):
            orchestrator.generate(GenerationRequest(type=GenerationType.FICTION))
        assert store.count_content() == 0

    def test_cancelled_request_persists_nothing(self, orchestrator, store):
        cancel_event = threading.Event()
        cancel_event.set()

        with pytest.raises(GenerationCancelledError):
            orchestrator.generate(GenerationRequest(type=GenerationType.FICTION), cancel_event)
        assert store.count_content() == 0

    def test_without_store(self, generation_config):
        orchestrator = GenerationOrchestrator(
            generation_config,
            text_provider=FakeTextProvider(),
            image_provider=FakeImageProvider(),
            image_processor=FakeImageProcessor(),
        )
        content = orchestrator.generate(GenerationRequest(type=GenerationType.FICTION))
        assert content.title == "The Last Signal"


class TestStoredSettings:
    """Tests for generation settings read from the store."""

    def test_defaults_without_overrides(self, orchestrator, generation_config):
        assert orchestrator.runtime_config() is generation_config

    def test_fiction_settings_override_config(self, orchestrator, store, text_provider):
        store.set_setting("ai.parameters.fiction.temperature", 0.2, "number")
        store.set_setting("ai.parameters.fiction.max_tokens", 1500, "number")
        store.set_setting("ai.parameters.fiction.system_prompt", "Write tersely.")

        orchestrator.generate_fiction(PARAMETERS)

        call = text_provider.calls[0]
        assert call["system"] == "Write tersely."
        assert call["config"]["temperature"] == 0.2
        assert call["config"]["max_tokens"] == 1500

    def test_image_settings_override_config(self, orchestrator, store, image_provider):
        store.set_setting("ai.models.image", "dall-e-2")
        store.set_setting("ai.parameters.image.size", "512x512")
        store.set_setting("ai.parameters.image.quality", "hd")

        orchestrator.generate_image(PARAMETERS)

        assert image_provider.calls[0]["model"] == "dall-e-2"
        assert image_provider.calls[0]["size"] == "512x512"
        assert image_provider.calls[0]["quality"] == "hd"

    def test_wrongly_typed_setting_ignored(self, orchestrator, store, generation_config):
        store.set_setting("ai.parameters.fiction.max_tokens", "many")
        store.set_setting("ai.parameters.fiction.temperature", True, "boolean")

        config = orchestrator.runtime_config()
        assert config.max_tokens == generation_config.max_tokens
        assert config.temperature == generation_config.temperature

    def test_image_generation_disabled(self, orchestrator, store, text_provider, image_provider):
        store.set_setting("enable_image_generation", False, "boolean")

        with pytest.raises(GenerationDisabledError):
            orchestrator.generate(GenerationRequest(type=GenerationType.IMAGE))
        with pytest.raises(GenerationDisabledError):
            orchestrator.generate(GenerationRequest(type=GenerationType.COMBINED))

        assert text_provider.calls == []
        assert image_provider.calls == []
        assert store.count_content() == 0

        content = orchestrator.generate(GenerationRequest(type=GenerationType.FICTION))
        assert content.type == ContentType.FICTION

    def test_image_generation_enabled_when_setting_removed(self, orchestrator, store, image_provider):
        store.delete_setting("enable_image_generation")

        orchestrator.generate_image(PARAMETERS)
        assert len(image_provider.calls) == 1
