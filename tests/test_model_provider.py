"""Tests for model_provider module."""

import json
import socket
from unittest.mock import MagicMock, patch

import httpx
import pytest

from specgen.errors import UpstreamGenerationError
from specgen.generation.model_provider import (
    ClaudeProvider,
    GenerationResult,
    ModelInfo,
    OllamaProvider,
    get_provider,
    parse_model_spec,
)
from specgen.infra.config import DEFAULT_FICTION_MODEL, GenerationConfig


PROVIDER_CONFIG = {"api_key": "test-key", "max_tokens": 500, "temperature": 0.5, "timeout": 30}


class TestModelInfo:
    """Tests for ModelInfo dataclass."""

    def test_model_info_creation(self):
        """Test creating a ModelInfo instance."""
        info = ModelInfo(
            provider="anthropic",
            model_name="claude-sonnet-4-5-20250929",
            full_spec="claude-sonnet-4-5-20250929"
        )
        assert info.provider == "anthropic"
        assert info.model_name == "claude-sonnet-4-5-20250929"


class TestParseModelSpec:
    """Tests for parse_model_spec function."""

    def test_parse_none_returns_default_claude(self):
        info = parse_model_spec(None)
        assert info.provider == "anthropic"
        assert info.model_name == DEFAULT_FICTION_MODEL

    def test_parse_ollama_spec(self):
        info = parse_model_spec("ollama:llama3")
        assert info.provider == "ollama"
        assert info.model_name == "llama3"
        assert info.full_spec == "ollama:llama3"

    def test_parse_ollama_with_complex_name(self):
        info = parse_model_spec("ollama:qwen2:7b-instruct")
        assert info.model_name == "qwen2:7b-instruct"

    def test_parse_claude_model_direct(self):
        info = parse_model_spec("claude-opus-4-1")
        assert info.provider == "anthropic"
        assert info.model_name == "claude-opus-4-1"


class TestGetProvider:
    """Tests for get_provider function."""

    def test_get_ollama_provider(self):
        config = GenerationConfig(fiction_model="ollama:llama3", ollama_host="gpu-box", ollama_port=9999)
        provider = get_provider(config)
        assert isinstance(provider, OllamaProvider)
        assert provider.model_name == "llama3"
        assert provider.host == "gpu-box"
        assert provider.port == 9999

    def test_get_default_provider(self):
        provider = get_provider(GenerationConfig())
        assert isinstance(provider, ClaudeProvider)
        assert provider.model_name == DEFAULT_FICTION_MODEL


class TestClaudeProvider:
    """Tests for ClaudeProvider."""

    def _message(self, text="A story"):
        message = MagicMock()
        message.content = [MagicMock(text=text)]
        message.usage.input_tokens = 100
        message.usage.output_tokens = 50
        message.model = "claude-sonnet-4-5-20250929"
        return message

    def test_generate_success(self):
        with patch("anthropic.Anthropic") as mock_anthropic:
            mock_client = MagicMock()
            mock_client.messages.create.return_value = self._message("Generated story")
            mock_anthropic.return_value = mock_client

            provider = ClaudeProvider("claude-sonnet-4-5-20250929")
            result = provider.generate("System", "User prompt", PROVIDER_CONFIG)

        assert isinstance(result, GenerationResult)
        assert result.text == "Generated story"
        assert result.provider == "anthropic"
        assert result.usage == {"input_tokens": 100, "output_tokens": 50, "total_tokens": 150}

        mock_anthropic.assert_called_once_with(api_key="test-key", timeout=30.0, max_retries=0)
        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["system"] == "System"
        assert kwargs["max_tokens"] == 500
        assert kwargs["temperature"] == 0.5
        assert kwargs["messages"] == [{"role": "user", "content": "User prompt"}]

    def test_api_error_wrapped(self):
        import anthropic

        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        with patch("anthropic.Anthropic") as mock_anthropic:
            mock_client = MagicMock()
            mock_client.messages.create.side_effect = anthropic.APIConnectionError(request=request)
            mock_anthropic.return_value = mock_client

            with pytest.raises(UpstreamGenerationError) as exc_info:
                ClaudeProvider("claude-sonnet-4-5-20250929").generate("s", "u", PROVIDER_CONFIG)

        assert exc_info.value.stage == "fiction"
        assert exc_info.value.timeout is False

    def test_timeout_flagged(self):
        import anthropic

        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        with patch("anthropic.Anthropic") as mock_anthropic:
            mock_client = MagicMock()
            mock_client.messages.create.side_effect = anthropic.APITimeoutError(request=request)
            mock_anthropic.return_value = mock_client

            with pytest.raises(UpstreamGenerationError) as exc_info:
                ClaudeProvider("claude-sonnet-4-5-20250929").generate("s", "u", PROVIDER_CONFIG)

        assert exc_info.value.timeout is True
        assert "timed out" in str(exc_info.value)

    def test_empty_content(self):
        with patch("anthropic.Anthropic") as mock_anthropic:
            message = self._message()
            message.content = []
            mock_anthropic.return_value.messages.create.return_value = message

            with pytest.raises(UpstreamGenerationError):
                ClaudeProvider("claude-sonnet-4-5-20250929").generate("s", "u", PROVIDER_CONFIG)


class TestOllamaProvider:
    """Tests for OllamaProvider."""

    def _connection(self, payload):
        mock_conn = MagicMock()
        mock_response = MagicMock()
        mock_response.read.return_value = json.dumps(payload).encode("utf-8")
        mock_conn.getresponse.return_value = mock_response
        return mock_conn

    def test_generate_success(self):
        mock_conn = self._connection({
            "response": "Local story",
            "prompt_eval_count": 20,
            "eval_count": 80,
        })

        with patch("specgen.generation.model_provider.HTTPConnection", return_value=mock_conn) as mock_http:
            result = OllamaProvider("llama3", host="gpu-box", port=9999).generate(
                "System", "Prompt", PROVIDER_CONFIG
            )

        mock_http.assert_called_once_with("gpu-box", 9999, timeout=30.0)
        body = json.loads(mock_conn.request.call_args.kwargs["body"])
        assert body["model"] == "llama3"
        assert body["stream"] is False
        assert body["options"]["num_predict"] == 500
        assert result.text == "Local story"
        assert result.usage["total_tokens"] == 100
        mock_conn.close.assert_called_once()

    def test_error_payload(self):
        mock_conn = self._connection({"error": "model not found"})
        with patch("specgen.generation.model_provider.HTTPConnection", return_value=mock_conn):
            with pytest.raises(UpstreamGenerationError) as exc_info:
                OllamaProvider("missing").generate("s", "u", PROVIDER_CONFIG)
        assert "model not found" in str(exc_info.value)

    def test_timeout(self):
        mock_conn = MagicMock()
        mock_conn.request.side_effect = socket.timeout("timed out")
        with patch("specgen.generation.model_provider.HTTPConnection", return_value=mock_conn):
            with pytest.raises(UpstreamGenerationError) as exc_info:
                OllamaProvider("llama3").generate("s", "u", PROVIDER_CONFIG)
        assert exc_info.value.timeout is True

    def test_connection_refused(self):
        mock_conn = MagicMock()
        mock_conn.request.side_effect = ConnectionRefusedError("refused")
        with patch("specgen.generation.model_provider.HTTPConnection", return_value=mock_conn):
            with pytest.raises(UpstreamGenerationError) as exc_info:
                OllamaProvider("llama3").generate("s", "u", PROVIDER_CONFIG)
        assert exc_info.value.timeout is False

    def test_invalid_json(self):
        mock_conn = MagicMock()
        mock_conn.getresponse.return_value.read.return_value = b"<html>"
        with patch("specgen.generation.model_provider.HTTPConnection", return_value=mock_conn):
            with pytest.raises(UpstreamGenerationError):
                OllamaProvider("llama3").generate("s", "u", PROVIDER_CONFIG)
