"""
Model provider abstraction for fiction generation.

Supports multiple LLM backends:
- Claude (Anthropic) - default
- Ollama (local models)

Usage:
    provider = get_provider("ollama:llama3")
    result = provider.generate(system_prompt, user_prompt, config)

Provider failures are raised as UpstreamGenerationError(stage="fiction").
"""

import json
import logging
import socket
from abc import ABC, abstractmethod
from dataclasses import dataclass
from http.client import HTTPConnection, HTTPException
from typing import Any, Dict, Optional

from specgen.errors import UpstreamGenerationError
from specgen.infra.config import DEFAULT_FICTION_MODEL, GenerationConfig

logger = logging.getLogger(__name__)

STAGE = "fiction"


@dataclass
class ModelInfo:
    """Model identification information."""
    provider: str  # "anthropic", "ollama"
    model_name: str  # e.g., "claude-sonnet-4-5-20250929", "llama3"
    full_spec: str  # e.g., "claude-sonnet-4-5-20250929", "ollama:llama3"


@dataclass
class GenerationResult:
    """Result from text generation."""
    text: str
    usage: Optional[Dict[str, int]]
    provider: str
    model: str


def parse_model_spec(model_spec: Optional[str]) -> ModelInfo:
    """
    Parse model specification string into provider and model name.

    Formats:
    - "ollama:llama3" -> provider="ollama", model="llama3"
    - "claude-sonnet-4-5-20250929" -> provider="anthropic", model="claude-sonnet-4-5-20250929"
    - None -> default Claude model
    """
    if not model_spec:
        return ModelInfo(
            provider="anthropic",
            model_name=DEFAULT_FICTION_MODEL,
            full_spec=DEFAULT_FICTION_MODEL
        )

    if model_spec.startswith("ollama:"):
        model_name = model_spec.split(":", 1)[1]
        return ModelInfo(
            provider="ollama",
            model_name=model_name,
            full_spec=model_spec
        )

    return ModelInfo(
        provider="anthropic",
        model_name=model_spec,
        full_spec=model_spec
    )


class ModelProvider(ABC):
    """Abstract base class for text model providers."""

    @abstractmethod
    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        config: Dict[str, Any]
    ) -> GenerationResult:
        """
        Generate text using the model.

        Args:
            system_prompt: System prompt text
            user_prompt: User prompt text
            config: api_key, max_tokens, temperature, timeout

        Returns:
            GenerationResult with generated text and metadata
        """
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return provider name for metadata."""
        pass


class ClaudeProvider(ModelProvider):
    """Claude (Anthropic) model provider."""

    def __init__(self, model_name: str):
        self.model_name = model_name

    @property
    def provider_name(self) -> str:
        return "anthropic"

    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        config: Dict[str, Any]
    ) -> GenerationResult:
        """Generate using Claude API."""
        import anthropic

        logger.info(f"[ClaudeProvider] Generating with {self.model_name}")
        client = anthropic.Anthropic(
            api_key=config["api_key"],
            timeout=float(config.get("timeout", 120)),
            max_retries=0,
        )

        try:
            message = client.messages.create(
                model=self.model_name,
                max_tokens=int(config.get("max_tokens", 1000)),
                temperature=float(config.get("temperature", 0.8)),
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}]
            )
        except anthropic.APITimeoutError as e:
            logger.error(f"[ClaudeProvider] Timeout: {e}")
            raise UpstreamGenerationError(STAGE, str(e), timeout=True) from e
        except anthropic.APIError as e:
            logger.error(f"[ClaudeProvider] Generation failed: {e}")
            raise UpstreamGenerationError(STAGE, str(e)) from e

        if not message.content:
            raise UpstreamGenerationError(STAGE, "empty response from Claude")
        text = message.content[0].text

        usage = None
        if getattr(message, "usage", None):
            try:
                usage = {
                    "input_tokens": message.usage.input_tokens,
                    "output_tokens": message.usage.output_tokens,
                    "total_tokens": message.usage.input_tokens + message.usage.output_tokens
                }
            except (AttributeError, TypeError):
                pass

        logger.info(f"[ClaudeProvider] Generated {len(text)} chars")

        return GenerationResult(
            text=text,
            usage=usage,
            provider=self.provider_name,
            model=getattr(message, "model", None) or self.model_name
        )


class OllamaProvider(ModelProvider):
    """Ollama (local) model provider."""

    def __init__(self, model_name: str, host: str = "localhost", port: int = 11434):
        self.model_name = model_name
        self.host = host
        self.port = port

    @property
    def provider_name(self) -> str:
        return "ollama"

    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        config: Dict[str, Any]
    ) -> GenerationResult:
        """Generate using Ollama API."""
        logger.info(f"[OllamaProvider] Generating with {self.model_name}")

        request_body = {
            "model": self.model_name,
            "system": system_prompt,
            "prompt": user_prompt,
            "stream": False,
            "options": {
                "temperature": float(config.get("temperature", 0.8)),
                "num_predict": int(config.get("max_tokens", 1000)),
            }
        }

        timeout = float(config.get("timeout", 120))

        try:
            conn = HTTPConnection(self.host, self.port, timeout=timeout)
            try:
                conn.request(
                    "POST",
                    "/api/generate",
                    body=json.dumps(request_body),
                    headers={"Content-Type": "application/json"}
                )
                response = conn.getresponse()
                response_data = response.read().decode("utf-8")
            finally:
                conn.close()
        except socket.timeout as e:
            logger.error(f"[OllamaProvider] Timeout after {timeout}s")
            raise UpstreamGenerationError(STAGE, f"Ollama timeout after {timeout}s", timeout=True) from e
        except (socket.error, HTTPException, OSError) as e:
            logger.error(f"[OllamaProvider] Connection error: {e}")
            raise UpstreamGenerationError(STAGE, f"Ollama connection failed: {e}") from e

        try:
            response_json = json.loads(response_data)
        except json.JSONDecodeError as e:
            raise UpstreamGenerationError(STAGE, f"Invalid Ollama response: {e}") from e

        if "error" in response_json:
            raise UpstreamGenerationError(STAGE, f"Ollama error: {response_json['error']}")

        text = response_json.get("response", "")

        usage = None
        if "eval_count" in response_json:
            usage = {
                "input_tokens": response_json.get("prompt_eval_count", 0),
                "output_tokens": response_json.get("eval_count", 0),
                "total_tokens": response_json.get("prompt_eval_count", 0) + response_json.get("eval_count", 0)
            }

        logger.info(f"[OllamaProvider] Generated {len(text)} chars")

        return GenerationResult(
            text=text,
            usage=usage,
            provider=self.provider_name,
            model=self.model_name
        )


def get_provider(config: GenerationConfig) -> ModelProvider:
    """
    Get the text provider selected by config.fiction_model.

    Args:
        config: Generation configuration

    Returns:
        ModelProvider instance
    """
    info = parse_model_spec(config.fiction_model)

    if info.provider == "ollama":
        return OllamaProvider(info.model_name, host=config.ollama_host, port=config.ollama_port)
    return ClaudeProvider(info.model_name)
