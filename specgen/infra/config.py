"""
Configuration loading for SpecGen.

Environment variables (optionally from a .env file) are read once, in
load_config(), and turned into explicit config objects. The store and the
orchestrator receive these objects through their constructors and never
read the environment themselves.

Environment Variables:
- DATABASE_PATH: SQLite database file (default: data/specgen.db)
- SEED_DATA_PATH: JSON dataset imported into an empty store (default: unset)
- MIGRATIONS_DIR: Override bundled migration directory (default: unset)
- ANTHROPIC_API_KEY / OPENAI_API_KEY: Provider credentials
- FICTION_MODEL: Claude model name or "ollama:<model>"
- IMAGE_MODEL, IMAGE_SIZE, IMAGE_QUALITY: Image generation options
- TEMPERATURE, MAX_TOKENS: Text generation options
- GENERATION_TIMEOUT: Upstream call timeout in seconds (default: 120)
- PERSIST_FAILED_GENERATIONS: Store failed-status records (default: true)
- LOG_LEVEL, LOG_DIR: Logging options
- API_HOST, API_PORT: Server bind address
- OLLAMA_HOST, OLLAMA_PORT: Local Ollama server
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from specgen.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_FICTION_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_IMAGE_MODEL = "dall-e-3"
DEFAULT_SYSTEM_PROMPT = (
    "You are a speculative fiction generator that creates compelling, imaginative stories."
)
DEFAULT_STYLE_SUFFIX = (
    "Use high-quality, photorealistic rendering with attention to detail and composition."
)


def _get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean value from environment variable."""
    val = os.getenv(key, "").lower()
    if val in ("true", "1", "yes", "on"):
        return True
    elif val in ("false", "0", "no", "off"):
        return False
    return default


def _get_env_int(key: str, default: int) -> int:
    """Get integer value from environment variable."""
    val = os.getenv(key)
    if val is not None:
        try:
            return int(val)
        except ValueError:
            logger.warning(f"[Config] Invalid integer for {key}: {val}, using default: {default}")
    return default


def _get_env_float(key: str, default: float) -> float:
    """Get float value from environment variable."""
    val = os.getenv(key)
    if val is not None:
        try:
            return float(val)
        except ValueError:
            logger.warning(f"[Config] Invalid number for {key}: {val}, using default: {default}")
    return default


@dataclass
class StoreConfig:
    """Persistent store settings."""

    db_path: Path = Path("data/specgen.db")
    seed_data_path: Optional[Path] = None
    migrations_dir: Optional[Path] = None


@dataclass
class GenerationConfig:
    """Upstream provider settings for the generation orchestrator."""

    fiction_model: str = DEFAULT_FICTION_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    anthropic_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    temperature: float = 0.8
    max_tokens: int = 1000
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    image_size: str = "1024x1024"
    image_quality: str = "standard"
    image_style_suffix: str = DEFAULT_STYLE_SUFFIX
    timeout: float = 120.0
    persist_failures: bool = True
    ollama_host: str = "localhost"
    ollama_port: int = 11434

    def uses_ollama(self) -> bool:
        return self.fiction_model.startswith("ollama:")

    def require_text_credentials(self) -> None:
        """Raise ConfigurationError if the text provider has no credential."""
        if not self.uses_ollama() and not self.anthropic_api_key:
            raise ConfigurationError(
                "ANTHROPIC_API_KEY is not set. Add it to the environment or .env file."
            )

    def require_image_credentials(self) -> None:
        """Raise ConfigurationError if the image provider has no credential."""
        if not self.openai_api_key:
            raise ConfigurationError(
                "OPENAI_API_KEY is not set. Add it to the environment or .env file."
            )


@dataclass
class AppConfig:
    """Top-level configuration bundle."""

    store: StoreConfig = field(default_factory=StoreConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    log_level: str = "INFO"
    log_dir: Optional[str] = "logs"
    api_host: str = "127.0.0.1"
    api_port: int = 8000


def _optional_path(key: str) -> Optional[Path]:
    val = os.getenv(key)
    return Path(val) if val else None


def load_config(env_file: Optional[str] = None) -> AppConfig:
    """
    Load configuration from environment variables.

    Args:
        env_file: Optional .env file path. Defaults to python-dotenv's
            lookup of a .env file in the working directory tree.

    Returns:
        AppConfig with store, generation and server settings
    """
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    store = StoreConfig(
        db_path=Path(os.getenv("DATABASE_PATH", "data/specgen.db")),
        seed_data_path=_optional_path("SEED_DATA_PATH"),
        migrations_dir=_optional_path("MIGRATIONS_DIR"),
    )

    generation = GenerationConfig(
        fiction_model=os.getenv("FICTION_MODEL", DEFAULT_FICTION_MODEL),
        image_model=os.getenv("IMAGE_MODEL", DEFAULT_IMAGE_MODEL),
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        temperature=_get_env_float("TEMPERATURE", 0.8),
        max_tokens=_get_env_int("MAX_TOKENS", 1000),
        system_prompt=os.getenv("SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT),
        image_size=os.getenv("IMAGE_SIZE", "1024x1024"),
        image_quality=os.getenv("IMAGE_QUALITY", "standard"),
        image_style_suffix=os.getenv("IMAGE_STYLE_SUFFIX", DEFAULT_STYLE_SUFFIX),
        timeout=_get_env_float("GENERATION_TIMEOUT", 120.0),
        persist_failures=_get_env_bool("PERSIST_FAILED_GENERATIONS", True),
        ollama_host=os.getenv("OLLAMA_HOST", "localhost"),
        ollama_port=_get_env_int("OLLAMA_PORT", 11434),
    )

    log_dir = os.getenv("LOG_DIR", "logs")

    return AppConfig(
        store=store,
        generation=generation,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_dir=log_dir or None,
        api_host=os.getenv("API_HOST", "127.0.0.1"),
        api_port=_get_env_int("API_PORT", 8000),
    )
