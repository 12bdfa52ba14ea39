"""
Infrastructure module - configuration and logging.
"""

from .config import (
    AppConfig,
    GenerationConfig,
    StoreConfig,
    load_config,
)

from .logging_config import generation_context, setup_logging

__all__ = [
    "AppConfig",
    "GenerationConfig",
    "StoreConfig",
    "generation_context",
    "load_config",
    "setup_logging",
]
