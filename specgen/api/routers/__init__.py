"""
API Routers package.
"""

from . import admin, content, generate, system

__all__ = ["admin", "content", "generate", "system"]
