"""
API Schemas package.

Pydantic models for request/response validation.
"""

from .generate import (
    GenerateRequest,
    ContentResponse,
    ContentListResponse,
)
from .admin import (
    CategoryCreate,
    CategoryUpdate,
    CategoryResponse,
    ParameterCreate,
    ParameterUpdate,
    ParameterResponse,
    SettingUpdate,
    SettingResponse,
)

__all__ = [
    "GenerateRequest",
    "ContentResponse",
    "ContentListResponse",
    "CategoryCreate",
    "CategoryUpdate",
    "CategoryResponse",
    "ParameterCreate",
    "ParameterUpdate",
    "ParameterResponse",
    "SettingUpdate",
    "SettingResponse",
]
