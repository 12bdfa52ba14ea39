"""
Generation and content schemas.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class GenerateRequest(BaseModel):
    """Request for fiction / image / combined generation."""

    type: Literal["fiction", "image", "combined"] = Field(
        default="combined",
        description="What to generate",
        json_schema_extra={"examples": ["fiction", "image", "combined"]}
    )
    parameters: Dict[str, Any] = Field(
        default_factory=dict,
        description="Parameter values grouped by category: {category: {parameter: value}}",
        json_schema_extra={"examples": [{
            "science-fiction": {"technology-level": "Advanced", "alien-life": "Yes"}
        }]}
    )
    year: Optional[int] = Field(
        default=None,
        ge=1900,
        le=3000,
        description="Optional year the story is set in",
        json_schema_extra={"examples": [2150]}
    )


class ContentResponse(BaseModel):
    """Generated content record without image bytes."""

    id: str
    title: str
    fiction_content: str
    type: Optional[str] = Field(default=None, description="fiction, image or combined")
    year: Optional[int] = Field(default=None, description="Story year the content was generated for")
    image_format: str
    image_size_bytes: int
    thumbnail_size_bytes: int
    image_prompt: Optional[str] = None
    prompt_data: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    generation_time: int
    word_count: int
    status: str
    error_message: Optional[str] = None
    created_at: str
    updated_at: str
    image_url: Optional[str] = Field(
        default=None,
        description="Stored original image endpoint (only when an image blob is stored)"
    )
    thumbnail_url: Optional[str] = Field(
        default=None,
        description="Stored thumbnail endpoint (only when an image blob is stored)"
    )
    external_image_url: Optional[str] = Field(
        default=None,
        description="Provider-hosted image URL when images are not post-processed"
    )


class ContentListResponse(BaseModel):
    """Paginated content listing."""

    items: List[ContentResponse]
    total: int
    limit: int
    offset: int


class YearsResponse(BaseModel):
    """Story years that have generated content."""

    years: List[int] = Field(
        default_factory=list,
        description="Distinct years, ascending",
        json_schema_extra={"examples": [[2050, 2150]]}
    )
