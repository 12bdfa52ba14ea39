"""
Content router.

Endpoints:
- GET /api/content - List generated content (newest first)
- GET /api/content/years - Story years that have content
- GET /api/content/year/{year} - List content for one story year
- GET /api/content/{content_id} - Get one record
- GET /api/images/{content_id}/original - Stored image bytes
- GET /api/images/{content_id}/thumbnail - Stored thumbnail bytes
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Path, Query, Response

from specgen.errors import SpecGenError
from specgen.store.database import SpecGenStore
from specgen.store.entities import ContentStatus, ContentType, GeneratedContent
from ..dependencies import get_store, http_error
from ..schemas.generate import ContentListResponse, ContentResponse, YearsResponse

logger = logging.getLogger(__name__)

router = APIRouter()

StatusFilter = Optional[Literal["pending", "generating", "completed", "failed"]]
TypeFilter = Optional[Literal["fiction", "image", "combined"]]


def to_content_response(store: SpecGenStore, content: GeneratedContent) -> ContentResponse:
    data = store.content_to_response(content)
    image_meta = content.metadata.get("image") or {}
    data["external_image_url"] = image_meta.get("image_url")
    return ContentResponse(**data)


def list_response(
    store: SpecGenStore,
    limit: int,
    offset: int,
    status: StatusFilter = None,
    content_type: TypeFilter = None,
    year: Optional[int] = None,
) -> ContentListResponse:
    filters = {
        "status": ContentStatus(status) if status else None,
        "content_type": ContentType(content_type) if content_type else None,
        "year": year,
    }
    items = store.list_recent_content(limit=limit, offset=offset, **filters)
    return ContentListResponse(
        items=[to_content_response(store, item) for item in items],
        total=store.count_content(**filters),
        limit=limit,
        offset=offset,
    )


@router.get("/content", response_model=ContentListResponse)
async def list_content(
    limit: int = Query(default=20, ge=1, le=100, description="Maximum records to return"),
    offset: int = Query(default=0, ge=0, description="Offset for pagination"),
    status: StatusFilter = Query(default=None, description="Only return records with this status"),
    type: TypeFilter = Query(default=None, description="Only return records of this generation type"),
    year: Optional[int] = Query(default=None, ge=1900, le=3000, description="Only return this story year"),
    store: SpecGenStore = Depends(get_store),
):
    """List generated content without image bytes."""
    return list_response(store, limit, offset, status=status, content_type=type, year=year)


@router.get("/content/years", response_model=YearsResponse)
async def list_years(store: SpecGenStore = Depends(get_store)):
    """Distinct story years that have generated content."""
    return YearsResponse(years=store.list_available_years())


@router.get("/content/year/{year}", response_model=ContentListResponse)
async def list_content_for_year(
    year: int = Path(ge=1900, le=3000, description="Story year"),
    limit: int = Query(default=20, ge=1, le=100, description="Maximum records to return"),
    offset: int = Query(default=0, ge=0, description="Offset for pagination"),
    type: TypeFilter = Query(default=None, description="Only return records of this generation type"),
    store: SpecGenStore = Depends(get_store),
):
    """List generated content for one story year."""
    return list_response(store, limit, offset, content_type=type, year=year)


@router.get("/content/{content_id}", response_model=ContentResponse)
async def get_content(content_id: str, store: SpecGenStore = Depends(get_store)):
    """Get a generated content record with derived image URLs."""
    try:
        content = store.get_content(content_id, include_blobs=False)
    except SpecGenError as e:
        raise http_error(e)
    return to_content_response(store, content)


@router.get("/images/{content_id}/{variant}")
async def get_image(
    content_id: str,
    variant: Literal["original", "thumbnail"],
    store: SpecGenStore = Depends(get_store),
):
    """Serve stored image bytes."""
    try:
        data, image_format = store.get_image(content_id, variant)
    except SpecGenError as e:
        raise http_error(e)

    return Response(
        content=data,
        media_type=f"image/{image_format}",
        headers={"Cache-Control": "public, max-age=31536000, immutable"},
    )
