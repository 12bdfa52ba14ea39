"""
Admin router for categories, parameters and settings.

Endpoints:
- GET/POST /api/admin/categories
- GET/PUT/DELETE /api/admin/categories/{category_id}
- GET/POST /api/admin/parameters
- GET/PUT/DELETE /api/admin/parameters/{parameter_id}
- GET /api/admin/settings
- GET/PUT/DELETE /api/admin/settings/{key}
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from specgen.errors import SpecGenError
from specgen.store import settings_codec
from specgen.store.database import SpecGenStore
from specgen.store.entities import Setting
from ..dependencies import get_store, http_error
from ..schemas.admin import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ParameterCreate,
    ParameterResponse,
    ParameterUpdate,
    SettingResponse,
    SettingUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _setting_response(setting: Setting) -> SettingResponse:
    return SettingResponse(
        key=setting.key,
        value=settings_codec.decode(setting),
        data_type=setting.data_type.value,
        description=setting.description,
        updated_at=setting.updated_at,
    )


# =============================================================================
# Categories
# =============================================================================

@router.get("/categories", response_model=List[CategoryResponse])
async def list_categories(
    include_hidden: bool = Query(default=True, description="Include hidden categories"),
    store: SpecGenStore = Depends(get_store),
):
    return [c.to_dict() for c in store.list_categories(include_hidden=include_hidden)]


@router.post("/categories", response_model=CategoryResponse, status_code=201)
async def create_category(body: CategoryCreate, store: SpecGenStore = Depends(get_store)):
    try:
        category = store.create_category(
            name=body.name,
            description=body.description,
            visibility=body.visibility,
            year=body.year,
            sort_order=body.sort_order,
            category_id=body.id,
        )
    except (SpecGenError, ValueError) as e:
        raise http_error(e)
    return category.to_dict()


@router.get("/categories/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: str, store: SpecGenStore = Depends(get_store)):
    try:
        return store.get_category(category_id).to_dict()
    except SpecGenError as e:
        raise http_error(e)


@router.put("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: str,
    body: CategoryUpdate,
    store: SpecGenStore = Depends(get_store),
):
    try:
        category = store.update_category(category_id, **body.model_dump(exclude_unset=True))
    except (SpecGenError, ValueError) as e:
        raise http_error(e)
    return category.to_dict()


@router.delete("/categories/{category_id}", status_code=204)
async def delete_category(category_id: str, store: SpecGenStore = Depends(get_store)):
    """Delete a category together with its parameters."""
    try:
        store.delete_category(category_id)
    except SpecGenError as e:
        raise http_error(e)


# =============================================================================
# Parameters
# =============================================================================

@router.get("/parameters", response_model=List[ParameterResponse])
async def list_parameters(
    category_id: Optional[str] = Query(default=None, description="Filter by category"),
    store: SpecGenStore = Depends(get_store),
):
    return [p.to_dict() for p in store.list_parameters(category_id=category_id)]


@router.post("/parameters", response_model=ParameterResponse, status_code=201)
async def create_parameter(body: ParameterCreate, store: SpecGenStore = Depends(get_store)):
    data = body.model_dump()
    parameter_id = data.pop("id")
    try:
        parameter = store.create_parameter(parameter_id=parameter_id, **data)
    except (SpecGenError, ValueError) as e:
        raise http_error(e)
    return parameter.to_dict()


@router.get("/parameters/{parameter_id}", response_model=ParameterResponse)
async def get_parameter(parameter_id: str, store: SpecGenStore = Depends(get_store)):
    try:
        return store.get_parameter(parameter_id).to_dict()
    except SpecGenError as e:
        raise http_error(e)


@router.put("/parameters/{parameter_id}", response_model=ParameterResponse)
async def update_parameter(
    parameter_id: str,
    body: ParameterUpdate,
    store: SpecGenStore = Depends(get_store),
):
    try:
        parameter = store.update_parameter(parameter_id, **body.model_dump(exclude_unset=True))
    except (SpecGenError, ValueError) as e:
        raise http_error(e)
    return parameter.to_dict()


@router.delete("/parameters/{parameter_id}", status_code=204)
async def delete_parameter(parameter_id: str, store: SpecGenStore = Depends(get_store)):
    try:
        store.delete_parameter(parameter_id)
    except SpecGenError as e:
        raise http_error(e)


# =============================================================================
# Settings
# =============================================================================

@router.get("/settings", response_model=List[SettingResponse])
async def list_settings(store: SpecGenStore = Depends(get_store)):
    try:
        return [_setting_response(s) for s in store.list_settings()]
    except SpecGenError as e:
        raise http_error(e)


@router.get("/settings/{key}", response_model=SettingResponse)
async def get_setting(key: str, store: SpecGenStore = Depends(get_store)):
    try:
        return _setting_response(store.get_setting_record(key))
    except SpecGenError as e:
        raise http_error(e)


@router.put("/settings/{key}", response_model=SettingResponse)
async def put_setting(key: str, body: SettingUpdate, store: SpecGenStore = Depends(get_store)):
    """Create or replace a setting."""
    try:
        setting = store.set_setting(key, body.value, body.data_type, body.description)
    except (SpecGenError, ValueError) as e:
        raise http_error(e)
    return _setting_response(setting)


@router.delete("/settings/{key}", status_code=204)
async def delete_setting(key: str, store: SpecGenStore = Depends(get_store)):
    try:
        store.delete_setting(key)
    except SpecGenError as e:
        raise http_error(e)
