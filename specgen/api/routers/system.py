"""
System router.

Endpoints:
- GET /api/system/database - Database and migration status
"""

from fastapi import APIRouter, Depends

from specgen.store.database import SpecGenStore
from ..dependencies import get_store

router = APIRouter()


@router.get("/database")
async def database_status(store: SpecGenStore = Depends(get_store)):
    """Row counts, schema version and pending migrations."""
    return store.database_status()
