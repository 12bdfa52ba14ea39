"""
Shared API dependencies.

The store and orchestrator are created once in the application lifespan
and kept on app.state; routers receive them through these dependencies.
"""

import logging

from fastapi import HTTPException, Request

from specgen.errors import (
    ConfigurationError,
    ContentValidationError,
    DuplicateEntityError,
    GenerationCancelledError,
    GenerationDisabledError,
    NotFoundError,
    ParameterValidationError,
    ReferentialIntegrityError,
    SpecGenError,
    UpstreamGenerationError,
)
from specgen.generation.orchestrator import GenerationOrchestrator
from specgen.store.database import SpecGenStore

logger = logging.getLogger(__name__)


def get_store(request: Request) -> SpecGenStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Store is not initialized")
    return store


def get_orchestrator(request: Request) -> GenerationOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Generation service is not initialized")
    return orchestrator


def http_error(error: Exception) -> HTTPException:
    """Map a SpecGen error onto an HTTPException."""
    if isinstance(error, ReferentialIntegrityError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, (ParameterValidationError, ContentValidationError, ValueError)):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, DuplicateEntityError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, GenerationDisabledError):
        return HTTPException(status_code=403, detail=str(error))
    if isinstance(error, ConfigurationError):
        return HTTPException(status_code=503, detail=str(error))
    if isinstance(error, UpstreamGenerationError):
        return HTTPException(status_code=504 if error.timeout else 502, detail=str(error))
    if isinstance(error, GenerationCancelledError):
        return HTTPException(status_code=503, detail=str(error))
    if isinstance(error, SpecGenError):
        logger.error(f"[API] Internal error: {error}")
        return HTTPException(status_code=500, detail=str(error))
    raise error
