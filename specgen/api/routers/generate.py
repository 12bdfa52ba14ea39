"""
Generation router.

Endpoints:
- POST /api/generate - Generate fiction, an image, or both (blocking)
"""

import asyncio
import logging
import threading

from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from specgen.errors import SpecGenError
from specgen.generation.orchestrator import (
    GenerationOrchestrator,
    GenerationRequest,
    GenerationType,
)
from specgen.store.database import SpecGenStore
from ..dependencies import get_orchestrator, get_store, http_error
from ..schemas.generate import ContentResponse, GenerateRequest
from .content import to_content_response

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/generate", response_model=ContentResponse)
async def generate_content(
    request: GenerateRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    store: SpecGenStore = Depends(get_store),
):
    """
    Generate and store content.

    Fiction is generated first; for "combined" the image is generated from
    the finished text. The pipeline runs in the threadpool. If the request
    is cancelled, the pipeline is told to stop and nothing is stored.
    """
    generation_request = GenerationRequest(
        type=GenerationType(request.type),
        parameters=request.parameters,
        year=request.year,
    )
    cancel_event = threading.Event()

    try:
        content = await run_in_threadpool(orchestrator.generate, generation_request, cancel_event)
    except asyncio.CancelledError:
        cancel_event.set()
        raise
    except SpecGenError as e:
        logger.error(f"[GenerateAPI] Generation failed: {e}")
        raise http_error(e)

    return to_content_response(store, content)
