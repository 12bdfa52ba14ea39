"""
FastAPI application entry point.

The lifespan loads configuration, opens the store (applying migrations and
any seed import) and builds the generation orchestrator. Both live on
app.state and are shared by all routers.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from specgen import __version__
from specgen.generation.orchestrator import GenerationOrchestrator
from specgen.infra.config import AppConfig, load_config
from specgen.infra.logging_config import setup_logging
from specgen.store.database import SpecGenStore
from .routers import admin, content, generate, system

logger = logging.getLogger(__name__)


def init_services(app: FastAPI, config: AppConfig) -> None:
    """Create the shared store and orchestrator."""
    store = SpecGenStore(config.store)
    app.state.config = config
    app.state.store = store
    app.state.orchestrator = GenerationOrchestrator(config.generation, store=store)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup: configuration, logging, store and orchestrator.
    """
    config = load_config()
    setup_logging(config.log_level, config.log_dir, component="api")
    init_services(app, config)
    logger.info(f"[API] SpecGen {__version__} started (db: {config.store.db_path})")

    yield

    logger.info("[API] SpecGen shutting down")

# Tag metadata for Swagger UI
tags_metadata = [
    {
        "name": "generate",
        "description": "Fiction / image generation - blocking, stores the result",
    },
    {
        "name": "content",
        "description": "Generated content listing, details and stored images",
    },
    {
        "name": "admin",
        "description": "Category, parameter and settings management",
    },
    {
        "name": "system",
        "description": "Database and migration status",
    },
]

app = FastAPI(
    title="SpecGen API",
    lifespan=lifespan,
    description="""
## SpecGen API

Generates speculative fiction and matching images from structured parameters.

### Usage
```bash
# Start server
uvicorn specgen.api.main:app --host 127.0.0.1 --port 8000

# Generate a story with an illustration
curl -X POST http://localhost:8000/api/generate \\
  -H "Content-Type: application/json" \\
  -d '{"type": "combined", "parameters": {"science-fiction": {"technology-level": "Advanced"}}, "year": 2150}'
```
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=tags_metadata,
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


app.include_router(generate.router, prefix="/api", tags=["generate"])
app.include_router(content.router, prefix="/api", tags=["content"])
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])
app.include_router(system.router, prefix="/api/system", tags=["system"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)
