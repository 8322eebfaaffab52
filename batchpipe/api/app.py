"""FastAPI application factory for batchpipe."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from batchpipe.api.middleware import request_id_middleware
from batchpipe.api.routes import batches, system
from batchpipe.core.batch import BatchProcessor


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    processor = getattr(app.state, "batch_processor", None)
    if processor is not None:
        await processor.aclose()


def create_app(processor: Optional[BatchProcessor] = None) -> FastAPI:
    """Create and configure FastAPI app. Factory pattern for testability."""
    app = FastAPI(
        title="batchpipe",
        description=(
            "Batch enrichment pipeline: reads user records from a local source, "
            "enriches each via the enrichment service, and writes one JSON "
            "artifact per chunk or page."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware
    app.middleware("http")(request_id_middleware)

    # Register routes
    app.include_router(system.router)
    app.include_router(batches.router)

    # Store processor for route access (built lazily when not injected)
    app.state.batch_processor = processor

    return app
