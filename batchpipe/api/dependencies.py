"""FastAPI dependencies for batchpipe.

Dependency injection functions for route handlers.
"""

from fastapi import Request

from batchpipe.core.batch import BatchProcessor


def get_batch_processor(request: Request) -> BatchProcessor:
    """Get the BatchProcessor from app state.

    Note:
        Built from environment configuration on first use when the app
        was created without one.
    """
    processor = getattr(request.app.state, "batch_processor", None)
    if processor is None:
        processor = BatchProcessor()
        request.app.state.batch_processor = processor
    return processor
