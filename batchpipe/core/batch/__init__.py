"""Batch orchestration for batchpipe.

Components:
- BatchProcessor: Main orchestrator and batch entry point
- BatchResult: Type-safe result model
- BatchStrategy: Strategy interface
- FanOutBatchStrategy: Eager load, concurrent chunk units
- CursorBatchStrategy: Sequential cursor pagination
"""

from batchpipe.core.batch.models import BatchResult, ChunkReport
from batchpipe.core.batch.processor import BatchProcessor
from batchpipe.core.batch.strategies import (
    BatchState,
    BatchStrategy,
    CursorBatchStrategy,
    FanOutBatchStrategy,
)

__all__ = [
    "BatchProcessor",
    "BatchResult",
    "BatchState",
    "BatchStrategy",
    "ChunkReport",
    "CursorBatchStrategy",
    "FanOutBatchStrategy",
]
