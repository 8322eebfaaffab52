"""Pydantic models for batchpipe."""

from batchpipe.models.batch import (
    BaseBatchInput,
    BatchInput,
    BatchRequest,
    CursorBatchInput,
    FanOutBatchInput,
)
from batchpipe.models.records import (
    USER_FIELDS,
    ChunkTask,
    EnrichedUserRecord,
    Page,
    Region,
    UserRecord,
)

__all__ = [
    "BaseBatchInput",
    "BatchInput",
    "BatchRequest",
    "CursorBatchInput",
    "FanOutBatchInput",
    "USER_FIELDS",
    "ChunkTask",
    "EnrichedUserRecord",
    "Page",
    "Region",
    "UserRecord",
]
