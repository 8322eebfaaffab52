"""Execution engine abstraction for batchpipe.

Provides the retry, liveness, task identity and fan-out primitives the
batch strategies are built on:
- TaskRunner: retries with exponential backoff, heartbeat liveness
- WorkerPool: concurrent fan-out of independent units
- TaskContext / TaskIdAllocator / CancellationToken
"""

from batchpipe.core.engine.context import CancellationToken, TaskContext, TaskIdAllocator
from batchpipe.core.engine.liveness import LivenessMonitor
from batchpipe.core.engine.pool import UnitOutcome, WorkerPool
from batchpipe.core.engine.runner import TaskRunner

__all__ = [
    "CancellationToken",
    "LivenessMonitor",
    "TaskContext",
    "TaskIdAllocator",
    "TaskRunner",
    "UnitOutcome",
    "WorkerPool",
]
