"""Task identity, heartbeat and cancellation primitives."""

import itertools
import threading
import time
from collections import defaultdict
from typing import Any, Callable, Dict, Iterator, Optional

from batchpipe.core.errors import BatchCancelledError


class TaskContext:
    """Per-attempt context handed to every unit of work.

    The task calls heartbeat() to report progress; the liveness monitor
    reads the timestamp of the latest heartbeat.
    """

    def __init__(
        self,
        task_id: str,
        attempt: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.task_id = task_id
        self.attempt = attempt
        self._clock = clock
        # Attempt start counts as the first heartbeat
        self.last_heartbeat = clock()
        self.heartbeat_details: Any = None
        self.heartbeat_count = 0

    def heartbeat(self, details: Any = None) -> None:
        """Record progress for the liveness monitor."""
        self.last_heartbeat = self._clock()
        self.heartbeat_details = details
        self.heartbeat_count += 1

    def seconds_since_heartbeat(self) -> float:
        return self._clock() - self.last_heartbeat

    def __repr__(self) -> str:
        return f"TaskContext(task_id={self.task_id!r}, attempt={self.attempt})"


class CancellationToken:
    """Batch-wide cancellation request, checked between chunks/pages."""

    def __init__(self):
        self._reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled") -> None:
        if self._reason is None:
            self._reason = reason

    @property
    def cancelled(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def raise_if_cancelled(self) -> None:
        if self._reason is not None:
            raise BatchCancelledError(self._reason)


class TaskIdAllocator:
    """Deterministic sub-task ids scoped to one batch.

    ids look like `<batch_id>-<label>-<seq>`, with an independent sequence
    per label starting at 1.
    """

    def __init__(self, batch_id: str):
        self.batch_id = batch_id
        self._lock = threading.Lock()
        self._counters: Dict[str, Iterator[int]] = defaultdict(lambda: itertools.count(1))

    def next_id(self, label: str) -> str:
        with self._lock:
            seq = next(self._counters[label])
        return f"{self.batch_id}-{label}-{seq}"

    def fixed_id(self, label: str) -> str:
        """Id for a singleton sub-task of the batch (e.g. `<batch>-chunks`)."""
        return f"{self.batch_id}-{label}"
