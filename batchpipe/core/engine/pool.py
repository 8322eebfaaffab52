"""Worker pool for fanning out independent units of work.

Every submitted unit settles (succeeds or fails) on its own; a failing unit
never cancels its siblings. Outcomes come back in submission order.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

from batchpipe.core.engine.context import CancellationToken
from batchpipe.core.errors import BatchCancelledError
from batchpipe.core.logging import logger

UnitFactory = Callable[[], Awaitable[Any]]
Unit = Tuple[str, UnitFactory]


@dataclass
class UnitOutcome:
    """Settled result of one unit."""

    task_id: str
    result: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def skipped(self) -> bool:
        return isinstance(self.error, BatchCancelledError)


class WorkerPool:
    """Task queue plus workers.

    With max_workers=None every unit is scheduled at once (no cap);
    otherwise that many workers drain a shared queue.
    """

    def __init__(self, max_workers: Optional[int] = None):
        if max_workers is not None and max_workers < 1:
            raise ValueError("max_workers must be >= 1 or None")
        self.max_workers = max_workers

    async def run_all(
        self,
        units: Sequence[Unit],
        cancellation: Optional[CancellationToken] = None,
    ) -> List[UnitOutcome]:
        """Run every unit to completion.

        Units not yet started when cancellation is requested are skipped and
        reported with a BatchCancelledError outcome.
        """
        outcomes: List[Optional[UnitOutcome]] = [None] * len(units)

        async def run_one(index: int, task_id: str, factory: UnitFactory) -> None:
            if cancellation is not None and cancellation.cancelled:
                outcomes[index] = UnitOutcome(task_id, error=BatchCancelledError(cancellation.reason))
                return
            try:
                outcomes[index] = UnitOutcome(task_id, result=await factory())
            except asyncio.CancelledError:
                raise
            except Exception as e:
                outcomes[index] = UnitOutcome(task_id, error=e)

        if self.max_workers is None or self.max_workers >= len(units):
            await asyncio.gather(
                *[run_one(index, task_id, factory) for index, (task_id, factory) in enumerate(units)]
            )
        else:
            queue: asyncio.Queue = asyncio.Queue()
            for index, (task_id, factory) in enumerate(units):
                queue.put_nowait((index, task_id, factory))

            async def worker() -> None:
                while True:
                    try:
                        index, task_id, factory = queue.get_nowait()
                    except asyncio.QueueEmpty:
                        return
                    await run_one(index, task_id, factory)

            logger.debug("worker_pool_started", units=len(units), workers=self.max_workers)
            await asyncio.gather(*[worker() for _ in range(self.max_workers)])

        return [outcome for outcome in outcomes if outcome is not None]
