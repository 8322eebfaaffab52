"""Heartbeat-based liveness monitoring.

A task that stops calling TaskContext.heartbeat() for longer than the
heartbeat timeout is cancelled and reported as HeartbeatTimeoutError,
which the task runner treats as a transient failure.
"""

import asyncio
from typing import Awaitable, Optional, TypeVar

from batchpipe.core.engine.context import TaskContext
from batchpipe.core.errors import HeartbeatTimeoutError
from batchpipe.core.logging import logger

T = TypeVar("T")


class LivenessMonitor:
    """Runs an awaitable and cancels it when heartbeats stop."""

    def __init__(self, heartbeat_timeout: Optional[float] = 15.0):
        """Initialize the monitor.

        Args:
            heartbeat_timeout: Seconds allowed between heartbeats (None disables)
        """
        if heartbeat_timeout is not None and heartbeat_timeout <= 0:
            raise ValueError("heartbeat_timeout must be > 0 or None")
        self.heartbeat_timeout = heartbeat_timeout

    async def run(self, context: TaskContext, awaitable: Awaitable[T]) -> T:
        if self.heartbeat_timeout is None:
            return await awaitable

        task = asyncio.ensure_future(awaitable)
        try:
            while True:
                remaining = self.heartbeat_timeout - context.seconds_since_heartbeat()
                if remaining <= 0:
                    break
                done, _ = await asyncio.wait({task}, timeout=remaining)
                if done:
                    return task.result()
        finally:
            if not task.done():
                task.cancel()
                # Let the task unwind before reporting
                await asyncio.wait({task})

        if not task.cancelled():
            # Settled while the timeout was being handled
            return task.result()

        logger.warning(
            "task_heartbeat_timeout",
            task_id=context.task_id,
            attempt=context.attempt,
            heartbeat_timeout=self.heartbeat_timeout,
            last_details=context.heartbeat_details,
        )
        raise HeartbeatTimeoutError(context.task_id, self.heartbeat_timeout)
