"""Task runner for batchpipe.

Executes units of work with retry, exponential backoff, a start-to-close
timeout and heartbeat liveness monitoring. Stands in for the durable
execution engine so orchestration can be exercised without one.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

from batchpipe.config import Config
from batchpipe.core.engine.context import TaskContext
from batchpipe.core.engine.liveness import LivenessMonitor
from batchpipe.core.errors import ChunkExecutionError
from batchpipe.core.execution.error_classifier import ErrorClassifier
from batchpipe.core.logging import logger
from batchpipe.core.retry_config import RetryConfig

T = TypeVar("T")

TaskFn = Callable[..., Awaitable[T]]


class TaskRunner:
    """Runs a task function attempt by attempt until it succeeds or gives up.

    Each attempt gets a fresh TaskContext (same task_id, next attempt number)
    and is isolated from other tasks: a failing task never affects another
    task's retries.
    """

    def __init__(
        self,
        retry_config: Optional[RetryConfig] = None,
        heartbeat_timeout: Optional[float] = 15.0,
        start_to_close_timeout: Optional[float] = 300.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize TaskRunner.

        Args:
            retry_config: Retry policy (default: 3 attempts, 1s base, 2x, 30s cap)
            heartbeat_timeout: Seconds allowed between heartbeats (None disables)
            start_to_close_timeout: Max seconds for one attempt (None disables)
            sleep: Awaitable sleep used for backoff (tests inject a fake)
        """
        self.retry_config = retry_config or RetryConfig()
        self.liveness = LivenessMonitor(heartbeat_timeout)
        self.start_to_close_timeout = start_to_close_timeout
        self._sleep = sleep

    @classmethod
    def from_env(cls) -> "TaskRunner":
        return cls(
            retry_config=RetryConfig(
                max_attempts=Config.task_max_attempts(),
                initial_delay=Config.task_initial_delay(),
                backoff_factor=Config.task_backoff_factor(),
                max_delay=Config.task_max_delay(),
            ),
            heartbeat_timeout=Config.task_heartbeat_timeout(),
            start_to_close_timeout=Config.task_start_to_close_timeout(),
        )

    async def run(self, task_id: str, fn: TaskFn, *args: Any, **kwargs: Any) -> T:
        """Execute `fn(context, *args, **kwargs)` with retries.

        Uses exponential backoff: delay = initial_delay * (backoff_factor ^ retry_count),
        capped at max_delay. Permanent errors are not retried.

        Args:
            task_id: Identity of the unit of work (scopes its retries)
            fn: Coroutine function taking a TaskContext first

        Returns:
            Whatever fn returns on the successful attempt

        Raises:
            ChunkExecutionError: When the last allowed attempt fails
        """
        max_attempts = self.retry_config.max_attempts
        retry_count = 0
        attempt = 0
        last_error: Optional[BaseException] = None

        for attempt in range(1, max_attempts + 1):
            context = TaskContext(task_id, attempt=attempt)
            try:
                result = await self._run_attempt(context, fn, args, kwargs)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                last_error = e
                category = ErrorClassifier.categorize(e)
                logger.warning(
                    "task_attempt_failed",
                    task_id=task_id,
                    attempt=attempt,
                    max_attempts=max_attempts,
                    category=category.value,
                    error_type=type(e).__name__,
                    error=str(e),
                )

                if attempt >= max_attempts or not self.retry_config.should_retry(category):
                    break

                delay = self.retry_config.delay_for(retry_count)
                logger.info("task_retry_scheduled", task_id=task_id, attempt=attempt, delay=delay)
                await self._sleep(delay)
                retry_count += 1
                continue

            if attempt > 1:
                logger.info("task_recovered", task_id=task_id, attempt=attempt)
            return result

        logger.error(
            "task_failed",
            task_id=task_id,
            attempts=attempt,
            error_type=type(last_error).__name__,
            error=str(last_error),
        )
        raise ChunkExecutionError(task_id, attempt, last_error) from last_error

    async def _run_attempt(self, context: TaskContext, fn: TaskFn, args, kwargs):
        awaitable = fn(context, *args, **kwargs)
        if self.start_to_close_timeout is not None:
            awaitable = asyncio.wait_for(awaitable, timeout=self.start_to_close_timeout)
        return await self.liveness.run(context, awaitable)
