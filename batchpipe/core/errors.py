"""Error taxonomy for batch processing.

Item-level failures (EnrichmentItemError) are absorbed by the enrichment executor.
Unit-level failures are retried by the task runner and surface as
ChunkExecutionError once attempts are exhausted; the orchestrator turns those
into BatchFailure.
"""

from typing import List, Optional, Sequence


class BatchPipeError(Exception):
    """Base class for all batchpipe errors."""


class ParseError(BatchPipeError, ValueError):
    """A source line could not be parsed into a UserRecord."""

    def __init__(self, message: str, line_number: Optional[int] = None, line: Optional[str] = None):
        self.line_number = line_number
        self.line = line
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class SourceReadError(BatchPipeError, OSError):
    """The source could not be opened or read."""


class SinkWriteError(BatchPipeError, OSError):
    """An enriched chunk could not be written to its artifact."""


class EnrichmentItemError(BatchPipeError):
    """Enrichment of a single record failed (timeout, bad status, transport)."""

    def __init__(self, record_id: int, message: str, status_code: Optional[int] = None):
        self.record_id = record_id
        self.status_code = status_code
        self.reason = message
        super().__init__(f"Enrichment failed for user {record_id}: {message}")


class HeartbeatTimeoutError(BatchPipeError):
    """A running task stopped reporting progress within the liveness window."""

    def __init__(self, task_id: str, timeout: float):
        self.task_id = task_id
        self.timeout = timeout
        super().__init__(f"Task '{task_id}' missed heartbeat for {timeout:.1f}s")


class ChunkExecutionError(BatchPipeError):
    """A unit of work failed after the task runner gave up on it."""

    def __init__(self, task_id: str, attempts: int, last_error: BaseException):
        self.task_id = task_id
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Task '{task_id}' failed after {attempts} attempt(s): "
            f"{type(last_error).__name__}: {last_error}"
        )


class BatchFailure(BatchPipeError):
    """A batch run failed because one or more units failed terminally."""

    def __init__(self, batch_id: str, errors: Sequence[ChunkExecutionError], processed: int = 0):
        self.batch_id = batch_id
        self.errors: List[ChunkExecutionError] = list(errors)
        # Records already written by units that did succeed; reported, not returned.
        self.processed = processed
        failed = ", ".join(e.task_id for e in self.errors)
        super().__init__(
            f"Batch '{batch_id}' failed: {len(self.errors)} unit(s) failed terminally ({failed})"
        )


class BatchCancelledError(BatchPipeError):
    """A batch run was cancelled before all chunks/pages were started."""

    def __init__(self, reason: str = "cancelled"):
        self.reason = reason
        super().__init__(f"Batch cancelled: {reason}")
