"""Error classifier for batchpipe.

Classifies errors into categories for retry decisions.
"""

import asyncio

import httpx
from pydantic import ValidationError

from batchpipe.core.errors import (
    EnrichmentItemError,
    HeartbeatTimeoutError,
    ParseError,
    SinkWriteError,
    SourceReadError,
)
from batchpipe.core.retry_config import ErrorCategory


class ErrorClassifier:
    """Classifies errors into categories for retry decisions.

    Static methods for stateless classification.
    """

    @staticmethod
    def categorize(error: BaseException) -> ErrorCategory:
        """Categorize an error into TRANSIENT, RATE_LIMIT, PERMANENT, or UNKNOWN.

        Args:
            error: Exception to categorize

        Returns:
            ErrorCategory enum value
        """
        # Malformed source data will fail the same way on every attempt
        if isinstance(error, (ParseError, ValidationError)):
            return ErrorCategory.PERMANENT

        if isinstance(
            error,
            (
                HeartbeatTimeoutError,
                SourceReadError,
                SinkWriteError,
                asyncio.TimeoutError,
                httpx.TimeoutException,
                httpx.TransportError,
            ),
        ):
            return ErrorCategory.TRANSIENT

        if isinstance(error, httpx.HTTPStatusError):
            return ErrorClassifier.categorize_status(error.response.status_code)

        if isinstance(error, EnrichmentItemError) and error.status_code is not None:
            return ErrorClassifier.categorize_status(error.status_code)

        if isinstance(error, EnrichmentItemError):
            return ErrorCategory.TRANSIENT

        if isinstance(error, OSError):
            return ErrorCategory.TRANSIENT

        if isinstance(error, ValueError):
            return ErrorCategory.PERMANENT

        error_str = str(error).lower()
        if "timeout" in error_str or "timed out" in error_str:
            return ErrorCategory.TRANSIENT

        # Default to unknown
        return ErrorCategory.UNKNOWN

    @staticmethod
    def categorize_status(status_code: int) -> ErrorCategory:
        """Categorize an HTTP status code.

        Args:
            status_code: HTTP response status

        Returns:
            ErrorCategory enum value
        """
        if status_code == 429:
            return ErrorCategory.RATE_LIMIT

        if status_code >= 500 or status_code in (408, 425):
            return ErrorCategory.TRANSIENT

        if 400 <= status_code < 500:
            return ErrorCategory.PERMANENT

        return ErrorCategory.UNKNOWN
