"""Retry configuration for the task runner.

Immutable configuration for unit-of-work retry behavior.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class ErrorCategory(str, Enum):
    """Error categories for classification and retry decisions.

    - TRANSIENT: Temporary errors (I/O, network timeouts, missed heartbeats)
    - RATE_LIMIT: Rate limiting errors (429, need exponential backoff)
    - PERMANENT: Permanent errors (malformed source, invalid input)
    - UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    RATE_LIMIT = "rate_limit"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior.

    max_attempts is the TOTAL number of tries, so max_attempts=3 means
    try, retry, retry. Unknown errors are retried like a durable engine
    retries any failed activity; only PERMANENT errors stop early.
    """

    max_attempts: int = 3
    initial_delay: float = 1.0  # seconds
    backoff_factor: float = 2.0  # exponential backoff multiplier
    max_delay: float = 30.0  # cap at 30 seconds
    retry_on: List[ErrorCategory] = field(
        default_factory=lambda: [
            ErrorCategory.TRANSIENT,
            ErrorCategory.RATE_LIMIT,
            ErrorCategory.UNKNOWN,
        ]
    )

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be >= 0")
        if self.backoff_factor < 1:
            raise ValueError("backoff_factor must be >= 1")

    def delay_for(self, retry_count: int) -> float:
        """Delay before the retry following `retry_count` earlier retries.

        delay = initial_delay * (backoff_factor ^ retry_count), capped at max_delay.
        """
        return min(self.initial_delay * (self.backoff_factor**retry_count), self.max_delay)

    def should_retry(self, category: ErrorCategory) -> bool:
        return category in self.retry_on

    @classmethod
    def no_retry(cls) -> "RetryConfig":
        """Single attempt, no backoff."""
        return cls(max_attempts=1, initial_delay=0.0, max_delay=0.0)
