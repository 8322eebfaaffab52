"""Configuration management for batchpipe.

Centralizes all environment variable access for better testability and maintainability.
"""

import os
from dataclasses import dataclass
from typing import Optional


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


class Config:
    """Application configuration loaded from environment variables."""

    # Enrichment dependency
    @staticmethod
    def enrich_base_url() -> str:
        """Base URL of the enrichment service."""
        return os.environ.get("ENRICH_BASE_URL", "http://localhost:3001")

    @staticmethod
    def enrich_timeout_ms() -> int:
        """Per-record enrichment call timeout in milliseconds."""
        return _env_int("ENRICH_TIMEOUT_MS", 2000)

    @staticmethod
    def enrich_max_attempts() -> int:
        """Attempts per record inside the enrichment client (1 = no retry)."""
        return _env_int("ENRICH_MAX_ATTEMPTS", 1)

    @staticmethod
    def enrich_concurrency() -> int:
        """Concurrent enrichment calls within one chunk."""
        return _env_int("ENRICH_CONCURRENCY", 1)

    # Output sink
    @staticmethod
    def output_root() -> str:
        """Directory under which batch-<id> folders are created."""
        return os.environ.get("BATCH_OUTPUT_ROOT", "/tmp")

    # Task runner
    @staticmethod
    def task_max_attempts() -> int:
        return _env_int("TASK_MAX_ATTEMPTS", 3)

    @staticmethod
    def task_initial_delay() -> float:
        return _env_float("TASK_INITIAL_DELAY", 1.0)

    @staticmethod
    def task_backoff_factor() -> float:
        return _env_float("TASK_BACKOFF_FACTOR", 2.0)

    @staticmethod
    def task_max_delay() -> float:
        return _env_float("TASK_MAX_DELAY", 30.0)

    @staticmethod
    def task_heartbeat_timeout() -> float:
        """Seconds a task may go without a heartbeat before it is cancelled."""
        return _env_float("TASK_HEARTBEAT_TIMEOUT", 15.0)

    @staticmethod
    def task_start_to_close_timeout() -> float:
        """Upper bound in seconds for a single task attempt."""
        return _env_float("TASK_START_TO_CLOSE_TIMEOUT", 300.0)

    @staticmethod
    def batch_max_workers() -> Optional[int]:
        """Cap on concurrently running chunk units (unset = no cap)."""
        raw = os.environ.get("BATCH_MAX_WORKERS")
        if not raw:
            return None
        return _env_int("BATCH_MAX_WORKERS", 0) or None

    @staticmethod
    def get_invalid_config() -> list[str]:
        """Get list of configuration values that are out of range."""
        invalid = []
        if Config.enrich_timeout_ms() <= 0:
            invalid.append("ENRICH_TIMEOUT_MS")
        if Config.enrich_max_attempts() < 1:
            invalid.append("ENRICH_MAX_ATTEMPTS")
        if Config.enrich_concurrency() < 1:
            invalid.append("ENRICH_CONCURRENCY")
        if Config.task_max_attempts() < 1:
            invalid.append("TASK_MAX_ATTEMPTS")
        return invalid


@dataclass(frozen=True)
class EnrichmentClientConfig:
    """Explicit configuration handed to the enrichment client.

    Recognized options: base_url, timeout_ms, max_attempts.
    """

    base_url: str = "http://localhost:3001"
    timeout_ms: int = 2000
    max_attempts: int = 1

    def __post_init__(self):
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be > 0")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    @classmethod
    def from_env(cls) -> "EnrichmentClientConfig":
        return cls(
            base_url=Config.enrich_base_url(),
            timeout_ms=Config.enrich_timeout_ms(),
            max_attempts=Config.enrich_max_attempts(),
        )


# Singleton instance for easy access
config = Config()
