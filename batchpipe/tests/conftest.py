"""Shared fixtures for batchpipe tests."""

import json
from pathlib import Path
from typing import Callable, Iterable, List, Optional

import httpx
import pytest

from batchpipe.config import EnrichmentClientConfig
from batchpipe.core.batch import BatchProcessor
from batchpipe.core.engine import TaskRunner, WorkerPool
from batchpipe.core.enrichment import EnrichmentClient, EnrichmentExecutor
from batchpipe.core.retry_config import RetryConfig
from batchpipe.core.sink import ChunkWriter
from batchpipe.core.source import SourceReader

HEADER = "id,firstName,lastName,email,gender,ipAddress"


def source_line(i: int) -> str:
    return f"{i},First{i},Last{i},user{i}@example.com,{'Female' if i % 2 else 'Male'},10.0.{i // 256}.{i % 256}"


def write_source(path: Path, count: int, header: bool = True, start: int = 1) -> str:
    lines = [HEADER] if header else []
    lines += [source_line(i) for i in range(start, start + count)]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return str(path)


def enrich_handler(failing_ids: Iterable[int] = (), region: str = "INTL") -> Callable:
    """MockTransport handler: echoes the record, 500 for failing ids."""
    failing = set(failing_ids)
    calls: List[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        calls.append(body["id"])
        if body["id"] in failing:
            return httpx.Response(500, json={"error": "API timeout"})
        return httpx.Response(200, json={**body, "enriched": True, "region": region})

    handler.calls = calls
    return handler


def no_sleep_runner(max_attempts: int = 3, heartbeat_timeout: Optional[float] = 5.0) -> TaskRunner:
    """Runner with the default retry shape but zero backoff."""

    async def no_sleep(_: float) -> None:
        return None

    return TaskRunner(
        retry_config=RetryConfig(max_attempts=max_attempts, initial_delay=0.0, max_delay=0.0),
        heartbeat_timeout=heartbeat_timeout,
        start_to_close_timeout=30.0,
        sleep=no_sleep,
    )


def build_processor(
    output_root: Path,
    handler: Callable,
    runner: Optional[TaskRunner] = None,
    reader: Optional[SourceReader] = None,
    writer: Optional[ChunkWriter] = None,
    concurrency: int = 1,
    max_workers: Optional[int] = None,
) -> BatchProcessor:
    client = EnrichmentClient(
        EnrichmentClientConfig(base_url="http://enrich.test", timeout_ms=2000),
        transport=httpx.MockTransport(handler),
    )
    return BatchProcessor(
        reader=reader or SourceReader(),
        executor=EnrichmentExecutor(client, concurrency=concurrency),
        writer=writer or ChunkWriter(str(output_root)),
        runner=runner or no_sleep_runner(),
        pool=WorkerPool(max_workers),
    )


def read_artifacts(batch_dir: Path) -> List[list]:
    return [json.loads(p.read_text(encoding="utf-8")) for p in sorted(batch_dir.glob("chunk-*.json"))]


@pytest.fixture
def output_root(tmp_path: Path) -> Path:
    root = tmp_path / "out"
    root.mkdir()
    return root
