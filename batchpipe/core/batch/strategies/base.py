"""Base batch processing strategy for batchpipe.

Defines the strategy interface plus the units of work both strategies
dispatch through the task runner.
"""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence

from batchpipe.core.batch.models import BatchResult, ChunkReport
from batchpipe.core.engine import CancellationToken, TaskContext, TaskRunner
from batchpipe.core.enrichment import EnrichmentExecutor
from batchpipe.core.sink import ChunkWriter
from batchpipe.core.source import SourceReader
from batchpipe.models import BatchInput, ChunkTask, EnrichedUserRecord, Page, UserRecord


class BatchStrategy(ABC):
    """Abstract base class for batch traversal strategies.

    - FanOutBatchStrategy: loads every chunk, runs them concurrently
    - CursorBatchStrategy: pages through the source one page at a time
    """

    name: str = "base"

    def __init__(
        self,
        reader: SourceReader,
        executor: EnrichmentExecutor,
        writer: ChunkWriter,
        runner: TaskRunner,
    ):
        self.reader = reader
        self.executor = executor
        self.writer = writer
        self.runner = runner

    @abstractmethod
    async def execute(
        self,
        batch_id: str,
        batch_input: BatchInput,
        cancellation: Optional[CancellationToken] = None,
    ) -> BatchResult:
        """Run a whole batch.

        Args:
            batch_id: Unique batch identifier
            batch_input: Source path and chunk/page size
            cancellation: Checked before each chunk/page is started

        Returns:
            BatchResult with the processed count

        Raises:
            BatchFailure: If a unit failed after its retries
            BatchCancelledError: If cancellation stopped the run
        """

    # Units of work. Each takes the TaskContext first, as the runner requires.

    async def load_chunks(
        self, context: TaskContext, source: str, chunk_size: int
    ) -> List[List[UserRecord]]:
        chunks = await asyncio.to_thread(self.reader.load_all, source, chunk_size)
        context.heartbeat(f"{len(chunks)} chunks loaded")
        return chunks

    async def load_page(
        self, context: TaskContext, source: str, cursor: Optional[int], page_size: int
    ) -> Page:
        page = await asyncio.to_thread(self.reader.load_page, source, cursor, page_size)
        context.heartbeat(f"{len(page.items)} items loaded")
        return page

    async def enrich(
        self, context: TaskContext, records: Sequence[UserRecord]
    ) -> List[EnrichedUserRecord]:
        return await self.executor.enrich_chunk(records, context)

    async def save(
        self, context: TaskContext, records: Sequence[EnrichedUserRecord], batch_id: str
    ) -> Path:
        path = await self.writer.save_chunk(records, batch_id)
        context.heartbeat("saved")
        return path

    async def enrich_and_save(self, context: TaskContext, task: ChunkTask) -> ChunkReport:
        """Enrich a chunk then persist it; the whole unit retries together."""
        enriched = await self.enrich(context, task.records)
        path = await self.save(context, enriched, task.batch_id)
        return ChunkReport(task_id=task.task_id, processed=len(enriched), artifact=path)
