"""Eager fan-out batch strategy for batchpipe.

Loads the whole source, then enriches and saves every chunk as an
independent, concurrently scheduled unit of work.
"""

import time
from typing import Optional

from batchpipe.core.batch.models import BatchResult
from batchpipe.core.batch.strategies.base import BatchStrategy
from batchpipe.core.engine import CancellationToken, TaskIdAllocator, TaskRunner, WorkerPool
from batchpipe.core.enrichment import EnrichmentExecutor
from batchpipe.core.errors import BatchCancelledError, BatchFailure, ChunkExecutionError
from batchpipe.core.logging import logger
from batchpipe.core.sink import ChunkWriter
from batchpipe.core.source import SourceReader
from batchpipe.models import ChunkTask, FanOutBatchInput


class FanOutBatchStrategy(BatchStrategy):
    """Eager full materialization with parallel fan-out.

    Each chunk unit is retried in isolation by the task runner. Any unit
    that exhausts its retries fails the whole batch, but only after every
    other unit has settled.
    """

    name = "fanout"

    def __init__(
        self,
        reader: SourceReader,
        executor: EnrichmentExecutor,
        writer: ChunkWriter,
        runner: TaskRunner,
        pool: Optional[WorkerPool] = None,
    ):
        super().__init__(reader, executor, writer, runner)
        self.pool = pool or WorkerPool()

    async def execute(
        self,
        batch_id: str,
        batch_input: FanOutBatchInput,
        cancellation: Optional[CancellationToken] = None,
    ) -> BatchResult:
        start_time = time.time()
        task_ids = TaskIdAllocator(batch_id)

        logger.info(
            "fanout_batch_started",
            batch_id=batch_id,
            source=batch_input.source_path,
            chunk_size=batch_input.chunk_size,
        )

        try:
            chunks = await self.runner.run(
                task_ids.fixed_id("chunks"),
                self.load_chunks,
                batch_input.source_path,
                batch_input.chunk_size,
            )
        except ChunkExecutionError as e:
            raise BatchFailure(batch_id, [e]) from e

        if cancellation is not None:
            cancellation.raise_if_cancelled()

        tasks = [ChunkTask(tuple(chunk), batch_id, task_ids.next_id("chunk")) for chunk in chunks]

        def unit(task: ChunkTask):
            return lambda: self.runner.run(task.task_id, self.enrich_and_save, task)

        outcomes = await self.pool.run_all(
            [(task.task_id, unit(task)) for task in tasks],
            cancellation=cancellation,
        )

        reports = [outcome.result for outcome in outcomes if outcome.ok]
        failures = [
            outcome.error
            if isinstance(outcome.error, ChunkExecutionError)
            else ChunkExecutionError(outcome.task_id, 0, outcome.error)
            for outcome in outcomes
            if not outcome.ok and not outcome.skipped
        ]
        processed = sum(report.processed for report in reports)

        if failures:
            logger.error(
                "fanout_batch_failed",
                batch_id=batch_id,
                failed_units=[e.task_id for e in failures],
                succeeded_units=len(reports),
                processed=processed,
            )
            raise BatchFailure(batch_id, failures, processed=processed)

        skipped = [outcome for outcome in outcomes if outcome.skipped]
        if skipped:
            logger.warning(
                "fanout_batch_cancelled",
                batch_id=batch_id,
                skipped_units=len(skipped),
                processed=processed,
            )
            raise BatchCancelledError(cancellation.reason if cancellation else "cancelled")

        total_time = time.time() - start_time
        logger.info(
            "fanout_batch_completed",
            batch_id=batch_id,
            chunks=len(reports),
            processed=processed,
            processing_time=round(total_time, 2),
        )

        return BatchResult.create(
            batch_id=batch_id,
            strategy=self.name,
            reports=reports,
            processing_time=total_time,
        )
