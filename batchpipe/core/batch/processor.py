"""Batch processor for batchpipe.

Main orchestrator: the entry point of a batch run.
"""

import secrets
import time
from typing import Dict, Optional

from batchpipe.config import Config, EnrichmentClientConfig
from batchpipe.core.batch.models import BatchResult
from batchpipe.core.batch.strategies import BatchStrategy, CursorBatchStrategy, FanOutBatchStrategy
from batchpipe.core.engine import CancellationToken, TaskRunner, WorkerPool
from batchpipe.core.enrichment import EnrichmentClient, EnrichmentExecutor
from batchpipe.core.errors import BatchCancelledError, BatchFailure
from batchpipe.core.logging import logger
from batchpipe.core.sink import ChunkWriter
from batchpipe.core.source import SourceReader
from batchpipe.models import BatchInput, CursorBatchInput, FanOutBatchInput


class BatchProcessor:
    """Orchestrates batch enrichment runs.

    Uses Strategy pattern to route a batch input to its traversal strategy:
    FanOutBatchInput -> FanOutBatchStrategy, CursorBatchInput -> CursorBatchStrategy.
    """

    def __init__(
        self,
        reader: Optional[SourceReader] = None,
        executor: Optional[EnrichmentExecutor] = None,
        writer: Optional[ChunkWriter] = None,
        runner: Optional[TaskRunner] = None,
        pool: Optional[WorkerPool] = None,
    ):
        """Initialize batch processor.

        Every collaborator is optional; missing ones are built from
        environment configuration.

        Args:
            reader: Source reader
            executor: Enrichment executor (owns an EnrichmentClient)
            writer: Persistence sink
            runner: Task runner providing retry/backoff/liveness
            pool: Worker pool for the fan-out strategy
        """
        self._owns_executor = executor is None
        self.reader = reader or SourceReader()
        self.executor = executor or EnrichmentExecutor(
            EnrichmentClient(EnrichmentClientConfig.from_env()),
            concurrency=Config.enrich_concurrency(),
        )
        self.writer = writer or ChunkWriter()
        self.runner = runner or TaskRunner.from_env()
        self.pool = pool or WorkerPool(Config.batch_max_workers())

        # Register available strategies
        self.strategies: Dict[str, BatchStrategy] = {
            FanOutBatchStrategy.name: FanOutBatchStrategy(
                self.reader, self.executor, self.writer, self.runner, pool=self.pool
            ),
            CursorBatchStrategy.name: CursorBatchStrategy(
                self.reader, self.executor, self.writer, self.runner
            ),
        }

    @staticmethod
    def new_batch_id() -> str:
        return f"batch_{int(time.time() * 1000)}_{secrets.token_urlsafe(8)}"

    async def run(
        self,
        batch_input: BatchInput,
        batch_id: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> BatchResult:
        """Run one batch over the whole source.

        Args:
            batch_input: FanOutBatchInput or CursorBatchInput
            batch_id: Batch identifier (generated if not provided)
            cancellation: Optional token; honored between chunks/pages

        Returns:
            BatchResult whose `processed` covers every record written

        Raises:
            BatchFailure: A chunk/page failed after retries
            BatchCancelledError: The run was cancelled
        """
        if batch_id is None:
            batch_id = self.new_batch_id()

        strategy = self._select_strategy(batch_input)

        logger.info(
            "batch_processing_started",
            batch_id=batch_id,
            strategy=strategy.name,
            source=batch_input.source_path,
        )

        try:
            result = await strategy.execute(batch_id, batch_input, cancellation)
        except BatchFailure as e:
            logger.error(
                "batch_processing_failed",
                batch_id=batch_id,
                strategy=strategy.name,
                failed_units=len(e.errors),
                processed_before_failure=e.processed,
            )
            raise
        except BatchCancelledError as e:
            logger.warning("batch_processing_cancelled", batch_id=batch_id, reason=e.reason)
            raise

        logger.info(
            "batch_processing_completed",
            batch_id=batch_id,
            strategy=strategy.name,
            processed=result.processed,
            units=result.units,
            processing_time=result.processing_time_seconds,
        )
        return result

    def _select_strategy(self, batch_input: BatchInput) -> BatchStrategy:
        if isinstance(batch_input, FanOutBatchInput):
            return self.strategies[FanOutBatchStrategy.name]
        if isinstance(batch_input, CursorBatchInput):
            return self.strategies[CursorBatchStrategy.name]
        raise TypeError(f"Unsupported batch input: {type(batch_input).__name__}")

    async def aclose(self) -> None:
        """Release the enrichment client if this processor created it."""
        if self._owns_executor:
            await self.executor.client.aclose()

    async def __aenter__(self) -> "BatchProcessor":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
