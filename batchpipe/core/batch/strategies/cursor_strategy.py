"""Cursor-loop batch strategy for batchpipe.

Pages through the source one page at a time:
FETCHING -> ENRICHING -> PERSISTING -> (FETCHING | DONE), FAILED on
unrecoverable error. Exactly one page is in flight, so memory stays
bounded by the page size and a run can resume from any cursor.
"""

import time
from enum import Enum
from typing import List, Optional

from batchpipe.core.batch.models import BatchResult, ChunkReport, CursorStep
from batchpipe.core.batch.strategies.base import BatchStrategy
from batchpipe.core.engine import CancellationToken, TaskIdAllocator
from batchpipe.core.errors import BatchCancelledError, BatchFailure, ChunkExecutionError
from batchpipe.core.logging import logger
from batchpipe.models import CursorBatchInput, EnrichedUserRecord, Page


class BatchState(str, Enum):
    """States of the cursor loop."""

    FETCHING = "fetching"
    ENRICHING = "enriching"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


class CursorBatchStrategy(BatchStrategy):
    """Sequential cursor-based pagination.

    Fetch, enrich and persist each run as their own retried unit of work.
    On a terminal failure, artifacts of earlier pages stay on disk.
    """

    name = "cursor"

    async def execute(
        self,
        batch_id: str,
        batch_input: CursorBatchInput,
        cancellation: Optional[CancellationToken] = None,
    ) -> BatchResult:
        start_time = time.time()
        task_ids = TaskIdAllocator(batch_id)
        source = batch_input.source_path
        page_size = batch_input.page_size

        cursor = batch_input.start_cursor
        reports: List[ChunkReport] = []
        cursors: List[CursorStep] = []
        page: Optional[Page] = None
        enriched: List[EnrichedUserRecord] = []
        page_id = ""
        state = BatchState.FETCHING

        logger.info(
            "cursor_batch_started",
            batch_id=batch_id,
            source=source,
            page_size=page_size,
            start_cursor=cursor,
        )

        try:
            while state is not BatchState.DONE:
                if state is BatchState.FETCHING:
                    if cancellation is not None:
                        cancellation.raise_if_cancelled()
                    page_id = task_ids.next_id("page")
                    page = await self.runner.run(
                        f"{page_id}-fetch", self.load_page, source, cursor, page_size
                    )
                    state = BatchState.ENRICHING if page.items else BatchState.DONE

                elif state is BatchState.ENRICHING:
                    enriched = await self.runner.run(f"{page_id}-enrich", self.enrich, page.items)
                    state = BatchState.PERSISTING

                elif state is BatchState.PERSISTING:
                    path = await self.runner.run(f"{page_id}-save", self.save, enriched, batch_id)
                    reports.append(ChunkReport(task_id=page_id, processed=len(enriched), artifact=path))
                    cursors.append((cursor, page.next_cursor))

                    logger.info(
                        "cursor_page_completed",
                        batch_id=batch_id,
                        page=page_id,
                        cursor=cursor,
                        next_cursor=page.next_cursor,
                        records=len(enriched),
                    )

                    cursor = page.next_cursor
                    page, enriched = None, []
                    state = BatchState.DONE if cursor is None else BatchState.FETCHING

        except ChunkExecutionError as e:
            state = BatchState.FAILED
            processed = sum(report.processed for report in reports)
            logger.error(
                "cursor_batch_failed",
                batch_id=batch_id,
                state=state.value,
                failed_task=e.task_id,
                resume_cursor=cursor,
                processed=processed,
            )
            raise BatchFailure(batch_id, [e], processed=processed) from e

        except BatchCancelledError as e:
            logger.warning(
                "cursor_batch_cancelled",
                batch_id=batch_id,
                reason=e.reason,
                resume_cursor=cursor,
                processed=sum(report.processed for report in reports),
            )
            raise

        total_time = time.time() - start_time
        result = BatchResult.create(
            batch_id=batch_id,
            strategy=self.name,
            reports=reports,
            processing_time=total_time,
            cursors=cursors,
        )

        logger.info(
            "cursor_batch_completed",
            batch_id=batch_id,
            pages=result.units,
            processed=result.processed,
            processing_time=result.processing_time_seconds,
        )
        return result
