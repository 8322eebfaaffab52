"""Enrichment executor for batchpipe.

Enriches every record of a chunk, substituting a degraded record for any
item whose enrichment call fails. Output always matches the input's
length and order.
"""

import asyncio
from typing import List, Optional, Sequence

from batchpipe.core.enrichment.client import EnrichmentClient
from batchpipe.core.engine.context import TaskContext
from batchpipe.core.errors import EnrichmentItemError
from batchpipe.core.logging import logger
from batchpipe.models import EnrichedUserRecord, UserRecord


class EnrichmentExecutor:
    """Calls the enrichment service per record, absorbing per-item failure.

    Stateless across calls, so a chunk can be retried safely.
    """

    def __init__(self, client: EnrichmentClient, concurrency: int = 1):
        """Initialize the executor.

        Args:
            client: Enrichment service client
            concurrency: Max in-flight calls within one chunk (1 = sequential)
        """
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.client = client
        self.concurrency = concurrency

    async def enrich_chunk(
        self,
        records: Sequence[UserRecord],
        context: Optional[TaskContext] = None,
    ) -> List[EnrichedUserRecord]:
        """Enrich a chunk of records.

        A heartbeat "i/total processed" is emitted after each record.
        Only cancellation of the surrounding task aborts the chunk.

        Args:
            records: Ordered records to enrich
            context: Task context receiving heartbeats (optional)

        Returns:
            Enriched records, same length and order as `records`
        """
        total = len(records)

        if self.concurrency == 1 or total <= 1:
            results = []
            for index, record in enumerate(records, start=1):
                results.append(await self._enrich_one(record))
                _heartbeat(context, index, total)
            return results

        semaphore = asyncio.Semaphore(self.concurrency)
        completed = 0

        async def run(record: UserRecord) -> EnrichedUserRecord:
            nonlocal completed
            async with semaphore:
                result = await self._enrich_one(record)
            completed += 1
            _heartbeat(context, completed, total)
            return result

        # gather keeps input order regardless of completion order
        return list(await asyncio.gather(*[run(record) for record in records]))

    async def _enrich_one(self, record: UserRecord) -> EnrichedUserRecord:
        try:
            return await self.client.enrich(record)
        except EnrichmentItemError as e:
            logger.warning(
                "enrichment_item_failed",
                record_id=record.id,
                status_code=e.status_code,
                error=e.reason,
                fallback="unenriched",
            )
            return EnrichedUserRecord.degraded(record)


def _heartbeat(context: Optional[TaskContext], done: int, total: int) -> None:
    if context is not None:
        context.heartbeat(f"{done}/{total} processed")
