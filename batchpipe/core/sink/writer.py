"""Persistence sink for batchpipe.

Writes each enriched chunk as one JSON artifact under a batch-scoped
directory. Artifact names never repeat within a batch, so retried writes
add new files instead of overwriting earlier ones (at-least-once output).
"""

import asyncio
import itertools
import json
import os
import secrets
import threading
import time
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterator, Optional, Sequence

from batchpipe.config import Config
from batchpipe.core.errors import SinkWriteError
from batchpipe.core.logging import logger
from batchpipe.models import EnrichedUserRecord


class ChunkWriter:
    """Writes enriched chunks to `<output_root>/batch-<batch_id>/`."""

    def __init__(self, output_root: Optional[str] = None):
        self.output_root = Path(output_root or Config.output_root())
        self._lock = threading.Lock()
        self._sequences: Dict[str, Iterator[int]] = defaultdict(lambda: itertools.count(1))

    def batch_dir(self, batch_id: str) -> Path:
        return self.output_root / f"batch-{batch_id}"

    def artifact_name(self, batch_id: str) -> str:
        """Collision-free name: timestamp, per-batch sequence, random token."""
        with self._lock:
            seq = next(self._sequences[batch_id])
        return f"chunk-{int(time.time() * 1000)}-{seq:06d}-{secrets.token_hex(4)}.json"

    async def save_chunk(self, records: Sequence[EnrichedUserRecord], batch_id: str) -> Path:
        """Persist one enriched chunk.

        Args:
            records: Enriched records to write (in order)
            batch_id: Batch the chunk belongs to

        Returns:
            Path of the written artifact

        Raises:
            SinkWriteError: If the directory or file cannot be written
        """
        return await asyncio.to_thread(self.write_chunk, records, batch_id)

    def write_chunk(self, records: Sequence[EnrichedUserRecord], batch_id: str) -> Path:
        """Blocking implementation of save_chunk."""
        out_dir = self.batch_dir(batch_id)
        payload = json.dumps(
            [record.model_dump(mode="json", by_alias=True) for record in records],
            indent=2,
        )

        try:
            out_dir.mkdir(parents=True, exist_ok=True)
            out_file = out_dir / self.artifact_name(batch_id)
            # "x" mode refuses to replace an existing artifact
            with open(out_file, "x", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
        except OSError as e:
            logger.error("chunk_save_failed", batch_id=batch_id, directory=str(out_dir), error=str(e))
            raise SinkWriteError(f"Cannot write chunk for batch '{batch_id}': {e}") from e

        logger.info("chunk_saved", batch_id=batch_id, records=len(records), path=str(out_file))
        return out_file
