"""Batch processing models for batchpipe.

Type-safe models for batch execution results.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

CursorStep = Tuple[Optional[int], Optional[int]]


@dataclass(frozen=True)
class ChunkReport:
    """What one chunk/page unit wrote."""

    task_id: str
    processed: int
    artifact: Path


@dataclass
class BatchResult:
    """Result of a completed batch run.

    `processed` is the number of records written, degraded ones included.
    """

    batch_id: str
    status: str  # 'completed'
    strategy: str  # 'fanout', 'cursor'
    processed: int
    units: int
    artifacts: List[str]
    processing_time_seconds: float
    timestamp: str
    cursors: List[CursorStep] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        batch_id: str,
        strategy: str,
        reports: List[ChunkReport],
        processing_time: float,
        cursors: Optional[List[CursorStep]] = None,
    ) -> "BatchResult":
        """Factory method to create BatchResult with auto-generated timestamp."""
        return cls(
            batch_id=batch_id,
            status="completed",
            strategy=strategy,
            processed=sum(report.processed for report in reports),
            units=len(reports),
            artifacts=[str(report.artifact) for report in reports],
            processing_time_seconds=round(processing_time, 2),
            timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            cursors=list(cursors or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["cursors"] = [list(step) for step in self.cursors]
        return data
