"""Record models for batchpipe.

Python attributes are snake_case; the wire and artifact form uses the
camelCase field names through aliases.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

Region = Literal["NA", "INTL", "UNKNOWN"]

# Source column order
USER_FIELDS: Tuple[str, ...] = ("id", "firstName", "lastName", "email", "gender", "ipAddress")


class UserRecord(BaseModel):
    """One user row read from the source."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: int = Field(..., description="Unique integer id within the source")
    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")
    email: str
    gender: str
    ip_address: str = Field(..., alias="ipAddress")

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class EnrichedUserRecord(UserRecord):
    """UserRecord plus the fields supplied by the enrichment service."""

    enriched: bool
    region: Region

    @model_validator(mode="after")
    def _unenriched_region_is_unknown(self) -> "EnrichedUserRecord":
        if not self.enriched and self.region != "UNKNOWN":
            raise ValueError("region must be 'UNKNOWN' when enriched is false")
        return self

    @classmethod
    def degraded(cls, record: UserRecord) -> "EnrichedUserRecord":
        """Substitute used when enriching `record` failed."""
        return cls(**record.model_dump(), enriched=False, region="UNKNOWN")


class Page(BaseModel):
    """A page of records and the cursor of the following page.

    next_cursor is None once the source is exhausted.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    items: List[UserRecord] = Field(default_factory=list)
    next_cursor: Optional[int] = Field(None, alias="nextCursor")

    @property
    def exhausted(self) -> bool:
        return self.next_cursor is None


@dataclass(frozen=True)
class ChunkTask:
    """Ephemeral unit of work: ordered records bound to a batch and a task id."""

    records: Tuple[UserRecord, ...]
    batch_id: str
    task_id: str

    def __len__(self) -> int:
        return len(self.records)
