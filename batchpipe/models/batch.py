"""Batch input models for batchpipe.

These models select the traversal strategy: chunk_size runs the eager
fan-out strategy, page_size runs the cursor loop.
"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class BaseBatchInput(BaseModel):
    """Fields shared by every batch input."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    source_path: str = Field(
        ...,
        min_length=1,
        alias="sourcePath",
        description="Path of the newline-delimited source file",
    )


class FanOutBatchInput(BaseBatchInput):
    """Input for the eager fan-out strategy."""

    chunk_size: int = Field(..., gt=0, alias="chunkSize", description="Records per chunk")


class CursorBatchInput(BaseBatchInput):
    """Input for the cursor-loop strategy."""

    page_size: int = Field(..., gt=0, alias="pageSize", description="Records per page")
    start_cursor: Optional[int] = Field(
        None,
        ge=0,
        alias="startCursor",
        description="Resume from this cursor instead of the first data row",
    )


BatchInput = Union[FanOutBatchInput, CursorBatchInput]


class BatchRequest(BaseModel):
    """Request for POST /batches endpoint."""

    source_path: str = Field(..., min_length=1, alias="sourcePath")
    chunk_size: Optional[int] = Field(None, gt=0, alias="chunkSize")
    page_size: Optional[int] = Field(None, gt=0, alias="pageSize")
    start_cursor: Optional[int] = Field(None, ge=0, alias="startCursor")
    batch_id: Optional[str] = Field(
        None,
        min_length=1,
        pattern=r"^[A-Za-z0-9_.-]+$",
        alias="batchId",
        description="Batch identifier (generated if omitted)",
    )

    @model_validator(mode="after")
    def _exactly_one_size(self) -> "BatchRequest":
        if (self.chunk_size is None) == (self.page_size is None):
            raise ValueError("exactly one of chunk_size or page_size is required")
        if self.start_cursor is not None and self.page_size is None:
            raise ValueError("start_cursor only applies to page_size batches")
        return self

    def to_input(self) -> BatchInput:
        if self.chunk_size is not None:
            return FanOutBatchInput(source_path=self.source_path, chunk_size=self.chunk_size)
        return CursorBatchInput(
            source_path=self.source_path,
            page_size=self.page_size,
            start_cursor=self.start_cursor,
        )

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {"source_path": "dummy-data/users.csv", "page_size": 100},
                {"source_path": "dummy-data/users.csv", "chunk_size": 100},
            ]
        },
    }
