"""Output persistence for batchpipe."""

from batchpipe.core.sink.writer import ChunkWriter

__all__ = ["ChunkWriter"]
