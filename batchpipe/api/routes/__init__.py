"""Routes for batchpipe."""

from batchpipe.api.routes import batches, system

__all__ = ["batches", "system"]
