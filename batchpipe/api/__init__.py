"""HTTP API for batchpipe."""

from batchpipe.api.app import create_app

__all__ = ["create_app"]
