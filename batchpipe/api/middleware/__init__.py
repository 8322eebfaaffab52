"""Middleware for batchpipe."""

from batchpipe.api.middleware.request_id import request_id_middleware

__all__ = ["request_id_middleware"]
