"""Batch traversal strategies for batchpipe.

Strategy pattern implementation for the two ways of walking a source.
"""

from batchpipe.core.batch.strategies.base import BatchStrategy
from batchpipe.core.batch.strategies.cursor_strategy import BatchState, CursorBatchStrategy
from batchpipe.core.batch.strategies.fanout_strategy import FanOutBatchStrategy

__all__ = [
    "BatchState",
    "BatchStrategy",
    "CursorBatchStrategy",
    "FanOutBatchStrategy",
]
