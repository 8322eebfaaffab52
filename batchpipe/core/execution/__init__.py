"""Execution module for batchpipe.

Provides error classification for retry decisions.
"""

from batchpipe.core.execution.error_classifier import ErrorClassifier

__all__ = ["ErrorClassifier"]
