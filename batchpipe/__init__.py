"""batchpipe: batch enrichment pipeline for tabular user records."""

__version__ = "1.0.0"
