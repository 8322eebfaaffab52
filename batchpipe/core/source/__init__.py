"""Source reading for batchpipe."""

from batchpipe.core.source.reader import HEADER_PREFIX, SourceReader, parse_line

__all__ = ["HEADER_PREFIX", "SourceReader", "parse_line"]
