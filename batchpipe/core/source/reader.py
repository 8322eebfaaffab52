"""Source reader for batchpipe.

Deterministic, stateless extraction of user records from a newline-delimited,
comma-separated source. Supports full chunked loading and cursor pagination.
"""

import itertools
import os
from typing import IO, Iterator, List, Optional

from batchpipe.core.errors import ParseError, SourceReadError
from batchpipe.core.logging import logger
from batchpipe.models import USER_FIELDS, Page, UserRecord

# First line starting with this is treated as a header row
HEADER_PREFIX = "id,"


def parse_line(line: str, line_number: Optional[int] = None) -> UserRecord:
    """Parse one source line into a UserRecord.

    Fields are split naively on commas; quoting is not supported.

    Raises:
        ParseError: If the field count is wrong or the id is not an integer
    """
    fields = line.split(",")
    if len(fields) != len(USER_FIELDS):
        raise ParseError(
            f"expected {len(USER_FIELDS)} fields, got {len(fields)}",
            line_number=line_number,
            line=line,
        )

    raw_id = fields[0].strip()
    try:
        record_id = int(raw_id)
    except ValueError:
        raise ParseError(f"id {raw_id!r} is not an integer", line_number=line_number, line=line)

    return UserRecord(
        id=record_id,
        first_name=fields[1],
        last_name=fields[2],
        email=fields[3],
        gender=fields[4],
        ip_address=fields[5],
    )


class SourceReader:
    """Reads ordered chunks and pages of UserRecords from a local source file.

    Holds no state between calls, so every method is safe to retry.
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def iter_records(self, source: str) -> Iterator[UserRecord]:
        """Stream parsed records in source order.

        Raises:
            SourceReadError: If the source cannot be opened or read
            ParseError: On the first malformed line
        """
        with self._open(source) as handle:
            yield from self._records(handle, source)

    def load_all(self, source: str, chunk_size: int) -> List[List[UserRecord]]:
        """Read the entire source and split it into chunks of `chunk_size`.

        Returns ceil(N / chunk_size) chunks; only the last may be smaller.
        """
        _require_positive("chunk_size", chunk_size)

        records = list(self.iter_records(source))
        chunks = [records[i : i + chunk_size] for i in range(0, len(records), chunk_size)]

        logger.info(
            "source_loaded",
            source=source,
            records=len(records),
            chunks=len(chunks),
            chunk_size=chunk_size,
        )
        return chunks

    def load_page(self, source: str, cursor: Optional[int], page_size: int) -> Page:
        """Read one page starting at `cursor` (a data-row offset, None = start).

        next_cursor is None when fewer than page_size records remained.
        Only the requested page is held in memory.
        """
        _require_positive("page_size", page_size)
        start = 0 if cursor is None else cursor
        if start < 0:
            raise ValueError(f"cursor must be >= 0, got {cursor}")

        with self._open(source) as handle:
            records = self._records(handle, source)
            items = list(itertools.islice(records, start, start + page_size))

        next_cursor = start + len(items) if len(items) == page_size else None

        logger.debug(
            "source_page_loaded",
            source=source,
            cursor=cursor,
            items=len(items),
            next_cursor=next_cursor,
        )
        return Page(items=items, next_cursor=next_cursor)

    def _open(self, source: str) -> IO[str]:
        path = os.path.abspath(source)
        try:
            return open(path, "r", encoding=self.encoding, newline="")
        except OSError as e:
            logger.error("source_open_failed", source=path, error=str(e))
            raise SourceReadError(f"Cannot read source '{path}': {e}") from e

    def _records(self, handle: IO[str], source: str) -> Iterator[UserRecord]:
        first = True
        try:
            for line_number, raw in enumerate(handle, start=1):
                line = raw.rstrip("\r\n")
                if not line.strip():
                    continue
                if first:
                    first = False
                    if line.startswith(HEADER_PREFIX):
                        continue
                yield parse_line(line, line_number=line_number)
        except UnicodeDecodeError as e:
            raise SourceReadError(f"Cannot decode source '{source}': {e}") from e


def _require_positive(name: str, value: int) -> None:
    if value <= 0:
        raise ValueError(f"{name} must be > 0, got {value}")
