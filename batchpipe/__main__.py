"""Command line entry point for batchpipe.

Usage:
    python -m batchpipe run dummy-data/users.csv --page-size 100
    python -m batchpipe run dummy-data/users.csv --chunk-size 100 --batch-id nightly-1
    python -m batchpipe serve-mock --port 3001
"""

import argparse
import asyncio
import json
import signal
import sys
from typing import List, Optional

from batchpipe.core.batch import BatchProcessor
from batchpipe.core.engine import CancellationToken
from batchpipe.core.errors import BatchCancelledError, BatchFailure
from batchpipe.models import CursorBatchInput, FanOutBatchInput


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="batchpipe", description="Batch enrichment pipeline")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run one batch over a source file")
    run_parser.add_argument("source", help="Path of the source file")
    size = run_parser.add_mutually_exclusive_group(required=True)
    size.add_argument("--chunk-size", type=int, help="Eager fan-out with chunks of this size")
    size.add_argument("--page-size", type=int, help="Cursor loop with pages of this size")
    run_parser.add_argument("--start-cursor", type=int, default=None, help="Resume a cursor run")
    run_parser.add_argument("--batch-id", default=None)

    mock_parser = subparsers.add_parser("serve-mock", help="Serve the mock enrichment service")
    mock_parser.add_argument("--host", default="127.0.0.1")
    mock_parser.add_argument("--port", type=int, default=3001)
    mock_parser.add_argument("--failure-rate", type=float, default=0.10)
    mock_parser.add_argument("--seed", type=int, default=None)

    return parser.parse_args(argv)


async def _run_batch(args: argparse.Namespace) -> int:
    if args.chunk_size is not None:
        batch_input = FanOutBatchInput(source_path=args.source, chunk_size=args.chunk_size)
    else:
        batch_input = CursorBatchInput(
            source_path=args.source, page_size=args.page_size, start_cursor=args.start_cursor
        )

    # SIGTERM stops the run before the next chunk/page starts
    cancellation = CancellationToken()
    try:
        asyncio.get_running_loop().add_signal_handler(signal.SIGTERM, cancellation.cancel, "SIGTERM")
    except NotImplementedError:
        pass

    async with BatchProcessor() as processor:
        try:
            result = await processor.run(batch_input, batch_id=args.batch_id, cancellation=cancellation)
        except BatchFailure as e:
            print(json.dumps({"error": str(e), "processed_before_failure": e.processed}), file=sys.stderr)
            return 1
        except BatchCancelledError as e:
            print(json.dumps({"error": str(e)}), file=sys.stderr)
            return 130

    print(json.dumps(result.to_dict(), indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    if args.command == "serve-mock":
        import uvicorn

        from batchpipe.mocks.enrichment_api import create_app

        uvicorn.run(create_app(failure_rate=args.failure_rate, seed=args.seed), host=args.host, port=args.port)
        return 0

    return asyncio.run(_run_batch(args))


if __name__ == "__main__":
    sys.exit(main())
