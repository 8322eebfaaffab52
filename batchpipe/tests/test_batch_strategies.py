"""Integration tests for both batch strategies and the BatchProcessor."""

import math

import pytest
from conftest import build_processor, enrich_handler, no_sleep_runner, read_artifacts, write_source

from batchpipe.core.batch import BatchProcessor, BatchState
from batchpipe.core.engine import CancellationToken
from batchpipe.core.errors import BatchCancelledError, BatchFailure, SinkWriteError
from batchpipe.core.sink import ChunkWriter
from batchpipe.core.source import SourceReader
from batchpipe.models import CursorBatchInput, FanOutBatchInput


class FailingWriter(ChunkWriter):
    """Writer whose saves fail for chunks containing a given record id."""

    def __init__(self, output_root, poison_id, failures=None):
        super().__init__(output_root)
        self.poison_id = poison_id
        self.failures = failures  # None = always fail
        self.calls = 0

    def write_chunk(self, records, batch_id):
        if any(r.id == self.poison_id for r in records):
            self.calls += 1
            if self.failures is None or self.calls <= self.failures:
                raise SinkWriteError("disk full")
        return super().write_chunk(records, batch_id)


class RecordingReader(SourceReader):
    """Reader that remembers the cursors it was asked for."""

    def __init__(self):
        super().__init__()
        self.cursors = []

    def load_page(self, source, cursor, page_size):
        self.cursors.append(cursor)
        return super().load_page(source, cursor, page_size)


class TestFanOutStrategy:
    """Test eager fan-out (chunk_size)."""

    @pytest.mark.asyncio
    async def test_scenario_250_records_chunk_100(self, tmp_path, output_root):
        """Test 250 records in chunks of 100: 3 artifacts, 250 processed."""
        source = write_source(tmp_path / "users.csv", 250)
        processor = build_processor(output_root, enrich_handler())

        result = await processor.run(FanOutBatchInput(source_path=source, chunk_size=100), batch_id="b1")

        assert result.processed == 250
        assert result.units == 3
        assert result.strategy == "fanout"
        artifacts = read_artifacts(output_root / "batch-b1")
        assert sorted(len(a) for a in artifacts) == [50, 100, 100]
        assert sum(len(a) for a in artifacts) == 250
        assert sorted(r["id"] for a in artifacts for r in a) == list(range(1, 251))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count,chunk_size", [(0, 3), (1, 1), (7, 3), (12, 4), (5, 50)])
    async def test_processed_equals_record_count(self, tmp_path, output_root, count, chunk_size):
        """Test the summed unit counts equal N for any chunk size."""
        source = write_source(tmp_path / "users.csv", count)
        processor = build_processor(output_root, enrich_handler(), max_workers=2)

        result = await processor.run(FanOutBatchInput(source_path=source, chunk_size=chunk_size), batch_id="b1")

        assert result.processed == count
        assert result.units == math.ceil(count / chunk_size)

    @pytest.mark.asyncio
    async def test_degraded_record_still_counts(self, tmp_path, output_root):
        """Test a record whose enrichment always fails is written as UNKNOWN and counted."""
        source = write_source(tmp_path / "users.csv", 10)
        processor = build_processor(output_root, enrich_handler(failing_ids=[4]))

        result = await processor.run(FanOutBatchInput(source_path=source, chunk_size=3), batch_id="b1")

        assert result.processed == 10
        records = {r["id"]: r for a in read_artifacts(output_root / "batch-b1") for r in a}
        assert records[4]["enriched"] is False
        assert records[4]["region"] == "UNKNOWN"
        assert all(records[i]["enriched"] for i in records if i != 4)

    @pytest.mark.asyncio
    async def test_transient_unit_failure_is_retried(self, tmp_path, output_root):
        """Test a chunk whose save fails once is retried and the batch succeeds."""
        source = write_source(tmp_path / "users.csv", 6)
        writer = FailingWriter(str(output_root), poison_id=5, failures=1)
        processor = build_processor(output_root, enrich_handler(), writer=writer)

        result = await processor.run(FanOutBatchInput(source_path=source, chunk_size=2), batch_id="b1")

        assert result.processed == 6
        assert writer.calls == 2

    @pytest.mark.asyncio
    async def test_terminal_unit_failure_fails_batch_after_siblings_finish(self, tmp_path, output_root):
        """Test one exhausted chunk fails the batch while the others still write."""
        source = write_source(tmp_path / "users.csv", 6)
        writer = FailingWriter(str(output_root), poison_id=3)
        processor = build_processor(output_root, enrich_handler(), writer=writer)

        with pytest.raises(BatchFailure) as exc_info:
            await processor.run(FanOutBatchInput(source_path=source, chunk_size=2), batch_id="b1")

        failure = exc_info.value
        assert [e.task_id for e in failure.errors] == ["b1-chunk-2"]
        assert failure.errors[0].attempts == 3
        assert failure.processed == 4
        assert len(read_artifacts(output_root / "batch-b1")) == 2

    @pytest.mark.asyncio
    async def test_malformed_source_fails_batch(self, tmp_path, output_root):
        """Test a parse error during loading fails the batch without retries."""
        path = tmp_path / "users.csv"
        path.write_text("1,a,b,c@d.e,Male,1.1.1.1\nnot,enough\n")
        processor = build_processor(output_root, enrich_handler())

        with pytest.raises(BatchFailure) as exc_info:
            await processor.run(FanOutBatchInput(source_path=str(path), chunk_size=2), batch_id="b1")

        assert exc_info.value.errors[0].task_id == "b1-chunks"
        assert exc_info.value.errors[0].attempts == 1

    @pytest.mark.asyncio
    async def test_cancellation_before_dispatch(self, tmp_path, output_root):
        """Test a cancelled run starts no chunk units."""
        source = write_source(tmp_path / "users.csv", 4)
        handler = enrich_handler()
        processor = build_processor(output_root, handler)
        token = CancellationToken()
        token.cancel("shutdown")

        with pytest.raises(BatchCancelledError, match="shutdown"):
            await processor.run(FanOutBatchInput(source_path=source, chunk_size=2), cancellation=token)

        assert handler.calls == []


class TestCursorStrategy:
    """Test the cursor loop (page_size)."""

    @pytest.mark.asyncio
    async def test_scenario_5_records_page_2(self, tmp_path, output_root):
        """Test cursor sequence None->2, 2->4, 4->None with 3 artifacts."""
        source = write_source(tmp_path / "users.csv", 5)
        reader = RecordingReader()
        processor = build_processor(output_root, enrich_handler(), reader=reader)

        result = await processor.run(CursorBatchInput(source_path=source, page_size=2), batch_id="b2")

        assert result.processed == 5
        assert result.strategy == "cursor"
        assert result.cursors == [(None, 2), (2, 4), (4, None)]
        assert reader.cursors == [None, 2, 4]
        assert len(read_artifacts(output_root / "batch-b2")) == 3

    @pytest.mark.asyncio
    async def test_exact_multiple_stops_on_empty_page(self, tmp_path, output_root):
        """Test a full last page triggers one more fetch that ends the loop."""
        source = write_source(tmp_path / "users.csv", 4)
        reader = RecordingReader()
        processor = build_processor(output_root, enrich_handler(), reader=reader)

        result = await processor.run(CursorBatchInput(source_path=source, page_size=2), batch_id="b2")

        assert result.processed == 4
        assert result.units == 2
        assert reader.cursors == [None, 2, 4]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count,page_size", [(0, 2), (1, 1), (9, 4), (10, 5), (3, 10)])
    async def test_processed_equals_record_count(self, tmp_path, output_root, count, page_size):
        """Test the loop processes every record exactly once."""
        source = write_source(tmp_path / "users.csv", count)
        processor = build_processor(output_root, enrich_handler())

        result = await processor.run(CursorBatchInput(source_path=source, page_size=page_size), batch_id="b2")

        assert result.processed == count
        assert result.units == math.ceil(count / page_size)

    @pytest.mark.asyncio
    async def test_resume_from_start_cursor(self, tmp_path, output_root):
        """Test a run can resume from a known cursor."""
        source = write_source(tmp_path / "users.csv", 5)
        processor = build_processor(output_root, enrich_handler())

        result = await processor.run(
            CursorBatchInput(source_path=source, page_size=2, start_cursor=2), batch_id="b2"
        )

        assert result.processed == 3
        assert result.cursors == [(2, 4), (4, None)]

    @pytest.mark.asyncio
    async def test_terminal_failure_keeps_prior_artifacts(self, tmp_path, output_root):
        """Test a page that fails terminally halts the loop; earlier pages stay written."""
        source = write_source(tmp_path / "users.csv", 6)
        writer = FailingWriter(str(output_root), poison_id=3)
        handler = enrich_handler()
        processor = build_processor(output_root, handler, writer=writer)

        with pytest.raises(BatchFailure) as exc_info:
            await processor.run(CursorBatchInput(source_path=source, page_size=2), batch_id="b2")

        assert exc_info.value.errors[0].task_id == "b2-page-2-save"
        assert exc_info.value.processed == 2
        assert len(read_artifacts(output_root / "batch-b2")) == 1
        # Nothing after the failing page was fetched or enriched
        assert 5 not in handler.calls

    @pytest.mark.asyncio
    async def test_cancellation_between_pages(self, tmp_path, output_root):
        """Test a cancellation observed before FETCHING stops the loop."""
        source = write_source(tmp_path / "users.csv", 6)
        token = CancellationToken()

        class CancellingWriter(ChunkWriter):
            def write_chunk(self, records, batch_id):
                token.cancel("operator stop")
                return super().write_chunk(records, batch_id)

        processor = build_processor(output_root, enrich_handler(), writer=CancellingWriter(str(output_root)))

        with pytest.raises(BatchCancelledError):
            await processor.run(CursorBatchInput(source_path=source, page_size=2), batch_id="b2", cancellation=token)

        assert len(read_artifacts(output_root / "batch-b2")) == 1

    def test_states(self):
        """Test the loop exposes its terminal states."""
        assert {s.value for s in BatchState} == {"fetching", "enriching", "persisting", "done", "failed"}


class TestBatchProcessor:
    """Test strategy routing and ids."""

    @pytest.mark.asyncio
    async def test_generated_batch_id(self, tmp_path, output_root):
        """Test a batch id is generated when none is given."""
        source = write_source(tmp_path / "users.csv", 2)
        processor = build_processor(output_root, enrich_handler())

        result = await processor.run(CursorBatchInput(source_path=source, page_size=5))

        assert result.batch_id.startswith("batch_")
        assert (output_root / f"batch-{result.batch_id}").is_dir()

    @pytest.mark.asyncio
    async def test_unsupported_input_rejected(self, output_root):
        """Test an unknown input type raises TypeError."""
        processor = build_processor(output_root, enrich_handler(), runner=no_sleep_runner())

        with pytest.raises(TypeError):
            await processor.run(object(), batch_id="b")

    def test_result_to_dict(self):
        """Test the summary dict exposes processed and cursors as lists."""
        from batchpipe.core.batch import BatchResult, ChunkReport

        result = BatchResult.create("b", "cursor", [ChunkReport("b-page-1", 2, "/tmp/x.json")], 0.5, [(None, None)])

        data = result.to_dict()
        assert data["processed"] == 2
        assert data["cursors"] == [[None, None]]
        assert data["status"] == "completed"

    def test_processor_is_batch_processor(self, output_root):
        """Test the helper builds a real BatchProcessor."""
        assert isinstance(build_processor(output_root, enrich_handler()), BatchProcessor)
