"""Unit tests for ChunkWriter."""

import asyncio
import json

import pytest

from batchpipe.core.errors import SinkWriteError
from batchpipe.core.sink import ChunkWriter, writer as writer_module
from batchpipe.models import EnrichedUserRecord, UserRecord


def enriched_records(count: int, failed_ids=()):
    records = []
    for i in range(1, count + 1):
        base = UserRecord(
            id=i,
            first_name=f"First{i}",
            last_name=f"Last{i}",
            email=f"user{i}@example.com",
            gender="Male",
            ip_address=f"10.0.0.{i}",
        )
        if i in failed_ids:
            records.append(EnrichedUserRecord.degraded(base))
        else:
            records.append(EnrichedUserRecord(**base.model_dump(), enriched=True, region="INTL"))
    return records


class TestSaveChunk:
    """Test writing enriched chunks."""

    @pytest.mark.asyncio
    async def test_save_chunk_writes_json_array(self, output_root):
        """Test the artifact is a camelCase JSON array under batch-<id>/."""
        writer = ChunkWriter(str(output_root))

        path = await writer.save_chunk(enriched_records(3, failed_ids=[2]), "b1")

        assert path.parent == output_root / "batch-b1"
        data = json.loads(path.read_text())
        assert [item["id"] for item in data] == [1, 2, 3]
        assert data[0]["firstName"] == "First1"
        assert data[0]["ipAddress"] == "10.0.0.1"
        assert data[1]["enriched"] is False
        assert data[1]["region"] == "UNKNOWN"

    @pytest.mark.asyncio
    async def test_same_instant_saves_do_not_collide(self, output_root, monkeypatch):
        """Test two saves in the same millisecond produce distinct files."""
        monkeypatch.setattr(writer_module.time, "time", lambda: 1700000000.0)
        writer = ChunkWriter(str(output_root))

        first = await writer.save_chunk(enriched_records(1), "b1")
        second = await writer.save_chunk(enriched_records(1), "b1")

        assert first != second
        assert len(list((output_root / "batch-b1").iterdir())) == 2

    @pytest.mark.asyncio
    async def test_concurrent_saves_are_unique(self, output_root):
        """Test many concurrent saves across writers never overwrite each other."""
        writers = [ChunkWriter(str(output_root)) for _ in range(2)]

        paths = await asyncio.gather(
            *[writers[i % 2].save_chunk(enriched_records(2), "b1") for i in range(20)]
        )

        assert len(set(paths)) == 20
        assert len(list((output_root / "batch-b1").glob("chunk-*.json"))) == 20

    @pytest.mark.asyncio
    async def test_directory_creation_is_idempotent(self, output_root):
        """Test an existing batch directory is reused."""
        (output_root / "batch-b1").mkdir()
        writer = ChunkWriter(str(output_root))

        path = await writer.save_chunk(enriched_records(1), "b1")

        assert path.exists()

    @pytest.mark.asyncio
    async def test_unwritable_root_raises_sink_error(self, tmp_path):
        """Test a root that is a regular file surfaces as SinkWriteError."""
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        writer = ChunkWriter(str(blocker))

        with pytest.raises(SinkWriteError):
            await writer.save_chunk(enriched_records(1), "b1")

        assert issubclass(SinkWriteError, OSError)


class TestArtifactName:
    """Test artifact naming."""

    def test_sequence_is_scoped_per_batch(self, output_root):
        """Test each batch has its own sequence counter."""
        writer = ChunkWriter(str(output_root))

        a1 = writer.artifact_name("a")
        b1 = writer.artifact_name("b")
        a2 = writer.artifact_name("a")

        assert a1.split("-")[2] == "000001"
        assert b1.split("-")[2] == "000001"
        assert a2.split("-")[2] == "000002"
