"""Tests for batch artifact serialization and files."""

import json
from datetime import UTC, datetime

import pytest

from tradeledger.ingest.trade_buffer import Batch
from tradeledger.storage.artifact import (
    ArtifactStore,
    artifact_name,
    load_artifact,
    serialize_records,
)

CAPTURED_AT = datetime(2024, 1, 1, 12, 30, 45, tzinfo=UTC)


def _make_batch(*records: dict) -> Batch:
    return Batch(records=tuple(records), captured_at=CAPTURED_AT)


class TestSerializeRecords:
    """Tests for serialize_records."""

    def test_serializes_compact_json_array_with_newline(self):
        """Records become a compact JSON array terminated by a newline."""
        # GIVEN two records
        records = ({"id": 1}, {"id": 2})

        # WHEN we serialize them
        data = serialize_records(records)

        # THEN the bytes are the compact array
        assert data == b'[{"id":1},{"id":2}]\n'

    def test_preserves_key_order_and_unicode(self):
        """Key order is kept as ingested and non-ASCII text is not escaped."""
        # GIVEN a record with unsorted keys and unicode
        records = ({"z": "é", "a": 1},)

        # WHEN we serialize it
        data = serialize_records(records)

        # THEN the caller's key order and characters survive
        assert data == '[{"z":"é","a":1}]\n'.encode("utf-8")


class TestArtifactName:
    """Tests for artifact_name."""

    def test_name_derived_from_capture_time(self):
        """Artifact name is trades_<capture timestamp>.json."""
        # GIVEN a batch captured at a known time
        batch = _make_batch({"id": 1})

        # WHEN we name it
        name = artifact_name(batch)

        # THEN the name encodes the capture timestamp
        assert name == "trades_2024-01-01_12-30-45.json"


class TestArtifactStore:
    """Tests for ArtifactStore.write."""

    def test_write_creates_file_with_serialized_batch(self, tmp_path):
        """write persists the canonical serialization under the batch name."""
        # GIVEN a store and a batch
        store = ArtifactStore(tmp_path)
        batch = _make_batch({"id": 1}, {"id": 2})

        # WHEN we write the batch
        path = store.write(batch)

        # THEN the file holds both records
        assert path == tmp_path / "trades_2024-01-01_12-30-45.json"
        assert json.loads(path.read_text(encoding="utf-8")) == [{"id": 1}, {"id": 2}]

    def test_write_creates_missing_directory(self, tmp_path):
        """write creates the artifact directory if needed."""
        # GIVEN a store pointing at a missing directory
        store = ArtifactStore(tmp_path / "artifacts" / "nested")

        # WHEN we write a batch
        path = store.write(_make_batch({"id": 1}))

        # THEN the directory and file exist
        assert path.exists()

    def test_write_keeps_batches_captured_in_same_second(self, tmp_path):
        """A second batch from the same second gets a suffixed name."""
        # GIVEN a store that already holds a batch for this second
        store = ArtifactStore(tmp_path)
        first = store.write(_make_batch({"id": "A"}))

        # WHEN another batch captured in the same second is written
        second = store.write(_make_batch({"id": "B"}))

        # THEN both files exist with their own trades
        assert first == tmp_path / "trades_2024-01-01_12-30-45.json"
        assert second == tmp_path / "trades_2024-01-01_12-30-45_1.json"
        assert json.loads(first.read_text(encoding="utf-8")) == [{"id": "A"}]
        assert json.loads(second.read_text(encoding="utf-8")) == [{"id": "B"}]

    def test_write_skips_every_taken_suffix(self, tmp_path):
        """Suffixes keep counting past names already on disk."""
        # GIVEN the base name and the first suffix are taken
        store = ArtifactStore(tmp_path)
        store.write(_make_batch({"id": 1}))
        store.write(_make_batch({"id": 2}))

        # WHEN a third batch from the same second is written
        path = store.write(_make_batch({"id": 3}))

        # THEN it lands on the next free suffix
        assert path.name == "trades_2024-01-01_12-30-45_2.json"
        assert len(list(tmp_path.iterdir())) == 3


class TestLoadArtifact:
    """Tests for load_artifact."""

    def test_load_returns_records(self, tmp_path):
        """load_artifact reads back the records that were written."""
        # GIVEN a written artifact
        path = ArtifactStore(tmp_path).write(_make_batch({"id": 1}, {"id": 2}))

        # WHEN we load it
        records = load_artifact(path)

        # THEN the records match
        assert records == [{"id": 1}, {"id": 2}]

    def test_load_rejects_non_artifact(self, tmp_path):
        """load_artifact raises ValueError for a file that is not a record list."""
        # GIVEN a JSON file holding an object
        path = tmp_path / "other.json"
        path.write_text('{"id": 1}', encoding="utf-8")

        # WHEN we load it
        # THEN it raises ValueError
        with pytest.raises(ValueError, match="not a trade artifact"):
            load_artifact(path)
