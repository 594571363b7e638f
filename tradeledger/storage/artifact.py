"""Local batch artifacts: canonical serialization and durable files."""

import itertools
import json
import os
from pathlib import Path

from tradeledger.ingest.trade_buffer import Batch, TradeRecord

ARTIFACT_PREFIX = "trades_"
ARTIFACT_TIME_FORMAT = "%Y-%m-%d_%H-%M-%S"


def serialize_records(records: tuple[TradeRecord, ...] | list[TradeRecord]) -> bytes:
    """Serialize trade records to the canonical uploaded form.

    A compact JSON array in ingestion order, UTF-8, newline-terminated.
    Record key order is preserved.
    """
    text = json.dumps(list(records), separators=(",", ":"), ensure_ascii=False)
    return (text + "\n").encode("utf-8")


def artifact_name(batch: Batch) -> str:
    """Deterministic file name for a batch, e.g. trades_2024-01-01_12-00-00.json."""
    return f"{ARTIFACT_PREFIX}{batch.captured_at.strftime(ARTIFACT_TIME_FORMAT)}.json"


class ArtifactStore:
    """Writes each batch to its own file before it leaves the process.

    Files are never deleted or overwritten here; they are the recovery record
    for any batch whose upload or commit fails. Batches captured in the same
    second get a numeric suffix, e.g. trades_2024-01-01_12-00-00_1.json.
    """

    def __init__(self, directory: str | Path = "."):
        self.directory = Path(directory)

    def write(self, batch: Batch) -> Path:
        """Durably write a batch to disk.

        Args:
            batch: Drained batch to persist.

        Returns:
            Path of the written artifact.

        Raises:
            OSError: If the directory or file cannot be written.
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        data = serialize_records(batch.records)
        stem = Path(artifact_name(batch)).stem

        for n in itertools.count():
            name = f"{stem}.json" if n == 0 else f"{stem}_{n}.json"
            path = self.directory / name
            try:
                f = open(path, "xb")
            except FileExistsError:
                continue

            with f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            return path


def load_artifact(path: str | Path) -> list[TradeRecord]:
    """Read an artifact back into its trade records.

    Raises:
        ValueError: If the file does not hold a JSON array of objects.
    """
    with open(path, encoding="utf-8") as f:
        records = json.load(f)

    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        raise ValueError(f"{path} is not a trade artifact")

    return records
