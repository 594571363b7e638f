"""Trade buffer for accumulating ingested trades between batch cycles."""

import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

TradeRecord = dict[str, Any]


@dataclass(frozen=True)
class Batch:
    """Trades captured atomically at one drain.

    Attributes:
        records: Trade records in ingestion order.
        captured_at: UTC time the batch was drained from the buffer.
    """

    records: tuple[TradeRecord, ...]
    captured_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __len__(self) -> int:
        return len(self.records)


class TradeBuffer:
    """Thread-safe buffer of trades pending the next batch cycle.

    Unlike a rolling window, nothing is ever dropped: records stay here until
    drain_all() hands them to the scheduler. The lock is held only for list
    operations, never across I/O.
    """

    def __init__(self):
        self._trades: list[TradeRecord] = []
        self._lock = threading.Lock()

    def append(self, record: TradeRecord) -> None:
        """Add a trade to the end of the buffer.

        Args:
            record: Opaque trade document. Stored as-is.
        """
        with self._lock:
            self._trades.append(record)

    def drain_all(self) -> Batch | None:
        """Remove and return every buffered trade as one batch.

        Returns:
            Batch with all pending trades (oldest first), or None if the
            buffer is empty.
        """
        with self._lock:
            if not self._trades:
                return None
            trades, self._trades = self._trades, []

        return Batch(records=tuple(trades))

    def requeue(self, batch: Batch) -> None:
        """Put a batch's trades back ahead of anything appended since.

        Args:
            batch: Previously drained batch whose commit failed.
        """
        with self._lock:
            self._trades[:0] = batch.records

    def __len__(self) -> int:
        with self._lock:
            return len(self._trades)
