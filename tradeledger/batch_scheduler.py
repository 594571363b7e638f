"""Periodic batch cycle: drain the buffer, pin the batch, commit its CID."""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from tradeledger.ingest.trade_buffer import Batch, TradeBuffer
from tradeledger.storage.pinata import PublishedBatch, PublishError

logger = logging.getLogger(__name__)


class CycleState(Enum):
    """Stages of one batch cycle."""

    IDLE = "idle"
    DRAINING = "draining"
    PUBLISHING = "publishing"
    COMMITTING = "committing"


class Publisher(Protocol):
    def publish(self, batch: Batch) -> PublishedBatch: ...


class Committer(Protocol):
    def commit(self, start_time: int, end_time: int, cid: str) -> Any: ...


@dataclass
class CycleResult:
    """Outcome of one batch cycle.

    Attributes:
        committed: True only if the batch was pinned and mined successfully.
        failed_stage: Stage that failed, or None.
        record_count: Number of trades drained this cycle.
        start_time: Window start (Unix seconds), if a batch was drained.
        end_time: Window end (Unix seconds), if a batch was drained.
        cid: CID of the pinned batch, if publishing succeeded.
        artifact_path: Local artifact written for the batch, if any.
        error: Exception that ended the cycle, if any.
    """

    committed: bool = False
    failed_stage: CycleState | None = None
    record_count: int = 0
    start_time: int | None = None
    end_time: int | None = None
    cid: str | None = None
    artifact_path: Path | None = None
    error: Exception | None = None

    @property
    def empty(self) -> bool:
        return self.record_count == 0 and self.failed_stage is None


class BatchScheduler:
    """Runs batch cycles on a fixed period in a background thread.

    Cycles are strictly sequential. The buffer is drained up front so its
    lock is never held across network calls. A failed cycle never stops the
    loop: by default its trades survive only in the local artifact; with
    requeue_on_failure they are put back in the buffer for the next cycle.
    """

    def __init__(
        self,
        trade_buffer: TradeBuffer,
        publisher: Publisher,
        committer: Committer,
        period_sec: float = 60.0,
        requeue_on_failure: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the scheduler.

        Args:
            trade_buffer: Buffer drained at every tick.
            publisher: Pins drained batches and returns their CID.
            committer: Records (start, end, cid) on the ledger.
            period_sec: Seconds between cycles.
            requeue_on_failure: Put a failed batch back into the buffer.
            clock: Wall-clock source in Unix seconds, injectable for tests.
        """
        self._trade_buffer = trade_buffer
        self._publisher = publisher
        self._committer = committer
        self._period_sec = period_sec
        self._requeue_on_failure = requeue_on_failure
        self._clock = clock

        self._window_start = int(clock())
        self.state = CycleState.IDLE

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def window_start(self) -> int:
        """Start of the window the next batch will be committed under."""
        return self._window_start

    def run_cycle(self) -> CycleResult:
        """Run one drain, publish, commit cycle.

        Returns:
            CycleResult describing how far the cycle got. Publish and commit
            failures are reported here and logged, never raised. State is
            back to IDLE on return, even if draining raised.
        """
        self.state = CycleState.DRAINING
        try:
            return self._run_stages()
        finally:
            self.state = CycleState.IDLE

    def _run_stages(self) -> CycleResult:
        batch = self._trade_buffer.drain_all()
        if batch is None:
            logger.info("No trades in this interval, skipping batch")
            return CycleResult()

        start_time = self._window_start
        # A stalled or stepped-back clock can put end_time up to a second
        # ahead of now; windows must stay non-empty.
        end_time = max(int(self._clock()), start_time + 1)
        result = CycleResult(
            record_count=len(batch),
            start_time=start_time,
            end_time=end_time,
        )

        try:
            self.state = CycleState.PUBLISHING
            try:
                published = self._publisher.publish(batch)
            except PublishError as e:
                result.artifact_path = e.artifact_path
                raise

            result.cid = published.cid
            result.artifact_path = published.artifact_path

            self.state = CycleState.COMMITTING
            self._committer.commit(start_time, end_time, published.cid)
        except Exception as e:
            result.failed_stage = self.state
            result.error = e
            self._handle_failure(batch, result)
            return result

        result.committed = True
        self._window_start = end_time
        logger.info(
            f"Committed {len(batch)} trades for window [{start_time}, {end_time}], "
            f"CID: {published.cid}"
        )
        return result

    def _handle_failure(self, batch: Batch, result: CycleResult) -> None:
        """Log a failed cycle and apply the recovery policy."""
        stage = result.failed_stage.value if result.failed_stage else "unknown"
        logger.error(f"Batch cycle failed while {stage}: {result.error}")

        if result.artifact_path is not None:
            logger.error(
                f"Trade data for window [{result.start_time}, {result.end_time}] "
                f"is still stored in: {result.artifact_path}"
            )

        if self._requeue_on_failure:
            self._trade_buffer.requeue(batch)
            logger.warning(f"Re-queued {len(batch)} trades for the next cycle")
        else:
            # Window moves on; the artifact is the only copy of these trades
            self._window_start = result.end_time

    def _run_loop(self) -> None:
        """Tick every period until stopped."""
        while not self._stop_event.wait(self._period_sec):
            try:
                self.run_cycle()
            except Exception as e:
                logger.error(f"Unexpected error in batch cycle: {e}")

    def start(self) -> None:
        """Start the batch loop in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        logger.info(f"Starting batch scheduler, period {self._period_sec:.0f}s")
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop, name="batch-scheduler", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Stop the loop and wait for any in-flight cycle to finish.

        If the join times out the thread is kept, so a later start() will not
        run a second loop next to the in-flight cycle.
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Batch scheduler still finishing a cycle after stop")
                return
            self._thread = None
