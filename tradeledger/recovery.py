"""Manual resubmission of batches retained as local artifacts."""

import logging
from pathlib import Path

from tradeledger.batch_scheduler import Committer
from tradeledger.storage.artifact import load_artifact
from tradeledger.storage.pinata import PinataPublisher

logger = logging.getLogger(__name__)


def resubmit_artifact(
    path: str | Path,
    start_time: int,
    end_time: int,
    publisher: PinataPublisher,
    committer: Committer,
    dry_run: bool = False,
) -> str | None:
    """Pin a retained artifact and commit its CID for the given window.

    Args:
        path: Artifact file left behind by a failed cycle.
        start_time: Window start to commit, Unix seconds.
        end_time: Window end to commit, Unix seconds.
        publisher: Publisher used to pin the file.
        committer: Ledger committer.
        dry_run: Only validate the artifact, make no network calls.

    Returns:
        The committed CID, or None on a dry run.

    Raises:
        ValueError: If the artifact is unreadable or the window is invalid.
        PublishError: If pinning fails.
        LedgerError: If the commit fails.
    """
    path = Path(path)
    if start_time >= end_time:
        raise ValueError(f"start time {start_time} must be before end time {end_time}")

    records = load_artifact(path)
    logger.info(f"{path.name}: {len(records)} trades for window [{start_time}, {end_time}]")

    if dry_run:
        return None

    cid = publisher.pin_file(path)
    committer.commit(start_time, end_time, cid)
    logger.info(f"{path.name}: committed with CID {cid}")
    return cid
