#!/usr/bin/env python3
"""Resubmit a batch artifact left behind by a failed cycle.

Pins the artifact to IPFS and commits its CID for the given window. Use the
window printed in the service's "still stored in" error log.

Usage:
    python scripts/resubmit_artifact.py trades_2024-01-01_12-00-00.json \
        --start 1704110340 --end 1704110400 [--dry-run]

Environment variables:
    PINATA_API_KEY, PINATA_API_SECRET: Pinata credentials
    RPC_URL: Ethereum JSON-RPC endpoint
    SIGNER_PRIVATE_KEY: Hex private key of the committing account
    CONTRACT_ADDRESS: Batch registry contract address
"""

import argparse
import logging
import sys
from pathlib import Path

from tradeledger.config import LedgerConfig
from tradeledger.ledger import LedgerCommitter
from tradeledger.recovery import resubmit_artifact
from tradeledger.storage import ArtifactStore, PinataPublisher

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Pin a retained batch artifact and commit its CID."
    )
    parser.add_argument("path", type=Path, help="Artifact file to resubmit")
    parser.add_argument(
        "--start", type=int, required=True, help="Window start, Unix seconds"
    )
    parser.add_argument("--end", type=int, required=True, help="Window end, Unix seconds")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only validate the artifact, don't upload or commit",
    )
    args = parser.parse_args()

    if args.dry_run:
        logger.info("DRY RUN MODE - nothing will be uploaded or committed")

    try:
        config = LedgerConfig.from_env()
        publisher = PinataPublisher(
            artifact_store=ArtifactStore(args.path.parent),
            api_key=config.pinata_api_key,
            api_secret=config.pinata_api_secret,
            pin_url=config.pinata_pin_url,
        )
        committer = None
        if not args.dry_run:
            committer = LedgerCommitter.from_settings(
                rpc_url=config.rpc_url,
                private_key=config.signer_private_key,
                contract_address=config.contract_address,
            )
        resubmit_artifact(
            args.path, args.start, args.end, publisher, committer, dry_run=args.dry_run
        )
    except Exception as e:
        logger.error(f"Failed to resubmit {args.path}: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
