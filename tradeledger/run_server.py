"""Main entry point for the trade ledger service."""

import logging
import signal
import sys
from typing import Any

from tradeledger.batch_scheduler import BatchScheduler
from tradeledger.config import LedgerConfig
from tradeledger.ingest import TradeBuffer, create_app
from tradeledger.ledger import LedgerCommitter
from tradeledger.storage import ArtifactStore, PinataPublisher

logger = logging.getLogger(__name__)


class LazyCommitter:
    """Builds the ledger committer on first use.

    Missing or invalid ledger settings then fail the cycle that needs them
    instead of process startup.
    """

    def __init__(self, config: LedgerConfig):
        self._config = config
        self._committer: LedgerCommitter | None = None

    def commit(self, start_time: int, end_time: int, cid: str) -> Any:
        if self._committer is None:
            self._committer = LedgerCommitter.from_settings(
                rpc_url=self._config.rpc_url,
                private_key=self._config.signer_private_key,
                contract_address=self._config.contract_address,
            )
        return self._committer.commit(start_time, end_time, cid)


class TradeLedgerRunner:
    """Wires the ingestion app to the batch pipeline."""

    def __init__(self, config: LedgerConfig):
        """Initialize the runner.

        Args:
            config: Process configuration.
        """
        self.config = config
        self.trade_buffer = TradeBuffer()
        self.publisher = PinataPublisher(
            artifact_store=ArtifactStore(config.artifact_dir),
            api_key=config.pinata_api_key,
            api_secret=config.pinata_api_secret,
            pin_url=config.pinata_pin_url,
        )
        self.scheduler = BatchScheduler(
            trade_buffer=self.trade_buffer,
            publisher=self.publisher,
            committer=LazyCommitter(config),
            period_sec=config.batch_period_sec,
            requeue_on_failure=config.requeue_on_failure,
        )
        self.app = create_app(self.trade_buffer, config.allowed_origin)

    def start_background(self) -> None:
        """Start the batch scheduler thread."""
        self.scheduler.start()

    def stop(self) -> None:
        """Stop the batch scheduler."""
        logger.info("Shutting down...")
        pending = len(self.trade_buffer)
        if pending:
            logger.warning(f"{pending} buffered trades were not batched")
        self.scheduler.stop()

    def serve(self) -> None:
        """Run the HTTP server in the foreground."""
        # Suppress Werkzeug request logs
        logging.getLogger("werkzeug").setLevel(logging.WARNING)

        logger.info(f"Backend running on port {self.config.port}")
        self.app.run(
            host="0.0.0.0",
            port=self.config.port,
            debug=False,
            use_reloader=False,
            threaded=True,
        )


def main() -> int:
    """Load configuration, start the scheduler, and serve requests."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = LedgerConfig.from_env()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    runner = TradeLedgerRunner(config)

    def handle_shutdown(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        runner.stop()
        sys.exit(0)

    signal.signal(signal.SIGTERM, handle_shutdown)
    signal.signal(signal.SIGINT, handle_shutdown)

    runner.start_background()
    runner.serve()
    return 0


if __name__ == "__main__":
    sys.exit(main())
