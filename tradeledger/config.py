"""Process configuration loaded from environment variables."""

import os
from dataclasses import dataclass

from tradeledger.storage.pinata import PINATA_PIN_FILE_URL

DEFAULT_PORT = 8080
DEFAULT_BATCH_PERIOD_SEC = 60.0
# Artifact names have one-second resolution
MIN_BATCH_PERIOD_SEC = 1.0
DEFAULT_ALLOWED_ORIGIN = "http://localhost:5173"


@dataclass(frozen=True)
class LedgerConfig:
    """Settings for the ingestion server and batch pipeline.

    Store and ledger settings may be absent; that only fails the cycles
    that need them, never startup.
    """

    port: int = DEFAULT_PORT
    batch_period_sec: float = DEFAULT_BATCH_PERIOD_SEC
    allowed_origin: str = DEFAULT_ALLOWED_ORIGIN
    artifact_dir: str = "."
    pinata_api_key: str | None = None
    pinata_api_secret: str | None = None
    pinata_pin_url: str = PINATA_PIN_FILE_URL
    rpc_url: str | None = None
    signer_private_key: str | None = None
    contract_address: str | None = None
    requeue_on_failure: bool = False

    @classmethod
    def from_env(cls) -> "LedgerConfig":
        """Load configuration from environment variables.

        Environment variables:
            PORT: HTTP listen port (default 8080).
            BATCH_PERIOD_SEC: Seconds between batch cycles (default 60).
            ALLOWED_ORIGIN: Browser origin allowed by CORS.
            ARTIFACT_DIR: Directory for local batch artifacts (default ".").
            PINATA_API_KEY, PINATA_API_SECRET: Pinata credentials.
            PINATA_PIN_URL: Override for the pinFileToIPFS endpoint.
            RPC_URL: Ethereum JSON-RPC endpoint.
            SIGNER_PRIVATE_KEY: Hex private key of the committing account.
            CONTRACT_ADDRESS: Batch registry contract address.
            REQUEUE_ON_FAILURE: "true" to re-buffer batches whose cycle failed.

        Raises:
            ValueError: If PORT is not a positive number or BATCH_PERIOD_SEC is
                below one second.
        """
        port = _parse_at_least("PORT", int, DEFAULT_PORT, 1)
        batch_period_sec = _parse_at_least(
            "BATCH_PERIOD_SEC", float, DEFAULT_BATCH_PERIOD_SEC, MIN_BATCH_PERIOD_SEC
        )

        return cls(
            port=port,
            batch_period_sec=batch_period_sec,
            allowed_origin=os.environ.get("ALLOWED_ORIGIN", DEFAULT_ALLOWED_ORIGIN),
            artifact_dir=os.environ.get("ARTIFACT_DIR", "."),
            pinata_api_key=os.environ.get("PINATA_API_KEY") or None,
            pinata_api_secret=os.environ.get("PINATA_API_SECRET") or None,
            pinata_pin_url=os.environ.get("PINATA_PIN_URL", PINATA_PIN_FILE_URL),
            rpc_url=os.environ.get("RPC_URL") or None,
            signer_private_key=os.environ.get("SIGNER_PRIVATE_KEY") or None,
            contract_address=os.environ.get("CONTRACT_ADDRESS") or None,
            requeue_on_failure=os.environ.get("REQUEUE_ON_FAILURE", "").lower() == "true",
        )


def _parse_at_least(name, parse, default, minimum):
    raw = os.environ.get(name)
    if not raw:
        return default

    try:
        value = parse(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e

    if value < minimum:
        raise ValueError(f"{name} must be at least {minimum}, got {raw!r}")
    return value
