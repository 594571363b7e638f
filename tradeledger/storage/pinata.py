"""Content publisher pinning batch artifacts to IPFS through Pinata."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

import requests

from tradeledger.ingest.trade_buffer import Batch
from tradeledger.storage.artifact import ArtifactStore

logger = logging.getLogger(__name__)

PINATA_PIN_FILE_URL = "https://api.pinata.cloud/pinning/pinFileToIPFS"
CID_VERSION = 1


class PublishError(Exception):
    """Raised when a batch could not be pinned.

    Attributes:
        artifact_path: Local artifact holding the batch, if it was written.
    """

    def __init__(self, message: str, artifact_path: Path | None = None):
        super().__init__(message)
        self.artifact_path = artifact_path


@dataclass(frozen=True)
class PublishedBatch:
    """A batch together with the CID it was pinned under."""

    batch: Batch
    cid: str
    artifact_path: Path


class PinataPublisher:
    """Uploads batches to the Pinata pinning API.

    Every batch is written to a local artifact before any network call, so the
    data survives a failed upload or a crash mid-cycle. No retries happen here.
    """

    def __init__(
        self,
        artifact_store: ArtifactStore,
        api_key: str | None,
        api_secret: str | None,
        pin_url: str = PINATA_PIN_FILE_URL,
        session: requests.Session | None = None,
        timeout_sec: float = 60.0,
    ):
        """Initialize the publisher.

        Args:
            artifact_store: Where batches are written before upload.
            api_key: Pinata API key. Checked per upload, not here.
            api_secret: Pinata API secret. Checked per upload, not here.
            pin_url: pinFileToIPFS endpoint.
            session: HTTP session, injectable for tests.
            timeout_sec: Per-request timeout.
        """
        self._artifact_store = artifact_store
        self._api_key = api_key
        self._api_secret = api_secret
        self._pin_url = pin_url
        self._session = session or requests.Session()
        self._timeout_sec = timeout_sec

    def publish(self, batch: Batch) -> PublishedBatch:
        """Write the batch artifact, then pin it.

        Args:
            batch: Drained batch to publish.

        Returns:
            PublishedBatch carrying the CID.

        Raises:
            PublishError: If the artifact cannot be written, credentials are
                missing, the upload fails, or no CID comes back.
        """
        try:
            artifact_path = self._artifact_store.write(batch)
        except OSError as e:
            raise PublishError(f"failed to write batch artifact: {e}") from e

        logger.info(f"Wrote {len(batch)} trades to {artifact_path}")

        cid = self.pin_file(artifact_path)
        return PublishedBatch(batch=batch, cid=cid, artifact_path=artifact_path)

    def pin_file(self, path: Path) -> str:
        """Upload an existing artifact file and return its CID.

        Raises:
            PublishError: On missing credentials, transport failure, or a
                response without an IpfsHash.
        """
        if not self._api_key or not self._api_secret:
            raise PublishError("missing Pinata API credentials", artifact_path=path)

        try:
            content = path.read_bytes()
        except OSError as e:
            raise PublishError(f"failed to read artifact: {e}", artifact_path=path) from e

        name = path.name
        try:
            response = self._session.post(
                self._pin_url,
                files={"file": (name, content, "application/json")},
                data={
                    "pinataMetadata": json.dumps({"name": name}),
                    "pinataOptions": json.dumps({"cidVersion": CID_VERSION}),
                },
                headers={
                    "pinata_api_key": self._api_key,
                    "pinata_secret_api_key": self._api_secret,
                },
                timeout=self._timeout_sec,
            )
        except requests.RequestException as e:
            raise PublishError(f"upload to Pinata failed: {e}", artifact_path=path) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise PublishError(
                f"Pinata returned non-JSON response (HTTP {response.status_code})",
                artifact_path=path,
            ) from e

        cid = payload.get("IpfsHash") if isinstance(payload, dict) else None
        if not isinstance(cid, str) or not cid:
            raise PublishError(
                f"failed to get CID from Pinata response (HTTP {response.status_code})",
                artifact_path=path,
            )

        logger.info(f"Pinned {name} to IPFS, CID: {cid}")
        return cid
