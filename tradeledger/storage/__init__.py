"""Storage package: local batch artifacts and IPFS publishing."""

from tradeledger.storage.artifact import (
    ArtifactStore,
    artifact_name,
    load_artifact,
    serialize_records,
)
from tradeledger.storage.pinata import (
    PINATA_PIN_FILE_URL,
    PinataPublisher,
    PublishedBatch,
    PublishError,
)

__all__ = [
    "ArtifactStore",
    "artifact_name",
    "load_artifact",
    "serialize_records",
    "PINATA_PIN_FILE_URL",
    "PinataPublisher",
    "PublishedBatch",
    "PublishError",
]
