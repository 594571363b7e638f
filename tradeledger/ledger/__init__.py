"""Ledger package: contract interface and batch committer."""

from tradeledger.ledger.abi import COMMIT_EVENT, COMMIT_FUNCTION, TRADE_STORAGE_ABI
from tradeledger.ledger.committer import (
    BroadcastError,
    LedgerCommitter,
    LedgerError,
    MinedTimeoutError,
    TransactionRevertedError,
    is_underpriced_error,
)

__all__ = [
    "COMMIT_EVENT",
    "COMMIT_FUNCTION",
    "TRADE_STORAGE_ABI",
    "BroadcastError",
    "LedgerCommitter",
    "LedgerError",
    "MinedTimeoutError",
    "TransactionRevertedError",
    "is_underpriced_error",
]
