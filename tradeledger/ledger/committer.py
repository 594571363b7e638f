"""Ledger committer recording batch CIDs through a contract call."""

import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import TimeExhausted

from tradeledger.ledger.abi import COMMIT_FUNCTION, TRADE_STORAGE_ABI

logger = logging.getLogger(__name__)

GAS_LIMIT = 300_000
GAS_PRICE_BUMP_NUMERATOR = 11
GAS_PRICE_BUMP_DENOMINATOR = 10
MAX_BROADCAST_ATTEMPTS = 2
UNDERPRICED_BACKOFF_SEC = 10.0
MINED_TIMEOUT_SEC = 120.0

UNDERPRICED_MARKERS = (
    "transaction underpriced",
    "replacement transaction underpriced",
)


class LedgerError(Exception):
    """Raised when a batch could not be committed on-chain."""


class BroadcastError(LedgerError):
    """The node rejected the signed transaction."""


class TransactionRevertedError(LedgerError):
    """The transaction was mined but its execution failed."""


class MinedTimeoutError(LedgerError):
    """The transaction was not mined within the wait timeout.

    Nothing can be inferred about its eventual chain state.
    """


def is_underpriced_error(error: Exception) -> bool:
    """Return True if a broadcast error means the fee was too low."""
    message = str(error)
    return any(marker in message for marker in UNDERPRICED_MARKERS)


class LedgerCommitter:
    """Signs and submits intentBatchEmit(startTime, endTime, cid) transactions.

    Each commit fetches a fresh nonce and gas price, bumps the price by 10%,
    and broadcasts. An underpriced rejection is retried once after a fixed
    backoff; every other failure is raised to the caller.
    """

    def __init__(
        self,
        web3: Web3,
        account: LocalAccount,
        contract_address: str,
        gas_limit: int = GAS_LIMIT,
        underpriced_backoff_sec: float = UNDERPRICED_BACKOFF_SEC,
        mined_timeout_sec: float = MINED_TIMEOUT_SEC,
        status_check: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the committer.

        Args:
            web3: Connected Web3 instance.
            account: Local signing account.
            contract_address: Address of the batch registry contract.
            gas_limit: Gas limit for every commit transaction.
            underpriced_backoff_sec: Wait before retrying an underpriced broadcast.
            mined_timeout_sec: Bound on the synchronous mined wait.
            status_check: Spawn the diagnostic receipt check after broadcast.
            sleep: Sleep function, injectable for tests.
        """
        self._web3 = web3
        self._account = account
        self._contract = web3.eth.contract(
            address=Web3.to_checksum_address(contract_address),
            abi=TRADE_STORAGE_ABI,
        )
        self._gas_limit = gas_limit
        self._underpriced_backoff_sec = underpriced_backoff_sec
        self._mined_timeout_sec = mined_timeout_sec
        self._status_check = status_check
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        rpc_url: str | None,
        private_key: str | None,
        contract_address: str | None,
        **kwargs: Any,
    ) -> "LedgerCommitter":
        """Build a committer from raw connection settings.

        Raises:
            LedgerError: If a setting is missing or invalid.
        """
        if not rpc_url:
            raise LedgerError("RPC_URL is required to commit batches")
        if not private_key:
            raise LedgerError("SIGNER_PRIVATE_KEY is required to commit batches")
        if not contract_address:
            raise LedgerError("CONTRACT_ADDRESS is required to commit batches")

        try:
            account = Account.from_key(private_key)
        except Exception as e:
            raise LedgerError(f"invalid private key: {e}") from e

        web3 = Web3(Web3.HTTPProvider(rpc_url))
        try:
            return cls(web3, account, contract_address, **kwargs)
        except ValueError as e:
            raise LedgerError(f"invalid contract address: {e}") from e

    def commit(self, start_time: int, end_time: int, cid: str) -> Any:
        """Record a batch window and its CID on-chain.

        Args:
            start_time: Window start, Unix seconds.
            end_time: Window end, Unix seconds. Must be after start_time.
            cid: Content identifier of the pinned batch.

        Returns:
            The transaction receipt of the successful commit.

        Raises:
            ValueError: If the window or CID is invalid.
            BroadcastError: If broadcast fails for any reason other than an
                underpriced fee, or is still underpriced after the retry.
            MinedTimeoutError: If the transaction is not mined in time.
            TransactionRevertedError: If the mined transaction failed.
            LedgerError: If the nonce, gas price, or signing step fails.
        """
        if start_time >= end_time:
            raise ValueError(f"start_time {start_time} must be before end_time {end_time}")
        if not cid:
            raise ValueError("cid must not be empty")

        call = getattr(self._contract.functions, COMMIT_FUNCTION)(start_time, end_time, cid)

        for attempt in range(1, MAX_BROADCAST_ATTEMPTS + 1):
            signed = self._sign(call)

            try:
                tx_hash = self._web3.eth.send_raw_transaction(signed.raw_transaction)
            except Exception as e:
                if attempt < MAX_BROADCAST_ATTEMPTS and is_underpriced_error(e):
                    logger.warning(
                        f"Transaction underpriced, retrying in "
                        f"{self._underpriced_backoff_sec:.0f}s..."
                    )
                    self._sleep(self._underpriced_backoff_sec)
                    continue
                raise BroadcastError(f"failed to send transaction: {e}") from e

            logger.info(f"Batch commit broadcast, tx hash: {Web3.to_hex(tx_hash)}")
            if self._status_check:
                self._start_status_check(tx_hash)

            return self._wait_mined(tx_hash)

        raise BroadcastError("failed after maximum retries")

    def _sign(self, call: Any) -> Any:
        """Fetch nonce and gas price, build and sign the transaction."""
        sender = self._account.address

        try:
            nonce = self._web3.eth.get_transaction_count(sender, "pending")
        except Exception as e:
            raise LedgerError(f"failed to get nonce: {e}") from e

        try:
            gas_price = self._web3.eth.gas_price
        except Exception as e:
            raise LedgerError(f"failed to fetch suggested gas price: {e}") from e

        # Bias for prompt inclusion
        gas_price = gas_price * GAS_PRICE_BUMP_NUMERATOR // GAS_PRICE_BUMP_DENOMINATOR

        try:
            tx = call.build_transaction(
                {
                    "from": sender,
                    "nonce": nonce,
                    "gas": self._gas_limit,
                    "gasPrice": gas_price,
                    "value": 0,
                }
            )
            return self._account.sign_transaction(tx)
        except Exception as e:
            raise LedgerError(f"failed to sign transaction: {e}") from e

    def _wait_mined(self, tx_hash: Any) -> Any:
        """Block until the transaction is mined or the timeout expires."""
        try:
            receipt = self._web3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self._mined_timeout_sec
            )
        except TimeExhausted as e:
            raise MinedTimeoutError(
                f"transaction {Web3.to_hex(tx_hash)} not mined within "
                f"{self._mined_timeout_sec:.0f}s"
            ) from e
        except Exception as e:
            raise LedgerError(f"failed to wait for transaction to be mined: {e}") from e

        if receipt["status"] != 1:
            raise TransactionRevertedError(
                f"transaction {Web3.to_hex(tx_hash)} failed in block {receipt['blockNumber']}"
            )

        logger.info(f"Batch commit mined in block {receipt['blockNumber']}")
        return receipt

    def _start_status_check(self, tx_hash: Any) -> None:
        """Fire-and-forget receipt lookup. Only ever logs."""
        thread = threading.Thread(
            target=self._check_status,
            args=(tx_hash,),
            name="tx-status-check",
            daemon=True,
        )
        thread.start()

    def _check_status(self, tx_hash: Any) -> None:
        try:
            receipt = self._web3.eth.get_transaction_receipt(tx_hash)
        except Exception as e:
            logger.info(f"Transaction not found or not yet mined: {e}")
            return

        if receipt["status"] == 1:
            logger.info(f"Status check: transaction mined in block {receipt['blockNumber']}")
        else:
            logger.warning("Status check: transaction failed")
