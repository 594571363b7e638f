"""Tests for TradeLedgerRunner wiring."""

from unittest.mock import MagicMock, patch

import pytest

from tradeledger.config import LedgerConfig
from tradeledger.ledger.committer import LedgerError
from tradeledger.run_server import LazyCommitter, TradeLedgerRunner


class TestTradeLedgerRunner:
    """Tests for TradeLedgerRunner."""

    def test_ingested_trade_reaches_scheduler_buffer(self, tmp_path):
        """Trades posted to the app are drained by the scheduler."""
        # GIVEN a runner
        runner = TradeLedgerRunner(LedgerConfig(artifact_dir=str(tmp_path)))
        client = runner.app.test_client()

        # WHEN we post a trade
        client.post("/store-trade", json={"id": 1})

        # THEN the scheduler's buffer holds it
        batch = runner.scheduler._trade_buffer.drain_all()
        assert batch.records == ({"id": 1},)

    def test_cycle_without_credentials_fails_without_raising(self, tmp_path):
        """Missing store credentials only fail the cycle."""
        # GIVEN a runner with no secrets configured
        runner = TradeLedgerRunner(LedgerConfig(artifact_dir=str(tmp_path)))
        runner.trade_buffer.append({"id": 1})

        # WHEN a cycle runs
        result = runner.scheduler.run_cycle()

        # THEN the cycle failed at publishing and the artifact was kept
        assert not result.committed
        assert "credentials" in str(result.error)
        assert result.artifact_path.exists()


class TestLazyCommitter:
    """Tests for LazyCommitter."""

    def test_missing_ledger_settings_fail_on_commit(self):
        """Ledger settings are only checked when a commit is attempted."""
        # GIVEN a config without ledger settings
        committer = LazyCommitter(LedgerConfig())

        # WHEN we commit
        # THEN LedgerError is raised at that point
        with pytest.raises(LedgerError, match="RPC_URL"):
            committer.commit(100, 160, "Qm123")

    def test_builds_committer_once(self):
        """The underlying committer is built on first use and reused."""
        # GIVEN a lazy committer
        config = LedgerConfig(
            rpc_url="http://localhost:8545",
            signer_private_key="0x" + "11" * 32,
            contract_address="0x" + "ab" * 20,
        )
        committer = LazyCommitter(config)

        # WHEN we commit twice
        with patch("tradeledger.run_server.LedgerCommitter") as committer_cls:
            inner = MagicMock()
            committer_cls.from_settings.return_value = inner
            committer.commit(100, 160, "Qm1")
            committer.commit(160, 220, "Qm2")

        # THEN it was built once with the configured settings
        committer_cls.from_settings.assert_called_once_with(
            rpc_url="http://localhost:8545",
            private_key="0x" + "11" * 32,
            contract_address="0x" + "ab" * 20,
        )
        assert inner.commit.call_count == 2
