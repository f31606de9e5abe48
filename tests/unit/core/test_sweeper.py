"""Tests for the periodic expired-token sweep."""

import asyncio
from unittest.mock import Mock

import pytest

from src.app.core.errors import StorageUnavailable
from src.app.core.services import ExpiredTokenSweeper, TokenLedger


@pytest.fixture
def mock_ledger() -> Mock:
    ledger = Mock(spec=TokenLedger)
    ledger.purge_expired.return_value = 0
    return ledger


class TestExpiredTokenSweeper:
    """Background sweep task."""

    @pytest.mark.asyncio
    async def test_sweeps_on_interval(self, mock_ledger):
        sweeper = ExpiredTokenSweeper(mock_ledger, interval_seconds=0.01)

        sweeper.start()
        await asyncio.sleep(0.1)
        await sweeper.stop()

        assert mock_ledger.purge_expired.await_count >= 2
        assert not sweeper.running

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_loop(self, mock_ledger):
        mock_ledger.purge_expired.side_effect = StorageUnavailable("down")
        sweeper = ExpiredTokenSweeper(mock_ledger, interval_seconds=0.01)

        sweeper.start()
        await asyncio.sleep(0.1)

        assert sweeper.running
        await sweeper.stop()
        assert mock_ledger.purge_expired.await_count >= 2

    @pytest.mark.asyncio
    async def test_zero_interval_disables(self, mock_ledger):
        sweeper = ExpiredTokenSweeper(mock_ledger, interval_seconds=0)

        sweeper.start()

        assert not sweeper.running
        await sweeper.stop()
        mock_ledger.purge_expired.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sweep_removes_expired_rows(self, ready_ledger, google_identity, clock):
        await ready_ledger.create_token(google_identity, remember_days=1)
        clock.advance(days=2)
        sweeper = ExpiredTokenSweeper(ready_ledger, interval_seconds=0.01)

        sweeper.start()
        await asyncio.sleep(0.2)
        await sweeper.stop()

        assert (
            await ready_ledger.list_tokens(
                google_identity.external_id, google_identity.provider
            )
            == []
        )

    @pytest.mark.asyncio
    async def test_unexpected_error_is_logged_and_loop_continues(self, mock_ledger):
        mock_ledger.purge_expired.side_effect = RuntimeError("unexpected")
        sweeper = ExpiredTokenSweeper(mock_ledger, interval_seconds=0.01)

        sweeper.start()
        await asyncio.sleep(0.1)

        assert sweeper.running
        await sweeper.stop()
        assert mock_ledger.purge_expired.await_count >= 2
        assert not sweeper.running

    @pytest.mark.asyncio
    async def test_stop_twice_is_harmless(self, mock_ledger):
        sweeper = ExpiredTokenSweeper(mock_ledger, interval_seconds=0.01)

        sweeper.start()
        await sweeper.stop()
        await sweeper.stop()

        assert not sweeper.running
