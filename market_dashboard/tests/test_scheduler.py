"""Tests for the watchlist refresh scheduler.

Covers:
- interval selection for real vs simulated data
- one job per subscription; re-subscribe replaces the job
- cancel removes the job and is idempotent
- a refresh cycle delivers to sync and async callbacks
- no delivery after cancel, including a cycle already in flight
- callback errors are logged, not raised
- end-to-end timer firing on a running AsyncIOScheduler
- shutdown is applied once even when called repeatedly
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from unittest.mock import patch

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from market_dashboard.jobs.scheduler import QuoteRefreshScheduler
from market_dashboard.services.market_data import MarketDataService
from market_dashboard.services.mock_data import MockDataGenerator

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class StubService:
    """Minimal stand-in for MarketDataService used by the scheduler."""

    def __init__(self, has_credentials: bool = False) -> None:
        self.has_credentials = has_credentials
        self.requests: list[list[str]] = []
        self.gate: asyncio.Event | None = None

    async def fetch_quotes(self, symbols):
        symbols = list(symbols)
        self.requests.append(symbols)
        if self.gate is not None:
            await self.gate.wait()
        return [f"quote:{s}" for s in symbols]


def _refresher(service=None, **kwargs) -> tuple[QuoteRefreshScheduler, AsyncIOScheduler]:
    aps = AsyncIOScheduler(timezone="UTC")
    refresher = QuoteRefreshScheduler(
        service or StubService(), scheduler=aps,
        real_interval=kwargs.pop("real_interval", 3600),
        mock_interval=kwargs.pop("mock_interval", 7200),
    )
    return refresher, aps


# ---------------------------------------------------------------------------
# Interval and subscriptions
# ---------------------------------------------------------------------------


class TestSubscriptions:
    def test_interval_real(self):
        refresher, _ = _refresher(StubService(has_credentials=True))
        assert refresher.interval == 3600

    def test_interval_mock(self):
        refresher, _ = _refresher(StubService(has_credentials=False))
        assert refresher.interval == 7200

    def test_job_registered_with_interval(self):
        refresher, aps = _refresher(StubService(has_credentials=True))
        handle = refresher.start_watching(["aapl", "msft"], lambda q: None, subscription_id="w")
        job = aps.get_job("w")
        assert job is not None
        assert job.trigger.interval == timedelta(seconds=3600)
        assert job.max_instances == 1
        assert handle.symbols == ["AAPL", "MSFT"]
        assert refresher.active_subscriptions == ["w"]

    def test_generated_subscription_id(self):
        refresher, aps = _refresher()
        handle = refresher.start_watching(["AAPL"], lambda q: None)
        assert handle.id.startswith("watch-")
        assert aps.get_job(handle.id) is not None

    def test_resubscribe_replaces_previous(self):
        refresher, aps = _refresher()
        first = refresher.start_watching(["AAPL"], lambda q: None, subscription_id="w")
        second = refresher.start_watching(["TSLA", "NVDA"], lambda q: None, subscription_id="w")
        assert first.cancelled is True
        assert second.cancelled is False
        assert len(aps.get_jobs()) == 1
        assert aps.get_job("w").kwargs["handle"] is second

    def test_independent_subscriptions(self):
        refresher, aps = _refresher()
        refresher.start_watching(["AAPL"], lambda q: None, subscription_id="a")
        refresher.start_watching(["MSFT"], lambda q: None, subscription_id="b")
        assert sorted(refresher.active_subscriptions) == ["a", "b"]
        assert len(aps.get_jobs()) == 2

    def test_cancel_removes_job(self):
        refresher, aps = _refresher()
        handle = refresher.start_watching(["AAPL"], lambda q: None, subscription_id="w")
        handle.cancel()
        assert handle.cancelled is True
        assert aps.get_job("w") is None
        assert refresher.active_subscriptions == []

    def test_cancel_is_idempotent(self):
        refresher, _ = _refresher()
        handle = refresher.start_watching(["AAPL"], lambda q: None)
        handle.cancel()
        handle.cancel()
        assert handle.cancelled is True

    def test_cancelling_stale_handle_keeps_replacement(self):
        refresher, aps = _refresher()
        first = refresher.start_watching(["AAPL"], lambda q: None, subscription_id="w")
        refresher.start_watching(["TSLA"], lambda q: None, subscription_id="w")
        first.cancel()
        assert aps.get_job("w") is not None

    def test_empty_symbols_rejected(self):
        refresher, _ = _refresher()
        with pytest.raises(ValueError):
            refresher.start_watching([], lambda q: None)


# ---------------------------------------------------------------------------
# Refresh cycles
# ---------------------------------------------------------------------------


class TestRefreshCycle:
    @pytest.mark.asyncio
    async def test_refresh_once_orders_batch(self):
        service = MarketDataService(None, MockDataGenerator(seed=1))
        refresher, _ = _refresher(service)
        quotes = await refresher.refresh_once(["TSLA", "AAPL"])
        assert [q.symbol for q in quotes] == ["TSLA", "AAPL"]

    @pytest.mark.asyncio
    async def test_cycle_delivers_to_sync_callback(self):
        received = []
        refresher, _ = _refresher()
        handle = refresher.start_watching(["AAPL"], received.append)
        await refresher._run_cycle(handle)
        assert received == [["quote:AAPL"]]

    @pytest.mark.asyncio
    async def test_cycle_awaits_async_callback(self):
        received = []

        async def on_update(quotes):
            await asyncio.sleep(0)
            received.append(quotes)

        refresher, _ = _refresher()
        handle = refresher.start_watching(["MSFT"], on_update)
        await refresher._run_cycle(handle)
        assert received == [["quote:MSFT"]]

    @pytest.mark.asyncio
    async def test_cancelled_handle_skips_cycle(self):
        service = StubService()
        received = []
        refresher, _ = _refresher(service)
        handle = refresher.start_watching(["AAPL"], received.append)
        handle.cancel()
        await refresher._run_cycle(handle)
        assert received == []
        assert service.requests == []

    @pytest.mark.asyncio
    async def test_cancel_during_in_flight_cycle_suppresses_delivery(self):
        service = StubService()
        service.gate = asyncio.Event()
        received = []
        refresher, _ = _refresher(service)
        handle = refresher.start_watching(["AAPL"], received.append)

        task = asyncio.ensure_future(refresher._run_cycle(handle))
        await asyncio.sleep(0)
        assert service.requests == [["AAPL"]]
        handle.cancel()
        service.gate.set()
        await task
        assert received == []

    @pytest.mark.asyncio
    async def test_callback_error_logged(self, caplog):
        def boom(quotes):
            raise RuntimeError("render failed")

        refresher, _ = _refresher()
        handle = refresher.start_watching(["AAPL"], boom, subscription_id="w")
        with caplog.at_level(logging.ERROR, logger="market_dashboard.jobs.scheduler"):
            await refresher._run_cycle(handle)
        assert "Refresh cycle for w failed" in caplog.text
        assert handle.cancelled is False


# ---------------------------------------------------------------------------
# Live scheduler
# ---------------------------------------------------------------------------


class TestLiveScheduler:
    @pytest.mark.asyncio
    async def test_timer_fires_then_stops_after_cancel(self):
        service = StubService()
        received = []
        refresher, _ = _refresher(service, mock_interval=0.1)
        refresher.start()
        try:
            handle = refresher.start_watching(["AAPL"], received.append)
            for _ in range(60):
                if received:
                    break
                await asyncio.sleep(0.05)
            assert received, "refresh cycle never fired"

            handle.cancel()
            count = len(received)
            await asyncio.sleep(0.4)
            assert len(received) == count
        finally:
            refresher.shutdown()
        await asyncio.sleep(0)
        assert refresher.running is False

    @pytest.mark.asyncio
    async def test_shutdown_cancels_all_handles(self):
        refresher, _ = _refresher()
        refresher.start()
        a = refresher.start_watching(["AAPL"], lambda q: None)
        b = refresher.start_watching(["MSFT"], lambda q: None)
        refresher.shutdown()
        assert a.cancelled and b.cancelled
        assert refresher.active_subscriptions == []

    @pytest.mark.asyncio
    async def test_repeated_shutdown_stops_scheduler_once(self):
        refresher, aps = _refresher()
        refresher.start()
        with patch.object(aps, "shutdown", wraps=aps.shutdown) as spy:
            refresher.shutdown()
            refresher.shutdown()
            await asyncio.sleep(0)
        assert spy.call_count == 1
        assert refresher.running is False
