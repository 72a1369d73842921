"""Periodic watchlist refresh on top of APScheduler.

Each subscription owns exactly one interval job.  The interval is longer
with real credentials (to conserve the provider's daily quota) and longer
still in mock mode so simulated numbers are not mistaken for a live feed.
"""

from __future__ import annotations

import inspect
import logging
import uuid
from typing import Any, Awaitable, Callable, Iterable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from market_dashboard.config import (
    REFRESH_INTERVAL_MOCK_SECONDS,
    REFRESH_INTERVAL_REAL_SECONDS,
)
from market_dashboard.models import StockQuote, normalize_symbol
from market_dashboard.services.market_data import MarketDataService

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[list[StockQuote]], Awaitable[Any] | Any]


class WatchHandle:
    """Cancellation handle for one watchlist subscription."""

    def __init__(
        self,
        subscription_id: str,
        symbols: list[str],
        on_update: UpdateCallback,
        owner: "QuoteRefreshScheduler",
    ) -> None:
        self.id = subscription_id
        self.symbols = symbols
        self.on_update = on_update
        self._owner = owner
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop the subscription; no callback fires after this returns."""
        if self._cancelled:
            return
        self._cancelled = True
        self._owner._remove(self)

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"<WatchHandle {self.id} {self.symbols} {state}>"


class QuoteRefreshScheduler:
    """Owns the scheduler and the set of active watchlist subscriptions."""

    def __init__(
        self,
        service: MarketDataService,
        scheduler: AsyncIOScheduler | None = None,
        real_interval: float = REFRESH_INTERVAL_REAL_SECONDS,
        mock_interval: float = REFRESH_INTERVAL_MOCK_SECONDS,
    ) -> None:
        self.service = service
        self._scheduler = scheduler or AsyncIOScheduler(timezone="UTC")
        self.real_interval = real_interval
        self.mock_interval = mock_interval
        self._handles: dict[str, WatchHandle] = {}
        self._stopped = False

    @property
    def interval(self) -> float:
        """Seconds between refresh cycles for the current data mode."""
        return self.real_interval if self.service.has_credentials else self.mock_interval

    @property
    def active_subscriptions(self) -> list[str]:
        return list(self._handles)

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self) -> None:
        """Start the underlying scheduler (must be called inside the event loop)."""
        if not self._scheduler.running:
            self._scheduler.start()
            self._stopped = False
            logger.info("Refresh scheduler started (interval %.0fs)", self.interval)

    def shutdown(self) -> None:
        """Cancel every subscription and stop the scheduler."""
        for handle in list(self._handles.values()):
            handle.cancel()
        # shutdown is applied on the next loop turn, so `running` lags behind
        if self._scheduler.running and not self._stopped:
            self._stopped = True
            self._scheduler.shutdown(wait=False)
            logger.info("Refresh scheduler stopped")

    # -- Subscriptions -------------------------------------------------------

    def start_watching(
        self,
        symbols: Iterable[str],
        on_update: UpdateCallback,
        subscription_id: str | None = None,
    ) -> WatchHandle:
        """Refresh *symbols* every :attr:`interval` seconds, calling *on_update*.

        Re-using a *subscription_id* cancels the previous subscription first,
        so at most one timer is active per id.
        """
        normalized = [normalize_symbol(s) for s in symbols]
        if not normalized:
            raise ValueError("start_watching requires at least one symbol")

        sub_id = subscription_id or f"watch-{uuid.uuid4().hex[:8]}"
        previous = self._handles.get(sub_id)
        if previous is not None:
            previous.cancel()

        handle = WatchHandle(sub_id, normalized, on_update, self)
        self._handles[sub_id] = handle
        self._scheduler.add_job(
            self._run_cycle,
            trigger="interval",
            seconds=self.interval,
            id=sub_id,
            name=f"Refresh quotes for {', '.join(normalized)}",
            kwargs={"handle": handle},
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info(
            "Watching %s as %s every %.0fs", ", ".join(normalized), sub_id, self.interval,
        )
        return handle

    def _remove(self, handle: WatchHandle) -> None:
        if self._handles.get(handle.id) is not handle:
            return
        del self._handles[handle.id]
        try:
            self._scheduler.remove_job(handle.id)
        except JobLookupError:
            logger.debug("Job %s already removed", handle.id)
        logger.info("Stopped watching %s", handle.id)

    async def _run_cycle(self, handle: WatchHandle) -> None:
        """One refresh cycle; errors are logged so the next cycle still runs."""
        if handle.cancelled:
            return
        try:
            quotes = await self.refresh_once(handle.symbols)
            if handle.cancelled:
                logger.debug("Dropping refresh for cancelled %s", handle.id)
                return
            result = handle.on_update(quotes)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Refresh cycle for %s failed", handle.id)

    async def refresh_once(self, symbols: Iterable[str]) -> list[StockQuote]:
        """Fetch one ordered batch now; served from cache inside the window."""
        return await self.service.fetch_quotes(symbols)
