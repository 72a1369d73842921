"""Market data service: provider calls with per-symbol fallback to mock data.

This is the read interface the HTTP layer and the refresh scheduler use.
Provider failures (transport errors, rate limits, empty results, malformed
payloads) never reach the caller; the affected symbol is served from the
mock generator instead.  Only orchestration errors such as an invalid
history period propagate.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

import httpx

from market_dashboard.config import MARKET_SUMMARY_SIZE, MARKET_SUMMARY_SYMBOLS
from market_dashboard.models import (
    HistoricalBar,
    MarketSummary,
    Period,
    StockQuote,
    normalize_symbol,
)
from market_dashboard.providers.base import ProviderError, QuoteProvider
from market_dashboard.services.mock_data import MockDataGenerator, default_indices

logger = logging.getLogger(__name__)

# Everything a provider call may raise that should degrade to mock data.
_FALLBACK_ERRORS = (ProviderError, httpx.HTTPError, KeyError, ValueError, TypeError)


class MarketDataService:
    """Composes one quote provider (or none) with a mock data generator."""

    def __init__(
        self,
        provider: QuoteProvider | None,
        mock: MockDataGenerator | None = None,
        summary_symbols: Iterable[str] = MARKET_SUMMARY_SYMBOLS,
    ) -> None:
        self.provider = provider
        self.mock = mock or MockDataGenerator()
        self.summary_symbols = [normalize_symbol(s) for s in summary_symbols]

    @property
    def has_credentials(self) -> bool:
        return self.provider is not None and self.provider.has_credentials

    @property
    def mode(self) -> str:
        return "real" if self.has_credentials else "simulated"

    async def close(self) -> None:
        if self.provider is not None:
            await self.provider.close()

    # -- Quotes --------------------------------------------------------------

    async def fetch_quote(self, symbol: str) -> StockQuote:
        """Return a quote for *symbol*, simulated if the provider cannot help."""
        symbol = normalize_symbol(symbol)
        if not self.has_credentials:
            return self.mock.mock_quote(symbol)
        try:
            return await self.provider.get_quote(symbol)
        except _FALLBACK_ERRORS as exc:
            logger.warning("fetch_quote(%s) failed, using mock data: %s", symbol, exc)
            return self.mock.mock_quote(symbol)

    async def fetch_quotes(self, symbols: Iterable[str]) -> list[StockQuote]:
        """Return one quote per requested symbol, in the requested order."""
        requested = [normalize_symbol(s) for s in symbols]
        if not requested:
            return []
        unique = list(dict.fromkeys(requested))
        if not self.has_credentials:
            mocked = {s: self.mock.mock_quote(s) for s in unique}
            return [mocked[s] for s in requested]

        try:
            found = await self.provider.get_quotes(unique)
        except _FALLBACK_ERRORS as exc:
            logger.warning("Batch quote request failed, fetching individually: %s", exc)
            quotes = await asyncio.gather(*(self.fetch_quote(s) for s in unique))
            found = dict(zip(unique, quotes))

        by_symbol: dict[str, StockQuote] = {}
        for symbol in unique:
            quote = found.get(symbol)
            if quote is None:
                logger.warning("No quote returned for %s, using mock data", symbol)
                quote = self.mock.mock_quote(symbol)
            by_symbol[symbol] = quote
        return [by_symbol[s] for s in requested]

    # -- History -------------------------------------------------------------

    async def fetch_history(self, symbol: str, period: Period | str = Period.ONE_MONTH) -> list[HistoricalBar]:
        """Return daily bars for *symbol* over *period*.

        Raises InvalidPeriodError for an unsupported period.
        """
        period = Period.parse(period)
        symbol = normalize_symbol(symbol)
        if not self.has_credentials:
            return self.mock.mock_history(symbol, period)
        try:
            bars = await self.provider.get_history(symbol, period)
        except _FALLBACK_ERRORS as exc:
            logger.warning(
                "fetch_history(%s, %s) failed, using mock data: %s",
                symbol, period.value, exc,
            )
            return self.mock.mock_history(symbol, period)
        if not bars:
            logger.warning("No history returned for %s, using mock data", symbol)
            return self.mock.mock_history(symbol, period)
        return bars

    # -- Market summary ------------------------------------------------------

    async def fetch_market_summary(self) -> MarketSummary:
        """Return indices plus ranked movers; fully simulated on provider failure."""
        if self.has_credentials:
            try:
                return await self.provider.get_market_summary()
            except _FALLBACK_ERRORS as exc:
                logger.warning("Market summary failed, using mock data: %s", exc)
        return self.mock.mock_market_summary(
            self.summary_symbols, default_indices(), size=MARKET_SUMMARY_SIZE,
        )
