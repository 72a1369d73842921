"""Alpha Vantage provider: GLOBAL_QUOTE and TIME_SERIES_DAILY."""

from __future__ import annotations

import logging
from typing import Any

from market_dashboard.config import MARKET_SUMMARY_SIZE, MARKET_SUMMARY_SYMBOLS
from market_dashboard.models import (
    HistoricalBar,
    MarketSummary,
    Period,
    Provenance,
    StockQuote,
)
from market_dashboard.providers.base import EmptyResult, HttpQuoteProvider, ProviderRejected
from market_dashboard.services.analytics import rank_market_summary
from market_dashboard.services.mock_data import company_name, default_indices

logger = logging.getLogger(__name__)

_BASE_URL = "https://www.alphavantage.co"
_ENDPOINT = "/query"

# Keys Alpha Vantage uses for error / throttling messages in a 200 response.
_ERROR_KEYS = ("Error Message", "Note", "Information")
_RATE_LIMIT_MARKERS = ("rate limit", "premium")


# ---------------------------------------------------------------------------
# Pure helper functions
# ---------------------------------------------------------------------------


def _parse_global_quote(symbol: str, raw: dict, fetched_at: str) -> StockQuote:
    """Normalize a GLOBAL_QUOTE body into a StockQuote.

    GLOBAL_QUOTE has no market cap or 52-week range; the session high/low
    stand in for the range and market cap is reported as 0.
    """
    quote = raw.get("Global Quote") or {}
    if not quote:
        raise EmptyResult(f"alpha_vantage: no data for symbol {symbol}")

    return StockQuote(
        symbol=symbol,
        name=company_name(symbol),
        price=round(float(quote["05. price"]), 2),
        change=round(float(quote["09. change"]), 2),
        change_percent=round(float(str(quote["10. change percent"]).rstrip("%")), 2),
        volume=int(quote["06. volume"]),
        market_cap=0.0,
        high_52_week=float(quote["03. high"]),
        low_52_week=float(quote["04. low"]),
        last_update=fetched_at,
        provenance=Provenance.REAL,
    )


def _parse_daily_series(symbol: str, raw: dict, days: int) -> list[HistoricalBar]:
    """Keep the last *days* dates of a TIME_SERIES_DAILY body, ascending."""
    series = raw.get("Time Series (Daily)")
    if not series:
        raise EmptyResult(f"alpha_vantage: no historical data for symbol {symbol}")

    return [
        HistoricalBar(
            date=day,
            open=float(series[day]["1. open"]),
            high=float(series[day]["2. high"]),
            low=float(series[day]["3. low"]),
            close=float(series[day]["4. close"]),
            volume=int(series[day]["5. volume"]),
        )
        for day in sorted(series)[-days:]
    ]


# ---------------------------------------------------------------------------
# Provider class
# ---------------------------------------------------------------------------


class AlphaVantageProvider(HttpQuoteProvider):
    """Alpha Vantage implementation of the QuoteProvider interface.

    There is no multi-symbol quote endpoint, so batches fan out per symbol
    under the shared semaphore.  The free tier allows very few calls per
    minute, hence the low concurrency.
    """

    name = "alpha_vantage"
    base_url = _BASE_URL
    key_param = "apikey"
    max_concurrent = 2

    def _check_payload(self, data: Any) -> None:
        if not isinstance(data, dict) or not data:
            raise EmptyResult("alpha_vantage: empty response")
        for key in _ERROR_KEYS:
            message = data.get(key)
            if not message:
                continue
            if any(marker in str(message).lower() for marker in _RATE_LIMIT_MARKERS):
                logger.warning("Alpha Vantage rate limit reached: %s", message)
            else:
                logger.warning("Alpha Vantage API issue: %s", message)
            raise ProviderRejected(f"alpha_vantage: {message}")
        if "Global Quote" in data:
            if not data["Global Quote"]:
                raise EmptyResult("alpha_vantage: empty Global Quote")
        elif not data.get("Time Series (Daily)"):
            raise EmptyResult("alpha_vantage: no time series data")

    # -- Public interface ----------------------------------------------------

    async def get_quote(self, symbol: str) -> StockQuote:
        resp = await self._request(_ENDPOINT, {"function": "GLOBAL_QUOTE", "symbol": symbol})
        return _parse_global_quote(symbol, resp.data, resp.fetched_at)

    async def get_history(self, symbol: str, period: Period) -> list[HistoricalBar]:
        resp = await self._request(
            _ENDPOINT,
            {"function": "TIME_SERIES_DAILY", "symbol": symbol, "outputsize": "compact"},
        )
        return _parse_daily_series(symbol, resp.data, period.days)

    async def get_market_summary(self) -> MarketSummary:
        """Rank quotes for the configured summary symbols locally.

        Alpha Vantage has no index quotes on the free tier, so the default
        indices are reported alongside the ranked lists.
        """
        quotes = await self.get_quotes(list(MARKET_SUMMARY_SYMBOLS))
        if not quotes:
            raise EmptyResult("alpha_vantage: no summary quotes available")
        ordered = [quotes[s] for s in MARKET_SUMMARY_SYMBOLS if s in quotes]
        return rank_market_summary(ordered, default_indices(), size=MARKET_SUMMARY_SIZE)
