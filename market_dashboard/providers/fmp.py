"""Financial Modeling Prep provider: quotes, batch quotes, history, movers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from market_dashboard.config import MARKET_SUMMARY_SIZE
from market_dashboard.models import (
    HistoricalBar,
    IndexSummary,
    MarketSummary,
    Period,
    Provenance,
    StockQuote,
    normalize_symbol,
)
from market_dashboard.providers.base import (
    EmptyResult,
    HttpQuoteProvider,
    ProviderError,
    ProviderRejected,
)
from market_dashboard.services.mock_data import company_name, default_indices

logger = logging.getLogger(__name__)

_BASE_URL = "https://financialmodelingprep.com/api/v3"

_MOVER_ENDPOINTS: dict[str, str] = {
    "top_gainers": "/stock_market/gainers",
    "top_losers": "/stock_market/losers",
    "most_active": "/stock_market/actives",
}


# ---------------------------------------------------------------------------
# Pure helper functions
# ---------------------------------------------------------------------------


def _float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value) if value is not None else default
    except (TypeError, ValueError):
        return default


def _parse_range(range_str: str | None) -> tuple[float, float]:
    """Split a profile ``"low-high"`` range string into floats."""
    if not range_str or "-" not in range_str:
        return 0.0, 0.0
    low, _, high = range_str.partition("-")
    return _float(low.strip()), _float(high.strip())


def _parse_quote(raw: dict, fetched_at: str, profile: dict | None = None) -> StockQuote:
    """Normalize one /quote entry (optionally enriched by /profile)."""
    symbol = normalize_symbol(raw["symbol"])
    profile = profile or {}
    range_low, range_high = _parse_range(profile.get("range"))

    return StockQuote(
        symbol=symbol,
        name=profile.get("companyName") or raw.get("name") or company_name(symbol),
        price=round(float(raw["price"]), 2),
        change=round(_float(raw.get("change")), 2),
        change_percent=round(_float(raw.get("changesPercentage")), 2),
        volume=int(_float(raw.get("volume"))),
        market_cap=_float(profile.get("mktCap") or raw.get("marketCap")),
        high_52_week=_float(raw.get("yearHigh")) or range_high,
        low_52_week=_float(raw.get("yearLow")) or range_low,
        last_update=fetched_at,
        provenance=Provenance.REAL,
    )


def _needs_profile(raw: dict) -> bool:
    return not raw.get("name") or not raw.get("marketCap")


def _parse_history(raw: dict, days: int) -> list[HistoricalBar]:
    """Normalize /historical-price-full into the last *days* bars, ascending."""
    rows = raw.get("historical") or []
    if not rows:
        raise EmptyResult(f"No historical data for {raw.get('symbol', '?')}")

    rows = sorted(rows, key=lambda r: r["date"])[-days:]
    return [
        HistoricalBar(
            date=r["date"],
            open=float(r["open"]),
            high=float(r["high"]),
            low=float(r["low"]),
            close=float(r["close"]),
            volume=int(r["volume"]) if r.get("volume") is not None else None,
        )
        for r in rows
    ]


def _parse_index(raw: dict) -> IndexSummary:
    return IndexSummary(
        name=raw.get("name") or raw.get("symbol", ""),
        value=_float(raw.get("price")),
        change=_float(raw.get("change")),
        change_percent=_float(raw.get("changesPercentage")),
    )


def _parse_movers(raw: list[dict], fetched_at: str, size: int) -> tuple[StockQuote, ...]:
    movers: list[StockQuote] = []
    for entry in raw[:size]:
        try:
            movers.append(_parse_quote(entry, fetched_at))
        except (KeyError, ValueError, TypeError) as exc:
            logger.warning("Skipping malformed mover entry %r: %s", entry, exc)
    return tuple(movers)


# ---------------------------------------------------------------------------
# Provider class
# ---------------------------------------------------------------------------


class FmpProvider(HttpQuoteProvider):
    """Financial Modeling Prep implementation of the QuoteProvider interface."""

    name = "fmp"
    base_url = _BASE_URL
    key_param = "apikey"
    max_concurrent = 8

    def _check_payload(self, data: Any) -> None:
        if isinstance(data, dict):
            message = data.get("Error Message") or data.get("error")
            if message:
                raise ProviderRejected(f"fmp: {message}")
            # Only /historical-price-full answers with an object
            if not data.get("historical"):
                raise EmptyResult(f"fmp: no historical data for {data.get('symbol', '?')}")
        elif isinstance(data, list) and not data:
            raise EmptyResult("fmp: empty result list")

    async def _get_profile(self, symbol: str) -> dict | None:
        """Best-effort company profile lookup; failures return ``None``."""
        try:
            resp = await self._request(f"/profile/{symbol}")
        except ProviderError as exc:
            logger.debug("Profile for %s unavailable: %s", symbol, exc)
            return None
        if isinstance(resp.data, list) and resp.data:
            return resp.data[0]
        return None

    async def _enrich(self, raw: dict, fetched_at: str) -> StockQuote:
        profile = None
        if _needs_profile(raw):
            profile = await self._get_profile(normalize_symbol(raw["symbol"]))
        return _parse_quote(raw, fetched_at, profile)

    # -- Public interface ----------------------------------------------------

    async def get_quote(self, symbol: str) -> StockQuote:
        """Fetch the latest quote for a single symbol."""
        resp = await self._request(f"/quote/{symbol}")
        if not isinstance(resp.data, list) or not resp.data:
            raise EmptyResult(f"fmp: no quote for {symbol}")
        return await self._enrich(resp.data[0], resp.fetched_at)

    async def get_quotes(self, symbols: list[str]) -> dict[str, StockQuote]:
        """Batch-fetch quotes in one HTTP call.

        Symbols missing from the response are omitted; the caller decides
        how to fill them.
        """
        if not symbols:
            return {}
        resp = await self._request(f"/quote/{','.join(symbols)}")
        if not isinstance(resp.data, list):
            raise EmptyResult("fmp: batch quote response is not a list")

        by_symbol = {
            normalize_symbol(entry["symbol"]): entry
            for entry in resp.data
            if isinstance(entry, dict) and entry.get("symbol")
        }
        wanted = [s for s in symbols if s in by_symbol]
        missing = [s for s in symbols if s not in by_symbol]
        if missing:
            logger.warning("fmp batch omitted: %s", ", ".join(missing))

        parsed = await asyncio.gather(
            *(self._enrich(by_symbol[s], resp.fetched_at) for s in wanted),
            return_exceptions=True,
        )
        quotes: dict[str, StockQuote] = {}
        for symbol, result in zip(wanted, parsed):
            if isinstance(result, Exception):
                logger.warning("Failed to parse fmp quote for %s: %s", symbol, result)
                continue
            quotes[symbol] = result
        return quotes

    async def get_history(self, symbol: str, period: Period) -> list[HistoricalBar]:
        """Fetch daily bars for the last ``period.days`` trading days."""
        resp = await self._request(
            f"/historical-price-full/{symbol}",
            {"timeseries": period.days},
        )
        if not isinstance(resp.data, dict):
            raise EmptyResult(f"fmp: no history for {symbol}")
        return _parse_history(resp.data, period.days)

    async def get_market_summary(self) -> MarketSummary:
        """Fetch indices and the gainers / losers / actives lists concurrently.

        A failed index request falls back to the default indices and a failed
        mover list comes back empty; only when every mover list fails is the
        whole summary treated as failed.
        """
        keys = list(_MOVER_ENDPOINTS)
        results = await asyncio.gather(
            self._request("/quotes/index"),
            *(self._request(_MOVER_ENDPOINTS[k]) for k in keys),
            return_exceptions=True,
        )
        indices_result, mover_results = results[0], results[1:]
        for result in results:
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result

        if isinstance(indices_result, Exception) or not isinstance(indices_result.data, list):
            logger.warning("fmp index quotes unavailable: %s", indices_result)
            indices = default_indices()
        else:
            indices = tuple(_parse_index(i) for i in indices_result.data[:3])

        if all(isinstance(r, Exception) for r in mover_results):
            raise ProviderRejected(f"fmp: all mover requests failed ({mover_results[0]})")

        movers: dict[str, tuple[StockQuote, ...]] = {}
        for key, result in zip(keys, mover_results):
            if isinstance(result, Exception) or not isinstance(result.data, list):
                logger.warning("fmp %s unavailable: %s", key, result)
                movers[key] = ()
            else:
                movers[key] = _parse_movers(result.data, result.fetched_at, MARKET_SUMMARY_SIZE)

        return MarketSummary(indices=indices, **movers)
