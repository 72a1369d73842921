"""Synthetic quote and history generator used when no live data is available.

Quotes are stateful per symbol: the first request synthesizes a price, and
every later request perturbs the previous price by a small bounded
percentage, so repeated refreshes drift instead of jumping around.  Pass a
seeded ``random.Random`` (or ``seed=``) for reproducible output.
"""

from __future__ import annotations

import logging
import random
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Iterable

from market_dashboard.config import (
    COMPANY_NAMES,
    DEFAULT_INDICES,
    MARKET_SUMMARY_SIZE,
    MOCK_BASE_PRICES,
    MOCK_PERTURBATION_PCT,
)
from market_dashboard.models import (
    HistoricalBar,
    IndexSummary,
    MarketSummary,
    Period,
    Provenance,
    StockQuote,
    normalize_symbol,
)
from market_dashboard.services.analytics import rank_market_summary

logger = logging.getLogger(__name__)

_MIN_PRICE = 0.01
_BASE_PRICE_RANGE = (50.0, 550.0)
_INITIAL_CHANGE_RANGE = 10.0           # +/- absolute offset on first quote
_VOLUME_RANGE = (1_000_000, 11_000_000)
_MARKET_CAP_MULTIPLIER = (1e8, 1.1e9)
_HIGH_52W_MULTIPLIER = (1.2, 1.5)
_LOW_52W_MULTIPLIER = (0.5, 0.7)

# History random walk (fractions, not percent)
_INTRADAY_MOVE = 0.02
_OVERNIGHT_GAP = 0.01
_WICK_JITTER = 0.015
_HISTORY_VOLUME_RANGE = (500_000, 5_500_000)


def company_name(symbol: str) -> str:
    """Display name for *symbol*, falling back to a generic label."""
    return COMPANY_NAMES.get(symbol, f"{symbol} Corp.")


def default_indices() -> tuple[IndexSummary, ...]:
    return tuple(IndexSummary(**idx) for idx in DEFAULT_INDICES)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MockDataGenerator:
    """Per-process synthetic data source with per-symbol price memory."""

    def __init__(
        self,
        rng: random.Random | None = None,
        seed: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
        perturbation_pct: float = MOCK_PERTURBATION_PCT,
    ) -> None:
        self._rng = rng if rng is not None else random.Random(seed)
        self._clock = clock
        self.perturbation_pct = perturbation_pct
        self._series: dict[str, StockQuote] = {}
        self._base_prices: dict[str, float] = {}

    # -- State helpers -------------------------------------------------------

    def last_quote(self, symbol: str) -> StockQuote | None:
        """Return the most recent mock quote for *symbol*, if any."""
        return self._series.get(normalize_symbol(symbol))

    def _base_price(self, symbol: str) -> float:
        if symbol in MOCK_BASE_PRICES:
            return MOCK_BASE_PRICES[symbol]
        if symbol not in self._base_prices:
            self._base_prices[symbol] = self._rng.uniform(*_BASE_PRICE_RANGE)
        return self._base_prices[symbol]

    def _anchor_price(self, symbol: str) -> float:
        last = self._series.get(symbol)
        return last.price if last is not None else self._base_price(symbol)

    # -- Quotes --------------------------------------------------------------

    def mock_quote(self, symbol: str) -> StockQuote:
        """Return the next simulated quote for *symbol*."""
        symbol = normalize_symbol(symbol)
        previous = self._series.get(symbol)
        if previous is None:
            quote = self._initial_quote(symbol)
        else:
            quote = self._perturbed_quote(previous)
        self._series[symbol] = quote
        return quote

    def _initial_quote(self, symbol: str) -> StockQuote:
        rng = self._rng
        base = self._base_price(symbol)
        change = rng.uniform(-_INITIAL_CHANGE_RANGE, _INITIAL_CHANGE_RANGE)
        price = base + change
        if price < _MIN_PRICE:
            price = _MIN_PRICE
            change = price - base

        price = round(price, 2)
        change = round(change, 2)
        return StockQuote(
            symbol=symbol,
            name=company_name(symbol),
            price=price,
            change=change,
            change_percent=_percent_change(price, change),
            volume=rng.randint(*_VOLUME_RANGE),
            market_cap=round(price * rng.uniform(*_MARKET_CAP_MULTIPLIER), 2),
            high_52_week=round(price * rng.uniform(*_HIGH_52W_MULTIPLIER), 2),
            low_52_week=round(price * rng.uniform(*_LOW_52W_MULTIPLIER), 2),
            last_update=self._clock().isoformat(),
            provenance=Provenance.SIMULATED,
        )

    def _perturbed_quote(self, previous: StockQuote) -> StockQuote:
        rng = self._rng
        bound = self.perturbation_pct / 100.0
        price = round(max(_MIN_PRICE, previous.price * (1 + rng.uniform(-bound, bound))), 2)
        change = round(price - previous.price, 2)
        scale = price / previous.price if previous.price else 1.0

        return StockQuote(
            symbol=previous.symbol,
            name=previous.name,
            price=price,
            change=change,
            change_percent=_percent_change(price, change),
            volume=max(0, int(previous.volume * rng.uniform(0.9, 1.1))),
            market_cap=round(previous.market_cap * scale, 2),
            high_52_week=max(previous.high_52_week, price),
            low_52_week=min(previous.low_52_week, price),
            last_update=self._clock().isoformat(),
            provenance=Provenance.SIMULATED,
        )

    # -- History -------------------------------------------------------------

    def mock_history(self, symbol: str, period: Period | str) -> list[HistoricalBar]:
        """Synthesize daily bars ending today, ascending by date.

        Walks backward from the symbol's current mock price so the newest
        close lines up with what the watchlist shows.
        """
        symbol = normalize_symbol(symbol)
        period = Period.parse(period)
        today: date = self._clock().date()
        rng = self._rng

        price = self._anchor_price(symbol)
        bars: list[HistoricalBar] = []
        for offset in range(period.days + 1):
            close = round(max(_MIN_PRICE, price), 2)
            open_ = round(
                max(_MIN_PRICE, close * (1 + rng.uniform(-_INTRADAY_MOVE, _INTRADAY_MOVE))),
                2,
            )
            top, bottom = max(open_, close), min(open_, close)
            high = round(top + top * rng.uniform(0, _WICK_JITTER), 2)
            low = round(max(_MIN_PRICE, bottom - bottom * rng.uniform(0, _WICK_JITTER)), 2)
            # min() guards the floor clamp on sub-cent prices
            low = min(low, bottom)

            bars.append(HistoricalBar(
                date=(today - timedelta(days=offset)).isoformat(),
                open=open_,
                high=high,
                low=low,
                close=close,
                volume=rng.randint(*_HISTORY_VOLUME_RANGE),
            ))
            price = open_ * (1 + rng.uniform(-_OVERNIGHT_GAP, _OVERNIGHT_GAP))

        bars.reverse()
        return bars

    # -- Market summary ------------------------------------------------------

    def mock_market_summary(
        self,
        symbols: Iterable[str],
        indices: Iterable[IndexSummary] | None = None,
        size: int = MARKET_SUMMARY_SIZE,
    ) -> MarketSummary:
        """Rank freshly simulated quotes for *symbols* into a summary."""
        quotes = [self.mock_quote(s) for s in symbols]
        return rank_market_summary(
            quotes,
            tuple(indices) if indices is not None else default_indices(),
            size=size,
        )


def _percent_change(price: float, change: float) -> float:
    """``change / previous * 100`` rounded to 2 dp, where previous = price - change."""
    previous = price - change
    if previous == 0:
        return 0.0
    return round(change / previous * 100, 2)
