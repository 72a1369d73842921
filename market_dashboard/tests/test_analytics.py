"""Tests for market-summary ranking and portfolio statistics."""

from __future__ import annotations

import pytest

from market_dashboard.models import IndexSummary, Provenance, StockQuote
from market_dashboard.services.analytics import portfolio_stats, rank_market_summary


def _make_quote(
    symbol: str,
    change_percent: float = 0.0,
    volume: int = 1_000_000,
    price: float = 100.0,
    change: float = 0.0,
) -> StockQuote:
    """Build a StockQuote with only the fields under test varying."""
    return StockQuote(
        symbol=symbol,
        name=f"{symbol} Corp.",
        price=price,
        change=change,
        change_percent=change_percent,
        volume=volume,
        market_cap=0.0,
        high_52_week=0.0,
        low_52_week=0.0,
        last_update="2026-03-10T15:00:00+00:00",
        provenance=Provenance.REAL,
    )


_INDICES = (
    IndexSummary("S&P 500", 4445.70, 12.45, 0.28),
    IndexSummary("DOW JONES", 34908.05, -89.24, -0.26),
    IndexSummary("NASDAQ", 13421.47, 52.90, 0.40),
)

# symbol, change_percent, volume
_EIGHT = [
    ("AAPL", 1.5, 5_000_000),
    ("GOOGL", -2.1, 2_000_000),
    ("MSFT", 0.3, 9_000_000),
    ("AMZN", 3.7, 1_000_000),
    ("TSLA", -4.4, 12_000_000),
    ("NVDA", 2.2, 7_000_000),
    ("META", -0.8, 3_000_000),
    ("NFLX", 0.0, 4_000_000),
]


# ---------------------------------------------------------------------------
# rank_market_summary
# ---------------------------------------------------------------------------


class TestRankMarketSummary:
    def _summary(self):
        quotes = [_make_quote(s, change_percent=c, volume=v) for s, c, v in _EIGHT]
        return rank_market_summary(quotes, _INDICES)

    def test_top_gainers_descending(self):
        assert [q.symbol for q in self._summary().top_gainers] == ["AMZN", "NVDA", "AAPL"]

    def test_top_losers_ascending(self):
        assert [q.symbol for q in self._summary().top_losers] == ["TSLA", "GOOGL", "META"]

    def test_most_active_by_volume(self):
        assert [q.symbol for q in self._summary().most_active] == ["TSLA", "MSFT", "NVDA"]

    def test_indices_passed_through(self):
        assert self._summary().indices == _INDICES

    def test_fewer_quotes_than_size(self):
        summary = rank_market_summary([_make_quote("AAPL", 1.0)], _INDICES)
        assert len(summary.top_gainers) == 1
        assert len(summary.top_losers) == 1

    def test_empty_quotes(self):
        summary = rank_market_summary([], _INDICES)
        assert summary.top_gainers == ()
        assert summary.most_active == ()

    def test_custom_size(self):
        quotes = [_make_quote(s, change_percent=c, volume=v) for s, c, v in _EIGHT]
        summary = rank_market_summary(quotes, _INDICES, size=5)
        assert len(summary.top_gainers) == 5

    def test_to_dict_shape(self):
        data = self._summary().to_dict()
        assert set(data) == {"indices", "top_gainers", "top_losers", "most_active"}
        assert data["top_gainers"][0]["provenance"] == "real"
        assert data["indices"][0]["name"] == "S&P 500"


# ---------------------------------------------------------------------------
# portfolio_stats
# ---------------------------------------------------------------------------


class TestPortfolioStats:
    def test_empty(self):
        stats = portfolio_stats([])
        assert stats.total_value == 0.0
        assert stats.total_change_percent == 0.0
        assert stats.gainers == 0
        assert stats.losers == 0

    def test_totals_and_percent(self):
        quotes = [
            _make_quote("AAPL", price=110.0, change=10.0),
            _make_quote("MSFT", price=190.0, change=-10.0),
            _make_quote("TSLA", price=100.0, change=0.0),
        ]
        stats = portfolio_stats(quotes)
        assert stats.total_value == 400.0
        assert stats.total_change == 0.0
        assert stats.total_change_percent == 0.0
        assert stats.gainers == 1
        assert stats.losers == 1

    def test_percent_relative_to_previous_value(self):
        quotes = [_make_quote("AAPL", price=105.0, change=5.0)]
        assert portfolio_stats(quotes).total_change_percent == pytest.approx(5.0)

    def test_zero_denominator(self):
        quotes = [_make_quote("AAPL", price=5.0, change=5.0)]
        assert portfolio_stats(quotes).total_change_percent == 0.0
