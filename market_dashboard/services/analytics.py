"""Derived views over a set of quotes: market movers and portfolio totals."""

from __future__ import annotations

from typing import Iterable, Sequence

from market_dashboard.models import IndexSummary, MarketSummary, PortfolioStats, StockQuote


def rank_market_summary(
    quotes: Sequence[StockQuote],
    indices: Iterable[IndexSummary],
    size: int = 3,
) -> MarketSummary:
    """Rank *quotes* into top gainers, top losers, and most active.

    Gainers are sorted by percent change descending, losers ascending, and
    most-active by volume descending; each list is capped at *size*.
    """
    by_change = sorted(quotes, key=lambda q: q.change_percent, reverse=True)
    by_change_asc = sorted(quotes, key=lambda q: q.change_percent)
    by_volume = sorted(quotes, key=lambda q: q.volume, reverse=True)

    return MarketSummary(
        indices=tuple(indices),
        top_gainers=tuple(by_change[:size]),
        top_losers=tuple(by_change_asc[:size]),
        most_active=tuple(by_volume[:size]),
    )


def portfolio_stats(quotes: Sequence[StockQuote]) -> PortfolioStats:
    """Sum one share of each quote into portfolio totals.

    The percent figure is ``total_change / (total_value - total_change) * 100``,
    i.e. change relative to the implied previous value.
    """
    if not quotes:
        return PortfolioStats(
            total_value=0.0,
            total_change=0.0,
            total_change_percent=0.0,
            gainers=0,
            losers=0,
        )

    total_value = sum(q.price for q in quotes)
    total_change = sum(q.change for q in quotes)
    previous = total_value - total_change
    total_change_pct = (total_change / previous * 100) if previous != 0 else 0.0

    return PortfolioStats(
        total_value=round(total_value, 2),
        total_change=round(total_change, 2),
        total_change_percent=round(total_change_pct, 2),
        gainers=sum(1 for q in quotes if q.change > 0),
        losers=sum(1 for q in quotes if q.change < 0),
    )
