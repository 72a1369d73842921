"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from market_dashboard.config import (
    DEFAULT_WATCHLIST,
    LOG_LEVEL,
    MOCK_SEED,
    WATCHLIST_MAX_SYMBOLS,
)
from market_dashboard.jobs.scheduler import QuoteRefreshScheduler
from market_dashboard.logging_config import setup_logging
from market_dashboard.models import InvalidPeriodError, StockQuote, normalize_symbol
from market_dashboard.providers.factory import create_provider
from market_dashboard.services.analytics import portfolio_stats
from market_dashboard.services.market_data import MarketDataService
from market_dashboard.services.mock_data import MockDataGenerator

logger = logging.getLogger(__name__)

_WATCHLIST_SUBSCRIPTION = "watchlist"


class WatchlistUpdate(BaseModel):
    symbols: list[str]


def _parse_symbols(raw: str | None) -> list[str]:
    """Split a comma-separated ``symbols`` query param, dropping blanks."""
    if not raw:
        return list(DEFAULT_WATCHLIST)
    return [normalize_symbol(s) for s in raw.split(",") if s.strip()]


def _store_watchlist(app: FastAPI):
    """Build the subscription callback that records the latest refresh."""

    def on_update(quotes: list[StockQuote]) -> None:
        app.state.watchlist["quotes"] = quotes
        app.state.watchlist["last_refreshed"] = datetime.now(timezone.utc).isoformat()
        logger.info("Watchlist refreshed: %d quotes", len(quotes))

    return on_update


async def _subscribe_watchlist(app: FastAPI, symbols: list[str]) -> None:
    """(Re)subscribe the server-side watchlist and refresh it immediately."""
    refresher: QuoteRefreshScheduler = app.state.refresher
    callback = _store_watchlist(app)
    app.state.watchlist = {"symbols": symbols, "quotes": [], "last_refreshed": None}
    refresher.start_watching(symbols, callback, subscription_id=_WATCHLIST_SUBSCRIPTION)
    callback(await refresher.refresh_once(symbols))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize resources on startup, clean up on shutdown."""
    setup_logging(LOG_LEVEL)
    service = MarketDataService(create_provider(), MockDataGenerator(seed=MOCK_SEED))
    app.state.market_data = service
    app.state.refresher = QuoteRefreshScheduler(service)
    app.state.refresher.start()
    await _subscribe_watchlist(app, list(DEFAULT_WATCHLIST))

    logger.info("Market dashboard started (%s data)", service.mode)
    yield

    app.state.refresher.shutdown()
    await service.close()
    logger.info("Market dashboard stopped")


app = FastAPI(title="Market Dashboard", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def _service(request: Request) -> MarketDataService:
    return request.app.state.market_data


@app.get("/api/health")
async def health(request: Request) -> dict:
    """Return service health status and data mode."""
    return {
        "status": "ok",
        "mode": _service(request).mode,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/api/quotes")
async def quotes(request: Request, symbols: str | None = Query(None)) -> dict:
    """Return quotes for comma-separated *symbols* in the requested order."""
    result = await _service(request).fetch_quotes(_parse_symbols(symbols))
    return {"quotes": [q.to_dict() for q in result], "count": len(result)}


@app.get("/api/quotes/{symbol}")
async def quote(request: Request, symbol: str) -> dict:
    """Return the latest quote for a single symbol."""
    if not symbol.strip():
        raise HTTPException(status_code=400, detail="Symbol must not be empty")
    result = await _service(request).fetch_quote(symbol)
    return result.to_dict()


@app.get("/api/history/{symbol}")
async def history(request: Request, symbol: str, period: str = Query("1M")) -> dict:
    """Return daily OHLCV bars for *symbol*.

    Query params:
        period: 1D, 1W, 1M, 3M (default 1M)
    """
    try:
        bars = await _service(request).fetch_history(symbol, period)
    except InvalidPeriodError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {
        "symbol": normalize_symbol(symbol),
        "period": period.strip().upper(),
        "bars": [b.to_dict() for b in bars],
    }


@app.get("/api/market-summary")
async def market_summary(request: Request) -> dict:
    """Return headline indices plus top gainers, losers and most active."""
    summary = await _service(request).fetch_market_summary()
    return summary.to_dict()


@app.get("/api/portfolio-stats")
async def portfolio(request: Request, symbols: str | None = Query(None)) -> dict:
    """Return aggregate value / change across one share of each symbol."""
    result = await _service(request).fetch_quotes(_parse_symbols(symbols))
    return portfolio_stats(result).to_dict()


@app.get("/api/watchlist")
async def get_watchlist(request: Request) -> dict:
    """Return the most recent refresh of the server-side watchlist."""
    state = request.app.state.watchlist
    return {
        "symbols": state["symbols"],
        "quotes": [q.to_dict() for q in state["quotes"]],
        "last_refreshed": state["last_refreshed"],
        "refresh_interval_seconds": request.app.state.refresher.interval,
    }


@app.put("/api/watchlist")
async def put_watchlist(request: Request, body: WatchlistUpdate) -> dict:
    """Replace the watchlist symbols, re-subscribe, and refresh once."""
    symbols = list(dict.fromkeys(normalize_symbol(s) for s in body.symbols if s.strip()))
    if not symbols:
        raise HTTPException(status_code=400, detail="Watchlist must not be empty")
    if len(symbols) > WATCHLIST_MAX_SYMBOLS:
        raise HTTPException(
            status_code=400,
            detail=f"Watchlist is full (max {WATCHLIST_MAX_SYMBOLS} symbols)",
        )
    await _subscribe_watchlist(request.app, symbols)
    return await get_watchlist(request)
