"""Configuration: env vars, provider selection, watchlists, mock-data tables."""

import os
from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Provider selection and API keys
# ---------------------------------------------------------------------------
QUOTE_PROVIDER: str = os.getenv("QUOTE_PROVIDER", "fmp").strip().lower()
FMP_API_KEY: str = os.getenv("FMP_API_KEY", "")
ALPHA_VANTAGE_API_KEY: str = os.getenv("ALPHA_VANTAGE_API_KEY", "")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# ---------------------------------------------------------------------------
# Response cache windows (seconds), per provider
# ---------------------------------------------------------------------------
CACHE_WINDOWS: dict[str, float] = {
    "fmp": 300.0,            # 5 minutes for general queries
    "alpha_vantage": 60.0,   # 1 minute for the quote endpoint
}

# Upper bound on live cached responses per provider instance
CACHE_MAX_ENTRIES = 1024

# ---------------------------------------------------------------------------
# Refresh scheduling (seconds)
# ---------------------------------------------------------------------------
# Real data refreshes hourly to stay inside a ~250 calls/day quota.  Mock data
# refreshes less often so the dashboard does not look like a live feed.
REFRESH_INTERVAL_REAL_SECONDS: float = float(
    os.getenv("REFRESH_INTERVAL_REAL_SECONDS", "3600")
)
REFRESH_INTERVAL_MOCK_SECONDS: float = float(
    os.getenv("REFRESH_INTERVAL_MOCK_SECONDS", "7200")
)

# ---------------------------------------------------------------------------
# Mock data generation
# ---------------------------------------------------------------------------
MOCK_PERTURBATION_PCT: float = float(os.getenv("MOCK_PERTURBATION_PCT", "2.0"))
MOCK_SEED: int | None = (
    int(os.environ["MOCK_SEED"]) if os.getenv("MOCK_SEED") else None
)

MOCK_BASE_PRICES: dict[str, float] = {
    "AAPL": 175.43,
    "GOOGL": 2847.63,
    "MSFT": 334.75,
    "AMZN": 3342.88,
    "TSLA": 1008.78,
    "NVDA": 220.89,
    "META": 331.26,
    "NFLX": 400.52,
}

COMPANY_NAMES: dict[str, str] = {
    "AAPL": "Apple Inc.",
    "GOOGL": "Alphabet Inc.",
    "MSFT": "Microsoft Corporation",
    "AMZN": "Amazon.com Inc.",
    "TSLA": "Tesla Inc.",
    "NVDA": "NVIDIA Corporation",
    "META": "Meta Platforms Inc.",
    "NFLX": "Netflix Inc.",
}

# ---------------------------------------------------------------------------
# Watchlist and market summary
# ---------------------------------------------------------------------------
DEFAULT_WATCHLIST: list[str] = ["AAPL", "GOOGL", "MSFT", "AMZN", "TSLA", "NVDA"]
WATCHLIST_MAX_SYMBOLS: int = 20

# Candidate set ranked for gainers / losers / most active when the provider
# has no dedicated movers endpoint (or when falling back to mock data).
MARKET_SUMMARY_SYMBOLS: list[str] = [
    "AAPL", "GOOGL", "MSFT", "AMZN", "TSLA", "NVDA", "META", "NFLX",
]
MARKET_SUMMARY_SIZE: int = 3

DEFAULT_INDICES: list[dict[str, str | float]] = [
    {"name": "S&P 500", "value": 4445.70, "change": 12.45, "change_percent": 0.28},
    {"name": "DOW JONES", "value": 34908.05, "change": -89.24, "change_percent": -0.26},
    {"name": "NASDAQ", "value": 13421.47, "change": 52.90, "change_percent": 0.40},
]
