"""Record types shared by providers, services, and the HTTP layer.

Every record is a frozen dataclass: a refresh cycle replaces records, it
never mutates them.  ``to_dict()`` produces the JSON shape served by the API.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum


class Provenance(str, Enum):
    """Where a record's numbers came from."""

    REAL = "real"
    SIMULATED = "simulated"


class InvalidPeriodError(ValueError):
    """Raised when a history period is not one of the supported lookbacks."""


class Period(str, Enum):
    """Supported history lookback windows."""

    ONE_DAY = "1D"
    ONE_WEEK = "1W"
    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"

    @property
    def days(self) -> int:
        return _PERIOD_DAYS[self]

    @classmethod
    def parse(cls, value: "Period | str") -> "Period":
        """Coerce *value* to a Period, raising InvalidPeriodError otherwise."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            valid = ", ".join(p.value for p in cls)
            raise InvalidPeriodError(
                f"Invalid period: {value!r}. Must be one of: {valid}"
            ) from None


_PERIOD_DAYS: dict[Period, int] = {
    Period.ONE_DAY: 1,
    Period.ONE_WEEK: 7,
    Period.ONE_MONTH: 30,
    Period.THREE_MONTHS: 90,
}


def normalize_symbol(symbol: str) -> str:
    """Uppercase and strip a ticker symbol."""
    return symbol.strip().upper()


@dataclass(frozen=True)
class StockQuote:
    """Point-in-time quote for one symbol."""

    symbol: str
    name: str
    price: float
    change: float
    change_percent: float
    volume: int
    market_cap: float
    high_52_week: float
    low_52_week: float
    last_update: str   # ISO-8601, UTC
    provenance: Provenance = Provenance.REAL

    @property
    def is_real_data(self) -> bool:
        return self.provenance is Provenance.REAL

    def to_dict(self) -> dict:
        data = asdict(self)
        data["provenance"] = self.provenance.value
        data["is_real_data"] = self.is_real_data
        return data


@dataclass(frozen=True)
class HistoricalBar:
    """One daily OHLCV bar."""

    date: str   # YYYY-MM-DD
    open: float
    high: float
    low: float
    close: float
    volume: int | None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class IndexSummary:
    name: str
    value: float
    change: float
    change_percent: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class MarketSummary:
    """Headline indices plus the three ranked mover lists."""

    indices: tuple[IndexSummary, ...]
    top_gainers: tuple[StockQuote, ...] = field(default_factory=tuple)
    top_losers: tuple[StockQuote, ...] = field(default_factory=tuple)
    most_active: tuple[StockQuote, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "indices": [i.to_dict() for i in self.indices],
            "top_gainers": [q.to_dict() for q in self.top_gainers],
            "top_losers": [q.to_dict() for q in self.top_losers],
            "most_active": [q.to_dict() for q in self.most_active],
        }


@dataclass(frozen=True)
class PortfolioStats:
    total_value: float
    total_change: float
    total_change_percent: float
    gainers: int
    losers: int

    def to_dict(self) -> dict:
        return asdict(self)
