"""Abstract base classes and shared HTTP plumbing for quote providers."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, NamedTuple

import httpx

from market_dashboard.config import CACHE_WINDOWS
from market_dashboard.models import HistoricalBar, MarketSummary, Period, StockQuote
from market_dashboard.services.response_cache import ResponseCache, request_key

logger = logging.getLogger(__name__)

_TIMEOUT = 15.0
_DEFAULT_CACHE_WINDOW = 60.0


# ---------------------------------------------------------------------------
# Error taxonomy
# ---------------------------------------------------------------------------


class ProviderError(Exception):
    """Base class for failures talking to an external quote provider."""


class NoCredential(ProviderError):
    """No API key is configured; callers should use simulated data."""


class TransportFailure(ProviderError):
    """Network or HTTP-level failure (timeout, connection error, 4xx/5xx)."""


class ProviderRejected(ProviderError):
    """The provider answered with a well-formed error payload (e.g. rate limit)."""


class EmptyResult(ProviderError):
    """The provider returned no data for an otherwise valid request."""


class ProviderResponse(NamedTuple):
    """A decoded JSON body plus the wall-clock time it was fetched."""

    data: Any
    fetched_at: str   # ISO-8601, UTC


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------


class QuoteProvider(ABC):
    """Interface that every quote provider must implement.

    Methods raise :class:`ProviderError` (or ``httpx.HTTPError``,
    ``KeyError``, ``ValueError`` on malformed payloads); fallback to
    simulated data is the caller's job.
    """

    name: str = "provider"

    @property
    @abstractmethod
    def has_credentials(self) -> bool:
        """Whether an API key is configured."""

    @abstractmethod
    async def get_quote(self, symbol: str) -> StockQuote:
        """Fetch the latest quote for an uppercase *symbol*."""

    async def get_quotes(self, symbols: list[str]) -> dict[str, StockQuote]:
        """Fetch quotes for several symbols concurrently.

        Symbols that fail are logged and omitted from the result.  Providers
        with a multi-symbol endpoint override this with a single request.
        """
        results = await asyncio.gather(
            *(self.get_quote(s) for s in symbols), return_exceptions=True,
        )
        quotes: dict[str, StockQuote] = {}
        for symbol, result in zip(symbols, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning("%s quote for %s failed: %s", self.name, symbol, result)
                continue
            quotes[symbol] = result
        return quotes

    @abstractmethod
    async def get_history(self, symbol: str, period: Period) -> list[HistoricalBar]:
        """Fetch daily OHLCV bars for *symbol*, ascending by date."""

    @abstractmethod
    async def get_market_summary(self) -> MarketSummary:
        """Fetch headline indices and the ranked mover lists."""

    async def close(self) -> None:
        """Release any underlying resources."""


# ---------------------------------------------------------------------------
# HTTP providers
# ---------------------------------------------------------------------------


class HttpQuoteProvider(QuoteProvider):
    """QuoteProvider backed by an httpx client and a per-instance response cache.

    Subclasses set ``name``, ``base_url`` and ``key_param`` and implement
    :meth:`_check_payload` to recognise their error sentinels.
    """

    base_url: str = ""
    key_param: str = "apikey"
    max_concurrent: int = 4

    def __init__(
        self,
        api_key: str,
        cache: ResponseCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = _TIMEOUT,
    ) -> None:
        self._api_key = api_key
        self.cache = cache if cache is not None else ResponseCache(
            CACHE_WINDOWS.get(self.name, _DEFAULT_CACHE_WINDOW)
        )
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            params={self.key_param: api_key},
            transport=transport,
        )
        self._semaphore = asyncio.Semaphore(self.max_concurrent)

    @property
    def has_credentials(self) -> bool:
        return bool(self._api_key)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    @abstractmethod
    def _check_payload(self, data: Any) -> None:
        """Raise ProviderRejected / EmptyResult for provider error sentinels."""

    async def _request(self, endpoint: str, params: dict | None = None) -> ProviderResponse:
        """Cached, rate-limited GET.

        Only responses that pass :meth:`_check_payload` are cached, keyed by
        provider + endpoint + params (the API key is not part of the key).
        """
        if not self.has_credentials:
            raise NoCredential(f"{self.name}: no API key configured")

        params = dict(params or {})
        key = request_key(self.name, endpoint, params)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit: %s", key)
            return cached

        try:
            async with self._semaphore:
                resp = await self._client.get(endpoint, params=params)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as exc:
            raise TransportFailure(f"{self.name} {endpoint}: {exc}") from exc
        except ValueError as exc:
            raise TransportFailure(f"{self.name} {endpoint}: invalid JSON body") from exc

        self._check_payload(data)

        response = ProviderResponse(
            data=data, fetched_at=datetime.now(timezone.utc).isoformat(),
        )
        self.cache.put(key, response)
        return response
