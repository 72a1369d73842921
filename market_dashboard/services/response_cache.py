"""Time-windowed response cache keyed by request signature.

Backed by ``cachetools.TTLCache``: an entry is valid while
``now - stored_at < window``, expired entries are dropped on the next
write, and the number of live entries is bounded by ``maxsize``.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Mapping

from cachetools import TTLCache

from market_dashboard.config import CACHE_MAX_ENTRIES


def request_key(provider: str, endpoint: str, params: Mapping[str, Any]) -> str:
    """Build a deterministic signature for one outbound request.

    Params are sorted so ``{"a": 1, "b": 2}`` and ``{"b": 2, "a": 1}`` share
    an entry.  Callers must not include the API key.
    """
    query = "&".join(f"{k}={params[k]}" for k in sorted(params))
    return f"{provider}:{endpoint}?{query}"


class ResponseCache:
    """In-memory cache scoped to a single provider instance."""

    def __init__(
        self,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        maxsize: int = CACHE_MAX_ENTRIES,
    ) -> None:
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.window_seconds = window_seconds
        self._entries: TTLCache = TTLCache(maxsize=maxsize, ttl=window_seconds, timer=clock)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Any | None:
        """Return the cached payload for *key*, or ``None`` if absent/stale."""
        return self._entries.get(key)

    def put(self, key: str, payload: Any) -> None:
        self._entries[key] = payload

    def clear(self) -> None:
        self._entries.clear()
