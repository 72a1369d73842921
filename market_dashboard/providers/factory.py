"""Provider registry: build a QuoteProvider from its configured name."""

from __future__ import annotations

import logging

from market_dashboard.config import ALPHA_VANTAGE_API_KEY, FMP_API_KEY, QUOTE_PROVIDER
from market_dashboard.providers.alpha_vantage import AlphaVantageProvider
from market_dashboard.providers.base import HttpQuoteProvider
from market_dashboard.providers.fmp import FmpProvider

logger = logging.getLogger(__name__)

_PROVIDERS: dict[str, tuple[type[HttpQuoteProvider], str]] = {
    "fmp": (FmpProvider, FMP_API_KEY),
    "alpha_vantage": (AlphaVantageProvider, ALPHA_VANTAGE_API_KEY),
}

AVAILABLE_PROVIDERS = tuple(_PROVIDERS)


def create_provider(name: str = QUOTE_PROVIDER, api_key: str | None = None) -> HttpQuoteProvider:
    """Create a provider by registered name.

    *api_key* overrides the key read from the environment.  A missing key is
    not an error: the provider reports ``has_credentials = False`` and the
    service runs on simulated data.
    """
    entry = _PROVIDERS.get(name)
    if entry is None:
        raise ValueError(
            f"Unknown quote provider {name!r}. "
            f"Must be one of: {', '.join(AVAILABLE_PROVIDERS)}"
        )
    provider_class, configured_key = entry
    provider = provider_class(api_key if api_key is not None else configured_key)
    if not provider.has_credentials:
        logger.warning("%s API key not found. Using mock data.", name)
    return provider
