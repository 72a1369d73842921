"""Quote providers package."""

from market_dashboard.providers.alpha_vantage import AlphaVantageProvider
from market_dashboard.providers.base import (
    EmptyResult,
    HttpQuoteProvider,
    NoCredential,
    ProviderError,
    ProviderRejected,
    QuoteProvider,
    TransportFailure,
)
from market_dashboard.providers.factory import create_provider
from market_dashboard.providers.fmp import FmpProvider

__all__ = [
    "AlphaVantageProvider",
    "EmptyResult",
    "FmpProvider",
    "HttpQuoteProvider",
    "NoCredential",
    "ProviderError",
    "ProviderRejected",
    "QuoteProvider",
    "TransportFailure",
    "create_provider",
]
