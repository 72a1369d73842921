"""Market dashboard backend: quote acquisition, caching, mock fallback, refresh."""
