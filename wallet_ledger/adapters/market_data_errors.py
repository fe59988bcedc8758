"""Project-native typed exceptions for market-data adapter failures."""

from __future__ import annotations


class MarketDataAdapterError(Exception):
    """Base exception for adapter-level market-data failures.

    Attributes:
        error_code: Optional upstream error code.
    """

    def __init__(self, message: str, error_code: str | None = None):
        super().__init__(message)
        self.error_code = error_code


class MarketDataConnectionError(MarketDataAdapterError, ConnectionError):
    """Transport-level connectivity failure or non-success HTTP status."""


class MarketDataTimeoutError(MarketDataAdapterError, TimeoutError):
    """Transport timeout while waiting for the market-data source."""


class MarketDataResponseError(MarketDataAdapterError, ValueError):
    """Upstream response violated the expected chart payload contract."""


class MarketDataEmptyRangeError(MarketDataAdapterError):
    """Upstream reported that no bars exist in the requested range.

    Common for ranges covering only weekends or holidays; callers treat it as
    an empty result rather than a failure.
    """
