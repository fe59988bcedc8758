"""Typed interfaces for adapter-layer responsibilities."""

from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Protocol


@dataclass(frozen=True)
class MarketDataBar:
    """One daily OHLCV bar returned by a market-data source.

    Attributes:
        time: Offset-aware UTC bar timestamp.
        open: Opening price.
        high: Highest price.
        low: Lowest price.
        close: Closing price.
        volume: Traded volume.
    """

    time: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int


@dataclass(frozen=True)
class PriceTick:
    """One streamed live price observation.

    Attributes:
        symbol: Ledger symbol without exchange suffix.
        price: Last traded price.
        time: Optional tick timestamp in UTC.
    """

    symbol: str
    price: Decimal
    time: datetime | None = None


class MarketDataPort(Protocol):
    """Port definition for fetching daily price bars from an upstream source."""

    def adapter_source_name(self) -> str:
        """Return adapter source identifier for diagnostics.

        Returns:
            str: Human-readable upstream source identifier.

        Raises:
            RuntimeError: Raised when source metadata is unavailable.
        """

    def adapter_fetch_daily_bars(self, symbol: str, start: datetime, end: datetime) -> list[MarketDataBar]:
        """Fetch daily bars for one symbol over an inclusive time range.

        Args:
            symbol: Ledger symbol without exchange suffix.
            start: Offset-aware range start.
            end: Offset-aware range end.

        Returns:
            list[MarketDataBar]: Bars ordered by time as returned upstream.

        Raises:
            MarketDataEmptyRangeError: Raised when upstream reports no data in range.
            MarketDataAdapterError: Raised for any other upstream failure.
        """


class PriceStreamPort(Protocol):
    """Port definition for subscribing to a push feed of live prices."""

    def adapter_stream_ticks(self, symbols: list[str]) -> AsyncIterator[PriceTick]:
        """Subscribe to live ticks for the given symbols.

        Args:
            symbols: Ledger symbols without exchange suffix.

        Returns:
            AsyncIterator[PriceTick]: Ticks in arrival order until the stream closes.

        Raises:
            ConnectionError: Raised when the stream cannot be established or drops.
        """
