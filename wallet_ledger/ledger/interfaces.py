"""Typed interfaces for ledger-layer computations."""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable, Protocol

from wallet_ledger.domain import AssetDay, Position

UtcClock = Callable[[], datetime]


def ledger_utc_now() -> datetime:
    """Default clock returning the offset-aware current UTC time."""

    return datetime.now(timezone.utc)


class HistoricalPricePort(Protocol):
    """Port definition for the price lookups the ledger depends on."""

    def historical_get_for_day_with_fallback(self, symbol: str, day: date) -> AssetDay:
        """Return the most recent stored bar within the week ending on `day`.

        Args:
            symbol: Asset symbol.
            day: Target calendar date.

        Returns:
            AssetDay: Latest stored bar in `[day-7d, day]`.

        Raises:
            NotFound: Raised when no bar exists in the window.
            StorageError: Raised when the store read fails.
        """

    def historical_current_price_for_symbol(self, symbol: str) -> Decimal | None:
        """Return today's price, or None when unavailable.

        Args:
            symbol: Asset symbol.

        Returns:
            Decimal | None: Current close price, or None.

        Raises:
            RuntimeError: Implementations log failures instead of raising.
        """


class PositionCalculatorPort(Protocol):
    """Port definition for per-symbol position computation."""

    def ledger_compute_position(self, symbol: str, portfolio_id: str | None = None) -> Position:
        """Compute the current position of one symbol.

        Args:
            symbol: Asset symbol.
            portfolio_id: Optional portfolio scope.

        Returns:
            Position: Current position.

        Raises:
            StorageError: Raised when the store fails.
            DecodeError: Raised when a stored event is malformed.
            InvalidLedgerState: Raised on oversell.
        """
