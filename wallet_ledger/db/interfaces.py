"""Typed interfaces for database-layer services.

All SQL access must remain in the db package and its submodules.
"""

from datetime import datetime
from typing import Protocol

from wallet_ledger.domain import AssetDay, Event, HealthStatus, Position


class DatabaseHealthPort(Protocol):
    """Port definition for database connectivity verification."""

    def db_connection_label(self) -> str:
        """Return a stable label for the active database connection target.

        Returns:
            str: Database target label for diagnostics.

        Raises:
            RuntimeError: Raised when connection metadata is unavailable.
        """

    def db_check_health(self) -> HealthStatus:
        """Check database connectivity and return deterministic health payload.

        Returns:
            HealthStatus: Database health status payload.

        Raises:
            ConnectionError: Raised when database cannot be reached.
        """


class EventRepositoryPort(Protocol):
    """Port definition for read-only access to ledger events."""

    def db_event_list_for_symbol(
        self,
        symbol: str,
        portfolio_id: str | None,
        after: datetime | None,
        through: datetime,
    ) -> list[Event]:
        """List events of one symbol in `(after, through]` ordered by time ascending.

        Args:
            symbol: Asset symbol.
            portfolio_id: Optional portfolio filter over stock operations.
            after: Optional exclusive lower time bound.
            through: Inclusive upper time bound.

        Returns:
            list[Event]: Decoded events in ascending time order.

        Raises:
            StorageError: Raised when the database read fails.
            DecodeError: Raised when a stored event is malformed.
        """

    def db_event_distinct_symbols(self, portfolio_id: str | None) -> list[str]:
        """List distinct symbols that have events in scope.

        Args:
            portfolio_id: Optional portfolio filter over stock operations.

        Returns:
            list[str]: Distinct symbols sorted ascending.

        Raises:
            StorageError: Raised when the database read fails.
        """


class PositionSnapshotRepositoryPort(Protocol):
    """Port definition for append-only position snapshot persistence."""

    def db_position_latest(self, symbol: str, portfolio_id: str | None) -> Position | None:
        """Fetch the most recent snapshot for a symbol and scope.

        Args:
            symbol: Asset symbol.
            portfolio_id: Portfolio scope; None is its own scope.

        Returns:
            Position | None: Latest snapshot, or None when absent.

        Raises:
            StorageError: Raised when the database read fails.
            DecodeError: Raised when the stored row is malformed.
        """

    def db_position_insert(self, position: Position) -> None:
        """Append one snapshot row.

        Args:
            position: Snapshot to persist.

        Returns:
            None: Persistence is applied as side effect.

        Raises:
            StorageError: Raised when persistence fails.
        """

    def db_position_list_history(self, portfolio_id: str | None, since: datetime | None) -> list[Position]:
        """List snapshots of one scope ordered by time then symbol.

        Args:
            portfolio_id: Portfolio scope; None is its own scope.
            since: Optional inclusive lower time bound.

        Returns:
            list[Position]: Snapshots in ascending time order.

        Raises:
            StorageError: Raised when the database read fails.
            DecodeError: Raised when a stored row is malformed.
        """


class AssetDayRepositoryPort(Protocol):
    """Port definition for daily price-bar persistence."""

    def db_asset_day_latest(self, symbol: str) -> AssetDay | None:
        """Fetch the most recent stored bar for a symbol.

        Args:
            symbol: Asset symbol.

        Returns:
            AssetDay | None: Latest bar, or None when the symbol has no bars.

        Raises:
            StorageError: Raised when the database read fails.
        """

    def db_asset_day_insert_many(self, bars: list[AssetDay]) -> int:
        """Insert bars, skipping any that already exist for their day.

        Args:
            bars: Bars to insert.

        Returns:
            int: Number of inserted rows.

        Raises:
            StorageError: Raised when persistence fails.
        """

    def db_asset_day_latest_in_range(self, symbol: str, start: datetime, end: datetime) -> AssetDay | None:
        """Fetch the most recent bar within an inclusive time range.

        Args:
            symbol: Asset symbol.
            start: Inclusive range start.
            end: Inclusive range end.

        Returns:
            AssetDay | None: Latest bar in range, or None when the range is empty.

        Raises:
            StorageError: Raised when the database read fails.
        """
