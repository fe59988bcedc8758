"""Database service for append-only position snapshot persistence."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from wallet_ledger.db.interfaces import PositionSnapshotRepositoryPort
from wallet_ledger.domain import (
    Position,
    StorageError,
    domain_decode_recent_operations,
    domain_encode_recent_operations,
    domain_normalize_utc_timestamp,
    domain_parse_decimal,
)


class SQLAlchemyPositionStore(PositionSnapshotRepositoryPort):
    """SQLAlchemy implementation for position snapshot rows.

    The scope predicate uses `IS NOT DISTINCT FROM` so the all-portfolios scope
    (NULL `portfolio_id`) is matched like any other scope value.
    """

    _SNAPSHOT_SELECT_COLUMNS = (
        "SELECT "
        "position_snapshot_id, symbol, portfolio_id, snapshot_time, quantity, cost_basis, average_price, "
        "current_price, gain, realized, recent_operations "
        "FROM position_snapshot "
    )

    _SNAPSHOT_LATEST_QUERY = (
        _SNAPSHOT_SELECT_COLUMNS
        + "WHERE symbol = :symbol AND portfolio_id IS NOT DISTINCT FROM CAST(:portfolio_id AS text) "
        + "ORDER BY snapshot_time desc, position_snapshot_id desc LIMIT 1"
    )

    _SNAPSHOT_HISTORY_QUERY = (
        _SNAPSHOT_SELECT_COLUMNS
        + "WHERE portfolio_id IS NOT DISTINCT FROM CAST(:portfolio_id AS text) "
        + "AND (CAST(:since AS timestamptz) IS NULL OR snapshot_time >= CAST(:since AS timestamptz)) "
        + "ORDER BY snapshot_time asc, symbol asc, position_snapshot_id asc"
    )

    _SNAPSHOT_INSERT_QUERY = (
        "INSERT INTO position_snapshot ("
        "symbol, portfolio_id, snapshot_time, quantity, cost_basis, average_price, current_price, gain, realized, "
        "recent_operations"
        ") VALUES ("
        ":symbol, :portfolio_id, CAST(:snapshot_time AS timestamptz), CAST(:quantity AS numeric), "
        "CAST(:cost_basis AS numeric), CAST(:average_price AS numeric), CAST(:current_price AS numeric), "
        "CAST(:gain AS numeric), CAST(:realized AS numeric), CAST(:recent_operations AS jsonb)"
        ")"
    )

    def __init__(self, engine: Engine):
        """Initialize position snapshot store.

        Args:
            engine: SQLAlchemy engine used for persistence and reads.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when engine is invalid.
        """

        if engine is None:
            raise ValueError("engine must not be None")
        self._engine = engine

    def db_position_latest(self, symbol: str, portfolio_id: str | None) -> Position | None:
        """Fetch the most recent snapshot for a symbol and scope.

        Args:
            symbol: Asset symbol.
            portfolio_id: Portfolio scope; None is its own scope.

        Returns:
            Position | None: Latest snapshot, or None when absent.

        Raises:
            ValueError: Raised when symbol is blank.
            StorageError: Raised when the database read fails.
            DecodeError: Raised when the stored row is malformed.
        """

        if not isinstance(symbol, str) or not symbol.strip():
            raise ValueError("symbol must not be blank")

        try:
            with self._engine.connect() as connection:
                row = connection.execute(
                    text(self._SNAPSHOT_LATEST_QUERY),
                    {"symbol": symbol.strip(), "portfolio_id": portfolio_id},
                ).mappings().first()
        except SQLAlchemyError as error:
            raise StorageError(f"position snapshot read failed for symbol={symbol}") from error

        return None if row is None else _db_position_from_row(row)

    def db_position_insert(self, position: Position) -> None:
        """Append one snapshot row.

        Args:
            position: Snapshot to persist.

        Returns:
            None: Persistence is applied as side effect.

        Raises:
            ValueError: Raised when position is None.
            StorageError: Raised when persistence fails.
        """

        if position is None:
            raise ValueError("position must not be None")

        try:
            with self._engine.begin() as connection:
                connection.execute(text(self._SNAPSHOT_INSERT_QUERY), _db_position_to_params(position))
        except SQLAlchemyError as error:
            raise StorageError(f"position snapshot insert failed for symbol={position.symbol}") from error

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

        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    text(self._SNAPSHOT_HISTORY_QUERY),
                    {"portfolio_id": portfolio_id, "since": since},
                ).mappings().all()
        except SQLAlchemyError as error:
            raise StorageError("position snapshot history read failed") from error

        return [_db_position_from_row(row) for row in rows]


def _db_position_to_params(position: Position) -> dict[str, Any]:
    return {
        "symbol": position.symbol,
        "portfolio_id": position.portfolio_id,
        "snapshot_time": position.time,
        "quantity": str(position.quantity),
        "cost_basis": str(position.cost_basis),
        "average_price": str(position.average_price),
        "current_price": str(position.current_price),
        "gain": str(position.gain),
        "realized": str(position.realized),
        "recent_operations": json.dumps(domain_encode_recent_operations(position.recent_operations)),
    }


def _db_position_from_row(row: Any) -> Position:
    return Position(
        symbol=row["symbol"],
        portfolio_id=row["portfolio_id"],
        time=domain_normalize_utc_timestamp(row["snapshot_time"], "position_snapshot.snapshot_time"),
        quantity=domain_parse_decimal(row["quantity"], "position_snapshot.quantity"),
        cost_basis=domain_parse_decimal(row["cost_basis"], "position_snapshot.cost_basis"),
        average_price=domain_parse_decimal(row["average_price"], "position_snapshot.average_price"),
        current_price=domain_parse_decimal(row["current_price"], "position_snapshot.current_price"),
        gain=domain_parse_decimal(row["gain"], "position_snapshot.gain"),
        realized=domain_parse_decimal(row["realized"], "position_snapshot.realized"),
        recent_operations=domain_decode_recent_operations(row["recent_operations"]),
    )


__all__ = ["SQLAlchemyPositionStore"]
