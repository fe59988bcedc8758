"""Database service for read-only ledger event access."""

from __future__ import annotations

import json
from datetime import datetime

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from wallet_ledger.db.interfaces import EventRepositoryPort
from wallet_ledger.domain import (
    EVENT_TYPE_STOCK_SPLIT,
    Event,
    StorageError,
    domain_event_decode,
)


class SQLAlchemyEventStore(EventRepositoryPort):
    """SQLAlchemy implementation for event reads.

    Portfolio scope filters stock operations by their `portfolios` list. Splits
    carry no portfolio and apply to every scope.
    """

    _EVENT_LIST_QUERY = (
        "SELECT event_id, symbol, event_time, event_type, detail "
        "FROM event "
        "WHERE symbol = :symbol "
        "AND (CAST(:after AS timestamptz) IS NULL OR event_time > CAST(:after AS timestamptz)) "
        "AND event_time <= CAST(:through AS timestamptz) "
        "AND (CAST(:portfolio_filter AS jsonb) IS NULL "
        "OR event_type = :split_event_type "
        "OR detail -> 'portfolios' @> CAST(:portfolio_filter AS jsonb)) "
        "ORDER BY event_time asc, event_id asc"
    )

    _EVENT_DISTINCT_SYMBOLS_QUERY = (
        "SELECT DISTINCT symbol "
        "FROM event "
        "WHERE CAST(:portfolio_filter AS jsonb) IS NULL "
        "OR detail -> 'portfolios' @> CAST(:portfolio_filter AS jsonb) "
        "ORDER BY symbol asc"
    )

    def __init__(self, engine: Engine):
        """Initialize event store.

        Args:
            engine: SQLAlchemy engine used for reads.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when engine is invalid.
        """

        if engine is None:
            raise ValueError("engine must not be None")
        self._engine = engine

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
            ValueError: Raised when symbol is blank.
            StorageError: Raised when the database read fails.
            DecodeError: Raised when a stored event is malformed.
        """

        normalized_symbol = _db_validate_non_empty_text(symbol, "symbol")
        if through is None:
            raise ValueError("through must not be None")

        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    text(self._EVENT_LIST_QUERY),
                    {
                        "symbol": normalized_symbol,
                        "after": after,
                        "through": through,
                        "portfolio_filter": _db_portfolio_filter(portfolio_id),
                        "split_event_type": EVENT_TYPE_STOCK_SPLIT,
                    },
                ).mappings().all()
        except SQLAlchemyError as error:
            raise StorageError(f"event read failed for symbol={normalized_symbol}") from error

        return [
            domain_event_decode(
                symbol=row["symbol"],
                time=row["event_time"],
                event_type=row["event_type"],
                detail_document=row["detail"],
                event_id=None if row["event_id"] is None else str(row["event_id"]),
            )
            for row in rows
        ]

    def db_event_distinct_symbols(self, portfolio_id: str | None) -> list[str]:
        """List distinct symbols that have events in scope.

        Args:
            portfolio_id: Optional portfolio filter over stock operations.

        Returns:
            list[str]: Distinct symbols sorted ascending.

        Raises:
            StorageError: Raised when the database read fails.
        """

        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    text(self._EVENT_DISTINCT_SYMBOLS_QUERY),
                    {"portfolio_filter": _db_portfolio_filter(portfolio_id)},
                ).mappings().all()
        except SQLAlchemyError as error:
            raise StorageError("event distinct-symbol read failed") from error

        return [str(row["symbol"]) for row in rows]


def _db_portfolio_filter(portfolio_id: str | None) -> str | None:
    """Render the jsonb containment operand for a portfolio scope."""

    if portfolio_id is None:
        return None
    return json.dumps([_db_validate_non_empty_text(portfolio_id, "portfolio_id")])


def _db_validate_non_empty_text(value: str, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must not be blank")
    return value.strip()


__all__ = ["SQLAlchemyEventStore"]
