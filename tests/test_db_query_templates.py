"""Regression tests for fixed SQL template selection in db-layer query paths."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from wallet_ledger.db import (
    SQLAlchemyAssetDayStore,
    SQLAlchemyDatabaseHealthService,
    SQLAlchemyEventStore,
    SQLAlchemyPositionStore,
)
from wallet_ledger.domain import (
    AssetDay,
    DecodeError,
    OperationKind,
    Position,
    RecentOperation,
    StockOperation,
    StockSplit,
    StorageError,
)


class _MappingResultStub:
    """Stub mapping result wrapper for SQLAlchemy-like query responses."""

    def __init__(self, rows: list[dict], rowcount: int = 1):
        """Initialize mapping result rows.

        Args:
            rows: Row mappings returned by a query.
            rowcount: Affected row count reported for writes.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: This stub does not raise value errors.
        """

        self._rows = rows
        self.rowcount = rowcount

    def mappings(self) -> _MappingResultStub:
        """Return self to emulate SQLAlchemy mappings chain."""

        return self

    def all(self) -> list[dict]:
        """Return all row mappings."""

        return self._rows

    def first(self) -> dict | None:
        """Return the first row mapping, or None."""

        return self._rows[0] if self._rows else None


class _ConnectionStub:
    """Connection stub capturing executed SQL and parameters."""

    def __init__(self, rows: list[dict], rowcounts: list[int] | None = None, error: Exception | None = None):
        """Initialize connection capture state.

        Args:
            rows: Query rows returned by execute().
            rowcounts: Optional per-call affected row counts.
            error: Optional error raised by execute().

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: This stub does not raise value errors.
        """

        self._rows = rows
        self._rowcounts = list(rowcounts or [])
        self._error = error
        self.executed_queries: list[str] = []
        self.executed_parameters: list[dict] = []

    def __enter__(self) -> _ConnectionStub:
        return self

    def __exit__(self, exc_type, exc, traceback) -> bool:
        _ = (exc_type, exc, traceback)
        return False

    def execute(self, statement, parameters: dict):
        """Capture execute input and return deterministic row result.

        Args:
            statement: SQLAlchemy text clause or raw string.
            parameters: Bound query parameters.

        Returns:
            _MappingResultStub: Query result stub.

        Raises:
            SQLAlchemyError: Raised when the stub is configured with an error.
        """

        statement_text = getattr(statement, "text", str(statement))
        self.executed_queries.append(statement_text)
        self.executed_parameters.append(parameters)
        if self._error is not None:
            raise self._error
        rowcount = self._rowcounts.pop(0) if self._rowcounts else 1
        return _MappingResultStub(rows=self._rows, rowcount=rowcount)


class _EngineStub:
    """Engine stub that returns a predefined connection object."""

    def __init__(self, connection: _ConnectionStub):
        self._connection = connection

    def connect(self) -> _ConnectionStub:
        """Return connection stub."""

        return self._connection

    def begin(self) -> _ConnectionStub:
        """Return connection stub for begin-context compatibility."""

        return self._connection


def _build_event_row(event_type: str, detail: dict) -> dict:
    """Build one event row mapping for list queries.

    Returns:
        dict: Mapping row with required columns.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return {
        "event_id": uuid4(),
        "symbol": "PETR4",
        "event_time": datetime(2020, 1, 1, 12, tzinfo=timezone.utc),
        "event_type": event_type,
        "detail": detail,
    }


def _build_snapshot_row() -> dict:
    return {
        "position_snapshot_id": 1,
        "symbol": "PETR4",
        "portfolio_id": None,
        "snapshot_time": datetime(2020, 1, 3, 13),
        "quantity": Decimal("100"),
        "cost_basis": Decimal("1000"),
        "average_price": Decimal("10"),
        "current_price": Decimal("9"),
        "gain": Decimal("-100"),
        "realized": Decimal("0"),
        "recent_operations": [
            {"time": "2020-01-01T12:00:00+00:00", "type": "purchase", "price": "10", "quantity": "100"}
        ],
    }


def test_db_event_list_uses_scope_and_time_window_template() -> None:
    """List events with nullable lower bound, portfolio containment and split passthrough."""

    connection = _ConnectionStub(
        rows=[
            _build_event_row(
                "stock-operation",
                {"type": "purchase", "price": 10, "quantity": "100", "portfolios": ["growth"]},
            ),
            _build_event_row("stock-split", {"type": "split", "factor": "2"}),
        ]
    )
    store = SQLAlchemyEventStore(engine=_EngineStub(connection=connection))
    through = datetime(2020, 4, 8, tzinfo=timezone.utc)

    events = store.db_event_list_for_symbol(symbol="PETR4", portfolio_id="growth", after=None, through=through)

    executed_query = connection.executed_queries[0]
    assert "CAST(:after AS timestamptz) IS NULL OR event_time > CAST(:after AS timestamptz)" in executed_query
    assert "event_time <= CAST(:through AS timestamptz)" in executed_query
    assert "OR event_type = :split_event_type" in executed_query
    assert "detail -> 'portfolios' @> CAST(:portfolio_filter AS jsonb)" in executed_query
    assert "ORDER BY event_time asc, event_id asc" in executed_query
    assert connection.executed_parameters[0]["portfolio_filter"] == '["growth"]'
    assert connection.executed_parameters[0]["split_event_type"] == "stock-split"
    assert isinstance(events[0].detail, StockOperation)
    assert events[0].detail.kind is OperationKind.PURCHASE
    assert events[0].detail.portfolios == frozenset({"growth"})
    assert isinstance(events[1].detail, StockSplit)


def test_db_event_list_raises_decode_error_for_malformed_detail() -> None:
    """Reject stored events whose detail violates the document contract."""

    connection = _ConnectionStub(rows=[_build_event_row("stock-operation", {"type": "gift", "price": 1, "quantity": 1})])
    store = SQLAlchemyEventStore(engine=_EngineStub(connection=connection))

    with pytest.raises(DecodeError):
        store.db_event_list_for_symbol("PETR4", None, None, datetime(2020, 4, 8, tzinfo=timezone.utc))


def test_db_event_distinct_symbols_passes_null_filter_for_all_scope() -> None:
    """Pass a NULL portfolio filter for the all-portfolios scope."""

    connection = _ConnectionStub(rows=[{"symbol": "PETR4"}, {"symbol": "VALE3"}])
    store = SQLAlchemyEventStore(engine=_EngineStub(connection=connection))

    assert store.db_event_distinct_symbols(None) == ["PETR4", "VALE3"]
    assert connection.executed_parameters[0] == {"portfolio_filter": None}
    assert "SELECT DISTINCT symbol" in connection.executed_queries[0]


def test_db_position_latest_uses_null_safe_scope_predicate() -> None:
    """Select the latest snapshot with a null-safe portfolio predicate and decode it."""

    connection = _ConnectionStub(rows=[_build_snapshot_row()])
    store = SQLAlchemyPositionStore(engine=_EngineStub(connection=connection))

    position = store.db_position_latest("PETR4", None)

    executed_query = connection.executed_queries[0]
    assert "portfolio_id IS NOT DISTINCT FROM CAST(:portfolio_id AS text)" in executed_query
    assert "ORDER BY snapshot_time desc, position_snapshot_id desc LIMIT 1" in executed_query
    assert position is not None
    assert position.time == datetime(2020, 1, 3, 13, tzinfo=timezone.utc)
    assert position.recent_operations[0].quantity == Decimal("100")


def test_db_position_insert_serializes_decimals_and_operations() -> None:
    """Insert snapshot rows with textual decimals and JSON operations."""

    connection = _ConnectionStub(rows=[])
    store = SQLAlchemyPositionStore(engine=_EngineStub(connection=connection))
    operation_time = datetime(2020, 1, 1, 12, tzinfo=timezone.utc)

    store.db_position_insert(
        Position(
            symbol="PETR4",
            time=datetime(2020, 1, 3, 13, tzinfo=timezone.utc),
            quantity=Decimal("100"),
            cost_basis=Decimal("1000"),
            recent_operations=(
                RecentOperation(
                    time=operation_time,
                    kind=OperationKind.PURCHASE,
                    price=Decimal("10"),
                    quantity=Decimal("100"),
                ),
            ),
        )
    )

    parameters = connection.executed_parameters[0]
    assert "INSERT INTO position_snapshot" in connection.executed_queries[0]
    assert parameters["quantity"] == "100"
    assert parameters["portfolio_id"] is None
    assert '"type": "purchase"' in parameters["recent_operations"]


def test_db_position_history_uses_typed_nullable_since_predicate() -> None:
    """Use typed nullable-time predicate in snapshot history template."""

    connection = _ConnectionStub(rows=[])
    store = SQLAlchemyPositionStore(engine=_EngineStub(connection=connection))

    assert store.db_position_list_history("growth", None) == []
    assert "CAST(:since AS timestamptz) IS NULL" in connection.executed_queries[0]
    assert "ORDER BY snapshot_time asc, symbol asc, position_snapshot_id asc" in connection.executed_queries[0]


def test_db_asset_day_insert_many_ignores_conflicts_and_counts_rows() -> None:
    """Insert bars with conflict skipping and count only affected rows."""

    connection = _ConnectionStub(rows=[], rowcounts=[1, 0])
    store = SQLAlchemyAssetDayStore(engine=_EngineStub(connection=connection))
    bar = AssetDay(
        symbol="PETR4",
        time=datetime(2020, 4, 1, 13, tzinfo=timezone.utc),
        open=Decimal("1"),
        high=Decimal("1"),
        low=Decimal("1"),
        close=Decimal("1"),
        volume=10,
    )

    inserted_count = store.db_asset_day_insert_many([bar, bar])

    assert inserted_count == 1
    assert "ON CONFLICT (symbol, bar_time) DO NOTHING" in connection.executed_queries[0]
    assert store.db_asset_day_insert_many([]) == 0


def test_db_asset_day_latest_in_range_uses_inclusive_bounds() -> None:
    """Select latest bar within inclusive bounds."""

    connection = _ConnectionStub(rows=[])
    store = SQLAlchemyAssetDayStore(engine=_EngineStub(connection=connection))

    result = store.db_asset_day_latest_in_range(
        "PETR4",
        datetime(2020, 3, 27, tzinfo=timezone.utc),
        datetime(2020, 4, 3, 23, 59, 59, tzinfo=timezone.utc),
    )

    assert result is None
    assert "bar_time >= CAST(:range_start AS timestamptz)" in connection.executed_queries[0]
    assert "bar_time <= CAST(:range_end AS timestamptz)" in connection.executed_queries[0]


def test_db_store_wraps_driver_errors_as_storage_errors() -> None:
    """Wrap SQLAlchemy failures in StorageError."""

    connection = _ConnectionStub(rows=[], error=OperationalError("SELECT 1", {}, Exception("connection lost")))
    store = SQLAlchemyAssetDayStore(engine=_EngineStub(connection=connection))

    with pytest.raises(StorageError):
        store.db_asset_day_latest("PETR4")


class _ScalarResultStub:
    def __init__(self, value) -> None:
        self._value = value

    def scalar(self):
        """Return the configured scalar value."""

        return self._value


class _HealthConnectionStub(_ConnectionStub):
    """Connection stub reporting table presence by table name."""

    def __init__(self, present_tables: set[str]):
        super().__init__(rows=[])
        self._present_tables = present_tables

    def execute(self, statement, parameters: dict):
        super().execute(statement, parameters)
        return _ScalarResultStub(parameters["table_name"] in self._present_tables)


class _UrlStub:
    def render_as_string(self, hide_password: bool = True) -> str:
        """Render a masked stub URL."""

        _ = hide_password
        return "postgresql+psycopg://ledger:***@db/wallet"


def test_db_health_reports_missing_ledger_tables() -> None:
    """Report degraded health when a ledger table is missing."""

    engine = _EngineStub(connection=_HealthConnectionStub(present_tables={"event", "asset_day"}))
    engine.url = _UrlStub()
    service = SQLAlchemyDatabaseHealthService(engine=engine)

    health_status = service.db_check_health()

    assert health_status.status == "degraded"
    assert "position_snapshot" in health_status.detail


def test_db_health_reports_ok_with_masked_target() -> None:
    """Report ok with the masked connection target when every table exists."""

    engine = _EngineStub(connection=_HealthConnectionStub(present_tables={"event", "position_snapshot", "asset_day"}))
    engine.url = _UrlStub()

    health_status = SQLAlchemyDatabaseHealthService(engine=engine).db_check_health()

    assert health_status.status == "ok"
    assert "***" in health_status.detail
