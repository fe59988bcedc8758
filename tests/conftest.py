"""Shared in-memory repository stubs for ledger and pricing tests."""

from __future__ import annotations

import threading
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

import pytest

from wallet_ledger.domain import AssetDay, Event, NotFound, Position, StockOperation, StockSplit


class InMemoryEventRepository:
    """Event repository stub applying the same scope rules as the SQL store."""

    def __init__(self) -> None:
        self.events: list[Event] = []
        self.list_calls: list[dict] = []

    def db_event_list_for_symbol(
        self,
        symbol: str,
        portfolio_id: str | None,
        after: datetime | None,
        through: datetime,
    ) -> list[Event]:
        """Return in-scope events of one symbol in `(after, through]`."""

        self.list_calls.append({"symbol": symbol, "portfolio_id": portfolio_id, "after": after, "through": through})
        selected = [
            event
            for event in self.events
            if event.symbol == symbol
            and (after is None or event.time > after)
            and event.time <= through
            and _stub_event_in_scope(event, portfolio_id)
        ]
        return sorted(selected, key=lambda event: event.time)

    def db_event_distinct_symbols(self, portfolio_id: str | None) -> list[str]:
        """Return sorted symbols with any event, or with operations tagged with the portfolio."""

        return sorted(
            {
                event.symbol
                for event in self.events
                if portfolio_id is None
                or (isinstance(event.detail, StockOperation) and portfolio_id in event.detail.portfolios)
            }
        )


class InMemoryPositionRepository:
    """Append-only snapshot repository stub."""

    def __init__(self) -> None:
        self.rows: list[Position] = []
        self.fail_inserts = False
        self._guard = threading.Lock()

    def db_position_latest(self, symbol: str, portfolio_id: str | None) -> Position | None:
        """Return the latest row of one symbol and scope."""

        with self._guard:
            matching = [row for row in self.rows if row.symbol == symbol and row.portfolio_id == portfolio_id]
        if not matching:
            return None
        return max(matching, key=lambda row: row.time)

    def db_position_insert(self, position: Position) -> None:
        """Append one row, or fail when configured to."""

        if self.fail_inserts:
            raise RuntimeError("snapshot insert failed")
        with self._guard:
            self.rows.append(position)

    def db_position_list_history(self, portfolio_id: str | None, since: datetime | None) -> list[Position]:
        """Return rows of one scope ordered by time and symbol."""

        with self._guard:
            matching = [
                row
                for row in self.rows
                if row.portfolio_id == portfolio_id and (since is None or row.time >= since)
            ]
        return sorted(matching, key=lambda row: (row.time, row.symbol))


class StubHistoricalPrices:
    """Historical price lookup stub backed by a bar list and a current price map."""

    def __init__(self) -> None:
        self.bars: list[AssetDay] = []
        self.current_prices: dict[str, Decimal] = {}
        self.lookup_gate = threading.Event()
        self.lookup_gate.set()

    def historical_get_for_day_with_fallback(self, symbol: str, day: date) -> AssetDay:
        """Return the latest bar in `[day-7d, day]`, waiting on the lookup gate first."""

        self.lookup_gate.wait(timeout=5.0)
        window_start = datetime.combine(day - timedelta(days=7), time(0, 0, tzinfo=timezone.utc))
        window_end = datetime.combine(day, time(23, 59, 59, tzinfo=timezone.utc))
        candidates = [bar for bar in self.bars if bar.symbol == symbol and window_start <= bar.time <= window_end]
        if not candidates:
            raise NotFound(f"no historical data for symbol={symbol} on or before {day.isoformat()}")
        return max(candidates, key=lambda bar: bar.time)

    def historical_current_price_for_symbol(self, symbol: str) -> Decimal | None:
        """Return the configured current price, or None."""

        return self.current_prices.get(symbol)

    def stub_add_bar(self, symbol: str, day: date, close: str, hour: int = 13) -> None:
        """Add one bar on the given day at the given UTC hour."""

        price = Decimal(close)
        self.bars.append(
            AssetDay(
                symbol=symbol,
                time=datetime.combine(day, time(hour, 0, tzinfo=timezone.utc)),
                open=price,
                high=price,
                low=price,
                close=price,
                volume=1000,
            )
        )

    def stub_add_friday_bars(self, symbol: str, start: date, end: date, close: str, hour: int = 13) -> None:
        """Add one bar per Friday in `[start, end]` at the given UTC hour."""

        current = start
        while current <= end:
            if current.weekday() == 4:
                self.stub_add_bar(symbol, current, close, hour)
            current += timedelta(days=1)


def _stub_event_in_scope(event: Event, portfolio_id: str | None) -> bool:
    if portfolio_id is None or isinstance(event.detail, StockSplit):
        return True
    return portfolio_id in event.detail.portfolios


@pytest.fixture
def event_repository() -> InMemoryEventRepository:
    """Provide an empty in-memory event repository."""

    return InMemoryEventRepository()


@pytest.fixture
def position_repository() -> InMemoryPositionRepository:
    """Provide an empty in-memory snapshot repository."""

    return InMemoryPositionRepository()


@pytest.fixture
def historical_prices() -> StubHistoricalPrices:
    """Provide an empty historical price stub."""

    return StubHistoricalPrices()


@pytest.fixture
def fixed_clock():
    """Provide a clock fixed at 2020-04-08 00:00 UTC."""

    return lambda: datetime(2020, 4, 8, tzinfo=timezone.utc)


@pytest.fixture
def reference_position_repository() -> InMemoryPositionRepository:
    """Provide a second empty snapshot repository for from-scratch comparisons."""

    return InMemoryPositionRepository()
