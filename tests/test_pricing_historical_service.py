"""Regression tests for daily price backfill and lookups."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

import pytest

from wallet_ledger.adapters import MarketDataBar, MarketDataConnectionError, MarketDataEmptyRangeError
from wallet_ledger.domain import AssetDay, Event, ExternalServiceError, NotFound, OperationKind, StockOperation
from wallet_ledger.ledger import LockCoordinator
from wallet_ledger.pricing import HistoricalPriceService


class _AssetDayRepositoryStub:
    """Asset-day repository stub enforcing the `(symbol, time)` unique key."""

    def __init__(self) -> None:
        self.rows: dict[tuple[str, datetime], AssetDay] = {}

    def db_asset_day_latest(self, symbol: str) -> AssetDay | None:
        """Return the latest bar of one symbol."""

        matching = [row for (row_symbol, _), row in self.rows.items() if row_symbol == symbol]
        return max(matching, key=lambda row: row.time) if matching else None

    def db_asset_day_insert_many(self, bars: list[AssetDay]) -> int:
        """Insert bars, skipping duplicates, and return the inserted count."""

        inserted_count = 0
        for bar in bars:
            if (bar.symbol, bar.time) not in self.rows:
                self.rows[(bar.symbol, bar.time)] = bar
                inserted_count += 1
        return inserted_count

    def db_asset_day_latest_in_range(self, symbol: str, start: datetime, end: datetime) -> AssetDay | None:
        """Return the latest bar of one symbol within an inclusive range."""

        matching = [
            row for (row_symbol, _), row in self.rows.items() if row_symbol == symbol and start <= row.time <= end
        ]
        return max(matching, key=lambda row: row.time) if matching else None


class _MarketDataStub:
    """Market-data stub returning daily bars or raising configured errors."""

    def __init__(self) -> None:
        self.errors: dict[str, Exception] = {}
        self.calls: list[tuple[str, datetime, datetime]] = []

    def adapter_source_name(self) -> str:
        """Return stub source name."""

        return "stub"

    def adapter_fetch_daily_bars(self, symbol: str, start: datetime, end: datetime) -> list[MarketDataBar]:
        """Return one bar per day in range plus one bar before the range."""

        self.calls.append((symbol, start, end))
        if symbol in self.errors:
            raise self.errors[symbol]

        bars = []
        current = start - timedelta(days=1)
        while current <= end:
            price = Decimal(current.day)
            bars.append(
                MarketDataBar(
                    time=current.replace(hour=13),
                    open=price,
                    high=price,
                    low=price,
                    close=price,
                    volume=100,
                )
            )
            current += timedelta(days=1)
        return bars


def _build_service(event_repository, repository=None, market_data=None, epoch=date(2020, 4, 1)):
    return HistoricalPriceService(
        locks=LockCoordinator(backoff_seconds=0.01),
        repository=repository or _AssetDayRepositoryStub(),
        event_repository=event_repository,
        market_data=market_data or _MarketDataStub(),
        epoch=epoch,
        clock=lambda: datetime(2020, 4, 8, 15, tzinfo=timezone.utc),
        max_workers=2,
    )


def _seed_symbol(event_repository, symbol: str) -> None:
    event_repository.events.append(
        Event(
            symbol=symbol,
            time=datetime(2020, 1, 1, tzinfo=timezone.utc),
            detail=StockOperation(kind=OperationKind.PURCHASE, price=Decimal("1"), quantity=Decimal("1")),
        )
    )


def test_historical_refresh_backfills_from_epoch_through_yesterday(event_repository) -> None:
    """Request epoch through yesterday and store only bars inside the range.

    Returns:
        None: Assertions validate backfill range and inserted rows.

    Raises:
        AssertionError: Raised when the refresh range diverges.
    """

    repository = _AssetDayRepositoryStub()
    market_data = _MarketDataStub()
    service = _build_service(event_repository, repository=repository, market_data=market_data)

    inserted_count = service.historical_refresh("PETR4")

    assert inserted_count == 7
    assert market_data.calls == [
        (
            "PETR4",
            datetime(2020, 4, 1, tzinfo=timezone.utc),
            datetime(2020, 4, 7, 23, 59, 59, tzinfo=timezone.utc),
        )
    ]
    assert min(row.time for row in repository.rows.values()).date() == date(2020, 4, 1)


def test_historical_refresh_is_incremental_and_never_duplicates(event_repository) -> None:
    """Skip the upstream call when stored bars already reach yesterday."""

    repository = _AssetDayRepositoryStub()
    market_data = _MarketDataStub()
    service = _build_service(event_repository, repository=repository, market_data=market_data)

    service.historical_refresh("PETR4")
    second_inserted_count = service.historical_refresh("PETR4")

    assert second_inserted_count == 0
    assert len(market_data.calls) == 1
    assert len(repository.rows) == 7


def test_historical_refresh_treats_empty_range_as_no_data(event_repository) -> None:
    """Return zero when upstream reports no data in range."""

    market_data = _MarketDataStub()
    market_data.errors["PETR4"] = MarketDataEmptyRangeError("No data found, symbol may be delisted")
    service = _build_service(event_repository, market_data=market_data)

    assert service.historical_refresh("PETR4") == 0


def test_historical_refresh_wraps_other_upstream_failures(event_repository) -> None:
    """Raise ExternalServiceError for upstream failures other than empty range."""

    market_data = _MarketDataStub()
    market_data.errors["PETR4"] = MarketDataConnectionError("market-data upstream returned HTTP 503")
    service = _build_service(event_repository, market_data=market_data)

    with pytest.raises(ExternalServiceError):
        service.historical_refresh("PETR4")


def test_historical_refresh_all_reports_failures_per_symbol(event_repository) -> None:
    """Keep refreshing sibling symbols when one symbol fails."""

    _seed_symbol(event_repository, "PETR4")
    _seed_symbol(event_repository, "VALE3")
    market_data = _MarketDataStub()
    market_data.errors["VALE3"] = MarketDataConnectionError("market-data request failed")
    service = _build_service(event_repository, market_data=market_data)

    summary = service.historical_refresh_all()

    assert summary.inserted_by_symbol == {"PETR4": 7}
    assert list(summary.failures) == ["VALE3"]
    assert summary.inserted_total == 7


def test_historical_get_for_day_with_fallback_searches_previous_week(event_repository) -> None:
    """Return the latest bar within seven days before the target date."""

    repository = _AssetDayRepositoryStub()
    bar_time = datetime.combine(date(2020, 3, 30), time(13, 0, tzinfo=timezone.utc))
    repository.db_asset_day_insert_many(
        [
            AssetDay(
                symbol="PETR4",
                time=bar_time,
                open=Decimal("1"),
                high=Decimal("1"),
                low=Decimal("1"),
                close=Decimal("1"),
                volume=1,
            )
        ]
    )
    service = _build_service(event_repository, repository=repository)

    assert service.historical_get_for_day_with_fallback("PETR4", date(2020, 4, 3)).time == bar_time
    with pytest.raises(NotFound):
        service.historical_get_for_day_with_fallback("PETR4", date(2020, 4, 10))


def test_historical_current_price_uses_last_bar_or_none(event_repository) -> None:
    """Return today's last close and None when upstream fails."""

    market_data = _MarketDataStub()
    service = _build_service(event_repository, market_data=market_data)

    assert service.historical_current_price_for_symbol("PETR4") == Decimal("8")

    market_data.errors["PETR4"] = MarketDataConnectionError("market-data request failed")
    assert service.historical_current_price_for_symbol("PETR4") is None

    market_data.errors["PETR4"] = MarketDataEmptyRangeError("No data found")
    assert service.historical_current_price_for_symbol("PETR4") is None
