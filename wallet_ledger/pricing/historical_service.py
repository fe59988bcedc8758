"""Daily price-bar backfill and lookup service."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from wallet_ledger.adapters import MarketDataAdapterError, MarketDataBar, MarketDataEmptyRangeError, MarketDataPort
from wallet_ledger.db import AssetDayRepositoryPort, EventRepositoryPort
from wallet_ledger.domain import AssetDay, ExternalServiceError, NotFound
from wallet_ledger.ledger.interfaces import HistoricalPricePort, UtcClock, ledger_utc_now
from wallet_ledger.ledger.locks import LOCK_NAMESPACE_ASSET_DAY, LockCoordinator

logger = logging.getLogger(__name__)

_DAY_START = time(0, 0, 0, tzinfo=timezone.utc)
_DAY_END = time(23, 59, 59, tzinfo=timezone.utc)
_FALLBACK_WINDOW_DAYS = 7


@dataclass(frozen=True)
class HistoricalRefreshSummary:
    """Outcome of refreshing every in-scope symbol.

    Attributes:
        inserted_by_symbol: Inserted row count per refreshed symbol.
        failures: Error text per failed symbol.
    """

    inserted_by_symbol: dict[str, int] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def inserted_total(self) -> int:
        return sum(self.inserted_by_symbol.values())


class HistoricalPriceService(HistoricalPricePort):
    """Incrementally backfill daily bars and serve price lookups."""

    def __init__(
        self,
        locks: LockCoordinator,
        repository: AssetDayRepositoryPort,
        event_repository: EventRepositoryPort,
        market_data: MarketDataPort,
        epoch: date = date(2006, 1, 1),
        clock: UtcClock | None = None,
        max_workers: int = 8,
    ):
        """Initialize historical price service.

        Args:
            locks: Process lock coordinator.
            repository: Asset-day repository.
            event_repository: Event repository used to list in-scope symbols.
            market_data: Upstream daily-bar source.
            epoch: First day requested for a symbol without stored bars.
            clock: Optional UTC clock.
            max_workers: Upper bound of concurrent symbol refreshes.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when a dependency or worker bound is invalid.
        """

        if locks is None:
            raise ValueError("locks must not be None")
        if repository is None:
            raise ValueError("repository must not be None")
        if event_repository is None:
            raise ValueError("event_repository must not be None")
        if market_data is None:
            raise ValueError("market_data must not be None")
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")

        self._locks = locks
        self._repository = repository
        self._event_repository = event_repository
        self._market_data = market_data
        self._epoch = epoch
        self._clock = clock or ledger_utc_now
        self._max_workers = max_workers

    def historical_refresh(self, symbol: str) -> int:
        """Fetch and store bars from the day after the latest stored bar through yesterday.

        Args:
            symbol: Asset symbol.

        Returns:
            int: Number of inserted rows.

        Raises:
            ValueError: Raised when symbol is blank.
            ExternalServiceError: Raised when the upstream source fails.
            StorageError: Raised when the store fails.
        """

        if not isinstance(symbol, str) or not symbol.strip():
            raise ValueError("symbol must not be blank")
        normalized_symbol = symbol.strip()

        with self._locks.lock_acquire(LOCK_NAMESPACE_ASSET_DAY, normalized_symbol):
            latest = self._repository.db_asset_day_latest(normalized_symbol)
            since = self._epoch if latest is None else latest.time.date() + timedelta(days=1)
            until = self._clock().date() - timedelta(days=1)
            if since > until:
                logger.debug("Historical data up to date symbol=%s", normalized_symbol)
                return 0

            since_start = datetime.combine(since, _DAY_START)
            bars = self._historical_fetch(normalized_symbol, since_start, datetime.combine(until, _DAY_END))
            asset_days = [
                _historical_to_asset_day(normalized_symbol, bar) for bar in bars if bar.time >= since_start
            ]
            if not asset_days:
                return 0

            inserted_count = self._repository.db_asset_day_insert_many(asset_days)

        logger.info(
            "Refreshed historical data symbol=%s since=%s until=%s inserted=%d",
            normalized_symbol,
            since,
            until,
            inserted_count,
        )
        return inserted_count

    def historical_refresh_all(self, portfolio_id: str | None = None) -> HistoricalRefreshSummary:
        """Refresh every in-scope symbol concurrently.

        A failing symbol is logged and reported without aborting its siblings.

        Args:
            portfolio_id: Optional portfolio scope.

        Returns:
            HistoricalRefreshSummary: Inserted counts and failures per symbol.

        Raises:
            StorageError: Raised when listing symbols fails.
        """

        symbols = self._event_repository.db_event_distinct_symbols(portfolio_id)
        summary = HistoricalRefreshSummary()
        if not symbols:
            return summary

        with ThreadPoolExecutor(
            max_workers=min(self._max_workers, len(symbols)),
            thread_name_prefix="historical-refresh",
        ) as executor:
            futures = {symbol: executor.submit(self.historical_refresh, symbol) for symbol in symbols}

        for symbol, future in futures.items():
            error = future.exception()
            if error is None:
                summary.inserted_by_symbol[symbol] = future.result()
            else:
                logger.warning("Historical refresh failed symbol=%s: %s", symbol, error)
                summary.failures[symbol] = str(error)
        return summary

    def historical_get_for_day_with_fallback(self, symbol: str, day: date) -> AssetDay:
        """Return the most recent stored bar in `[day-7d 00:00, day 23:59:59]`.

        Args:
            symbol: Asset symbol.
            day: Target calendar date.

        Returns:
            AssetDay: Latest stored bar in the window.

        Raises:
            NotFound: Raised when no bar exists in the window.
            StorageError: Raised when the store read fails.
        """

        asset_day = self._repository.db_asset_day_latest_in_range(
            symbol,
            datetime.combine(day - timedelta(days=_FALLBACK_WINDOW_DAYS), _DAY_START),
            datetime.combine(day, _DAY_END),
        )
        if asset_day is None:
            raise NotFound(f"no historical data for symbol={symbol} on or before {day.isoformat()}")
        return asset_day

    def historical_current_price_for_symbol(self, symbol: str) -> Decimal | None:
        """Return the close of today's bar straight from the upstream source.

        Args:
            symbol: Asset symbol.

        Returns:
            Decimal | None: Latest close today, or None when unavailable.

        Raises:
            RuntimeError: This method logs failures instead of raising.
        """

        today = self._clock().date()
        try:
            bars = self._market_data.adapter_fetch_daily_bars(
                symbol,
                datetime.combine(today, _DAY_START),
                datetime.combine(today, _DAY_END),
            )
        except MarketDataEmptyRangeError:
            bars = []
        except (MarketDataAdapterError, ValueError) as error:
            logger.warning("Current price fetch failed symbol=%s: %s", symbol, error)
            return None

        if not bars:
            logger.info("Current price unavailable symbol=%s date=%s", symbol, today)
            return None
        return bars[-1].close

    def _historical_fetch(self, symbol: str, start: datetime, end: datetime) -> list[MarketDataBar]:
        try:
            return self._market_data.adapter_fetch_daily_bars(symbol, start, end)
        except MarketDataEmptyRangeError:
            logger.info("No historical data in range symbol=%s start=%s end=%s", symbol, start, end)
            return []
        except MarketDataAdapterError as error:
            raise ExternalServiceError(
                f"{self._market_data.adapter_source_name()} failed for symbol={symbol}: {error}"
            ) from error


def _historical_to_asset_day(symbol: str, bar: MarketDataBar) -> AssetDay:
    return AssetDay(
        symbol=symbol,
        time=bar.time,
        open=bar.open,
        high=bar.high,
        low=bar.low,
        close=bar.close,
        volume=bar.volume,
    )


__all__ = ["HistoricalPriceService", "HistoricalRefreshSummary"]
