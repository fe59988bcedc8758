"""Database service for daily price-bar persistence."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from wallet_ledger.db.interfaces import AssetDayRepositoryPort
from wallet_ledger.domain import AssetDay, StorageError, domain_normalize_utc_timestamp, domain_parse_decimal


class SQLAlchemyAssetDayStore(AssetDayRepositoryPort):
    """SQLAlchemy implementation for `asset_day` rows.

    Inserts rely on the `(symbol, bar_time)` unique key with `ON CONFLICT DO
    NOTHING`, so overlapping refreshes never duplicate a trading day.
    """

    _ASSET_DAY_SELECT_COLUMNS = "SELECT symbol, bar_time, open, high, low, close, volume FROM asset_day "

    _ASSET_DAY_LATEST_QUERY = (
        _ASSET_DAY_SELECT_COLUMNS + "WHERE symbol = :symbol ORDER BY bar_time desc LIMIT 1"
    )

    _ASSET_DAY_LATEST_IN_RANGE_QUERY = (
        _ASSET_DAY_SELECT_COLUMNS
        + "WHERE symbol = :symbol "
        + "AND bar_time >= CAST(:range_start AS timestamptz) AND bar_time <= CAST(:range_end AS timestamptz) "
        + "ORDER BY bar_time desc LIMIT 1"
    )

    _ASSET_DAY_INSERT_QUERY = (
        "INSERT INTO asset_day (symbol, bar_time, open, high, low, close, volume) VALUES ("
        ":symbol, CAST(:bar_time AS timestamptz), CAST(:open AS numeric), CAST(:high AS numeric), "
        "CAST(:low AS numeric), CAST(:close AS numeric), CAST(:volume AS bigint)"
        ") ON CONFLICT (symbol, bar_time) DO NOTHING"
    )

    def __init__(self, engine: Engine):
        """Initialize asset-day store.

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

    def db_asset_day_latest(self, symbol: str) -> AssetDay | None:
        """Fetch the most recent stored bar for a symbol.

        Args:
            symbol: Asset symbol.

        Returns:
            AssetDay | None: Latest bar, or None when the symbol has no bars.

        Raises:
            StorageError: Raised when the database read fails.
        """

        return self._db_asset_day_fetch_one(self._ASSET_DAY_LATEST_QUERY, {"symbol": symbol})

    def db_asset_day_insert_many(self, bars: list[AssetDay]) -> int:
        """Insert bars, skipping any that already exist for their day.

        Args:
            bars: Bars to insert.

        Returns:
            int: Number of inserted rows.

        Raises:
            ValueError: Raised when bars is None.
            StorageError: Raised when persistence fails.
        """

        if bars is None:
            raise ValueError("bars must not be None")
        if len(bars) == 0:
            return 0

        inserted_count = 0
        try:
            with self._engine.begin() as connection:
                for bar in bars:
                    result = connection.execute(
                        text(self._ASSET_DAY_INSERT_QUERY),
                        {
                            "symbol": bar.symbol,
                            "bar_time": bar.time,
                            "open": str(bar.open),
                            "high": str(bar.high),
                            "low": str(bar.low),
                            "close": str(bar.close),
                            "volume": bar.volume,
                        },
                    )
                    inserted_count += max(result.rowcount, 0)
        except SQLAlchemyError as error:
            raise StorageError(f"asset_day insert failed for symbol={bars[0].symbol}") from error

        return inserted_count

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

        return self._db_asset_day_fetch_one(
            self._ASSET_DAY_LATEST_IN_RANGE_QUERY,
            {"symbol": symbol, "range_start": start, "range_end": end},
        )

    def _db_asset_day_fetch_one(self, query: str, parameters: dict[str, Any]) -> AssetDay | None:
        try:
            with self._engine.connect() as connection:
                row = connection.execute(text(query), parameters).mappings().first()
        except SQLAlchemyError as error:
            raise StorageError(f"asset_day read failed for symbol={parameters['symbol']}") from error

        if row is None:
            return None
        return AssetDay(
            symbol=row["symbol"],
            time=domain_normalize_utc_timestamp(row["bar_time"], "asset_day.bar_time"),
            open=domain_parse_decimal(row["open"], "asset_day.open"),
            high=domain_parse_decimal(row["high"], "asset_day.high"),
            low=domain_parse_decimal(row["low"], "asset_day.low"),
            close=domain_parse_decimal(row["close"], "asset_day.close"),
            volume=int(row["volume"]),
        )


__all__ = ["SQLAlchemyAssetDayStore"]
