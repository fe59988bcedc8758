"""Function-level application facade over the ledger engine.

This module defines the operations an outer surface (HTTP router, scheduler,
CLI) calls; it owns no transport concerns.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from wallet_ledger.config import AppSettings
from wallet_ledger.db import DatabaseHealthPort
from wallet_ledger.domain import HealthStatus, Position
from wallet_ledger.ledger import (
    PerformanceSnapshot,
    PositionFanoutService,
    PositionLedgerService,
    performance_compute_weekly,
)
from wallet_ledger.pricing import HistoricalPriceService, HistoricalRefreshSummary, LivePriceCache


class WalletLedgerApplication:
    """Composed runtime services exposed as plain method calls."""

    def __init__(
        self,
        settings: AppSettings,
        db_health_service: DatabaseHealthPort,
        historical_service: HistoricalPriceService,
        position_service: PositionLedgerService,
        fanout_service: PositionFanoutService,
        price_cache: LivePriceCache,
    ):
        """Initialize application facade.

        Args:
            settings: Validated application settings used for runtime metadata.
            db_health_service: Database health service.
            historical_service: Daily price backfill and lookup service.
            position_service: Per-symbol position service.
            fanout_service: All-symbol position service.
            price_cache: Live price cache.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when a dependency is None.
        """

        dependencies = {
            "settings": settings,
            "db_health_service": db_health_service,
            "historical_service": historical_service,
            "position_service": position_service,
            "fanout_service": fanout_service,
            "price_cache": price_cache,
        }
        for dependency_name, dependency in dependencies.items():
            if dependency is None:
                raise ValueError(f"{dependency_name} must not be None")

        self.settings = settings
        self._db_health_service = db_health_service
        self._historical_service = historical_service
        self._position_service = position_service
        self._fanout_service = fanout_service
        self._price_cache = price_cache

    def check_health(self) -> HealthStatus:
        """Return database connectivity status.

        Raises:
            ConnectionError: Raised when the database cannot be reached.
        """

        return self._db_health_service.db_check_health()

    def refresh_historicals(self, portfolio_id: str | None = None) -> HistoricalRefreshSummary:
        """Backfill daily bars for every in-scope symbol."""

        return self._historical_service.historical_refresh_all(portfolio_id)

    def refresh_historical_for_symbol(self, symbol: str) -> int:
        """Backfill daily bars for one symbol and return the inserted row count."""

        return self._historical_service.historical_refresh(symbol)

    def compute_position(self, symbol: str, portfolio_id: str | None = None) -> Position:
        """Compute the current position of one symbol; snapshots persist in the background."""

        return self._position_service.ledger_compute_position(symbol, portfolio_id)

    def compute_all_positions(self, portfolio_id: str | None = None) -> list[Position]:
        """Compute open positions of a scope sorted by symbol with display ids."""

        return self._fanout_service.ledger_compute_all_positions(portfolio_id)

    def get_position_history(
        self,
        portfolio_id: str | None = None,
        since: datetime | None = None,
    ) -> dict[date, list[Position]]:
        """Return persisted snapshots of a scope grouped by UTC date."""

        return self._position_service.ledger_get_position_history(portfolio_id, since)

    def get_portfolio_performance(self, portfolio_id: str | None = None) -> list[PerformanceSnapshot]:
        """Return the cash-flow-adjusted weekly performance index of a scope."""

        return performance_compute_weekly(self._position_service.ledger_get_position_history(portfolio_id))

    def get_live_price(self, symbol: str) -> Decimal | None:
        """Return the latest streamed price of a symbol, or None."""

        return self._price_cache.price_cache_get_current_price(symbol)

    def start_price_stream(self) -> bool:
        """Start the live price consumer once; returns True when started by this call."""

        return self._price_cache.price_cache_start()

    def shutdown(self, wait_for_tasks: bool = True) -> None:
        """Stop the position service executors."""

        self._position_service.ledger_shutdown(wait_for_tasks=wait_for_tasks)


__all__ = ["WalletLedgerApplication"]
