"""Weekly position snapshot pricing and persistence service."""
# pylint: disable=too-few-public-methods

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, time, timezone
from decimal import Decimal

from wallet_ledger.db import PositionSnapshotRepositoryPort
from wallet_ledger.domain import NotFound, Position

from .interfaces import HistoricalPricePort
from .replay import ledger_mark_to_price
from .snapshot_dates import SnapshotPlan

logger = logging.getLogger(__name__)

_MISSING_PRICE_SNAPSHOT_TIME = time(12, 0, tzinfo=timezone.utc)
_FRIDAY_START_TIME = time(0, 0, tzinfo=timezone.utc)


class SnapshotGenerator:
    """Price planned Friday rows and append them to the snapshot store."""

    def __init__(self, repository: PositionSnapshotRepositoryPort, historical: HistoricalPricePort):
        """Initialize snapshot generator dependencies.

        Args:
            repository: DB-layer position snapshot repository.
            historical: Daily price lookup service.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when a dependency is invalid.
        """

        if repository is None:
            raise ValueError("repository must not be None")
        if historical is None:
            raise ValueError("historical must not be None")
        self._repository = repository
        self._historical = historical

    def ledger_snapshot_generate(
        self,
        symbol: str,
        plan: SnapshotPlan,
        initial_price: Decimal,
        current_row: Position | None,
    ) -> int:
        """Persist planned Friday rows and the optional current row.

        A Friday without a stored bar in the preceding week is stamped at
        12:00 UTC and keeps the last known price. A row priced by an earlier
        fallback bar is stamped at the start of its Friday, so every row falls
        on the Friday it stands for. Row times never precede the state they
        were derived from.

        Args:
            symbol: Asset symbol.
            plan: Planned Friday rows.
            initial_price: Price carried into the first row when its bar is missing.
            current_row: Priced current state to append last, or None.

        Returns:
            int: Number of inserted rows.

        Raises:
            StorageError: Raised when a lookup or insert fails; earlier rows stay persisted.
        """

        if plan is None:
            raise ValueError("plan must not be None")

        logger.info("Saving position snapshots symbol=%s planned=%d", symbol, len(plan.snapshots))
        last_price = initial_price
        inserted_count = 0

        for planned in plan.snapshots:
            try:
                asset_day = self._historical.historical_get_for_day_with_fallback(symbol, planned.friday)
                snapshot_time = asset_day.time
                last_price = asset_day.close
            except NotFound:
                logger.warning("Failed to find historical data for symbol=%s on %s", symbol, planned.friday)
                snapshot_time = datetime.combine(planned.friday, _MISSING_PRICE_SNAPSHOT_TIME)

            snapshot_time = max(
                snapshot_time,
                datetime.combine(planned.friday, _FRIDAY_START_TIME),
                planned.state.time,
            )
            snapshot = replace(
                ledger_mark_to_price(planned.state, last_price, snapshot_time),
                recent_operations=planned.recent_operations,
            )
            logger.debug("Inserting snapshot %s", snapshot)
            self._repository.db_position_insert(snapshot)
            inserted_count += 1

        if current_row is not None:
            logger.debug("Inserting current snapshot %s", current_row)
            self._repository.db_position_insert(current_row)
            inserted_count += 1

        logger.info("Done saving position snapshots symbol=%s inserted=%d", symbol, inserted_count)
        return inserted_count


__all__ = ["SnapshotGenerator"]
