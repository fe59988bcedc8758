"""Per-symbol position computation with background snapshot persistence."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal

from wallet_ledger.db import EventRepositoryPort, PositionSnapshotRepositoryPort
from wallet_ledger.domain import Position

from .interfaces import HistoricalPricePort, PositionCalculatorPort, UtcClock, ledger_utc_now
from .locks import LOCK_NAMESPACE_EVENT, LockCoordinator, LockToken
from .replay import ReplayOutcome, ledger_apply_current_price, ledger_replay_events
from .snapshot_dates import SnapshotPlan, snapshot_is_weekly_time, snapshot_plan_weekly
from .snapshot_service import SnapshotGenerator

logger = logging.getLogger(__name__)


class PositionLedgerService(PositionCalculatorPort):
    """Replay ledger events into positions and persist weekly snapshots.

    The `(event, symbol)` lock is held from the start of a computation until
    its background snapshot task finishes, so two computations of the same
    symbol never interleave their checkpoint reads and snapshot writes.
    """

    def __init__(
        self,
        locks: LockCoordinator,
        event_repository: EventRepositoryPort,
        position_repository: PositionSnapshotRepositoryPort,
        historical: HistoricalPricePort,
        snapshot_generator: SnapshotGenerator | None = None,
        clock: UtcClock | None = None,
        price_max_workers: int = 4,
        background_max_workers: int = 4,
    ):
        """Initialize position ledger service.

        Args:
            locks: Process lock coordinator.
            event_repository: Read-only event repository.
            position_repository: Append-only snapshot repository.
            historical: Price lookup service.
            snapshot_generator: Optional generator; built from the repositories when omitted.
            clock: Optional UTC clock.
            price_max_workers: Worker bound for current-price fetches.
            background_max_workers: Worker bound for snapshot persistence tasks.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when a dependency or worker bound is invalid.
        """

        if locks is None:
            raise ValueError("locks must not be None")
        if event_repository is None:
            raise ValueError("event_repository must not be None")
        if position_repository is None:
            raise ValueError("position_repository must not be None")
        if historical is None:
            raise ValueError("historical must not be None")
        if price_max_workers < 1 or background_max_workers < 1:
            raise ValueError("worker bounds must be >= 1")

        self._locks = locks
        self._event_repository = event_repository
        self._position_repository = position_repository
        self._historical = historical
        self._snapshot_generator = snapshot_generator or SnapshotGenerator(position_repository, historical)
        self._clock = clock or ledger_utc_now
        self._price_executor = ThreadPoolExecutor(max_workers=price_max_workers, thread_name_prefix="ledger-price")
        self._background_executor = ThreadPoolExecutor(
            max_workers=background_max_workers,
            thread_name_prefix="ledger-snapshot",
        )
        self._background_guard = threading.Lock()
        self._background_pending: set[Future] = set()
        self._background_failures: list[BaseException] = []

    def ledger_compute_position(self, symbol: str, portfolio_id: str | None = None) -> Position:
        """Compute the current position of one symbol.

        Returns as soon as the replay finishes and the current price is known;
        snapshot persistence continues in the background.

        Args:
            symbol: Asset symbol.
            portfolio_id: Optional portfolio scope.

        Returns:
            Position: Current position with operations not yet reported by a weekly row.

        Raises:
            ValueError: Raised when symbol is blank.
            StorageError: Raised when the store fails.
            DecodeError: Raised when a stored event is malformed.
            InvalidLedgerState: Raised on oversell.
        """

        if not isinstance(symbol, str) or not symbol.strip():
            raise ValueError("symbol must not be blank")
        normalized_symbol = symbol.strip()

        token = self._locks.lock_acquire(LOCK_NAMESPACE_EVENT, normalized_symbol)
        try:
            price_future = self._price_executor.submit(self._ledger_fetch_current_price, normalized_symbol)
            now = self._clock()
            seed = self._position_repository.db_position_latest(normalized_symbol, portfolio_id)
            if seed is not None and snapshot_is_weekly_time(seed.time):
                # Weekly rows already reported their operations.
                seed = replace(seed, recent_operations=())
            events = self._event_repository.db_event_list_for_symbol(
                symbol=normalized_symbol,
                portfolio_id=portfolio_id,
                after=None if seed is None else seed.time,
                through=now,
            )
            outcome = ledger_replay_events(normalized_symbol, portfolio_id, seed, events, now)
            plan = snapshot_plan_weekly(outcome.references, outcome.seeded, now.date())
            self._ledger_dispatch_snapshots(token, outcome, plan, price_future)
        except BaseException:
            token.lock_release()
            raise

        logger.info(
            "Computed position symbol=%s portfolio_id=%s events=%d",
            normalized_symbol,
            portfolio_id,
            outcome.consumed_event_count,
        )
        position = ledger_apply_current_price(outcome.position, price_future.result())
        return replace(position, recent_operations=plan.pending_operations)

    def ledger_get_position_history(
        self,
        portfolio_id: str | None = None,
        since: datetime | None = None,
    ) -> dict[date, list[Position]]:
        """Group persisted snapshots of one scope by UTC date.

        Args:
            portfolio_id: Optional portfolio scope.
            since: Optional inclusive lower time bound.

        Returns:
            dict[date, list[Position]]: Snapshots keyed by date in ascending order.

        Raises:
            StorageError: Raised when the store read fails.
        """

        history: dict[date, list[Position]] = {}
        for position in self._position_repository.db_position_list_history(portfolio_id, since):
            history.setdefault(position.time.date(), []).append(position)
        return {snapshot_date: history[snapshot_date] for snapshot_date in sorted(history)}

    def ledger_background_failures(self) -> list[BaseException]:
        """Return failures raised by finished snapshot tasks, oldest first."""

        with self._background_guard:
            return list(self._background_failures)

    def ledger_wait_for_background(self, timeout: float | None = None) -> bool:
        """Wait for snapshot tasks submitted so far.

        Args:
            timeout: Optional wait bound in seconds.

        Returns:
            bool: True when every task finished within the timeout.

        Raises:
            RuntimeError: This method does not raise runtime errors.
        """

        with self._background_guard:
            pending = list(self._background_pending)
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def ledger_shutdown(self, wait_for_tasks: bool = True) -> None:
        """Stop accepting work and optionally wait for running tasks."""

        self._background_executor.shutdown(wait=wait_for_tasks)
        self._price_executor.shutdown(wait=wait_for_tasks)

    def _ledger_dispatch_snapshots(
        self,
        token: LockToken,
        outcome: ReplayOutcome,
        plan: SnapshotPlan,
        price_future: Future,
    ) -> None:
        future = self._background_executor.submit(self._ledger_persist_snapshots, token, outcome, plan, price_future)
        with self._background_guard:
            self._background_pending.add(future)
        future.add_done_callback(self._ledger_on_background_done)

    def _ledger_persist_snapshots(
        self,
        token: LockToken,
        outcome: ReplayOutcome,
        plan: SnapshotPlan,
        price_future: Future,
    ) -> int:
        with token:
            try:
                current_row = None
                if outcome.consumed_event_count > 0:
                    current_row = replace(
                        ledger_apply_current_price(outcome.position, price_future.result()),
                        recent_operations=plan.pending_operations,
                    )
                return self._snapshot_generator.ledger_snapshot_generate(
                    symbol=outcome.position.symbol,
                    plan=plan,
                    initial_price=outcome.references[0].current_price,
                    current_row=current_row,
                )
            except Exception as error:
                with self._background_guard:
                    self._background_failures.append(error)
                logger.warning(
                    "Failure saving position snapshots symbol=%s: %r",
                    outcome.position.symbol,
                    error,
                    exc_info=error,
                )
                raise

    def _ledger_on_background_done(self, future: Future) -> None:
        with self._background_guard:
            self._background_pending.discard(future)

    def _ledger_fetch_current_price(self, symbol: str) -> Decimal | None:
        try:
            return self._historical.historical_current_price_for_symbol(symbol)
        except Exception as error:
            logger.warning("Current price unavailable symbol=%s: %r", symbol, error)
            return None


__all__ = ["PositionLedgerService"]
