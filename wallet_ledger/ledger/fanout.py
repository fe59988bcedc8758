"""Concurrent position computation across every in-scope symbol."""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import replace

from wallet_ledger.db import EventRepositoryPort
from wallet_ledger.domain import ZERO, Position

from .interfaces import PositionCalculatorPort

logger = logging.getLogger(__name__)


class PositionFanoutService:
    """Compute open positions for all symbols of a scope in parallel."""

    def __init__(
        self,
        calculator: PositionCalculatorPort,
        event_repository: EventRepositoryPort,
        max_workers: int = 8,
    ):
        """Initialize fan-out service.

        Args:
            calculator: Per-symbol position calculator.
            event_repository: Event repository used to list symbols.
            max_workers: Upper bound of concurrent computations.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when a dependency or worker bound is invalid.
        """

        if calculator is None:
            raise ValueError("calculator must not be None")
        if event_repository is None:
            raise ValueError("event_repository must not be None")
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self._calculator = calculator
        self._event_repository = event_repository
        self._max_workers = max_workers

    def ledger_compute_all_positions(self, portfolio_id: str | None = None) -> list[Position]:
        """Compute open positions sorted by symbol with display ids 1..n.

        The first failing symbol fails the whole batch; computations already
        running finish in their own threads.

        Args:
            portfolio_id: Optional portfolio scope.

        Returns:
            list[Position]: Open positions ordered by symbol.

        Raises:
            StorageError: Raised when listing symbols or a computation fails in the store.
            DecodeError: Raised when a stored event is malformed.
            InvalidLedgerState: Raised when a symbol's replay oversells.
        """

        symbols = self._event_repository.db_event_distinct_symbols(portfolio_id)
        if not symbols:
            return []

        logger.info("Computing positions symbols=%d portfolio_id=%s", len(symbols), portfolio_id)
        with ThreadPoolExecutor(
            max_workers=min(self._max_workers, len(symbols)),
            thread_name_prefix="ledger-fanout",
        ) as executor:
            futures = [
                executor.submit(self._calculator.ledger_compute_position, symbol, portfolio_id) for symbol in symbols
            ]
            done, not_done = wait(futures, return_when=FIRST_EXCEPTION)
            for future in futures:
                if future in done and future.exception() is not None:
                    for pending in not_done:
                        pending.cancel()
                    raise future.exception()
            positions = [future.result() for future in futures]

        open_positions = sorted(
            (position for position in positions if position.quantity > ZERO),
            key=lambda position: position.symbol,
        )
        return [replace(position, position_id=index) for index, position in enumerate(open_positions, start=1)]


__all__ = ["PositionFanoutService"]
