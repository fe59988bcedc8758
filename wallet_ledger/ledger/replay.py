"""Average-cost ledger replay primitives.

Pure functions folding ordered events into position states. Nothing here
touches storage, clocks or locks; the position service supplies all inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal

from wallet_ledger.domain import (
    ZERO,
    DecodeError,
    Event,
    InvalidLedgerState,
    OperationKind,
    Position,
    RecentOperation,
    SplitKind,
    StockOperation,
    StockSplit,
)


@dataclass(frozen=True)
class ReplayOutcome:
    """Output payload of one replay run.

    Attributes:
        position: Final accumulator state stamped with the replay time.
        references: Seed checkpoint (when present), one state per applied event, then the current state.
        seeded: Whether the first reference is an already persisted checkpoint.
        consumed_event_count: Number of events read past the checkpoint, applied or skipped.
    """

    position: Position
    references: tuple[Position, ...]
    seeded: bool
    consumed_event_count: int


@dataclass
class _PositionAccumulator:
    """Mutable internal position state used during replay."""

    symbol: str
    portfolio_id: str | None
    quantity: Decimal
    cost_basis: Decimal
    average_price: Decimal
    current_price: Decimal
    gain: Decimal
    realized: Decimal

    def accumulator_to_position(
        self,
        time: datetime,
        recent_operations: tuple[RecentOperation, ...] = (),
    ) -> Position:
        return Position(
            symbol=self.symbol,
            portfolio_id=self.portfolio_id,
            time=time,
            quantity=self.quantity,
            cost_basis=self.cost_basis,
            average_price=self.average_price,
            current_price=self.current_price,
            gain=self.gain,
            realized=self.realized,
            recent_operations=recent_operations,
        )


def ledger_replay_events(
    symbol: str,
    portfolio_id: str | None,
    seed: Position | None,
    events: list[Event],
    now: datetime,
) -> ReplayOutcome:
    """Fold events on top of an optional checkpoint.

    Args:
        symbol: Asset symbol being replayed.
        portfolio_id: Portfolio scope of the replay.
        seed: Latest persisted snapshot, or None to start from an empty position.
            Its recent operations are carried by the first reference as still unreported.
        events: Events strictly after the checkpoint, ascending by time.
        now: Replay time used for the current reference.

    Returns:
        ReplayOutcome: Final position and the ordered reference states.

    Raises:
        ValueError: Raised when symbol is blank or events belong to another symbol.
        InvalidLedgerState: Raised when a sale exceeds the held quantity.
    """

    if not symbol or not symbol.strip():
        raise ValueError("symbol must not be blank")
    if events is None:
        raise ValueError("events must not be None")

    accumulator = _PositionAccumulator(
        symbol=symbol,
        portfolio_id=portfolio_id,
        quantity=ZERO if seed is None else seed.quantity,
        cost_basis=ZERO if seed is None else seed.cost_basis,
        average_price=ZERO if seed is None else seed.average_price,
        current_price=ZERO if seed is None else seed.current_price,
        gain=ZERO if seed is None else seed.gain,
        realized=ZERO if seed is None else seed.realized,
    )

    references: list[Position] = []
    if seed is not None:
        references.append(
            accumulator.accumulator_to_position(time=seed.time, recent_operations=seed.recent_operations)
        )

    for event in events:
        if event.symbol != symbol:
            raise ValueError(f"event symbol={event.symbol} does not match replay symbol={symbol}")
        if isinstance(event.detail, StockOperation) and event.detail.quantity == ZERO:
            continue

        recent_operation = ledger_apply_event(accumulator, event)
        references.append(
            accumulator.accumulator_to_position(
                time=event.time,
                recent_operations=() if recent_operation is None else (recent_operation,),
            )
        )

    position = accumulator.accumulator_to_position(time=now)
    references.append(position)

    return ReplayOutcome(
        position=position,
        references=tuple(references),
        seeded=seed is not None,
        consumed_event_count=len(events),
    )


def ledger_apply_event(accumulator: _PositionAccumulator, event: Event) -> RecentOperation | None:
    """Apply one event to the accumulator in place.

    Args:
        accumulator: Mutable replay state.
        event: Event to apply.

    Returns:
        RecentOperation | None: Reported operation for stock operations, None for splits.

    Raises:
        InvalidLedgerState: Raised on oversell.
        DecodeError: Raised for an unknown event detail type.
    """

    detail = event.detail
    if isinstance(detail, StockOperation):
        _ledger_apply_operation(accumulator, detail, event)
        recent_operation = RecentOperation(
            time=event.time,
            kind=detail.kind,
            price=detail.price,
            quantity=detail.quantity,
        )
    elif isinstance(detail, StockSplit):
        _ledger_apply_split(accumulator, detail)
        recent_operation = None
    else:
        raise DecodeError(f"unsupported event detail type={type(detail).__name__}")

    if accumulator.quantity != ZERO and accumulator.cost_basis != ZERO:
        accumulator.average_price = accumulator.cost_basis / accumulator.quantity
    return recent_operation


def ledger_mark_to_price(position: Position, price: Decimal, time: datetime) -> Position:
    """Revalue a position state at a market price.

    Args:
        position: State to revalue.
        price: Market price.
        time: Timestamp of the revalued state.

    Returns:
        Position: Copy with price, gain and time replaced.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return replace(
        position,
        time=time,
        current_price=price,
        gain=price * position.quantity - position.cost_basis,
    )


def ledger_apply_current_price(position: Position, price: Decimal | None) -> Position:
    """Apply the live price to an open position.

    Closed positions and unavailable prices keep their carried values.

    Args:
        position: Replayed position.
        price: Current price, or None when unavailable.

    Returns:
        Position: Revalued copy, or the input unchanged.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    if price is None or position.quantity <= ZERO:
        return position
    return ledger_mark_to_price(position, price, position.time)


def _ledger_apply_operation(accumulator: _PositionAccumulator, operation: StockOperation, event: Event) -> None:
    quantity = operation.quantity
    if operation.kind is OperationKind.PURCHASE:
        accumulator.cost_basis += operation.price * quantity
        accumulator.quantity += quantity
        return

    if accumulator.quantity <= ZERO or quantity > accumulator.quantity:
        raise InvalidLedgerState(
            f"sale of {quantity} exceeds held quantity {accumulator.quantity} at {event.time.isoformat()}",
            symbol=event.symbol,
        )

    # Average cost before this sale.
    cost_price = accumulator.cost_basis / accumulator.quantity
    if quantity == accumulator.quantity:
        accumulator.cost_basis = ZERO
    else:
        accumulator.cost_basis -= cost_price * quantity
    accumulator.quantity -= quantity
    accumulator.realized += quantity * (operation.price - cost_price)


def _ledger_apply_split(accumulator: _PositionAccumulator, split: StockSplit) -> None:
    if split.kind is SplitKind.SPLIT:
        accumulator.quantity *= split.factor
        accumulator.average_price /= split.factor
    else:
        accumulator.quantity /= split.factor
        accumulator.average_price *= split.factor


__all__ = [
    "ReplayOutcome",
    "ledger_apply_current_price",
    "ledger_apply_event",
    "ledger_mark_to_price",
    "ledger_replay_events",
]
