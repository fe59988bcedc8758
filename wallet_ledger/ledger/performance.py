"""Cash-flow-adjusted portfolio performance over weekly snapshot history."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal

from wallet_ledger.domain import ZERO, OperationKind, Position

from .snapshot_dates import snapshot_is_weekly_time

PERFORMANCE_REFERENCE_BASE = Decimal("100")


@dataclass(frozen=True)
class PerformanceSnapshot:
    """Portfolio performance on one snapshot date.

    Attributes:
        name: Snapshot date in ISO format.
        reference: Index value starting at 100.
        percentual_gain: Reference minus 100.
    """

    name: str
    reference: Decimal
    percentual_gain: Decimal


@dataclass(frozen=True)
class _AggregatePosition:
    cost_basis: Decimal
    current_value: Decimal
    operations_adjustment: Decimal


def performance_compute_weekly(history: dict[date, list[Position]]) -> list[PerformanceSnapshot]:
    """Compute a performance index that ignores money moved in or out.

    Only weekly (Friday) rows take part. Rows of one symbol on one date
    collapse into the latest of them, reporting every operation those rows
    reported. A symbol without a row on a date keeps its previous weekly
    state with no operations.

    Purchases and sales reported on a date are removed from that date's value
    before comparing it with the previous date, so the index tracks price
    movement only and can be compared with market indexes.

    Args:
        history: Snapshots grouped by date.

    Returns:
        list[PerformanceSnapshot]: One entry per weekly date in ascending order.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    snapshots: list[PerformanceSnapshot] = []
    previous: _AggregatePosition | None = None
    reference = PERFORMANCE_REFERENCE_BASE
    carried_by_symbol: dict[str, Position] = {}

    for snapshot_date in sorted(history):
        weekly_rows = [position for position in history[snapshot_date] if snapshot_is_weekly_time(position.time)]
        if not weekly_rows:
            continue

        rows_by_symbol = {
            symbol: replace(position, recent_operations=())
            for symbol, position in carried_by_symbol.items()
        }
        rows_by_symbol.update(_performance_collapse_by_symbol(weekly_rows))
        carried_by_symbol = rows_by_symbol
        aggregate = _performance_aggregate(list(rows_by_symbol.values()))

        percent_change = ZERO
        if previous is not None and previous.current_value != ZERO:
            adjusted_current_value = aggregate.current_value - aggregate.operations_adjustment
            percent_change = (adjusted_current_value - previous.current_value) / previous.current_value

        reference += abs(reference) * percent_change
        snapshots.append(
            PerformanceSnapshot(
                name=snapshot_date.isoformat(),
                reference=reference,
                percentual_gain=reference - PERFORMANCE_REFERENCE_BASE,
            )
        )
        previous = aggregate

    return snapshots


def _performance_collapse_by_symbol(positions: list[Position]) -> dict[str, Position]:
    collapsed: dict[str, Position] = {}
    for position in sorted(positions, key=lambda row: row.time):
        earlier = collapsed.get(position.symbol)
        if earlier is None:
            collapsed[position.symbol] = position
        else:
            collapsed[position.symbol] = replace(
                position,
                recent_operations=earlier.recent_operations + position.recent_operations,
            )
    return collapsed


def _performance_aggregate(positions: list[Position]) -> _AggregatePosition:
    cost_basis = ZERO
    current_value = ZERO
    operations_adjustment = ZERO
    for position in positions:
        cost_basis += position.cost_basis
        current_value += position.current_price * position.quantity
        for operation in position.recent_operations:
            adjustment = operation.quantity * operation.price
            if operation.kind is OperationKind.PURCHASE:
                operations_adjustment += adjustment
            else:
                operations_adjustment -= adjustment
    return _AggregatePosition(
        cost_basis=cost_basis,
        current_value=current_value,
        operations_adjustment=operations_adjustment,
    )


__all__ = ["PERFORMANCE_REFERENCE_BASE", "PerformanceSnapshot", "performance_compute_weekly"]
