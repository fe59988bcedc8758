"""Weekly snapshot calendar helpers.

Snapshots are taken on Fridays. Planning is pure: it decides which Fridays
get a row, from which reference state, and which operations each row reports.
Prices are resolved later by the snapshot generator.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from wallet_ledger.domain import Position, RecentOperation

_FRIDAY_WEEKDAY = 4


@dataclass(frozen=True)
class PlannedSnapshot:
    """One weekly snapshot awaiting its Friday price.

    Attributes:
        state: Reference state in effect on the Friday.
        friday: Snapshot calendar date.
        recent_operations: Operations first reported by this snapshot.
    """

    state: Position
    friday: date
    recent_operations: tuple[RecentOperation, ...]


@dataclass(frozen=True)
class SnapshotPlan:
    """Planned weekly snapshots for one reference list.

    Attributes:
        snapshots: Planned Friday rows in ascending date order.
        pending_operations: Operations not reported by any planned Friday row.
    """

    snapshots: tuple[PlannedSnapshot, ...]
    pending_operations: tuple[RecentOperation, ...]


def snapshot_find_fridays_between(start: date, end_exclusive: date) -> list[date]:
    """List Fridays in `[start, end_exclusive)`.

    Args:
        start: First candidate date.
        end_exclusive: Exclusive upper bound.

    Returns:
        list[date]: Fridays in ascending order.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    fridays: list[date] = []
    current = start
    while current < end_exclusive:
        if current.weekday() == _FRIDAY_WEEKDAY:
            fridays.append(current)
            current += timedelta(days=7)
        else:
            current += timedelta(days=1)
    return fridays


def snapshot_is_weekly_time(value: datetime) -> bool:
    """Return whether a snapshot time falls on a weekly (Friday) row date."""

    return value.date().weekday() == _FRIDAY_WEEKDAY


def snapshot_plan_weekly(references: tuple[Position, ...], seeded: bool, today: date) -> SnapshotPlan:
    """Plan weekly rows between consecutive reference states.

    For each pair `(prev, next)` the Fridays from `prev`'s date up to, but
    excluding, `next`'s date take `prev`'s state. A seeded first reference was
    persisted already, so its own date is skipped. After the pairs, Fridays
    continue from the last reference through yesterday. Operations of a
    reference are reported by the first Friday row at or after it.

    Args:
        references: Ordered reference states.
        seeded: Whether the first reference is a persisted checkpoint.
        today: Current UTC date.

    Returns:
        SnapshotPlan: Planned rows and operations still unreported.

    Raises:
        ValueError: Raised when references is empty.
    """

    if not references:
        raise ValueError("references must not be empty")

    snapshots: list[PlannedSnapshot] = []
    pending: list[RecentOperation] = []

    def _plan_range(state: Position, start: date, end_exclusive: date) -> None:
        for friday in snapshot_find_fridays_between(start, end_exclusive):
            snapshots.append(PlannedSnapshot(state=state, friday=friday, recent_operations=tuple(pending)))
            pending.clear()

    for index in range(len(references) - 1):
        previous, following = references[index], references[index + 1]
        pending.extend(previous.recent_operations)
        _plan_range(previous, _snapshot_range_start(previous, index == 0 and seeded), following.time.date())

    last = references[-1]
    pending.extend(last.recent_operations)
    _plan_range(last, _snapshot_range_start(last, len(references) == 1 and seeded), today)

    return SnapshotPlan(snapshots=tuple(snapshots), pending_operations=tuple(pending))


def _snapshot_range_start(reference: Position, is_checkpoint: bool) -> date:
    reference_date = reference.time.date()
    return reference_date + timedelta(days=1) if is_checkpoint else reference_date


__all__ = [
    "PlannedSnapshot",
    "SnapshotPlan",
    "snapshot_find_fridays_between",
    "snapshot_is_weekly_time",
    "snapshot_plan_weekly",
]
