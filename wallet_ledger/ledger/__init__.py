"""Ledger layer package for position replay, weekly snapshots and performance."""

from .fanout import PositionFanoutService
from .interfaces import HistoricalPricePort, PositionCalculatorPort, UtcClock, ledger_utc_now
from .locks import LOCK_NAMESPACE_ASSET_DAY, LOCK_NAMESPACE_EVENT, LockCoordinator, LockToken
from .performance import PERFORMANCE_REFERENCE_BASE, PerformanceSnapshot, performance_compute_weekly
from .position_service import PositionLedgerService
from .replay import ReplayOutcome, ledger_apply_current_price, ledger_mark_to_price, ledger_replay_events
from .snapshot_dates import (
    PlannedSnapshot,
    SnapshotPlan,
    snapshot_find_fridays_between,
    snapshot_is_weekly_time,
    snapshot_plan_weekly,
)
from .snapshot_service import SnapshotGenerator

__all__ = [
	"HistoricalPricePort",
	"LOCK_NAMESPACE_ASSET_DAY",
	"LOCK_NAMESPACE_EVENT",
	"LockCoordinator",
	"LockToken",
	"PERFORMANCE_REFERENCE_BASE",
	"PerformanceSnapshot",
	"PlannedSnapshot",
	"PositionCalculatorPort",
	"PositionFanoutService",
	"PositionLedgerService",
	"ReplayOutcome",
	"SnapshotGenerator",
	"SnapshotPlan",
	"UtcClock",
	"ledger_apply_current_price",
	"ledger_mark_to_price",
	"ledger_replay_events",
	"ledger_utc_now",
	"performance_compute_weekly",
	"snapshot_find_fridays_between",
	"snapshot_is_weekly_time",
	"snapshot_plan_weekly",
]
