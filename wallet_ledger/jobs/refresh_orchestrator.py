"""Job-layer orchestrator for daily price refresh and position recompute."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from wallet_ledger.ledger import PositionFanoutService, PositionLedgerService
from wallet_ledger.pricing import HistoricalPriceService

from .interfaces import JobExecutionResult, JobOrchestratorPort

logger = logging.getLogger(__name__)

JOB_HISTORICALS_REFRESH = "historicals_refresh"
JOB_POSITIONS_REFRESH = "positions_refresh"
JOB_DAILY_REFRESH = "daily_refresh"


class RefreshJobOrchestrator(JobOrchestratorPort):
    """Concrete job orchestrator for the scheduled refresh workflows."""

    def __init__(
        self,
        historical_service: HistoricalPriceService,
        fanout_service: PositionFanoutService,
        position_service: PositionLedgerService,
        background_timeout_seconds: float | None = 300.0,
    ):
        """Initialize refresh orchestrator dependencies.

        Args:
            historical_service: Daily price backfill service.
            fanout_service: All-symbol position computation service.
            position_service: Position service whose snapshot tasks are awaited.
            background_timeout_seconds: Bound for waiting on snapshot persistence.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when dependencies are invalid.
        """

        if historical_service is None:
            raise ValueError("historical_service must not be None")
        if fanout_service is None:
            raise ValueError("fanout_service must not be None")
        if position_service is None:
            raise ValueError("position_service must not be None")

        self._historical_service = historical_service
        self._fanout_service = fanout_service
        self._position_service = position_service
        self._background_timeout_seconds = background_timeout_seconds

    def job_supported_names(self) -> tuple[str, ...]:
        """Return supported job names.

        Returns:
            tuple[str, ...]: Supported job names.

        Raises:
            RuntimeError: This implementation does not raise runtime errors.
        """

        return (JOB_HISTORICALS_REFRESH, JOB_POSITIONS_REFRESH, JOB_DAILY_REFRESH)

    def job_execute(self, job_name: str) -> JobExecutionResult:
        """Execute one refresh workflow.

        Step failures are logged and reported through the result status; they
        are not raised.

        Args:
            job_name: Name of job to execute.

        Returns:
            JobExecutionResult: Final execution status payload.

        Raises:
            ValueError: Raised when job name is unsupported.
        """

        normalized_job_name = job_name.strip()
        if normalized_job_name not in self.job_supported_names():
            raise ValueError(f"unsupported job_name={normalized_job_name}")

        started_at = datetime.now(timezone.utc)
        if normalized_job_name == JOB_HISTORICALS_REFRESH:
            steps = [self._job_refresh_historicals()]
        elif normalized_job_name == JOB_POSITIONS_REFRESH:
            steps = [self._job_refresh_positions()]
        else:
            steps = [self._job_refresh_historicals(), self._job_refresh_positions()]

        status = "success" if all(step["status"] == "success" for step in steps) else "failed"
        duration_ms = int((datetime.now(timezone.utc) - started_at).total_seconds() * 1000)
        logger.info("Job finished job_name=%s status=%s duration_ms=%d", normalized_job_name, status, duration_ms)
        return JobExecutionResult(
            job_name=normalized_job_name,
            status=status,
            details={"steps": steps, "duration_ms": duration_ms},
        )

    def _job_refresh_historicals(self) -> dict[str, Any]:
        try:
            summary = self._historical_service.historical_refresh_all()
        except Exception as error:
            logger.exception("Historical refresh failed")
            return _job_failed_step(JOB_HISTORICALS_REFRESH, error)

        return {
            "step": JOB_HISTORICALS_REFRESH,
            "status": "failed" if summary.failures else "success",
            "inserted": summary.inserted_total,
            "failures": dict(summary.failures),
        }

    def _job_refresh_positions(self) -> dict[str, Any]:
        failures_before = len(self._position_service.ledger_background_failures())
        try:
            positions = self._fanout_service.ledger_compute_all_positions()
        except Exception as error:
            logger.exception("Position refresh failed")
            return _job_failed_step(JOB_POSITIONS_REFRESH, error)

        finished = self._position_service.ledger_wait_for_background(timeout=self._background_timeout_seconds)
        new_failures = self._position_service.ledger_background_failures()[failures_before:]
        if not finished:
            logger.warning("Snapshot persistence still running after %ss", self._background_timeout_seconds)

        return {
            "step": JOB_POSITIONS_REFRESH,
            "status": "success" if finished and not new_failures else "failed",
            "open_positions": len(positions),
            "snapshot_failures": [str(error) for error in new_failures],
        }


def _job_failed_step(step_name: str, error: Exception) -> dict[str, Any]:
    return {
        "step": step_name,
        "status": "failed",
        "error_type": type(error).__name__,
        "error_message": str(error),
    }


__all__ = [
    "JOB_DAILY_REFRESH",
    "JOB_HISTORICALS_REFRESH",
    "JOB_POSITIONS_REFRESH",
    "RefreshJobOrchestrator",
]
