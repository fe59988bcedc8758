"""Job layer package for workflow orchestration boundaries."""

from .interfaces import JobExecutionResult, JobOrchestratorPort
from .refresh_orchestrator import (
	JOB_DAILY_REFRESH,
	JOB_HISTORICALS_REFRESH,
	JOB_POSITIONS_REFRESH,
	RefreshJobOrchestrator,
)

__all__ = [
	"JOB_DAILY_REFRESH",
	"JOB_HISTORICALS_REFRESH",
	"JOB_POSITIONS_REFRESH",
	"JobExecutionResult",
	"JobOrchestratorPort",
	"RefreshJobOrchestrator",
]
