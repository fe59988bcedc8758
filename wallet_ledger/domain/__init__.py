"""Domain models and error taxonomy used across application layer boundaries."""

from .errors import (
	DecodeError,
	ExternalServiceError,
	InvalidLedgerState,
	NotFound,
	StorageError,
	WalletLedgerError,
)
from .event_parsing import (
	EVENT_TYPE_STOCK_OPERATION,
	EVENT_TYPE_STOCK_SPLIT,
	domain_decode_recent_operations,
	domain_encode_recent_operations,
	domain_event_decode,
	domain_normalize_utc_timestamp,
	domain_parse_decimal,
)
from .models import (
	ZERO,
	AssetDay,
	Event,
	EventDetail,
	HealthStatus,
	OperationKind,
	Position,
	RecentOperation,
	SplitKind,
	StockOperation,
	StockSplit,
	domain_serialize_position,
)

__all__ = [
	"ZERO",
	"AssetDay",
	"Event",
	"EventDetail",
	"HealthStatus",
	"OperationKind",
	"Position",
	"RecentOperation",
	"SplitKind",
	"StockOperation",
	"StockSplit",
	"domain_serialize_position",
	"WalletLedgerError",
	"StorageError",
	"DecodeError",
	"NotFound",
	"ExternalServiceError",
	"InvalidLedgerState",
	"EVENT_TYPE_STOCK_OPERATION",
	"EVENT_TYPE_STOCK_SPLIT",
	"domain_event_decode",
	"domain_decode_recent_operations",
	"domain_encode_recent_operations",
	"domain_normalize_utc_timestamp",
	"domain_parse_decimal",
]
