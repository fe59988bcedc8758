"""Database layer package for all SQL and persistence boundaries."""

from .event_store import SQLAlchemyEventStore
from .health import SQLAlchemyDatabaseHealthService
from .historical_store import SQLAlchemyAssetDayStore
from .interfaces import (
	AssetDayRepositoryPort,
	DatabaseHealthPort,
	EventRepositoryPort,
	PositionSnapshotRepositoryPort,
)
from .position_store import SQLAlchemyPositionStore
from .session import db_create_engine

__all__ = [
	"AssetDayRepositoryPort",
	"DatabaseHealthPort",
	"EventRepositoryPort",
	"PositionSnapshotRepositoryPort",
	"SQLAlchemyAssetDayStore",
	"SQLAlchemyDatabaseHealthService",
	"SQLAlchemyEventStore",
	"SQLAlchemyPositionStore",
	"db_create_engine",
]
