"""Database health service implementations for connectivity and schema checks."""

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from wallet_ledger.domain import HealthStatus

from .interfaces import DatabaseHealthPort

_LEDGER_TABLES = ("event", "position_snapshot", "asset_day")


class SQLAlchemyDatabaseHealthService(DatabaseHealthPort):
    """Database health service verifying connectivity and the ledger tables."""

    _TABLE_PRESENCE_QUERY = "SELECT to_regclass(:table_name) IS NOT NULL AS present"

    def __init__(self, engine: Engine):
        """Initialize database health service.

        Args:
            engine: SQLAlchemy engine used for connectivity checks.

        Raises:
            ValueError: Raised when engine is None.
        """

        if engine is None:
            raise ValueError("engine must not be None")
        self._engine = engine

    def db_connection_label(self) -> str:
        """Return the target database URL with the password masked."""

        return self._engine.url.render_as_string(hide_password=True)

    def db_check_health(self) -> HealthStatus:
        """Verify connectivity and report ledger tables missing a migration.

        Returns:
            HealthStatus: `ok` when every ledger table exists, `degraded` otherwise.

        Raises:
            ConnectionError: Raised when connectivity check fails.
        """

        try:
            with self._engine.connect() as connection:
                missing_tables = [
                    table_name
                    for table_name in _LEDGER_TABLES
                    if not connection.execute(text(self._TABLE_PRESENCE_QUERY), {"table_name": table_name}).scalar()
                ]
        except SQLAlchemyError as error:
            raise ConnectionError(f"database connectivity check failed target={self.db_connection_label()}") from error

        if missing_tables:
            return HealthStatus(
                status="degraded",
                detail=f"missing ledger tables: {', '.join(missing_tables)}; run `alembic upgrade head`",
            )
        return HealthStatus(status="ok", detail=f"database connectivity verified target={self.db_connection_label()}")
