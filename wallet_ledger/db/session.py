"""Database engine utilities.

This module centralizes database connectivity primitives to enforce the db-layer
boundary for all SQLAlchemy usage.
"""

from sqlalchemy import Engine, create_engine


def db_create_engine(database_url: str, pool_size: int = 5, max_overflow: int = 10) -> Engine:
    """Create the SQLAlchemy engine for application database access.

    Position fan-out, background snapshot tasks and price refreshes share
    this engine from worker threads, so the pool is sized by the caller.

    Args:
        database_url: SQLAlchemy database URL.
        pool_size: Persistent connections kept in the pool.
        max_overflow: Extra connections opened under burst load.

    Returns:
        Engine: Configured SQLAlchemy engine.

    Raises:
        ValueError: Raised when the database URL is blank or pool bounds are invalid.
    """

    if not database_url.strip():
        raise ValueError("database_url must not be blank")
    if pool_size < 1 or max_overflow < 0:
        raise ValueError("pool_size must be >= 1 and max_overflow must be >= 0")

    return create_engine(database_url, pool_pre_ping=True, pool_size=pool_size, max_overflow=max_overflow)
