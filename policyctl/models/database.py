"""
Database setup and session management.
"""

from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import QueuePool

from policyctl.config import DatabaseConfig

# Modes that still commit durably under WAL
SYNCHRONOUS_MODES = {"NORMAL", "FULL", "EXTRA"}


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


def get_database_url(path: str | Path) -> str:
    """Get the SQLite URL for a database file path."""
    return f"sqlite:///{Path(path)}"


def _ensure_sqlite_parent_dir(path: str | Path) -> None:
    """Ensure parent directory exists for SQLite database."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def _install_pragmas(engine: Engine, config: DatabaseConfig) -> None:
    """Apply journal, sync and foreign key pragmas on every new connection."""

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute(f"PRAGMA synchronous={config.synchronous.upper()}")
            cursor.execute("PRAGMA foreign_keys=ON")
        finally:
            cursor.close()


def create_db_engine(path: str | Path, config: DatabaseConfig | None = None) -> Engine:
    """Create a database engine holding a single pooled connection.

    SQLite's file locking does not cooperate with a connection pool, so the
    engine never opens more than one connection and recycles it after the
    configured idle time.
    """
    config = config or DatabaseConfig()
    if str(config.synchronous).upper() not in SYNCHRONOUS_MODES:
        raise ValueError(
            f"Unsupported synchronous mode {config.synchronous!r}, "
            f"expected one of {sorted(SYNCHRONOUS_MODES)}"
        )
    _ensure_sqlite_parent_dir(path)
    engine = create_engine(
        get_database_url(path),
        echo=config.echo,
        poolclass=QueuePool,
        pool_size=1,
        max_overflow=0,
        pool_recycle=config.pool_recycle,
    )
    _install_pragmas(engine, config)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory."""
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Initialize the database, creating missing tables."""
    Base.metadata.create_all(engine)
