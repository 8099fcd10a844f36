from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import QueuePool, StaticPool

from dashboard.logging_config import get_logger

logger = get_logger(__name__)

# SQLAlchemy Base for models
Base = declarative_base()


def is_sqlite_url(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def create_sql_engine(database_url: str, statement_timeout_ms: Optional[int] = None) -> Engine:
    """
    Create the SQLAlchemy engine for a database URL.

    PostgreSQL gets a connection pool; SQLite gets a single shared
    connection for in-memory databases and explicit BEGIN handling so that
    the transaction boundaries are the ones the repository asks for.

    Args:
        database_url: SQLAlchemy database URL
        statement_timeout_ms: Optional per-statement timeout (PostgreSQL only)

    Returns:
        Configured engine
    """
    if is_sqlite_url(database_url):
        in_memory = ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///")
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool if in_memory else None,
            echo=False
        )
        _configure_sqlite(engine)
        logger.info(f"SQLite engine created (in_memory={in_memory})")
        return engine

    connect_args = {}
    if statement_timeout_ms:
        connect_args["options"] = f"-c statement_timeout={statement_timeout_ms}"

    engine = create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
        connect_args=connect_args,
        echo=False
    )
    logger.info("PostgreSQL engine created")
    return engine


def _configure_sqlite(engine: Engine) -> None:
    # pysqlite's implicit transactions would otherwise hide our BEGIN
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_tables(engine: Engine) -> None:
    """Create every table known to the models (used for SQLite and tests)"""
    # models must be imported so they register on Base.metadata
    import dashboard.models  # noqa: F401

    Base.metadata.create_all(engine)


def check_database_connection(engine: Engine) -> bool:
    """Check if database connection is healthy"""
    try:
        with engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False
