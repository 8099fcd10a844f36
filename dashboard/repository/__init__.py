from dashboard.config import Settings
from dashboard.db import create_sql_engine, is_sqlite_url
from dashboard.logging_config import get_logger
from dashboard.repository.base import Repository, storage_errors
from dashboard.repository.locking import LockedRepository, ReadWriteLock
from dashboard.repository.postgresql import PostgresRepository
from dashboard.repository.sql import SqlRepository
from dashboard.repository.sqlite import SqliteRepository

logger = get_logger(__name__)


def create_repository(settings: Settings) -> Repository:
    """
    Build the repository selected by the settings.

    SQLite gets its tables created on the fly and, unless ``REPOSITORY_LOCK``
    says otherwise, is wrapped in a ``LockedRepository``.
    """
    if settings.STORAGE_BACKEND == "datastore":
        from google.cloud import datastore
        from dashboard.repository.datastore import DatastoreRepository

        client = datastore.Client(
            project=settings.DATASTORE_PROJECT_ID,
            namespace=settings.DATASTORE_NAMESPACE
        )
        repository = DatastoreRepository(client)
        embedded = False
    elif settings.STORAGE_BACKEND == "sql":
        engine = create_sql_engine(settings.DATABASE_URL, settings.SQL_STATEMENT_TIMEOUT_MS)
        if is_sqlite_url(settings.DATABASE_URL):
            repository = SqliteRepository(engine)
            repository.create_tables()
            embedded = True
        else:
            repository = PostgresRepository(engine)
            embedded = False
    else:
        raise ValueError(f"Unknown storage backend: {settings.STORAGE_BACKEND}")

    use_lock = settings.REPOSITORY_LOCK
    if use_lock is None:
        use_lock = embedded
    if use_lock:
        repository = LockedRepository(repository, timeout=settings.LOCK_TIMEOUT_SECONDS)

    logger.info(f"Using {type(repository).__name__} storage ({settings.STORAGE_BACKEND})")
    return repository


__all__ = [
    "Repository",
    "storage_errors",
    "LockedRepository",
    "ReadWriteLock",
    "SqlRepository",
    "PostgresRepository",
    "SqliteRepository",
    "create_repository",
]
