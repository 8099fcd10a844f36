from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from dashboard.db import create_tables
from dashboard.logging_config import get_logger
from dashboard.repository.sql import SqlRepository

logger = get_logger(__name__)


class SqliteRepository(SqlRepository):
    """
    Single file embedded backend.

    SQLite allows a single writer, and an in-memory database shares one
    connection between threads, so this backend is meant to be wrapped in a
    ``LockedRepository``. Transactions are real SQLite transactions, started
    with an explicit BEGIN (see ``dashboard.db``).
    """

    def insert(self, table):
        return sqlite_insert(table)

    def create_tables(self) -> None:
        create_tables(self.engine)
        logger.info("SQLite tables ready")
