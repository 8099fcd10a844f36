from sqlalchemy.dialects.postgresql import insert as pg_insert

from dashboard.repository.sql import SqlRepository


class PostgresRepository(SqlRepository):
    """Full relational backend; the schema is managed by Alembic migrations"""

    def insert(self, table):
        return pg_insert(table)
