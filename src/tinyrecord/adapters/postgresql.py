"""PostgreSQL client."""

from __future__ import annotations

from typing import Any

from tinyrecord.errors import ConfigError, DatabaseConnectionError
from tinyrecord.logging import get_logger

from .base import DBAPIClient
from .types import DataSource

logger = get_logger(__name__)


class PostgreSQLClient(DBAPIClient):
    """
    PostgreSQL client on psycopg2.

    psycopg2 is imported at connect time; install it with
    ``pip install tinyrecord[postgresql]``.
    """

    driver_name = "pgsql"
    paramstyle = "pyformat"

    def __init__(self, source: DataSource, *, connect_timeout: int = 10, **options: Any):
        super().__init__(source, **options)
        self._connect_timeout = connect_timeout
        self.driver_errors = ()

    def _connect(self) -> Any:
        try:
            import psycopg2
        except ImportError:
            raise ConfigError(
                "psycopg2 is required for PostgreSQL. Install with: pip install psycopg2-binary"
            ) from None

        self.driver_errors = (psycopg2.Error,)
        source = self._source
        try:
            return psycopg2.connect(
                host=source.host or "localhost",
                port=source.port or 5432,
                dbname=source.database,
                user=source.username,
                password=source.password,
                connect_timeout=self._connect_timeout,
                **source.params,
            )
        except psycopg2.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to PostgreSQL: {e}",
                cause=e,
            ) from e

    def last_insert_id(self) -> Any:
        """``lastval()`` of the session; ``None`` before any sequence was used."""
        if self._conn is None:
            return None
        cursor = self._conn.cursor()
        try:
            cursor.execute("SELECT lastval()")
            row = cursor.fetchone()
        except self.driver_errors as e:
            logger.debug("lastval_unavailable", error=str(e))
            if not self._in_transaction:
                self._conn.rollback()
            return None
        finally:
            cursor.close()
        return row[0] if row else None


__all__ = [
    "PostgreSQLClient",
]
