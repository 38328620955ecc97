"""MySQL client.

Uses ``mysql.connector`` from the ``mysql-connector-python`` package,
which reads ``%(name)s`` placeholders from a dict.

Install the driver::

    pip install mysql-connector-python
    # or:  pip install tinyrecord[mysql]

The import is guarded: if ``mysql.connector`` is not installed a
:class:`~tinyrecord.errors.ConfigError` is raised at ``connect()`` time.
"""

from __future__ import annotations

from typing import Any

from tinyrecord.errors import ConfigError, DatabaseConnectionError

from .base import DBAPIClient
from .types import DataSource


class MySQLClient(DBAPIClient):
    """MySQL / MariaDB client on a single ``mysql.connector`` connection."""

    driver_name = "mysql"
    paramstyle = "pyformat"

    def __init__(
        self,
        source: DataSource,
        *,
        charset: str = "utf8mb4",
        connect_timeout: int = 10,
        **options: Any,
    ):
        super().__init__(source, **options)
        self._charset = charset
        self._connect_timeout = connect_timeout
        self.driver_errors = ()

    def _connect(self) -> Any:
        try:
            import mysql.connector
        except ImportError:
            raise ConfigError(
                "mysql-connector-python is required for MySQL. "
                "Install with: pip install mysql-connector-python"
            ) from None

        self.driver_errors = (mysql.connector.Error,)
        source = self._source
        try:
            return mysql.connector.connect(
                host=source.host or "localhost",
                port=source.port or 3306,
                database=source.database,
                user=source.username,
                password=source.password,
                charset=source.params.get("charset", self._charset),
                connection_timeout=self._connect_timeout,
                autocommit=False,
            )
        except mysql.connector.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to MySQL: {e}",
                cause=e,
            ) from e

    def _new_cursor(self) -> Any:
        # unbuffered cursors refuse a new statement while rows are pending
        return self.raw.cursor(buffered=True)


__all__ = [
    "MySQLClient",
]
