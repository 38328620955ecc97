"""SQLite client."""

from __future__ import annotations

import sqlite3
from typing import Any

from tinyrecord.errors import DatabaseConnectionError

from .base import DBAPIClient
from .types import DatabaseType, DataSource


class SQLiteClient(DBAPIClient):
    """
    SQLite client on the built-in sqlite3 module.

    sqlite3 understands ``:name`` placeholders natively, so statements
    are passed through unchanged. Suitable for:
    - Development and testing
    - Single-process applications
    """

    driver_name = "sqlite"
    paramstyle = "named"
    driver_errors = (sqlite3.Error,)

    def __init__(
        self,
        source: DataSource | str = ":memory:",
        *,
        readonly: bool = False,
        timeout: float = 5.0,
        foreign_keys: bool = True,
        raise_errors: bool = False,
        **options: Any,
    ):
        if isinstance(source, str):
            source = DataSource(db_type=DatabaseType.SQLITE, path=source)
        super().__init__(source, raise_errors=raise_errors, **options)
        self._readonly = readonly
        self._timeout = timeout
        self._foreign_keys = foreign_keys

    def _connect(self) -> sqlite3.Connection:
        path = self._source.path or ":memory:"
        uri = path.startswith("file:")

        try:
            conn = sqlite3.connect(
                path,
                timeout=self._timeout,
                check_same_thread=False,
                uri=uri,
            )
            if self._foreign_keys:
                conn.execute("PRAGMA foreign_keys = ON")
            if self._readonly:
                conn.execute("PRAGMA query_only = ON")
        except sqlite3.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to SQLite: {e}",
                cause=e,
            ) from e
        return conn


__all__ = [
    "SQLiteClient",
]
