"""SQLAlchemy-backed client.

Any database SQLAlchemy can reach becomes a tinyrecord connection by
naming an explicit driver in the URL (``postgresql+psycopg2://...``,
``mssql+pyodbc://...``).  Statements go through ``text()``, which already
speaks ``:name`` placeholders once colons inside quoted literals are
escaped, and the dialect is chosen from the engine's
dialect name.

Install with::

    pip install tinyrecord[sqlalchemy]
"""

from __future__ import annotations

from typing import Any

from tinyrecord.errors import ConfigError, DatabaseConnectionError
from tinyrecord.logging import get_logger

from .base import DBAPIClient, escape_literal_colons
from .types import DatabaseType, DataSource

logger = get_logger(__name__)


class _BufferedResult:
    """Cursor-shaped view of a SQLAlchemy result, read before the commit."""

    def __init__(self, result: Any) -> None:
        if result.returns_rows:
            self.description = [(key,) for key in result.keys()]
            self._rows = [tuple(row) for row in result.fetchall()]
            self.lastrowid = None
        else:
            self.description = None
            self._rows = []
            self.lastrowid = result.lastrowid
        self.rowcount = result.rowcount
        result.close()

    def fetchall(self) -> list[tuple]:
        rows, self._rows = self._rows, []
        return rows

    def fetchone(self) -> tuple | None:
        return self._rows.pop(0) if self._rows else None

    def close(self) -> None:
        self._rows = []


class SQLAlchemyClient(DBAPIClient):
    """Client on one SQLAlchemy ``Connection``.

    ``driver_name`` is the engine's dialect name (``sqlite``,
    ``postgresql``, ``mysql``, ``mssql`` ...) once connected.
    """

    paramstyle = "named"

    def __init__(self, source: DataSource | str, *, engine_options: dict[str, Any] | None = None, **options: Any):
        if isinstance(source, str):
            source = DataSource(db_type=DatabaseType.SQLALCHEMY, url=source)
        if not source.url:
            raise ConfigError("SQLAlchemy client requires a database URL")
        super().__init__(source, **options)
        self._engine_options = dict(engine_options or {})
        self._engine: Any = None
        self.driver_name = source.url.split("://", 1)[0].split("+", 1)[0].lower()
        self.driver_errors = ()

    def _connect(self) -> Any:
        try:
            from sqlalchemy import create_engine
            from sqlalchemy.exc import SQLAlchemyError
        except ImportError:
            raise ConfigError(
                "sqlalchemy is required for driver URLs. Install with: pip install sqlalchemy"
            ) from None

        self.driver_errors = (SQLAlchemyError,)
        try:
            self._engine = create_engine(self._source.url, **self._engine_options)
            conn = self._engine.connect()
        except SQLAlchemyError as e:
            raise DatabaseConnectionError(
                f"Failed to connect via SQLAlchemy: {e}",
                cause=e,
            ) from e
        self.driver_name = self._engine.dialect.name
        return conn

    @property
    def engine(self) -> Any:
        self.connect()
        return self._engine

    def execute_raw(self, sql: str, params: dict[str, Any]) -> Any:
        from sqlalchemy import text

        self._last_insert_id = None
        conn = self.raw
        try:
            result = _BufferedResult(conn.execute(text(escape_literal_colons(sql)), params))
        except Exception:
            if not self._in_transaction:
                conn.rollback()
            raise
        if not self._in_transaction:
            conn.commit()
        if result.lastrowid:
            self._last_insert_id = result.lastrowid
        return result

    def last_insert_id(self) -> Any:
        """Driver-reported id; PostgreSQL engines ask ``lastval()``."""
        if self._last_insert_id is not None or self.driver_name != "postgresql" or self._conn is None:
            return self._last_insert_id

        from sqlalchemy import text

        try:
            value = self._conn.execute(text("SELECT lastval()")).scalar()
        except self.driver_errors as e:
            logger.debug("lastval_unavailable", error=str(e))
            if not self._in_transaction:
                self._conn.rollback()
            return None
        if not self._in_transaction:
            self._conn.commit()
        return value

    def close(self) -> None:
        super().close()
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None


__all__ = [
    "SQLAlchemyClient",
]
