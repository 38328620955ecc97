"""DB-API 2.0 client base class.

Manifesto:
    Every DB-API driver shares the same lifecycle (connect/close), the
    same cursor protocol and the same transaction verbs.  The differences
    that matter to tinyrecord are small: how the driver spells a named
    placeholder, which exception class it raises, and how it reports the
    last generated id.  ``DBAPIClient`` implements the
    :class:`~tinyrecord.protocols.DatabaseClient` protocol once and lets
    the backend modules fill in those differences.

Features:
    - Abstract ``_connect()`` returning a DB-API connection
    - ``:name`` placeholders rewritten to the driver paramstyle
    - Autocommit outside explicit transactions
    - ``transaction()`` context manager
    - Dialect-driven literal quoting

Tags:
    database, adapter-pattern, dbapi, tinyrecord
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from tinyrecord.dialect import Dialect, get_dialect
from tinyrecord.errors import QueryError, TransactionError
from tinyrecord.logging import get_logger

from .types import DataSource

logger = get_logger(__name__)

# String literals and quoted identifiers are copied verbatim; "::" is a
# PostgreSQL cast, not a placeholder.
_TOKEN_RE = re.compile(
    r"""
      (?P<literal>'(?:[^']|'')*')
    | (?P<ident>"(?:[^"]|"")*"|`[^`]*`)
    | (?P<cast>::)
    | :(?P<name>[A-Za-z_][A-Za-z0-9_]*)
    | (?P<percent>%)
    """,
    re.VERBOSE,
)


def normalize_params(params: Mapping[str, Any] | None) -> dict[str, Any]:
    """Strip the optional leading ``:`` from parameter names."""
    if not params:
        return {}
    return {str(key).lstrip(":"): value for key, value in params.items()}


def convert_placeholders(sql: str, paramstyle: str) -> str:
    """Rewrite ``:name`` placeholders for the driver's paramstyle.

    ``named`` leaves the SQL untouched.  ``pyformat`` turns ``:name`` into
    ``%(name)s`` and doubles every literal ``%``.

    >>> convert_placeholders("a = :a AND b LIKE '50%'", "pyformat")
    "a = %(a)s AND b LIKE '50%%'"
    """
    if paramstyle == "named":
        return sql
    if paramstyle != "pyformat":
        raise ValueError(f"Unsupported paramstyle: {paramstyle}")

    def _replace(match: re.Match[str]) -> str:
        if match.group("name") is not None:
            return f"%({match.group('name')})s"
        if match.group("percent") is not None:
            return "%%"
        return match.group(0).replace("%", "%%")

    return _TOKEN_RE.sub(_replace, sql)


def escape_literal_colons(sql: str) -> str:
    r"""Backslash-escape colons inside string literals and quoted identifiers.

    For engines that parse ``:name`` binds themselves, such as SQLAlchemy
    ``text()``.

    >>> escape_literal_colons("name IN (':smile') AND id = :id")
    "name IN ('\\:smile') AND id = :id"
    """

    def _replace(match: re.Match[str]) -> str:
        if match.group("literal") is not None or match.group("ident") is not None:
            return match.group(0).replace(":", "\\:")
        return match.group(0)

    return _TOKEN_RE.sub(_replace, sql)


class DBAPIStatement:
    """
    Statement prepared on a :class:`DBAPIClient`.

    DB-API drivers have no separate prepare step; the statement keeps the
    SQL and owns one cursor that carries the result set between
    ``execute`` and the ``fetch_*`` calls.
    """

    def __init__(self, client: DBAPIClient, sql: str) -> None:
        self.client = client
        self.sql = sql
        self._cursor: Any = None
        self._columns: list[str] = []
        self._error: Exception | None = None

    @property
    def error(self) -> Exception | None:
        return self._error

    def execute(self, params: Mapping[str, Any] | None = None) -> bool:
        params = normalize_params(params)
        self.close()
        self._error = None
        try:
            self._cursor = self.client.execute_raw(self.sql, params)
        except self.client.driver_errors as e:
            self._error = e
            logger.warning(
                "statement_failed",
                driver=self.client.driver_name,
                sql=self.sql,
                error=str(e),
            )
            if self.client.raise_errors:
                raise QueryError(f"Statement failed: {e}", cause=e).with_context(sql=self.sql) from e
            return False

        description = getattr(self._cursor, "description", None) or []
        self._columns = [desc[0] for desc in description]
        logger.debug(
            "statement_executed",
            driver=self.client.driver_name,
            sql=self.sql,
            params=sorted(params),
        )
        return True

    def _row_to_dict(self, row: Any) -> dict[str, Any]:
        if isinstance(row, Mapping):
            return dict(row)
        return dict(zip(self._columns, row, strict=False))

    def fetch_all(self) -> list[dict[str, Any]]:
        if self._cursor is None or not self._columns:
            return []
        return [self._row_to_dict(row) for row in self._cursor.fetchall()]

    def fetch_one(self) -> dict[str, Any] | None:
        if self._cursor is None or not self._columns:
            return None
        row = self._cursor.fetchone()
        return self._row_to_dict(row) if row is not None else None

    def fetch_column(self) -> list[Any]:
        return [next(iter(row.values())) for row in self.fetch_all()]

    def fetch_scalar(self) -> Any:
        row = self.fetch_one()
        if row is None:
            return None
        return next(iter(row.values()))

    def row_count(self) -> int:
        if self._cursor is None:
            return 0
        count = self._cursor.rowcount
        return count if count is not None and count >= 0 else 0

    def close(self) -> None:
        if self._cursor is not None:
            try:
                self._cursor.close()
            except self.client.driver_errors:
                logger.debug("cursor_close_failed", sql=self.sql)
            self._cursor = None
            self._columns = []

    def __repr__(self) -> str:
        return f"DBAPIStatement({self.sql!r})"


class DBAPIClient(ABC):
    """
    Abstract base class for DB-API 2.0 backed clients.

    Subclasses implement :meth:`_connect` and set :attr:`driver_name`,
    :attr:`paramstyle` and :attr:`driver_errors`.
    """

    driver_name: str = "unknown"
    paramstyle: str = "named"
    driver_errors: tuple[type[Exception], ...] = ()

    def __init__(self, source: DataSource, *, raise_errors: bool = False, **options: Any):
        self._source = source
        self._options = options
        self.raise_errors = raise_errors
        self._conn: Any = None
        self._in_transaction = False
        self._last_insert_id: Any = None

    @property
    def dialect(self) -> Dialect:
        """SQL dialect for this client's driver."""
        return get_dialect(self.driver_name)

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    @property
    def source(self) -> DataSource:
        return self._source

    @abstractmethod
    def _connect(self) -> Any:
        """Open and return a DB-API connection."""
        ...

    def connect(self) -> None:
        """Establish the connection (idempotent)."""
        if self._conn is None:
            self._conn = self._connect()
            logger.info("client_connected", driver=self.driver_name)

    def close(self) -> None:
        """Close the connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self._in_transaction = False
            logger.info("client_closed", driver=self.driver_name)

    @property
    def raw(self) -> Any:
        """The underlying DB-API connection (connects on first access)."""
        self.connect()
        return self._conn

    # -- Statement execution -----------------------------------------------

    def prepare(self, sql: str) -> DBAPIStatement:
        return DBAPIStatement(self, sql)

    def _new_cursor(self) -> Any:
        return self.raw.cursor()

    def execute_raw(self, sql: str, params: dict[str, Any]) -> Any:
        """Run ``sql`` on a fresh cursor; commits when no transaction is open."""
        self._last_insert_id = None
        cursor = self._new_cursor()
        try:
            if params:
                cursor.execute(convert_placeholders(sql, self.paramstyle), params)
            else:
                cursor.execute(sql)
        except Exception:
            cursor.close()
            if not self._in_transaction:
                self._conn.rollback()
            raise
        if not self._in_transaction:
            self._conn.commit()
        lastrowid = getattr(cursor, "lastrowid", None)
        if lastrowid:
            self._last_insert_id = lastrowid
        return cursor

    def exec(self, sql: str) -> int | None:
        """Execute raw SQL without parameters; return affected rows or ``None``."""
        stmt = self.prepare(sql)
        if not stmt.execute():
            return None
        count = stmt.row_count()
        stmt.close()
        return count

    # -- Literals / ids ----------------------------------------------------

    def quote(self, value: Any) -> str:
        return self.dialect.quote_literal(value)

    def last_insert_id(self) -> Any:
        return self._last_insert_id

    # -- Transactions ------------------------------------------------------

    def begin_transaction(self) -> None:
        if self._in_transaction:
            raise TransactionError("There is already an active transaction")
        self.connect()
        self._in_transaction = True

    def commit(self) -> None:
        if not self._in_transaction:
            raise TransactionError("There is no active transaction")
        self._conn.commit()
        self._in_transaction = False

    def rollback(self) -> None:
        if not self._in_transaction:
            raise TransactionError("There is no active transaction")
        self._conn.rollback()
        self._in_transaction = False

    def in_transaction(self) -> bool:
        return self._in_transaction

    @contextmanager
    def transaction(self) -> Iterator[DBAPIClient]:
        """Commit on success, roll back on any exception."""
        self.begin_transaction()
        try:
            yield self
            self.commit()
        except Exception:
            self.rollback()
            raise

    def __enter__(self) -> DBAPIClient:
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


__all__ = [
    "DBAPIClient",
    "DBAPIStatement",
    "convert_placeholders",
    "escape_literal_colons",
    "normalize_params",
]
