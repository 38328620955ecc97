"""SQL dialect rules keyed by driver name.

A dialect answers the three questions the builder cannot answer on its
own: which character quotes identifiers, how a Python value is written
as an SQL literal, and where LIMIT/OFFSET go.  Dialects are stateless
and selected from the active client's driver name with
:func:`get_dialect`.

Architecture::

    ┌──────────────────────────┐ ┌──────────────────────────┐ ┌──────────────────────┐
    │ BacktickDialect          │ │ DoubleQuoteDialect       │ │ SQLServerDialect     │
    │ mysql, sqlite, sqlite2,  │ │ pgsql, postgresql,       │ │ sqlsrv, mssql,       │
    │ (any unknown driver)     │ │ postgres                 │ │ dblib, sybase        │
    │ `a`.`b`  LIMIT n OFFSET m│ │ "a"."b"  LIMIT n OFFSET m│ │ "a"."b"  (no LIMIT)  │
    └──────────────────────────┘ └──────────────────────────┘ └──────────────────────┘

Examples:
    >>> from tinyrecord.dialect import get_dialect
    >>> d = get_dialect("sqlite")
    >>> d.quote_identifier("contact.name")
    '`contact`.`name`'
    >>> d.quote_identifier("t.*")
    '`t`.*'
    >>> d.limit_offset("SELECT *\\nFROM `t`", 5, 10)
    'SELECT *\\nFROM `t`\\nLIMIT 5 OFFSET 10'

Guardrails:
    ❌ DON'T: Silently drop LIMIT on a dialect that has no LIMIT clause
    ✅ DO: Raise UnsupportedDialectError

Tags:
    dialect, sql, quoting, limit, portability, tinyrecord
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Protocol, runtime_checkable

from tinyrecord.errors import UnsupportedDialectError
from tinyrecord.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract."""

    @property
    def name(self) -> str:
        """Dialect name (e.g. ``'mysql'``)."""
        ...

    @property
    def quote_char(self) -> str:
        """Character wrapped around identifier segments."""
        ...

    def quote_identifier(self, name: str) -> str:
        """Quote a ``table``, ``column`` or ``table.column`` identifier."""
        ...

    def quote_literal(self, value: Any) -> str:
        """Render a Python value as an SQL literal."""
        ...

    def limit_offset(self, sql: str, limit: int | None, offset: int | None) -> str:
        """Append the dialect's LIMIT/OFFSET form to ``sql``."""
        ...

    @property
    def default_values(self) -> str:
        """Tail of an INSERT that supplies no columns."""
        ...


# =========================================================================
# Concrete Dialect Implementations
# =========================================================================


class BacktickDialect:
    """MySQL / SQLite family — backtick identifiers, ``LIMIT n OFFSET m``.

    Also the fallback for driver names nobody registered.
    """

    escape_backslash = False

    def __init__(self, name: str = "mysql") -> None:
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def quote_char(self) -> str:
        return "`"

    @property
    def default_values(self) -> str:
        return "DEFAULT VALUES"

    # -- Identifiers -------------------------------------------------------

    def quote_identifier(self, name: str) -> str:
        q = self.quote_char
        parts = [part if part == "*" else f"{q}{part}{q}" for part in name.split(".")]
        return ".".join(parts)

    # -- Literals ----------------------------------------------------------

    def quote_literal(self, value: Any) -> str:
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return "1" if value else "0"
        if isinstance(value, (int, float, Decimal)):
            return str(value)
        if isinstance(value, (datetime, date)):
            value = value.isoformat(sep=" ") if isinstance(value, datetime) else value.isoformat()
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        text = str(value)
        if self.escape_backslash:
            text = text.replace("\\", "\\\\")
        return "'" + text.replace("'", "''") + "'"

    # -- LIMIT / OFFSET ----------------------------------------------------

    def limit_offset(self, sql: str, limit: int | None, offset: int | None) -> str:
        if limit and limit > 0:
            sql += f"\nLIMIT {limit}"
            if offset and offset > 0:
                sql += f" OFFSET {offset}"
        elif offset and offset > 0:
            sql += f"\nOFFSET {offset}"
        return sql


class MySQLDialect(BacktickDialect):
    """MySQL — backslash is an escape character inside string literals."""

    escape_backslash = True

    @property
    def default_values(self) -> str:
        return "() VALUES ()"


class DoubleQuoteDialect(BacktickDialect):
    """PostgreSQL family — ANSI double-quoted identifiers."""

    def __init__(self, name: str = "pgsql") -> None:
        super().__init__(name)

    @property
    def quote_char(self) -> str:
        return '"'


class SQLServerDialect(DoubleQuoteDialect):
    """SQL Server / Sybase / DBLib — no LIMIT/OFFSET form is defined."""

    def __init__(self, name: str = "sqlsrv") -> None:
        super().__init__(name)

    def limit_offset(self, sql: str, limit: int | None, offset: int | None) -> str:
        if (limit and limit > 0) or (offset and offset > 0):
            raise UnsupportedDialectError(self.name)
        return sql


# =========================================================================
# Registry / Factory
# =========================================================================

# Pre-instantiated singletons (dialects are stateless)
_DIALECTS: dict[str, Dialect] = {
    "mysql": MySQLDialect("mysql"),
    "sqlite": BacktickDialect("sqlite"),
    "sqlite2": BacktickDialect("sqlite2"),
    "pgsql": DoubleQuoteDialect("pgsql"),
    "postgresql": DoubleQuoteDialect("postgresql"),
    "postgres": DoubleQuoteDialect("postgres"),
    "sqlsrv": SQLServerDialect("sqlsrv"),
    "mssql": SQLServerDialect("mssql"),
    "dblib": SQLServerDialect("dblib"),
    "sybase": SQLServerDialect("sybase"),
}

DEFAULT_DIALECT: Dialect = BacktickDialect("default")


def get_dialect(driver_name: str | None) -> Dialect:
    """Get the dialect for a driver name.

    Unknown (or missing) driver names fall back to :data:`DEFAULT_DIALECT`
    (backtick quoting, ``LIMIT n OFFSET m``).

    Example:
        >>> get_dialect("pgsql").quote_identifier("a.b")
        '"a"."b"'
    """
    key = (driver_name or "").lower()
    dialect = _DIALECTS.get(key)
    if dialect is None:
        logger.debug("dialect_fallback", driver=driver_name, dialect=DEFAULT_DIALECT.name)
        return DEFAULT_DIALECT
    return dialect


def register_dialect(name: str, dialect: Dialect) -> None:
    """Register a custom dialect implementation.

    Args:
        name: Driver name (lower-cased automatically).
        dialect: Instance implementing :class:`Dialect`.
    """
    _DIALECTS[name.lower()] = dialect


__all__ = [
    # Protocol
    "Dialect",
    # Implementations
    "BacktickDialect",
    "MySQLDialect",
    "DoubleQuoteDialect",
    "SQLServerDialect",
    "DEFAULT_DIALECT",
    # Factory
    "get_dialect",
    "register_dialect",
]
