"""
Canonical protocol definitions for tinyrecord.

The builder, the connection registry and the active-record layer never
touch a driver module directly.  They talk to a :class:`DatabaseClient`
and the :class:`Statement` objects it prepares.  Any object with this
shape works: the bundled adapters in :mod:`tinyrecord.adapters`, a
SQLAlchemy-backed client, or a test double.

Architecture:
    ::

        DatabaseClient
        ├── prepare(sql)          → Statement
        ├── quote(value)          → SQL literal
        ├── last_insert_id()      → id | None
        ├── driver_name           → "sqlite", "mysql", "pgsql", ...
        ├── begin_transaction() / commit() / rollback() / in_transaction()
        └── close()

        Statement
        ├── execute(params)       → bool (False = driver reported a failure)
        ├── fetch_all()           → list[dict]
        ├── fetch_one()           → dict | None
        ├── fetch_column()        → list
        ├── fetch_scalar()        → value | None
        ├── row_count()           → int
        ├── error                 → last driver exception or None
        └── close()

Placeholders are always written as named ``:param`` markers; clients
translate them to their driver's paramstyle.

Tags:
    protocol, database, client, statement, tinyrecord
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Statement(Protocol):
    """A prepared SQL statement bound to one client."""

    sql: str

    @property
    def error(self) -> Exception | None:
        """Driver exception from the last failed ``execute``."""
        ...

    def execute(self, params: Mapping[str, Any] | None = None) -> bool:
        """Run the statement. Returns ``False`` when the driver fails."""
        ...

    def fetch_all(self) -> list[dict[str, Any]]:
        """All result rows as column → value mappings."""
        ...

    def fetch_one(self) -> dict[str, Any] | None:
        """Next result row, or ``None`` when exhausted."""
        ...

    def fetch_column(self) -> list[Any]:
        """First column of every remaining row."""
        ...

    def fetch_scalar(self) -> Any:
        """First column of the next row, or ``None``."""
        ...

    def row_count(self) -> int:
        """Rows affected by the last ``execute``."""
        ...

    def close(self) -> None:
        """Release the cursor."""
        ...


@runtime_checkable
class DatabaseClient(Protocol):
    """
    Minimal synchronous client interface consumed by tinyrecord.

    Examples:
        >>> stmt = client.prepare("SELECT name FROM contact WHERE id = :id")
        >>> stmt.execute({"id": 1})
        True
        >>> stmt.fetch_scalar()
        'test'
    """

    @property
    def driver_name(self) -> str:
        """Driver identifier used for dialect selection."""
        ...

    def prepare(self, sql: str) -> Statement:
        """Prepare a statement written with ``:name`` placeholders."""
        ...

    def quote(self, value: Any) -> str:
        """Quote a value as an SQL literal."""
        ...

    def last_insert_id(self) -> Any:
        """Id generated by the last INSERT, or ``None``."""
        ...

    def begin_transaction(self) -> None:
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...

    def in_transaction(self) -> bool:
        ...

    def close(self) -> None:
        ...


__all__ = [
    "DatabaseClient",
    "Statement",
]
