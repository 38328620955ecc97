"""Fluent SQL command builder.

Manifesto:
    Most statements an application issues are small SELECTs plus
    single-table INSERT / UPDATE / DELETE.  ``Command`` accumulates the
    clauses of one such statement, quotes every identifier through the
    active dialect, compiles condition trees and hands the finished SQL to
    the connection's client with named parameters.  Anything the builder
    cannot express goes through :meth:`Command.set_sql` with the same
    terminal operations.

Architecture::

    Command ──► QuerySpec (select, from_, joins, where, group, having,
       │                    order, limit, offset, unions, distinct)
       │
       ├── build_query() ──► SELECT ... FROM ... [JOIN] [WHERE] [GROUP BY
       │                     [HAVING]] [ORDER BY] [LIMIT/OFFSET] [UNION]
       │
       └── query*/execute ──► Database.get_client().prepare(sql).execute()

Examples:
    >>> rows = (
    ...     db.command()
    ...     .select("c.name, c.email AS mail")
    ...     .from_("contact c")
    ...     .where("c.name = :name", {"name": "test"})
    ...     .order_by("c.id DESC")
    ...     .limit(10)
    ...     .query_all()
    ... )
    >>> db.command().insert("contact", {"name": "test"})
    1

Guardrails:
    ❌ DON'T: Format values into SQL text
    ✅ DO: Use :name placeholders and pass params

    ❌ DON'T: Share one Command between threads
    ✅ DO: Call db.command() per statement

Tags:
    sql, query-builder, fluent, tinyrecord
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from tinyrecord.adapters.base import normalize_params
from tinyrecord.conditions import ConditionCompiler
from tinyrecord.errors import MissingFromClauseError, QueryError
from tinyrecord.protocols import Statement

if TYPE_CHECKING:
    from tinyrecord.connection import Database

_ALIAS_RE = re.compile(r"^(.*?)(?:\s+as)?\s+(\S+)$", re.IGNORECASE)
_ORDER_RE = re.compile(r"^(.*?)\s+(asc|desc)$", re.IGNORECASE)


@dataclass
class QuerySpec:
    """Clauses of one SELECT, already rendered to SQL fragments."""

    select: str | None = None
    distinct: bool = False
    from_: str | None = None
    joins: list[str] = field(default_factory=list)
    where: str = ""
    group: str | None = None
    having: str = ""
    order: str | None = None
    limit: int | None = None
    offset: int | None = None
    unions: list[str] = field(default_factory=list)


def split_parts(parts: str | Iterable[str]) -> list[str]:
    """Split a field/table list on top-level commas.

    Commas inside parentheses or quotes do not split.

    >>> split_parts("a, COUNT(b, c) n, 'x,y'")
    ['a', 'COUNT(b, c) n', "'x,y'"]
    """
    if not isinstance(parts, str):
        return [str(part).strip() for part in parts if str(part).strip()]

    result: list[str] = []
    depth = 0
    quote: str | None = None
    current: list[str] = []
    for char in parts:
        if quote:
            if char == quote:
                quote = None
        elif char in "'\"`":
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth = max(depth - 1, 0)
        elif char == "," and depth == 0:
            result.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    result.append("".join(current).strip())
    return [part for part in result if part]


def match_alias(entry: str) -> tuple[str, str] | None:
    """``"expr AS alias"`` / ``"expr alias"`` → ``(expr, alias)``."""
    match = _ALIAS_RE.match(entry.strip())
    if match is None:
        return None
    return match.group(1), match.group(2)


class Command:
    """
    Builder and executor for one SQL statement.

    Obtain one from :meth:`Database.command`; it runs on the connection
    that is current when a terminal operation is called.
    """

    def __init__(self, db: Database) -> None:
        self.db = db
        self.query_spec = QuerySpec()
        self.params: dict[str, Any] = {}
        self._sql: str | None = None
        self._statement: Statement | None = None
        self._compiler = ConditionCompiler(db.quote_column, db.quote)

    # =========================================================================
    # State
    # =========================================================================

    def _changed(self) -> Command:
        if self._statement is not None:
            self._statement.close()
            self._statement = None
        return self

    def reset(self) -> Command:
        """Forget clauses, params, explicit SQL and the prepared statement."""
        self._changed()
        self.query_spec = QuerySpec()
        self.params = {}
        self._sql = None
        return self

    def merge_params(self, params: Mapping[str, Any] | None) -> Command:
        self.params.update(normalize_params(params))
        return self

    def bind_value(self, name: str, value: Any) -> Command:
        self.params[name.lstrip(":")] = value
        return self

    def bind_values(self, values: Mapping[str, Any]) -> Command:
        return self.merge_params(values)

    def build_conditions(self, conditions: Any) -> str:
        """Compile a condition expression with this connection's quoting."""
        return self._compiler.compile(conditions)

    # =========================================================================
    # Clauses
    # =========================================================================

    def _quote_aliased(self, entry: str) -> str:
        if "(" in entry:
            return entry
        alias = match_alias(entry)
        if alias is not None:
            return f"{self.db.quote_column(alias[0])} AS {self.db.quote_column(alias[1])}"
        return self.db.quote_column(entry)

    def select(self, fields: str | Iterable[str] = "*") -> Command:
        """SELECT list.

        Example:
            select("contact.*, user.email")
            select(["contact.*", "user.email AS mail"])
        """
        self.query_spec.select = ", ".join(self._quote_aliased(f) for f in split_parts(fields))
        return self._changed()

    def distinct(self) -> Command:
        self.query_spec.distinct = True
        return self._changed()

    def from_(self, tables: str | Iterable[str]) -> Command:
        """FROM list, e.g. ``from_("contact, user AS u")``."""
        self.query_spec.from_ = ", ".join(self._quote_aliased(t) for t in split_parts(tables))
        return self._changed()

    def where(self, conditions: Any, params: Mapping[str, Any] | None = None) -> Command:
        self.merge_params(params)
        self.query_spec.where = self.build_conditions(conditions)
        return self._changed()

    def _any_join(
        self,
        kind: str,
        table: str,
        conditions: Any = "",
        params: Mapping[str, Any] | None = None,
    ) -> Command:
        self.merge_params(params)
        clause = f"{kind} {self._quote_aliased(table)}"
        on = self.build_conditions(conditions)
        if on != "":
            clause += f" ON {on}"
        self.query_spec.joins.append(clause)
        return self._changed()

    def join(self, table: str, conditions: Any = "", params: Mapping[str, Any] | None = None) -> Command:
        return self._any_join("JOIN", table, conditions, params)

    def left_join(self, table: str, conditions: Any = "", params: Mapping[str, Any] | None = None) -> Command:
        return self._any_join("LEFT JOIN", table, conditions, params)

    def right_join(self, table: str, conditions: Any = "", params: Mapping[str, Any] | None = None) -> Command:
        return self._any_join("RIGHT JOIN", table, conditions, params)

    def group_by(self, fields: str | Iterable[str]) -> Command:
        self.query_spec.group = ", ".join(
            f if "(" in f else self.db.quote_column(f) for f in split_parts(fields)
        )
        return self._changed()

    def having(self, conditions: Any, params: Mapping[str, Any] | None = None) -> Command:
        """HAVING; only emitted together with GROUP BY."""
        self.merge_params(params)
        self.query_spec.having = self.build_conditions(conditions)
        return self._changed()

    def order_by(self, fields: str | Iterable[str]) -> Command:
        """ORDER BY, e.g. ``order_by("lastname, id DESC")``."""
        rendered = []
        for entry in split_parts(fields):
            if "(" in entry:
                rendered.append(entry)
                continue
            match = _ORDER_RE.match(entry)
            if match:
                rendered.append(f"{self.db.quote_column(match.group(1))} {match.group(2).upper()}")
            else:
                rendered.append(self.db.quote_column(entry))
        self.query_spec.order = ", ".join(rendered)
        return self._changed()

    def limit(self, limit: int | None, offset: int | None = None) -> Command:
        self.query_spec.limit = limit
        if offset is not None:
            self.query_spec.offset = offset
        return self._changed()

    def offset(self, offset: int | None) -> Command:
        self.query_spec.offset = offset
        return self._changed()

    def union(self, query: str | Command, all: bool = False) -> Command:
        """Append ``UNION [ALL] <query>``; a Command contributes its params too."""
        if isinstance(query, Command):
            sql = query.sql
            if sql is None:
                raise MissingFromClauseError()
            self.merge_params(query.params)
        else:
            sql = query
        keyword = "UNION ALL" if all else "UNION"
        self.query_spec.unions.append(f"{keyword} {sql}")
        return self._changed()

    # =========================================================================
    # SQL
    # =========================================================================

    def build_query(self, spec: QuerySpec | None = None) -> str | None:
        """Assemble the SELECT; ``None`` when no FROM clause was given."""
        spec = spec or self.query_spec
        if not spec.from_:
            return None

        sql = "SELECT "
        if spec.distinct:
            sql += "DISTINCT "
        sql += spec.select or "*"
        sql += f"\nFROM {spec.from_}"
        if spec.joins:
            sql += "\n" + "\n".join(spec.joins)
        if spec.where != "":
            sql += f"\nWHERE {spec.where}"
        if spec.group:
            sql += f"\nGROUP BY {spec.group}"
            if spec.having != "":
                sql += f"\nHAVING {spec.having}"
        if spec.order:
            sql += f"\nORDER BY {spec.order}"
        sql = self.db.build_limit_offset(sql, spec.limit, spec.offset)
        if spec.unions:
            sql += "\n" + "\n".join(spec.unions)
        return sql

    def set_sql(self, sql: str) -> Command:
        """Run ``sql`` instead of the built query."""
        self._sql = sql
        return self._changed()

    @property
    def sql(self) -> str | None:
        if self._sql is not None:
            return self._sql
        return self.build_query()

    def prepare(self) -> Command:
        if self._statement is None:
            sql = self.sql
            if sql is None:
                raise MissingFromClauseError()
            self._statement = self.db.get_client().prepare(sql)
        return self

    @property
    def statement(self) -> Statement:
        self.prepare()
        return self._statement

    # =========================================================================
    # Terminal operations
    # =========================================================================

    def _begin_query(self, params: Mapping[str, Any] | None) -> Statement:
        merged = {**self.params, **normalize_params(params)}
        statement = self.statement
        if not statement.execute(merged):
            error = statement.error
            raise QueryError(
                f"Query failed: {error}",
                cause=error,
            ).with_context(sql=statement.sql, connection=self.db.current)
        return statement

    def query(self, params: Mapping[str, Any] | None = None) -> Statement:
        """Execute and return the statement; close it after fetching."""
        return self._begin_query(params)

    def query_all(self, params: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        statement = self._begin_query(params)
        rows = statement.fetch_all()
        statement.close()
        return rows

    def query_row(self, params: Mapping[str, Any] | None = None) -> dict[str, Any] | None:
        statement = self._begin_query(params)
        row = statement.fetch_one()
        statement.close()
        return row

    def query_column(self, params: Mapping[str, Any] | None = None) -> list[Any]:
        statement = self._begin_query(params)
        column = statement.fetch_column()
        statement.close()
        return column

    def query_scalar(self, params: Mapping[str, Any] | None = None) -> Any:
        statement = self._begin_query(params)
        value = statement.fetch_scalar()
        statement.close()
        return value

    def _execute(self, params: Mapping[str, Any]) -> int | None:
        statement = self.statement
        if not statement.execute(params):
            return None
        count = statement.row_count()
        statement.close()
        return count

    def execute(self, params: Mapping[str, Any] | None = None) -> int | None:
        """Run a non-query statement; affected rows, or ``None`` on failure."""
        return self._execute({**self.params, **normalize_params(params)})

    # =========================================================================
    # Writes
    # =========================================================================

    def insert(self, table: str, values: Mapping[str, Any]) -> int | None:
        columns = []
        placeholders = []
        params: dict[str, Any] = {}
        for i, (column, value) in enumerate(values.items()):
            columns.append(self.db.quote_column(column))
            placeholders.append(f":value{i}")
            params[f"value{i}"] = value
        if columns:
            sql = (
                f"INSERT INTO {self.db.quote_table(table)} "
                f"({', '.join(columns)}) VALUES ({', '.join(placeholders)})"
            )
        else:
            sql = f"INSERT INTO {self.db.quote_table(table)} {self.db.dialect.default_values}"
        return self.set_sql(sql)._execute(params)

    def update(
        self,
        table: str,
        values: Mapping[str, Any],
        conditions: Any = "",
        params: Mapping[str, Any] | None = None,
    ) -> int | None:
        params = normalize_params(params)
        prefix = "set"
        while any(key.startswith(prefix) for key in params):
            prefix = f"_{prefix}"

        updates = []
        for i, (column, value) in enumerate(values.items()):
            name = f"{prefix}{i}"
            updates.append(f"{self.db.quote_column(column)} = :{name}")
            params[name] = value

        sql = f"UPDATE {self.db.quote_table(table)} SET {', '.join(updates)}"
        where = self.build_conditions(conditions)
        if where != "":
            sql += f" WHERE {where}"
        return self.set_sql(sql)._execute(params)

    def delete(
        self,
        table: str,
        conditions: Any = "",
        params: Mapping[str, Any] | None = None,
    ) -> int | None:
        sql = f"DELETE FROM {self.db.quote_table(table)}"
        where = self.build_conditions(conditions)
        if where != "":
            sql += f" WHERE {where}"
        return self.set_sql(sql)._execute(normalize_params(params))

    def __repr__(self) -> str:
        if self._sql is not None:
            return f"Command({self._sql!r})"
        return f"Command({self.query_spec!r})"


__all__ = [
    "QuerySpec",
    "Command",
    "split_parts",
    "match_alias",
]
