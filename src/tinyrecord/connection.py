"""Connection registry.

Manifesto:
    An application talks to one or more databases by name.  ``Database``
    keeps the named connection configs, turns each one into a client the
    first time it is used, and is the entry point for everything else:
    ``db.command()`` for SQL, ``db.factory(Model)`` for records.

    Identifier quoting and LIMIT/OFFSET rendering follow the dialect of
    the *current* connection, so the same builder code produces backticks
    on SQLite/MySQL and double quotes on PostgreSQL.

Architecture::

    Database
    ├── add_connection(name, dsn, ...)  ──► ConnectionConfig
    ├── get_client(name)                ──► lazily created DBAPIClient (cached)
    ├── switch_connection(name)         ──► changes ``current``
    ├── quote_* / build_limit_offset    ──► Dialect of the current client
    ├── command()                       ──► Command
    └── factory(model)                  ──► Factory

Examples:
    >>> db = Database("sqlite::memory:")
    >>> db.exec("CREATE TABLE contact (id INTEGER PRIMARY KEY, name TEXT)")
    0
    >>> db.command().insert("contact", {"name": "test"})
    1
    >>> db.quote_column("contact.name")
    '`contact`.`name`'

Guardrails:
    ❌ DON'T: Build a client per statement
    ✅ DO: Register the connection once and let the registry cache it

Tags:
    database, connection, registry, lazy-init, tinyrecord
"""

from __future__ import annotations

import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from tinyrecord.adapters.registry import ClientRegistry, client_registry
from tinyrecord.adapters.types import ConnectionConfig
from tinyrecord.command import Command
from tinyrecord.dialect import Dialect, get_dialect
from tinyrecord.errors import QueryError, UnknownConnectionError
from tinyrecord.logging import get_logger
from tinyrecord.protocols import DatabaseClient, Statement
from tinyrecord.settings import TinyRecordSettings, get_settings

if TYPE_CHECKING:
    from tinyrecord.factory import Factory
    from tinyrecord.model import Model

logger = get_logger(__name__)


class Database:
    """
    Named connections plus the helpers that depend on the current one.

    Args:
        dsn: Data-source descriptor of the first connection (optional).
        username: Credentials, overriding any in the DSN.
        password: Credentials, overriding any in the DSN.
        options: Client options (``raise_errors``, ``timeout``, ...).
        name: Name of the first connection, also made current.
        registry: Client registry used to build clients.
    """

    def __init__(
        self,
        dsn: str | None = None,
        username: str | None = None,
        password: str | None = None,
        options: Mapping[str, Any] | None = None,
        *,
        name: str = "default",
        registry: ClientRegistry | None = None,
    ):
        self._configs: dict[str, ConnectionConfig] = {}
        self._clients: dict[str, DatabaseClient] = {}
        self._lock = threading.Lock()
        self._registry = registry or client_registry
        self.current = name
        if dsn is not None:
            self.add_connection(name, dsn, username, password, options)

    @classmethod
    def from_settings(cls, settings: TinyRecordSettings | None = None) -> Database:
        """Build a registry from :class:`TinyRecordSettings` (``default`` + extras)."""
        settings = settings or get_settings()
        options = {"raise_errors": settings.raise_errors}
        db = cls(settings.dsn, settings.username, settings.password, options)
        for name, dsn in settings.connections.items():
            db.add_connection(name, dsn, options=options)
        return db

    # =========================================================================
    # Connections
    # =========================================================================

    def add_connection(
        self,
        name: str,
        dsn: str,
        username: str | None = None,
        password: str | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Database:
        """Register (or replace) a named connection config."""
        config = ConnectionConfig(
            name=name,
            dsn=dsn,
            username=username,
            password=password,
            options=dict(options or {}),
        )
        source = config.data_source()
        with self._lock:
            self._configs[name] = config
            stale = self._clients.pop(name, None)
        if stale is not None:
            stale.close()
        logger.info("connection_registered", connection=name, db_type=source.db_type.value)
        return self

    def attach(self, name: str, client: DatabaseClient) -> Database:
        """Register an already constructed client under ``name``."""
        with self._lock:
            self._clients[name] = client
        logger.info("connection_registered", connection=name, driver=client.driver_name)
        return self

    def switch_connection(self, name: str = "default") -> Database:
        """Make ``name`` the current connection."""
        if name not in self._configs and name not in self._clients:
            raise UnknownConnectionError(name)
        self.current = name
        return self

    def list_connections(self) -> list[str]:
        return sorted(set(self._configs) | set(self._clients))

    def get_config(self, name: str | None = None) -> ConnectionConfig:
        name = name or self.current
        try:
            return self._configs[name]
        except KeyError:
            raise UnknownConnectionError(name) from None

    def get_client(self, name: str | None = None) -> DatabaseClient:
        """Client for ``name`` (default: current), created on first use."""
        name = name or self.current
        client = self._clients.get(name)
        if client is None:
            with self._lock:
                client = self._clients.get(name)
                if client is None:
                    config = self._configs.get(name)
                    if config is None:
                        raise UnknownConnectionError(name)
                    client = self._registry.create(config)
                    self._clients[name] = client
        return client

    def close(self, name: str | None = None) -> None:
        """Close one client, or every client when ``name`` is omitted."""
        with self._lock:
            if name is None:
                clients = list(self._clients.values())
                self._clients.clear()
            else:
                client = self._clients.pop(name, None)
                clients = [client] if client is not None else []
        for client in clients:
            client.close()

    def __enter__(self) -> Database:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # =========================================================================
    # Entry points
    # =========================================================================

    def command(self) -> Command:
        return Command(self)

    def factory(self, model: type[Model] | str, pk: str | tuple[str, ...] | None = None) -> Factory:
        """Factory for a Model subclass or an ``"@table"`` descriptor."""
        from tinyrecord.factory import Factory

        return Factory(self, model, pk)

    # =========================================================================
    # Dialect helpers
    # =========================================================================

    @property
    def dialect(self) -> Dialect:
        return get_dialect(self.get_client().driver_name)

    @property
    def driver_name(self) -> str:
        return self.get_client().driver_name

    def quote_identifier(self, name: str) -> str:
        """Quote ``table``, ``column`` or ``table.column`` (``*`` stays bare)."""
        return self.dialect.quote_identifier(name)

    def quote_table(self, name: str) -> str:
        return self.quote_identifier(name)

    def quote_column(self, name: str) -> str:
        return self.quote_identifier(name)

    def build_limit_offset(self, sql: str, limit: int | None, offset: int | None = 0) -> str:
        return self.dialect.limit_offset(sql, limit, offset)

    def quote(self, value: Any) -> str:
        return self.get_client().quote(value)

    def equals(self, column: str, param: str | None = None) -> str:
        """``"<quoted column> = :<param>"`` (param defaults to the column name)."""
        return f"{self.quote_column(column)} = :{param or column}"

    # =========================================================================
    # Raw pass-through
    # =========================================================================

    def prepare(self, sql: str) -> Statement:
        return self.get_client().prepare(sql)

    def query(self, sql: str, params: Mapping[str, Any] | None = None) -> Statement:
        """Execute a query and return the statement to fetch from."""
        statement = self.prepare(sql)
        if not statement.execute(params):
            raise QueryError(
                f"Query failed: {statement.error}",
                cause=statement.error,
            ).with_context(sql=sql, connection=self.current)
        return statement

    def exec(self, sql: str, params: Mapping[str, Any] | None = None) -> int | None:
        """Execute a statement; affected rows, or ``None`` on failure."""
        statement = self.prepare(sql)
        if not statement.execute(params):
            return None
        count = statement.row_count()
        statement.close()
        return count

    def last_insert_id(self) -> Any:
        return self.get_client().last_insert_id()

    # =========================================================================
    # Transactions
    # =========================================================================

    def begin_transaction(self) -> None:
        self.get_client().begin_transaction()

    def commit(self) -> None:
        self.get_client().commit()

    def rollback(self) -> None:
        self.get_client().rollback()

    def in_transaction(self) -> bool:
        return self.get_client().in_transaction()

    @contextmanager
    def transaction(self) -> Iterator[Database]:
        """Commit on success, roll back on any exception."""
        client = self.get_client()
        client.begin_transaction()
        try:
            yield self
            client.commit()
        except Exception:
            client.rollback()
            raise

    def __repr__(self) -> str:
        return f"Database(current={self.current!r}, connections={self.list_connections()!r})"


__all__ = [
    "Database",
]
