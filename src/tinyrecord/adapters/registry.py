"""Client registry and factory.

Manifesto:
    Callers should never hard-code client class names.  The registry
    maps a :class:`DatabaseType` to a client class and ``create_client()``
    builds an unconnected client from a :class:`ConnectionConfig`.

Features:
    - ``ClientRegistry`` with pre-registered defaults
    - ``register()`` for custom / third-party clients
    - ``create_client()`` factory: config → client

Tags:
    database, registry, factory, tinyrecord
"""

from __future__ import annotations

from typing import Any

from tinyrecord.errors import ConfigError

from .base import DBAPIClient
from .mysql import MySQLClient
from .postgresql import PostgreSQLClient
from .sqlalchemy import SQLAlchemyClient
from .sqlite import SQLiteClient
from .types import ConnectionConfig, DatabaseType


class ClientRegistry:
    """
    Registry for client classes.

    Pre-registered clients:
    - ``sqlite`` — :class:`SQLiteClient`
    - ``postgresql`` — :class:`PostgreSQLClient`
    - ``mysql`` — :class:`MySQLClient`
    - ``sqlalchemy`` — :class:`SQLAlchemyClient`
    """

    def __init__(self):
        self._factories: dict[str, type[DBAPIClient]] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        self._factories[DatabaseType.SQLITE.value] = SQLiteClient
        self._factories[DatabaseType.POSTGRESQL.value] = PostgreSQLClient
        self._factories[DatabaseType.MYSQL.value] = MySQLClient
        self._factories[DatabaseType.SQLALCHEMY.value] = SQLAlchemyClient

    def register(self, name: str, client_class: type[DBAPIClient]) -> None:
        """Register a client class under a backend name."""
        self._factories[name.lower()] = client_class

    def create(self, config: ConnectionConfig, **kwargs: Any) -> DBAPIClient:
        """Create an (unconnected) client for ``config``."""
        source = config.data_source()
        name = source.db_type.value
        if name not in self._factories:
            raise ConfigError(f"Unknown database client: {name}")
        options = {**config.options, **kwargs}
        return self._factories[name](source, **options)

    def list_clients(self) -> list[str]:
        """List registered backend names."""
        return sorted(self._factories.keys())


# Global registry
client_registry = ClientRegistry()


def create_client(config: ConnectionConfig, **kwargs: Any) -> DBAPIClient:
    """
    Create a client from a connection config.

    Usage:
        client = create_client(ConnectionConfig("default", "sqlite::memory:"))
        client = create_client(ConnectionConfig("main", "pgsql:host=db;dbname=app", "u", "p"))
    """
    return client_registry.create(config, **kwargs)


__all__ = [
    "ClientRegistry",
    "client_registry",
    "create_client",
]
