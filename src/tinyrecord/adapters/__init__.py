"""Database clients.

One :class:`DBAPIClient` subclass per backend, selected from the parsed
data-source descriptor by :func:`create_client`.

Usage:
    from tinyrecord.adapters import ConnectionConfig, create_client

    client = create_client(ConnectionConfig("default", "sqlite::memory:"))
    client.connect()
"""

from .base import DBAPIClient, DBAPIStatement, convert_placeholders, escape_literal_colons, normalize_params
from .mysql import MySQLClient
from .postgresql import PostgreSQLClient
from .registry import ClientRegistry, client_registry, create_client
from .sqlalchemy import SQLAlchemyClient
from .sqlite import SQLiteClient
from .types import ConnectionConfig, DatabaseType, DataSource, parse_dsn

__all__ = [
    # Base
    "DBAPIClient",
    "DBAPIStatement",
    "convert_placeholders",
    "escape_literal_colons",
    "normalize_params",
    # Types
    "DatabaseType",
    "DataSource",
    "ConnectionConfig",
    "parse_dsn",
    # Clients
    "SQLiteClient",
    "PostgreSQLClient",
    "MySQLClient",
    "SQLAlchemyClient",
    # Registry
    "ClientRegistry",
    "client_registry",
    "create_client",
]
