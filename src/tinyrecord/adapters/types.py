"""Connection configuration and data-source descriptors."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import parse_qsl, unquote, urlsplit

from tinyrecord.errors import ConfigError


class DatabaseType(str, Enum):
    """Supported client backends."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLALCHEMY = "sqlalchemy"


# PDO-style and URL-style scheme names → backend
_SCHEMES: dict[str, DatabaseType] = {
    "sqlite": DatabaseType.SQLITE,
    "sqlite2": DatabaseType.SQLITE,
    "sqlite3": DatabaseType.SQLITE,
    "pgsql": DatabaseType.POSTGRESQL,
    "postgres": DatabaseType.POSTGRESQL,
    "postgresql": DatabaseType.POSTGRESQL,
    "mysql": DatabaseType.MYSQL,
    "mariadb": DatabaseType.MYSQL,
}


@dataclass
class DataSource:
    """
    Parsed data-source descriptor.

    Different fields are used by different backends: ``path`` by SQLite,
    ``host``/``port``/``database`` by the network databases, ``url`` by
    the SQLAlchemy client.
    """

    db_type: DatabaseType
    path: str | None = None
    host: str | None = None
    port: int | None = None
    database: str | None = None
    username: str | None = None
    password: str | None = None
    url: str | None = None
    params: dict[str, str] = field(default_factory=dict)


@dataclass
class ConnectionConfig:
    """A named connection registered on a :class:`~tinyrecord.connection.Database`."""

    name: str
    dsn: str
    username: str | None = None
    password: str | None = None
    options: dict[str, Any] = field(default_factory=dict)

    def data_source(self) -> DataSource:
        """Parse :attr:`dsn`; explicit credentials win over credentials in the DSN."""
        source = parse_dsn(self.dsn)
        if self.username is not None:
            source.username = self.username
        if self.password is not None:
            source.password = self.password
        return source

    def __repr__(self) -> str:
        # never print the password
        return f"ConnectionConfig(name={self.name!r}, dsn={self.dsn!r}, username={self.username!r})"


def parse_dsn(dsn: str) -> DataSource:
    """Parse a PDO-style DSN, a database URL or a bare SQLite path.

    Examples:
        >>> parse_dsn("sqlite::memory:").path
        ':memory:'
        >>> parse_dsn("mysql:host=db;port=3307;dbname=app").port
        3307
        >>> parse_dsn("postgresql://u:p@db:5432/app").database
        'app'
        >>> parse_dsn("postgresql+psycopg2://u:p@db/app").db_type
        <DatabaseType.SQLALCHEMY: 'sqlalchemy'>
    """
    if not dsn or not dsn.strip():
        raise ConfigError("Empty data-source descriptor")
    dsn = dsn.strip()

    if dsn == ":memory:":
        return DataSource(db_type=DatabaseType.SQLITE, path=":memory:")

    if "://" in dsn:
        return _parse_url(dsn)

    scheme, sep, rest = dsn.partition(":")
    if sep and scheme.lower() in _SCHEMES:
        return _parse_pdo(_SCHEMES[scheme.lower()], rest)

    # Bare file path: SQLite file
    return DataSource(db_type=DatabaseType.SQLITE, path=dsn)


def _parse_pdo(db_type: DatabaseType, rest: str) -> DataSource:
    if db_type is DatabaseType.SQLITE:
        return DataSource(db_type=db_type, path=rest or ":memory:")

    params: dict[str, str] = {}
    for pair in rest.split(";"):
        if not pair.strip():
            continue
        key, eq, value = pair.partition("=")
        if not eq:
            raise ConfigError(f"Malformed DSN segment {pair!r}")
        params[key.strip().lower()] = value.strip()

    port = params.pop("port", None)
    return DataSource(
        db_type=db_type,
        host=params.pop("host", None),
        port=_port(port),
        database=params.pop("dbname", None),
        username=params.pop("user", None),
        password=params.pop("password", None),
        params=params,
    )


def _parse_url(url: str) -> DataSource:
    scheme = url.split("://", 1)[0].lower()

    # postgresql+psycopg2://, sqlite+pysqlite:// ... explicit SQLAlchemy driver
    if "+" in scheme:
        return DataSource(db_type=DatabaseType.SQLALCHEMY, url=url)

    if scheme not in _SCHEMES:
        raise ConfigError(f"Unsupported database URL scheme: {scheme}")
    db_type = _SCHEMES[scheme]

    if db_type is DatabaseType.SQLITE:
        path = url.split("://", 1)[1]
        # sqlite:///relative.db → relative.db ; sqlite:////abs.db → /abs.db
        if path.startswith("/"):
            path = path[1:]
        return DataSource(db_type=db_type, path=path or ":memory:")

    parts = urlsplit(url)
    try:
        port = parts.port
    except ValueError as e:
        raise ConfigError(f"Invalid port in database URL: {url}", cause=e) from e
    return DataSource(
        db_type=db_type,
        host=parts.hostname,
        port=port,
        database=parts.path.lstrip("/") or None,
        username=unquote(parts.username) if parts.username else None,
        password=unquote(parts.password) if parts.password else None,
        url=url,
        params=dict(parse_qsl(parts.query)),
    )


def _port(value: str | None) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ConfigError(f"Invalid port: {value!r}", cause=e) from e


__all__ = [
    "DatabaseType",
    "DataSource",
    "ConnectionConfig",
    "parse_dsn",
]
