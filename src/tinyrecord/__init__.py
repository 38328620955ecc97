"""tinyrecord — a small database access layer.

Three layers over any DB-API driver:

- ``Database``: named connections, created lazily, with dialect-aware
  identifier quoting
- ``Command``: a fluent SQL builder with condition trees and named params
- ``Model`` / ``Factory``: active records with dirty tracking, relations
  and ``find_one_by_<field>`` helpers

Quick start::

    from tinyrecord import Database

    db = Database("sqlite::memory:")
    db.exec("CREATE TABLE contact (id INTEGER PRIMARY KEY, name TEXT, email TEXT)")

    contacts = db.factory("@contact")
    contacts.create({"name": "test", "email": "test@test.com"}).save()
    contacts.findOneByName("test")["email"]
"""

from tinyrecord.command import Command, QuerySpec
from tinyrecord.conditions import (
    And,
    ConditionCompiler,
    Leaf,
    Or,
    Raw,
    and_,
    in_,
    like,
    not_in,
    not_like,
    or_,
    or_like,
    or_not_like,
)
from tinyrecord.connection import Database
from tinyrecord.dialect import get_dialect, register_dialect
from tinyrecord.errors import (
    BuildError,
    ConfigError,
    DatabaseConnectionError,
    DatabaseError,
    InvalidOperatorError,
    InvalidRelationError,
    MissingFromClauseError,
    ModelError,
    QueryError,
    ReservedFieldError,
    TinyRecordError,
    TransactionError,
    UnknownConnectionError,
    UnknownMethodError,
    UnknownRelationError,
    UnsupportedDialectError,
)
from tinyrecord.factory import Factory
from tinyrecord.model import Model, ModelState, entity_name_to_db_name
from tinyrecord.relations import Relation, RelationKind, many_to_many, many_to_one, one_to_many, one_to_one

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Entry points
    "Database",
    "Command",
    "QuerySpec",
    "Factory",
    "Model",
    "ModelState",
    "entity_name_to_db_name",
    # Conditions
    "And",
    "Or",
    "Raw",
    "Leaf",
    "ConditionCompiler",
    "and_",
    "or_",
    "in_",
    "not_in",
    "like",
    "not_like",
    "or_like",
    "or_not_like",
    # Relations
    "Relation",
    "RelationKind",
    "one_to_one",
    "one_to_many",
    "many_to_one",
    "many_to_many",
    # Dialects
    "get_dialect",
    "register_dialect",
    # Errors
    "TinyRecordError",
    "ConfigError",
    "UnknownConnectionError",
    "DatabaseConnectionError",
    "DatabaseError",
    "QueryError",
    "TransactionError",
    "BuildError",
    "MissingFromClauseError",
    "InvalidOperatorError",
    "UnsupportedDialectError",
    "ModelError",
    "UnknownMethodError",
    "UnknownRelationError",
    "InvalidRelationError",
    "ReservedFieldError",
]
