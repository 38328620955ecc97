"""Active-record model.

Manifesto:
    A ``Model`` is one row of one table.  Values read from the database
    and values set by the caller live in two separate maps, so ``save()``
    writes exactly what changed: an INSERT of the dirty fields for a new
    record, an UPDATE by primary key for a persisted one.  A failed write
    leaves the record as it was.

Architecture::

    Model
    ├── _data    persisted fields (as last read / written)
    ├── _dirty   fields set since then
    ├── _state   NEW ──save()──► PERSISTED ──delete()──► DELETED
    ├── get / set / unset / has, m["field"]
    ├── save() / delete() with before_* / after_* hooks
    └── get_relation(name) ──► Relation.resolve ──► Factory.find_*

Examples:
    >>> class Contact(Model):
    ...     table = "contact"
    >>> contact = db.factory(Contact).create({"name": "test"})
    >>> contact.save()
    1
    >>> contact["id"]
    1
    >>> contact.save()      # nothing changed, nothing written
    >>> contact["email"] = "test@test.com"
    >>> contact.save()
    1

Tags:
    active-record, model, dirty-tracking, orm, tinyrecord
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

from tinyrecord.conditions import And, Raw
from tinyrecord.errors import InvalidRelationError, ReservedFieldError, UnknownRelationError
from tinyrecord.logging import LogContext, get_logger
from tinyrecord.relations import Relation, Through

if TYPE_CHECKING:
    from tinyrecord.connection import Database

logger = get_logger(__name__)

_CAMEL_RE = re.compile(r"(?<=[a-z])([A-Z])")


def entity_name_to_db_name(name: str) -> str:
    """Translate a class name to a table/column name.

    >>> entity_name_to_db_name("BlogPost")
    'blog_post'
    >>> entity_name_to_db_name("acme.models.BlogPost")
    'blog_post'
    """
    name = name.rsplit(".", 1)[-1]
    return _CAMEL_RE.sub(r"_\1", name).lower()


def pk_columns(pk: str | tuple[str, ...] | list[str]) -> list[str]:
    return [pk] if isinstance(pk, str) else list(pk)


def build_pk_conditions(
    db: Database,
    pk: str | tuple[str, ...] | list[str],
    values: Mapping[str, Any],
) -> tuple[And, dict[str, Any]]:
    """AND of ``<col> = :pk<i>`` over every primary-key column."""
    operands = []
    params: dict[str, Any] = {}
    for i, column in enumerate(pk_columns(pk)):
        operands.append(Raw(f"{db.quote_column(column)} = :pk{i}"))
        params[f"pk{i}"] = values.get(column)
    return And(tuple(operands)), params


class ModelState(str, Enum):
    NEW = "new"
    PERSISTED = "persisted"
    DELETED = "deleted"


class Model:
    """
    Record of one table.

    Subclasses configure themselves with class attributes:

    - ``table``: table name (default: snake_case of the class name)
    - ``primary_key``: column name or tuple of column names (default ``"id"``)
    - ``relations``: ``{name: Relation}``

    Args:
        db: Connection registry the record reads and writes through.
        data: Initial fields; dirty when ``is_new``, persisted otherwise.
        is_new: Whether the record exists in storage yet.
        table: Table override (used by factories).
        pk: Primary-key override (used by factories).
    """

    table: ClassVar[str | None] = None
    primary_key: ClassVar[str | tuple[str, ...]] = "id"
    relations: ClassVar[dict[str, Relation]] = {}

    def __init__(
        self,
        db: Database,
        data: Mapping[str, Any] | None = None,
        is_new: bool = True,
        *,
        table: str | None = None,
        pk: str | tuple[str, ...] | None = None,
    ):
        self._db = db
        self._data: dict[str, Any] = {}
        self._dirty: dict[str, Any] = {}
        self._state = ModelState.NEW if is_new else ModelState.PERSISTED
        self._table = table or type(self).table or entity_name_to_db_name(type(self).__name__)
        self._pk = pk if pk is not None else type(self).primary_key
        if data:
            if is_new:
                self.set(data)
            else:
                self._data = dict(data)

    # =========================================================================
    # Definition
    # =========================================================================

    @property
    def db(self) -> Database:
        return self._db

    def get_table(self) -> str:
        return self._table

    def get_pk(self) -> str | tuple[str, ...]:
        return self._pk

    def get_relations(self) -> dict[str, Relation]:
        return type(self).relations

    @property
    def state(self) -> ModelState:
        return self._state

    def is_new(self) -> bool:
        return self._state is ModelState.NEW

    def is_deleted(self) -> bool:
        return self._state is ModelState.DELETED

    def is_dirty(self) -> bool:
        return bool(self._dirty)

    # =========================================================================
    # Fields
    # =========================================================================

    def get(self, name: str | None = None) -> Any:
        """One field (dirty value first), or all fields merged."""
        if name is None:
            return {**self._data, **self._dirty}
        if name in self._dirty:
            return self._dirty[name]
        return self._data.get(name)

    def get_raw(self, name: str | None = None) -> Any:
        """Persisted value(s) only, ignoring unsaved changes."""
        if name is None:
            return dict(self._data)
        return self._data.get(name)

    def set(self, name: str | Mapping[str, Any], value: Any = None) -> Model:
        """Set one field, or merge a mapping of fields."""
        values = dict(name) if isinstance(name, Mapping) else {name: value}
        relations = self.get_relations()
        for key in values:
            if key in relations:
                raise ReservedFieldError(key)
        self._dirty.update(values)
        return self

    def unset(self, name: str) -> Model:
        """Drop an unsaved change."""
        self._dirty.pop(name, None)
        return self

    def has(self, name: str) -> bool:
        return name in self._dirty or name in self._data

    def to_dict(self) -> dict[str, Any]:
        return self.get()

    def __getitem__(self, name: str) -> Any:
        if not self.has(name):
            raise KeyError(name)
        return self.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __delitem__(self, name: str) -> None:
        if name not in self._dirty:
            raise KeyError(name)
        self.unset(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self.get())

    def __len__(self) -> int:
        return len(self.get())

    def __repr__(self) -> str:
        return f"{type(self).__name__}(table={self._table!r}, state={self._state.value}, data={self.get()!r})"

    # =========================================================================
    # Relations
    # =========================================================================

    def get_relation(self, name: str) -> Any:
        """Resolve the relation declared under ``name``."""
        relation = self.get_relations().get(name)
        if relation is None:
            raise UnknownRelationError(name)
        return relation.resolve(self)

    def _single_key(self, key: Any) -> str:
        if not isinstance(key, str):
            raise InvalidRelationError(
                f"Relation key must be a single column, got {key!r}"
            ).with_context(table=self._table)
        return key

    def get_one_to_one(self, target: Any, key: str | None = None, target_key: str | None = None) -> Model | None:
        """Has one.

        ``key`` defaults to this record's primary key, ``target_key`` to the
        target's primary key.
        """
        factory = self._db.factory(target)
        key = self._single_key(key or self.get_pk())
        target_key = self._single_key(target_key or factory.get_pk())
        return factory.find_one_by(target_key, self.get(key))

    def get_one_to_many(self, target: Any, key: str | None = None, target_key: str | None = None) -> list[Model]:
        """Has many.

        ``key`` defaults to this record's primary key, ``target_key`` to ``key``.
        """
        factory = self._db.factory(target)
        key = self._single_key(key or self.get_pk())
        target_key = target_key or key
        return factory.find_many_by(target_key, self.get(key))

    def get_many_to_one(self, target: Any, key: str | None = None, target_key: str | None = None) -> Model | None:
        """Belongs to.

        ``target_key`` defaults to the target's primary key, ``key`` to
        ``target_key``.
        """
        factory = self._db.factory(target)
        target_key = self._single_key(target_key or factory.get_pk())
        key = key or target_key
        return factory.find_one_by(target_key, self.get(key))

    def get_many_to_many(
        self,
        target: Any,
        through: str,
        key: str | None = None,
        target_key: str | None = None,
    ) -> list[Model]:
        """Many to many through a join table ``"table,localKey,targetKey"``.

        ``key`` defaults to this record's primary key and ``target_key`` to
        the target's; the join table keys default to those two.
        """
        factory = self._db.factory(target)
        key = self._single_key(key or self.get_pk())
        target_key = self._single_key(target_key or factory.get_pk())
        join = Through.parse(through)
        local_key = join.key or key
        remote_key = join.target_key or target_key

        quote = self._db.quote_column
        rows = (
            self._db.command()
            .select("t.*")
            .from_(f"{factory.get_table()} t")
            .left_join(f"{join.table} m", f"{quote(f'm.{remote_key}')} = {quote(f't.{target_key}')}")
            .where(f"{quote(f'm.{local_key}')} = :value", {"value": self.get(key)})
            .query_all()
        )
        return factory.map_models(rows)

    # =========================================================================
    # Persistence
    # =========================================================================

    def _pk_conditions(self) -> tuple[And, dict[str, Any]]:
        return build_pk_conditions(self._db, self.get_pk(), self._data)

    def save(self) -> int | None:
        """Write pending changes; affected rows, or ``None`` when nothing was written."""
        with LogContext(connection=self._db.current, table=self._table):
            return self._save()

    def _save(self) -> int | None:
        if not self.before_save():
            logger.debug("save_skipped", reason="before_save")
            return None
        if self._state is ModelState.DELETED:
            logger.debug("save_skipped", reason="deleted")
            return None

        if self._state is ModelState.NEW:
            data = dict(self._dirty)
            result = self._db.command().insert(self._table, data)
            if result is None:
                return None
            pk = self.get_pk()
            if isinstance(pk, str) and pk not in data:
                last_id = self._db.last_insert_id()
                if last_id:
                    data[pk] = last_id
            self._data = data
            self._dirty = {}
            self._state = ModelState.PERSISTED
        else:
            if not self._dirty:
                logger.debug("save_skipped", reason="clean")
                return None
            conditions, params = self._pk_conditions()
            result = self._db.command().update(self._table, self._dirty, conditions, params)
            if result is None:
                return None
            self._data.update(self._dirty)
            self._dirty = {}

        logger.info("model_saved", rows=result)
        self.after_save()
        return result

    def delete(self) -> int | None:
        """Delete the stored row; a new record is discarded without a query."""
        with LogContext(connection=self._db.current, table=self._table):
            return self._delete()

    def _delete(self) -> int | None:
        if not self.before_delete():
            return None
        if self._state is ModelState.DELETED:
            return None

        if self._state is ModelState.NEW:
            result = 0
        else:
            conditions, params = self._pk_conditions()
            result = self._db.command().delete(self._table, conditions, params)
            if result is None:
                return None
            self._state = ModelState.DELETED

        self._data = {}
        self._dirty = {}
        logger.info("model_deleted", rows=result)
        self.after_delete()
        return result

    # -- Hooks -------------------------------------------------------------

    def before_save(self) -> bool:
        return True

    def after_save(self) -> bool:
        return True

    def before_delete(self) -> bool:
        return True

    def after_delete(self) -> bool:
        return True


__all__ = [
    "Model",
    "ModelState",
    "build_pk_conditions",
    "entity_name_to_db_name",
    "pk_columns",
]
