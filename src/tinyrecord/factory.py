"""Table-scoped record factory.

``Factory`` binds a model class to its table and primary key and offers
the usual finders and bulk writes::

    contacts = db.factory("@contact")          # generic Model on table contact
    contacts.insert({"name": "test"})
    contact = contacts.find_one_by("name", "test")
    contacts.update_by_pk(contact["id"], {"email": "new@test.com"})

Finders and writes keyed on one column can also be spelled as method
names, in camelCase or snake_case::

    contacts.findOneByName("test")             # find_one_by("name", "test")
    contacts.find_many_by_email("a@b.c")       # find_many_by("email", "a@b.c")
    contacts.countByName("test")               # count_by("name", "test")
    contacts.deleteByEmailAddress("a@b.c")     # delete_by("email_address", "a@b.c")
"""

from __future__ import annotations

import functools
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Callable

from tinyrecord.errors import ModelError, UnknownMethodError
from tinyrecord.model import Model, build_pk_conditions, entity_name_to_db_name, pk_columns

if TYPE_CHECKING:
    from tinyrecord.connection import Database

_CAMEL_FIND_RE = re.compile(r"^find(One|Many)By(.+)$")
_CAMEL_ACTION_RE = re.compile(r"^(update|delete|count)By(.+)$")
_SNAKE_FIND_RE = re.compile(r"^find_(one|many)_by_(.+)$")
_SNAKE_ACTION_RE = re.compile(r"^(update|delete|count)_by_(.+)$")


class Factory:
    """
    Finders and writes for one table.

    Args:
        db: Connection registry.
        model: A :class:`Model` subclass, or ``"@table"`` for the generic Model.
        pk: Primary-key override (column name or tuple of names).
    """

    def __init__(self, db: Database, model: type[Model] | str, pk: str | tuple[str, ...] | None = None):
        self.db = db
        if isinstance(model, str):
            if not model.startswith("@") or len(model) < 2:
                raise ModelError(f"Model descriptor must be a Model subclass or '@table', got {model!r}")
            self.model_class: type[Model] = Model
            self.table = model[1:]
        else:
            self.model_class = model
            self.table = model.table or entity_name_to_db_name(model.__name__)
        self.pk = pk if pk is not None else self.model_class.primary_key

    def get_pk(self) -> str | tuple[str, ...]:
        return self.pk

    def get_table(self) -> str:
        return self.table

    # -- Mapping -----------------------------------------------------------

    def map(self, row: Mapping[str, Any]) -> Model:
        """Wrap a fetched row as a persisted record."""
        return self.model_class(self.db, row, False, table=self.table, pk=self.pk)

    def map_models(self, rows: Iterable[Mapping[str, Any]]) -> list[Model]:
        return [self.map(row) for row in rows]

    def create(self, row: Mapping[str, Any] | None = None) -> Model:
        """A new, unsaved record."""
        return self.model_class(self.db, row, True, table=self.table, pk=self.pk)

    # -- Conditions --------------------------------------------------------

    def _key_condition(self, key: str) -> str:
        return self.db.equals(key, "key")

    def _pk_conditions(self, pk: Any):
        columns = pk_columns(self.pk)
        if isinstance(pk, Mapping):
            values = dict(pk)
        elif len(columns) == 1:
            values = {columns[0]: pk}
        elif isinstance(pk, Sequence) and not isinstance(pk, str) and len(pk) == len(columns):
            values = dict(zip(columns, pk))
        else:
            raise ModelError(
                f"Primary key of {self.table!r} has {len(columns)} columns, got {pk!r}"
            ).with_context(table=self.table)
        missing = [column for column in columns if column not in values]
        if missing:
            raise ModelError(f"Missing primary-key column(s) {missing}").with_context(table=self.table)
        return build_pk_conditions(self.db, self.pk, values)

    # -- Reads -------------------------------------------------------------

    def count(self, conditions: Any = "", params: Mapping[str, Any] | None = None) -> int:
        return self.db.command().select("COUNT(*)").from_(self.table).where(conditions, params).query_scalar()

    def count_by(self, key: str, value: Any) -> int:
        return self.count(self._key_condition(key), {"key": value})

    def find(self, pk: Any) -> Model | None:
        return self.find_by_pk(pk)

    def find_by_pk(self, pk: Any) -> Model | None:
        """Find by primary key; composite keys take a mapping or a sequence in key order."""
        conditions, params = self._pk_conditions(pk)
        return self.find_one(conditions, params)

    def find_all(self) -> list[Model]:
        return self.map_models(self.db.command().select().from_(self.table).query_all())

    def find_one(self, conditions: Any, params: Mapping[str, Any] | None = None) -> Model | None:
        row = self.db.command().select().from_(self.table).where(conditions, params).limit(1).query_row()
        if row is None:
            return None
        return self.map(row)

    def find_one_by(self, key: str, value: Any) -> Model | None:
        return self.find_one(self._key_condition(key), {"key": value})

    def find_many(
        self,
        conditions: Any = "",
        params: Mapping[str, Any] | None = None,
        order_by: str | Iterable[str] | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Model]:
        command = self.db.command().select().from_(self.table).where(conditions, params)
        if order_by:
            command.order_by(order_by)
        rows = command.limit(limit, offset).query_all()
        return self.map_models(rows)

    def find_many_by(
        self,
        key: str,
        value: Any,
        order_by: str | Iterable[str] | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Model]:
        return self.find_many(self._key_condition(key), {"key": value}, order_by, limit, offset)

    # -- Writes ------------------------------------------------------------

    def insert(self, values: Mapping[str, Any]) -> int | None:
        return self.db.command().insert(self.table, values)

    def update(
        self,
        values: Mapping[str, Any],
        conditions: Any = "",
        params: Mapping[str, Any] | None = None,
    ) -> int | None:
        return self.db.command().update(self.table, values, conditions, params)

    def update_by(self, key: str, value: Any, values: Mapping[str, Any]) -> int | None:
        return self.update(values, self._key_condition(key), {"key": value})

    def update_by_pk(self, pk: Any, values: Mapping[str, Any]) -> int | None:
        conditions, params = self._pk_conditions(pk)
        return self.update(values, conditions, params)

    def delete(self, conditions: Any = "", params: Mapping[str, Any] | None = None) -> int | None:
        return self.db.command().delete(self.table, conditions, params)

    def delete_by(self, key: str, value: Any) -> int | None:
        return self.delete(self._key_condition(key), {"key": value})

    def delete_by_pk(self, pk: Any) -> int | None:
        conditions, params = self._pk_conditions(pk)
        return self.delete(conditions, params)

    # -- Dynamic helpers ---------------------------------------------------

    def resolve(self, name: str) -> Callable[..., Any]:
        """Bind a ``find_one_by_<field>``-style name to its method and column."""
        match = _CAMEL_FIND_RE.match(name)
        if match:
            action = f"find_{match.group(1).lower()}_by"
            key = entity_name_to_db_name(match.group(2))
        else:
            match = _CAMEL_ACTION_RE.match(name)
            if match:
                action = f"{match.group(1)}_by"
                key = entity_name_to_db_name(match.group(2))
            else:
                match = _SNAKE_FIND_RE.match(name) or _SNAKE_ACTION_RE.match(name)
                if match is None:
                    raise UnknownMethodError(name)
                if match.re is _SNAKE_FIND_RE:
                    action = f"find_{match.group(1)}_by"
                else:
                    action = f"{match.group(1)}_by"
                key = match.group(2)
        return functools.partial(getattr(self, action), key)

    def call(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """Call a method by name; declared methods win over dynamic helpers."""
        if not name.startswith("_") and callable(getattr(type(self), name, None)):
            return getattr(self, name)(*args, **kwargs)
        return self.resolve(name)(*args, **kwargs)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return self.resolve(name)

    def __repr__(self) -> str:
        return f"Factory(model={self.model_class.__name__}, table={self.table!r}, pk={self.pk!r})"


__all__ = [
    "Factory",
]
