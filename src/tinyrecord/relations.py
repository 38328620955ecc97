"""Declarative relations between models.

A model class lists its relations by name::

    class Post(Model):
        table = "post"
        relations = {
            "author": Relation(RelationKind.MANY_TO_ONE, User, key="author_id"),
            "comments": Relation(RelationKind.ONE_TO_MANY, "@comment", target_key="post_id"),
            "tags": Relation(RelationKind.MANY_TO_MANY, Tag, through="post_tag,post_id,tag_id"),
        }

    post.get_relation("comments")   # -> list[Model]

Targets are Model subclasses or ``"@table"`` descriptors.  Unset keys
take the defaults described on each ``Model.get_*`` method.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from tinyrecord.errors import InvalidRelationError

if TYPE_CHECKING:
    from tinyrecord.model import Model


class RelationKind(str, Enum):
    ONE_TO_ONE = "OTO"
    ONE_TO_MANY = "OTM"
    MANY_TO_ONE = "MTO"
    MANY_TO_MANY = "MTM"


@dataclass(frozen=True)
class Through:
    """Join table of a many-to-many relation."""

    table: str
    key: str | None = None
    target_key: str | None = None

    @classmethod
    def parse(cls, through: str) -> Through:
        """``"table,localKey,targetKey"`` with both keys optional."""
        parts = [part.strip() for part in through.split(",")]
        if not parts[0]:
            raise InvalidRelationError(f"Invalid join table descriptor {through!r}")
        key = parts[1] if len(parts) > 1 and parts[1] else None
        target_key = parts[2] if len(parts) > 2 and parts[2] else None
        return cls(parts[0], key, target_key)


@dataclass(frozen=True)
class Relation:
    """One named relation of a model class."""

    kind: RelationKind | str
    target: Any
    key: str | None = None
    target_key: str | None = None
    through: str | None = None

    def __post_init__(self) -> None:
        try:
            kind = RelationKind(self.kind)
        except ValueError:
            raise InvalidRelationError(f"Invalid relation {self.kind!r}") from None
        object.__setattr__(self, "kind", kind)
        if kind is RelationKind.MANY_TO_MANY and not self.through:
            raise InvalidRelationError("Many-to-many relation requires a join table")

    def resolve(self, model: Model) -> Any:
        """Fetch the related record(s) of ``model``."""
        if self.kind is RelationKind.ONE_TO_ONE:
            return model.get_one_to_one(self.target, self.key, self.target_key)
        if self.kind is RelationKind.ONE_TO_MANY:
            return model.get_one_to_many(self.target, self.key, self.target_key)
        if self.kind is RelationKind.MANY_TO_ONE:
            return model.get_many_to_one(self.target, self.key, self.target_key)
        return model.get_many_to_many(self.target, self.through, self.key, self.target_key)


def one_to_one(target: Any, key: str | None = None, target_key: str | None = None) -> Relation:
    return Relation(RelationKind.ONE_TO_ONE, target, key, target_key)


def one_to_many(target: Any, key: str | None = None, target_key: str | None = None) -> Relation:
    return Relation(RelationKind.ONE_TO_MANY, target, key, target_key)


def many_to_one(target: Any, key: str | None = None, target_key: str | None = None) -> Relation:
    return Relation(RelationKind.MANY_TO_ONE, target, key, target_key)


def many_to_many(
    target: Any,
    through: str,
    key: str | None = None,
    target_key: str | None = None,
) -> Relation:
    return Relation(RelationKind.MANY_TO_MANY, target, key, target_key, through)


__all__ = [
    "RelationKind",
    "Relation",
    "Through",
    "one_to_one",
    "one_to_many",
    "many_to_one",
    "many_to_many",
]
