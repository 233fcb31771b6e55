"""
Schema model for the Fibery SDK.

This module provides the in-memory representation of one workspace's
type system:
- Field: An attribute or relation on a type
- Type: An entity type ("database") with its fields
- Schema: All types of a workspace at one point in time
- Cardinality: Relation shape between a field and its target type

Instances are built by fibery_sdk.builder from the raw wire schema and
are never mutated afterwards. A schema change on the backend produces
a new Schema instance.

Invariants:
    - Field names are unique within a Type, type names within a Schema
    - At most one field per Type is the title field
    - cardinality is Cardinality.NONE for fields whose target type is
      primitive or has no title field

Example:
    >>> task = schema.get_type("Tasks/Task")
    >>> task.title_field
    'Tasks/Name'
    >>> task.get_field("Tasks/Assignee").cardinality
    <Cardinality.MANY_TO_ONE: ':cardinality/many-to-one'>
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Dict, FrozenSet, Iterator, Optional, Tuple

from .errors import NotFoundError, NotFoundKind, find_suggestions

DEFAULT_ID_FIELD = "fibery/id"
DEFAULT_PUBLIC_ID_FIELD = "fibery/public-id"
RANK_FIELD = "fibery/rank"
RANK_MIXIN = "fibery/rank-mixin"


class Cardinality(Enum):
    """Relation shape of a field, seen from its holder type."""

    NONE = "none"
    ONE_TO_ONE = ":cardinality/one-to-one"
    MANY_TO_ONE = ":cardinality/many-to-one"
    ONE_TO_MANY = ":cardinality/one-to-many"
    MANY_TO_MANY = ":cardinality/many-to-many"

    @property
    def is_single(self) -> bool:
        """Whether the field holds at most one related entity."""
        return self in (Cardinality.ONE_TO_ONE, Cardinality.MANY_TO_ONE)

    @property
    def is_collection(self) -> bool:
        """Whether the field holds a list of related entities."""
        return self in (Cardinality.ONE_TO_MANY, Cardinality.MANY_TO_MANY)

    @classmethod
    def from_sides(cls, is_collection: bool, other_is_collection: bool) -> Cardinality:
        """Combine the collection flags of both ends of a relation."""
        if is_collection:
            return cls.MANY_TO_MANY if other_is_collection else cls.ONE_TO_MANY
        return cls.MANY_TO_ONE if other_is_collection else cls.ONE_TO_ONE


@dataclass(frozen=True)
class Field:
    """Field of a Fibery type.

    Attributes:
        id: Backend-stable identifier
        name: Namespaced backend key, e.g. "Tasks/Assignee"
        title: Human label
        type: Value type name (a primitive or another Type's name)
        holder_type: Name of the owning type
        is_collection: Field holds many values
        is_read_only: Backend rejects writes (formulas, lookups, ids)
        is_id: The entity id field
        is_public_id: The human-facing sequential id field
        is_title: The display title field
        is_required: Backend requires a value on create
        relation: Relation id shared with the paired field
        multi_relation: Multi-relation id (many-to-many across types)
        object_editor_order: Display order in the entity editor
        description: Backend description, if any
        cardinality: Derived relation shape
    """

    id: str
    name: str
    title: str
    type: str
    holder_type: str
    is_collection: bool = False
    is_read_only: bool = False
    is_id: bool = False
    is_public_id: bool = False
    is_title: bool = False
    is_required: bool = False
    relation: Optional[str] = None
    multi_relation: Optional[str] = None
    object_editor_order: float = 0
    description: Optional[str] = None
    cardinality: Cardinality = Cardinality.NONE

    @property
    def has_relation(self) -> bool:
        """Whether the field is one end of a paired relation."""
        return self.relation is not None or self.multi_relation is not None


@dataclass(frozen=True)
class Type:
    """Fibery type ("database").

    Attributes:
        id: Backend-stable identifier
        name: Namespaced name, e.g. "Tasks/Task"
        title: Human label
        fields: Fields in backend order
        is_domain: User-facing type (vs. platform internals)
        is_primitive: Scalar type such as fibery/text
        is_enum: Single/multi select option type
        is_platform: Built-in platform type
        installed_mixins: Names of installed mixins
        id_field: Name of the id field
        public_id_field: Name of the public id field
        title_field: Name of the title field, "" if none
        rank_field: Name of the rank field, if the rank mixin is installed
    """

    id: str
    name: str
    title: str
    fields: Tuple[Field, ...] = ()
    is_domain: bool = False
    is_primitive: bool = False
    is_enum: bool = False
    is_platform: bool = False
    installed_mixins: FrozenSet[str] = frozenset()
    id_field: str = DEFAULT_ID_FIELD
    public_id_field: str = DEFAULT_PUBLIC_ID_FIELD
    title_field: str = ""
    rank_field: Optional[str] = None
    description: Optional[str] = None
    _fields_by_name: Dict[str, Field] = dataclass_field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "_fields_by_name", {f.name: f for f in self.fields})

    def get_field(self, name: str) -> Field:
        """Get field by name.

        Raises:
            NotFoundError: If the type has no such field
        """
        try:
            return self._fields_by_name[name]
        except KeyError:
            raise NotFoundError(
                NotFoundKind.UNKNOWN_FIELD,
                name,
                type_name=self.name,
                suggestions=find_suggestions(name, list(self._fields_by_name)),
            ) from None

    def has_field(self, name: str) -> bool:
        """Whether the type has a field with this name."""
        return name in self._fields_by_name

    def field_names(self) -> list[str]:
        """Get field names in backend order."""
        return [f.name for f in self.fields]

    def __hash__(self) -> int:
        return hash(self.name)


@dataclass(frozen=True)
class Schema:
    """Type system of one workspace.

    Attributes:
        types: All non-deleted types in backend order
        version: Backend schema version number
        etag: Revalidation token the schema was served with
        id: Backend schema id
    """

    types: Tuple[Type, ...] = ()
    version: Optional[int] = None
    etag: Optional[str] = None
    id: Optional[str] = None
    _types_by_name: Dict[str, Type] = dataclass_field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "_types_by_name", {t.name: t for t in self.types})

    def get_type(self, name: str) -> Type:
        """Get type by name.

        Raises:
            NotFoundError: If the schema has no such type
        """
        try:
            return self._types_by_name[name]
        except KeyError:
            raise NotFoundError(
                NotFoundKind.UNKNOWN_TYPE,
                name,
                suggestions=find_suggestions(name, list(self._types_by_name)),
            ) from None

    def has_type(self, name: str) -> bool:
        """Whether the schema has a type with this name."""
        return name in self._types_by_name

    def field_target(self, field: Field) -> Optional[Type]:
        """Type a field's values belong to, or None if not in the schema."""
        return self._types_by_name.get(field.type)

    def domain_types(self) -> list[Type]:
        """User-facing types sorted by name."""
        return sorted((t for t in self.types if t.is_domain), key=lambda t: t.name)

    def __iter__(self) -> Iterator[Type]:
        return iter(self.types)

    def __len__(self) -> int:
        return len(self.types)


# Titles

_NAME_OVERRIDES = {
    "fibery/type": "fibery/Database",
    "fibery/app": "fibery/Space",
}


def _capitalize(value: str) -> str:
    return value[:1].upper() + value[1:].lower()


def _split_keyword(keyword: str) -> tuple[str, str]:
    namespace, sep, name = (keyword or "").partition("/")
    if not sep:
        return "", namespace
    return namespace, name


def _pascal_title(value: str) -> str:
    name = value.split("/")[-1]
    return " ".join(_capitalize(part) for part in name.split("-"))


def to_title(name: str) -> str:
    """Derive a human label from a namespaced type or field name.

    Lower-case legacy names ("fibery/creation-date") become
    "Creation Date"; modern names ("Tasks/Due~Date") are capitalized and have tildes
    replaced by spaces.

    Example:
        >>> to_title("fibery/modification-date")
        'Modification Date'
        >>> to_title("Tasks/Due~Date")
        'Due date'
    """
    keyword = _NAME_OVERRIDES.get(name, name)
    _, short = _split_keyword(keyword)
    if short.lower() == short and "~" not in short:
        return _pascal_title(short)
    return _capitalize(short).replace("~", " ")


def field_title(name: str, holder_type: str) -> str:
    """Human label of a field."""
    if name == "fibery/role" and holder_type == "fibery/user":
        return "User Role"
    return to_title(name)
