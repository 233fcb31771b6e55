"""
Field classification for the Fibery SDK.

Stateless predicates over (Field, Schema) used by the select and filter
compilers and by the update builder:
- is_single_reference / is_collection_reference: relation shape
- is_rich_text_document / is_file_field: out-of-band content
- is_supported: may appear in a generated select or filter at all
- control_type: UI control kind a field maps to
- is_writable / is_searchable: may be written / filtered on

Invariants:
    - Predicates never raise, whatever the field or schema
    - A field with Cardinality.NONE is neither a single nor a collection
      reference
    - An unsupported field is never writable or searchable

How to change safely:
    - File fields are governed by FieldPolicy, not by the predicates;
      keep new "sometimes supported" kinds behind the policy as well
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .config import Settings, get_settings
from .schema import Field, Schema, Type

DOCUMENT_TYPE = "Collaboration~Documents/Document"
DOCUMENT_SECRET_FIELD = "Collaboration~Documents/secret"
FILE_TYPE = "fibery/file"

UNSUPPORTED_TYPES = frozenset(
    {
        "fibery/Button",
        "fibery/view",
        "comments/comment",
    }
)
UNSUPPORTED_NAMES = frozenset({"Collaboration~Documents/References"})

SEARCHABLE_TYPES = frozenset(
    {
        "fibery/uuid",
        "fibery/decimal",
        "fibery/int",
        "fibery/bool",
        "fibery/date",
        "fibery/date-time",
        "fibery/email",
        "fibery/text",
        "fibery/url",
    }
)


class ControlType(Enum):
    """UI control a field is edited or filtered with."""

    TEXT = "text"
    TEXT_AREA = "text-area"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    DATE_RANGE = "date-range"
    SELECT = "select"
    MULTI_SELECT = "multi-select"
    FILE = "file"
    HIDDEN = "hidden"


_CONTROL_BY_TYPE = {
    "fibery/text": ControlType.TEXT,
    "fibery/email": ControlType.TEXT,
    "fibery/emoji": ControlType.TEXT,
    "fibery/uuid": ControlType.TEXT,
    "fibery/url": ControlType.TEXT,
    "fibery/decimal": ControlType.NUMBER,
    "fibery/number": ControlType.NUMBER,
    "fibery/int": ControlType.NUMBER,
    "fibery/bool": ControlType.BOOLEAN,
    "fibery/date": ControlType.DATE,
    "fibery/date-time": ControlType.DATE,
    "fibery/date-range": ControlType.DATE_RANGE,
    "fibery/date-time-range": ControlType.DATE_RANGE,
}


@dataclass(frozen=True)
class FieldPolicy:
    """Which optional field kinds are treated as supported.

    Attributes:
        include_files: Select file fields as {name, secret} sub-selects
    """

    include_files: bool = False

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> FieldPolicy:
        settings = settings or get_settings()
        return cls(include_files=settings.include_file_fields)


DEFAULT_POLICY = FieldPolicy()


def _reference_target(field: Field, schema: Schema) -> Optional[Type]:
    target = schema.field_target(field)
    if target is None or target.is_primitive or not target.title_field:
        return None
    return target


def is_single_reference(field: Field, schema: Schema) -> bool:
    """Field points at one entity of a titled, non-primitive type."""
    return _reference_target(field, schema) is not None and field.cardinality.is_single


def is_collection_reference(field: Field, schema: Schema) -> bool:
    """Field points at a list of entities of a titled, non-primitive type."""
    return _reference_target(field, schema) is not None and field.cardinality.is_collection


def is_reference(field: Field, schema: Schema) -> bool:
    return is_single_reference(field, schema) or is_collection_reference(field, schema)


def is_rich_text_document(field: Field) -> bool:
    """Field holds a collaborative document, read by secret handle."""
    return field.type == DOCUMENT_TYPE


def is_file_field(field: Field) -> bool:
    return field.type == FILE_TYPE


def is_supported(field: Field, policy: FieldPolicy = DEFAULT_POLICY) -> bool:
    """Field may appear in generated selects and filters."""
    if field.type in UNSUPPORTED_TYPES or field.name in UNSUPPORTED_NAMES:
        return False
    if is_file_field(field):
        return policy.include_files
    return True


def control_type(field: Field, schema: Schema) -> Optional[ControlType]:
    """UI control for a field, or None if it has none."""
    control = _CONTROL_BY_TYPE.get(field.type)
    if control is not None:
        return control
    if is_rich_text_document(field):
        return ControlType.TEXT_AREA
    if is_file_field(field):
        return ControlType.FILE
    if is_single_reference(field, schema):
        return ControlType.SELECT
    if is_collection_reference(field, schema):
        return ControlType.MULTI_SELECT
    return None


def is_writable(field: Field, schema: Schema, policy: FieldPolicy = DEFAULT_POLICY) -> bool:
    """Field can be set on create/update."""
    return (
        not field.is_read_only
        and is_supported(field, policy)
        and not is_file_field(field)
        and control_type(field, schema) is not None
    )


def is_searchable(field: Field, schema: Schema, policy: FieldPolicy = DEFAULT_POLICY) -> bool:
    """Field can be used in a filter condition."""
    return (
        field.type in SEARCHABLE_TYPES or is_reference(field, schema)
    ) and is_supported(field, policy)


def display_order(field: Field) -> float:
    """Sort key: title field first, then the editor order."""
    return -1 if field.is_title else field.object_editor_order


def supported_fields(t: Type, policy: FieldPolicy = DEFAULT_POLICY) -> List[Field]:
    """Supported fields of a type, title first then in display order."""
    return sorted((f for f in t.fields if is_supported(f, policy)), key=display_order)


def writable_fields(
    t: Type, schema: Schema, policy: FieldPolicy = DEFAULT_POLICY
) -> List[Field]:
    return sorted((f for f in t.fields if is_writable(f, schema, policy)), key=display_order)


def searchable_fields(
    t: Type, schema: Schema, policy: FieldPolicy = DEFAULT_POLICY
) -> List[Field]:
    return sorted((f for f in t.fields if is_searchable(f, schema, policy)), key=display_order)


def field_key(field: Field, schema: Schema) -> dict:
    """Descriptor tagging a filter or update row with the field's kind.

    Example:
        >>> field_key(task.get_field("Tasks/Assignee"), schema)
        {'name': 'Tasks/Assignee', 'type': 'select'}
    """
    control = control_type(field, schema)
    return {"name": field.name, "type": control.value if control is not None else None}
