"""
Select compiler for the Fibery SDK.

Builds the "q/select" map of a fibery.entity/query command for a type:
- simplified: title, id, public id and the audit fields
- raw: every supported field, title first then in display order
- selectedFields: exactly the caller's field names

Each field compiles according to its classification: documents select
their secret handle (content is fetched separately), single references
select {id, name} of the related entity, collection references select a
sub-query capped at COLLECTION_SELECT_LIMIT entities, everything else
selects the field itself.

Invariants:
    - Unsupported fields are dropped, never an error
    - Collection sub-queries always carry q/limit = 200
    - Select keys keep field order (title first in raw mode)

Example:
    >>> compile_select(task, schema, OutputMode.SIMPLIFIED)
    {'Tasks/Name': 'Tasks/Name', 'fibery/id': 'fibery/id', ...}
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from .fields import (
    DEFAULT_POLICY,
    DOCUMENT_SECRET_FIELD,
    FieldPolicy,
    is_collection_reference,
    is_file_field,
    is_rich_text_document,
    is_single_reference,
    is_supported,
    supported_fields,
)
from .schema import Field, Schema, Type

FIBERY_URL_FIELD = "Fibery URL"
AUDIT_FIELDS = ("fibery/created-by", "fibery/creation-date", "fibery/modification-date")
COLLECTION_SELECT_LIMIT = 200


class OutputMode(Enum):
    """Which fields of an entity a query returns."""

    SIMPLIFIED = "simplified"
    RAW = "raw"
    SELECTED_FIELDS = "selectedFields"


def _fields_for_mode(
    t: Type,
    mode: OutputMode,
    chosen_field_names: Optional[Sequence[str]],
    policy: FieldPolicy,
) -> List[Field]:
    if mode is OutputMode.RAW:
        return supported_fields(t, policy)

    if mode is OutputMode.SELECTED_FIELDS:
        names: List[str] = []
        for name in chosen_field_names or ():
            if name == FIBERY_URL_FIELD:
                # public id and title make up the entity url
                names.extend([t.public_id_field, t.title_field])
            else:
                names.append(name)
        return [t.get_field(name) for name in _unique(names) if name]

    names = [t.title_field, t.id_field, t.public_id_field, *AUDIT_FIELDS]
    return [t.get_field(name) for name in _unique(names) if name and t.has_field(name)]


def _unique(names: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(names))


def compile_field_select(field: Field, schema: Schema) -> Any:
    """Select expression for one supported field."""
    if is_rich_text_document(field):
        return [field.name, DOCUMENT_SECRET_FIELD]

    if is_file_field(field):
        if is_single_reference(field, schema):
            return {
                "name": [field.name, "fibery/name"],
                "secret": [field.name, "fibery/secret"],
            }
        return {
            "q/from": [field.name],
            "q/limit": "q/no-limit",
            "q/select": {"name": ["fibery/name"], "secret": ["fibery/secret"]},
        }

    if is_single_reference(field, schema):
        target = schema.get_type(field.type)
        return {
            "id": [field.name, target.id_field],
            "name": [field.name, target.title_field],
        }

    if is_collection_reference(field, schema):
        target = schema.get_type(field.type)
        return {
            "q/from": field.name,
            "q/limit": COLLECTION_SELECT_LIMIT,
            "q/select": {"id": target.id_field, "name": target.title_field},
        }

    return field.name


def compile_select(
    t: Type,
    schema: Schema,
    mode: Union[OutputMode, str] = OutputMode.SIMPLIFIED,
    chosen_field_names: Optional[Sequence[str]] = None,
    policy: FieldPolicy = DEFAULT_POLICY,
) -> Dict[str, Any]:
    """Compile the q/select map for a type.

    Args:
        t: Type being queried
        schema: Schema the type belongs to
        mode: Output mode (enum or its string value)
        chosen_field_names: Field names for selectedFields mode; the
            FIBERY_URL_FIELD sentinel expands to public id and title
        policy: Which optional field kinds are supported

    Returns:
        Select map keyed by field name

    Raises:
        NotFoundError: If a chosen field name does not exist on the type
    """
    mode = OutputMode(mode)
    select: Dict[str, Any] = {}
    for field in _fields_for_mode(t, mode, chosen_field_names, policy):
        if not is_supported(field, policy):
            continue
        select[field.name] = compile_field_select(field, schema)
    return select
