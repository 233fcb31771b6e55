"""
Entity update building for the Fibery SDK.

Splits user-supplied field values into what the backend needs for a
create/update:
- entity: scalar and single-reference values for fibery.entity/create
  or fibery.entity/update
- collections: collection-reference ids, added with separate
  fibery.entity/add-collection-items commands
- documents: rich-text content, written through the documents API by
  secret handle once the entity exists

Example:
    >>> update = build_entity_update(rows, task, schema, "Europe/Berlin")
    >>> command = build_create_command(task, update.entity)
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence

from .fields import is_collection_reference, is_rich_text_document, is_single_reference
from .filters import to_utc_instant
from .query import build_add_collection_items_command
from .schema import Schema, Type

DEFAULT_TIMEZONE = "default"

_DATE_TYPES = frozenset({"fibery/date", "fibery/date-time"})
_DATE_RANGE_TYPES = frozenset({"fibery/date-range", "fibery/date-time-range"})


@dataclass(frozen=True)
class CollectionItems:
    """Related entity ids to add to a collection field."""

    field: str
    values: List[str]
    holder_type: str


@dataclass(frozen=True)
class DocumentContent:
    """Content for a rich-text document field."""

    field: str
    content: str


@dataclass
class EntityUpdate:
    """Result of build_entity_update().

    Attributes:
        entity: Field values for the create/update command
        collections: Collection items to add afterwards
        documents: Document contents to write afterwards
    """

    entity: Dict[str, Any] = field(default_factory=dict)
    collections: List[CollectionItems] = field(default_factory=list)
    documents: List[DocumentContent] = field(default_factory=list)

    def collection_commands(self, entity_id: str) -> List[Dict[str, Any]]:
        """add-collection-items commands for an existing entity."""
        return [
            build_add_collection_items_command(c.holder_type, entity_id, c.field, c.values)
            for c in self.collections
        ]

    def document_secrets(self, entity: Mapping[str, Any]) -> List[Dict[str, str]]:
        """Pair document contents with the secrets selected on the saved entity."""
        return [
            {"secret": entity[doc.field], "content": doc.content}
            for doc in self.documents
            if entity.get(doc.field)
        ]


def _field_name(row: Mapping[str, Any]) -> str:
    key = row.get("key") or ""
    if isinstance(key, str):
        return json.loads(key).get("name", "") if key else ""
    return key.get("name", "")


def build_entity_update(
    field_values: Sequence[Mapping[str, Any]],
    t: Type,
    schema: Schema,
    timezone: str,
) -> EntityUpdate:
    """Build an EntityUpdate from UI field rows.

    Each row carries "key" (field descriptor from fields.field_key, dict
    or JSON) and, depending on the field, "value", "checked",
    "valueStart"/"valueEnd" and "timezone" ("default" means the
    timezone argument).

    Args:
        field_values: Field rows
        t: Type being written
        schema: Schema of t
        timezone: Default IANA timezone for date values

    Returns:
        EntityUpdate

    Raises:
        NotFoundError: If a row names an unknown field
    """
    update = EntityUpdate()

    for row in field_values:
        name = _field_name(row)
        if not name:
            continue

        f = t.get_field(name)
        row_tz = row.get("timezone") or DEFAULT_TIMEZONE
        tz_name = timezone if row_tz == DEFAULT_TIMEZONE else row_tz

        if f.type == "fibery/bool":
            update.entity[name] = bool(row.get("checked"))
        elif f.type in _DATE_RANGE_TYPES:
            start, end = row.get("valueStart"), row.get("valueEnd")
            update.entity[name] = {
                "start": to_utc_instant(start, tz_name) if start else None,
                "end": to_utc_instant(end, tz_name) if end else None,
            }
        elif f.type in _DATE_TYPES:
            value = row.get("value")
            update.entity[name] = to_utc_instant(value, tz_name) if value else None
        elif is_single_reference(f, schema):
            value = row.get("value")
            target = schema.get_type(f.type)
            update.entity[name] = {target.id_field: value} if value else None
        elif is_collection_reference(f, schema):
            update.collections.append(
                CollectionItems(field=name, values=list(row.get("value") or []), holder_type=f.holder_type)
            )
        elif is_rich_text_document(f):
            update.documents.append(DocumentContent(field=name, content=str(row.get("value") or "")))
        else:
            update.entity[name] = row.get("value")

    return update
