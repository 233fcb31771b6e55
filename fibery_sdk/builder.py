"""
Schema builder for the Fibery SDK.

Turns the raw wire schema into an immutable Schema:
- Drops soft-deleted types and fields
- Derives per-type shortcuts (id, public id, title and rank fields)
- Resolves every field's relation cardinality from its paired field

The builder is pure: no I/O, no caching, same input gives an equal
Schema.

Invariants:
    - A relation id is shared by exactly two fields (or one field twice
      for a self-relation), otherwise SchemaIntegrityError
    - A type has at most one title field, otherwise SchemaIntegrityError

How to change safely:
    - New meta keys go into _make_field/_make_type only; nothing
      downstream of the builder reads raw meta maps
    - Keep integrity checks fail-fast, callers rely on a built Schema
      being consistent
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Union

from .errors import SchemaIntegrityError
from .raw import RawField, RawSchema, RawType, parse_raw_schema
from .schema import (
    DEFAULT_ID_FIELD,
    DEFAULT_PUBLIC_ID_FIELD,
    RANK_FIELD,
    RANK_MIXIN,
    Cardinality,
    Field,
    Schema,
    Type,
    field_title,
    to_title,
)

logger = logging.getLogger(__name__)


def build_schema(
    raw: Union[RawSchema, Mapping[str, Any]],
    etag: Optional[str] = None,
) -> Schema:
    """Build a Schema from the backend's schema payload.

    Args:
        raw: Decoded GET /api/schema body or an already validated RawSchema
        etag: Revalidation token the payload was served with

    Returns:
        Immutable Schema with resolved cardinalities

    Raises:
        MalformedSchemaError: If the payload does not match the wire format
        SchemaIntegrityError: If relation pairing or title fields are inconsistent
    """
    raw_schema = parse_raw_schema(raw)

    types = [_make_type(rt) for rt in raw_schema.types if not rt.deleted]
    types_by_name = {t.name: t for t in types}

    resolved = tuple(_resolve_cardinalities(t, types_by_name) for t in types)

    schema = Schema(
        types=resolved,
        version=raw_schema.version,
        etag=etag,
        id=raw_schema.id,
    )
    logger.debug("Built schema version=%s with %d types", schema.version, len(schema))
    return schema


def _make_field(raw_field: RawField, holder_type: str) -> Field:
    meta = raw_field.meta
    name = raw_field.name
    return Field(
        id=raw_field.id,
        name=name,
        title=field_title(name, holder_type),
        type=raw_field.type,
        holder_type=holder_type,
        is_collection=bool(meta.get("fibery/collection?", False)),
        is_read_only=bool(meta.get("fibery/readonly?", False)),
        is_id=bool(meta.get("fibery/id?", False)),
        is_public_id=bool(meta.get("fibery/public-id?", False)),
        is_title=bool(meta.get("ui/title?", False)),
        is_required=meta.get("fibery/required?") is True,
        relation=meta.get("fibery/relation") or None,
        multi_relation=meta.get("fibery/multi-relation") or None,
        object_editor_order=meta.get("ui/object-editor-order") or 0,
        description=raw_field.description,
    )


def _make_type(raw_type: RawType) -> Type:
    meta = raw_type.meta
    name = raw_type.name
    installed_mixins = frozenset((meta.get("app/mixins") or {}).keys())
    has_rank = RANK_MIXIN in installed_mixins

    id_field = DEFAULT_ID_FIELD
    public_id_field = DEFAULT_PUBLIC_ID_FIELD
    title_field = ""
    rank_field = None

    fields: List[Field] = []
    for raw_field in raw_type.fields:
        if raw_field.deleted:
            continue
        f = _make_field(raw_field, holder_type=name)

        if f.is_id:
            id_field = f.name
        elif f.is_public_id:
            public_id_field = f.name
        elif f.is_title:
            if title_field:
                raise SchemaIntegrityError(
                    f"Database '{name}' has two title fields: '{title_field}' and '{f.name}'",
                    type_name=name,
                    field_name=f.name,
                )
            title_field = f.name
        elif has_rank and f.name == RANK_FIELD:
            rank_field = f.name

        fields.append(f)

    return Type(
        id=raw_type.id,
        name=name,
        title=to_title(name),
        fields=tuple(fields),
        is_domain=bool(meta.get("fibery/domain?", False)),
        is_primitive=bool(meta.get("fibery/primitive?", False)),
        is_enum=bool(meta.get("fibery/enum?", False)),
        is_platform=bool(meta.get("fibery/platform?", False)),
        installed_mixins=installed_mixins,
        id_field=id_field,
        public_id_field=public_id_field,
        title_field=title_field,
        rank_field=rank_field,
        description=raw_type.description,
    )


def _relation_id(f: Field) -> Optional[str]:
    return f.relation or f.multi_relation


def _find_counterpart(f: Field, target: Type, relation: str) -> Field:
    candidates = [
        other
        for other in target.fields
        if _relation_id(other) == relation
        and not (other.holder_type == f.holder_type and other.name == f.name)
    ]
    if len(candidates) != 1:
        problem = "no counterpart" if not candidates else f"{len(candidates)} counterparts"
        raise SchemaIntegrityError(
            f"Relation '{relation}' of field '{f.name}' in database '{f.holder_type}' "
            f"has {problem} in database '{target.name}'",
            type_name=f.holder_type,
            field_name=f.name,
            relation=relation,
        )
    return candidates[0]


def _cardinality(f: Field, types_by_name: Dict[str, Type]) -> Cardinality:
    target = types_by_name.get(f.type)
    relation = _relation_id(f)

    if relation is not None:
        if target is None:
            raise SchemaIntegrityError(
                f"Relation '{relation}' of field '{f.name}' in database '{f.holder_type}' "
                f"points to unknown database '{f.type}'",
                type_name=f.holder_type,
                field_name=f.name,
                relation=relation,
            )
        counterpart = _find_counterpart(f, target, relation)

    if target is None or target.is_primitive or not target.title_field:
        return Cardinality.NONE

    if relation is None:
        # one-way references and enum selects
        return Cardinality.MANY_TO_MANY if f.is_collection else Cardinality.MANY_TO_ONE

    return Cardinality.from_sides(f.is_collection, counterpart.is_collection)


def _resolve_cardinalities(t: Type, types_by_name: Dict[str, Type]) -> Type:
    fields = tuple(
        replace(f, cardinality=_cardinality(f, types_by_name)) for f in t.fields
    )
    return replace(t, fields=fields)
