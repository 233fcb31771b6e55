"""
Command builders for the Fibery command API.

Assembles the JSON bodies POSTed to /api/commands from compiled
selects and filters. Only the query shapes the backend accepts are
produced: q/from, q/select, q/where, q/limit, q/offset, q/order-by.

Example:
    >>> select = compile_select(task, schema, OutputMode.RAW)
    >>> where, params = compile_filter(conditions, MatchMode.AND, task, schema)
    >>> build_entity_query(task.name, select, where, params, limit=50)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from .schema import Field, Schema, Type
from .select import COLLECTION_SELECT_LIMIT

QUERY_COMMAND = "fibery.entity/query"
CREATE_COMMAND = "fibery.entity/create"
UPDATE_COMMAND = "fibery.entity/update"
DELETE_COMMAND = "fibery.entity/delete"
ADD_COLLECTION_ITEMS_COMMAND = "fibery.entity/add-collection-items"
BATCH_COMMAND = "fibery.command/batch"

SEARCH_PAGE_SIZE = 50

OrderBy = Sequence[Tuple[Sequence[str], str]]


def build_entity_query(
    type_name: str,
    select: Dict[str, Any],
    where: Optional[List[Any]] = None,
    params: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    order_by: Optional[OrderBy] = None,
) -> Dict[str, Any]:
    """Build a fibery.entity/query command.

    Args:
        type_name: Type to query
        select: Compiled q/select map
        where: Compiled predicate, None for no filter
        params: Predicate params
        limit: Max entities to return
        offset: Entities to skip
        order_by: [(path, "q/asc" | "q/desc"), ...]

    Returns:
        Command dict
    """
    query: Dict[str, Any] = {"q/from": type_name, "q/select": select}
    if where is not None:
        query["q/where"] = where
    if order_by:
        query["q/order-by"] = [[list(path), direction] for path, direction in order_by]
    if limit is not None:
        query["q/limit"] = limit
    if offset is not None:
        query["q/offset"] = offset

    return {
        "command": QUERY_COMMAND,
        "args": {"query": query, "params": dict(params or {})},
    }


def build_entity_by_id_query(t: Type, select: Dict[str, Any], entity_id: str) -> Dict[str, Any]:
    """Query one entity by its id."""
    return build_entity_query(
        t.name,
        select,
        where=["=", [t.id_field], "$entityId"],
        params={"$entityId": entity_id},
        limit=1,
    )


def build_entity_by_public_id_query(
    t: Type, select: Dict[str, Any], public_id: str
) -> Dict[str, Any]:
    """Query one entity by its public id."""
    return build_entity_query(
        t.name,
        select,
        where=["=", [t.public_id_field], "$publicId"],
        params={"$publicId": str(public_id)},
        limit=1,
    )


def build_relation_options_query(field: Field, schema: Schema) -> Dict[str, Any]:
    """List candidate entities for a reference field as {name, value} rows.

    Ordered by the target's rank field when it has one, else by title.

    Raises:
        NotFoundError: If the field's target type is not in the schema
    """
    target = schema.get_type(field.type)
    order_field = target.rank_field or target.title_field
    return build_entity_query(
        target.name,
        {"name": target.title_field, "value": target.id_field},
        limit=COLLECTION_SELECT_LIMIT,
        order_by=[([order_field], "q/asc")],
    )


def build_entity_search_query(
    t: Type,
    text: Optional[str] = None,
    limit: int = SEARCH_PAGE_SIZE,
    offset: int = 0,
) -> Dict[str, Any]:
    """Page through a type's entities as {name, value} rows, matching on title.

    Ordered by the type's rank field when it has one, else by title. Without
    text every entity matches.

    Example:
        >>> build_entity_search_query(task, "login", offset=50)["args"]["params"]
        {'$filter': 'login'}
    """
    where = None
    params: Dict[str, Any] = {}
    if text:
        where = ["q/contains", [t.title_field], "$filter"]
        params["$filter"] = text
    return build_entity_query(
        t.name,
        {"name": t.title_field, "value": t.id_field},
        where=where,
        params=params,
        limit=limit,
        offset=offset,
        order_by=[([t.rank_field or t.title_field], "q/asc")],
    )


def next_page_offset(rows: Sequence[Any], limit: int, offset: int) -> Optional[int]:
    """Offset of the next search page, or None when rows was the last page."""
    return offset + limit if len(rows) == limit else None


def build_create_command(t: Type, entity: Dict[str, Any]) -> Dict[str, Any]:
    return {"command": CREATE_COMMAND, "args": {"type": t.name, "entity": entity}}


def build_update_command(t: Type, entity_id: str, entity: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "command": UPDATE_COMMAND,
        "args": {"type": t.name, "entity": {t.id_field: entity_id, **entity}},
    }


def build_delete_command(t: Type, entity_id: str) -> Dict[str, Any]:
    return {
        "command": DELETE_COMMAND,
        "args": {"type": t.name, "entity": {t.id_field: entity_id}},
    }


def build_add_collection_items_command(
    holder_type: str,
    entity_id: str,
    field: str,
    item_ids: Sequence[str],
) -> Dict[str, Any]:
    return {
        "command": ADD_COLLECTION_ITEMS_COMMAND,
        "args": {
            "type": holder_type,
            "entity": {"fibery/id": entity_id},
            "field": field,
            "items": [{"fibery/id": item_id} for item_id in item_ids],
        },
    }


def batch(commands: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    """Wrap commands into one fibery.command/batch command."""
    return {"command": BATCH_COMMAND, "args": {"commands": list(commands)}}
