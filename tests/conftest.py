"""
Shared fixtures for the Fibery SDK tests.

The sample workspace has:
- Tasks/Task: every field kind the compilers handle
- Tasks/Tag: many-to-many with Tasks/Task
- Tasks/Status: enum type, many-to-one from Tasks/Task
- fibery/user: one-to-many to Tasks/Task via Tasks/Assignee
- primitives, the document type and the file type
"""

from typing import Any, Dict, List

import pytest

from fibery_sdk.builder import build_schema


def raw_field(name: str, type_: str, field_id: str = "", deleted: bool = False, **meta: Any) -> Dict[str, Any]:
    """Helper to create a raw field record."""
    return {
        "fibery/id": field_id or f"id-{name}",
        "fibery/name": name,
        "fibery/type": type_,
        "fibery/meta": meta,
        "fibery/deleted?": deleted,
    }


def raw_type(name: str, fields: List[Dict[str, Any]], deleted: bool = False, **meta: Any) -> Dict[str, Any]:
    """Helper to create a raw type record."""
    return {
        "fibery/id": f"id-{name}",
        "fibery/name": name,
        "fibery/meta": meta,
        "fibery/fields": fields,
        "fibery/deleted?": deleted,
    }


def raw_schema_of(types: List[Dict[str, Any]], version: int = 1) -> Dict[str, Any]:
    """Helper to wrap types into a raw schema document."""
    return {
        "fibery/id": "schema-1",
        "fibery/version": version,
        "fibery/meta": {},
        "fibery/types": types,
    }


def id_fields() -> List[Dict[str, Any]]:
    return [
        raw_field("fibery/id", "fibery/uuid", **{"fibery/id?": True, "fibery/readonly?": True}),
        raw_field("fibery/public-id", "fibery/text", **{"fibery/public-id?": True, "fibery/readonly?": True}),
    ]


def primitive(name: str) -> Dict[str, Any]:
    return raw_type(name, [], **{"fibery/primitive?": True})


PRIMITIVES = [
    "fibery/text",
    "fibery/uuid",
    "fibery/decimal",
    "fibery/int",
    "fibery/bool",
    "fibery/date",
    "fibery/date-time",
    "fibery/date-time-range",
    "fibery/Button",
]


def sample_types() -> List[Dict[str, Any]]:
    task = raw_type(
        "Tasks/Task",
        [
            *id_fields(),
            raw_field("Tasks/Estimate", "fibery/decimal", **{"ui/object-editor-order": 3}),
            raw_field("Tasks/Name", "fibery/text", **{"ui/title?": True, "fibery/required?": True}),
            raw_field("Tasks/Done", "fibery/bool", **{"ui/object-editor-order": 4}),
            raw_field("Tasks/Due", "fibery/date", **{"ui/object-editor-order": 5}),
            raw_field("Tasks/Period", "fibery/date-time-range", **{"ui/object-editor-order": 6}),
            raw_field(
                "Tasks/Assignee",
                "fibery/user",
                **{"fibery/relation": "rel-assignee", "ui/object-editor-order": 1},
            ),
            raw_field(
                "Tasks/Tags",
                "Tasks/Tag",
                **{"fibery/relation": "rel-tags", "fibery/collection?": True, "ui/object-editor-order": 2},
            ),
            raw_field(
                "workflow/state",
                "Tasks/Status",
                **{"fibery/relation": "rel-status", "ui/object-editor-order": 7},
            ),
            raw_field(
                "Tasks/Description",
                "Collaboration~Documents/Document",
                **{"ui/object-editor-order": 8},
            ),
            raw_field(
                "Tasks/Files",
                "fibery/file",
                **{"fibery/collection?": True, "ui/object-editor-order": 9},
            ),
            raw_field("Tasks/Parent", "Tasks/Task", **{"fibery/relation": "rel-parent", "ui/object-editor-order": 10}),
            raw_field(
                "Tasks/Subtasks",
                "Tasks/Task",
                **{"fibery/relation": "rel-parent", "fibery/collection?": True, "ui/object-editor-order": 11},
            ),
            raw_field("Tasks/Score", "fibery/decimal", **{"fibery/readonly?": True, "formula/formula?": True, "ui/object-editor-order": 12}),
            raw_field("Tasks/Start", "fibery/Button", **{"ui/object-editor-order": 13}),
            raw_field(
                "Collaboration~Documents/References",
                "Collaboration~Documents/Reference",
                **{"fibery/collection?": True, "ui/object-editor-order": 14},
            ),
            raw_field("fibery/rank", "fibery/decimal", **{"fibery/readonly?": True, "ui/object-editor-order": 15}),
            raw_field("fibery/created-by", "fibery/user", **{"fibery/readonly?": True, "ui/object-editor-order": 16}),
            raw_field("fibery/creation-date", "fibery/date-time", **{"fibery/readonly?": True, "ui/object-editor-order": 17}),
            raw_field("fibery/modification-date", "fibery/date-time", **{"fibery/readonly?": True, "ui/object-editor-order": 18}),
            raw_field("Tasks/Old~Notes", "fibery/text", deleted=True),
        ],
        **{"fibery/domain?": True, "app/mixins": {"fibery/rank-mixin": True}},
    )
    tag = raw_type(
        "Tasks/Tag",
        [
            *id_fields(),
            raw_field("Tasks/Name", "fibery/text", **{"ui/title?": True}),
            raw_field("Tasks/Tasks", "Tasks/Task", **{"fibery/relation": "rel-tags", "fibery/collection?": True}),
        ],
        **{"fibery/domain?": True},
    )
    status = raw_type(
        "Tasks/Status",
        [
            raw_field("fibery/id", "fibery/uuid", **{"fibery/id?": True}),
            raw_field("enum/name", "fibery/text", **{"ui/title?": True}),
            raw_field("Tasks/Status-Tasks", "Tasks/Task", **{"fibery/relation": "rel-status", "fibery/collection?": True}),
        ],
        **{"fibery/enum?": True},
    )
    user = raw_type(
        "fibery/user",
        [
            *id_fields(),
            raw_field("user/name", "fibery/text", **{"ui/title?": True}),
            raw_field("fibery/role", "fibery/text"),
            raw_field(
                "user/assigned-tasks",
                "Tasks/Task",
                **{"fibery/relation": "rel-assignee", "fibery/collection?": True},
            ),
        ],
        **{"fibery/platform?": True},
    )
    file_type = raw_type(
        "fibery/file",
        [
            raw_field("fibery/id", "fibery/uuid", **{"fibery/id?": True}),
            raw_field("fibery/name", "fibery/text", **{"ui/title?": True}),
            raw_field("fibery/secret", "fibery/text"),
        ],
    )
    document = raw_type(
        "Collaboration~Documents/Document",
        [raw_field("Collaboration~Documents/secret", "fibery/text")],
    )
    reference = raw_type(
        "Collaboration~Documents/Reference",
        [raw_field("fibery/id", "fibery/uuid", **{"fibery/id?": True})],
    )
    removed = raw_type("Tasks/Archive", [*id_fields()], deleted=True, **{"fibery/domain?": True})

    return [
        *(primitive(name) for name in PRIMITIVES),
        task,
        tag,
        status,
        user,
        file_type,
        document,
        reference,
        removed,
    ]


@pytest.fixture
def raw_schema() -> Dict[str, Any]:
    """Raw schema payload of the sample workspace."""
    return raw_schema_of(sample_types())


@pytest.fixture
def schema(raw_schema):
    """Built sample schema."""
    return build_schema(raw_schema, etag='"v1"')


@pytest.fixture
def task(schema):
    """Tasks/Task type."""
    return schema.get_type("Tasks/Task")
