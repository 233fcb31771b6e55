"""
Unit tests for entity update building.

Tests cover:
- Scalar, boolean and date values
- Single references, collections and documents
- Follow-up commands for collections and documents
"""

import json

import pytest

from fibery_sdk.errors import NotFoundError
from fibery_sdk.fields import field_key
from fibery_sdk.update import CollectionItems, DocumentContent, build_entity_update


def row(task, schema, name, **values):
    """UI row for a field of the sample task type."""
    return {"key": field_key(task.get_field(name), schema), **values}


class TestBuildEntityUpdate:
    """Tests for build_entity_update()."""

    def test_scalars(self, task, schema):
        update = build_entity_update(
            [
                row(task, schema, "Tasks/Name", value="Fix login"),
                row(task, schema, "Tasks/Estimate", value=3),
                row(task, schema, "Tasks/Done", checked=1),
            ],
            task,
            schema,
            "UTC",
        )

        assert update.entity == {"Tasks/Name": "Fix login", "Tasks/Estimate": 3, "Tasks/Done": True}
        assert update.collections == []
        assert update.documents == []

    def test_unchecked_bool(self, task, schema):
        update = build_entity_update([row(task, schema, "Tasks/Done")], task, schema, "UTC")

        assert update.entity == {"Tasks/Done": False}

    def test_date_in_default_timezone(self, task, schema):
        """Row timezone "default" falls back to the argument."""
        update = build_entity_update(
            [row(task, schema, "Tasks/Due", value="2024-03-01T09:00:00", timezone="default")],
            task,
            schema,
            "Europe/Berlin",
        )

        assert update.entity == {"Tasks/Due": "2024-03-01T08:00:00.000Z"}

    def test_date_row_timezone_wins(self, task, schema):
        update = build_entity_update(
            [row(task, schema, "Tasks/Due", value="2024-03-01T09:00:00", timezone="UTC")],
            task,
            schema,
            "Europe/Berlin",
        )

        assert update.entity == {"Tasks/Due": "2024-03-01T09:00:00.000Z"}

    def test_empty_date_clears(self, task, schema):
        update = build_entity_update([row(task, schema, "Tasks/Due", value="")], task, schema, "UTC")

        assert update.entity == {"Tasks/Due": None}

    def test_date_range(self, task, schema):
        update = build_entity_update(
            [row(task, schema, "Tasks/Period", valueStart="2024-01-01", valueEnd="2024-01-31")],
            task,
            schema,
            "UTC",
        )

        assert update.entity == {
            "Tasks/Period": {"start": "2024-01-01T00:00:00.000Z", "end": "2024-01-31T00:00:00.000Z"}
        }

    def test_date_range_open_end(self, task, schema):
        """Missing range ends are cleared instead of parsed."""
        update = build_entity_update(
            [
                {"key": {"name": "Tasks/Period"}, "valueStart": "2024-01-01", "valueEnd": None},
            ],
            task,
            schema,
            "UTC",
        )

        assert update.entity == {"Tasks/Period": {"start": "2024-01-01T00:00:00.000Z", "end": None}}

    def test_date_range_empty(self, task, schema):
        update = build_entity_update([row(task, schema, "Tasks/Period", valueStart="")], task, schema, "UTC")

        assert update.entity == {"Tasks/Period": {"start": None, "end": None}}

    def test_single_reference(self, task, schema):
        update = build_entity_update(
            [
                row(task, schema, "Tasks/Assignee", value="u-1"),
                row(task, schema, "workflow/state", value=None),
            ],
            task,
            schema,
            "UTC",
        )

        assert update.entity == {"Tasks/Assignee": {"fibery/id": "u-1"}, "workflow/state": None}

    def test_collection_and_document(self, task, schema):
        update = build_entity_update(
            [
                row(task, schema, "Tasks/Tags", value=["t-1", "t-2"]),
                row(task, schema, "Tasks/Description", value="# Notes"),
            ],
            task,
            schema,
            "UTC",
        )

        assert update.entity == {}
        assert update.collections == [CollectionItems("Tasks/Tags", ["t-1", "t-2"], "Tasks/Task")]
        assert update.documents == [DocumentContent("Tasks/Description", "# Notes")]

    def test_json_key(self, task, schema):
        """Row keys may arrive JSON-encoded."""
        update = build_entity_update(
            [{"key": json.dumps({"name": "Tasks/Name", "type": "text"}), "value": "A"}],
            task,
            schema,
            "UTC",
        )

        assert update.entity == {"Tasks/Name": "A"}

    def test_unknown_field_raises(self, task, schema):
        with pytest.raises(NotFoundError):
            build_entity_update([{"key": {"name": "Tasks/Nope"}, "value": 1}], task, schema, "UTC")


class TestFollowUps:
    """Tests for the commands issued after saving the entity."""

    def test_collection_commands(self, task, schema):
        update = build_entity_update([row(task, schema, "Tasks/Tags", value=["t-1"])], task, schema, "UTC")

        assert update.collection_commands("e-1") == [
            {
                "command": "fibery.entity/add-collection-items",
                "args": {
                    "type": "Tasks/Task",
                    "entity": {"fibery/id": "e-1"},
                    "field": "Tasks/Tags",
                    "items": [{"fibery/id": "t-1"}],
                },
            }
        ]

    def test_document_secrets(self, task, schema):
        update = build_entity_update(
            [row(task, schema, "Tasks/Description", value="text")], task, schema, "UTC"
        )

        assert update.document_secrets({"Tasks/Description": "s-1"}) == [{"secret": "s-1", "content": "text"}]
        assert update.document_secrets({}) == []
