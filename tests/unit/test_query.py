"""
Unit tests for the command builders.
"""

from fibery_sdk.filters import Condition, compile_filter
from fibery_sdk.query import (
    batch,
    build_create_command,
    build_delete_command,
    build_entity_by_id_query,
    build_entity_by_public_id_query,
    build_entity_query,
    build_entity_search_query,
    build_relation_options_query,
    build_update_command,
    next_page_offset,
    SEARCH_PAGE_SIZE,
)
from fibery_sdk.select import OutputMode, compile_select


class TestEntityQuery:
    """Tests for build_entity_query()."""

    def test_full_query(self, task, schema):
        select = compile_select(task, schema, OutputMode.SELECTED_FIELDS, ["Tasks/Name"])
        where, params = compile_filter([Condition("Tasks/Name", "text", "contains", "a")])

        command = build_entity_query(
            task.name, select, where, params, limit=50, offset=100, order_by=[(["Tasks/Name"], "q/asc")]
        )

        assert command == {
            "command": "fibery.entity/query",
            "args": {
                "query": {
                    "q/from": "Tasks/Task",
                    "q/select": {"Tasks/Name": "Tasks/Name"},
                    "q/where": ["q/contains", ["Tasks/Name"], "$where0"],
                    "q/order-by": [[["Tasks/Name"], "q/asc"]],
                    "q/limit": 50,
                    "q/offset": 100,
                },
                "params": {"$where0": "a"},
            },
        }

    def test_unfiltered_query_has_no_where(self, task):
        command = build_entity_query(task.name, {"fibery/id": "fibery/id"})

        assert "q/where" not in command["args"]["query"]
        assert command["args"]["params"] == {}

    def test_by_id(self, task):
        command = build_entity_by_id_query(task, {}, "e-1")

        assert command["args"]["query"]["q/where"] == ["=", ["fibery/id"], "$entityId"]
        assert command["args"]["params"] == {"$entityId": "e-1"}
        assert command["args"]["query"]["q/limit"] == 1

    def test_by_public_id(self, task):
        command = build_entity_by_public_id_query(task, {}, 42)

        assert command["args"]["query"]["q/where"] == ["=", ["fibery/public-id"], "$publicId"]
        assert command["args"]["params"] == {"$publicId": "42"}


class TestRelationOptions:
    """Tests for build_relation_options_query()."""

    def test_ordered_by_rank(self, task, schema):
        """Targets with a rank field are listed in rank order."""
        query = build_relation_options_query(task.get_field("Tasks/Parent"), schema)["args"]["query"]

        assert query["q/from"] == "Tasks/Task"
        assert query["q/select"] == {"name": "Tasks/Name", "value": "fibery/id"}
        assert query["q/order-by"] == [[["fibery/rank"], "q/asc"]]
        assert query["q/limit"] == 200

    def test_ordered_by_title(self, task, schema):
        query = build_relation_options_query(task.get_field("workflow/state"), schema)["args"]["query"]

        assert query["q/order-by"] == [[["enum/name"], "q/asc"]]


class TestCommands:
    """Tests for create/update/delete/batch."""

    def test_create(self, task):
        assert build_create_command(task, {"Tasks/Name": "A"}) == {
            "command": "fibery.entity/create",
            "args": {"type": "Tasks/Task", "entity": {"Tasks/Name": "A"}},
        }

    def test_update_sets_id(self, task):
        command = build_update_command(task, "e-1", {"Tasks/Name": "B"})

        assert command["args"]["entity"] == {"fibery/id": "e-1", "Tasks/Name": "B"}

    def test_delete(self, task):
        assert build_delete_command(task, "e-1")["args"] == {"type": "Tasks/Task", "entity": {"fibery/id": "e-1"}}

    def test_batch(self, task):
        commands = [build_delete_command(task, "e-1"), build_delete_command(task, "e-2")]

        assert batch(commands) == {"command": "fibery.command/batch", "args": {"commands": commands}}


class TestEntitySearch:
    """Tests for build_entity_search_query() and paging."""

    def test_search_by_title(self, task):
        """Text matches the title field, ordered by rank."""
        command = build_entity_search_query(task, "login", offset=50)

        assert command["args"] == {
            "query": {
                "q/from": "Tasks/Task",
                "q/select": {"name": "Tasks/Name", "value": "fibery/id"},
                "q/where": ["q/contains", ["Tasks/Name"], "$filter"],
                "q/order-by": [[["fibery/rank"], "q/asc"]],
                "q/limit": SEARCH_PAGE_SIZE,
                "q/offset": 50,
            },
            "params": {"$filter": "login"},
        }

    def test_no_text_lists_all(self, schema):
        """Without text there is no predicate; unranked types order by title."""
        query = build_entity_search_query(schema.get_type("Tasks/Tag"))["args"]["query"]

        assert "q/where" not in query
        assert query["q/order-by"] == [[["Tasks/Name"], "q/asc"]]
        assert query["q/offset"] == 0

    def test_next_page_offset(self):
        assert next_page_offset([{}] * 50, 50, 100) == 150
        assert next_page_offset([{}] * 3, 50, 100) is None
