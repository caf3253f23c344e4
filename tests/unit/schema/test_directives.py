"""Directive processing order and the individual transforms."""

import pytest

from frontmatter_schema.core.types import Failure, FrontmatterData, Success
from frontmatter_schema.exceptions import JMESPathExecutionError
from frontmatter_schema.schema import directives
from frontmatter_schema.schema.directives import (
    MISSING,
    DirectiveProcessor,
    apply_filter,
    extract_derivation_rules,
    extract_value,
    flatten,
    locate_frontmatter_part,
    unique,
)
from frontmatter_schema.schema.graph import PrimitiveNode, parse_schema

pytestmark = pytest.mark.unit


def _node(raw):
    parsed = parse_schema(raw)
    assert isinstance(parsed, Success)
    return parsed.value


def _records(*dicts):
    return [FrontmatterData(data=d) for d in dicts]


class TestPathExtraction:
    def test_dotted_path(self):
        assert extract_value({"a": {"b": 1}}, "a.b") == 1

    def test_missing_is_distinct_from_null(self):
        assert extract_value({"a": None}, "a") is None
        assert extract_value({"a": None}, "b") is MISSING

    def test_array_map_notation_skips_items_without_the_field(self):
        data = {"commands": [{"name": "a"}, {"other": 1}, {"name": "b"}]}

        assert extract_value(data, "commands[].name") == ["a", "b"]

    def test_array_map_on_non_list_is_missing(self):
        assert extract_value({"commands": "x"}, "commands[].name") is MISSING


class TestTransforms:
    def test_unique_preserves_first_occurrence_order(self):
        assert unique(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]

    def test_unique_is_idempotent(self):
        values = [3, "3", 3, None, None, 2.5]
        once = unique(values)

        assert unique(once) == once

    def test_unique_keeps_bool_and_int_apart(self):
        assert unique([1, True, 1, False, 0]) == [1, True, False, 0]

    def test_unique_compares_containers_by_identity(self):
        shared = {"k": 1}
        result = unique([shared, shared, {"k": 1}])

        assert len(result) == 2
        assert result[0] is shared

    def test_flatten_leaves_no_nested_lists(self):
        result = flatten([1, [2, [3, [4, []]]], [[5]]])

        assert result == [1, 2, 3, 4, 5]
        assert not any(isinstance(v, list) for v in result)


class TestFilter:
    ITEMS = [
        {"name": "a", "tags": ["x", "y"], "kind": "tool"},
        {"name": "b", "tags": ["y"], "kind": "agent"},
        {"name": "c", "tags": [], "kind": "other"},
    ]

    def test_contains_on_list_field(self):
        result = apply_filter(self.ITEMS, "[?contains(tags, 'x')]")

        assert isinstance(result, Success)
        assert [i["name"] for i in result.value] == ["a"]

    def test_or_equals(self):
        result = apply_filter(self.ITEMS, "[?kind=='tool' || kind==\"agent\"]")

        assert isinstance(result, Success)
        assert [i["name"] for i in result.value] == ["a", "b"]

    def test_unsupported_expression_passes_data_through(self):
        data = [{"x": 1}, {"x": 10}]

        result = apply_filter(data, "[?x > `5`]")

        assert isinstance(result, Success)
        assert result.value == data

    def test_non_list_data_passes_through(self):
        result = apply_filter({"a": 1}, "[?contains(tags, 'x')]")

        assert isinstance(result, Success)
        assert result.value == {"a": 1}

    def test_evaluation_error_is_reported(self, monkeypatch):
        def _boom(*_args):
            raise RuntimeError("kaput")

        monkeypatch.setattr(directives, "_matches_contains", _boom)

        result = apply_filter(self.ITEMS, "[?contains(tags, 'x')]")

        assert isinstance(result, Failure)
        assert isinstance(result.error, JMESPathExecutionError)
        assert "kaput" in result.error.message

    def test_default_wrapper_is_unwrapped(self):
        node = PrimitiveNode(
            extensions={"x-jmespath-filter": {"default": "[?contains(tags, 'y')]"}}
        )
        processor = DirectiveProcessor(PrimitiveNode())

        result = processor.apply(node, list(self.ITEMS))

        assert isinstance(result, Success)
        assert [i["name"] for i in result.value] == ["a", "b"]


class TestProcessingOrder:
    def test_derive_then_dedupe(self):
        schema = _node(
            {"type": "array", "x-derived-from": "tags", "x-derived-unique": True}
        )

        result = DirectiveProcessor(schema).process(
            schema, _records({"tags": ["x", "x", "y"]})
        )

        assert isinstance(result, Success)
        assert result.value == ["x", "y"]

    def test_derived_lists_spread_and_missing_values_are_skipped(self):
        schema = _node({"x-derived-from": "tags"})

        result = DirectiveProcessor(schema).process(
            schema, _records({"tags": ["a"]}, {"title": "no tags"}, {"tags": "b"})
        )

        assert isinstance(result, Success)
        assert result.value == ["a", "b"]

    def test_flatten_runs_after_derivation(self):
        schema = _node({"x-derived-from": "matrix", "x-flatten-arrays": True})

        result = DirectiveProcessor(schema).process(
            schema, _records({"matrix": [[1, 2], [3, [4]]]})
        )

        assert isinstance(result, Success)
        assert result.value == [1, 2, 3, 4]

    def test_filter_runs_last(self):
        schema = _node(
            {
                "x-derived-from": "commands",
                "x-jmespath-filter": "[?contains(tags, 'keep')]",
            }
        )
        records = _records(
            {"commands": [{"n": 1, "tags": ["keep"]}, {"n": 2, "tags": []}]},
            {"commands": [{"n": 3, "tags": ["keep", "x"]}]},
        )

        result = DirectiveProcessor(schema).process(schema, records)

        assert isinstance(result, Success)
        assert [c["n"] for c in result.value] == [1, 3]

    def test_node_without_directives_is_identity(self):
        schema = _node({"type": "object"})
        records = _records({"a": 1}, {"b": 2})

        result = DirectiveProcessor(schema).process(schema, records)

        assert isinstance(result, Success)
        assert result.value == [{"a": 1}, {"b": 2}]


class TestFrontmatterPart:
    SCHEMA = {
        "properties": {
            "tools": {
                "properties": {
                    "commands": {"type": "array", "x-frontmatter-part": True},
                }
            }
        }
    }

    def test_locates_nested_part(self):
        assert locate_frontmatter_part(_node(self.SCHEMA)) == "tools.commands"

    def test_first_flagged_node_wins(self):
        schema = _node(
            {
                "properties": {
                    "first": {"x-frontmatter-part": True},
                    "second": {"x-frontmatter-part": True},
                }
            }
        )

        assert locate_frontmatter_part(schema) == "first"

    def test_no_part(self):
        assert locate_frontmatter_part(_node({"properties": {"a": {}}})) is None

    def test_selection_splices_lists_and_keeps_records_without_the_path(self):
        processor = DirectiveProcessor(_node(self.SCHEMA))
        records = _records(
            {"tools": {"commands": [{"c": 1}, {"c": 2}]}},
            {"tools": {"commands": {"c": 3}}},
            {"c": 4},
        )

        result = processor.select_root_data(records)

        assert isinstance(result, Success)
        assert result.value == [{"c": 1}, {"c": 2}, {"c": 3}, {"c": 4}]


def test_derivation_rules_use_dotted_targets_and_empty_root():
    schema = _node(
        {
            "x-derived-from": "commands[].name",
            "x-derived-unique": True,
            "properties": {
                "summary": {
                    "properties": {
                        "levels": {"x-derived-from": "commands[].level"},
                    }
                }
            },
        }
    )

    rules = extract_derivation_rules(schema)

    assert [(r.target_field, r.source_path, r.unique) for r in rules] == [
        ("", "commands[].name", True),
        ("summary.levels", "commands[].level", False),
    ]
