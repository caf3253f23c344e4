"""Parsing and navigation of the schema graph."""

import pytest

from frontmatter_schema.core.types import Failure, Success
from frontmatter_schema.exceptions import InvalidSchemaError, PropertyNotFoundError
from frontmatter_schema.schema.graph import (
    ArrayNode,
    ObjectNode,
    PrimitiveNode,
    RefNode,
    find,
    parse_schema,
    walk,
)

pytestmark = pytest.mark.unit


def _parse(raw):
    result = parse_schema(raw)
    assert isinstance(result, Success), result
    return result.value


def test_parses_object_with_extensions_and_required():
    node = _parse(
        {
            "type": "object",
            "required": ["title"],
            "x-template": "out.json",
            "properties": {
                "title": {"type": "string", "description": "Title"},
                "tags": {"type": "array", "items": {"type": "string"}},
            },
        }
    )

    assert isinstance(node, ObjectNode)
    assert node.required == ("title",)
    assert node.extension("x-template") == "out.json"
    assert isinstance(node.properties["title"], PrimitiveNode)
    assert node.properties["title"].kind == "string"
    assert node.properties["title"].description == "Title"
    assert isinstance(node.properties["tags"], ArrayNode)


def test_ref_becomes_ref_node_keeping_sibling_extensions():
    node = _parse({"$ref": "#/definitions/Item", "x-derived-unique": True})

    assert isinstance(node, RefNode)
    assert node.target == "#/definitions/Item"
    assert node.extension("x-derived-unique") is True


def test_nullable_type_list_and_enum():
    node = _parse(
        {
            "properties": {
                "maybe": {"type": ["string", "null"]},
                "level": {"enum": ["low", "high"]},
            }
        }
    )

    assert node.properties["maybe"].kind == "string"
    assert node.properties["level"].kind == "enum"
    assert node.properties["level"].enum_values == ("low", "high")


def test_untyped_node_is_any():
    assert _parse({}).kind == "any"


@pytest.mark.parametrize(
    "raw",
    [
        "not-a-schema",
        {"type": "object", "properties": ["a"]},
        {"type": "widget"},
        {"$ref": ""},
    ],
)
def test_invalid_schemas_fail(raw):
    result = parse_schema(raw)

    assert isinstance(result, Failure)
    assert isinstance(result.error, InvalidSchemaError)


def test_extensions_are_read_only():
    node = _parse({"x-frontmatter-part": True})

    with pytest.raises(TypeError):
        node.extensions["x-frontmatter-part"] = False  # type: ignore[index]


def test_find_looks_through_array_items():
    node = _parse(
        {
            "properties": {
                "commands": {
                    "type": "array",
                    "items": {"properties": {"name": {"type": "string"}}},
                }
            }
        }
    )

    found = find(node, "commands.name")
    assert isinstance(found, Success)
    assert found.value.kind == "string"

    missing = find(node, "commands.nope")
    assert isinstance(missing, Failure)
    assert isinstance(missing.error, PropertyNotFoundError)
    assert missing.error.path == "commands.nope"


def test_walk_yields_dotted_paths_in_property_order():
    node = _parse(
        {
            "properties": {
                "a": {"type": "string"},
                "list": {
                    "type": "array",
                    "items": {"properties": {"b": {"type": "string"}}},
                },
            }
        }
    )

    assert [path for path, _ in walk(node)] == ["", "a", "list", "list.b"]
