"""Schema graph: tagged node variants parsed from a raw JSON Schema.

Every node is immutable and carries the `x-*` keys found on its JSON object in
`extensions`, independent of its structural kind. `RefNode` only exists
between parsing and resolution; `ResolvedSchema` guarantees none remain.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
import dataclasses
import typing

from frontmatter_schema.core.types import Failure, Result, Success, _freeze_mapping
from frontmatter_schema.exceptions import InvalidSchemaError, PropertyNotFoundError

PrimitiveKind = typing.Literal[
    "string", "number", "integer", "boolean", "enum", "null", "any"
]

_PRIMITIVE_TYPES: frozenset[str] = frozenset(
    {"string", "number", "integer", "boolean", "null"}
)

# Recognized directive keys
X_TEMPLATE = "x-template"
X_TEMPLATE_ITEMS = "x-template-items"
X_TEMPLATE_FORMAT = "x-template-format"
X_FRONTMATTER_PART = "x-frontmatter-part"
X_DERIVED_FROM = "x-derived-from"
X_DERIVED_UNIQUE = "x-derived-unique"
X_FLATTEN_ARRAYS = "x-flatten-arrays"
X_JMESPATH_FILTER = "x-jmespath-filter"


def _extract_extensions(raw: Mapping[str, typing.Any]) -> dict[str, typing.Any]:
    return {k: v for k, v in raw.items() if isinstance(k, str) and k.startswith("x-")}


@dataclasses.dataclass(frozen=True, slots=True)
class _NodeBase:
    extensions: Mapping[str, typing.Any] = dataclasses.field(default_factory=dict)
    description: str | None = None
    default: typing.Any = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "extensions", _freeze_mapping(self.extensions))

    def extension(self, key: str, default: typing.Any = None) -> typing.Any:
        return self.extensions.get(key, default)

    def has_extension(self, key: str) -> bool:
        return key in self.extensions

    def with_extensions(self, extra: Mapping[str, typing.Any]) -> typing.Self:
        """Return a copy with `extra` laid over the current extensions."""
        if not extra:
            return self
        return dataclasses.replace(self, extensions={**self.extensions, **extra})


@dataclasses.dataclass(frozen=True, slots=True)
class ObjectNode(_NodeBase):
    properties: Mapping[str, SchemaNode] = dataclasses.field(default_factory=dict)
    required: tuple[str, ...] = ()
    kind: typing.ClassVar[str] = "object"

    def __post_init__(self) -> None:
        _NodeBase.__post_init__(self)
        object.__setattr__(self, "properties", _freeze_mapping(self.properties))


@dataclasses.dataclass(frozen=True, slots=True)
class ArrayNode(_NodeBase):
    items: SchemaNode | None = None
    kind: typing.ClassVar[str] = "array"


@dataclasses.dataclass(frozen=True, slots=True)
class RefNode(_NodeBase):
    target: str = ""
    kind: typing.ClassVar[str] = "ref"


@dataclasses.dataclass(frozen=True, slots=True)
class PrimitiveNode(_NodeBase):
    type: PrimitiveKind = "any"
    enum_values: tuple[typing.Any, ...] = ()

    @property
    def kind(self) -> str:
        return self.type


SchemaNode = ObjectNode | ArrayNode | RefNode | PrimitiveNode


def is_structural(node: SchemaNode) -> bool:
    return isinstance(node, ObjectNode | ArrayNode | RefNode)


# --- Parsing ---


def parse_schema(raw: typing.Any) -> Result[SchemaNode, InvalidSchemaError]:
    """Convert a raw JSON Schema mapping into a `SchemaNode` tree.

    `definitions`/`$defs` are not parsed into the tree; they are reached
    through `$ref` and the schema loader.
    """
    try:
        return Success(_parse(raw, "#"))
    except InvalidSchemaError as e:
        return Failure(e)


def _parse(raw: typing.Any, pointer: str) -> SchemaNode:
    if isinstance(raw, bool):
        # `true`/`false` schemas accept anything / nothing; both are opaque here
        return PrimitiveNode(type="any")
    if not isinstance(raw, Mapping):
        raise InvalidSchemaError(
            f"Schema node at {pointer} must be an object, got {type(raw).__name__}"
        )

    extensions = _extract_extensions(raw)
    description = raw.get("description")
    if description is not None and not isinstance(description, str):
        description = str(description)
    common: dict[str, typing.Any] = {
        "extensions": extensions,
        "description": description,
        "default": raw.get("default"),
    }

    ref = raw.get("$ref")
    if ref is not None:
        if not isinstance(ref, str) or not ref.strip():
            raise InvalidSchemaError(f"$ref at {pointer} must be a non-empty string")
        return RefNode(target=ref, **common)

    declared = raw.get("type")
    if isinstance(declared, list):
        non_null = [t for t in declared if t != "null"]
        declared = non_null[0] if len(non_null) == 1 else None

    if declared == "object" or (declared is None and "properties" in raw):
        props_raw = raw.get("properties") or {}
        if not isinstance(props_raw, Mapping):
            raise InvalidSchemaError(f"'properties' at {pointer} must be an object")
        properties = {
            name: _parse(value, f"{pointer}/properties/{name}")
            for name, value in props_raw.items()
        }
        required = raw.get("required") or ()
        if not isinstance(required, list | tuple) or not all(
            isinstance(r, str) for r in required
        ):
            raise InvalidSchemaError(f"'required' at {pointer} must be a list of str")
        return ObjectNode(properties=properties, required=tuple(required), **common)

    if declared == "array" or (declared is None and "items" in raw):
        items_raw = raw.get("items")
        if isinstance(items_raw, list):
            # Tuple validation: only the first position is navigable here
            items_raw = items_raw[0] if items_raw else None
        items = None if items_raw is None else _parse(items_raw, f"{pointer}/items")
        return ArrayNode(items=items, **common)

    if "enum" in raw:
        values = raw["enum"]
        if not isinstance(values, list):
            raise InvalidSchemaError(f"'enum' at {pointer} must be a list")
        return PrimitiveNode(type="enum", enum_values=tuple(values), **common)

    if declared is None:
        return PrimitiveNode(type="any", **common)
    if declared in _PRIMITIVE_TYPES:
        return PrimitiveNode(type=declared, **common)
    raise InvalidSchemaError(f"Unsupported type {declared!r} at {pointer}")


# --- Navigation ---


def get_property(node: SchemaNode, name: str) -> SchemaNode | None:
    """Return a direct child property, looking through array items."""
    if isinstance(node, ArrayNode) and node.items is not None:
        node = node.items
    if isinstance(node, ObjectNode):
        return node.properties.get(name)
    return None


def find(node: SchemaNode, path: str) -> Result[SchemaNode, PropertyNotFoundError]:
    """Navigate a dotted property path (``""`` is the node itself)."""
    if not path:
        return Success(node)
    current: SchemaNode | None = node
    for part in path.split("."):
        current = get_property(current, part) if current is not None else None
        if current is None:
            return Failure(PropertyNotFoundError(path))
    return Success(current)


def walk(node: SchemaNode, path: str = "") -> Iterator[tuple[str, SchemaNode]]:
    """Yield ``(dotted_path, node)`` pairs depth-first in property order.

    Array items share their array's path, matching how data paths address them.
    """
    yield path, node
    if isinstance(node, ObjectNode):
        for name, child in node.properties.items():
            yield from walk(child, f"{path}.{name}" if path else name)
    elif isinstance(node, ArrayNode) and node.items is not None:
        for sub_path, child in walk(node.items, path):
            if child is node.items:
                # The items node itself is not separately addressable
                continue
            yield sub_path, child
