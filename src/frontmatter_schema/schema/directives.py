"""Interpretation of the `x-*` directives as data transforms.

Directives on a schema node run in a fixed order, each consuming the previous
stage's output:

1. root data selection (`x-frontmatter-part` anywhere in the schema)
2. `x-derived-from`
3. `x-derived-unique`
4. `x-flatten-arrays`
5. `x-jmespath-filter`

A stage whose directive is absent, or that does not fit the data shape, is a
passthrough. The filter stage is a pattern matcher for exactly two expression shapes;
anything else passes data through.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
import logging
import re
import typing

from frontmatter_schema.core.types import (
    DerivationRule,
    Failure,
    FrontmatterData,
    Result,
    Success,
)
from frontmatter_schema.exceptions import (
    FrontmatterPartProcessingError,
    JMESPathExecutionError,
    ProcessingError,
)
from frontmatter_schema.schema.graph import (
    X_DERIVED_FROM,
    X_DERIVED_UNIQUE,
    X_FLATTEN_ARRAYS,
    X_FRONTMATTER_PART,
    X_JMESPATH_FILTER,
    SchemaNode,
    walk,
)
from frontmatter_schema.schema.resolver import ResolvedSchema

logger = logging.getLogger(__name__)


class _Missing:
    """Marker for a path that does not exist (distinct from a null value)."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: typing.Final = _Missing()

_PRIMITIVES = (str, int, float, bool, type(None))

_CONTAINS_FILTER = re.compile(r"""^\[\?contains\((\w+),\s*['"]([^'"]+)['"]\)\]$""")
_OR_EQUALS_FILTER = re.compile(
    r"""^\[\?(\w+)\s*==\s*['"]([^'"]+)['"]\s*\|\|\s*(\w+)\s*==\s*['"]([^'"]+)['"]\]$"""
)


# --- Path navigation ---


def get_nested(data: typing.Any, path: str) -> typing.Any:
    """Follow a dotted path through mappings; `MISSING` when any key is absent."""
    current = data
    for part in path.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        else:
            return MISSING
    return current


def extract_value(data: typing.Any, path: str) -> typing.Any:
    """Navigate `path`, supporting ``a[].b`` array-map notation.

    ``a[].b`` maps ``b`` over the list at ``a`` and drops items lacking ``b``;
    ``a[]`` returns the list itself. Returns `MISSING` when the path does not
    exist or the ``[]`` segment is not a list.
    """
    if "[]" not in path:
        return get_nested(data, path)

    head, _, rest = path.partition("[]")
    rest = rest.lstrip(".")
    array = get_nested(data, head) if head else data
    if not isinstance(array, list):
        return MISSING
    if not rest:
        return list(array)
    mapped = []
    for item in array:
        value = extract_value(item, rest)
        if value is not MISSING:
            mapped.append(value)
    return mapped


# --- Array transforms ---


def unique(values: Sequence[typing.Any]) -> list[typing.Any]:
    """Order-preserving dedupe with value semantics for primitives.

    Primitives collapse by (type, value) so ``1`` and ``True`` stay distinct;
    containers compare by identity.
    """
    seen: set[tuple[typing.Any, ...]] = set()
    result = []
    for value in values:
        if isinstance(value, _PRIMITIVES):
            key: tuple[typing.Any, ...] = ("v", type(value), value)
        else:
            key = ("id", id(value))
        if key not in seen:
            seen.add(key)
            result.append(value)
    return result


def flatten(values: Iterable[typing.Any]) -> list[typing.Any]:
    """Recursively flatten nested lists into one flat list."""
    result: list[typing.Any] = []
    for value in values:
        if isinstance(value, list | tuple):
            result.extend(flatten(value))
        else:
            result.append(value)
    return result


# --- Filter ---


def filter_expression(node: SchemaNode) -> str | None:
    """Return the filter string of a node, unwrapping ``{"default": ...}``."""
    raw = node.extension(X_JMESPATH_FILTER)
    if isinstance(raw, Mapping):
        raw = raw.get("default")
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return None


def _matches_contains(item: typing.Any, field: str, needle: str) -> bool:
    if not isinstance(item, Mapping):
        return False
    value = item.get(field)
    if isinstance(value, list):
        return needle in value
    if isinstance(value, str):
        return needle in value
    return False


def apply_filter(
    data: typing.Any, expression: str
) -> Result[typing.Any, JMESPathExecutionError]:
    """Apply one of the two supported filter shapes to a list.

    Supported:
      - ``[?contains(field,'value')]``
      - ``[?field1=='v1'||field2=='v2']``

    Non-list data and unsupported expressions pass through unchanged.
    """
    if not isinstance(data, list):
        return Success(data)
    expression = expression.strip()
    try:
        if match := _CONTAINS_FILTER.match(expression):
            field, needle = match.groups()
            return Success([item for item in data if _matches_contains(item, field, needle)])

        if match := _OR_EQUALS_FILTER.match(expression):
            field1, value1, field2, value2 = match.groups()
            return Success(
                [
                    item
                    for item in data
                    if isinstance(item, Mapping)
                    and (item.get(field1) == value1 or item.get(field2) == value2)
                ]
            )
    except Exception as e:
        return Failure(JMESPathExecutionError(expression, str(e)))

    logger.debug("Unsupported filter expression %r; data passed through", expression)
    return Success(data)


# --- Schema inspection ---


def locate_frontmatter_part(root: SchemaNode | ResolvedSchema) -> str | None:
    """Return the dotted path of the node flagged ``x-frontmatter-part: true``.

    The first flagged node in depth-first property order wins. The schema root
    itself is never the part, so ``None`` means no part is declared.
    """
    node = root.root if isinstance(root, ResolvedSchema) else root
    for path, candidate in walk(node):
        if path and candidate.extension(X_FRONTMATTER_PART) is True:
            return path
    return None


def extract_derivation_rules(root: SchemaNode | ResolvedSchema) -> tuple[DerivationRule, ...]:
    """Collect `x-derived-from`/`x-derived-unique` pairs; target is the node path."""
    node = root.root if isinstance(root, ResolvedSchema) else root
    rules = []
    for path, candidate in walk(node):
        source = candidate.extension(X_DERIVED_FROM)
        if isinstance(source, str) and source.strip():
            rules.append(
                DerivationRule(
                    source_path=source.strip(),
                    target_field=path,
                    unique=bool(candidate.extension(X_DERIVED_UNIQUE, False)),
                )
            )
        elif source is not None:
            logger.debug("Ignoring non-string x-derived-from at %r", path or "<root>")
    return tuple(rules)


# --- Processor ---


class DirectiveProcessor:
    """Applies a node's directives to frontmatter records.

    The processor is bound to one resolved schema so that root data selection
    knows where the frontmatter-part lives.
    """

    def __init__(self, schema: ResolvedSchema | SchemaNode) -> None:
        self.root = schema.root if isinstance(schema, ResolvedSchema) else schema
        self.frontmatter_part_path = locate_frontmatter_part(self.root)

    def select_root_data(
        self, records: Iterable[FrontmatterData | Mapping[str, typing.Any]]
    ) -> Result[list[typing.Any], FrontmatterPartProcessingError]:
        """Build the working collection from the records.

        Without a frontmatter-part every record is one element. With one, its
        path is extracted from each record: lists are spliced one level,
        other values appended, and a record lacking the path contributes
        itself whole.
        """
        plain = [_as_plain(r) for r in records]
        path = self.frontmatter_part_path
        if path is None:
            return Success(plain)

        collected: list[typing.Any] = []
        for index, record in enumerate(plain):
            try:
                value = extract_value(record, path)
            except Exception as e:
                return Failure(
                    FrontmatterPartProcessingError(
                        f"Extracting '{path}' from record {index} failed: {e}"
                    )
                )
            if value is MISSING:
                collected.append(record)
            elif isinstance(value, list):
                collected.extend(value)
            else:
                collected.append(value)
        return Success(collected)

    def apply(
        self, node: SchemaNode, data: typing.Any
    ) -> Result[typing.Any, ProcessingError]:
        """Run stages 2-5 of the directive pipeline over `data`."""
        derived_from = node.extension(X_DERIVED_FROM)
        if isinstance(derived_from, str) and derived_from.strip():
            data = self._derive(data, derived_from.strip())

        if node.extension(X_DERIVED_UNIQUE) and isinstance(data, list):
            data = unique(data)

        flatten_directive = node.extension(X_FLATTEN_ARRAYS)
        if flatten_directive and isinstance(data, list):
            data = self._flatten(data, flatten_directive)

        expression = filter_expression(node)
        if expression is not None:
            filtered = apply_filter(data, expression)
            if isinstance(filtered, Failure):
                return filtered
            data = filtered.value
        return Success(data)

    def process(
        self,
        node: SchemaNode,
        records: Iterable[FrontmatterData | Mapping[str, typing.Any]],
    ) -> Result[typing.Any, ProcessingError]:
        """Select root data from `records`, then apply `node`'s directives."""
        selected = self.select_root_data(records)
        if isinstance(selected, Failure):
            return selected
        return self.apply(node, selected.value)

    # ------------------------------
    # Internal helpers
    # ------------------------------
    @staticmethod
    def _derive(data: typing.Any, path: str) -> list[typing.Any]:
        elements = data if isinstance(data, list) else [data]
        derived: list[typing.Any] = []
        for element in elements:
            value = extract_value(element, path)
            if value is MISSING:
                continue
            if isinstance(value, list):
                derived.extend(value)
            else:
                derived.append(value)
        return derived

    @staticmethod
    def _flatten(data: list[typing.Any], directive: typing.Any) -> list[typing.Any]:
        if not isinstance(directive, str):
            return flatten(data)
        # A string names a field whose nested arrays are flattened per element
        result = []
        for element in data:
            if isinstance(element, Mapping) and isinstance(element.get(directive), list):
                element = {**element, directive: flatten(element[directive])}
            result.append(element)
        return result


def _as_plain(record: FrontmatterData | Mapping[str, typing.Any]) -> typing.Any:
    if isinstance(record, FrontmatterData):
        return record.to_dict()
    if isinstance(record, Mapping):
        return dict(record)
    return record
