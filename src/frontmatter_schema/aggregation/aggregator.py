"""Aggregation of per-document frontmatter into one record.

The strategy is picked from the resolved schema:

- ``with-derivation`` when any node declares `x-derived-from`;
- ``frontmatter-part`` when a node is flagged `x-frontmatter-part`;
- ``direct-merge`` otherwise.

All three start from the same base structure: a deep merge of the records,
with the frontmatter-part path (when present) holding the selected items.
Flatten and filter directives on the remaining properties run last, on the
finished data.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import copy
import logging
import time
import typing

from frontmatter_schema.core.types import (
    AggregatedResult,
    AggregationMetadata,
    AggregationStrategy,
    DerivationRule,
    Failure,
    FrontmatterData,
    Result,
    Success,
)
from frontmatter_schema.exceptions import (
    AggregationError,
    DerivationError,
    FrontmatterPartProcessingError,
    MergeError,
    ProcessingError,
)
from frontmatter_schema.schema.directives import (
    MISSING,
    DirectiveProcessor,
    extract_derivation_rules,
    extract_value,
    filter_expression,
    get_nested,
)
from frontmatter_schema.schema.graph import (
    X_DERIVED_FROM,
    X_FLATTEN_ARRAYS,
    SchemaNode,
    find,
    walk,
)
from frontmatter_schema.schema.resolver import ResolvedSchema

logger = logging.getLogger(__name__)

# Where a derivation declared on the schema root writes its value
ROOT_DERIVED_KEY = "derived"


# --- Structural helpers ---


def deep_merge(base: dict[str, typing.Any], incoming: Mapping[str, typing.Any]) -> dict[str, typing.Any]:
    """Merge `incoming` into `base` in place and return it.

    Mappings merge recursively, lists concatenate, anything else is replaced.
    """
    for key, value in incoming.items():
        existing = base.get(key, MISSING)
        if isinstance(existing, dict) and isinstance(value, Mapping):
            deep_merge(existing, value)
        elif isinstance(existing, list) and isinstance(value, list):
            existing.extend(copy.deepcopy(value))
        else:
            base[key] = copy.deepcopy(value)
    return base


def set_path(target: dict[str, typing.Any], path: str, value: typing.Any) -> None:
    """Assign `value` at a dotted path, creating missing intermediate mappings.

    Raises:
        MergeError: An intermediate key holds something other than a mapping.
    """
    parts = path.split(".")
    current = target
    for index, part in enumerate(parts[:-1]):
        nxt = current.get(part)
        if nxt is None:
            nxt = {}
            current[part] = nxt
        elif not isinstance(nxt, dict):
            prefix = ".".join(parts[: index + 1])
            raise MergeError(
                f"Cannot set '{path}': '{prefix}' holds a {type(nxt).__name__}, not an object"
            )
        current = nxt
    current[parts[-1]] = value


def split_at_list(data: typing.Any, path: str) -> tuple[str, str] | None:
    """Split `path` where it first steps through a list in `data`.

    Returns ``(prefix, rest)`` when the value at ``prefix`` is a list and
    ``rest`` addresses fields of its elements, otherwise ``None``.
    """
    parts = path.split(".")
    for index in range(1, len(parts)):
        prefix = ".".join(parts[:index])
        value = get_nested(data, prefix)
        if isinstance(value, list):
            return prefix, ".".join(parts[index:])
        if not isinstance(value, Mapping):
            return None
    return None


def remove_path(target: dict[str, typing.Any], path: str) -> None:
    """Delete the key at a dotted path if it exists."""
    parent_path, _, leaf = path.rpartition(".")
    parent = get_nested(target, parent_path) if parent_path else target
    if isinstance(parent, dict):
        parent.pop(leaf, None)


def _plain(record: FrontmatterData | Mapping[str, typing.Any]) -> dict[str, typing.Any]:
    if isinstance(record, FrontmatterData):
        return record.to_dict()
    if isinstance(record, Mapping):
        return copy.deepcopy(dict(record))
    raise MergeError(f"Cannot merge record of type {type(record).__name__}")


# --- Aggregator ---


class DataAggregator:
    """Turns many `FrontmatterData` records into a single `AggregatedResult`."""

    def aggregate(
        self,
        records: Sequence[FrontmatterData],
        schema: ResolvedSchema,
    ) -> Result[AggregatedResult, AggregationError | ProcessingError]:
        """Aggregate `records` according to the directives in `schema`.

        Returns:
            `Success(AggregatedResult)` with metadata describing the strategy,
            or `Failure` with `FrontmatterPartProcessingError`,
            `DerivationError`, `MergeError` or `SchemaDataTransformationError`.
        """
        start = time.perf_counter()
        processor = DirectiveProcessor(schema)
        rules = extract_derivation_rules(schema)

        strategy: AggregationStrategy
        try:
            if rules:
                strategy = "with-derivation"
                data = self._aggregate_with_derivation(records, schema, processor, rules)
            elif processor.frontmatter_part_path is not None:
                strategy = "frontmatter-part"
                data = self.process_frontmatter_parts(records, schema, processor)
            else:
                strategy = "direct-merge"
                data = self.merge(records)
            self.apply_property_directives(data, schema, processor)
        except (AggregationError, ProcessingError) as e:
            logger.debug("Aggregation failed: %s", e)
            return Failure(e)

        wrapped = FrontmatterData.create(data)
        if isinstance(wrapped, Failure):
            return wrapped

        elapsed_ms = (time.perf_counter() - start) * 1000
        metadata = AggregationMetadata(
            input_count=len(records),
            has_derivation_rules=bool(rules),
            derivation_rule_count=len(rules),
            strategy=strategy,
            processing_time_ms=elapsed_ms,
        )
        logger.debug(
            "Aggregated %d records with strategy %s in %.2f ms",
            len(records),
            strategy,
            elapsed_ms,
        )
        return Success(AggregatedResult(aggregated_frontmatter=wrapped.value, metadata=metadata))

    # ------------------------------
    # Strategies
    # ------------------------------
    def merge(self, records: Sequence[FrontmatterData | Mapping[str, typing.Any]]) -> dict[str, typing.Any]:
        """Structural deep merge of all records in order."""
        merged: dict[str, typing.Any] = {}
        for record in records:
            deep_merge(merged, _plain(record))
        return merged

    def process_frontmatter_parts(
        self,
        records: Sequence[FrontmatterData],
        schema: ResolvedSchema,
        processor: DirectiveProcessor | None = None,
    ) -> dict[str, typing.Any]:
        """Build the base structure with the frontmatter-part path filled in.

        Records that contain the part path contribute their remaining keys to
        the merged envelope. Records that lack it are items only. The part
        node's own directives (filter, flatten, unique) run over the collected
        items before they are placed.
        """
        processor = processor or DirectiveProcessor(schema)
        part_path = processor.frontmatter_part_path
        if part_path is None:
            return self.merge(records)

        envelope: dict[str, typing.Any] = {}
        for record in records:
            plain = _plain(record)
            if extract_value(plain, part_path) is MISSING:
                continue
            remove_path(plain, part_path)
            deep_merge(envelope, plain)

        part_node = find(schema.root, part_path)
        if isinstance(part_node, Failure):
            raise FrontmatterPartProcessingError(part_node.error.message)
        items = processor.process(part_node.value, records)
        if isinstance(items, Failure):
            raise items.error
        set_path(envelope, part_path, items.value)
        return envelope

    def apply_property_directives(
        self,
        data: dict[str, typing.Any],
        schema: ResolvedSchema,
        processor: DirectiveProcessor,
    ) -> None:
        """Run flatten and filter directives on every other property, in place.

        The frontmatter-part node and derivation targets are skipped because
        their directives already ran while building `data`. Properties of
        array items are applied to each element of the array.
        """
        for path, node in walk(schema.root):
            if not path or path == processor.frontmatter_part_path:
                continue
            if node.extension(X_DERIVED_FROM) is not None:
                continue
            if not node.extension(X_FLATTEN_ARRAYS) and filter_expression(node) is None:
                continue
            self._apply_at(data, path, node, processor)

    def _apply_at(
        self,
        container: typing.Any,
        path: str,
        node: SchemaNode,
        processor: DirectiveProcessor,
    ) -> None:
        split = split_at_list(container, path)
        if split is not None:
            prefix, rest = split
            for element in get_nested(container, prefix):
                self._apply_at(element, rest, node, processor)
            return

        parent_path, _, leaf = path.rpartition(".")
        parent = get_nested(container, parent_path) if parent_path else container
        if not isinstance(parent, dict) or leaf not in parent:
            return
        applied = processor.apply(node, parent[leaf])
        if isinstance(applied, Failure):
            raise applied.error
        parent[leaf] = applied.value

    def _aggregate_with_derivation(
        self,
        records: Sequence[FrontmatterData],
        schema: ResolvedSchema,
        processor: DirectiveProcessor,
        rules: Sequence[DerivationRule],
    ) -> dict[str, typing.Any]:
        base = self.process_frontmatter_parts(records, schema, processor)
        result = copy.deepcopy(base)
        for rule in rules:
            node = find(schema.root, rule.target_field)
            if isinstance(node, Failure):
                raise DerivationError(rule.target_field, node.error.message)
            target = rule.target_field or ROOT_DERIVED_KEY
            self._assign_derived(base, result, target, node.value, processor, rule)
        return result

    def _assign_derived(
        self,
        source: typing.Any,
        destination: dict[str, typing.Any],
        path: str,
        node: SchemaNode,
        processor: DirectiveProcessor,
        rule: DerivationRule,
    ) -> None:
        """Derive `path` from `source` and write it into `destination`.

        A path that crosses an array derives once per element, scoped to
        that element.
        """
        split = split_at_list(destination, path)
        if split is not None:
            prefix, rest = split
            targets = get_nested(destination, prefix)
            sources = get_nested(source, prefix)
            if not isinstance(sources, list) or len(sources) != len(targets):
                sources = copy.deepcopy(targets)
            for index, (element_source, element) in enumerate(zip(sources, targets)):
                if not isinstance(element, dict):
                    raise DerivationError(
                        rule.target_field,
                        f"'{prefix}' element {index} is a {type(element).__name__}, not an object",
                    )
                self._assign_derived(element_source, element, rest, node, processor, rule)
            return

        scope = _nearest_scope(source, path)
        applied = processor.apply(node, scope)
        if isinstance(applied, Failure):
            raise DerivationError(rule.target_field, applied.error.message)
        try:
            set_path(destination, path, applied.value)
        except MergeError as e:
            raise DerivationError(rule.target_field, e.message) from e
        logger.debug(
            "Derived %r from %r (%d values)",
            path,
            rule.source_path,
            len(applied.value) if isinstance(applied.value, list) else 1,
        )


def _nearest_scope(base: typing.Any, target_field: str) -> typing.Any:
    """Return the target's parent in `base`, or its closest existing ancestor."""
    parent = target_field.rpartition(".")[0]
    while parent:
        scope = get_nested(base, parent)
        if scope is not MISSING:
            return scope
        parent = parent.rpartition(".")[0]
    return base
