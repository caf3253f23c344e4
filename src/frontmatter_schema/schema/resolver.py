"""`$ref` resolution over a parsed schema graph.

Resolution is a recursive descent that replaces every `RefNode` with the node
its loader returns. Termination is structural: a ref may not appear in its own
ancestor chain. Siblings may reuse a ref because each branch carries its own
copy of the chain. An optional `max_depth` bounds nesting independently.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

from frontmatter_schema.core.types import Failure, Result, Success, _require
from frontmatter_schema.exceptions import (
    CircularReferenceError,
    RefResolutionError,
    SchemaError,
    TooDeepError,
)
from frontmatter_schema.schema.graph import (
    ArrayNode,
    ObjectNode,
    PrimitiveNode,
    RefNode,
    SchemaNode,
    walk,
)
from frontmatter_schema.schema.loader import SchemaLoader

logger = logging.getLogger(__name__)

# (identity key, ref as written) for each ref on the current ancestor chain
_Chain = tuple[tuple[str, str], ...]


@dataclasses.dataclass(frozen=True, slots=True)
class ResolvedSchema:
    """A schema graph with every `$ref` replaced by its referent."""

    root: SchemaNode
    referenced: frozenset[str] = frozenset()
    source_path: Path | None = None

    def __post_init__(self) -> None:
        _require(
            condition=not any(isinstance(n, RefNode) for _, n in walk(self.root)),
            message="resolved schema must not contain $ref nodes",
            field_name="root",
        )


class RefResolver:
    """Replaces `$ref` nodes using an injected `SchemaLoader`.

    Internal refs (``#/...``) that a file-backed loader cannot resolve fall
    back to an opaque ``string`` stub unless `strict_internal_refs` is set.
    In-memory loaders never get the fallback.
    """

    def __init__(
        self,
        loader: SchemaLoader,
        *,
        max_depth: int | None = None,
        strict_internal_refs: bool = False,
    ) -> None:
        _require(
            condition=max_depth is None or (isinstance(max_depth, int) and max_depth >= 1),
            message="must be None or an int >= 1",
            field_name="max_depth",
        )
        self.loader = loader
        self.max_depth = max_depth
        self.strict_internal_refs = strict_internal_refs

    def resolve(
        self, schema: SchemaNode, base_path: Path | None = None
    ) -> Result[ResolvedSchema, SchemaError]:
        """Resolve all references in `schema`.

        Args:
            schema: Parsed root node, possibly containing `RefNode`s.
            base_path: Document the root came from, for relative refs.

        Returns:
            `Success(ResolvedSchema)` or `Failure` with `CircularReferenceError`,
            `RefResolutionError` or `TooDeepError`.
        """
        referenced: set[str] = set()
        try:
            root = self._resolve_node(schema, base_path, (), 0, referenced)
        except SchemaError as e:
            logger.debug("Schema resolution failed: %s", e)
            return Failure(e)
        logger.debug("Resolved schema with %d distinct refs", len(referenced))
        return Success(
            ResolvedSchema(
                root=root, referenced=frozenset(referenced), source_path=base_path
            )
        )

    # ------------------------------
    # Internal helpers
    # ------------------------------
    def _resolve_node(
        self,
        node: SchemaNode,
        base_path: Path | None,
        chain: _Chain,
        depth: int,
        referenced: set[str],
    ) -> SchemaNode:
        if self.max_depth is not None and depth > self.max_depth:
            raise TooDeepError(self.max_depth, chain[-1][1] if chain else None)

        if isinstance(node, ObjectNode):
            properties = {
                name: self._resolve_node(child, base_path, chain, depth + 1, referenced)
                for name, child in node.properties.items()
            }
            return dataclasses.replace(node, properties=properties)

        if isinstance(node, ArrayNode):
            if node.items is None:
                return node
            items = self._resolve_node(node.items, base_path, chain, depth + 1, referenced)
            return dataclasses.replace(node, items=items)

        if isinstance(node, RefNode):
            return self._follow(node, base_path, chain, depth, referenced)

        return node

    def _follow(
        self,
        node: RefNode,
        base_path: Path | None,
        chain: _Chain,
        depth: int,
        referenced: set[str],
    ) -> SchemaNode:
        ref = node.target
        key = self._ref_key(ref, base_path)
        if any(seen == key for seen, _ in chain):
            raise CircularReferenceError(ref, [r for _, r in chain])

        loaded = self._load(ref, base_path)
        referenced.add(ref)
        next_base = self._document_for(ref, base_path)
        resolved = self._resolve_node(
            loaded, next_base, (*chain, (key, ref)), depth + 1, referenced
        )
        # Keys written next to `$ref` win over the referent's own
        resolved = resolved.with_extensions(node.extensions)
        if node.description is not None:
            resolved = dataclasses.replace(resolved, description=node.description)
        return resolved

    def _load(self, ref: str, base_path: Path | None) -> SchemaNode:
        if base_path is not None:
            result = self.loader.load_with_context(ref, base_path)
        else:
            result = self.loader.load(ref)
        if isinstance(result, Success):
            return result.value

        if (
            ref.startswith("#/")
            and getattr(self.loader, "file_backed", False)
            and not self.strict_internal_refs
        ):
            logger.warning(
                "Internal reference %s could not be resolved; using string stub", ref
            )
            return PrimitiveNode(
                type="string",
                description=f"Unresolved internal reference {ref}",
            )

        error = result.error
        if isinstance(error, SchemaError):
            if isinstance(error, RefResolutionError):
                raise error
            raise RefResolutionError(ref, error.message)
        raise RefResolutionError(ref, str(error))

    def _document_for(self, ref: str, base_path: Path | None) -> Path | None:
        locate = getattr(self.loader, "document_path_for", None)
        if locate is None:
            return base_path
        return locate(ref, base_path)

    def _ref_key(self, ref: str, base_path: Path | None) -> str:
        document = self._document_for(ref, base_path)
        fragment = ref.partition("#")[2]
        if document is None:
            return ref
        return f"{document}#{fragment}"
