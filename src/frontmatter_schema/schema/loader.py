"""Schema loaders: the only I/O boundary of reference resolution.

A loader turns a `$ref` string into a parsed `SchemaNode`. `FileSchemaLoader`
reads JSON documents from disk and resolves JSON pointers inside them;
`InMemorySchemaLoader` serves schemas registered programmatically.
"""

from __future__ import annotations

from collections.abc import Mapping
import json
import logging
from pathlib import Path
import typing
from urllib.parse import unquote

from frontmatter_schema.core.types import Failure, Result, Success
from frontmatter_schema.exceptions import RefResolutionError, SchemaError
from frontmatter_schema.schema.graph import SchemaNode, parse_schema

logger = logging.getLogger(__name__)


@typing.runtime_checkable
class SchemaLoader(typing.Protocol):
    """Protocol for objects that load the schema a `$ref` points to."""

    file_backed: bool

    def load(self, ref: str) -> Result[SchemaNode, SchemaError]: ...  # noqa: D102

    def load_with_context(  # noqa: D102
        self, ref: str, base_path: Path | None
    ) -> Result[SchemaNode, SchemaError]: ...


def resolve_pointer(document: typing.Any, pointer: str) -> typing.Any:
    """Walk a JSON pointer fragment (``/definitions/Item``) inside a document.

    Raises:
        KeyError: If any segment does not exist.
    """
    current = document
    if pointer in ("", "/"):
        return current
    for raw_segment in pointer.lstrip("/").split("/"):
        segment = unquote(raw_segment).replace("~1", "/").replace("~0", "~")
        if isinstance(current, Mapping) and segment in current:
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit() and int(segment) < len(current):
            current = current[int(segment)]
        else:
            raise KeyError(segment)
    return current


def _split_ref(ref: str) -> tuple[str, str]:
    location, _, fragment = ref.partition("#")
    return location, fragment


def _parse_loaded(ref: str, raw: typing.Any) -> Result[SchemaNode, SchemaError]:
    parsed = parse_schema(raw)
    if isinstance(parsed, Failure):
        return Failure(RefResolutionError(ref, parsed.error.message))
    return parsed


class FileSchemaLoader:
    """Loads schemas from JSON files relative to a root schema document.

    Internal refs (``#/definitions/X``) are looked up in the document named by
    `base_path` (defaulting to the root schema). External refs
    (``common.json#/definitions/Y``) are resolved relative to `base_path`'s
    directory. Parsed documents are cached per absolute path.
    """

    file_backed = True

    def __init__(self, root_path: str | Path) -> None:
        self.root_path = Path(root_path).resolve()
        self._documents: dict[Path, typing.Any] = {}

    def read_document(self, path: str | Path) -> typing.Any:
        """Read and cache a JSON document.

        Raises:
            OSError: If the file cannot be read.
            ValueError: If the file is not valid JSON.
        """
        resolved = Path(path).resolve()
        if resolved not in self._documents:
            logger.debug("Reading schema document %s", resolved)
            with resolved.open(encoding="utf-8") as f:
                self._documents[resolved] = json.load(f)
        return self._documents[resolved]

    def load(self, ref: str) -> Result[SchemaNode, SchemaError]:
        return self.load_with_context(ref, None)

    def load_with_context(
        self, ref: str, base_path: Path | None
    ) -> Result[SchemaNode, SchemaError]:
        base = Path(base_path).resolve() if base_path is not None else self.root_path
        location, fragment = _split_ref(ref)
        if location:
            target = Path(location)
            document_path = target if target.is_absolute() else base.parent / target
        else:
            document_path = base

        try:
            document = self.read_document(document_path)
        except (OSError, ValueError) as e:
            return Failure(RefResolutionError(ref, f"cannot read {document_path}: {e}"))

        try:
            raw = resolve_pointer(document, fragment)
        except KeyError as e:
            return Failure(
                RefResolutionError(ref, f"pointer segment {e} not found in {document_path}")
            )
        return _parse_loaded(ref, raw)

    def document_path_for(self, ref: str, base_path: Path | None) -> Path:
        """Return the file a ref lives in, for resolving its own nested refs."""
        base = Path(base_path).resolve() if base_path is not None else self.root_path
        location, _ = _split_ref(ref)
        if not location:
            return base
        target = Path(location)
        return (target if target.is_absolute() else base.parent / target).resolve()


class InMemorySchemaLoader:
    """Serves schemas registered by ref string or reachable inside a root document.

    Lookups try an exact registration first, then a JSON pointer into the
    optional `root` document for internal refs.
    """

    file_backed = False

    def __init__(
        self,
        schemas: Mapping[str, typing.Any] | None = None,
        *,
        root: Mapping[str, typing.Any] | None = None,
    ) -> None:
        self._schemas: dict[str, typing.Any] = dict(schemas or {})
        self._root = root

    def add(self, ref: str, schema: typing.Any) -> None:
        self._schemas[ref] = schema

    def load(self, ref: str) -> Result[SchemaNode, SchemaError]:
        if ref in self._schemas:
            return _parse_loaded(ref, self._schemas[ref])
        location, fragment = _split_ref(ref)
        if not location and self._root is not None:
            try:
                return _parse_loaded(ref, resolve_pointer(self._root, fragment))
            except KeyError:
                pass
        return Failure(RefResolutionError(ref, "schema not found"))

    def load_with_context(
        self, ref: str, base_path: Path | None
    ) -> Result[SchemaNode, SchemaError]:
        return self.load(ref)


def load_root_schema(path: str | Path) -> Result[tuple[SchemaNode, FileSchemaLoader], SchemaError]:
    """Read and parse a root schema file, returning it with its loader."""
    loader = FileSchemaLoader(path)
    try:
        document = loader.read_document(loader.root_path)
    except OSError as e:
        return Failure(SchemaError(f"Cannot read schema file {path}: {e}"))
    except ValueError as e:
        return Failure(SchemaError(f"Schema file {path} is not valid JSON: {e}"))
    parsed = parse_schema(document)
    if isinstance(parsed, Failure):
        return parsed
    return Success((parsed.value, loader))
