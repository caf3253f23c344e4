"""Frontmatter extraction from Markdown documents.

Three fenced formats are recognized when the fence is the document's first
line: YAML (``---``), TOML (``+++``) and JSON (``;;;``).
"""

from __future__ import annotations

import dataclasses
import json
import logging
from pathlib import Path
import tomllib
import typing

import yaml

from frontmatter_schema.core.types import Failure, FrontmatterData, Result, Success
from frontmatter_schema.exceptions import DocumentProcessingError

logger = logging.getLogger(__name__)

FrontmatterFormat = typing.Literal["yaml", "toml", "json"]

FENCES: typing.Mapping[str, FrontmatterFormat] = {
    "---": "yaml",
    "+++": "toml",
    ";;;": "json",
}


@dataclasses.dataclass(frozen=True, slots=True)
class ExtractedFrontmatter:
    """Raw frontmatter block split from a document body."""

    format: FrontmatterFormat
    raw: str
    body: str


def split_frontmatter(text: str) -> ExtractedFrontmatter | None:
    """Split a leading fenced block from `text`, or return None if absent."""
    text = text.removeprefix("\ufeff")
    lines = text.splitlines(keepends=True)
    if not lines:
        return None
    fence = lines[0].rstrip()
    fmt = FENCES.get(fence)
    if fmt is None:
        return None
    for index in range(1, len(lines)):
        if lines[index].rstrip() == fence:
            return ExtractedFrontmatter(
                format=fmt,
                raw="".join(lines[1:index]),
                body="".join(lines[index + 1 :]),
            )
    return None


def parse_block(block: ExtractedFrontmatter) -> dict[str, typing.Any]:
    """Parse a frontmatter block into a mapping.

    Raises:
        ValueError: If the block is malformed or not a mapping.
    """
    if block.format == "yaml":
        try:
            data = yaml.safe_load(block.raw)
        except yaml.YAMLError as e:
            raise ValueError(f"invalid YAML frontmatter: {e}") from e
    elif block.format == "toml":
        try:
            data = tomllib.loads(block.raw)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"invalid TOML frontmatter: {e}") from e
    else:
        try:
            data = json.loads(block.raw) if block.raw.strip() else None
        except json.JSONDecodeError as e:
            raise ValueError(f"invalid JSON frontmatter: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"frontmatter must be a mapping, got {type(data).__name__}")
    return data


def extract_frontmatter(
    text: str, source: Path | None = None
) -> Result[FrontmatterData | None, DocumentProcessingError]:
    """Extract the frontmatter of one document's text.

    Returns:
        `Success(FrontmatterData)`, `Success(None)` when the document has no
        frontmatter, or `Failure(DocumentProcessingError)`.
    """
    label = str(source) if source is not None else "<text>"
    block = split_frontmatter(text)
    if block is None:
        return Success(None)
    try:
        data = parse_block(block)
    except ValueError as e:
        return Failure(DocumentProcessingError(label, str(e)))

    record = FrontmatterData.create(data, source)
    if isinstance(record, Failure):
        return Failure(DocumentProcessingError(label, record.error.message))
    return record


def read_frontmatter(
    path: Path,
) -> Result[FrontmatterData | None, DocumentProcessingError]:
    """Read `path` and extract its frontmatter; see `extract_frontmatter`."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return Failure(DocumentProcessingError(str(path), f"cannot read file: {e}"))
    result = extract_frontmatter(text, path)
    if isinstance(result, Success) and result.value is None:
        logger.warning("No frontmatter found in %s; skipping", path)
    return result
