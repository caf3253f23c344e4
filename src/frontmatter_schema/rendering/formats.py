"""Output serializers and template parsers for the supported formats."""

from __future__ import annotations

from collections.abc import Mapping
import datetime
import json
from pathlib import Path
import tomllib
import typing

import tomli_w
import yaml

from frontmatter_schema.exceptions import RenderError

OutputFormat = typing.Literal["json", "yaml", "toml", "markdown"]

_SUFFIX_FORMATS: typing.Mapping[str, OutputFormat] = {
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
    ".md": "markdown",
    ".markdown": "markdown",
}

STRUCTURED_TEMPLATE_FORMATS: frozenset[str] = frozenset({"json", "yaml", "toml"})


def format_from_suffix(path: str | Path | None) -> OutputFormat | None:
    """Map a file suffix to an output format, or None if unknown."""
    if path is None:
        return None
    return _SUFFIX_FORMATS.get(Path(path).suffix.lower())


def _json_default(value: typing.Any) -> typing.Any:
    if isinstance(value, datetime.date | datetime.time):
        return value.isoformat()
    if isinstance(value, set | frozenset | tuple):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _toml_ready(value: typing.Any) -> typing.Any:
    # TOML has no null
    if isinstance(value, Mapping):
        return {k: _toml_ready(v) for k, v in value.items() if v is not None}
    if isinstance(value, list | tuple):
        return [_toml_ready(v) for v in value if v is not None]
    return value


def to_json(data: typing.Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=_json_default) + "\n"


def to_yaml(data: typing.Any) -> str:
    return yaml.safe_dump(
        data, sort_keys=False, allow_unicode=True, default_flow_style=False
    )


def to_toml(data: typing.Any) -> str:
    if not isinstance(data, Mapping):
        raise RenderError(
            f"TOML output needs a mapping at the top level, got {type(data).__name__}"
        )
    try:
        return tomli_w.dumps(_toml_ready(data))
    except TypeError as e:
        raise RenderError(f"Cannot serialize to TOML: {e}") from e


def to_markdown(frontmatter: typing.Any, body: str = "") -> str:
    """Emit a YAML frontmatter block followed by `body`."""
    block = to_yaml(frontmatter) if frontmatter not in (None, {}) else ""
    return f"---\n{block}---\n{body}"


def serialize(data: typing.Any, output_format: str) -> str:
    """Serialize `data` in `output_format`.

    Raises:
        RenderError: If the format is unknown or the data cannot be encoded.
    """
    try:
        if output_format == "json":
            return to_json(data)
        if output_format == "yaml":
            return to_yaml(data)
        if output_format == "toml":
            return to_toml(data)
        if output_format == "markdown":
            return to_markdown(data)
    except (TypeError, ValueError, yaml.YAMLError) as e:
        raise RenderError(f"Cannot serialize to {output_format}: {e}") from e
    raise RenderError(f"Unsupported output format: {output_format}")


def parse_template(text: str, template_format: str) -> typing.Any:
    """Parse a structured template file's text.

    Raises:
        RenderError: If the text is not valid in `template_format`.
    """
    try:
        if template_format == "json":
            return json.loads(text)
        if template_format == "yaml":
            return yaml.safe_load(text)
        if template_format == "toml":
            return tomllib.loads(text)
    except (ValueError, yaml.YAMLError) as e:
        raise RenderError(f"Invalid {template_format} template: {e}") from e
    raise RenderError(f"Not a structured template format: {template_format}")
