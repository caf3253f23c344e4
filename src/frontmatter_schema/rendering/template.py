"""Placeholder substitution for structured and text templates.

Placeholders are ``{{path}}`` or ``{path}`` where `path` is a dotted lookup
into the data (list positions may be addressed by index). A placeholder whose
path does not resolve is left verbatim. The ``{@items}`` marker expands into
the rendered items collection.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import copy
import json
import logging
import re
import typing

from frontmatter_schema.exceptions import RenderError

logger = logging.getLogger(__name__)

ITEMS_MARKER = "{@items}"

_PLACEHOLDER = re.compile(r"\{\{([\w.@-]+)\}\}|\{([\w.@-]+)\}")
_EXACT_PLACEHOLDER = re.compile(r"^(?:\{\{([\w.@-]+)\}\}|\{([\w.@-]+)\})$")

_UNRESOLVED = object()


def lookup(data: typing.Any, path: str) -> typing.Any:
    current = data
    for part in path.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return _UNRESOLVED
    return current


def format_value(value: typing.Any) -> str:
    """Render a value for embedding inside a larger string."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping | list | tuple):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def interpolate(text: str, data: typing.Any) -> str:
    """Replace every resolvable placeholder in `text` with its string form."""

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1) or match.group(2)
        if name.startswith("@"):
            return match.group(0)
        value = lookup(data, name)
        if value is _UNRESOLVED:
            logger.debug("Placeholder %s unresolved; kept verbatim", match.group(0))
            return match.group(0)
        return format_value(value)

    return _PLACEHOLDER.sub(_replace, text)


class TemplateRenderer:
    """Renders one template against main data and an optional items collection.

    Args:
        items: Collection substituted for ``{@items}``.
        items_template: Structure (or text, for text templates) rendered once
            per item. Without it the raw items are inserted.
    """

    def __init__(
        self,
        items: Sequence[typing.Any] | None = None,
        items_template: typing.Any = None,
    ) -> None:
        self.items = list(items) if items is not None else []
        self.items_template = items_template

    # --- Structured templates ---

    def render_structure(self, template: typing.Any, data: typing.Any) -> typing.Any:
        """Walk a parsed JSON/YAML/TOML template, substituting values.

        A string that is exactly one placeholder is replaced by the typed
        value, so ``"{{count}}"`` yields an int when `count` is one.
        """
        if isinstance(template, Mapping):
            return {key: self.render_structure(value, data) for key, value in template.items()}
        if isinstance(template, list):
            rendered: list[typing.Any] = []
            for element in template:
                if element == ITEMS_MARKER:
                    rendered.extend(self.expand_items())
                else:
                    rendered.append(self.render_structure(element, data))
            return rendered
        if isinstance(template, str):
            return self._render_string(template, data)
        return template

    def expand_items(self) -> list[typing.Any]:
        """Render every item with the items template, or copy raw items."""
        if self.items_template is None:
            return copy.deepcopy(self.items)
        expanded = []
        for index, item in enumerate(self.items):
            if not isinstance(item, Mapping):
                raise RenderError(
                    f"Item {index} is a {type(item).__name__}; items templates need mappings"
                )
            if isinstance(self.items_template, str):
                expanded.append(interpolate(self.items_template, item))
            else:
                expanded.append(TemplateRenderer().render_structure(self.items_template, item))
        return expanded

    def _render_string(self, template: str, data: typing.Any) -> typing.Any:
        if template == ITEMS_MARKER:
            return self.expand_items()
        exact = _EXACT_PLACEHOLDER.match(template)
        if exact:
            name = exact.group(1) or exact.group(2)
            if not name.startswith("@"):
                value = lookup(data, name)
                if value is _UNRESOLVED:
                    logger.debug("Placeholder %s unresolved; kept verbatim", template)
                    return template
                return copy.deepcopy(value)
        return interpolate(template, data)

    # --- Text templates ---

    def render_text(self, template: str, data: typing.Any) -> str:
        """Substitute placeholders in plain text; items are joined by newlines."""
        # `@` names survive interpolation, so items are spliced in afterwards
        text = interpolate(template, data)
        if ITEMS_MARKER in text:
            if self.items_template is None:
                parts = [format_value(item) for item in self.items]
            else:
                parts = [
                    item if isinstance(item, str) else format_value(item)
                    for item in self.expand_items()
                ]
            text = text.replace(ITEMS_MARKER, "\n".join(parts))
        return text
