"""Output rendering: template application, serialization and file write."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
import typing

from frontmatter_schema.core.types import Failure, Result, Success
from frontmatter_schema.exceptions import RenderError
from frontmatter_schema.rendering.formats import (
    STRUCTURED_TEMPLATE_FORMATS,
    format_from_suffix,
    parse_template,
    serialize,
    to_markdown,
)
from frontmatter_schema.rendering.template import TemplateRenderer

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class RenderRequest:
    """Everything needed to produce one output file."""

    main_data: typing.Any
    output_path: Path
    output_format: str
    template_path: Path | None = None
    items_template_path: Path | None = None
    items_data: tuple[typing.Any, ...] = ()


class OutputRenderer:
    """Renders a `RenderRequest` and writes the result to disk.

    Structured templates (``.json``, ``.yaml``/``.yml``, ``.toml``) are parsed
    and walked value by value; any other template is treated as text.
    """

    def render(self, request: RenderRequest) -> Result[Path, RenderError]:
        """Render and write `request`, returning the written path."""
        try:
            content = self.render_content(request)
        except RenderError as e:
            return Failure(e)

        try:
            request.output_path.parent.mkdir(parents=True, exist_ok=True)
            request.output_path.write_text(content, encoding="utf-8")
        except OSError as e:
            return Failure(RenderError(f"Cannot write {request.output_path}: {e}"))
        logger.info(
            "Wrote %s output (%d bytes) to %s",
            request.output_format,
            len(content.encode("utf-8")),
            request.output_path,
        )
        return Success(request.output_path)

    def render_content(self, request: RenderRequest) -> str:
        """Produce the output text without touching the filesystem.

        Raises:
            RenderError: On unreadable or invalid templates and encoding errors.
        """
        if request.template_path is None:
            return serialize(request.main_data, request.output_format)

        template_format, template = self._load_template(request.template_path)
        items_template = None
        if request.items_template_path is not None:
            _, items_template = self._load_template(request.items_template_path)
        renderer = TemplateRenderer(request.items_data, items_template)

        if template_format not in STRUCTURED_TEMPLATE_FORMATS:
            # Text templates describe the whole document
            return renderer.render_text(template, request.main_data)

        rendered = renderer.render_structure(template, request.main_data)
        if request.output_format == "markdown":
            return to_markdown(rendered)
        return serialize(rendered, request.output_format)

    @staticmethod
    def _load_template(path: Path) -> tuple[str, typing.Any]:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise RenderError(f"Cannot read template {path}: {e}") from e
        template_format = format_from_suffix(path) or "text"
        if template_format in STRUCTURED_TEMPLATE_FORMATS:
            return template_format, parse_template(text, template_format)
        return template_format, text
