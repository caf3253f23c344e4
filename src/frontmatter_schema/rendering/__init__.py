"""Template rendering and output serialization."""

from .formats import OutputFormat, format_from_suffix, serialize
from .renderer import OutputRenderer, RenderRequest
from .template import ITEMS_MARKER, TemplateRenderer

__all__ = [
    "ITEMS_MARKER",
    "OutputFormat",
    "OutputRenderer",
    "RenderRequest",
    "TemplateRenderer",
    "format_from_suffix",
    "serialize",
]
