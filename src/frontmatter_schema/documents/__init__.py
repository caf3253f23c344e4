"""Document discovery and frontmatter extraction."""

from .discovery import discover_documents
from .frontmatter import (
    ExtractedFrontmatter,
    extract_frontmatter,
    read_frontmatter,
    split_frontmatter,
)

__all__ = [
    "ExtractedFrontmatter",
    "discover_documents",
    "extract_frontmatter",
    "read_frontmatter",
    "split_frontmatter",
]
