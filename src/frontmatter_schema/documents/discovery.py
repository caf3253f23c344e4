"""Input file discovery."""

from __future__ import annotations

import glob
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIXES: frozenset[str] = frozenset({".md", ".markdown"})


def discover_documents(pattern: str | Path, base_dir: Path | None = None) -> list[Path]:
    """Resolve an input pattern to a sorted, de-duplicated list of files.

    `pattern` may name a single file, a directory (searched recursively for
    Markdown files) or a glob such as ``docs/**/*.md``. Relative patterns are
    taken against `base_dir` (defaults to the working directory).
    """
    base = Path(base_dir) if base_dir is not None else Path.cwd()
    candidate = Path(pattern)
    if not candidate.is_absolute():
        candidate = base / candidate

    if candidate.is_file():
        found = [candidate]
    elif candidate.is_dir():
        found = [
            p
            for p in candidate.rglob("*")
            if p.is_file() and p.suffix.lower() in MARKDOWN_SUFFIXES
        ]
    else:
        found = [Path(p) for p in glob.glob(str(candidate), recursive=True)]
        found = [p for p in found if p.is_file()]

    unique = sorted({p.resolve() for p in found})
    logger.debug("Pattern %s matched %d files", pattern, len(unique))
    return unique
