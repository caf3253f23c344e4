"""Per-document frontmatter extraction, sequential or concurrent."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
import logging
from pathlib import Path

from frontmatter_schema.config.types import FrozenConfig
from frontmatter_schema.core.types import Failure, FrontmatterData, Result, Success
from frontmatter_schema.documents.frontmatter import read_frontmatter
from frontmatter_schema.exceptions import DocumentProcessingError

logger = logging.getLogger(__name__)

DocumentReader = Callable[[Path], Result[FrontmatterData | None, DocumentProcessingError]]


def should_parallelize(file_count: int, settings: FrozenConfig) -> bool:
    return settings.parallel and file_count >= settings.min_files_for_parallel


async def process_documents(
    paths: Sequence[Path],
    settings: FrozenConfig,
    reader: DocumentReader = read_frontmatter,
) -> Result[tuple[FrontmatterData, ...], DocumentProcessingError]:
    """Extract frontmatter from every path, preserving input order.

    Documents without frontmatter are skipped. In parallel mode all reads are
    awaited before results are inspected and the first failure in input
    order is reported; sequential mode stops at the first failure.
    """
    if should_parallelize(len(paths), settings):
        logger.debug(
            "Processing %d documents concurrently (max_workers=%d)",
            len(paths),
            settings.max_workers,
        )
        results = await _read_concurrently(paths, settings.max_workers, reader)
    else:
        logger.debug("Processing %d documents sequentially", len(paths))
        results = []
        for path in paths:
            result = await asyncio.to_thread(reader, path)
            results.append(result)
            if isinstance(result, Failure):
                break

    records: list[FrontmatterData] = []
    for result in results:
        if isinstance(result, Failure):
            return result
        if result.value is not None:
            records.append(result.value)
    return Success(tuple(records))


async def _read_concurrently(
    paths: Sequence[Path], max_workers: int, reader: DocumentReader
) -> list[Result[FrontmatterData | None, DocumentProcessingError]]:
    semaphore = asyncio.Semaphore(max_workers)

    async def _read(path: Path) -> Result[FrontmatterData | None, DocumentProcessingError]:
        async with semaphore:
            return await asyncio.to_thread(reader, path)

    return list(await asyncio.gather(*(_read(p) for p in paths)))
