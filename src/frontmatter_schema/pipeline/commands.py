"""The six commands that advance a pipeline run.

Each command accepts exactly one state tag. Domain failures become a
`FailedState` carrying the partial data available at that stage; only an
illegal invocation is reported as `Failure(ConfigurationError)`.
"""

from __future__ import annotations

import logging
from pathlib import Path
import typing

from frontmatter_schema.aggregation.aggregator import DataAggregator
from frontmatter_schema.config.schema import OUTPUT_FORMATS
from frontmatter_schema.core.types import Failure, Result, Success
from frontmatter_schema.documents.discovery import discover_documents
from frontmatter_schema.documents.frontmatter import read_frontmatter
from frontmatter_schema.exceptions import (
    ConfigurationError,
    DocumentProcessingError,
)
from frontmatter_schema.pipeline.documents import DocumentReader, process_documents
from frontmatter_schema.pipeline.states import (
    CompletedState,
    DataPreparingState,
    DocumentProcessingState,
    FailedState,
    InitializingState,
    OutputRenderingState,
    PipelineState,
    SchemaLoadingState,
    StateTag,
    TemplateResolvingState,
)
from frontmatter_schema.rendering.formats import format_from_suffix
from frontmatter_schema.rendering.renderer import OutputRenderer, RenderRequest
from frontmatter_schema.schema.directives import (
    MISSING,
    extract_value,
    locate_frontmatter_part,
)
from frontmatter_schema.schema.graph import X_TEMPLATE, X_TEMPLATE_FORMAT, X_TEMPLATE_ITEMS
from frontmatter_schema.schema.loader import load_root_schema
from frontmatter_schema.schema.resolver import RefResolver

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_FORMAT = "json"


class _StageCommand:
    """Shared legality check; subclasses implement `_run`."""

    name: str = "command"
    accepts: StateTag = "initializing"

    def can_execute(self, state: PipelineState) -> bool:
        return state.tag == self.accepts

    async def execute(
        self, state: PipelineState
    ) -> Result[PipelineState, ConfigurationError]:
        if not self.can_execute(state):
            return Failure(
                ConfigurationError(
                    f"{self.name} cannot run in state '{state.tag}'; "
                    f"expected '{self.accepts}'"
                )
            )
        return Success(await self._run(state))

    async def _run(self, state: typing.Any) -> PipelineState:
        raise NotImplementedError


class InitializeCommand(_StageCommand):
    """Validates the run's inputs."""

    name = "Initialize"
    accepts = "initializing"

    async def _run(self, state: InitializingState) -> PipelineState:
        config = state.config
        schema_path = _anchor(config.schema_path, config.base_dir)
        if not schema_path.is_file():
            return FailedState(
                error=ConfigurationError(f"Schema file not found: {config.schema_path}"),
                stage=self.accepts,
            )
        if config.template_path is not None:
            template = _anchor(config.template_path, config.base_dir)
            if not template.is_file():
                return FailedState(
                    error=ConfigurationError(
                        f"Template file not found: {config.template_path}"
                    ),
                    stage=self.accepts,
                )
        if config.output_format is not None and config.output_format not in OUTPUT_FORMATS:
            return FailedState(
                error=ConfigurationError(
                    f"Unsupported output format '{config.output_format}'. "
                    f"Expected one of: {', '.join(OUTPUT_FORMATS)}"
                ),
                stage=self.accepts,
            )
        return SchemaLoadingState(config=config)


class LoadSchemaCommand(_StageCommand):
    """Reads the schema file and resolves its `$ref` graph."""

    name = "LoadSchema"
    accepts = "schema-loading"

    async def _run(self, state: SchemaLoadingState) -> PipelineState:
        config = state.config
        loaded = load_root_schema(_anchor(config.schema_path, config.base_dir))
        if isinstance(loaded, Failure):
            return FailedState(error=loaded.error, stage=self.accepts)
        root, loader = loaded.value

        resolver = RefResolver(
            loader,
            max_depth=config.settings.max_ref_depth,
            strict_internal_refs=config.settings.strict_internal_refs,
        )
        resolved = resolver.resolve(root, base_path=loader.root_path)
        if isinstance(resolved, Failure):
            return FailedState(error=resolved.error, stage=self.accepts)
        logger.info(
            "Loaded schema %s (%d refs resolved)",
            loader.root_path,
            len(resolved.value.referenced),
        )
        return TemplateResolvingState(config=config, schema=resolved.value)


class ResolveTemplateCommand(_StageCommand):
    """Locates templates and decides the output format.

    Format precedence: explicit run option, configured setting,
    `x-template-format`, output file suffix, template file suffix, then json.
    """

    name = "ResolveTemplate"
    accepts = "template-resolving"

    async def _run(self, state: TemplateResolvingState) -> PipelineState:
        config = state.config
        root = state.schema.root
        schema_dir = _anchor(config.schema_path, config.base_dir).parent

        template_path = _template_from_schema(root.extension(X_TEMPLATE), schema_dir)
        if config.template_path is not None:
            template_path = _anchor(config.template_path, config.base_dir)
        items_template_path = _template_from_schema(
            root.extension(X_TEMPLATE_ITEMS), schema_dir
        )

        for label, path in (("Template", template_path), ("Items template", items_template_path)):
            if path is not None and not path.is_file():
                return FailedState(
                    error=ConfigurationError(f"{label} file not found: {path}"),
                    stage=self.accepts,
                    schema=state.schema,
                    template_path=template_path,
                )

        declared = root.extension(X_TEMPLATE_FORMAT)
        candidates = (
            config.output_format,
            config.settings.output_format,
            declared.lower() if isinstance(declared, str) else None,
            format_from_suffix(config.output_path),
            format_from_suffix(template_path),
        )
        output_format = next((c for c in candidates if c), DEFAULT_OUTPUT_FORMAT)
        output_format = {"yml": "yaml", "md": "markdown"}.get(output_format, output_format)
        if output_format not in OUTPUT_FORMATS:
            return FailedState(
                error=ConfigurationError(f"Unsupported output format '{output_format}'"),
                stage=self.accepts,
                schema=state.schema,
                template_path=template_path,
            )

        logger.debug(
            "Template=%s items=%s format=%s", template_path, items_template_path, output_format
        )
        return DocumentProcessingState(
            config=config,
            schema=state.schema,
            template_path=template_path,
            items_template_path=items_template_path,
            output_format=output_format,
        )


class ProcessDocumentsCommand(_StageCommand):
    """Discovers the input documents and extracts their frontmatter."""

    name = "ProcessDocuments"
    accepts = "document-processing"

    def __init__(self, reader: DocumentReader = read_frontmatter) -> None:
        self.reader = reader

    async def _run(self, state: DocumentProcessingState) -> PipelineState:
        config = state.config
        paths = discover_documents(config.input_pattern, config.base_dir)
        if not paths:
            return FailedState(
                error=DocumentProcessingError(config.input_pattern, "no documents matched"),
                stage=self.accepts,
                schema=state.schema,
                template_path=state.template_path,
            )

        processed = await process_documents(paths, config.settings, self.reader)
        if isinstance(processed, Failure):
            return FailedState(
                error=processed.error,
                stage=self.accepts,
                schema=state.schema,
                template_path=state.template_path,
            )
        logger.info("Extracted frontmatter from %d of %d documents", len(processed.value), len(paths))
        return DataPreparingState(
            config=config,
            schema=state.schema,
            template_path=state.template_path,
            items_template_path=state.items_template_path,
            output_format=state.output_format,
            processed_documents=processed.value,
        )


class PrepareDataCommand(_StageCommand):
    """Aggregates the records and splits out the items collection."""

    name = "PrepareData"
    accepts = "data-preparing"

    def __init__(self, aggregator: DataAggregator | None = None) -> None:
        self.aggregator = aggregator or DataAggregator()

    async def _run(self, state: DataPreparingState) -> PipelineState:
        aggregated = self.aggregator.aggregate(state.processed_documents, state.schema)
        if isinstance(aggregated, Failure):
            return FailedState(
                error=aggregated.error,
                stage=self.accepts,
                schema=state.schema,
                template_path=state.template_path,
                processed_documents=state.processed_documents,
            )

        result = aggregated.value
        main_data = result.aggregated_frontmatter.to_dict()
        items = _items_for(main_data, state)
        return OutputRenderingState(
            config=state.config,
            schema=state.schema,
            template_path=state.template_path,
            items_template_path=state.items_template_path,
            output_format=state.output_format,
            processed_documents=state.processed_documents,
            aggregation=result,
            main_data=main_data,
            items_data=tuple(items),
        )


class RenderOutputCommand(_StageCommand):
    """Renders the prepared data and writes the output file."""

    name = "RenderOutput"
    accepts = "output-rendering"

    def __init__(self, renderer: OutputRenderer | None = None) -> None:
        self.renderer = renderer or OutputRenderer()

    async def _run(self, state: OutputRenderingState) -> PipelineState:
        config = state.config
        request = RenderRequest(
            main_data=dict(state.main_data),
            output_path=_anchor(config.output_path, config.base_dir),
            output_format=state.output_format,
            template_path=state.template_path,
            items_template_path=state.items_template_path,
            items_data=state.items_data,
        )
        rendered = self.renderer.render(request)
        if isinstance(rendered, Failure):
            return FailedState(
                error=rendered.error,
                stage=self.accepts,
                schema=state.schema,
                template_path=state.template_path,
                processed_documents=state.processed_documents,
                main_data=state.main_data,
            )
        return CompletedState(
            config=config,
            output_path=rendered.value,
            output_format=state.output_format,
            document_count=len(state.processed_documents),
            metadata=state.aggregation.metadata,
        )


def default_commands() -> tuple[_StageCommand, ...]:
    """The six commands in execution order."""
    return (
        InitializeCommand(),
        LoadSchemaCommand(),
        ResolveTemplateCommand(),
        ProcessDocumentsCommand(),
        PrepareDataCommand(),
        RenderOutputCommand(),
    )


# ------------------------------
# Helpers
# ------------------------------
def _anchor(path: Path, base_dir: Path | None) -> Path:
    if path.is_absolute() or base_dir is None:
        return path
    return base_dir / path


def _template_from_schema(value: typing.Any, schema_dir: Path) -> Path | None:
    if not isinstance(value, str) or not value.strip():
        return None
    path = Path(value.strip())
    return path if path.is_absolute() else schema_dir / path


def _items_for(main_data: dict[str, typing.Any], state: DataPreparingState) -> list[typing.Any]:
    """The frontmatter-part collection if declared, else one item per record."""
    part_path = locate_frontmatter_part(state.schema)
    if part_path is not None:
        value = extract_value(main_data, part_path)
        if value is not MISSING and isinstance(value, list):
            return value
    return [record.to_dict() for record in state.processed_documents]
