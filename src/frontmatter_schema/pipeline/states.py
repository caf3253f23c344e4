"""Typed pipeline states.

Each state is a frozen dataclass carrying exactly the data that is legally
available at that point of a run. The `tag` class attribute names the state;
commands dispatch on it.
"""

from __future__ import annotations

import dataclasses
from pathlib import Path
import typing

from frontmatter_schema.config.types import FrozenConfig
from frontmatter_schema.core.types import (
    AggregatedResult,
    AggregationMetadata,
    FrontmatterData,
    _freeze_mapping,
    _is_tuple_of,
    _require,
)
from frontmatter_schema.exceptions import FrontmatterSchemaError
from frontmatter_schema.schema.resolver import ResolvedSchema

StateTag = typing.Literal[
    "initializing",
    "schema-loading",
    "template-resolving",
    "document-processing",
    "data-preparing",
    "output-rendering",
    "completed",
    "failed",
]


@dataclasses.dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Inputs of one pipeline run."""

    schema_path: Path
    output_path: Path
    input_pattern: str
    template_path: Path | None = None
    output_format: str | None = None
    settings: FrozenConfig = dataclasses.field(default_factory=FrozenConfig)
    base_dir: Path | None = None

    def __post_init__(self) -> None:
        _require(
            condition=isinstance(self.schema_path, Path),
            message="must be a Path",
            field_name="schema_path",
            exc=TypeError,
        )
        _require(
            condition=isinstance(self.output_path, Path),
            message="must be a Path",
            field_name="output_path",
            exc=TypeError,
        )
        _require(
            condition=isinstance(self.input_pattern, str) and self.input_pattern.strip() != "",
            message="must be a non-empty str",
            field_name="input_pattern",
        )
        _require(
            condition=isinstance(self.settings, FrozenConfig),
            message="must be a FrozenConfig",
            field_name="settings",
            exc=TypeError,
        )

    @classmethod
    def create(
        cls,
        schema_path: str | Path,
        output_path: str | Path,
        input_pattern: str,
        *,
        template_path: str | Path | None = None,
        output_format: str | None = None,
        settings: FrozenConfig | None = None,
        base_dir: str | Path | None = None,
    ) -> PipelineConfig:
        """Build a config from loosely typed inputs such as CLI strings."""
        return cls(
            schema_path=Path(schema_path),
            output_path=Path(output_path),
            input_pattern=str(input_pattern),
            template_path=Path(template_path) if template_path is not None else None,
            output_format=output_format,
            settings=settings or FrozenConfig(),
            base_dir=Path(base_dir) if base_dir is not None else None,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class InitializingState:
    """A run that has not started."""

    config: PipelineConfig
    tag: typing.ClassVar[StateTag] = "initializing"


@dataclasses.dataclass(frozen=True, slots=True)
class SchemaLoadingState:
    """Inputs validated; the schema is next."""

    config: PipelineConfig
    tag: typing.ClassVar[StateTag] = "schema-loading"


@dataclasses.dataclass(frozen=True, slots=True)
class TemplateResolvingState:
    """Schema loaded and resolved."""

    config: PipelineConfig
    schema: ResolvedSchema
    tag: typing.ClassVar[StateTag] = "template-resolving"


@dataclasses.dataclass(frozen=True, slots=True)
class DocumentProcessingState:
    """Templates and output format decided."""

    config: PipelineConfig
    schema: ResolvedSchema
    template_path: Path | None
    items_template_path: Path | None
    output_format: str
    tag: typing.ClassVar[StateTag] = "document-processing"


@dataclasses.dataclass(frozen=True, slots=True)
class DataPreparingState:
    """Every document's frontmatter extracted."""

    config: PipelineConfig
    schema: ResolvedSchema
    template_path: Path | None
    items_template_path: Path | None
    output_format: str
    processed_documents: tuple[FrontmatterData, ...]
    tag: typing.ClassVar[StateTag] = "data-preparing"

    def __post_init__(self) -> None:
        _require(
            condition=_is_tuple_of(self.processed_documents, FrontmatterData),
            message="must be a tuple[FrontmatterData, ...]",
            field_name="processed_documents",
            exc=TypeError,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class OutputRenderingState:
    """Aggregated data ready for the renderer."""

    config: PipelineConfig
    schema: ResolvedSchema
    template_path: Path | None
    items_template_path: Path | None
    output_format: str
    processed_documents: tuple[FrontmatterData, ...]
    aggregation: AggregatedResult
    main_data: typing.Mapping[str, typing.Any]
    items_data: tuple[typing.Any, ...]
    tag: typing.ClassVar[StateTag] = "output-rendering"

    def __post_init__(self) -> None:
        object.__setattr__(self, "main_data", _freeze_mapping(self.main_data))


@dataclasses.dataclass(frozen=True, slots=True)
class CompletedState:
    """Output written."""

    config: PipelineConfig
    output_path: Path
    output_format: str
    document_count: int
    metadata: AggregationMetadata
    tag: typing.ClassVar[StateTag] = "completed"


@dataclasses.dataclass(frozen=True, slots=True)
class FailedState:
    """Terminal failure with whatever partial data the failing stage had."""

    error: FrontmatterSchemaError
    stage: str
    schema: ResolvedSchema | None = None
    template_path: Path | None = None
    processed_documents: tuple[FrontmatterData, ...] | None = None
    main_data: typing.Mapping[str, typing.Any] | None = None
    tag: typing.ClassVar[StateTag] = "failed"


PipelineState = (
    InitializingState
    | SchemaLoadingState
    | TemplateResolvingState
    | DocumentProcessingState
    | DataPreparingState
    | OutputRenderingState
    | CompletedState
    | FailedState
)

TERMINAL_TAGS: frozenset[str] = frozenset({"completed", "failed"})


def is_terminal(state: PipelineState) -> bool:
    return state.tag in TERMINAL_TAGS
