"""Aggregate Markdown frontmatter into one schema-driven document."""

import importlib.metadata
import logging

from frontmatter_schema.aggregation import DataAggregator
from frontmatter_schema.config import FrozenConfig, ResolvedConfig, resolve_config
from frontmatter_schema.core.types import (
    AggregatedResult,
    AggregationMetadata,
    DerivationRule,
    Failure,
    FrontmatterData,
    Result,
    Success,
)
from frontmatter_schema.exceptions import (
    AggregationError,
    ConfigurationError,
    ExecutionError,
    FrontmatterSchemaError,
    ProcessingError,
    RenderError,
    SchemaError,
)
from frontmatter_schema.executor import (
    PipelineExecutionResult,
    PipelineStateMachine,
    run_pipeline,
)
from frontmatter_schema.pipeline.states import PipelineConfig
from frontmatter_schema.schema import (
    DirectiveProcessor,
    FileSchemaLoader,
    InMemorySchemaLoader,
    RefResolver,
    ResolvedSchema,
)
from frontmatter_schema.telemetry import TelemetryContext, TelemetryReporter

try:
    __version__ = importlib.metadata.version("frontmatter-schema")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Null handler so library use stays silent unless the application configures logging
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [  # noqa: RUF022
    # Execution
    "PipelineStateMachine",
    "PipelineExecutionResult",
    "PipelineConfig",
    "run_pipeline",
    # Configuration
    "resolve_config",
    "ResolvedConfig",
    "FrozenConfig",
    # Schema
    "RefResolver",
    "ResolvedSchema",
    "FileSchemaLoader",
    "InMemorySchemaLoader",
    "DirectiveProcessor",
    # Aggregation
    "DataAggregator",
    "AggregatedResult",
    "AggregationMetadata",
    "DerivationRule",
    "FrontmatterData",
    # Result types
    "Result",
    "Success",
    "Failure",
    # Telemetry
    "TelemetryContext",
    "TelemetryReporter",
    # Exceptions
    "FrontmatterSchemaError",
    "ConfigurationError",
    "SchemaError",
    "ProcessingError",
    "AggregationError",
    "RenderError",
    "ExecutionError",
]
