"""Exception hierarchy for frontmatter-schema.

Errors are grouped by origin. Core operations never raise these directly;
they return them inside a `Failure` so callers inspect failures as data.
"""

from __future__ import annotations

from collections.abc import Sequence


class FrontmatterSchemaError(Exception):
    """Base exception for all frontmatter-schema errors."""

    kind: str = "FrontmatterSchemaError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# --- Configuration ---


class ConfigurationError(FrontmatterSchemaError):
    """Raised when pipeline configuration is missing or invalid."""

    kind = "ConfigurationError"


class MissingRequiredError(ConfigurationError):
    """Raised when required CLI arguments are missing."""

    kind = "MissingRequired"

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = tuple(missing)
        super().__init__(f"Missing required arguments: {', '.join(self.missing)}")


# --- Schema ---


class SchemaError(FrontmatterSchemaError):
    """Base class for schema loading and resolution errors."""

    kind = "SchemaError"


class CircularReferenceError(SchemaError):
    """A `$ref` appears in its own ancestor chain."""

    kind = "CircularReference"

    def __init__(self, ref: str, chain: Sequence[str]) -> None:
        self.ref = ref
        self.chain = tuple(chain)
        path = " -> ".join((*self.chain, ref))
        super().__init__(f"Circular reference detected: {path}")


class RefResolutionError(SchemaError):
    """The loader could not produce a schema for a `$ref`."""

    kind = "RefResolutionFailed"

    def __init__(self, ref: str, reason: str) -> None:
        self.ref = ref
        self.reason = reason
        super().__init__(f"Failed to resolve $ref '{ref}': {reason}")


class PropertyNotFoundError(SchemaError):
    """A property path does not exist in the schema graph."""

    kind = "PropertyNotFound"

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Property not found in schema: {path}")


class TooDeepError(SchemaError):
    """Schema resolution exceeded the configured maximum depth."""

    kind = "TooDeep"

    def __init__(self, max_depth: int, ref: str | None = None) -> None:
        self.max_depth = max_depth
        self.ref = ref
        where = f" while resolving '{ref}'" if ref else ""
        super().__init__(f"Schema nesting exceeds maximum depth {max_depth}{where}")


class InvalidSchemaError(SchemaError):
    """The raw schema document is structurally invalid."""

    kind = "InvalidSchema"


# --- Processing ---


class ProcessingError(FrontmatterSchemaError):
    """Base class for document and directive processing errors."""

    kind = "ProcessingError"


class DocumentProcessingError(ProcessingError):
    """A single document could not be read or its frontmatter parsed."""

    kind = "DocumentProcessingFailed"

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to process document '{path}': {reason}")


class FrontmatterPartProcessingError(ProcessingError):
    """Extracting the frontmatter-part from a record failed."""

    kind = "FrontmatterPartProcessingFailure"


class JMESPathExecutionError(ProcessingError):
    """A filter expression failed during evaluation."""

    kind = "JMESPathExecutionFailed"

    def __init__(self, expression: str, reason: str) -> None:
        self.expression = expression
        self.reason = reason
        super().__init__(f"Filter '{expression}' failed: {reason}")


# --- Aggregation ---


class AggregationError(FrontmatterSchemaError):
    """Base class for aggregation errors."""

    kind = "AggregationError"


class DerivationError(AggregationError):
    """A derivation rule could not be applied."""

    kind = "DerivationRuleProcessingFailure"

    def __init__(self, target_field: str, reason: str) -> None:
        self.target_field = target_field
        self.reason = reason
        super().__init__(f"Failed to derive field '{target_field}': {reason}")


class MergeError(AggregationError):
    """Structural merge of records failed."""

    kind = "DataMergingFailure"


class SchemaDataTransformationError(AggregationError):
    """Wrapping aggregated data back into `FrontmatterData` failed."""

    kind = "SchemaDataTransformationFailure"


# --- Rendering ---


class RenderError(FrontmatterSchemaError):
    """Template loading, substitution or serialization failed."""

    kind = "RenderError"


# --- Execution ---


class ExecutionError(FrontmatterSchemaError):
    """Base class for executor-level failures."""

    kind = "ExecutionError"


class PipelineExecutionError(ExecutionError):
    """A command raised unexpectedly or the pipeline ran out of time."""

    kind = "PipelineExecutionError"

    def __init__(self, message: str, stage: str) -> None:
        self.stage = stage
        super().__init__(message)
