"""Configuration schema and validation using Pydantic.

This module defines the settings schema that validates and coerces pipeline
settings from environment, pyproject and programmatic sources into the
correct types with defaults.
"""

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

OUTPUT_FORMATS: tuple[str, ...] = ("json", "yaml", "toml", "markdown")


class PipelineSettings(BaseSettings):
    """Pydantic settings schema for pipeline execution.

    Environment variables use the FRONTMATTER_SCHEMA_ prefix, for example
    ``FRONTMATTER_SCHEMA_PARALLEL=true``.
    """

    model_config = SettingsConfigDict(
        env_prefix="FRONTMATTER_SCHEMA_",
        env_file=None,  # Only used when explicitly requested
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Execution ---

    max_execution_time_ms: int = Field(
        default=60_000,
        description="Wall-clock budget for the whole pipeline, checked between commands",
        ge=1,
    )

    parallel: bool = Field(
        default=False,
        description="Process documents concurrently",
    )

    min_files_for_parallel: int = Field(
        default=4,
        description="Below this many files, documents are processed sequentially",
        ge=1,
    )

    max_workers: int = Field(
        default=4,
        description="Upper bound on concurrently processed documents",
        ge=1,
    )

    # --- Schema resolution ---

    max_ref_depth: int | None = Field(
        default=32,
        description="Maximum schema nesting depth while resolving $ref (None disables)",
        ge=1,
    )

    strict_internal_refs: bool = Field(
        default=False,
        description="Fail on unresolvable internal refs instead of stubbing them",
    )

    # --- Output ---

    output_format: str | None = Field(
        default=None,
        description="Force the output format (json, yaml, toml, markdown)",
    )

    @field_validator("output_format", mode="before")
    @classmethod
    def parse_output_format(cls, v: Any) -> str | None:
        """Normalize the output format and accept common aliases."""
        if v is None or v == "":
            return None
        if isinstance(v, str):
            normalized = v.strip().lower()
            aliases = {"yml": "yaml", "md": "markdown"}
            normalized = aliases.get(normalized, normalized)
            if normalized in OUTPUT_FORMATS:
                return normalized
        raise ValueError(
            f"Invalid output_format: {v}. Must be one of: {', '.join(OUTPUT_FORMATS)}"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary suitable for SourceMap annotation."""
        return {
            "max_execution_time_ms": self.max_execution_time_ms,
            "parallel": self.parallel,
            "min_files_for_parallel": self.min_files_for_parallel,
            "max_workers": self.max_workers,
            "max_ref_depth": self.max_ref_depth,
            "strict_internal_refs": self.strict_internal_refs,
            "output_format": self.output_format,
        }
