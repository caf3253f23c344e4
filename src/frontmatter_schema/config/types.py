"""Core configuration data types.

Configuration follows the resolve-once, freeze-then-flow pattern: sources are
merged into a `ResolvedConfig` that remembers where each value came from, then
frozen into a `FrozenConfig` that travels through the pipeline.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal, NamedTuple

# --- Source Tracking Types ---

ConfigOrigin = Literal["programmatic", "env", "file", "default"]
SourceMap = Mapping[str, ConfigOrigin]

FIELD_ORDER: tuple[str, ...] = (
    "max_execution_time_ms",
    "parallel",
    "min_files_for_parallel",
    "max_workers",
    "max_ref_depth",
    "strict_internal_refs",
    "output_format",
)

# --- Core Configuration Data ---


class ResolvedConfig(NamedTuple):
    """Configuration after resolution from all sources, before freezing."""

    max_execution_time_ms: int
    parallel: bool
    min_files_for_parallel: int
    max_workers: int
    max_ref_depth: int | None
    strict_internal_refs: bool
    output_format: str | None

    # Where each field value came from
    origin: SourceMap

    def to_frozen(self) -> "FrozenConfig":
        """Convert to the immutable configuration used in the pipeline."""
        return FrozenConfig(**{f: getattr(self, f) for f in FIELD_ORDER})

    def with_overrides(self, **overrides: object) -> "ResolvedConfig":
        """Create a new ResolvedConfig with programmatic overrides applied.

        Unknown fields are ignored; overridden fields are marked
        ``programmatic`` in the origin map.
        """
        new_values = self._asdict()
        new_origin = dict(self.origin)
        for field, value in overrides.items():
            if field in FIELD_ORDER:
                new_values[field] = value
                new_origin[field] = "programmatic"
        new_values["origin"] = new_origin
        return ResolvedConfig(**new_values)

    def audit(self) -> str:
        """Report the origin of each field, one ``field: origin:value`` per line."""
        lines = []
        for field in FIELD_ORDER:
            if field not in self.origin:
                continue
            origin = self.origin[field]
            value = getattr(self, field)
            if origin == "env":
                display = f"env:FRONTMATTER_SCHEMA_{field.upper()}={value}"
            else:
                display = f"{origin}:{value}"
            lines.append(f"{field}: {display}")
        return "\n".join(lines)


@dataclass(frozen=True)
class FrozenConfig:
    """Immutable settings attached to a pipeline run.

    Commands receive this object and read fields as attributes; any attempt
    to modify it raises.
    """

    max_execution_time_ms: int = 60_000
    parallel: bool = False
    min_files_for_parallel: int = 4
    max_workers: int = 4
    max_ref_depth: int | None = 32
    strict_internal_refs: bool = False
    output_format: str | None = None
