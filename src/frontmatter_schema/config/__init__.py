"""Configuration for pipeline runs.

Resolve once, freeze, then flow: `resolve_config()` merges defaults, the
project file, the environment and programmatic overrides into a
`ResolvedConfig`; `.to_frozen()` yields the `FrozenConfig` that commands read.
"""

from pathlib import Path
from typing import Any

from .audit import SourceTracker
from .file_loader import ConfigFileError, FileConfigLoader
from .resolver import ConfigResolver
from .schema import OUTPUT_FORMATS, PipelineSettings
from .types import ConfigOrigin, FrozenConfig, ResolvedConfig, SourceMap


def resolve_config(
    programmatic: dict[str, Any] | None = None,
    *,
    profile: str | None = None,
    use_env_file: str | Path | None = None,
    project_root: Path | None = None,
) -> ResolvedConfig:
    """Resolve configuration from all sources with proper precedence.

    Programmatic > Environment > Project file > Defaults

    Example:
        config = resolve_config({"parallel": True}, profile="ci")
        frozen = config.to_frozen()
    """
    return ConfigResolver().resolve(
        programmatic=programmatic,
        profile=profile,
        use_env_file=use_env_file,
        project_root=project_root,
    )


__all__ = [
    "OUTPUT_FORMATS",
    "ConfigFileError",
    "ConfigOrigin",
    "ConfigResolver",
    "FileConfigLoader",
    "FrozenConfig",
    "PipelineSettings",
    "ResolvedConfig",
    "SourceMap",
    "SourceTracker",
    "resolve_config",
]
