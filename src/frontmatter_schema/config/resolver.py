"""Configuration resolution with precedence handling.

Sources are merged in this order, later ones winning:
Defaults < Project file < Environment < Programmatic
"""

import logging
import os
from pathlib import Path
from typing import Any

import dotenv
from pydantic import ValidationError

from frontmatter_schema.exceptions import ConfigurationError

from .audit import SourceTracker
from .file_loader import FileConfigLoader
from .schema import PipelineSettings
from .types import FIELD_ORDER, ResolvedConfig

logger = logging.getLogger(__name__)

ENV_PREFIX = "FRONTMATTER_SCHEMA_"
PROFILE_ENV_VAR = f"{ENV_PREFIX}PROFILE"


def _env_var(field: str) -> str:
    return f"{ENV_PREFIX}{field.upper()}"


class ConfigResolver:
    """Merges configuration sources and records where each value came from."""

    def __init__(self) -> None:
        self.file_loader = FileConfigLoader()

    def resolve(
        self,
        programmatic: dict[str, Any] | None = None,
        *,
        profile: str | None = None,
        use_env_file: str | Path | None = None,
        project_root: Path | None = None,
    ) -> ResolvedConfig:
        """Resolve configuration from all sources with proper precedence.

        Args:
            programmatic: Overrides with the highest precedence. Unknown keys
                are ignored.
            profile: Profile name from ``[tool.frontmatter_schema.profiles]``;
                falls back to ``FRONTMATTER_SCHEMA_PROFILE``.
            use_env_file: Optional ``.env`` file loaded before reading the
                environment. Existing variables are not overridden.
            project_root: Directory to search for pyproject.toml.

        Returns:
            ResolvedConfig with merged values and source tracking.

        Raises:
            ConfigFileError: If the project file is malformed.
            ConfigurationError: If an env file is missing or validation fails.
        """
        source_tracker = SourceTracker()
        merged: dict[str, Any] = {}

        if profile is None:
            profile = os.getenv(PROFILE_ENV_VAR)

        # Defaults come from the schema itself, not from an instance that
        # would already have read the environment
        for field in FIELD_ORDER:
            merged[field] = PipelineSettings.model_fields[field].default
            source_tracker.set_origin(field, "default")

        project_config = self.file_loader.load_project_config(
            project_root=project_root, profile=profile
        )
        self._apply(merged, project_config, source_tracker, "file")

        env_config = self.load_env_config(env_file=use_env_file)
        self._apply(merged, env_config, source_tracker, "env")

        if programmatic:
            self._apply(merged, programmatic, source_tracker, "programmatic")

        try:
            validated = PipelineSettings(**merged).to_dict()
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

        logger.debug("Resolved configuration (profile=%s)", profile)
        return ResolvedConfig(**validated, origin=source_tracker.get_source_map())

    def load_env_config(self, env_file: str | Path | None = None) -> dict[str, Any]:
        """Read the FRONTMATTER_SCHEMA_* variables that are actually set.

        Raises:
            ConfigurationError: If `env_file` is missing or values are invalid.
        """
        if env_file:
            env_path = Path(env_file)
            if not env_path.exists():
                raise ConfigurationError(f"Environment file not found: {env_path}")
            dotenv.load_dotenv(env_path, override=False)

        raw = {
            field: os.environ[_env_var(field)]
            for field in FIELD_ORDER
            if _env_var(field) in os.environ
        }
        if not raw:
            return {}

        try:
            settings = PipelineSettings(**raw)
        except ValidationError as e:
            names = ", ".join(f"{_env_var(f)}={raw[f]}" for f in raw)
            raise ConfigurationError(
                f"Invalid environment variable values: {names}. Error: {e}"
            ) from e
        return {field: getattr(settings, field) for field in raw}

    def list_available_profiles(self, project_root: Path | None = None) -> list[str]:
        return self.file_loader.list_available_profiles(project_root)

    @staticmethod
    def _apply(
        merged: dict[str, Any],
        values: dict[str, Any],
        tracker: SourceTracker,
        origin: Any,
    ) -> None:
        for field, value in values.items():
            if field in merged:
                merged[field] = value
                tracker.set_origin(field, origin)
