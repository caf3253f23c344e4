"""File-based configuration loading with profile support.

Settings may live in the nearest ``pyproject.toml`` under
``[tool.frontmatter_schema]``, with named overlays in
``[tool.frontmatter_schema.profiles.<name>]``.
"""

from pathlib import Path
import tomllib
from typing import Any

from frontmatter_schema.exceptions import ConfigurationError

TOOL_SECTION = "frontmatter_schema"


class ConfigFileError(ConfigurationError):
    """Raised when configuration file loading fails."""

    kind = "ConfigFileError"

    def __init__(
        self, file_path: Path, message: str, cause: Exception | None = None
    ) -> None:
        self.file_path = file_path
        self.cause = cause
        super().__init__(f"Config file error in {file_path}: {message}")


class FileConfigLoader:
    """Loads the project's ``[tool.frontmatter_schema]`` table."""

    def load_project_config(
        self, project_root: Path | None = None, profile: str | None = None
    ) -> dict[str, Any]:
        """Load configuration from pyproject.toml in the project root.

        Args:
            project_root: Directory to search for pyproject.toml. If None,
                searches the current directory and its parents.
            profile: Optional profile name. Profile values are laid over the
                base table.

        Returns:
            Dictionary of configuration values from the file. Empty if no
            file or no section exists.

        Raises:
            ConfigFileError: If the file cannot be parsed or the profile is
                unknown.
        """
        pyproject_path = self._find_pyproject_toml(project_root)
        if not pyproject_path:
            if profile:
                raise ConfigFileError(
                    Path(project_root or Path.cwd()) / "pyproject.toml",
                    f"Profile '{profile}' requested but no pyproject.toml found",
                )
            return {}

        section = self._read_section(pyproject_path)
        config = dict(section)
        profiles = config.pop("profiles", {}) or {}

        if profile:
            if profile not in profiles:
                raise ConfigFileError(
                    pyproject_path,
                    f"Profile '{profile}' not found. Available profiles: {list(profiles)}",
                )
            config.update(profiles[profile])
        return config

    def list_available_profiles(self, project_root: Path | None = None) -> list[str]:
        """List profile names declared in the project file."""
        pyproject_path = self._find_pyproject_toml(project_root)
        if not pyproject_path:
            return []
        try:
            section = self._read_section(pyproject_path)
        except ConfigFileError:
            return []
        return list((section.get("profiles") or {}).keys())

    def _read_section(self, pyproject_path: Path) -> dict[str, Any]:
        try:
            with pyproject_path.open(mode="rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigFileError(
                pyproject_path, f"Failed to parse TOML: {e}", cause=e
            ) from e

        section = data.get("tool", {}).get(TOOL_SECTION, {})
        if not isinstance(section, dict):
            raise ConfigFileError(
                pyproject_path, f"[tool.{TOOL_SECTION}] must be a table"
            )
        return section

    def _find_pyproject_toml(self, start_dir: Path | None = None) -> Path | None:
        """Find pyproject.toml by searching up the directory tree."""
        current = Path(start_dir if start_dir is not None else Path.cwd()).resolve()
        while current != current.parent:
            pyproject_path = current / "pyproject.toml"
            if pyproject_path.exists():
                return pyproject_path
            current = current.parent
        return None
