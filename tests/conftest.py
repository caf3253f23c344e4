"""
Global test configuration and shared fixtures.
"""

from collections.abc import Callable
from contextlib import suppress
import json
import os
from pathlib import Path
import typing

import pytest

from frontmatter_schema.config.types import FrozenConfig
from frontmatter_schema.pipeline.states import PipelineConfig


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-in escape hatch: mark a test with @pytest.mark.allow_dotenv
    to permit .env loading for that specific test.
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_env(request, monkeypatch):
    """Ensure a clean FRONTMATTER_SCHEMA_* environment for each test.

    Escape hatch: @pytest.mark.allow_env_pollution keeps the current env.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    for key in list(os.environ.keys()):
        if key.startswith("FRONTMATTER_SCHEMA_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def isolated_cwd(request, monkeypatch, tmp_path):
    """Run each test from an empty directory so no real pyproject.toml is read."""
    if request.node.get_closest_marker("allow_real_cwd"):
        return
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)


# --- Test Environment Markers ---
def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "integration: Full pipeline runs against files on disk",
        "allow_dotenv: Permit python-dotenv to load .env files",
        "allow_env_pollution: Keep FRONTMATTER_SCHEMA_* variables from the real environment",
        "allow_real_cwd: Run from the real working directory",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


# --- Workspace helpers ---


@pytest.fixture
def write_file(tmp_path) -> Callable[[str, str], Path]:
    """Write text to a path under tmp_path, creating parent directories."""

    def _write(relative: str, content: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def write_schema(write_file) -> Callable[..., Path]:
    """Write a JSON schema document and return its path."""

    def _write(schema: dict[str, typing.Any], name: str = "schema.json") -> Path:
        return write_file(name, json.dumps(schema, indent=2))

    return _write


@pytest.fixture
def write_docs(write_file) -> Callable[..., list[Path]]:
    """Write Markdown files with YAML frontmatter from plain YAML strings."""

    def _write(docs: dict[str, str], directory: str = "docs") -> list[Path]:
        return [
            write_file(f"{directory}/{name}", f"---\n{frontmatter}---\n# {name}\n")
            for name, frontmatter in docs.items()
        ]

    return _write


@pytest.fixture
def pipeline_config(tmp_path) -> Callable[..., PipelineConfig]:
    """Build a PipelineConfig rooted at tmp_path."""

    def _build(**overrides: typing.Any) -> PipelineConfig:
        settings = overrides.pop("settings", FrozenConfig())
        params: dict[str, typing.Any] = {
            "schema_path": "schema.json",
            "output_path": "out/result.json",
            "input_pattern": "docs",
        }
        params.update(overrides)
        return PipelineConfig.create(
            params.pop("schema_path"),
            params.pop("output_path"),
            params.pop("input_pattern"),
            settings=settings,
            base_dir=tmp_path,
            **params,
        )

    return _build


# --- Telemetry helpers ---


class RecordingReporter:
    """Telemetry reporter that keeps every call, keyed by scope."""

    def __init__(self) -> None:
        self.timings: dict[str, list[tuple[float, dict[str, typing.Any]]]] = {}
        self.metrics: dict[str, list[tuple[typing.Any, dict[str, typing.Any]]]] = {}

    def record_timing(self, scope: str, duration: float, **metadata: typing.Any) -> None:
        self.timings.setdefault(scope, []).append((duration, metadata))

    def record_metric(self, scope: str, value: typing.Any, **metadata: typing.Any) -> None:
        self.metrics.setdefault(scope, []).append((value, metadata))


@pytest.fixture
def recording_reporter() -> RecordingReporter:
    return RecordingReporter()
