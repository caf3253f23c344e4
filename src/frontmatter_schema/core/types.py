"""Core data types that flow through the pipeline.

This module defines the `Result` monad used for explicit error handling and the
immutable records shared by every stage: per-document `FrontmatterData`,
`DerivationRule` and the `AggregatedResult` produced by aggregation.
"""

from __future__ import annotations

import copy
import dataclasses
from pathlib import Path
from types import MappingProxyType
import typing

from frontmatter_schema.exceptions import SchemaDataTransformationError

# --- Minimal guard helpers ---

T = typing.TypeVar("T")


def _freeze_mapping(
    m: dict[str, T] | typing.Mapping[str, T] | None,
) -> typing.Mapping[str, T] | None:
    """Return an immutable mapping view or None.

    Accepts dict or Mapping; wraps dicts in MappingProxyType while preserving type.
    """
    if m is None or isinstance(m, MappingProxyType):
        return m
    return MappingProxyType(dict(m))


def _is_tuple_of(value: object, typ: type | tuple[type, ...]) -> bool:
    return isinstance(value, tuple) and all(isinstance(v, typ) for v in value)


def _require(
    *,
    condition: bool,
    message: str,
    exc: type[Exception] = ValueError,
    field_name: str | None = None,
) -> None:
    """Centralized validation with optional field context for clearer errors."""
    if not condition:
        if field_name:
            raise exc(f"{field_name}: {message}")
        raise exc(message)


# --- Result Monad ---
# Failures are a predictable part of the data flow rather than exceptions.

TSuccess = typing.TypeVar("TSuccess")
TFailure = typing.TypeVar("TFailure", bound=Exception)


@dataclasses.dataclass(frozen=True, slots=True)
class Success[TSuccess]:
    """A successful result."""

    value: TSuccess


@dataclasses.dataclass(frozen=True, slots=True)
class Failure[TFailure]:
    """A failed result, containing the error."""

    error: TFailure


Result = Success[TSuccess] | Failure[TFailure]


# --- Frontmatter records ---


def _to_plain(value: typing.Any) -> typing.Any:
    """Deep-copy a value, unwrapping mapping proxies into plain dicts."""
    if isinstance(value, typing.Mapping):
        return {k: _to_plain(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_to_plain(v) for v in value]
    return copy.copy(value)


@dataclasses.dataclass(frozen=True, slots=True)
class FrontmatterData:
    """Immutable key-value record parsed from one document's frontmatter.

    The mapping is copied on construction and exposed read-only. Use
    `to_dict()` to obtain an independent, mutable copy.
    """

    data: typing.Mapping[str, typing.Any]
    source: Path | None = None

    def __post_init__(self) -> None:
        _require(
            condition=isinstance(self.data, typing.Mapping),
            message=f"must be a mapping, got {type(self.data).__name__}",
            field_name="data",
            exc=TypeError,
        )
        _require(
            condition=all(isinstance(k, str) for k in self.data),
            message="all keys must be str",
            field_name="data",
            exc=TypeError,
        )
        _require(
            condition=self.source is None or isinstance(self.source, Path),
            message="must be a Path or None",
            field_name="source",
            exc=TypeError,
        )
        object.__setattr__(self, "data", MappingProxyType(_to_plain(self.data)))

    @classmethod
    def create(
        cls, raw: typing.Any, source: Path | None = None
    ) -> Result[FrontmatterData, SchemaDataTransformationError]:
        """Validated factory returning a `Result` instead of raising."""
        try:
            return Success(cls(data=raw, source=source))
        except (TypeError, ValueError) as e:
            return Failure(SchemaDataTransformationError(str(e)))

    @classmethod
    def empty(cls) -> FrontmatterData:
        return cls(data={})

    def get(self, path: str, default: typing.Any = None) -> typing.Any:
        """Look up a dotted path such as ``"meta.author"``."""
        current: typing.Any = self.data
        for part in path.split("."):
            if isinstance(current, typing.Mapping) and part in current:
                current = current[part]
            else:
                return default
        return current

    def keys(self) -> typing.KeysView[str]:
        return self.data.keys()

    def to_dict(self) -> dict[str, typing.Any]:
        return _to_plain(self.data)

    def __len__(self) -> int:
        return len(self.data)


# --- Aggregation records ---


@dataclasses.dataclass(frozen=True, slots=True)
class DerivationRule:
    """A source-path-to-target-field mapping from `x-derived-from`."""

    source_path: str
    target_field: str
    unique: bool = False

    def __post_init__(self) -> None:
        _require(
            condition=isinstance(self.source_path, str)
            and self.source_path.strip() != "",
            message="must be a non-empty str",
            field_name="source_path",
            exc=TypeError,
        )
        _require(
            condition=isinstance(self.target_field, str),
            message="must be a str",
            field_name="target_field",
            exc=TypeError,
        )


AggregationStrategy = typing.Literal["with-derivation", "frontmatter-part", "direct-merge"]


@dataclasses.dataclass(frozen=True, slots=True)
class AggregationMetadata:
    """Telemetry about how an aggregation was produced."""

    input_count: int
    has_derivation_rules: bool
    derivation_rule_count: int
    strategy: AggregationStrategy
    processing_time_ms: float

    def to_dict(self) -> dict[str, typing.Any]:
        return dataclasses.asdict(self)


@dataclasses.dataclass(frozen=True, slots=True)
class AggregatedResult:
    """The single aggregated record produced from all documents."""

    aggregated_frontmatter: FrontmatterData
    metadata: AggregationMetadata
