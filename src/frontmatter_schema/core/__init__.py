"""Core value types shared across the pipeline."""

from .types import (
    AggregatedResult,
    AggregationMetadata,
    DerivationRule,
    Failure,
    FrontmatterData,
    Result,
    Success,
)

__all__ = [
    "AggregatedResult",
    "AggregationMetadata",
    "DerivationRule",
    "Failure",
    "FrontmatterData",
    "Result",
    "Success",
]
