"""Aggregation of per-document frontmatter records."""

from .aggregator import ROOT_DERIVED_KEY, DataAggregator, deep_merge

__all__ = ["ROOT_DERIVED_KEY", "DataAggregator", "deep_merge"]
