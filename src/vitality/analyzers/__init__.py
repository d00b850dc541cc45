"""Analyzers that turn repository history into vitality scores."""

from vitality.analyzers.bucketizer import HistoryBuckets
from vitality.analyzers.longevity import EpochPolicy, LongevityValidator
from vitality.analyzers.pipeline import ActivityPipeline, compute_series
from vitality.analyzers.ranges import RangeTable, load_ranges
from vitality.analyzers.scorer import ScoringEngine

__all__ = [
    "ActivityPipeline",
    "EpochPolicy",
    "HistoryBuckets",
    "LongevityValidator",
    "RangeTable",
    "ScoringEngine",
    "compute_series",
    "load_ranges",
]
