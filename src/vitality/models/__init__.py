"""Data models and schemas."""

from vitality.models.schemas import (
    CommitRecord,
    DailyScore,
    RankedRepository,
    Range,
    RepoHistory,
    ScoringTable,
    TableName,
    TagRecord,
    VitalityReport,
    VitalitySeries,
)

__all__ = [
    "CommitRecord",
    "DailyScore",
    "RankedRepository",
    "Range",
    "RepoHistory",
    "ScoringTable",
    "TableName",
    "TagRecord",
    "VitalityReport",
    "VitalitySeries",
]
