"""Computation metrics and stage timing."""

from .metrics import MetricsCollector, ScoringMetrics, StageTimer

__all__ = ["MetricsCollector", "ScoringMetrics", "StageTimer"]
