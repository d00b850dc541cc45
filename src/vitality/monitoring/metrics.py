"""Thread-safe metrics collector for vitality computations."""

from __future__ import annotations

import json
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class ErrorEntry:
    """A recorded error, tagged with the stage that produced it."""

    timestamp: datetime
    repository: str
    stage: str
    error_type: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "repository": self.repository,
            "stage": self.stage,
            "error_type": self.error_type,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ErrorEntry:
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            repository=data.get("repository", ""),
            stage=data.get("stage", ""),
            error_type=data["error_type"],
            message=data["message"],
        )


@dataclass
class ScoringMetrics:
    """Counters and timings collected across computations."""

    repositories_scored: int = 0
    days_scored: int = 0

    # Lookups per table, and the two kinds of zero-point lookups
    lookups: dict[str, int] = field(default_factory=dict)
    range_misses: dict[str, int] = field(default_factory=dict)
    unknown_tables: dict[str, int] = field(default_factory=dict)

    # Stage timings (running averages)
    stage_timings: dict[str, float] = field(default_factory=dict)
    stage_counts: dict[str, int] = field(default_factory=dict)

    # Ring buffers
    warnings: deque[str] = field(default_factory=lambda: deque(maxlen=50))
    recent_errors: deque[ErrorEntry] = field(default_factory=lambda: deque(maxlen=10))

    last_updated: datetime | None = None

    @property
    def total_lookups(self) -> int:
        return sum(self.lookups.values())

    @property
    def total_misses(self) -> int:
        return sum(self.range_misses.values())

    def to_dict(self) -> dict[str, Any]:
        """Serialize metrics to a dictionary for JSON storage."""
        return {
            "repositories_scored": self.repositories_scored,
            "days_scored": self.days_scored,
            "lookups": self.lookups,
            "range_misses": self.range_misses,
            "unknown_tables": self.unknown_tables,
            "stage_timings": self.stage_timings,
            "stage_counts": self.stage_counts,
            "warnings": list(self.warnings),
            "recent_errors": [e.to_dict() for e in self.recent_errors],
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScoringMetrics:
        """Deserialize metrics from a dictionary."""
        metrics = cls(
            repositories_scored=data.get("repositories_scored", 0),
            days_scored=data.get("days_scored", 0),
            lookups=data.get("lookups", {}),
            range_misses=data.get("range_misses", {}),
            unknown_tables=data.get("unknown_tables", {}),
            stage_timings=data.get("stage_timings", {}),
            stage_counts=data.get("stage_counts", {}),
            last_updated=(
                datetime.fromisoformat(data["last_updated"])
                if data.get("last_updated")
                else None
            ),
        )
        metrics.warnings = deque(data.get("warnings", []), maxlen=50)
        metrics.recent_errors = deque(
            [ErrorEntry.from_dict(e) for e in data.get("recent_errors", [])],
            maxlen=10,
        )
        return metrics


class MetricsCollector:
    """Thread-safe metrics collector.

    The scoring engine may look up ranges from several worker threads, so
    every mutation happens under a lock. Metrics are kept in memory and
    written to ``metrics_file`` only when ``save()`` is called.
    """

    def __init__(self, metrics_file: Path | None = None):
        self._lock = threading.Lock()
        self._metrics_file = metrics_file
        self._metrics = ScoringMetrics()

    def record_lookup(self, table: str, matched: bool) -> None:
        """Count a range lookup and whether any range matched."""
        with self._lock:
            self._metrics.lookups[table] = self._metrics.lookups.get(table, 0) + 1
            if not matched:
                self._metrics.range_misses[table] = self._metrics.range_misses.get(table, 0) + 1

    def record_unknown_table(self, table: str) -> None:
        """Count a lookup against a table name the ranges do not define."""
        with self._lock:
            self._metrics.unknown_tables[table] = self._metrics.unknown_tables.get(table, 0) + 1

    def record_warning(self, message: str) -> None:
        with self._lock:
            self._metrics.warnings.append(message)
            self._metrics.last_updated = datetime.now()

    def record_error(self, repository: str, stage: str, error_type: str, message: str) -> None:
        """Record an error that ended a computation."""
        with self._lock:
            self._metrics.recent_errors.append(
                ErrorEntry(
                    timestamp=datetime.now(),
                    repository=repository,
                    stage=stage,
                    error_type=error_type,
                    message=message,
                )
            )
            self._metrics.last_updated = datetime.now()

    def record_scored(self, days: int) -> None:
        """Record a completed computation of ``days`` offsets."""
        with self._lock:
            self._metrics.repositories_scored += 1
            self._metrics.days_scored += days
            self._metrics.last_updated = datetime.now()

    def record_stage_timing(self, stage: str, duration: float) -> None:
        """Record the duration of a stage (updates running average)."""
        with self._lock:
            current_count = self._metrics.stage_counts.get(stage, 0)
            current_avg = self._metrics.stage_timings.get(stage, 0.0)

            new_count = current_count + 1
            new_avg = (current_avg * current_count + duration) / new_count

            self._metrics.stage_counts[stage] = new_count
            self._metrics.stage_timings[stage] = new_avg

    def get_metrics(self) -> ScoringMetrics:
        """Get a copy of current metrics."""
        with self._lock:
            return ScoringMetrics.from_dict(self._metrics.to_dict())

    def save(self) -> Path | None:
        """Write metrics to the metrics file, if one was configured."""
        if self._metrics_file is None:
            return None
        with self._lock:
            data = self._metrics.to_dict()
        try:
            self._metrics_file.parent.mkdir(parents=True, exist_ok=True)
            self._metrics_file.write_text(json.dumps(data, indent=2))
        except OSError as e:
            logger.warning(f"Could not write metrics to {self._metrics_file}: {e}")
            return None
        return self._metrics_file

    def load(self) -> ScoringMetrics:
        """Load metrics from the metrics file."""
        if self._metrics_file is None or not self._metrics_file.exists():
            return ScoringMetrics()
        try:
            return ScoringMetrics.from_dict(json.loads(self._metrics_file.read_text()))
        except (OSError, ValueError, KeyError) as e:
            logger.warning(f"Could not parse metrics file {self._metrics_file}: {e}")
            return ScoringMetrics()


class StageTimer:
    """Context manager for timing computation stages."""

    def __init__(self, collector: MetricsCollector | None, stage: str):
        self.collector = collector
        self.stage = stage
        self.start_time: float | None = None

    def __enter__(self) -> StageTimer:
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.start_time is not None:
            duration = time.perf_counter() - self.start_time
            logger.debug(f"Stage {self.stage} took {duration:.3f}s")
            if self.collector is not None:
                self.collector.record_stage_timing(self.stage, duration)
