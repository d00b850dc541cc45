from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from vitality.adapters import GitHistorySource, StaticHistorySource
from vitality.analyzers.longevity import EpochPolicy
from vitality.analyzers.pipeline import ActivityPipeline, compute_series
from vitality.exceptions import ConfigError, InputError, ValidationError, VCSError
from vitality.models import CommitRecord, TagRecord
from vitality.monitoring import MetricsCollector


def _busy(now: datetime) -> StaticHistorySource:
    commits = [
        CommitRecord(author=f"dev{i}@example.com", timestamp=now - timedelta(days=400 - i))
        for i in range(3)
    ]
    return StaticHistorySource(commits, [TagRecord(timestamp=now - timedelta(hours=2))], label="busy")


def _quiet(now: datetime) -> StaticHistorySource:
    return StaticHistorySource(
        [CommitRecord(author="solo@example.com", timestamp=now - timedelta(days=20))],
        label="quiet",
    )


def _factory(now: datetime):
    sources = {"busy": _busy(now), "quiet": _quiet(now)}

    def build(path: str):
        if path in sources:
            return sources[path]
        return GitHistorySource(path)

    return build


def test_analyze_repository(small_ranges_file: Path, now: datetime) -> None:
    pipeline = ActivityPipeline(ranges_file=small_ranges_file, source_factory=_factory(now))
    report = pipeline.analyze_repository("busy", 14, now=now)

    assert report.repository == "busy"
    assert len(report.series) == 14
    # 3 authors is outside [1, 3), one release today, 400 days old
    assert report.current_score == 0 + 0 + 8 + 15


def test_compute_series_returns_current_and_series(small_ranges_file: Path, now: datetime) -> None:
    current, series = compute_series(
        "quiet",
        30,
        now=now,
        ranges_file=small_ranges_file,
        source_factory=_factory(now),
    )
    assert current == series[0] == 10
    assert series[20] == 5
    assert series[21] == 0


def test_empty_path_is_input_error(now: datetime) -> None:
    metrics = MetricsCollector()
    with pytest.raises(InputError):
        ActivityPipeline(metrics=metrics).analyze_repository("  ", 10, now=now)
    assert metrics.get_metrics().recent_errors[0].stage == "input"


def test_non_positive_days_is_input_error(now: datetime) -> None:
    with pytest.raises(InputError):
        ActivityPipeline(source_factory=_factory(now)).analyze_repository("busy", 0, now=now)


def test_missing_ranges_file_is_config_error(tmp_path: Path, now: datetime) -> None:
    pipeline = ActivityPipeline(ranges_file=tmp_path / "nope.yml", source_factory=_factory(now))
    with pytest.raises(ConfigError) as exc:
        pipeline.analyze_repository("busy", 10, now=now)
    assert exc.value.stage == "config"


def test_missing_repository_is_vcs_error(tmp_path: Path, now: datetime) -> None:
    metrics = MetricsCollector()
    pipeline = ActivityPipeline(metrics=metrics)
    with pytest.raises(VCSError):
        pipeline.analyze_repository(tmp_path / "does-not-exist", 10, now=now)

    error = metrics.get_metrics().recent_errors[0]
    assert error.stage == "vcs"
    assert error.error_type == "VCSError"


def test_os_error_from_source_is_vcs_error(now: datetime) -> None:
    class Broken(StaticHistorySource):
        def list_commits(self):
            raise PermissionError("denied")

    pipeline = ActivityPipeline(source_factory=lambda path: Broken(label=path))
    with pytest.raises(VCSError, match="denied"):
        pipeline.analyze_repository("locked", 10, now=now)


def test_strict_epoch_policy_propagates(now: datetime) -> None:
    old = StaticHistorySource([CommitRecord(author="a@x", timestamp=datetime(2001, 1, 1, tzinfo=now.tzinfo))])
    pipeline = ActivityPipeline(epoch_policy=EpochPolicy.ABORT, source_factory=lambda path: old)
    with pytest.raises(ValidationError):
        pipeline.analyze_repository("old", 10, now=now)


def test_rank_orders_by_current_score_and_keeps_failures(
    small_ranges_file: Path, tmp_path: Path, now: datetime
) -> None:
    missing = str(tmp_path / "missing")
    pipeline = ActivityPipeline(ranges_file=small_ranges_file, source_factory=_factory(now))
    seen: list[tuple[int, int, str]] = []

    ranked = pipeline.rank_repositories(
        ["busy", missing, "quiet"],
        14,
        now=now,
        progress_callback=lambda i, n, path: seen.append((i, n, path)),
    )

    assert [r.repository for r in ranked] == ["busy", "quiet", missing]
    assert ranked[0].current_score == 23
    assert ranked[1].current_score == 10
    assert ranked[2].report is None
    assert ranked[2].stage == "vcs"
    assert ranked[2].current_score is None
    assert seen == [(1, 3, "busy"), (2, 3, missing), (3, 3, "quiet")]


def test_rank_with_bad_ranges_fails_fast(tmp_path: Path, now: datetime) -> None:
    pipeline = ActivityPipeline(ranges_file=tmp_path / "nope.yml", source_factory=_factory(now))
    with pytest.raises(ConfigError):
        pipeline.rank_repositories(["busy"], 10, now=now)
