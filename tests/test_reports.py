from __future__ import annotations

import json
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from vitality.analyzers.ranges import RangeTable
from vitality.analyzers.scorer import ScoringEngine
from vitality.models import CommitRecord, RepoHistory, VitalityReport
from vitality.reports import ReportError, offset_labels, render_html, report_to_dict, write_html, write_json


@pytest.fixture
def report(small_ranges: RangeTable, now: datetime) -> VitalityReport:
    history = RepoHistory(
        commits=(CommitRecord(author="a@x", timestamp=now - timedelta(days=2)),),
        source="<demo & co>",
    )
    return ScoringEngine(small_ranges).compute_series(history, 5, now=now)


def test_report_dict_has_summary_and_pairs(report: VitalityReport) -> None:
    data = report_to_dict(report)

    assert data["repository"] == "<demo & co>"
    assert data["days"] == 5
    assert data["current_score"] == report.current_score
    assert data["labels"] == ["0", "1", "2", "3", "4"]
    assert data["series"] == [[o, s] for o, s in report.series.items()]
    assert data["daily"][2]["day"] == "2024-06-13"


def test_date_labels(report: VitalityReport) -> None:
    assert offset_labels(report, "date")[:2] == ["2024-06-15", "2024-06-14"]
    with pytest.raises(ValueError):
        offset_labels(report, "week")


def test_write_json(report: VitalityReport, tmp_path: Path) -> None:
    path = write_json(report, tmp_path / "out" / "report.json", label_style="date")

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["labels"][0] == "2024-06-15"
    assert len(data["series"]) == 5


def test_html_is_escaped_and_oldest_first(report: VitalityReport) -> None:
    page = render_html(report)

    assert "&lt;demo &amp; co&gt;" in page
    assert "<demo & co>" not in page
    assert '"4", "3", "2", "1", "0"' in page


def test_write_html(report: VitalityReport, tmp_path: Path) -> None:
    path = write_html(report, tmp_path / "chart.html")
    assert path.read_text(encoding="utf-8").startswith("<!DOCTYPE html>")


def test_unwritable_path_is_report_error(report: VitalityReport, tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    with pytest.raises(ReportError) as exc:
        write_json(report, blocker / "report.json")
    assert exc.value.stage == "report"
