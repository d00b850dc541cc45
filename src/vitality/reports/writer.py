"""Render vitality reports as JSON or a standalone HTML chart."""

import html
import json
import logging
from pathlib import Path
from typing import Any

from vitality.exceptions import VitalityError
from vitality.models.schemas import VitalityReport

logger = logging.getLogger(__name__)

LABEL_STYLES = ("offset", "date")

CHART_JS_URL = "https://cdn.jsdelivr.net/npm/chart.js@4"


class ReportError(VitalityError):
    """Raised when a report cannot be written."""

    stage = "report"


def series_points(report: VitalityReport) -> list[tuple[int, float]]:
    """Ordered (offset, score) pairs covering 0..days-1."""
    return report.series.items()


def offset_labels(report: VitalityReport, style: str = "offset") -> list[str]:
    """One label per offset: the offset itself, or the calendar date it scores."""
    if style == "offset":
        return [str(day.offset) for day in report.series.daily]
    if style == "date":
        return [day.day.isoformat() for day in report.series.daily]
    raise ValueError(f"Unknown label style: {style}. Supported: {', '.join(LABEL_STYLES)}")


def report_to_dict(report: VitalityReport, label_style: str = "offset") -> dict[str, Any]:
    """JSON-ready dictionary with the summary, the pairs and the daily breakdown."""
    return {
        "repository": report.repository,
        "reference_time": report.reference_time.isoformat(),
        "timezone": report.timezone,
        "days": report.days,
        "current_score": report.current_score,
        "longevity_days": report.longevity_days,
        "warnings": list(report.warnings),
        "labels": offset_labels(report, label_style),
        "series": [[offset, score] for offset, score in series_points(report)],
        "daily": [day.model_dump(mode="json") for day in report.series.daily],
    }


def write_json(report: VitalityReport, path: Path, label_style: str = "offset") -> Path:
    """Save the report as JSON.

    Raises:
        ReportError: If the file cannot be written.
    """
    data = report_to_dict(report, label_style)
    return _write(path, json.dumps(data, indent=2))


def render_html(report: VitalityReport, label_style: str = "offset") -> str:
    """Standalone HTML page charting the series, oldest day on the left."""
    # Chart reads left to right in time, so reverse the offset order
    labels = list(reversed(offset_labels(report, label_style)))
    values = [score for _, score in reversed(series_points(report))]
    title = html.escape(report.repository or "Repository")

    warnings = ""
    if report.warnings:
        items = "\n".join(f"      <li>{html.escape(w)}</li>" for w in report.warnings)
        warnings = f'    <ul class="warnings">\n{items}\n    </ul>\n'

    return f"""<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8">
    <title>Vitality: {title}</title>
    <script src="{CHART_JS_URL}"></script>
    <style>
      body {{ font-family: sans-serif; margin: 2em; }}
      .warnings {{ color: #a15c00; }}
    </style>
  </head>
  <body>
    <h1>{title}</h1>
    <p>Current vitality: <strong>{report.current_score:g}</strong>
      ({report.days} days to {report.reference_time.date().isoformat()}, {html.escape(report.timezone)})</p>
{warnings}    <canvas id="vitality"></canvas>
    <script>
      new Chart(document.getElementById("vitality"), {{
        type: "line",
        data: {{
          labels: {json.dumps(labels)},
          datasets: [{{ label: "Vitality", data: {json.dumps(values)}, fill: false, tension: 0.1 }}]
        }},
        options: {{ scales: {{ y: {{ beginAtZero: true }} }} }}
      }});
    </script>
  </body>
</html>
"""


def write_html(report: VitalityReport, path: Path, label_style: str = "offset") -> Path:
    """Save the HTML chart.

    Raises:
        ReportError: If the file cannot be written.
    """
    return _write(path, render_html(report, label_style))


def _write(path: Path, content: str) -> Path:
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ReportError(f"Cannot write {path}: {e}") from e
    logger.debug(f"Wrote {path}")
    return path
