"""Report writers for vitality series."""

from vitality.reports.writer import (
    ReportError,
    offset_labels,
    render_html,
    report_to_dict,
    series_points,
    write_html,
    write_json,
)

__all__ = [
    "ReportError",
    "offset_labels",
    "render_html",
    "report_to_dict",
    "series_points",
    "write_html",
    "write_json",
]
