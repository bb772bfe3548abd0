"""Chart.js data for the "Key Performance Indicators" bar chart.

Picks up to three headline lines from the income statement by loose,
case-insensitive label match and plots them per reporting period.
"""

from __future__ import annotations

import math
import re
from typing import Any, NamedTuple, Sequence

from gse_terminal.models import StatementRow


class ChartMetric(NamedTuple):
    name: str
    color: str
    border_color: str


PERFORMANCE_METRICS = (
    ChartMetric("Operating Income", "rgba(212, 175, 55, 0.7)", "rgba(212, 175, 55, 1)"),
    ChartMetric("Profit for the year", "rgba(74, 85, 104, 0.6)", "rgba(74, 85, 104, 1)"),
    ChartMetric("Net Income", "rgba(74, 85, 104, 0.6)", "rgba(74, 85, 104, 1)"),
)

CHART_TITLE = "Key Performance Indicators"

# "2023", "2023 H1", "Q3 2023", "H1 2023"
_PERIOD_KEY = re.compile(r"^\d{4}(?!\d)|(Q\d\s\d{4})|(H\d\s\d{4})$")
_NON_NUMERIC = re.compile(r"[^0-9.-]+")
_LEADING_NUMBER = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")


def period_labels(rows: Sequence[StatementRow]) -> list[str]:
    """Period-like keys across all rows, oldest first."""
    labels: set[str] = set()
    for row in rows:
        labels.update(k for k in row.periods if _PERIOD_KEY.search(k))
    return sorted(labels)


def chart_value(cell: Any) -> float:
    """Coerce a statement cell to a plottable number.

    "(500)" is -500, currency symbols and separators are stripped, and
    anything unparsable, missing or too large for a float plots as zero.
    """
    if isinstance(cell, (int, float)) and not isinstance(cell, bool):
        try:
            num = float(cell)
        except OverflowError:
            return 0.0
        return num if math.isfinite(num) else 0.0
    if cell is None:
        return 0.0

    text = str(cell)
    negative = "(" in text and ")" in text
    m = _LEADING_NUMBER.match(_NON_NUMERIC.sub("", text))
    if not m:
        return 0.0
    num = float(m.group())
    if not math.isfinite(num):
        return 0.0
    return -num if negative else num


def find_metric_row(rows: Sequence[StatementRow], name: str) -> StatementRow | None:
    needle = name.lower()
    for row in rows:
        if needle in row.metric.lower():
            return row
    return None


def build_performance_chart(rows: Sequence[StatementRow]) -> dict | None:
    """Return ``{"labels", "datasets"}`` for Chart.js, or None with nothing to plot.

    A metric whose values are all zero is left out entirely.
    """
    labels = period_labels(rows)

    datasets = []
    for metric in PERFORMANCE_METRICS:
        row = find_metric_row(rows, metric.name)
        if row is None:
            continue
        values = row.periods
        data = [chart_value(values.get(label)) for label in labels]
        if not any(v != 0 for v in data):
            continue
        datasets.append({
            "label": metric.name,
            "data": data,
            "backgroundColor": metric.color,
            "borderColor": metric.border_color,
            "borderWidth": 1,
        })

    if not datasets:
        return None
    return {"title": CHART_TITLE, "labels": labels, "datasets": datasets}
