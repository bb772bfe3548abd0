"""View models for the terminal page.

Everything here is a pure function of ``(is_loading, result, has_searched)``:
the page script only draws what these dicts describe, so all formatting
decisions (table cells, sentiment colours, chart data, source hosts) are
made and tested in Python.
"""

from __future__ import annotations

from enum import Enum
from typing import Any
from urllib.parse import urlparse

from gse_terminal.charts import build_performance_chart
from gse_terminal.models import FinancialData, NewsSentiment, SearchResult, Source
from gse_terminal.tables import Table, build_financial_tables


class ViewKind(str, Enum):
    WELCOME = "welcome"     # never searched
    LOADING = "loading"     # request in flight
    EMPTY = "empty"         # searched, but no result (error)
    RESULT = "result"


WELCOME_EXAMPLES = (
    "Financial summary for Fan Milk PLC",
    "Recent news for Standard Chartered Bank",
    "Key financial ratios for Tullow Oil",
)
LOADING_MESSAGE = "Fetching and analyzing real-time data..."
NO_CHART_MESSAGE = "Not enough data to display performance chart."
SOURCES_CAPTION = (
    "The summary above was generated using information from the following web pages."
)
UNTITLED_SOURCE = "Untitled Source"

SENTIMENT_STYLES: dict[str, dict[str, str]] = {
    "Positive": {"label": "Positive", "icon": "trending-up", "color": "#34d399",
                 "background": "rgba(6,78,59,.5)", "border": "#047857"},
    "Negative": {"label": "Negative", "icon": "trending-down", "color": "#f87171",
                 "background": "rgba(127,29,29,.5)", "border": "#b91c1c"},
    "Neutral": {"label": "Neutral", "icon": "minus", "color": "#facc15",
                "background": "rgba(113,63,18,.5)", "border": "#a16207"},
}


def select_view(is_loading: bool, result: SearchResult | None, has_searched: bool) -> ViewKind:
    if is_loading:
        return ViewKind.LOADING
    if not has_searched:
        return ViewKind.WELCOME
    if result is None:
        return ViewKind.EMPTY
    return ViewKind.RESULT


# ═══════════════════════════════════════════════════════════════════════════
#  Result sections
# ═══════════════════════════════════════════════════════════════════════════

def sentiment_badge(sentiment: NewsSentiment | None) -> dict | None:
    """Badge for the sentiment card; unknown scores fall back to Neutral."""
    if sentiment is None or not sentiment.score:
        return None
    style = SENTIMENT_STYLES.get(sentiment.score, SENTIMENT_STYLES["Neutral"])
    return {**style, "summary": sentiment.summary}


def display_host(uri: str) -> str:
    """Host part of a URL for compact display, or the URI itself."""
    try:
        host = urlparse(uri).hostname
    except ValueError:
        return uri
    return host or uri


def source_view(source: Source) -> dict:
    return {
        "title": source.title or UNTITLED_SOURCE,
        "uri": source.uri,
        "host": display_host(source.uri),
    }


def table_view(table: Table) -> dict:
    return {
        "title": table.title,
        "headers": list(table.headers),
        "rows": [list(r) for r in table.formatted_rows()],
    }


def has_financials(data: FinancialData | None) -> bool:
    """Whether the financial deep-dive section is shown at all."""
    if data is None:
        return False
    return bool(data.key_metrics) or bool(data.statements.income_statement)


def financials_view(data: FinancialData) -> dict | None:
    tables = build_financial_tables(data)
    if not tables.has_data:
        return None

    analysis = data.financial_analysis
    blocks = []
    if analysis is not None:
        for title, content in (
            ("Financial Health Summary", analysis.health_summary),
            ("Competitor Snapshot", analysis.competitor_snapshot),
        ):
            if content:
                blocks.append({"title": title, "content": content})

    return {
        "analysis": blocks,
        "tables": [table_view(t) for t in tables.display_order() if t],
        "exportable": True,
    }


def chart_view(data: FinancialData | None) -> dict | None:
    """Chart card, present whenever the income statement has rows."""
    if data is None or not data.statements.income_statement:
        return None
    chart = build_performance_chart(data.statements.income_statement)
    return {"data": chart, "message": None if chart else NO_CHART_MESSAGE}


def build_result_view(result: SearchResult) -> dict:
    data = result.financial_data
    return {
        "summary": result.summary or None,
        "sentiment": sentiment_badge(result.news_sentiment),
        "chart": chart_view(data),
        "financials": financials_view(data) if has_financials(data) else None,
        "sources": [source_view(s) for s in result.sources],
        "sources_caption": SOURCES_CAPTION,
    }


def render_view(is_loading: bool, result: SearchResult | None, has_searched: bool) -> dict[str, Any]:
    """The complete view model for the current terminal state."""
    kind = select_view(is_loading, result, has_searched)
    view: dict[str, Any] = {"view": kind.value}
    if kind is ViewKind.WELCOME:
        view["examples"] = list(WELCOME_EXAMPLES)
    elif kind is ViewKind.LOADING:
        view["message"] = LOADING_MESSAGE
    elif kind is ViewKind.RESULT:
        view["result"] = build_result_view(result)
    return view
