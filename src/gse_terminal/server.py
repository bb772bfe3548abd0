"""GSE-Terminal: MCP server for AI-assisted company research.

Tools
─────
  1. research_company          — web-grounded research for a company query:
                                 summary, sentiment, tables, chart data, sources
  2. parse_research_response   — run the parser + table normaliser over a saved
                                 raw AI answer (no network call)
"""

from __future__ import annotations

from fastmcp import FastMCP

from gse_terminal.charts import build_performance_chart
from gse_terminal.export import export_csv
from gse_terminal.models import FinancialData
from gse_terminal.parser import parse_response
from gse_terminal.research import search_company_data
from gse_terminal.tables import build_financial_tables
from gse_terminal.views import build_result_view, table_view

mcp = FastMCP(name="GSE-Terminal")


def _structured(financial_data: FinancialData | None) -> dict:
    if financial_data is None:
        return {"tables": [], "chart": None, "csv": None}
    tables = build_financial_tables(financial_data)
    return {
        "tables": [table_view(t) for t in tables.export_order() if t],
        "chart": build_performance_chart(financial_data.statements.income_statement),
        "csv": export_csv(financial_data) or None,
    }


def describe_response(raw_text: str) -> dict:
    """Parse a raw AI answer into summary, payload status and rendered data."""
    parsed = parse_response(raw_text)
    data = parsed.financial_data
    return {
        "summary": parsed.summary,
        "status": parsed.status.value,
        "financial_data": data.model_dump(by_alias=True) if data else None,
        "news_sentiment": (
            parsed.news_sentiment.model_dump() if parsed.news_sentiment else None
        ),
        **_structured(data),
    }


@mcp.tool()
def research_company(query: str) -> dict:
    """Research a company with live web search.

    Returns the AI-generated summary, news sentiment, formatted financial
    tables (income statement, cash flow, balance sheet, annual metrics, key
    ratios), chart data and the cited web sources.
    """
    result = search_company_data(query)
    return {
        "query": query,
        **build_result_view(result),
        "csv": export_csv(result.financial_data) if result.financial_data else None,
    }


@mcp.tool()
def parse_research_response(raw_text: str) -> dict:
    """Parse a saved raw research answer containing ---JSON_START--- / ---JSON_END---.

    Useful for replaying a response without calling the AI service again.
    """
    return describe_response(raw_text)


# ═══════════════════════════════════════════════════════════════════════════
#  ENTRY POINT
# ═══════════════════════════════════════════════════════════════════════════

if __name__ == "__main__":
    import sys

    # python -m gse_terminal.server --sse   for remote hosting
    # Default is STDIO (for Claude Desktop / Cursor / local MCP clients)
    if "--sse" in sys.argv:
        mcp.run(transport="sse")
    else:
        mcp.run()
