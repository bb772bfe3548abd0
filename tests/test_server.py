"""Tests for the MCP tool layer."""

from gse_terminal import research
from gse_terminal.research import ResearchService
from gse_terminal.server import describe_response, mcp, research_company


def _tool_fn(tool):
    # @mcp.tool() returns a FunctionTool wrapper in fastmcp 2.x
    return getattr(tool, "fn", tool)


def test_server_name():
    assert mcp.name == "GSE-Terminal"


def test_describe_decoded_response(raw_response):
    out = describe_response(raw_response)
    assert out["status"] == "decoded"
    assert out["summary"].startswith("Fan Milk PLC returned")
    assert out["news_sentiment"] == {
        "summary": "Coverage is cautiously upbeat after the turnaround.",
        "score": "Positive",
    }
    assert out["financial_data"]["keyMetrics"][1]["marketCap"] == "406,725,508"
    assert [t["title"] for t in out["tables"]] == [
        "Annual Metrics",
        "Key Financial Ratios",
        "Income Statement Highlights",
        "Cash Flow Statement Highlights",
    ]
    assert out["chart"]["labels"] == ["2022", "2023", "2023 H1"]
    assert out["csv"].startswith("Annual Metrics\n")


def test_describe_plain_narrative():
    out = describe_response("Only prose here.")
    assert out["status"] == "absent"
    assert out["summary"] == "Only prose here."
    assert out["tables"] == []
    assert out["chart"] is None
    assert out["csv"] is None


def test_describe_malformed_response():
    out = describe_response("Prose.\n---JSON_START---\n{oops\n---JSON_END---")
    assert out["status"] == "malformed"
    assert out["financial_data"] is None


def test_research_tool_uses_shared_service(monkeypatch, make_backend, raw_response, sources):
    monkeypatch.setattr(
        research, "_service", ResearchService(make_backend(text=raw_response, chunks=sources)),
    )
    out = _tool_fn(research_company)("Fan Milk PLC")
    assert out["query"] == "Fan Milk PLC"
    assert out["sentiment"]["label"] == "Positive"
    assert len(out["sources"]) == 2
    assert out["csv"].startswith("Annual Metrics\n")
