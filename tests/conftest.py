"""Shared fixtures: a realistic AI answer and a fake research backend."""

import copy
import json

import pytest

from gse_terminal.models import FinancialData
from gse_terminal.research import GroundedResponse, GroundingChunk

NARRATIVE = (
    "Fan Milk PLC returned to profitability in 2023 on higher volumes, "
    "although first-half margins remain under pressure."
)

PAYLOAD = {
    "financialData": {
        "statements": {
            "incomeStatement": [
                {"metric": "Revenue", "2023": "1,200,000", "2022": 950000},
                {"metric": "Operating Income", "2023": "(150,000)", "2022": "80000"},
                {"metric": "Net Income", "2023 H1": "45,000", "2023": "(500)", "2022": "300"},
            ],
            "cashflowStatement": [
                {"metric": "Net Cash from Operating Activities", "2023": 210000, "2022": "N/A"},
            ],
            "balanceSheet": [],
        },
        "keyMetrics": [
            {"year": 2022, "pricePerShare": "3.10", "marketCap": "N/A",
             "sharesOutstanding": "116,207,288", "dividendPerShare": 0.12},
            {"year": 2023, "pricePerShare": 3.5, "marketCap": "406,725,508",
             "sharesOutstanding": "116,207,288", "dividendPerShare": "N/A"},
        ],
        "financialAnalysis": {
            "healthSummary": "Liquidity is adequate and leverage is low.",
            "competitorSnapshot": "Leads local dairy peers on distribution.",
            "keyRatios": [
                {"year": 2022, "peRatio": 8.1, "eps": "0.40", "returnOnEquity": "12%",
                 "debtToEquity": 0.3},
                {"year": 2023, "peRatio": "9.2", "eps": "-0.05", "returnOnEquity": "N/A",
                 "debtToEquity": "0.25", "EBITDA Margin": "21%"},
            ],
        },
    },
    "newsSentiment": {
        "summary": "Coverage is cautiously upbeat after the turnaround.",
        "score": "Positive",
    },
}


def make_raw_response(payload=None, narrative=NARRATIVE) -> str:
    body = json.dumps(PAYLOAD if payload is None else payload, indent=2)
    return f"{narrative}\n\n---JSON_START---\n{body}\n---JSON_END---\n"


class FakeBackend:
    """Stands in for AnthropicSearch; records every prompt it receives."""

    def __init__(self, text="", chunks=(), error=None):
        self.text = text
        self.chunks = tuple(chunks)
        self.error = error
        self.calls = []

    def generate(self, prompt):
        self.calls.append(prompt)
        if self.error is not None:
            raise self.error
        return GroundedResponse(text=self.text, grounding_chunks=self.chunks)


@pytest.fixture
def payload():
    return copy.deepcopy(PAYLOAD)


@pytest.fixture
def raw_response():
    return make_raw_response()


@pytest.fixture
def financial_data():
    return FinancialData.model_validate(PAYLOAD["financialData"])


@pytest.fixture
def sources():
    return [
        GroundingChunk(uri="https://gse.com.gh/fan-milk", title="Fan Milk PLC - GSE"),
        GroundingChunk(uri="", title="No link"),
        GroundingChunk(uri="https://myjoyonline.com/fan-milk-results", title=""),
        GroundingChunk(uri="https://gse.com.gh/fan-milk", title="Duplicate"),
        GroundingChunk(uri="https://www.reuters.com/markets/fan-milk", title="Reuters"),
    ]


@pytest.fixture
def make_backend():
    return FakeBackend


@pytest.fixture
def make_raw():
    return make_raw_response
