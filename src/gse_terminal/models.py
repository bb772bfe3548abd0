"""Pydantic models for research results and the embedded financial payload.

Field aliases are the camelCase keys the prompt asks Claude to emit, so a
decoded JSON block validates directly into these models.  Validation is
deliberately loose: missing, null or wrongly-shaped containers collapse to
empty defaults instead of failing the whole payload.
"""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# A single table cell as it arrives from the model: a number, a numeric
# string ("1,234.5", "(500)"), free text, or missing.
Cell = Union[str, int, float, None]

_FROZEN = ConfigDict(frozen=True, populate_by_name=True)


def _as_sequence(v: Any) -> Any:
    """Treat null / "N/A" / scalars where a list is expected as empty."""
    if isinstance(v, (list, tuple)):
        return v
    return ()


def _as_mapping(v: Any) -> Any:
    """Treat anything that is not a JSON object as absent."""
    if isinstance(v, (dict, BaseModel)):
        return v
    return None


def _as_text(v: Any) -> str:
    if v is None:
        return ""
    return v if isinstance(v, str) else str(v)


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------

class Source(BaseModel):
    """A web page the AI cited while answering."""
    model_config = _FROZEN

    title: str
    uri: str


# ---------------------------------------------------------------------------
# Financial statements
# ---------------------------------------------------------------------------

class StatementRow(BaseModel):
    """One line item with values for an arbitrary set of periods.

    The period keys ("2023", "2023 H1", "Q3 2022", ...) differ from row to
    row, so they are kept as pydantic extras and exposed via ``periods``.
    """
    model_config = ConfigDict(frozen=True, extra="allow")

    metric: str = ""

    @field_validator("metric", mode="before")
    @classmethod
    def _metric_text(cls, v: Any) -> str:
        return _as_text(v)

    @property
    def periods(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class FinancialStatements(BaseModel):
    model_config = _FROZEN

    income_statement: tuple[StatementRow, ...] = Field(default=(), alias="incomeStatement")
    cashflow_statement: tuple[StatementRow, ...] = Field(default=(), alias="cashflowStatement")
    balance_sheet: tuple[StatementRow, ...] = Field(default=(), alias="balanceSheet")

    @field_validator("income_statement", "cashflow_statement", "balance_sheet", mode="before")
    @classmethod
    def _rows(cls, v: Any) -> Any:
        return [r for r in _as_sequence(v) if isinstance(r, (dict, StatementRow))]


# ---------------------------------------------------------------------------
# Annual metrics and ratios
# ---------------------------------------------------------------------------

class YearlyMetric(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    year: Cell = None
    price_per_share: Cell = Field(default=None, alias="pricePerShare")
    market_cap: Cell = Field(default=None, alias="marketCap")
    shares_outstanding: Cell = Field(default=None, alias="sharesOutstanding")
    dividend_per_share: Cell = Field(default=None, alias="dividendPerShare")
    ytd_return: Cell = Field(default=None, alias="ytdReturn")


class YearlyRatio(BaseModel):
    # Extras keep keys such as "EBITDA Margin" that the prompt asks for
    # but the ratio table does not show.
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    year: Cell = None
    pe_ratio: Cell = Field(default=None, alias="peRatio")
    debt_to_equity: Cell = Field(default=None, alias="debtToEquity")
    return_on_equity: Cell = Field(default=None, alias="returnOnEquity")
    eps: Cell = None


class FinancialAnalysis(BaseModel):
    model_config = _FROZEN

    health_summary: str = Field(default="", alias="healthSummary")
    competitor_snapshot: str = Field(default="", alias="competitorSnapshot")
    key_ratios: tuple[YearlyRatio, ...] = Field(default=(), alias="keyRatios")

    @field_validator("health_summary", "competitor_snapshot", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("key_ratios", mode="before")
    @classmethod
    def _ratios(cls, v: Any) -> Any:
        return [r for r in _as_sequence(v) if isinstance(r, (dict, YearlyRatio))]


class FinancialData(BaseModel):
    """Everything under the ``financialData`` key of the embedded JSON."""
    model_config = _FROZEN

    statements: FinancialStatements = FinancialStatements()
    key_metrics: tuple[YearlyMetric, ...] = Field(default=(), alias="keyMetrics")
    financial_analysis: FinancialAnalysis | None = Field(default=None, alias="financialAnalysis")

    @field_validator("statements", mode="before")
    @classmethod
    def _statements(cls, v: Any) -> Any:
        return _as_mapping(v) or FinancialStatements()

    @field_validator("key_metrics", mode="before")
    @classmethod
    def _metrics(cls, v: Any) -> Any:
        return [m for m in _as_sequence(v) if isinstance(m, (dict, YearlyMetric))]

    @field_validator("financial_analysis", mode="before")
    @classmethod
    def _analysis(cls, v: Any) -> Any:
        return _as_mapping(v)


# ---------------------------------------------------------------------------
# Sentiment
# ---------------------------------------------------------------------------

class NewsSentiment(BaseModel):
    model_config = _FROZEN

    summary: str = ""
    score: str | None = None     # "Positive" | "Neutral" | "Negative"

    @field_validator("summary", mode="before")
    @classmethod
    def _summary_text(cls, v: Any) -> str:
        return _as_text(v)

    @field_validator("score", mode="before")
    @classmethod
    def _score_text(cls, v: Any) -> str | None:
        if v is None or v == "":
            return None
        return _as_text(v)


# ---------------------------------------------------------------------------
# Embedded payload and final result
# ---------------------------------------------------------------------------

class ResearchPayload(BaseModel):
    """The JSON object between the delimiters of an AI response."""
    model_config = _FROZEN

    financial_data: FinancialData | None = Field(default=None, alias="financialData")
    news_sentiment: NewsSentiment | None = Field(default=None, alias="newsSentiment")

    @field_validator("financial_data", "news_sentiment", mode="before")
    @classmethod
    def _objects(cls, v: Any) -> Any:
        return _as_mapping(v)


class SearchResult(BaseModel):
    """One completed search: narrative, citations and structured data."""
    model_config = _FROZEN

    summary: str
    sources: tuple[Source, ...] = ()
    financial_data: FinancialData | None = Field(default=None, alias="financialData")
    news_sentiment: NewsSentiment | None = Field(default=None, alias="newsSentiment")
