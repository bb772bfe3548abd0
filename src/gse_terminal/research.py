"""Claude-powered company research with web search grounding.

Builds the research prompt for a free-text query, sends it to the Anthropic
Messages API with the web-search server tool enabled, and turns the answer
into a ``SearchResult``: the narrative summary, the structured financial
payload parsed out of the delimited JSON block, and the cited web pages.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

from gse_terminal.config import Settings, get_config
from gse_terminal.errors import RequestError, ValidationError
from gse_terminal.models import SearchResult, Source
from gse_terminal.parser import JSON_DELIMITER_END, JSON_DELIMITER_START, parse_response

log = logging.getLogger(__name__)

EMPTY_QUERY_MESSAGE = "Please enter a valid company or query."
REQUEST_FAILED_MESSAGE = "Failed to fetch data from the AI research service."

PROMPT_TEMPLATE = """\
You are an expert financial analyst. Your task is to provide a comprehensive financial overview for the query: "{query}".
Use web search to find the most recent and reliable data from official company reports, financial statements, and reputable news outlets.

**Output Requirements:**

1.  **Narrative Summary:** Begin with a concise, data-driven summary of the company's recent financial performance, market position, and outlook.
2.  **JSON Data:** After the summary, provide a single, well-formed JSON object enclosed between '{start}' and '{end}'. Do not include any text or markdown formatting before or after the JSON content within the delimiters.

**JSON Object Specification:**

The JSON object must contain two top-level keys: "financialData" and "newsSentiment".

-   **"financialData"**:
    -   **"statements"**: Object with arrays for "incomeStatement", "cashflowStatement", "balanceSheet".
        -   For each statement, extract key line items for the last 5 available fiscal years or half-year periods.
        -   **Prioritize these items**:
            -   **Income Statement**: 'Interest Income', 'Net Interest Income', 'Operating Income', 'Profit Before Tax', 'Profit for the year', 'Revenue', 'Net Income'.
            -   **Balance Sheet**: 'Total Assets', 'Total Liabilities', 'Total Equity', 'Cash and Cash Equivalents'.
            -   **Cash Flow**: 'Net Cash from Operating Activities', 'Net Cash from Investing Activities', 'Net Cash from Financing Activities'.
    -   **"keyMetrics"**: Array of annual objects. For each of the last 5 years, include: 'year', 'pricePerShare', 'marketCap', 'sharesOutstanding', 'dividendPerShare'.
    -   **"financialAnalysis"**:
        -   "healthSummary": A brief text analysis of the company's financial health.
        -   "competitorSnapshot": A brief text comparison against key competitors.
        -   "keyRatios": Array of annual objects. For each of the last 5 years, include: 'year', 'peRatio', 'eps' (Earnings Per Share), 'returnOnEquity', 'debtToEquity', 'EBITDA Margin'.

-   **"newsSentiment"**:
    -   "summary": A brief summary of the prevailing market sentiment based on recent news.
    -   "score": A single string value: 'Positive', 'Neutral', or 'Negative'.

Provide 'N/A' for any missing values. Ensure all financial figures are returned as numbers or strings that can be parsed as numbers.
"""


def build_prompt(query: str) -> str:
    """Render the research prompt for one query."""
    return PROMPT_TEMPLATE.format(
        query=query, start=JSON_DELIMITER_START, end=JSON_DELIMITER_END,
    )


# ═══════════════════════════════════════════════════════════════════════════
#  AI boundary
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class GroundingChunk:
    uri: str
    title: str


@dataclass(frozen=True)
class GroundedResponse:
    """Raw answer text plus the web pages it was grounded on."""
    text: str
    grounding_chunks: Sequence[GroundingChunk] = field(default_factory=tuple)


class SearchBackend(Protocol):
    def generate(self, prompt: str) -> GroundedResponse: ...


def _block_attr(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


# Blocks the server emits while the web-search tool runs
_SEARCH_BLOCK_TYPES = frozenset({"server_tool_use", "web_search_tool_result"})
# Stop reasons that mean the answer (and its JSON block) may be cut short
_INCOMPLETE_STOP_REASONS = frozenset({"max_tokens", "pause_turn"})


def extract_grounded_response(response: Any) -> GroundedResponse:
    """Flatten a Messages API response into text and cited web pages.

    With web search enabled the answer arrives as many text blocks, each
    carrying the citations for the sentence it contains, so blocks are
    joined without separators.  Text written before a search ran ("I'll
    search for ...") is narration, not answer: only the text after the
    last search block is kept.  Citations are collected from every block.
    """
    text_parts: list[str] = []
    chunks: list[GroundingChunk] = []
    for block in _block_attr(response, "content") or []:
        block_type = _block_attr(block, "type")
        if block_type in _SEARCH_BLOCK_TYPES:
            text_parts = []
            continue
        if block_type != "text":
            continue
        text_parts.append(_block_attr(block, "text") or "")
        for citation in _block_attr(block, "citations") or []:
            url = _block_attr(citation, "url")
            if url is None:
                continue
            chunks.append(GroundingChunk(uri=url, title=_block_attr(citation, "title") or ""))

    stop_reason = _block_attr(response, "stop_reason")
    if stop_reason in _INCOMPLETE_STOP_REASONS:
        log.warning(
            "Research answer stopped early (stop_reason=%s); structured data may be truncated",
            stop_reason,
        )
    return GroundedResponse(text="".join(text_parts), grounding_chunks=tuple(chunks))


class AnthropicSearch:
    """Claude with the web-search server tool as the research backend."""

    def __init__(self, config: Settings | None = None, client: Any = None):
        self._config = config or get_config()
        self._client = client

    def _get_client(self):
        """Lazy-init the Anthropic client."""
        if self._client is None:
            import anthropic
            self._client = anthropic.Anthropic(api_key=self._config.require_api_key())
        return self._client

    def generate(self, prompt: str) -> GroundedResponse:
        response = self._get_client().messages.create(
            model=self._config.anthropic_model,
            max_tokens=self._config.max_tokens,
            messages=[{"role": "user", "content": prompt}],
            tools=[{
                "type": "web_search_20250305",
                "name": "web_search",
                "max_uses": self._config.web_search_max_uses,
            }],
        )
        return extract_grounded_response(response)


# ═══════════════════════════════════════════════════════════════════════════
#  Orchestration
# ═══════════════════════════════════════════════════════════════════════════

def valid_sources(chunks: Sequence[GroundingChunk]) -> tuple[Source, ...]:
    """Keep chunks with both a title and a URI, first occurrence per URI."""
    seen: set[str] = set()
    sources = []
    for chunk in chunks:
        if not chunk.uri or not chunk.title or chunk.uri in seen:
            continue
        seen.add(chunk.uri)
        sources.append(Source(title=chunk.title, uri=chunk.uri))
    return tuple(sources)


class ResearchService:
    """One research request = one backend call, no caching and no retry."""

    def __init__(self, backend: SearchBackend | None = None):
        self.backend = backend or AnthropicSearch()

    def search(self, query: str) -> SearchResult:
        """Research a company.

        Raises:
            ValidationError: empty or whitespace-only query (no call is made).
            RequestError: the backend call failed.
        """
        query = (query or "").strip()
        if not query:
            raise ValidationError(EMPTY_QUERY_MESSAGE)

        t0 = time.time()
        log.info("Researching %r", query)
        try:
            response = self.backend.generate(build_prompt(query))
        except Exception as exc:
            log.exception("AI research call failed for %r", query)
            raise RequestError(REQUEST_FAILED_MESSAGE) from exc

        parsed = parse_response(response.text)
        result = SearchResult(
            summary=parsed.summary,
            sources=valid_sources(response.grounding_chunks),
            financial_data=parsed.financial_data,
            news_sentiment=parsed.news_sentiment,
        )
        log.info(
            "Research for %r done in %dms (payload=%s, sources=%d)",
            query, int((time.time() - t0) * 1000), parsed.status.value, len(result.sources),
        )
        return result


_service: ResearchService | None = None


def get_research_service() -> ResearchService:
    """Get or create the shared ResearchService."""
    global _service
    if _service is None:
        _service = ResearchService()
    return _service


def search_company_data(query: str) -> SearchResult:
    return get_research_service().search(query)
