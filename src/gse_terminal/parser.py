"""Split an AI response into its narrative and its embedded JSON payload.

The prompt asks Claude to write a prose summary first and then a single
JSON object wrapped in two sentinel lines::

    ...narrative...
    ---JSON_START---
    {"financialData": {...}, "newsSentiment": {...}}
    ---JSON_END---

Three outcomes are possible and all of them are valid results:

  ABSENT     no delimiters, the whole answer is narrative
  DECODED    the payload decoded into ``ResearchPayload``
  MALFORMED  delimiters found but the payload did not decode; the summary
             carries a visible note and the structured fields stay empty
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum

from pydantic import ValidationError as PydanticValidationError

from gse_terminal.errors import StructuredDataParseError
from gse_terminal.models import FinancialData, NewsSentiment, ResearchPayload

log = logging.getLogger(__name__)

JSON_DELIMITER_START = "---JSON_START---"
JSON_DELIMITER_END = "---JSON_END---"

PARSE_FAILURE_NOTE = "\n\n(Could not parse structured financial data from the response)"


class PayloadStatus(str, Enum):
    ABSENT = "absent"
    DECODED = "decoded"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class ParsedResponse:
    summary: str
    status: PayloadStatus
    financial_data: FinancialData | None = None
    news_sentiment: NewsSentiment | None = None


def split_response(raw_text: str) -> tuple[str, str | None]:
    """Return ``(summary, json_text)``; ``json_text`` is None without both delimiters."""
    start = raw_text.find(JSON_DELIMITER_START)
    end = raw_text.find(JSON_DELIMITER_END)
    if start == -1 or end == -1:
        return raw_text, None

    summary = raw_text[:start].strip()
    # An end marker that precedes the start marker leaves nothing in between,
    # which then fails to decode like any other broken payload.
    json_text = raw_text[start + len(JSON_DELIMITER_START):end].strip()
    return summary, json_text


def decode_payload(json_text: str) -> ResearchPayload:
    """Decode the text between the delimiters.

    Raises:
        StructuredDataParseError: the text is not JSON, or the JSON does
            not fit the payload model even under loose validation.
    """
    try:
        data = json.loads(json_text)
    except ValueError as exc:
        # JSONDecodeError, or an integer literal past the int digit limit
        raise StructuredDataParseError(f"Invalid JSON payload: {exc}") from exc

    if not isinstance(data, dict):
        # Valid JSON but not an object: nothing to pick up.
        return ResearchPayload()

    try:
        return ResearchPayload.model_validate(data)
    except PydanticValidationError as exc:
        raise StructuredDataParseError(
            f"Payload does not match the expected shape: {exc.error_count()} error(s)"
        ) from exc


def parse_response(raw_text: str) -> ParsedResponse:
    """Parse a raw AI answer. Never raises; see the module docstring."""
    summary, json_text = split_response(raw_text)
    if json_text is None:
        return ParsedResponse(summary=summary, status=PayloadStatus.ABSENT)

    try:
        payload = decode_payload(json_text)
    except StructuredDataParseError as exc:
        log.warning("Failed to parse financial data JSON: %s", exc)
        return ParsedResponse(
            summary=summary + PARSE_FAILURE_NOTE,
            status=PayloadStatus.MALFORMED,
        )

    return ParsedResponse(
        summary=summary,
        status=PayloadStatus.DECODED,
        financial_data=payload.financial_data,
        news_sentiment=payload.news_sentiment,
    )
