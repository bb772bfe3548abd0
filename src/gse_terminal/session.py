"""Search session state machine behind the terminal page.

    IDLE ──submit──▶ LOADING ──ok────▶ SUCCESS
                        │                 │
                        └──error──▶ FAILURE
    SUCCESS / FAILURE ──submit──▶ LOADING

The session owns the single current-result slot.  Only one search may be
in flight: ``begin`` refuses while LOADING.
"""

from __future__ import annotations

import logging
from enum import Enum

from gse_terminal.errors import SessionBusyError, ValidationError
from gse_terminal.models import SearchResult
from gse_terminal.research import EMPTY_QUERY_MESSAGE
from gse_terminal.views import render_view

log = logging.getLogger(__name__)

FAILURE_MESSAGE = (
    "Failed to retrieve data. The API might be unavailable or the request "
    "failed. Please try again later."
)


class SearchState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    FAILURE = "failure"


class SearchSession:
    def __init__(self):
        self.state = SearchState.IDLE
        self.query = ""
        self.result: SearchResult | None = None
        self.error: str | None = None
        self.has_searched = False

    @property
    def is_loading(self) -> bool:
        return self.state is SearchState.LOADING

    def begin(self, query: str) -> str:
        """Move to LOADING for ``query`` and return the trimmed query."""
        if self.is_loading:
            raise SessionBusyError("A search is already in progress.")
        query = (query or "").strip()
        if not query:
            self.error = EMPTY_QUERY_MESSAGE
            raise ValidationError(EMPTY_QUERY_MESSAGE)

        self.state = SearchState.LOADING
        self.query = query
        self.result = None
        self.error = None
        self.has_searched = True
        return query

    def succeed(self, result: SearchResult) -> None:
        self._require_loading()
        self.state = SearchState.SUCCESS
        self.result = result

    def fail(self, exc: BaseException) -> None:
        """Record a failed search. The detail is logged, never shown."""
        self._require_loading()
        log.error("Search for %r failed: %s", self.query, exc)
        self.state = SearchState.FAILURE
        self.result = None
        self.error = FAILURE_MESSAGE

    def _require_loading(self) -> None:
        if not self.is_loading:
            raise RuntimeError(f"No search in flight (state={self.state.value})")

    def snapshot(self) -> dict:
        return {
            "state": self.state.value,
            "query": self.query,
            "error": self.error,
            **render_view(self.is_loading, self.result, self.has_searched),
        }
