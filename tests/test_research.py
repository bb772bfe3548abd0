"""Tests for the research service and the Anthropic search backend."""

import os
from types import SimpleNamespace

import pytest

from gse_terminal.config import Settings
from gse_terminal.errors import ConfigError, RequestError, ValidationError
from gse_terminal.research import (
    EMPTY_QUERY_MESSAGE,
    AnthropicSearch,
    GroundingChunk,
    ResearchService,
    build_prompt,
    extract_grounded_response,
    valid_sources,
)


def _settings(**overrides):
    values = dict(
        anthropic_api_key="test-key",
        anthropic_model="claude-test",
        max_tokens=1234,
        web_search_max_uses=3,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


class _RecordingMessages:
    def __init__(self, response):
        self.response = response
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        return self.response


# --- Prompt ---


def test_prompt_embeds_query_and_delimiters():
    prompt = build_prompt("Fan Milk PLC")
    assert 'for the query: "Fan Milk PLC"' in prompt
    assert "'---JSON_START---' and '---JSON_END---'" in prompt
    assert '"financialData" and "newsSentiment"' in prompt
    assert "'Positive', 'Neutral', or 'Negative'" in prompt
    assert "Provide 'N/A' for any missing values." in prompt


# --- ResearchService ---


@pytest.mark.parametrize("query", ["", "   ", "\n\t", None])
def test_empty_query_makes_no_request(make_backend, query):
    backend = make_backend(text="unused")
    with pytest.raises(ValidationError, match=EMPTY_QUERY_MESSAGE):
        ResearchService(backend).search(query)
    assert backend.calls == []


def test_search_builds_result(make_backend, raw_response, sources):
    backend = make_backend(text=raw_response, chunks=sources)
    result = ResearchService(backend).search("  Fan Milk PLC  ")

    assert backend.calls == [build_prompt("Fan Milk PLC")]
    assert result.summary.startswith("Fan Milk PLC returned to profitability")
    assert result.news_sentiment.score == "Positive"
    assert result.financial_data.key_metrics[0].year == 2022
    assert [s.uri for s in result.sources] == [
        "https://gse.com.gh/fan-milk",
        "https://www.reuters.com/markets/fan-milk",
    ]
    assert result.sources[0].title == "Fan Milk PLC - GSE"


def test_backend_failure_is_wrapped(make_backend):
    boom = ConnectionError("network down")
    backend = make_backend(error=boom)
    with pytest.raises(RequestError) as excinfo:
        ResearchService(backend).search("GCB Bank")
    assert excinfo.value.__cause__ is boom
    assert len(backend.calls) == 1


def test_malformed_payload_still_returns_summary(make_backend):
    text = "Narrative only.\n---JSON_START---\n{broken\n---JSON_END---"
    result = ResearchService(make_backend(text=text)).search("MTN Ghana")
    assert result.summary.startswith("Narrative only.")
    assert "Could not parse structured financial data" in result.summary
    assert result.financial_data is None
    assert result.news_sentiment is None
    assert result.sources == ()


def test_valid_sources_filters_and_dedupes(sources):
    assert [(s.title, s.uri) for s in valid_sources(sources)] == [
        ("Fan Milk PLC - GSE", "https://gse.com.gh/fan-milk"),
        ("Reuters", "https://www.reuters.com/markets/fan-milk"),
    ]


# --- Response extraction ---


def test_extract_from_plain_dicts():
    response = {"content": [
        {"type": "server_tool_use", "name": "web_search", "input": {"query": "fan milk"}},
        {"type": "web_search_tool_result", "content": []},
        {"type": "text", "text": "Revenue grew ", "citations": None},
        {"type": "text", "text": "12% in 2023.", "citations": [
            {"type": "web_search_result_location", "url": "https://gse.com.gh/a",
             "title": "GSE filing", "cited_text": "..."},
        ]},
    ]}
    grounded = extract_grounded_response(response)
    assert grounded.text == "Revenue grew 12% in 2023."
    assert grounded.grounding_chunks == (
        GroundingChunk(uri="https://gse.com.gh/a", title="GSE filing"),
    )


def test_extract_from_sdk_objects():
    citation = SimpleNamespace(url="https://example.com/x", title=None)
    response = SimpleNamespace(content=[
        SimpleNamespace(type="text", text="Hello", citations=[citation]),
        SimpleNamespace(type="text", text=None, citations=[SimpleNamespace(url=None)]),
    ])
    grounded = extract_grounded_response(response)
    assert grounded.text == "Hello"
    assert grounded.grounding_chunks == (GroundingChunk(uri="https://example.com/x", title=""),)


def test_extract_from_empty_response():
    grounded = extract_grounded_response(SimpleNamespace(content=None))
    assert grounded.text == ""
    assert grounded.grounding_chunks == ()


# --- AnthropicSearch ---


def test_anthropic_search_sends_web_search_tool():
    response = {"content": [{"type": "text", "text": "answer", "citations": []}]}
    messages = _RecordingMessages(response)
    backend = AnthropicSearch(config=_settings(), client=SimpleNamespace(messages=messages))

    grounded = backend.generate("the prompt")

    assert grounded.text == "answer"
    assert messages.kwargs["model"] == "claude-test"
    assert messages.kwargs["max_tokens"] == 1234
    assert messages.kwargs["messages"] == [{"role": "user", "content": "the prompt"}]
    assert messages.kwargs["tools"] == [
        {"type": "web_search_20250305", "name": "web_search", "max_uses": 3},
    ]


def test_anthropic_search_without_key_raises():
    backend = AnthropicSearch(config=_settings(anthropic_api_key=""))
    with pytest.raises(ConfigError):
        backend.generate("the prompt")


def test_narration_before_search_is_dropped():
    response = {"content": [
        {"type": "text", "text": "I'll search for Fan Milk.", "citations": None},
        {"type": "server_tool_use", "name": "web_search", "input": {"query": "fan milk"}},
        {"type": "web_search_tool_result", "content": []},
        {"type": "text", "text": "Let me look for the annual report.", "citations": None},
        {"type": "server_tool_use", "name": "web_search", "input": {"query": "fan milk 2023"}},
        {"type": "web_search_tool_result", "content": []},
        {"type": "text", "text": "Fan Milk returned to profit.", "citations": [
            {"url": "https://gse.com.gh/a", "title": "GSE filing"},
        ]},
        {"type": "text", "text": "\n---JSON_START---\n{}\n---JSON_END---"},
    ]}
    grounded = extract_grounded_response(response)
    assert grounded.text == "Fan Milk returned to profit.\n---JSON_START---\n{}\n---JSON_END---"
    assert [c.uri for c in grounded.grounding_chunks] == ["https://gse.com.gh/a"]


def test_citations_before_search_are_kept():
    response = {"content": [
        {"type": "text", "text": "Earlier note.", "citations": [
            {"url": "https://example.com/early", "title": "Early"},
        ]},
        {"type": "web_search_tool_result", "content": []},
        {"type": "text", "text": "Answer."},
    ]}
    grounded = extract_grounded_response(response)
    assert grounded.text == "Answer."
    assert [c.uri for c in grounded.grounding_chunks] == ["https://example.com/early"]


@pytest.mark.parametrize("stop_reason", ["max_tokens", "pause_turn"])
def test_truncated_answer_is_logged(caplog, stop_reason):
    response = {"stop_reason": stop_reason, "content": [{"type": "text", "text": "Cut"}]}
    with caplog.at_level("WARNING", logger="gse_terminal.research"):
        grounded = extract_grounded_response(response)
    assert grounded.text == "Cut"
    assert stop_reason in caplog.text


def test_complete_answer_logs_nothing(caplog):
    response = {"stop_reason": "end_turn", "content": [{"type": "text", "text": "Done"}]}
    with caplog.at_level("WARNING", logger="gse_terminal.research"):
        extract_grounded_response(response)
    assert caplog.records == []


@pytest.mark.integration
@pytest.mark.skipif(not os.environ.get("ANTHROPIC_API_KEY"), reason="needs ANTHROPIC_API_KEY")
def test_live_research():
    result = ResearchService().search("Fan Milk PLC Ghana Stock Exchange")
    assert result.summary
