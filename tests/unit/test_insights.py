"""Tests for archive insights."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from evermark.content.base import ContentMetadata, ContentType
from evermark.db.models import EvermarkRecord
from evermark.insights import basic_insights, generate_insights, llm_insights, validate_api_key


def _record(token_id: int, ctype: ContentType, tags: list[str], created_at: str) -> EvermarkRecord:
    return EvermarkRecord(
        token_id=token_id,
        source_url=f"https://example.com/{token_id}",
        metadata=ContentMetadata(title=f"T{token_id}", content_type=ctype, tags=tags),
        created_at=created_at,
    )


RECORDS = [
    _record(1, ContentType.URL, ["ai", "web"], "2024-05-01T09:00:00.000Z"),
    _record(2, ContentType.URL, ["ai"], "2024-05-02T10:30:00.000Z"),
    _record(3, ContentType.CAST, ["farcaster"], "2024-05-03T21:00:00.000Z"),
    _record(4, ContentType.DOI, ["ai", "paper"], "2024-05-04T08:15:00.000Z"),
]


def test_basic_insights_empty() -> None:
    assert basic_insights([]).startswith("No saves yet")


def test_basic_insights_summary() -> None:
    text = basic_insights(RECORDS)
    lines = text.splitlines()

    assert lines[0].startswith("📈 Top Topics: ai")
    assert lines[1] == "🔍 Content Mix: 50% URL, 25% Cast, 25% DOI"
    assert lines[2] == "⏰ Peak Save Time: Mornings"


def test_validate_api_key_missing(monkeypatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(EnvironmentError, match="OPENAI_API_KEY"):
        validate_api_key("openai/gpt-4o-mini")


def test_validate_api_key_local_provider() -> None:
    validate_api_key("ollama/llama3")


def test_llm_insights_calls_litellm(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    response = MagicMock()
    response.choices[0].message.content = "  Mostly AI.  "
    with patch("evermark.insights.litellm.completion", return_value=response) as mock_completion:
        text = llm_insights(RECORDS, "openai/gpt-4o-mini")

    assert text == "Mostly AI."
    messages = mock_completion.call_args.kwargs["messages"]
    assert "[Cast] T3 (tags: farcaster)" in messages[1]["content"]


def test_generate_insights_disabled_uses_basic() -> None:
    with patch("evermark.insights.llm_insights") as mock_llm:
        text = generate_insights(RECORDS, enabled=False)
    mock_llm.assert_not_called()
    assert "Content Mix" in text


def test_generate_insights_falls_back_on_failure() -> None:
    with patch("evermark.insights.llm_insights", side_effect=EnvironmentError("no key")):
        text = generate_insights(RECORDS, enabled=True)
    assert text == basic_insights(RECORDS)
