"""Tests for the command processor."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from evermark.bot.commands import Command, CommandKind, parse
from evermark.bot.processor import (
    HELP_TEXT,
    CommandProcessor,
    context_url,
    format_bytes,
    time_ago,
)
from evermark.errors import ValidationError


@pytest.fixture
def processor(service):
    return CommandProcessor(service)


def _cmd(kind: CommandKind, *args: str, user: int = 1, context=None) -> Command:
    return Command(kind, tuple(args), user, f"{kind.value} {' '.join(args)}", context)


CONTEXT_CAST = {"hash": "0xabc1234567890", "author": {"username": "alice", "fid": 3}}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def test_time_ago_buckets() -> None:
    now = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)
    assert time_ago("2024-06-30T11:59:00Z", now) == "1 min ago"
    assert time_ago("2024-06-30T09:00:00Z", now) == "3 hours ago"
    assert time_ago("2024-06-28T12:00:00Z", now) == "2 days ago"
    assert time_ago("2024-06-16T12:00:00Z", now) == "2 weeks ago"
    assert time_ago("2024-01-01T00:00:00Z", now) == "2024-01-01"
    assert time_ago(None, now) == "unknown"


def test_format_bytes() -> None:
    assert format_bytes(12) == "12 B"
    assert format_bytes(2048) == "2.0 KB"
    assert format_bytes(3 * 1024 * 1024) == "3.0 MB"


def test_context_url_prefers_embed_url() -> None:
    cast = dict(CONTEXT_CAST, embeds=[{"url": "https://example.com/a"}])
    assert context_url(cast) == "https://example.com/a"


def test_context_url_quoted_cast() -> None:
    cast = dict(CONTEXT_CAST, embeds=[{"cast_id": {"fid": 9, "hash": "0xfeedfacecafe"}}])
    assert context_url(cast) == "https://warpcast.com/alice/0xfeedface"


def test_context_url_cast_itself() -> None:
    assert context_url(CONTEXT_CAST) == "https://warpcast.com/alice/0xabc12345"


def test_context_url_missing_author() -> None:
    with pytest.raises(ValidationError):
        context_url({"hash": "0xabc"})


# ---------------------------------------------------------------------------
# save
# ---------------------------------------------------------------------------


def test_save_without_url(processor) -> None:
    result = processor.execute(_cmd(CommandKind.SAVE))
    assert not result.success
    assert result.message.startswith("Please provide a URL to save.")


def test_save_invalid_url_persists_nothing(processor, repo) -> None:
    result = processor.execute(_cmd(CommandKind.SAVE, "not a url"))
    assert not result.success
    assert result.message == "Please provide a valid URL."
    assert repo.count_evermarks() == 0


def test_save_success(processor, repo) -> None:
    result = processor.execute(parse("@bot save https://example.com/a", 7))

    assert result.success
    assert result.message.startswith("✅ Saved to your archive!")
    assert "💾 Evermark #1" in result.message
    assert result.data["tokenId"] == 1
    assert repo.get_evermark(1).owner_user_id == repo.get_user_by_fid(7).id


def test_save_duplicate(processor) -> None:
    processor.execute(_cmd(CommandKind.SAVE, "https://example.com/a"))
    result = processor.execute(_cmd(CommandKind.SAVE, "https://example.com/a"))

    assert not result.success
    assert result.message.startswith("📌 Already evermarked as #1!")
    assert result.data == {"existingTokenId": 1}


# ---------------------------------------------------------------------------
# search / recent / stats / collections
# ---------------------------------------------------------------------------


def test_search_no_results(processor) -> None:
    result = processor.execute(_cmd(CommandKind.SEARCH, "nothing"))
    assert result.success
    assert result.message.startswith('🔍 No results found for "nothing"')


def test_search_results_thread(processor) -> None:
    processor.execute(_cmd(CommandKind.SAVE, "https://example.com/a"))
    result = processor.execute(_cmd(CommandKind.SEARCH, "example"))

    assert result.should_thread
    assert "Found 1 results" in result.message
    assert "https://example.com/a" in result.message


def test_recent_empty(processor) -> None:
    result = processor.execute(_cmd(CommandKind.RECENT))
    assert result.message.startswith("📚 Your archive is empty!")


def test_recent_count_clamped(processor) -> None:
    for i in range(3):
        processor.execute(_cmd(CommandKind.SAVE, f"https://example.com/{i}"))

    result = processor.execute(_cmd(CommandKind.RECENT, "2"))
    assert result.message.startswith("📚 Your 2 most recent saves:")
    assert len(result.data) == 2

    result = processor.execute(_cmd(CommandKind.RECENT, "abc"))
    assert len(result.data) == 3


def test_stats(processor) -> None:
    processor.execute(_cmd(CommandKind.SAVE, "https://example.com/a"))
    result = processor.execute(_cmd(CommandKind.STATS))

    assert result.message.startswith("📊 Your Evermark Stats:")
    assert "Total Saves: 1" in result.message
    assert "Most Saved Domain: example.com" in result.message


def test_collections_empty_and_filled(processor) -> None:
    assert processor.execute(_cmd(CommandKind.COLLECTIONS)).message.startswith("📂 No collections yet")

    processor.execute(_cmd(CommandKind.SAVE, "https://example.com/a"))
    result = processor.execute(_cmd(CommandKind.COLLECTIONS))
    assert result.message.startswith("📂 Your Collections:")
    assert "📁 URL (1 item)" in result.message
    assert result.data == {"URL": 1}


# ---------------------------------------------------------------------------
# tag
# ---------------------------------------------------------------------------


def test_tag_requires_url_and_tags(processor) -> None:
    assert not processor.execute(_cmd(CommandKind.TAG, "https://example.com/a")).success


def test_tag_unknown_url(processor) -> None:
    result = processor.execute(_cmd(CommandKind.TAG, "https://example.com/x", "ai"))
    assert result.message == "I couldn't find https://example.com/x in your archive. Save it first!"


def test_tag_success(processor) -> None:
    processor.execute(_cmd(CommandKind.SAVE, "https://example.com/a"))
    result = processor.execute(parse("/tag https://example.com/a ai, deep learning", 1))

    assert result.success
    assert result.message == "🏷️ Added tags to https://example.com/a:\n#ai, #deep learning"
    assert result.data["metadata"]["tags"][-2:] == ["ai", "deep learning"]


def test_tag_other_users_record(processor) -> None:
    processor.execute(_cmd(CommandKind.SAVE, "https://example.com/a", user=1))
    result = processor.execute(_cmd(CommandKind.TAG, "https://example.com/a", "ai", user=2))
    assert not result.success


# ---------------------------------------------------------------------------
# insights / help
# ---------------------------------------------------------------------------


def test_insights_basic(processor) -> None:
    processor.execute(_cmd(CommandKind.SAVE, "https://example.com/a"))
    result = processor.execute(_cmd(CommandKind.INSIGHTS))

    assert result.should_thread
    assert result.message.startswith("🧠 Insights from your saved content:")
    assert "Content Mix: 100% URL" in result.message


def test_help(processor) -> None:
    result = processor.execute(_cmd(CommandKind.HELP))
    assert result.message == HELP_TEXT
    assert result.should_thread


# ---------------------------------------------------------------------------
# evermark_cast / mark_evermark
# ---------------------------------------------------------------------------


def test_evermark_cast_needs_context(processor) -> None:
    result = processor.execute(_cmd(CommandKind.EVERMARK_CAST))
    assert not result.success
    assert result.message.startswith("I need you to reply to a specific cast")


def test_evermark_cast_saves_context(processor, repo) -> None:
    result = processor.execute(_cmd(CommandKind.EVERMARK_CAST, context=CONTEXT_CAST))

    assert result.success
    assert result.message.startswith("✅ Evermarked cast!")
    assert "👤 by @alice" in result.message
    assert repo.get_by_source_url("https://warpcast.com/alice/0xabc12345") is not None


def test_evermark_cast_duplicate(processor) -> None:
    processor.execute(_cmd(CommandKind.EVERMARK_CAST, context=CONTEXT_CAST))
    result = processor.execute(_cmd(CommandKind.EVERMARK_CAST, user=2, context=CONTEXT_CAST))
    assert result.message == "📌 That cast is already evermarked as #1!"


def test_mark_evermark_needs_context(processor) -> None:
    result = processor.execute(_cmd(CommandKind.MARK_EVERMARK))
    assert result.message == "I need you to reply to an evermark or specific content to mark it to memory."


def test_mark_evermark_tags_important(processor, repo) -> None:
    processor.execute(_cmd(CommandKind.EVERMARK_CAST, user=5, context=CONTEXT_CAST))
    result = processor.execute(_cmd(CommandKind.MARK_EVERMARK, user=6, context=CONTEXT_CAST))

    assert result.success
    assert result.message.startswith("🧠 Marked to permanent memory!")
    record = repo.get_by_source_url("https://warpcast.com/alice/0xabc12345")
    assert "important" in record.metadata.tags
    assert repo.count_evermarks() == 1


# ---------------------------------------------------------------------------
# Failure containment
# ---------------------------------------------------------------------------


def test_unexpected_error_becomes_message() -> None:
    service = MagicMock()
    service.recent_for_user.side_effect = RuntimeError("db gone")
    processor = CommandProcessor(service)

    result = processor.execute(_cmd(CommandKind.RECENT))
    assert not result.success
    assert result.message == "Sorry, I encountered an error processing your command."
