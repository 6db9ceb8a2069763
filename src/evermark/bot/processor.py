"""Command processor: dispatch a parsed Command to its handler.

Every handler returns a CommandResult; faults are caught, logged and turned
into a failure message so the bot never replies with a stack trace.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from evermark.bot.commands import Command, CommandKind
from evermark.config import InsightsCfg
from evermark.content.cast import cast_url
from evermark.errors import DuplicateError, EvermarkError, NotFoundError, ValidationError, validate_url
from evermark.insights import generate_insights
from evermark.pipeline import EvermarkService

logger = logging.getLogger(__name__)

DEFAULT_RECENT = 5
MAX_RECENT = 10
SEARCH_LIMIT = 5
IMPORTANT_TAG = "important"

HELP_TEXT = (
    "🤖 Evermark Bot - Save anything to your digital memory!\n\n"
    "💬 Natural Commands:\n"
    '• "evermark this cast" - Save the cast you\'re replying to\n'
    '• "mark this evermark to memory" - Save content permanently\n'
    '• "save https://example.com" - Save any URL\n'
    '• "search for blockchain articles" - Find your saved content\n\n'
    "⚡ Quick Commands:\n"
    "• /recent - Your latest saves\n"
    "• /stats - Your archive stats\n"
    "• /tag URL a, b - Tag a saved URL\n"
    "• /collections - Browse by category\n"
    "• /insights - AI analysis of your content\n\n"
    "💡 Just mention me and tell me what you want to do!"
)


@dataclass
class CommandResult:
    success: bool
    message: str
    data: Any = None
    should_thread: bool = False


def time_ago(timestamp: str | None, now: datetime | None = None) -> str:
    """Human label for an ISO-8601 UTC timestamp ("5 mins ago", "2 weeks ago")."""
    if not timestamp:
        return "unknown"
    try:
        then = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return timestamp
    if then.tzinfo is None:
        then = then.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)

    minutes = max(int((now - then).total_seconds() // 60), 0)
    hours = minutes // 60
    days = hours // 24
    weeks = days // 7

    def plural(n: int, unit: str) -> str:
        return f"{n} {unit}{'' if n == 1 else 's'} ago"

    if minutes < 60:
        return plural(minutes, "min")
    if hours < 24:
        return plural(hours, "hour")
    if days < 7:
        return plural(days, "day")
    if weeks < 4:
        return plural(weeks, "week")
    return then.date().isoformat()


def format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def context_url(cast: dict[str, Any]) -> str:
    """URL to preserve for a context cast.

    First embed URL, else the embedded (quoted) cast, else the cast itself.

    Raises:
        ValidationError: If the cast carries neither an author nor a hash.
    """
    embeds = cast.get("embeds") or []
    if embeds:
        embed = embeds[0] or {}
        if embed.get("url"):
            return embed["url"]
        cast_id = embed.get("cast_id") or {}
        if cast_id.get("hash"):
            username = (cast.get("author") or {}).get("username") or ""
            return cast_url(username, cast_id["hash"])

    username = (cast.get("author") or {}).get("username")
    cast_hash = cast.get("hash")
    if not username or not cast_hash:
        raise ValidationError("Context cast is missing author or hash")
    return cast_url(username, cast_hash)


class CommandProcessor:
    """Runs Commands against the content pipeline."""

    def __init__(
        self,
        service: EvermarkService,
        insights: InsightsCfg | None = None,
    ) -> None:
        self.service = service
        self.insights = insights or InsightsCfg()
        self._handlers: dict[CommandKind, Callable[[Command], CommandResult]] = {
            CommandKind.SAVE: self._save,
            CommandKind.SEARCH: self._search,
            CommandKind.RECENT: self._recent,
            CommandKind.STATS: self._stats,
            CommandKind.TAG: self._tag,
            CommandKind.COLLECTIONS: self._collections,
            CommandKind.INSIGHTS: self._insights,
            CommandKind.HELP: self._help,
            CommandKind.EVERMARK_CAST: self._evermark_cast,
            CommandKind.MARK_EVERMARK: self._mark_evermark,
        }

    def execute(self, command: Command) -> CommandResult:
        handler = self._handlers.get(command.kind)
        if handler is None:
            return CommandResult(
                False,
                "I didn't understand that. Try saying \"evermark this cast\" "
                "or mention me with \"help\" to see what I can do!",
            )
        try:
            return handler(command)
        except Exception:
            logger.exception("Command %s failed for fid=%s", command.kind.value, command.requesting_user_id)
            return CommandResult(False, "Sorry, I encountered an error processing your command.")

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _save(self, command: Command) -> CommandResult:
        if not command.arguments:
            return CommandResult(False, "Please provide a URL to save. Example: /save https://example.com")
        url = command.arguments[0]
        try:
            validate_url(url)
        except ValidationError:
            return CommandResult(False, "Please provide a valid URL.")

        try:
            result = self.service.create_evermark(url, command.requesting_user_id)
        except DuplicateError as exc:
            return CommandResult(
                False,
                f"📌 Already evermarked as #{exc.existing_token_id}!\n\n"
                "💡 Use /search to find it anytime.",
                data={"existingTokenId": exc.existing_token_id},
            )
        except EvermarkError as exc:
            logger.warning("Save failed for %s: %s", url, exc.message)
            return CommandResult(
                False,
                "Failed to extract metadata from that URL. Please check the link and try again.",
            )

        meta = result.metadata
        return CommandResult(
            True,
            "✅ Saved to your archive!\n\n"
            f"📝 \"{meta.title}\"\n"
            f"🔗 {url}\n"
            f"🏷️ Tags: {', '.join(meta.tags) or 'none'}\n"
            f"💾 Evermark #{result.token_id}\n"
            "🎯 Use /search to find it anytime!",
            data=result.to_dict(),
        )

    def _search(self, command: Command) -> CommandResult:
        if not command.arguments:
            return CommandResult(False, "Please provide a search query. Example: search blockchain articles")
        query = " ".join(command.arguments)
        records = self.service.search(query, command.requesting_user_id, SEARCH_LIMIT)
        if not records:
            return CommandResult(
                True,
                f"🔍 No results found for \"{query}\"\n\n"
                "💡 Try different keywords or save more content to build your archive!",
            )

        lines = [
            f"{i}. \"{r.metadata.title}\" ({time_ago(r.created_at)})\n   {r.source_url}"
            for i, r in enumerate(records, start=1)
        ]
        return CommandResult(
            True,
            f"🔍 Found {len(records)} results for \"{query}\":\n\n"
            + "\n\n".join(lines)
            + "\n\n💡 Use /recent to see more saves",
            data=[r.token_id for r in records],
            should_thread=True,
        )

    def _recent(self, command: Command) -> CommandResult:
        count = DEFAULT_RECENT
        if command.arguments:
            try:
                count = int(command.arguments[0]) or DEFAULT_RECENT
            except ValueError:
                count = DEFAULT_RECENT
        count = max(1, min(count, MAX_RECENT))

        records = self.service.recent_for_user(command.requesting_user_id, count)
        if not records:
            return CommandResult(
                True,
                "📚 Your archive is empty!\n\n"
                "💡 Try saying \"save [URL]\" or \"evermark this cast\" to start building your digital memory!",
            )
        lines = [
            f"{i}. \"{r.metadata.title}\" ({time_ago(r.created_at)})"
            for i, r in enumerate(records, start=1)
        ]
        return CommandResult(
            True,
            f"📚 Your {len(records)} most recent saves:\n\n"
            + "\n".join(lines)
            + "\n\n💡 Use /search to find specific content",
            data=[r.token_id for r in records],
            should_thread=True,
        )

    def _stats(self, command: Command) -> CommandResult:
        stats = self.service.user_stats(command.requesting_user_id)
        return CommandResult(
            True,
            "📊 Your Evermark Stats:\n\n"
            f"💾 Total Saves: {stats.total_saves}\n"
            f"📅 This Month: {stats.this_month}\n"
            f"🏷️ Tags Used: {stats.tags_used}\n"
            f"📂 Collections: {stats.collections}\n"
            f"💰 Storage Used: {format_bytes(stats.storage_bytes)}\n"
            f"🔗 Most Saved Domain: {stats.top_domain or 'n/a'}\n\n"
            "🎯 Keep building your digital memory!",
            data=stats,
        )

    def _tag(self, command: Command) -> CommandResult:
        if len(command.arguments) < 2:
            return CommandResult(
                False, "Please provide a URL and tags. Example: /tag https://example.com blockchain, web3"
            )
        url = command.arguments[0]
        tags = [t.strip() for t in " ".join(command.arguments[1:]).split(",") if t.strip()]
        if not tags:
            return CommandResult(False, "Please provide at least one tag.")
        try:
            record = self.service.add_tags(url, tags, command.requesting_user_id)
        except NotFoundError:
            return CommandResult(False, f"I couldn't find {url} in your archive. Save it first!")
        return CommandResult(
            True,
            f"🏷️ Added tags to {url}:\n" + ", ".join(f"#{t}" for t in tags),
            data=record.to_dict(),
        )

    def _collections(self, command: Command) -> CommandResult:
        groups = self.service.collections_for_user(command.requesting_user_id)
        if not groups:
            return CommandResult(True, "📂 No collections yet. Save something to start one!")
        lines = [f"📁 {name} ({len(items)} item{'' if len(items) == 1 else 's'})" for name, items in groups.items()]
        return CommandResult(
            True,
            "📂 Your Collections:\n\n" + "\n".join(lines) + "\n\nUse /search [topic] to explore",
            data={name: len(items) for name, items in groups.items()},
            should_thread=True,
        )

    def _insights(self, command: Command) -> CommandResult:
        records = self.service.recent_for_user(command.requesting_user_id, self.insights.max_items)
        text = generate_insights(records, enabled=self.insights.enabled, model=self.insights.model)
        return CommandResult(
            True,
            f"🧠 Insights from your saved content:\n\n{text}\n\n🎯 Your digital memory is growing stronger!",
            should_thread=True,
        )

    def _help(self, command: Command) -> CommandResult:
        return CommandResult(True, HELP_TEXT, should_thread=True)

    def _evermark_cast(self, command: Command) -> CommandResult:
        cast = command.context_reference
        if not cast:
            return CommandResult(
                False,
                "I need you to reply to a specific cast to evermark it. "
                "Try replying to a cast and saying \"evermark this cast\".",
            )
        try:
            url = context_url(cast)
            result = self.service.create_evermark(url, command.requesting_user_id)
        except DuplicateError as exc:
            return CommandResult(
                False,
                f"📌 That cast is already evermarked as #{exc.existing_token_id}!",
                data={"existingTokenId": exc.existing_token_id},
            )
        except EvermarkError as exc:
            logger.warning("Evermark cast failed: %s", exc.message)
            return CommandResult(
                False,
                "Had trouble processing that cast. Make sure it contains valid content and try again!",
            )

        username = (cast.get("author") or {}).get("username") or "unknown"
        return CommandResult(
            True,
            "✅ Evermarked cast!\n\n"
            f"📝 \"{result.metadata.title}\"\n"
            f"👤 by @{username}\n"
            f"🔗 {url}\n"
            f"🏷️ Tagged: {', '.join(result.metadata.tags) or 'none'}\n\n"
            f"💾 Saved as Evermark #{result.token_id}!",
            data=result.to_dict(),
        )

    def _mark_evermark(self, command: Command) -> CommandResult:
        cast = command.context_reference
        if not cast:
            return CommandResult(
                False, "I need you to reply to an evermark or specific content to mark it to memory."
            )
        try:
            url = context_url(cast)
            try:
                self.service.create_evermark(url, command.requesting_user_id)
            except DuplicateError:
                pass  # already preserved
            record = self.service.add_tags(url, [IMPORTANT_TAG])
        except EvermarkError as exc:
            logger.warning("Mark evermark failed: %s", exc.message)
            return CommandResult(False, "Had trouble marking that content. Please try again!")

        return CommandResult(
            True,
            "🧠 Marked to permanent memory!\n\n"
            f"🔥 Evermark #{record.token_id} is now in your high-priority archive\n"
            f"🏷️ Auto-tagged as \"{IMPORTANT_TAG}\"\n\n"
            "You can find it anytime with /search or /insights",
            data=record.to_dict(),
        )

