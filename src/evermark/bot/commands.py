"""Command interpreter: free text (a bot mention) → structured Command.

Text is normalised (mentions stripped, whitespace collapsed, lower-cased)
and matched against an ordered pattern table; the first match wins. Order
matters: "evermark this https://..." is a cast command, not a save.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class CommandKind(str, Enum):
    SAVE = "save"
    SEARCH = "search"
    RECENT = "recent"
    STATS = "stats"
    TAG = "tag"
    COLLECTIONS = "collections"
    INSIGHTS = "insights"
    HELP = "help"
    EVERMARK_CAST = "evermark_cast"
    MARK_EVERMARK = "mark_evermark"


@dataclass(frozen=True)
class Command:
    """One parsed request from a user.

    Attributes:
        kind: Which handler runs the command.
        arguments: Positional arguments extracted from the text.
        requesting_user_id: Farcaster fid of the author.
        raw_text: The original, un-normalised text.
        context_reference: The cast being replied to, when there is one.
    """

    kind: CommandKind
    arguments: tuple[str, ...]
    requesting_user_id: int
    raw_text: str
    context_reference: dict[str, Any] | None = field(default=None, compare=False)


SLASH_COMMANDS = frozenset(
    {
        CommandKind.SAVE,
        CommandKind.SEARCH,
        CommandKind.RECENT,
        CommandKind.STATS,
        CommandKind.TAG,
        CommandKind.COLLECTIONS,
        CommandKind.INSIGHTS,
        CommandKind.HELP,
    }
)

_MENTION_RE = re.compile(r"(?<!\S)@[\w.-]+")
_WHITESPACE_RE = re.compile(r"\s+")


def _no_args(match: re.Match[str]) -> tuple[str, ...]:
    return ()


def _url_arg(match: re.Match[str]) -> tuple[str, ...]:
    return (match.group(2),)


def _query_args(match: re.Match[str]) -> tuple[str, ...]:
    return tuple(match.group(3).split())


# (pattern, kind, argument extractor); kind None marks the slash-command form.
PATTERNS: tuple[tuple[re.Pattern[str], CommandKind | None, Any], ...] = (
    (re.compile(r"evermark\s+(this|cast|it)"), CommandKind.EVERMARK_CAST, _no_args),
    (
        re.compile(r"(mark|save)\s+(this\s+)?(evermark|to\s+memory)"),
        CommandKind.MARK_EVERMARK,
        _no_args,
    ),
    (re.compile(r"(save|evermark)\s+(https?://\S+)"), CommandKind.SAVE, _url_arg),
    (re.compile(r"(search|find)\s+(for\s+)?(.+)"), CommandKind.SEARCH, _query_args),
    (re.compile(r"/(\w+)(.*)$"), None, None),
)


def _restore_url_case(argument: str, raw_text: str) -> str:
    # URL paths are case-sensitive; recover the user's spelling.
    if not argument.startswith(("http://", "https://")):
        return argument
    match = re.search(re.escape(argument), raw_text, re.IGNORECASE)
    return match.group(0) if match else argument


def normalize(text: str) -> str:
    """Strip @mentions, collapse whitespace, trim and lower-case *text*."""
    text = _MENTION_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip().lower()


def parse(
    text: str,
    user_id: int,
    context_reference: dict[str, Any] | None = None,
) -> Command | None:
    """Parse *text* into a Command, or return None when nothing matches.

    Never raises; the caller answers None with the help reply. Context is
    carried through as-is and only checked when the command runs.
    """
    clean = normalize(text or "")

    for pattern, kind, extract in PATTERNS:
        match = pattern.search(clean)
        if not match:
            continue

        if kind is None:
            try:
                slash = CommandKind(match.group(1))
            except ValueError:
                return None
            if slash not in SLASH_COMMANDS:
                return None
            kind = slash
            arguments = tuple(match.group(2).split())
        else:
            arguments = extract(match)

        return Command(
            kind=kind,
            arguments=tuple(_restore_url_case(arg, text) for arg in arguments),
            requesting_user_id=user_id,
            raw_text=text,
            context_reference=context_reference,
        )

    return None
