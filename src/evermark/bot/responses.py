"""Response formatter: publish command results as Farcaster replies.

Casts are limited to 280 characters. Long threaded results are split on
lines, then words, and posted as a chain where each part replies to the
previous one.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from evermark.bot.processor import CommandResult
from evermark.errors import ExternalServiceError
from evermark.farcaster import NeynarClient

logger = logging.getLogger(__name__)

MAX_CAST_LENGTH = 280
_ELLIPSIS = "..."
# Room for a " (nn/nn)" thread marker.
_MARKER_RESERVE = 8

HELP_REPLY = (
    "👋 Hi! I'm the Evermark bot.\n\n"
    "Try saying:\n"
    '• "evermark this cast" (when replying to content)\n'
    '• "save https://example.com"\n'
    '• "search for my articles"\n'
    '• "help" for more commands\n\n'
    "💡 I help you save content to your permanent digital memory!"
)

WELCOME_CAST = (
    "🎉 Welcome to Evermark!\n\n"
    "I help you save and search your digital content.\n\n"
    "Try mentioning me and saying:\n"
    '• "evermark this cast" when replying to something interesting\n'
    '• "save [any URL]" to add it to your archive\n'
    '• "search for [topic]" to find your saved content\n\n'
    "Let's build your digital memory together! 🧠✨"
)


def error_reply(message: str) -> str:
    return f"❌ {message}\n\nTry \"help\" to see what I can do!"


def split_message(text: str, max_length: int = MAX_CAST_LENGTH) -> list[str]:
    """Split *text* into chunks of at most *max_length* characters.

    Lines are kept whole where possible; an over-long line is split on
    spaces, and a single word longer than *max_length* is truncated with
    "...".
    """
    if len(text) <= max_length:
        return [text]

    chunks: list[str] = []
    current = ""
    for line in text.split("\n"):
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) <= max_length:
            current = candidate
            continue
        if current:
            chunks.append(current)
            current = ""
        if len(line) <= max_length:
            current = line
            continue

        for word in line.split(" "):
            candidate = f"{current} {word}" if current else word
            if len(candidate) <= max_length:
                current = candidate
                continue
            if current:
                chunks.append(current)
                current = ""
            if len(word) <= max_length:
                current = word
            else:
                chunks.append(word[: max_length - len(_ELLIPSIS)] + _ELLIPSIS)

    if current:
        chunks.append(current)
    return chunks


class ResponseSender:
    """Publishes bot replies through Neynar.

    Args:
        client: Neynar client with a signer configured.
        max_length: Cast length limit.
        thread_delay: Seconds to wait between thread parts.
        sleep: Injected for tests.
    """

    def __init__(
        self,
        client: NeynarClient,
        max_length: int = MAX_CAST_LENGTH,
        thread_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.max_length = max_length
        self.thread_delay = thread_delay
        self._sleep = sleep

    def send_command_response(self, parent_hash: str, result: CommandResult) -> list[str]:
        """Reply to *parent_hash* with *result*. Returns the published cast hashes."""
        if result.should_thread and len(result.message) > self.max_length:
            return self.send_thread(parent_hash, result.message)
        return [self.send_reply(parent_hash, self._fit(result.message))]

    def send_help(self, parent_hash: str) -> str:
        return self.send_reply(parent_hash, HELP_REPLY)

    def send_error(self, parent_hash: str, message: str) -> str:
        return self.send_reply(parent_hash, self._fit(error_reply(message)))

    def send_welcome(self) -> str:
        return self.client.publish_cast(WELCOME_CAST)

    def send_reply(self, parent_hash: str, text: str) -> str:
        cast_hash = self.client.publish_cast(text, parent=parent_hash)
        logger.info("Reply sent: %s", cast_hash)
        return cast_hash

    def send_thread(self, parent_hash: str, text: str) -> list[str]:
        """Post *text* as a reply chain.

        A part that fails, or comes back without a cast hash to reply to,
        stops the thread.
        """
        parts = split_message(text, self.max_length - _MARKER_RESERVE)
        total = len(parts)
        sent: list[str] = []
        parent = parent_hash

        for index, part in enumerate(parts, start=1):
            body = f"{part} ({index}/{total})" if total > 1 else part
            try:
                parent = self.client.publish_cast(body, parent=parent)
            except ExternalServiceError as exc:
                logger.error("Thread part %d/%d failed, stopping: %s", index, total, exc)
                break
            if not parent:
                logger.error("Thread part %d/%d returned no cast hash, stopping", index, total)
                break
            sent.append(parent)
            if index < total and self.thread_delay > 0:
                self._sleep(self.thread_delay)
        return sent

    def _fit(self, text: str) -> str:
        if len(text) <= self.max_length:
            return text
        return text[: self.max_length - len(_ELLIPSIS)] + _ELLIPSIS
