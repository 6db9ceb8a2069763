"""Neynar webhook events → bot actions.

Events handled:
  cast.created      reply to casts that mention the bot
  user.followed     welcome cast when someone follows the bot
  reaction.created  logged only
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import re
from typing import Any

from evermark.bot.commands import parse
from evermark.bot.processor import CommandProcessor
from evermark.bot.responses import ResponseSender
from evermark.errors import ExternalServiceError
from evermark.farcaster import NeynarClient

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Neynar-Signature"


def sign(body: bytes, secret: str) -> str:
    """Hex HMAC-SHA512 of *body* keyed with *secret*."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha512).hexdigest()


def verify_signature(body: bytes, signature: str | None, secret: str) -> bool:
    """Constant-time check of a webhook signature against the raw body."""
    if not signature or not secret:
        return False
    return hmac.compare_digest(sign(body, secret), signature.strip().lower())


class WebhookHandler:
    """Dispatches verified webhook events.

    Args:
        processor: Runs parsed commands.
        sender: Publishes replies.
        neynar: Used to resolve the parent of a reply.
        bot_username: Handle the bot answers to (without ``@``).
        bot_fid: Farcaster id of the bot account.
    """

    def __init__(
        self,
        processor: CommandProcessor,
        sender: ResponseSender,
        neynar: NeynarClient | None,
        bot_username: str,
        bot_fid: int,
    ) -> None:
        self.processor = processor
        self.sender = sender
        self.neynar = neynar
        self.bot_username = bot_username.lstrip("@").lower()
        self.bot_fid = bot_fid
        # whole handle only, so "@emark-bot2" is someone else
        self._mention_re = re.compile(rf"(?<!\S)@{re.escape(self.bot_username)}(?![\w-]|\.\w)")

    def handle(self, event: dict[str, Any]) -> str:
        """Process one event. Returns a short outcome label."""
        event_type = event.get("type")
        data = event.get("data") or {}
        logger.info("Webhook event: %s", event_type)

        if event_type == "cast.created":
            return self._cast_created(data.get("cast") or data)
        if event_type == "user.followed":
            return self._user_followed(data)
        if event_type == "reaction.created":
            return self._reaction_created(data.get("reaction") or data)

        logger.info("Unhandled event type: %s", event_type)
        return "unhandled"

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _mentions_bot(self, cast: dict[str, Any]) -> bool:
        text = (cast.get("text") or "").lower()
        if self._mention_re.search(text):
            return True
        mentioned = (cast.get("mentioned_profiles") or []) + (cast.get("mentions") or [])
        return any(
            isinstance(m, dict) and (m.get("username") or "").lower() == self.bot_username
            for m in mentioned
        )

    def _context_cast(self, cast: dict[str, Any]) -> dict[str, Any] | None:
        parent_hash = cast.get("parent_hash")
        if not parent_hash:
            return None
        if self.neynar is None or not self.neynar.can_read:
            return cast
        try:
            return self.neynar.fetch_cast(parent_hash, id_type="hash")
        except ExternalServiceError as exc:
            logger.warning("Parent cast %s unavailable, using the reply itself: %s", parent_hash, exc)
            return cast

    def _cast_created(self, cast: dict[str, Any]) -> str:
        if not self._mentions_bot(cast):
            return "ignored"

        cast_hash = cast.get("hash") or ""
        author_fid = int((cast.get("author") or {}).get("fid") or 0)
        logger.info("Bot mentioned in cast %s by fid=%d", cast_hash, author_fid)

        try:
            command = parse(cast.get("text") or "", author_fid, self._context_cast(cast))
            if command is None:
                self.sender.send_help(cast_hash)
                return "help"
            result = self.processor.execute(command)
            self.sender.send_command_response(cast_hash, result)
        except ExternalServiceError as exc:
            logger.error("Could not reply to cast %s: %s", cast_hash, exc)
            return "failed"
        return "replied"

    def _user_followed(self, data: dict[str, Any]) -> str:
        follower = data.get("user") or data.get("follower") or {}
        target = data.get("target_user") or data.get("target") or {}
        if not self.bot_fid or int(target.get("fid") or 0) != self.bot_fid:
            return "ignored"

        logger.info("New follower: %s (%s)", follower.get("username"), follower.get("fid"))
        try:
            self.sender.send_welcome()
        except ExternalServiceError as exc:
            logger.error("Could not send welcome cast: %s", exc)
            return "failed"
        return "welcomed"

    def _reaction_created(self, reaction: dict[str, Any]) -> str:
        cast = reaction.get("cast") or {}
        if self.bot_fid and int((cast.get("author") or {}).get("fid") or 0) == self.bot_fid:
            logger.info(
                "Cast %s got a %s from %s",
                cast.get("hash"),
                reaction.get("reaction_type"),
                (reaction.get("user") or {}).get("username"),
            )
        return "logged"
