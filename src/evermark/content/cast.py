"""Farcaster cast detector.

Recognised URL forms (username segment, then a 0x-prefixed hex hash):
  https://warpcast.com/<user>/0x<hash>
  https://farcaster.xyz/<user>/0x<hash>
  https://mobile.farcaster.xyz/<user>/0x<hash>
  https://supercast.xyz/<user>/0x<hash>

Cast data comes from Neynar. When no API key is configured or the lookup
fails, placeholder metadata is returned with ``placeholder: True`` so the bot
can still preserve the link.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any

from evermark.content.base import BaseDetector, ContentMetadata, ContentType
from evermark.errors import ExternalServiceError, ProcessingError
from evermark.farcaster import NeynarClient

logger = logging.getLogger(__name__)

_CAST_URL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^https://warpcast\.com/[^/]+/0x[a-fA-F0-9]+"),
    re.compile(r"^https://farcaster\.xyz/[^/]+/0x[a-fA-F0-9]+"),
    re.compile(r"^https://supercast\.xyz/[^/]+/0x[a-fA-F0-9]+"),
    re.compile(r"^https://mobile\.farcaster\.xyz/[^/]+/0x[a-fA-F0-9]+"),
)
_HASH_RE = re.compile(r"0x[a-fA-F0-9]{8,64}")
_BARE_HASH_RE = re.compile(r"^0x[a-fA-F0-9]{8,64}$")

_POPULAR_LIKES = 10
_VIRAL_RECASTS = 5
_TITLE_CONTENT_CHARS = 50


def is_cast_url(url: str) -> bool:
    url = url.strip()
    return any(p.match(url) for p in _CAST_URL_PATTERNS)


def extract_cast_hash(value: str) -> str | None:
    """Return the 0x hash from a cast URL or bare hash, or None."""
    value = value.strip()
    if _BARE_HASH_RE.match(value):
        return value
    if not is_cast_url(value):
        return None
    match = _HASH_RE.search(value)
    return match.group(0) if match else None


def cast_url(username: str, cast_hash: str) -> str:
    """Build the canonical short Warpcast URL for a cast."""
    return f"https://warpcast.com/{username}/{cast_hash[:10]}"


def cast_data_from_neynar(cast: dict[str, Any]) -> dict[str, Any]:
    """Flatten a Neynar ``cast`` object into the stored cast-data shape."""
    author = cast.get("author") or {}
    reactions = cast.get("reactions") or {}
    return {
        "castHash": cast.get("hash", ""),
        "author": author.get("display_name") or author.get("username") or "Unknown",
        "username": author.get("username", ""),
        "content": cast.get("text", ""),
        "timestamp": cast.get("timestamp") or datetime.now(timezone.utc).isoformat(),
        "authorPfp": author.get("pfp_url"),
        "authorFid": author.get("fid"),
        "channel": (cast.get("channel") or {}).get("name"),
        "engagement": {
            "likes": reactions.get("likes_count", 0) or 0,
            "recasts": reactions.get("recasts_count", 0) or 0,
            "replies": (cast.get("replies") or {}).get("count", 0) or 0,
        },
        "embeds": [
            {"url": e.get("url"), "castId": e.get("cast_id")} for e in cast.get("embeds") or []
        ],
    }


class CastDetector(BaseDetector):
    """Detect Farcaster cast URLs and build metadata from Neynar cast data."""

    content_type = ContentType.CAST

    def __init__(self, client: NeynarClient | None = None) -> None:
        self._client = client

    def matches(self, url: str) -> bool:
        return is_cast_url(url)

    def extract(self, url: str) -> ContentMetadata:
        cast_hash = extract_cast_hash(url)
        if not cast_hash:
            raise ProcessingError(f"Could not extract cast hash from '{url}'")

        cast_data = self._fetch(url, cast_hash)
        return ContentMetadata(
            title=_cast_title(cast_data),
            author=cast_data.get("author") or "Unknown Farcaster User",
            description=_cast_description(cast_data),
            content_type=self.content_type,
            source_url=url,
            tags=_cast_tags(cast_data),
            extended_metadata={
                "castData": cast_data,
                "imageUrl": cast_data.get("authorPfp") or "",
                "placeholder": bool(cast_data.get("placeholder")),
            },
        )

    def _fetch(self, url: str, cast_hash: str) -> dict[str, Any]:
        if self._client is None or not self._client.can_read:
            logger.warning("NEYNAR_API_KEY not configured, using placeholder cast data")
            return _placeholder_cast(cast_hash)
        try:
            return cast_data_from_neynar(self._client.fetch_cast(url, id_type="url"))
        except ExternalServiceError as exc:
            logger.warning("Cast lookup failed for %s, using placeholder: %s", url, exc)
            return _placeholder_cast(cast_hash)


# ------------------------------------------------------------------
# Metadata helpers
# ------------------------------------------------------------------


def _placeholder_cast(cast_hash: str) -> dict[str, Any]:
    return {
        "castHash": cast_hash,
        "author": "Farcaster User",
        "username": "",
        "content": "Cast content will be displayed when available",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "engagement": {"likes": 0, "recasts": 0, "replies": 0},
        "placeholder": True,
    }


def _cast_title(cast_data: dict[str, Any]) -> str:
    author = cast_data.get("author") or "Unknown"
    content = cast_data.get("content") or ""
    if content:
        if len(content) > _TITLE_CONTENT_CHARS:
            content = content[: _TITLE_CONTENT_CHARS - 3] + "..."
        return f"Cast by {author}: {content}"
    return f"Cast by {author}"


def _cast_description(cast_data: dict[str, Any]) -> str:
    content = cast_data.get("content") or "Farcaster cast content"
    timestamp = (cast_data.get("timestamp") or "")[:10] or "unknown date"

    lines = [content, "", f"Posted on {timestamp}"]
    engagement = cast_data.get("engagement")
    if engagement:
        lines.append(
            f"{engagement.get('likes', 0)} likes • {engagement.get('recasts', 0)} recasts"
            f" • {engagement.get('replies', 0)} replies"
        )
    if cast_data.get("channel"):
        lines.append(f"Channel: {cast_data['channel']}")
    return "\n".join(lines)


def _cast_tags(cast_data: dict[str, Any]) -> list[str]:
    tags = ["farcaster", "cast"]
    if cast_data.get("channel"):
        tags.append(f"channel-{cast_data['channel']}")
    if cast_data.get("username"):
        tags.append(f"author-{cast_data['username']}")
    engagement = cast_data.get("engagement") or {}
    if engagement.get("likes", 0) > _POPULAR_LIKES:
        tags.append("popular")
    if engagement.get("recasts", 0) > _VIRAL_RECASTS:
        tags.append("viral")
    return tags
