"""Twitter / X post detector.

The tweet id and handle are read from the URL; no API call is made.
"""

from __future__ import annotations

import re

from evermark.content.base import BaseDetector, ContentMetadata, ContentType
from evermark.errors import ProcessingError

_TWEET_RE = re.compile(
    r"^https?://(?:www\.|mobile\.)?(?:twitter\.com|x\.com)/(?P<user>[A-Za-z0-9_]{1,15})"
    r"/status(?:es)?/(?P<id>\d+)"
)


class TweetDetector(BaseDetector):
    content_type = ContentType.TWEET

    def matches(self, url: str) -> bool:
        return _TWEET_RE.match(url.strip()) is not None

    def extract(self, url: str) -> ContentMetadata:
        match = _TWEET_RE.match(url.strip())
        if match is None:
            raise ProcessingError(f"Not a tweet URL: '{url}'")
        username = match.group("user")
        tweet_id = match.group("id")

        return ContentMetadata(
            title=f"Post by @{username} on X",
            author=f"@{username}",
            description=f"X post {tweet_id} by @{username}",
            content_type=self.content_type,
            source_url=url,
            tags=["twitter", "tweet", f"author-{username.lower()}"],
            extended_metadata={"tweetData": {"tweetId": tweet_id, "username": username}},
        )
