"""Generic web detector: fallback for every URL no other detector claims.

Metadata is derived from the hostname only; page content is never fetched.
"""

from __future__ import annotations

from urllib.parse import urlparse

from evermark.content.base import BaseDetector, ContentMetadata, ContentType
from evermark.errors import ProcessingError


class WebDetector(BaseDetector):
    content_type = ContentType.URL

    def matches(self, url: str) -> bool:
        return url.startswith(("https://", "http://"))

    def extract(self, url: str) -> ContentMetadata:
        hostname = urlparse(url).hostname
        if not hostname:
            raise ProcessingError(f"Invalid URL format: '{url}'")

        return ContentMetadata(
            title=f"Web Content from {hostname}",
            author="Unknown",
            description=f"Web content from {url}",
            content_type=self.content_type,
            source_url=url,
            tags=["web", "url", hostname.replace(".", "-")],
            extended_metadata={"siteName": hostname},
        )
