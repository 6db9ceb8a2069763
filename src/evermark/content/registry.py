"""Detector registry: ordered content-type detection and metadata extraction.

Detectors are consulted in registration order; the first whose ``matches()``
returns True handles the URL. The generic web detector is always last.
New detectors are added with register() without touching the dispatch code.
"""

from __future__ import annotations

import logging

from evermark.content.base import BaseDetector, ContentMetadata, ContentType
from evermark.content.cast import CastDetector
from evermark.content.doi import DoiDetector
from evermark.content.isbn import IsbnDetector
from evermark.content.tweet import TweetDetector
from evermark.content.web import WebDetector
from evermark.errors import ProcessingError
from evermark.farcaster import NeynarClient
from evermark.net import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)


class DetectorRegistry:
    """Ordered list of detectors with a generic-web fallback."""

    def __init__(
        self,
        detectors: list[BaseDetector] | None = None,
        fallback: BaseDetector | None = None,
    ) -> None:
        self._detectors: list[BaseDetector] = list(detectors or [])
        self._fallback: BaseDetector = fallback or WebDetector()

    @property
    def detectors(self) -> tuple[BaseDetector, ...]:
        return (*self._detectors, self._fallback)

    def register(self, detector: BaseDetector) -> None:
        """Append *detector*; it is consulted before the fallback."""
        self._detectors.append(detector)

    def detect(self, url: str) -> BaseDetector:
        """Return the detector responsible for *url* (pure function of the URL)."""
        for detector in self._detectors:
            if detector.matches(url):
                return detector
        return self._fallback

    def detect_content_type(self, url: str) -> ContentType:
        return self.detect(url).content_type

    def extract(self, url: str) -> ContentMetadata:
        """Extract metadata for *url* with its detector.

        Raises:
            ProcessingError: If extraction fails or the detector produced
                metadata tagged with a different content type.
        """
        detector = self.detect(url)
        logger.info("Extracting %s metadata from %s", detector.content_type.value, url)
        metadata = detector.extract(url)
        if metadata.content_type is not detector.content_type:
            raise ProcessingError(
                f"{type(detector).__name__} produced {metadata.content_type.value} metadata"
            )
        return metadata


def default_registry(
    neynar: NeynarClient | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    lookup: bool = True,
) -> DetectorRegistry:
    """Build the standard registry: cast, tweet, DOI, ISBN, then generic web."""
    return DetectorRegistry(
        [
            CastDetector(neynar),
            TweetDetector(),
            DoiDetector(timeout=timeout, lookup=lookup),
            IsbnDetector(timeout=timeout, lookup=lookup),
        ]
    )
