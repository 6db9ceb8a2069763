"""Evermark content detection: detectors, metadata model, registry."""

from evermark.content.base import BaseDetector, ContentMetadata, ContentType
from evermark.content.cast import CastDetector
from evermark.content.doi import DoiDetector
from evermark.content.isbn import IsbnDetector
from evermark.content.registry import DetectorRegistry, default_registry
from evermark.content.tweet import TweetDetector
from evermark.content.web import WebDetector

__all__ = [
    "BaseDetector",
    "CastDetector",
    "ContentMetadata",
    "ContentType",
    "DetectorRegistry",
    "DoiDetector",
    "IsbnDetector",
    "TweetDetector",
    "WebDetector",
    "default_registry",
]
