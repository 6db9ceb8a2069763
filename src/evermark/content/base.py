"""Content metadata model and the base detector interface."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from evermark.errors import ValidationError, validate_url


class ContentType(str, Enum):
    CAST = "Cast"
    TWEET = "Tweet"
    URL = "URL"
    DOI = "DOI"
    ISBN = "ISBN"
    CUSTOM = "Custom"


@dataclass
class ContentMetadata:
    """Normalised description of a piece of preserved content.

    Attributes:
        title: Non-empty display string.
        content_type: Which detector produced this record.
        author: Optional attribution.
        description: Optional body or summary text.
        source_url: Canonical origin URL (absolute http/https) or None.
        tags: Free-text labels; duplicates are dropped keeping first occurrence.
        extended_metadata: Detector-specific payload (cast data, DOI, ISBN, ...).
    """

    title: str
    content_type: ContentType
    author: str | None = None
    description: str | None = None
    source_url: str | None = None
    tags: list[str] = field(default_factory=list)
    extended_metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.title or not self.title.strip():
            raise ValidationError("Content title must not be empty")
        self.content_type = ContentType(self.content_type)
        if self.source_url is not None:
            self.source_url = validate_url(self.source_url)
        self.tags = list(dict.fromkeys(t for t in self.tags if t))

    @property
    def is_placeholder(self) -> bool:
        return bool(self.extended_metadata.get("placeholder"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "author": self.author,
            "description": self.description,
            "contentType": self.content_type.value,
            "sourceUrl": self.source_url,
            "tags": list(self.tags),
            "extendedMetadata": dict(self.extended_metadata),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContentMetadata:
        return cls(
            title=data["title"],
            content_type=ContentType(data["contentType"]),
            author=data.get("author"),
            description=data.get("description"),
            source_url=data.get("sourceUrl"),
            tags=list(data.get("tags") or []),
            extended_metadata=dict(data.get("extendedMetadata") or {}),
        )

    @classmethod
    def from_json(cls, raw: str) -> ContentMetadata:
        return cls.from_dict(json.loads(raw))


class BaseDetector(ABC):
    """Abstract base for all content-type detectors.

    A detector owns one ``content_type``. ``matches()`` must be a pure function
    of the URL string; ``extract()`` may call external services but must fall
    back to placeholder metadata rather than fail for transient API errors.
    """

    content_type: ContentType

    @abstractmethod
    def matches(self, url: str) -> bool:
        """Return True if *url* belongs to this detector."""

    @abstractmethod
    def extract(self, url: str) -> ContentMetadata:
        """Build ContentMetadata for *url*.

        Raises:
            ProcessingError: If *url* cannot be turned into metadata at all.
        """
