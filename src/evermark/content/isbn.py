"""ISBN detector: book links resolved through the Open Library API.

A URL is treated as a book when it mentions "isbn" and carries a valid
ISBN-10 or ISBN-13 (checksum verified), e.g.
  https://openlibrary.org/isbn/9780140328721
  https://example-books.com/item?isbn=0-14-032872-6
"""

from __future__ import annotations

import logging
import re
from typing import Any

from evermark.content.base import BaseDetector, ContentMetadata, ContentType
from evermark.errors import ExternalServiceError, ProcessingError
from evermark.net import DEFAULT_TIMEOUT, request_json

logger = logging.getLogger(__name__)

_ISBN_CANDIDATE_RE = re.compile(r"(?<![\dX])(?:97[89][-\s]?)?\d(?:[-\s]?\d){8}[-\s]?[\dX](?![\dX])", re.I)
_OPEN_LIBRARY_API = "https://openlibrary.org/isbn/{isbn}.json"


def _isbn10_ok(digits: str) -> bool:
    total = 0
    for i, ch in enumerate(digits):
        value = 10 if ch in "xX" else int(ch)
        if ch in "xX" and i != 9:
            return False
        total += (10 - i) * value
    return total % 11 == 0


def _isbn13_ok(digits: str) -> bool:
    if not digits.isdigit():
        return False
    total = sum(int(d) * (1 if i % 2 == 0 else 3) for i, d in enumerate(digits[:12]))
    return (10 - total % 10) % 10 == int(digits[12])


def extract_isbn(text: str) -> str | None:
    """Return the first checksum-valid ISBN in *text* (digits only), or None."""
    for match in _ISBN_CANDIDATE_RE.finditer(text):
        digits = re.sub(r"[-\s]", "", match.group(0)).upper()
        if len(digits) == 13 and _isbn13_ok(digits):
            return digits
        if len(digits) == 10 and _isbn10_ok(digits):
            return digits
    return None


class IsbnDetector(BaseDetector):
    """Detect ISBN-bearing URLs and fetch book metadata from Open Library."""

    content_type = ContentType.ISBN

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, lookup: bool = True) -> None:
        self._timeout = timeout
        self._lookup = lookup

    def matches(self, url: str) -> bool:
        return "isbn" in url.lower() and extract_isbn(url) is not None

    def extract(self, url: str) -> ContentMetadata:
        isbn = extract_isbn(url)
        if not isbn:
            raise ProcessingError(f"No valid ISBN found in '{url}'")

        book = self._fetch_book(isbn)
        if book is None:
            return ContentMetadata(
                title=f"Book (ISBN {isbn})",
                author="Unknown",
                description=f"Book identified by ISBN {isbn}",
                content_type=self.content_type,
                source_url=url,
                tags=["isbn", "book"],
                extended_metadata={"isbn": isbn, "placeholder": True},
            )

        publishers = book.get("publishers") or []
        subtitle = book.get("subtitle")
        title = book.get("title") or f"Book (ISBN {isbn})"
        if subtitle:
            title = f"{title}: {subtitle}"

        return ContentMetadata(
            title=title,
            author=book.get("by_statement") or "Unknown",
            description=_description(book),
            content_type=self.content_type,
            source_url=url,
            tags=["isbn", "book"],
            extended_metadata={
                "isbn": isbn,
                "publisher": publishers[0] if publishers else None,
                "publishedDate": book.get("publish_date"),
                "pageCount": book.get("number_of_pages"),
            },
        )

    def _fetch_book(self, isbn: str) -> dict[str, Any] | None:
        if not self._lookup:
            return None
        try:
            result = request_json(
                "GET",
                _OPEN_LIBRARY_API.format(isbn=isbn),
                service="OpenLibrary",
                timeout=self._timeout,
            )
        except ExternalServiceError as exc:
            logger.warning("Open Library lookup failed for %s: %s", isbn, exc)
            return None
        return result if isinstance(result, dict) and result.get("title") else None


def _description(book: dict[str, Any]) -> str | None:
    desc = book.get("description")
    if isinstance(desc, dict):
        desc = desc.get("value")
    return str(desc) if desc else None
