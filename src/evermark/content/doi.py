"""DOI detector: academic papers resolved through the Crossref works API.

Matches doi.org / dx.doi.org links. Crossref failures fall back to
placeholder metadata built from the DOI itself.
"""

from __future__ import annotations

import logging
import re
import urllib.parse
from typing import Any

from evermark.content.base import BaseDetector, ContentMetadata, ContentType
from evermark.errors import ExternalServiceError, ProcessingError
from evermark.net import DEFAULT_TIMEOUT, request_json

logger = logging.getLogger(__name__)

_DOI_HOST_RE = re.compile(r"^https?://(?:dx\.)?doi\.org/", re.IGNORECASE)
_DOI_RE = re.compile(r"10\.\d{4,9}/[^\s?#]+")
_CROSSREF_API = "https://api.crossref.org/works/"


def extract_doi(url: str) -> str | None:
    match = _DOI_RE.search(urllib.parse.unquote(url))
    return match.group(0).rstrip(".") if match else None


class DoiDetector(BaseDetector):
    """Detect DOI links and fetch paper metadata from Crossref.

    Args:
        timeout: Per-request timeout in seconds.
        lookup: Set False to skip the Crossref call (offline use).
    """

    content_type = ContentType.DOI

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, lookup: bool = True) -> None:
        self._timeout = timeout
        self._lookup = lookup

    def matches(self, url: str) -> bool:
        return bool(_DOI_HOST_RE.match(url.strip())) and extract_doi(url) is not None

    def extract(self, url: str) -> ContentMetadata:
        doi = extract_doi(url)
        if not doi:
            raise ProcessingError(f"No DOI found in '{url}'")

        work = self._fetch_work(doi)
        if work is None:
            return ContentMetadata(
                title=f"Academic Paper ({doi})",
                author="Unknown",
                description=f"Academic paper identified by DOI {doi}",
                content_type=self.content_type,
                source_url=url,
                tags=["doi", "paper", "academic"],
                extended_metadata={"doi": doi, "placeholder": True},
            )

        title = _first(work.get("title")) or f"Academic Paper ({doi})"
        authors = [
            " ".join(p for p in (a.get("given"), a.get("family")) if p)
            for a in work.get("author") or []
        ]
        authors = [a for a in authors if a]
        journal = _first(work.get("container-title"))
        published = _published_date(work)

        tags = ["doi", "paper", "academic"]
        tags.extend(s.lower().replace(" ", "-") for s in (work.get("subject") or [])[:3])

        return ContentMetadata(
            title=title,
            author=", ".join(authors) or "Unknown",
            description=_strip_jats(work.get("abstract") or "") or None,
            content_type=self.content_type,
            source_url=url,
            tags=tags,
            extended_metadata={
                "doi": doi,
                "authors": authors,
                "journal": journal,
                "publisher": work.get("publisher"),
                "publishedDate": published,
                "citations": work.get("is-referenced-by-count"),
            },
        )

    def _fetch_work(self, doi: str) -> dict[str, Any] | None:
        if not self._lookup:
            return None
        try:
            result = request_json(
                "GET",
                _CROSSREF_API + urllib.parse.quote(doi, safe="/"),
                service="Crossref",
                timeout=self._timeout,
            )
        except ExternalServiceError as exc:
            logger.warning("Crossref lookup failed for %s: %s", doi, exc)
            return None
        message = result.get("message") if isinstance(result, dict) else None
        return message or None


def _first(values: Any) -> str | None:
    if isinstance(values, list) and values:
        return str(values[0])
    return None


def _published_date(work: dict[str, Any]) -> str | None:
    parts = ((work.get("published") or work.get("issued") or {}).get("date-parts") or [[]])[0]
    if not parts:
        return None
    return "-".join(f"{p:02d}" if i else str(p) for i, p in enumerate(parts))


def _strip_jats(text: str) -> str:
    """Crossref abstracts are JATS XML fragments; keep only the text."""
    return re.sub(r"\s+", " ", re.sub(r"<[^>]+>", " ", text)).strip()
