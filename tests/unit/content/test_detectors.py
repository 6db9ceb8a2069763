"""Tests for the content detectors."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from evermark.content.base import ContentType
from evermark.content.cast import CastDetector, cast_url, extract_cast_hash, is_cast_url
from evermark.content.doi import DoiDetector, extract_doi
from evermark.content.isbn import IsbnDetector, extract_isbn
from evermark.content.tweet import TweetDetector
from evermark.content.web import WebDetector
from evermark.errors import ExternalServiceError, ProcessingError

CAST_URL = "https://warpcast.com/alice/0xabc12345"


# ---------------------------------------------------------------------------
# Cast
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "url",
    [
        CAST_URL,
        "https://farcaster.xyz/alice/0xabc12345",
        "https://mobile.farcaster.xyz/alice/0xabc12345",
        "https://supercast.xyz/alice/0xABC12345",
    ],
)
def test_is_cast_url(url: str) -> None:
    assert is_cast_url(url)


def test_is_cast_url_rejects_other_hosts() -> None:
    assert not is_cast_url("https://example.com/alice/0xabc12345")
    assert not is_cast_url("https://warpcast.com/alice")


def test_extract_cast_hash() -> None:
    assert extract_cast_hash(CAST_URL) == "0xabc12345"
    assert extract_cast_hash("0xdeadbeef00") == "0xdeadbeef00"
    assert extract_cast_hash("https://example.com/0xdeadbeef") is None


def test_cast_url_shortens_hash() -> None:
    assert cast_url("bob", "0x1234567890abcdef") == "https://warpcast.com/bob/0x12345678"


def test_cast_placeholder_without_client() -> None:
    meta = CastDetector(None).extract(CAST_URL)

    assert meta.content_type is ContentType.CAST
    assert meta.is_placeholder
    assert meta.title.startswith("Cast by Farcaster User")
    assert meta.extended_metadata["castData"]["castHash"] == "0xabc12345"
    assert meta.tags == ["farcaster", "cast"]


def test_cast_from_neynar() -> None:
    client = MagicMock(can_read=True)
    client.fetch_cast.return_value = {
        "hash": "0xabc12345",
        "text": "gm farcaster",
        "timestamp": "2024-03-01T10:00:00Z",
        "author": {"username": "alice", "display_name": "Alice", "fid": 3, "pfp_url": "https://img/p.png"},
        "reactions": {"likes_count": 25, "recasts_count": 2},
        "replies": {"count": 4},
        "channel": {"name": "dev"},
    }

    meta = CastDetector(client).extract(CAST_URL)

    client.fetch_cast.assert_called_once_with(CAST_URL, id_type="url")
    assert meta.title == "Cast by Alice: gm farcaster"
    assert meta.author == "Alice"
    assert not meta.is_placeholder
    assert meta.tags == ["farcaster", "cast", "channel-dev", "author-alice", "popular"]
    assert "25 likes • 2 recasts • 4 replies" in meta.description
    assert meta.extended_metadata["imageUrl"] == "https://img/p.png"


def test_cast_falls_back_when_neynar_fails() -> None:
    client = MagicMock(can_read=True)
    client.fetch_cast.side_effect = ExternalServiceError("Neynar", "HTTP 500")

    meta = CastDetector(client).extract(CAST_URL)
    assert meta.is_placeholder


def test_cast_long_text_truncated_in_title() -> None:
    client = MagicMock(can_read=True)
    client.fetch_cast.return_value = {"text": "x" * 80, "author": {"username": "bob"}}

    meta = CastDetector(client).extract(CAST_URL)
    assert meta.title == "Cast by bob: " + "x" * 47 + "..."


# ---------------------------------------------------------------------------
# Tweet
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "url",
    [
        "https://twitter.com/jack/status/20",
        "https://x.com/jack/status/20",
        "https://mobile.twitter.com/jack/statuses/20",
    ],
)
def test_tweet_matches(url: str) -> None:
    assert TweetDetector().matches(url)


def test_tweet_extract() -> None:
    meta = TweetDetector().extract("https://x.com/Jack/status/20")
    assert meta.title == "Post by @Jack on X"
    assert meta.author == "@Jack"
    assert meta.tags == ["twitter", "tweet", "author-jack"]
    assert meta.extended_metadata["tweetData"] == {"tweetId": "20", "username": "Jack"}


def test_tweet_rejects_profile_url() -> None:
    detector = TweetDetector()
    assert not detector.matches("https://x.com/jack")
    with pytest.raises(ProcessingError):
        detector.extract("https://x.com/jack")


# ---------------------------------------------------------------------------
# DOI
# ---------------------------------------------------------------------------


def test_extract_doi() -> None:
    assert extract_doi("https://doi.org/10.1038/nature12373") == "10.1038/nature12373"
    assert extract_doi("https://dx.doi.org/10.1000%2Fxyz123") == "10.1000/xyz123"
    assert extract_doi("https://example.com/paper") is None


def test_doi_matches_only_doi_hosts() -> None:
    detector = DoiDetector(lookup=False)
    assert detector.matches("https://doi.org/10.1038/nature12373")
    assert not detector.matches("https://example.com/10.1038/nature12373")


def test_doi_placeholder_when_lookup_disabled() -> None:
    meta = DoiDetector(lookup=False).extract("https://doi.org/10.1038/nature12373")
    assert meta.title == "Academic Paper (10.1038/nature12373)"
    assert meta.is_placeholder
    assert meta.tags == ["doi", "paper", "academic"]


def test_doi_from_crossref() -> None:
    work = {
        "message": {
            "title": ["Quantum widgets"],
            "author": [{"given": "Ada", "family": "Lovelace"}, {"family": "Babbage"}],
            "container-title": ["Nature"],
            "publisher": "Springer",
            "published": {"date-parts": [[2013, 7, 4]]},
            "abstract": "<jats:p>Widgets  at scale.</jats:p>",
            "subject": ["Quantum Physics"],
            "is-referenced-by-count": 12,
        }
    }
    with patch("evermark.content.doi.request_json", return_value=work) as mock_req:
        meta = DoiDetector().extract("https://doi.org/10.1038/nature12373")

    assert mock_req.call_args.kwargs["service"] == "Crossref"
    assert meta.title == "Quantum widgets"
    assert meta.author == "Ada Lovelace, Babbage"
    assert meta.description == "Widgets at scale."
    assert "quantum-physics" in meta.tags
    assert meta.extended_metadata["publishedDate"] == "2013-07-04"
    assert meta.extended_metadata["journal"] == "Nature"


def test_doi_crossref_failure_gives_placeholder() -> None:
    with patch(
        "evermark.content.doi.request_json",
        side_effect=ExternalServiceError("Crossref", "HTTP 404"),
    ):
        meta = DoiDetector().extract("https://doi.org/10.1038/nature12373")
    assert meta.is_placeholder


# ---------------------------------------------------------------------------
# ISBN
# ---------------------------------------------------------------------------


def test_extract_isbn_validates_checksum() -> None:
    assert extract_isbn("https://openlibrary.org/isbn/9780140328721") == "9780140328721"
    assert extract_isbn("https://books.example/item?isbn=0-14-032872-6") == "0140328726"
    assert extract_isbn("https://openlibrary.org/isbn/9780140328722") is None


def test_isbn_matches_requires_keyword() -> None:
    detector = IsbnDetector(lookup=False)
    assert detector.matches("https://openlibrary.org/isbn/9780140328721")
    assert not detector.matches("https://example.com/9780140328721")


def test_isbn_placeholder() -> None:
    meta = IsbnDetector(lookup=False).extract("https://openlibrary.org/isbn/9780140328721")
    assert meta.title == "Book (ISBN 9780140328721)"
    assert meta.is_placeholder


def test_isbn_from_open_library() -> None:
    book = {
        "title": "Fantastic Mr Fox",
        "subtitle": "A Story",
        "by_statement": "Roald Dahl",
        "publishers": ["Puffin"],
        "publish_date": "1988",
        "number_of_pages": 96,
        "description": {"value": "A fox outwits three farmers."},
    }
    with patch("evermark.content.isbn.request_json", return_value=book):
        meta = IsbnDetector().extract("https://openlibrary.org/isbn/9780140328721")

    assert meta.title == "Fantastic Mr Fox: A Story"
    assert meta.author == "Roald Dahl"
    assert meta.description == "A fox outwits three farmers."
    assert meta.extended_metadata["publisher"] == "Puffin"
    assert meta.extended_metadata["pageCount"] == 96


# ---------------------------------------------------------------------------
# Web
# ---------------------------------------------------------------------------


def test_web_extract_from_hostname() -> None:
    meta = WebDetector().extract("https://blog.example.com/post/1")
    assert meta.content_type is ContentType.URL
    assert meta.title == "Web Content from blog.example.com"
    assert meta.tags == ["web", "url", "blog-example-com"]
    assert meta.extended_metadata == {"siteName": "blog.example.com"}
