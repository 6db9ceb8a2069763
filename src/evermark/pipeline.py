"""Content pipeline: turn a URL into a stored, pinned evermark record.

create_evermark() steps:
  1. validate the URL
  2. detect the content type (pure function of the URL)
  3. reject exact duplicates before any extraction work
  4. extract metadata with the matching detector
  5. resolve the requesting user (non-fatal)
  6. insert the record as ``pending``
  7. pin NFT metadata to IPFS (``metadata_uploaded`` or ``ipfs_failed``)
  8. enqueue a background mint when minting is configured
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlparse

from evermark.content.base import ContentMetadata
from evermark.content.registry import DetectorRegistry
from evermark.db.models import EvermarkRecord, ProcessingStatus
from evermark.db.repository import Repository
from evermark.errors import DuplicateError, NotFoundError, ValidationError, validate_url
from evermark.minting import MintQueue
from evermark.storage.ipfs import PinataClient

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


@dataclass
class CreationResult:
    token_id: int
    metadata: ContentMetadata
    storage_hash: str | None
    status: ProcessingStatus

    def to_dict(self) -> dict[str, Any]:
        return {
            "tokenId": self.token_id,
            "metadata": self.metadata.to_dict(),
            "ipfsHash": self.storage_hash,
            "processingStatus": self.status.value,
        }


@dataclass
class UserStats:
    total_saves: int = 0
    this_month: int = 0
    tags_used: int = 0
    collections: int = 0
    storage_bytes: int = 0
    top_domain: str | None = None


class EvermarkService:
    """Creates and queries evermark records.

    Args:
        repo: Repository over the shared database connection.
        registry: Ordered content detectors.
        ipfs: Pinata client; None disables uploads (records end as ``ipfs_failed``).
        mint_queue: Optional background minter.
    """

    def __init__(
        self,
        repo: Repository,
        registry: DetectorRegistry,
        ipfs: PinataClient | None = None,
        mint_queue: MintQueue | None = None,
    ) -> None:
        self.repo = repo
        self.registry = registry
        self.ipfs = ipfs
        self.mint_queue = mint_queue

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_evermark(self, url: str, user_fid: int | None = None) -> CreationResult:
        """Preserve *url* and return the produced record subset.

        Raises:
            ValidationError: If *url* is not an acceptable http(s) URL.
            DuplicateError: If *url* is already preserved (exact match).
            ProcessingError: If no metadata can be extracted.
        """
        url = validate_url(url)
        detector = self.registry.detect(url)
        logger.info("Creating evermark for %s (%s)", url, detector.content_type.value)

        existing = self.repo.get_by_source_url(url)
        if existing is not None:
            raise DuplicateError("Content already preserved", existing.token_id)

        metadata = self.registry.extract(url)
        if metadata.is_placeholder:
            logger.warning("Using placeholder metadata for %s", url)

        user_id: int | None = None
        if user_fid is not None:
            try:
                user_id = self.repo.get_or_create_user(user_fid).id
            except Exception:
                logger.warning("Could not resolve user fid=%s; saving without owner", user_fid, exc_info=True)

        token_id = self.repo.add_evermark(url, metadata, user_id)
        logger.info("Stored evermark #%d", token_id)

        storage_hash, status = self._upload(token_id, metadata)

        if self.mint_queue is not None and storage_hash:
            self.mint_queue.submit(
                token_id,
                f"ipfs://{storage_hash}",
                metadata.title,
                metadata.author or "Unknown",
            )

        return CreationResult(
            token_id=token_id,
            metadata=metadata,
            storage_hash=storage_hash,
            status=status,
        )

    def _upload(self, token_id: int, metadata: ContentMetadata) -> tuple[str | None, ProcessingStatus]:
        if self.ipfs is None:
            error = "IPFS configuration not available"
            logger.warning("IPFS upload skipped for #%d: %s", token_id, error)
            self.repo.mark_upload_failed(token_id, error)
            return None, ProcessingStatus.IPFS_FAILED
        try:
            storage_hash = self.ipfs.upload_metadata(metadata)
        except Exception as exc:
            logger.warning("IPFS upload failed for #%d: %s", token_id, exc)
            self.repo.mark_upload_failed(token_id, str(exc) or "IPFS upload failed")
            return None, ProcessingStatus.IPFS_FAILED
        self.repo.mark_uploaded(token_id, storage_hash)
        return storage_hash, ProcessingStatus.METADATA_UPLOADED

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_evermark(self, token_id: int) -> EvermarkRecord:
        record = self.repo.get_evermark(token_id)
        if record is None:
            raise NotFoundError(f"Evermark {token_id} not found")
        return record

    def list_evermarks(self, page: int = 1, limit: int = 20) -> tuple[list[EvermarkRecord], int]:
        """Return one page of records (newest first) and the total count."""
        if page < 1:
            raise ValidationError("page must be >= 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        records = self.repo.list_evermarks(limit, (page - 1) * limit)
        return records, self.repo.count_evermarks()

    def search(self, query: str, user_fid: int | None = None, limit: int = 5) -> list[EvermarkRecord]:
        """Full-text search, restricted to *user_fid*'s records when given."""
        user_id = None
        if user_fid is not None:
            user = self.repo.get_user_by_fid(user_fid)
            if user is None:
                return []
            user_id = user.id
        return self.repo.search(query, user_id=user_id, limit=limit)

    def recent_for_user(self, user_fid: int, limit: int | None = 5) -> list[EvermarkRecord]:
        user = self.repo.get_user_by_fid(user_fid)
        if user is None:
            return []
        return self.repo.list_for_user(user.id, limit)

    def collections_for_user(self, user_fid: int) -> dict[str, list[EvermarkRecord]]:
        """Group the user's records by content type, largest group first."""
        groups: dict[str, list[EvermarkRecord]] = {}
        for record in self.recent_for_user(user_fid, limit=None):
            groups.setdefault(record.metadata.content_type.value, []).append(record)
        return dict(sorted(groups.items(), key=lambda kv: (-len(kv[1]), kv[0])))

    def user_stats(self, user_fid: int) -> UserStats:
        records = self.recent_for_user(user_fid, limit=None)
        if not records:
            return UserStats()

        month_prefix = datetime.now(timezone.utc).strftime("%Y-%m")
        tags = {tag for r in records for tag in r.metadata.tags}
        domains = Counter(urlparse(r.source_url).hostname for r in records)
        return UserStats(
            total_saves=len(records),
            this_month=sum(1 for r in records if (r.created_at or "").startswith(month_prefix)),
            tags_used=len(tags),
            collections=len({r.metadata.content_type for r in records}),
            storage_bytes=sum(len(r.metadata.to_json().encode("utf-8")) for r in records),
            top_domain=domains.most_common(1)[0][0],
        )

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def add_tags(self, url: str, tags: list[str], user_fid: int | None = None) -> EvermarkRecord:
        """Append *tags* to the record preserved for *url*.

        When *user_fid* is given the record must belong to that user.

        Raises:
            NotFoundError: If no matching record exists.
        """
        record = self.repo.get_by_source_url(url.strip())
        if record is None:
            raise NotFoundError(f"No evermark found for {url}")
        if user_fid is not None:
            user = self.repo.get_user_by_fid(user_fid)
            if user is None or record.owner_user_id != user.id:
                raise NotFoundError(f"No evermark found for {url} in your archive")

        cleaned = [t.strip() for t in tags if t and t.strip()]
        updated = self.repo.update_tags(record.token_id, record.metadata.tags + cleaned)
        if updated is None:
            raise NotFoundError(f"Evermark #{record.token_id} no longer exists")
        logger.info("Tagged evermark #%d with %s", record.token_id, ", ".join(cleaned))
        return updated
