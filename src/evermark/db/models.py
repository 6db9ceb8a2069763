"""Domain models for the Evermark database layer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from evermark.content.base import ContentMetadata


class ProcessingStatus(str, Enum):
    """Upload state of a record: pending → metadata_uploaded | ipfs_failed."""

    PENDING = "pending"
    METADATA_UPLOADED = "metadata_uploaded"
    IPFS_FAILED = "ipfs_failed"
    COMPLETED = "completed"


@dataclass
class User:
    id: int
    fid: int
    username: str | None = None
    created_at: str | None = None


@dataclass
class EvermarkRecord:
    token_id: int
    source_url: str
    metadata: ContentMetadata
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    ipfs_hash: str | None = None
    arweave_ref: str | None = None
    processing_error: str | None = None
    owner_user_id: int | None = None
    mint_tx_hash: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict:
        return {
            "tokenId": self.token_id,
            "sourceUrl": self.source_url,
            "title": self.metadata.title,
            "metadata": self.metadata.to_dict(),
            "processingStatus": self.processing_status.value,
            "ipfsHash": self.ipfs_hash,
            "arweaveRef": self.arweave_ref,
            "processingError": self.processing_error,
            "ownerUserId": self.owner_user_id,
            "mintTxHash": self.mint_tx_hash,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
