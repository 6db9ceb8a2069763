"""Pinata-backed IPFS storage for evermark NFT metadata.

Metadata follows the ERC-721 JSON shape (name, description, image,
attributes) with an extra ``evermark`` block carrying the full record.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any

from evermark.content.base import ContentMetadata
from evermark.errors import ExternalServiceError
from evermark.net import DEFAULT_TIMEOUT, request_json

logger = logging.getLogger(__name__)

_SERVICE = "IPFS"
METADATA_VERSION = "1.0"

_IPFS_HASH_RE = re.compile(r"^(Qm[1-9A-HJ-NP-Za-km-z]{44,}|ba[A-Za-z2-7]{56,})$")


def build_nft_metadata(metadata: ContentMetadata) -> dict[str, Any]:
    """Return the NFT-compatible JSON document pinned for *metadata*."""
    attributes = [
        {"trait_type": "Content Type", "value": metadata.content_type.value},
        {"trait_type": "Author", "value": metadata.author or "Unknown"},
        {"trait_type": "Source URL", "value": metadata.source_url or ""},
    ]
    attributes.extend({"trait_type": "Tag", "value": tag} for tag in metadata.tags)
    return {
        "name": metadata.title,
        "description": metadata.description or "",
        "image": metadata.extended_metadata.get("imageUrl") or "",
        "attributes": attributes,
        "evermark": {
            "version": METADATA_VERSION,
            "sourceUrl": metadata.source_url,
            "contentType": metadata.content_type.value,
            "tags": list(metadata.tags),
            "extendedMetadata": dict(metadata.extended_metadata),
        },
    }


def is_valid_ipfs_hash(value: str) -> bool:
    """True for CIDv0 (``Qm...``) and base32 CIDv1 (``ba...``) strings."""
    return bool(_IPFS_HASH_RE.match(value or ""))


class PinataClient:
    """Pins JSON documents to IPFS through the Pinata API.

    Args:
        jwt: Pinata JWT. Uploads fail with ExternalServiceError when empty.
        api_base: Pinata API root.
        gateway: Public gateway used to build content URLs.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        jwt: str,
        api_base: str = "https://api.pinata.cloud",
        gateway: str = "https://gateway.pinata.cloud/ipfs",
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.jwt = jwt
        self.api_base = api_base.rstrip("/")
        self.gateway = gateway.rstrip("/")
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.jwt)

    def gateway_url(self, ipfs_hash: str) -> str:
        return f"{self.gateway}/{ipfs_hash}"

    def upload_metadata(self, metadata: ContentMetadata) -> str:
        """Pin the NFT metadata for *metadata* and return its IPFS hash.

        Raises:
            ExternalServiceError: If Pinata is not configured, the request
                fails, or the response carries no hash.
        """
        if not self.configured:
            raise ExternalServiceError(_SERVICE, "IPFS configuration not available")

        body = {
            "pinataContent": build_nft_metadata(metadata),
            "pinataMetadata": {
                "name": f"evermark-{metadata.title[:50]}",
                "keyvalues": {
                    "contentType": metadata.content_type.value,
                    "author": metadata.author or "",
                    "createdAt": datetime.now(timezone.utc).isoformat(),
                },
            },
        }
        result = request_json(
            "POST",
            f"{self.api_base}/pinning/pinJSONToIPFS",
            service=_SERVICE,
            headers={"Authorization": f"Bearer {self.jwt}"},
            payload=body,
            timeout=self.timeout,
        )
        ipfs_hash = result.get("IpfsHash") if isinstance(result, dict) else None
        if not ipfs_hash:
            raise ExternalServiceError(_SERVICE, "response missing IpfsHash")
        logger.info("Pinned metadata for %r as %s", metadata.title, ipfs_hash)
        return ipfs_hash
