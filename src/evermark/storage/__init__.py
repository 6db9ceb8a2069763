"""Evermark storage: IPFS pinning and permanent-storage pricing."""

from evermark.storage.ipfs import PinataClient, build_nft_metadata, is_valid_ipfs_hash
from evermark.storage.pricing import calculate_cost, content_url

__all__ = [
    "PinataClient",
    "build_nft_metadata",
    "calculate_cost",
    "content_url",
    "is_valid_ipfs_hash",
]
