"""Permanent-storage cost estimates."""

from __future__ import annotations

from typing import Any

DEFAULT_COST_PER_MB_USD = 0.01


def calculate_cost(size_bytes: int, cost_per_mb: float = DEFAULT_COST_PER_MB_USD) -> dict[str, Any]:
    """Estimate the Arweave cost of storing *size_bytes* bytes.

    Flat per-megabyte pricing (1 MB = 1024 * 1024 bytes).
    """
    if size_bytes < 0:
        raise ValueError("size_bytes must be non-negative")
    size_mb = size_bytes / (1024 * 1024)
    return {
        "bytes": size_bytes,
        "costUSD": size_mb * cost_per_mb,
        "currency": "USD",
        "provider": "arweave",
    }


def content_url(content_hash: str, storage_type: str = "ipfs", gateway: str = "https://gateway.pinata.cloud/ipfs") -> str:
    """Public URL for *content_hash* on the given storage backend."""
    if storage_type == "arweave":
        return f"https://arweave.net/{content_hash}"
    return f"{gateway.rstrip('/')}/{content_hash}"
