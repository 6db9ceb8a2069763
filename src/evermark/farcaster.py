"""Neynar API client: cast lookup and cast publishing for the Farcaster bot.

Endpoints (v2):
  GET  /v2/farcaster/cast?identifier=<hash|url>&type=<hash|url>
  POST /v2/farcaster/cast  {signer_uuid, text, parent?}
"""

from __future__ import annotations

import logging
from typing import Any

from evermark.errors import ExternalServiceError
from evermark.net import DEFAULT_TIMEOUT, request_json

logger = logging.getLogger(__name__)

_SERVICE = "Neynar"


class NeynarClient:
    """Thin wrapper around the Neynar REST API.

    Args:
        api_key: Neynar API key. Reads fail fast when empty.
        signer_uuid: Managed signer used to publish casts as the bot.
        api_base: API root, e.g. ``https://api.neynar.com``.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        api_key: str,
        signer_uuid: str = "",
        api_base: str = "https://api.neynar.com",
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.api_key = api_key
        self.signer_uuid = signer_uuid
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    @property
    def can_read(self) -> bool:
        return bool(self.api_key)

    @property
    def can_publish(self) -> bool:
        return bool(self.api_key and self.signer_uuid)

    def _headers(self) -> dict[str, str]:
        return {"x-api-key": self.api_key}

    def fetch_cast(self, identifier: str, id_type: str = "hash") -> dict[str, Any]:
        """Return the raw ``cast`` object for a hash or a cast URL.

        Raises:
            ExternalServiceError: If no API key is configured, the request
                fails, or the response carries no cast.
        """
        if not self.can_read:
            raise ExternalServiceError(_SERVICE, "NEYNAR_API_KEY is not configured")

        result = request_json(
            "GET",
            f"{self.api_base}/v2/farcaster/cast",
            service=_SERVICE,
            headers=self._headers(),
            params={"identifier": identifier, "type": id_type},
            timeout=self.timeout,
        )
        cast = result.get("cast") if isinstance(result, dict) else None
        if not cast:
            raise ExternalServiceError(_SERVICE, "response missing cast data")
        return cast

    def publish_cast(self, text: str, parent: str | None = None) -> str:
        """Publish *text* as the bot (as a reply when *parent* is set).

        Returns:
            Hash of the new cast.
        """
        if not self.can_publish:
            raise ExternalServiceError(
                _SERVICE, "NEYNAR_API_KEY and BOT_SIGNER_UUID are required to publish"
            )

        payload: dict[str, Any] = {"signer_uuid": self.signer_uuid, "text": text}
        if parent:
            payload["parent"] = parent

        result = request_json(
            "POST",
            f"{self.api_base}/v2/farcaster/cast",
            service=_SERVICE,
            headers=self._headers(),
            payload=payload,
            timeout=self.timeout,
        )
        cast_hash = (result.get("cast") or {}).get("hash", "") if isinstance(result, dict) else ""
        logger.info("Published cast %s (parent=%s)", cast_hash or "?", parent)
        return cast_hash
