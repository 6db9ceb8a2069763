"""Evermark error taxonomy and API error bodies.

Every error carries a machine-readable ``code`` and an HTTP-style
``status_code`` so the API boundary can translate it without inspecting the
message. The bot never shows these directly; it maps them to chat replies.

Usage:
    from evermark.errors import DuplicateError, error_response
    raise DuplicateError("Already evermarked", existing_token_id=42)
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlparse

MAX_URL_LENGTH = 2048
_ALLOWED_SCHEMES = {"http", "https"}


class EvermarkError(Exception):
    """Base class for all domain errors raised by Evermark."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details


class ValidationError(EvermarkError):
    """Bad input, rejected before the pipeline runs."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "VALIDATION_ERROR", 400, details)


class NotFoundError(EvermarkError):
    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, "NOT_FOUND", 404)


class DuplicateError(EvermarkError):
    """The source URL is already preserved.

    Attributes:
        existing_token_id: Token id of the record that already holds the URL.
    """

    def __init__(self, message: str, existing_token_id: int) -> None:
        super().__init__(
            message,
            "DUPLICATE_CONTENT",
            409,
            {"existingTokenId": existing_token_id},
        )
        self.existing_token_id = existing_token_id


class ProcessingError(EvermarkError):
    """Metadata extraction or upload could not be completed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, "PROCESSING_ERROR", 422, details)


class ExternalServiceError(EvermarkError):
    """A third-party API (Neynar, Pinata, Crossref, RPC) failed.

    Attributes:
        service: Short name of the failing service.
    """

    def __init__(
        self, service: str, message: str, details: dict[str, Any] | None = None
    ) -> None:
        super().__init__(
            f"{service} service error: {message}", "EXTERNAL_SERVICE_ERROR", 503, details
        )
        self.service = service


def error_response(error: Exception) -> dict[str, Any]:
    """Build the JSON error body returned by the HTTP API.

    Non-Evermark exceptions are reported as ``InternalServerError`` so the
    caller never sees an unstructured payload.
    """
    timestamp = datetime.now(timezone.utc).isoformat()
    if isinstance(error, EvermarkError):
        body: dict[str, Any] = {
            "error": type(error).__name__,
            "code": error.code,
            "message": error.message,
            "timestamp": timestamp,
        }
        if error.details:
            body["details"] = error.details
        return body

    return {
        "error": "InternalServerError",
        "code": "INTERNAL_ERROR",
        "message": str(error) or "An unexpected error occurred",
        "timestamp": timestamp,
    }


def validate_url(url: object) -> str:
    """Return the trimmed *url* or raise ValidationError.

    Accepts absolute http(s) URLs with a hostname, at most 2048 characters.
    """
    if not url or not isinstance(url, str):
        raise ValidationError("URL is required")

    trimmed = url.strip()
    if not trimmed:
        raise ValidationError("URL cannot be empty")
    if len(trimmed) > MAX_URL_LENGTH:
        raise ValidationError(f"URL is too long (maximum {MAX_URL_LENGTH} characters)")

    try:
        parsed = urlparse(trimmed)
    except ValueError as exc:
        raise ValidationError("Invalid URL format") from exc

    if parsed.scheme not in _ALLOWED_SCHEMES:
        raise ValidationError("Only HTTP and HTTPS URLs are supported")
    if not parsed.hostname:
        raise ValidationError("Invalid URL format")
    return trimmed


def is_valid_url(url: object) -> bool:
    try:
        validate_url(url)
    except ValidationError:
        return False
    return True
