"""JSON-over-HTTP helper for the third-party APIs Evermark talks to.

All outbound calls (Neynar, Pinata, Crossref, Open Library) go through
request_json() so they share the same rules:
- Allowed URL schemes: https:// and http:// only.
- Every call has a timeout; expiry is reported like any other failure.
- Max response body: 2 MB.
- Non-2xx responses and undecodable bodies raise ExternalServiceError.
"""

from __future__ import annotations

import json
import socket
import urllib.error
import urllib.parse
import urllib.request
from http.client import HTTPException, HTTPResponse
from typing import Any

from evermark.errors import ExternalServiceError

_USER_AGENT = "evermark/0.1"
_MAX_BYTES = 2 * 1024 * 1024
_ALLOWED_SCHEMES = {"https", "http"}
DEFAULT_TIMEOUT = 10.0


def request_json(
    method: str,
    url: str,
    *,
    service: str,
    headers: dict[str, str] | None = None,
    params: dict[str, str] | None = None,
    payload: Any = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Any:
    """Send a request and decode the JSON response.

    Args:
        method: HTTP method ("GET", "POST", ...).
        url: Absolute endpoint URL.
        service: Service name used in error messages (e.g. "Neynar").
        headers: Extra request headers.
        params: Query-string parameters appended to *url*.
        payload: JSON-serialisable request body, or None.
        timeout: Connect + read timeout in seconds.

    Returns:
        The decoded JSON document (dict, list, ...).

    Raises:
        ExternalServiceError: On network failure, timeout, non-2xx status,
            oversized or non-JSON body.
    """
    parsed = urllib.parse.urlparse(url)
    if parsed.scheme not in _ALLOWED_SCHEMES:
        raise ValueError(f"Unsupported URL scheme '{parsed.scheme}' for {service}.")

    if params:
        url = f"{url}?{urllib.parse.urlencode(params)}"

    req_headers = {"User-Agent": _USER_AGENT, "Accept": "application/json"}
    data: bytes | None = None
    if payload is not None:
        data = json.dumps(payload).encode("utf-8")
        req_headers["Content-Type"] = "application/json"
    if headers:
        req_headers.update(headers)

    request = urllib.request.Request(url, data=data, headers=req_headers, method=method)

    try:
        response: HTTPResponse = urllib.request.urlopen(request, timeout=timeout)
    except urllib.error.HTTPError as exc:
        body = exc.read(2048).decode("utf-8", errors="replace")
        raise ExternalServiceError(
            service, f"HTTP {exc.code}: {body}", {"status": exc.code}
        ) from exc
    except (urllib.error.URLError, socket.timeout, TimeoutError) as exc:
        raise ExternalServiceError(service, f"request failed: {exc}") from exc

    try:
        with response:
            body_bytes = response.read(_MAX_BYTES + 1)
    except (OSError, HTTPException) as exc:
        raise ExternalServiceError(service, f"reading response failed: {exc}") from exc
    if len(body_bytes) > _MAX_BYTES:
        raise ExternalServiceError(service, "response body too large")

    try:
        return json.loads(body_bytes.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ExternalServiceError(service, "response is not valid JSON") from exc
