"""Evermark HTTP API (Flask).

Routes:
  GET  /health
  POST /evermarks            create from {url, userFid?}
  GET  /evermarks            paginated list, newest first
  GET  /evermarks/<id>       one record
  POST /bot-webhook          signed Neynar webhook
  POST /storage              storage cost estimate for a base64 payload
  GET  /storage              public URL for a stored hash

Every response, including errors, is JSON.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import math
from datetime import datetime, timezone
from typing import Any

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from evermark import __version__
from evermark.bot.webhook import SIGNATURE_HEADER, verify_signature
from evermark.errors import DuplicateError, EvermarkError, ValidationError, error_response
from evermark.services import Services
from evermark.storage.pricing import calculate_cost, content_url

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_body(error: str, code: str, message: str) -> dict[str, Any]:
    return {"error": error, "code": code, "message": message, "timestamp": _now()}


def _json_body() -> dict[str, Any]:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _int_arg(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValidationError(f"'{name}' must be an integer") from exc


def _optional_fid(body: dict[str, Any]) -> int | None:
    fid = body.get("userFid")
    if fid is None:
        return None
    if isinstance(fid, bool) or not isinstance(fid, int) or fid < 0:
        raise ValidationError("userFid must be a non-negative integer")
    return fid


def create_app(services: Services) -> Flask:
    """Build the Flask application around an already wired object graph."""
    app = Flask("evermark")
    app.json.sort_keys = False
    service = services.service

    @app.errorhandler(EvermarkError)
    def _evermark_error(exc: EvermarkError):
        body = error_response(exc)
        if isinstance(exc, DuplicateError):
            body["existingTokenId"] = exc.existing_token_id
        return jsonify(body), exc.status_code

    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException):
        body = _error_body(exc.name, f"HTTP_{exc.code}", exc.description or exc.name)
        return jsonify(body), exc.code

    @app.errorhandler(Exception)
    def _unexpected(exc: Exception):
        logger.exception("Unhandled API error on %s %s", request.method, request.path)
        return jsonify(error_response(exc)), 500

    @app.get("/health")
    def health():
        return jsonify(
            {
                "status": "healthy",
                "service": "evermark",
                "version": __version__,
                "timestamp": _now(),
            }
        )

    @app.post("/evermarks")
    def create_evermark():
        body = _json_body()
        result = service.create_evermark(body.get("url"), _optional_fid(body))
        payload = {"success": True, **result.to_dict()}
        return jsonify(payload), 201

    @app.get("/evermarks")
    def list_evermarks():
        page = _int_arg("page", 1)
        limit = _int_arg("limit", DEFAULT_PAGE_SIZE)
        records, total = service.list_evermarks(page, limit)
        return jsonify(
            {
                "success": True,
                "evermarks": [r.to_dict() for r in records],
                "pagination": {
                    "page": page,
                    "limit": limit,
                    "total": total,
                    "totalPages": math.ceil(total / limit),
                },
            }
        )

    @app.get("/evermarks/<int:token_id>")
    def get_evermark(token_id: int):
        record = service.get_evermark(token_id)
        return jsonify({"success": True, "evermark": record.to_dict()})

    @app.post("/bot-webhook")
    def bot_webhook():
        secret = services.secrets.webhook_secret
        if not secret:
            logger.error("NEYNAR_WEBHOOK_SECRET not configured")
            return jsonify(
                _error_body("InternalServerError", "CONFIGURATION_ERROR", "Webhook secret not configured")
            ), 500

        raw = request.get_data(cache=False)
        signature = request.headers.get(SIGNATURE_HEADER)
        if not signature:
            logger.warning("Webhook rejected: missing signature")
            return jsonify(_error_body("Unauthorized", "MISSING_SIGNATURE", "Missing signature")), 401
        if not verify_signature(raw, signature, secret):
            logger.warning("Webhook rejected: invalid signature")
            return jsonify(_error_body("Unauthorized", "INVALID_SIGNATURE", "Invalid signature")), 401

        try:
            event = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValidationError("Webhook body is not valid JSON") from exc
        if not isinstance(event, dict):
            raise ValidationError("Webhook body must be a JSON object")

        outcome = services.webhook.handle(event)
        return jsonify({"success": True, "result": outcome})

    @app.post("/storage")
    def storage_upload():
        body = _json_body()
        data = body.get("file")
        if not data or not isinstance(data, str):
            raise ValidationError("File data is required")
        try:
            size = len(base64.b64decode(data, validate=True))
        except (binascii.Error, ValueError) as exc:
            raise ValidationError("File data must be base64 encoded") from exc

        storage_type = body.get("storageType") or "arweave"
        return jsonify(
            {
                "success": True,
                "upload": {
                    "fileSize": size,
                    "storageType": storage_type,
                    "cost": calculate_cost(size, services.config.storage.cost_per_mb_usd),
                    "timestamp": _now(),
                },
            }
        )

    @app.get("/storage")
    def storage_lookup():
        content_hash = request.args.get("hash")
        if not content_hash:
            raise ValidationError("Hash parameter is required")
        storage_type = request.args.get("type") or "ipfs"
        return jsonify(
            {
                "success": True,
                "content": {
                    "hash": content_hash,
                    "type": storage_type,
                    "url": content_url(content_hash, storage_type, services.config.ipfs.gateway),
                    "cached": False,
                },
            }
        )

    return app
