"""Evermark HTTP API."""

from evermark.api.app import create_app

__all__ = ["create_app"]
