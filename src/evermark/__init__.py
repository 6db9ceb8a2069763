"""Evermark: preserve web content, casts, papers and books as pinned records."""

__version__ = "0.1.0"
