"""Hashing utilities."""

from __future__ import annotations

import hashlib

FINGERPRINT_LENGTH = 16


def sha256_bytes(data: bytes) -> str:
    """Return hex digest for bytes input."""
    return hashlib.sha256(data).hexdigest()


def sha256_text(text: str) -> str:
    """Return hex digest for UTF-8 encoded text."""
    return sha256_bytes(text.encode("utf-8"))


def content_fingerprint(text: str) -> str:
    """Short, stable digest used to detect duplicate captures."""
    return sha256_text(text)[:FINGERPRINT_LENGTH]
