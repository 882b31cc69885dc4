"""Cryptographic helpers — hashing."""

from __future__ import annotations

import hashlib

DIGEST_SIZE = 32


def sha256(data: bytes) -> bytes:
    """Single SHA-256 hash."""
    return hashlib.sha256(data).digest()


def sha256_hex(data: bytes) -> str:
    """SHA-256 hash rendered as lowercase hex."""
    return hashlib.sha256(data).hexdigest()
