"""Content digests and canonical JSON encoding.

Digests are SHA-256 over raw bytes; callers decode any transport
encoding (base64, multipart) before hashing.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any


def digest(data: bytes) -> str:
    """Return the lower-case hex SHA-256 digest of raw bytes.

    Args:
        data: Raw document bytes

    Returns:
        64-character hex digest
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError("Digest input must be raw bytes")
    return hashlib.sha256(bytes(data)).hexdigest()


def digests_match(first: str, second: str) -> bool:
    """Two digests match iff their lower-cased hex forms are equal."""
    if not first or not second:
        return False
    return first.lower() == second.lower()


def canonical_json(data: dict[str, Any]) -> bytes:
    """Encode a mapping to a stable byte sequence for signing."""
    if not data:
        raise ValueError("Data cannot be empty")
    encoded = json.dumps(data, sort_keys=True, separators=(',', ':'), ensure_ascii=False)
    return encoded.encode('utf-8')
