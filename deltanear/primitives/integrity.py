"""Integrity hashing primitives.

Provides deterministic SHA256 hashing for canonical intent trees.
Uses canonical JSON serialization (sorted keys, no whitespace) so the
same canonical tree always produces the same bytes and the same hash.

Non-ASCII text is emitted as raw UTF-8 rather than \\u escapes, matching
the byte layout produced by the on-chain verifier.
"""

import hashlib
import json
from typing import Any

from deltanear.primitives.errors import IntegrityError


def canonical_json(data: Any) -> str:
    """Serialize data to canonical JSON.

    Canonical form: sorted keys at every depth, no whitespace.

    Args:
        data: Data to serialize.

    Returns:
        Canonical JSON string.
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def canonical_bytes(data: Any) -> bytes:
    """UTF-8 encoded canonical JSON."""
    return canonical_json(data).encode("utf-8")


def compute_integrity(data: Any) -> str:
    """Compute deterministic SHA256 hash for a canonical tree.

    The caller is responsible for passing an already canonicalized tree;
    this function only serializes and hashes.

    Args:
        data: JSON-serializable tree.

    Returns:
        SHA256 hex digest (64 lowercase chars).
    """
    return hashlib.sha256(canonical_bytes(data)).hexdigest()


def verify_integrity(data: Any, expected: str) -> str:
    """Recompute the digest of data and compare it with expected.

    Args:
        data: JSON-serializable tree.
        expected: Digest the caller believes data hashes to.

    Returns:
        The recomputed digest.

    Raises:
        IntegrityError: If the digests differ.
    """
    actual = compute_integrity(data)
    if actual != expected.strip().lower():
        raise IntegrityError(
            "Intent hash mismatch", expected=expected, actual=actual
        )
    return actual
