"""Root intent canonicalization and hashing.

Pipeline: raw document -> root key check -> version/type pin ->
derivatives (depth first) -> deadline, nonce, signer_id -> canonical tree
-> canonical JSON bytes -> SHA256 digest.

Every stage either advances or raises; there is no partial result.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict

from deltanear.canonical.derivatives import Derivatives, canonicalize_derivatives
from deltanear.primitives.errors import InvalidEnum
from deltanear.primitives.fields import require_exact_keys, require_object
from deltanear.primitives.integrity import canonical_bytes, compute_integrity
from deltanear.primitives.normalizers import (
    normalize_nonce,
    normalize_signer_id,
    normalize_timestamp,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0.0"
INTENT_TYPE = "derivatives"
ROOT_FIELDS = ("deadline", "derivatives", "intent_type", "nonce", "signer_id", "version")


@dataclass(frozen=True)
class DerivativesIntent:
    """Fully normalized intent."""

    derivatives: Derivatives
    signer_id: str
    deadline: str
    nonce: str
    version: str = SCHEMA_VERSION
    intent_type: str = INTENT_TYPE

    def to_canonical(self) -> Dict[str, Any]:
        return {
            "deadline": self.deadline,
            "derivatives": self.derivatives.to_canonical(),
            "intent_type": self.intent_type,
            "nonce": self.nonce,
            "signer_id": self.signer_id,
            "version": self.version,
        }


@dataclass(frozen=True)
class CanonicalIntent:
    """Result of a successful canonicalization.

    Attributes:
        intent: Typed canonical intent.
        tree: Canonical JSON tree (plain dicts/lists, keys sorted).
        serialized: Canonical UTF-8 bytes the digest is computed over.
        intent_hash: SHA256 hex digest of ``serialized``.
    """

    intent: DerivativesIntent
    tree: Dict[str, Any]
    serialized: bytes
    intent_hash: str


def _require_pinned(obj, key: str, expected: str) -> None:
    value = obj[key]
    if value != expected:
        raise InvalidEnum(
            f"Invalid {key}: {value!r}. Must be {expected!r}", field=key, value=value
        )


def canonicalize_intent(document: Any) -> DerivativesIntent:
    """Validate a raw intent document and return its canonical form.

    Args:
        document: Parsed JSON object.

    Returns:
        DerivativesIntent.

    Raises:
        CanonicalizationError: First validation failure encountered.
    """
    intent = require_object(document, "intent")
    require_exact_keys(intent, ROOT_FIELDS, "root")
    _require_pinned(intent, "version", SCHEMA_VERSION)
    _require_pinned(intent, "intent_type", INTENT_TYPE)

    derivatives = canonicalize_derivatives(intent["derivatives"], "derivatives")
    deadline = normalize_timestamp(intent["deadline"], "deadline")
    nonce = normalize_nonce(intent["nonce"], "nonce")
    signer_id = normalize_signer_id(intent["signer_id"], "signer_id")

    return DerivativesIntent(
        derivatives=derivatives,
        signer_id=signer_id,
        deadline=deadline,
        nonce=nonce,
    )


def canonicalize(document: Any) -> CanonicalIntent:
    """Canonicalize a document and derive its identity.

    Args:
        document: Parsed JSON object.

    Returns:
        CanonicalIntent with tree, serialized bytes and digest.
    """
    intent = canonicalize_intent(document)
    tree = intent.to_canonical()
    serialized = canonical_bytes(tree)
    intent_hash = compute_integrity(tree)
    logger.debug("Canonicalized intent %s (%d bytes)", intent_hash, len(serialized))
    return CanonicalIntent(
        intent=intent,
        tree=tree,
        serialized=serialized,
        intent_hash=intent_hash,
    )


def compute_intent_hash(document: Any) -> str:
    """Digest of a raw intent document."""
    return canonicalize(document).intent_hash
