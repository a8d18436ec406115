"""DeltaNEAR derivatives intents.

Canonicalization and hashing of derivatives trading intents, plus the
host-side ledger, simulation gate, event emitter and guardrail config that
consume the intent hash.
"""

__version__ = "1.0.0"

from deltanear.canonical import (
    SCHEMA_VERSION,
    CanonicalIntent,
    DerivativesIntent,
    canonicalize,
    canonicalize_intent,
    compute_intent_hash,
)
from deltanear.primitives import (
    CanonicalizationError,
    InvalidEnum,
    InvalidNonce,
    MalformedDecimal,
    MalformedTimestamp,
    MissingField,
    OutOfRange,
    PrecisionExceeded,
    SchemaViolation,
    canonical_json,
    compute_integrity,
)

__all__ = [
    "__version__",
    "SCHEMA_VERSION",
    "CanonicalIntent",
    "DerivativesIntent",
    "canonicalize",
    "canonicalize_intent",
    "compute_intent_hash",
    "canonical_json",
    "compute_integrity",
    "CanonicalizationError",
    "SchemaViolation",
    "MissingField",
    "InvalidEnum",
    "MalformedDecimal",
    "OutOfRange",
    "PrecisionExceeded",
    "MalformedTimestamp",
    "InvalidNonce",
]
