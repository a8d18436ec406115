"""DeltaNEAR primitives: stateless normalizers, field-set checks and hashing."""

from deltanear.primitives.errors import (
    CanonicalizationError,
    ConfigurationError,
    GateRejected,
    IntegrityError,
    InvalidEnum,
    InvalidNonce,
    MalformedDecimal,
    MalformedTimestamp,
    MissingField,
    OutOfRange,
    PrecisionExceeded,
    SchemaViolation,
)
from deltanear.primitives.fields import (
    require_exact_keys,
    require_keys,
    require_object,
)
from deltanear.primitives.integrity import (
    canonical_bytes,
    canonical_json,
    compute_integrity,
    verify_integrity,
)
from deltanear.primitives.normalizers import (
    normalize_bps,
    normalize_decimal,
    normalize_enum,
    normalize_nonce,
    normalize_signer_id,
    normalize_symbol,
    normalize_timestamp,
    normalize_token,
    normalize_venue_allowlist,
)

__all__ = [
    # Errors
    "CanonicalizationError",
    "SchemaViolation",
    "MissingField",
    "InvalidEnum",
    "MalformedDecimal",
    "OutOfRange",
    "PrecisionExceeded",
    "MalformedTimestamp",
    "InvalidNonce",
    "IntegrityError",
    "ConfigurationError",
    "GateRejected",
    # Field sets
    "require_object",
    "require_exact_keys",
    "require_keys",
    # Integrity
    "canonical_json",
    "canonical_bytes",
    "compute_integrity",
    "verify_integrity",
    # Normalizers
    "normalize_decimal",
    "normalize_timestamp",
    "normalize_signer_id",
    "normalize_nonce",
    "normalize_enum",
    "normalize_symbol",
    "normalize_token",
    "normalize_venue_allowlist",
    "normalize_bps",
]
