"""Canonical intent assembly."""

from deltanear.canonical.derivatives import Derivatives, Perp, canonicalize_derivatives
from deltanear.canonical.intent import (
    SCHEMA_VERSION,
    CanonicalIntent,
    DerivativesIntent,
    canonicalize,
    canonicalize_intent,
    compute_intent_hash,
)
from deltanear.canonical.nested import (
    Collateral,
    Constraints,
    OptionContract,
    canonicalize_collateral,
    canonicalize_constraints,
    canonicalize_option,
)

__all__ = [
    "SCHEMA_VERSION",
    "CanonicalIntent",
    "DerivativesIntent",
    "Derivatives",
    "Perp",
    "OptionContract",
    "Collateral",
    "Constraints",
    "canonicalize",
    "canonicalize_intent",
    "compute_intent_hash",
    "canonicalize_derivatives",
    "canonicalize_collateral",
    "canonicalize_option",
    "canonicalize_constraints",
]
