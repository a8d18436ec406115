"""Error types for DeltaNEAR primitives.

Canonicalization errors form a closed taxonomy. Every normalizer and
validator raises the first problem it finds; nothing is recovered locally
and no partial canonical tree is ever returned.

Host-side errors (integrity, configuration, gating) are kept separate so
callers can tell a rejected document from a rejected operation.
"""

from typing import Any, Dict, Optional


class CanonicalizationError(ValueError):
    """Base exception for documents that cannot be canonicalized.

    Attributes:
        kind: Taxonomy name of the failure.
        message: Human readable description.
        field: Dotted path of the offending field, if known.
        value: The offending literal, if known.
    """

    kind = "CanonicalizationError"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Structured form used by the API and CLI."""
        return {
            "kind": self.kind,
            "field": self.field,
            "value": self.value,
            "message": self.message,
        }


class SchemaViolation(CanonicalizationError):
    """Unexpected or missing keys, or a value of the wrong container type."""

    kind = "SchemaViolation"


class MissingField(SchemaViolation):
    """A required field is absent."""

    kind = "MissingField"


class InvalidEnum(CanonicalizationError):
    """Value outside a fixed permitted set."""

    kind = "InvalidEnum"


class MalformedDecimal(CanonicalizationError):
    """Non-numeric text, scientific notation, leading zero or explicit sign."""

    kind = "MalformedDecimal"


class OutOfRange(CanonicalizationError):
    """Numeric value (or identifier length) outside the permitted bounds."""

    kind = "OutOfRange"


class PrecisionExceeded(CanonicalizationError):
    """Too many fractional digits."""

    kind = "PrecisionExceeded"


class MalformedTimestamp(CanonicalizationError):
    """Timestamp with the wrong suffix, an offset, or the wrong shape."""

    kind = "MalformedTimestamp"


class InvalidNonce(CanonicalizationError):
    """Nonce that is neither a string nor an integer."""

    kind = "InvalidNonce"


class IntegrityError(Exception):
    """Digest verification failure.

    Can store additional context via **kwargs (e.g. expected, actual).
    """

    def __init__(self, message: str, **kwargs):
        super().__init__(message)
        self.message = message
        for key, value in kwargs.items():
            setattr(self, key, value)


class ConfigurationError(Exception):
    """Invalid host configuration (fee tables, guardrails, venues).

    Attributes:
        message: Description of the error.
        field: Optional field that caused the error.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class GateRejected(Exception):
    """Execution or simulation refused by the simulation gate.

    Attributes:
        reason: Stable reason code (e.g. ``simulation_expired``).
        intent_hash: Digest of the intent that was refused.
    """

    def __init__(self, reason: str, message: str, intent_hash: Optional[str] = None):
        super().__init__(message)
        self.reason = reason
        self.message = message
        self.intent_hash = intent_hash
