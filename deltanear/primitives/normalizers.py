"""Primitive value normalizers.

Each normalizer takes one raw JSON value and returns its canonical form or
raises the matching CanonicalizationError. They are pure functions with no
shared state and are safe to call from any thread.

Decimal bounds and precision are checked with ``decimal.Decimal`` on the
literal text, never through binary floating point, so values sitting exactly
on a bound compare exactly.
"""

import math
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Optional

from deltanear.primitives.errors import (
    InvalidEnum,
    InvalidNonce,
    MalformedDecimal,
    MalformedTimestamp,
    MissingField,
    OutOfRange,
    PrecisionExceeded,
    SchemaViolation,
)

INSTRUMENTS = ("perp", "option")
SIDES = ("long", "short", "buy", "sell")
CHAINS = ("near", "ethereum", "arbitrum", "base", "solana")
OPTION_KINDS = ("call", "put")

MAX_SIGNER_ID_LENGTH = 64
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_DECIMAL_RE = re.compile(r"(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)")
_TIMESTAMP_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}T[0-9]{2}:[0-9]{2}:[0-9]{2}Z")
_FRACTION_RE = re.compile(r"[0-9]+Z")


def require_string(value: Any, field: str) -> str:
    """Return value if it is a string.

    Raises:
        MissingField: If value is None.
        SchemaViolation: If value is not a string.
    """
    if value is None:
        raise MissingField(f"Missing {field}", field=field)
    if not isinstance(value, str):
        raise SchemaViolation(
            f"{field} must be a string, got {type(value).__name__}",
            field=field,
            value=value,
        )
    return value


# -----------------------------------------------------------------------------
# Decimals
# -----------------------------------------------------------------------------


def _int_text(value: int) -> Optional[str]:
    """Decimal text of an int, or None past the interpreter's digit limit."""
    try:
        return str(value)
    except ValueError:
        return None


def _float_text(value: float) -> str:
    """Shortest round-trip text, positional unless the point is far from the digits.

    ``repr`` switches to exponent form below 1e-4 while JSON encoders built
    on ryu stay positional down to 1e-5, so ``0.00005`` is written out in
    full and ``1e-06`` keeps its exponent.
    """
    text = repr(value)
    if "e" in text:
        parsed = Decimal(text)
        _, digits, exponent = parsed.as_tuple()
        if -5 < len(digits) + exponent <= 21:
            text = format(parsed, "f")
    return text


def _decimal_text(value: Any, field: str) -> str:
    if isinstance(value, bool):
        raise MalformedDecimal(
            f"Decimal value must be string or number: {value!r}", field=field, value=value
        )
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, int):
        text = _int_text(value)
        if text is None:
            raise MalformedDecimal("Integer has too many digits", field=field)
        return text
    if isinstance(value, float):
        if not math.isfinite(value):
            raise MalformedDecimal(f"Invalid decimal: {value!r}", field=field, value=value)
        return _float_text(value)
    raise MalformedDecimal(
        "Decimal value must be string or number", field=field, value=value
    )


def normalize_decimal(
    value: Any,
    minimum: str,
    maximum: str,
    precision: int,
    field: str = "decimal",
) -> str:
    """Canonicalize a non-negative decimal literal.

    Args:
        value: String or JSON number.
        minimum: Inclusive lower bound, as decimal text.
        maximum: Inclusive upper bound, as decimal text.
        precision: Maximum number of fractional digits in the literal.
        field: Dotted field path used in error messages.

    Returns:
        ``"0"`` for zero, integer text for whole values, otherwise the
        shortest fixed-point text with trailing zeros removed.

    Raises:
        MalformedDecimal: Scientific notation, leading zeros, a sign, or
            text that is not a number.
        OutOfRange: Value outside ``[minimum, maximum]``.
        PrecisionExceeded: More than ``precision`` fractional digits.
    """
    text = _decimal_text(value, field)

    if "e" in text or "E" in text:
        raise MalformedDecimal(
            f"Scientific notation not allowed: {text}", field=field, value=text
        )
    if len(text) > 1 and text.startswith("0") and not text.startswith("0."):
        raise MalformedDecimal(f"Leading zeros not allowed: {text}", field=field, value=text)
    if text.startswith("+"):
        raise MalformedDecimal(f"Positive sign not allowed: {text}", field=field, value=text)
    if text.startswith("-"):
        raise MalformedDecimal(f"Negative values not allowed: {text}", field=field, value=text)
    if not _DECIMAL_RE.fullmatch(text):
        raise MalformedDecimal(f"Invalid decimal: {text!r}", field=field, value=text)

    try:
        parsed = Decimal(text)
    except InvalidOperation:
        raise MalformedDecimal(f"Invalid decimal: {text!r}", field=field, value=text)

    if parsed < Decimal(minimum) or parsed > Decimal(maximum):
        raise OutOfRange(
            f"Value {text} out of range [{minimum}, {maximum}]", field=field, value=text
        )

    if "." in text:
        decimals = len(text) - text.index(".") - 1
        if decimals > precision:
            raise PrecisionExceeded(
                f"Value {text} exceeds {precision} decimal places", field=field, value=text
            )

    if parsed == 0:
        return "0"
    return format(parsed.normalize(), "f")


# -----------------------------------------------------------------------------
# Timestamps
# -----------------------------------------------------------------------------


def normalize_timestamp(value: Any, field: str = "timestamp") -> str:
    """Normalize an ISO 8601 UTC instant to second precision.

    ``2024-01-23T11:00:00.123Z`` becomes ``2024-01-23T11:00:00Z``.
    Already normalized input is returned unchanged.

    Raises:
        MalformedTimestamp: Missing ``Z`` suffix, an explicit offset, a
            malformed fractional part, or the wrong overall shape.
    """
    if not isinstance(value, str):
        raise MalformedTimestamp(
            f"Timestamp must be a string: {value!r}", field=field, value=value
        )
    text = value.strip()

    if not text.endswith("Z"):
        raise MalformedTimestamp(f"Timestamp must end with 'Z': {value}", field=field, value=value)

    _, _, time_part = text.partition("T")
    if "+" in text or "-" in time_part:
        raise MalformedTimestamp(
            f"Timestamp must not have timezone offset: {value}", field=field, value=value
        )

    if "." in text:
        parts = text.split(".")
        if len(parts) != 2 or not _FRACTION_RE.fullmatch(parts[1]):
            raise MalformedTimestamp(f"Invalid timestamp format: {value}", field=field, value=value)
        text = f"{parts[0]}Z"

    if len(text) != 20 or not _TIMESTAMP_RE.fullmatch(text):
        raise MalformedTimestamp(
            f"Invalid timestamp, expected YYYY-MM-DDTHH:MM:SSZ: {value}", field=field, value=value
        )

    try:
        datetime.strptime(text, TIMESTAMP_FORMAT)
    except ValueError:
        raise MalformedTimestamp(f"Invalid calendar instant: {value}", field=field, value=value)

    return text


# -----------------------------------------------------------------------------
# Identifiers and enums
# -----------------------------------------------------------------------------


def normalize_signer_id(value: Any, field: str = "signer_id") -> str:
    """Trim and lowercase an account id; 1 to 64 characters."""
    normalized = require_string(value, field).strip().lower()
    if not normalized or len(normalized) > MAX_SIGNER_ID_LENGTH:
        raise OutOfRange(f"Invalid signer_id length: {value!r}", field=field, value=value)
    return normalized


def normalize_nonce(value: Any, field: str = "nonce") -> str:
    """Strings are trimmed, integers rendered in decimal; nothing else is accepted."""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, int) and not isinstance(value, bool):
        text = _int_text(value)
        if text is None:
            raise InvalidNonce("Integer nonce has too many digits", field=field)
        return text
    raise InvalidNonce("Nonce must be string or integer", field=field, value=value)


def normalize_enum(value: Any, allowed: Iterable[str], field: str) -> str:
    """Trim, lowercase and check membership in allowed."""
    normalized = require_string(value, field).strip().lower()
    allowed = tuple(allowed)
    if normalized not in allowed:
        raise InvalidEnum(
            f"Invalid {field}: {normalized!r}. Must be one of {sorted(allowed)}",
            field=field,
            value=value,
        )
    return normalized


def normalize_symbol(value: Any, field: str = "symbol") -> str:
    """Trim and uppercase a market symbol such as ``ETH-USD``."""
    symbol = require_string(value, field).strip().upper()
    if "-" not in symbol:
        raise InvalidEnum(f"Invalid symbol format: {symbol}", field=field, value=value)
    return symbol


def normalize_token(value: Any, field: str = "token") -> str:
    """Trim only. Token ids may carry checksum-sensitive casing."""
    return require_string(value, field).strip()


def normalize_venue_allowlist(value: Any, field: str = "venue_allowlist") -> List[str]:
    """Trim and lowercase each venue, then sort and deduplicate."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise SchemaViolation(
            f"{field} must be a list, got {type(value).__name__}", field=field, value=value
        )
    venues = set()
    for index, entry in enumerate(value):
        if not isinstance(entry, str):
            raise SchemaViolation(
                f"{field}[{index}] must be a string", field=field, value=entry
            )
        venues.add(entry.strip().lower())
    return sorted(venues)


def normalize_bps(value: Any, maximum: int, field: str) -> int:
    """Basis-point limit: a non-negative integer no greater than maximum."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise SchemaViolation(
            f"{field} must be a non-negative integer, got {value!r}", field=field, value=value
        )
    if value < 0 or value > maximum:
        raise OutOfRange(f"{field} {value} outside [0, {maximum}]", field=field, value=value)
    return value
