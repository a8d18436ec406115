"""Canonicalizers for the objects nested inside ``derivatives``.

collateral  -> exactly {chain, token}
option      -> exactly {expiry, kind, strike}
constraints -> any subset of the four limit fields, defaults filled in
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from deltanear.primitives.fields import require_exact_keys, require_keys, require_object
from deltanear.primitives.normalizers import (
    CHAINS,
    OPTION_KINDS,
    normalize_bps,
    normalize_decimal,
    normalize_enum,
    normalize_timestamp,
    normalize_token,
    normalize_venue_allowlist,
)

COLLATERAL_FIELDS = ("chain", "token")
OPTION_FIELDS = ("expiry", "kind", "strike")
CONSTRAINT_FIELDS = ("max_fee_bps", "max_funding_bps_8h", "max_slippage_bps", "venue_allowlist")

STRIKE_MIN = "0.01"
STRIKE_MAX = "1000000000"
STRIKE_PRECISION = 2

DEFAULT_MAX_FEE_BPS = 30
DEFAULT_MAX_FUNDING_BPS_8H = 50
DEFAULT_MAX_SLIPPAGE_BPS = 100

# Upper bound per constraint field
BPS_LIMITS = {
    "max_fee_bps": 100,
    "max_funding_bps_8h": 100,
    "max_slippage_bps": 1000,
}


@dataclass(frozen=True)
class Collateral:
    """Collateral asset backing the position."""

    chain: str
    token: str

    def to_canonical(self) -> Dict[str, Any]:
        return {"chain": self.chain, "token": self.token}


@dataclass(frozen=True)
class OptionContract:
    """Option terms. Present only for ``instrument == "option"``."""

    kind: str
    strike: str
    expiry: str

    name = "option"

    def to_canonical(self) -> Dict[str, Any]:
        return {"expiry": self.expiry, "kind": self.kind, "strike": self.strike}


@dataclass(frozen=True)
class Constraints:
    """Execution limits in basis points plus the venue allowlist."""

    max_fee_bps: int = DEFAULT_MAX_FEE_BPS
    max_funding_bps_8h: int = DEFAULT_MAX_FUNDING_BPS_8H
    max_slippage_bps: int = DEFAULT_MAX_SLIPPAGE_BPS
    venue_allowlist: Tuple[str, ...] = field(default_factory=tuple)

    def to_canonical(self) -> Dict[str, Any]:
        return {
            "max_fee_bps": self.max_fee_bps,
            "max_funding_bps_8h": self.max_funding_bps_8h,
            "max_slippage_bps": self.max_slippage_bps,
            "venue_allowlist": list(self.venue_allowlist),
        }


def canonicalize_collateral(value: Any, path: str = "derivatives.collateral") -> Collateral:
    """Validate and normalize the collateral object.

    chain is lowercased and checked against the supported chains; token is
    only trimmed so checksum casing survives.
    """
    collateral = require_object(value, path)
    require_exact_keys(collateral, COLLATERAL_FIELDS, path)

    chain = normalize_enum(collateral["chain"], CHAINS, f"{path}.chain")
    token = normalize_token(collateral["token"], f"{path}.token")
    return Collateral(chain=chain, token=token)


def canonicalize_option(value: Any, path: str = "derivatives.option") -> OptionContract:
    """Validate and normalize option terms (expiry, kind, strike)."""
    option = require_object(value, path)
    require_exact_keys(option, OPTION_FIELDS, path)

    expiry = normalize_timestamp(option["expiry"], f"{path}.expiry")
    kind = normalize_enum(option["kind"], OPTION_KINDS, f"{path}.kind")
    strike = normalize_decimal(
        option["strike"], STRIKE_MIN, STRIKE_MAX, STRIKE_PRECISION, f"{path}.strike"
    )
    return OptionContract(kind=kind, strike=strike, expiry=expiry)


def canonicalize_constraints(
    value: Optional[Mapping[str, Any]],
    path: str = "derivatives.constraints",
) -> Constraints:
    """Validate constraints and fill in defaults.

    An absent object yields all defaults. A present object may omit any
    field; each omitted field takes its own default. Supplied values are
    validated and never replaced by defaults.
    """
    if value is None:
        return Constraints()

    constraints = require_object(value, path)
    require_keys(constraints, (), CONSTRAINT_FIELDS, path)

    limits = {}
    for name, maximum in sorted(BPS_LIMITS.items()):
        raw = constraints.get(name)
        if raw is not None:
            limits[name] = normalize_bps(raw, maximum, f"{path}.{name}")

    venues = normalize_venue_allowlist(
        constraints.get("venue_allowlist"), f"{path}.venue_allowlist"
    )
    return Constraints(venue_allowlist=tuple(venues), **limits)
