"""Canonicalization of the ``derivatives`` action.

The instrument is a tagged union: a ``Perp`` carries no extra terms, an
``OptionContract`` carries kind/strike/expiry. The canonical tree always
contains an ``option`` key, null for perps.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Union

from deltanear.canonical.nested import (
    Collateral,
    Constraints,
    OptionContract,
    canonicalize_collateral,
    canonicalize_constraints,
    canonicalize_option,
)
from deltanear.primitives.errors import MissingField
from deltanear.primitives.fields import require_keys, require_object
from deltanear.primitives.normalizers import (
    INSTRUMENTS,
    SIDES,
    normalize_decimal,
    normalize_enum,
    normalize_symbol,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("collateral", "instrument", "side", "size", "symbol")
ALLOWED_FIELDS = REQUIRED_FIELDS + ("constraints", "leverage", "option")

SIZE_MIN = "0.00000001"
SIZE_MAX = "1000000"
SIZE_PRECISION = 8

LEVERAGE_MIN = "1"
LEVERAGE_MAX = "100"
LEVERAGE_PRECISION = 2
DEFAULT_LEVERAGE = "1"


@dataclass(frozen=True)
class Perp:
    """Perpetual future. No instrument-specific terms."""

    name = "perp"

    def to_canonical(self) -> None:
        return None


Instrument = Union[Perp, OptionContract]


@dataclass(frozen=True)
class Derivatives:
    """Canonical derivatives action."""

    collateral: Collateral
    constraints: Constraints
    instrument: Instrument
    leverage: str
    side: str
    size: str
    symbol: str

    @property
    def option(self) -> Union[OptionContract, None]:
        if isinstance(self.instrument, OptionContract):
            return self.instrument
        return None

    def to_canonical(self) -> Dict[str, Any]:
        return {
            "collateral": self.collateral.to_canonical(),
            "constraints": self.constraints.to_canonical(),
            "instrument": self.instrument.name,
            "leverage": self.leverage,
            "option": self.instrument.to_canonical(),
            "side": self.side,
            "size": self.size,
            "symbol": self.symbol,
        }


def canonicalize_derivatives(value: Any, path: str = "derivatives") -> Derivatives:
    """Validate and normalize a derivatives action.

    Fields are processed in sorted key order and the first failure aborts
    the whole call.

    Args:
        value: Raw ``derivatives`` object.
        path: Dotted path prefix for error messages.

    Returns:
        Frozen Derivatives value.
    """
    derivs = require_object(value, path)
    require_keys(derivs, REQUIRED_FIELDS, ALLOWED_FIELDS, path)

    collateral = canonicalize_collateral(derivs["collateral"], f"{path}.collateral")
    constraints = canonicalize_constraints(derivs.get("constraints"), f"{path}.constraints")
    instrument_name = normalize_enum(derivs["instrument"], INSTRUMENTS, f"{path}.instrument")

    raw_leverage = derivs.get("leverage")
    if raw_leverage is None:
        leverage = DEFAULT_LEVERAGE
    else:
        leverage = normalize_decimal(
            raw_leverage, LEVERAGE_MIN, LEVERAGE_MAX, LEVERAGE_PRECISION, f"{path}.leverage"
        )

    instrument: Instrument
    if instrument_name == "option":
        if derivs.get("option") is None:
            raise MissingField(
                "Missing option params for option instrument", field=f"{path}.option"
            )
        instrument = canonicalize_option(derivs["option"], f"{path}.option")
    else:
        if derivs.get("option") is not None:
            logger.debug("Ignoring option terms on %s instrument", instrument_name)
        instrument = Perp()

    side = normalize_enum(derivs["side"], SIDES, f"{path}.side")
    size = normalize_decimal(derivs["size"], SIZE_MIN, SIZE_MAX, SIZE_PRECISION, f"{path}.size")
    symbol = normalize_symbol(derivs["symbol"], f"{path}.symbol")

    return Derivatives(
        collateral=collateral,
        constraints=constraints,
        instrument=instrument,
        leverage=leverage,
        side=side,
        size=size,
        symbol=symbol,
    )
