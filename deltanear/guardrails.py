"""Read-only guardrail and venue configuration.

The configuration is built once (usually from YAML) and injected into the
host layer. Lookups never mutate it.

Guardrail precedence: user > symbol > default.

Example YAML:

    fee_config:
      protocol_fee_bps: 20
      solver_rebate_bps: 5
      treasury: treasury.deltanear.near
    default_guardrails:
      max_position_size: "100000"
      max_leverage: "20"
    symbols:
      - symbol: ETH-USD
        instruments: [perp, option]
        min_size: "0.01"
        max_size: "1000"
        tick_size: "0.01"
    venues:
      - venue_id: gmx-v2
        chain: arbitrum
        supported_instruments: [perp]
        fee_bps: 5
        symbols: [ETH-USD]
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from deltanear.canonical.intent import DerivativesIntent
from deltanear.primitives.errors import ConfigurationError

MAX_CONFIG_FEE_BPS = 1000


def _decimal(value: Any, field_name: str) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ConfigurationError(f"{field_name} must be a decimal, got {value!r}", field=field_name)


@dataclass(frozen=True)
class FeeConfig:
    protocol_fee_bps: int = 20
    solver_rebate_bps: int = 5
    min_fee_usdc: str = "0.10"
    max_fee_bps: int = 100
    treasury: str = "treasury.deltanear.near"

    def __post_init__(self):
        if self.protocol_fee_bps > MAX_CONFIG_FEE_BPS:
            raise ConfigurationError("Protocol fee cannot exceed 10%", field="protocol_fee_bps")
        if self.max_fee_bps > MAX_CONFIG_FEE_BPS:
            raise ConfigurationError("Max fee cannot exceed 10%", field="max_fee_bps")


@dataclass(frozen=True)
class Guardrails:
    max_position_size: str = "100000"
    max_leverage: str = "20"
    max_daily_volume: str = "1000000"
    allowed_instruments: Tuple[str, ...] = ("perp", "option")
    cooldown_seconds: int = 60

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_position_size": self.max_position_size,
            "max_leverage": self.max_leverage,
            "max_daily_volume": self.max_daily_volume,
            "allowed_instruments": list(self.allowed_instruments),
            "cooldown_seconds": self.cooldown_seconds,
        }


@dataclass(frozen=True)
class SymbolConfig:
    symbol: str
    instruments: Tuple[str, ...] = ("perp",)
    min_size: str = "0"
    max_size: str = "1000000"
    tick_size: str = "0.01"


@dataclass(frozen=True)
class VenueConfig:
    venue_id: str
    chain: str
    supported_instruments: Tuple[str, ...] = ("perp",)
    fee_bps: int = 0


@dataclass(frozen=True)
class GuardrailConfig:
    """Immutable host configuration.

    Attributes:
        fee_config: Protocol fee table.
        default_guardrails: Fallback guardrails.
        user_guardrails: Per-account overrides (highest priority).
        symbol_guardrails: Per-symbol overrides.
        symbols: Supported symbols keyed by symbol.
        venues: Venues keyed by venue id.
        venues_by_symbol: Venue ids allowed per symbol.
    """

    fee_config: FeeConfig = field(default_factory=FeeConfig)
    default_guardrails: Guardrails = field(default_factory=Guardrails)
    user_guardrails: Mapping[str, Guardrails] = field(default_factory=dict)
    symbol_guardrails: Mapping[str, Guardrails] = field(default_factory=dict)
    symbols: Mapping[str, SymbolConfig] = field(default_factory=dict)
    venues: Mapping[str, VenueConfig] = field(default_factory=dict)
    venues_by_symbol: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)

    def get_guardrails(self, symbol: Optional[str] = None,
                       account: Optional[str] = None) -> Guardrails:
        """Effective guardrails: user > symbol > default."""
        if account is not None and account in self.user_guardrails:
            return self.user_guardrails[account]
        if symbol is not None and symbol in self.symbol_guardrails:
            return self.symbol_guardrails[symbol]
        return self.default_guardrails

    def allowed_venues(self, symbol: str) -> List[VenueConfig]:
        """Venues configured for symbol, sorted by venue id."""
        return [
            self.venues[venue_id]
            for venue_id in sorted(self.venues_by_symbol.get(symbol, ()))
            if venue_id in self.venues
        ]

    def evaluate(self, intent: DerivativesIntent) -> List[str]:
        """Guardrail violations for a canonical intent (empty when allowed)."""
        derivs = intent.derivatives
        rails = self.get_guardrails(derivs.symbol, intent.signer_id)
        instrument = derivs.instrument.name
        violations = []

        if instrument not in rails.allowed_instruments:
            violations.append(f"instrument {instrument} not allowed")

        size = Decimal(derivs.size)
        if size > _decimal(rails.max_position_size, "max_position_size"):
            violations.append(f"size {derivs.size} exceeds max_position_size {rails.max_position_size}")

        if Decimal(derivs.leverage) > _decimal(rails.max_leverage, "max_leverage"):
            violations.append(f"leverage {derivs.leverage} exceeds max_leverage {rails.max_leverage}")

        symbol_config = self.symbols.get(derivs.symbol)
        if symbol_config is not None:
            if instrument not in symbol_config.instruments:
                violations.append(f"instrument {instrument} not listed for {derivs.symbol}")
            if size < _decimal(symbol_config.min_size, "min_size") \
                    or size > _decimal(symbol_config.max_size, "max_size"):
                violations.append(
                    f"size {derivs.size} outside [{symbol_config.min_size}, {symbol_config.max_size}]"
                )

        allowlist = derivs.constraints.venue_allowlist
        if allowlist and derivs.symbol in self.venues_by_symbol:
            configured = set(self.venues_by_symbol[derivs.symbol])
            if not configured.intersection(allowlist):
                violations.append(f"no configured venue for {derivs.symbol} in venue_allowlist")

        return violations


def _guardrails(data: Mapping[str, Any]) -> Guardrails:
    data = dict(data)
    if "allowed_instruments" in data:
        data["allowed_instruments"] = tuple(data["allowed_instruments"])
    try:
        return Guardrails(**data)
    except TypeError as e:
        raise ConfigurationError(f"Invalid guardrails: {e}")


def build_config(data: Optional[Mapping[str, Any]]) -> GuardrailConfig:
    """Build a GuardrailConfig from a plain mapping (parsed YAML/JSON)."""
    data = data or {}
    if not isinstance(data, Mapping):
        raise ConfigurationError("Guardrail configuration must be a mapping")

    try:
        fee_config = FeeConfig(**data.get("fee_config", {}))
        symbols = {}
        for entry in data.get("symbols", []):
            entry = dict(entry)
            entry["instruments"] = tuple(entry.get("instruments", ("perp",)))
            config = SymbolConfig(**entry)
            symbols[config.symbol] = config

        venues = {}
        venues_by_symbol: Dict[str, set] = {}
        for entry in data.get("venues", []):
            entry = dict(entry)
            venue_symbols = entry.pop("symbols", [])
            entry["supported_instruments"] = tuple(entry.get("supported_instruments", ("perp",)))
            venue = VenueConfig(**entry)
            venues[venue.venue_id] = venue
            for symbol in venue_symbols:
                venues_by_symbol.setdefault(symbol, set()).add(venue.venue_id)
    except TypeError as e:
        raise ConfigurationError(f"Invalid configuration entry: {e}")

    return GuardrailConfig(
        fee_config=fee_config,
        default_guardrails=_guardrails(data.get("default_guardrails", {})),
        user_guardrails={k: _guardrails(v) for k, v in data.get("user_guardrails", {}).items()},
        symbol_guardrails={k: _guardrails(v) for k, v in data.get("symbol_guardrails", {}).items()},
        symbols=symbols,
        venues=venues,
        venues_by_symbol={k: tuple(sorted(v)) for k, v in venues_by_symbol.items()},
    )


def load_config(path: Path) -> GuardrailConfig:
    """Load guardrail configuration from a YAML file.

    Raises:
        ConfigurationError: File missing or not valid YAML.
    """
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigurationError(f"Guardrail config not found: {path}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}")
    return build_config(data)
