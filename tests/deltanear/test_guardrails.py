"""Tests for guardrail and venue configuration."""

import textwrap

import pytest

from deltanear import canonicalize_intent
from deltanear.guardrails import (
    FeeConfig,
    GuardrailConfig,
    Guardrails,
    build_config,
    load_config,
)
from deltanear.primitives.errors import ConfigurationError

CONFIG_YAML = textwrap.dedent("""\
    fee_config:
      protocol_fee_bps: 15
      treasury: treasury.test.near
    default_guardrails:
      max_position_size: "100"
      max_leverage: "20"
    symbol_guardrails:
      BTC-USD:
        max_leverage: "10"
    user_guardrails:
      whale.near:
        max_position_size: "5000"
        max_leverage: "50"
    symbols:
      - symbol: ETH-USD
        instruments: [perp, option]
        min_size: "0.01"
        max_size: "1000"
    venues:
      - venue_id: gmx-v2
        chain: arbitrum
        supported_instruments: [perp]
        fee_bps: 5
        symbols: [ETH-USD, BTC-USD]
      - venue_id: aevo
        chain: ethereum
        supported_instruments: [perp, option]
        symbols: [ETH-USD]
""")


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "guardrails.yaml"
    path.write_text(CONFIG_YAML)
    return path


@pytest.fixture
def config(config_file):
    return load_config(config_file)


class TestFeeConfig:
    def test_defaults(self):
        fees = FeeConfig()
        assert fees.protocol_fee_bps == 20
        assert fees.solver_rebate_bps == 5

    def test_protocol_fee_cap(self):
        with pytest.raises(ConfigurationError) as exc_info:
            FeeConfig(protocol_fee_bps=1001)
        assert exc_info.value.field == "protocol_fee_bps"

    def test_max_fee_cap(self):
        with pytest.raises(ConfigurationError):
            FeeConfig(max_fee_bps=1500)


class TestLoadConfig:
    """YAML loading."""

    def test_loads_sections(self, config):
        assert config.fee_config.protocol_fee_bps == 15
        assert config.fee_config.treasury == "treasury.test.near"
        assert config.default_guardrails.max_position_size == "100"
        assert config.symbols["ETH-USD"].instruments == ("perp", "option")
        assert config.venues["gmx-v2"].fee_bps == 5

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("venues: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(path)

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == GuardrailConfig()

    def test_unknown_guardrail_key(self):
        with pytest.raises(ConfigurationError):
            build_config({"default_guardrails": {"max_bananas": 3}})

    def test_not_a_mapping(self):
        with pytest.raises(ConfigurationError):
            build_config(["venues"])


class TestGuardrailLookup:
    """user > symbol > default precedence."""

    def test_default(self, config):
        assert config.get_guardrails("ETH-USD", "alice.near").max_leverage == "20"

    def test_symbol_override(self, config):
        assert config.get_guardrails("BTC-USD", "alice.near").max_leverage == "10"

    def test_user_override_wins(self, config):
        rails = config.get_guardrails("BTC-USD", "whale.near")
        assert rails.max_leverage == "50"
        assert rails.max_position_size == "5000"

    def test_no_arguments(self, config):
        assert config.get_guardrails() == config.default_guardrails

    def test_to_dict(self):
        assert Guardrails().to_dict() == {
            "max_position_size": "100000",
            "max_leverage": "20",
            "max_daily_volume": "1000000",
            "allowed_instruments": ["perp", "option"],
            "cooldown_seconds": 60,
        }


class TestAllowedVenues:
    def test_sorted_by_venue_id(self, config):
        assert [v.venue_id for v in config.allowed_venues("ETH-USD")] == ["aevo", "gmx-v2"]

    def test_unknown_symbol(self, config):
        assert config.allowed_venues("DOGE-USD") == []


class TestEvaluate:
    """Guardrail violations for canonical intents."""

    def test_within_limits(self, config, perp_intent):
        assert config.evaluate(canonicalize_intent(perp_intent)) == []

    def test_position_size(self, config, perp_intent):
        perp_intent["derivatives"]["size"] = "150"
        violations = config.evaluate(canonicalize_intent(perp_intent))
        assert any("max_position_size" in v for v in violations)

    def test_symbol_size_window(self, config, perp_intent):
        perp_intent["derivatives"]["size"] = "0.001"
        violations = config.evaluate(canonicalize_intent(perp_intent))
        assert violations == ["size 0.001 outside [0.01, 1000]"]

    def test_leverage(self, config, perp_intent):
        perp_intent["derivatives"]["leverage"] = "25"
        violations = config.evaluate(canonicalize_intent(perp_intent))
        assert violations == ["leverage 25 exceeds max_leverage 20"]

    def test_user_override_applies(self, config, perp_intent):
        perp_intent["signer_id"] = "whale.near"
        perp_intent["derivatives"]["leverage"] = "25"
        assert config.evaluate(canonicalize_intent(perp_intent)) == []

    def test_instrument_not_allowed(self, perp_intent):
        config = GuardrailConfig(default_guardrails=Guardrails(allowed_instruments=("option",)))
        violations = config.evaluate(canonicalize_intent(perp_intent))
        assert violations == ["instrument perp not allowed"]

    def test_allowlist_without_configured_venue(self, config, perp_intent):
        perp_intent["derivatives"]["constraints"]["venue_allowlist"] = ["dydx"]
        violations = config.evaluate(canonicalize_intent(perp_intent))
        assert violations == ["no configured venue for ETH-USD in venue_allowlist"]

    def test_allowlist_with_configured_venue(self, config, perp_intent):
        perp_intent["derivatives"]["constraints"]["venue_allowlist"] = ["dydx", "aevo"]
        assert config.evaluate(canonicalize_intent(perp_intent)) == []
