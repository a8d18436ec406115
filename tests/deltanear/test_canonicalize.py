"""End-to-end tests for intent canonicalization and hashing."""

import json
import re
from decimal import Decimal

import pytest

from deltanear import canonicalize, canonicalize_intent, compute_intent_hash
from deltanear.canonical.derivatives import Perp, canonicalize_derivatives
from deltanear.canonical.nested import OptionContract
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


def reverse_keys(value):
    """Rebuild nested dicts with their keys in reverse insertion order."""
    if isinstance(value, dict):
        return {k: reverse_keys(value[k]) for k in reversed(list(value.keys()))}
    if isinstance(value, list):
        return [reverse_keys(v) for v in value]
    return value


class TestGoldenVectors:
    """Known documents produce known bytes and digests."""

    def test_perp_serialization(self, perp_intent, perp_canonical_json):
        result = canonicalize(perp_intent)
        assert result.serialized.decode("utf-8") == perp_canonical_json

    def test_perp_hash(self, perp_intent, perp_intent_hash):
        assert canonicalize(perp_intent).intent_hash == perp_intent_hash
        assert compute_intent_hash(perp_intent) == perp_intent_hash

    def test_option_hash(self, option_intent, option_intent_hash):
        result = canonicalize(option_intent)
        assert result.intent_hash == option_intent_hash
        assert result.tree["derivatives"]["option"] == {
            "expiry": "2024-06-28T08:00:00Z",
            "kind": "call",
            "strike": "3500",
        }
        assert result.tree["derivatives"]["collateral"] == {
            "chain": "arbitrum",
            "token": "0xAf88d065e77c8cC2239327C5EDb3A432268e5831",
        }

    def test_tree_matches_serialized(self, perp_intent):
        result = canonicalize(perp_intent)
        assert json.loads(result.serialized) == result.tree


class TestDerivativesDefaults:
    """Optional derivatives fields get their defaults."""

    def test_minimal_perp(self, minimal_perp_intent):
        derivatives = canonicalize(minimal_perp_intent).tree["derivatives"]
        assert derivatives == {
            "instrument": "perp",
            "symbol": "ETH-USD",
            "side": "long",
            "size": "1.5",
            "leverage": "1",
            "option": None,
            "collateral": {"chain": "near", "token": "usdc.near"},
            "constraints": {
                "max_fee_bps": 30,
                "max_funding_bps_8h": 50,
                "max_slippage_bps": 100,
                "venue_allowlist": [],
            },
        }

    def test_perp_instrument_type(self, minimal_perp_intent):
        intent = canonicalize_intent(minimal_perp_intent)
        assert isinstance(intent.derivatives.instrument, Perp)
        assert intent.derivatives.option is None

    def test_option_instrument_type(self, option_intent):
        intent = canonicalize_intent(option_intent)
        assert isinstance(intent.derivatives.instrument, OptionContract)
        assert intent.derivatives.option.strike == "3500"

    def test_null_leverage_defaults(self, minimal_perp_intent):
        minimal_perp_intent["derivatives"]["leverage"] = None
        assert canonicalize(minimal_perp_intent).tree["derivatives"]["leverage"] == "1"

    def test_leverage_normalized(self, minimal_perp_intent):
        minimal_perp_intent["derivatives"]["leverage"] = "25.50"
        assert canonicalize(minimal_perp_intent).tree["derivatives"]["leverage"] == "25.5"

    @pytest.mark.parametrize("leverage,error", [
        ("0.5", OutOfRange),
        ("101", OutOfRange),
        ("2.125", PrecisionExceeded),
        ("1e1", MalformedDecimal),
    ])
    def test_leverage_rejected(self, minimal_perp_intent, leverage, error):
        minimal_perp_intent["derivatives"]["leverage"] = leverage
        with pytest.raises(error):
            canonicalize(minimal_perp_intent)

    def test_option_on_perp_ignored(self, minimal_perp_intent):
        baseline = canonicalize(minimal_perp_intent).intent_hash
        minimal_perp_intent["derivatives"]["option"] = {
            "kind": "call", "strike": "1", "expiry": "2024-06-28T08:00:00Z",
        }
        result = canonicalize(minimal_perp_intent)
        assert result.tree["derivatives"]["option"] is None
        assert result.intent_hash == baseline

    def test_option_required_for_option_instrument(self, option_intent):
        del option_intent["derivatives"]["option"]
        with pytest.raises(MissingField) as exc_info:
            canonicalize(option_intent)
        assert exc_info.value.field == "derivatives.option"

    def test_null_option_for_option_instrument(self, option_intent):
        option_intent["derivatives"]["option"] = None
        with pytest.raises(MissingField):
            canonicalize(option_intent)


class TestDerivativesRejections:
    """Invalid derivatives objects."""

    @pytest.mark.parametrize("key", ["collateral", "instrument", "side", "size", "symbol"])
    def test_missing_required(self, minimal_perp_intent, key):
        del minimal_perp_intent["derivatives"][key]
        with pytest.raises(MissingField) as exc_info:
            canonicalize(minimal_perp_intent)
        assert exc_info.value.field == f"derivatives.{key}"

    def test_unknown_field(self, minimal_perp_intent):
        minimal_perp_intent["derivatives"]["reduce_only"] = True
        with pytest.raises(SchemaViolation):
            canonicalize(minimal_perp_intent)

    def test_unknown_instrument(self, minimal_perp_intent):
        minimal_perp_intent["derivatives"]["instrument"] = "future"
        with pytest.raises(InvalidEnum):
            canonicalize(minimal_perp_intent)

    def test_unknown_side(self, minimal_perp_intent):
        minimal_perp_intent["derivatives"]["side"] = "up"
        with pytest.raises(InvalidEnum):
            canonicalize(minimal_perp_intent)

    @pytest.mark.parametrize("size,error", [
        ("0", OutOfRange),
        ("1000001", OutOfRange),
        ("0.000000001", OutOfRange),
        ("1.123456789", PrecisionExceeded),
        ("-1", MalformedDecimal),
    ])
    def test_size_rejected(self, minimal_perp_intent, size, error):
        minimal_perp_intent["derivatives"]["size"] = size
        with pytest.raises(error):
            canonicalize(minimal_perp_intent)

    def test_size_bounds_inclusive(self, minimal_perp_intent):
        minimal_perp_intent["derivatives"]["size"] = "0.00000001"
        assert canonicalize(minimal_perp_intent).tree["derivatives"]["size"] == "0.00000001"
        minimal_perp_intent["derivatives"]["size"] = "1000000"
        assert canonicalize(minimal_perp_intent).tree["derivatives"]["size"] == "1000000"

    def test_first_failure_in_sorted_key_order(self, minimal_perp_intent):
        """collateral is checked before side."""
        minimal_perp_intent["derivatives"]["side"] = "up"
        minimal_perp_intent["derivatives"]["collateral"]["chain"] = "polygon"
        with pytest.raises(InvalidEnum) as exc_info:
            canonicalize(minimal_perp_intent)
        assert exc_info.value.field == "derivatives.collateral.chain"

    def test_derivatives_not_object(self):
        with pytest.raises(SchemaViolation):
            canonicalize_derivatives("perp")


class TestRootValidation:
    """Root key set and pinned values."""

    def test_extra_root_key(self, perp_intent):
        perp_intent["memo"] = "hi"
        with pytest.raises(SchemaViolation) as exc_info:
            canonicalize(perp_intent)
        assert "memo" in exc_info.value.value
        assert "memo" in exc_info.value.message

    @pytest.mark.parametrize("key", ["version", "intent_type", "derivatives", "signer_id", "deadline", "nonce"])
    def test_missing_root_key(self, perp_intent, key):
        del perp_intent[key]
        with pytest.raises(SchemaViolation):
            canonicalize(perp_intent)

    @pytest.mark.parametrize("extra", ["a", "zzz", "signature", "Version"])
    def test_any_extra_root_key_rejected(self, perp_intent, extra):
        perp_intent[extra] = 1
        with pytest.raises(SchemaViolation):
            canonicalize(perp_intent)

    def test_wrong_version(self, perp_intent):
        perp_intent["version"] = "2.0.0"
        with pytest.raises(InvalidEnum) as exc_info:
            canonicalize(perp_intent)
        assert exc_info.value.field == "version"

    def test_wrong_intent_type(self, perp_intent):
        perp_intent["intent_type"] = "spot"
        with pytest.raises(InvalidEnum):
            canonicalize(perp_intent)

    def test_not_an_object(self):
        with pytest.raises(SchemaViolation):
            canonicalize(["not", "an", "intent"])

    def test_bad_deadline(self, perp_intent):
        perp_intent["deadline"] = "2024-01-23T11:00:00+00:00"
        with pytest.raises(MalformedTimestamp):
            canonicalize(perp_intent)

    def test_bad_nonce(self, perp_intent):
        perp_intent["nonce"] = 1.5
        with pytest.raises(InvalidNonce):
            canonicalize(perp_intent)

    def test_long_signer(self, perp_intent):
        perp_intent["signer_id"] = "x" * 65
        with pytest.raises(OutOfRange):
            canonicalize(perp_intent)


class TestCanonicalProperties:
    """Determinism and normalization properties."""

    def test_deterministic(self, perp_intent):
        first = canonicalize(perp_intent)
        second = canonicalize(perp_intent)
        assert first.tree == second.tree
        assert first.serialized == second.serialized
        assert first.intent_hash == second.intent_hash

    def test_key_order_independent(self, perp_intent, option_intent):
        for document in (perp_intent, option_intent):
            assert canonicalize(reverse_keys(document)).intent_hash == \
                canonicalize(document).intent_hash

    def test_idempotent(self, perp_intent, option_intent):
        """Canonicalizing a canonical tree changes nothing."""
        for document in (perp_intent, option_intent):
            result = canonicalize(document)
            again = canonicalize(result.tree)
            assert again.tree == result.tree
            assert again.intent_hash == result.intent_hash

    def test_formatting_variants_share_hash(self, perp_intent):
        variant = reverse_keys(perp_intent)
        variant["signer_id"] = "  ALICE.near"
        variant["deadline"] = "2024-01-23T11:00:00.999Z"
        variant["nonce"] = "12345"
        variant["derivatives"]["size"] = "1.5"
        variant["derivatives"]["leverage"] = 10
        variant["derivatives"]["constraints"]["venue_allowlist"] = ["hyperliquid", "GMX-V2"]
        assert canonicalize(variant).intent_hash == canonicalize(perp_intent).intent_hash

    def test_semantic_change_changes_hash(self, perp_intent):
        baseline = canonicalize(perp_intent).intent_hash
        perp_intent["derivatives"]["size"] = "1.51"
        assert canonicalize(perp_intent).intent_hash != baseline

    def test_digest_shape(self, perp_intent, option_intent, minimal_perp_intent):
        for document in (perp_intent, option_intent, minimal_perp_intent):
            assert re.fullmatch(r"[0-9a-f]{64}", canonicalize(document).intent_hash)

    def test_input_not_mutated(self, perp_intent):
        snapshot = json.dumps(perp_intent, sort_keys=True)
        canonicalize(perp_intent)
        assert json.dumps(perp_intent, sort_keys=True) == snapshot


class TestJsonNumbers:
    """Intents parsed from JSON text with numeric literals."""

    def test_small_size_literal(self, minimal_perp_intent):
        document = json.loads(
            json.dumps(minimal_perp_intent).replace('"size": "1.50000"', '"size": 0.00005')
        )
        assert document["derivatives"]["size"] == 0.00005
        assert canonicalize(document).tree["derivatives"]["size"] == "0.00005"


class TestDecimalRoundTrip:
    """Canonical decimals reparse to the literal's value."""

    @pytest.mark.parametrize("literal", [
        "0.00000001", "0.00005", "0.1", "1", "1.5", "1.50000000", "12.34567891",
        "999999.99999999", "1000000", ".25", "7.",
    ])
    def test_size(self, minimal_perp_intent, literal):
        minimal_perp_intent["derivatives"]["size"] = literal
        canonical = canonicalize(minimal_perp_intent).tree["derivatives"]["size"]
        assert Decimal(canonical) == Decimal(literal)

    @pytest.mark.parametrize("literal", ["1", "1.00", "2.5", "10.10", "99.99", "100"])
    def test_leverage(self, minimal_perp_intent, literal):
        minimal_perp_intent["derivatives"]["leverage"] = literal
        canonical = canonicalize(minimal_perp_intent).tree["derivatives"]["leverage"]
        assert Decimal(canonical) == Decimal(literal)

    @pytest.mark.parametrize("literal", ["0.01", "3500.00", "3500.5", "123456789.99", "1000000000"])
    def test_strike(self, option_intent, literal):
        option_intent["derivatives"]["option"]["strike"] = literal
        canonical = canonicalize(option_intent).tree["derivatives"]["option"]["strike"]
        assert Decimal(canonical) == Decimal(literal)

    @pytest.mark.parametrize("number", [0.25, 1.5, 0.00005, 0.12345678, 42])
    def test_json_numbers(self, minimal_perp_intent, number):
        minimal_perp_intent["derivatives"]["size"] = number
        canonical = canonicalize(minimal_perp_intent).tree["derivatives"]["size"]
        assert Decimal(canonical) == Decimal(repr(number))
