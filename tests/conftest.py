"""Shared intent fixtures.

Each fixture returns a fresh dict so tests can mutate documents freely.
"""

import copy

import pytest

PERP_INTENT = {
    "version": "1.0.0",
    "intent_type": "derivatives",
    "derivatives": {
        "instrument": "PERP",
        "symbol": "eth-usd",
        "side": "LONG",
        "size": "1.50000",
        "leverage": "10.00",
        "constraints": {
            "max_slippage_bps": 20,
            "venue_allowlist": ["HYPERLIQUID", "gmx-v2", "gmx-v2"],
        },
        "collateral": {
            "token": " usdc.near ",
            "chain": "NEAR",
        },
    },
    "signer_id": "Alice.NEAR",
    "deadline": "2024-01-23T11:00:00.000Z",
    "nonce": 12345,
}

# sha256 of PERP_CANONICAL_JSON
PERP_INTENT_HASH = "a1709bdb369fde7465d2b2ccac4c246de84cf8a516cac6f82c9bc62a017ea07d"
PERP_CANONICAL_JSON = (
    '{"deadline":"2024-01-23T11:00:00Z","derivatives":{"collateral":{"chain":"near",'
    '"token":"usdc.near"},"constraints":{"max_fee_bps":30,"max_funding_bps_8h":50,'
    '"max_slippage_bps":20,"venue_allowlist":["gmx-v2","hyperliquid"]},"instrument":"perp",'
    '"leverage":"10","option":null,"side":"long","size":"1.5","symbol":"ETH-USD"},'
    '"intent_type":"derivatives","nonce":"12345","signer_id":"alice.near","version":"1.0.0"}'
)

OPTION_INTENT = {
    "version": "1.0.0",
    "intent_type": "derivatives",
    "derivatives": {
        "instrument": "Option",
        "symbol": "ETH-USD",
        "side": "buy",
        "size": 0.25,
        "option": {
            "kind": "CALL",
            "strike": "3500.00",
            "expiry": "2024-06-28T08:00:00.000Z",
        },
        "collateral": {
            "token": "0xAf88d065e77c8cC2239327C5EDb3A432268e5831",
            "chain": "Arbitrum",
        },
    },
    "signer_id": "bob.near",
    "deadline": "2024-06-01T00:00:00Z",
    "nonce": "opt-1",
}

OPTION_INTENT_HASH = "003cb1ec6ce9743b096ecfc70837b5726d5160afa0e3172d125c33701aa4e560"


@pytest.fixture
def perp_intent():
    return copy.deepcopy(PERP_INTENT)


@pytest.fixture
def option_intent():
    return copy.deepcopy(OPTION_INTENT)


@pytest.fixture
def minimal_perp_intent():
    """Perp intent with every optional field omitted."""
    return {
        "version": "1.0.0",
        "intent_type": "derivatives",
        "derivatives": {
            "instrument": "PERP",
            "symbol": "eth-usd",
            "side": "LONG",
            "size": "1.50000",
            "collateral": {"token": " usdc.near ", "chain": "NEAR"},
        },
        "signer_id": "alice.near",
        "deadline": "2030-01-01T00:00:00Z",
        "nonce": "1",
    }


@pytest.fixture
def perp_intent_hash():
    return PERP_INTENT_HASH


@pytest.fixture
def perp_canonical_json():
    return PERP_CANONICAL_JSON


@pytest.fixture
def option_intent_hash():
    return OPTION_INTENT_HASH
