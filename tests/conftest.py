import copy
import hashlib
import json

import pytest

SAMPLE_IDL = {
    "version": "0.1.0",
    "name": "sample_market",
    "instructions": [
        {
            "name": "initializeMarket",
            "accounts": [
                {"name": "market", "isMut": True, "isSigner": False},
                {"name": "authority", "isMut": False, "isSigner": True},
            ],
            "args": [
                {"name": "params", "type": {"defined": "MarketSizeParams"}},
                {"name": "feeBps", "type": "u16"},
                {"name": "memo", "type": {"option": "string"}},
            ],
        },
        {
            "name": "closeMarket",
            "accounts": [
                {"name": "market", "isMut": True, "isSigner": False},
            ],
            "args": [],
        },
    ],
    "accounts": [
        {
            "name": "Market",
            "type": {
                "kind": "struct",
                "fields": [
                    {"name": "authority", "type": "publicKey"},
                    {"name": "params", "type": {"defined": "MarketSizeParams"}},
                    {"name": "side", "type": {"defined": "Side"}},
                    {"name": "seqNum", "type": "u64"},
                ],
            },
        },
    ],
    "types": [
        {
            "name": "MarketSizeParams",
            "type": {
                "kind": "struct",
                "fields": [
                    {"name": "bidsSize", "type": "u64"},
                    {"name": "asksSize", "type": "u64"},
                    {"name": "numSeats", "type": "u64"},
                ],
            },
        },
        {
            "name": "Side",
            "type": {
                "kind": "enum",
                "variants": [
                    {"name": "Bid"},
                    {"name": "Ask"},
                    {"name": "Limit", "fields": [{"name": "price", "type": "u64"}]},
                ],
            },
        },
    ],
}


def anchor_discriminator(namespace: str, name: str) -> bytes:
    return hashlib.sha256(f"{namespace}:{name}".encode()).digest()[:8]


@pytest.fixture
def sample_idl():
    return copy.deepcopy(SAMPLE_IDL)


@pytest.fixture
def sample_idl_path(tmp_path, sample_idl):
    path = tmp_path / "sample_market.json"
    path.write_text(json.dumps(sample_idl))
    return path


@pytest.fixture
def discriminator():
    return anchor_discriminator
