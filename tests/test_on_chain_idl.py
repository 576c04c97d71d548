import hashlib
import struct

import base58
import pytest
from deepdiff import DeepDiff

from idl_schema.errors import DecodeError, DiscriminatorNotFoundError, SchemaCodecError
from idl_schema.on_chain_idl import InstructionDecoder, OnChainIdl, discriminator_key, unique_names
from idl_schema.parse_idl import parse_idl_document
from idl_schema.schema import EMPTY, U8, U64, SchemaNode

AUTHORITY = bytes(range(32))
AUTHORITY_B58 = base58.b58encode(AUTHORITY).decode()

MARKET_SCHEMA = {
    "authority": "pubkey",
    "params": {"bidsSize": "u64", "asksSize": "u64", "numSeats": "u64"},
    "side": {"type:enum": {"Bid": None, "Ask": None, "Limit": {"price": "u64"}}},
    "seqNum": "u64",
}


@pytest.fixture
def sample(sample_idl):
    return parse_idl_document(sample_idl)


def market_account(discriminator, side: bytes) -> bytes:
    return (
        discriminator("account", "Market")
        + AUTHORITY
        + struct.pack('<QQQ', 512, 256, 128)
        + side
        + struct.pack('<Q', 7)
    )


def test_discriminator_key():
    assert discriminator_key(bytes([1, 2, 3, 4, 5, 6, 7, 8, 9]), 8) == 0x0807060504030201
    assert discriminator_key(bytes([1, 2, 3]), 1) == 1
    assert discriminator_key(bytes([1, 2, 3]), 2) == 0x0201


def test_extracted_discriminators(sample, discriminator):
    data = discriminator("account", "Market") + b'\xff' * 4
    assert sample.get_account_discriminator(data) in sample.accounts
    data = discriminator("global", "close_market")
    assert sample.get_instruction_discriminator(data) in sample.instruction_params


def test_decode_account(sample, discriminator):
    data = market_account(discriminator, b'\x02' + struct.pack('<Q', 99))
    result = sample.decode_account(data)

    expected = {
        "name": "Market",
        "schema": MARKET_SCHEMA,
        "value": {
            "authority": AUTHORITY_B58,
            "params": {"bidsSize": "512", "asksSize": "256", "numSeats": "128"},
            "side": {"name": "Limit", "value": {"price": "99"}},
            "seqNum": "7",
        },
    }
    assert not DeepDiff(result.to_json(), expected)


def test_decode_account_plain_enum_variant(sample, discriminator):
    result = sample.decode_account(market_account(discriminator, b'\x01'))
    assert result.name == "Market"
    assert result.value.field("side").to_json() == "Ask"
    assert result.value.field("seqNum").to_json() == "7"


def test_decode_account_errors(sample, discriminator):
    with pytest.raises(DecodeError, match="too short"):
        sample.decode_account(discriminator("account", "Market")[:5])
    with pytest.raises(DiscriminatorNotFoundError):
        sample.decode_account(bytes(8) + AUTHORITY)
    with pytest.raises(DecodeError, match="Not enough bytes"):
        sample.decode_account(discriminator("account", "Market") + AUTHORITY)


def test_decode_instruction(sample, discriminator):
    data = (
        discriminator("global", "initialize_market")
        + struct.pack('<QQQ', 10, 20, 30)
        + struct.pack('<H', 25)
        + b'\x01' + struct.pack('<I', 2) + b'hi'
    )
    keys = ["MarketKey111", "AuthorityKey111", "ExtraKey111"]
    result = sample.decode_instruction(data, keys)

    assert result.accounts == ["market", "authority", "Account 3"]
    expected = {
        "name": "initializeMarket",
        "schema": {
            "params": {"bidsSize": "u64", "asksSize": "u64", "numSeats": "u64"},
            "feeBps": "u16",
            "memo": {"type:option": "string"},
        },
        "accounts": ["market", "authority", "Account 3"],
        "value": {
            "params": {"bidsSize": "10", "asksSize": "20", "numSeats": "30"},
            "feeBps": 25,
            "memo": "hi",
        },
        "account_map": {
            "market": "MarketKey111",
            "authority": "AuthorityKey111",
            "Account 3": "ExtraKey111",
        },
    }
    assert not DeepDiff(result.to_json(), expected)


def test_decode_instruction_without_accounts(sample, discriminator):
    result = sample.decode_instruction(discriminator("global", "close_market"))
    assert result.accounts == []
    assert result.account_map is None
    assert result.to_json() == {"name": "closeMarket", "schema": None, "accounts": [], "value": ""}


def test_fewer_addresses_than_roles(sample, discriminator):
    result = sample.decode_instruction(discriminator("global", "close_market"), [])
    assert result.accounts == []
    result = sample.decode_instruction(discriminator("global", "initialize_market") + bytes(27), ["A"])
    assert result.accounts == ["market"]


def test_decode_instruction_errors(sample):
    with pytest.raises(DecodeError, match="too short"):
        sample.decode_instruction(b'\x01\x02')
    with pytest.raises(DiscriminatorNotFoundError):
        sample.decode_instruction(bytes(8))


def test_hidden_top_level_schema_fails():
    idl = OnChainIdl(
        "hidden",
        account_disc_len=1,
        instruction_disc_len=1,
        accounts={1: SchemaNode("Secret", U8, is_hidden=True)},
        instruction_params={2: InstructionDecoder((), SchemaNode("noop", EMPTY, is_hidden=True))},
    )
    with pytest.raises(DecodeError, match="hidden"):
        idl.decode_account(b'\x01\x05')
    assert idl.decode_account(b'\x01\x05', show_hidden=True).value.to_json() == 5
    with pytest.raises(DecodeError, match="hidden"):
        idl.decode_instruction(b'\x02')


def test_short_discriminator_width():
    idl = OnChainIdl(
        "native",
        account_disc_len=1,
        instruction_disc_len=1,
        instruction_params={3: InstructionDecoder(("payer",), SchemaNode.new_struct("transfer", [("amount", U64)]))},
    )
    result = idl.decode_instruction(b'\x03' + struct.pack('<Q', 1000), ["Payer111"])
    assert result.value.to_json() == {"amount": "1000"}
    assert result.account_map == {"payer": "Payer111"}


def test_program_index_round_trip(sample):
    data = sample.to_bytes()
    restored = OnChainIdl.from_bytes(data)
    assert restored == sample
    assert restored.to_bytes() == data


def test_program_index_layout():
    idl = OnChainIdl(
        "p",
        account_disc_len=1,
        instruction_disc_len=1,
        accounts={7: SchemaNode("A", U8)},
        instruction_params={1: InstructionDecoder(("x",), SchemaNode("i", EMPTY))},
    )
    assert idl.to_bytes() == (
        b'\x01\x00\x00\x00p' + b'\x01\x01'
        + b'\x01\x00\x00\x00' + struct.pack('<Q', 7) + b'\x01\x00\x00\x00A\x04\x00\x00'
        + b'\x01\x00\x00\x00' + struct.pack('<Q', 1)
        + b'\x01\x00\x00\x00' + b'\x01\x00\x00\x00x'
        + b'\x01\x00\x00\x00i\x00\x00\x00'
    )


def test_program_index_rejects_trailing_bytes(sample):
    with pytest.raises(SchemaCodecError):
        OnChainIdl.from_bytes(sample.to_bytes() + b'\x00')


def test_schemas_to_json(sample):
    doc = sample.schemas_to_json()
    assert doc["name"] == "sample_market"
    assert doc["accounts"] == [{"name": "Market", "type": MARKET_SCHEMA}]
    assert [ix["name"] for ix in doc["instructions"]] == ["initializeMarket", "closeMarket"]
    assert doc["instructions"][1] == {"name": "closeMarket", "type": None, "accounts": ["market"]}


def test_repeated_role_names_keep_every_address():
    idl = parse_idl_document({
        "instructions": [{
            "name": "swap",
            "accounts": [
                {"name": "user"},
                {"name": "source", "accounts": [{"name": "vault"}, {"name": "mint"}]},
                {"name": "destination", "accounts": [{"name": "vault"}, {"name": "mint"}]},
            ],
            "args": [],
        }],
        "types": [],
    })
    data = hashlib.sha256(b"global:swap").digest()[:8]
    result = idl.decode_instruction(data, ["U", "V1", "M1", "V2", "M2"])

    assert result.accounts == ["user", "vault", "mint", "vault_2", "mint_2"]
    assert result.account_map == {"user": "U", "vault": "V1", "mint": "M1", "vault_2": "V2", "mint_2": "M2"}


def test_unique_names():
    assert unique_names(["a", "a_2", "a", "b"]) == ["a", "a_2", "a_3", "b"]
    assert unique_names([]) == []
