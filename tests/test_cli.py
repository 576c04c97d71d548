import base64
import json
import struct

import base58
import pytest
from click.testing import CliRunner
from deepdiff import DeepDiff

from idl_schema.cli import main
from idl_schema.on_chain_idl import OnChainIdl
from idl_schema.parse_idl import parse_idl_file


@pytest.fixture
def runner(monkeypatch):
    monkeypatch.delenv("IDL_SCHEMA_CONFIG", raising=False)
    return CliRunner()


@pytest.fixture
def init_market_data(discriminator):
    return (
        discriminator("global", "initialize_market")
        + struct.pack('<QQQ', 1, 2, 3)
        + struct.pack('<H', 30)
        + b'\x00'
    )


def test_compile(runner, sample_idl_path, tmp_path):
    out = tmp_path / "sample_market.bin"
    result = runner.invoke(main, ["compile", str(sample_idl_path), "-o", str(out)])

    assert result.exit_code == 0, result.output
    assert "Compiled `sample_market`: 1 accounts, 2 instructions" in result.output
    assert OnChainIdl.from_bytes(out.read_bytes()) == parse_idl_file(str(sample_idl_path))


def test_schema(runner, sample_idl_path):
    result = runner.invoke(main, ["schema", str(sample_idl_path)])
    assert result.exit_code == 0, result.output

    doc = json.loads(result.output)
    assert doc["name"] == "sample_market"
    assert doc["accounts"][0]["name"] == "Market"
    assert doc["instructions"][0]["accounts"] == ["market", "authority"]


def test_decode_instruction_hex(runner, sample_idl_path, init_market_data):
    result = runner.invoke(main, [
        "decode-instruction", str(sample_idl_path), "0x" + init_market_data.hex(), "MarketKey", "AuthorityKey",
    ])
    assert result.exit_code == 0, result.output

    doc = json.loads(result.output)
    expected_value = {
        "params": {"bidsSize": "1", "asksSize": "2", "numSeats": "3"},
        "feeBps": 30,
        "memo": None,
    }
    assert not DeepDiff(doc["value"], expected_value)
    assert doc["account_map"] == {"market": "MarketKey", "authority": "AuthorityKey"}


def test_decode_instruction_from_compiled_index(runner, sample_idl_path, init_market_data, tmp_path):
    out = tmp_path / "sample_market.bin"
    assert runner.invoke(main, ["compile", str(sample_idl_path), "-o", str(out)]).exit_code == 0

    result = runner.invoke(main, [
        "decode-instruction", str(out), base64.b64encode(init_market_data).decode(), "-e", "base64",
    ])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["name"] == "initializeMarket"


def test_decode_account_base58(runner, sample_idl_path, discriminator):
    data = (
        discriminator("account", "Market")
        + bytes(32)
        + struct.pack('<QQQ', 4, 5, 6)
        + b'\x00'
        + struct.pack('<Q', 1)
    )
    result = runner.invoke(main, [
        "decode-account", str(sample_idl_path), base58.b58encode(data).decode(), "--encoding", "base58",
    ])
    assert result.exit_code == 0, result.output

    doc = json.loads(result.output)
    assert doc["value"]["authority"] == "11111111111111111111111111111111"
    assert doc["value"]["side"] == "Bid"


def test_config_file(runner, sample_idl_path, init_market_data, tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("encoding: base58\nindent: null\n")

    result = runner.invoke(main, [
        "--config", str(config),
        "decode-instruction", str(sample_idl_path), base58.b58encode(init_market_data).decode(),
    ])
    assert result.exit_code == 0, result.output
    assert result.output.count("\n") == 1


def test_config_from_environment(sample_idl_path, init_market_data, tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("encoding: base64\n")

    runner = CliRunner()
    result = runner.invoke(
        main,
        ["decode-instruction", str(sample_idl_path), base64.b64encode(init_market_data).decode()],
        env={"IDL_SCHEMA_CONFIG": str(config)},
    )
    assert result.exit_code == 0, result.output


def test_bad_config(runner, sample_idl_path, tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("encoding: ascii\n")
    result = runner.invoke(main, ["--config", str(config), "schema", str(sample_idl_path)])
    assert result.exit_code == 1
    assert "encoding" in result.output


def test_bad_input_encoding(runner, sample_idl_path):
    result = runner.invoke(main, ["decode-account", str(sample_idl_path), "zz"])
    assert result.exit_code == 2
    assert "not valid hex" in result.output


def test_unknown_discriminator(runner, sample_idl_path):
    result = runner.invoke(main, ["decode-account", str(sample_idl_path), "00" * 16])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_invalid_idl(runner, tmp_path):
    path = tmp_path / "broken.json"
    path.write_text(json.dumps({"name": "broken", "types": [], "accounts": [{"name": "Ghost"}]}))
    result = runner.invoke(main, ["schema", str(path)])
    assert result.exit_code == 1
    assert "Ghost" in result.output
