"""
Program index: discriminator keyed schemas for one on-chain program.

Built once by the IDL compiler (or loaded from its persisted form) and then
only read, so one instance can serve any number of decode calls.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .borsh import BorshReader, BorshWriter
from .decode import decode_bytes
from .errors import DecodeError, DiscriminatorNotFoundError
from .schema import SchemaNode, SchemaType
from .serialization import read_all, read_schema_node, write_schema_node
from .value import TypedValue

DISCRIMINATOR_KEY_SIZE = 8


def discriminator_key(data: bytes, width: int) -> int:
    """Little-endian u64 of the first `width` bytes, zero padded to 8."""
    n = min(width, DISCRIMINATOR_KEY_SIZE)
    padded = bytes(data[:n]).ljust(DISCRIMINATOR_KEY_SIZE, b'\x00')
    return int.from_bytes(padded, 'little')


def unique_names(names: Sequence[str]) -> List[str]:
    """Suffix repeated names with _2, _3, ... so each one can key a dict."""
    used = set()
    result = []
    for name in names:
        candidate = name
        n = 1
        while candidate in used:
            n += 1
            candidate = f"{name}_{n}"
        used.add(candidate)
        result.append(candidate)
    return result


@dataclass(frozen=True)
class InstructionDecoder:
    accounts: Tuple[str, ...]
    instruction_args_parser: SchemaNode


@dataclass
class ParsedAccountResult:
    name: str
    schema: SchemaType
    value: TypedValue

    @classmethod
    def new(cls, schema: SchemaNode, value: TypedValue) -> "ParsedAccountResult":
        return cls(schema.name, schema.type, value)

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "schema": self.schema.to_json(),
            "value": self.value.to_json(),
        }


@dataclass
class ParsedInstructionResult:
    name: str
    schema: SchemaType
    accounts: List[str]
    value: TypedValue
    account_map: Optional[Dict[str, str]] = None

    @classmethod
    def new(cls, schema: SchemaNode, accounts: List[str], value: TypedValue,
            account_map: Optional[Dict[str, str]] = None) -> "ParsedInstructionResult":
        return cls(schema.name, schema.type, accounts, value, account_map)

    def to_json(self) -> Dict[str, Any]:
        out = {
            "name": self.name,
            "schema": self.schema.to_json(),
            "accounts": list(self.accounts),
            "value": self.value.to_json(),
        }
        if self.account_map is not None:
            out["account_map"] = dict(self.account_map)
        return out


@dataclass
class OnChainIdl:
    program_name: str
    account_disc_len: int = DISCRIMINATOR_KEY_SIZE
    instruction_disc_len: int = DISCRIMINATOR_KEY_SIZE
    accounts: Dict[int, SchemaNode] = field(default_factory=dict)
    instruction_params: Dict[int, InstructionDecoder] = field(default_factory=dict)

    def get_account_discriminator(self, data: bytes) -> int:
        return discriminator_key(data, self.account_disc_len)

    def get_instruction_discriminator(self, data: bytes) -> int:
        return discriminator_key(data, self.instruction_disc_len)

    def decode_account(self, account_data: bytes, show_hidden: bool = False) -> ParsedAccountResult:
        if len(account_data) < self.account_disc_len:
            raise DecodeError("Account data is too short")

        discriminator = self.get_account_discriminator(account_data)
        schema = self.accounts.get(discriminator)
        if schema is None:
            raise DiscriminatorNotFoundError(f"Account discriminant {discriminator:#018x} not found")

        node = decode_bytes(schema, account_data[self.account_disc_len:], show_hidden)
        if node is None:
            raise DecodeError(f"Account type `{schema.name}` shouldn't be hidden")
        return ParsedAccountResult.new(schema, node.value)

    def decode_instruction(self, instruction_data: bytes, account_keys: Sequence[str] = (),
                           show_hidden: bool = False) -> ParsedInstructionResult:
        if len(instruction_data) < self.instruction_disc_len:
            raise DecodeError("Instruction data is too short")

        discriminator = self.get_instruction_discriminator(instruction_data)
        decoder = self.instruction_params.get(discriminator)
        if decoder is None:
            raise DiscriminatorNotFoundError(f"Instruction discriminant {discriminator:#018x} not found")

        account_names = []
        for i in range(len(account_keys)):
            if i < len(decoder.accounts):
                account_names.append(decoder.accounts[i])
            else:
                account_names.append(f"Account {i + 1}")
        account_names = unique_names(account_names)

        account_map = None
        if account_keys:
            account_map = dict(zip(account_names, account_keys))

        schema = decoder.instruction_args_parser
        node = decode_bytes(schema, instruction_data[self.instruction_disc_len:], show_hidden)
        if node is None:
            raise DecodeError(f"Instruction `{schema.name}` shouldn't be hidden")
        return ParsedInstructionResult.new(schema, account_names, node.value, account_map)

    def to_bytes(self) -> bytes:
        writer = BorshWriter()
        writer.write_string(self.program_name)
        writer.write_u8(self.account_disc_len)
        writer.write_u8(self.instruction_disc_len)
        writer.write_u32(len(self.accounts))
        for key, schema in self.accounts.items():
            writer.write_u64(key)
            write_schema_node(writer, schema)
        writer.write_u32(len(self.instruction_params))
        for key, decoder in self.instruction_params.items():
            writer.write_u64(key)
            writer.write_u32(len(decoder.accounts))
            for name in decoder.accounts:
                writer.write_string(name)
            write_schema_node(writer, decoder.instruction_args_parser)
        return writer.getvalue()

    @classmethod
    def from_bytes(cls, data: bytes) -> "OnChainIdl":
        return read_all(data, cls._read)

    @classmethod
    def _read(cls, reader: BorshReader) -> "OnChainIdl":
        program_name = reader.read_string()
        account_disc_len = reader.read_u8()
        instruction_disc_len = reader.read_u8()

        accounts = {}
        for _ in range(reader.read_u32()):
            key = reader.read_u64()
            accounts[key] = read_schema_node(reader)

        instruction_params = {}
        for _ in range(reader.read_u32()):
            key = reader.read_u64()
            names = tuple(reader.read_string() for _ in range(reader.read_u32()))
            instruction_params[key] = InstructionDecoder(names, read_schema_node(reader))

        return cls(program_name, account_disc_len, instruction_disc_len, accounts, instruction_params)

    def schemas_to_json(self) -> Dict[str, Any]:
        return {
            "name": self.program_name,
            "accounts": [schema.to_json() for schema in self.accounts.values()],
            "instructions": [
                dict(decoder.instruction_args_parser.to_json(), accounts=list(decoder.accounts))
                for decoder in self.instruction_params.values()
            ],
        }
