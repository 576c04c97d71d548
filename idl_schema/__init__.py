"""
idl_schema - decode on-chain account and instruction data from an IDL.

Quick start::

    from idl_schema import parse_idl_file

    idl = parse_idl_file("phoenix_v1.json")
    result = idl.decode_instruction(instruction_data, account_keys)
    print(result.to_json())
"""

__version__ = "0.1.0"

from .errors import (
    ConfigError,
    DecodeError,
    DiscriminatorNotFoundError,
    IdlFormatError,
    IdlSchemaError,
    ResolutionError,
    SchemaCodecError,
    SchemaRoundTripError,
)
from .schema import SchemaNode, SchemaType, SmallVecLen, TypeKind
from .value import TypedValue, ValueKind, ValueNode
from .on_chain_idl import InstructionDecoder, OnChainIdl, ParsedAccountResult, ParsedInstructionResult
from .parse_idl import parse_idl, parse_idl_document, parse_idl_file

__all__ = [
    "ConfigError",
    "DecodeError",
    "DiscriminatorNotFoundError",
    "IdlFormatError",
    "IdlSchemaError",
    "ResolutionError",
    "SchemaCodecError",
    "SchemaRoundTripError",
    "SchemaNode",
    "SchemaType",
    "SmallVecLen",
    "TypeKind",
    "TypedValue",
    "ValueKind",
    "ValueNode",
    "InstructionDecoder",
    "OnChainIdl",
    "ParsedAccountResult",
    "ParsedInstructionResult",
    "parse_idl",
    "parse_idl_document",
    "parse_idl_file",
    "__version__",
]
