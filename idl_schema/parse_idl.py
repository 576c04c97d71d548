"""
IDL compiler.

Turns a JSON IDL document (legacy Anchor layout or the newer one with
explicit byte discriminators) into an OnChainIdl. All dynamically typed JSON
handling lives in this module; callers only ever see the schema model.

Usage:

    idl = parse_idl_file("drift.json")
    result = idl.decode_account(account_data)
"""

import hashlib
import json
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from .errors import IdlFormatError, ResolutionError, SchemaRoundTripError
from .on_chain_idl import DISCRIMINATOR_KEY_SIZE, InstructionDecoder, OnChainIdl
from .schema import (
    BOOL, BYTES, EMPTY, F32, F64, I8, I16, I32, I64, I128, PUBKEY,
    REMAINING_BYTES, STRING, U8, U16, U32, U64, U128,
    SchemaNode, SchemaType, SmallVecLen,
)

logger = logging.getLogger(__name__)

# Names accepted for primitive field types
RAW_TYPES = {
    "pubkey": PUBKEY,
    "publicKey": PUBKEY,
    "string": STRING,
    "i8": I8,
    "u8": U8,
    "i16": I16,
    "u16": U16,
    "i32": I32,
    "u32": U32,
    "i64": I64,
    "u64": U64,
    "i128": I128,
    "u128": U128,
    "f32": F32,
    "f64": F64,
    "bool": BOOL,
    "bytes": BYTES,
    "bytes_remaining": REMAINING_BYTES,
    "rest": REMAINING_BYTES,
}

# Element types a SmallVec<Len,Elem> descriptor may name without a type definition
SMALL_VEC_ELEMENTS = {
    "string": STRING,
    "i8": I8,
    "u8": U8,
    "i16": I16,
    "u16": U16,
    "i32": I32,
    "u32": U32,
    "i64": I64,
    "u64": U64,
    "i128": I128,
    "u128": U128,
    "f32": F32,
    "f64": F64,
    "bool": BOOL,
}

# Explicit {"type": ..., "value": ...} discriminators and their byte width
DISCRIMINANT_WIDTHS = {
    "u8": 1,
    "u64": 8,
}

SMALL_VEC_PATTERN = re.compile(r'^SmallVec<(.*)>$')


def parse_idl_file(file_path: str) -> OnChainIdl:
    with open(file_path, 'r') as f:
        return parse_idl(f.read())


def parse_idl(json_str: str) -> OnChainIdl:
    try:
        root = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise IdlFormatError(f"IDL is not valid JSON: {e}") from e
    return parse_idl_document(root)


def parse_idl_document(root: Any) -> OnChainIdl:
    if not isinstance(root, dict):
        raise IdlFormatError("Root is not an object")

    idl_type_map = parse_types(root)
    merge_account_types(root, idl_type_map)

    idl_parser = IdlParser(idl_type_map)
    schema_map = idl_parser.parse()

    accounts, account_disc_len = parse_account_schemas(root, schema_map)
    instruction_params, instruction_disc_len = parse_instructions(root, idl_parser)

    name = root.get("name")
    if name is None and isinstance(root.get("metadata"), dict):
        name = root["metadata"].get("name")
    if name is None:
        name = ""
    if not isinstance(name, str):
        raise IdlFormatError("Program name is not a string")

    on_chain_idl = OnChainIdl(
        program_name=name,
        account_disc_len=account_disc_len,
        instruction_disc_len=instruction_disc_len,
        accounts=accounts,
        instruction_params=instruction_params,
    )
    logger.debug(f"compiled `{name}`: {len(accounts)} accounts, {len(instruction_params)} instructions")

    validate_on_chain_idl(on_chain_idl)
    return on_chain_idl


def _get_list(root: Dict[str, Any], key: str, required: bool) -> List[Any]:
    value = root.get(key)
    if value is None:
        if required:
            raise IdlFormatError(f"`{key}` is not an array")
        return []
    if not isinstance(value, list):
        raise IdlFormatError(f"`{key}` is not an array")
    return value


def _get_name(entry: Any, what: str) -> str:
    if not isinstance(entry, dict):
        raise IdlFormatError(f"{what} is not an object")
    name = entry.get("name")
    if not isinstance(name, str):
        raise IdlFormatError(f"{what} name is not a string")
    return name


def parse_types(root: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    idl_type_map = {}
    for raw_type in _get_list(root, "types", required=True):
        type_name = _get_name(raw_type, "Type")
        idl_type_map[type_name] = raw_type
    return idl_type_map


def merge_account_types(root: Dict[str, Any], idl_type_map: Dict[str, Dict[str, Any]]):
    # Legacy IDLs carry the account layout inline. A proper type definition
    # of the same name always wins.
    for raw_account in _get_list(root, "accounts", required=False):
        account_name = _get_name(raw_account, "Account")
        if "type" in raw_account:
            idl_type_map.setdefault(account_name, raw_account)


def camel_to_snake_case(s: str) -> str:
    result = []
    for i, c in enumerate(s):
        if c.isupper():
            following = s[i + 1] if i + 1 < len(s) else ''
            if result and (following.islower() or following.isdigit()):
                result.append('_')
            result.append(c.lower())
        else:
            result.append(c)
    return ''.join(result)


def hashed_discriminator(namespace: str, name: str) -> int:
    digest = hashlib.sha256(f"{namespace}:{name}".encode('utf-8')).digest()
    return int.from_bytes(digest[:DISCRIMINATOR_KEY_SIZE], 'little')


def parse_implicit_discriminant(account_name: str) -> Tuple[int, int]:
    return hashed_discriminator("account", account_name), DISCRIMINATOR_KEY_SIZE


def parse_implicit_instruction_discriminant(instruction_name: str) -> Tuple[int, int]:
    return hashed_discriminator("global", camel_to_snake_case(instruction_name)), DISCRIMINATOR_KEY_SIZE


def parse_any_discriminator(disc: Any) -> Tuple[int, int]:
    """
    Accepts {"type": "u8"|"u64", "value": N} or a little-endian byte array.
    Returns (key, width in bytes).
    """
    if isinstance(disc, dict):
        typ = disc.get("type")
        if not isinstance(typ, str):
            raise IdlFormatError("Discriminant type is not a string")
        if typ not in DISCRIMINANT_WIDTHS:
            raise IdlFormatError(f"Unknown discriminant type `{typ}`")
        value = disc.get("value")
        if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value < 1 << 64:
            raise IdlFormatError("Discriminant value is not a u64")
        width = DISCRIMINANT_WIDTHS[typ]
        if value >= 1 << (8 * width):
            raise IdlFormatError(f"Discriminant value {value} does not fit in `{typ}`")
        return value, width

    if isinstance(disc, list):
        if not 1 <= len(disc) <= DISCRIMINATOR_KEY_SIZE:
            raise IdlFormatError(f"Discriminator must be 1 to 8 bytes, got {len(disc)}")
        for b in disc:
            if not isinstance(b, int) or isinstance(b, bool) or not 0 <= b <= 255:
                raise IdlFormatError(f"Discriminator byte `{b}` is not a u8")
        key = int.from_bytes(bytes(disc).ljust(DISCRIMINATOR_KEY_SIZE, b'\x00'), 'little')
        return key, len(disc)

    raise IdlFormatError("Unsupported discriminator value; expected object or byte array")


def _explicit_discriminator(entry: Dict[str, Any]) -> Optional[Any]:
    if "discriminant" in entry:
        return entry["discriminant"]
    return entry.get("discriminator")


def _uniform_width(widths: set, kind: str) -> int:
    if len(widths) > 1:
        raise ResolutionError(f"Multiple {kind} discriminant widths found: {sorted(widths)}")
    if widths:
        return widths.pop()
    return DISCRIMINATOR_KEY_SIZE


def parse_account_schemas(root: Dict[str, Any], schema_map: Dict[str, SchemaNode]) -> Tuple[Dict[int, SchemaNode], int]:
    widths = set()
    accounts = {}
    for raw_account in _get_list(root, "accounts", required=False):
        account_name = _get_name(raw_account, "Account")

        disc = _explicit_discriminator(raw_account)
        if disc is not None:
            key, width = parse_any_discriminator(disc)
        else:
            key, width = parse_implicit_discriminant(account_name)
        widths.add(width)

        schema = schema_map.get(account_name)
        if schema is None:
            raise ResolutionError(f"Account `{account_name}` not found in schema map")
        if key in accounts:
            raise ResolutionError(f"Account `{account_name}` reuses discriminant {key:#x} of `{accounts[key].name}`")
        accounts[key] = schema

    return accounts, _uniform_width(widths, "account")


def parse_instruction_accounts(instruction: Dict[str, Any]) -> List[str]:
    if "accounts" not in instruction or not isinstance(instruction["accounts"], list):
        raise IdlFormatError(f"Accounts of instruction `{instruction.get('name')}` is not an array")

    names = []

    def walk(entries):
        for raw_account in entries:
            name = _get_name(raw_account, "Instruction account")
            # account groups are flattened in declaration order
            if isinstance(raw_account.get("accounts"), list):
                walk(raw_account["accounts"])
            else:
                names.append(name)

    walk(instruction["accounts"])
    return names


def parse_instructions(root: Dict[str, Any], idl_parser: "IdlParser") -> Tuple[Dict[int, InstructionDecoder], int]:
    widths = set()
    instruction_params = {}
    names = {}
    for raw_instruction in _get_list(root, "instructions", required=False):
        instruction_name = _get_name(raw_instruction, "Instruction")

        accounts = parse_instruction_accounts(raw_instruction)
        args = raw_instruction.get("args")
        if args is None:
            args = []
        if not isinstance(args, list):
            raise IdlFormatError(f"Args of instruction `{instruction_name}` is not an array")

        if args:
            args_parser = idl_parser.parse_fields(instruction_name, args)
        else:
            args_parser = SchemaNode(instruction_name, EMPTY)

        disc = _explicit_discriminator(raw_instruction)
        if disc is not None:
            key, width = parse_any_discriminator(disc)
        else:
            key, width = parse_implicit_instruction_discriminant(instruction_name)
        widths.add(width)

        if key in instruction_params:
            raise ResolutionError(f"Instruction `{instruction_name}` reuses discriminant {key:#x} of `{names[key]}`")
        names[key] = instruction_name
        instruction_params[key] = InstructionDecoder(tuple(accounts), args_parser)

    return instruction_params, _uniform_width(widths, "instruction")


def validate_on_chain_idl(on_chain_idl: OnChainIdl):
    decoded = OnChainIdl.from_bytes(on_chain_idl.to_bytes())
    if decoded != on_chain_idl:
        raise SchemaRoundTripError(f"Program `{on_chain_idl.program_name}` does not survive a binary round trip")


class IdlParser:
    """
    Resolves named type definitions into schema nodes.

    Each resolved type is cached by name. Owned by a single compile run.
    """
    def __init__(self, type_map: Dict[str, Dict[str, Any]]):
        self.type_map = type_map
        self.parsed_cache: Dict[str, SchemaNode] = {}
        self.resolving: List[str] = []

    def parse(self) -> Dict[str, SchemaNode]:
        types = {}
        for type_name in self.type_map:
            try:
                types[type_name] = self.parse_type(type_name)
            except (IdlFormatError, ResolutionError) as e:
                logger.warning(f"Failed to parse type `{type_name}`: {e}")
        return types

    def parse_type(self, type_name: str) -> SchemaNode:
        if type_name in self.parsed_cache:
            return self.parsed_cache[type_name]
        if type_name in self.resolving:
            cycle = self.resolving[self.resolving.index(type_name):] + [type_name]
            raise ResolutionError(f"Type `{type_name}` references itself: {' -> '.join(cycle)}")

        type_map = self.type_map.get(type_name)
        if type_map is None:
            raise ResolutionError(f"Type `{type_name}` not found in type map")
        typ = type_map.get("type")
        if not isinstance(typ, dict):
            raise IdlFormatError(f"Type for `{type_name}` is not an object")
        kind = typ.get("kind")
        if not isinstance(kind, str):
            raise IdlFormatError(f"Kind of `{type_name}` is not a string")

        self.resolving.append(type_name)
        try:
            if kind == "struct":
                fields = typ.get("fields", [])
                if not isinstance(fields, list):
                    raise IdlFormatError(f"Fields for `{type_name}` is not an array")
                schema = self.parse_fields(type_name, fields)
            elif kind == "enum":
                schema = SchemaNode(type_name, SchemaType.enum(self.parse_variants(type_name, typ)))
            else:
                raise IdlFormatError(f"Unknown type kind `{kind}` for `{type_name}`")
        finally:
            self.resolving.pop()

        self.parsed_cache[type_name] = schema
        return schema

    def parse_variants(self, type_name: str, typ: Dict[str, Any]) -> List[SchemaNode]:
        variants = typ.get("variants")
        if not isinstance(variants, list):
            raise IdlFormatError(f"Variants for `{type_name}` is not an array")
        nodes = []
        for raw_variant in variants:
            variant_name = _get_name(raw_variant, "Variant")
            if "fields" in raw_variant:
                fields = raw_variant["fields"]
                if not isinstance(fields, list):
                    raise IdlFormatError(f"Fields for variant `{variant_name}` is not an array")
                nodes.append(SchemaNode(variant_name, self.parse_fields(variant_name, fields).type))
            else:
                nodes.append(SchemaNode(variant_name, EMPTY))
        return nodes

    def parse_fields(self, type_name: str, fields: List[Any]) -> SchemaNode:
        return SchemaNode(type_name, SchemaType.struct(self.parse_field(raw_field) for raw_field in fields))

    def parse_field(self, raw_field: Any) -> SchemaNode:
        # Tuple style fields are bare types without a name
        if not isinstance(raw_field, dict) or "type" not in raw_field:
            return SchemaNode("", self.parse_field_inner(raw_field))

        field_name = raw_field.get("name")
        if not isinstance(field_name, str):
            raise IdlFormatError(f"Field name is not a string: {raw_field}")
        return SchemaNode(field_name, self.parse_field_inner(raw_field["type"]))

    def parse_field_inner(self, field_type: Any) -> SchemaType:
        if isinstance(field_type, str):
            return parse_raw_schema_type(field_type)
        if not isinstance(field_type, dict):
            raise IdlFormatError(f"Field type is not a string or object: {field_type}")
        if not field_type:
            raise IdlFormatError("Field type object is empty")

        key, value = next(iter(field_type.items()))
        if key == "vec":
            return SchemaType.vec(self.parse_field_inner(value))
        if key == "option":
            return SchemaType.option(self.parse_field_inner(value))
        if key == "array":
            if not isinstance(value, list) or len(value) != 2:
                raise IdlFormatError(f"Array is not an [type, size] pair: {value}")
            size = value[1]
            if not isinstance(size, int) or isinstance(size, bool) or not 0 <= size < 1 << 64:
                raise IdlFormatError(f"Array size `{size}` is not a u64")
            return SchemaType.array(size, self.parse_field_inner(value[0]))
        if key == "defined":
            return self.parse_defined(value)
        raise IdlFormatError(f"Unknown field type `{key}`")

    def parse_defined(self, value: Any) -> SchemaType:
        if isinstance(value, dict):
            value = value.get("name")
        if not isinstance(value, str):
            raise IdlFormatError("Defined type is not a string")

        match = SMALL_VEC_PATTERN.match(value)
        if match is not None:
            return self.parse_small_vec(match.group(1))
        return self.parse_type(value).type

    def parse_small_vec(self, params: str) -> SchemaType:
        parts = [part.strip() for part in params.split(',')]
        if len(parts) != 2:
            raise IdlFormatError(f"SmallVec takes exactly two generic params, got `{params}`")
        len_s, elem_s = parts

        try:
            len_width = SmallVecLen.from_name(len_s)
        except ValueError as e:
            raise IdlFormatError(str(e)) from e

        if elem_s.lower() in ("pubkey", "publickey"):
            elem = PUBKEY
        elif elem_s in SMALL_VEC_ELEMENTS:
            elem = SMALL_VEC_ELEMENTS[elem_s]
        else:
            elem = self.parse_type(elem_s).type
        return SchemaType.small_vec(len_width, elem)


def parse_raw_schema_type(name: str) -> SchemaType:
    # bracket shorthand, e.g. "[u8; 3]" or "[publicKey; 2]"
    if name.startswith('[') and name.endswith(']'):
        parts = name[1:-1].split(';')
        if len(parts) != 2:
            raise IdlFormatError(f"Array syntax `{name}` is not [type; size]")
        elem_s, len_s = (part.strip() for part in parts)
        try:
            size = int(len_s)
        except ValueError as e:
            raise IdlFormatError(f"Array length `{len_s}` is not an integer") from e
        if not 0 <= size < 1 << 64:
            raise IdlFormatError(f"Array length `{len_s}` is not a u64")
        return SchemaType.array(size, parse_raw_schema_type(elem_s))

    typ = RAW_TYPES.get(name)
    if typ is None:
        raise IdlFormatError(f"Unknown type `{name}`")
    return typ
