"""
Byte decoder: walks a schema over a borsh buffer and produces typed values.

Every call advances the shared reader by exactly the bytes its type
prescribes. Any failure raises DecodeError and aborts the whole decode.
"""

from typing import Optional

from solders.pubkey import Pubkey

from .borsh import BorshReader
from .errors import DecodeError
from .schema import SchemaNode, SchemaType, SmallVecLen, TypeKind
from .value import TypedValue, ValueKind, ValueNode

PUBKEY_SIZE = 32

# Fixed width primitives: schema kind -> (value kind, reader method)
_PRIMITIVE_READERS = {
    TypeKind.I8: (ValueKind.I8, BorshReader.read_i8),
    TypeKind.U8: (ValueKind.U8, BorshReader.read_u8),
    TypeKind.I16: (ValueKind.I16, BorshReader.read_i16),
    TypeKind.U16: (ValueKind.U16, BorshReader.read_u16),
    TypeKind.I32: (ValueKind.I32, BorshReader.read_i32),
    TypeKind.U32: (ValueKind.U32, BorshReader.read_u32),
    TypeKind.I64: (ValueKind.I64, BorshReader.read_i64),
    TypeKind.U64: (ValueKind.U64, BorshReader.read_u64),
    TypeKind.I128: (ValueKind.I128, BorshReader.read_i128),
    TypeKind.U128: (ValueKind.U128, BorshReader.read_u128),
    TypeKind.F32: (ValueKind.F32, BorshReader.read_f32),
    TypeKind.F64: (ValueKind.F64, BorshReader.read_f64),
    TypeKind.BOOL: (ValueKind.BOOL, BorshReader.read_bool),
    TypeKind.STRING: (ValueKind.STRING, BorshReader.read_string),
}


def read_pubkey(reader: BorshReader) -> str:
    return str(Pubkey.from_bytes(reader.read_bytes(PUBKEY_SIZE, "pubkey")))


def _read_sequence(reader: BorshReader, count: int, typ: SchemaType, show_hidden: bool, what: str) -> TypedValue:
    # u8 elements are copied verbatim instead of decoded one by one
    if typ.is_byte_sequence():
        return TypedValue(ValueKind.BYTES, reader.read_bytes(count, what))
    values = []
    for _ in range(count):
        values.append(decode_type(typ.inner, reader, show_hidden))
    return TypedValue(ValueKind.VEC, tuple(values))


def decode_type(typ: SchemaType, reader: BorshReader, show_hidden: bool = False) -> TypedValue:
    kind = typ.kind

    if kind in _PRIMITIVE_READERS:
        value_kind, read = _PRIMITIVE_READERS[kind]
        return TypedValue(value_kind, read(reader))

    if kind == TypeKind.EMPTY:
        return TypedValue(ValueKind.EMPTY)

    if kind == TypeKind.PUBKEY:
        return TypedValue(ValueKind.PUBKEY, read_pubkey(reader))

    if kind == TypeKind.OPTION:
        flag = reader.read_u8()
        if flag == 0:
            return TypedValue(ValueKind.OPTION, None)
        if flag != 1:
            raise DecodeError(f"Invalid option flag: {flag}")
        return TypedValue(ValueKind.OPTION, decode_type(typ.inner, reader, show_hidden))

    if kind == TypeKind.ARRAY:
        return TypedValue(ValueKind.ARRAY, tuple(decode_type(typ.inner, reader, show_hidden) for _ in range(typ.size)))

    if kind == TypeKind.TUPLE:
        return TypedValue(ValueKind.TUPLE, tuple(decode_type(item, reader, show_hidden) for item in typ.items))

    if kind == TypeKind.VEC:
        count = reader.read_u32()
        return _read_sequence(reader, count, typ, show_hidden, "Vec<u8>")

    if kind == TypeKind.SMALL_VEC:
        if typ.len_width == SmallVecLen.U8:
            count = reader.read_u8()
        else:
            count = reader.read_u16()
        return _read_sequence(reader, count, typ, show_hidden, "SmallVec<u8>")

    if kind == TypeKind.STRUCT:
        fields = []
        for field in typ.nodes:
            node = decode_node(field, reader, show_hidden)
            if node is not None:
                fields.append(node)
        return TypedValue(ValueKind.STRUCT, tuple(fields))

    if kind == TypeKind.ENUM:
        selector = reader.read_u8()
        if selector >= len(typ.nodes):
            raise DecodeError(f"Enum selector {selector} out of range for {len(typ.nodes)} variants")
        variant = typ.nodes[selector]
        node = decode_node(variant, reader, show_hidden)
        if node is None or variant.is_hidden:
            raise DecodeError(f"Enum variant `{variant.name}` is hidden, enum payloads cannot be hidden")
        return TypedValue(ValueKind.ENUM, node)

    if kind == TypeKind.REMAINING_BYTES:
        return TypedValue(ValueKind.BYTES, reader.read_rest())

    raise DecodeError(f"Unsupported schema type `{kind.name}`")


def decode_node(node: SchemaNode, reader: BorshReader, show_hidden: bool = False) -> Optional[ValueNode]:
    """
    Decode one named node. A hidden node still consumes its bytes but yields
    None unless show_hidden is set.
    """
    value = decode_type(node.type, reader, show_hidden)
    if node.is_hidden and not show_hidden:
        return None
    return ValueNode(node.name, value)


def decode_bytes(node: SchemaNode, data: bytes, show_hidden: bool = False) -> Optional[ValueNode]:
    return decode_node(node, BorshReader(data), show_hidden)
