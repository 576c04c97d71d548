"""
Binary encoding of the schema model itself.

Each SchemaType is written as a u16 tag (TypeKind value) followed by a
variant payload:

    OPTION, VEC       inner type
    ARRAY             u64 length, inner type
    TUPLE             u64 count, member types
    STRUCT, ENUM      u64 count, schema nodes
    SMALL_VEC         u8 length width (0 = u8, 1 = u16), inner type
    everything else   no payload

A SchemaNode is its name (u32 length prefixed UTF-8), its type and a one byte
hidden flag. This describes types only and never carries instance data.
"""

from .borsh import BorshReader, BorshWriter
from .errors import DecodeError, SchemaCodecError
from .schema import SchemaNode, SchemaType, SmallVecLen, TypeKind

_TAGS = {kind.value: kind for kind in TypeKind}


def write_schema_type(writer: BorshWriter, typ: SchemaType):
    kind = typ.kind
    writer.write_u16(kind.value)
    if kind in (TypeKind.OPTION, TypeKind.VEC):
        write_schema_type(writer, typ.inner)
    elif kind == TypeKind.ARRAY:
        writer.write_u64(typ.size)
        write_schema_type(writer, typ.inner)
    elif kind == TypeKind.TUPLE:
        writer.write_u64(len(typ.items))
        for item in typ.items:
            write_schema_type(writer, item)
    elif kind in (TypeKind.STRUCT, TypeKind.ENUM):
        writer.write_u64(len(typ.nodes))
        for node in typ.nodes:
            write_schema_node(writer, node)
    elif kind == TypeKind.SMALL_VEC:
        writer.write_u8(typ.len_width.value)
        write_schema_type(writer, typ.inner)


def write_schema_node(writer: BorshWriter, node: SchemaNode):
    writer.write_string(node.name)
    write_schema_type(writer, node.type)
    writer.write_bool(node.is_hidden)


def read_schema_type(reader: BorshReader) -> SchemaType:
    tag = reader.read_u16()
    kind = _TAGS.get(tag)
    if kind is None:
        raise SchemaCodecError(f"Invalid tag: {tag}")

    if kind == TypeKind.OPTION:
        return SchemaType.option(read_schema_type(reader))
    if kind == TypeKind.VEC:
        return SchemaType.vec(read_schema_type(reader))
    if kind == TypeKind.ARRAY:
        size = reader.read_u64()
        return SchemaType.array(size, read_schema_type(reader))
    if kind == TypeKind.TUPLE:
        count = reader.read_u64()
        return SchemaType.tuple_of([read_schema_type(reader) for _ in range(count)])
    if kind in (TypeKind.STRUCT, TypeKind.ENUM):
        count = reader.read_u64()
        nodes = [read_schema_node(reader) for _ in range(count)]
        if kind == TypeKind.STRUCT:
            return SchemaType.struct(nodes)
        return SchemaType.enum(nodes)
    if kind == TypeKind.SMALL_VEC:
        width = reader.read_u8()
        try:
            len_width = SmallVecLen(width)
        except ValueError as e:
            raise SchemaCodecError(f"Invalid SmallVec length width: {width}") from e
        return SchemaType.small_vec(len_width, read_schema_type(reader))
    return SchemaType(kind)


def read_schema_node(reader: BorshReader) -> SchemaNode:
    name = reader.read_string()
    typ = read_schema_type(reader)
    return SchemaNode(name, typ, reader.read_bool())


def schema_type_to_bytes(typ: SchemaType) -> bytes:
    writer = BorshWriter()
    write_schema_type(writer, typ)
    return writer.getvalue()


def schema_node_to_bytes(node: SchemaNode) -> bytes:
    writer = BorshWriter()
    write_schema_node(writer, node)
    return writer.getvalue()


def read_all(data: bytes, read):
    reader = BorshReader(data)
    try:
        result = read(reader)
    except SchemaCodecError:
        raise
    except DecodeError as e:
        raise SchemaCodecError(str(e)) from e
    if not reader.at_end():
        raise SchemaCodecError(f"Not all bytes read: {reader.remaining()} trailing")
    return result


def schema_type_from_bytes(data: bytes) -> SchemaType:
    return read_all(data, read_schema_type)


def schema_node_from_bytes(data: bytes) -> SchemaNode:
    return read_all(data, read_schema_node)
