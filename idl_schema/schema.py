"""
Schema model for borsh encoded account and instruction data.

A SchemaType describes the shape of serialized data. Composite types hold
their children directly, and a SchemaNode attaches a field, variant or type
name to a SchemaType. Both are immutable and compare by value, so compiled
schemas can be checked for equality after a binary round trip.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple


class TypeKind(Enum):
    # The values double as the persisted tag of each variant. A new variant
    # takes the next free number, existing numbers never change.
    EMPTY = 0
    PUBKEY = 1
    STRING = 2
    I8 = 3
    U8 = 4
    I16 = 5
    U16 = 6
    I32 = 7
    U32 = 8
    I64 = 9
    U64 = 10
    I128 = 11
    U128 = 12
    F32 = 13
    F64 = 14
    BOOL = 15
    OPTION = 16
    ARRAY = 17
    TUPLE = 18
    VEC = 19
    STRUCT = 20
    ENUM = 21
    SMALL_VEC = 22
    REMAINING_BYTES = 23


class SmallVecLen(Enum):
    U8 = 0
    U16 = 1

    @property
    def width(self) -> int:
        return 1 if self is SmallVecLen.U8 else 2

    @property
    def type_name(self) -> str:
        return self.name.lower()

    @classmethod
    def from_name(cls, name: str) -> "SmallVecLen":
        if name == "u8":
            return cls.U8
        if name == "u16":
            return cls.U16
        raise ValueError(f"Unsupported SmallVec len type `{name}`")


# Lowercase names used when a schema is rendered to JSON
TYPE_NAMES = {
    TypeKind.EMPTY: "empty",
    TypeKind.PUBKEY: "pubkey",
    TypeKind.STRING: "string",
    TypeKind.I8: "i8",
    TypeKind.U8: "u8",
    TypeKind.I16: "i16",
    TypeKind.U16: "u16",
    TypeKind.I32: "i32",
    TypeKind.U32: "u32",
    TypeKind.I64: "i64",
    TypeKind.U64: "u64",
    TypeKind.I128: "i128",
    TypeKind.U128: "u128",
    TypeKind.F32: "f32",
    TypeKind.F64: "f64",
    TypeKind.BOOL: "bool",
    TypeKind.OPTION: "option",
    TypeKind.ARRAY: "array",
    TypeKind.TUPLE: "tuple",
    TypeKind.VEC: "vec",
    TypeKind.STRUCT: "struct",
    TypeKind.ENUM: "enum",
    TypeKind.SMALL_VEC: "smallvec",
    TypeKind.REMAINING_BYTES: "bytes_remaining",
}


def is_positional(names: List[str]) -> bool:
    """Tuple style fields have no name. Such structs, and structs repeating a
    field name, render as a JSON array in declared order."""
    return "" in names or len(set(names)) != len(names)


@dataclass(frozen=True)
class SchemaType:
    """
    One node of the recursive type description.

    Only the attributes relevant to `kind` are populated:
        inner: element type of OPTION, ARRAY, VEC and SMALL_VEC
        size: fixed element count of ARRAY
        items: member types of TUPLE
        nodes: named fields of STRUCT or variants of ENUM
        len_width: count width of SMALL_VEC
    """
    kind: TypeKind
    inner: Optional["SchemaType"] = None
    size: int = 0
    items: Tuple["SchemaType", ...] = ()
    nodes: Tuple["SchemaNode", ...] = ()
    len_width: Optional[SmallVecLen] = None

    @classmethod
    def option(cls, inner: "SchemaType") -> "SchemaType":
        return cls(TypeKind.OPTION, inner=inner)

    @classmethod
    def vec(cls, inner: "SchemaType") -> "SchemaType":
        return cls(TypeKind.VEC, inner=inner)

    @classmethod
    def array(cls, size: int, inner: "SchemaType") -> "SchemaType":
        return cls(TypeKind.ARRAY, inner=inner, size=size)

    @classmethod
    def tuple_of(cls, items: Iterable["SchemaType"]) -> "SchemaType":
        return cls(TypeKind.TUPLE, items=tuple(items))

    @classmethod
    def struct(cls, fields: Iterable["SchemaNode"]) -> "SchemaType":
        return cls(TypeKind.STRUCT, nodes=tuple(fields))

    @classmethod
    def enum(cls, variants: Iterable["SchemaNode"]) -> "SchemaType":
        return cls(TypeKind.ENUM, nodes=tuple(variants))

    @classmethod
    def small_vec(cls, len_width: SmallVecLen, inner: "SchemaType") -> "SchemaType":
        return cls(TypeKind.SMALL_VEC, inner=inner, len_width=len_width)

    @property
    def type_name(self) -> str:
        return TYPE_NAMES[self.kind]

    def is_byte_sequence(self) -> bool:
        """True for Vec<u8> and SmallVec<_, u8>, which decode to raw bytes."""
        return self.kind in (TypeKind.VEC, TypeKind.SMALL_VEC) and self.inner == U8

    def to_json(self) -> Any:
        kind = self.kind
        if kind == TypeKind.EMPTY:
            return None
        if kind == TypeKind.OPTION:
            return {"type:option": self.inner.to_json()}
        if kind == TypeKind.ARRAY:
            return {"size": self.size, "type": self.inner.to_json()}
        if kind == TypeKind.TUPLE:
            return {"type:tuple": [item.to_json() for item in self.items]}
        if kind == TypeKind.VEC:
            return {"type:vec": self.inner.to_json()}
        if kind == TypeKind.STRUCT:
            if is_positional([field.name for field in self.nodes]):
                return [field.type.to_json() for field in self.nodes]
            return {field.name: field.type.to_json() for field in self.nodes}
        if kind == TypeKind.ENUM:
            return {"type:enum": {variant.name: variant.type.to_json() for variant in self.nodes}}
        if kind == TypeKind.SMALL_VEC:
            return {"type:smallvec": {"len": self.len_width.type_name, "elem": self.inner.to_json()}}
        return self.type_name


@dataclass(frozen=True)
class SchemaNode:
    name: str
    type: SchemaType
    is_hidden: bool = False

    @classmethod
    def new_struct(cls, name: str, fields: Iterable[Tuple[str, SchemaType]]) -> "SchemaNode":
        return cls(name, SchemaType.struct(SchemaNode(field_name, typ) for field_name, typ in fields))

    def hidden(self) -> "SchemaNode":
        return SchemaNode(self.name, self.type, True)

    def to_json(self) -> Dict[str, Any]:
        return {"name": self.name, "type": self.type.to_json()}


EMPTY = SchemaType(TypeKind.EMPTY)
PUBKEY = SchemaType(TypeKind.PUBKEY)
STRING = SchemaType(TypeKind.STRING)
I8 = SchemaType(TypeKind.I8)
U8 = SchemaType(TypeKind.U8)
I16 = SchemaType(TypeKind.I16)
U16 = SchemaType(TypeKind.U16)
I32 = SchemaType(TypeKind.I32)
U32 = SchemaType(TypeKind.U32)
I64 = SchemaType(TypeKind.I64)
U64 = SchemaType(TypeKind.U64)
I128 = SchemaType(TypeKind.I128)
U128 = SchemaType(TypeKind.U128)
F32 = SchemaType(TypeKind.F32)
F64 = SchemaType(TypeKind.F64)
BOOL = SchemaType(TypeKind.BOOL)
REMAINING_BYTES = SchemaType(TypeKind.REMAINING_BYTES)
BYTES = SchemaType.vec(U8)
