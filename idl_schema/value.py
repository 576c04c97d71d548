"""
Decoded values.

A TypedValue mirrors the SchemaType it was decoded from. `to_json` renders
it with the fixed output contract: 64 and 128 bit integers and floats become
decimal strings so no JSON consumer loses precision, an enum with an empty
payload collapses to its variant name.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Tuple

import numpy as np

from .schema import is_positional


class ValueKind(Enum):
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
    BYTES = 22


NATIVE_KINDS = frozenset([
    ValueKind.PUBKEY,
    ValueKind.STRING,
    ValueKind.I8,
    ValueKind.U8,
    ValueKind.I16,
    ValueKind.U16,
    ValueKind.I32,
    ValueKind.U32,
    ValueKind.BOOL,
])

WIDE_INT_KINDS = frozenset([
    ValueKind.I64,
    ValueKind.U64,
    ValueKind.I128,
    ValueKind.U128,
])

SEQUENCE_KINDS = frozenset([
    ValueKind.ARRAY,
    ValueKind.TUPLE,
    ValueKind.VEC,
])


def format_float(value: float, single_precision: bool) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    typed = np.float32(value) if single_precision else np.float64(value)
    return np.format_float_positional(typed, unique=True, trim='-')


@dataclass(frozen=True)
class TypedValue:
    """
    A decoded instance.

    `value` holds, by kind: None for EMPTY, str for PUBKEY and STRING, int for
    the integer kinds, float for F32/F64, bool for BOOL, an optional
    TypedValue for OPTION, a tuple of TypedValue for ARRAY, TUPLE and VEC, a
    tuple of ValueNode for STRUCT, the selected ValueNode for ENUM and bytes
    for BYTES.
    """
    kind: ValueKind
    value: Any = None

    @classmethod
    def new_struct(cls, fields: Iterable[Tuple[str, "TypedValue"]]) -> "TypedValue":
        return cls(ValueKind.STRUCT, tuple(ValueNode(name, value) for name, value in fields))

    def field(self, name: str) -> "TypedValue":
        if self.kind != ValueKind.STRUCT:
            raise TypeError(f"`{self.kind.name}` value has no fields")
        for node in self.value:
            if node.name == name:
                return node.value
        raise KeyError(name)

    def field_names(self):
        return [node.name for node in self.value]

    def to_json(self) -> Any:
        kind = self.kind
        if kind == ValueKind.EMPTY:
            return ""
        if kind in NATIVE_KINDS:
            return self.value
        if kind in WIDE_INT_KINDS:
            return str(self.value)
        if kind == ValueKind.F32:
            return format_float(self.value, True)
        if kind == ValueKind.F64:
            return format_float(self.value, False)
        if kind == ValueKind.OPTION:
            return None if self.value is None else self.value.to_json()
        if kind in SEQUENCE_KINDS:
            return [item.to_json() for item in self.value]
        if kind == ValueKind.STRUCT:
            if is_positional(self.field_names()):
                return [node.value.to_json() for node in self.value]
            return {node.name: node.value.to_json() for node in self.value}
        if kind == ValueKind.ENUM:
            if self.value.value.kind == ValueKind.EMPTY:
                return self.value.name
            return self.value.to_json()
        if kind == ValueKind.BYTES:
            return list(self.value)
        raise TypeError(f"Cannot render value of kind `{kind.name}`")


@dataclass(frozen=True)
class ValueNode:
    name: str
    value: TypedValue

    @classmethod
    def new_struct(cls, name: str, fields: Iterable[Tuple[str, TypedValue]]) -> "ValueNode":
        return cls(name, TypedValue.new_struct(fields))

    def to_json(self) -> Dict[str, Any]:
        return {"name": self.name, "value": self.value.to_json()}
