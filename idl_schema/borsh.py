"""
Little-endian cursor and writer for borsh encoded buffers.

Integers are fixed width with no padding, strings and variable sequences
carry a u32 length prefix.
"""

import struct

from .errors import DecodeError

_U8 = struct.Struct('<B')
_I8 = struct.Struct('<b')
_U16 = struct.Struct('<H')
_I16 = struct.Struct('<h')
_U32 = struct.Struct('<I')
_I32 = struct.Struct('<i')
_U64 = struct.Struct('<Q')
_I64 = struct.Struct('<q')
_F32 = struct.Struct('<f')
_F64 = struct.Struct('<d')


class BorshReader:
    def __init__(self, data: bytes, offset: int = 0):
        self.data = bytes(data)
        self.offset = offset

    def remaining(self) -> int:
        return len(self.data) - self.offset

    def at_end(self) -> bool:
        return self.offset >= len(self.data)

    def _need(self, size: int, what: str):
        if size > self.remaining():
            raise DecodeError(f"Not enough bytes for {what}: need {size}, have {self.remaining()}")

    def read_bytes(self, size: int, what: str = "bytes") -> bytes:
        self._need(size, what)
        chunk = self.data[self.offset:self.offset + size]
        self.offset += size
        return chunk

    def read_rest(self) -> bytes:
        chunk = self.data[self.offset:]
        self.offset = len(self.data)
        return chunk

    def _unpack(self, fmt: struct.Struct, what: str):
        self._need(fmt.size, what)
        value = fmt.unpack_from(self.data, self.offset)[0]
        self.offset += fmt.size
        return value

    def read_u8(self) -> int:
        return self._unpack(_U8, "u8")

    def read_i8(self) -> int:
        return self._unpack(_I8, "i8")

    def read_u16(self) -> int:
        return self._unpack(_U16, "u16")

    def read_i16(self) -> int:
        return self._unpack(_I16, "i16")

    def read_u32(self) -> int:
        return self._unpack(_U32, "u32")

    def read_i32(self) -> int:
        return self._unpack(_I32, "i32")

    def read_u64(self) -> int:
        return self._unpack(_U64, "u64")

    def read_i64(self) -> int:
        return self._unpack(_I64, "i64")

    def read_u128(self) -> int:
        return int.from_bytes(self.read_bytes(16, "u128"), 'little', signed=False)

    def read_i128(self) -> int:
        return int.from_bytes(self.read_bytes(16, "i128"), 'little', signed=True)

    def read_f32(self) -> float:
        return self._unpack(_F32, "f32")

    def read_f64(self) -> float:
        return self._unpack(_F64, "f64")

    def read_bool(self) -> bool:
        flag = self.read_u8()
        if flag > 1:
            raise DecodeError(f"Invalid bool representation: {flag}")
        return flag == 1

    def read_string(self) -> str:
        size = self.read_u32()
        raw = self.read_bytes(size, "string")
        try:
            return raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise DecodeError(f"String is not valid UTF-8: {e}") from e


class BorshWriter:
    def __init__(self):
        self.buf = bytearray()

    def getvalue(self) -> bytes:
        return bytes(self.buf)

    def write_bytes(self, data: bytes):
        self.buf += data

    def write_u8(self, value: int):
        self.buf += _U8.pack(value)

    def write_u16(self, value: int):
        self.buf += _U16.pack(value)

    def write_u32(self, value: int):
        self.buf += _U32.pack(value)

    def write_u64(self, value: int):
        self.buf += _U64.pack(value)

    def write_bool(self, value: bool):
        self.write_u8(1 if value else 0)

    def write_string(self, value: str):
        raw = value.encode('utf-8')
        self.write_u32(len(raw))
        self.buf += raw
