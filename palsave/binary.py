"""Little-endian primitives shared by the container, the property tree and the raw records.

Readers take ``(data, offset)`` and return ``(value, new_offset)``; writers append to a
``bytearray``. Every read is bounds-checked and raises :class:`Truncated` with the offset
of the field that ran past the end of the input.
"""
import struct
import uuid
from typing import *

from palsave.errors import ImplausibleLength, MalformedProperty, Truncated

T = TypeVar('T')

Reader = Callable[[bytes, int], Tuple[T, int]]
Writer = Callable[[bytearray, T], None]

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

# wire byte i <-> UUID byte _GUID_ORDER[i]; every 4-byte group is reversed
_GUID_ORDER = (3, 2, 1, 0, 7, 6, 5, 4, 11, 10, 9, 8, 15, 14, 13, 12)


def _check(data: bytes, offset: int, size: int, what: str = "data") -> None:
    if offset + size > len(data):
        raise Truncated(offset, size, max(0, len(data) - offset), what)


def _unpack(fmt: struct.Struct, data: bytes, offset: int) -> Tuple[Any, int]:
    _check(data, offset, fmt.size)
    return fmt.unpack_from(data, offset)[0], offset + fmt.size


def read_bytes(data: bytes, offset: int, size: int) -> Tuple[bytes, int]:
    _check(data, offset, size)
    return bytes(data[offset: offset + size]), offset + size


def read_u8(data: bytes, offset: int) -> Tuple[int, int]:
    return _unpack(_U8, data, offset)


def write_u8(data: bytearray, v: int) -> None:
    data.extend(_U8.pack(int(v) & 0xFF))


def read_i8(data: bytes, offset: int) -> Tuple[int, int]:
    return _unpack(_I8, data, offset)


def write_i8(data: bytearray, v: int) -> None:
    data.extend(_I8.pack(int(v)))


def read_u16(data: bytes, offset: int) -> Tuple[int, int]:
    return _unpack(_U16, data, offset)


def write_u16(data: bytearray, v: int) -> None:
    data.extend(_U16.pack(int(v) & 0xFFFF))


def read_i16(data: bytes, offset: int) -> Tuple[int, int]:
    return _unpack(_I16, data, offset)


def write_i16(data: bytearray, v: int) -> None:
    data.extend(_I16.pack(int(v)))


def read_u32(data: bytes, offset: int) -> Tuple[int, int]:
    return _unpack(_U32, data, offset)


def write_u32(data: bytearray, v: int) -> None:
    data.extend(_U32.pack(int(v) & 0xFFFFFFFF))


def read_i32(data: bytes, offset: int) -> Tuple[int, int]:
    return _unpack(_I32, data, offset)


def write_i32(data: bytearray, v: int) -> None:
    data.extend(_I32.pack(int(v)))


def read_u64(data: bytes, offset: int) -> Tuple[int, int]:
    return _unpack(_U64, data, offset)


def write_u64(data: bytearray, v: int) -> None:
    data.extend(_U64.pack(int(v) & 0xFFFFFFFFFFFFFFFF))


def read_i64(data: bytes, offset: int) -> Tuple[int, int]:
    return _unpack(_I64, data, offset)


def write_i64(data: bytearray, v: int) -> None:
    data.extend(_I64.pack(int(v)))


def read_f32(data: bytes, offset: int) -> Tuple[float, int]:
    return _unpack(_F32, data, offset)


def write_f32(data: bytearray, v: float) -> None:
    data.extend(_F32.pack(float(v)))


def read_f64(data: bytes, offset: int) -> Tuple[float, int]:
    return _unpack(_F64, data, offset)


def write_f64(data: bytearray, v: float) -> None:
    data.extend(_F64.pack(float(v)))


def decode_guid(raw: bytes) -> uuid.UUID:
    """Turn 16 wire bytes into a UUID (each 4-byte group is stored little-endian)."""
    if len(raw) != 16:
        raise ValueError(f"GUID must be 16 bytes, got {len(raw)}")
    return uuid.UUID(bytes=bytes(raw[i] for i in _GUID_ORDER))


def encode_guid(guid: uuid.UUID) -> bytes:
    b = guid.bytes
    return bytes(b[i] for i in _GUID_ORDER)


def read_guid(data: bytes, offset: int) -> Tuple[uuid.UUID, int]:
    _check(data, offset, 16, "GUID")
    return decode_guid(data[offset: offset + 16]), offset + 16


def write_guid(data: bytearray, guid: uuid.UUID) -> None:
    data.extend(encode_guid(guid))


def read_string(data: bytes, offset: int) -> Tuple[str, int]:
    """Read an FString: int32 length. If negative, it's UTF-16LE and -length is the unit count.

    The length includes the NUL terminator; 0 means empty with no terminator at all.
    Undecodable text is replaced with U+FFFD rather than rejected.
    """
    start = offset
    strlen, offset = read_i32(data, offset)
    if strlen == 0:
        return "", offset
    nbytes = -strlen * 2 if strlen < 0 else strlen
    if nbytes > len(data) - offset:
        raise ImplausibleLength(start, abs(strlen), nbytes, len(data) - offset)
    if strlen < 0:
        raw = data[offset: offset + nbytes - 2]
        terminator = data[offset + nbytes - 2: offset + nbytes]
        s = bytes(raw).decode('utf-16-le', errors='replace')
        if terminator != b'\x00\x00':
            raise MalformedProperty("unterminated UTF-16 string", start)
    else:
        raw = data[offset: offset + nbytes - 1]
        terminator = data[offset + nbytes - 1]
        s = bytes(raw).decode('utf-8', errors='replace')
        if terminator != 0:
            raise MalformedProperty("unterminated string", start)
    return s, offset + nbytes


def is_unicode(s: str) -> bool:
    # same criterion the game uses: UTF-8 length differs from the code point count
    return len(s.encode('utf-8', errors='surrogatepass')) != len(s)


def write_string(data: bytearray, s: str) -> None:
    """Write an FString (length includes trailing NUL; 0 means empty)."""
    if not s:
        write_i32(data, 0)
        return
    if is_unicode(s):
        encoded = s.encode('utf-16-le', errors='surrogatepass')
        write_i32(data, -(len(encoded) // 2 + 1))
        data.extend(encoded)
        data.extend(b'\x00\x00')
    else:
        encoded = s.encode('utf-8')
        write_i32(data, len(encoded) + 1)
        data.extend(encoded)
        data.extend(b'\x00')


def encode_string(s: str) -> bytes:
    data = bytearray()
    write_string(data, s)
    return bytes(data)


def read_array(data: bytes, offset: int, read_item: Reader, min_item_size: int = 1) -> Tuple[List[Any], int]:
    """Read a u32 count followed by that many items.

    ``min_item_size`` is the smallest encoding of one item; a count that could not fit in
    the rest of the input is rejected before anything is allocated.
    """
    start = offset
    count, offset = read_u32(data, offset)
    available = len(data) - offset
    if count * min_item_size > available:
        raise ImplausibleLength(start, count, count * min_item_size, available)
    items = []
    for _ in range(count):
        item, offset = read_item(data, offset)
        items.append(item)
    return items, offset


def write_array(data: bytearray, items: Sequence[Any], write_item: Writer) -> None:
    write_u32(data, len(items))
    for item in items:
        write_item(data, item)
