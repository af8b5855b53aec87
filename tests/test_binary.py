"""Tests for the little-endian primitives, strings, GUIDs and arrays."""
import os
import uuid

import pytest

from palsave.binary import (decode_guid, encode_guid, encode_string, is_unicode,
                            read_array, read_guid, read_string, read_u32,
                            write_array, write_guid)
from palsave.errors import ImplausibleLength, MalformedProperty, Truncated


def test_guid_permutation_reverses_each_four_byte_group() -> None:
    raw = bytes(range(16))
    guid = decode_guid(raw)
    assert guid.bytes == bytes([3, 2, 1, 0, 7, 6, 5, 4, 11, 10, 9, 8, 15, 14, 13, 12])
    assert encode_guid(guid) == raw


@pytest.mark.parametrize("raw", [bytes(16), b"\xff" * 16, bytes(range(16)), os.urandom(16), os.urandom(16)])
def test_guid_permutation_is_an_involution(raw: bytes) -> None:
    assert encode_guid(decode_guid(raw)) == raw


def test_guid_cursor_forms_advance_by_sixteen() -> None:
    guid = uuid.UUID("01234567-89ab-cdef-0123-456789abcdef")
    data = bytearray(b"xx")
    write_guid(data, guid)
    value, offset = read_guid(bytes(data), 2)
    assert value == guid
    assert offset == 18


def test_short_guid_is_truncated() -> None:
    with pytest.raises(Truncated) as exc:
        read_guid(bytes(10), 0)
    assert exc.value.offset == 0
    assert exc.value.available == 10


def test_non_unicode_string_scenario() -> None:
    value, offset = read_string(bytes([0x02, 0x00, 0x00, 0x00, 0x41, 0x00]), 0)
    assert value == "A"
    assert offset == 6


def test_unicode_string_scenario() -> None:
    value, offset = read_string(bytes([0xFE, 0xFF, 0xFF, 0xFF, 0x41, 0x00, 0x00, 0x00]), 0)
    assert value == "A"
    assert offset == 8


def test_empty_string_is_four_zero_bytes() -> None:
    assert encode_string("") == b"\x00\x00\x00\x00"
    assert read_string(b"\x00\x00\x00\x00", 0) == ("", 4)


@pytest.mark.parametrize("text", ["A", "None", "Lamball Lovers", "/Script/Pal.PalWorldSaveGame"])
def test_ascii_strings_use_the_single_byte_branch(text: str) -> None:
    encoded = encode_string(text)
    length, _ = read_u32(encoded, 0)
    assert not is_unicode(text)
    assert length == len(text) + 1
    assert encoded.endswith(b"\x00")
    assert read_string(encoded, 0) == (text, len(encoded))


@pytest.mark.parametrize("text", ["ボブ", "café", "Zoë the 🐑", "日本語テキスト"])
def test_multibyte_strings_use_the_unicode_branch(text: str) -> None:
    encoded = encode_string(text)
    units = len(text.encode("utf-16-le")) // 2
    assert is_unicode(text)
    assert int.from_bytes(encoded[:4], "little", signed=True) == -(units + 1)
    assert encoded.endswith(b"\x00\x00")
    assert read_string(encoded, 0) == (text, len(encoded))


def test_invalid_utf8_is_replaced_not_rejected() -> None:
    value, _ = read_string(b"\x03\x00\x00\x00\xffA\x00", 0)
    assert value == "�A"


def test_lone_utf16_surrogate_is_replaced_not_rejected() -> None:
    value, _ = read_string(b"\xfe\xff\xff\xff\x00\xd8\x00\x00", 0)
    assert value == "�"


def test_string_longer_than_input_is_implausible() -> None:
    with pytest.raises(ImplausibleLength) as exc:
        read_string(b"\x10\x00\x00\x00abc", 0)
    assert exc.value.offset == 0
    assert exc.value.count == 16
    assert exc.value.needed == 16
    assert exc.value.available == 3
    assert isinstance(exc.value, Truncated)


def test_hostile_utf16_string_length_is_implausible() -> None:
    with pytest.raises(ImplausibleLength) as exc:
        read_string(b"\x00\x00\x00\x80A\x00", 0)
    assert exc.value.count == 2 ** 31
    assert exc.value.needed == 2 ** 32


def test_string_without_terminator_is_malformed() -> None:
    with pytest.raises(MalformedProperty):
        read_string(b"\x02\x00\x00\x00AB", 0)


def test_array_round_trip() -> None:
    guids = [uuid.UUID(int=i) for i in range(3)]
    data = bytearray()
    write_array(data, guids, write_guid)
    assert len(data) == 4 + 3 * 16
    values, offset = read_array(bytes(data), 0, read_guid, 16)
    assert values == guids
    assert offset == len(data)


def test_empty_array_is_just_a_count() -> None:
    data = bytearray()
    write_array(data, [], write_guid)
    assert bytes(data) == b"\x00\x00\x00\x00"
    assert read_array(bytes(data), 0, read_guid, 16) == ([], 4)


def test_hostile_array_count_is_rejected_before_reading() -> None:
    data = b"\xff\xff\xff\x7f" + bytes(32)
    with pytest.raises(ImplausibleLength) as exc:
        read_array(data, 0, read_guid, 16)
    assert exc.value.count == 0x7FFFFFFF
    assert isinstance(exc.value, Truncated)


def test_array_ending_early_is_truncated() -> None:
    data = b"\x02\x00\x00\x00" + bytes(16) + bytes(8)
    with pytest.raises(Truncated) as exc:
        read_array(data, 0, read_guid, 1)
    assert exc.value.offset == 20
