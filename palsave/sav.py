"""The ``.sav`` envelope around a GVAS file.

Layout (little-endian)::

    u32 decompressed_length | u32 compressed_length | b"PlZ" | u8 tier | payload

Tier 0x30 stores the GVAS bytes verbatim, 0x31 zlib-compresses them once and 0x32
twice. For 0x32 ``compressed_length`` is the size of the intermediate (once
compressed) stream, not of the payload in the file.
"""
import logging
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import *

from palsave.binary import read_bytes, read_u8, read_u32, write_u8, write_u32
from palsave.errors import DecompressionError, InvalidMagic, Truncated, UnknownCompressionTier
from palsave.gvas import GvasFile, GvasHeader, SaveTypes, read_gvas, write_gvas
from palsave.paltypes import PALWORLD_TYPES

log = logging.getLogger(__name__)

MAGIC = b'PlZ'

TIER_STORED = 0x30
TIER_ZLIB = 0x31
TIER_DOUBLE_ZLIB = 0x32
TIERS = (TIER_STORED, TIER_ZLIB, TIER_DOUBLE_ZLIB)

HEADER_SIZE = 12


@dataclass
class PalSave:
    gvas: GvasFile
    compression_tier: int = TIER_DOUBLE_ZLIB

    @property
    def header(self) -> GvasHeader:
        return self.gvas.header


def _inflate(data: bytes, expected: int, offset: int) -> bytes:
    """Inflate one zlib stream that must produce exactly ``expected`` bytes."""
    dctx = zlib.decompressobj()
    try:
        # never inflate past what the header declares
        out = dctx.decompress(data, expected + 1)
    except zlib.error as e:
        raise DecompressionError(f"zlib failed: {e}") from e
    if len(out) > expected:
        raise DecompressionError(f"zlib stream inflates past the declared {expected} byte(s)")
    if not dctx.eof:
        raise Truncated(offset + len(data), 1, 0, "zlib stream")
    if len(out) < expected:
        raise Truncated(offset, expected, len(out), "decompressed payload")
    if dctx.unused_data:
        log.warning("ignoring %d byte(s) after the zlib stream", len(dctx.unused_data))
    return out


def decompress_sav(data: bytes) -> Tuple[bytes, int]:
    """Unwrap a ``.sav`` container; returns the GVAS bytes and the compression tier."""
    decompressed_length, offset = read_u32(data, 0)
    compressed_length, offset = read_u32(data, offset)
    magic, offset = read_bytes(data, offset, 3)
    if magic != MAGIC:
        raise InvalidMagic(magic)
    tier, offset = read_u8(data, offset)
    if tier not in TIERS:
        raise UnknownCompressionTier(tier)
    log.debug("sav container: tier 0x%02x, %d -> %d byte(s)", tier, compressed_length, decompressed_length)

    if tier == TIER_DOUBLE_ZLIB:
        intermediate = _inflate(data[offset:], compressed_length, offset)
        return _inflate(intermediate, decompressed_length, offset), tier

    payload, end = read_bytes(data, offset, compressed_length)
    if end != len(data):
        log.warning("ignoring %d byte(s) after the payload", len(data) - end)
    if tier == TIER_STORED:
        if compressed_length != decompressed_length:
            raise DecompressionError(
                f"stored payload is {compressed_length} byte(s) but header says {decompressed_length}")
        return payload, tier
    return _inflate(payload, decompressed_length, offset), tier


def compress_sav(raw: bytes, tier: int) -> bytes:
    """Wrap GVAS bytes in a ``.sav`` container using the given tier."""
    if tier == TIER_STORED:
        payload = raw
        compressed_length = len(raw)
    elif tier == TIER_ZLIB:
        payload = zlib.compress(raw)
        compressed_length = len(payload)
    elif tier == TIER_DOUBLE_ZLIB:
        once = zlib.compress(raw)
        payload = zlib.compress(once)
        compressed_length = len(once)
    else:
        raise UnknownCompressionTier(tier)

    data = bytearray()
    write_u32(data, len(raw))
    write_u32(data, compressed_length)
    data.extend(MAGIC)
    write_u8(data, tier)
    data.extend(payload)
    return bytes(data)


def read_sav(data: bytes, types: SaveTypes = PALWORLD_TYPES) -> PalSave:
    raw, tier = decompress_sav(data)
    return PalSave(gvas=read_gvas(raw, types), compression_tier=tier)


def write_sav(save: PalSave) -> bytes:
    return compress_sav(write_gvas(save.gvas), save.compression_tier)


def load_savefile(path: Path, types: SaveTypes = PALWORLD_TYPES) -> PalSave:
    return read_sav(Path(path).read_bytes(), types)


def write_savefile(path: Path, save: PalSave) -> None:
    Path(path).write_bytes(write_sav(save))
