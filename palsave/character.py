"""Character save parameter record, the ``RawData`` of a ``CharacterSaveParameterMap`` entry.

A none-terminated property list, a reserved u32 (written as zero) and the group GUID.
The property list is read and written in the context of the world's GVAS header.
"""
import uuid
from dataclasses import dataclass
from typing import *

from palsave.binary import read_guid, read_u32, write_guid, write_u32
from palsave.errors import MalformedProperty
from palsave.gvas import (Context, GvasHeader, Properties, SaveTypes,
                          read_properties_until_none,
                          write_properties_none_terminated)
from palsave.paltypes import PALWORLD_TYPES


@dataclass
class CharacterRecord:
    properties: Properties
    group_id: uuid.UUID


def read_character(header: GvasHeader, types: SaveTypes = PALWORLD_TYPES) -> Callable[[bytes], CharacterRecord]:
    ctx = Context(header, types)

    def read(data: bytes) -> CharacterRecord:
        properties, offset = read_properties_until_none(data, 0, ctx)
        _reserved, offset = read_u32(data, offset)
        group_id, offset = read_guid(data, offset)
        if offset != len(data):
            raise MalformedProperty(
                f"{len(data) - offset} unexpected byte(s) after character record", offset)
        return CharacterRecord(properties=properties, group_id=group_id)

    return read


def write_character(header: GvasHeader) -> Callable[[CharacterRecord], bytes]:
    ctx = Context(header)

    def write(record: CharacterRecord) -> bytes:
        data = bytearray()
        write_properties_none_terminated(data, record.properties, ctx)
        write_u32(data, 0)
        write_guid(data, record.group_id)
        return bytes(data)

    return write
