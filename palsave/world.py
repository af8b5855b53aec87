"""Typed navigation of a Palworld save tree.

Lookups raise :class:`NotFound` or :class:`TypeMismatch` naming the offending path, so a
save the tool does not understand is reported instead of half-modified.
"""
import uuid
from typing import *

from palsave.character import CharacterRecord, read_character, write_character
from palsave.errors import NotFound, TypeMismatch
from palsave.guild import GuildRecord, read_guild, write_guild
from palsave.gvas import (ArrayProperty, EnumProperty, GvasHeader, MapEntry,
                          MapProperty, Properties, Property, StrProperty,
                          StructProperty)
from palsave.sav import PalSave

P = TypeVar('P', bound=Property)

WORLD_SAVE_DATA = "worldSaveData"
GROUP_SAVE_DATA_MAP = "GroupSaveDataMap"
CHARACTER_SAVE_PARAMETER_MAP = "CharacterSaveParameterMap"
RAW_DATA = "RawData"
GUILD_GROUP_TYPE = "EPalGroupType::Guild"

GROUP_MAP_PATH = f".{WORLD_SAVE_DATA}.{GROUP_SAVE_DATA_MAP}"
CHARACTER_MAP_PATH = f".{WORLD_SAVE_DATA}.{CHARACTER_SAVE_PARAMETER_MAP}"


def get_property(properties: Properties, name: str, kind: Type[P], path: str = "") -> P:
    full_path = f"{path}.{name}"
    prop = properties.get(name)
    if prop is None:
        raise NotFound(full_path)
    if not isinstance(prop, kind):
        raise TypeMismatch(full_path, kind.__name__, prop.type_name)
    return prop


def get_struct_fields(properties: Properties, name: str, path: str = "") -> Properties:
    prop = get_property(properties, name, StructProperty, path)
    if not isinstance(prop.value, dict):
        raise TypeMismatch(f"{path}.{name}", "struct with fields", prop.struct_type)
    return prop.value


def get_guid(properties: Properties, name: str, path: str = "") -> uuid.UUID:
    prop = get_property(properties, name, StructProperty, path)
    if not isinstance(prop.value, uuid.UUID):
        raise TypeMismatch(f"{path}.{name}", "Guid", prop.struct_type)
    return prop.value


def _as_fields(value: Any, path: str) -> Properties:
    if not isinstance(value, dict):
        raise TypeMismatch(path, "struct with fields", type(value).__name__)
    return value


def world_save_data(save: PalSave) -> Properties:
    return get_struct_fields(save.gvas.properties, WORLD_SAVE_DATA)


def group_save_data_map(save: PalSave) -> MapProperty:
    return get_property(world_save_data(save), GROUP_SAVE_DATA_MAP, MapProperty, f".{WORLD_SAVE_DATA}")


def character_save_parameter_map(save: PalSave) -> MapProperty:
    return get_property(world_save_data(save), CHARACTER_SAVE_PARAMETER_MAP, MapProperty, f".{WORLD_SAVE_DATA}")


def is_guild_group(entry: MapEntry) -> bool:
    fields = _as_fields(entry.value, f"{GROUP_MAP_PATH}.Value")
    group_type = fields.get("GroupType")
    return isinstance(group_type, EnumProperty) and group_type.value == GUILD_GROUP_TYPE


def _raw_data_property(entry: MapEntry, path: str) -> ArrayProperty:
    value_path = f"{path}.Value"
    prop = get_property(_as_fields(entry.value, value_path), RAW_DATA, ArrayProperty, value_path)
    if prop.inner_type != "ByteProperty" or not isinstance(prop.values, (bytes, bytearray)):
        raise TypeMismatch(f"{value_path}.{RAW_DATA}", "byte array", f"array of {prop.inner_type}")
    return prop


def raw_data(entry: MapEntry, path: str = "") -> bytes:
    """The opaque record bytes embedded in a map entry's value."""
    return bytes(_raw_data_property(entry, path).values)


def set_raw_data(entry: MapEntry, blob: bytes, path: str = "") -> None:
    _raw_data_property(entry, path).values = bytes(blob)


def read_guilds(save: PalSave) -> List[Tuple[uuid.UUID, GuildRecord]]:
    guilds = []
    for entry in group_save_data_map(save):
        if not is_guild_group(entry):
            continue
        if not isinstance(entry.key, uuid.UUID):
            raise TypeMismatch(f"{GROUP_MAP_PATH}.Key", "Guid", type(entry.key).__name__)
        guilds.append((entry.key, read_guild(raw_data(entry, GROUP_MAP_PATH))))
    return guilds


def replace_guild(save: PalSave, guild_id: uuid.UUID, record: GuildRecord) -> None:
    for entry in group_save_data_map(save):
        if entry.key == guild_id:
            set_raw_data(entry, write_guild(record), GROUP_MAP_PATH)
            return
    raise NotFound(f"{GROUP_MAP_PATH}[{guild_id}]")


def character_instance_ids(save: PalSave) -> Set[uuid.UUID]:
    key_path = f"{CHARACTER_MAP_PATH}.Key"
    return {
        get_guid(_as_fields(entry.key, key_path), "InstanceId", key_path)
        for entry in character_save_parameter_map(save)
    }


def read_characters(save: PalSave) -> List[Tuple[Properties, CharacterRecord]]:
    read = read_character(save.header)
    return [
        (_as_fields(entry.key, f"{CHARACTER_MAP_PATH}.Key"), read(raw_data(entry, CHARACTER_MAP_PATH)))
        for entry in character_save_parameter_map(save)
    ]


def player_individual_id(player_save: PalSave) -> Tuple[uuid.UUID, uuid.UUID]:
    """``(player_uid, instance_id)`` of the character a player save belongs to."""
    save_data = get_struct_fields(player_save.gvas.properties, "SaveData")
    individual_id = get_struct_fields(save_data, "IndividualId", ".SaveData")
    path = ".SaveData.IndividualId"
    return get_guid(individual_id, "PlayerUId", path), get_guid(individual_id, "InstanceId", path)


def new_character_entry(header: GvasHeader, player_uid: uuid.UUID, instance_id: uuid.UUID,
                        record: CharacterRecord) -> MapEntry:
    key = {
        "PlayerUId": StructProperty("PlayerUId", "Guid", player_uid),
        "InstanceId": StructProperty("InstanceId", "Guid", instance_id),
        "DebugName": StrProperty("DebugName", ""),
    }
    value = {
        RAW_DATA: ArrayProperty(RAW_DATA, "ByteProperty", write_character(header)(record)),
    }
    return MapEntry(key, value)
