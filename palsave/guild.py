"""Guild membership record stored as ``RawData`` bytes of a ``GroupSaveDataMap`` entry.

Fields, in wire order::

    group_id: guid
    maybe_owner: FString
    instance_ids: u32 count, (player_uid: guid, instance_id: guid) * count
    reserved: u8
    base_ids: u32 count, guid * count
    base_camp_level: u32
    map_object_ids: u32 count, guid * count
    guild_name: FString
    admin_player_uid: guid
    players: u32 count, (player_uid: guid, last_online_real_time: u64 ticks, player_name: FString) * count

Newer game versions append fields after ``players``; those bytes are kept in ``trailer``.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import *

from palsave.binary import (read_array, read_guid, read_string, read_u8, read_u32,
                            read_u64, write_array, write_guid, write_string,
                            write_u8, write_u32, write_u64)

log = logging.getLogger(__name__)

GUID_SIZE = 16
MIN_STRING_SIZE = 4


@dataclass
class InstanceId:
    player_uid: uuid.UUID
    instance_id: uuid.UUID


@dataclass
class GuildPlayerInfo:
    player_uid: uuid.UUID
    last_online_real_time: int
    player_name: str


@dataclass
class GuildRecord:
    group_id: uuid.UUID
    maybe_owner: str
    instance_ids: List[InstanceId]
    reserved: int
    base_ids: List[uuid.UUID]
    base_camp_level: int
    map_object_ids: List[uuid.UUID]
    guild_name: str
    admin_player_uid: uuid.UUID
    players: List[GuildPlayerInfo]
    trailer: bytes = field(default=b'', repr=False)

    def find_player(self, player_uid: uuid.UUID) -> Optional[GuildPlayerInfo]:
        return next((p for p in self.players if p.player_uid == player_uid), None)


def _read_instance_id(data: bytes, offset: int) -> Tuple[InstanceId, int]:
    player_uid, offset = read_guid(data, offset)
    instance_id, offset = read_guid(data, offset)
    return InstanceId(player_uid, instance_id), offset


def _write_instance_id(data: bytearray, instance_id: InstanceId) -> None:
    write_guid(data, instance_id.player_uid)
    write_guid(data, instance_id.instance_id)


def _read_player_info(data: bytes, offset: int) -> Tuple[GuildPlayerInfo, int]:
    player_uid, offset = read_guid(data, offset)
    last_online_real_time, offset = read_u64(data, offset)
    player_name, offset = read_string(data, offset)
    return GuildPlayerInfo(player_uid, last_online_real_time, player_name), offset


def _write_player_info(data: bytearray, info: GuildPlayerInfo) -> None:
    write_guid(data, info.player_uid)
    write_u64(data, info.last_online_real_time)
    write_string(data, info.player_name)


def read_guild(data: bytes) -> GuildRecord:
    offset = 0
    group_id, offset = read_guid(data, offset)
    maybe_owner, offset = read_string(data, offset)
    instance_ids, offset = read_array(data, offset, _read_instance_id, 2 * GUID_SIZE)
    reserved, offset = read_u8(data, offset)
    base_ids, offset = read_array(data, offset, read_guid, GUID_SIZE)
    base_camp_level, offset = read_u32(data, offset)
    map_object_ids, offset = read_array(data, offset, read_guid, GUID_SIZE)
    guild_name, offset = read_string(data, offset)
    admin_player_uid, offset = read_guid(data, offset)
    players, offset = read_array(data, offset, _read_player_info, GUID_SIZE + 8 + MIN_STRING_SIZE)

    trailer = bytes(data[offset:])
    if trailer:
        log.debug("guild %s: keeping %d unparsed trailing byte(s)", group_id, len(trailer))
    return GuildRecord(
        group_id=group_id,
        maybe_owner=maybe_owner,
        instance_ids=instance_ids,
        reserved=reserved,
        base_ids=base_ids,
        base_camp_level=base_camp_level,
        map_object_ids=map_object_ids,
        guild_name=guild_name,
        admin_player_uid=admin_player_uid,
        players=players,
        trailer=trailer,
    )


def write_guild(record: GuildRecord) -> bytes:
    data = bytearray()
    write_guid(data, record.group_id)
    write_string(data, record.maybe_owner)
    write_array(data, record.instance_ids, _write_instance_id)
    write_u8(data, record.reserved)
    write_array(data, record.base_ids, write_guid)
    write_u32(data, record.base_camp_level)
    write_array(data, record.map_object_ids, write_guid)
    write_string(data, record.guild_name)
    write_guid(data, record.admin_player_uid)
    write_array(data, record.players, _write_player_info)
    data.extend(record.trailer)
    return bytes(data)
