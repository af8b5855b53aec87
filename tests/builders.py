"""In-memory builders for synthetic Palworld saves used across the tests."""
import uuid
from typing import Dict, List, Optional, Tuple

from palsave.character import CharacterRecord
from palsave.guild import GuildPlayerInfo, GuildRecord, InstanceId, write_guild
from palsave.gvas import (ArrayProperty, BoolProperty, CustomVersion,
                          EngineVersion, EnumProperty, GvasFile, GvasHeader,
                          Int64Property, IntProperty, MapEntry, MapProperty,
                          Properties, StrProperty, StructProperty)
from palsave.sav import TIER_DOUBLE_ZLIB, PalSave
from palsave.world import new_character_entry

HEADER = GvasHeader(
    save_game_version=3,
    package_file_version_ue4=522,
    package_file_version_ue5=1009,
    engine_version=EngineVersion(5, 1, 1, 0, "++UE5+Release-5.1"),
    custom_versions_format=3,
    custom_versions=[CustomVersion(uuid.UUID("22d5549c-be4f-26a8-4607-2194d082b461"), 44)],
    save_game_class_name="/Script/Pal.PalWorldSaveGame",
)

OLD_HEADER = GvasHeader(
    save_game_version=2,
    package_file_version_ue4=0,
    package_file_version_ue5=None,
    engine_version=EngineVersion(5, 0, 0, 0, ""),
    custom_versions_format=3,
    custom_versions=[],
    save_game_class_name="",
)

GUILD_ID = uuid.UUID("0c3b5c6d-4b0a-4c22-9a61-c1f2b2f1a001")


def guid(n: int) -> uuid.UUID:
    return uuid.UUID(int=n)


def make_guild(players: List[Tuple[uuid.UUID, str]], name: str = "Lamball Lovers") -> GuildRecord:
    return GuildRecord(
        group_id=GUILD_ID,
        maybe_owner="Alice",
        instance_ids=[InstanceId(uid, guid(0x1000 + i)) for i, (uid, _) in enumerate(players)],
        reserved=1,
        base_ids=[guid(0xBA5E)],
        base_camp_level=7,
        map_object_ids=[guid(0xA1), guid(0xA2)],
        guild_name=name,
        admin_player_uid=players[0][0] if players else guid(0),
        players=[GuildPlayerInfo(uid, 638_400_000_000_000_000 + i, player_name)
                 for i, (uid, player_name) in enumerate(players)],
    )


def character_properties(nickname: str, is_player: bool = True) -> Properties:
    return {
        "SaveParameter": StructProperty("SaveParameter", "PalIndividualCharacterSaveParameter", {
            "Level": IntProperty("Level", 12),
            "NickName": StrProperty("NickName", nickname),
            "IsPlayer": BoolProperty("IsPlayer", is_player),
            "HP": StructProperty("HP", "FixedPoint64", {"Value": Int64Property("Value", 545000)}),
            "Location": StructProperty("Location", "Vector", (1.5, -2.25, 100.0)),
        }),
    }


def group_entry(group_id: uuid.UUID, raw: bytes, group_type: str = "EPalGroupType::Guild") -> MapEntry:
    return MapEntry(group_id, {
        "GroupType": EnumProperty("GroupType", group_type, "EPalGroupType"),
        "RawData": ArrayProperty("RawData", "ByteProperty", raw),
    })


def level_save(guild: Optional[GuildRecord] = None,
               characters: Optional[Dict[Tuple[uuid.UUID, uuid.UUID], CharacterRecord]] = None,
               tier: int = TIER_DOUBLE_ZLIB) -> PalSave:
    groups = [group_entry(guid(0xBEEF), b"\x01\x02\x03", "EPalGroupType::Neutral")]
    if guild is not None:
        groups.append(group_entry(GUILD_ID, write_guild(guild)))
    character_entries = [
        new_character_entry(HEADER, player_uid, instance_id, record)
        for (player_uid, instance_id), record in (characters or {}).items()
    ]
    world = {
        "GroupSaveDataMap": MapProperty("GroupSaveDataMap", "StructProperty", "StructProperty", groups,
                                        key_struct_type="Guid", value_struct_type="Struct"),
        "CharacterSaveParameterMap": MapProperty("CharacterSaveParameterMap", "StructProperty",
                                                 "StructProperty", character_entries,
                                                 key_struct_type="Struct", value_struct_type="Struct"),
    }
    properties = {
        "Version": IntProperty("Version", 100),
        "Timestamp": StructProperty("Timestamp", "DateTime", 638_412_345_678_900_000),
        "worldSaveData": StructProperty("worldSaveData", "PalWorldSaveData", world),
    }
    return PalSave(GvasFile(HEADER, properties), tier)


def player_save(player_uid: uuid.UUID, instance_id: uuid.UUID, tier: int = TIER_DOUBLE_ZLIB) -> PalSave:
    properties = {
        "Version": IntProperty("Version", 100),
        "SaveData": StructProperty("SaveData", "PalWorldPlayerSaveData", {
            "PlayerUId": StructProperty("PlayerUId", "Guid", player_uid),
            "IndividualId": StructProperty("IndividualId", "PalInstanceID", {
                "PlayerUId": StructProperty("PlayerUId", "Guid", player_uid),
                "InstanceId": StructProperty("InstanceId", "Guid", instance_id),
            }),
        }),
    }
    header = GvasHeader(**{**vars(HEADER), "save_game_class_name": "/Script/Pal.PalWorldPlayerSaveGame"})
    return PalSave(GvasFile(header, properties), tier)
