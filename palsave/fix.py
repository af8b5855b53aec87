"""Give guild members whose character record went missing a fresh one.

A player is affected when their ``Players/<uid>.sav`` names an instance id that has no
entry in the world's ``CharacterSaveParameterMap``. The new record is cloned from a
template character (the bundled level 1 template unless another is given), renamed to
the name the guild remembers, and assigned to that guild.
"""
import copy
import logging
import uuid
from dataclasses import dataclass
from typing import *

from palsave.character import CharacterRecord
from palsave.errors import NotFound, PalSaveError
from palsave.guild import GuildPlayerInfo, GuildRecord
from palsave.gvas import BoolProperty, StrProperty
from palsave.sav import PalSave
from palsave.template import load_template
from palsave.world import (CHARACTER_MAP_PATH, character_instance_ids,
                           character_save_parameter_map, get_struct_fields,
                           new_character_entry, player_individual_id,
                           read_characters, read_guilds)

log = logging.getLogger(__name__)

SAVE_PARAMETER = "SaveParameter"
NICKNAME = "NickName"
IS_PLAYER = "IsPlayer"


@dataclass
class FixedCharacter:
    player_uid: uuid.UUID
    instance_id: uuid.UUID
    nickname: str
    guild_id: uuid.UUID


def find_players_without_character(level: PalSave, player_saves: Iterable[PalSave]) -> List[Tuple[uuid.UUID, uuid.UUID]]:
    known = character_instance_ids(level)
    missing = []
    for player_save in player_saves:
        player_uid, instance_id = player_individual_id(player_save)
        if instance_id not in known:
            log.info("player %s has no character record with id %s", player_uid, instance_id)
            missing.append((player_uid, instance_id))
    return missing


def is_player_character(record: CharacterRecord) -> bool:
    try:
        params = get_struct_fields(record.properties, SAVE_PARAMETER)
    except PalSaveError:
        return False
    is_player = params.get(IS_PLAYER)
    return isinstance(is_player, BoolProperty) and is_player.value


def pick_template(level: PalSave) -> CharacterRecord:
    """First player character in the world, for cloning an existing player instead of the default template."""
    for _, record in read_characters(level):
        if is_player_character(record):
            return record
    raise NotFound(f"{CHARACTER_MAP_PATH}[{IS_PLAYER}=true]")


def create_character(template: CharacterRecord, nickname: str, group_id: uuid.UUID) -> CharacterRecord:
    properties = copy.deepcopy(template.properties)
    params = get_struct_fields(properties, SAVE_PARAMETER)
    params[NICKNAME] = StrProperty(NICKNAME, nickname)
    return CharacterRecord(properties=properties, group_id=group_id)


def _find_membership(guilds: List[Tuple[uuid.UUID, GuildRecord]],
                     player_uid: uuid.UUID) -> Optional[Tuple[uuid.UUID, GuildPlayerInfo]]:
    for guild_id, guild in guilds:
        info = guild.find_player(player_uid)
        if info is not None:
            return guild_id, info
    return None


def fix_missing_characters(level: PalSave, player_saves: Iterable[PalSave],
                           template: Optional[CharacterRecord] = None) -> List[FixedCharacter]:
    """Append a character record for every guild member that lacks one.

    Nothing is changed unless every affected player could be repaired.
    """
    missing = find_players_without_character(level, player_saves)
    if not missing:
        log.info("all players have a character record")
        return []

    guilds = read_guilds(level)
    for guild_id, guild in guilds:
        log.debug("guild %s (%s) has %d member(s)", guild.guild_name, guild_id, len(guild.players))
    if template is None:
        template = load_template()

    entries = []
    fixed = []
    for player_uid, instance_id in missing:
        membership = _find_membership(guilds, player_uid)
        if membership is None:
            raise NotFound(f"guild membership of player {player_uid}")
        guild_id, info = membership
        record = create_character(template, info.player_name, guild_id)
        entries.append(new_character_entry(level.header, player_uid, instance_id, record))
        fixed.append(FixedCharacter(player_uid, instance_id, info.player_name, guild_id))
        log.info("created character %r for player %s in guild %s", info.player_name, player_uid, guild_id)

    character_save_parameter_map(level).entries.extend(entries)
    return fixed
