"""Tests for typed navigation of the world save tree."""
import pytest

from palsave.character import CharacterRecord
from palsave.errors import NotFound, TypeMismatch
from palsave.gvas import IntProperty, MapProperty, StructProperty
from palsave.world import (character_instance_ids, get_guid, get_property,
                           get_struct_fields, group_save_data_map,
                           player_individual_id, raw_data, read_characters,
                           read_guilds, replace_guild)

from builders import (GUILD_ID, character_properties, guid, level_save,
                      make_guild, player_save)


def test_get_property_reports_missing_path() -> None:
    with pytest.raises(NotFound) as exc:
        get_property({}, "Missing", IntProperty, ".worldSaveData")
    assert exc.value.path == ".worldSaveData.Missing"


def test_get_property_reports_wrong_kind() -> None:
    properties = {"Version": IntProperty("Version", 1)}
    with pytest.raises(TypeMismatch) as exc:
        get_property(properties, "Version", MapProperty)
    assert exc.value.expected == "MapProperty"
    assert exc.value.actual == "IntProperty"


def test_struct_fields_and_guid_accessors() -> None:
    properties = {
        "Id": StructProperty("Id", "Guid", guid(5)),
        "Body": StructProperty("Body", "PalBody", {"Level": IntProperty("Level", 2)}),
    }
    assert get_guid(properties, "Id") == guid(5)
    assert get_struct_fields(properties, "Body")["Level"].value == 2
    with pytest.raises(TypeMismatch):
        get_struct_fields(properties, "Id")
    with pytest.raises(TypeMismatch):
        get_guid(properties, "Body")


def test_missing_world_save_data() -> None:
    save = level_save()
    del save.gvas.properties["worldSaveData"]
    with pytest.raises(NotFound):
        group_save_data_map(save)


def test_read_guilds_skips_other_group_types() -> None:
    guild = make_guild([(guid(1), "Alice")])
    guilds = read_guilds(level_save(guild))
    assert guilds == [(GUILD_ID, guild)]


def test_replace_guild_updates_raw_data() -> None:
    save = level_save(make_guild([(guid(1), "Alice")]))
    renamed = make_guild([(guid(1), "Alice")], name="Sheep Herders")
    replace_guild(save, GUILD_ID, renamed)
    assert read_guilds(save) == [(GUILD_ID, renamed)]
    assert raw_data(group_save_data_map(save).entries[0]) == b"\x01\x02\x03"


def test_replace_unknown_guild() -> None:
    with pytest.raises(NotFound):
        replace_guild(level_save(), guid(404), make_guild([]))


def test_characters_are_decoded_with_their_keys() -> None:
    record = CharacterRecord(character_properties("Alice"), GUILD_ID)
    save = level_save(make_guild([(guid(1), "Alice")]), {(guid(1), guid(11)): record})
    assert character_instance_ids(save) == {guid(11)}
    [(key, decoded)] = read_characters(save)
    assert key["PlayerUId"].value == guid(1)
    assert decoded == record


def test_player_individual_id() -> None:
    assert player_individual_id(player_save(guid(2), guid(22))) == (guid(2), guid(22))


def test_player_save_without_individual_id() -> None:
    save = player_save(guid(2), guid(22))
    del save.gvas.properties["SaveData"].value["IndividualId"]
    with pytest.raises(NotFound) as exc:
        player_individual_id(save)
    assert exc.value.path == ".SaveData.IndividualId"
