"""Tests for the ``palsave`` command line."""
import json
from pathlib import Path

import pytest

from palsave.character import CharacterRecord, write_character
from palsave.palsave import main
from palsave.sav import load_savefile, write_savefile
from palsave.world import character_instance_ids, read_characters

from builders import (GUILD_ID, HEADER, character_properties, guid, level_save,
                      make_guild, player_save)

ALICE, ALICE_INSTANCE = guid(1), guid(11)
BOB, BOB_INSTANCE = guid(2), guid(22)


@pytest.fixture
def world_dir(tmp_path: Path) -> Path:
    guild = make_guild([(ALICE, "Alice"), (BOB, "Bob")])
    alice = CharacterRecord(character_properties("Alice"), GUILD_ID)
    write_savefile(tmp_path / "Level.sav", level_save(guild, {(ALICE, ALICE_INSTANCE): alice}))
    players = tmp_path / "Players"
    players.mkdir()
    write_savefile(players / "00000000000000000000000000000001.sav", player_save(ALICE, ALICE_INSTANCE))
    write_savefile(players / "00000000000000000000000000000002.sav", player_save(BOB, BOB_INSTANCE))
    return tmp_path


def test_fix_writes_level_in_place(world_dir: Path, capsys) -> None:
    assert main(["fix", str(world_dir)]) == 0
    level = load_savefile(world_dir / "Level.sav")
    assert character_instance_ids(level) == {ALICE_INSTANCE, BOB_INSTANCE}
    assert "Created character 'Bob'" in capsys.readouterr().out


def test_fix_to_separate_output(world_dir: Path) -> None:
    before = (world_dir / "Level.sav").read_bytes()
    output = world_dir / "Fixed.sav"
    assert main(["fix", str(world_dir), "--output", str(output)]) == 0
    assert (world_dir / "Level.sav").read_bytes() == before
    assert character_instance_ids(load_savefile(output)) == {ALICE_INSTANCE, BOB_INSTANCE}


def test_fix_dry_run_leaves_files_alone(world_dir: Path, capsys) -> None:
    before = (world_dir / "Level.sav").read_bytes()
    assert main(["fix", str(world_dir), "--dry-run"]) == 0
    assert (world_dir / "Level.sav").read_bytes() == before
    assert "Dry run" in capsys.readouterr().out


def test_fix_with_template_file(world_dir: Path) -> None:
    template = world_dir / "template.bin"
    template.write_bytes(write_character(HEADER)(CharacterRecord(character_properties("Template"), guid(7))))
    assert main(["fix", str(world_dir), "--template", str(template)]) == 0
    _, bob = read_characters(load_savefile(world_dir / "Level.sav"))[1]
    assert bob.properties["SaveParameter"].value["NickName"].value == "Bob"
    assert bob.group_id == GUILD_ID


def test_fix_uses_bundled_template_by_default(world_dir: Path) -> None:
    assert main(["fix", str(world_dir)]) == 0
    _, bob = read_characters(load_savefile(world_dir / "Level.sav"))[1]
    assert bob.properties["SaveParameter"].value["Level"].value == 1


def test_fix_with_json_template(world_dir: Path) -> None:
    template = world_dir / "template.json"
    template.write_text(json.dumps({"SaveParameter": {
        "type": "StructProperty", "struct_type": "PalIndividualCharacterSaveParameter",
        "value": {"Level": {"type": "IntProperty", "value": 30}},
    }}), encoding="utf-8")
    assert main(["fix", str(world_dir), "--template", str(template)]) == 0
    _, bob = read_characters(load_savefile(world_dir / "Level.sav"))[1]
    assert bob.properties["SaveParameter"].value["Level"].value == 30
    assert bob.properties["SaveParameter"].value["NickName"].value == "Bob"


def test_fix_cloning_a_player(world_dir: Path) -> None:
    assert main(["fix", str(world_dir), "--clone-player"]) == 0
    _, bob = read_characters(load_savefile(world_dir / "Level.sav"))[1]
    assert bob.properties["SaveParameter"].value["Level"].value == 12


def test_fix_twice_is_a_no_op(world_dir: Path, capsys) -> None:
    assert main(["fix", str(world_dir)]) == 0
    after_first = (world_dir / "Level.sav").read_bytes()
    assert main(["fix", str(world_dir)]) == 0
    assert (world_dir / "Level.sav").read_bytes() == after_first
    assert "Nothing to do" in capsys.readouterr().out


def test_show_prints_header_and_guilds(world_dir: Path, capsys) -> None:
    assert main(["show", str(world_dir / "Level.sav"), "--guilds"]) == 0
    out = capsys.readouterr().out
    assert "Compression tier: 0x32" in out
    assert "Guild Lamball Lovers" in out
    assert "- Bob" in out


def test_show_prints_property_tree(world_dir: Path, capsys) -> None:
    assert main(["show", str(world_dir / "Level.sav")]) == 0
    assert "worldSaveData" in capsys.readouterr().out


def test_bad_file_returns_error(tmp_path: Path) -> None:
    path = tmp_path / "broken.sav"
    path.write_bytes(b"\x00" * 16)
    assert main(["show", str(path)]) == 1


def test_missing_level_returns_error(tmp_path: Path) -> None:
    assert main(["fix", str(tmp_path)]) == 1
