import logging
import sys
from argparse import ArgumentParser
from pathlib import Path
from typing import *

from palsave import *
from palsave.fix import fix_missing_characters, pick_template
from palsave.template import load_template
from palsave.world import read_guilds

log = logging.getLogger("palsave")

LEVEL_SAV = "Level.sav"
PLAYERS_DIR = "Players"


def print_prop(prop: Property, indent: int = 0) -> None:
    prefix = ' ' * indent
    print(f"{prefix}{prop}")
    if isinstance(prop, StructProperty) and isinstance(prop.value, dict):
        for f in prop.value.values():
            print_prop(f, indent + 4)
    elif isinstance(prop, ArrayProperty):
        if prop.inner_type == "ByteProperty":
            print(f"{prefix}    <{len(prop)} bytes>")
        elif prop.inner_type == "StructProperty":
            for i, value in enumerate(prop):
                print(f"{prefix}    [{i}] {prop.struct_type}")
                if isinstance(value, dict):
                    for f in value.values():
                        print_prop(f, indent + 8)
    elif isinstance(prop, MapProperty):
        print(f"{prefix}    <{len(prop)} entries>")


def print_guilds(save: PalSave) -> None:
    for guild_id, guild in read_guilds(save):
        print(f"Guild {guild.guild_name} ({guild_id}) has {len(guild.players)} member(s)")
        for player in guild.players:
            print(f"- {player.player_name} ({player.player_uid})")


def cmd_show(args) -> None:
    save = load_savefile(args.savefile)

    header = save.header
    print("Header:")
    print("Compression tier:", f"0x{save.compression_tier:02x}")
    print("Save Game Version:", header.save_game_version)
    print("File Versions:")
    print("  UE4:", header.package_file_version_ue4)
    if header.package_file_version_ue5 is not None:
        print("  UE5:", header.package_file_version_ue5)
    ev = header.engine_version
    print("Engine Version:")
    print(f"  {ev.major}.{ev.minor}.{ev.patch} (changelist {ev.changelist}, branch '{ev.branch}')")
    print("SaveGame Class Name:", header.save_game_class_name)

    if args.guilds:
        print_guilds(save)
        return

    for prop in save.gvas.properties.values():
        print_prop(prop)


def cmd_fix(args) -> None:
    save_dir: Path = args.save_dir
    level_path = save_dir / LEVEL_SAV
    player_paths = sorted((save_dir / PLAYERS_DIR).glob("*.sav"))

    level = load_savefile(level_path)
    log.info("%s read successfully", level_path)
    players = [load_savefile(p) for p in player_paths]
    log.info("%d player save(s) read successfully", len(players))

    template = None
    if args.template and args.template.suffix.lower() == ".json":
        template = load_template(args.template)
        log.info("using template character from %s", args.template)
    elif args.template:
        template = read_character(level.header)(args.template.read_bytes())
        log.info("using template character from %s", args.template)
    elif args.clone_player:
        template = pick_template(level)
        log.info("cloning the first player character in %s", level_path)

    fixed = fix_missing_characters(level, players, template)
    if not fixed:
        print("All players have a character save. Nothing to do.")
        return
    for c in fixed:
        print(f"Created character '{c.nickname}' for player {c.player_uid} (instance {c.instance_id})")

    if args.dry_run:
        print("Dry run: Level.sav left untouched.")
        return
    output = args.output or level_path
    write_savefile(output, level)
    print(f"{output} written successfully")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = ArgumentParser(prog="palsave",
                            description="Inspect Palworld saves and restore missing guild characters")
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Log debug output')
    sub = parser.add_subparsers(dest='command', required=True)

    fix = sub.add_parser('fix', help='Create character records for guild members that lost theirs')
    fix.add_argument('save_dir', type=Path,
                     help='World directory containing Level.sav and the Players directory')
    source = fix.add_mutually_exclusive_group()
    source.add_argument('--template', '-t', type=Path,
                        help='Character template to clone: a .json property tree or a raw record '
                             '(default: the bundled level 1 template)')
    source.add_argument('--clone-player', action='store_true',
                        help='Clone the first player character found in the world instead')
    fix.add_argument('--output', '-o', type=Path,
                     help='Where to write the fixed Level.sav (default: overwrite it)')
    fix.add_argument('--dry-run', '-n', action='store_true',
                     help='Report what would change without writing anything')
    fix.set_defaults(func=cmd_fix)

    show = sub.add_parser('show', help='Print the header and property tree of a .sav file')
    show.add_argument('savefile', type=Path, help='Path to the .sav file')
    show.add_argument('--guilds', '-g', action='store_true',
                      help='Print decoded guilds instead of the property tree')
    show.set_defaults(func=cmd_show)

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s %(levelname)-8s :: %(message)s')

    try:
        args.func(args)
    except (PalSaveError, OSError) as e:
        log.error("%s: %s", e.__class__.__name__, e)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
