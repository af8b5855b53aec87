from palsave.binary import (decode_guid, encode_guid, encode_string, read_array,
                            read_guid, read_string, write_array, write_guid,
                            write_string)
from palsave.character import CharacterRecord, read_character, write_character
from palsave.errors import (DecompressionError, ImplausibleLength, InvalidMagic,
                            MalformedProperty, NotFound, PalSaveError,
                            Truncated, TypeMismatch, UnknownCompressionTier)
from palsave.guild import (GuildPlayerInfo, GuildRecord, InstanceId, read_guild,
                           write_guild)
from palsave.gvas import (ArrayProperty, BoolProperty, ByteProperty, Context,
                          DoubleProperty, EnumProperty, FloatProperty,
                          GvasFile, GvasHeader, Int8Property, Int16Property,
                          Int64Property, IntProperty, MapEntry, MapProperty,
                          NameProperty, ObjectProperty, Property, SaveTypes,
                          SetProperty, StrProperty, StructProperty,
                          TextProperty, UInt16Property, UInt32Property,
                          UInt64Property, read_gvas, read_properties_until_none,
                          write_gvas, write_properties_none_terminated)
from palsave.paltypes import PALWORLD_TYPES
from palsave.sav import (TIER_DOUBLE_ZLIB, TIER_STORED, TIER_ZLIB, PalSave,
                         compress_sav, decompress_sav, load_savefile, read_sav,
                         write_sav, write_savefile)

__version__ = "0.1.0"
