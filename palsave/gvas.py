"""GVAS property tree: the UE SaveGame header and the tagged property list.

Every tagged property is laid out as::

    name: FString | type: FString | size: u32 | index: u32
    type-specific tag data | has_guid: u8 [guid: 16 bytes] | value: <size> bytes

``size`` is recomputed on write, so a property tree that was edited in memory is
serialized consistently, while an untouched tree reproduces its input exactly.
"""
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import *

from palsave.binary import (read_array, read_bytes, read_f32, read_f64, read_guid,
                            read_i8, read_i16, read_i32, read_i64, read_string,
                            read_u8, read_u16, read_u32, read_u64, write_array,
                            write_f32, write_f64, write_guid, write_i8, write_i16,
                            write_i32, write_i64, write_string, write_u8,
                            write_u16, write_u32, write_u64)
from palsave.errors import MalformedProperty, TypeMismatch

log = logging.getLogger(__name__)

MAGIC = b'GVAS'  # UE SaveGame header magic

# first UE5 package version that stores vectors as doubles
UE5_LARGE_WORLD_COORDINATES = 1004

NONE_NAME = "None"

Properties = Dict[str, 'Property']


@dataclass
class EngineVersion:
    major: int
    minor: int
    patch: int
    changelist: int
    branch: str


@dataclass
class CustomVersion:
    guid: uuid.UUID
    version: int


@dataclass
class GvasHeader:
    save_game_version: int
    package_file_version_ue4: int
    package_file_version_ue5: Optional[int]
    engine_version: EngineVersion
    custom_versions_format: int
    custom_versions: List[CustomVersion]
    save_game_class_name: str

    @property
    def large_world_coordinates(self) -> bool:
        return (self.package_file_version_ue5 or 0) >= UE5_LARGE_WORLD_COORDINATES


@dataclass(frozen=True)
class SaveTypes:
    """Struct types of map/set keys and values, by property path.

    Map and set entries carry no struct tag on the wire, so the reader has to be told
    what they are. Paths look like ``.worldSaveData.GroupSaveDataMap.Key``; fields nested in a
    map's keys or values continue from the map's own path, as in
    ``.worldSaveData.FoliageGridSaveDataMap.ModelMap.InstanceDataMap.Key``.
    """
    hints: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def of(cls, hints: Mapping[str, str]) -> 'SaveTypes':
        return cls(MappingProxyType(dict(hints)))

    def struct_type(self, path: str, default: str) -> str:
        return self.hints.get(path, default)


@dataclass(frozen=True)
class Context:
    header: GvasHeader
    types: SaveTypes = SaveTypes()
    path: str = ""

    def child(self, name: str) -> 'Context':
        return replace(self, path=f"{self.path}.{name}")


def _read_property_guid(data: bytes, offset: int) -> Tuple[Optional[uuid.UUID], int]:
    start = offset
    has_guid, offset = read_u8(data, offset)
    if has_guid == 0:
        return None, offset
    if has_guid != 1:
        raise MalformedProperty(f"bad property guid flag {has_guid}", start)
    return read_guid(data, offset)


def _write_property_guid(data: bytearray, guid: Optional[uuid.UUID]) -> None:
    if guid is None:
        write_u8(data, 0)
    else:
        write_u8(data, 1)
        write_guid(data, guid)


def _check_size(name: str, size: int, start: int, offset: int) -> None:
    if offset - start != size:
        raise MalformedProperty(
            f"property {name!r} declares {size} byte(s) but {offset - start} were read", start)


def _read_bool(data: bytes, offset: int) -> Tuple[bool, int]:
    value, offset = read_u8(data, offset)
    return value != 0, offset


def _write_bool(data: bytearray, value: bool) -> None:
    write_u8(data, 1 if value else 0)


_BARE_CODECS: Dict[str, Tuple[Callable, Callable]] = {
    "BoolProperty": (_read_bool, _write_bool),
    "ByteProperty": (read_u8, write_u8),
    "Int8Property": (read_i8, write_i8),
    "Int16Property": (read_i16, write_i16),
    "IntProperty": (read_i32, write_i32),
    "Int64Property": (read_i64, write_i64),
    "UInt16Property": (read_u16, write_u16),
    "UInt32Property": (read_u32, write_u32),
    "UInt64Property": (read_u64, write_u64),
    "FloatProperty": (read_f32, write_f32),
    "DoubleProperty": (read_f64, write_f64),
    "StrProperty": (read_string, write_string),
    "NameProperty": (read_string, write_string),
    "EnumProperty": (read_string, write_string),
    "ObjectProperty": (read_string, write_string),
}

# struct name -> component count; doubles with large world coordinates, floats otherwise
_VECTOR_STRUCTS = {"Vector": 3, "Vector2D": 2, "Rotator": 3, "Quat": 4}


def _read_struct_value(struct_type: str, data: bytes, offset: int, ctx: Context) -> Tuple[Any, int]:
    if struct_type in _VECTOR_STRUCTS:
        read = read_f64 if ctx.header.large_world_coordinates else read_f32
        values = []
        for _ in range(_VECTOR_STRUCTS[struct_type]):
            v, offset = read(data, offset)
            values.append(v)
        return tuple(values), offset
    if struct_type == "LinearColor":
        values = []
        for _ in range(4):
            v, offset = read_f32(data, offset)
            values.append(v)
        return tuple(values), offset
    if struct_type == "IntPoint":
        x, offset = read_i32(data, offset)
        y, offset = read_i32(data, offset)
        return (x, y), offset
    if struct_type == "Color":
        raw, offset = read_bytes(data, offset, 4)
        return tuple(raw), offset
    if struct_type == "DateTime":
        return read_u64(data, offset)
    if struct_type == "Timespan":
        return read_i64(data, offset)
    if struct_type == "Guid":
        return read_guid(data, offset)
    return read_properties_until_none(data, offset, ctx)


def _write_struct_value(struct_type: str, data: bytearray, value: Any, ctx: Context) -> None:
    if struct_type in _VECTOR_STRUCTS:
        write = write_f64 if ctx.header.large_world_coordinates else write_f32
        if len(value) != _VECTOR_STRUCTS[struct_type]:
            raise MalformedProperty(f"{struct_type} needs {_VECTOR_STRUCTS[struct_type]} components")
        for v in value:
            write(data, v)
    elif struct_type == "LinearColor":
        for v in value:
            write_f32(data, v)
    elif struct_type == "IntPoint":
        write_i32(data, value[0])
        write_i32(data, value[1])
    elif struct_type == "Color":
        data.extend(bytes(value))
    elif struct_type == "DateTime":
        write_u64(data, value)
    elif struct_type == "Timespan":
        write_i64(data, value)
    elif struct_type == "Guid":
        write_guid(data, value)
    else:
        write_properties_none_terminated(data, value, ctx)


def _read_bare(kind: str, data: bytes, offset: int, ctx: Context, struct_type: str = "Struct") -> Tuple[Any, int]:
    """Read an untagged value, as stored inside arrays, maps and sets."""
    if kind == "StructProperty":
        return _read_struct_value(struct_type, data, offset, ctx)
    codec = _BARE_CODECS.get(kind)
    if codec is None:
        raise MalformedProperty(f"unsupported element type {kind} at {ctx.path}", offset)
    return codec[0](data, offset)


def _write_bare(kind: str, data: bytearray, value: Any, ctx: Context, struct_type: str = "Struct") -> None:
    if kind == "StructProperty":
        _write_struct_value(struct_type, data, value, ctx)
        return
    codec = _BARE_CODECS.get(kind)
    if codec is None:
        raise MalformedProperty(f"unsupported element type {kind} at {ctx.path}")
    codec[1](data, value)


def _read_property(data: bytes, offset: int, ctx: Context) -> Tuple[Optional['Property'], int]:
    prop_name, offset = read_string(data, offset)

    if prop_name == NONE_NAME:
        return None, offset

    prop_type, offset = read_string(data, offset)

    prop_size, offset = read_u32(data, offset)
    prop_index, offset = read_u32(data, offset)

    prop, offset = PropertyFactory.create_property(
        name=prop_name,
        prop_type=prop_type,
        prop_size=prop_size,
        prop_index=prop_index,
        data=data,
        offset=offset,
        ctx=ctx.child(prop_name)
    )

    return prop, offset


def _write_property(data: bytearray, prop: 'Property', ctx: Context) -> None:
    write_string(data, prop.name)
    write_string(data, prop.type_name)

    body = bytearray()
    prop.write_value(body, ctx.child(prop.name))

    write_u32(data, len(body))
    write_u32(data, prop.index)
    prop.write_tag(data)
    data.extend(body)


def property_key(prop: 'Property') -> str:
    """Key of a property inside its parent mapping; static array slots get ``name[i]``."""
    return prop.name if prop.index == 0 else f"{prop.name}[{prop.index}]"


def read_properties_until_none(data: bytes, offset: int, ctx: Context) -> Tuple[Properties, int]:
    properties: Properties = {}
    while True:
        start = offset
        prop, offset = _read_property(data, offset, ctx)
        if prop is None:
            break
        key = property_key(prop)
        if key in properties:
            raise MalformedProperty(f"duplicate property {key!r} at {ctx.path or '.'}", start)
        properties[key] = prop
    return properties, offset


def write_properties_none_terminated(data: bytearray, properties: Properties, ctx: Context) -> None:
    for prop in properties.values():
        _write_property(data, prop, ctx)
    write_string(data, NONE_NAME)


class Property(ABC):
    def __init__(self, name: str, index: int = 0, guid: Optional[uuid.UUID] = None):
        self._name = name
        self._index = index
        self._guid = guid

    @property
    def name(self) -> str:
        return self._name

    @property
    def index(self) -> int:
        return self._index

    @property
    def guid(self) -> Optional[uuid.UUID]:
        return self._guid

    @property
    def type_name(self) -> str:
        return self.__class__.__name__

    @property
    @abstractmethod
    def value(self) -> Any:
        pass

    @classmethod
    @abstractmethod
    def from_bytes(cls, name: str, prop_size: int, prop_index: int, data: bytes, offset: int,
                   ctx: Context) -> Tuple['Property', int]:
        pass

    def write_tag(self, data: bytearray) -> None:
        _write_property_guid(data, self._guid)

    @abstractmethod
    def write_value(self, data: bytearray, ctx: Context) -> None:
        pass

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return vars(self) == vars(other)

    def __str__(self):
        return f"{self.type_name}(name={self._name}, value={self.value})"

    __repr__ = __str__


class _SimpleProperty(Property):
    """A property whose tag is just the guid flag and whose value is one bare value."""

    def __init__(self, name: str, value: Any, index: int = 0, guid: Optional[uuid.UUID] = None):
        super().__init__(name, index, guid)
        self._value = value

    @property
    def value(self) -> Any:
        return self._value

    @classmethod
    def from_bytes(cls, name: str, prop_size: int, prop_index: int, data: bytes, offset: int,
                   ctx: Context) -> Tuple['Property', int]:
        guid, offset = _read_property_guid(data, offset)
        start = offset
        value, offset = _read_bare(cls.__name__, data, offset, ctx)
        _check_size(name, prop_size, start, offset)
        return cls(name, value, index=prop_index, guid=guid), offset

    def write_value(self, data: bytearray, ctx: Context) -> None:
        _write_bare(self.type_name, data, self._value, ctx)


class ArrayProperty(Property):
    def __init__(self, name: str, inner_type: str, values: Union[bytes, list],
                 struct_type: Optional[str] = None, struct_id: uuid.UUID = uuid.UUID(int=0),
                 index: int = 0, guid: Optional[uuid.UUID] = None,
                 inner_name: Optional[str] = None, inner_guid: Optional[uuid.UUID] = None):
        super().__init__(name, index, guid)
        self._inner_type = inner_type
        self._values = values
        self._struct_type = struct_type
        self._struct_id = struct_id
        self._inner_name = inner_name if inner_name is not None else name
        self._inner_guid = inner_guid

    @property
    def value(self) -> Dict[str, Any]:
        return {"__array_type": self._inner_type, "__values": self._values}

    @property
    def inner_type(self) -> str:
        return self._inner_type

    @property
    def struct_type(self) -> Optional[str]:
        return self._struct_type

    @property
    def values(self) -> Union[bytes, list]:
        return self._values

    @values.setter
    def values(self, values: Union[bytes, list]) -> None:
        self._values = values

    def __getitem__(self, index: int) -> Any:
        return self._values[index]

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self):
        return iter(self._values)

    @classmethod
    def from_bytes(cls, name: str, prop_size: int, prop_index: int, data: bytes, offset: int,
                   ctx: Context) -> Tuple['ArrayProperty', int]:
        inner_type, offset = read_string(data, offset)
        guid, offset = _read_property_guid(data, offset)
        start = offset
        count, offset = read_u32(data, offset)
        kwargs: Dict[str, Any] = {}
        if inner_type == "StructProperty":
            inner_name, offset = read_string(data, offset)
            inner_prop_type, offset = read_string(data, offset)
            if inner_prop_type != "StructProperty":
                raise MalformedProperty(
                    f"array {name!r} of structs has element tag {inner_prop_type!r}", offset)
            inner_size, offset = read_u64(data, offset)
            struct_type, offset = read_string(data, offset)
            struct_id, offset = read_guid(data, offset)
            inner_guid, offset = _read_property_guid(data, offset)
            values_start = offset
            values = []
            for _ in range(count):
                value, offset = _read_struct_value(struct_type, data, offset, ctx)
                values.append(value)
            _check_size(name, inner_size, values_start, offset)
            kwargs.update(struct_type=struct_type, struct_id=struct_id,
                          inner_name=inner_name, inner_guid=inner_guid)
        elif inner_type == "ByteProperty" and prop_size - 4 == count:
            values, offset = read_bytes(data, offset, count)
        elif inner_type == "ByteProperty":
            # enum-typed byte arrays carry names instead of raw bytes
            values = []
            for _ in range(count):
                value, offset = read_string(data, offset)
                values.append(value)
        else:
            values = []
            for _ in range(count):
                value, offset = _read_bare(inner_type, data, offset, ctx)
                values.append(value)
        _check_size(name, prop_size, start, offset)
        return cls(name, inner_type, values, index=prop_index, guid=guid, **kwargs), offset

    def write_tag(self, data: bytearray) -> None:
        write_string(data, self._inner_type)
        _write_property_guid(data, self._guid)

    def write_value(self, data: bytearray, ctx: Context) -> None:
        write_u32(data, len(self._values))
        if self._inner_type == "StructProperty":
            body = bytearray()
            for value in self._values:
                _write_struct_value(self._struct_type, body, value, ctx)
            write_string(data, self._inner_name)
            write_string(data, "StructProperty")
            write_u64(data, len(body))
            write_string(data, self._struct_type)
            write_guid(data, self._struct_id)
            _write_property_guid(data, self._inner_guid)
            data.extend(body)
        elif self._inner_type == "ByteProperty" and isinstance(self._values, (bytes, bytearray)):
            data.extend(self._values)
        elif self._inner_type == "ByteProperty":
            for value in self._values:
                if isinstance(value, str):
                    write_string(data, value)
                else:
                    write_u8(data, value)
        else:
            for value in self._values:
                _write_bare(self._inner_type, data, value, ctx)

    def __str__(self):
        return f"ArrayProperty(name={self._name}, inner_type={self._inner_type}, length={len(self._values)})"


class BoolProperty(Property):
    def __init__(self, name: str, value: bool, index: int = 0, guid: Optional[uuid.UUID] = None):
        super().__init__(name, index, guid)
        self._value = value

    @property
    def value(self) -> bool:
        return self._value

    @classmethod
    def from_bytes(cls, name: str, prop_size: int, prop_index: int, data: bytes, offset: int,
                   ctx: Context) -> Tuple['BoolProperty', int]:
        # the value lives in the tag, so the declared size is always 0
        if prop_size != 0:
            raise MalformedProperty(f"BoolProperty {name!r} has size {prop_size}", offset)
        value, offset = _read_bool(data, offset)
        guid, offset = _read_property_guid(data, offset)
        return cls(name, value, index=prop_index, guid=guid), offset

    def write_tag(self, data: bytearray) -> None:
        _write_bool(data, self._value)
        _write_property_guid(data, self._guid)

    def write_value(self, data: bytearray, ctx: Context) -> None:
        pass


class ByteProperty(Property):
    def __init__(self, name: str, value: Union[int, str], enum_type: str = NONE_NAME,
                 index: int = 0, guid: Optional[uuid.UUID] = None):
        super().__init__(name, index, guid)
        self._enum_type = enum_type
        self._value = value

    @property
    def value(self) -> Union[int, str]:
        return self._value

    @property
    def enum_type(self) -> str:
        return self._enum_type

    @classmethod
    def from_bytes(cls, name: str, prop_size: int, prop_index: int, data: bytes, offset: int,
                   ctx: Context) -> Tuple['ByteProperty', int]:
        enum_type, offset = read_string(data, offset)
        guid, offset = _read_property_guid(data, offset)
        start = offset
        if prop_size == 1:
            value, offset = read_u8(data, offset)
        else:
            value, offset = read_string(data, offset)
        _check_size(name, prop_size, start, offset)
        return cls(name, value, enum_type=enum_type, index=prop_index, guid=guid), offset

    def write_tag(self, data: bytearray) -> None:
        write_string(data, self._enum_type)
        _write_property_guid(data, self._guid)

    def write_value(self, data: bytearray, ctx: Context) -> None:
        if isinstance(self._value, str):
            write_string(data, self._value)
        else:
            write_u8(data, self._value)


class DoubleProperty(_SimpleProperty):
    pass


class EnumProperty(Property):
    def __init__(self, name: str, value: str, enum_type: str, index: int = 0,
                 guid: Optional[uuid.UUID] = None):
        super().__init__(name, index, guid)
        self._enum_type = enum_type
        self._value = value

    @property
    def value(self) -> str:
        return self._value

    @property
    def enum_type(self) -> str:
        return self._enum_type

    @classmethod
    def from_bytes(cls, name: str, prop_size: int, prop_index: int, data: bytes, offset: int,
                   ctx: Context) -> Tuple['EnumProperty', int]:
        enum_type, offset = read_string(data, offset)
        guid, offset = _read_property_guid(data, offset)
        start = offset
        value, offset = read_string(data, offset)
        _check_size(name, prop_size, start, offset)
        return cls(name, value, enum_type, index=prop_index, guid=guid), offset

    def write_tag(self, data: bytearray) -> None:
        write_string(data, self._enum_type)
        _write_property_guid(data, self._guid)

    def write_value(self, data: bytearray, ctx: Context) -> None:
        write_string(data, self._value)


class FloatProperty(_SimpleProperty):
    pass


class Int8Property(_SimpleProperty):
    pass


class Int16Property(_SimpleProperty):
    pass


class Int64Property(_SimpleProperty):
    pass


class IntProperty(_SimpleProperty):
    pass


@dataclass
class MapEntry:
    key: Any
    value: Any


class MapProperty(Property):
    def __init__(self, name: str, key_type: str, value_type: str, entries: List[MapEntry],
                 key_struct_type: str = "Guid", value_struct_type: str = "Struct",
                 removed: Optional[list] = None, index: int = 0, guid: Optional[uuid.UUID] = None):
        super().__init__(name, index, guid)
        self._key_type = key_type
        self._value_type = value_type
        self._key_struct_type = key_struct_type
        self._value_struct_type = value_struct_type
        self._entries = entries
        self._removed = removed if removed is not None else []

    @property
    def value(self) -> Dict[str, Any]:
        return {"__key_type": self._key_type, "__value_type": self._value_type, "__entries": self._entries}

    @property
    def key_type(self) -> str:
        return self._key_type

    @property
    def value_type(self) -> str:
        return self._value_type

    @property
    def entries(self) -> List[MapEntry]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    @classmethod
    def from_bytes(cls, name: str, prop_size: int, prop_index: int, data: bytes, offset: int,
                   ctx: Context) -> Tuple['MapProperty', int]:
        key_type, offset = read_string(data, offset)
        value_type, offset = read_string(data, offset)
        guid, offset = _read_property_guid(data, offset)
        start = offset

        # only the hint lookup gets the .Key/.Value suffix; nested fields keep the map's path
        key_struct_type = ctx.types.struct_type(f"{ctx.path}.Key", "Guid")
        value_struct_type = ctx.types.struct_type(f"{ctx.path}.Value", "Struct")

        def read_key(d: bytes, o: int) -> Tuple[Any, int]:
            return _read_bare(key_type, d, o, ctx, key_struct_type)

        def read_entry(d: bytes, o: int) -> Tuple[MapEntry, int]:
            key, o = read_key(d, o)
            value, o = _read_bare(value_type, d, o, ctx, value_struct_type)
            return MapEntry(key, value), o

        removed, offset = read_array(data, offset, read_key)
        entries, offset = read_array(data, offset, read_entry, min_item_size=2)
        _check_size(name, prop_size, start, offset)
        log.debug("map %s: %d entries (%s -> %s)", ctx.path, len(entries), key_type, value_type)
        return cls(name, key_type, value_type, entries,
                   key_struct_type=key_struct_type, value_struct_type=value_struct_type,
                   removed=removed, index=prop_index, guid=guid), offset

    def write_tag(self, data: bytearray) -> None:
        write_string(data, self._key_type)
        write_string(data, self._value_type)
        _write_property_guid(data, self._guid)

    def write_value(self, data: bytearray, ctx: Context) -> None:
        def write_key(d: bytearray, key: Any) -> None:
            _write_bare(self._key_type, d, key, ctx, self._key_struct_type)

        def write_entry(d: bytearray, entry: MapEntry) -> None:
            write_key(d, entry.key)
            _write_bare(self._value_type, d, entry.value, ctx, self._value_struct_type)

        write_array(data, self._removed, write_key)
        write_array(data, self._entries, write_entry)

    def __str__(self):
        return f"MapProperty(name={self._name}, key_type={self._key_type}, value_type={self._value_type}, entries={len(self._entries)})"


class NameProperty(_SimpleProperty):
    pass


class ObjectProperty(_SimpleProperty):
    pass


class SetProperty(Property):
    def __init__(self, name: str, inner_type: str, values: list, struct_type: str = "Struct",
                 removed: Optional[list] = None, index: int = 0, guid: Optional[uuid.UUID] = None):
        super().__init__(name, index, guid)
        self._inner_type = inner_type
        self._values = values
        self._struct_type = struct_type
        self._removed = removed if removed is not None else []

    @property
    def value(self) -> Dict[str, Any]:
        return {"__set_type": self._inner_type, "__values": self._values}

    @property
    def inner_type(self) -> str:
        return self._inner_type

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self):
        return iter(self._values)

    @classmethod
    def from_bytes(cls, name: str, prop_size: int, prop_index: int, data: bytes, offset: int,
                   ctx: Context) -> Tuple['SetProperty', int]:
        inner_type, offset = read_string(data, offset)
        guid, offset = _read_property_guid(data, offset)
        start = offset
        struct_type = ctx.types.struct_type(ctx.path, "Struct")

        def read_item(d: bytes, o: int) -> Tuple[Any, int]:
            return _read_bare(inner_type, d, o, ctx, struct_type)

        removed, offset = read_array(data, offset, read_item)
        values, offset = read_array(data, offset, read_item)
        _check_size(name, prop_size, start, offset)
        return cls(name, inner_type, values, struct_type=struct_type, removed=removed,
                   index=prop_index, guid=guid), offset

    def write_tag(self, data: bytearray) -> None:
        write_string(data, self._inner_type)
        _write_property_guid(data, self._guid)

    def write_value(self, data: bytearray, ctx: Context) -> None:
        def write_item(d: bytearray, item: Any) -> None:
            _write_bare(self._inner_type, d, item, ctx, self._struct_type)

        write_array(data, self._removed, write_item)
        write_array(data, self._values, write_item)

    def __str__(self):
        return f"SetProperty(name={self._name}, inner_type={self._inner_type}, length={len(self._values)})"


class StrProperty(_SimpleProperty):
    pass


class StructProperty(Property):
    def __init__(self, name: str, struct_type: str, value: Any, struct_id: uuid.UUID = uuid.UUID(int=0),
                 index: int = 0, guid: Optional[uuid.UUID] = None):
        super().__init__(name, index, guid)
        self._struct_type = struct_type
        self._struct_id = struct_id
        self._value = value

    @property
    def value(self) -> Any:
        return self._value

    @property
    def struct_type(self) -> str:
        return self._struct_type

    @property
    def struct_id(self) -> uuid.UUID:
        return self._struct_id

    @property
    def fields(self) -> Properties:
        if not isinstance(self._value, dict):
            raise TypeMismatch(self._name, "struct with fields", self._struct_type)
        return self._value

    @classmethod
    def from_bytes(cls, name: str, prop_size: int, prop_index: int, data: bytes, offset: int,
                   ctx: Context) -> Tuple['StructProperty', int]:
        struct_type, offset = read_string(data, offset)
        struct_id, offset = read_guid(data, offset)
        guid, offset = _read_property_guid(data, offset)
        start = offset
        value, offset = _read_struct_value(struct_type, data, offset, ctx)
        _check_size(name, prop_size, start, offset)
        return cls(name, struct_type, value, struct_id=struct_id, index=prop_index, guid=guid), offset

    def write_tag(self, data: bytearray) -> None:
        write_string(data, self._struct_type)
        write_guid(data, self._struct_id)
        _write_property_guid(data, self._guid)

    def write_value(self, data: bytearray, ctx: Context) -> None:
        _write_struct_value(self._struct_type, data, self._value, ctx)

    def __str__(self):
        if isinstance(self._value, dict):
            return f"StructProperty(name={self._name}, type={self._struct_type}, fields={len(self._value)})"
        return f"StructProperty(name={self._name}, type={self._struct_type}, value={self._value})"


class TextProperty(Property):
    """FText is kept as opaque bytes; its layout depends on the text history type."""

    def __init__(self, name: str, value: bytes, index: int = 0, guid: Optional[uuid.UUID] = None):
        super().__init__(name, index, guid)
        self._value = value

    @property
    def value(self) -> bytes:
        return self._value

    @classmethod
    def from_bytes(cls, name: str, prop_size: int, prop_index: int, data: bytes, offset: int,
                   ctx: Context) -> Tuple['TextProperty', int]:
        guid, offset = _read_property_guid(data, offset)
        value, offset = read_bytes(data, offset, prop_size)
        return cls(name, value, index=prop_index, guid=guid), offset

    def write_value(self, data: bytearray, ctx: Context) -> None:
        data.extend(self._value)

    def __str__(self):
        return f"TextProperty(name={self._name}, value=<bytes len={len(self._value)}>)"


class UInt16Property(_SimpleProperty):
    pass


class UInt32Property(_SimpleProperty):
    pass


class UInt64Property(_SimpleProperty):
    pass


class PropertyFactory:
    _TYPE_MAP: Dict[str, Type[Property]] = {}

    @classmethod
    def _build_type_map(cls):
        pending = list(Property.__subclasses__())
        while pending:
            subclass = pending.pop()
            pending.extend(subclass.__subclasses__())
            if not subclass.__name__.startswith('_'):
                cls._TYPE_MAP[subclass.__name__] = subclass

    @classmethod
    def create_property(cls, name: str, prop_type: str, prop_size: int, prop_index: int, data: bytes,
                        offset: int, ctx: Context) -> Tuple[Property, int]:
        if not cls._TYPE_MAP:
            cls._build_type_map()
        prop_cls = cls._TYPE_MAP.get(prop_type)
        if prop_cls is None:
            raise MalformedProperty(f"unknown property type {prop_type!r} at {ctx.path}", offset)
        return prop_cls.from_bytes(name, prop_size, prop_index, data, offset, ctx)


@dataclass
class GvasFile:
    header: GvasHeader
    properties: Properties
    trailer: bytes = b'\x00\x00\x00\x00'


def _read_custom_version(data: bytes, offset: int) -> Tuple[CustomVersion, int]:
    guid, offset = read_guid(data, offset)
    version, offset = read_i32(data, offset)
    return CustomVersion(guid, version), offset


def _write_custom_version(data: bytearray, custom_version: CustomVersion) -> None:
    write_guid(data, custom_version.guid)
    write_i32(data, custom_version.version)


def read_gvas_header(data: bytes, offset: int = 0) -> Tuple[GvasHeader, int]:
    if data[offset: offset + 4] != MAGIC:
        raise MalformedProperty("not a GVAS header", offset)
    offset += 4

    save_game_version, offset = read_i32(data, offset)
    package_file_version_ue4, offset = read_i32(data, offset)
    # UE5 saves (save game version 3 and up) carry a second package version
    package_file_version_ue5 = None
    if save_game_version >= 3:
        package_file_version_ue5, offset = read_i32(data, offset)

    # engine version: uint16 major/minor/patch, uint32 changelist, branch (FString)
    major, offset = read_u16(data, offset)
    minor, offset = read_u16(data, offset)
    patch, offset = read_u16(data, offset)
    changelist, offset = read_u32(data, offset)
    branch, offset = read_string(data, offset)

    custom_versions_format, offset = read_i32(data, offset)
    custom_versions, offset = read_array(data, offset, _read_custom_version, min_item_size=20)
    save_game_class_name, offset = read_string(data, offset)

    header = GvasHeader(
        save_game_version=save_game_version,
        package_file_version_ue4=package_file_version_ue4,
        package_file_version_ue5=package_file_version_ue5,
        engine_version=EngineVersion(major, minor, patch, changelist, branch),
        custom_versions_format=custom_versions_format,
        custom_versions=custom_versions,
        save_game_class_name=save_game_class_name,
    )
    log.debug("GVAS header: save game version %d, engine %d.%d.%d, class %s",
              save_game_version, major, minor, patch, save_game_class_name)
    return header, offset


def write_gvas_header(data: bytearray, header: GvasHeader) -> None:
    data.extend(MAGIC)
    write_i32(data, header.save_game_version)
    write_i32(data, header.package_file_version_ue4)
    if header.save_game_version >= 3:
        write_i32(data, header.package_file_version_ue5 or 0)

    ev = header.engine_version
    write_u16(data, ev.major)
    write_u16(data, ev.minor)
    write_u16(data, ev.patch)
    write_u32(data, ev.changelist)
    write_string(data, ev.branch)

    write_i32(data, header.custom_versions_format)
    write_array(data, header.custom_versions, _write_custom_version)
    write_string(data, header.save_game_class_name)


def read_gvas(data: bytes, types: SaveTypes = SaveTypes()) -> GvasFile:
    header, offset = read_gvas_header(data)
    # properties follow header until sentinel "None"; whatever is left is kept verbatim
    properties, offset = read_properties_until_none(data, offset, Context(header, types))
    return GvasFile(header=header, properties=properties, trailer=bytes(data[offset:]))


def write_gvas(gvas: GvasFile) -> bytes:
    data = bytearray()
    write_gvas_header(data, gvas.header)
    write_properties_none_terminated(data, gvas.properties, Context(gvas.header))
    data.extend(gvas.trailer)
    return bytes(data)
