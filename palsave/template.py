"""Character templates stored as JSON property trees.

The shape is the property JSON used by Palworld save editors: every
property is an object with its ``type`` and ``value``, structs carry ``struct_type`` and
arrays ``array_type``::

    {"SaveParameter": {"type": "StructProperty",
                       "struct_type": "PalIndividualCharacterSaveParameter",
                       "value": {"Level": {"type": "IntProperty", "value": 1}}}}
"""
import json
import logging
import uuid
from pathlib import Path
from typing import *

from palsave.character import CharacterRecord
from palsave.errors import MalformedProperty
from palsave.gvas import (ArrayProperty, BoolProperty, ByteProperty,
                          DoubleProperty, EnumProperty, FloatProperty,
                          Int8Property, Int16Property, Int64Property,
                          IntProperty, NameProperty, ObjectProperty,
                          Properties, Property, StrProperty, StructProperty,
                          UInt16Property, UInt32Property, UInt64Property)

log = logging.getLogger(__name__)

DEFAULT_TEMPLATE = Path(__file__).resolve().parent / "templates" / "PalIndividualCharacterSaveParameter.json"

_SCALARS: Dict[str, Type[Property]] = {
    cls.__name__: cls for cls in (
        BoolProperty, DoubleProperty, FloatProperty, Int8Property, Int16Property,
        Int64Property, IntProperty, NameProperty, ObjectProperty, StrProperty,
        UInt16Property, UInt32Property, UInt64Property,
    )
}

_TUPLE_STRUCTS = {"Vector", "Vector2D", "Rotator", "Quat", "LinearColor", "IntPoint", "Color"}


def _struct_value(struct_type: str, value: Any, path: str) -> Any:
    if struct_type == "Guid":
        return uuid.UUID(value)
    if struct_type in _TUPLE_STRUCTS:
        return tuple(value)
    if struct_type in ("DateTime", "Timespan"):
        return int(value)
    return properties_from_json(value, path)


def property_from_json(name: str, spec: Mapping[str, Any], path: str = "") -> Property:
    full_path = f"{path}.{name}"
    if not isinstance(spec, dict):
        raise MalformedProperty(f"template property {full_path} is not an object")
    kind = spec.get("type")
    index = spec.get("index", 0)
    try:
        if kind == "StructProperty":
            struct_type = spec["struct_type"]
            return StructProperty(name, struct_type, _struct_value(struct_type, spec["value"], full_path),
                                  index=index)
        if kind == "ArrayProperty":
            inner_type = spec["array_type"]
            values = spec["values"]
            if inner_type == "StructProperty":
                struct_type = spec["struct_type"]
                return ArrayProperty(name, inner_type,
                                     [_struct_value(struct_type, v, full_path) for v in values],
                                     struct_type=struct_type, index=index)
            if inner_type == "ByteProperty" and all(isinstance(v, int) for v in values):
                values = bytes(values)
            return ArrayProperty(name, inner_type, values, index=index)
        if kind == "EnumProperty":
            return EnumProperty(name, spec["value"], spec["enum_type"], index=index)
        if kind == "ByteProperty":
            return ByteProperty(name, spec["value"], enum_type=spec.get("enum_type", "None"), index=index)
        if kind in _SCALARS:
            return _SCALARS[kind](name, spec["value"], index=index)
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedProperty(f"bad template property {full_path}: {e!r}") from e
    raise MalformedProperty(f"unsupported template property type {kind!r} at {full_path}")


def properties_from_json(obj: Mapping[str, Any], path: str = "") -> Properties:
    if not isinstance(obj, dict):
        raise MalformedProperty(f"expected an object of properties at {path or '.'}")
    return {key: property_from_json(key.split("[")[0], spec, path) for key, spec in obj.items()}


def load_template(path: Path = DEFAULT_TEMPLATE) -> CharacterRecord:
    """Character record template; its group id is filled in when a character is created."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except ValueError as e:
        raise MalformedProperty(f"{path} is not valid JSON: {e}") from e
    log.debug("loaded character template %s", path)
    return CharacterRecord(properties=properties_from_json(data), group_id=uuid.UUID(int=0))
