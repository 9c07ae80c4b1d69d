"""Conversion of values crossing the host/script boundary.

Only plain data crosses: text, numbers, booleans, None, and lists/tuples/dicts of
those. Values are copied on the way through, and subclasses are normalized to their
base type without calling any overridden method, so a hostile object cannot run
code on the host side of the boundary.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any

_MAX_DEPTH = 64


class ValueConversionError(TypeError):
    pass


def type_name(value: Any) -> str:
    try:
        name = type(value).__name__
    except Exception:
        return "object"
    return name if isinstance(name, str) else "object"


def convert_value(value: Any, *, _depth: int = 0) -> Any:
    """Return a host-owned copy of ``value`` or raise ValueConversionError."""
    if _depth > _MAX_DEPTH:
        raise ValueConversionError("value is nested too deeply")

    kind = type(value)
    if value is None or kind is bool or kind is int or kind is float or kind is str:
        return value
    if isinstance(value, bool):
        return bool(value)
    if isinstance(value, str):
        return str.__str__(value)
    if isinstance(value, int):
        return int.__index__(value)
    if isinstance(value, float):
        return float.__float__(value)
    if isinstance(value, list):
        return [convert_value(item, _depth=_depth + 1) for item in list.__iter__(value)]
    if isinstance(value, tuple):
        return tuple(convert_value(item, _depth=_depth + 1) for item in tuple.__iter__(value))
    if isinstance(value, (dict, MappingProxyType)):
        items = dict.items(value) if isinstance(value, dict) else value.items()
        converted: dict[str, Any] = {}
        for key, item in items:
            if not isinstance(key, str):
                raise ValueConversionError(f"dict keys must be text, got {type_name(key)}")
            converted[str.__str__(key)] = convert_value(item, _depth=_depth + 1)
        return converted
    raise ValueConversionError(f"unsupported value of type {type_name(value)}")


def freeze_value(value: Any) -> Any:
    """Convert ``value`` and make containers immutable (list -> tuple, dict -> proxy)."""
    return _freeze(convert_value(value))


def _freeze(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    if isinstance(value, dict):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    return value
