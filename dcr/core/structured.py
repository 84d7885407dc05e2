"""Helpers for reading untyped TOML/JSON data.

Used at the boundary where config files are ingested; they validate at
runtime and narrow types for the checker.
"""

from __future__ import annotations

from typing import Mapping, TypeGuard, cast

StrDict = dict[str, object]
ObjList = list[object]


def is_str_dict(obj: object) -> TypeGuard[StrDict]:
    """Return True if obj is a dict with string keys."""
    if not isinstance(obj, dict):
        return False
    d = cast(dict[object, object], obj)
    return all(isinstance(k, str) for k in d.keys())


def as_str_dict(obj: object) -> StrDict | None:
    if is_str_dict(obj):
        return obj
    return None


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """Get a stripped, non-empty string value or None."""
    value = table.get(key)
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def get_bool(table: Mapping[str, object], key: str) -> bool | None:
    value = table.get(key)
    if isinstance(value, bool):
        return value
    return None


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    """Get a nested table (dict with string keys)."""
    return as_str_dict(table.get(key))


def get_str_list(table: Mapping[str, object], key: str) -> list[str] | None:
    """Get a list whose items are all strings.

    Returns None when the key is missing or any item is not a string.
    """
    value = table.get(key)
    if not isinstance(value, list):
        return None
    items = cast(list[object], value)
    out: list[str] = []
    for item in items:
        if not isinstance(item, str):
            return None
        out.append(item)
    return out


def get_dict_list(table: Mapping[str, object], key: str) -> list[StrDict] | None:
    """Get a list of tables, or None if any item is not a table."""
    value = table.get(key)
    if not isinstance(value, list):
        return None
    out: list[StrDict] = []
    for item in cast(list[object], value):
        d = as_str_dict(item)
        if d is None:
            return None
        out.append(d)
    return out
