"""Keypath resolution over heterogeneous records.

A keypath addresses a value nested inside a record, one segment at a time:

    resolve(person, "friends.0.last_name")

Each segment is applied according to the shape of the current value:

    - sequences (list, tuple) take a non-negative integer index
    - mappings take a key, tried as a string, an enum member name, then an int
    - any other object takes the name of one of its instance fields

Resolution never raises for shape mismatches. A segment that cannot be
applied yields a not-found Lookup, which is distinct from a found None.
"""

import re
from collections.abc import Mapping
from enum import Enum
from typing import Any, List, NamedTuple, Sequence, Tuple, Union

from .serialization import has_field

Keypath = Union[str, Sequence[Any]]

_INDEX = re.compile(r"[0-9]+")
_MISSING = object()


class Lookup(NamedTuple):
    """The result of resolving a keypath."""

    found: bool
    value: Any = None


NOT_FOUND = Lookup(False, None)


def split_keypath(keypath: Keypath) -> List[str]:
    """Split a keypath into its string segments.

    Example:
        split_keypath("friends.0.id")  # ["friends", "0", "id"]
        split_keypath("")              # []
    """
    if isinstance(keypath, str):
        return keypath.split(".") if keypath else []
    return [str(segment) for segment in keypath]


def join_keypath(keypath: Keypath) -> str:
    """Return the dotted string form of a keypath."""
    if isinstance(keypath, str):
        return keypath
    return ".".join(str(segment) for segment in keypath)


def _sequence_child(record: Sequence[Any], segment: str) -> Tuple[bool, Any]:
    if not _INDEX.fullmatch(segment):
        return False, None
    index = int(segment)
    if index >= len(record):
        return False, None
    return True, record[index]


def _mapping_child(record: Mapping, segment: str) -> Tuple[bool, Any]:
    value = record.get(segment, _MISSING)
    if value is not _MISSING:
        return True, value

    for key in record:
        if isinstance(key, Enum) and key.name == segment:
            return True, record[key]

    if _INDEX.fullmatch(segment) or (
        segment.startswith("-") and _INDEX.fullmatch(segment[1:])
    ):
        value = record.get(int(segment), _MISSING)
        if value is not _MISSING:
            return True, value

    return False, None


def _field_child(record: Any, segment: str) -> Tuple[bool, Any]:
    if not segment.isidentifier() or not has_field(record, segment):
        return False, None
    return True, object.__getattribute__(record, segment)


def resolve(record: Any, keypath: Keypath) -> Lookup:
    """Resolve a keypath against a record.

    Args:
        record: A mapping, sequence, or object with instance fields
        keypath: Dotted string or sequence of segments

    Returns:
        Lookup(found, value); value is None when not found
    """
    value = record
    for segment in split_keypath(keypath):
        if isinstance(value, (list, tuple)):
            found, value = _sequence_child(value, segment)
        elif isinstance(value, Mapping):
            found, value = _mapping_child(value, segment)
        elif value is None or isinstance(value, (str, bytes, int, float, bool)):
            found = False
        else:
            found, value = _field_child(value, segment)
        if not found:
            return NOT_FOUND
    return Lookup(True, value)
