"""Find options, filtering, sorting and pagination over in-memory records.

Stores without a native query facility run finds through run_query():

    options = FindOptions.normalize({
        "conditions": {"last_name": "Smith"},
        "order": {"first_name": "asc"},
        "limit": 10,
    })
    people = run_query(records, options)

Conditions and order keys are keypaths (see plainstore.keypath), so nested
values such as "address.city" or "friends.0.id" can be matched and sorted on.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from functools import cmp_to_key
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .keypath import Keypath, Lookup, resolve


class Direction(Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: Any) -> "Direction":
        """Parse a direction from a member, "asc"/"desc", or 1/-1."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.lower())
            except ValueError:
                pass
        elif value == 1:
            return cls.ASC
        elif value == -1:
            return cls.DESC
        raise ValueError(f"Unknown sort direction: {value!r}")


class NullOrder(Enum):
    """Where None values go when sorting ascending.

    Descending sorts mirror the choice. Stores disagree on this, so it is a
    per-context setting rather than a fixed rule.
    """

    FIRST = "first"
    LAST = "last"


@dataclass
class Limit:
    """Normalized limit and offset. A limit of None means no limit."""

    limit: Optional[int] = None
    offset: int = 0

    @classmethod
    def parse(cls, value: Any) -> "Limit":
        """Normalize the accepted limit shapes.

        Example:
            Limit.parse(5)                  # Limit(5, 0)
            Limit.parse((5, 10))            # Limit(5, 10)
            Limit.parse({"offset": 10})     # Limit(None, 10)
            Limit.parse(None)               # Limit(None, 0)
        """
        if value is None:
            result = cls()
        elif isinstance(value, cls):
            result = cls(value.limit, value.offset)
        elif isinstance(value, bool):
            raise ValueError(f"Invalid limit: {value!r}")
        elif isinstance(value, int):
            result = cls(value, 0)
        elif isinstance(value, Mapping):
            offset = value.get("offset", value.get("skip"))
            result = cls(value.get("limit"), offset or 0)
        elif isinstance(value, (list, tuple)) and 1 <= len(value) <= 2:
            offset = value[1] if len(value) == 2 else None
            result = cls(value[0], offset or 0)
        else:
            raise ValueError(f"Invalid limit: {value!r}")

        if result.limit is not None and result.limit < 0:
            raise ValueError(f"Limit must not be negative: {result.limit}")
        if result.offset < 0:
            raise ValueError(f"Offset must not be negative: {result.offset}")
        return result


OrderSpec = List[Tuple[Keypath, Direction]]


def normalize_order(value: Any) -> OrderSpec:
    """Normalize the accepted order shapes into (keypath, Direction) pairs.

    Example:
        normalize_order("first_name")
        normalize_order(["last_name", "first_name"])
        normalize_order([("last_name", "desc"), "first_name"])
        normalize_order({"last_name": "desc", "first_name": "asc"})
    """
    if value is None:
        return []
    if isinstance(value, str):
        return [(value, Direction.ASC)]
    if isinstance(value, Mapping):
        return [(key, Direction.parse(direction)) for key, direction in value.items()]

    order: OrderSpec = []
    for entry in value:
        if isinstance(entry, str):
            order.append((entry, Direction.ASC))
        elif isinstance(entry, (list, tuple)) and len(entry) == 2:
            order.append((entry[0], Direction.parse(entry[1])))
        else:
            raise ValueError(f"Invalid order entry: {entry!r}")
    return order


@dataclass
class FindOptions:
    """Normalized find options."""

    conditions: Dict[Keypath, Any] = field(default_factory=dict)
    order: OrderSpec = field(default_factory=list)
    limit: Limit = field(default_factory=Limit)

    @classmethod
    def normalize(cls, opts: Any = None, **overrides: Any) -> "FindOptions":
        """Build FindOptions from a mapping of raw options.

        Args:
            opts: Mapping with optional "conditions", "order" and "limit"
                keys, or an existing FindOptions
            **overrides: Raw options that take precedence over opts

        Returns:
            A new FindOptions; the input is never mutated
        """
        if isinstance(opts, cls):
            raw: Dict[str, Any] = {
                "conditions": opts.conditions,
                "order": opts.order,
                "limit": opts.limit,
            }
        else:
            raw = dict(opts or {})
        raw.update(overrides)

        unknown = set(raw) - {"conditions", "order", "limit"}
        if unknown:
            raise TypeError(f"Unknown find options: {', '.join(sorted(unknown))}")

        return cls(
            conditions=dict(raw.get("conditions") or {}),
            order=normalize_order(raw.get("order")),
            limit=Limit.parse(raw.get("limit")),
        )


def compare(a: Any, b: Any) -> int:
    """Three-way comparison that treats incomparable values as equal."""
    try:
        if a < b:
            return -1
        if b < a:
            return 1
    except TypeError:
        pass
    return 0


def filter_records(records: Sequence[Any], conditions: Mapping) -> List[Any]:
    """Keep the records whose value at every condition keypath equals the
    expected value.

    A missing keypath never matches, not even an expected value of None.
    """
    matches = list(records)
    for keypath, expected in conditions.items():
        matches = [
            record
            for record in matches
            if _matches(resolve(record, keypath), expected)
        ]
    return matches


def _matches(lookup: Lookup, expected: Any) -> bool:
    if not lookup.found:
        return False
    try:
        return bool(lookup.value == expected)
    except (TypeError, ValueError):
        # Array-likes with elementwise __eq__
        return False


def sort_records(
    records: Sequence[Any],
    order: OrderSpec,
    null_order: NullOrder = NullOrder.FIRST,
) -> List[Any]:
    """Sort records by each (keypath, direction) in turn.

    The sort is stable, so records equal on every key keep their relative
    order. Missing keypaths sort as None.
    """
    if not order:
        return list(records)

    # Precedence of a None against a value, ascending.
    none_first = -1 if null_order is NullOrder.FIRST else 1

    def comparator(a: Any, b: Any) -> int:
        for keypath, direction in order:
            multiplier = -1 if direction is Direction.DESC else 1
            value_a = resolve(a, keypath).value
            value_b = resolve(b, keypath).value
            if value_a is None and value_b is None:
                precedence = 0
            elif value_a is None:
                precedence = none_first
            elif value_b is None:
                precedence = -none_first
            else:
                precedence = compare(value_a, value_b)
            if precedence:
                return multiplier * precedence
        return 0

    return sorted(records, key=cmp_to_key(comparator))


def paginate(
    records: Sequence[Any], limit: Optional[int] = None, offset: int = 0
) -> List[Any]:
    """Return at most limit records starting at offset.

    Example:
        paginate(["a", "b", "c", "d"], limit=2, offset=3)     # ["d"]
        paginate(["a", "b", "c", "d"], limit=None, offset=100)  # []
    """
    offset = offset or 0
    if limit is None:
        return list(records[offset:])
    return list(records[offset : offset + limit])


def run_query(
    records: Sequence[Any],
    options: FindOptions,
    null_order: NullOrder = NullOrder.FIRST,
) -> List[Any]:
    """Filter, then sort, then paginate records."""
    matches = filter_records(records, options.conditions)
    ordered = sort_records(matches, options.order, null_order)
    return paginate(ordered, options.limit.limit, options.limit.offset)
