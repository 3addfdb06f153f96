"""Tests for plainstore.keypath."""

from enum import Enum

import pytest

from plainstore.keypath import NOT_FOUND, Lookup, join_keypath, resolve, split_keypath


class Person:
    def __init__(self, id, first_name, last_name, friends=None):
        self.id = id
        self.first_name = first_name
        self.last_name = last_name
        self.friends = friends or []


class Point:
    __slots__ = ("x", "y")

    def __init__(self, x):
        self.x = x


class Color(Enum):
    RED = "r"


@pytest.fixture
def people():
    """The four-person data set."""
    george_smith = Person(1, "George", "Smith")
    george_archer = Person(2, "George", "Archer", [george_smith])
    bridgette_smith = Person(3, "Bridgette", "Smith")
    karen_zeta = Person(4, "Karen", "Zeta", [george_archer, george_smith])
    return [george_smith, george_archer, bridgette_smith, karen_zeta]


class TestSplitKeypath:
    """Tests for splitting and joining keypaths."""

    def test_split_dotted(self):
        """Dotted strings split into segments."""
        assert split_keypath("friends.0.id") == ["friends", "0", "id"]

    def test_split_empty(self):
        """The empty keypath has no segments."""
        assert split_keypath("") == []
        assert split_keypath([]) == []

    def test_split_sequence(self):
        """Sequence keypaths become string segments."""
        assert split_keypath(["friends", 0, "id"]) == ["friends", "0", "id"]

    def test_join(self):
        """Sequences join with dots; strings pass through."""
        assert join_keypath(["address", "city"]) == "address.city"
        assert join_keypath("address.city") == "address.city"


class TestResolveObjects:
    """Tests for resolving keypaths on objects."""

    def test_shallow_values(self, people):
        """Top-level fields resolve on every record."""
        assert [resolve(p, "first_name").value for p in people] == [
            "George",
            "George",
            "Bridgette",
            "Karen",
        ]
        assert [resolve(p, "id").value for p in people] == [1, 2, 3, 4]

    def test_embedded_values(self, people):
        """Nested keypaths report found separately from value."""
        assert [resolve(p, "friends.0.id") for p in people] == [
            Lookup(False, None),
            Lookup(True, 1),
            Lookup(False, None),
            Lookup(True, 2),
        ]

    def test_sequence_keypath(self, people):
        """A keypath given as segments resolves like its dotted form."""
        assert resolve(people[3], ["friends", 1, "last_name"]) == Lookup(True, "Smith")

    def test_empty_keypath_is_record(self, people):
        """The empty keypath resolves to the record itself."""
        assert resolve(people[0], "") == Lookup(True, people[0])

    def test_found_none(self):
        """A present field holding None is found."""
        person = Person(None, "George", "Smith")
        assert resolve(person, "id") == Lookup(True, None)

    def test_missing_field(self, people):
        """Unknown fields are not found."""
        assert resolve(people[0], "middle_name") is NOT_FOUND

    def test_methods_are_not_fields(self, people):
        """Only instance fields resolve, not class attributes."""
        assert not resolve(people[0], "__init__").found
        assert not resolve(people[0], "__class__").found

    def test_invalid_identifier(self, people):
        """Segments that are not identifiers never resolve on objects."""
        assert not resolve(people[0], "first-name").found

    def test_slots(self):
        """Populated slots are fields; unset slots are not."""
        point = Point(3)
        assert resolve(point, "x") == Lookup(True, 3)
        assert not resolve(point, "y").found

    def test_primitives_have_no_children(self, people):
        """Descending into a primitive is not found."""
        assert not resolve(people[0], "first_name.upper").found
        assert not resolve({"n": 5}, "n.real").found


class TestResolveContainers:
    """Tests for resolving keypaths on mappings and sequences."""

    def test_mapping_string_key(self):
        """String keys are tried first."""
        assert resolve({"a": {"b": 2}}, "a.b") == Lookup(True, 2)

    def test_mapping_enum_key(self):
        """Enum members match by name."""
        assert resolve({Color.RED: 1}, "RED") == Lookup(True, 1)

    def test_mapping_string_beats_enum(self):
        """A string key wins over an enum member of the same name."""
        assert resolve({Color.RED: 1, "RED": 2}, "RED") == Lookup(True, 2)

    def test_mapping_int_key(self):
        """Integer keys match their decimal form."""
        assert resolve({0: "zero", -1: "minus"}, "0") == Lookup(True, "zero")
        assert resolve({-1: "minus"}, "-1") == Lookup(True, "minus")

    def test_mapping_missing(self):
        """Absent keys are not found."""
        assert not resolve({"a": 1}, "b").found

    def test_sequence_index(self):
        """Lists and tuples take non-negative indexes."""
        assert resolve(["a", "b"], "1") == Lookup(True, "b")
        assert resolve(("a", "b"), "0") == Lookup(True, "a")

    def test_sequence_out_of_bounds(self):
        """Indexes past the end are not found."""
        assert not resolve(["a"], "1").found

    def test_sequence_rejects_non_index(self):
        """Negative, non-ASCII and non-numeric segments are not indexes."""
        assert not resolve(["a", "b"], "-1").found
        assert not resolve(["a", "b"], "x").found
        assert not resolve(["a", "b"], "١").found

    def test_mixed_shapes(self):
        """Keypaths cross objects, mappings and sequences."""
        person = Person(1, "George", "Smith", [{"tags": ["a", "b"]}])
        assert resolve(person, "friends.0.tags.1") == Lookup(True, "b")
