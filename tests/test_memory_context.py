"""Tests for HashContext and the find behaviour shared by all contexts."""

import pytest

from plainstore import HashContext, NullOrder, RemoveError, SaveError


class Thing:
    def __init__(self):
        self.id = None


class Person:
    def __init__(self, id, first_name, last_name, friends=None):
        self.id = id
        self.first_name = first_name
        self.last_name = last_name
        self.friends = friends or []


class Frozen:
    __slots__ = ("name",)

    def __init__(self, name):
        self.name = name


@pytest.fixture
def context():
    """An empty HashContext for Thing."""
    return HashContext(Thing)


@pytest.fixture
def people():
    """A HashContext holding the four-person data set."""
    context = HashContext(Person)
    george_smith = Person(1, "George", "Smith")
    george_archer = Person(2, "George", "Archer", [george_smith])
    bridgette_smith = Person(3, "Bridgette", "Smith")
    karen_zeta = Person(4, "Karen", "Zeta", [george_archer, george_smith])
    for person in (george_smith, george_archer, bridgette_smith, karen_zeta):
        context.save(person)
    return context


class TestLifecycle:
    """Tests for save, fetch and remove."""

    def test_data_store_is_dict(self, context):
        """The raw store is a dict."""
        assert isinstance(context.data_store, dict)

    def test_data_store_is_read_only(self, context):
        """The store handle cannot be replaced."""
        with pytest.raises(AttributeError):
            context.data_store = {}

    def test_save_and_fetch(self, context):
        """Saving assigns a key that fetches the object."""
        thing = Thing()
        assert thing.id is None

        assert context.save(thing) is thing
        assert thing.id is not None
        assert context.fetch(thing.id) is thing

    def test_update(self, context):
        """Saving again keeps the same key."""
        thing = Thing()
        context.save(thing)
        first_id = thing.id

        context.save(thing)

        assert thing.id == first_id
        assert len(context.data_store) == 1

    def test_remove(self, context):
        """Removing clears the key and the stored object."""
        thing = Thing()
        context.save(thing)
        thing_id = thing.id
        assert context.fetch(thing_id) is thing

        assert context.remove(thing) is thing

        assert thing.id is None
        assert context.fetch(thing_id) is None

    def test_remove_unsaved(self, context):
        """Removing an unsaved object is a no-op."""
        thing = Thing()
        context.remove(thing)
        assert thing.id is None

    def test_fetch_missing(self, context):
        """Unknown keys fetch None."""
        assert context.fetch("nope") is None

    def test_save_without_key_field(self, context):
        """Objects that cannot hold a key cannot be saved."""
        with pytest.raises(SaveError):
            context.save(object())
        assert context.data_store == {}

    def test_remove_without_key_field(self, context):
        """Objects that cannot hold a key cannot be removed."""
        with pytest.raises(RemoveError):
            context.remove(object())

    def test_save_slotted_without_key_slot(self):
        """Slotted objects need a slot for the key."""
        context = HashContext(Frozen)
        with pytest.raises(SaveError):
            context.save(Frozen("x"))

    def test_custom_primary_key(self):
        """The key attribute is configurable."""
        context = HashContext(Thing, primary_key="key")
        thing = Thing()

        context.save(thing)

        assert thing.id is None
        assert context.fetch(thing.key) is thing

    def test_failed_save_keeps_key(self, context):
        """A failed save leaves the key as it was."""
        def explode(obj):
            raise RuntimeError("boom")

        context.register_callback("before_convert_to_data", explode)
        thing = Thing()

        with pytest.raises(RuntimeError):
            context.save(thing)

        assert thing.id is None
        assert context.data_store == {}


class TestCallbacks:
    """Tests for context callbacks."""

    def test_lifecycle_events(self, context):
        """Events fire around save, fetch and remove."""
        events = []
        for event in ("before_save", "after_save", "after_fetch", "before_remove", "after_remove"):
            context.register_callback(event, lambda obj, event=event: events.append(event))

        thing = Thing()
        context.save(thing)
        context.fetch(thing.id)
        context.remove(thing)

        assert events == [
            "before_save",
            "after_save",
            "after_fetch",
            "before_remove",
            "after_remove",
        ]

    def test_key_assigned_before_after_save(self, context):
        """after_save sees the assigned key."""
        seen = []
        context.register_callback("after_save", lambda obj: seen.append(obj.id))

        thing = Thing()
        context.save(thing)

        assert seen == [thing.id]

    def test_register_as_decorator(self, context):
        """register_callback returns the callback."""
        @context.register_callback("after_save")
        def audit(obj):
            pass

        assert context.callbacks("after_save") == [audit]

    def test_conversion_transforms(self, context):
        """Transforms change what is stored and what is fetched."""
        context.register_callback("before_convert_to_data", lambda obj: {"wrapped": obj})
        context.register_callback("before_convert_to_object", lambda data: data["wrapped"])

        thing = Thing()
        context.save(thing)

        assert context.data_store[thing.id] == {"wrapped": thing}
        assert context.fetch(thing.id) is thing

    def test_clear_callbacks(self, context):
        """Cleared callbacks no longer fire."""
        calls = []
        context.register_callback("after_save", calls.append)
        context.clear_callbacks()

        context.save(Thing())

        assert calls == []


class TestFind:
    """Tests for find dispatch and queries over a HashContext."""

    def test_find_all(self, people):
        """'all' and 'many' return every match, ordered."""
        opts = {"conditions": {"last_name": "Smith"}, "order": "first_name"}
        assert [p.first_name for p in people.find("all", opts)] == ["Bridgette", "George"]
        assert [p.id for p in people.find("many", opts)] == [3, 1]

    def test_find_all_keywords(self, people):
        """Options can be given as keywords."""
        found = people.find("all", conditions={"first_name": "George"}, order={"last_name": "asc"})
        assert [p.id for p in found] == [2, 1]

    def test_find_first(self, people):
        """'first' and 'one' return the first match."""
        opts = {"conditions": {"last_name": "Smith"}, "order": "first_name"}
        assert people.find("first", opts).id == 3
        assert people.find("one", opts).id == 3

    def test_find_first_keeps_offset(self, people):
        """find first honours the offset."""
        opts = {"conditions": {"last_name": "Smith"}, "order": "first_name", "limit": (10, 1)}
        assert people.find("first", opts).id == 1

    def test_find_first_no_match(self, people):
        """find first with no match returns None."""
        assert people.find("first", conditions={"last_name": "Nobody"}) is None

    def test_find_first_empty_store(self, context):
        """find first on an empty store returns None."""
        assert context.find("first") is None
        assert context.find("all") == []

    def test_find_by_key(self, people):
        """Any other selector fetches by key."""
        assert people.find(2).last_name == "Archer"
        assert people.find(99) is None

    def test_find_many_keys(self, people):
        """A list of keys fetches each, in order, with None for misses."""
        assert [p.id for p in people.find([3, 1])] == [3, 1]
        assert [p and p.id for p in people.find((1, 99))] == [1, None]

    def test_limit_and_offset(self, people):
        """Limits apply after sorting."""
        found = people.find("all", order="id", limit={"limit": 2, "offset": 1})
        assert [p.id for p in found] == [2, 3]

    def test_offset_past_end(self, people):
        """An offset beyond the store finds nothing."""
        assert people.find("all", limit={"offset": 100}) == []

    def test_nested_conditions(self, people):
        """Conditions use keypaths."""
        assert [p.id for p in people.find("all", conditions={"friends.1.id": 1})] == [4]

    def test_null_order(self):
        """The context's null order applies to its finds."""
        context = HashContext(Person, null_order=NullOrder.LAST)
        context.save(Person(1, None, "Smith"))
        context.save(Person(2, "Ann", "Smith"))

        assert [p.id for p in context.find("all", order="first_name")] == [2, 1]

    def test_unknown_option(self, people):
        """Misspelled options are reported."""
        with pytest.raises(TypeError):
            people.find("all", {"condition": {"id": 1}})


class TestPrimaryKeyRouting:
    """Tests for finds whose conditions name the primary key."""

    def test_routes_to_fetch(self, people, monkeypatch):
        """A key condition fetches instead of scanning."""
        def no_scan(options):
            raise AssertionError("scanned the store")

        monkeypatch.setattr(people, "_find_all", no_scan)

        assert [p.first_name for p in people.find("all", conditions={"id": 3})] == ["Bridgette"]

    def test_remaining_conditions_filter(self, people):
        """Other conditions still have to match the fetched object."""
        assert people.find("all", conditions={"id": 3, "last_name": "Smith"})[0].id == 3
        assert people.find("all", conditions={"id": 3, "last_name": "Zeta"}) == []

    def test_missing_key(self, people):
        """A key with no object finds nothing."""
        assert people.find("all", conditions={"id": 99}) == []
        assert people.find("first", conditions={"id": 99}) is None

    def test_limit_applies(self, people):
        """The limit still applies to the fetched object."""
        assert people.find("all", conditions={"id": 3}, limit=(1, 1)) == []
