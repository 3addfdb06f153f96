"""Tests for ContextRegistry and the @persistent flag."""

import pytest

from plainstore import (
    ConfigurationError,
    ContextRegistry,
    FactoryError,
    HashContext,
    is_persistent,
    persistent,
)


@persistent
class Person:
    def __init__(self, name):
        self.id = None
        self.name = name


class Manager(Person):
    pass


class Unflagged:
    pass


@pytest.fixture
def registry():
    return ContextRegistry(lambda klass: HashContext(klass))


class TestPersistent:
    """Tests for the persistence flag."""

    def test_flag(self):
        """Decorated classes and their subclasses are persistent."""
        assert is_persistent(Person)
        assert is_persistent(Manager)
        assert not is_persistent(Unflagged)

    def test_instances_are_not_classes(self):
        """Only classes are checked."""
        assert not is_persistent(Person("x"))


class TestContextRegistry:
    """Tests for ContextRegistry."""

    def test_fetch_builds_context(self, registry):
        """fetch builds a context for the class."""
        context = registry.fetch(Person)
        assert isinstance(context, HashContext)
        assert context.klass is Person
        assert context.registry is registry

    def test_fetch_is_memoized(self, registry):
        """The same context is returned every time."""
        context = registry.fetch(Person)
        context.primary_key = "key"
        assert registry.fetch(Person) is context
        assert registry.fetch(Person).primary_key == "key"

    def test_fetch_by_instance(self, registry):
        """Instances look up their class's context."""
        assert registry.fetch(Person("x")) is registry.fetch(Person)

    def test_subclass_gets_own_context(self, registry):
        """Each class has its own context."""
        assert registry.fetch(Manager) is not registry.fetch(Person)

    def test_unflagged_class(self, registry):
        """Classes without the flag have no context."""
        with pytest.raises(FactoryError):
            registry.fetch(Unflagged)

    def test_registered_context(self):
        """A pre-built context can be installed for any class."""
        registry = ContextRegistry()
        context = HashContext(Unflagged)
        registry.register(context)

        assert registry.fetch(Unflagged) is context
        assert registry.is_managed(Unflagged)
        assert Unflagged in registry

    def test_is_managed(self, registry):
        """Persistent classes are managed before their context exists."""
        assert registry.is_managed(Person)
        assert Person not in registry
        assert not registry.is_managed(Unflagged)

    def test_no_builder(self):
        """A registry without a builder cannot build."""
        with pytest.raises(ConfigurationError):
            ContextRegistry().fetch(Person)

    def test_builder_error_is_wrapped(self):
        """Errors while building are reported as FactoryError."""
        def build(klass):
            raise KeyError("boom")

        with pytest.raises(FactoryError) as excinfo:
            ContextRegistry(build).fetch(Person)
        assert isinstance(excinfo.value.__cause__, KeyError)

    def test_builder_returns_none(self):
        """A builder that declines the class is an error."""
        with pytest.raises(FactoryError):
            ContextRegistry(lambda klass: None).fetch(Person)

    def test_reentrant_build(self):
        """Asking for a class while building it is an error."""
        def build(klass):
            return registry.fetch(klass)

        registry = ContextRegistry(build)

        with pytest.raises(FactoryError, match="being built"):
            registry.fetch(Person)
        # The failed build is forgotten.
        with pytest.raises(FactoryError, match="being built"):
            registry.fetch(Person)

    def test_build_may_fetch_other_classes(self):
        """Building one context may fetch another."""
        built = []

        def build(klass):
            if klass is Manager:
                built.append(registry.fetch(Person))
            return HashContext(klass)

        registry = ContextRegistry(build)

        manager_context = registry.fetch(Manager)

        assert built == [registry.fetch(Person)]
        assert manager_context.klass is Manager

    def test_types_are_registered(self, registry):
        """Built contexts register their class for decoding."""
        registry.fetch(Person)
        assert registry.types.get_type(f"{Person.__module__}.Person") is Person

    def test_reset(self, registry):
        """reset forgets every context."""
        context = registry.fetch(Person)
        registry.reset()

        assert registry.fetch(Person) is not context
