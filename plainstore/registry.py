"""Context registry: one memoized context per persistent class."""

import logging
from typing import Any, Callable, Dict, Optional, Set

from .exceptions import ConfigurationError, FactoryError
from .serialization import TypeRegistry

logger = logging.getLogger(__name__)

PERSISTENT_FLAG = "__plainstore_persistent__"


def persistent(cls: type) -> type:
    """Class decorator flagging a class for persistence.

    This is the only change a class needs before a registry will build a
    context for it. Subclasses inherit the flag.

    Example:
        @persistent
        class Person:
            def __init__(self, first_name, last_name):
                self.id = None
                self.first_name = first_name
                self.last_name = last_name
    """
    setattr(cls, PERSISTENT_FLAG, True)
    return cls


def is_persistent(cls: Any) -> bool:
    """Whether cls has been flagged with @persistent."""
    return isinstance(cls, type) and getattr(cls, PERSISTENT_FLAG, False) is True


class ContextRegistry:
    """Builds and caches the context for each persistent class.

    The same context instance is returned for a class for the lifetime of
    the registry, so configuration made after the first fetch sticks.
    Contexts are built lazily by ``build``, a callable taking the class, or
    by overriding build() in a subclass (see plainstore.factories).

    Looking up a class from inside its own build raises FactoryError rather
    than recursing.

    Example:
        registry = ContextRegistry(lambda klass: HashContext(klass))
        people = registry.fetch(Person)
        assert registry.fetch(Person) is people
    """

    def __init__(self, build: Optional[Callable[[type], Any]] = None):
        self._build = build
        self._contexts: Dict[type, Any] = {}
        self._building: Set[type] = set()
        self._collections: Dict[str, Any] = {}
        self.types = TypeRegistry()

    def is_managed(self, klass: Any) -> bool:
        """Whether this registry has or can build a context for klass."""
        return klass in self._contexts or is_persistent(klass)

    def __contains__(self, klass: Any) -> bool:
        """Whether a context for klass has already been built."""
        return klass in self._contexts

    def fetch(self, klass_or_obj: Any):
        """Return the context for a class, or for the class of an object.

        Raises:
            FactoryError: If the class is not persistent, its context is
                being built already, or building it fails
        """
        klass = klass_or_obj if isinstance(klass_or_obj, type) else type(klass_or_obj)

        context = self._contexts.get(klass)
        if context is not None:
            return context

        if not is_persistent(klass):
            raise FactoryError(
                f"Cannot create a context for {klass.__qualname__}, as it has "
                f"not been flagged for persistence. Decorate it with @persistent."
            )
        if klass in self._building:
            raise FactoryError(
                f"Context for {klass.__qualname__} was requested while it was "
                f"being built"
            )

        self._building.add(klass)
        try:
            context = self.build(klass)
        except (FactoryError, ConfigurationError):
            raise
        except Exception as e:
            raise FactoryError(
                f"Error building context for {klass.__qualname__}: "
                f"{type(e).__name__}: {e}"
            ) from e
        finally:
            self._building.discard(klass)

        if context is None:
            raise FactoryError(f"No context factory for {klass.__qualname__}")

        self.register(context)
        logger.debug("Built %r", context)
        return context

    def build(self, klass: type):
        """Create a new context for klass. Called once per class by fetch()."""
        if self._build is None:
            raise ConfigurationError(
                f"{type(self).__name__} has no way to build contexts"
            )
        return self._build(klass)

    def register(self, context) -> None:
        """Install an already configured context for its class."""
        self._contexts[context.klass] = context
        context.bind(self)

    # Collections

    def register_collection(self, context, previous: Any = None) -> None:
        """Record which context owns a document collection.

        Args:
            context: A context whose data_store is a collection
            previous: The collection it used before, if it changed
        """
        if previous is not None and self._collections.get(previous.name) is context:
            del self._collections[previous.name]
        if context.data_store is not None:
            self._collections[context.data_store.name] = context

    def context_for_collection(self, name: str):
        """The context that owns the named collection, or None."""
        return self._collections.get(name)

    # Lifecycle

    def reset(self) -> None:
        """Forget every context, collection and registered type."""
        self._contexts.clear()
        self._collections.clear()
        self.types.clear()
