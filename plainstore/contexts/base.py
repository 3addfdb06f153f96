"""Abstract base class for contexts.

A context is the persistence delegate for one class. It knows how to fetch,
save, remove and find instances of that class in one backing store, and
nothing about any other class.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional

from ..exceptions import SaveError
from ..hooks import Callback, Callbacks
from ..query import FindOptions, Limit, NullOrder, filter_records, paginate
from ..serialization import TypeRegistry

logger = logging.getLogger(__name__)

FIND_ALL = frozenset({"all", "many"})
FIND_FIRST = frozenset({"first", "one"})


class Context(ABC):
    """Abstract base class for contexts.

    Subclasses implement the store-specific fetch, save, remove and
    _find_all, while this class handles find dispatch, primary keys and
    callbacks.

    Objects keep their primary key in an ordinary attribute, named by
    ``primary_key`` ("id" by default). A successful save assigns it and a
    successful remove clears it to None; a failed save or remove leaves it
    untouched.
    """

    def __init__(
        self,
        klass: type,
        *,
        primary_key: str = "id",
        null_order: NullOrder = NullOrder.FIRST,
    ):
        """Create a context for the given class.

        Args:
            klass: The class whose instances this context persists
            primary_key: Name of the attribute holding each object's key
            null_order: Where None sorts in finds run in memory
        """
        self._klass = klass
        self.primary_key = primary_key
        self.null_order = null_order
        self._data_store: Any = None
        self._registry = None
        self._types = TypeRegistry()
        self._types.register(klass)
        self._callbacks = Callbacks()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} for {self._klass.__qualname__}>"

    @property
    def klass(self) -> type:
        """The class this context services."""
        return self._klass

    @property
    def data_store(self) -> Any:
        """The raw store backing this context.

        Useful for special queries, at the price of coupling to the store.
        """
        return self._data_store

    # Registry

    @property
    def registry(self):
        """The ContextRegistry this context was built by, or None."""
        return self._registry

    def bind(self, registry) -> None:
        """Attach this context to the registry that built it."""
        self._registry = registry
        registry.types.register(self._klass)

    @property
    def types(self) -> TypeRegistry:
        """The TypeRegistry used to resolve stored class names."""
        if self._registry is not None:
            return self._registry.types
        return self._types

    # Primary keys

    def primary_key_value(self, obj: Any) -> Any:
        """Return the primary key of obj, or None if it has none."""
        return getattr(obj, self.primary_key, None)

    def set_primary_key_value(self, obj: Any, value: Any) -> None:
        """Set the primary key of obj."""
        setattr(obj, self.primary_key, value)

    def _assign_primary_key(self, obj: Any, value: Any, error=SaveError) -> None:
        try:
            self.set_primary_key_value(obj, value)
        except (AttributeError, TypeError) as e:
            raise error(
                obj, f"no assignable primary key field {self.primary_key!r}"
            ) from e

    def _check_primary_key(self, obj: Any, error=SaveError) -> None:
        """Raise error unless obj can have its primary key assigned."""
        self._assign_primary_key(obj, self.primary_key_value(obj), error)

    # Callbacks

    def callbacks(self, event: str) -> List[Callback]:
        """The callbacks registered for an event."""
        return self._callbacks.callbacks(event)

    def register_callback(self, event: str, callback: Optional[Callback] = None) -> Any:
        """Register a callback for an event.

        Can be used as a decorator:

            @context.register_callback("after_save")
            def audit(obj): ...
        """
        return self._callbacks.register(event, callback)

    def clear_callbacks(self, event: Optional[str] = None) -> None:
        """Clear the callbacks for an event, or all callbacks."""
        self._callbacks.clear(event)

    # Persistence

    @abstractmethod
    def fetch(self, id: Any) -> Optional[Any]:
        """Fetch the object with the given primary key.

        Returns:
            The object, or None if there is none
        """
        pass

    @abstractmethod
    def save(self, obj: Any) -> Any:
        """Insert or update obj, assigning its primary key if it has none.

        Returns:
            obj

        Raises:
            SaveError: If the key cannot be assigned or the store rejects it
        """
        pass

    @abstractmethod
    def remove(self, obj: Any) -> Any:
        """Remove obj from the store and clear its primary key.

        Returns:
            obj

        Raises:
            RemoveError: If the key cannot be cleared or the store rejects it
        """
        pass

    def fetch_many(self, ids: Iterable[Any]) -> List[Optional[Any]]:
        """Fetch several objects, in the order of ids, with None for misses.

        Stores with a bulk query should override this.
        """
        return [self.fetch(id) for id in ids]

    # Conversion

    def convert_to_object(self, data: Any, embedded: bool = False) -> Any:
        """Convert stored data into a plain object of this context's class."""
        data = self._callbacks.transform("before_convert_to_object", data)
        obj = self._decode(data, embedded)
        self._callbacks.fire("after_convert_to_object", obj)
        return obj

    def convert_to_data(self, obj: Any, embedded: bool = False) -> Any:
        """Convert a plain object into this context's stored data format."""
        obj = self._callbacks.transform("before_convert_to_data", obj)
        data = self._encode(obj, embedded)
        self._callbacks.fire("after_convert_to_data", data)
        return data

    def _decode(self, data: Any, embedded: bool) -> Any:
        return data

    def _encode(self, obj: Any, embedded: bool) -> Any:
        return obj

    # Finding

    def find(self, selector: Any, opts: Any = None, **options: Any) -> Any:
        """Find objects.

        Args:
            selector: "all" or "many" for a list of matches, "first" or
                "one" for the first match or None, a list, tuple or set of
                primary keys for fetch_many(), or a single primary key
            opts: Mapping of find options (conditions, order, limit)
            **options: Find options given as keywords

        Example:
            people.find("all", conditions={"last_name": "Smith"},
                        order="first_name")
            people.find("first", {"conditions": {"last_name": "Smith"}})
            people.find(person_id)
        """
        if isinstance(selector, str) and selector in FIND_ALL:
            return self.find_all(opts, **options)
        if isinstance(selector, str) and selector in FIND_FIRST:
            return self.find_first(opts, **options)
        if isinstance(selector, (list, tuple, set, frozenset)):
            return self.fetch_many(selector)
        return self.fetch(selector)

    def find_all(self, opts: Any = None, **options: Any) -> List[Any]:
        """Return every object matching the find options."""
        options = FindOptions.normalize(opts, **options)

        if self.primary_key in options.conditions:
            conditions = dict(options.conditions)
            pk = conditions.pop(self.primary_key)
            logger.debug("Finding %s by primary key %r", self._klass.__name__, pk)
            obj = self.fetch(pk)
            found = [] if obj is None else [obj]
            return paginate(
                filter_records(found, conditions),
                options.limit.limit,
                options.limit.offset,
            )

        return self._find_all(options)

    def find_first(self, opts: Any = None, **options: Any) -> Optional[Any]:
        """Return the first object matching the find options, or None."""
        options = FindOptions.normalize(opts, **options)
        options.limit = Limit(1, options.limit.offset)
        found = self.find_all(options)
        return found[0] if found else None

    @abstractmethod
    def _find_all(self, options: FindOptions) -> List[Any]:
        """Run a find that does not name a primary key."""
        pass
