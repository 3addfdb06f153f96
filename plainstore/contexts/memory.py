"""In-memory context for testing."""

import logging
import uuid
from typing import Any, Dict, List, Optional

from ..exceptions import RemoveError
from ..query import FindOptions, run_query
from .base import Context

logger = logging.getLogger(__name__)


class HashContext(Context):
    """In-memory context backed by a dict keyed by primary key.

    Useful for building and testing code before a real store is available.
    Objects are stored as-is, so fetch returns the saved instance (or
    whatever the conversion callbacks turn it into). Data is lost when the
    process ends.

    Finds scan every stored object, filtering, sorting and paginating in
    memory.

    Example:
        context = HashContext(Person)

        person = Person("George", "Smith")
        context.save(person)        # person.id is now set
        context.fetch(person.id)    # person
        context.remove(person)      # person.id is None again
    """

    def __init__(self, klass: type, **kwargs):
        super().__init__(klass, **kwargs)
        self._data_store: Dict[Any, Any] = {}

    def generate_key(self) -> str:
        """Create a new primary key."""
        return uuid.uuid4().hex

    def fetch(self, id: Any) -> Optional[Any]:
        """Fetch the object stored under id."""
        data = self._data_store.get(id)
        if data is None:
            return None
        obj = self.convert_to_object(data)
        self._callbacks.fire("after_fetch", obj)
        return obj

    def save(self, obj: Any) -> Any:
        """Store obj under its primary key, assigning one if needed."""
        self._callbacks.fire("before_save", obj)
        self._check_primary_key(obj)

        pk = self.primary_key_value(obj)
        assigned = pk is None
        if assigned:
            pk = self.generate_key()
            self._assign_primary_key(obj, pk)

        try:
            self._data_store[pk] = self.convert_to_data(obj)
        except Exception:
            if assigned:
                self.set_primary_key_value(obj, None)
            raise
        logger.debug("Saved %s %r", self._klass.__name__, pk)

        self._callbacks.fire("after_save", obj)
        return obj

    def remove(self, obj: Any) -> Any:
        """Delete obj from the dict and clear its primary key."""
        self._callbacks.fire("before_remove", obj)
        self._check_primary_key(obj, RemoveError)

        pk = self.primary_key_value(obj)
        if pk is not None:
            self._data_store.pop(pk, None)
            self.set_primary_key_value(obj, None)
            logger.debug("Removed %s %r", self._klass.__name__, pk)

        self._callbacks.fire("after_remove", obj)
        return obj

    def _find_all(self, options: FindOptions) -> List[Any]:
        # Nothing can match past the end.
        if options.limit.offset > len(self._data_store):
            return []
        records = list(self._data_store.values())
        return [
            self.convert_to_object(record)
            for record in run_query(records, options, self.null_order)
        ]
