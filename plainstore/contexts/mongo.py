"""MongoDB context."""

import logging
from typing import Any, Iterable, Iterator, List, Optional, Set

from bson import ObjectId
from bson.errors import BSONError
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from ..codec import ID_KEY, DocumentCodec
from ..exceptions import ConfigurationError, RemoveError, SaveError, SerializationError
from ..keypath import Keypath, join_keypath, split_keypath
from ..query import Direction, FindOptions
from ..serialization import fields_of
from .base import Context

logger = logging.getLogger(__name__)


class MongoContext(Context):
    """Context that stores objects as documents in a MongoDB collection.

    Objects are converted by a DocumentCodec (see plainstore.codec): nested
    plain objects are embedded, objects with their own context are saved
    through it and stored as references, and DBRefs are dereferenced through
    the context registered for their collection.

    Finds are run by MongoDB itself. Condition and order keys are keypaths,
    which map onto MongoDB's dotted field paths; a keypath starting at the
    primary key addresses "_id".

    Which fields are saved can be controlled with ``persistent_fields`` (a
    whitelist, defaulting to every instance field) and
    ``persistent_fields_blacklist``; the blacklist wins. The primary key is
    always stored as "_id".

    Example:
        db = pymongo.MongoClient()["app"]
        context = MongoContext(Person, db["people"])

        person = Person("George", "Smith")
        context.save(person)    # person.id is now an ObjectId
        context.find("all", conditions={"last_name": "Smith"})
    """

    def __init__(
        self,
        klass: type,
        collection: Any = None,
        *,
        persistent_fields: Optional[Iterable[str]] = None,
        persistent_fields_blacklist: Optional[Iterable[str]] = None,
        encode_enums: bool = False,
        attempt_id_conversion: bool = True,
        **kwargs,
    ):
        """Create a context for klass.

        Args:
            klass: The class whose instances this context persists
            collection: pymongo Collection, or None to set data_store later
            persistent_fields: Field names to save instead of all fields
            persistent_fields_blacklist: Field names never to save
            encode_enums: Store enum members as tagged names that decode back
                to the member, instead of as their plain value
            attempt_id_conversion: Convert 24-character hex strings to
                ObjectId before looking them up
            **kwargs: Passed to Context
        """
        super().__init__(klass, **kwargs)
        self.persistent_fields = persistent_fields
        self.persistent_fields_blacklist = persistent_fields_blacklist
        self.encode_enums = encode_enums
        self.attempt_id_conversion = attempt_id_conversion
        self.codec = DocumentCodec(self)
        self._saving: Set[int] = set()
        self.data_store = collection

    @property
    def data_store(self) -> Any:
        """The pymongo Collection backing this context."""
        return self._data_store

    @data_store.setter
    def data_store(self, collection: Any) -> None:
        previous = self._data_store
        self._data_store = collection
        if self._registry is not None:
            self._registry.register_collection(self, previous)

    def bind(self, registry) -> None:
        super().bind(registry)
        if self._data_store is not None:
            registry.register_collection(self)

    def _collection(self) -> Any:
        if self._data_store is None:
            raise ConfigurationError(
                f"No collection configured for {self._klass.__qualname__}"
            )
        return self._data_store

    # Configuration helpers

    def generate_key(self) -> ObjectId:
        """Create a new primary key."""
        return ObjectId()

    def clean_id(self, id: Any) -> Any:
        """Convert id to an ObjectId if it looks like one."""
        if (
            self.attempt_id_conversion
            and isinstance(id, str)
            and ObjectId.is_valid(id)
        ):
            return ObjectId(id)
        return id

    def persisted_fields(self, obj: Any) -> List[str]:
        """The names of the fields of obj that are saved."""
        if self.persistent_fields is None:
            names = list(fields_of(obj))
        else:
            names = list(self.persistent_fields)
        excluded = set(self.persistent_fields_blacklist or ())
        excluded.add(self.primary_key)
        return [name for name in names if name not in excluded]

    def shares_database(self, other: Context) -> bool:
        """Whether other is a MongoContext on the same database as this one."""
        if not isinstance(other, MongoContext):
            return False
        if self._data_store is None or other.data_store is None:
            return False
        return other.data_store.database == self._data_store.database

    # Persistence

    def fetch(self, id: Any) -> Optional[Any]:
        """Fetch the document with the given _id and convert it."""
        document = self._collection().find_one({ID_KEY: self.clean_id(id)})
        if document is None:
            return None
        obj = self.convert_to_object(document)
        self._callbacks.fire("after_fetch", obj)
        return obj

    def fetch_many(self, ids: Iterable[Any]) -> List[Optional[Any]]:
        """Fetch several objects with a single query."""
        keys = [self.clean_id(id) for id in ids]
        documents = {
            document[ID_KEY]: document
            for document in self._collection().find({ID_KEY: {"$in": keys}})
        }
        found: List[Optional[Any]] = []
        for key in keys:
            document = documents.get(key)
            if document is None:
                found.append(None)
                continue
            obj = self.convert_to_object(document)
            self._callbacks.fire("after_fetch", obj)
            found.append(obj)
        return found

    def save(self, obj: Any) -> Any:
        """Upsert the document for obj and set its primary key.

        Objects referenced from obj that have contexts of their own are
        saved first, through those contexts.
        """
        marker = id(obj)
        if marker in self._saving:
            # Reached again through a reference while already being saved.
            if self.primary_key_value(obj) is None:
                raise SerializationError(
                    f"Cannot save a cycle through an unsaved "
                    f"{type(obj).__name__}; save it on its own first"
                )
            return obj

        self._saving.add(marker)
        try:
            self._callbacks.fire("before_save", obj)
            self._check_primary_key(obj)

            document = self.convert_to_data(obj)
            try:
                self._collection().replace_one(
                    {ID_KEY: document[ID_KEY]}, document, upsert=True
                )
            except (PyMongoError, BSONError) as e:
                raise SaveError(obj, str(e)) from e
            self._assign_primary_key(obj, document[ID_KEY])
            logger.debug("Saved %s %r", self._klass.__name__, document[ID_KEY])
        finally:
            self._saving.discard(marker)

        self._callbacks.fire("after_save", obj)
        return obj

    def remove(self, obj: Any) -> Any:
        """Delete the document for obj and clear its primary key."""
        self._callbacks.fire("before_remove", obj)
        self._check_primary_key(obj, RemoveError)

        pk = self.primary_key_value(obj)
        if pk is not None:
            try:
                self._collection().delete_one({ID_KEY: pk})
            except PyMongoError as e:
                raise RemoveError(obj, str(e)) from e
            self.set_primary_key_value(obj, None)
            logger.debug("Removed %s %r", self._klass.__name__, pk)

        self._callbacks.fire("after_remove", obj)
        return obj

    # Conversion

    def _encode(self, obj: Any, embedded: bool) -> Any:
        return self.codec.encode(obj, embedded)

    def _decode(self, data: Any, embedded: bool) -> Any:
        return self.codec.decode(data, embedded)

    # Finding

    def data_store_cursor(self, opts: Any = None, **options: Any) -> Any:
        """Run find options on MongoDB and return the raw pymongo Cursor.

        The documents are not converted; use iter_find() for objects, or
        convert_to_object() on each document.
        """
        options = FindOptions.normalize(opts, **options)
        conditions = {}
        for keypath, value in options.conditions.items():
            path = self._field_path(keypath)
            if path == ID_KEY:
                value = self.clean_id(value)
            conditions[path] = value

        find_opts = {}
        if options.order:
            find_opts["sort"] = [
                (self._field_path(keypath), DESCENDING if direction is Direction.DESC else ASCENDING)
                for keypath, direction in options.order
            ]
        if options.limit.offset:
            find_opts["skip"] = options.limit.offset
        if options.limit.limit is not None:
            find_opts["limit"] = options.limit.limit

        return self._collection().find(conditions, **find_opts)

    def _field_path(self, keypath: Keypath) -> str:
        """The dotted document path for a keypath, with the primary key as _id."""
        segments = split_keypath(keypath)
        if segments and segments[0] == self.primary_key:
            segments[0] = ID_KEY
        return join_keypath(segments)

    def iter_find(self, opts: Any = None, **options: Any) -> Iterator[Any]:
        """Yield converted objects for find options, one document at a time."""
        options = FindOptions.normalize(opts, **options)
        # MongoDB treats a limit of 0 as no limit.
        if options.limit.limit == 0:
            return
        for document in self.data_store_cursor(options):
            yield self.convert_to_object(document)

    def _find_all(self, options: FindOptions) -> List[Any]:
        return list(self.iter_find(options))
