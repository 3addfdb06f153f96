"""Recursive object <-> document conversion for document stores.

Every value met while encoding is first classified into one ValueKind by
classify(), then encoded according to its kind:

    SELF       the root object of the owning context: its persisted fields,
               a class tag and an "_id"
    MAPPING    a dict, encoded value by value
    SEQUENCE   a list, tuple or set, encoded item by item into a list
    TYPE_REF   a class, stored by name
    ENUM       an enum member, stored as its value or, if the context asks
               for it, as a tagged member name
    MANAGED    an object with a context of its own: saved through that
               context and stored as a reference (a DBRef when both contexts
               share a database)
    PRIMITIVE  anything the store holds natively, stored unchanged
    PLAIN      any other object: its instance fields and a class tag

Decoding mirrors this using the "_class_name" tag. Objects are rebuilt by
allocating an instance without calling __init__ and setting fields by name.

Object graphs must be trees. A cycle can only be stored by putting a managed
object on it, so that it is saved as a reference; otherwise encoding raises
SerializationError. When such a cycle is loaded, the reference that closes
it stays a DBRef.
"""

import logging
import warnings
from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Set, Tuple

from bson import DBRef, ObjectId

from .exceptions import SerializationError, UnresolvableClassError
from .serialization import allocate, class_tag, fields_of, has_fields, inject

logger = logging.getLogger(__name__)

CLASS_KEY = "_class_name"
ID_KEY = "_id"
TYPE_TAG = "builtins.type"
ENUM_TAG = "enum.Enum"

PRIMITIVES = (type(None), bool, int, float, str, bytes, datetime, ObjectId, DBRef)


class ValueKind(Enum):
    """How a value is encoded."""

    SELF = "self"
    MAPPING = "mapping"
    SEQUENCE = "sequence"
    TYPE_REF = "type_ref"
    ENUM = "enum"
    MANAGED = "managed"
    PRIMITIVE = "primitive"
    PLAIN = "plain"


def classify(
    value: Any,
    owner: type,
    embedded: bool = False,
    registry: Optional[Any] = None,
) -> ValueKind:
    """Decide how a value is encoded.

    Args:
        value: The value to classify
        owner: The class of the context doing the encoding
        embedded: Whether the value is nested inside another document
        registry: ContextRegistry that knows which classes are managed

    Returns:
        The ValueKind for the value
    """
    if isinstance(value, owner) and not embedded:
        return ValueKind.SELF
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    if isinstance(value, (list, tuple, set, frozenset)):
        return ValueKind.SEQUENCE
    if isinstance(value, type):
        return ValueKind.TYPE_REF
    if isinstance(value, Enum):
        return ValueKind.ENUM
    if registry is not None and registry.is_managed(type(value)):
        return ValueKind.MANAGED
    if isinstance(value, PRIMITIVES):
        return ValueKind.PRIMITIVE
    return ValueKind.PLAIN


class DocumentCodec:
    """Encodes objects into documents and decodes them back for one context.

    The codec reads its configuration from the owning context: the class,
    primary key, persisted fields, key generator, enum handling, type
    registry and context registry. Its only state is the set of references
    it is dereferencing, so that a reference met again inside its own target
    is left as a DBRef.

    Example:
        codec = DocumentCodec(context)
        document = codec.encode(person)
        # {"_class_name": "app.Person", "first_name": "George", "_id": ...}
        restored = codec.decode(document)
    """

    def __init__(self, context):
        self.context = context
        self._resolving: Set[Tuple[str, Any]] = set()

    # Encoding

    def encode(self, value: Any, embedded: bool = False) -> Any:
        """Encode a value into its stored form.

        Args:
            value: The value to encode
            embedded: False for a root document of the owning context

        Raises:
            SerializationError: If the value contains a cycle or an object
                that has no storable form
        """
        return self._encode(value, embedded, set())

    def _encode(self, value: Any, embedded: bool, active: Set[int]) -> Any:
        kind = classify(
            value, self.context.klass, embedded=embedded, registry=self.context.registry
        )

        if kind is ValueKind.PRIMITIVE:
            return value
        if kind is ValueKind.TYPE_REF:
            return {CLASS_KEY: TYPE_TAG, "name": class_tag(value)}
        if kind is ValueKind.ENUM:
            return self._encode_enum(value, active)
        if kind is ValueKind.MANAGED:
            return self._encode_managed(value)

        marker = id(value)
        if marker in active:
            raise SerializationError(
                f"Cannot encode a cycle through {type(value).__name__}; "
                f"store it as a managed object instead"
            )
        active.add(marker)
        try:
            if kind is ValueKind.SELF:
                return self._encode_self(value, active)
            if kind is ValueKind.MAPPING:
                return {
                    key: self._encode(item, True, active)
                    for key, item in value.items()
                }
            if kind is ValueKind.SEQUENCE:
                return [self._encode(item, True, active) for item in value]
            return self._encode_plain(value, active)
        finally:
            active.discard(marker)

    def _hashify(self, obj: Any, names: Iterable[str], active: Set[int]) -> Dict[str, Any]:
        fields = fields_of(obj)
        data: Dict[str, Any] = {CLASS_KEY: class_tag(type(obj))}
        for name in names:
            if name in fields:
                data[name] = self._encode(fields[name], True, active)
        return data

    def _encode_self(self, obj: Any, active: Set[int]) -> Dict[str, Any]:
        context = self.context
        data = self._hashify(obj, context.persisted_fields(obj), active)
        pk = context.primary_key_value(obj)
        data[ID_KEY] = pk if pk is not None else context.generate_key()
        return data

    def _encode_plain(self, obj: Any, active: Set[int]) -> Dict[str, Any]:
        if not has_fields(obj):
            raise SerializationError(f"Cannot encode type: {type(obj)}")
        return self._hashify(obj, list(fields_of(obj)), active)

    def _encode_enum(self, member: Enum, active: Set[int]) -> Any:
        if self.context.encode_enums:
            return {CLASS_KEY: ENUM_TAG, "type": class_tag(type(member)), "name": member.name}
        return self._encode(member.value, True, active)

    def _encode_managed(self, obj: Any) -> Any:
        other = self.context.registry.fetch(type(obj))
        other.save(obj)
        pk = other.primary_key_value(obj)
        if self.context.shares_database(other):
            return DBRef(other.data_store.name, pk)
        return {"id": pk, CLASS_KEY: class_tag(type(obj)), "managed": True}

    # Decoding

    def decode(self, data: Any, embedded: bool = False) -> Any:
        """Decode a stored value.

        Root documents without a class tag are taken to be instances of the
        owning context's class.

        Raises:
            UnresolvableClassError: If a root or managed document names a
                class that cannot be found
        """
        if isinstance(data, Mapping):
            if not embedded and CLASS_KEY not in data:
                data = dict(data)
                data[CLASS_KEY] = class_tag(self.context.klass)
            if data.get(CLASS_KEY):
                return self._decode_tagged(data, embedded)
            return {key: self.decode(item, True) for key, item in data.items()}
        if isinstance(data, list):
            return [self.decode(item, True) for item in data]
        if isinstance(data, DBRef):
            return self._decode_reference(data)
        return data

    def _decode_tagged(self, data: Mapping, embedded: bool) -> Any:
        name = str(data[CLASS_KEY])
        if name == TYPE_TAG:
            return self.context.types.resolve(data["name"])
        if name == ENUM_TAG:
            enum_cls = self.context.types.resolve(data["type"])
            return enum_cls[data["name"]]
        if self._is_own_class(name, embedded):
            return self._decode_self(data)
        if data.get("managed"):
            return self._decode_managed(data)
        return self._decode_plain(data)

    def _is_own_class(self, name: str, embedded: bool) -> bool:
        klass = self.context.klass
        if name == class_tag(klass):
            return True
        if embedded:
            return False
        return issubclass(self.context.types.resolve(name), klass)

    def _instantiate(self, cls: type, data: Mapping) -> Any:
        obj = allocate(cls)
        for name, value in data.items():
            if name in (CLASS_KEY, ID_KEY):
                continue
            value = self.decode(value, True)
            try:
                inject(obj, str(name), value)
            except AttributeError:
                warnings.warn(
                    f"Ignoring unknown field '{name}' when loading {cls.__name__}.",
                    UserWarning,
                )
        return obj

    def _decode_self(self, data: Mapping) -> Any:
        cls = self.context.types.resolve(data[CLASS_KEY])
        obj = self._instantiate(cls, data)
        # Embedded copies carry their key as an ordinary field.
        if ID_KEY in data:
            inject(obj, self.context.primary_key, data[ID_KEY])
        return obj

    def _decode_managed(self, data: Mapping) -> Any:
        cls = self.context.types.resolve(data[CLASS_KEY])
        registry = self.context.registry
        if registry is None or not registry.is_managed(cls):
            return dict(data)
        return registry.fetch(cls).fetch(data.get("id"))

    def _decode_plain(self, data: Mapping) -> Any:
        try:
            cls = self.context.types.resolve(data[CLASS_KEY])
        except UnresolvableClassError as e:
            warnings.warn(f"{e}; keeping the stored document.", UserWarning)
            return dict(data)
        return self._instantiate(cls, data)

    def _decode_reference(self, ref: DBRef) -> Any:
        registry = self.context.registry
        other = registry.context_for_collection(ref.collection) if registry else None
        marker = (ref.collection, ref.id)
        if other is None or marker in self._resolving:
            # Left as a DBRef so it saves back as one.
            return ref
        logger.debug("Dereferencing %s %r", ref.collection, ref.id)
        document = other.data_store.find_one({ID_KEY: ref.id})
        if document is None:
            return None
        self._resolving.add(marker)
        try:
            return other.convert_to_object(document)
        finally:
            self._resolving.discard(marker)
