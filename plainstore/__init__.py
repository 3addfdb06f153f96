"""Persistence for plain Python objects.

Objects are saved to and loaded from a backing store through a context, one
per class, without inheriting from any base class.

Quick Start:
    from plainstore import connect, persistent

    @persistent
    class Person:
        def __init__(self, first_name, last_name):
            self.id = None
            self.first_name = first_name
            self.last_name = last_name

    # Connect to storage
    registry = connect("memory://")
    people = registry.fetch(Person)

    # Store objects
    george = people.save(Person("George", "Smith"))

    # Retrieve objects
    people.fetch(george.id)

    # Query
    people.find("all", conditions={"last_name": "Smith"}, order="first_name")

Supported stores:
    - memory://               In-memory dict (testing)
    - mongodb://host/dbname   MongoDB, through pymongo

Key Classes:
    - ContextRegistry: Builds and caches one context per class
    - HashContext: In-memory context
    - MongoContext: MongoDB context
    - connect(): Create a registry from a URL

Factories:
    - HashFactory, MongoFactory: One store for every class
    - NamespaceFactory: A store per module namespace
"""

from .codec import DocumentCodec, ValueKind, classify
from .contexts import Context, HashContext, MongoContext
from .core import connect
from .exceptions import (
    ConfigurationError,
    FactoryError,
    RemoveError,
    SaveError,
    SerializationError,
    StoreError,
    UnresolvableClassError,
)
from .factories import HashFactory, MongoFactory, NamespaceFactory, instantiate
from .keypath import Lookup, resolve
from .query import Direction, FindOptions, Limit, NullOrder, run_query
from .registry import ContextRegistry, is_persistent, persistent
from .serialization import TypeRegistry

__all__ = [
    # Main API
    "connect",
    "persistent",
    "is_persistent",
    "ContextRegistry",
    # Contexts
    "Context",
    "HashContext",
    "MongoContext",
    # Factories
    "HashFactory",
    "MongoFactory",
    "NamespaceFactory",
    "instantiate",
    # Finding
    "FindOptions",
    "Limit",
    "Direction",
    "NullOrder",
    "run_query",
    "resolve",
    "Lookup",
    # Serialization
    "DocumentCodec",
    "ValueKind",
    "classify",
    "TypeRegistry",
    # Exceptions
    "StoreError",
    "SaveError",
    "RemoveError",
    "UnresolvableClassError",
    "ConfigurationError",
    "FactoryError",
    "SerializationError",
]

__version__ = "0.1.0"
