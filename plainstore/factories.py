"""Context factories: registries that know how to build contexts.

Each factory is a ContextRegistry whose build() creates and configures the
context for a class the first time it is fetched.

Example:
    factory = MongoFactory(pymongo.MongoClient()["app"])
    people = factory.fetch(Person)      # MongoContext on db["people"]

    factory = NamespaceFactory(HashFactory())
    factory.register_factory(MongoFactory(db), "app.billing")
    factory.fetch(Invoice)              # app.billing.Invoice => MongoContext
"""

import logging
from typing import Any, Callable, Dict, Optional

from .contexts.memory import HashContext
from .contexts.mongo import MongoContext
from .exceptions import ConfigurationError
from .registry import ContextRegistry
from .serialization import class_tag
from .util import camelize, collection_name, underscore

logger = logging.getLogger(__name__)

Configure = Callable[[type, Any], None]


class HashFactory(ContextRegistry):
    """Builds a HashContext for each class.

    Args:
        configure: Called with (klass, context) after each context is built
        **context_options: Keyword arguments for every HashContext
    """

    def __init__(self, configure: Optional[Configure] = None, **context_options):
        super().__init__()
        self.configure = configure
        self.context_options = context_options

    def build(self, klass: type) -> HashContext:
        context = HashContext(klass, **self.context_options)
        if self.configure is not None:
            self.configure(klass, context)
        return context


class MongoFactory(ContextRegistry):
    """Builds a MongoContext for each class, all on one database.

    Each class is stored in the collection named by its underscored,
    pluralized class name (Person => "people").

    Args:
        database: pymongo Database
        configure: Called with (klass, context) after each context is built
        **context_options: Keyword arguments for every MongoContext

    Raises:
        ConfigurationError: If no database is given
    """

    def __init__(
        self,
        database: Any = None,
        configure: Optional[Configure] = None,
        **context_options,
    ):
        if database is None:
            raise ConfigurationError(f"No MongoDB database was given to {type(self).__name__}")
        super().__init__()
        self.database = database
        self.configure = configure
        self.context_options = context_options

    def build(self, klass: type) -> MongoContext:
        name = collection_name(klass)
        context = MongoContext(klass, self.database[name], **self.context_options)
        if self.configure is not None:
            self.configure(klass, context)
        logger.debug("Mapped %s to collection %s", klass.__qualname__, name)
        return context


class _Node:
    """One level of the namespace tree."""

    def __init__(self):
        self.children: Dict[str, "_Node"] = {}
        self.factory: Optional[ContextRegistry] = None


class NamespaceFactory(ContextRegistry):
    """Delegates to other factories by the namespace of each class.

    A class's namespace is its module path followed by its qualified name,
    e.g. "app.billing.Invoice". A factory registered for a namespace serves
    every class inside it that has no more specific registration. Classes
    outside every registered namespace use the default factory.

    Args:
        default_factory: Factory used when no namespace matches
        configure: Called with this factory once, to register sub-factories

    Example:
        factory = NamespaceFactory(HashFactory())
        factory.register_factory(MongoFactory(db), "app")
        factory.register_factory(HashFactory(), "app.cache")

        factory.fetch_factory("app.models.Person")    # the MongoFactory
        factory.fetch_factory("app.cache.Entry")      # the second HashFactory
        factory.fetch_factory("tools.Job")            # the default
    """

    def __init__(
        self,
        default_factory: Optional[ContextRegistry],
        configure: Optional[Callable[["NamespaceFactory"], None]] = None,
    ):
        super().__init__()
        self._root = _Node()
        self._root.factory = default_factory
        if configure is not None:
            configure(self)

    @staticmethod
    def _split(namespace: str):
        return [part for part in str(namespace).split(".") if part]

    def register_factory(self, factory: ContextRegistry, namespace: str = "") -> ContextRegistry:
        """Register a factory for a namespace and everything below it.

        Replaces any factory already registered for exactly that namespace.
        """
        node = self._root
        for part in self._split(namespace):
            node = node.children.setdefault(part, _Node())
        node.factory = factory
        return factory

    def fetch_factory(self, namespace: Any = "") -> Optional[ContextRegistry]:
        """The factory registered for the most specific matching namespace.

        Args:
            namespace: Dotted namespace string, or a class
        """
        if isinstance(namespace, type):
            namespace = class_tag(namespace)

        node = self._root
        found = node.factory
        for part in self._split(namespace):
            node = node.children.get(part)
            if node is None:
                break
            if node.factory is not None:
                found = node.factory
        return found

    def build(self, klass: type):
        factory = self.fetch_factory(klass)
        if factory is None:
            return None
        return factory.fetch(klass)


_FACTORIES = {
    "HashFactory": HashFactory,
    "MongoFactory": MongoFactory,
}


def instantiate(name: str, *args, **options) -> ContextRegistry:
    """Create a single-store factory from a short name.

    Args:
        name: "hash", "mongo", "HashFactory", "mongo_context" and the like
        *args: Positional arguments for the factory
        **options: Keyword arguments for the factory

    Raises:
        ConfigurationError: If no factory matches the name

    Example:
        factory = instantiate("mongo", db, encode_enums=True)
    """
    base = underscore(str(name))
    for suffix in ("_context", "_factory"):
        if base.endswith(suffix):
            base = base[: -len(suffix)]
    factory_cls = _FACTORIES.get(camelize(base + "_factory"))
    if factory_cls is None:
        raise ConfigurationError(f"Unknown context factory: {name!r}")
    return factory_cls(*args, **options)
