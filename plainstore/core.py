"""Connecting a context registry to a store by URL."""

from typing import Any
from urllib.parse import urlparse

from .exceptions import ConfigurationError
from .factories import HashFactory, MongoFactory
from .registry import ContextRegistry


def connect(url: str, **context_options: Any) -> ContextRegistry:
    """Create a context factory for the store at a URL.

    Supported URL schemes:
        - memory://                       In-memory HashContexts (testing)
        - mongodb://host[:port]/dbname    MongoContexts on one database
        - mongodb+srv://host/dbname       Same, with DNS seed list lookup

    Args:
        url: Connection URL
        **context_options: Keyword arguments for every context built

    Returns:
        A ContextRegistry that builds contexts on demand

    Raises:
        ConfigurationError: If the scheme is unknown or a MongoDB URL names
            no database

    Example:
        registry = connect("memory://")
        registry = connect("mongodb://localhost:27017/app", encode_enums=True)
        people = registry.fetch(Person)
    """
    parsed = urlparse(url)
    scheme = parsed.scheme

    if scheme == "memory":
        return HashFactory(**context_options)

    elif scheme in ("mongodb", "mongodb+srv"):
        import pymongo

        name = parsed.path.lstrip("/")
        if not name:
            raise ConfigurationError(f"No database name in MongoDB URL: {url}")

        client = pymongo.MongoClient(url)
        return MongoFactory(client[name], **context_options)

    else:
        raise ConfigurationError(f"Unknown storage scheme: {scheme}")
