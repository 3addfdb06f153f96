"""Contexts: the persistence delegates for each class."""

from .base import Context
from .memory import HashContext
from .mongo import MongoContext

__all__ = [
    "Context",
    "HashContext",
    "MongoContext",
]
