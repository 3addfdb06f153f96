"""Exceptions for the plainstore package."""


class StoreError(Exception):
    """Base exception for all store errors."""

    pass


class SaveError(StoreError):
    """Object could not be saved.

    Raised when the object cannot be given a primary key, or when the
    underlying store rejects the write.
    """

    def __init__(self, obj, reason: str):
        self.obj = obj
        self.reason = reason
        super().__init__(f"Cannot save {type(obj).__name__}: {reason}")


class RemoveError(StoreError):
    """Object could not be removed."""

    def __init__(self, obj, reason: str):
        self.obj = obj
        self.reason = reason
        super().__init__(f"Cannot remove {type(obj).__name__}: {reason}")


class UnresolvableClassError(StoreError, LookupError):
    """A stored class name does not resolve to a live class."""

    def __init__(self, class_name: str):
        self.class_name = class_name
        super().__init__(f"Could not find a class named {class_name!r}")


class ConfigurationError(StoreError, ValueError):
    """A factory or context is missing required setup."""

    pass


class FactoryError(StoreError):
    """A context could not be built for a class."""

    pass


class SerializationError(StoreError):
    """Failed to encode a value into a storable document."""

    pass
