"""Type registry and field reflection for plainstore.

Documents carry the qualified name of the class they were encoded from. The
TypeRegistry turns those names back into classes, and the field helpers here
read and restore an object's instance fields without going through its
constructor.
"""

import importlib
from typing import Any, Dict, Optional, Type

from .exceptions import UnresolvableClassError


def class_tag(cls: type) -> str:
    """Return the qualified name used to tag documents encoded from cls.

    Example:
        class_tag(Person)  # "myapp.models.Person"
    """
    return f"{cls.__module__}.{cls.__qualname__}"


class TypeRegistry:
    """Maps class names to classes.

    Classes are found by explicit registration first, then by importing the
    module part of a qualified name and walking the rest as attributes.
    Classes defined inside functions can only be found once registered.

    Example:
        registry = TypeRegistry()
        registry.register(Person)
        registry.register(Person, "Person")  # an extra alias

        cls = registry.resolve("Person")  # Person
    """

    def __init__(self):
        self._types: Dict[str, type] = {}

    def register(self, cls: type, name: Optional[str] = None) -> None:
        """Register a class under its qualified name, or the given alias.

        Args:
            cls: The class to register
            name: Alias to register instead of the qualified name
        """
        self._types[name or class_tag(cls)] = cls

    def get_type(self, name: str) -> Optional[type]:
        """Get a registered class by name, or None."""
        return self._types.get(name)

    def resolve(self, name: Any) -> type:
        """Resolve a class name to a class.

        Args:
            name: A qualified class name, a registered alias, or a class

        Returns:
            The class

        Raises:
            UnresolvableClassError: If no class can be found for the name
        """
        if isinstance(name, type):
            return name

        name = str(name)
        if not name:
            raise UnresolvableClassError(name)

        registered = self._types.get(name)
        if registered is not None:
            return registered

        # Try the longest importable module prefix first.
        parts = name.split(".")
        for split in range(len(parts) - 1, 0, -1):
            module_name = ".".join(parts[:split])
            try:
                found: Any = importlib.import_module(module_name)
            except ImportError:
                continue
            try:
                for attr in parts[split:]:
                    found = getattr(found, attr)
            except AttributeError:
                continue
            if isinstance(found, type):
                return found
        raise UnresolvableClassError(name)

    def clear(self) -> None:
        """Remove all registered classes."""
        self._types.clear()


def _slot_names(cls: type):
    for klass in cls.__mro__:
        slots = klass.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if name not in ("__dict__", "__weakref__"):
                yield name


def fields_of(obj: Any) -> Dict[str, Any]:
    """Return the instance fields of an object, in declaration order.

    Reads both ``__dict__`` entries and populated ``__slots__``. Class
    attributes and properties are not fields.
    """
    fields: Dict[str, Any] = {}
    for name in _slot_names(type(obj)):
        try:
            fields[name] = object.__getattribute__(obj, name)
        except AttributeError:
            # Unset slot
            continue
    try:
        fields.update(vars(obj))
    except TypeError:
        pass
    return fields


def has_field(obj: Any, name: str) -> bool:
    """Whether the object declares the named instance field."""
    try:
        if name in vars(obj):
            return True
    except TypeError:
        pass
    if name in set(_slot_names(type(obj))):
        try:
            object.__getattribute__(obj, name)
            return True
        except AttributeError:
            return False
    return False


def allocate(cls: Type) -> Any:
    """Create an instance of cls without calling its __init__.

    Decoded objects are restored field by field, so constructors that take
    arguments unrelated to persisted state never run.
    """
    return cls.__new__(cls)


def inject(obj: Any, name: str, value: Any) -> None:
    """Set an instance field by name, bypassing __setattr__ overrides.

    Works for frozen dataclasses and slotted classes.
    """
    object.__setattr__(obj, name, value)


def has_fields(obj: Any) -> bool:
    """Whether objects of this type can hold instance fields at all."""
    return hasattr(obj, "__dict__") or any(True for _ in _slot_names(type(obj)))
