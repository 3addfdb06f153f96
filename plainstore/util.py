"""String inflection helpers used to name collections and factories."""

import re

_IRREGULAR = {
    "person": "people",
    "man": "men",
    "woman": "women",
    "child": "children",
    "mouse": "mice",
}

_UNCOUNTABLE = frozenset({"data", "equipment", "information", "news", "series", "species"})


def underscore(name: str) -> str:
    """Convert a CamelCase name to snake_case.

    Example:
        underscore("HashContext")    # "hash_context"
        underscore("HTTPRequest")    # "http_request"
    """
    name = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    name = re.sub(r"([a-z\d])([A-Z])", r"\1_\2", name)
    return name.replace("-", "_").lower()


def camelize(name: str) -> str:
    """Convert a snake_case name to CamelCase.

    Example:
        camelize("hash_context")  # "HashContext"
    """
    return "".join(part[:1].upper() + part[1:] for part in name.split("_") if part)


def pluralize(word: str) -> str:
    """Return the English plural of a lowercase word.

    Example:
        pluralize("person")   # "people"
        pluralize("address")  # "addresses"
        pluralize("company")  # "companies"
    """
    if not word or word in _UNCOUNTABLE:
        return word
    if word in _IRREGULAR:
        return _IRREGULAR[word]
    if re.search(r"(s|x|z|ch|sh)$", word):
        return word + "es"
    if re.search(r"[^aeiou]y$", word):
        return word[:-1] + "ies"
    return word + "s"


def collection_name(cls: type) -> str:
    """Name of the document collection holding instances of cls.

    The class name is underscored and its last word pluralized. Nested
    classes join their enclosing names with underscores.

    Example:
        collection_name(Person)         # "people"
        collection_name(ShippingLabel)  # "shipping_labels"
    """
    name = underscore(cls.__qualname__.replace(".", "_"))
    head, sep, last = name.rpartition("_")
    return head + sep + pluralize(last)
