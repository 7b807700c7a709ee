"""Generic record predicates usable as search post-filters.

Predicates read record attributes by name, so they work for any record type.
Domain-specific shortcuts live next to their codec (see
``kbsearch.codecs.capability.capability_filters``).
"""

from typing import Any, Callable, Iterable


def field_equals(attribute: str, value: Any) -> Callable[[Any], bool]:
    """Keep records whose ``attribute`` equals ``value``."""
    def predicate(record: Any) -> bool:
        return getattr(record, attribute, None) == value
    return predicate


def field_contains_any(attribute: str, values: Iterable[Any]) -> Callable[[Any], bool]:
    """Keep records whose list ``attribute`` shares an element with ``values``."""
    wanted = set(values)

    def predicate(record: Any) -> bool:
        items = getattr(record, attribute, None) or []
        return any(item in wanted for item in items)
    return predicate
