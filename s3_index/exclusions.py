"""Path predicates used to filter which keys and directories enter the object tree."""

from collections.abc import Callable
from typing import Protocol

PredicateFunc = Callable[[str], bool]


class PathFilter(Protocol):
    """Anything that can decide whether a path is included."""

    def include(self, path: str) -> bool: ...


class Exclusions(list[PredicateFunc]):
    """A path is included only if none of the predicates match it."""

    def include(self, path: str) -> bool:
        return not any(predicate(path) for predicate in self)


class Inclusions(list[PredicateFunc]):
    """A path is included if any of the predicates match it."""

    def include(self, path: str) -> bool:
        return any(predicate(path) for predicate in self)


def has_key(key: str) -> PredicateFunc:
    """Match a path that is exactly ``key``."""

    def predicate(path: str) -> bool:
        return path == key

    return predicate


def has_prefix(prefix: str) -> PredicateFunc:
    """Match paths starting with ``prefix``."""

    def predicate(path: str) -> bool:
        return path.startswith(prefix)

    return predicate


def has_suffix(suffix: str) -> PredicateFunc:
    """Match paths ending with ``suffix``."""

    def predicate(path: str) -> bool:
        return path.endswith(suffix)

    return predicate


def default_exclusions() -> Exclusions:
    """Exclusions applied to bucket listings when none are configured.

    Keeps previously generated index pages and hidden files out of the tree.
    """
    return Exclusions(
        [
            has_key("favicon.ico"),
            has_key("index.html"),
            has_prefix("."),
            has_suffix("/"),
            has_suffix("/index.html"),
        ]
    )
