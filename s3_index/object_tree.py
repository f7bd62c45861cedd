"""Hierarchical view of a flat bucket listing."""

import logging
import posixpath
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from s3_index.exclusions import Exclusions, PathFilter
from s3_index.models import S3Object
from s3_index.object_source import ObjectSource

logger = logging.getLogger(__name__)

ROOT_PATH = "/"

# Segments that would not name a directory of their own once rendered.
INVALID_DIR_NAMES = frozenset({"", ".", ".."})


@dataclass
class ObjectTreeConfig:
    """Settings shared by every node of a tree.

    Attributes:
        prefix_to_strip: Leading key segment(s) that should not appear as a
            directory level, typically the listing prefix
        exclusions: Filter applied to directory names and object keys
    """

    prefix_to_strip: str = ""
    exclusions: PathFilter = field(default_factory=Exclusions)

    def __post_init__(self) -> None:
        self.prefix_to_strip = self.prefix_to_strip.strip("/")


def _dir_name(full_path: str) -> str:
    return posixpath.basename(full_path.rstrip("/")) or ROOT_PATH


class ObjectTree:
    """A directory node holding direct objects and named child nodes."""

    def __init__(self, config: ObjectTreeConfig, full_path: str = ROOT_PATH) -> None:
        self.config = config
        self.full_path = full_path
        self.dir_name = _dir_name(full_path)
        self.objects: list[S3Object] = []
        self.children: dict[str, ObjectTree] = {}

    def __repr__(self) -> str:
        return (
            f"ObjectTree({self.full_path!r}, objects={len(self.objects)}, "
            f"children={sorted(self.children)})"
        )

    @property
    def parent_full_path(self) -> str:
        return posixpath.normpath(posixpath.join(self.full_path, ".."))

    @property
    def parent_name(self) -> str:
        return _dir_name(self.parent_full_path)

    def add_child(self, name: str) -> "ObjectTree | None":
        """Return the child called ``name``, creating it if needed.

        Returns None if ``name`` is excluded or is not a usable directory name
        ("", "." or "..").
        """
        if name in INVALID_DIR_NAMES or not self.config.exclusions.include(name):
            return None

        if name not in self.children:
            self.children[name] = ObjectTree(
                self.config, posixpath.join(self.full_path, name)
            )

        return self.children[name]

    def add_object(self, obj: S3Object) -> None:
        """Insert ``obj`` at the node its key points to.

        Intermediate directories are created as needed. Objects whose key, or
        any directory on the way, is excluded are dropped.
        """
        parts = obj.key.split("/")
        if len(parts) > 1:
            parts = self._strip_prefix(parts)
        self._add_path(parts, obj)

    def add_objects(self, objects: Iterable[S3Object | None]) -> None:
        for obj in objects:
            if obj is not None:
                self.add_object(obj)

    def add_objects_from_lister(
        self, lister: ObjectSource, cancel_event: threading.Event | None = None
    ) -> None:
        """List everything under the tree's prefix and insert it."""
        self.add_objects(lister.list_objects(self.config.prefix_to_strip, cancel_event))

    def add_objects_with_prefix_from_lister(
        self,
        lister: ObjectSource,
        prefix: str,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """List only ``prefix`` below the tree's prefix and insert it."""
        listing_prefix = posixpath.join(self.config.prefix_to_strip, prefix)
        self.add_objects(lister.list_objects(listing_prefix, cancel_event))

    def walk(
        self,
        fn: Callable[["ObjectTree"], None],
        recursive: bool = True,
        depth_first: bool = False,
    ) -> None:
        """Call ``fn`` on this node and, if recursive, every descendant.

        With ``depth_first`` a node is visited after its children.
        """
        if not depth_first:
            fn(self)

        if recursive:
            for child in self.children.values():
                child.walk(fn, recursive, depth_first)

        if depth_first:
            fn(self)

    def walk_objects(
        self,
        fn: Callable[[S3Object], None],
        recursive: bool = True,
        depth_first: bool = False,
    ) -> None:
        """Call ``fn`` on every object held by the visited nodes."""

        def visit(tree: ObjectTree) -> None:
            for obj in tree.objects:
                fn(obj)

        self.walk(visit, recursive, depth_first)

    def count_objects(self) -> int:
        count = 0

        def increment(_: S3Object) -> None:
            nonlocal count
            count += 1

        self.walk_objects(increment)
        return count

    def _strip_prefix(self, parts: list[str]) -> list[str]:
        if not self.config.prefix_to_strip:
            return parts

        prefix_parts = self.config.prefix_to_strip.split("/")
        if parts[: len(prefix_parts)] == prefix_parts and len(parts) > len(prefix_parts):
            return parts[len(prefix_parts):]
        return parts

    def _add_path(self, parts: list[str], obj: S3Object) -> None:
        node = self
        for name in parts[:-1]:
            node = node.add_child(name)
            if node is None:
                logger.debug(f"Dropping {obj.key}: directory '{name}' is excluded or invalid")
                return

        if not self.config.exclusions.include(obj.key):
            logger.debug(f"Dropping {obj.key}: key is excluded")
            return

        node.objects.append(obj)


def new_root_object_tree(config: ObjectTreeConfig) -> ObjectTree:
    return ObjectTree(config, ROOT_PATH)


def new_object_tree_with_objects(
    config: ObjectTreeConfig, objects: Iterable[S3Object | None]
) -> ObjectTree:
    tree = new_root_object_tree(config)
    tree.add_objects(objects)
    return tree


def new_object_tree_from_lister(
    config: ObjectTreeConfig,
    lister: ObjectSource,
    cancel_event: threading.Event | None = None,
) -> ObjectTree:
    """Build a tree from everything ``lister`` returns for the configured prefix.

    Raises:
        ObjectListingError: If the listing fails
    """
    tree = new_root_object_tree(config)
    tree.add_objects_from_lister(lister, cancel_event)
    logger.info(f"Built object tree with {tree.count_objects()} objects")
    return tree
