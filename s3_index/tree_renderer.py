"""Recursive rendering of index files for every node of an object tree."""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING

from s3_index.output_fs import OutputFS
from s3_index.renderers import IndexRenderer

if TYPE_CHECKING:
    from s3_index.object_tree import ObjectTree

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT_RENDERS = 10


class RenderError(Exception):
    """Raised when one or more index files could not be written.

    Attributes:
        errors: Every underlying failure, across all subtrees
    """

    def __init__(self, errors: list[Exception]):
        self.errors = errors
        super().__init__(
            f"failed to render {len(errors)} index file(s): "
            + "; ".join(str(e) for e in errors[:5])
        )


def _collect(futures: list[Future]) -> list[Exception]:
    errors: list[Exception] = []
    for future in futures:
        error = future.exception()
        if isinstance(error, RenderError):
            errors.extend(error.errors)
        elif error is not None:
            errors.append(error)
    return errors


def render_object_tree_to_file(
    tree: "ObjectTree", renderer: IndexRenderer, dest_fs: OutputFS
) -> None:
    """Write one renderer's index file into ``dest_fs``."""
    logger.debug(f"Rendering {renderer.index_file} for {tree.full_path}")
    with dest_fs.open_file(renderer.index_file) as stream:
        renderer.render(stream, tree)


class IndexRenderers(list[IndexRenderer]):
    """The set of renderers applied to every node."""

    def render(self, dest_fs: OutputFS, tree: "ObjectTree") -> None:
        """Run every applicable renderer for ``tree`` concurrently.

        A failing renderer does not stop the others.

        Raises:
            RenderError: If any renderer failed
        """
        renderers = [r for r in self if r.applies_to(tree)]
        if not renderers:
            return

        with ThreadPoolExecutor(
            max_workers=len(renderers), thread_name_prefix="IndexRenderer"
        ) as executor:
            futures = [
                executor.submit(render_object_tree_to_file, tree, renderer, dest_fs)
                for renderer in renderers
            ]

        errors = _collect(futures)
        if errors:
            raise RenderError(errors)


def render_object_tree(
    tree: "ObjectTree",
    renderers: IndexRenderers,
    dest_fs: OutputFS,
    recursive: bool = True,
    max_workers: int = DEFAULT_MAX_CONCURRENT_RENDERS,
) -> None:
    """Write index files for ``tree`` and, if recursive, all its descendants.

    The node's directory is created before anything is written into it. The
    node's own renderers and its child subtrees run concurrently, with at most
    ``max_workers`` in flight per level. Every sibling finishes before this
    returns.

    Args:
        tree: Node to render
        renderers: Renderers applied to each node
        dest_fs: Filesystem view of the node's parent directory
        recursive: Also render every child node
        max_workers: Concurrent subtree renders per level

    Raises:
        RenderError: With every failure in this subtree
    """
    try:
        dest_fs.mkdir_all(tree.dir_name)
    except OSError as e:
        logger.error(f"Failed to create directory for {tree.full_path}: {e}")
        raise RenderError([e]) from e

    node_fs = dest_fs.sub_fs(tree.dir_name)

    with ThreadPoolExecutor(
        max_workers=max_workers, thread_name_prefix="TreeRenderer"
    ) as executor:
        futures = [executor.submit(renderers.render, node_fs, tree)]

        if recursive:
            futures.extend(
                executor.submit(
                    render_object_tree, child, renderers, node_fs, recursive, max_workers
                )
                for child in tree.children.values()
            )

    errors = _collect(futures)
    if errors:
        logger.debug(f"{len(errors)} render failure(s) under {tree.full_path}")
        raise RenderError(errors)
