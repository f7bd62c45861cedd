"""Index renderers that turn one tree node into one index file."""

import base64
import json
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from typing import IO, TYPE_CHECKING

from s3_index.html_templates import TemplateSet
from s3_index.models import Page
from s3_index.release_info import (
    IndexConfig,
    index_for_object_tree,
    is_archive_tree,
    is_product_tree,
    is_version_tree,
)

if TYPE_CHECKING:
    from s3_index.object_tree import ObjectTree

JSON_INDEX_FILE = "index.json"
HTML_INDEX_FILE = "index.html"


@dataclass
class IndexRenderer:
    """Writes one index file for a tree node.

    Attributes:
        index_file: File name written in the node's directory
        render: Writes the index for a node into an open stream
        applies: Decides whether the node gets this file at all; every node
            does when None
    """

    index_file: str
    render: Callable[[IO[str], "ObjectTree"], None]
    applies: Callable[["ObjectTree"], bool] | None = None

    def applies_to(self, tree: "ObjectTree") -> bool:
        return self.applies is None or self.applies(tree)


def nonce() -> str:
    """Random value for inline script and style CSP attributes."""
    return base64.b64encode(secrets.token_bytes(6)).decode("ascii")


def json_renderer(config: IndexConfig) -> IndexRenderer:
    """Renderer writing the node's release index as index.json.

    Only nodes shaped like an archive, product or version directory get one.
    """

    def render(stream: IO[str], tree: "ObjectTree") -> None:
        index = index_for_object_tree(config, tree)
        document = index.to_dict() if index is not None else {}
        json.dump(document, stream, indent=2, sort_keys=True)
        stream.write("\n")

    def applies(tree: "ObjectTree") -> bool:
        return is_archive_tree(tree) or is_product_tree(tree) or is_version_tree(tree)

    return IndexRenderer(index_file=JSON_INDEX_FILE, render=render, applies=applies)


def html_renderer(templates: TemplateSet, template_name: str) -> IndexRenderer:
    """Renderer executing ``template_name`` for the node as index.html."""

    def render(stream: IO[str], tree: "ObjectTree") -> None:
        page = Page(nonce=nonce(), object_tree=tree)
        templates.execute_template(stream, template_name, page)

    return IndexRenderer(index_file=HTML_INDEX_FILE, render=render)
