"""Named HTML templates for directory index pages."""

import html
import logging
from collections.abc import Callable
from datetime import datetime
from typing import IO
from urllib.parse import quote

from s3_index.models import Page, S3Object

logger = logging.getLogger(__name__)

TemplateFunc = Callable[[Page], str]

_STYLE = """
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif;
            line-height: 1.6;
            max-width: 960px;
            margin: 0 auto;
            padding: 20px;
            color: #333;
        }
        h1 {
            color: #2c3e50;
            border-bottom: 3px solid #3498db;
            padding-bottom: 10px;
            word-break: break-all;
        }
        table {
            width: 100%;
            border-collapse: collapse;
        }
        th, td {
            text-align: left;
            padding: 4px 8px;
            border-bottom: 1px solid #dee2e6;
        }
        td.size, td.modified {
            white-space: nowrap;
            color: #666;
        }
        ul.tree {
            list-style: none;
            padding-left: 1.2em;
        }
"""


def _format_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "KiB", "MiB", "GiB", "TiB"):
        if value < 1024 or unit == "TiB":
            return f"{int(value)} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


def _format_modified(modified: datetime | None) -> str:
    if modified is None:
        return ""
    return modified.strftime("%Y-%m-%d %H:%M:%S")


def _title(tree) -> str:
    return f"Index of {tree.full_path}"


def _page(page: Page, body: str) -> str:
    nonce = html.escape(page.nonce, quote=True)
    title = html.escape(_title(page.object_tree))
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <meta http-equiv="Content-Security-Policy" content="default-src 'self'; style-src 'nonce-{nonce}'; script-src 'nonce-{nonce}'">
    <title>{title}</title>
    <style nonce="{nonce}">{_STYLE}    </style>
</head>
<body>
    <h1>{title}</h1>
{body}
</body>
</html>
"""


def _object_row(obj: S3Object) -> str:
    name = html.escape(obj.base_name)
    href = html.escape(quote(obj.base_name), quote=True)
    return (
        f'        <tr><td><a href="{href}">{name}</a></td>'
        f'<td class="size">{_format_size(obj.size)}</td>'
        f'<td class="modified">{_format_modified(obj.last_modified)}</td></tr>'
    )


def render_multipage_index(page: Page) -> str:
    """One page per directory, linking to the index page of each child."""
    tree = page.object_tree
    rows = []
    if tree.full_path != "/":
        rows.append('        <tr><td><a href="../index.html">../</a></td><td></td><td></td></tr>')

    for name in sorted(tree.children):
        label = html.escape(name)
        href = html.escape(quote(name), quote=True)
        rows.append(
            f'        <tr><td><a href="{href}/index.html">{label}/</a></td><td></td><td></td></tr>'
        )

    for obj in sorted(tree.objects, key=lambda o: o.base_name):
        rows.append(_object_row(obj))

    body = (
        "    <table>\n"
        "        <tr><th>Name</th><th>Size</th><th>Last modified</th></tr>\n"
        + "\n".join(rows)
        + "\n    </table>"
    )
    return _page(page, body)


def _nested_listing(tree, depth: int) -> str:
    indent = "    " * (depth + 1)
    items = []
    for name in sorted(tree.children):
        child = tree.children[name]
        items.append(
            f"{indent}<li><details open><summary>{html.escape(name)}/</summary>\n"
            f"{_nested_listing(child, depth + 1)}\n"
            f"{indent}</details></li>"
        )

    for obj in sorted(tree.objects, key=lambda o: o.base_name):
        href = html.escape(quote("/" + obj.key.lstrip("/")), quote=True)
        items.append(
            f'{indent}<li><a href="{href}">{html.escape(obj.base_name)}</a> '
            f"({_format_size(obj.size)})</li>"
        )

    return f'{indent}<ul class="tree">\n' + "\n".join(items) + f"\n{indent}</ul>"


def render_singlepage_index(page: Page) -> str:
    """The whole tree as one nested listing."""
    return _page(page, _nested_listing(page.object_tree, 0))


class TemplateSet:
    """A registry of HTML templates addressed by name."""

    def __init__(self, templates: dict[str, TemplateFunc] | None = None) -> None:
        self.templates: dict[str, TemplateFunc] = dict(templates or {})

    def register(self, name: str, template: TemplateFunc) -> None:
        self.templates[name] = template

    def execute_template(self, stream: IO[str], name: str, page: Page) -> None:
        """Render the template called ``name`` for ``page`` into ``stream``.

        Raises:
            KeyError: If no template is registered under ``name``
        """
        if name not in self.templates:
            raise KeyError(f"template '{name}' is not defined")

        stream.write(self.templates[name](page))


def default_templates() -> TemplateSet:
    return TemplateSet(
        {
            "multipage.index.html": render_multipage_index,
            "singlepage.index.html": render_singlepage_index,
        }
    )
