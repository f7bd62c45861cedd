"""Unit tests for s3_index/renderers.py and s3_index/html_templates.py."""

import base64
import io
import json
from datetime import datetime, timezone

import pytest

from s3_index.html_templates import TemplateSet, default_templates
from s3_index.models import Page, S3Object
from s3_index.object_tree import ObjectTreeConfig, new_object_tree_with_objects
from s3_index.release_info import IndexConfig
from s3_index.renderers import (
    HTML_INDEX_FILE,
    JSON_INDEX_FILE,
    html_renderer,
    json_renderer,
    nonce,
)


def make_tree():
    modified = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
    return new_object_tree_with_objects(
        ObjectTreeConfig(),
        [
            S3Object(key="connect/0.57.1/connect_linux_arm64.tar.gz", size=2048, last_modified=modified),
            S3Object(key="connect/0.57.1/connect_0.57.1_SHA256SUMS", size=120),
            S3Object(key="connect/0.56.0/connect_linux_amd64.zip", size=10),
            S3Object(key="docs/readme <draft>.txt", size=5),
        ],
    )


def render(renderer, tree):
    stream = io.StringIO()
    renderer.render(stream, tree)
    return stream.getvalue()


class TestNonce:
    def test_six_random_bytes(self):
        value = nonce()
        assert len(base64.b64decode(value)) == 6
        assert len(value) == 8

    def test_unique(self):
        assert len({nonce() for _ in range(50)}) == 50


class TestJsonRenderer:
    def test_applies_only_to_release_nodes(self):
        tree = make_tree()
        renderer = json_renderer(IndexConfig())

        assert renderer.index_file == JSON_INDEX_FILE
        assert renderer.applies_to(tree) is True
        assert renderer.applies_to(tree.children["connect"]) is True
        assert renderer.applies_to(tree.children["connect"].children["0.57.1"]) is True
        assert renderer.applies_to(tree.children["docs"]) is False

    def test_archive_document(self):
        document = json.loads(render(json_renderer(IndexConfig()), make_tree()))

        product = document["product"]["connect"]
        assert product["name"] == "connect"
        assert sorted(product["versions"]) == ["0.56.0", "0.57.1"]
        assert product["latest"]["version"] == "0.57.1"

    def test_version_document(self):
        tree = make_tree().children["connect"].children["0.57.1"]
        document = json.loads(render(json_renderer(IndexConfig()), tree))

        assert document == {
            "builds": [
                {
                    "arch": "arm64",
                    "filename": "connect_linux_arm64.tar.gz",
                    "name": "connect",
                    "os": "linux",
                    "url": "/connect/0.57.1/connect_linux_arm64.tar.gz",
                    "version": "0.57.1",
                }
            ],
            "name": "connect",
            "shasums": "connect/0.57.1/connect_0.57.1_SHA256SUMS",
            "version": "0.57.1",
        }

    def test_empty_fields_omitted(self):
        tree = new_object_tree_with_objects(
            ObjectTreeConfig(), [S3Object(key="app/1.0.0/notes.txt")]
        )
        document = json.loads(
            render(json_renderer(IndexConfig()), tree.children["app"].children["1.0.0"])
        )

        assert document == {"name": "app", "version": "1.0.0"}


class TestHtmlRenderer:
    def test_multipage_lists_children_and_objects(self):
        tree = make_tree()
        renderer = html_renderer(default_templates(), "multipage.index.html")

        assert renderer.index_file == HTML_INDEX_FILE
        assert renderer.applies_to(tree.children["docs"]) is True

        root = render(renderer, tree)
        assert '<a href="connect/index.html">connect/</a>' in root
        assert '<a href="docs/index.html">docs/</a>' in root
        assert "../index.html" not in root

        version = render(renderer, tree.children["connect"].children["0.57.1"])
        assert '<a href="../index.html">../</a>' in version
        assert "connect_linux_arm64.tar.gz" in version
        assert "2.0 KiB" in version
        assert "2024-01-15 10:30:00" in version

    def test_names_escaped(self):
        renderer = html_renderer(default_templates(), "multipage.index.html")
        page = render(renderer, make_tree().children["docs"])

        assert "readme &lt;draft&gt;.txt" in page
        assert "readme%20%3Cdraft%3E.txt" in page
        assert "<draft>" not in page

    def test_nonce_in_csp_and_style(self):
        renderer = html_renderer(default_templates(), "multipage.index.html")
        page = render(renderer, make_tree())

        start = page.index("'nonce-") + len("'nonce-")
        value = page[start : page.index("'", start)]
        assert f'<style nonce="{value}">' in page

    def test_singlepage_lists_whole_tree(self):
        renderer = html_renderer(default_templates(), "singlepage.index.html")
        page = render(renderer, make_tree())

        assert "connect/</summary>" in page
        assert "0.57.1/</summary>" in page
        assert 'href="/connect/0.56.0/connect_linux_amd64.zip"' in page

    def test_unknown_template(self):
        renderer = html_renderer(default_templates(), "missing.html")
        with pytest.raises(KeyError, match="missing.html"):
            render(renderer, make_tree())


class TestTemplateSet:
    def test_register_custom_template(self):
        templates = TemplateSet()
        templates.register("plain", lambda page: f"{page.object_tree.full_path}|{page.nonce}")

        stream = io.StringIO()
        templates.execute_template(stream, "plain", Page(nonce="abc", object_tree=make_tree()))

        assert stream.getvalue() == "/|abc"
