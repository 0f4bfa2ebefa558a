# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for the element capability interface and document parsing."""

from __future__ import annotations

from hideseen.element import Document, ElementProtocol, LxmlElement, parse_document
from tests._helpers import first, page


class TestParseDocument:
    def test_empty_input(self):
        doc = parse_document("", "https://example.com/")
        assert isinstance(doc, Document)
        assert doc.root.tag_name == "html"
        assert list(doc.root.iter_descendants("a")) == []

    def test_whitespace_only_input(self):
        assert parse_document("   \n").root.tag_name == "html"

    def test_bytes_input(self):
        doc = parse_document(b"<html><body><a href='/x'>x</a></body></html>", "https://example.com/")
        assert first(doc, "a").attributes["href"] == "/x"

    def test_base_url_defaults_to_location(self):
        doc = page("<p>x</p>", url="https://example.com/a/b")
        assert doc.base_url == "https://example.com/a/b"

    def test_relative_base_href(self):
        doc = parse_document('<html><head><base href="/root/"></head><body></body></html>', "https://example.com/a/b")
        assert doc.base_url == "https://example.com/root/"

    def test_host(self):
        assert page("<p>x</p>", url="https://News.Example.com:8443/x").host == "news.example.com"
        assert page("<p>x</p>", url="").host == ""


class TestLxmlElement:
    def test_satisfies_protocol(self):
        assert isinstance(page("<p>x</p>").root, ElementProtocol)

    def test_children_skip_comments(self):
        doc = page("<ul><!-- c --><li>a</li><li>b</li></ul>")
        assert [c.tag_name for c in first(doc, "ul").children] == ["li", "li"]

    def test_parent_and_equality(self):
        doc = page("<ul><li>a</li></ul>")
        ul = first(doc, "ul")
        li = first(doc, "li")
        assert li.parent == ul
        assert hash(li.parent) == hash(ul)
        assert doc.root.parent is None

    def test_closest_includes_self(self):
        doc = page('<div class="x"><span>a</span></div>')
        span = first(doc, "span")
        assert span.closest(lambda e: e.tag_name == "span") == span
        assert span.closest(lambda e: e.tag_name == "div") == first(doc, "div")
        assert span.closest(lambda e: e.tag_name == "table") is None

    def test_iter_descendants_excludes_self(self):
        doc = page("<div><div><p>x</p></div></div>")
        outer = first(doc, "div")
        assert len(list(outer.iter_descendants("div"))) == 1
        assert len(list(outer.iter_self_and_descendants("div"))) == 2

    def test_tag_name_lowercase(self):
        assert isinstance(first(page("<DIV>x</DIV>"), "div"), LxmlElement)
