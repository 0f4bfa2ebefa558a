# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for link scoring and priority sorting."""

from __future__ import annotations

import pytest

from hideseen.element import parse_document
from hideseen.link_scorer import (
    LinkDescriptor,
    describe_link,
    describe_url,
    score,
    sort_by_priority,
)
from hideseen.seen_store import is_plausible_identifier

BASE = "https://localhost:8080"


def _link(html: str) -> LinkDescriptor:
    """Descriptor for the first <a> of an HTML fragment loaded at BASE."""
    doc = parse_document(f"<html><body>{html}</body></html>", BASE)
    return describe_link(next(doc.root.iter_descendants("a")), doc.base_url)


class TestDescribe:
    def test_relative_href_resolved(self):
        link = _link('<a href="/download?id=3&cat=x">x</a>')
        assert link.href == "https://localhost:8080/download?id=3&cat=x"
        assert link.url_path == "/download?id=3&cat=x"
        assert link.protocol == "https:"
        assert link.query_param_keys == ("id", "cat")

    def test_missing_href_points_at_base(self):
        link = _link("<a></a>")
        assert link.href == BASE
        assert link.url_path == "/"

    def test_text_whitespace_collapsed(self):
        link = _link("<a href='/x'>  Download \n\n   Now  </a>")
        assert link.display_text_length == len("Download Now")

    def test_title_attribute(self):
        assert _link('<a title="T" href="/x">x</a>').has_title_attribute is True
        assert _link('<a href="/x">x</a>').has_title_attribute is False

    def test_javascript_protocol(self):
        link = _link('<a href="javascript:void(0)">x</a>')
        assert link.protocol == "javascript:"
        assert link.href == "javascript:void(0)"

    def test_magnet_query_keys(self):
        link = describe_url("magnet:?xt=urn:btih:abc&dn=file")
        assert link.protocol == "magnet:"
        assert link.query_param_keys == ("xt", "dn")

    def test_blank_query_values_keep_keys(self):
        link = describe_url("/list?category", BASE)
        assert link.query_param_keys == ("category",)

    def test_embedded_tabs_and_newlines_removed(self):
        link = describe_url("magnet:?xt=urn:btih:\n\tabc&dn=file\r\n")
        assert link.href == "magnet:?xt=urn:btih:abc&dn=file"
        assert is_plausible_identifier(link.href)

    def test_embedded_newline_removed_with_base(self):
        assert describe_url("/item?\nid=7", BASE).href == "https://localhost:8080/item?id=7"


class TestScore:
    def test_bare_download_link(self):
        assert score(describe_url("/download", BASE)) == 1

    def test_long_text_title_download(self):
        link = LinkDescriptor(
            href=f"{BASE}/download",
            display_text_length=11,
            has_title_attribute=True,
            url_path="/download",
            protocol="https:",
        )
        assert score(link) == 6

    def test_text_of_exactly_ten_is_not_long(self):
        link = LinkDescriptor(href="x", display_text_length=10, url_path="/abcdef")
        assert score(link) == 0

    def test_category_key_penalty(self):
        with_cat = describe_url("/download?cat=1", BASE, text="Download", title="Link")
        assert score(with_cat) == 2 + 1 - 8

    def test_category_key_loses_to_same_length_link(self):
        with_cat = describe_url("/listing?cat=1", BASE)
        without = describe_url("/listing?pag=1", BASE)
        assert len(with_cat.url_path) == len(without.url_path)
        assert sort_by_priority([with_cat, without]) == [without, with_cat]

    def test_id_key_bonus(self):
        assert score(describe_url("/item?id=42", BASE)) == 2
        assert score(describe_url("/item?videoid=42", BASE)) == 2

    def test_id_and_category_both_apply(self):
        # "catid" contains both "cat" and "id"
        assert score(describe_url("/item?catid=42", BASE)) == 2 - 8

    @pytest.mark.parametrize("href", ["javascript:void(0)", "magnet:?xt=urn:btih:0123456789"])
    def test_non_navigable_protocols_penalized(self, href):
        link = describe_url(href, BASE)
        assert link.protocol in ("javascript:", "magnet:")
        # -5 for the scheme; path/query length decides the rest
        expected = -5 + (-200 if len(link.url_path) < 5 else 0)
        assert score(link) == expected

    def test_comment_and_guides_penalties(self):
        assert score(describe_url("/post/1/comments", BASE)) == -5
        assert score(describe_url("/guides/setup", BASE)) == -5

    def test_long_path_penalty(self):
        link = describe_url("/" + "a" * 100, BASE)
        assert len(link.url_path) == 101
        assert score(link) == -3

    def test_path_of_exactly_one_hundred_not_penalized(self):
        assert score(describe_url("/" + "a" * 99, BASE)) == 0

    @pytest.mark.parametrize("href", ["/", "#", "/ab", "?a"])
    def test_short_path_sinks(self, href):
        assert score(describe_url(href, BASE)) <= -200

    def test_idempotent(self):
        link = describe_url("/download?id=1", BASE, text="Some long link text", title="t")
        assert score(link) == score(link)


class TestSortByPriority:
    def test_reference_fixture_order(self):
        empty = _link("<a></a>")
        titled_cat = _link('<a title="Link" href="http://example.com/download?cat=1">Download</a>')
        titled = _link('<a title="Link" href="http://example.com/download">Download</a>')
        long_text = _link('<a href="http://example.com/download">Download Now</a>')

        assert [score(x) for x in (long_text, titled, titled_cat, empty)] == [4, 3, -5, -200]
        assert sort_by_priority([empty, titled_cat, titled, long_text]) == [long_text, titled, titled_cat, empty]

    def test_stable_for_equal_scores(self):
        links = [describe_url(f"/page/{i}", BASE) for i in range(6)]
        assert len({score(x) for x in links}) == 1
        assert sort_by_priority(links) == links

    def test_accepts_set_and_generator(self):
        a = describe_url("/download", BASE)
        b = describe_url("/", BASE)
        assert sort_by_priority({a, b}) == [a, b]
        assert sort_by_priority(x for x in (b, a)) == [a, b]

    def test_returns_new_list(self):
        links = [describe_url("/", BASE), describe_url("/download", BASE)]
        result = sort_by_priority(links)
        assert result is not links
        assert links[0].url_path == "/"

    def test_empty(self):
        assert sort_by_priority([]) == []
