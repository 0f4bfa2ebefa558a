# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Element capability interface and its lxml implementation.

The row locator, chrome filter and identifier resolver only ever talk to
``ElementProtocol``: tag name, attributes, text, children, parent and an
ancestor search.  ``LxmlElement`` is the one implementation shipped here,
backed by ``lxml.html``; another environment (a live browser DOM, a
Playwright snapshot) only needs to provide the same handful of members.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Protocol, runtime_checkable
from urllib.parse import urljoin, urlparse

import lxml.etree
import lxml.html

logger = logging.getLogger("hideseen.element")

_EMPTY_DOCUMENT = "<html><head></head><body></body></html>"


@runtime_checkable
class ElementProtocol(Protocol):
    """Read-only view of one element of a rendered document."""

    @property
    def tag_name(self) -> str: ...

    @property
    def attributes(self) -> Mapping[str, str]: ...

    @property
    def text_content(self) -> str: ...

    @property
    def children(self) -> list[ElementProtocol]: ...

    @property
    def parent(self) -> ElementProtocol | None: ...

    def closest(self, predicate: Callable[[ElementProtocol], bool]) -> ElementProtocol | None: ...

    def iter_descendants(self, tag: str | None = None) -> Iterator[ElementProtocol]: ...

    def iter_self_and_descendants(self, tag: str | None = None) -> Iterator[ElementProtocol]: ...


def _tag_of(el: lxml.etree._Element) -> str:
    """Lowercase tag name; empty string for comments and processing instructions."""
    tag = el.tag
    if not isinstance(tag, str):
        return ""
    return tag.lower()


class LxmlElement:
    """``ElementProtocol`` over an ``lxml.html.HtmlElement``.

    Wrappers compare equal when they wrap the same underlying node, so
    identity checks survive re-wrapping (``row.parent == container``).
    """

    __slots__ = ("_el",)

    def __init__(self, el: lxml.etree._Element) -> None:
        self._el = el

    @property
    def tag_name(self) -> str:
        return _tag_of(self._el)

    @property
    def attributes(self) -> Mapping[str, str]:
        return dict(self._el.attrib)

    @property
    def text_content(self) -> str:
        return self._el.text_content()

    @property
    def children(self) -> list[LxmlElement]:
        return [LxmlElement(child) for child in self._el if _tag_of(child)]

    @property
    def parent(self) -> LxmlElement | None:
        parent = self._el.getparent()
        return LxmlElement(parent) if parent is not None else None

    def closest(self, predicate: Callable[[LxmlElement], bool]) -> LxmlElement | None:
        """Nearest element (self included) walking up the tree that satisfies *predicate*."""
        node: lxml.etree._Element | None = self._el
        while node is not None:
            if _tag_of(node):
                wrapped = LxmlElement(node)
                if predicate(wrapped):
                    return wrapped
            node = node.getparent()
        return None

    def iter_descendants(self, tag: str | None = None) -> Iterator[LxmlElement]:
        """Descendants in document order, self excluded, optionally filtered by tag."""
        for node in self._el.iterdescendants():
            name = _tag_of(node)
            if not name:
                continue
            if tag is None or name == tag:
                yield LxmlElement(node)

    def iter_self_and_descendants(self, tag: str | None = None) -> Iterator[LxmlElement]:
        if tag is None or self.tag_name == tag:
            yield self
        yield from self.iter_descendants(tag)

    @property
    def raw(self) -> lxml.etree._Element:
        """Underlying lxml node, for callers that render styles back into the tree."""
        return self._el

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LxmlElement):
            return NotImplemented
        return self._el is other._el

    def __hash__(self) -> int:
        return id(self._el)

    def __repr__(self) -> str:
        return f"<LxmlElement {self.tag_name} id={self._el.get('id', '')!r} class={self._el.get('class', '')!r}>"


@dataclass(frozen=True, slots=True)
class Document:
    """A parsed page: its root element plus where it was loaded from.

    ``url`` is the navigable location; ``base_url`` is what relative hrefs
    resolve against (``<base href>`` when the page declares one).
    """

    root: LxmlElement
    url: str
    base_url: str

    @property
    def host(self) -> str:
        try:
            return (urlparse(self.url).hostname or "").lower()
        except ValueError:
            return ""


def parse_document(html: str | bytes, url: str = "") -> Document:
    """Parse *html* into a ``Document``. Never raises on malformed markup.

    Empty input yields an empty ``<html>`` tree rather than lxml's
    "Document is empty" error.
    """
    is_empty = not html.strip()
    try:
        root = lxml.html.document_fromstring(_EMPTY_DOCUMENT if is_empty else html)
    except (lxml.etree.LxmlError, ValueError) as e:
        logger.warning("Unparsable document at %s, treating as empty: %s", url or "<unknown>", e)
        root = lxml.html.document_fromstring(_EMPTY_DOCUMENT)

    base_url = url
    base_el = root.find(".//base[@href]")
    if base_el is not None:
        base_href = (base_el.get("href") or "").strip()
        if base_href:
            try:
                base_url = urljoin(url, base_href)
            except ValueError:
                logger.debug("Ignoring unusable <base href=%r>", base_href)

    return Document(root=LxmlElement(root), url=url, base_url=base_url)
