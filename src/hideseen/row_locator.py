# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Row detection: find the repeating content units of an arbitrary page.

Two strategies:

1. **generic**: every element of a fixed set of row-like tags that
   contains a link and is not page chrome.  Elements nested inside each
   other are all returned; suppression is keyed by identifier, so
   duplicates collapse downstream.
2. **best_container**: the single container (default ``<table>``) with
   the most direct rows.  Small incidental containers are ignored via a
   minimum row count; when nothing qualifies the page has no rows and the
   UI widget should hide itself.

Chrome (header/footer/nav/aside/sidebar regions, menu/toolbar/comment
blocks) is only filtered by the generic scan.  Its id/class keyword check
mirrors the noise-pattern approach of an accessibility pre-filter but
matches plain substrings, so ``sidebar-left`` and ``mainNav`` both count.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from .config import LocatorConfig, RowStrategy
from .element import Document, ElementProtocol

logger = logging.getLogger("hideseen.row_locator")

# ---- Chrome filter ----
_LANDMARK_TAGS = frozenset({"header", "footer", "nav", "aside"})
_LANDMARK_ROLES = frozenset({"navigation", "banner", "contentinfo", "complementary"})
_LANDMARK_CLASSES = frozenset({"sidebar", "site-header", "site-footer"})
_CHROME_KEYWORDS_RE = re.compile(r"header|side|nav|foot|menu|toolbar|comment", re.IGNORECASE)


@dataclass
class RowScan:
    """Result of one row-locator run."""

    rows: list[ElementProtocol] = field(default_factory=list)
    strategy: RowStrategy = RowStrategy.GENERIC
    container: ElementProtocol | None = None  # best_container only
    show_widget: bool = True  # False: no rows on this page, UI should hide

    def __len__(self) -> int:
        return len(self.rows)


def _is_landmark(el: ElementProtocol) -> bool:
    if el.tag_name in _LANDMARK_TAGS:
        return True
    attrs = el.attributes
    role = (attrs.get("role") or "").strip().lower()
    if role in _LANDMARK_ROLES:
        return True
    classes = (attrs.get("class") or "").split()
    return any(c in _LANDMARK_CLASSES for c in classes)


def is_chrome(el: ElementProtocol | None) -> bool:
    """True if *el* sits in page chrome rather than content.

    Chrome means the element or one of its ancestors is a structural
    landmark, or the element's own id/class mentions header, side, nav,
    foot, menu, toolbar or comment (case-insensitive substring).
    """
    if el is None:
        return False
    if el.closest(_is_landmark) is not None:
        return True
    attrs = el.attributes
    ident = f"{attrs.get('id') or ''} {attrs.get('class') or ''}"
    return bool(_CHROME_KEYWORDS_RE.search(ident))


def contains_link(el: ElementProtocol) -> bool:
    """True if *el* has at least one ``<a href>`` descendant."""
    return any("href" in a.attributes for a in el.iter_descendants("a"))


# ---------------------------------------------------------------------------
# Strategy 1: generic multi-tag scan
# ---------------------------------------------------------------------------


def scan_generic(document: Document, row_tags: tuple[str, ...]) -> list[ElementProtocol]:
    """All non-chrome elements of *row_tags* (in tag order) that contain a link."""
    rows: list[ElementProtocol] = []
    for tag in row_tags:
        matched = 0
        for el in document.root.iter_descendants(tag):
            if not contains_link(el):
                continue
            if is_chrome(el) or is_chrome(el.parent):
                continue
            rows.append(el)
            matched += 1
        logger.debug("generic scan: %d <%s> rows", matched, tag)
    return rows


# ---------------------------------------------------------------------------
# Strategy 2: best container
# ---------------------------------------------------------------------------


def _is_row_candidate(el: ElementProtocol, row_tag: str | None) -> bool:
    if row_tag is not None:
        return el.tag_name == row_tag
    return contains_link(el)


def direct_rows(
    container: ElementProtocol,
    row_tag: str | None = "tr",
    wrapper_tags: tuple[str, ...] = ("tbody", "thead", "tfoot"),
) -> list[ElementProtocol]:
    """Rows whose parent is *container*, or a wrapper child of *container*.

    Rows of nested containers are not counted.  With ``row_tag=None`` any
    element child holding a link counts as a row.
    """
    rows: list[ElementProtocol] = []
    for child in container.children:
        if child.tag_name in wrapper_tags:
            rows.extend(gc for gc in child.children if _is_row_candidate(gc, row_tag))
        elif _is_row_candidate(child, row_tag):
            rows.append(child)
    return rows


def find_best_container(
    document: Document,
    *,
    container_tag: str = "table",
    row_tag: str | None = "tr",
    wrapper_tags: tuple[str, ...] = ("tbody", "thead", "tfoot"),
    min_rows: int = 5,
) -> tuple[ElementProtocol | None, list[ElementProtocol]]:
    """The *container_tag* element with the most direct rows, and those rows.

    A container needs strictly more than *min_rows* rows; on ties the first
    in document order wins.  Returns ``(None, [])`` when nothing qualifies.
    """
    best: ElementProtocol | None = None
    best_rows: list[ElementProtocol] = []
    for candidate in document.root.iter_descendants(container_tag):
        rows = direct_rows(candidate, row_tag, wrapper_tags)
        if len(rows) > min_rows and len(rows) > len(best_rows):
            best, best_rows = candidate, rows
    return best, best_rows


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def locate_rows(document: Document, config: LocatorConfig | None = None) -> RowScan:
    """Find the rows worth tracking on *document*. Never raises on page content."""
    cfg = config or LocatorConfig()

    if cfg.strategy == RowStrategy.BEST_CONTAINER:
        container, rows = find_best_container(
            document,
            container_tag=cfg.container_tag,
            row_tag=cfg.row_tag,
            wrapper_tags=cfg.wrapper_tags,
            min_rows=cfg.min_rows,
        )
        if container is None:
            logger.debug("No <%s> with more than %d rows on %s", cfg.container_tag, cfg.min_rows, document.url)
            return RowScan(strategy=cfg.strategy, show_widget=False)
        logger.debug("Best <%s> has %d rows", cfg.container_tag, len(rows))
        return RowScan(rows=rows, strategy=cfg.strategy, container=container, show_widget=True)

    rows = scan_generic(document, cfg.row_tags)
    return RowScan(rows=rows, strategy=cfg.strategy, show_widget=True)
