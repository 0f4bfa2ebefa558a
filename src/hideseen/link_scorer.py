# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Link scoring: pick the link that best represents a row.

A row usually carries several links (title, download, comments, category,
pagination).  Each link is reduced to a ``LinkDescriptor`` and scored by a
fixed rule table.  The table favours links that look like the row's primary
content or download target, and penalizes chrome: comment/category links
that repeat across many unrelated rows, overly long tracking URLs and
placeholder hrefs like ``#``.

Scoring is structural only: no text understanding beyond length.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import parse_qsl, urljoin, urlsplit

from .element import ElementProtocol

logger = logging.getLogger("hideseen.link_scorer")

# ---------------------------------------------------------------------------
# Rule table
# ---------------------------------------------------------------------------

_LONG_TEXT_MIN = 10  # text strictly longer than this counts as descriptive
_LONG_TEXT_BONUS = 3
_TITLE_BONUS = 2
_DOWNLOAD_BONUS = 1
_NON_NAVIGABLE_PENALTY = -5
_LONG_PATH_MAX = 100
_LONG_PATH_PENALTY = -3
_ID_PARAM_BONUS = 2
_CATEGORY_PARAM_PENALTY = -8
_COMMENT_PENALTY = -5
_GUIDES_PENALTY = -5
_SHORT_PATH_MIN = 5
_SHORT_PATH_PENALTY = -200

NON_NAVIGABLE_PROTOCOLS = frozenset({"javascript:", "magnet:"})

# Browsers (and urlsplit) drop these anywhere in an href
_STRIPPED_URL_CHARS = str.maketrans("", "", "\t\r\n")

_ID_PARAM_MARKERS = ("id",)
_CATEGORY_PARAM_MARKERS = ("category", "cat")


# ---------------------------------------------------------------------------
# Descriptor
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LinkDescriptor:
    """Everything the scorer looks at, derived once from a link element."""

    href: str  # absolute URL
    display_text_length: int = 0
    has_title_attribute: bool = False
    url_path: str = ""  # path + "?query" (query part only when non-empty)
    protocol: str = ""  # scheme with trailing colon, e.g. "https:"
    query_param_keys: tuple[str, ...] = ()


def _visible_text_length(text: str) -> int:
    """Length of *text* with runs of whitespace collapsed and ends trimmed."""
    return len(" ".join(text.split()))


def describe_url(
    href: str,
    base_url: str = "",
    *,
    text: str = "",
    title: str = "",
) -> LinkDescriptor:
    """Build a descriptor from raw link parts.

    *href* is resolved against *base_url* the way a browser resolves
    ``a.href``: an empty href points at the base document itself, and
    embedded tabs and newlines are removed.
    """
    absolute = href.strip().translate(_STRIPPED_URL_CHARS)
    try:
        if base_url:
            absolute = urljoin(base_url, absolute)
        parts = urlsplit(absolute)
    except ValueError:
        logger.debug("Unsplittable href %r", absolute)
        return LinkDescriptor(
            href=absolute,
            display_text_length=_visible_text_length(text),
            has_title_attribute=bool(title),
            url_path=absolute,
        )

    path = parts.path
    if parts.scheme in ("http", "https") and not path and parts.netloc:
        path = "/"
    url_path = f"{path}?{parts.query}" if parts.query else path
    keys = tuple(k for k, _ in parse_qsl(parts.query, keep_blank_values=True))

    return LinkDescriptor(
        href=absolute,
        display_text_length=_visible_text_length(text),
        has_title_attribute=bool(title),
        url_path=url_path,
        protocol=f"{parts.scheme}:" if parts.scheme else "",
        query_param_keys=keys,
    )


def describe_link(link: ElementProtocol, base_url: str = "") -> LinkDescriptor:
    """Build a descriptor from a link element (``<a>``) of a document."""
    attrs = link.attributes
    return describe_url(
        attrs.get("href", "") or "",
        base_url,
        text=link.text_content,
        title=attrs.get("title", "") or "",
    )


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def _any_key_contains(keys: tuple[str, ...], markers: tuple[str, ...]) -> bool:
    return any(marker in key for key in keys for marker in markers)


def score(link: LinkDescriptor) -> int:
    """Score a link; higher means more representative of its row.

    Pure and deterministic.  All rules apply and their deltas are summed.
    """
    path = link.url_path
    total = 0

    if link.display_text_length > _LONG_TEXT_MIN:
        total += _LONG_TEXT_BONUS
    if link.has_title_attribute:
        total += _TITLE_BONUS
    if "download" in path:
        total += _DOWNLOAD_BONUS

    if link.protocol in NON_NAVIGABLE_PROTOCOLS:
        total += _NON_NAVIGABLE_PENALTY
    if len(path) > _LONG_PATH_MAX:
        total += _LONG_PATH_PENALTY

    if _any_key_contains(link.query_param_keys, _ID_PARAM_MARKERS):
        total += _ID_PARAM_BONUS
    if _any_key_contains(link.query_param_keys, _CATEGORY_PARAM_MARKERS):
        total += _CATEGORY_PARAM_PENALTY

    if "comment" in path:
        total += _COMMENT_PENALTY
    if "guides" in path:
        total += _GUIDES_PENALTY

    if len(path) < _SHORT_PATH_MIN:
        total += _SHORT_PATH_PENALTY

    return total


def sort_by_priority(links: Iterable[LinkDescriptor]) -> list[LinkDescriptor]:
    """Order *links* by descending score.

    Accepts any iterable (list, tuple, set, generator) and always returns a
    new list.  ``sorted`` is stable, so equal scores keep their input order.
    """
    return sorted(links, key=score, reverse=True)
