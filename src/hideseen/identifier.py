# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Row identifiers: the href of the row's most representative link."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .element import ElementProtocol
from .link_scorer import LinkDescriptor, describe_link, sort_by_priority

logger = logging.getLogger("hideseen.identifier")


def collect_links(row: ElementProtocol, base_url: str = "") -> list[LinkDescriptor]:
    """Descriptors for every ``<a href>`` in *row*, in document order.

    An anchor row counts as one of its own links.
    """
    anchors = row.iter_self_and_descendants("a")
    return [describe_link(a, base_url) for a in anchors if "href" in a.attributes]


def resolve_identifier(row: ElementProtocol, base_url: str = "") -> str | None:
    """Stable key for *row*, or ``None`` when it holds no link.

    Never raises and never returns an empty string.
    """
    links = collect_links(row, base_url)
    if not links:
        return None
    best = sort_by_priority(links)[0]
    return best.href or None


def resolve_identifiers(rows: Iterable[ElementProtocol], base_url: str = "") -> list[str | None]:
    ids = [resolve_identifier(row, base_url) for row in rows]
    logger.debug("Resolved %d/%d row identifiers", sum(1 for i in ids if i), len(ids))
    return ids
