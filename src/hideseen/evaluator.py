# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""One evaluation pass: locate rows → resolve identifiers → decide → mark.

Run ``evaluate_page`` once when a page loads and ``recompute`` whenever the
threshold changes (same pass, nothing written).  A pass runs to completion
before the caller starts another; the store is the only shared state.

Ordering differs per policy and matters:

- count: mark first, then dim.  The rows on screen always count as seen
  at least once, and the most-seen row sets the scale.
- timestamp: decide first, then mark.  A row sighted for the first time
  is never hidden on that same pass.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Sequence

import structlog

from . import EvaluationResult, RowVerdict
from .config import EvaluationConfig
from .element import Document, ElementProtocol, LxmlElement
from .identifier import resolve_identifiers
from .row_locator import locate_rows
from .seen_store import SeenPolicy, SeenStateStore, compute_opacity, is_stale

logger = logging.getLogger("hideseen.evaluator")


async def _count_pass(
    store: SeenStateStore,
    rows: Sequence[ElementProtocol],
    ids: Sequence[str | None],
    *,
    dimming_on: bool,
    mark: bool,
) -> tuple[list[RowVerdict], int]:
    if mark:
        for identifier in ids:
            if identifier:
                await store.record_count(identifier)

    counts = [await store.read_count(identifier) if identifier else 0 for identifier in ids]
    max_count = max([1, *counts])

    verdicts: list[RowVerdict] = []
    for index, (row, identifier, count) in enumerate(zip(rows, ids, counts, strict=True)):
        opacity = compute_opacity(count, max_count) if dimming_on and identifier else None
        if opacity is not None:
            logger.debug("[dim] %s count=%d opacity=%s", identifier, count, opacity)
        verdicts.append(
            RowVerdict(
                index=index,
                identifier=identifier,
                evidence=count if identifier else None,
                opacity=opacity,
                element=row,
            )
        )
    return verdicts, max_count


async def _timestamp_pass(
    store: SeenStateStore,
    rows: Sequence[ElementProtocol],
    ids: Sequence[str | None],
    *,
    threshold_hours: float | None,
    mark: bool,
) -> list[RowVerdict]:
    now_ms = store.now_ms()
    verdicts: list[RowVerdict] = []
    for index, (row, identifier) in enumerate(zip(rows, ids, strict=True)):
        if not identifier:
            verdicts.append(RowVerdict(index=index, identifier=None, element=row))
            continue
        stored = await store.read_timestamp(identifier)
        hidden = is_stale(stored, threshold_hours, now_ms)
        if hidden:
            logger.debug("[hide] %s first seen at %d", identifier, stored)
        verdicts.append(RowVerdict(index=index, identifier=identifier, evidence=stored, hidden=hidden, element=row))

    if mark:
        for identifier in ids:
            if identifier:
                await store.record_first_seen(identifier)
    return verdicts


async def evaluate_page(
    document: Document,
    store: SeenStateStore,
    config: EvaluationConfig | None = None,
    *,
    mark: bool = True,
) -> EvaluationResult:
    """Evaluate *document* against the visit history in *store*.

    With ``mark=False`` nothing is written (threshold changes).  A site
    that is not enabled yields no rows, a hidden widget and no writes.
    Never raises on page content.
    """
    cfg = config or EvaluationConfig()
    start = time.perf_counter()
    result = EvaluationResult(
        url=document.url,
        policy=cfg.policy.value,
        strategy=cfg.locator.strategy.value,
        threshold_hours=cfg.threshold_hours,
    )

    if not cfg.enabled_for_this_site:
        result.enabled = False
        result.show_widget = False
        logger.debug("Row suppression disabled for %s", document.host or document.url)
        return result

    with structlog.contextvars.bound_contextvars(url=document.url, policy=cfg.policy.value):
        scan = locate_rows(document, cfg.locator)
        ids = resolve_identifiers(scan.rows, document.base_url)

        if cfg.policy == SeenPolicy.COUNT:
            result.verdicts, result.max_count = await _count_pass(
                store, scan.rows, ids, dimming_on=cfg.dimming_on, mark=mark
            )
        else:
            result.verdicts = await _timestamp_pass(
                store, scan.rows, ids, threshold_hours=cfg.threshold_hours, mark=mark
            )

        result.show_widget = scan.show_widget
        result.marked = mark
        result.generation_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "Evaluated %d rows: %d dimmed, %d hidden (%.1fms)",
            result.total_rows,
            result.dimmed_count,
            result.hidden_count,
            result.generation_ms,
        )
    return result


async def recompute(
    document: Document,
    store: SeenStateStore,
    config: EvaluationConfig | None = None,
) -> EvaluationResult:
    """Re-run the decision step after a threshold change. Writes nothing."""
    return await evaluate_page(document, store, config, mark=False)


# ---------------------------------------------------------------------------
# Rendering verdicts back into the tree
# ---------------------------------------------------------------------------

_STYLE_DECL_RE = re.compile(r"\s*([-\w]+)\s*:\s*([^;]*)")


def _set_style_property(el: LxmlElement, name: str, value: str | None) -> None:
    """Set or clear one inline style property, keeping the others."""
    decls: list[tuple[str, str]] = []
    for chunk in el.raw.get("style", "").split(";"):
        m = _STYLE_DECL_RE.match(chunk)
        if m and m.group(1).lower() != name:
            decls.append((m.group(1), m.group(2).strip()))
    if value is not None:
        decls.append((name, value))
    if decls:
        el.raw.set("style", "; ".join(f"{k}: {v}" for k, v in decls))
    elif "style" in el.raw.attrib:
        del el.raw.attrib["style"]


def apply_verdicts(result: EvaluationResult) -> int:
    """Write opacity/display styles onto the rows of an lxml-backed result.

    Rows first get their previous suppression cleared, so a recompute with
    a looser threshold brings rows back.  Returns the number of rows styled.
    """
    styled = 0
    for verdict in result.verdicts:
        el = verdict.element
        if not isinstance(el, LxmlElement):
            continue
        if result.policy == SeenPolicy.COUNT:
            _set_style_property(el, "opacity", verdict.opacity)
        else:
            _set_style_property(el, "display", "none" if verdict.hidden else None)
        if verdict.suppressed:
            styled += 1
    return styled
