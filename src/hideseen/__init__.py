# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""hideseen: dim or hide the rows of a page you have already seen.

Finds the repeating rows of a rendered page, keys each row by its most
representative link, and checks a persistent visit history:
- count policy: rows fade the more often they were seen
- timestamp policy: rows disappear once first seen longer ago than a threshold
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

__version__ = "0.3.0"


@dataclass
class RowVerdict:
    """Suppression decision for one detected row."""

    index: int  # position in the row scan
    identifier: str | None  # None: row holds no usable link, left untouched
    evidence: int | None = None  # count (count policy) or first-seen ms (timestamp policy)
    opacity: str | None = None  # "0.30".."0.80"; None leaves the style alone
    hidden: bool | None = None  # None: no decision (disabled threshold or other policy)
    element: Any = field(default=None, repr=False, compare=False)

    @property
    def suppressed(self) -> bool:
        return bool(self.hidden) or self.opacity is not None

    def __str__(self) -> str:
        parts = [f"[{self.index}]", self.identifier or "-"]
        if self.opacity is not None:
            parts.append(f"opacity={self.opacity}")
        if self.hidden:
            parts.append("hidden")
        if self.evidence is not None:
            parts.append(f"evidence={self.evidence}")
        return " ".join(parts)


@dataclass
class EvaluationResult:
    """Outcome of one evaluation pass over a page."""

    url: str
    policy: str  # "count" | "timestamp"
    strategy: str  # "generic" | "best_container"
    verdicts: list[RowVerdict] = field(default_factory=list)
    show_widget: bool = True  # False: no rows (or site disabled), UI should hide
    enabled: bool = True
    marked: bool = False  # evidence was written during this pass
    max_count: int = 1
    threshold_hours: float | None = None
    generation_ms: float = 0.0

    @property
    def total_rows(self) -> int:
        return len(self.verdicts)

    @property
    def identifiers(self) -> list[str]:
        return [v.identifier for v in self.verdicts if v.identifier]

    @property
    def hidden_count(self) -> int:
        return sum(1 for v in self.verdicts if v.hidden)

    @property
    def dimmed_count(self) -> int:
        return sum(1 for v in self.verdicts if v.opacity is not None)
