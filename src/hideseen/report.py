# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Pydantic models for machine-readable evaluation output (``--json``)."""

from __future__ import annotations

from pydantic import BaseModel, Field

from . import EvaluationResult, RowVerdict


class RowReport(BaseModel):
    """One row of the report."""

    index: int = Field(..., description="Position in the row scan")
    identifier: str | None = Field(None, description="Chosen link href; null when the row has no link")
    evidence: int | None = Field(None, description="Visit count or first-seen time in ms")
    opacity: str | None = Field(None, description="Two-decimal opacity (count policy), null to leave untouched")
    hidden: bool | None = Field(None, description="Hide decision (timestamp policy), null when disabled")

    @classmethod
    def from_verdict(cls, verdict: RowVerdict) -> RowReport:
        return cls(
            index=verdict.index,
            identifier=verdict.identifier,
            evidence=verdict.evidence,
            opacity=verdict.opacity,
            hidden=verdict.hidden,
        )


class ScanReport(BaseModel):
    """Whole-page report for one evaluation pass."""

    url: str
    policy: str
    strategy: str
    enabled: bool = True
    show_widget: bool = Field(True, description="False tells the UI to hide itself (no rows)")
    marked: bool = False
    threshold_hours: float | None = Field(None, description="Null means age-based hiding is disabled")
    max_count: int = 1
    total_rows: int = 0
    dimmed: int = 0
    hidden: int = 0
    rows: list[RowReport] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: EvaluationResult) -> ScanReport:
        return cls(
            url=result.url,
            policy=str(result.policy),
            strategy=str(result.strategy),
            enabled=result.enabled,
            show_widget=result.show_widget,
            marked=result.marked,
            threshold_hours=result.threshold_hours,
            max_count=result.max_count,
            total_rows=result.total_rows,
            dimmed=result.dimmed_count,
            hidden=result.hidden_count,
            rows=[RowReport.from_verdict(v) for v in result.verdicts],
        )
