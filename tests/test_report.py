# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for the pydantic report models."""

from __future__ import annotations

import json

from hideseen import EvaluationResult, RowVerdict
from hideseen.config import RowStrategy
from hideseen.report import RowReport, ScanReport
from hideseen.seen_store import SeenPolicy


def _result() -> EvaluationResult:
    return EvaluationResult(
        url="https://example.com/list",
        policy=SeenPolicy.COUNT,
        strategy=RowStrategy.GENERIC,
        verdicts=[
            RowVerdict(index=0, identifier="https://example.com/a", evidence=3, opacity="0.30", element=object()),
            RowVerdict(index=1, identifier="https://example.com/b", evidence=1, opacity="0.63"),
            RowVerdict(index=2, identifier=None),
        ],
        marked=True,
        max_count=3,
    )


class TestScanReport:
    def test_summary_fields(self):
        report = ScanReport.from_result(_result())
        assert report.policy == "count"
        assert report.strategy == "generic"
        assert report.total_rows == 3
        assert report.dimmed == 2
        assert report.hidden == 0
        assert report.max_count == 3

    def test_json_drops_elements(self):
        data = json.loads(ScanReport.from_result(_result()).model_dump_json())
        assert set(data["rows"][0]) == {"index", "identifier", "evidence", "opacity", "hidden"}
        assert data["rows"][2]["identifier"] is None
        assert data["threshold_hours"] is None

    def test_row_report(self):
        row = RowReport.from_verdict(RowVerdict(index=4, identifier="https://x.com/", hidden=True, evidence=10))
        assert row.hidden is True
        assert row.opacity is None
