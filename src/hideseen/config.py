# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Evaluation configuration: explicit objects instead of module state.

The enabled-site list and the dimming toggle live in the persistent store
(see ``settings.py``); the caller loads them once and passes an
``EvaluationConfig`` into ``evaluator.evaluate_page``.  Nothing here is
global or mutable.

Environment overrides follow the ``HIDESEEN_*`` naming; CLI flags win over
the environment.
"""

from __future__ import annotations

import dataclasses
import math
import os
from collections.abc import Mapping
from enum import StrEnum
from pathlib import Path

from .errors import ConfigError
from .seen_store import SeenPolicy

DEFAULT_DB_PATH = Path("~/.hideseen/seen.db")
THRESHOLD_DISABLED_WORDS = frozenset({"disabled", "off", "none", "never"})


class RowStrategy(StrEnum):
    """How the row locator finds rows on a page."""

    GENERIC = "generic"
    BEST_CONTAINER = "best_container"


@dataclasses.dataclass(frozen=True, slots=True, kw_only=True)
class LocatorConfig:
    """Row locator settings.

    ``generic`` scans every ``row_tags`` element; ``best_container`` picks
    the ``container_tag`` with the most direct ``row_tag`` children.
    """

    strategy: RowStrategy = RowStrategy.GENERIC
    row_tags: tuple[str, ...] = ("tr", "li", "a", "span", "article", "div")
    container_tag: str = "table"
    row_tag: str | None = "tr"  # None: any element child counts as a row
    wrapper_tags: tuple[str, ...] = ("tbody", "thead", "tfoot")
    min_rows: int = 5  # a container needs strictly more direct rows than this


@dataclasses.dataclass(frozen=True, slots=True, kw_only=True)
class EvaluationConfig:
    """Everything one evaluation pass needs to know besides the page itself."""

    policy: SeenPolicy = SeenPolicy.COUNT
    threshold_hours: float | None = None  # None: never hide by age
    enabled_for_this_site: bool = True
    dimming_on: bool = True
    locator: LocatorConfig = dataclasses.field(default_factory=LocatorConfig)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> EvaluationConfig:
        """Build a config from ``HIDESEEN_*`` variables, then apply *overrides*.

        Raises:
            ConfigError: A variable holds a value that cannot be parsed.
        """
        env = os.environ if environ is None else environ
        values: dict = {}

        raw_policy = env.get("HIDESEEN_POLICY", "").strip().lower()
        if raw_policy:
            values["policy"] = parse_policy(raw_policy)

        raw_threshold = env.get("HIDESEEN_THRESHOLD_HOURS", "").strip()
        if raw_threshold:
            values["threshold_hours"] = parse_threshold(raw_threshold)

        raw_strategy = env.get("HIDESEEN_STRATEGY", "").strip().lower()
        if raw_strategy:
            values["locator"] = LocatorConfig(strategy=parse_strategy(raw_strategy))

        values.update(overrides)
        return cls(**values)


# ---------------------------------------------------------------------------
# Parsers (shared by from_env and the CLI)
# ---------------------------------------------------------------------------


def parse_policy(raw: str) -> SeenPolicy:
    try:
        return SeenPolicy(raw.strip().lower())
    except ValueError:
        choices = ", ".join(p.value for p in SeenPolicy)
        raise ConfigError(f"Unknown policy {raw!r} (expected one of: {choices})", field="policy") from None


def parse_strategy(raw: str) -> RowStrategy:
    try:
        return RowStrategy(raw.strip().lower().replace("-", "_"))
    except ValueError:
        choices = ", ".join(s.value for s in RowStrategy)
        raise ConfigError(f"Unknown row strategy {raw!r} (expected one of: {choices})", field="strategy") from None


def parse_threshold(raw: str) -> float | None:
    """Parse a threshold in hours; a disabled word maps to ``None``.

    Raises:
        ConfigError: Not a finite, non-negative number.
    """
    text = raw.strip().lower()
    if text in THRESHOLD_DISABLED_WORDS:
        return None
    try:
        hours = float(text)
    except ValueError:
        raise ConfigError(f"Threshold must be a number of hours or 'disabled', got {raw!r}", field="threshold") from None
    if math.isnan(hours) or math.isinf(hours) or hours < 0:
        raise ConfigError(f"Threshold must be a finite non-negative number, got {raw!r}", field="threshold")
    return hours


def resolve_db_path(cli_value: str = "", environ: Mapping[str, str] | None = None) -> Path:
    """CLI flag, then ``HIDESEEN_DB_PATH``, then ``~/.hideseen/seen.db``."""
    env = os.environ if environ is None else environ
    raw = cli_value.strip() or env.get("HIDESEEN_DB_PATH", "").strip()
    return Path(raw).expanduser() if raw else DEFAULT_DB_PATH.expanduser()
