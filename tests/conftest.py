# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import hideseen  # noqa: F401
except ImportError:
    raise ImportError("hideseen is not installed. Run: pip install -e '.[dev]'") from None

import pytest

from hideseen.seen_store import InMemoryKeyValueStore, SeenStateStore
from tests._helpers import FIXED_NOW


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def store(kv) -> SeenStateStore:
    """SeenStateStore over the in-memory kv with a frozen clock."""
    return SeenStateStore(kv, clock=lambda: FIXED_NOW)
