# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""hideseen exception hierarchy.

Page heuristics never raise: they degrade to "no row", "no identifier" or
"no suppression".  These exceptions cover the few places that can fail
outright: opening the persistent store and parsing configuration.
"""

from __future__ import annotations


class HideSeenError(Exception):
    """Base exception for all hideseen errors."""


class StoreError(HideSeenError):
    """Persistent key-value store could not be opened or used."""


class StoreSchemaError(StoreError):
    """Existing store was written by a newer schema version."""

    def __init__(self, message: str, *, found: int = 0, supported: int = 0) -> None:
        super().__init__(message)
        self.found = found
        self.supported = supported


class ConfigError(HideSeenError):
    """Invalid configuration value (CLI flag or environment variable)."""

    def __init__(self, message: str, *, field: str = "") -> None:
        super().__init__(message)
        self.field = field
