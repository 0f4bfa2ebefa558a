# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Seen-state store: visit evidence per row identifier, and what it means.

Evidence lives in a flat string→string key-value store (``KeyValueStoreProtocol``)
shared with a couple of control keys.  Two interchangeable policies read it:

- **count**: every evaluation pass increments a per-identifier counter.
  Rows fade from ``MAX_OPACITY`` toward ``MIN_OPACITY`` as their count
  approaches the highest count among the rows currently on the page.
- **timestamp**: the first sighting writes the current time in
  milliseconds and later sightings leave it alone.  A row is hidden once
  its evidence is older than the user's threshold (with a five minute
  grace so a page reloaded right away does not flicker).

Both policies share one namespace, so a value written by one can be read
by the other.  Count reads treat anything above ``BOGUS_TIMESTAMP_FLOOR``
as a leftover timestamp and delete it.  Timestamp reads treat anything at
or below it as a leftover count and delete it, so the next pass records a
real first sighting.  Malformed values are purged by either policy.

Every mutation goes straight to the backend and every read re-fetches:
no cache.  Concurrent writers (two tabs, two processes) race with
last-write-wins; at worst a count is under-counted.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum
from typing import Protocol, runtime_checkable

logger = logging.getLogger("hideseen.seen_store")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MIN_OPACITY = 0.3
MAX_OPACITY = 0.8
BOGUS_TIMESTAMP_FLOOR = 1_700_000_000_000  # ms; no counter ever gets this high
GRACE_MS = 5 * 60 * 1000
MS_PER_HOUR = 60 * 60 * 1000
MAX_IDENTIFIER_LENGTH = 8192

# Control keys share the namespace with identifiers; none of them is a URL.
ENABLED_SITES_KEY = "hide_seen_links_enabled_sites"
TOGGLE_KEY = "hide_seen_links_toggle"
CONTROL_KEYS = frozenset({ENABLED_SITES_KEY, TOGGLE_KEY})

_INTEGER_RE = re.compile(r"[+-]?[0-9]{1,30}")
_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_CONTROL_CHARS = frozenset("\r\n\t\x00")

_OPACITY_STEP = Decimal("0.01")


class SeenPolicy(StrEnum):
    """Which kind of evidence is recorded and how it suppresses rows."""

    COUNT = "count"
    TIMESTAMP = "timestamp"


# ---------------------------------------------------------------------------
# Backend protocol + in-memory implementation
# ---------------------------------------------------------------------------


@runtime_checkable
class KeyValueStoreProtocol(Protocol):
    """Flat string-keyed, string-valued persistent namespace."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def keys(self) -> list[str]: ...

    async def close(self) -> None: ...


class InMemoryKeyValueStore:
    """Dict-backed store for tests and one-shot runs without a database."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def keys(self) -> list[str]:
        return list(self._data)

    async def close(self) -> None:
        """No-op for in-memory store."""

    @property
    def data(self) -> dict[str, str]:
        """Direct access to stored values (testing/debugging)."""
        return self._data


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def is_plausible_identifier(key: object) -> bool:
    """True if *key* could have come out of the identifier resolver.

    Rejects blanks, padded or multi-line strings, bare numbers and the
    reserved control keys, so unrelated data never lands in (or is read
    from) the evidence namespace.
    """
    if not isinstance(key, str) or not key or len(key) > MAX_IDENTIFIER_LENGTH:
        return False
    if key != key.strip() or any(ch in _CONTROL_CHARS for ch in key):
        return False
    if key in CONTROL_KEYS:
        return False
    return not _NUMBER_RE.fullmatch(key)


def parse_evidence(raw: str | None) -> int | None:
    """Decimal integer stored under an identifier, or ``None`` if malformed."""
    if raw is None:
        return None
    text = raw.strip()
    if not _INTEGER_RE.fullmatch(text):
        return None
    return int(text)


def compute_opacity(count: int, max_count: int) -> str | None:
    """Opacity for a row seen *count* times, ``None`` to leave the row untouched.

    Linear and inverted: the most-seen row on the page gets ``MIN_OPACITY``,
    a barely-seen one approaches ``MAX_OPACITY``.  Rounded half-up to two
    decimals.
    """
    if count <= 0:
        return None
    ratio = count / max(max_count, 1)
    opacity = MAX_OPACITY - (MAX_OPACITY - MIN_OPACITY) * ratio
    opacity = min(MAX_OPACITY, max(MIN_OPACITY, opacity))
    return str(Decimal(opacity).quantize(_OPACITY_STEP, rounding=ROUND_HALF_UP))


def elapsed_hours(stored_ms: int, now_ms: int) -> float:
    """Hours since *stored_ms*, padded by the grace period."""
    return (now_ms - stored_ms + GRACE_MS) / MS_PER_HOUR


def is_stale(stored_ms: int | None, threshold_hours: float | None, now_ms: int) -> bool | None:
    """Hide decision for one piece of timestamp evidence.

    Returns ``None`` when the threshold is disabled (no decision at all),
    ``False`` when there is no evidence, otherwise whether the evidence is
    older than the threshold.
    """
    if threshold_hours is None:
        return None
    if stored_ms is None:
        return False
    return elapsed_hours(stored_ms, now_ms) > threshold_hours


# ---------------------------------------------------------------------------
# SeenStateStore
# ---------------------------------------------------------------------------


class SeenStateStore:
    """Reads and writes visit evidence through a ``KeyValueStoreProtocol``.

    *clock* returns seconds since the epoch (``time.time`` by default);
    tests pass a fixed value.
    """

    def __init__(self, kv: KeyValueStoreProtocol, *, clock: Callable[[], float] = time.time) -> None:
        self._kv = kv
        self._clock = clock

    @property
    def backend(self) -> KeyValueStoreProtocol:
        return self._kv

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def _purge(self, identifier: str, raw: str, reason: str) -> None:
        await self._kv.delete(identifier)
        logger.info("Purged %s evidence for %s (value=%r)", reason, identifier, raw[:40])

    # -- count policy --

    async def read_count(self, identifier: str) -> int:
        """Visit count; 0 when absent, malformed or a leftover timestamp (purged)."""
        if not is_plausible_identifier(identifier):
            return 0
        raw = await self._kv.get(identifier)
        if raw is None:
            return 0
        value = parse_evidence(raw)
        if value is None or value < 0:
            await self._purge(identifier, raw, "malformed")
            return 0
        if value > BOGUS_TIMESTAMP_FLOOR:
            await self._purge(identifier, raw, "timestamp-shaped")
            return 0
        return value

    async def record_count(self, identifier: str) -> int:
        """Increment and persist the count. Not idempotent: every call counts."""
        if not is_plausible_identifier(identifier):
            logger.debug("Ignoring implausible identifier %r", identifier)
            return 0
        count = await self.read_count(identifier) + 1
        await self._kv.set(identifier, str(count))
        logger.debug("[mark] %s -> %d", identifier, count)
        return count

    async def compute_opacity(self, identifier: str, max_count: int) -> str | None:
        return compute_opacity(await self.read_count(identifier), max_count)

    # -- timestamp policy --

    async def read_timestamp(self, identifier: str) -> int | None:
        """First-sighting time in ms; ``None`` when absent, malformed or count-shaped (purged)."""
        if not is_plausible_identifier(identifier):
            return None
        raw = await self._kv.get(identifier)
        if raw is None:
            return None
        value = parse_evidence(raw)
        if value is None:
            await self._purge(identifier, raw, "malformed")
            return None
        if value <= BOGUS_TIMESTAMP_FLOOR:
            await self._purge(identifier, raw, "count-shaped")
            return None
        return value

    async def record_first_seen(self, identifier: str) -> bool:
        """Write the current time unless evidence already exists. True if written."""
        if not is_plausible_identifier(identifier):
            logger.debug("Ignoring implausible identifier %r", identifier)
            return False
        if await self.read_timestamp(identifier) is not None:
            return False
        now = self.now_ms()
        await self._kv.set(identifier, str(now))
        logger.debug("[first-seen] %s at %d", identifier, now)
        return True

    async def should_hide(self, identifier: str, threshold_hours: float | None) -> bool | None:
        """``None`` if the threshold is disabled, else whether the row is stale."""
        if threshold_hours is None:
            return None
        return is_stale(await self.read_timestamp(identifier), threshold_hours, self.now_ms())

    # -- policy dispatch --

    async def record_visit(self, identifier: str, policy: SeenPolicy) -> None:
        if policy == SeenPolicy.COUNT:
            await self.record_count(identifier)
        else:
            await self.record_first_seen(identifier)

    async def identifiers(self) -> list[str]:
        """Keys holding evidence, control keys excluded."""
        return [key for key in await self._kv.keys() if is_plausible_identifier(key)]

    async def forget(self, identifier: str) -> bool:
        """Drop all evidence for *identifier*. True if something was removed."""
        if not is_plausible_identifier(identifier):
            return False
        return await self._kv.delete(identifier)
