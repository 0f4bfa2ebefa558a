# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Per-site enablement, the dimming toggle and the threshold slider.

The first two persist under control keys in the same key-value store as
the visit evidence.  The threshold itself is not persisted; only its
slider mapping and display text live here.
"""

from __future__ import annotations

import json
import logging

from .seen_store import ENABLED_SITES_KEY, TOGGLE_KEY, KeyValueStoreProtocol

logger = logging.getLogger("hideseen.settings")

THRESHOLD_SLIDER_MIN = 0
THRESHOLD_SLIDER_MAX = 300  # slider at its maximum means "disabled"


def normalize_host(host: str) -> str:
    return host.strip().lower()


class SiteSettings:
    """Control-key accessors over a ``KeyValueStoreProtocol``.

    Reads always go to the store; two tabs toggling the same site race
    with last-write-wins.
    """

    def __init__(self, kv: KeyValueStoreProtocol) -> None:
        self._kv = kv

    async def enabled_sites(self) -> list[str]:
        """Hostnames with row suppression turned on. Malformed data reads as empty."""
        raw = await self._kv.get(ENABLED_SITES_KEY)
        if not raw:
            return []
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed enabled-site list: %r", raw[:80])
            return []
        if not isinstance(value, list):
            logger.warning("Ignoring enabled-site list of type %s", type(value).__name__)
            return []
        return [h for h in value if isinstance(h, str) and h]

    async def is_enabled(self, host: str) -> bool:
        return normalize_host(host) in await self.enabled_sites()

    async def set_enabled(self, host: str, enabled: bool) -> bool:
        """Enable or disable *host*. Returns the new state."""
        host = normalize_host(host)
        sites = await self.enabled_sites()
        if enabled and host not in sites:
            sites.append(host)
        elif not enabled:
            sites = [h for h in sites if h != host]
        await self._kv.set(ENABLED_SITES_KEY, json.dumps(sites))
        logger.info("%s row suppression for %s", "Enabled" if enabled else "Disabled", host)
        return enabled

    async def toggle_site(self, host: str) -> bool:
        """Flip *host* between enabled and disabled. Returns the new state."""
        return await self.set_enabled(host, not await self.is_enabled(host))

    async def dimming_on(self) -> bool:
        """The on-page toggle; anything but ``"off"`` (including absent) is on."""
        return await self._kv.get(TOGGLE_KEY) != "off"

    async def set_dimming(self, on: bool) -> None:
        await self._kv.set(TOGGLE_KEY, "on" if on else "off")


# ---------------------------------------------------------------------------
# Threshold slider
# ---------------------------------------------------------------------------


def threshold_from_slider(value: float, maximum: float = THRESHOLD_SLIDER_MAX) -> float | None:
    """Hours for a slider position; the maximum position disables hiding."""
    if value >= maximum:
        return None
    return max(float(value), float(THRESHOLD_SLIDER_MIN))


def format_threshold(hours: float | None) -> str:
    """Human text for a threshold: ``"disabled"``, ``"5 hours"``, ``"1 day 2 hours"``."""
    if hours is None:
        return "disabled"
    days, rem = divmod(int(hours), 24)
    parts = []
    if days > 0:
        parts.append(f"{days} day{'s' if days != 1 else ''}")
    if rem > 0 or days == 0:
        parts.append(f"{rem} hour{'s' if rem != 1 else ''}")
    return " ".join(parts)
