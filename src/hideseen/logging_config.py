# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Log rendering for the hideseen CLI: structlog over stdlib logging.

Library modules log through ``logging.getLogger("hideseen.<module>")`` and
never configure anything themselves.  ``configure`` is called once by the
CLI: a plain console renderer by default, JSON lines with ``--log-json``.

Evaluation passes bind ``url`` and ``policy`` as contextvars, so every
record of a pass carries them.  Row identifiers can be very long hrefs
(tracking parameters, data URLs); ``_clip_urls`` keeps such fields short
enough for one readable line.

Leaf module, no hideseen imports.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping

import structlog

LOG_LEVEL_ENV = "HIDESEEN_LOG_LEVEL"

# aiosqlite logs every call at DEBUG
_NOISY_LOGGERS = ("aiosqlite", "asyncio")

_VERBOSITY_LEVELS = ("WARNING", "INFO", "DEBUG")

_URL_FIELDS = ("url", "identifier")
_MAX_URL_CHARS = 200


def level_for_verbosity(verbose: int) -> str:
    """Map a repeated ``-v`` count to a level name (0 → WARNING, 2+ → DEBUG)."""
    if verbose <= 0:
        return _VERBOSITY_LEVELS[0]
    return _VERBOSITY_LEVELS[min(verbose, len(_VERBOSITY_LEVELS) - 1)]


def resolve_level(verbose: int = 0, environ: Mapping[str, str] | None = None) -> str:
    """``HIDESEEN_LOG_LEVEL`` when set, otherwise the ``-v`` count."""
    env = os.environ if environ is None else environ
    return env.get(LOG_LEVEL_ENV, "").strip().upper() or level_for_verbosity(verbose)


def _clip_urls(logger, method_name, event_dict):
    for key in _URL_FIELDS:
        value = event_dict.get(key)
        if isinstance(value, str) and len(value) > _MAX_URL_CHARS:
            event_dict[key] = f"{value[: _MAX_URL_CHARS - 3]}..."
    return event_dict


def configure(*, json_output: bool = False, level: str = "WARNING") -> None:
    """Route all ``hideseen.*`` records through structlog to stderr.

    Args:
        json_output: JSON lines (``--log-json``) instead of console text.
        level: Root logger level name. Unknown names fall back to WARNING.
    """
    pre_chain: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _clip_urls,
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    resolved = logging.getLevelName(level.upper())
    root.setLevel(resolved if isinstance(resolved, int) else logging.WARNING)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
