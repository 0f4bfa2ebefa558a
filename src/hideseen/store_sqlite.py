# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""SQLite-backed key-value store: the persistent home of visit evidence.

Uses ``aiosqlite`` with a single long-lived connection.  WAL journal mode
lets several processes read while one writes.  Schema versioned via
``PRAGMA user_version``.

Every ``set``/``delete`` commits immediately; there is no batching and no
cross-process locking beyond SQLite's own, so two writers racing on the
same key resolve as last-write-wins.

Dependencies: seen_store.py (KeyValueStoreProtocol, structurally), errors.py.
"""

from __future__ import annotations

import logging
from contextlib import suppress
from pathlib import Path

import aiosqlite

from .errors import StoreError, StoreSchemaError

logger = logging.getLogger("hideseen.store_sqlite")

_SCHEMA_VERSION = 1

# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

_CREATE_KV = """
CREATE TABLE IF NOT EXISTS kv (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""


# ---------------------------------------------------------------------------
# SqliteKeyValueStore
# ---------------------------------------------------------------------------


class SqliteKeyValueStore:
    """SQLite implementation of ``KeyValueStoreProtocol``.

    Use the ``create()`` async classmethod factory and never instantiate directly.
    """

    def __init__(self, db: aiosqlite.Connection, path: Path) -> None:
        self._db = db
        self._path = path

    @classmethod
    async def create(cls, db_path: str | Path) -> SqliteKeyValueStore:
        """Open (or create) a SQLite database and initialise the schema.

        Resolves ``~`` and creates parent directories automatically.

        Raises:
            StoreSchemaError: The existing database has a newer schema version.
            StoreError: The database file cannot be opened.
        """
        path = Path(db_path).expanduser().resolve()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            db = await aiosqlite.connect(str(path))
        except (OSError, aiosqlite.Error) as e:
            raise StoreError(f"Cannot open store at {path}: {e}") from e

        try:
            await db.execute("PRAGMA journal_mode = WAL")

            cursor = await db.execute("PRAGMA user_version")
            row = await cursor.fetchone()
            current_version = row[0] if row else 0

            if current_version > _SCHEMA_VERSION:
                raise StoreSchemaError(
                    f"Store schema version {current_version} is newer than supported version {_SCHEMA_VERSION}",
                    found=current_version,
                    supported=_SCHEMA_VERSION,
                )

            if current_version < _SCHEMA_VERSION:
                await db.execute(_CREATE_KV)
                await db.execute(f"PRAGMA user_version = {_SCHEMA_VERSION}")
                await db.commit()
        except aiosqlite.Error as e:
            await db.close()
            raise StoreError(f"Cannot initialise store at {path}: {e}") from e
        except BaseException:
            await db.close()
            raise

        logger.debug("Opened store %s (schema v%d)", path, _SCHEMA_VERSION)
        return cls(db, path)

    @property
    def path(self) -> Path:
        return self._path

    # ── KeyValueStoreProtocol methods ─────────────────────────────

    async def get(self, key: str) -> str | None:
        """Value stored under *key*, or ``None``."""
        cursor = await self._db.execute("SELECT value FROM kv WHERE key = ?", (key,))
        row = await cursor.fetchone()
        return None if row is None else row[0]

    async def set(self, key: str, value: str) -> None:
        """Store or replace *value* under *key*, committed immediately."""
        await self._db.execute(
            "INSERT INTO kv (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
        )
        await self._db.commit()

    async def delete(self, key: str) -> bool:
        """Remove *key*. Returns ``True`` if it existed."""
        cursor = await self._db.execute("DELETE FROM kv WHERE key = ?", (key,))
        await self._db.commit()
        return cursor.rowcount > 0

    async def keys(self) -> list[str]:
        """All keys, identifiers and control keys alike, in key order."""
        cursor = await self._db.execute("SELECT key FROM kv ORDER BY key")
        rows = await cursor.fetchall()
        return [r[0] for r in rows]

    async def close(self) -> None:
        """Close the database connection. Idempotent."""
        with suppress(Exception):
            await self._db.close()

    async def __aenter__(self) -> SqliteKeyValueStore:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
