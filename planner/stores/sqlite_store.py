"""
SQLite Store
============
Single-table key-value store on a local SQLite database file:

    kv(key TEXT PRIMARY KEY, value TEXT, version INTEGER)

Version tokens come from a monotonically increasing clock kept in a ``meta``
table, so a key that is deleted and re-created never repeats an old token.
Every write runs inside ``BEGIN IMMEDIATE``, which makes compare-and-swap
safe across processes sharing the same file.
"""

from __future__ import annotations

import asyncio
import os
import sqlite3
from typing import Optional

from planner.errors import StoreConfigError
from planner.stores.base import KeyValueStore, StoreConfig, VersionedValue


class SqliteStore(KeyValueStore):
    """Durable store with store-native optimistic concurrency."""

    supports_cas = True

    def __init__(self, config: StoreConfig):
        super().__init__(config)
        if not config.path:
            raise StoreConfigError("sqlite store needs a database file path (--path / PLANNER_STORE_PATH)")
        self.db_path = os.path.abspath(config.path)
        parent = os.path.dirname(self.db_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        self.timeout = float(config.extra.get("timeout", 5.0))
        conn = self._connect()
        try:
            self._ensure_schema(conn)
        finally:
            conn.close()

    def _connect(self) -> sqlite3.Connection:
        # Autocommit mode; transactions are opened explicitly.
        return sqlite3.connect(self.db_path, timeout=self.timeout, isolation_level=None)

    @staticmethod
    def _ensure_schema(conn: sqlite3.Connection):
        conn.execute(
            "CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL, version INTEGER NOT NULL)"
        )
        conn.execute("CREATE TABLE IF NOT EXISTS meta (key TEXT PRIMARY KEY, value INTEGER NOT NULL)")
        conn.execute("INSERT OR IGNORE INTO meta(key, value) VALUES('clock', 0)")

    @staticmethod
    def _tick(conn: sqlite3.Connection) -> int:
        conn.execute("UPDATE meta SET value = value + 1 WHERE key = 'clock'")
        return conn.execute("SELECT value FROM meta WHERE key = 'clock'").fetchone()[0]

    # ─── Blocking helpers (run in worker threads) ─────────

    def _read(self, key: str) -> VersionedValue:
        conn = self._connect()
        try:
            row = conn.execute("SELECT value, version FROM kv WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
        if row is None:
            return VersionedValue(None, None)
        return VersionedValue(row[0], row[1])

    def _write(self, key: str, value: str, expected_version: Optional[int], check: bool) -> bool:
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                if check:
                    row = conn.execute("SELECT version FROM kv WHERE key = ?", (key,)).fetchone()
                    current = row[0] if row else None
                    if current != expected_version:
                        conn.execute("ROLLBACK")
                        return False
                version = self._tick(conn)
                conn.execute(
                    "INSERT OR REPLACE INTO kv(key, value, version) VALUES(?, ?, ?)",
                    (key, value, version),
                )
                conn.execute("COMMIT")
                return True
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
        finally:
            conn.close()

    def _remove(self, key: str):
        conn = self._connect()
        try:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        finally:
            conn.close()

    # ─── KeyValueStore ────────────────────────────────────

    async def get(self, key: str) -> Optional[str]:
        return (await asyncio.to_thread(self._read, key)).value

    async def put(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, key, value, None, False)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._remove, key)

    async def get_versioned(self, key: str) -> VersionedValue:
        return await asyncio.to_thread(self._read, key)

    async def put_if_version(self, key: str, value: str,
                             expected_version: Optional[int]) -> bool:
        return await asyncio.to_thread(self._write, key, value, expected_version, True)

    def keys(self) -> list[str]:
        conn = self._connect()
        try:
            return [r[0] for r in conn.execute("SELECT key FROM kv ORDER BY key")]
        finally:
            conn.close()
