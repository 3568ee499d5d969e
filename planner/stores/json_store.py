"""
JSON Directory Store
====================
One file per key inside a directory. Keys are percent-encoded into file
names (``project:list`` → ``project%3Alist.json``). Each write goes to a
temporary file that is then renamed over the target, so readers see either
the old or the new value, never a torn one.

No compare-and-swap: concurrent writers in different processes can still
overwrite each other. Writers inside one process are serialized by the
index manager's per-key locks.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from typing import Optional
from urllib.parse import quote, unquote

from planner.errors import StoreConfigError
from planner.stores.base import KeyValueStore, StoreConfig

_SUFFIX = ".json"


class JsonFileStore(KeyValueStore):
    """Directory-backed store for small single-host deployments."""

    def __init__(self, config: StoreConfig):
        super().__init__(config)
        if not config.path:
            raise StoreConfigError("json store needs a directory path (--path / PLANNER_STORE_PATH)")
        self.directory = os.path.abspath(config.path)
        os.makedirs(self.directory, exist_ok=True)

    def _path_for(self, key: str) -> str:
        return os.path.join(self.directory, quote(key, safe="") + _SUFFIX)

    # ─── Blocking helpers (run in worker threads) ─────────

    def _read(self, key: str) -> Optional[str]:
        try:
            with open(self._path_for(key), "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None

    def _write(self, key: str, value: str):
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=".tmp-", suffix=_SUFFIX)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, self._path_for(key))
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def _remove(self, key: str):
        try:
            os.remove(self._path_for(key))
        except FileNotFoundError:
            pass

    # ─── KeyValueStore ────────────────────────────────────

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, key)

    async def put(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._remove, key)

    def keys(self) -> list[str]:
        """All stored keys, decoded from file names."""
        names = [n for n in os.listdir(self.directory)
                 if n.endswith(_SUFFIX) and not n.startswith(".tmp-")]
        return sorted(unquote(n[: -len(_SUFFIX)]) for n in names)
