"""
In-Memory Store
===============
Dict-backed store with per-key version counters. Lives only as long as the
process; used as the default backend and throughout the test suite.
"""

from __future__ import annotations

from typing import Optional

from planner.stores.base import KeyValueStore, StoreConfig, VersionedValue


class MemoryStore(KeyValueStore):
    """Process-local store with compare-and-swap.

    Every mutation happens synchronously between awaits, so each method is
    atomic with respect to other coroutines on the same event loop.
    """

    supports_cas = True

    def __init__(self, config: Optional[StoreConfig] = None):
        super().__init__(config or StoreConfig(backend="memory"))
        self._data: dict[str, str] = {}
        self._versions: dict[str, int] = {}
        self._clock = 0

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def put(self, key: str, value: str) -> None:
        self._write(key, value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)
        self._versions.pop(key, None)

    async def get_versioned(self, key: str) -> VersionedValue:
        return VersionedValue(self._data.get(key), self._versions.get(key))

    async def put_if_version(self, key: str, value: str,
                             expected_version: Optional[int]) -> bool:
        if self._versions.get(key) != expected_version:
            return False
        self._write(key, value)
        return True

    def _write(self, key: str, value: str):
        # Versions come from one monotonic clock so a key deleted and
        # re-created never reuses an old version token.
        self._clock += 1
        self._data[key] = value
        self._versions[key] = self._clock

    def keys(self) -> list[str]:
        """All stored keys (snapshot). Handy for inspection and tests."""
        return sorted(self._data)
