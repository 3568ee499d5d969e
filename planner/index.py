"""
Index Manager — Secondary id lists kept beside the entity records
==================================================================
The store has no scan or query, so the planner enumerates entities through
two kinds of index value, each a JSON array of ids under one key:

    project:list          → every project id
    project:{id}:todos    → the todo ids of one project

The store only replaces whole values, so every mutation is a
read-modify-write of the full list. Two safeguards keep concurrent writers
from dropping each other's ids:

    1. An in-process asyncio.Lock per index key serializes coroutines.
    2. When the store supports compare-and-swap, the write is conditional
       on the version that was read, and retried on conflict. This also
       covers writers in other processes.

Without compare-and-swap, writers in different processes sharing one store
can still lose an update (last writer wins on the whole list).
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Callable, Optional

from planner.errors import ConflictError, RecordDecodeError
from planner.repository import PROJECT_LIST_KEY, project_todos_key
from planner.stores.base import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_INDEX_RETRIES = 5


def _decode_ids(raw: Optional[str], key: str) -> list[str]:
    if raw is None:
        return []
    try:
        ids = json.loads(raw)
    except ValueError as e:
        raise RecordDecodeError(key, f"invalid JSON ({e})") from e
    if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
        raise RecordDecodeError(key, "expected a list of id strings")
    return ids


def _encode_ids(ids: list[str]) -> str:
    return json.dumps(ids)


def _appending(item: str) -> Callable[[list[str]], list[str]]:
    # Set-like: an id already present is not added twice.
    return lambda ids: ids if item in ids else ids + [item]


def _removing(item: str) -> Callable[[list[str]], list[str]]:
    return lambda ids: [i for i in ids if i != item]


class IndexManager:
    """Maintains the project list and the per-project todo lists."""

    def __init__(self, store: KeyValueStore, retries: int = DEFAULT_INDEX_RETRIES):
        if retries < 1:
            raise ValueError("retries must be at least 1")
        self.store = store
        self.retries = retries
        self._locks: dict[str, asyncio.Lock] = {}

    # ─── Project index ────────────────────────────────────

    async def get_project_index(self) -> list[str]:
        return await self._read(PROJECT_LIST_KEY)

    async def append_project_id(self, project_id: str) -> None:
        await self._mutate(PROJECT_LIST_KEY, _appending(project_id))

    async def remove_project_id(self, project_id: str) -> None:
        await self._mutate(PROJECT_LIST_KEY, _removing(project_id))

    # ─── Todo indexes ─────────────────────────────────────

    async def get_todo_index(self, project_id: str) -> list[str]:
        return await self._read(project_todos_key(project_id))

    async def append_todo_id(self, project_id: str, todo_id: str) -> None:
        await self._mutate(project_todos_key(project_id), _appending(todo_id))

    async def remove_todo_id(self, project_id: str, todo_id: str) -> None:
        await self._mutate(project_todos_key(project_id), _removing(todo_id))

    async def drop_todo_index(self, project_id: str) -> None:
        """Delete a project's whole todo list. No-op if it was never written.

        The key's lock stays registered: a waiter woken by its release must
        find the same lock as any later writer.
        """
        key = project_todos_key(project_id)
        async with self._lock_for(key):
            await self.store.delete(key)

    # ─── Read-modify-write ────────────────────────────────

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def _read(self, key: str) -> list[str]:
        # Always the latest stored value; index snapshots are never cached.
        return _decode_ids(await self.store.get(key), key)

    async def _mutate(self, key: str, change: Callable[[list[str]], list[str]]) -> list[str]:
        """Apply ``change`` to the id list under ``key`` and store the result.

        Returns:
            The list as stored after the mutation.

        Raises:
            ConflictError: If compare-and-swap lost ``self.retries`` times.
        """
        async with self._lock_for(key):
            if not self.store.supports_cas:
                ids = await self._read(key)
                updated = change(ids)
                if updated != ids:
                    await self.store.put(key, _encode_ids(updated))
                return updated

            for attempt in range(1, self.retries + 1):
                current = await self.store.get_versioned(key)
                ids = _decode_ids(current.value, key)
                updated = change(ids)
                if updated == ids:
                    return ids
                if await self.store.put_if_version(key, _encode_ids(updated), current.version):
                    return updated
                logger.warning("index %s changed underneath us (attempt %d/%d), retrying",
                               key, attempt, self.retries)
            raise ConflictError(key, self.retries)
