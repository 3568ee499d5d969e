"""
Key-Value Store Base — Abstract Interface
==========================================
Backend-agnostic async interface over get/put/delete by key.
All stores (memory, json, sqlite) implement this.

Values are opaque text. Writes replace the whole value for a key; there is
no append primitive. Backends that can detect concurrent writers expose a
versioned read and a compare-and-swap write (``supports_cas``).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class StoreConfig:
    """Configuration for a key-value store backend.

    Only populate the fields that apply to your chosen backend.
    """

    backend: str = "memory"     # "memory", "json", "sqlite"
    path: str = ""              # Directory (json) or database file (sqlite)
    extra: dict[str, Any] = field(default_factory=dict)  # Backend-specific options


@dataclass
class VersionedValue:
    """A stored value together with the version token it was read at.

    ``version`` is ``None`` when the key does not exist; a compare-and-swap
    against ``None`` means "create only if still absent".
    """

    value: Optional[str]
    version: Optional[int] = None

    @property
    def exists(self) -> bool:
        return self.version is not None


class KeyValueStore(ABC):
    """Abstract base class for key-value stores.

    All stores must implement:
        - get(): Read the value for a key, None when absent
        - put(): Overwrite the value for a key
        - delete(): Remove a key; removing an absent key is a no-op

    Stores that support optimistic concurrency also override
    ``get_versioned()`` and ``put_if_version()`` and set ``supports_cas``.
    ``keys()`` is an optional inspection hook; the built-in backends provide it.
    """

    supports_cas: bool = False

    def __init__(self, config: Optional[StoreConfig] = None):
        self.config = config or StoreConfig()

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the value stored under ``key`` or None."""
        ...

    @abstractmethod
    async def put(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``. Must not fail if the key is already gone."""
        ...

    async def get_versioned(self, key: str) -> VersionedValue:
        """Read ``key`` with its version token.

        Raises:
            NotImplementedError: If the backend does not support CAS.
        """
        raise NotImplementedError(f"{self.name} store does not support versioned reads")

    async def put_if_version(self, key: str, value: str,
                             expected_version: Optional[int]) -> bool:
        """Write only if ``key`` is still at ``expected_version``.

        Returns:
            True if the write happened, False if another writer got there first.

        Raises:
            NotImplementedError: If the backend does not support CAS.
        """
        raise NotImplementedError(f"{self.name} store does not support compare-and-swap")

    def keys(self) -> list[str]:
        """Sorted snapshot of every stored key, for inspection and tests.

        Not used by the planner itself. All built-in backends implement it.

        Raises:
            NotImplementedError: If the backend cannot enumerate its keys.
        """
        raise NotImplementedError(f"{self.name} store cannot list its keys")

    async def close(self) -> None:
        """Release backend resources. Default: nothing to release."""

    @property
    def name(self) -> str:
        return self.config.backend
