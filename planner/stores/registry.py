"""
Store Registry — Discover, Register, and Instantiate Key-Value Stores
======================================================================
Central registry that maps backend names to their implementation classes.
Built-in backends are imported lazily on first use.
"""

from __future__ import annotations

from typing import Type

from planner.errors import StoreConfigError
from planner.stores.base import KeyValueStore, StoreConfig

# ─────────────────────────────────────────────────────────────
#  Registry
# ─────────────────────────────────────────────────────────────

_REGISTRY: dict[str, Type[KeyValueStore]] = {}

BUILTIN_STORES = ["memory", "json", "sqlite"]


def register_store(name: str, store_class: Type[KeyValueStore]):
    """Register a store class under a name."""
    _REGISTRY[name.lower()] = store_class


def get_store(config: StoreConfig) -> KeyValueStore:
    """Instantiate a store from config.

    Args:
        config: StoreConfig with backend set.

    Returns:
        An instantiated KeyValueStore subclass.

    Raises:
        StoreConfigError: If the backend is unknown or misconfigured.
    """
    name = config.backend.lower()

    if name not in _REGISTRY:
        _try_lazy_import(name)

    if name not in _REGISTRY:
        available = sorted(_REGISTRY.keys()) or ["(none registered)"]
        raise StoreConfigError(
            f"Unknown store backend '{name}'. Available: {available}. "
            f"Register a custom backend with register_store()."
        )

    return _REGISTRY[name](config)


def list_stores() -> list[str]:
    """List all registered backend names."""
    for name in BUILTIN_STORES:
        if name not in _REGISTRY:
            _try_lazy_import(name)
    return sorted(_REGISTRY.keys())


def _try_lazy_import(name: str):
    """Import and register a built-in backend."""
    if name == "memory":
        from planner.stores.memory_store import MemoryStore
        register_store("memory", MemoryStore)
    elif name == "json":
        from planner.stores.json_store import JsonFileStore
        register_store("json", JsonFileStore)
    elif name == "sqlite":
        from planner.stores.sqlite_store import SqliteStore
        register_store("sqlite", SqliteStore)
