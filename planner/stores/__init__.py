"""
Key-Value Store Layer
=====================
Backend-agnostic async key-value interface.
Supports in-memory, JSON-directory, and SQLite backends.
"""

from planner.stores.base import KeyValueStore, StoreConfig, VersionedValue
from planner.stores.registry import get_store, list_stores, register_store

__all__ = [
    "KeyValueStore", "StoreConfig", "VersionedValue",
    "get_store", "list_stores", "register_store",
]
