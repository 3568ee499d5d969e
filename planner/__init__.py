"""
Planning Assistant — Projects and Todos over a Key-Value Store
===============================================================
Remote-callable project/todo management backed by any store that offers
get/put/delete by key.

Architecture:
    Layer 1: Stores            — Memory, JSON directory, SQLite backends
    Layer 2: Repository/Index  — Entity records + denormalized id lists
    Layer 3: Service           — The nine planning operations
    Boundary: Tools/Server/CLI — Validation, JSON-RPC/REST, command line
"""

__version__ = "0.1.0"

from planner.errors import (
    PlannerError, NotFoundError, ValidationError, ConflictError,
    RecordDecodeError, UnknownToolError, StoreConfigError,
)
from planner.models import Project, Todo, TodoStatus, TodoPriority
from planner.config import PlannerConfig
from planner.stores import KeyValueStore, StoreConfig, get_store, list_stores, register_store
from planner.repository import EntityRepository
from planner.index import IndexManager
from planner.service import PlanningService

__all__ = [
    "PlannerError", "NotFoundError", "ValidationError", "ConflictError",
    "RecordDecodeError", "UnknownToolError", "StoreConfigError",
    "Project", "Todo", "TodoStatus", "TodoPriority",
    "PlannerConfig",
    "KeyValueStore", "StoreConfig", "get_store", "list_stores", "register_store",
    "EntityRepository", "IndexManager", "PlanningService",
]
