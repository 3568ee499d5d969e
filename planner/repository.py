"""
Entity Repository — Projects and Todos under deterministic keys
================================================================
Encodes records to JSON text and maps each one to exactly one key:

    project:{id}   → Project
    todo:{id}      → Todo

Absence is reported as ``None``; callers decide whether it is an error.
"""

from __future__ import annotations

import logging
from typing import Optional

from planner.models import Project, Todo
from planner.stores.base import KeyValueStore

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
#  Key Layout
# ─────────────────────────────────────────────────────────────

PROJECT_LIST_KEY = "project:list"


def project_key(project_id: str) -> str:
    return f"project:{project_id}"


def project_todos_key(project_id: str) -> str:
    return f"project:{project_id}:todos"


def todo_key(todo_id: str) -> str:
    return f"todo:{todo_id}"


# ─────────────────────────────────────────────────────────────
#  Repository
# ─────────────────────────────────────────────────────────────

class EntityRepository:
    """Read/write single Project and Todo records."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    # ─── Projects ─────────────────────────────────────────

    async def get_project(self, project_id: str) -> Optional[Project]:
        key = project_key(project_id)
        raw = await self.store.get(key)
        if raw is None:
            return None
        return Project.from_json(raw, key=key)

    async def exists_project(self, project_id: str) -> bool:
        return await self.store.get(project_key(project_id)) is not None

    async def put_project(self, project: Project) -> None:
        await self.store.put(project_key(project.id), project.to_json())
        logger.debug("wrote project %s", project.id)

    async def delete_project(self, project_id: str) -> None:
        await self.store.delete(project_key(project_id))
        logger.debug("deleted project %s", project_id)

    # ─── Todos ────────────────────────────────────────────

    async def get_todo(self, todo_id: str) -> Optional[Todo]:
        key = todo_key(todo_id)
        raw = await self.store.get(key)
        if raw is None:
            return None
        return Todo.from_json(raw, key=key)

    async def put_todo(self, todo: Todo) -> None:
        await self.store.put(todo_key(todo.id), todo.to_json())
        logger.debug("wrote todo %s (project %s)", todo.id, todo.project_id)

    async def delete_todo(self, todo_id: str) -> None:
        await self.store.delete(todo_key(todo_id))
        logger.debug("deleted todo %s", todo_id)
