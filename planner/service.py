"""
Planning Service — the callable operations
===========================================
Each operation is a fixed sequence of repository and index calls. None of
them is atomic across keys: a failure part-way leaves whatever steps already
ran in place. Steps are ordered and idempotent so that retrying a failed
delete finishes the job.

Operations:
    create_project / list_projects / get_project / delete_project
    create_todo / update_todo / get_todo / list_todos / delete_todo

Resilience policy:
    Listing operations walk an index and fetch every member. An index entry
    whose record is gone (index and records diverged) is skipped with a
    warning, never treated as fatal.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Union

from planner.config import PlannerConfig
from planner.errors import NotFoundError
from planner.index import DEFAULT_INDEX_RETRIES, IndexManager
from planner.models import Project, Todo, TodoPriority, TodoStatus
from planner.repository import EntityRepository
from planner.stores.base import KeyValueStore
from planner.stores.registry import get_store

logger = logging.getLogger(__name__)

StatusArg = Union[TodoStatus, str, None]
PriorityArg = Union[TodoPriority, str, None]


class PlanningService:
    """Projects and todos over an injected key-value store."""

    def __init__(self, store: KeyValueStore, index_retries: int = DEFAULT_INDEX_RETRIES):
        self.store = store
        self.repo = EntityRepository(store)
        self.index = IndexManager(store, retries=index_retries)

    @classmethod
    def from_config(cls, config: PlannerConfig) -> PlanningService:
        """Instantiate the configured store backend and wrap it."""
        store = get_store(config.to_store_config())
        logger.info("using %s store%s", store.name,
                    f" at {config.store_path}" if config.store_path else "")
        return cls(store, index_retries=config.index_retries)

    # ─────────────────────────────────────────────────────
    #  Projects
    # ─────────────────────────────────────────────────────

    async def create_project(self, name: str, description: Optional[str] = None) -> Project:
        project = Project.create(name, description or "")
        await self.repo.put_project(project)
        await self.index.append_project_id(project.id)
        logger.info("created project %s (%r)", project.id, project.name)
        return project

    async def list_projects(self) -> list[Project]:
        project_ids = await self.index.get_project_index()
        projects = []
        for project_id in project_ids:
            project = await self.repo.get_project(project_id)
            if project is None:
                logger.warning("project index lists %s but no record exists; skipping", project_id)
                continue
            projects.append(project)
        logger.debug("listed %d projects", len(projects))
        return projects

    async def get_project(self, project_id: str) -> dict:
        """Return ``{"project": Project, "todos": [Todo, ...]}``."""
        project = await self._require_project(project_id)
        todos = await self._todos_of(project_id)
        return {"project": project, "todos": todos}

    async def delete_project(self, project_id: str) -> str:
        """Cascade: todos, then the todo index, then the record, then the project index entry."""
        await self._require_project(project_id)

        todos = await self._todos_of(project_id)
        for todo in todos:
            await self.repo.delete_todo(todo.id)
        await self.index.drop_todo_index(project_id)
        await self.repo.delete_project(project_id)
        await self.index.remove_project_id(project_id)

        logger.info("deleted project %s with %d todos", project_id, len(todos))
        return f"Project with ID {project_id} and all its todos have been deleted"

    # ─────────────────────────────────────────────────────
    #  Todos
    # ─────────────────────────────────────────────────────

    async def create_todo(self, project_id: str, title: str,
                          description: Optional[str] = None,
                          priority: PriorityArg = None) -> Todo:
        await self._require_project(project_id)
        todo = Todo.create(
            project_id,
            title,
            description=description or "",
            priority=TodoPriority(priority) if priority is not None else None,
        )
        await self.repo.put_todo(todo)
        await self.index.append_todo_id(project_id, todo.id)
        logger.info("created todo %s in project %s", todo.id, project_id)
        return todo

    async def update_todo(self, todo_id: str, title: Optional[str] = None,
                          description: Optional[str] = None,
                          status: StatusArg = None,
                          priority: PriorityArg = None) -> Todo:
        """Merge only the supplied fields into the stored todo.

        Arguments left as None are untouched; ``updated_at`` always advances.
        """
        todo = await self._require_todo(todo_id)
        updated = todo.merged(
            title=title,
            description=description,
            status=TodoStatus(status) if status is not None else None,
            priority=TodoPriority(priority) if priority is not None else None,
        )
        await self.repo.put_todo(updated)
        logger.info("updated todo %s", todo_id)
        return updated

    async def get_todo(self, todo_id: str) -> Todo:
        return await self._require_todo(todo_id)

    async def list_todos(self, project_id: str, status: StatusArg = None) -> list[Todo]:
        """Todos of one project in index order, optionally only those with ``status``.

        Raises:
            NotFoundError: If the project itself does not exist.
        """
        if not await self.repo.exists_project(project_id):
            raise NotFoundError("project", project_id)
        todos = await self._todos_of(project_id)
        if status is not None:
            wanted = TodoStatus(status)
            todos = [t for t in todos if t.status == wanted]
        return todos

    async def delete_todo(self, todo_id: str) -> str:
        todo = await self._require_todo(todo_id)
        await self.index.remove_todo_id(todo.project_id, todo_id)
        await self.repo.delete_todo(todo_id)
        logger.info("deleted todo %s from project %s", todo_id, todo.project_id)
        return f"Todo with ID {todo_id} has been deleted"

    # ─────────────────────────────────────────────────────
    #  Helpers
    # ─────────────────────────────────────────────────────

    async def _require_project(self, project_id: str) -> Project:
        project = await self.repo.get_project(project_id)
        if project is None:
            raise NotFoundError("project", project_id)
        return project

    async def _require_todo(self, todo_id: str) -> Todo:
        todo = await self.repo.get_todo(todo_id)
        if todo is None:
            raise NotFoundError("todo", todo_id)
        return todo

    async def _todos_of(self, project_id: str) -> list[Todo]:
        todo_ids = await self.index.get_todo_index(project_id)
        fetched = await asyncio.gather(*(self.repo.get_todo(t) for t in todo_ids))
        todos = []
        for todo_id, todo in zip(todo_ids, fetched):
            if todo is None:
                logger.warning("todo index of %s lists %s but no record exists; skipping",
                               project_id, todo_id)
                continue
            if todo.project_id != project_id:
                logger.warning("todo %s is indexed under %s but belongs to %s; skipping",
                               todo_id, project_id, todo.project_id)
                continue
            todos.append(todo)
        return todos
