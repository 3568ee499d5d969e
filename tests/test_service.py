"""
Planner Test Suite — Planning Service
======================================
Tests for the nine operations: defaults, partial updates, cascading
deletes, NotFound handling, and tolerance of stale indexes.

Usage:
    python -m pytest tests/test_service.py -v
    python tests/test_service.py
"""
import sys
import os
import asyncio
import json
import tempfile
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from planner.config import PlannerConfig
from planner.errors import NotFoundError, StoreConfigError
from planner.models import Todo, TodoPriority, TodoStatus
from planner.service import PlanningService
from planner.stores.memory_store import MemoryStore


class ServiceTestCase(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.store = MemoryStore()
        self.service = PlanningService(self.store)


# ─────────────────────────────────────────────
#  Projects
# ─────────────────────────────────────────────

class TestProjects(ServiceTestCase):

    async def test_create_then_list_contains_id_once(self):
        project = await self.service.create_project("Launch")
        listed = await self.service.list_projects()
        self.assertEqual([p.id for p in listed].count(project.id), 1)

    async def test_create_defaults_description(self):
        project = await self.service.create_project("Launch")
        self.assertEqual(project.description, "")
        self.assertEqual(project.created_at, project.updated_at)

    async def test_create_writes_record_and_index(self):
        project = await self.service.create_project("Launch", "Q3 release")
        stored = json.loads(await self.store.get(f"project:{project.id}"))
        self.assertEqual(stored["name"], "Launch")
        self.assertEqual(stored["description"], "Q3 release")
        self.assertEqual(json.loads(await self.store.get("project:list")), [project.id])

    async def test_list_in_creation_order(self):
        a = await self.service.create_project("A")
        b = await self.service.create_project("B")
        self.assertEqual([p.id for p in await self.service.list_projects()], [a.id, b.id])

    async def test_get_new_project_has_no_todos(self):
        project = await self.service.create_project("Launch")
        result = await self.service.get_project(project.id)
        self.assertEqual(result["project"], project)
        self.assertEqual(result["todos"], [])

    async def test_get_project_includes_todos(self):
        project = await self.service.create_project("Launch")
        t1 = await self.service.create_todo(project.id, "one")
        t2 = await self.service.create_todo(project.id, "two")
        result = await self.service.get_project(project.id)
        self.assertEqual([t.id for t in result["todos"]], [t1.id, t2.id])

    async def test_get_missing_project(self):
        with self.assertRaises(NotFoundError) as ctx:
            await self.service.get_project("nope")
        self.assertEqual(str(ctx.exception), "Project with ID nope does not exist.")

    async def test_list_skips_dangling_index_entries(self):
        project = await self.service.create_project("Real")
        await self.store.put("project:list", json.dumps(["ghost", project.id]))
        with self.assertLogs("planner.service", level="WARNING"):
            listed = await self.service.list_projects()
        self.assertEqual([p.id for p in listed], [project.id])


class TestDeleteProject(ServiceTestCase):

    async def test_delete_cascades(self):
        project = await self.service.create_project("Launch")
        t1 = await self.service.create_todo(project.id, "one")
        t2 = await self.service.create_todo(project.id, "two")

        message = await self.service.delete_project(project.id)

        self.assertEqual(message, f"Project with ID {project.id} and all its todos have been deleted")
        self.assertEqual(await self.service.list_projects(), [])
        for todo_id in (t1.id, t2.id):
            with self.assertRaises(NotFoundError):
                await self.service.get_todo(todo_id)
        self.assertIsNone(await self.store.get(f"project:{project.id}:todos"))
        self.assertEqual(self.store.keys(), ["project:list"])

    async def test_delete_leaves_other_projects(self):
        keep = await self.service.create_project("Keep")
        kept_todo = await self.service.create_todo(keep.id, "stay")
        gone = await self.service.create_project("Gone")
        await self.service.delete_project(gone.id)
        self.assertEqual([p.id for p in await self.service.list_projects()], [keep.id])
        self.assertEqual(await self.service.get_todo(kept_todo.id), kept_todo)

    async def test_delete_spares_todo_misfiled_from_other_project(self):
        doomed = await self.service.create_project("Doomed")
        other = await self.service.create_project("Other")
        stray = await self.service.create_todo(other.id, "belongs to other")
        await self.service.index.append_todo_id(doomed.id, stray.id)

        await self.service.delete_project(doomed.id)

        self.assertEqual(await self.service.get_todo(stray.id), stray)
        self.assertEqual(await self.service.list_todos(other.id), [stray])
        self.assertIsNone(await self.store.get(f"project:{doomed.id}:todos"))

    async def test_delete_missing_project(self):
        with self.assertRaises(NotFoundError):
            await self.service.delete_project("nope")

    async def test_delete_tolerates_already_deleted_todos(self):
        project = await self.service.create_project("Launch")
        todo = await self.service.create_todo(project.id, "one")
        await self.store.delete(f"todo:{todo.id}")
        await self.service.delete_project(project.id)
        self.assertEqual(await self.service.list_projects(), [])

    async def test_retry_after_partial_failure_completes(self):
        project = await self.service.create_project("Launch")
        await self.service.create_todo(project.id, "one")

        # Simulate a crash after the todos and todo index were removed.
        for todo_id in await self.service.index.get_todo_index(project.id):
            await self.store.delete(f"todo:{todo_id}")
        await self.store.delete(f"project:{project.id}:todos")

        await self.service.delete_project(project.id)
        self.assertEqual(self.store.keys(), ["project:list"])
        self.assertEqual(await self.service.index.get_project_index(), [])


# ─────────────────────────────────────────────
#  Todos
# ─────────────────────────────────────────────

class TestTodos(ServiceTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.project = await self.service.create_project("Launch")

    async def test_create_defaults(self):
        todo = await self.service.create_todo(self.project.id, "Write docs")
        listed = await self.service.list_todos(self.project.id)
        self.assertEqual(listed, [todo])
        self.assertEqual(todo.status, TodoStatus.PENDING)
        self.assertEqual(todo.priority, TodoPriority.MEDIUM)
        self.assertEqual(todo.description, "")
        self.assertEqual(todo.project_id, self.project.id)

    async def test_create_with_priority_string(self):
        todo = await self.service.create_todo(self.project.id, "Urgent", priority="high")
        self.assertIs(todo.priority, TodoPriority.HIGH)

    async def test_create_in_missing_project(self):
        with self.assertRaises(NotFoundError):
            await self.service.create_todo("nope", "orphan")
        self.assertEqual([k for k in self.store.keys() if k.startswith("todo:")], [])

    async def test_get_todo(self):
        todo = await self.service.create_todo(self.project.id, "Write docs")
        self.assertEqual(await self.service.get_todo(todo.id), todo)

    async def test_get_missing_todo(self):
        with self.assertRaises(NotFoundError) as ctx:
            await self.service.get_todo("nope")
        self.assertEqual(str(ctx.exception), "Todo with ID nope does not exist.")

    async def test_update_only_status(self):
        todo = await self.service.create_todo(self.project.id, "Write docs", "readme",
                                              priority=TodoPriority.LOW)
        updated = await self.service.update_todo(todo.id, status="completed")
        self.assertEqual(updated.status, TodoStatus.COMPLETED)
        self.assertEqual(updated.title, "Write docs")
        self.assertEqual(updated.description, "readme")
        self.assertEqual(updated.priority, TodoPriority.LOW)
        self.assertEqual(updated.created_at, todo.created_at)
        self.assertGreater(updated.updated_at, todo.updated_at)
        self.assertEqual(await self.service.get_todo(todo.id), updated)

    async def test_successive_updates_keep_advancing(self):
        todo = await self.service.create_todo(self.project.id, "t")
        first = await self.service.update_todo(todo.id, title="t1")
        second = await self.service.update_todo(todo.id, title="t2")
        self.assertGreater(second.updated_at, first.updated_at)

    async def test_update_with_nothing_supplied_only_bumps_timestamp(self):
        todo = await self.service.create_todo(self.project.id, "t")
        updated = await self.service.update_todo(todo.id)
        self.assertEqual((updated.title, updated.status, updated.priority),
                         (todo.title, todo.status, todo.priority))
        self.assertGreater(updated.updated_at, todo.updated_at)

    async def test_update_empty_description_is_applied(self):
        todo = await self.service.create_todo(self.project.id, "t", "something")
        updated = await self.service.update_todo(todo.id, description="")
        self.assertEqual(updated.description, "")

    async def test_update_missing_todo(self):
        with self.assertRaises(NotFoundError):
            await self.service.update_todo("nope", title="x")

    async def test_list_filter_by_status(self):
        done = await self.service.create_todo(self.project.id, "done")
        await self.service.create_todo(self.project.id, "open")
        await self.service.update_todo(done.id, status=TodoStatus.COMPLETED)
        other = await self.service.create_project("Other")
        foreign = await self.service.create_todo(other.id, "foreign")
        await self.service.update_todo(foreign.id, status="completed")

        completed = await self.service.list_todos(self.project.id, status="completed")
        self.assertEqual([t.id for t in completed], [done.id])

    async def test_list_todos_of_missing_project(self):
        with self.assertRaises(NotFoundError):
            await self.service.list_todos("nope")

    async def test_list_skips_dangling_and_misfiled_todos(self):
        real = await self.service.create_todo(self.project.id, "real")
        misfiled = Todo.create("elsewhere", "wrong project")
        await self.store.put(f"todo:{misfiled.id}", misfiled.to_json())
        await self.store.put(f"project:{self.project.id}:todos",
                             json.dumps(["ghost", real.id, misfiled.id]))
        with self.assertLogs("planner.service", level="WARNING") as logs:
            listed = await self.service.list_todos(self.project.id)
        self.assertEqual(listed, [real])
        self.assertEqual(len(logs.records), 2)

    async def test_delete_todo(self):
        keep = await self.service.create_todo(self.project.id, "keep")
        drop = await self.service.create_todo(self.project.id, "drop")
        message = await self.service.delete_todo(drop.id)
        self.assertEqual(message, f"Todo with ID {drop.id} has been deleted")
        self.assertEqual(await self.service.index.get_todo_index(self.project.id), [keep.id])
        with self.assertRaises(NotFoundError):
            await self.service.get_todo(drop.id)

    async def test_delete_missing_todo(self):
        with self.assertRaises(NotFoundError):
            await self.service.delete_todo("nope")

    async def test_concurrent_creates_keep_every_id(self):
        todos = await asyncio.gather(*(
            self.service.create_todo(self.project.id, f"t{i}") for i in range(20)
        ))
        indexed = await self.service.index.get_todo_index(self.project.id)
        self.assertEqual(sorted(indexed), sorted(t.id for t in todos))


# ─────────────────────────────────────────────
#  Walkthrough & Wiring
# ─────────────────────────────────────────────

class TestScenario(ServiceTestCase):

    async def test_launch_walkthrough(self):
        pr1 = await self.service.create_project(name="Launch")
        self.assertEqual(pr1.description, "")

        t1 = await self.service.create_todo(project_id=pr1.id, title="Write docs")
        self.assertEqual((t1.status, t1.priority), (TodoStatus.PENDING, TodoPriority.MEDIUM))

        t1_done = await self.service.update_todo(todo_id=t1.id, status="completed")
        self.assertEqual(t1_done.status, TodoStatus.COMPLETED)
        self.assertEqual(t1_done.title, "Write docs")

        completed = await self.service.list_todos(project_id=pr1.id, status="completed")
        self.assertEqual([t.id for t in completed], [t1.id])

        await self.service.delete_project(project_id=pr1.id)
        with self.assertRaises(NotFoundError):
            await self.service.get_todo(t1.id)


class TestFromConfig(unittest.IsolatedAsyncioTestCase):

    async def test_json_store_persists_between_services(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            config = PlannerConfig(store="json", store_path=tmpdir)
            first = PlanningService.from_config(config)
            project = await first.create_project("Durable")

            second = PlanningService.from_config(config)
            self.assertEqual([p.id for p in await second.list_projects()], [project.id])

    def test_unknown_store(self):
        with self.assertRaises(StoreConfigError):
            PlanningService.from_config(PlannerConfig(store="nope"))

    def test_index_retries_forwarded(self):
        service = PlanningService.from_config(PlannerConfig(index_retries=9))
        self.assertEqual(service.index.retries, 9)


if __name__ == "__main__":
    unittest.main(verbosity=2)
