"""
Tool Catalogue — the operations as remote-callable tools
=========================================================
Boundary between a transport (HTTP/JSON-RPC, CLI) and the PlanningService.
Each tool has a pydantic argument model; arguments are validated here
before the core runs, and results are rendered as text payloads:

    success → {"content": [{"type": "text", "text": "..."}]}
    failure → {"content": [{"type": "text", "text": "..."}], "isError": true}

Only PlannerError becomes an error payload. Invalid arguments raise
ValidationError; anything else propagates to the transport.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Type

import pydantic
from pydantic import BaseModel, Field

from planner.errors import PlannerError, UnknownToolError, ValidationError
from planner.models import Project, Todo, TodoPriority, TodoStatus
from planner.service import PlanningService

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
#  Argument Models
# ─────────────────────────────────────────────────────────────

class CreateProjectArgs(BaseModel):
    name: str = Field(description="The name of the project")
    description: Optional[str] = Field(None, description="A brief description of the project")


class ListProjectsArgs(BaseModel):
    pass


class ProjectIdArgs(BaseModel):
    project_id: str = Field(description="The ID of the project")


class CreateTodoArgs(BaseModel):
    project_id: str = Field(description="The ID of the project")
    title: str = Field(description="The title of the todo item")
    description: Optional[str] = Field(None, description="A brief description of the todo item")
    priority: Optional[TodoPriority] = Field(None, description="The priority level of the todo item")


class UpdateTodoArgs(BaseModel):
    todo_id: str = Field(description="The ID of the todo item")
    title: Optional[str] = Field(None, description="The new title of the todo item")
    description: Optional[str] = Field(None, description="The new description of the todo item")
    status: Optional[TodoStatus] = Field(None, description="The new status of the todo item")
    priority: Optional[TodoPriority] = Field(None, description="The new priority level of the todo item")


class TodoIdArgs(BaseModel):
    todo_id: str = Field(description="The ID of the todo item")


class ListTodosArgs(BaseModel):
    project_id: str = Field(description="The ID of the project")
    status: Optional[TodoStatus] = Field(None, description="Filter todos by status")


# ─────────────────────────────────────────────────────────────
#  Results
# ─────────────────────────────────────────────────────────────

@dataclass
class ToolResult:
    """Text outcome of one tool call."""

    text: str
    is_error: bool = False
    error: Optional[PlannerError] = None  # Not part of the payload

    def to_payload(self) -> dict:
        payload: dict[str, Any] = {"content": [{"type": "text", "text": self.text}]}
        if self.is_error:
            payload["isError"] = True
        return payload


def render(result: Any) -> str:
    """Pretty JSON for records and lists of records; strings pass through."""
    if isinstance(result, str):
        return result
    return json.dumps(_plain(result), indent=2)


def _plain(value: Any) -> Any:
    if isinstance(value, (Project, Todo)):
        return value.to_dict()
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


# ─────────────────────────────────────────────────────────────
#  Catalogue
# ─────────────────────────────────────────────────────────────

Handler = Callable[[PlanningService, Any], Awaitable[Any]]


@dataclass
class Tool:
    name: str
    description: str
    args_model: Type[BaseModel]
    handler: Handler

    def input_schema(self) -> dict:
        return self.args_model.model_json_schema()

    def describe(self) -> dict:
        """Listing entry: name, description, JSON schema of the arguments."""
        return {"name": self.name, "description": self.description,
                "inputSchema": self.input_schema()}


TOOLS: dict[str, Tool] = {}


def _tool(name: str, description: str, args_model: Type[BaseModel]):
    def register(handler: Handler) -> Handler:
        TOOLS[name] = Tool(name, description, args_model, handler)
        return handler
    return register


@_tool("create_project", "Create a new project", CreateProjectArgs)
async def _create_project(service: PlanningService, args: CreateProjectArgs):
    return await service.create_project(args.name, args.description)


@_tool("list_projects", "List all projects", ListProjectsArgs)
async def _list_projects(service: PlanningService, args: ListProjectsArgs):
    return await service.list_projects()


@_tool("get_project", "Get a specific project by ID, with its todos", ProjectIdArgs)
async def _get_project(service: PlanningService, args: ProjectIdArgs):
    return await service.get_project(args.project_id)


@_tool("delete_project", "Delete a project and all its todos", ProjectIdArgs)
async def _delete_project(service: PlanningService, args: ProjectIdArgs):
    return await service.delete_project(args.project_id)


@_tool("create_todo", "Create a new todo item", CreateTodoArgs)
async def _create_todo(service: PlanningService, args: CreateTodoArgs):
    return await service.create_todo(args.project_id, args.title,
                                     description=args.description, priority=args.priority)


@_tool("update_todo", "Update a todo item", UpdateTodoArgs)
async def _update_todo(service: PlanningService, args: UpdateTodoArgs):
    return await service.update_todo(args.todo_id, title=args.title,
                                     description=args.description,
                                     status=args.status, priority=args.priority)


@_tool("get_todo", "Get a specific todo by ID", TodoIdArgs)
async def _get_todo(service: PlanningService, args: TodoIdArgs):
    return await service.get_todo(args.todo_id)


@_tool("list_todos", "List all todos in a project", ListTodosArgs)
async def _list_todos(service: PlanningService, args: ListTodosArgs):
    return await service.list_todos(args.project_id, status=args.status)


@_tool("delete_todo", "Delete a todo from its project", TodoIdArgs)
async def _delete_todo(service: PlanningService, args: TodoIdArgs):
    return await service.delete_todo(args.todo_id)


def list_tools() -> list[Tool]:
    return list(TOOLS.values())


def get_tool(name: str) -> Tool:
    try:
        return TOOLS[name]
    except KeyError:
        raise UnknownToolError(name) from None


def validate_arguments(tool: Tool, arguments: Optional[dict]) -> BaseModel:
    """Parse raw arguments into the tool's model.

    Raises:
        ValidationError: With pydantic's error list attached.
    """
    try:
        return tool.args_model.model_validate(arguments or {})
    except pydantic.ValidationError as e:
        errors = json.loads(e.json())
        fields = ", ".join(".".join(str(p) for p in err.get("loc", ())) or "(arguments)"
                           for err in errors)
        raise ValidationError(f"Invalid arguments for '{tool.name}': {fields}", errors) from e


async def call_tool(service: PlanningService, name: str,
                    arguments: Optional[dict] = None) -> ToolResult:
    """Validate, run, and render one tool call.

    Raises:
        UnknownToolError: If ``name`` is not in the catalogue.
        ValidationError: If ``arguments`` do not fit the tool's model.
    """
    tool = get_tool(name)
    args = validate_arguments(tool, arguments)
    try:
        result = await tool.handler(service, args)
    except PlannerError as e:
        logger.info("tool %s failed: %s", name, e)
        return ToolResult(str(e), is_error=True, error=e)
    return ToolResult(render(result))
