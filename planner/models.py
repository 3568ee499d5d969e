"""
Planner Records — Projects, Todos and their wire format
=========================================================
Dataclasses for the two stored entities plus the JSON encoding used for
every value written to the key-value store.

Stored records use camelCase field names (``projectId``, ``createdAt``,
``updatedAt``) so existing stores stay readable. Timestamps are UTC,
truncated to milliseconds, and written as ISO-8601 with a ``Z`` suffix.
Records normalize their timestamps on construction, so encode/decode is an
exact round trip for any value.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

from planner.errors import RecordDecodeError


class TodoStatus(str, Enum):
    """Lifecycle state of a todo."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TodoPriority(str, Enum):
    """How urgent a todo is."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ─────────────────────────────────────────────────────────────
#  Identifiers & Timestamps
# ─────────────────────────────────────────────────────────────

_ONE_MS = timedelta(milliseconds=1)


def new_id() -> str:
    """Random UUID4 string. Never reused."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Current UTC time truncated to whole milliseconds."""
    return normalize_timestamp(datetime.now(timezone.utc))


def normalize_timestamp(value: datetime) -> datetime:
    """Aware UTC, truncated to whole milliseconds. Naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def next_timestamp(previous: datetime) -> datetime:
    """A timestamp strictly later than ``previous``.

    Two updates landing in the same millisecond would otherwise share an
    ``updatedAt``; in that case the result is ``previous`` + 1 ms.
    """
    now = utc_now()
    if now <= previous:
        return previous + _ONE_MS
    return now


def format_timestamp(value: datetime) -> str:
    """``2025-01-01T12:00:00.000Z``"""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(text: str) -> datetime:
    if not isinstance(text, str):
        raise ValueError(f"timestamp must be a string, got {type(text).__name__}")
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    value = datetime.fromisoformat(text)
    return normalize_timestamp(value)


# ─────────────────────────────────────────────────────────────
#  Records
# ─────────────────────────────────────────────────────────────

@dataclass
class Project:
    """A named container for todos. Its id never changes after creation."""

    id: str
    name: str
    description: str = ""
    created_at: datetime = field(default_factory=utc_now)
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        self.created_at = normalize_timestamp(self.created_at)
        if self.updated_at is None:
            self.updated_at = self.created_at
        self.updated_at = normalize_timestamp(self.updated_at)

    @classmethod
    def create(cls, name: str, description: str = "") -> Project:
        """Origin of a project: fresh id, both timestamps set to now."""
        now = utc_now()
        return cls(id=new_id(), name=name, description=description or "",
                   created_at=now, updated_at=now)

    def to_dict(self) -> dict:
        """Serialize to the stored (camelCase) layout."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Project:
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            created_at=parse_timestamp(data["createdAt"]),
            updated_at=parse_timestamp(data["updatedAt"]),
        )

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, text: str, key: str = "project") -> Project:
        return _decode(cls, text, key)


@dataclass
class Todo:
    """A unit of work inside one project.

    ``project_id`` is a back-reference only; the project does not embed its
    todos, it lists their ids in a separate index.
    """

    id: str
    project_id: str
    title: str
    description: str = ""
    status: TodoStatus = TodoStatus.PENDING
    priority: TodoPriority = TodoPriority.MEDIUM
    created_at: datetime = field(default_factory=utc_now)
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        self.status = TodoStatus(self.status)
        self.priority = TodoPriority(self.priority)
        self.created_at = normalize_timestamp(self.created_at)
        if self.updated_at is None:
            self.updated_at = self.created_at
        self.updated_at = normalize_timestamp(self.updated_at)

    @classmethod
    def create(cls, project_id: str, title: str, description: str = "",
               priority: Optional[TodoPriority] = None) -> Todo:
        """New pending todo; priority defaults to medium."""
        now = utc_now()
        return cls(
            id=new_id(),
            project_id=project_id,
            title=title,
            description=description or "",
            status=TodoStatus.PENDING,
            priority=priority or TodoPriority.MEDIUM,
            created_at=now,
            updated_at=now,
        )

    def merged(self, **changes: Any) -> Todo:
        """Copy with only the non-None ``changes`` applied and ``updated_at`` bumped.

        Only ``title``, ``description``, ``status`` and ``priority`` may change.
        """
        editable = {"title", "description", "status", "priority"}
        unknown = set(changes) - editable
        if unknown:
            raise TypeError(f"Todo fields not editable: {sorted(unknown)}")
        supplied = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **supplied, updated_at=next_timestamp(self.updated_at))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Todo:
        return cls(
            id=data["id"],
            project_id=data["projectId"],
            title=data["title"],
            description=data.get("description", ""),
            status=TodoStatus(data.get("status", TodoStatus.PENDING.value)),
            priority=TodoPriority(data.get("priority", TodoPriority.MEDIUM.value)),
            created_at=parse_timestamp(data["createdAt"]),
            updated_at=parse_timestamp(data["updatedAt"]),
        )

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, text: str, key: str = "todo") -> Todo:
        return _decode(cls, text, key)


def _decode(cls, text: str, key: str):
    """Decode ``text`` into ``cls``, turning any malformed input into RecordDecodeError."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise RecordDecodeError(key, f"invalid JSON ({e})") from e
    if not isinstance(data, dict):
        raise RecordDecodeError(key, f"expected an object, got {type(data).__name__}")
    try:
        return cls.from_dict(data)
    except KeyError as e:
        raise RecordDecodeError(key, f"missing field {e}") from e
    except (TypeError, AttributeError, ValueError) as e:
        raise RecordDecodeError(key, str(e)) from e

