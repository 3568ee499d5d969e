"""
Planner Errors
==============
Exceptions the planning core raises on purpose. Anything else (I/O errors,
sqlite errors) comes from the store backend and propagates unchanged.
"""

from __future__ import annotations

from typing import Any, Optional


class PlannerError(Exception):
    """Base class for all deliberate planner failures."""


class NotFoundError(PlannerError):
    """A referenced project or todo has no stored record."""

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind.capitalize()} with ID {entity_id} does not exist.")


class ValidationError(PlannerError):
    """Tool arguments were malformed or a required one was missing."""

    def __init__(self, message: str, errors: Optional[list[dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []


class ConflictError(PlannerError):
    """Compare-and-swap on an index key kept losing to other writers."""

    def __init__(self, key: str, attempts: int):
        self.key = key
        self.attempts = attempts
        super().__init__(
            f"Index '{key}' changed concurrently {attempts} times in a row; giving up."
        )


class RecordDecodeError(PlannerError):
    """A stored value could not be decoded into a record."""

    def __init__(self, key: str, reason: str):
        self.key = key
        super().__init__(f"Stored value under '{key}' is unreadable: {reason}")


class UnknownToolError(PlannerError):
    """The boundary was asked to run a tool that is not in the catalogue."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown tool '{name}'")


class StoreConfigError(ValueError):
    """Unknown store backend or unusable store settings."""
