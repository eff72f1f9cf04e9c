from __future__ import annotations

from datetime import datetime
from typing import TypedDict
from uuid import UUID


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A lightweight domain model representing a stored Task, shared by every
    storage backend.

    Fields:
    - id: UUID assigned by the server at creation, never reused
    - title: 1..255 characters, trimmed on input via the validator
    - completed: Boolean completion flag (False at creation)
    - created_at: UTC creation timestamp, never mutated
    - updated_at: UTC timestamp of the last successful mutation
    """

    id: UUID
    title: str
    completed: bool
    created_at: datetime
    updated_at: datetime
