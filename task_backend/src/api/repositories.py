from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from threading import RLock
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple
from uuid import UUID

from fastapi import Request

from .models import TaskEntity
from .schemas import TaskCreate, TaskReplace
from .utils import utc_now

if TYPE_CHECKING:
    from .settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
# Largest OFFSET a 64-bit signed SQL integer can hold.
MAX_OFFSET = 2 ** 63 - 1
SORT_FIELDS = ("created_at", "updated_at", "title")
SORT_ORDERS = ("asc", "desc")
DEFAULT_SORT_BY = "created_at"
DEFAULT_SORT_ORDER = "desc"


@dataclass(frozen=True)
class ListQuery:
    """
    Query parameters for listing tasks.
    """
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    completed: Optional[bool] = None
    sort_by: str = DEFAULT_SORT_BY  # allowed: created_at, updated_at, title
    sort_order: str = DEFAULT_SORT_ORDER  # allowed: asc, desc

    @property
    def offset(self) -> int:
        return min((max(self.page, 1) - 1) * max(self.limit, 0), MAX_OFFSET)


def resolve_sort(query: ListQuery) -> Tuple[str, bool]:
    """
    Map the requested sort onto the allow-list.

    Returns (field, descending). Unknown fields or directions fall back to
    created_at / desc instead of failing.
    """
    field = query.sort_by if query.sort_by in SORT_FIELDS else DEFAULT_SORT_BY
    order = (query.sort_order or "").lower()
    if order not in SORT_ORDERS:
        order = DEFAULT_SORT_ORDER
    return field, order == "desc"


# PUBLIC_INTERFACE
class Repository(ABC):
    """Abstract repository contract for task storage backends."""

    @abstractmethod
    def create(self, data: TaskCreate) -> TaskEntity:
        """Create and return a new TaskEntity with a fresh id and completed=False."""

    @abstractmethod
    def get(self, task_id: UUID) -> Optional[TaskEntity]:
        """Return a TaskEntity by id, or None if not found."""

    @abstractmethod
    def replace(self, task_id: UUID, data: TaskReplace) -> Optional[TaskEntity]:
        """Overwrite title and completed. Return the updated entity or None if not found."""

    @abstractmethod
    def patch_completed(self, task_id: UUID, completed: Optional[bool] = None) -> Optional[TaskEntity]:
        """
        Set ``completed`` to the given value, or flip it when ``completed`` is None.
        Return the updated entity or None (without writing) if not found.
        """

    @abstractmethod
    def delete(self, task_id: UUID) -> bool:
        """Delete a TaskEntity by id. Return True if deleted, False if not found."""

    @abstractmethod
    def list(self, query: Optional[ListQuery] = None) -> List[TaskEntity]:
        """
        Return one page of TaskEntities.
        - Filter by completed
        - Sorting by created_at/updated_at/title (asc/desc)
        - Offset pagination: (page - 1) * limit
        """

    def initialize(self) -> None:
        """Prepare the backend and verify it is reachable. Raises StoreError when it is not."""

    def close(self) -> None:
        """Release any resources held by the backend."""


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing and local runs.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[UUID, TaskEntity] = {}

    def _new_id(self) -> UUID:
        with self._lock:
            while True:
                candidate = uuid.uuid4()
                if candidate not in self._items:
                    return candidate

    def create(self, data: TaskCreate) -> TaskEntity:
        now = utc_now()
        entity: TaskEntity = {
            "id": self._new_id(),
            "title": data.title,
            "completed": False,
            "created_at": now,
            "updated_at": now,
        }
        with self._lock:
            self._items[entity["id"]] = entity
        return entity.copy()

    def get(self, task_id: UUID) -> Optional[TaskEntity]:
        with self._lock:
            item = self._items.get(task_id)
            return None if item is None else item.copy()

    def _write(self, task_id: UUID, **changes) -> Optional[TaskEntity]:
        with self._lock:
            existing = self._items.get(task_id)
            if existing is None:
                return None
            updated = existing.copy()
            updated.update(changes)  # type: ignore[typeddict-item]
            updated["updated_at"] = utc_now()
            self._items[task_id] = updated
            return updated.copy()

    def replace(self, task_id: UUID, data: TaskReplace) -> Optional[TaskEntity]:
        return self._write(task_id, title=data.title, completed=data.completed)

    def patch_completed(self, task_id: UUID, completed: Optional[bool] = None) -> Optional[TaskEntity]:
        if completed is not None:
            return self._write(task_id, completed=completed)
        # Read and write under one lock so concurrent toggles both land.
        with self._lock:
            current = self._items.get(task_id)
            if current is None:
                return None
            return self._write(task_id, completed=not current["completed"])

    def delete(self, task_id: UUID) -> bool:
        with self._lock:
            return self._items.pop(task_id, None) is not None

    def list(self, query: Optional[ListQuery] = None) -> List[TaskEntity]:
        q = query or ListQuery()
        field, descending = resolve_sort(q)
        with self._lock:
            items = list(self._items.values())

            if q.completed is not None:
                items = [t for t in items if t["completed"] == q.completed]

            items_sorted = sorted(items, key=lambda t: t[field], reverse=descending)  # type: ignore[literal-required]

            start = q.offset
            page = items_sorted[start:start + max(q.limit, 0)]

            # Return copies to avoid external mutation
            return [t.copy() for t in page]


# PUBLIC_INTERFACE
def build_repository(settings: "Settings") -> Repository:
    """
    Return the repository configured by settings.
    - memory: InMemoryRepository
    - sql: SQLRepository over a pooled SQLAlchemy engine
    """
    if settings.persistence_backend == "memory":
        logger.info("Using in-memory task repository")
        return InMemoryRepository()

    from .db import SQLRepository, create_db_engine

    return SQLRepository(create_db_engine(settings))


# PUBLIC_INTERFACE
def get_repository(request: Request) -> Repository:
    """FastAPI dependency returning the process-wide repository created at startup."""
    return request.app.state.repository
