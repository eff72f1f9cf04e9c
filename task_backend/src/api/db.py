from __future__ import annotations

import logging
import os
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Generator, List, Optional
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    MetaData,
    String,
    Table,
    Uuid,
    create_engine,
    delete,
    false,
    insert,
    not_,
    select,
    text,
    update,
)
from sqlalchemy.engine import Connection, Engine, RowMapping, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from .errors import StoreError
from .models import TaskEntity
from .repositories import ListQuery, Repository, resolve_sort
from .schemas import TITLE_MAX_LENGTH, TaskCreate, TaskReplace
from .settings import Settings
from .utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)

metadata = MetaData()

tasks = Table(
    "tasks",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True),
    Column("title", String(TITLE_MAX_LENGTH), nullable=False),
    Column("completed", Boolean, nullable=False, default=False, server_default=false()),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Index("idx_tasks_completed", "completed"),
    Index("idx_tasks_created_at", "created_at"),
    Index("idx_tasks_updated_at", "updated_at"),
    Index("idx_tasks_title", "title"),
)

# Sort requests are resolved to these column objects; caller strings never reach the SQL text.
_SORT_COLUMNS = {
    "created_at": tasks.c.created_at,
    "updated_at": tasks.c.updated_at,
    "title": tasks.c.title,
}


# PUBLIC_INTERFACE
def create_db_engine(settings: Settings) -> Engine:
    """
    Create the process-wide SQLAlchemy engine.

    File and server databases get a bounded QueuePool: DB_POOL_SIZE connections
    (+ DB_MAX_OVERFLOW), and callers waiting longer than DB_POOL_TIMEOUT seconds
    for a connection fail instead of queueing. PostgreSQL connections also get
    a server-side statement timeout.
    """
    url = make_url(settings.database_url)
    kwargs: Dict[str, Any] = {"echo": settings.db_echo, "pool_pre_ping": True}
    connect_args: Dict[str, Any] = {}

    backend = url.get_backend_name()
    in_memory = backend == "sqlite" and (not url.database or url.database == ":memory:")
    if in_memory:
        # One shared connection, otherwise every thread sees its own empty database.
        kwargs["poolclass"] = StaticPool
        connect_args["check_same_thread"] = False
    else:
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
        )
        if backend == "sqlite":
            os.makedirs(os.path.dirname(os.path.abspath(url.database)), exist_ok=True)
        elif backend == "postgresql" and settings.db_statement_timeout_ms:
            connect_args["options"] = f"-c statement_timeout={settings.db_statement_timeout_ms}"

    if connect_args:
        kwargs["connect_args"] = connect_args
    logger.info("Creating database engine for %s", url.render_as_string(hide_password=True))
    return create_engine(url, **kwargs)


class SQLRepository(Repository):
    """
    Relational repository implementing the Repository interface with SQLAlchemy Core.

    Each operation checks a connection out of the engine's pool for the span of
    one transaction and returns it afterwards.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    @contextmanager
    def _transaction(self, operation: str) -> Generator[Connection, None, None]:
        try:
            with self._engine.begin() as conn:
                yield conn
        except SQLAlchemyError as exc:
            raise StoreError(operation) from exc

    @staticmethod
    def _row_to_entity(row: RowMapping) -> TaskEntity:
        return {
            "id": row["id"],
            "title": row["title"],
            "completed": bool(row["completed"]),
            "created_at": ensure_utc(row["created_at"]),
            "updated_at": ensure_utc(row["updated_at"]),
        }

    def _fetch(self, conn: Connection, task_id: UUID) -> Optional[TaskEntity]:
        row = conn.execute(select(tasks).where(tasks.c.id == task_id)).mappings().first()
        return self._row_to_entity(row) if row else None

    def initialize(self) -> None:
        with self._transaction("initialize") as conn:
            metadata.create_all(conn)
            conn.execute(text("SELECT 1"))
        logger.info("Database connection verified")

    def create(self, data: TaskCreate) -> TaskEntity:
        now = utc_now()
        new_id = uuid.uuid4()
        with self._transaction("create") as conn:
            conn.execute(
                insert(tasks).values(
                    id=new_id,
                    title=data.title,
                    completed=False,
                    created_at=now,
                    updated_at=now,
                )
            )
            created = self._fetch(conn, new_id)
            assert created is not None
            return created

    def get(self, task_id: UUID) -> Optional[TaskEntity]:
        with self._transaction("get") as conn:
            return self._fetch(conn, task_id)

    def replace(self, task_id: UUID, data: TaskReplace) -> Optional[TaskEntity]:
        with self._transaction("replace") as conn:
            result = conn.execute(
                update(tasks)
                .where(tasks.c.id == task_id)
                .values(title=data.title, completed=data.completed, updated_at=utc_now())
            )
            if result.rowcount == 0:
                return None
            return self._fetch(conn, task_id)

    def patch_completed(self, task_id: UUID, completed: Optional[bool] = None) -> Optional[TaskEntity]:
        """
        Set or flip ``completed``.

        The toggle is a single ``SET completed = NOT completed`` statement, so two
        concurrent toggles flip the flag twice instead of racing a separate read.
        """
        new_value = not_(tasks.c.completed) if completed is None else completed
        with self._transaction("patch_completed") as conn:
            result = conn.execute(
                update(tasks)
                .where(tasks.c.id == task_id)
                .values(completed=new_value, updated_at=utc_now())
            )
            if result.rowcount == 0:
                return None
            return self._fetch(conn, task_id)

    def delete(self, task_id: UUID) -> bool:
        with self._transaction("delete") as conn:
            result = conn.execute(delete(tasks).where(tasks.c.id == task_id))
            return result.rowcount > 0

    def list(self, query: Optional[ListQuery] = None) -> List[TaskEntity]:
        q = query or ListQuery()
        field, descending = resolve_sort(q)
        column = _SORT_COLUMNS[field]

        stmt = select(tasks)
        if q.completed is not None:
            stmt = stmt.where(tasks.c.completed == q.completed)
        stmt = (
            stmt.order_by(column.desc() if descending else column.asc())
            .limit(max(q.limit, 0))
            .offset(q.offset)
        )

        with self._transaction("list") as conn:
            rows = conn.execute(stmt).mappings().all()
            return [self._row_to_entity(r) for r in rows]

    def close(self) -> None:
        self._engine.dispose()
        logger.info("Database connection pool disposed")
