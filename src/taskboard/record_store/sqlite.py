"""
File-backed 'RecordStore' on SQLite through SQLAlchemy's asyncio extension.

Two tables, 'users' and 'tasks', linked by 'tasks.user_id'. Deleting a user
deletes its tasks: the ORM relationship cascades, and the foreign key is
declared 'ON DELETE CASCADE' with SQLite foreign-key enforcement switched on
for every connection.

Engine failures ('SQLAlchemyError' and the driver errors it wraps) are
re-raised as 'StorageError' with the original exception chained.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from loguru import logger
from sqlalchemy import ForeignKey, String, event, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, selectinload

from taskboard.errors import NotFoundError, StorageError
from taskboard.record_store.base import RecordStore, Task, User


class Base(DeclarativeBase):
    pass


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255))
    tasks: Mapped[list["TaskRow"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", order_by="TaskRow.id"
    )


class TaskRow(Base):
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255))
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    user: Mapped[UserRow] = relationship(back_populates="tasks")


def _enable_foreign_keys(dbapi_connection: Any, _connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _to_task(row: TaskRow) -> Task:
    return Task(id=row.id, title=row.title, user_id=row.user_id)


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise StorageError(f"Failed to {action}: {exc}") from exc


class SQLiteRecordStore(RecordStore):
    """
    'RecordStore' persisted in a single SQLite file.

    Attributes:
        database_url: SQLAlchemy URL, e.g. 'sqlite+aiosqlite:///database.sqlite'.
    """

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url
        self.engine = create_async_engine(database_url)
        event.listen(self.engine.sync_engine, "connect", _enable_foreign_keys)
        self._sessions = async_sessionmaker(self.engine, expire_on_commit=False)

    async def check_connection(self) -> None:
        with _storage_errors("connect to the database"):
            async with self.engine.connect() as connection:
                await connection.execute(text("SELECT 1"))

    async def ensure_schema(self) -> None:
        with _storage_errors("create the schema"):
            async with self.engine.begin() as connection:
                await connection.run_sync(Base.metadata.create_all)
        logger.debug(f"Schema ready at {self.database_url}")

    async def create_user(self, name: str) -> User:
        with _storage_errors("create user"):
            async with self._sessions() as session, session.begin():
                row = UserRow(name=name)
                session.add(row)
                await session.flush()
                user = User(id=row.id, name=row.name)
        logger.debug(f"Created user {user.id} ({name!r})")
        return user

    async def list_users_with_tasks(self) -> list[User]:
        with _storage_errors("list users"):
            async with self._sessions() as session:
                rows = await session.scalars(
                    select(UserRow).options(selectinload(UserRow.tasks)).order_by(UserRow.id)
                )
                return [User(id=row.id, name=row.name, tasks=[_to_task(t) for t in row.tasks]) for row in rows]

    async def create_task(self, user_id: int, title: str) -> Task:
        with _storage_errors("create task"):
            async with self._sessions() as session, session.begin():
                if await session.get(UserRow, user_id) is None:
                    raise NotFoundError(f"User with id {user_id} not found")
                row = TaskRow(title=title, user_id=user_id)
                session.add(row)
                await session.flush()
                task = _to_task(row)
        logger.debug(f"Created task {task.id} ({title!r}) for user {user_id}")
        return task

    async def delete_user(self, user_id: int) -> None:
        with _storage_errors("delete user"):
            async with self._sessions() as session, session.begin():
                row = await session.get(UserRow, user_id, options=[selectinload(UserRow.tasks)])
                if row is None:
                    raise NotFoundError(f"User with id {user_id} not found")
                await session.delete(row)
        logger.debug(f"Deleted user {user_id}")

    async def delete_task(self, user_id: int, task_id: int) -> None:
        with _storage_errors("delete task"):
            async with self._sessions() as session, session.begin():
                row = await session.get(TaskRow, task_id)
                if row is None or row.user_id != user_id:
                    raise NotFoundError(f"Task with id {task_id} not found for user {user_id}")
                await session.delete(row)
        logger.debug(f"Deleted task {task_id} of user {user_id}")

    async def close(self) -> None:
        await self.engine.dispose()
