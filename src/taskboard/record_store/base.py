"""
User and Task data models and the record store interface.

A 'User' owns zero or more 'Task' records. Both are created on demand by the
users router and persisted immediately; the main view is rendered from
'list_users_with_tasks', which returns every user with its tasks attached.

The 'RecordStore' ABC is the pluggable storage backend. Concrete
implementations ('InMemoryRecordStore', 'SQLiteRecordStore') are
interchangeable at construction time and are injected into the router, so
handlers never touch a process-wide store.
"""

from abc import ABC, abstractmethod

from loguru import logger
from pydantic import BaseModel, Field


class Task(BaseModel):
    """A single task belonging to exactly one user."""

    id: int
    title: str
    user_id: int


class User(BaseModel):
    """
    A user and, when loaded through 'list_users_with_tasks', its tasks.

    'tasks' is empty on a freshly created user.
    """

    id: int
    name: str
    tasks: list[Task] = Field(default_factory=list)


class RecordStore(ABC):
    """Abstract repository for 'User' and 'Task' records."""

    @abstractmethod
    async def check_connection(self) -> None:
        """Raise 'StorageError' if the engine cannot be reached."""
        pass

    @abstractmethod
    async def ensure_schema(self) -> None:
        """Create the user and task tables if they are absent. Safe to call repeatedly."""
        pass

    @abstractmethod
    async def create_user(self, name: str) -> User:
        pass

    @abstractmethod
    async def list_users_with_tasks(self) -> list[User]:
        pass

    @abstractmethod
    async def create_task(self, user_id: int, title: str) -> Task:
        """Add a task under 'user_id'.

        Raise 'NotFoundError' without writing anything if the user does not exist.
        """
        pass

    @abstractmethod
    async def delete_user(self, user_id: int) -> None:
        """Remove a user together with all of its tasks."""
        pass

    @abstractmethod
    async def delete_task(self, user_id: int, task_id: int) -> None:
        """Remove a task, which must belong to 'user_id'."""
        pass

    async def close(self) -> None:
        pass


async def init_store(store: RecordStore) -> None:
    """Check connectivity and set up the schema, logging failures instead of raising.

    A store that cannot be reached at startup leaves the server running; requests
    touching the store then fail individually through the error reporter.
    """
    try:
        await store.check_connection()
        logger.info("Connection has been established successfully.")
    except Exception as exc:
        logger.error(f"Unable to connect to the database: {exc}")

    try:
        await store.ensure_schema()
    except Exception as exc:
        logger.error(f"Unable to set up the database schema: {exc}")
