"""
Dict-backed 'RecordStore' for tests and throwaway demos.

Ids are assigned from per-table counters, mirroring the autoincrement
behaviour of the SQL backend, so the two stores are interchangeable.
"""

from itertools import count

from loguru import logger

from taskboard.errors import NotFoundError
from taskboard.record_store.base import RecordStore, Task, User


class InMemoryRecordStore(RecordStore):
    def __init__(self) -> None:
        self._users: dict[int, User] = {}
        self._tasks: dict[int, Task] = {}
        self._user_ids = count(1)
        self._task_ids = count(1)

    async def check_connection(self) -> None:
        pass

    async def ensure_schema(self) -> None:
        pass

    async def create_user(self, name: str) -> User:
        user = User(id=next(self._user_ids), name=name)
        self._users[user.id] = user
        logger.debug(f"Created user {user.id} ({name!r})")
        return user.model_copy()

    async def list_users_with_tasks(self) -> list[User]:
        return [
            user.model_copy(update={"tasks": [task for task in self._tasks.values() if task.user_id == user.id]})
            for user in sorted(self._users.values(), key=lambda u: u.id)
        ]

    async def create_task(self, user_id: int, title: str) -> Task:
        if user_id not in self._users:
            raise NotFoundError(f"User with id {user_id} not found")
        task = Task(id=next(self._task_ids), title=title, user_id=user_id)
        self._tasks[task.id] = task
        logger.debug(f"Created task {task.id} ({title!r}) for user {user_id}")
        return task

    async def delete_user(self, user_id: int) -> None:
        if self._users.pop(user_id, None) is None:
            raise NotFoundError(f"User with id {user_id} not found")
        self._tasks = {task_id: task for task_id, task in self._tasks.items() if task.user_id != user_id}

    async def delete_task(self, user_id: int, task_id: int) -> None:
        task = self._tasks.get(task_id)
        if task is None or task.user_id != user_id:
            raise NotFoundError(f"Task with id {task_id} not found for user {user_id}")
        del self._tasks[task_id]
