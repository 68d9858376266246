from collections.abc import AsyncIterator, Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from loguru import logger

from taskboard.app import build_app
from taskboard.record_store import InMemoryRecordStore, RecordStore, SQLiteRecordStore


def sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


@pytest.fixture(params=["in_memory", "sqlite"])
async def store(request: pytest.FixtureRequest, tmp_path: Path) -> AsyncIterator[RecordStore]:
    backend: RecordStore
    if request.param == "in_memory":
        backend = InMemoryRecordStore()
    else:
        backend = SQLiteRecordStore(sqlite_url(tmp_path / "store.sqlite"))
    await backend.ensure_schema()
    yield backend
    await backend.close()


@pytest.fixture
def static_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "public"
    directory.mkdir()
    (directory / "hello.txt").write_text("hello from disk")
    (directory / "nested").mkdir()
    return directory


@pytest.fixture
def client(static_dir: Path) -> Iterator[TestClient]:
    with TestClient(build_app(InMemoryRecordStore(), static_dir=static_dir)) as test_client:
        yield test_client


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
