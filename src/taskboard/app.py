"""
Application assembly.

'build_app' registers the stages in their fixed order:

    static files -> JSON body -> form body -> request info log -> request time log
    -> root redirect -> /users router -> error reporter

and hooks store initialisation into the lifespan startup, so the schema exists
before the first request is served. Run it with uvicorn's factory mode:

    uvicorn --factory taskboard.app:create_app
"""

from functools import partial
from pathlib import Path

from fastapi.responses import RedirectResponse

from taskboard.config import STATIC_DIR, Settings
from taskboard.pipeline import (
    CallNext,
    ErrorReporter,
    Exchange,
    JsonBody,
    Pipeline,
    RequestInfoLogger,
    RequestTimeLogger,
    Router,
    StaticFiles,
    UrlEncodedBody,
)
from taskboard.record_store import RecordStore, SQLiteRecordStore, init_store
from taskboard.users import USERS_PATH, build_users_router
from taskboard.views import ViewRenderer


def build_app(
    store: RecordStore,
    static_dir: str | Path = STATIC_DIR,
    views: ViewRenderer | None = None,
) -> Pipeline:
    root = Router()

    @root.get("/")
    async def index(exchange: Exchange, call_next: CallNext) -> None:
        exchange.response = RedirectResponse(USERS_PATH, status_code=302)

    app = Pipeline(
        [
            StaticFiles(static_dir),
            JsonBody(),
            UrlEncodedBody(),
            RequestInfoLogger(),
            RequestTimeLogger(),
            root,
            build_users_router(store, views or ViewRenderer()),
            ErrorReporter(),
        ]
    )
    app.on_startup.append(partial(init_store, store))
    app.on_shutdown.append(store.close)
    return app


def create_app(settings: Settings | None = None) -> Pipeline:
    settings = settings or Settings.from_env()
    return build_app(SQLiteRecordStore(settings.database_url), static_dir=settings.static_dir)
