"""
The '/users' resource router.

The record store and view renderer are injected when the router is built, so
several applications (or tests) can run side by side with their own stores.

    GET  /                           list users with their tasks
    POST /                           create a user from the 'name' field, redirect to /users
    POST /:id/delete                 delete a user and its tasks
    POST /:id/tasks                  create a task from the 'title' field
    POST /:id/tasks/:taskId/delete   delete one task of a user

The three POST routes below '/:id' answer with a short plain-text
acknowledgement once the store operation succeeded. Store failures are handed
to the error stage through 'call_next(error)'.
"""

from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse

from taskboard.errors import TaskboardError, ValidationError
from taskboard.pipeline import CallNext, Exchange, Router
from taskboard.record_store import RecordStore
from taskboard.views import ViewRenderer

USERS_PATH = "/users"


def _int_param(exchange: Exchange, name: str) -> int:
    try:
        return int(exchange.params[name])
    except ValueError as exc:
        raise ValidationError(f"Path segment {name!r} must be an integer, got {exchange.params[name]!r}") from exc


def _text_field(exchange: Exchange, name: str) -> str:
    value = exchange.body.get(name)
    if not isinstance(value, str):
        raise ValidationError(f"Missing {name!r} field")
    return value


def build_users_router(store: RecordStore, views: ViewRenderer) -> Router:
    router = Router(USERS_PATH)

    @router.get("/")
    async def list_users(exchange: Exchange, call_next: CallNext) -> None:
        try:
            users = await store.list_users_with_tasks()
        except TaskboardError as exc:
            await call_next(exc)
            return
        exchange.response = HTMLResponse(views.render("users.html", {"users": users}))

    @router.post("/")
    async def create_user(exchange: Exchange, call_next: CallNext) -> None:
        name = _text_field(exchange, "name")
        try:
            await store.create_user(name)
        except TaskboardError as exc:
            await call_next(exc)
            return
        exchange.response = RedirectResponse(USERS_PATH, status_code=302)

    @router.post("/:id/delete")
    async def delete_user(exchange: Exchange, call_next: CallNext) -> None:
        user_id = _int_param(exchange, "id")
        try:
            await store.delete_user(user_id)
        except TaskboardError as exc:
            await call_next(exc)
            return
        exchange.response = PlainTextResponse("Delete user")

    @router.post("/:id/tasks")
    async def create_task(exchange: Exchange, call_next: CallNext) -> None:
        user_id = _int_param(exchange, "id")
        title = _text_field(exchange, "title")
        try:
            await store.create_task(user_id, title)
        except TaskboardError as exc:
            await call_next(exc)
            return
        exchange.response = PlainTextResponse("Create task")

    @router.post("/:id/tasks/:taskId/delete")
    async def delete_task(exchange: Exchange, call_next: CallNext) -> None:
        user_id = _int_param(exchange, "id")
        task_id = _int_param(exchange, "taskId")
        try:
            await store.delete_task(user_id, task_id)
        except TaskboardError as exc:
            await call_next(exc)
            return
        exchange.response = PlainTextResponse("Delete task")

    return router
