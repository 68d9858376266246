"""
Method + path-pattern routing scoped to a URL prefix.

A 'Router' is itself a pipeline stage. Path patterns use named segments
('/:id/tasks/:taskId/delete'); each pattern is compiled to a regular
expression once, when the route is registered. On a request the router walks
its routes in registration order and invokes the first one whose method and
pattern match the path below the prefix, exposing the named segments through
'exchange.params'. When nothing matches, control passes to the next stage.

    users = Router("/users")

    @users.post("/:id/delete")
    async def delete_user(exchange, call_next):
        ...
"""

import re
from collections.abc import Awaitable, Callable
from typing import NamedTuple

from taskboard.pipeline.base import CallNext, Exchange, Stage

Handler = Callable[[Exchange, CallNext], Awaitable[None]]


def compile_path(path: str) -> re.Pattern[str]:
    """Compile a route path into a regex with one named group per ':segment'. A trailing slash is optional."""
    stripped = path.strip("/")
    segments = stripped.split("/") if stripped else []
    parts = [f"(?P<{segment[1:]}>[^/]+)" if segment.startswith(":") else re.escape(segment) for segment in segments]
    return re.compile("^" + "".join(f"/{part}" for part in parts) + "/?$")


class Route(NamedTuple):
    method: str
    path: str
    pattern: re.Pattern[str]
    handler: Handler


class Router(Stage):
    """
    Routing table mounted under 'prefix'.

    Attributes:
        prefix: Mount point, e.g. '/users'. Empty for a router matching full paths.
        routes: Registered routes, in match order.
    """

    def __init__(self, prefix: str = "") -> None:
        self.prefix = prefix.rstrip("/")
        self.routes: list[Route] = []

    def add_route(self, method: str, path: str, handler: Handler) -> None:
        self.routes.append(Route(method.upper(), path, compile_path(path), handler))

    def route(self, method: str, path: str) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            self.add_route(method, path, handler)
            return handler

        return decorator

    def get(self, path: str) -> Callable[[Handler], Handler]:
        return self.route("GET", path)

    def post(self, path: str) -> Callable[[Handler], Handler]:
        return self.route("POST", path)

    def _local_path(self, path: str) -> str | None:
        if not self.prefix:
            return path
        if path == self.prefix or path.startswith(self.prefix + "/"):
            return path[len(self.prefix) :]
        return None

    async def handle(self, exchange: Exchange, call_next: CallNext) -> None:
        path = self._local_path(exchange.path)
        if path is not None:
            for route in self.routes:
                if route.method != exchange.method and not (exchange.method == "HEAD" and route.method == "GET"):
                    continue
                match = route.pattern.match(path)
                if match:
                    exchange.params = match.groupdict()
                    await route.handler(exchange, call_next)
                    return
        await call_next()
