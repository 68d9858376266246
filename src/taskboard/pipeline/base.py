"""
Ordered request pipeline served as an ASGI application.

A 'Pipeline' holds an explicitly registered list of stages. Each HTTP request is
wrapped in an 'Exchange' and handed to the stages in registration order. A
stage receives the exchange and a 'call_next' continuation and either:

    - sets 'exchange.response' and returns, which ends the chain,
    - awaits 'call_next()' to pass control to the next stage,
    - awaits 'call_next(error)' or raises, which skips every remaining normal
      stage and jumps to the next 'ErrorStage'.

'ErrorStage' instances are only visited while an error is propagating and are
skipped in the normal flow. An error stage that raises hands the new error on
to the following error stage.

When the chain runs out, the pipeline answers on its own: '500 Internal Server
Error' if an error is still unhandled, otherwise '404 Cannot <METHOD> <path>'.
No exception raised by a stage ever reaches the ASGI server.

Startup and shutdown hooks run on the ASGI lifespan events, so the server only
starts accepting connections once every startup hook has completed.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol, cast

from fastapi import Request
from fastapi.responses import PlainTextResponse, Response
from loguru import logger

Hook = Callable[[], Awaitable[None]]


class CallNext(Protocol):
    """Continuation handed to every stage."""

    def __call__(self, error: Exception | None = None) -> Awaitable[None]: ...


class Exchange:
    """
    State shared by the stages while a single request is being handled.

    Attributes:
        request: The incoming request.
        body: Decoded request body, filled in by the body-decoding stages.
        params: Named path segments extracted by the router that matched.
        response: The response to send, or None while no stage has answered.
    """

    def __init__(self, request: Request) -> None:
        self.request = request
        self.body: dict[str, Any] = {}
        self.params: dict[str, str] = {}
        self.response: Response | None = None

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def path(self) -> str:
        return self.request.url.path


class Stage(ABC):
    @abstractmethod
    async def handle(self, exchange: Exchange, call_next: CallNext) -> None:
        pass


class ErrorStage(ABC):
    @abstractmethod
    async def handle_error(self, error: Exception, exchange: Exchange, call_next: CallNext) -> None:
        pass


class Pipeline:
    """
    ASGI application running every request through 'stages'.

    Attributes:
        stages: Normal and error stages, in the order they are visited.
        on_startup: Coroutine functions awaited, in order, on lifespan startup.
        on_shutdown: Coroutine functions awaited, in order, on lifespan shutdown.
    """

    def __init__(self, stages: Sequence[Stage | ErrorStage] = ()) -> None:
        self.stages: list[Stage | ErrorStage] = list(stages)
        self.on_startup: list[Hook] = []
        self.on_shutdown: list[Hook] = []

    async def __call__(self, scope: dict[str, Any], receive: Any, send: Any) -> None:
        if scope["type"] == "lifespan":
            await self._lifespan(receive, send)
            return
        if scope["type"] != "http":
            # websockets are not served
            await send({"type": "websocket.close", "code": 1000})
            return

        exchange = Exchange(Request(scope, receive))
        response = await self.handle(exchange)
        await response(scope, receive, send)

    async def handle(self, exchange: Exchange) -> Response:
        """Run the stages over 'exchange' and return the response to send."""
        await self._dispatch(0, exchange, None)
        self._finish(exchange, None)
        return cast(Response, exchange.response)

    async def _dispatch(self, index: int, exchange: Exchange, error: Exception | None) -> None:
        while index < len(self.stages):
            stage = self.stages[index]
            if (error is None) != isinstance(stage, ErrorStage):
                await self._run_stage(index, exchange, error)
                return
            index += 1
        self._finish(exchange, error)

    async def _run_stage(self, index: int, exchange: Exchange, error: Exception | None) -> None:
        stage = self.stages[index]
        called = False

        async def call_next(next_error: Exception | None = None) -> None:
            nonlocal called
            if called:
                raise RuntimeError(f"call_next() invoked twice by {type(stage).__name__}")
            called = True
            if next_error is None and exchange.response is not None:
                return
            await self._dispatch(index + 1, exchange, next_error)

        try:
            if isinstance(stage, ErrorStage):
                await stage.handle_error(cast(Exception, error), exchange, call_next)
            else:
                await stage.handle(exchange, call_next)
        except Exception as exc:
            if not called:
                await call_next(exc)
                return
            # the rest of the chain already ran, so there is no stage left to hand this to
            logger.opt(exception=exc).error(f"{type(stage).__name__} failed after passing control on: {exc}")
            if exchange.response is None:
                exchange.response = PlainTextResponse("Internal Server Error", status_code=500)
            return

        if not called and exchange.response is None:
            self._finish(exchange, error)

    @staticmethod
    def _finish(exchange: Exchange, error: Exception | None) -> None:
        if error is not None:
            logger.opt(exception=error).error(f"Unhandled error for {exchange.method} {exchange.path}: {error}")
            exchange.response = PlainTextResponse("Internal Server Error", status_code=500)
        elif exchange.response is None:
            exchange.response = PlainTextResponse(f"Cannot {exchange.method} {exchange.path}", status_code=404)

    async def _lifespan(self, receive: Any, send: Any) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                try:
                    for hook in self.on_startup:
                        await hook()
                except Exception as exc:
                    logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                try:
                    for hook in self.on_shutdown:
                        await hook()
                except Exception as exc:
                    logger.exception("Shutdown failed")
                    await send({"type": "lifespan.shutdown.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.shutdown.complete"})
                return
