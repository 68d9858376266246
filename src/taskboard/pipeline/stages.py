"""
Built-in pipeline stages: static files, body decoding, request logging and
the terminal error reporter.
"""

import json
import os
import stat
from datetime import datetime
from pathlib import Path
from urllib.parse import parse_qsl

from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles as StaticFilesApp
from loguru import logger

from taskboard.errors import ValidationError
from taskboard.pipeline.base import CallNext, ErrorStage, Exchange, Stage


def _media_type(exchange: Exchange) -> str:
    return exchange.request.headers.get("content-type", "").split(";")[0].strip().lower()


class StaticFiles(Stage):
    """
    Serve files from 'directory' when the request path names one.

    Only GET and HEAD are served. Directories, missing files, unreadable or
    over-long names and paths resolving outside 'directory' fall through to the
    next stage.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        self._files = StaticFilesApp(directory=self.directory, check_dir=False)

    async def handle(self, exchange: Exchange, call_next: CallNext) -> None:
        if exchange.method not in ("GET", "HEAD"):
            await call_next()
            return

        relative = os.path.normpath(os.path.join(*exchange.path.split("/")))
        try:
            full_path, stat_result = await run_in_threadpool(self._files.lookup_path, relative)
        except OSError as exc:
            logger.debug(f"Static lookup failed for {exchange.path!r}: {exc}")
            await call_next()
            return
        if stat_result is None or not stat.S_ISREG(stat_result.st_mode):
            await call_next()
            return

        exchange.response = self._files.file_response(full_path, stat_result, exchange.request.scope)


class JsonBody(Stage):
    """Decode 'application/json' bodies into 'exchange.body'. Only JSON objects are accepted."""

    async def handle(self, exchange: Exchange, call_next: CallNext) -> None:
        if _media_type(exchange) != "application/json":
            await call_next()
            return

        raw = await exchange.request.body()
        if raw:
            try:
                decoded = json.loads(raw)
            except ValueError as exc:
                await call_next(ValidationError(f"Invalid JSON body: {exc}"))
                return
            if not isinstance(decoded, dict):
                await call_next(ValidationError("JSON body must be an object"))
                return
            exchange.body = decoded
        await call_next()


class UrlEncodedBody(Stage):
    """Decode form submissions into flat key/value pairs. The last value of a repeated key wins."""

    async def handle(self, exchange: Exchange, call_next: CallNext) -> None:
        if _media_type(exchange) == "application/x-www-form-urlencoded":
            raw = await exchange.request.body()
            exchange.body = dict(parse_qsl(raw.decode("utf-8", errors="replace"), keep_blank_values=True))
        await call_next()


class RequestInfoLogger(Stage):
    async def handle(self, exchange: Exchange, call_next: CallNext) -> None:
        url = exchange.request.url
        original_url = f"{url.path}?{url.query}" if url.query else url.path
        logger.info(f"{exchange.method} {original_url}")
        await call_next()


class RequestTimeLogger(Stage):
    async def handle(self, exchange: Exchange, call_next: CallNext) -> None:
        logger.info(f"Time: {datetime.now().strftime('%H:%M:%S')}")
        await call_next()


class ErrorReporter(ErrorStage):
    """
    Terminal error stage: log the failure and answer with a fixed-shape 500.

    Every error kind is handled the same way; the body is always
    'Something went wrong: <message>', where the message is 'str(error)'
    unchanged (a 'KeyError' therefore shows its key quoted).
    """

    async def handle_error(self, error: Exception, exchange: Exchange, call_next: CallNext) -> None:
        logger.opt(exception=error).error(f"{exchange.method} {exchange.path} failed: {error}")
        exchange.response = PlainTextResponse(f"Something went wrong: {error}", status_code=500)
