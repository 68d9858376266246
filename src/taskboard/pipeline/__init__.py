from taskboard.pipeline.base import CallNext, ErrorStage, Exchange, Pipeline, Stage
from taskboard.pipeline.router import Router, compile_path
from taskboard.pipeline.stages import (
    ErrorReporter,
    JsonBody,
    RequestInfoLogger,
    RequestTimeLogger,
    StaticFiles,
    UrlEncodedBody,
)

__all__ = [
    "CallNext",
    "ErrorReporter",
    "ErrorStage",
    "Exchange",
    "JsonBody",
    "Pipeline",
    "RequestInfoLogger",
    "RequestTimeLogger",
    "Router",
    "Stage",
    "StaticFiles",
    "UrlEncodedBody",
    "compile_path",
]
