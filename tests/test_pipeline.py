from fastapi.responses import PlainTextResponse
from fastapi.testclient import TestClient

from taskboard.pipeline import CallNext, ErrorStage, Exchange, Pipeline, Stage


class Record(Stage):
    def __init__(self, name: str, calls: list[str]) -> None:
        self.name = name
        self.calls = calls

    async def handle(self, exchange: Exchange, call_next: CallNext) -> None:
        self.calls.append(self.name)
        await call_next()


class Respond(Stage):
    def __init__(self, text: str = "done") -> None:
        self.text = text

    async def handle(self, exchange: Exchange, call_next: CallNext) -> None:
        exchange.response = PlainTextResponse(self.text)


class Raise(Stage):
    async def handle(self, exchange: Exchange, call_next: CallNext) -> None:
        raise RuntimeError("boom")


class PassError(Stage):
    async def handle(self, exchange: Exchange, call_next: CallNext) -> None:
        await call_next(ValueError("passed along"))


class Silent(Stage):
    async def handle(self, exchange: Exchange, call_next: CallNext) -> None:
        pass


class Catch(ErrorStage):
    def __init__(self, calls: list[str]) -> None:
        self.calls = calls

    async def handle_error(self, error: Exception, exchange: Exchange, call_next: CallNext) -> None:
        self.calls.append("catch")
        exchange.response = PlainTextResponse(f"caught: {error}", status_code=500)


class Rethrow(ErrorStage):
    async def handle_error(self, error: Exception, exchange: Exchange, call_next: CallNext) -> None:
        raise KeyError("rethrown")


def test_stages_run_in_registration_order():
    calls: list[str] = []
    app = Pipeline([Record("a", calls), Record("b", calls), Respond(), Record("c", calls)])

    response = TestClient(app).get("/")

    assert response.status_code == 200
    assert response.text == "done"
    assert calls == ["a", "b"]


def test_raised_error_skips_remaining_normal_stages():
    calls: list[str] = []
    app = Pipeline([Record("a", calls), Raise(), Record("b", calls), Respond(), Catch(calls)])

    response = TestClient(app).get("/")

    assert response.status_code == 500
    assert response.text == "caught: boom"
    assert calls == ["a", "catch"]


def test_error_passed_to_continuation_reaches_error_stage():
    calls: list[str] = []
    app = Pipeline([PassError(), Record("a", calls), Catch(calls)])

    response = TestClient(app).get("/")

    assert response.text == "caught: passed along"
    assert calls == ["catch"]


def test_error_stages_are_skipped_in_normal_flow():
    calls: list[str] = []
    app = Pipeline([Catch(calls), Record("a", calls), Respond()])

    response = TestClient(app).get("/")

    assert response.status_code == 200
    assert calls == ["a"]


def test_failing_error_stage_hands_new_error_on_as_str_of_error():
    calls: list[str] = []
    app = Pipeline([Raise(), Rethrow(), Catch(calls)])

    response = TestClient(app).get("/")

    assert response.text == "caught: 'rethrown'"


def test_unhandled_error_becomes_plain_500(log_messages):
    app = Pipeline([Raise()])

    response = TestClient(app).get("/")

    assert response.status_code == 500
    assert response.text == "Internal Server Error"
    assert any("boom" in message for message in log_messages)


def test_chain_without_response_falls_through_to_404():
    calls: list[str] = []
    app = Pipeline([Record("a", calls)])

    response = TestClient(app).post("/nowhere")

    assert response.status_code == 404
    assert response.text == "Cannot POST /nowhere"


def test_stage_that_neither_answers_nor_continues_ends_the_chain():
    calls: list[str] = []
    app = Pipeline([Silent(), Record("a", calls)])

    response = TestClient(app).get("/quiet")

    assert response.status_code == 404
    assert calls == []


def test_lifespan_runs_startup_and_shutdown_hooks():
    events: list[str] = []
    app = Pipeline([Respond()])

    async def started() -> None:
        events.append("startup")

    async def stopped() -> None:
        events.append("shutdown")

    app.on_startup.append(started)
    app.on_shutdown.append(stopped)

    with TestClient(app) as client:
        assert events == ["startup"]
        client.get("/")

    assert events == ["startup", "shutdown"]


async def test_failing_shutdown_hook_reports_shutdown_failure(log_messages):
    app = Pipeline([Respond()])
    sent: list[dict] = []
    messages = iter([{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}])

    async def broken() -> None:
        raise RuntimeError("dispose failed")

    async def receive() -> dict:
        return next(messages)

    async def send(message: dict) -> None:
        sent.append(message)

    app.on_shutdown.append(broken)

    await app({"type": "lifespan"}, receive, send)

    assert sent == [
        {"type": "lifespan.startup.complete"},
        {"type": "lifespan.shutdown.failed", "message": "dispose failed"},
    ]
    assert "Shutdown failed" in log_messages


def test_empty_pipeline_still_answers():
    response = TestClient(Pipeline()).get("/anything")

    assert response.status_code == 404
    assert response.text == "Cannot GET /anything"
