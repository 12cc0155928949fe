from __future__ import annotations

import pytest

from lambda_router import Application, Request, Response, Settings
from samples import FakeContext, api_gateway_request


class CallbackRecorder:
    """Completion callback that remembers every result it was given."""

    def __init__(self) -> None:
        self.calls: list[dict] = []

    def __call__(self, result: dict) -> None:
        self.calls.append(result)

    @property
    def result(self) -> dict:
        assert len(self.calls) == 1, f"callback called {len(self.calls)} times"
        return self.calls[0]


@pytest.fixture
def app() -> Application:
    return Application(Settings())


@pytest.fixture
def context() -> FakeContext:
    return FakeContext()


@pytest.fixture
def callback() -> CallbackRecorder:
    return CallbackRecorder()


@pytest.fixture
def request_factory(app, context):
    def make(event: dict | None = None) -> Request:
        return Request(app, event if event is not None else api_gateway_request(), context)

    return make


@pytest.fixture
def response_factory(app, request_factory, callback):
    def make(event: dict | None = None) -> Response:
        return Response(app, request_factory(event), callback)

    return make
