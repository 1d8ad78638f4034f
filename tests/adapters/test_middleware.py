from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from typing import Any, Iterator

import pytest

from lib_log_audit.adapters.middleware import CaptureContextMiddleware, WsgiCaptureContextMiddleware
from lib_log_audit.adapters.request import AsgiRequestContext, WsgiRequestContext


class _RecordingBind:
    def __init__(self) -> None:
        self.bound: list[dict[str, Any]] = []
        self.active = False

    @contextmanager
    def __call__(self, **fields: Any) -> Iterator[None]:
        self.bound.append(fields)
        self.active = True
        try:
            yield
        finally:
            self.active = False


def test_wsgi_middleware_binds_request_while_streaming() -> None:
    bind = _RecordingBind()
    observed: list[bool] = []

    def app(environ: dict[str, Any], start_response: Any) -> Iterator[bytes]:
        start_response("200 OK", [])
        observed.append(bind.active)
        yield b"chunk"
        observed.append(bind.active)

    middleware = WsgiCaptureContextMiddleware(app, client_ip_header="X-Client", bind=bind)
    environ = {
        "REQUEST_METHOD": "GET",
        "PATH_INFO": "/health",
        "HTTP_HOST": "svc",
        "HTTP_X_CLIENT": "5.5.5.5",
        "HTTP_X_REQUEST_ID": "req-9",
    }

    body = middleware(environ, lambda status, headers: None)

    assert list(body) == [b"chunk"]
    assert observed == [True, True]
    body.close()
    assert bind.active is False
    request = bind.bound[0]["request"]
    assert isinstance(request, WsgiRequestContext)
    assert request.client_ip() == "5.5.5.5"
    assert bind.bound[0]["trace_id"] == "req-9"


def test_asgi_middleware_captures_and_replays_body() -> None:
    bind = _RecordingBind()
    received: list[dict[str, Any]] = []

    async def app(scope: dict[str, Any], receive: Any, send: Any) -> None:
        received.append(await receive())
        received.append(await receive())

    messages = [
        {"type": "http.request", "body": b'{"qty":', "more_body": True},
        {"type": "http.request", "body": b" 2}", "more_body": False},
    ]

    async def receive() -> dict[str, Any]:
        return messages.pop(0)

    async def send(message: dict[str, Any]) -> None:
        return None

    scope = {
        "type": "http",
        "method": "POST",
        "path": "/orders",
        "headers": [(b"x-request-id", b"trace-1")],
        "client": ("10.0.0.1", 1234),
    }
    middleware = CaptureContextMiddleware(app, capture_body=True, bind=bind)

    asyncio.run(middleware(scope, receive, send))

    request = bind.bound[0]["request"]
    assert isinstance(request, AsgiRequestContext)
    assert request.body() == '{"qty": 2}'
    assert bind.bound[0]["trace_id"] == "trace-1"
    assert [message["body"] for message in received] == [b'{"qty":', b" 2}"]


def test_asgi_middleware_ignores_non_http_scopes() -> None:
    bind = _RecordingBind()
    calls: list[str] = []

    async def app(scope: dict[str, Any], receive: Any, send: Any) -> None:
        calls.append(scope["type"])

    async def noop(*_: Any) -> Any:
        return None

    asyncio.run(CaptureContextMiddleware(app, bind=bind)({"type": "lifespan"}, noop, noop))

    assert calls == ["lifespan"]
    assert bind.bound == []


def test_wsgi_middleware_defaults_to_runtime_bind(captured_runtime) -> None:
    from lib_log_audit import runtime

    seen: list[Any] = []

    @runtime.log("health.check")
    def check() -> str:
        return "ok"

    def app(environ: dict[str, Any], start_response: Any) -> list[bytes]:
        seen.append(check())
        return [b"ok"]

    environ = {"REQUEST_METHOD": "GET", "PATH_INFO": "/health", "HTTP_HOST": "svc", "REMOTE_ADDR": "10.0.0.2"}
    WsgiCaptureContextMiddleware(app)(environ, lambda status, headers: None).close()

    assert seen == ["ok"]
    record = captured_runtime.records[0]
    assert record.url == "http://svc/health"
    assert record.client_ip == "10.0.0.2"


def test_wsgi_middleware_streams_generator_bodies_lazily() -> None:
    bind = _RecordingBind()
    produced: list[int] = []
    closed: list[bool] = []

    def body() -> Iterator[bytes]:
        try:
            for index in range(1000):
                produced.append(index)
                yield b"x"
        finally:
            closed.append(True)

    def app(environ: dict[str, Any], start_response: Any) -> Iterator[bytes]:
        start_response("200 OK", [])
        return body()

    response = WsgiCaptureContextMiddleware(app, bind=bind)({"REQUEST_METHOD": "GET"}, lambda status, headers: None)

    assert produced == []
    assert next(iter(response)) == b"x"
    assert next(iter(response)) == b"x"
    assert len(produced) == 2
    assert bind.active is True

    response.close()

    assert closed == [True]
    assert bind.active is False
    assert len(produced) == 2


def test_wsgi_middleware_releases_bind_when_app_raises() -> None:
    bind = _RecordingBind()

    def app(environ: dict[str, Any], start_response: Any) -> list[bytes]:
        raise LookupError("no route")

    with pytest.raises(LookupError):
        WsgiCaptureContextMiddleware(app, bind=bind)({"REQUEST_METHOD": "GET"}, lambda status, headers: None)
    assert bind.active is False


def test_wsgi_middleware_serves_requests_before_runtime_init(caplog: pytest.LogCaptureFixture) -> None:
    def app(environ: dict[str, Any], start_response: Any) -> list[bytes]:
        start_response("200 OK", [])
        return [b"ok"]

    with caplog.at_level(logging.WARNING):
        response = WsgiCaptureContextMiddleware(app)({"REQUEST_METHOD": "GET", "PATH_INFO": "/"}, lambda status, headers: None)
        assert list(response) == [b"ok"]
        response.close()

    assert "Request served without capture context" in caplog.text


def test_asgi_middleware_serves_requests_before_runtime_init(caplog: pytest.LogCaptureFixture) -> None:
    calls: list[str] = []

    async def app(scope: dict[str, Any], receive: Any, send: Any) -> None:
        calls.append(scope["path"])

    async def noop(*_: Any) -> Any:
        return None

    scope = {"type": "http", "method": "GET", "path": "/orders", "headers": []}
    with caplog.at_level(logging.WARNING):
        asyncio.run(CaptureContextMiddleware(app)(scope, noop, noop))

    assert calls == ["/orders"]
    assert "Request served without capture context" in caplog.text


def test_asgi_middleware_survives_a_failing_binder() -> None:
    calls: list[str] = []

    def broken_bind(**fields: Any) -> Any:
        raise RuntimeError("binder offline")

    async def app(scope: dict[str, Any], receive: Any, send: Any) -> None:
        calls.append(scope["method"])

    async def noop(*_: Any) -> Any:
        return None

    asyncio.run(CaptureContextMiddleware(app, bind=broken_bind)({"type": "http", "method": "PUT", "headers": []}, noop, noop))

    assert calls == ["PUT"]
