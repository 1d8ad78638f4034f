"""WSGI and ASGI middleware binding the inbound request to the capture context.

Guarded operations deeper in the call stack then see the request (and an
optional correlation id) without it being passed explicitly. By default the
runtime façade's :func:`lib_log_audit.runtime.bind` is used; pass ``bind`` to
use a different binder. Without an explicit ``client_ip_header`` the header
configured on the runtime applies.

Binding never fails a request: when the runtime is not initialised or the
binder raises, a warning is logged and the application is served unbound.
"""

from __future__ import annotations

import contextvars
import logging
from collections.abc import Callable, Iterable, Iterator
from contextlib import AbstractContextManager, ExitStack
from typing import Any

from .request import AsgiRequestContext, WsgiRequestContext

logger = logging.getLogger(__name__)

BindCallable = Callable[..., AbstractContextManager[Any]]


def _default_bind(**fields: Any) -> AbstractContextManager[Any]:
    from lib_log_audit.runtime import bind

    return bind(**fields)


def _configured_client_ip_header() -> str | None:
    from lib_log_audit.runtime import inspect_runtime, is_initialised

    return inspect_runtime().client_ip_header if is_initialised() else None


def _enter_bind(stack: ExitStack, bind: BindCallable, **fields: Any) -> None:
    try:
        stack.enter_context(bind(**fields))
    except Exception as exc:
        logger.warning("Request served without capture context: %s", exc)


class _BoundResponse:
    """WSGI response iterable that keeps the request bound until ``close``.

    Each chunk is pulled inside the copied context the bind was entered in,
    so the body is streamed to the server one chunk at a time.
    """

    def __init__(self, result: Iterable[bytes], context: contextvars.Context, stack: ExitStack) -> None:
        self._result = result
        self._context = context
        self._stack = stack
        self._iterator: Iterator[bytes] = context.run(iter, result)

    def __iter__(self) -> _BoundResponse:
        return self

    def __next__(self) -> bytes:
        return self._context.run(next, self._iterator)

    def close(self) -> None:
        try:
            close = getattr(self._result, "close", None)
            if callable(close):
                self._context.run(close)
        finally:
            self._context.run(self._stack.close)


class WsgiCaptureContextMiddleware:
    """Wrap a WSGI application so each request is bound while it is served.

    The binding stays active while the server iterates the response and is
    released when the server calls ``close()`` on it.
    """

    def __init__(
        self,
        app: Callable[..., Iterable[bytes]],
        *,
        client_ip_header: str | None = None,
        trace_id_header: str | None = "X-Request-Id",
        bind: BindCallable | None = None,
    ) -> None:
        self.app = app
        self._client_ip_header = client_ip_header
        self._trace_key = None if not trace_id_header else "HTTP_" + trace_id_header.upper().replace("-", "_")
        self._bind = bind or _default_bind

    def __call__(self, environ: dict[str, Any], start_response: Callable[..., Any]) -> Iterable[bytes]:
        request = WsgiRequestContext(environ, client_ip_header=self._client_ip_header or _configured_client_ip_header())
        trace_id = environ.get(self._trace_key) if self._trace_key else None
        context = contextvars.copy_context()
        stack = ExitStack()
        context.run(_enter_bind, stack, self._bind, request=request, trace_id=trace_id)
        try:
            result = context.run(self.app, environ, start_response)
            return _BoundResponse(result, context, stack)
        except BaseException:
            context.run(stack.close)
            raise


class CaptureContextMiddleware:
    """ASGI middleware binding an :class:`AsgiRequestContext` per HTTP request.

    With ``capture_body`` enabled the request body is read up front, attached
    to the context and replayed to the wrapped application unchanged.
    """

    def __init__(
        self,
        app: Callable[..., Any],
        *,
        client_ip_header: str | None = None,
        trace_id_header: str | None = "X-Request-Id",
        capture_body: bool = False,
        bind: BindCallable | None = None,
    ) -> None:
        self.app = app
        self._client_ip_header = client_ip_header
        self._trace_header = trace_id_header.lower().encode("latin-1") if trace_id_header else None
        self._capture_body = capture_body
        self._bind = bind or _default_bind

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        body: bytes | None = None
        if self._capture_body:
            messages: list[dict[str, Any]] = []
            chunks: list[bytes] = []
            while True:
                message = await receive()
                messages.append(message)
                if message.get("type") != "http.request":
                    break
                chunks.append(message.get("body", b""))
                if not message.get("more_body", False):
                    break
            body = b"".join(chunks)
            receive = _replay(messages, receive)

        request = AsgiRequestContext(
            scope,
            body=body,
            client_ip_header=self._client_ip_header or _configured_client_ip_header(),
        )
        trace_id = None
        if self._trace_header is not None:
            for name, value in scope.get("headers") or ():
                if name.lower() == self._trace_header:
                    trace_id = value.decode("latin-1")
                    break
        with ExitStack() as stack:
            _enter_bind(stack, self._bind, request=request, trace_id=trace_id)
            await self.app(scope, receive, send)


def _replay(messages: list[dict[str, Any]], receive: Callable[..., Any]) -> Callable[..., Any]:
    pending = list(messages)

    async def replay() -> dict[str, Any]:
        if pending:
            return pending.pop(0)
        return await receive()

    return replay


__all__ = ["CaptureContextMiddleware", "WsgiCaptureContextMiddleware"]
