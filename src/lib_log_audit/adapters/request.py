"""Request-context adapters for plain mappings, WSGI and ASGI requests.

Purpose
-------
Present any inbound request through :class:`RequestContextPort` so the
assembler never depends on the transport.

Contents
--------
* :func:`derive_client_ip` – header-override then proxy-header derivation.
* :class:`MappingRequestContext` – snapshot built from plain values.
* :class:`WsgiRequestContext` – view over a PEP 3333 ``environ``.
* :class:`AsgiRequestContext` – view over an ASGI HTTP ``scope``.

System Role
-----------
Edge adapters; middleware binds one of them to the capture context per
request. None of them reads a request body stream: bodies are passed in
already captured, so no blocking read happens on an event loop.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any
from urllib.parse import parse_qs, quote

from lib_log_audit.application.ports.request import RequestContextPort
from lib_log_audit.domain.records import freeze_parameters

_PROXY_HEADERS = (
    "x-forwarded-for",
    "proxy-client-ip",
    "wl-proxy-client-ip",
    "client-ip",
    "x-real-ip",
)
#: Headers consulted, in order, when no override header yields an address.

Headers = Mapping[str, tuple[str, ...]]


def _usable(value: str | None) -> bool:
    return bool(value and value.strip()) and value.strip().lower() != "unknown"


def normalise_headers(headers: Mapping[str, Any] | Iterable[tuple[Any, Any]] | None) -> Headers:
    """Return a lowercase-keyed, multi-valued header mapping.

    Accepts a mapping (values may be strings or sequences) or an iterable of
    ``(name, value)`` pairs, bytes or text.

    Examples
    --------
    >>> dict(normalise_headers([(b"X-Real-IP", b"10.0.0.1"), (b"x-real-ip", b"10.0.0.2")]))
    {'x-real-ip': ('10.0.0.1', '10.0.0.2')}
    """

    collected: dict[str, list[str]] = {}
    if headers is None:
        return MappingProxyType({})
    items: Iterable[tuple[Any, Any]]
    if isinstance(headers, Mapping):
        items = []
        for name, value in headers.items():
            values = value if isinstance(value, (list, tuple)) else [value]
            items.extend((name, item) for item in values)
    else:
        items = headers
    for name, value in items:
        key = _text(name).lower()
        collected.setdefault(key, []).append(_text(value))
    return MappingProxyType({key: tuple(values) for key, values in collected.items()})


def _text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("latin-1")
    return str(value)


def derive_client_ip(headers: Headers, remote_addr: str | None, client_ip_header: str | None = None) -> str | None:
    """Return the originating client IP.

    The configured ``client_ip_header`` is inspected first; blank values and the
    literal ``"unknown"`` count as absent. Standard proxy headers follow, the
    first hop of a comma-separated list winning, and the peer address is the
    final fallback.

    Examples
    --------
    >>> headers = normalise_headers({"X-Client": "unknown", "X-Forwarded-For": "8.8.8.8, 10.0.0.1"})
    >>> derive_client_ip(headers, "127.0.0.1", "X-Client")
    '8.8.8.8'
    >>> derive_client_ip(normalise_headers({}), "127.0.0.1")
    '127.0.0.1'
    """

    if client_ip_header:
        for value in headers.get(client_ip_header.lower(), ()):
            if _usable(value):
                return value.strip()
    for name in _PROXY_HEADERS:
        for value in headers.get(name, ()):
            for hop in value.split(","):
                if _usable(hop):
                    return hop.strip()
    return remote_addr


class _HeaderBackedRequest(RequestContextPort):
    """Shared header/IP handling for the concrete adapters."""

    _headers: Headers
    _client_ip_header: str | None

    def header(self, name: str) -> str | None:
        values = self._headers.get(name.lower())
        return values[0] if values else None

    def client_ip(self) -> str | None:
        return derive_client_ip(self._headers, self.remote_addr(), self._client_ip_header)

    def user_agent(self) -> str | None:
        return self.header("user-agent")


class MappingRequestContext(_HeaderBackedRequest):
    """Request snapshot assembled from plain values.

    Examples
    --------
    >>> ctx = MappingRequestContext(url="/orders", method="post", headers={"User-Agent": "curl/8"}, remote_addr="10.1.1.1")
    >>> ctx.method(), ctx.user_agent(), ctx.client_ip()
    ('post', 'curl/8', '10.1.1.1')
    """

    def __init__(
        self,
        *,
        url: str | None = None,
        method: str | None = None,
        parameters: Mapping[str, Any] | None = None,
        body: str | None = None,
        headers: Mapping[str, Any] | Iterable[tuple[Any, Any]] | None = None,
        remote_addr: str | None = None,
        client_ip: str | None = None,
        client_ip_header: str | None = None,
    ) -> None:
        self._url = url
        self._method = method
        self._parameters = freeze_parameters(parameters)
        self._body = body
        self._headers = normalise_headers(headers)
        self._remote_addr = remote_addr
        self._client_ip = client_ip
        self._client_ip_header = client_ip_header

    def url(self) -> str | None:
        return self._url

    def method(self) -> str | None:
        return self._method

    def parameters(self) -> Mapping[str, tuple[str | None, ...]]:
        return self._parameters

    def body(self) -> str | None:
        return self._body

    def remote_addr(self) -> str | None:
        return self._remote_addr

    def client_ip(self) -> str | None:
        if self._client_ip is not None:
            return self._client_ip
        return super().client_ip()


class WsgiRequestContext(_HeaderBackedRequest):
    """View over a WSGI ``environ`` dictionary."""

    def __init__(self, environ: Mapping[str, Any], *, body: str | None = None, client_ip_header: str | None = None) -> None:
        self._environ = environ
        self._body = body
        self._client_ip_header = client_ip_header
        self._headers = normalise_headers(
            (key[5:].replace("_", "-"), value)
            for key, value in environ.items()
            if key.startswith("HTTP_") and isinstance(value, str)
        )

    def url(self) -> str | None:
        environ = self._environ
        scheme = environ.get("wsgi.url_scheme", "http")
        host = environ.get("HTTP_HOST")
        if not host:
            host = environ.get("SERVER_NAME", "localhost")
            port = str(environ.get("SERVER_PORT", ""))
            if port and (scheme, port) not in (("https", "443"), ("http", "80")):
                host = f"{host}:{port}"
        path = quote(environ.get("SCRIPT_NAME", "")) + quote(environ.get("PATH_INFO", ""))
        query = environ.get("QUERY_STRING")
        url = f"{scheme}://{host}{path}"
        return f"{url}?{query}" if query else url

    def method(self) -> str | None:
        return self._environ.get("REQUEST_METHOD")

    def parameters(self) -> Mapping[str, tuple[str | None, ...]]:
        return freeze_parameters(parse_qs(self._environ.get("QUERY_STRING", ""), keep_blank_values=True))

    def body(self) -> str | None:
        return self._body

    def remote_addr(self) -> str | None:
        return self._environ.get("REMOTE_ADDR")


class AsgiRequestContext(_HeaderBackedRequest):
    """View over an ASGI HTTP connection ``scope``."""

    def __init__(
        self,
        scope: Mapping[str, Any],
        *,
        body: bytes | str | None = None,
        client_ip_header: str | None = None,
    ) -> None:
        self._scope = scope
        self._body = body.decode("utf-8", "replace") if isinstance(body, (bytes, bytearray)) else body
        self._client_ip_header = client_ip_header
        self._headers = normalise_headers(scope.get("headers") or ())

    def url(self) -> str | None:
        scope = self._scope
        scheme = scope.get("scheme", "http")
        host = self.header("host")
        if not host:
            server = scope.get("server")
            if server:
                name, port = server[0], server[1]
                default = {"http": 80, "https": 443, "ws": 80, "wss": 443}.get(scheme)
                host = name if port in (None, default) else f"{name}:{port}"
            else:
                host = "localhost"
        path = scope.get("root_path", "") + scope.get("path", "")
        query = _text(scope.get("query_string", b""))
        url = f"{scheme}://{host}{path}"
        return f"{url}?{query}" if query else url

    def method(self) -> str | None:
        return self._scope.get("method")

    def parameters(self) -> Mapping[str, tuple[str | None, ...]]:
        query = _text(self._scope.get("query_string", b""))
        return freeze_parameters(parse_qs(query, keep_blank_values=True))

    def body(self) -> str | None:
        return self._body

    def remote_addr(self) -> str | None:
        client = self._scope.get("client")
        return client[0] if client else None


__all__ = [
    "AsgiRequestContext",
    "MappingRequestContext",
    "WsgiRequestContext",
    "derive_client_ip",
    "normalise_headers",
]
