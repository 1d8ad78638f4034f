"""Capture audit and event records for guarded operations.

Decorate a callable with :func:`log` or :func:`audit_log`, call :func:`init`
once at startup, and every invocation produces a structured
:class:`LogRecord` handed to the configured sink.
"""

from __future__ import annotations

from .adapters import (
    AsgiRequestContext,
    CaptureContextMiddleware,
    MappingRequestContext,
    WsgiCaptureContextMiddleware,
    WsgiRequestContext,
)
from .application.ports import SinkPort
from .domain import CaptureKind, LogRecord, Principal, RequestMethod, Status
from .runtime import (
    RuntimeSnapshot,
    SinkConfigurationError,
    audit_log,
    bind,
    capture,
    init,
    inspect_runtime,
    is_initialised,
    log,
    register_backend,
    shutdown,
    shutdown_async,
    sink,
)

__all__ = [
    "AsgiRequestContext",
    "CaptureContextMiddleware",
    "CaptureKind",
    "LogRecord",
    "MappingRequestContext",
    "Principal",
    "RequestMethod",
    "RuntimeSnapshot",
    "SinkConfigurationError",
    "SinkPort",
    "Status",
    "WsgiCaptureContextMiddleware",
    "WsgiRequestContext",
    "audit_log",
    "bind",
    "capture",
    "init",
    "inspect_runtime",
    "is_initialised",
    "log",
    "register_backend",
    "shutdown",
    "shutdown_async",
    "sink",
]
