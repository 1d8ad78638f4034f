"""Adapters implementing the application ports.

Request contexts, enrichers, principal resolvers, middleware and the shipped
persistence sinks live here; only the runtime composition imports them.
"""

from __future__ import annotations

from .geo import GeoIP2Resolver
from .middleware import CaptureContextMiddleware, WsgiCaptureContextMiddleware
from .principal import AnonymousPrincipalResolver, CallablePrincipalResolver, ContextPrincipalResolver
from .request import AsgiRequestContext, MappingRequestContext, WsgiRequestContext, derive_client_ip
from .sinks import DEFAULT_TEMPLATE, BaseSink, FileSink, MemorySink, QueuedSink, RestSink, RichConsoleSink
from .user_agent import UserAgentsParser

__all__ = [
    "AnonymousPrincipalResolver",
    "AsgiRequestContext",
    "BaseSink",
    "CallablePrincipalResolver",
    "CaptureContextMiddleware",
    "ContextPrincipalResolver",
    "DEFAULT_TEMPLATE",
    "FileSink",
    "GeoIP2Resolver",
    "MappingRequestContext",
    "MemorySink",
    "QueuedSink",
    "RestSink",
    "RichConsoleSink",
    "UserAgentsParser",
    "WsgiCaptureContextMiddleware",
    "derive_client_ip",
]
