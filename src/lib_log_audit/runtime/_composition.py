"""Runtime composition helpers wiring domain, application, and adapters.

Purpose
-------
Translate :class:`RuntimeSettings` into the live :class:`CaptureRuntime`
singleton: sink factory (validated eagerly), enrichers, principal resolver,
assembler and dispatcher.

System Role
-----------
Anchors the clean-architecture boundary: adapters are chosen here, while
``lib_log_audit.runtime`` exposes only the façade.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from lib_log_audit.adapters import QueuedSink, UserAgentsParser
from lib_log_audit.application.ports import ClockPort, GeoResolverPort, PrincipalResolverPort, SinkPort, UserAgentParserPort
from lib_log_audit.application.use_cases import CaptureDispatcher, create_record_assembler
from lib_log_audit.domain import ContextBinder

from ._factories import SinkFactory, SystemClock, create_geo_resolver, create_principal_resolver
from ._settings import RuntimeSettings
from ._state import CaptureRuntime


def build_runtime(
    settings: RuntimeSettings,
    *,
    sink: SinkPort | None = None,
    principal_resolver: PrincipalResolverPort | Callable[[], Any] | None = None,
    geo_resolver: GeoResolverPort | None = None,
    user_agent_parser: UserAgentParserPort | None = None,
    clock: ClockPort | None = None,
) -> CaptureRuntime:
    """Assemble the capture runtime from resolved settings.

    ``sink`` replaces the configured backend with a host-provided instance;
    ``geo_resolver`` takes precedence over ``settings.geoip_database``.
    """

    binder = ContextBinder()
    resolver = create_principal_resolver(binder, principal_resolver)
    sink_factory = _create_sink_factory(settings, sink)
    closers: list[Callable[[], None]] = [sink_factory.close]

    # The geo database is opened last; nothing below can fail and leak the reader.
    if geo_resolver is None:
        opened = create_geo_resolver(settings.geoip_database)
        if opened is not None:
            closers.append(opened.close)
        geo_resolver = opened

    assembler = create_record_assembler(
        clock=clock or SystemClock(),
        user_agent_parser=user_agent_parser or UserAgentsParser(),
        principal_resolver=resolver,
        geo_resolver=geo_resolver,
        context_binder=binder,
    )
    dispatcher = CaptureDispatcher(
        assembler=assembler,
        sink_provider=sink_factory.get_or_create,
        diagnostic=settings.diagnostic_hook,
    )
    return CaptureRuntime(
        binder=binder,
        assembler=assembler,
        dispatcher=dispatcher,
        sink_factory=sink_factory,
        settings=settings,
        closers=closers,
    )


def _create_sink_factory(settings: RuntimeSettings, sink: SinkPort | None) -> SinkFactory:
    decorate = _queue_decorator(settings) if settings.queue_enabled else None
    if sink is not None:
        return SinkFactory(
            type(sink).__name__,
            builder=lambda _options: sink,
            decorate=decorate,
            diagnostic=settings.diagnostic_hook,
        )
    return SinkFactory(
        settings.sink,
        settings.sink_options,
        decorate=decorate,
        diagnostic=settings.diagnostic_hook,
    )


def _queue_decorator(settings: RuntimeSettings) -> Callable[[SinkPort], SinkPort]:
    def decorate(inner: SinkPort) -> SinkPort:
        queued = QueuedSink(
            inner,
            maxsize=settings.queue_maxsize,
            drop_policy=settings.queue_full_policy,
            timeout=settings.queue_put_timeout,
            stop_timeout=settings.queue_stop_timeout,
            diagnostic=settings.diagnostic_hook,
        )
        queued.start()
        return queued

    return decorate


__all__ = ["build_runtime"]
