"""Runtime façade that wires the clean-architecture capture pipeline.

Purpose
-------
Expose a stable entry point (``init``, ``bind``, ``capture``, ``shutdown`` and
the ``log``/``audit_log`` decorators) so host applications never import the
inner layers directly.

Contents
--------
* ``init`` – composition root; validates sink configuration eagerly.
* ``bind`` – scope the request, principal, trace id and extras.
* ``capture`` – imperative capture without a decorator.
* ``sink`` / ``inspect_runtime`` – introspection.
* ``shutdown`` / ``shutdown_async`` – deterministic teardown.

System Role
-----------
Outer shell: high-level policy depends only on ports; adapters are chosen in
:mod:`._composition` and hidden behind this interface.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from lib_log_audit.application.ports import (
    ClockPort,
    GeoResolverPort,
    PrincipalResolverPort,
    RequestContextPort,
    SinkPort,
    UserAgentParserPort,
)
from lib_log_audit.domain import CaptureContext, CaptureKind, Metadata, Principal, Status

from ._composition import build_runtime
from ._factories import (
    SinkConfigurationError,
    SinkFactory,
    register_backend,
    registered_backends,
    unregister_backend,
)
from ._interception import GuardedOperation, audit_log, guarded_operation, log
from ._settings import DiagnosticHook, RuntimeSettings, build_runtime_settings
from ._state import CaptureRuntime, clear_runtime, current_runtime, is_initialised, set_runtime


@dataclass(frozen=True)
class RuntimeSnapshot:
    """Immutable view over the active capture runtime."""

    sink_backend: str
    sink_created: bool
    queue_enabled: bool
    geo_enabled: bool
    client_ip_header: str | None


def init(
    *,
    sink: str | SinkPort = "console",
    sink_options: Mapping[str, Any] | None = None,
    console_template: str | None = None,
    force_color: bool = False,
    no_color: bool = False,
    file_path: str | Path | None = None,
    rest_url: str | None = None,
    rest_method: str = "POST",
    rest_timeout: float = 5.0,
    memory_size: int = 1000,
    client_ip_header: str | None = None,
    geoip_database: str | Path | None = None,
    geo_resolver: GeoResolverPort | None = None,
    principal_resolver: PrincipalResolverPort | Callable[[], Any] | None = None,
    user_agent_parser: UserAgentParserPort | None = None,
    clock: ClockPort | None = None,
    queue_enabled: bool = False,
    queue_maxsize: int = 2048,
    queue_full_policy: str = "block",
    queue_put_timeout: float | None = 1.0,
    queue_stop_timeout: float | None = 5.0,
    diagnostic_hook: DiagnosticHook = None,
) -> None:
    """Compose the capture runtime and install it as the process singleton.

    Parameters
    ----------
    sink:
        Backend name (``console``, ``file``, ``rest``, ``memory`` or one added
        via :func:`register_backend`) or a ready :class:`SinkPort` instance.
    console_template, file_path, rest_url, rest_method, rest_timeout, memory_size:
        Options of the built-in backends; ``console_template`` falls back to
        :data:`~lib_log_audit.adapters.DEFAULT_TEMPLATE`.
    client_ip_header:
        Header inspected first when deriving the client IP.
    geoip_database / geo_resolver:
        Enable geolocation; leaving both unset disables it.
    principal_resolver:
        Port implementation or zero-argument callable; defaults to the
        principal bound with :func:`bind`.
    queue_*:
        Dispatch through a background worker (``QueuedSink``).
    diagnostic_hook:
        Receives ``captured``, ``capture_failed``, ``sink_failed`` and
        ``sink_created`` milestones.

    Raises
    ------
    RuntimeError
        When a runtime is already active.
    SinkConfigurationError
        When a required sink option is missing or the backend is unknown.
    ValueError
        When an ``AUDIT_*`` environment variable holds an invalid value.
    """

    if is_initialised():
        raise RuntimeError(
            "lib_log_audit.init() cannot be called twice without shutdown(); call lib_log_audit.shutdown() first",
        )

    instance = sink if not isinstance(sink, str) else None
    settings_kwargs: dict[str, Any] = {}
    if console_template is not None:
        settings_kwargs["console_template"] = console_template
    settings = build_runtime_settings(
        sink=sink if isinstance(sink, str) else "instance",
        sink_options=sink_options,
        force_color=force_color,
        no_color=no_color,
        file_path=file_path,
        rest_url=rest_url,
        rest_method=rest_method,
        rest_timeout=rest_timeout,
        memory_size=memory_size,
        client_ip_header=client_ip_header,
        geoip_database=geoip_database if geo_resolver is None else None,
        queue_enabled=queue_enabled,
        queue_maxsize=queue_maxsize,
        queue_full_policy=queue_full_policy,
        queue_put_timeout=queue_put_timeout,
        queue_stop_timeout=queue_stop_timeout,
        diagnostic_hook=diagnostic_hook,
        **settings_kwargs,
    )
    runtime = build_runtime(
        settings,
        sink=instance,
        principal_resolver=principal_resolver,
        geo_resolver=geo_resolver,
        user_agent_parser=user_agent_parser,
        clock=clock,
    )
    set_runtime(runtime)


@contextmanager
def bind(
    *,
    request: RequestContextPort | None = None,
    principal: Principal | None = None,
    trace_id: str | None = None,
    **extra: Any,
) -> Iterator[CaptureContext]:
    """Bind ambient capture values for the current execution scope.

    Nested binds inherit unspecified values from the enclosing frame; keyword
    extras are merged into each record's ``extra`` mapping.

    Raises
    ------
    RuntimeError
        When called before :func:`init`.
    """

    runtime = current_runtime()
    with runtime.binder.bind(request=request, principal=principal, trace_id=trace_id, extra=extra) as ctx:
        yield ctx


def capture(
    event: str | None = None,
    *,
    kind: CaptureKind | str = CaptureKind.LOG,
    business_type: str | None = None,
    description: str | None = None,
    status: Status | None = None,
    request: RequestContextPort | None = None,
    extra: Mapping[str, Any] | None = None,
) -> Status:
    """Capture one record imperatively and return the sink status.

    ``request`` defaults to the request bound with :func:`bind`.
    """

    runtime = current_runtime()
    capture_kind = kind if isinstance(kind, CaptureKind) else CaptureKind(kind.strip().lower())
    if request is None:
        context = runtime.binder.current()
        request = context.request if context is not None else None
    metadata = Metadata(kind=capture_kind, event=event, business_type=business_type, description=description)
    (outcome,) = runtime.dispatcher.dispatch([metadata], request, status=status, extra=extra)
    return outcome


def sink() -> SinkPort:
    """Return the process-wide sink, constructing it on first use."""

    return current_runtime().sink_factory.get_or_create()


def inspect_runtime() -> RuntimeSnapshot:
    """Return a read-only snapshot of the current runtime state."""

    runtime = current_runtime()
    return RuntimeSnapshot(
        sink_backend=runtime.sink_factory.backend,
        sink_created=runtime.sink_factory.created,
        queue_enabled=runtime.settings.queue_enabled,
        geo_enabled=runtime.assembler.geo_enabled,
        client_ip_header=runtime.settings.client_ip_header,
    )


def shutdown() -> None:
    """Drain and close the sink, release enrichers, and clear runtime state."""

    runtime = current_runtime()
    try:
        _perform_shutdown(runtime)
    finally:
        clear_runtime()


async def shutdown_async() -> None:
    """Awaitable variant of :func:`shutdown` for code running inside an event loop."""

    runtime = current_runtime()
    try:
        await asyncio.to_thread(_perform_shutdown, runtime)
    finally:
        clear_runtime()


def _perform_shutdown(runtime: CaptureRuntime) -> None:
    """Run every registered closer; the first failure is re-raised after the rest ran.

    Examples
    --------
    >>> class DummyRuntime:
    ...     def __init__(self):
    ...         self.calls = []
    ...         self.closers = [lambda: self.calls.append('sink'), lambda: self.calls.append('geo')]
    >>> runtime = DummyRuntime()
    >>> _perform_shutdown(runtime)
    >>> runtime.calls
    ['sink', 'geo']
    """

    first_error: Exception | None = None
    for close in runtime.closers:
        try:
            close()
        except Exception as exc:
            first_error = first_error or exc
    if first_error is not None:
        raise first_error


__all__ = [
    "GuardedOperation",
    "RuntimeSettings",
    "RuntimeSnapshot",
    "SinkConfigurationError",
    "SinkFactory",
    "audit_log",
    "bind",
    "build_runtime_settings",
    "capture",
    "guarded_operation",
    "init",
    "inspect_runtime",
    "is_initialised",
    "log",
    "register_backend",
    "registered_backends",
    "shutdown",
    "shutdown_async",
    "sink",
    "unregister_backend",
]
