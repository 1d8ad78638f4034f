"""Factories and helpers used by the runtime composition layer.

Purpose
-------
Own the sink backend registry and the lazily constructed, process-wide sink
instance, plus the small concrete collaborators (clock, resolvers) the
composition root wires in.

Contents
--------
* :class:`SinkConfigurationError` – fatal sink configuration problem.
* :func:`register_backend` / :func:`registered_backends` – backend registry.
* :class:`SinkFactory` – eager validation, lazy double-checked construction.
* :class:`SystemClock`, :func:`create_principal_resolver`,
  :func:`create_geo_resolver`.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Any

from lib_log_audit.adapters import (
    CallablePrincipalResolver,
    ContextPrincipalResolver,
    FileSink,
    GeoIP2Resolver,
    MemorySink,
    RestSink,
    RichConsoleSink,
)
from lib_log_audit.application.ports import ClockPort, GeoResolutionError, PrincipalResolverPort, SinkPort
from lib_log_audit.application.use_cases.dispatch import DiagnosticHook, build_diagnostic_emitter
from lib_log_audit.domain import ContextBinder

logger = logging.getLogger(__name__)

SinkBuilder = Callable[[Mapping[str, Any]], SinkPort]


class SinkConfigurationError(ValueError):
    """Raised when a sink cannot be configured; never retried."""


class SystemClock(ClockPort):
    """Concrete clock returning timezone-aware UTC timestamps."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class SinkBackend:
    """Registered backend: builder plus the option fields it cannot do without."""

    name: str
    builder: SinkBuilder
    required: tuple[str, ...] = ()


def _build_console(options: Mapping[str, Any]) -> SinkPort:
    return RichConsoleSink(
        options["template"],
        console=options.get("console"),
        force_color=bool(options.get("force_color", False)),
        no_color=bool(options.get("no_color", False)),
    )


def _build_file(options: Mapping[str, Any]) -> SinkPort:
    return FileSink(options["path"], encoding=options.get("encoding", "utf-8"))


def _build_rest(options: Mapping[str, Any]) -> SinkPort:
    return RestSink(
        options["url"],
        method=options.get("method") or "POST",
        timeout=float(options.get("timeout") or 5.0),
        headers=options.get("headers"),
        client=options.get("client"),
    )


def _build_memory(options: Mapping[str, Any]) -> SinkPort:
    return MemorySink(max_records=int(options.get("max_records") or 1000))


_BACKENDS: dict[str, SinkBackend] = {}
_BACKENDS_LOCK = threading.Lock()


def register_backend(name: str, builder: SinkBuilder, *, required: Iterable[str] = ()) -> None:
    """Register ``builder`` under ``name`` (case-insensitive), replacing any previous entry.

    Examples
    --------
    >>> register_backend("null", lambda options: MemorySink(max_records=1))
    >>> "null" in registered_backends()
    True
    >>> unregister_backend("null")
    """

    key = name.strip().lower()
    if not key:
        raise ValueError("backend name must not be empty")
    with _BACKENDS_LOCK:
        _BACKENDS[key] = SinkBackend(name=key, builder=builder, required=tuple(required))


def unregister_backend(name: str) -> None:
    """Remove a backend registered with :func:`register_backend`."""

    with _BACKENDS_LOCK:
        _BACKENDS.pop(name.strip().lower(), None)


def registered_backends() -> Mapping[str, SinkBackend]:
    """Return a read-only view of the registered backends."""

    with _BACKENDS_LOCK:
        return MappingProxyType(dict(_BACKENDS))


register_backend("console", _build_console, required=("template",))
register_backend("file", _build_file, required=("path",))
register_backend("rest", _build_rest, required=("url",))
register_backend("memory", _build_memory)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, Path)):
        return not str(value).strip()
    return False


class SinkFactory:
    """Validate sink options up front and build the sink once, on first use.

    Parameters
    ----------
    backend:
        Registered backend name. Ignored when ``builder`` is given.
    options:
        Backend options; required fields are checked before anything is built.
    builder:
        Explicit builder taking ``options``; bypasses the registry.
    required:
        Additional option fields that must be present.
    decorate:
        Optional wrapper applied to the freshly built sink (queueing).
    diagnostic:
        Optional hook receiving ``sink_created``.

    Raises
    ------
    SinkConfigurationError
        Unknown backend or a missing required field.

    Examples
    --------
    >>> factory = SinkFactory("memory")
    >>> factory.get_or_create() is factory.get_or_create()
    True
    >>> SinkFactory("file", {})
    Traceback (most recent call last):
    ...
    lib_log_audit.runtime._factories.SinkConfigurationError: file sink requires option 'path'
    """

    def __init__(
        self,
        backend: str | None = None,
        options: Mapping[str, Any] | None = None,
        *,
        builder: SinkBuilder | None = None,
        required: Iterable[str] = (),
        decorate: Callable[[SinkPort], SinkPort] | None = None,
        diagnostic: DiagnosticHook = None,
    ) -> None:
        name = (backend or "").strip().lower() or ("custom" if builder is not None else "")
        required_fields = tuple(required)
        if builder is None:
            entry = registered_backends().get(name)
            if entry is None:
                known = ", ".join(sorted(registered_backends()))
                raise SinkConfigurationError(f"unknown sink backend {backend!r}; expected one of: {known}")
            builder = entry.builder
            required_fields = entry.required + required_fields
        self._backend = name
        self._options: Mapping[str, Any] = MappingProxyType(dict(options or {}))
        for field_name in required_fields:
            if _is_missing(self._options.get(field_name)):
                raise SinkConfigurationError(f"{name} sink requires option {field_name!r}")
        self._builder = builder
        self._decorate = decorate
        self._emit = build_diagnostic_emitter(diagnostic)
        self._lock = threading.Lock()
        self._instance: SinkPort | None = None
        self._failure: SinkConfigurationError | None = None

    @property
    def backend(self) -> str:
        return self._backend

    @property
    def created(self) -> bool:
        return self._instance is not None

    def get_or_create(self) -> SinkPort:
        """Return the shared sink, constructing it under the lock on first call."""

        instance = self._instance
        if instance is not None:
            return instance
        with self._lock:
            if self._instance is not None:
                return self._instance
            if self._failure is not None:
                raise self._failure
            try:
                sink = self._builder(self._options)
                if self._decorate is not None:
                    sink = self._decorate(sink)
            except Exception as exc:
                self._failure = SinkConfigurationError(f"{self._backend} sink construction failed: {exc}")
                logger.error("Sink %r construction failed: %s", self._backend, exc, exc_info=True)
                raise self._failure from exc
            self._instance = sink
        self._emit("sink_created", {"backend": self._backend, "sink": type(sink).__name__})
        return sink

    __call__ = get_or_create

    def close(self) -> None:
        """Close the constructed sink, if any; later calls build nothing."""

        with self._lock:
            sink, self._instance = self._instance, None
            self._failure = SinkConfigurationError(f"{self._backend} sink is closed")
        close = getattr(sink, "close", None)
        if callable(close):
            close()


def create_principal_resolver(
    binder: ContextBinder,
    source: PrincipalResolverPort | Callable[[], Any] | None = None,
) -> PrincipalResolverPort:
    """Return the resolver for ``source``; ``None`` reads the bound context."""

    if source is None:
        return ContextPrincipalResolver(binder)
    if isinstance(source, PrincipalResolverPort):
        return source
    if callable(source):
        return CallablePrincipalResolver(source)
    raise TypeError("principal_resolver must implement resolve() or be callable")


def create_geo_resolver(database: Path | None) -> GeoIP2Resolver | None:
    """Open the GeoIP2 database when configured; ``None`` disables geolocation."""

    if database is None:
        return None
    try:
        return GeoIP2Resolver.from_database(database)
    except (GeoResolutionError, OSError, ValueError) as exc:
        raise ValueError(f"AUDIT_GEOIP_DATABASE: cannot open {database}: {exc}") from exc


__all__ = [
    "SinkBackend",
    "SinkConfigurationError",
    "SinkFactory",
    "SystemClock",
    "create_geo_resolver",
    "create_principal_resolver",
    "register_backend",
    "registered_backends",
    "unregister_backend",
]
