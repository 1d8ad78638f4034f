"""Runtime configuration resolved from keyword arguments and ``AUDIT_*`` variables.

Purpose
-------
Collapse the inputs of :func:`lib_log_audit.init` into one immutable
:class:`RuntimeSettings` value so composition stays declarative.

Contents
--------
* :class:`RuntimeSettings` – frozen settings consumed by ``build_runtime``.
* :func:`build_runtime_settings` – argument and environment resolution.
* ``_env_*`` helpers parsing individual variables.

System Role
-----------
Environment variables override keyword arguments. Invalid values raise
:class:`ValueError` naming the offending variable.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

from lib_log_audit.adapters.sinks.console import DEFAULT_TEMPLATE
from lib_log_audit.application.use_cases.dispatch import DiagnosticHook

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})
_REST_METHODS = frozenset({"POST", "PUT"})


@dataclass(frozen=True, slots=True)
class RuntimeSettings:
    """Resolved configuration for one runtime instance."""

    sink: str = "console"
    sink_options: Mapping[str, Any] = field(default_factory=dict)
    client_ip_header: str | None = None
    geoip_database: Path | None = None
    queue_enabled: bool = False
    queue_maxsize: int = 2048
    queue_full_policy: str = "block"
    queue_put_timeout: float | None = 1.0
    queue_stop_timeout: float | None = 5.0
    diagnostic_hook: DiagnosticHook = None


def _env(environ: Mapping[str, str], name: str) -> str | None:
    value = environ.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _env_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    """Return the boolean value of ``name`` with ``default`` when unset.

    Examples
    --------
    >>> _env_bool({"AUDIT_QUEUE": "on"}, "AUDIT_QUEUE", False)
    True
    >>> _env_bool({}, "AUDIT_QUEUE", False)
    False
    """

    value = _env(environ, name)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"{name} must be one of 1/true/yes/on or 0/false/no/off, got {value!r}")


def _env_positive_int(environ: Mapping[str, str], name: str, default: int | None) -> int | None:
    value = _env(environ, name)
    if value is None:
        return default
    try:
        number = int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc
    if number <= 0:
        raise ValueError(f"{name} must be positive, got {number}")
    return number


def _env_positive_float(environ: Mapping[str, str], name: str, default: float | None) -> float | None:
    value = _env(environ, name)
    if value is None:
        return default
    try:
        number = float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc
    if number <= 0:
        raise ValueError(f"{name} must be positive, got {number}")
    return number


def _rest_method(value: str | None, source: str) -> str:
    method = (value or "POST").upper()
    if method not in _REST_METHODS:
        raise ValueError(f"{source} must be POST or PUT, got {value!r}")
    return method


def build_runtime_settings(
    *,
    sink: str = "console",
    sink_options: Mapping[str, Any] | None = None,
    console_template: str | None = DEFAULT_TEMPLATE,
    force_color: bool = False,
    no_color: bool = False,
    file_path: str | Path | None = None,
    rest_url: str | None = None,
    rest_method: str = "POST",
    rest_timeout: float = 5.0,
    memory_size: int = 1000,
    client_ip_header: str | None = None,
    geoip_database: str | Path | None = None,
    queue_enabled: bool = False,
    queue_maxsize: int = 2048,
    queue_full_policy: str = "block",
    queue_put_timeout: float | None = 1.0,
    queue_stop_timeout: float | None = 5.0,
    diagnostic_hook: DiagnosticHook = None,
    environ: Mapping[str, str] | None = None,
) -> RuntimeSettings:
    """Resolve arguments plus environment overrides into :class:`RuntimeSettings`.

    Only the options belonging to the selected backend are passed on;
    ``sink_options`` is merged last and reaches custom backends unchanged.

    Examples
    --------
    >>> settings = build_runtime_settings(sink="file", file_path="/tmp/audit.jsonl", environ={"AUDIT_QUEUE": "yes"})
    >>> settings.sink, dict(settings.sink_options), settings.queue_enabled
    ('file', {'path': '/tmp/audit.jsonl'}, True)
    >>> build_runtime_settings(environ={"AUDIT_MEMORY_SIZE": "-1"})
    Traceback (most recent call last):
    ...
    ValueError: AUDIT_MEMORY_SIZE must be positive, got -1
    """

    env = os.environ if environ is None else environ

    backend = (_env(env, "AUDIT_SINK") or sink or "").strip().lower()
    if not backend:
        raise ValueError("AUDIT_SINK must name a sink backend")
    client_ip_header = _env(env, "AUDIT_CLIENT_IP_HEADER") or client_ip_header
    database = _env(env, "AUDIT_GEOIP_DATABASE") or geoip_database
    console_template = _env(env, "AUDIT_CONSOLE_TEMPLATE") or console_template
    file_path = _env(env, "AUDIT_FILE_PATH") or file_path
    rest_url = _env(env, "AUDIT_REST_URL") or rest_url
    env_method = _env(env, "AUDIT_REST_METHOD")
    method = _rest_method(env_method, "AUDIT_REST_METHOD") if env_method else _rest_method(rest_method, "rest_method")
    timeout = _env_positive_float(env, "AUDIT_REST_TIMEOUT", rest_timeout)
    memory_size = _env_positive_int(env, "AUDIT_MEMORY_SIZE", memory_size)
    queue_enabled = _env_bool(env, "AUDIT_QUEUE", queue_enabled)

    if queue_maxsize <= 0:
        raise ValueError("queue_maxsize must be positive")
    policy = queue_full_policy.lower()
    if policy not in {"block", "drop"}:
        raise ValueError("queue_full_policy must be 'block' or 'drop'")

    per_backend: dict[str, dict[str, Any]] = {
        "console": {"template": console_template, "force_color": force_color, "no_color": no_color},
        "file": {"path": None if file_path is None else str(file_path)},
        "rest": {"url": rest_url, "method": method, "timeout": timeout},
        "memory": {"max_records": memory_size},
    }
    options = dict(per_backend.get(backend, {}))
    if sink_options:
        options.update(sink_options)

    return RuntimeSettings(
        sink=backend,
        sink_options=MappingProxyType(options),
        client_ip_header=client_ip_header,
        geoip_database=None if database is None else Path(database),
        queue_enabled=queue_enabled,
        queue_maxsize=queue_maxsize,
        queue_full_policy=policy,
        queue_put_timeout=queue_put_timeout,
        queue_stop_timeout=queue_stop_timeout,
        diagnostic_hook=diagnostic_hook,
    )


__all__ = ["DiagnosticHook", "RuntimeSettings", "build_runtime_settings"]
