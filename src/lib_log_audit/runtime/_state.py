"""Runtime state container and access helpers."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from threading import RLock

from lib_log_audit.application.use_cases import CaptureDispatcher, RecordAssembler
from lib_log_audit.domain import ContextBinder

from ._factories import SinkFactory
from ._settings import RuntimeSettings


@dataclass(slots=True)
class CaptureRuntime:
    """Aggregate of live collaborators assembled by the composition root."""

    binder: ContextBinder
    assembler: RecordAssembler
    dispatcher: CaptureDispatcher
    sink_factory: SinkFactory
    settings: RuntimeSettings
    closers: list[Callable[[], None]] = field(default_factory=list)


_STATE: CaptureRuntime | None = None
_STATE_LOCK = RLock()


def set_runtime(runtime: CaptureRuntime) -> None:
    """Install ``runtime`` as the active singleton."""

    with _STATE_LOCK:
        global _STATE
        _STATE = runtime


def clear_runtime() -> None:
    """Remove the active runtime if present."""

    with _STATE_LOCK:
        global _STATE
        _STATE = None


def current_runtime() -> CaptureRuntime:
    """Return the active runtime or raise when uninitialised."""

    with _STATE_LOCK:
        if _STATE is None:
            raise RuntimeError("lib_log_audit.init() must be called before capturing records")
        return _STATE


def is_initialised() -> bool:
    """Return ``True`` when :func:`lib_log_audit.init` has been called."""

    with _STATE_LOCK:
        return _STATE is not None


__all__ = [
    "CaptureRuntime",
    "clear_runtime",
    "current_runtime",
    "is_initialised",
    "set_runtime",
]
