"""Ambient capture context built atop :mod:`contextvars`.

Purpose
-------
Carry the live request, the authenticated principal, a correlation id and
caller-supplied extras across the call stack, so guarded operations deep in a
service can be captured without threading those values through every
signature.

Contents
--------
* :class:`CaptureContext` – immutable frame of ambient values.
* :class:`ContextBinder` – stack manager providing nested ``bind`` scopes.

System Role
-----------
The domain layer stays transport-agnostic: the ``request`` slot holds any
object satisfying the request-context port, supplied by an adapter or a
middleware at the edge.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Any, Iterator
import contextvars

from .records import Principal


@dataclass(slots=True, frozen=True)
class CaptureContext:
    """Immutable ambient values visible to the record assembler.

    Attributes
    ----------
    request:
        Request-context adapter for the inbound request, if any.
    principal:
        Authenticated actor bound by the host, if any.
    trace_id:
        Correlation identifier propagated into every record.
    extra:
        Supplementary data merged into each record's ``extra`` mapping.
    """

    request: Any = None
    principal: Principal | None = None
    trace_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "extra", dict(self.extra))

    def merge(self, **overrides: Any) -> "CaptureContext":
        """Return a new context with non-``None`` ``overrides`` applied.

        ``extra`` is merged key by key rather than replaced.
        """

        extra = dict(self.extra)
        if overrides.get("extra"):
            extra.update(overrides["extra"])
        values = {key: value for key, value in overrides.items() if value is not None and key != "extra"}
        return replace(self, extra=extra, **values)


class ContextBinder:
    """Manage :class:`CaptureContext` frames bound to the current execution flow."""

    _stack_var: contextvars.ContextVar[tuple[CaptureContext, ...]]

    def __init__(self) -> None:
        self._stack_var = contextvars.ContextVar("lib_log_audit_capture_stack", default=())

    @contextmanager
    def bind(self, **fields: Any) -> Iterator[CaptureContext]:
        """Bind a new frame to the current scope, inheriting from the parent frame."""

        stack = self._stack_var.get()
        base = stack[-1] if stack else CaptureContext()
        context = base.merge(**fields)
        token = self._stack_var.set(stack + (context,))
        try:
            yield context
        finally:
            self._stack_var.reset(token)

    def current(self) -> CaptureContext | None:
        """Return the frame bound to the current scope, if any."""

        stack = self._stack_var.get()
        return stack[-1] if stack else None

    def clear(self) -> None:
        """Remove all bound frames."""

        self._stack_var.set(())


__all__ = ["CaptureContext", "ContextBinder"]
