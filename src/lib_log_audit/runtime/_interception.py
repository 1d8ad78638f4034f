"""Decorators marking callables as guarded operations.

Purpose
-------
``log(...)`` and ``audit_log(...)`` declare capture metadata on functions,
methods, coroutine functions and classes. The wrapper runs the business call,
then hands the resolved metadata to the runtime dispatcher.

Contents
--------
* :func:`log` / :func:`audit_log` – declaration decorators.
* :class:`GuardedOperation` – per-callable registration holding the
  precomputed :class:`Metadata` tuple.
* :func:`guarded_operation` – introspection helper.

System Role
-----------
Metadata is merged once, when the decorator runs (class decorators run at
class creation); calls never reflect. Capture problems are logged, reported to
the diagnostic hook and swallowed: the business result or exception always
reaches the caller unchanged.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from collections.abc import Callable, Mapping
from typing import Any, TypeVar, overload

from lib_log_audit.domain import CaptureKind, Metadata, MetadataDeclaration, Status

from ._state import current_runtime

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_GUARD_ATTR = "__lib_log_audit_guard__"


class GuardedOperation:
    """Registration of one guarded callable.

    Holds at most one declaration per :class:`CaptureKind` and the resolved
    metadata tuple the wrapper dispatches on every call.
    """

    def __init__(self, func: Callable[..., Any]) -> None:
        self.func = func
        self.qualname = getattr(func, "__qualname__", repr(func))
        try:
            self._signature: inspect.Signature | None = inspect.signature(func)
        except (TypeError, ValueError):
            self._signature = None
        self._declarations: dict[CaptureKind, MetadataDeclaration] = {}
        self.metadata: tuple[Metadata, ...] = ()

    @property
    def declarations(self) -> Mapping[CaptureKind, MetadataDeclaration]:
        return dict(self._declarations)

    def declare(self, declaration: MetadataDeclaration) -> None:
        """Register ``declaration`` under any existing same-kind entry.

        The entry already present wins field by field, so the innermost
        decorator beats outer ones and method declarations beat class defaults.
        """

        current = self._declarations.get(declaration.kind)
        self._declarations[declaration.kind] = declaration if current is None else current.over(declaration)
        self._resolve()

    def _resolve(self) -> None:
        ordered = sorted(self._declarations.values(), key=lambda item: item.kind is CaptureKind.AUDIT)
        self.metadata = tuple(item.resolve() for item in ordered)

    @property
    def mandatory(self) -> bool:
        return any(item.kind.mandatory for item in self.metadata)

    def arguments(self, args: tuple[Any, ...], kwargs: Mapping[str, Any]) -> dict[str, Any]:
        """Return the call arguments by parameter name; ``**kwargs`` are flattened."""

        if self._signature is None:
            return dict(kwargs)
        try:
            bound = self._signature.bind_partial(*args, **kwargs)
        except TypeError:
            return dict(kwargs)
        bound.apply_defaults()
        namespace: dict[str, Any] = {}
        for name, value in bound.arguments.items():
            kind = self._signature.parameters[name].kind
            if kind is inspect.Parameter.VAR_KEYWORD:
                namespace.update(value)
            else:
                namespace[name] = value
        return namespace

    def capture(self, status: Status, args: tuple[Any, ...], kwargs: Mapping[str, Any], result: Any = None) -> list[Status]:
        """Dispatch one record per declaration; never raises."""

        try:
            runtime = current_runtime()
            context = runtime.binder.current()
            request = context.request if context is not None else None
            return runtime.dispatcher.dispatch(
                self.metadata,
                request,
                status=status,
                arguments=self.arguments(args, kwargs),
                result=result,
            )
        except Exception as exc:
            if self.mandatory:
                logger.error("Audit capture for %s failed: %s", self.qualname, exc, exc_info=True)
            else:
                logger.warning("Log capture for %s failed: %s", self.qualname, exc)
            _emit_failure(self, exc)
            return [Status.FAILURE for _ in self.metadata]

    async def capture_async(
        self,
        status: Status,
        args: tuple[Any, ...],
        kwargs: Mapping[str, Any],
        result: Any = None,
    ) -> list[Status]:
        """Run :meth:`capture` on a worker thread so I/O never blocks the loop."""

        try:
            return await asyncio.to_thread(self.capture, status, args, kwargs, result)
        except RuntimeError as exc:
            logger.warning("Capture for %s could not be scheduled: %s", self.qualname, exc)
            return [Status.FAILURE for _ in self.metadata]


def _emit_failure(guard: GuardedOperation, exc: Exception) -> None:
    try:
        hook = current_runtime().settings.diagnostic_hook
    except RuntimeError:
        return
    if hook is None:
        return
    try:
        hook("capture_failed", {"operation": guard.qualname, "error": str(exc)})
    except Exception:  # pragma: no cover - hook failures are only logged
        logger.debug("diagnostic hook raised for capture_failed", exc_info=True)


def guarded_operation(func: Callable[..., Any]) -> GuardedOperation | None:
    """Return the :class:`GuardedOperation` attached to ``func``, if any."""

    target = func.__func__ if isinstance(func, (staticmethod, classmethod)) else func
    return getattr(target, _GUARD_ATTR, None)


def _wrap(func: Callable[..., Any]) -> Callable[..., Any]:
    guard = GuardedOperation(func)

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                result = await func(*args, **kwargs)
            except Exception:
                await guard.capture_async(Status.FAILURE, args, kwargs)
                raise
            await guard.capture_async(Status.SUCCESS, args, kwargs, result)
            return result

        wrapper: Callable[..., Any] = async_wrapper
    else:

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                result = func(*args, **kwargs)
            except Exception:
                guard.capture(Status.FAILURE, args, kwargs)
                raise
            guard.capture(Status.SUCCESS, args, kwargs, result)
            return result

        wrapper = sync_wrapper

    setattr(wrapper, _GUARD_ATTR, guard)
    return wrapper


def _declare_on_callable(target: Any, declaration: MetadataDeclaration) -> Any:
    descriptor: type[staticmethod] | type[classmethod] | None = None
    func = target
    if isinstance(target, (staticmethod, classmethod)):
        descriptor = type(target)
        func = target.__func__
    guard = getattr(func, _GUARD_ATTR, None)
    if guard is None:
        func = _wrap(func)
        guard = getattr(func, _GUARD_ATTR)
    guard.declare(declaration)
    return descriptor(func) if descriptor is not None else func


def _declare_on_class(cls: type, declaration: MetadataDeclaration) -> type:
    for name, member in list(vars(cls).items()):
        if name.startswith("_"):
            continue
        if isinstance(member, (staticmethod, classmethod)):
            descriptor: type[staticmethod] | type[classmethod] | None = type(member)
            func = member.__func__
        elif inspect.isfunction(member):
            descriptor = None
            func = member
        else:
            continue
        guard = getattr(func, _GUARD_ATTR, None)
        if guard is None:
            func = _wrap(func)
            guard = getattr(func, _GUARD_ATTR)
        guard.declare(declaration)
        setattr(cls, name, descriptor(func) if descriptor is not None else func)
    return cls


class _Declarator:
    """Callable applying one declaration to a function, method or class."""

    def __init__(self, declaration: MetadataDeclaration) -> None:
        self.declaration = declaration

    def __call__(self, target: Any) -> Any:
        if inspect.isclass(target):
            return _declare_on_class(target, self.declaration)
        if isinstance(target, (staticmethod, classmethod)) or callable(target):
            return _declare_on_callable(target, self.declaration)
        raise TypeError(f"cannot declare capture on {type(target).__name__}")


def _declarator(
    kind: CaptureKind,
    event: str | Callable[..., Any] | None,
    business_type: str | None,
    description: str | None,
) -> Any:
    if event is not None and not isinstance(event, str):
        return _Declarator(MetadataDeclaration(kind))(event)
    return _Declarator(
        MetadataDeclaration(kind, event=event, business_type=business_type, description=description)
    )


@overload
def log(event: F) -> F: ...


@overload
def log(
    event: str | None = None,
    *,
    business_type: str | None = None,
    description: str | None = None,
) -> Callable[[F], F]: ...


def log(
    event: Any = None,
    *,
    business_type: str | None = None,
    description: str | None = None,
) -> Any:
    """Declare plain log capture on a callable or, as defaults, on a class.

    ``description`` may reference call arguments and ``{result}``. Usable bare
    (``@log``) or with arguments (``@log("order.create", business_type="ORDER")``).
    """

    return _declarator(CaptureKind.LOG, event, business_type, description)


@overload
def audit_log(event: F) -> F: ...


@overload
def audit_log(
    event: str | None = None,
    *,
    business_type: str | None = None,
    description: str | None = None,
) -> Callable[[F], F]: ...


def audit_log(
    event: Any = None,
    *,
    business_type: str | None = None,
    description: str | None = None,
) -> Any:
    """Declare audit capture; failures are reported at ERROR level.

    Examples
    --------
    >>> @audit_log("user.delete", business_type="USER")
    ... def delete_user(user_id):
    ...     return user_id
    >>> [item.event for item in guarded_operation(delete_user).metadata]
    ['user.delete']
    """

    return _declarator(CaptureKind.AUDIT, event, business_type, description)


__all__ = ["GuardedOperation", "audit_log", "guarded_operation", "log"]
