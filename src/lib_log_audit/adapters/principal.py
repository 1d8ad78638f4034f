"""Principal resolvers reading the current actor from ambient state."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from lib_log_audit.application.ports.principal import PrincipalResolverPort
from lib_log_audit.domain.context import ContextBinder
from lib_log_audit.domain.records import Principal

logger = logging.getLogger(__name__)


class AnonymousPrincipalResolver(PrincipalResolverPort):
    """Resolver for hosts without authentication; always ``None``."""

    def resolve(self) -> Principal | None:
        return None


class ContextPrincipalResolver(PrincipalResolverPort):
    """Return the principal bound to the current capture context.

    Examples
    --------
    >>> binder = ContextBinder()
    >>> resolver = ContextPrincipalResolver(binder)
    >>> resolver.resolve() is None
    True
    >>> with binder.bind(principal=Principal(id="42", user_name="ada")):
    ...     resolver.resolve().user_name
    'ada'
    """

    def __init__(self, binder: ContextBinder) -> None:
        self._binder = binder

    def resolve(self) -> Principal | None:
        context = self._binder.current()
        return None if context is None else context.principal


class CallablePrincipalResolver(PrincipalResolverPort):
    """Adapt a host callable returning a :class:`Principal`, a mapping or ``None``.

    Mappings are read for ``id``, ``user_name`` (or ``username``) and
    ``real_name``. Exceptions raised by the callable are logged and yield
    ``None``.
    """

    def __init__(self, source: Callable[[], Principal | Mapping[str, Any] | None]) -> None:
        self._source = source

    def resolve(self) -> Principal | None:
        try:
            value = self._source()
        except Exception as exc:
            logger.warning("Principal source raised: %s", exc)
            return None
        if value is None or isinstance(value, Principal):
            return value
        if isinstance(value, Mapping):
            identifier = value.get("id")
            return Principal(
                id=None if identifier is None else str(identifier),
                user_name=value.get("user_name", value.get("username")),
                real_name=value.get("real_name"),
            )
        logger.warning("Principal source returned unsupported %s", type(value).__name__)
        return None


__all__ = ["AnonymousPrincipalResolver", "CallablePrincipalResolver", "ContextPrincipalResolver"]
