"""Port resolving the identity of the current actor."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from lib_log_audit.domain.records import Principal


@runtime_checkable
class PrincipalResolverPort(Protocol):
    """Extract the current principal from ambient security state."""

    def resolve(self) -> Principal | None:
        """Return the current principal or ``None``; must not raise."""


__all__ = ["PrincipalResolverPort"]
