"""Port for IP-to-location resolution."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from lib_log_audit.domain.records import GeoLocation


class GeoResolutionError(RuntimeError):
    """Raised when an IP address cannot be resolved to a location."""


@runtime_checkable
class GeoResolverPort(Protocol):
    """Resolve a client IP address to a :class:`GeoLocation`."""

    def resolve(self, ip: str) -> GeoLocation | None:
        """Return the location for ``ip``.

        Failures surface as exceptions; the caller decides whether to swallow
        them. Implementations do not retry.
        """


__all__ = ["GeoResolutionError", "GeoResolverPort"]
