"""Port abstracting a live inbound request.

The record assembler reads the request only through this protocol, so the
same pipeline serves WSGI, ASGI or hand-built request snapshots.
"""

from __future__ import annotations

from typing import Mapping, Protocol, runtime_checkable


@runtime_checkable
class RequestContextPort(Protocol):
    """Uniform read-only view over an inbound request."""

    def url(self) -> str | None:
        """Return the full request URL including the query string."""

    def method(self) -> str | None:
        """Return the raw HTTP method as sent by the client."""

    def parameters(self) -> Mapping[str, tuple[str | None, ...]]:
        """Return query/form parameters as a multi-map."""

    def body(self) -> str | None:
        """Return the request body, if captured."""

    def client_ip(self) -> str | None:
        """Return the best-effort originating client IP."""

    def remote_addr(self) -> str | None:
        """Return the address of the direct peer."""

    def user_agent(self) -> str | None:
        """Return the raw ``User-Agent`` header."""


__all__ = ["RequestContextPort"]
