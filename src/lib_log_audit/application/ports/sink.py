"""Sink port describing the persistence hand-off contract.

Purpose
-------
Define the single method every persistence backend implements so the
dispatcher can forward finished records without knowing where they land.

Contents
--------
* :class:`SinkPort` – runtime-checkable protocol with ``handle``.

System Role
-----------
Boundary between the capture core and the interchangeable backends (console,
file, REST callback, in-memory, or host-provided ones).
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from lib_log_audit.domain.records import LogRecord, Status


@runtime_checkable
class SinkPort(Protocol):
    """Persist a finished :class:`LogRecord`."""

    def handle(self, record: LogRecord) -> Status:
        """Store ``record`` and report the outcome.

        Recoverable per-record failures are reported as
        :attr:`Status.FAILURE` rather than raised.
        """


__all__ = ["SinkPort"]
