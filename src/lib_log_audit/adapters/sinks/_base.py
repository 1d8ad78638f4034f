"""Base class translating sink exceptions into :attr:`Status.FAILURE`."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from lib_log_audit.application.ports.sink import SinkPort
from lib_log_audit.domain.records import LogRecord, Status

logger = logging.getLogger(__name__)


class BaseSink(SinkPort, ABC):
    """Template for sinks: subclasses implement :meth:`_do_handle`.

    Exceptions raised by :meth:`_do_handle` are logged at ERROR with the
    traceback and reported as :attr:`Status.FAILURE`; nothing is retried.
    """

    def handle(self, record: LogRecord) -> Status:
        try:
            return self._do_handle(record)
        except Exception as exc:
            logger.error("Save log record failure: %s", exc, exc_info=True)
            return Status.FAILURE

    @abstractmethod
    def _do_handle(self, record: LogRecord) -> Status:
        """Persist ``record``; raise on failure."""

    def close(self) -> None:
        """Release resources held by the sink."""


__all__ = ["BaseSink"]
