"""Thread-based queue wrapper decoupling callers from slow sinks.

Purpose
-------
Hand records to a background worker so guarded operations never wait on file
or network I/O.

Contents
--------
* :class:`QueuedSink` – wraps any :class:`SinkPort`; ``handle`` reports
  "submitted".

System Role
-----------
Optional layer selected by ``queue_enabled``. The status returned to the
dispatcher only says whether the record was accepted by the queue; the inner
sink's own status is reported through logging and the diagnostic hook.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable
from typing import Any

from lib_log_audit.application.ports.sink import SinkPort
from lib_log_audit.domain.records import LogRecord, Status

from ._base import BaseSink

logger = logging.getLogger(__name__)


class QueuedSink(BaseSink):
    """Forward records to ``inner`` on a daemon thread.

    Examples
    --------
    >>> from datetime import datetime, timezone
    >>> from lib_log_audit.adapters.sinks.memory import MemorySink
    >>> inner = MemorySink()
    >>> sink = QueuedSink(inner)
    >>> sink.handle(LogRecord(occurred_at=datetime(2025, 1, 1, tzinfo=timezone.utc), event="e"))
    <Status.SUCCESS: 'success'>
    >>> sink.stop(drain=True)
    >>> [record.event for record in inner.snapshot()]
    ['e']
    """

    def __init__(
        self,
        inner: SinkPort,
        *,
        maxsize: int = 2048,
        drop_policy: str = "block",
        timeout: float | None = 1.0,
        stop_timeout: float | None = 5.0,
        diagnostic: Callable[[str, dict[str, Any]], None] | None = None,
    ) -> None:
        policy = drop_policy.lower()
        if policy not in {"block", "drop"}:
            raise ValueError("drop_policy must be 'block' or 'drop'")
        self._inner = inner
        self._queue: queue.Queue[LogRecord | None] = queue.Queue(maxsize=maxsize)
        self._thread: threading.Thread | None = None
        self._start_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._drop_policy = policy
        self._timeout = timeout
        self._stop_timeout = stop_timeout
        self._diagnostic = diagnostic

    @property
    def inner(self) -> SinkPort:
        return self._inner

    def start(self) -> None:
        """Start the background worker thread if it is not already running."""

        with self._start_lock:
            self._stop_event.clear()
            self._ensure_worker()

    def _ensure_worker(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._run, name="lib_log_audit-sink", daemon=True)
        self._thread.start()

    def _do_handle(self, record: LogRecord) -> Status:
        # Enqueued under the start lock so no record lands behind the stop sentinel.
        try:
            with self._start_lock:
                if self._stop_event.is_set():
                    return Status.FAILURE
                self._ensure_worker()
                if self._drop_policy == "drop":
                    self._queue.put(record, block=False)
                else:
                    self._queue.put(record, timeout=self._timeout)
        except queue.Full:
            logger.error("Sink queue full; dropped record %r", record.event)
            self._emit_diagnostic("queue_dropped", {"event": record.event})
            return Status.FAILURE
        return Status.SUCCESS

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until queued records are processed or ``timeout`` elapses."""

        deadline = None if timeout is None else time.monotonic() + timeout
        while self._queue.unfinished_tasks:
            if deadline is not None and time.monotonic() >= deadline:
                return False
            time.sleep(0.01)
        return True

    def stop(self, *, drain: bool = True, timeout: float | None = None) -> None:
        """Stop the worker, processing queued records first when ``drain`` is set."""

        thread = self._thread
        if thread is None:
            return
        effective_timeout = timeout if timeout is not None else self._stop_timeout
        if drain:
            self.wait_until_idle(effective_timeout)
        else:
            self._discard_pending()
        with self._start_lock:
            self._stop_event.set()
        try:
            self._queue.put(None, timeout=effective_timeout)
        except queue.Full:
            self._discard_pending()
            self._queue.put_nowait(None)
        thread.join(effective_timeout)
        if thread.is_alive():
            self._emit_diagnostic("queue_shutdown_timeout", {"timeout": effective_timeout})
            raise RuntimeError("Sink queue worker failed to stop within the allotted timeout")
        self._thread = None

    def close(self) -> None:
        self.stop(drain=True)
        close = getattr(self._inner, "close", None)
        if callable(close):
            close()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    break
                try:
                    outcome = self._inner.handle(item)
                except Exception as exc:
                    logger.error("Sink queue worker raised an exception; continuing", exc_info=exc)
                    outcome = Status.FAILURE
                if outcome is not Status.SUCCESS:
                    self._emit_diagnostic("sink_failed", {"event": item.event, "queued": True})
            finally:
                self._queue.task_done()

    def _discard_pending(self) -> None:
        while True:
            try:
                dropped = self._queue.get_nowait()
            except queue.Empty:
                break
            if dropped is not None:
                self._emit_diagnostic("queue_dropped", {"event": dropped.event})
            self._queue.task_done()

    def _emit_diagnostic(self, name: str, payload: dict[str, Any]) -> None:
        if self._diagnostic is None:
            return
        try:
            self._diagnostic(name, payload)
        except Exception as diagnostic_exc:  # noqa: BLE001
            logger.error("Queue diagnostic hook raised while reporting %s", name, exc_info=diagnostic_exc)


__all__ = ["QueuedSink"]
