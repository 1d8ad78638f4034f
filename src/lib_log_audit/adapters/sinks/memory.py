"""In-memory sink retaining the most recent records."""

from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Iterator

from lib_log_audit.domain.records import LogRecord, Status

from ._base import BaseSink


class MemorySink(BaseSink):
    """Fixed-size buffer keeping the newest :class:`LogRecord` objects.

    Examples
    --------
    >>> from datetime import datetime, timezone
    >>> sink = MemorySink(max_records=2)
    >>> for name in ("a", "b", "c"):
    ...     _ = sink.handle(LogRecord(occurred_at=datetime(2025, 1, 1, tzinfo=timezone.utc), event=name))
    >>> [record.event for record in sink.snapshot()]
    ['b', 'c']
    """

    def __init__(self, *, max_records: int = 1000) -> None:
        if max_records <= 0:
            raise ValueError("max_records must be positive")
        self._max_records = max_records
        self._buffer: Deque[LogRecord] = deque(maxlen=max_records)
        self._lock = threading.Lock()

    @property
    def max_records(self) -> int:
        return self._max_records

    def _do_handle(self, record: LogRecord) -> Status:
        with self._lock:
            self._buffer.append(record)
        return Status.SUCCESS

    def snapshot(self) -> list[LogRecord]:
        """Return a copy of the buffered records, oldest first."""

        with self._lock:
            return list(self._buffer)

    def clear(self) -> None:
        with self._lock:
            self._buffer.clear()

    def __iter__(self) -> Iterator[LogRecord]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)


__all__ = ["MemorySink"]
