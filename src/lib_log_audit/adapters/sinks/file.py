"""JSON-lines file sink."""

from __future__ import annotations

import threading
from pathlib import Path

from lib_log_audit.domain.records import LogRecord, Status

from ._base import BaseSink


class FileSink(BaseSink):
    """Append one JSON document per record to ``path``.

    Parent directories are created on construction. Writes from concurrent
    threads are serialised so lines never interleave.
    """

    def __init__(self, path: str | Path, *, encoding: str = "utf-8") -> None:
        if not str(path).strip():
            raise ValueError("Log file path must not be empty")
        self._path = Path(path)
        self._encoding = encoding
        self._lock = threading.Lock()
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def _do_handle(self, record: LogRecord) -> Status:
        line = record.to_json() + "\n"
        with self._lock:
            with self._path.open("a", encoding=self._encoding) as handle:
                handle.write(line)
        return Status.SUCCESS


__all__ = ["FileSink"]
