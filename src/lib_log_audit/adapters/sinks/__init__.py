"""Persistence backends implementing :class:`SinkPort`."""

from __future__ import annotations

from ._base import BaseSink
from .console import DEFAULT_TEMPLATE, RichConsoleSink
from .file import FileSink
from .memory import MemorySink
from .queued import QueuedSink
from .rest import RestSink

__all__ = [
    "BaseSink",
    "DEFAULT_TEMPLATE",
    "FileSink",
    "MemorySink",
    "QueuedSink",
    "RestSink",
    "RichConsoleSink",
]
