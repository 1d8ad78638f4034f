"""Rich-powered console sink rendering records through a ``${name}`` template.

Purpose
-------
Give operators an immediate, human-readable trail of captured records without
any backend infrastructure.

Contents
--------
* :data:`DEFAULT_TEMPLATE` – template used by the CLI demo.
* :data:`_STYLE_MAP` – status-to-style mapping.
* :class:`RichConsoleSink` – sink built by the ``console`` backend.
"""

from __future__ import annotations

from typing import Mapping

from rich.console import Console

from lib_log_audit.domain.records import LogRecord, Status

from .._formatting import build_format_payload, render_template
from ._base import BaseSink

DEFAULT_TEMPLATE = "${date_time} ${status} ${business_type}/${event} ${request_method} ${url} ip=${client_ip} by=${principal}"

_STYLE_MAP: Mapping[Status | None, str] = {
    Status.SUCCESS: "cyan",
    Status.FAILURE: "red",
    None: "",
}

#: Default Rich styles keyed by business outcome.


class RichConsoleSink(BaseSink):
    """Print each record as one rendered template line.

    Examples
    --------
    >>> from datetime import datetime, timezone
    >>> from io import StringIO
    >>> console = Console(file=StringIO(), record=True)
    >>> sink = RichConsoleSink("${event} -> ${status}", console=console)
    >>> record = LogRecord(occurred_at=datetime(2025, 1, 1, tzinfo=timezone.utc), event="login", status=Status.SUCCESS)
    >>> sink.handle(record)
    <Status.SUCCESS: 'success'>
    >>> console.export_text().strip()
    'login -> SUCCESS'
    """

    def __init__(
        self,
        template: str,
        *,
        console: Console | None = None,
        force_color: bool = False,
        no_color: bool = False,
        styles: Mapping[Status | None, str] | None = None,
    ) -> None:
        if not template or not template.strip():
            raise ValueError("Log message template must not be blank")
        self._template = template
        self._console = console if console is not None else Console(force_terminal=force_color, no_color=no_color)
        self._no_color = no_color
        self._style_map = {**_STYLE_MAP, **(styles or {})}

    @property
    def template(self) -> str:
        return self._template

    def format(self, record: LogRecord) -> str:
        return render_template(self._template, build_format_payload(record))

    def _do_handle(self, record: LogRecord) -> Status:
        style = "" if self._no_color else self._style_map.get(record.status, "")
        self._console.print(self.format(record), style=style, highlight=False, markup=False)
        return Status.SUCCESS


__all__ = ["DEFAULT_TEMPLATE", "RichConsoleSink"]
