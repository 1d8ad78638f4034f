"""Use case forwarding assembled records to the configured sink.

Purpose
-------
For every resolved metadata declaration of one guarded invocation, run one
assembler pass and exactly one ``sink.handle`` call, then report the sink
statuses back to the interception layer.

Contents
--------
* :func:`render_description` – resolve description templates against call
  arguments.
* :func:`build_diagnostic_emitter` – guard the optional diagnostic hook.
* :class:`CaptureDispatcher` – the fail-soft dispatch loop.

System Role
-----------
Sits between the decorators of the runtime façade and the sink. Nothing raised
here may reach the guarded business operation; audit declarations report
failures at ERROR level, plain ones at WARNING.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import replace
from typing import Any

from lib_log_audit.application.ports import RequestContextPort, SinkPort
from lib_log_audit.domain import LogRecord, Metadata, Status

from .assemble import RecordAssembler

logger = logging.getLogger(__name__)

DiagnosticHook = Callable[[str, dict[str, Any]], None] | None


def render_description(
    template: str | None,
    arguments: Mapping[str, Any] | None = None,
    result: Any = None,
) -> str | None:
    """Resolve ``{placeholder}`` fields of ``template`` against call arguments.

    ``result`` is available as ``{result}``. Templates that cannot be formatted
    are returned unchanged.

    Examples
    --------
    >>> render_description("order {order_id} by {user}", {"order_id": 7, "user": "ada"})
    'order 7 by ada'
    >>> render_description("created {result.id}", {}, None)
    'created {result.id}'
    >>> render_description(None) is None
    True
    """

    if not template:
        return template
    namespace = dict(arguments or {})
    namespace.setdefault("result", result)
    try:
        return template.format_map(namespace)
    except (KeyError, IndexError, AttributeError, ValueError, TypeError):
        return template


def build_diagnostic_emitter(diagnostic: DiagnosticHook) -> Callable[[str, dict[str, Any]], None]:
    """Wrap ``diagnostic`` so a misbehaving hook never breaks capture."""

    def emit(event_name: str, payload: dict[str, Any]) -> None:
        if diagnostic is None:
            return
        try:
            diagnostic(event_name, payload)
        except Exception:  # pragma: no cover - hook failures are only logged
            logger.debug("diagnostic hook raised for %s", event_name, exc_info=True)

    return emit


class CaptureDispatcher:
    """Run the assemble-and-handle pipeline for each declaration of a call site.

    Parameters
    ----------
    assembler:
        :class:`RecordAssembler` producing the records.
    sink_provider:
        Callable returning the sink; invoked per dispatch so the sink can be
        constructed lazily on first use.
    diagnostic:
        Optional hook receiving ``captured``, ``sink_failed`` and
        ``capture_failed`` milestones.
    """

    def __init__(
        self,
        *,
        assembler: RecordAssembler,
        sink_provider: Callable[[], SinkPort],
        diagnostic: DiagnosticHook = None,
    ) -> None:
        self._assembler = assembler
        self._sink_provider = sink_provider
        self._emit = build_diagnostic_emitter(diagnostic)

    def dispatch(
        self,
        declarations: Sequence[Metadata],
        request: RequestContextPort | None,
        *,
        status: Status | None = None,
        arguments: Mapping[str, Any] | None = None,
        result: Any = None,
        extra: Mapping[str, Any] | None = None,
    ) -> list[Status]:
        """Capture one invocation; return one sink status per declaration."""

        return [
            self._capture_one(metadata, request, status=status, arguments=arguments, result=result, extra=extra)
            for metadata in declarations
        ]

    def _capture_one(
        self,
        metadata: Metadata,
        request: RequestContextPort | None,
        *,
        status: Status | None,
        arguments: Mapping[str, Any] | None,
        result: Any,
        extra: Mapping[str, Any] | None,
    ) -> Status:
        try:
            resolved = replace(metadata, description=render_description(metadata.description, arguments, result))
            record = self._assembler.assemble(resolved, request, status=status, extra=extra)
            outcome = self._sink_provider().handle(record)
        except Exception as exc:
            _report_capture_failure(metadata, exc)
            self._emit("capture_failed", {"event": metadata.event, "kind": metadata.kind.value, "error": str(exc)})
            return Status.FAILURE

        if not isinstance(outcome, Status):
            outcome = Status.FAILURE
        if outcome is Status.SUCCESS:
            self._emit("captured", _payload(record, metadata))
        else:
            _report_sink_failure(metadata, record)
            self._emit("sink_failed", _payload(record, metadata))
        return outcome


def _payload(record: LogRecord, metadata: Metadata) -> dict[str, Any]:
    return {"event": record.event, "kind": metadata.kind.value, "business_type": record.business_type}


def _report_capture_failure(metadata: Metadata, exc: Exception) -> None:
    if metadata.kind.mandatory:
        logger.error("Audit capture of %r failed: %s", metadata.event, exc, exc_info=True)
    else:
        logger.warning("Log capture of %r failed: %s", metadata.event, exc)


def _report_sink_failure(metadata: Metadata, record: LogRecord) -> None:
    if metadata.kind.mandatory:
        logger.error("Sink rejected audit record %r at %s", record.event, record.occurred_at.isoformat())
    else:
        logger.warning("Sink rejected log record %r", record.event)


__all__ = ["CaptureDispatcher", "DiagnosticHook", "build_diagnostic_emitter", "render_description"]
