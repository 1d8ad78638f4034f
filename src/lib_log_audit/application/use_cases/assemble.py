"""Use case assembling one canonical :class:`LogRecord` per guarded invocation.

Purpose
-------
Turn resolved metadata plus the live request context into a finished record:
timestamp, request snapshot, geolocation, user-agent decomposition, principal
and classification, in that order.

Contents
--------
* :func:`create_record_assembler` factory returning the runtime callable.
* :class:`RecordAssembler` performing the ordered steps.

System Role
-----------
Application-layer orchestrator invoked by the dispatcher. Enrichment failures
are absorbed here so they never reach the guarded business operation.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from lib_log_audit.application.ports import (
    EMPTY_DETAILS,
    ClockPort,
    GeoResolverPort,
    PrincipalResolverPort,
    RequestContextPort,
    UserAgentDetails,
    UserAgentParserPort,
)
from lib_log_audit.domain import ContextBinder, GeoLocation, LogRecord, Metadata, Principal, RequestMethod, Status

logger = logging.getLogger(__name__)


def create_record_assembler(
    *,
    clock: ClockPort,
    user_agent_parser: UserAgentParserPort,
    principal_resolver: PrincipalResolverPort,
    geo_resolver: GeoResolverPort | None = None,
    context_binder: ContextBinder | None = None,
) -> "RecordAssembler":
    """Build the assembler capturing the current dependency wiring.

    Parameters
    ----------
    clock:
        Provider of timezone-aware timestamps for ``occurred_at``.
    user_agent_parser:
        Offline user-agent decomposer; always consulted.
    principal_resolver:
        Source of the current actor; ``None`` results are valid.
    geo_resolver:
        Optional IP-to-location resolver; ``None`` skips geolocation entirely.
    context_binder:
        Optional ambient context supplying ``trace_id`` and extra values.

    Examples
    --------
    >>> from datetime import datetime, timezone
    >>> class Clock:
    ...     def now(self):
    ...         return datetime(2025, 1, 1, tzinfo=timezone.utc)
    >>> class Parser:
    ...     def parse(self, user_agent):
    ...         return EMPTY_DETAILS
    >>> class Nobody:
    ...     def resolve(self):
    ...         return None
    >>> assemble = create_record_assembler(clock=Clock(), user_agent_parser=Parser(), principal_resolver=Nobody())
    >>> record = assemble(Metadata(event="order.create"), None)
    >>> record.event, record.request_method.name, record.location is None
    ('order.create', 'GET', True)
    """

    return RecordAssembler(
        clock=clock,
        user_agent_parser=user_agent_parser,
        principal_resolver=principal_resolver,
        geo_resolver=geo_resolver,
        context_binder=context_binder,
    )


@dataclass(frozen=True)
class _RequestSnapshot:
    url: str | None = None
    request_method: RequestMethod = RequestMethod.GET
    request_parameters: Mapping[str, tuple[str | None, ...]] | None = None
    request_body: str | None = None
    client_ip: str | None = None
    remote_addr: str | None = None
    user_agent: str | None = None


class RecordAssembler:
    """Assemble records in the fixed order the capture contract requires."""

    def __init__(
        self,
        *,
        clock: ClockPort,
        user_agent_parser: UserAgentParserPort,
        principal_resolver: PrincipalResolverPort,
        geo_resolver: GeoResolverPort | None,
        context_binder: ContextBinder | None,
    ) -> None:
        self._clock = clock
        self._user_agent_parser = user_agent_parser
        self._principal_resolver = principal_resolver
        self._geo_resolver = geo_resolver
        self._context_binder = context_binder

    @property
    def geo_enabled(self) -> bool:
        return self._geo_resolver is not None

    def __call__(
        self,
        metadata: Metadata,
        request: RequestContextPort | None,
        *,
        status: Status | None = None,
        extra: Mapping[str, Any] | None = None,
    ) -> LogRecord:
        return self.assemble(metadata, request, status=status, extra=extra)

    def assemble(
        self,
        metadata: Metadata,
        request: RequestContextPort | None,
        *,
        status: Status | None = None,
        extra: Mapping[str, Any] | None = None,
    ) -> LogRecord:
        """Return a finished record for one invocation of a guarded operation."""

        occurred_at = _stamp(self._clock)
        snapshot = _snapshot_request(request)
        location = self._locate(snapshot.client_ip)
        details = self._decompose(snapshot.user_agent)
        principal = self._resolve_principal()
        trace_id, ambient_extra = self._ambient()

        merged_extra = dict(ambient_extra)
        if extra:
            merged_extra.update(extra)

        return LogRecord(
            occurred_at=occurred_at,
            principal=principal,
            business_type=metadata.business_type,
            event=metadata.event,
            description=metadata.description,
            trace_id=trace_id,
            url=snapshot.url,
            request_method=snapshot.request_method,
            request_parameters=snapshot.request_parameters or {},
            request_body=snapshot.request_body,
            client_ip=snapshot.client_ip,
            remote_addr=snapshot.remote_addr,
            user_agent=snapshot.user_agent,
            operating_system=details.operating_system,
            device_type=details.device_type,
            browser=details.browser,
            location=location,
            status=status,
            extra=merged_extra,
        )

    def _locate(self, client_ip: str | None) -> GeoLocation | None:
        if self._geo_resolver is None or not client_ip:
            return None
        try:
            return self._geo_resolver.resolve(client_ip)
        except Exception as exc:
            logger.warning("Parse ip: %s to get location error: %s", client_ip, exc)
            return None

    def _decompose(self, user_agent: str | None) -> UserAgentDetails:
        if not user_agent or not user_agent.strip():
            return EMPTY_DETAILS
        try:
            return self._user_agent_parser.parse(user_agent)
        except Exception as exc:
            logger.warning("Parse user agent: %r error: %s", user_agent, exc)
            return EMPTY_DETAILS

    def _resolve_principal(self) -> Principal | None:
        try:
            return self._principal_resolver.resolve()
        except Exception as exc:
            logger.warning("Resolve principal error: %s", exc)
            return None

    def _ambient(self) -> tuple[str | None, Mapping[str, Any]]:
        if self._context_binder is None:
            return None, {}
        context = self._context_binder.current()
        if context is None:
            return None, {}
        return context.trace_id, context.extra


def _stamp(clock: ClockPort) -> datetime:
    return clock.now()


def _snapshot_request(request: RequestContextPort | None) -> _RequestSnapshot:
    """Copy the request fields the record needs; a missing request yields defaults."""

    if request is None:
        return _RequestSnapshot()
    return _RequestSnapshot(
        url=request.url(),
        request_method=_safe_method(request),
        request_parameters=request.parameters(),
        request_body=request.body(),
        client_ip=request.client_ip(),
        remote_addr=request.remote_addr(),
        user_agent=request.user_agent(),
    )


def _safe_method(request: RequestContextPort) -> RequestMethod:
    try:
        return RequestMethod.from_name(request.method())
    except Exception:
        return RequestMethod.GET


__all__ = ["RecordAssembler", "create_record_assembler"]
