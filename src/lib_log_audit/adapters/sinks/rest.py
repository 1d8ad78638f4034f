"""REST callback sink built on :mod:`httpx`.

Purpose
-------
Forward each record as a JSON body to a collector endpoint.

Contents
--------
* :class:`RestSink` – POST (default) or PUT; any 2xx response is success.

System Role
-----------
Transport errors and non-2xx answers become :attr:`Status.FAILURE`; requests
are never retried. Connection pooling is whatever :class:`httpx.Client`
provides.
"""

from __future__ import annotations

import logging

import httpx

from lib_log_audit.domain.records import LogRecord, Status

from ._base import BaseSink

logger = logging.getLogger(__name__)

_METHODS = frozenset({"POST", "PUT"})


class RestSink(BaseSink):
    """Send records to ``url`` with ``httpx``."""

    def __init__(
        self,
        url: str,
        *,
        method: str = "POST",
        timeout: float = 5.0,
        headers: dict[str, str] | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        if not url or not url.strip():
            raise ValueError("Rest url must not be blank")
        normalised = (method or "POST").upper()
        if normalised not in _METHODS:
            raise ValueError(f"Rest method must be POST or PUT, got {method!r}")
        self._url = url
        self._method = normalised
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(timeout=timeout, headers=headers)

    @property
    def url(self) -> str:
        return self._url

    @property
    def method(self) -> str:
        return self._method

    def _do_handle(self, record: LogRecord) -> Status:
        try:
            response = self._client.request(self._method, self._url, json=record.to_dict())
        except httpx.HTTPError as exc:
            logger.error("Save log record failure: %s", exc)
            return Status.FAILURE
        if response.is_success:
            return Status.SUCCESS
        logger.error("Collector %s answered %s", self._url, response.status_code)
        return Status.FAILURE

    def close(self) -> None:
        if self._owns_client:
            self._client.close()


__all__ = ["RestSink"]
