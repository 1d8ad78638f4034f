"""Canonical audit record and the value objects it aggregates.

Purpose
-------
Provide an immutable, serialisable representation of one guarded-operation
invocation travelling from the assembler to a sink.

Contents
--------
* Enumerations: :class:`RequestMethod`, :class:`Status`, :class:`DeviceType`,
  :class:`BrowserType`.
* Value objects: :class:`Principal`, :class:`Browser`,
  :class:`OperatingSystem`, :class:`Geo`, :class:`Country`, :class:`District`,
  :class:`GeoLocation`.
* :class:`LogRecord` dataclass with serialisation helpers.

System Role
-----------
Sits in the domain layer; adapters and use cases exchange these pure data
objects and never reach into transport or backend specifics.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping


class RequestMethod(Enum):
    """HTTP methods recorded on a log record."""

    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"

    @classmethod
    def from_name(cls, name: str | None) -> "RequestMethod":
        """Return the member matching ``name``; unknown or missing values fold to GET.

        Examples
        --------
        >>> RequestMethod.from_name("post")
        <RequestMethod.POST: 'POST'>
        >>> RequestMethod.from_name("BREW")
        <RequestMethod.GET: 'GET'>
        >>> RequestMethod.from_name(None)
        <RequestMethod.GET: 'GET'>
        """
        if not isinstance(name, str):
            return cls.GET
        try:
            return cls[name.strip().upper()]
        except KeyError:
            return cls.GET


class Status(Enum):
    """Outcome of a business operation or of a sink write."""

    SUCCESS = "success"
    FAILURE = "failure"


class DeviceType(Enum):
    """Coarse device classification derived from the user agent."""

    COMPUTER = "computer"
    MOBILE = "mobile"
    TABLET = "tablet"
    ROBOT = "robot"
    UNKNOWN = "unknown"


class BrowserType(Enum):
    """Coarse browser classification derived from the user agent."""

    WEB_BROWSER = "web_browser"
    MOBILE_BROWSER = "mobile_browser"
    ROBOT = "robot"
    UNKNOWN = "unknown"


@dataclass(slots=True, frozen=True)
class Principal:
    """Identity of the actor performing a guarded operation."""

    id: str | None = None
    user_name: str | None = None
    real_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "user_name": self.user_name, "real_name": self.real_name}


@dataclass(slots=True, frozen=True)
class Browser:
    name: str
    type: BrowserType
    version: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type.name, "version": self.version}


@dataclass(slots=True, frozen=True)
class OperatingSystem:
    name: str
    version: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "version": self.version}


@dataclass(slots=True, frozen=True)
class Geo:
    """Longitude/latitude pair."""

    longitude: float
    latitude: float

    def __str__(self) -> str:
        return f"{self.longitude},{self.latitude}"


@dataclass(slots=True, frozen=True)
class Country:
    code: str | None = None
    name: str | None = None
    full_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "name": self.name, "full_name": self.full_name}


@dataclass(slots=True, frozen=True)
class District:
    name: str | None = None
    full_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "full_name": self.full_name}


@dataclass(slots=True, frozen=True)
class GeoLocation:
    """Location resolved from a client IP address."""

    geo: Geo | None = None
    country: Country | None = None
    district: District | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "geo": None if self.geo is None else {"longitude": self.geo.longitude, "latitude": self.geo.latitude},
            "country": None if self.country is None else self.country.to_dict(),
            "district": None if self.district is None else self.district.to_dict(),
        }


def _ensure_aware(ts: datetime) -> datetime:
    """Validate that ``ts`` is timezone-aware and normalise to UTC."""
    if ts.tzinfo is None or ts.tzinfo.utcoffset(ts) is None:
        raise ValueError("occurred_at must be timezone-aware")
    return ts.astimezone(timezone.utc)


def freeze_parameters(
    parameters: Mapping[str, Iterable[str | None] | str | None] | None,
) -> Mapping[str, tuple[str | None, ...]]:
    """Normalise a request-parameter mapping into a read-only multi-map.

    Scalar values become one-element tuples; sequences keep every value,
    duplicates included.

    Examples
    --------
    >>> dict(freeze_parameters({"a": ["1", "1"], "b": "x"}))
    {'a': ('1', '1'), 'b': ('x',)}
    """
    if not parameters:
        return MappingProxyType({})
    frozen: dict[str, tuple[str | None, ...]] = {}
    for key, value in parameters.items():
        if value is None or isinstance(value, (str, bytes)):
            frozen[str(key)] = (value if not isinstance(value, bytes) else value.decode("utf-8", "replace"),)
        else:
            frozen[str(key)] = tuple(value)
    return MappingProxyType(frozen)


@dataclass(slots=True, frozen=True)
class LogRecord:
    """Immutable record describing one guarded-operation invocation.

    Attributes
    ----------
    occurred_at:
        Creation time in timezone-aware UTC, stamped by the assembler.
    event, business_type, description:
        Classification strings taken from the resolved metadata.
    request_method:
        Always a :class:`RequestMethod`; unknown input folds to ``GET``.
    request_parameters:
        Read-only multi-map; duplicate keys keep every value.
    operating_system, device_type, browser, location:
        Optional enrichment; each is either complete or ``None``.
    status:
        Outcome of the guarded business operation, not of the sink write.
    extra:
        Read-only copy of caller-supplied supplementary data.
    """

    occurred_at: datetime
    principal: Principal | None = None
    business_type: str | None = None
    event: str | None = None
    description: str | None = None
    trace_id: str | None = None
    url: str | None = None
    request_method: RequestMethod = RequestMethod.GET
    request_parameters: Mapping[str, tuple[str | None, ...]] = field(default_factory=dict)
    request_body: str | None = None
    client_ip: str | None = None
    remote_addr: str | None = None
    user_agent: str | None = None
    operating_system: OperatingSystem | None = None
    device_type: DeviceType | None = None
    browser: Browser | None = None
    location: GeoLocation | None = None
    status: Status | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "occurred_at", _ensure_aware(self.occurred_at))
        if not isinstance(self.request_method, RequestMethod):
            object.__setattr__(self, "request_method", RequestMethod.from_name(self.request_method))
        object.__setattr__(self, "request_parameters", freeze_parameters(self.request_parameters))
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    def to_dict(self) -> dict[str, Any]:
        """Serialize the record to a JSON-friendly dictionary."""

        return {
            "principal": None if self.principal is None else self.principal.to_dict(),
            "occurred_at": self.occurred_at.isoformat(),
            "business_type": self.business_type,
            "event": self.event,
            "description": self.description,
            "trace_id": self.trace_id,
            "url": self.url,
            "request_method": self.request_method.name,
            "request_parameters": {key: list(values) for key, values in self.request_parameters.items()},
            "request_body": self.request_body,
            "client_ip": self.client_ip,
            "remote_addr": self.remote_addr,
            "user_agent": self.user_agent,
            "operating_system": None if self.operating_system is None else self.operating_system.to_dict(),
            "device_type": None if self.device_type is None else self.device_type.name,
            "browser": None if self.browser is None else self.browser.to_dict(),
            "location": None if self.location is None else self.location.to_dict(),
            "status": None if self.status is None else self.status.name,
            "extra": dict(self.extra),
        }

    def to_json(self) -> str:
        """Serialize the record to JSON with sorted keys for deterministic output."""

        return json.dumps(self.to_dict(), sort_keys=True, default=str)


__all__ = [
    "Browser",
    "BrowserType",
    "Country",
    "DeviceType",
    "District",
    "Geo",
    "GeoLocation",
    "LogRecord",
    "OperatingSystem",
    "Principal",
    "RequestMethod",
    "Status",
    "freeze_parameters",
]
