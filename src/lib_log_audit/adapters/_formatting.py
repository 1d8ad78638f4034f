"""Utilities that normalise log records into template-friendly dictionaries.

Purpose
-------
Console templates use ``${placeholder}`` fields. Producing the payload in one
place keeps the console sink, the CLI demo and the documentation in sync.

Contents
--------
* :func:`build_format_payload` – placeholder values for a record.
* :func:`render_template` – substitute ``${name}`` fields.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from lib_log_audit.domain.records import LogRecord

_PLACEHOLDER = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_\-]*)\}")


def _join_pairs(values: Mapping[str, Any]) -> str:
    return "&".join(f"{key}={value}" for key, value in values.items())


def _parameters(record: LogRecord) -> str:
    return "&".join(f"{key}={value}" for key, values in record.request_parameters.items() for value in values)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def build_format_payload(record: LogRecord) -> dict[str, str]:
    """Return the mapping of placeholders exposed to console templates.

    Missing sub-objects render as empty strings. Several aliases exist for the
    same value (``request_method``/``method``, ``user_agent``/``user-agent``).
    """

    principal = record.principal
    os = record.operating_system
    browser = record.browser
    location = record.location
    country = location.country if location else None
    district = location.district if location else None
    method = record.request_method.name
    timestamp = record.occurred_at.isoformat()

    payload: dict[str, Any] = {
        "principal": principal.user_name or principal.id if principal else None,
        "uid": principal.id if principal else None,
        "username": principal.user_name if principal else None,
        "real_name": principal.real_name if principal else None,
        "date_time": timestamp,
        "datetime": timestamp,
        "business_type": record.business_type,
        "businessType": record.business_type,
        "event": record.event,
        "description": record.description,
        "trace_id": record.trace_id,
        "traceId": record.trace_id,
        "url": record.url,
        "request_method": method,
        "requestMethod": method,
        "method": method,
        "request_parameters": _parameters(record),
        "request_body": record.request_body,
        "client_ip": record.client_ip,
        "remote_addr": record.remote_addr,
        "remoteAddr": record.remote_addr,
        "user_agent": record.user_agent,
        "userAgent": record.user_agent,
        "user-agent": record.user_agent,
        "operating_system": " ".join(part for part in (os.name, os.version) if part) if os else None,
        "operating_system_name": os.name if os else None,
        "operating_system_version": os.version if os else None,
        "device_type": record.device_type.name if record.device_type else None,
        "browser": " ".join(part for part in (browser.name, browser.version) if part) if browser else None,
        "browser_name": browser.name if browser else None,
        "browser_version": browser.version if browser else None,
        "browser_type": browser.type.name if browser else None,
        "geo": location.geo if location and location.geo else None,
        "country": country.name if country else None,
        "country_code": country.code if country else None,
        "country_name": country.name if country else None,
        "country_full_name": country.full_name if country else None,
        "district": district.name if district else None,
        "district_name": district.name if district else None,
        "district_full_name": district.full_name if district else None,
        "status": record.status.name if record.status else None,
        "extra": _join_pairs(record.extra),
    }
    payload["os"] = payload["operating_system"]
    payload["os_name"] = payload["operating_system_name"]
    payload["os_version"] = payload["operating_system_version"]
    payload["location"] = " ".join(
        part for part in (payload["country_full_name"], payload["district_name"]) if part
    ) or None
    return {key: _text(value) for key, value in payload.items()}


def render_template(template: str, payload: Mapping[str, str]) -> str:
    """Replace ``${name}`` fields; unknown names are left untouched.

    Examples
    --------
    >>> render_template("${event} from ${client_ip} ${nope}", {"event": "login", "client_ip": ""})
    'login from  ${nope}'
    """

    return _PLACEHOLDER.sub(lambda match: payload.get(match.group(1), match.group(0)), template)


__all__ = ["build_format_payload", "render_template"]
