"""Domain entities and value objects used by the capture pipeline."""

from __future__ import annotations

from .context import CaptureContext, ContextBinder
from .metadata import CaptureKind, Metadata, MetadataDeclaration
from .records import (
    Browser,
    BrowserType,
    Country,
    DeviceType,
    District,
    Geo,
    GeoLocation,
    LogRecord,
    OperatingSystem,
    Principal,
    RequestMethod,
    Status,
)

__all__ = [
    "Browser",
    "BrowserType",
    "CaptureContext",
    "CaptureKind",
    "ContextBinder",
    "Country",
    "DeviceType",
    "District",
    "Geo",
    "GeoLocation",
    "LogRecord",
    "Metadata",
    "MetadataDeclaration",
    "OperatingSystem",
    "Principal",
    "RequestMethod",
    "Status",
]
