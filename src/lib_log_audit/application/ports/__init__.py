"""Protocols describing the boundaries of the capture core."""

from __future__ import annotations

from .geo import GeoResolutionError, GeoResolverPort
from .principal import PrincipalResolverPort
from .request import RequestContextPort
from .sink import SinkPort
from .time import ClockPort
from .user_agent import EMPTY_DETAILS, UserAgentDetails, UserAgentParserPort

__all__ = [
    "ClockPort",
    "EMPTY_DETAILS",
    "GeoResolutionError",
    "GeoResolverPort",
    "PrincipalResolverPort",
    "RequestContextPort",
    "SinkPort",
    "UserAgentDetails",
    "UserAgentParserPort",
]
