"""Port decomposing a raw user-agent string."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from lib_log_audit.domain.records import Browser, DeviceType, OperatingSystem


@dataclass(slots=True, frozen=True)
class UserAgentDetails:
    """Result of user-agent decomposition; every field may be ``None``."""

    browser: Browser | None = None
    operating_system: OperatingSystem | None = None
    device_type: DeviceType | None = None


EMPTY_DETAILS = UserAgentDetails()


@runtime_checkable
class UserAgentParserPort(Protocol):
    """Pure, offline user-agent parser."""

    def parse(self, user_agent: str | None) -> UserAgentDetails:
        """Decompose ``user_agent``; unparseable input yields :data:`EMPTY_DETAILS`."""


__all__ = ["EMPTY_DETAILS", "UserAgentDetails", "UserAgentParserPort"]
