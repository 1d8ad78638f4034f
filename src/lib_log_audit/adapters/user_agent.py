"""User-agent decomposition backed by the ``user-agents`` package.

Purpose
-------
Translate a raw ``User-Agent`` header into the browser, operating-system and
device-type value objects carried on :class:`LogRecord`.

Contents
--------
* :class:`UserAgentsParser` – offline implementation of
  :class:`UserAgentParserPort`.

System Role
-----------
Always consulted by the record assembler; never raises. Families reported as
``"Other"`` by the underlying regex database are treated as unknown and the
corresponding sub-object stays unset.
"""

from __future__ import annotations

import logging

from user_agents import parse

from lib_log_audit.application.ports.user_agent import EMPTY_DETAILS, UserAgentDetails, UserAgentParserPort
from lib_log_audit.domain.records import Browser, BrowserType, DeviceType, OperatingSystem

logger = logging.getLogger(__name__)

_UNKNOWN_FAMILY = "Other"


def _version(text: str | None) -> str | None:
    return text or None


class UserAgentsParser(UserAgentParserPort):
    """Decompose user-agent strings with :func:`user_agents.parse`.

    Examples
    --------
    >>> parser = UserAgentsParser()
    >>> details = parser.parse(
    ...     "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    ...     "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ... )
    >>> details.browser.name, details.operating_system.name, details.device_type.name
    ('Chrome', 'Windows', 'COMPUTER')
    >>> parser.parse("") is EMPTY_DETAILS
    True
    """

    def parse(self, user_agent: str | None) -> UserAgentDetails:
        if not user_agent or not user_agent.strip():
            return EMPTY_DETAILS
        try:
            parsed = parse(user_agent)
        except Exception as exc:
            logger.warning("Parse user agent: %r error: %s", user_agent, exc)
            return EMPTY_DETAILS

        device_type = self._device_type(parsed)
        browser = None
        if parsed.browser.family and parsed.browser.family != _UNKNOWN_FAMILY:
            browser = Browser(
                name=parsed.browser.family,
                type=self._browser_type(parsed),
                version=_version(parsed.browser.version_string),
            )
        operating_system = None
        if parsed.os.family and parsed.os.family != _UNKNOWN_FAMILY:
            operating_system = OperatingSystem(name=parsed.os.family, version=_version(parsed.os.version_string))

        if browser is None and operating_system is None and device_type is None:
            return EMPTY_DETAILS
        return UserAgentDetails(browser=browser, operating_system=operating_system, device_type=device_type)

    @staticmethod
    def _device_type(parsed) -> DeviceType | None:
        if parsed.is_bot:
            return DeviceType.ROBOT
        if parsed.is_tablet:
            return DeviceType.TABLET
        if parsed.is_mobile:
            return DeviceType.MOBILE
        if parsed.is_pc:
            return DeviceType.COMPUTER
        return None

    @staticmethod
    def _browser_type(parsed) -> BrowserType:
        if parsed.is_bot:
            return BrowserType.ROBOT
        if parsed.is_mobile or parsed.is_tablet:
            return BrowserType.MOBILE_BROWSER
        return BrowserType.WEB_BROWSER


__all__ = ["UserAgentsParser"]
