from __future__ import annotations

from lib_log_audit.adapters.user_agent import UserAgentsParser
from lib_log_audit.application.ports import EMPTY_DETAILS
from lib_log_audit.domain import BrowserType, DeviceType

from ..fakes import CHROME_120_WINDOWS

IPHONE_SAFARI = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
GOOGLEBOT = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"


def test_desktop_chrome_is_decomposed() -> None:
    details = UserAgentsParser().parse(CHROME_120_WINDOWS)

    assert details.browser is not None
    assert details.browser.name == "Chrome"
    assert details.browser.type is BrowserType.WEB_BROWSER
    assert details.browser.version is not None and details.browser.version.startswith("120")
    assert details.operating_system is not None
    assert details.operating_system.name == "Windows"
    assert details.device_type is DeviceType.COMPUTER


def test_mobile_safari_is_a_mobile_browser() -> None:
    details = UserAgentsParser().parse(IPHONE_SAFARI)

    assert details.device_type is DeviceType.MOBILE
    assert details.browser is not None
    assert details.browser.type is BrowserType.MOBILE_BROWSER
    assert details.operating_system is not None
    assert details.operating_system.name == "iOS"


def test_crawler_is_a_robot() -> None:
    details = UserAgentsParser().parse(GOOGLEBOT)

    assert details.device_type is DeviceType.ROBOT
    if details.browser is not None:
        assert details.browser.type is BrowserType.ROBOT


def test_blank_and_missing_input_yield_empty_details() -> None:
    parser = UserAgentsParser()
    assert parser.parse(None) is EMPTY_DETAILS
    assert parser.parse("   ") is EMPTY_DETAILS


def test_unrecognised_input_leaves_fields_unset() -> None:
    details = UserAgentsParser().parse("zzz")
    assert (details.browser, details.operating_system, details.device_type) == (None, None, None)
