"""
Tests for user-agent platform detection.
"""
import pytest

from shortlink_app.utils.platform import detect_platform

IPHONE_SAFARI = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
IPAD_CHROME = (
    "Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) CriOS/118.0.5993.92 Mobile/15E148 Safari/604.1"
)
ANDROID_CHROME = (
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/118.0.0.0 Mobile Safari/537.36"
)
MAC_SAFARI = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Safari/605.1.15"
)
WINDOWS_EDGE = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/118.0.0.0 Safari/537.36 Edg/118.0.2088.46"
)
WINDOWS_CHROME = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/118.0.0.0 Safari/537.36"
)
LINUX_FIREFOX = "Mozilla/5.0 (X11; Linux x86_64; rv:109.0) Gecko/20100101 Firefox/118.0"


class TestDetectPlatform:

    @pytest.mark.parametrize("user_agent, platform, os_name, browser", [
        (IPHONE_SAFARI, "ios", "iOS", "Safari"),
        (IPAD_CHROME, "ios", "iOS", "Chrome"),
        (ANDROID_CHROME, "android", "Android", "Chrome"),
        (MAC_SAFARI, "mac", "macOS", "Safari"),
        (WINDOWS_EDGE, "desktop", "Windows", "Edge"),
        (WINDOWS_CHROME, "desktop", "Windows", "Chrome"),
        (LINUX_FIREFOX, "desktop", "Linux", "Firefox"),
    ])
    def test_known_user_agents(self, user_agent, platform, os_name, browser):
        info = detect_platform(user_agent)

        assert info.platform == platform
        assert info.os == os_name
        assert info.browser == browser

    def test_iphone_wins_over_mac_os_substring(self):
        """iPhone user agents also say "like Mac OS X" """
        assert detect_platform(IPHONE_SAFARI).platform == "ios"

    def test_android_wins_over_linux(self):
        assert detect_platform(ANDROID_CHROME).platform == "android"

    @pytest.mark.parametrize("user_agent", [None, "", "curl/8.4.0"])
    def test_unknown_defaults_to_desktop(self, user_agent):
        info = detect_platform(user_agent)

        assert info.platform == "desktop"
        assert info.os == "Unknown"
        assert info.browser == "Unknown"

    def test_is_case_insensitive(self):
        assert detect_platform("SOMETHING IPHONE SOMETHING").platform == "ios"
