"""
User-agent sniffing.

Pure string matching, no lookups. Produces the platform label used for
redirect overrides plus OS and browser labels for analytics.
"""

from dataclasses import dataclass
from typing import Optional


IOS = "ios"
ANDROID = "android"
MAC = "mac"
DESKTOP = "desktop"


@dataclass(frozen=True)
class PlatformInfo:
    platform: str
    os: str
    browser: str


def detect_platform(user_agent: Optional[str]) -> PlatformInfo:
    ua = (user_agent or "").lower()

    if "iphone" in ua or "ipad" in ua:
        platform, os_name = IOS, "iOS"
    elif "android" in ua:
        platform, os_name = ANDROID, "Android"
    elif "macintosh" in ua or "mac os" in ua:
        platform, os_name = MAC, "macOS"
    elif "windows" in ua:
        platform, os_name = DESKTOP, "Windows"
    elif "linux" in ua:
        platform, os_name = DESKTOP, "Linux"
    else:
        platform, os_name = DESKTOP, "Unknown"

    # Edge and Chrome both advertise "chrome", Chrome and Safari both "safari"
    if "edg" in ua:
        browser = "Edge"
    elif "chrome" in ua or "crios" in ua:
        browser = "Chrome"
    elif "firefox" in ua or "fxios" in ua:
        browser = "Firefox"
    elif "safari" in ua:
        browser = "Safari"
    else:
        browser = "Unknown"

    return PlatformInfo(platform=platform, os=os_name, browser=browser)
