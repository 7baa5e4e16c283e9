"""Environment attributes and user-agent derived device metadata."""
from __future__ import annotations

from dataclasses import dataclass, replace
import locale
import platform
import re
import sys
import time

from smipay.build_info import APP_VERSION

__all__ = [
    "DeviceEnvironment",
    "device_name",
    "device_model",
    "os_name",
    "os_version",
]

_MOBILE = re.compile(r"Mobile|Android|iPhone|iPad", re.IGNORECASE)
_PAREN = re.compile(r"\((.*?)\)")


@dataclass(frozen=True, slots=True)
class DeviceEnvironment:
    """Attributes a browser would expose; the fingerprint is computed over these."""

    user_agent: str
    locale: str
    screen_width: int = 0
    screen_height: int = 0
    color_depth: int = 24
    timezone_offset: int = 0  # minutes, UTC minus local time

    @classmethod
    def detect(cls) -> "DeviceEnvironment":
        lang, _ = locale.getlocale()
        return cls(
            user_agent=_default_user_agent(),
            locale=(lang or "en_US").replace("_", "-"),
            timezone_offset=-(time.localtime().tm_gmtoff // 60),
        )

    def with_overrides(self, **changes: object) -> "DeviceEnvironment":
        return replace(self, **changes)

    def components(self) -> list[str]:
        """Ordered attributes joined into the canonical fingerprint string."""
        return [
            self.user_agent,
            self.locale,
            str(self.screen_width),
            str(self.screen_height),
            str(self.color_depth),
            str(self.timezone_offset),
        ]


def _default_user_agent() -> str:
    system = platform.system() or "Unknown"
    if system == "Darwin":
        system = "Macintosh; Mac OS X " + (platform.mac_ver()[0] or "").replace(".", "_")
    elif system == "Windows":
        system = f"Windows NT {platform.version().rsplit('.', 1)[0]}"
    else:
        system = f"{system} {platform.release()}"
    py = ".".join(str(part) for part in sys.version_info[:3])
    return f"smipay-client/{APP_VERSION} ({system}; {platform.machine()}) Python/{py}"


def device_name(user_agent: str) -> str:
    if _MOBILE.search(user_agent):
        return "Mobile Client"
    return "Desktop Client"


def device_model(user_agent: str) -> str:
    match = _PAREN.search(user_agent)
    part = match.group(1) if match else user_agent
    return part[:80] or "Unknown"


def os_name(user_agent: str) -> str:
    # Android and iOS user agents also mention Linux / Mac OS X
    if re.search(r"Android", user_agent, re.IGNORECASE):
        return "Android"
    if re.search(r"iPhone|iPad", user_agent, re.IGNORECASE):
        return "iOS"
    if re.search(r"Windows", user_agent, re.IGNORECASE):
        return "Windows"
    if re.search(r"Mac OS|Darwin", user_agent, re.IGNORECASE):
        return "Mac OS"
    if re.search(r"Linux", user_agent, re.IGNORECASE):
        return "Linux"
    return "Unknown"


def os_version(user_agent: str) -> str:
    patterns = (
        (r"Windows NT (\d+\.\d+)", False),
        (r"Android (\d+\.?\d*)", False),
        (r"(?:iPhone|iPad).*? OS (\d+[._]\d+[._]?\d*)", True),
        (r"Mac OS X (\d+[._]\d+[._]?\d*)", True),
        (r"Linux (\d+\.\d+(?:\.\d+)?)", False),
    )
    for pattern, dotted in patterns:
        match = re.search(pattern, user_agent)
        if match:
            value = match.group(1)
            return value.replace("_", ".") if dotted else value
    return ""
