from __future__ import annotations

from datetime import datetime
import os
import time
from zoneinfo import ZoneInfo

PLATFORM_TIMEZONE = "Europe/Lisbon"
PLATFORM_ZONE = ZoneInfo(PLATFORM_TIMEZONE)

_configured = False


def configure_platform_timezone() -> None:
    global _configured
    if _configured:
        return
    os.environ["TZ"] = PLATFORM_TIMEZONE
    if hasattr(time, "tzset"):
        time.tzset()
    _configured = True


def now_platform() -> datetime:
    return datetime.now(PLATFORM_ZONE)


def now_platform_iso() -> str:
    return now_platform().isoformat()


def parse_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None
