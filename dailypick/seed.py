from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo

from .normalize import normalize_id, to_number

DEFAULT_TIMEZONE = "Asia/Seoul"
ANONYMOUS_VIEWER = "anon"


def seed_day(
    now: Optional[datetime] = None,
    tz: str = DEFAULT_TIMEZONE,
    rollover_hour: int = 0,
) -> str:
    """
    Day key ``YYYYMMDD`` in a fixed timezone.

    Before ``rollover_hour`` local time the previous day is still current,
    so a rollover of 11 makes the day start at 11:00.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(ZoneInfo(tz))
    if local.hour < rollover_hour:
        local -= timedelta(days=1)
    return local.strftime("%Y%m%d")


def build_seed(day: str, viewer_id: Any = None, reset_index: int = 0) -> str:
    """
    Seed string shared by every hash of one selection: ``day#viewer#reset``.

    A missing or non-numeric reset index counts as 0.
    """
    viewer = normalize_id(viewer_id) or ANONYMOUS_VIEWER
    index = to_number(reset_index)
    return f"{day}#{viewer}#{int(index) if index is not None else 0}"
