"""
Recency scoring and bucket classification.

Responsibilities:
- Resolve a candidate's last-activity timestamp.
- Convert a timestamp into an exponential-decay freshness weight.
- Assign each candidate to a recency tier (B1, B2, B3).

Non-Responsibilities:
- No ordering within a tier.
- No selection or quota logic.

Invariant:
Missing or unparseable timestamps are never errors: they weigh 0 and land
in the oldest tier.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

B1 = "B1"
B2 = "B2"
B3 = "B3"
BUCKETS = (B1, B2, B3)

B1_MAX_AGE = timedelta(days=3)
B2_MAX_AGE = timedelta(days=10)
DEFAULT_HALF_LIFE_HOURS = 12.0

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Checked in order; the first truthy value is the activity timestamp.
ACTIVITY_FIELDS = (
    "last_activity",
    "lastActivityTimestamp",
    "last_login",
    "lastLogin",
    "updatedAt",
    "createdAt",
)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a datetime, epoch milliseconds or ISO-8601 string.

    Returns None for anything that cannot be read as a point in time.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return as_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def activity_value(candidate: Mapping[str, Any]) -> Any:
    for field in ACTIVITY_FIELDS:
        value = candidate.get(field)
        if value:
            return value
    return None


def activity_timestamp(candidate: Mapping[str, Any]) -> Optional[datetime]:
    return parse_timestamp(activity_value(candidate))


def recency_weight(
    timestamp: Any,
    now: datetime,
    half_life_hours: float = DEFAULT_HALF_LIFE_HOURS,
) -> float:
    """
    Exponential-decay freshness weight in [0, 1].

    ``exp(-ln(2) / half_life * age)``: 1.0 at ``now``, 0.5 after one half-life.
    Timestamps in the future count as ``now``.
    """
    ts = parse_timestamp(timestamp)
    if ts is None:
        return 0.0
    age_seconds = max(0.0, (as_utc(now) - ts).total_seconds())
    decay = math.log(2) / (half_life_hours * 3600.0)
    return math.exp(-decay * age_seconds)


def classify(candidate: Mapping[str, Any], now: datetime) -> str:
    """Recency tier of a candidate: B1 (< 3 days), B2 (< 10 days) or B3."""
    ts = activity_timestamp(candidate) or EPOCH
    age = as_utc(now) - ts
    if age < B1_MAX_AGE:
        return B1
    if age < B2_MAX_AGE:
        return B2
    return B3
