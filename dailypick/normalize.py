import math
from typing import Any, Mapping, Optional

ID_FIELDS = ("_id", "id", "userId", "user_id")

ALL_VALUES = {"", "전체"}


def normalize_text(value: Any) -> str:
    if value is None:
        return ""
    return " ".join(str(value).strip().split())


def normalize_id(value: Any) -> str:
    """
    Extract a string identifier from a raw id, a user record or a Mongo-style
    ``{"$oid": ...}`` wrapper. Returns "" when nothing usable is found.
    """
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return ""
        return str(int(value)) if value.is_integer() else str(value)
    if isinstance(value, Mapping):
        if isinstance(value.get("$oid"), str):
            return value["$oid"].strip()
        for field in ID_FIELDS:
            found = value.get(field)
            if found:
                return normalize_id(found)
        return ""
    return str(value).strip()


def candidate_id(candidate: Any) -> str:
    if not isinstance(candidate, Mapping):
        return ""
    return normalize_id(candidate)


def is_all(value: Any) -> bool:
    """Blank and "전체" (all) both mean an unset search condition."""
    return normalize_text(value) in ALL_VALUES


def is_on(value: Any) -> bool:
    """'ON'/'OFF' or boolean switch to bool. Anything else is off."""
    if isinstance(value, bool):
        return value
    return normalize_text(value).upper() == "ON"


def to_number(value: Any) -> Optional[float]:
    """Finite number from an int/float/numeric string, else None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    text = normalize_text(value)
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None
