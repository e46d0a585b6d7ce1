import math
from typing import Any, List, Mapping

from .normalize import ID_FIELDS, candidate_id
from .recency import ACTIVITY_FIELDS, parse_timestamp


def validate_candidate(data: Any) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means the
    candidate can take part in a selection.
    """
    errors: List[str] = []

    if not isinstance(data, Mapping):
        errors.append(f"Candidate must be an object, got {type(data).__name__}")
        return errors

    if not candidate_id(data):
        errors.append(f"Missing identifier (one of: {', '.join(ID_FIELDS)})")

    return errors


def validate_candidate_strict(data: Any) -> List[str]:
    """
    Stricter validation for data checks: also reports fields the selection
    tolerates but treats as missing.
    """
    errors = validate_candidate(data)
    if not isinstance(data, Mapping):
        return errors

    present = [f for f in ACTIVITY_FIELDS if data.get(f)]
    if not present:
        errors.append("No activity timestamp; candidate will rank as never active")
    elif parse_timestamp(data[present[0]]) is None:
        errors.append(f"Field '{present[0]}' is not a parseable timestamp")

    if "score" in data and data["score"] is not None:
        score = data["score"]
        if isinstance(score, bool) or not isinstance(score, (int, float)) or not math.isfinite(score):
            errors.append("Field 'score' must be a finite number if provided")
        elif not 0.0 <= score <= 1.0:
            errors.append("Field 'score' is outside [0, 1] and will be clamped")

    return errors
