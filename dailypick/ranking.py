"""
Bucket ranking and rotation.

Responsibilities:
- Order a tier's candidates by a blend of freshness and seeded jitter.
- Rotate an ordered tier by a seed-derived offset.

Non-Responsibilities:
- No tier classification.
- No quota or backfill decisions.

Invariant:
Given the same candidates, seed and clock, the output order is identical.
Inputs are never reordered in place.
"""

import math
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional

from .hashing import hash01, hash32
from .normalize import candidate_id
from .recency import DEFAULT_HALF_LIFE_HOURS, activity_value, recency_weight

DEFAULT_MIX = 0.35

# Share of an external match score in the key when a candidate carries one.
SCORE_WEIGHT = 0.8


def external_score(candidate: Mapping[str, Any]) -> Optional[float]:
    score = candidate.get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return None
    if not math.isfinite(score):
        return None
    return max(0.0, min(1.0, float(score)))


def ranking_key(
    candidate: Mapping[str, Any],
    seed: str,
    now: datetime,
    mix: float = DEFAULT_MIX,
    half_life_hours: float = DEFAULT_HALF_LIFE_HOURS,
) -> float:
    """
    ``(1 - mix) * recency + mix * hash01(seed#id)``.

    A candidate with a numeric ``score`` ranks mostly by that score, with the
    blend above as a 20% tiebreaker.
    """
    weight = recency_weight(activity_value(candidate), now, half_life_hours)
    jitter = hash01(f"{seed}#{candidate_id(candidate)}")
    blended = (1 - mix) * weight + mix * jitter

    base = external_score(candidate)
    if base is None:
        return blended
    return SCORE_WEIGHT * base + (1 - SCORE_WEIGHT) * blended


def sort_bucket(
    candidates: Iterable[Mapping[str, Any]],
    seed: str,
    now: datetime,
    mix: float = DEFAULT_MIX,
    half_life_hours: float = DEFAULT_HALF_LIFE_HOURS,
) -> List[Mapping[str, Any]]:
    """Highest key first; equal keys fall back to identifier ascending."""
    keyed = [
        (ranking_key(c, seed, now, mix, half_life_hours), candidate_id(c), c)
        for c in candidates
    ]
    keyed.sort(key=lambda item: (-item[0], item[1]))
    return [c for _, _, c in keyed]


def rotation_offset(seed: str, tag: str, length: int) -> int:
    if length <= 0:
        return 0
    return hash32(f"{seed}::{tag}") % length


def rotate(sequence: Iterable[Any], seed: str, tag: str) -> List[Any]:
    """Left-rotate by ``hash32(seed::tag) % len``; relative order is kept."""
    items = list(sequence)
    offset = rotation_offset(seed, tag, len(items))
    if offset == 0:
        return items
    return items[offset:] + items[:offset]
