"""
Distributed daily selection.

Responsibilities:
- Screen raw candidates (malformed entries, duplicates, exclusions, self).
- Hand the survivors to the caller's total filter exactly once.
- Bucket, rank and rotate the filtered pool, then draw tier quotas and
  backfill to a bounded list.
- Optionally keep a seed's picks stable through a store and append
  low-ranked exploration picks.

Non-Responsibilities:
- No matching-preference rules (owned by the total filter).
- No profile fetching or formatting.

Invariant:
Identical candidates, viewer, options and clock give an identical result.
The result never holds an excluded id, the viewer's id or a duplicate.
"""

import math
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from .config import Settings, get_settings
from .logger import get_logger
from .normalize import candidate_id, normalize_id
from .ranking import ranking_key, rotate, sort_bucket
from .recency import BUCKETS, as_utc, classify
from .schema import validate_candidate
from .seed import ANONYMOUS_VIEWER, build_seed, seed_day as default_seed_day

Candidate = Mapping[str, Any]
TotalFilter = Callable[[List[Candidate], Any], Iterable[Candidate]]

EXPLORE_POOL_FRACTION = 0.2
EXPLORE_POOL_MIN = 2
EXPLORE_POOL_MAX = 10


@dataclass(frozen=True)
class SelectionContext:
    """Everything a single selection run derives from its inputs."""

    seed: str
    viewer_key: str
    exclude_ids: FrozenSet[str]
    total_filter: TotalFilter
    now: datetime


def build_context(
    viewer: Any,
    apply_total_filter: TotalFilter,
    seed_day: Optional[str] = None,
    viewer_id: Any = None,
    reset_index: int = 0,
    exclude_ids: Optional[Iterable[Any]] = None,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> SelectionContext:
    if not callable(apply_total_filter):
        raise TypeError("apply_total_filter must be a callable (candidates, viewer) -> candidates")
    settings = settings or get_settings()
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)

    day = seed_day or default_seed_day(now, settings.timezone, settings.day_rollover_hour)
    seed = build_seed(day, viewer_id, reset_index)

    excluded = {normalize_id(x) for x in (exclude_ids or ())}
    excluded.add(normalize_id(viewer) if viewer is not None else "")
    excluded.add(normalize_id(viewer_id))
    excluded.discard("")

    return SelectionContext(
        seed=seed,
        viewer_key=normalize_id(viewer_id) or ANONYMOUS_VIEWER,
        exclude_ids=frozenset(excluded),
        total_filter=apply_total_filter,
        now=now,
    )


def screen(candidates: Any, exclude_ids: FrozenSet[str]) -> Tuple[List[Candidate], int]:
    """
    Drop malformed, duplicate and excluded entries.

    Returns the kept candidates (input order) and how many were dropped.
    """
    if candidates is None or isinstance(candidates, (str, bytes, Mapping)):
        return [], 0
    try:
        items = list(candidates)
    except TypeError:
        return [], 0

    logger = get_logger()
    kept: List[Candidate] = []
    seen = set()
    for index, item in enumerate(items):
        errors = validate_candidate(item)
        if errors:
            logger.debug("Dropping malformed candidate", index=index, errors=errors)
            continue
        cid = candidate_id(item)
        if cid in seen or cid in exclude_ids:
            continue
        seen.add(cid)
        kept.append(item)
    return kept, len(items) - len(kept)


def bucketize(candidates: Iterable[Candidate], now: datetime) -> Dict[str, List[Candidate]]:
    buckets: Dict[str, List[Candidate]] = {name: [] for name in BUCKETS}
    for c in candidates:
        buckets[classify(c, now)].append(c)
    return buckets


def assemble(
    buckets: Mapping[str, Sequence[Candidate]],
    quotas: Sequence[Tuple[str, int]],
    limit: Optional[int],
) -> List[Candidate]:
    """
    Draw each tier's quota from its front, then backfill B1 -> B2 -> B3.

    Backfill drains one tier before moving to the next and stops at ``limit``
    or when every tier is empty. ``limit=None`` drains everything, giving the
    full preference order; any shorter limit yields a prefix of it.
    """
    queues = {name: deque(buckets.get(name, ())) for name in BUCKETS}
    picked: List[Candidate] = []

    def room() -> bool:
        return limit is None or len(picked) < limit

    for name, quota in quotas:
        queue = queues.get(name)
        if queue is None:
            continue
        drawn = 0
        while queue and drawn < quota and room():
            picked.append(queue.popleft())
            drawn += 1

    for name in BUCKETS:
        queue = queues[name]
        while queue and room():
            picked.append(queue.popleft())

    return picked


def _quota_capacity(buckets: Mapping[str, Sequence[Candidate]], quotas, limit: int) -> int:
    available = sum(min(quota, len(buckets.get(name, ()))) for name, quota in quotas)
    return min(limit, available)


def _sticky_core(
    order: List[Candidate],
    pool: List[Candidate],
    stored_ids: List[str],
    core_count: int,
) -> List[Candidate]:
    """Keep stored ids still in the pool, then fill from the current order."""
    by_id = {candidate_id(c): c for c in pool}
    kept: List[Candidate] = []
    kept_ids = set()
    for cid in stored_ids:
        if cid in by_id and cid not in kept_ids:
            kept.append(by_id[cid])
            kept_ids.add(cid)

    for c in order:
        if len(kept) >= core_count:
            break
        cid = candidate_id(c)
        if cid not in kept_ids:
            kept.append(c)
            kept_ids.add(cid)

    return kept[:core_count]


def _explore_picks(
    pool: List[Candidate],
    core: List[Candidate],
    ctx: SelectionContext,
    settings: Settings,
    explore_count: int,
    store: Any,
) -> List[Candidate]:
    """Low-ranked picks outside the core, avoiding recent exploration exposures."""
    if explore_count <= 0 or len(pool) <= len(core):
        return []

    core_ids = {candidate_id(c) for c in core}
    rest = [c for c in pool if candidate_id(c) not in core_ids]
    ascending = sorted(
        rest,
        key=lambda c: (
            ranking_key(c, ctx.seed, ctx.now, settings.rank_mix, settings.half_life_hours),
            candidate_id(c),
        ),
    )

    pool_size = min(
        max(EXPLORE_POOL_MIN, math.ceil(len(ascending) * EXPLORE_POOL_FRACTION)),
        EXPLORE_POOL_MAX,
        len(ascending),
    )
    explore_pool = ascending[:pool_size]

    seen = set()
    if store is not None:
        since = ctx.now - timedelta(days=settings.explore_avoid_days)
        seen = store.load_seen(ctx.viewer_key, since)

    fresh = [c for c in explore_pool if candidate_id(c) not in seen]
    if len(fresh) < explore_count:
        fresh = explore_pool

    picks = rotate(fresh, ctx.seed, "EXPLORE")[:explore_count]

    if store is not None and picks:
        store.record_seen(ctx.viewer_key, [candidate_id(c) for c in picks], ctx.now)

    return picks


def select_distributed(
    raw_candidates: Any,
    viewer: Any = None,
    *,
    apply_total_filter: TotalFilter,
    seed_day: Optional[str] = None,
    viewer_id: Any = None,
    reset_index: int = 0,
    exclude_ids: Optional[Iterable[Any]] = None,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
    store: Any = None,
    explore_count: Optional[int] = None,
    shuffle_final: bool = False,
) -> List[Candidate]:
    """
    Select up to ``core_count`` (default 7) candidates for a viewer's day.

    Args:
        raw_candidates: Candidate records (mappings with an id and an
            activity timestamp). Anything not iterable selects nothing.
        viewer: The viewer record, passed through to the total filter.
        apply_total_filter: ``(candidates, viewer) -> candidates``; called
            once, its exceptions propagate unchanged.
        seed_day: ``YYYYMMDD`` day key; derived from ``now`` when omitted.
        viewer_id: Seed component; ``anon`` when missing.
        reset_index: Seed component; bump it for a different draw the same day.
        exclude_ids: Ids that must never be returned.
        now: Clock for recency; defaults to the current UTC time.
        settings: Overrides the process settings (quotas, mix, half-life).
        store: Optional sticky-set / exposure-history store.
        explore_count: Low-ranked picks appended after the core
            (default from settings, normally 0).
        shuffle_final: Rotate the combined list by the seed.

    Returns:
        New list of the selected candidate records, best tier first.
    """
    settings = settings or get_settings()
    ctx = build_context(
        viewer,
        apply_total_filter,
        seed_day=seed_day,
        viewer_id=viewer_id,
        reset_index=reset_index,
        exclude_ids=exclude_ids,
        now=now,
        settings=settings,
    )
    logger = get_logger()

    screened, dropped = screen(raw_candidates, ctx.exclude_ids)
    received = len(screened) + dropped

    try:
        filtered_raw = ctx.total_filter(list(screened), viewer)
    except Exception as e:
        logger.record_filter_failure(type(e).__name__)
        logger.warning("Total filter raised", seed=ctx.seed, error=str(e))
        raise
    filtered, _ = screen(filtered_raw, ctx.exclude_ids)

    buckets = bucketize(filtered, ctx.now)
    ranked = {
        name: rotate(
            sort_bucket(members, ctx.seed, ctx.now, settings.rank_mix, settings.half_life_hours),
            ctx.seed,
            name,
        )
        for name, members in buckets.items()
    }

    core_count = settings.core_count
    if store is None:
        core = assemble(ranked, settings.quotas, core_count)
    else:
        order = assemble(ranked, settings.quotas, None)
        core = _sticky_core(order, filtered, store.load_sticky(ctx.seed), core_count)
        store.save_sticky(ctx.seed, [candidate_id(c) for c in core])

    if explore_count is None:
        explore_count = settings.explore_count
    explore = _explore_picks(filtered, core, ctx, settings, explore_count, store)

    result = core + explore
    if shuffle_final:
        result = rotate(result, ctx.seed, "MIX")

    bucket_sizes = {name: len(members) for name, members in buckets.items()}
    backfilled = max(0, len(core) - _quota_capacity(ranked, settings.quotas, core_count))
    logger.record_selection(
        received=received,
        dropped=dropped,
        filtered_out=max(0, len(screened) - len(filtered)),
        bucket_sizes=bucket_sizes,
        backfilled=backfilled,
        returned=len(result),
    )
    logger.debug(
        "Selection assembled",
        seed=ctx.seed,
        received=received,
        dropped=dropped,
        filtered=len(filtered),
        buckets=bucket_sizes,
        backfilled=backfilled,
        explore=len(explore),
        returned=len(result),
    )

    return result
