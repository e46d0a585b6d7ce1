#!/usr/bin/env python3
"""
Simulate daily selections for one viewer and report exposure spread.

Runs ``select_distributed`` once per day over a candidate file and reports
how many distinct candidates were shown, how often the most exposed ones
came up, and the tier mix of the picks.

Usage:
    python scripts/simulate_days.py --input data/candidates.json --days 14 --viewer-id u1
"""

import argparse
from collections import Counter
from datetime import datetime, timedelta, timezone
from pathlib import Path
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from dailypick.app import load_candidates
from dailypick.filters import pass_through
from dailypick.normalize import candidate_id
from dailypick.recency import classify
from dailypick.seed import seed_day
from dailypick.selection import select_distributed


def simulate(candidates, viewer_id: str, days: int, start: datetime, resets: int = 0):
    """
    Run one selection per day (and per reset index).

    Returns (exposure counter by id, tier counter, number of runs).
    """
    exposures = Counter()
    tiers = Counter()
    runs = 0

    for offset in range(days):
        now = start + timedelta(days=offset)
        day = seed_day(now)
        for reset_index in range(resets + 1):
            picks = select_distributed(
                candidates,
                {"_id": viewer_id},
                apply_total_filter=pass_through,
                seed_day=day,
                viewer_id=viewer_id,
                reset_index=reset_index,
                now=now,
            )
            runs += 1
            for c in picks:
                exposures[candidate_id(c)] += 1
                tiers[classify(c, now)] += 1

    return exposures, tiers, runs


def main():
    parser = argparse.ArgumentParser(description="Simulate daily selections and report exposure spread")
    parser.add_argument("--input", required=True, help="Path to candidates JSON")
    parser.add_argument("--viewer-id", default="anon", help="Viewer id used in the seed")
    parser.add_argument("--days", type=int, default=14, help="Number of days to simulate")
    parser.add_argument("--resets", type=int, default=0, help="Extra reset draws per day")
    parser.add_argument("--start", help="ISO start time (default: now)")

    args = parser.parse_args()

    candidates = load_candidates(args.input)
    start = datetime.fromisoformat(args.start) if args.start else datetime.now(timezone.utc)
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)

    print(f"Simulating {args.days} days for viewer '{args.viewer_id}' over {len(candidates)} candidates...")
    exposures, tiers, runs = simulate(candidates, args.viewer_id, args.days, start, args.resets)

    total = sum(exposures.values())
    print(f"\nRuns: {runs}, picks: {total}")
    print(f"Distinct candidates shown: {len(exposures)}")
    if not exposures:
        print("Nothing was selected.")
        sys.exit(1)

    print("\nMost exposed:")
    for cid, count in exposures.most_common(5):
        print(f"   - {cid}: {count} ({count / runs:.0%} of runs)")

    print("\nTier mix:")
    for tier in ("B1", "B2", "B3"):
        share = tiers[tier] / total if total else 0
        print(f"   {tier}: {tiers[tier]} ({share:.0%})")


if __name__ == "__main__":
    main()
