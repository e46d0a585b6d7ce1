import argparse
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional

from .env import load_env

from . import __version__
from .cleanup import cleanup_history
from .config import ConfigError, get_settings
from .filters import collect_relation_ids, pass_through, total_filter_normal
from .hashing import hash01, hash32
from .logger import get_logger
from .normalize import candidate_id
from .recency import classify, parse_timestamp
from .schema import validate_candidate_strict
from .seed import build_seed, seed_day
from .selection import select_distributed
from .storage import open_store


def _read_json(path_str: str) -> Any:
    path = Path(path_str)
    if not path.exists():
        raise SystemExit(f"Input file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise SystemExit(f"Invalid JSON in {path}: {e}")


def load_candidates(path_str: str) -> List[Any]:
    """A JSON array, or an object with a "candidates" array."""
    data = _read_json(path_str)
    if isinstance(data, dict):
        data = data.get("candidates", [])
    if not isinstance(data, list):
        raise SystemExit("Candidates file must hold a JSON array or {\"candidates\": [...]}")
    return data


def _parse_now(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    parsed = parse_timestamp(value)
    if parsed is None:
        raise SystemExit(f"Invalid --now timestamp: {value}")
    return parsed


def _split_ids(value: Optional[str]) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()] if value else []


def cmd_select(args: argparse.Namespace) -> None:
    candidates = load_candidates(args.input)
    viewer = _read_json(args.viewer) if args.viewer else None
    if viewer is not None and not isinstance(viewer, dict):
        raise SystemExit("Viewer file must hold a JSON object")

    exclude = set(_split_ids(args.exclude))
    total_filter = pass_through
    if viewer is not None:
        exclude |= collect_relation_ids(viewer)
        total_filter = total_filter_normal

    now = _parse_now(args.now)
    store = open_store(Path(args.store)) if args.store else None

    try:
        result = select_distributed(
            candidates,
            viewer,
            apply_total_filter=total_filter,
            seed_day=args.seed_day,
            viewer_id=args.viewer_id,
            reset_index=args.reset_index,
            exclude_ids=exclude,
            now=now,
            store=store,
            explore_count=args.explore,
            shuffle_final=args.shuffle,
        )
    finally:
        if store is not None:
            store.close()

    if args.stats:
        get_logger().log_metrics_summary()

    if args.json:
        print(json.dumps(result, indent=2, ensure_ascii=False, default=str))
        return

    if not result:
        print("No candidates selected.")
        return
    print(f"Selected {len(result)} of {len(candidates)} candidates:\n")
    for i, c in enumerate(result, 1):
        print(f"{i}. [{classify(c, now)}] {candidate_id(c)}")


def cmd_seed(args: argparse.Namespace) -> None:
    settings = get_settings()
    day = args.seed_day or seed_day(_parse_now(args.now), settings.timezone, settings.day_rollover_hour)
    print(build_seed(day, args.viewer_id, args.reset_index))


def cmd_validate(args: argparse.Namespace) -> None:
    candidates = load_candidates(args.input)
    invalid = 0
    for i, c in enumerate(candidates):
        errors = validate_candidate_strict(c)
        if errors:
            invalid += 1
            label = candidate_id(c) or f"#{i}"
            print(f"{label}:")
            for e in errors:
                print(f" - {e}")
    if invalid:
        print(f"{invalid} of {len(candidates)} candidates have issues")
        raise SystemExit(2)
    print(f"Valid ({len(candidates)} candidates)")


def cmd_hash(args: argparse.Namespace) -> None:
    print(f"hash32: {hash32(args.text)}")
    print(f"hash01: {hash01(args.text):.10f}")


def cmd_cleanup(args: argparse.Namespace) -> None:
    before, after = cleanup_history(Path(args.db), days=args.days, sticky_days=args.sticky_days)
    print(f"History rows: {before} -> {after} ({before - after} removed)")


def main(argv: Optional[List[str]] = None):
    # Load .env if present (DAILYPICK_TIMEZONE, DAILYPICK_LOG_LEVEL, etc.)
    load_env()
    parser = argparse.ArgumentParser(prog="dailypick", description="Deterministic daily candidate selection")
    parser.add_argument("--version", action="store_true", help="Show version")

    subparsers = parser.add_subparsers(dest="command")
    sel = subparsers.add_parser("select", help="Select today's candidates from a JSON candidate list")
    sel.add_argument("--input", required=True, help="Path to candidates JSON")
    sel.add_argument("--viewer", help="Path to viewer JSON; enables the standard total filter")
    sel.add_argument("--viewer-id", help="Viewer id used in the seed (default: anon)")
    sel.add_argument("--seed-day", help="Day key YYYYMMDD (default: today in the configured timezone)")
    sel.add_argument("--reset-index", type=int, default=0, help="Reset counter for a different draw (default: 0)")
    sel.add_argument("--exclude", help="Comma-separated candidate ids to exclude")
    sel.add_argument("--now", help="ISO timestamp used as the current time")
    sel.add_argument("--store", help="Sticky/history store (.json file or .db SQLite)")
    sel.add_argument("--explore", type=int, help="Exploration picks appended after the core")
    sel.add_argument("--shuffle", action="store_true", help="Rotate the final list by the seed")
    sel.add_argument("--json", action="store_true", help="Print selected records as JSON")
    sel.add_argument("--stats", action="store_true", help="Log the selection metrics summary")
    sel.set_defaults(func=cmd_select)

    sd = subparsers.add_parser("seed", help="Print the seed for a viewer and day")
    sd.add_argument("--viewer-id", help="Viewer id (default: anon)")
    sd.add_argument("--seed-day", help="Day key YYYYMMDD")
    sd.add_argument("--reset-index", type=int, default=0, help="Reset counter (default: 0)")
    sd.add_argument("--now", help="ISO timestamp used as the current time")
    sd.set_defaults(func=cmd_seed)

    val = subparsers.add_parser("validate", help="Check a candidates JSON for unusable records")
    val.add_argument("--input", required=True, help="Path to candidates JSON")
    val.set_defaults(func=cmd_validate)

    hsh = subparsers.add_parser("hash", help="Show hash32/hash01 of a string")
    hsh.add_argument("text", help="Text to hash")
    hsh.set_defaults(func=cmd_hash)

    cln = subparsers.add_parser("cleanup", help="Prune old exposure history and sticky sets")
    cln.add_argument("--db", default=None, help="SQLite store (default: DAILYPICK_DB_PATH)")
    cln.add_argument("--days", type=int, default=None, help="Days of exposure history to keep (default: DAILYPICK_HISTORY_KEEP_DAYS)")
    cln.add_argument("--sticky-days", type=int, default=2, help="Days of sticky sets to keep (default: 2)")
    cln.set_defaults(func=cmd_cleanup)

    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    try:
        if getattr(args, "command", None) == "cleanup":
            settings = get_settings()
            args.db = args.db or settings.db_path
            if args.days is None:
                args.days = settings.history_keep_days
        if hasattr(args, "func"):
            args.func(args)
            return
    except ConfigError as e:
        raise SystemExit(f"Configuration error: {e}")

    parser.print_help()


if __name__ == "__main__":
    main()
