"""
Cleanup module for pruning selection history.

Exposure-history rows older than a number of days (default: 30) stop
influencing exploration, and sticky sets only matter for the seed day they
were written on. Both are removed so the store does not grow without bound.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from .database import SeenEntry, StickySet, get_session
from .logger import get_logger


def cleanup_history(
    db_path: Path,
    days: int = 30,
    sticky_days: int = 2,
    now: Optional[datetime] = None,
) -> Tuple[int, int]:
    """
    Remove exposure history older than ``days`` and sticky sets older than
    ``sticky_days``.

    Args:
        db_path: Path to the SQLite store
        days: Number of days of exposure history to keep (default: 30)
        sticky_days: Number of days of sticky sets to keep (default: 2)
        now: Reference time (default: current UTC time)

    Returns:
        Tuple of (history_rows_before, history_rows_after)
        Difference = rows removed
    """
    logger = get_logger()
    db_path = Path(db_path)
    if not db_path.exists():
        logger.warning("Cleanup skipped, store not found", db_path=str(db_path))
        return (0, 0)

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc).replace(tzinfo=None)
    history_cutoff = now - timedelta(days=days)
    sticky_cutoff = now - timedelta(days=sticky_days)

    session = get_session(db_path)
    try:
        rows_before = session.query(SeenEntry).count()
        session.query(SeenEntry).filter(SeenEntry.seen_at < history_cutoff).delete(
            synchronize_session=False
        )
        sticky_removed = session.query(StickySet).filter(StickySet.updated_at < sticky_cutoff).delete(
            synchronize_session=False
        )
        session.commit()
        rows_after = session.query(SeenEntry).count()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Cleanup failed: {e}", error=str(e), days=days, db_path=str(db_path))
        return (0, 0)
    finally:
        session.close()

    logger.info(
        f"Cleanup complete: {rows_before - rows_after} history rows removed, {rows_after} remaining",
        rows_before=rows_before,
        rows_after=rows_after,
        sticky_removed=sticky_removed,
        days_threshold=days,
        sticky_days_threshold=sticky_days,
    )
    return (rows_before, rows_after)
