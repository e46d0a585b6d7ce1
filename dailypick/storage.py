"""
Stores for sticky sets and exploration history.

Both stores expose the same four calls used by the selection:
``load_sticky``, ``save_sticky``, ``load_seen`` and ``record_seen``.
Timestamps cross this boundary as aware datetimes.
"""

import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

from sqlalchemy.orm import sessionmaker

from .config import Settings, get_settings
from .database import SeenEntry, StickySet, get_engine, init_database
from .normalize import normalize_id
from .recency import as_utc

STICKY_PREFIX = "dist:"
DEFAULT_KEEP_DAYS = 30
DEFAULT_MAX_ENTRIES = 800
DEFAULT_MAX_STICKY = 64


def sticky_key(seed: str) -> str:
    return f"{STICKY_PREFIX}{seed}"


def _clean_ids(ids: Iterable[Any]) -> List[str]:
    out: List[str] = []
    for raw in ids:
        cid = normalize_id(raw)
        if cid and cid not in out:
            out.append(cid)
    return out


def _to_millis(when: datetime) -> int:
    return int(as_utc(when).timestamp() * 1000)


def _naive_utc(when: datetime) -> datetime:
    return as_utc(when).replace(tzinfo=None)


def load_store(path: Path) -> Dict[str, Any]:
    empty = {"sticky": {}, "seen": {}}
    if not path.exists():
        return empty
    try:
        with path.open("r", encoding="utf-8") as f:
            content = f.read().strip()
            if not content:
                return empty
            data = json.loads(content)
    except (json.JSONDecodeError, IOError):
        return empty
    if not isinstance(data, dict):
        return empty
    data.setdefault("sticky", {})
    data.setdefault("seen", {})
    return data


def save_store(path: Path, store: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(store, f, indent=2, ensure_ascii=False)


class JsonSelectionStore:
    """
    Single JSON file store, for a device or a single-process setup.

    History per viewer is capped at ``max_entries`` and ``keep_days``;
    at most ``max_sticky`` sticky sets are kept, oldest dropped first.
    """

    def __init__(
        self,
        path: Path,
        keep_days: int = DEFAULT_KEEP_DAYS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        max_sticky: int = DEFAULT_MAX_STICKY,
    ):
        self.path = Path(path)
        self.keep_days = keep_days
        self.max_entries = max_entries
        self.max_sticky = max_sticky

    def load_sticky(self, seed: str) -> List[str]:
        ids = load_store(self.path)["sticky"].get(sticky_key(seed), [])
        if not isinstance(ids, list):
            return []
        return _clean_ids(ids)

    def save_sticky(self, seed: str, ids: Iterable[Any]) -> None:
        store = load_store(self.path)
        sticky = store["sticky"]
        key = sticky_key(seed)
        sticky.pop(key, None)
        sticky[key] = _clean_ids(ids)
        while len(sticky) > self.max_sticky:
            sticky.pop(next(iter(sticky)))
        save_store(self.path, store)

    def _entries(self, store: Dict[str, Any], viewer_id: str) -> List[Dict[str, Any]]:
        raw = store["seen"].get(viewer_id, [])
        if not isinstance(raw, list):
            return []
        return [
            item for item in raw
            if isinstance(item, dict) and normalize_id(item.get("id"))
            and isinstance(item.get("t"), (int, float)) and not isinstance(item.get("t"), bool)
        ]

    def load_seen(self, viewer_id: str, since: datetime) -> Set[str]:
        cutoff = _to_millis(since)
        entries = self._entries(load_store(self.path), viewer_id)
        return {normalize_id(item["id"]) for item in entries if item["t"] >= cutoff}

    def record_seen(self, viewer_id: str, ids: Iterable[Any], when: datetime) -> None:
        new_ids = _clean_ids(ids)
        if not new_ids:
            return
        store = load_store(self.path)
        cutoff = _to_millis(when - timedelta(days=self.keep_days))
        kept = [item for item in self._entries(store, viewer_id) if item["t"] >= cutoff]
        stamp = _to_millis(when)
        merged = kept + [{"id": cid, "t": stamp} for cid in new_ids]
        store["seen"][viewer_id] = merged[-self.max_entries:]
        save_store(self.path, store)

    def close(self) -> None:
        """Nothing is held open between calls."""


class SqlSelectionStore:
    """
    SQLite-backed store; one session per operation.

    History per viewer is capped at ``max_entries`` rows, newest kept.
    Age-based pruning is left to ``cleanup_history``.
    """

    def __init__(self, db_path: Path, max_entries: int = DEFAULT_MAX_ENTRIES):
        self.db_path = Path(db_path)
        self.max_entries = max_entries
        init_database(self.db_path)
        self.engine = get_engine(self.db_path)
        self.Session = sessionmaker(bind=self.engine)

    def load_sticky(self, seed: str) -> List[str]:
        session = self.Session()
        try:
            row = session.get(StickySet, sticky_key(seed))
            if row is None:
                return []
            try:
                ids = json.loads(row.candidate_ids)
            except json.JSONDecodeError:
                return []
            return _clean_ids(ids) if isinstance(ids, list) else []
        finally:
            session.close()

    def save_sticky(self, seed: str, ids: Iterable[Any]) -> None:
        payload = json.dumps(_clean_ids(ids), ensure_ascii=False)
        session = self.Session()
        try:
            row = session.get(StickySet, sticky_key(seed))
            if row is None:
                session.add(StickySet(seed=sticky_key(seed), candidate_ids=payload))
            else:
                row.candidate_ids = payload
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def load_seen(self, viewer_id: str, since: datetime) -> Set[str]:
        session = self.Session()
        try:
            rows = (
                session.query(SeenEntry.candidate_id)
                .filter(SeenEntry.viewer_id == viewer_id)
                .filter(SeenEntry.seen_at >= _naive_utc(since))
                .all()
            )
            return {row.candidate_id for row in rows}
        finally:
            session.close()

    def record_seen(self, viewer_id: str, ids: Iterable[Any], when: datetime) -> None:
        new_ids = _clean_ids(ids)
        if not new_ids:
            return
        seen_at = _naive_utc(when)
        session = self.Session()
        try:
            for cid in new_ids:
                session.add(SeenEntry(viewer_id=viewer_id, candidate_id=cid, seen_at=seen_at))
            session.flush()
            overflow = (
                session.query(SeenEntry.id)
                .filter(SeenEntry.viewer_id == viewer_id)
                .order_by(SeenEntry.seen_at.desc(), SeenEntry.id.desc())
                .offset(self.max_entries)
                .all()
            )
            if overflow:
                session.query(SeenEntry).filter(
                    SeenEntry.id.in_([row.id for row in overflow])
                ).delete(synchronize_session=False)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()


def open_store(path: Path, settings: Optional[Settings] = None):
    """SQLite store for .db/.sqlite paths, JSON store otherwise."""
    path = Path(path)
    settings = settings or get_settings()
    if path.suffix.lower() in (".db", ".sqlite", ".sqlite3"):
        return SqlSelectionStore(path, max_entries=settings.history_max_entries)
    return JsonSelectionStore(
        path,
        keep_days=settings.history_keep_days,
        max_entries=settings.history_max_entries,
    )
