"""
Pytest configuration and shared fixtures.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import pytest

from dailypick.config import Settings, reset_settings
from dailypick.logger import get_logger, reset_logger

NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)
SEED_DAY = "20250315"


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Drop DAILYPICK_* variables and start each test with a quiet logger."""
    for key in list(os.environ):
        if key.startswith("DAILYPICK_"):
            monkeypatch.delenv(key, raising=False)
    reset_settings()
    reset_logger()
    get_logger(enable_console=False, enable_file=False)
    yield
    reset_logger()
    reset_settings()


@pytest.fixture
def now() -> datetime:
    """Fixed clock: 2025-03-15 12:00 UTC (21:00 in Seoul)."""
    return NOW


@pytest.fixture
def seed_day() -> str:
    return SEED_DAY


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def make_candidate(now):
    """Candidate factory: id plus a last_login ``days_ago``/``hours_ago`` before ``now``."""

    def make(cid: str, days_ago: float = None, hours_ago: float = None, **extra) -> Dict[str, Any]:
        candidate: Dict[str, Any] = {"_id": cid}
        if days_ago is not None or hours_ago is not None:
            age = timedelta(days=days_ago or 0, hours=hours_ago or 0)
            candidate["last_login"] = (now - age).isoformat()
        candidate.update(extra)
        return candidate

    return make


@pytest.fixture
def make_pool(make_candidate):
    """Build ``count`` candidates of one tier: b1 (recent), b2 (a week) or b3 (stale)."""
    ages = {"b1": 1, "b2": 5, "b3": 30}

    def make(tier: str, count: int, start: int = 0):
        return [
            make_candidate(f"{tier}-{i:02d}", days_ago=ages[tier], hours_ago=i)
            for i in range(start, start + count)
        ]

    return make


@pytest.fixture
def keep_all():
    """Total filter that keeps every candidate."""

    def apply(candidates, viewer):
        return list(candidates)

    return apply
