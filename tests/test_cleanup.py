"""Tests for history cleanup."""

from datetime import datetime, timedelta

import pytest

from dailypick.cleanup import cleanup_history
from dailypick.database import SeenEntry, StickySet, get_session, init_database


class TestCleanup:
    """Test exposure-history and sticky-set pruning."""

    @pytest.fixture
    def db_path(self, tmp_path):
        path = tmp_path / "dailypick.db"
        init_database(path)
        return path

    def test_cleanup_removes_stale_history(self, db_path):
        """Verify that history older than the threshold is removed."""
        now = datetime(2025, 3, 15, 12, 0)
        session = get_session(db_path)
        session.add(SeenEntry(viewer_id="u1", candidate_id="old", seen_at=now - timedelta(days=40)))
        session.add(SeenEntry(viewer_id="u1", candidate_id="new", seen_at=now - timedelta(days=2)))
        session.commit()
        session.close()

        before, after = cleanup_history(db_path, days=30, now=now)

        assert before == 2
        assert after == 1

        session = get_session(db_path)
        remaining = session.query(SeenEntry).all()
        assert [r.candidate_id for r in remaining] == ["new"]
        session.close()

    def test_cleanup_removes_stale_sticky_sets(self, db_path):
        now = datetime(2025, 3, 15, 12, 0)
        session = get_session(db_path)
        old = now - timedelta(days=5)
        session.add(StickySet(seed="dist:20250310#u1#0", candidate_ids="[]", created_at=old, updated_at=old))
        session.add(StickySet(seed="dist:20250315#u1#0", candidate_ids="[]", created_at=now, updated_at=now))
        session.commit()
        session.close()

        cleanup_history(db_path, sticky_days=2, now=now)

        session = get_session(db_path)
        assert [s.seed for s in session.query(StickySet).all()] == ["dist:20250315#u1#0"]
        session.close()

    def test_cleanup_handles_missing_store(self, tmp_path):
        """Verify cleanup handles a missing database gracefully."""
        before, after = cleanup_history(tmp_path / "nonexistent.db", days=7)

        assert before == 0
        assert after == 0

    def test_cleanup_handles_empty_database(self, db_path):
        before, after = cleanup_history(db_path, days=7)

        assert before == 0
        assert after == 0

    def test_cleanup_preserves_recent_history(self, db_path):
        """Verify that recent exposures are always preserved."""
        now = datetime(2025, 3, 15, 12, 0)
        session = get_session(db_path)
        for i in range(5):
            session.add(SeenEntry(viewer_id="u1", candidate_id=f"c{i}", seen_at=now - timedelta(hours=i)))
        session.commit()
        session.close()

        before, after = cleanup_history(db_path, days=7, now=now)

        assert before == 5
        assert after == 5


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
