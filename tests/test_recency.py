"""Tests for recency weighting and bucket classification."""

from datetime import datetime, timedelta, timezone

import pytest

from dailypick.recency import (
    B1,
    B2,
    B3,
    activity_timestamp,
    classify,
    parse_timestamp,
    recency_weight,
)


class TestParseTimestamp:
    """Test timestamp parsing."""

    def test_iso_with_z_suffix(self):
        assert parse_timestamp("2025-03-15T00:00:00Z") == datetime(2025, 3, 15, tzinfo=timezone.utc)

    def test_naive_datetime_is_utc(self):
        assert parse_timestamp(datetime(2025, 3, 15)) == datetime(2025, 3, 15, tzinfo=timezone.utc)

    def test_epoch_milliseconds(self):
        assert parse_timestamp(86_400_000) == datetime(1970, 1, 2, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "not a date", True, float("nan"), [], {}])
    def test_unparseable_values(self, value):
        assert parse_timestamp(value) is None


class TestRecencyWeight:
    """Test exponential decay weighting."""

    def test_weight_is_one_at_now(self, now):
        assert recency_weight(now, now) == pytest.approx(1.0)

    def test_half_life_is_twelve_hours(self, now):
        assert recency_weight(now - timedelta(hours=12), now) == pytest.approx(0.5)
        assert recency_weight(now - timedelta(hours=24), now) == pytest.approx(0.25)

    def test_custom_half_life(self, now):
        assert recency_weight(now - timedelta(hours=6), now, half_life_hours=6) == pytest.approx(0.5)

    def test_missing_timestamp_weighs_zero(self, now):
        assert recency_weight(None, now) == 0.0

    def test_unparseable_timestamp_weighs_zero(self, now):
        assert recency_weight("yesterday-ish", now) == 0.0

    def test_strictly_decreasing_with_age(self, now):
        weights = [recency_weight(now - timedelta(hours=h), now) for h in (0, 1, 5, 24, 72, 240)]
        assert all(a > b for a, b in zip(weights, weights[1:]))
        assert all(w >= 0 for w in weights)

    def test_very_old_timestamp_approaches_zero(self, now):
        assert recency_weight(datetime(2000, 1, 1, tzinfo=timezone.utc), now) < 1e-9

    def test_future_timestamp_counts_as_now(self, now):
        assert recency_weight(now + timedelta(days=400), now) == pytest.approx(1.0)

    def test_accepts_iso_strings(self, now):
        ts = (now - timedelta(hours=12)).isoformat()
        assert recency_weight(ts, now) == pytest.approx(0.5)


class TestClassify:
    """Test recency tier boundaries."""

    def test_recent_is_b1(self, make_candidate, now):
        assert classify(make_candidate("u1", days_ago=1), now) == B1

    def test_just_under_three_days_is_b1(self, make_candidate, now):
        assert classify(make_candidate("u1", days_ago=2, hours_ago=23), now) == B1

    def test_exactly_three_days_is_b2(self, make_candidate, now):
        assert classify(make_candidate("u1", days_ago=3), now) == B2

    def test_nine_days_is_b2(self, make_candidate, now):
        assert classify(make_candidate("u1", days_ago=9), now) == B2

    def test_exactly_ten_days_is_b3(self, make_candidate, now):
        assert classify(make_candidate("u1", days_ago=10), now) == B3

    def test_no_timestamp_is_b3(self, now):
        assert classify({"_id": "u1"}, now) == B3

    def test_unparseable_timestamp_is_b3(self, now):
        assert classify({"_id": "u1", "last_login": "garbage"}, now) == B3

    def test_falls_back_through_timestamp_fields(self, now):
        candidate = {"_id": "u1", "updatedAt": (now - timedelta(days=5)).isoformat()}
        assert classify(candidate, now) == B2

    def test_first_present_field_wins(self, now):
        candidate = {
            "_id": "u1",
            "lastLogin": (now - timedelta(days=20)).isoformat(),
            "createdAt": (now - timedelta(hours=1)).isoformat(),
        }
        assert classify(candidate, now) == B3

    def test_unparseable_first_field_does_not_fall_through(self, now):
        candidate = {"_id": "u1", "last_login": "garbage", "createdAt": now.isoformat()}
        assert activity_timestamp(candidate) is None
        assert classify(candidate, now) == B3
