"""Tests for bucket ranking and rotation."""

import copy

import pytest

from dailypick.hashing import hash01, hash32
from dailypick.ranking import ranking_key, rotate, rotation_offset, sort_bucket

SEED = "20250315#viewer#0"


def ids(candidates):
    return [c["_id"] for c in candidates]


class TestSortBucket:
    """Test freshness/hash blended ordering."""

    def test_returns_new_list_without_mutating_input(self, make_pool, now):
        bucket = make_pool("b1", 6)
        snapshot = copy.deepcopy(bucket)

        ordered = sort_bucket(bucket, SEED, now)

        assert bucket == snapshot
        assert ordered is not bucket
        assert sorted(ids(ordered)) == sorted(ids(bucket))

    def test_pure_recency_when_mix_is_zero(self, make_candidate, now):
        bucket = [
            make_candidate("old", hours_ago=30),
            make_candidate("fresh", hours_ago=1),
            make_candidate("mid", hours_ago=10),
        ]
        assert ids(sort_bucket(bucket, SEED, now, mix=0.0)) == ["fresh", "mid", "old"]

    def test_pure_hash_when_mix_is_one(self, make_pool, now):
        bucket = make_pool("b1", 8)
        expected = sorted(ids(bucket), key=lambda cid: (-hash01(f"{SEED}#{cid}"), cid))
        assert ids(sort_bucket(bucket, SEED, now, mix=1.0)) == expected

    def test_more_recent_never_ranks_lower_with_equal_jitter(self, make_candidate, now):
        a = make_candidate("a", hours_ago=2)
        b = make_candidate("b", hours_ago=20)
        assert ranking_key(a, SEED, now, mix=0.0) > ranking_key(b, SEED, now, mix=0.0)

    def test_ties_break_by_identifier(self, now):
        bucket = [{"_id": "c"}, {"_id": "a"}, {"_id": "b"}]
        # No timestamps and no jitter: every key is 0
        assert ids(sort_bucket(bucket, SEED, now, mix=0.0)) == ["a", "b", "c"]

    def test_same_seed_same_order(self, make_pool, now):
        bucket = make_pool("b2", 10)
        assert ids(sort_bucket(bucket, SEED, now)) == ids(sort_bucket(list(reversed(bucket)), SEED, now))

    def test_external_score_dominates(self, make_candidate, now):
        low = make_candidate("low", hours_ago=1, score=0.1)
        high = make_candidate("high", hours_ago=1, score=0.9)
        assert ids(sort_bucket([low, high], SEED, now)) == ["high", "low"]

    def test_score_is_clamped(self, make_candidate, now):
        over = make_candidate("over", hours_ago=1, score=5)
        exact = make_candidate("exact", hours_ago=1, score=1.0)
        blended_over = ranking_key(over, SEED, now)
        assert 0.8 <= blended_over <= 1.0
        assert ranking_key(exact, SEED, now) <= 1.0

    def test_boolean_score_is_ignored(self, make_candidate, now):
        flagged = make_candidate("u1", hours_ago=1, score=True)
        plain = make_candidate("u1", hours_ago=1)
        assert ranking_key(flagged, SEED, now) == ranking_key(plain, SEED, now)


class TestRotate:
    """Test seed-derived cyclic rotation."""

    def test_empty_sequence(self):
        assert rotate([], SEED, "B1") == []

    def test_offset_zero_for_empty(self):
        assert rotation_offset(SEED, "B1", 0) == 0

    def test_left_rotation_by_hash_offset(self):
        items = list(range(11))
        offset = hash32(f"{SEED}::B2") % len(items)
        assert rotate(items, SEED, "B2") == items[offset:] + items[:offset]

    def test_stable_for_same_seed_and_tag(self):
        items = ["a", "b", "c", "d", "e"]
        assert rotate(items, SEED, "B1") == rotate(items, SEED, "B1")

    def test_preserves_elements_across_seeds(self):
        items = ["a", "b", "c", "d", "e", "f", "g"]
        for reset_index in range(5):
            seed = f"20250315#viewer#{reset_index}"
            rotated = rotate(items, seed, "B1")
            assert sorted(rotated) == items

    def test_preserves_cyclic_order(self):
        items = ["a", "b", "c", "d", "e", "f"]
        rotated = rotate(items, "another-seed", "B3")
        start = items.index(rotated[0])
        assert rotated == items[start:] + items[:start]

    def test_does_not_mutate_input(self):
        items = [1, 2, 3, 4]
        rotate(items, SEED, "B1")
        assert items == [1, 2, 3, 4]

    def test_accepts_iterables(self):
        assert sorted(rotate(iter([3, 1, 2]), SEED, "B1")) == [1, 2, 3]

    @pytest.mark.parametrize("tag", ["B1", "B2", "B3"])
    def test_single_element(self, tag):
        assert rotate(["only"], SEED, tag) == ["only"]
