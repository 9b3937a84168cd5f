"""
Unit Tests for the Improvement Plan Cache

Tests hashing, hits, TTL expiry and invalidation on assessment changes.
"""

from datetime import timedelta

import pytest

from services.plan_cache import PlanCache, assessment_hash, cache_key
from services.scoring import score_assessment


class MutableClock:
    """Clock whose time can be moved forward."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def assessment(assessment_payload, fixed_now):
    return score_assessment(assessment_payload, now=fixed_now)


@pytest.fixture
def mutable_clock(fixed_now):
    return MutableClock(fixed_now)


@pytest.fixture
def cache(store, mutable_clock):
    return PlanCache(store, ttl_hours=24, clock=mutable_clock)


class TestAssessmentHash:
    """Test the plan-relevant content hash."""

    def test_hash_format(self, assessment):
        digest = assessment_hash(assessment)

        assert len(digest) == 16
        int(digest, 16)

    def test_hash_stable(self, assessment):
        assert assessment_hash(assessment) == assessment_hash(dict(assessment))

    def test_hash_changes_with_dimension_score(self, assessment):
        before = assessment_hash(assessment)
        assessment["dimensions"]["algorithm"]["score"] = 56

        assert assessment_hash(assessment) != before

    def test_hash_changes_with_strengths(self, assessment):
        before = assessment_hash(assessment)
        assessment["report"]["strengths"].append("学习能力强")

        assert assessment_hash(assessment) != before

    def test_hash_ignores_summary_and_recommendations(self, assessment):
        """Test fields that do not shape a plan leave the hash alone."""
        before = assessment_hash(assessment)
        assessment["report"]["summary"] = "新的总结"
        assessment["report"]["recommendations"] = ["别的建议"]

        assert assessment_hash(assessment) == before

    def test_cache_key_uses_assessment_date(self, assessment):
        assert cache_key(assessment) == "improvement_plan:2026-10-01T08:00:00+00:00"


class TestPlanCache:
    """Test PlanCache get / put / invalidate."""

    def test_miss_when_empty(self, cache, assessment):
        assert cache.get(assessment) is None

    def test_put_then_get_hits(self, cache, assessment):
        plan = {"id": "plan_1", "generated_goals": {"short_term": [], "medium_term": []}}

        cache.put(plan, assessment)

        assert cache.get(assessment) == plan

    def test_entry_shape(self, cache, store, assessment, fixed_now):
        cache.put({"id": "plan_1"}, assessment)

        entry = store.get_cache_entry(cache_key(assessment))
        assert entry["plan"] == {"id": "plan_1"}
        assert entry["assessment_hash"] == assessment_hash(assessment)
        assert entry["cache_time"] == fixed_now.isoformat()

    def test_miss_after_score_change(self, cache, assessment):
        """Test a changed dimension score invalidates the entry."""
        cache.put({"id": "plan_1"}, assessment)
        assessment["dimensions"]["programming"]["score"] = 10

        assert cache.get(assessment) is None

    def test_hit_within_ttl(self, cache, assessment, mutable_clock):
        cache.put({"id": "plan_1"}, assessment)
        mutable_clock.advance(hours=23)

        assert cache.get(assessment) == {"id": "plan_1"}

    def test_miss_after_ttl(self, cache, assessment, mutable_clock):
        """Test an unchanged assessment still misses once the TTL has passed."""
        cache.put({"id": "plan_1"}, assessment)
        mutable_clock.advance(hours=25)

        assert cache.get(assessment) is None

    def test_invalidate(self, cache, assessment):
        cache.put({"id": "plan_1"}, assessment)

        cache.invalidate(assessment)

        assert cache.get(assessment) is None
