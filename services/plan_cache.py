"""
Improvement Plan Cache

Memoizes AI-generated improvement plans per assessment. An entry is keyed by
the assessment date and carries a content hash of the parts of the
assessment that shape a plan, so a re-scored profile never gets a stale plan.
"""

import json
import hashlib
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from config import PLAN_CACHE_TTL_HOURS, DIMENSION_KEYS
from utils import utc_now, to_iso, parse_timestamp

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "improvement_plan"


def assessment_hash(assessment: Dict[str, Any]) -> str:
    """
    Content hash of the plan-relevant parts of an assessment.

    Covers the overall score, each dimension score (in fixed dimension
    order), and the report's strengths and improvements.

    Returns:
        First 16 hex characters of the SHA-256 digest
    """
    dimensions = assessment.get("dimensions") or {}
    report = assessment.get("report") or {}

    content = {
        "overall_score": assessment.get("overall_score"),
        "dimensions": [
            [key, (dimensions.get(key) or {}).get("score")]
            for key in DIMENSION_KEYS
        ],
        "strengths": report.get("strengths", []),
        "improvements": report.get("improvements", []),
    }
    canonical = json.dumps(content, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def cache_key(assessment: Dict[str, Any]) -> str:
    date = (assessment.get("metadata") or {}).get("assessment_date", "")
    return f"{CACHE_KEY_PREFIX}:{date}"


class PlanCache:
    """
    TTL cache of improvement plans backed by the profile store.

    Args:
        store: Object exposing get_cache_entry / set_cache_entry / delete_cache_entry
        ttl_hours: Entry lifetime
        clock: Returns the current aware datetime (injectable for tests)
    """

    def __init__(
        self,
        store,
        ttl_hours: float = PLAN_CACHE_TTL_HOURS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.ttl = timedelta(hours=ttl_hours)
        self.clock = clock or utc_now

    def get(self, assessment: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Return the cached plan for an assessment, or None on a miss.

        A miss is returned when no entry exists, when the stored hash differs
        from the live assessment's hash, or when the entry is older than the TTL.
        """
        key = cache_key(assessment)
        entry = self.store.get_cache_entry(key)
        if not entry:
            return None

        if entry.get("assessment_hash") != assessment_hash(assessment):
            logger.info(f"♻️  Plan cache stale for {key}: assessment changed")
            return None

        cached_at = parse_timestamp(entry.get("cache_time"))
        if cached_at is None or self.clock() - cached_at > self.ttl:
            logger.info(f"⏰ Plan cache expired for {key}")
            return None

        logger.info(f"✅ Plan cache hit for {key}")
        return entry.get("plan")

    def put(self, plan: Dict[str, Any], assessment: Dict[str, Any]) -> None:
        """Store a plan for an assessment, replacing any previous entry."""
        key = cache_key(assessment)
        self.store.set_cache_entry(key, {
            "plan": plan,
            "assessment_hash": assessment_hash(assessment),
            "cache_time": to_iso(self.clock()),
        })
        logger.debug(f"Plan cached under {key}")

    def invalidate(self, assessment: Dict[str, Any]) -> None:
        self.store.delete_cache_entry(cache_key(assessment))
