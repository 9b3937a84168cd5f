"""
Assessment Scoring Engine

Turns a parsed (possibly repaired) LLM assessment payload into a validated,
internally consistent ability assessment:
- Non-destructive defaulting of report, metadata and dimensions
- Dimension scores as the rounded mean of their skill scores
- Overall score as the rounded weighted sum of the five dimensions
- Skill-level helpers: levels, confidence, weak areas, skill gaps

Everything here is pure: no I/O and no randomness. The clock used for a
missing assessment date can be injected.
"""

import copy
import math
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from config import (
    DIMENSION_WEIGHTS,
    DIMENSION_KEYS,
    SKILL_IMPORTANCE,
    SCORE_LEVELS,
    TOP_SCORE_LEVEL,
    WEAK_AREA_THRESHOLD,
    validate_dimension_weights,
)
from utils import round_half_up, is_number, utc_now, to_iso

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY = "评估已完成"
DEFAULT_METHOD = "resume"
DEFAULT_CONFIDENCE = 0.5
REPORT_LIST_FIELDS = ("strengths", "improvements", "recommendations")

# Skills below this confidence count as inferred
INFERRED_CONFIDENCE_THRESHOLD = 0.7


# ============================================================================
# MISSING / PRESENT
# ============================================================================

class _Missing:
    """Marker for a field that is absent (or null) in the payload."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


@dataclass(frozen=True)
class Present:
    """A field that exists in the payload, whatever its value (even [] or "")."""
    value: Any


def probe(mapping: Any, key: str) -> Union[_Missing, Present]:
    """
    Look up a key, distinguishing "absent" from "present but empty".

    Args:
        mapping: Dict to inspect (anything else counts as empty)
        key: Field name

    Returns:
        MISSING when the key is absent or None, otherwise Present(value)
    """
    if not isinstance(mapping, dict) or mapping.get(key) is None:
        return MISSING
    return Present(mapping[key])


# ============================================================================
# DEFAULTING
# ============================================================================

def _fix_report(report: Any) -> Dict[str, Any]:
    if isinstance(report, str):
        report = {"summary": report}
    elif not isinstance(report, dict):
        report = {}

    summary = probe(report, "summary")
    if summary is MISSING or (isinstance(summary.value, str) and not summary.value.strip()):
        report["summary"] = DEFAULT_SUMMARY

    for field_name in REPORT_LIST_FIELDS:
        value = probe(report, field_name)
        if value is MISSING:
            report[field_name] = []
        elif not isinstance(value.value, list):
            report[field_name] = [value.value]

    return report


def _fix_metadata(metadata: Any, now: datetime) -> Dict[str, Any]:
    if not isinstance(metadata, dict):
        metadata = {}

    if probe(metadata, "assessment_date") is MISSING:
        metadata["assessment_date"] = to_iso(now)
    if probe(metadata, "assessment_method") is MISSING:
        metadata["assessment_method"] = DEFAULT_METHOD
    if probe(metadata, "confidence") is MISSING:
        metadata["confidence"] = DEFAULT_CONFIDENCE

    return metadata


def _fix_dimension(key: str, dimension: Any) -> Dict[str, Any]:
    table_weight = DIMENSION_WEIGHTS[key]

    if not isinstance(dimension, dict):
        return {"score": 0, "weight": table_weight, "skills": {}}

    if not isinstance(dimension.get("skills"), dict):
        if probe(dimension, "skills") is not MISSING:
            logger.warning(f"⚠️  Dimension '{key}' has non-object skills; replacing with {{}}")
        dimension["skills"] = {}

    if not is_number(dimension.get("score")):
        dimension["score"] = 0

    weight = dimension.get("weight")
    if not is_number(weight) or not 0 <= weight <= 1:
        dimension["weight"] = table_weight

    return dimension


def validate_and_fix_assessment(raw: Any, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Fill in missing sections of an assessment without discarding content.

    Existing values are kept even when unusual; only absent (or null) fields
    get defaults. A non-list report field is wrapped in a one-item list.

    Args:
        raw: Parsed assessment payload (not mutated)
        now: Timestamp for a missing assessment date (defaults to current UTC time)

    Returns:
        A new, fully populated assessment dict
    """
    assessment = copy.deepcopy(raw) if isinstance(raw, dict) else {}
    now = now or utc_now()

    assessment["report"] = _fix_report(assessment.get("report"))
    assessment["metadata"] = _fix_metadata(assessment.get("metadata"), now)

    dimensions = assessment.get("dimensions")
    if not isinstance(dimensions, dict):
        dimensions = {}
    for key in DIMENSION_KEYS:
        dimensions[key] = _fix_dimension(key, dimensions.get(key))
    assessment["dimensions"] = dimensions

    weights = {key: dimensions[key]["weight"] for key in DIMENSION_KEYS}
    if not validate_dimension_weights(weights):
        logger.warning(f"⚠️  Dimension weights {weights} do not sum to 1.0; using defaults")
        for key in DIMENSION_KEYS:
            dimensions[key]["weight"] = DIMENSION_WEIGHTS[key]

    if not is_number(assessment.get("overall_score")):
        assessment["overall_score"] = 0

    return assessment


# ============================================================================
# SCORE CALCULATION
# ============================================================================

def get_skill_value(skill: Any) -> float:
    """
    Resolve a skill entry to its numeric score.

    Accepts a bare number or an object with a numeric "score".
    Anything else (including booleans) scores 0.
    """
    if is_number(skill):
        return skill
    if isinstance(skill, dict) and is_number(skill.get("score")):
        return skill["score"]
    return 0


def calculate_overall_score(assessment: Dict[str, Any]) -> int:
    """
    Recompute dimension scores and return the weighted overall score.

    Dimensions with at least one skill get the rounded mean of their skill
    values; dimensions without skills keep their existing score. Scores are
    written back into the assessment.

    Args:
        assessment: A validated assessment (see validate_and_fix_assessment)

    Returns:
        Overall score, rounded half up
    """
    dimensions = assessment["dimensions"]
    weighted_sum = 0.0

    for key in DIMENSION_KEYS:
        dimension = dimensions[key]
        skills = dimension.get("skills") or {}

        if skills:
            values = [get_skill_value(skill) for skill in skills.values()]
            dimension["score"] = round_half_up(sum(values) / len(values))
        else:
            dimension["score"] = round_half_up(dimension["score"])

        weighted_sum += dimension["score"] * dimension["weight"]

    # absorb float noise from the weight products (0.3 * 55 -> 16.499999...)
    return round_half_up(round(weighted_sum, 6))


def score_assessment(raw: Any, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Validate a raw assessment payload and compute all of its scores.

    Args:
        raw: Parsed assessment payload
        now: Timestamp for a missing assessment date

    Returns:
        Scored assessment with overall_score set
    """
    assessment = validate_and_fix_assessment(raw, now=now)
    assessment["overall_score"] = calculate_overall_score(assessment)
    logger.debug(f"📊 Assessment scored: {assessment['overall_score']}/100")
    return assessment


# ============================================================================
# SKILL HELPERS
# ============================================================================

def get_score_level(score: float) -> str:
    """Map a 0-100 score to novice / beginner / intermediate / advanced / expert."""
    for upper_bound, level in SCORE_LEVELS:
        if score <= upper_bound:
            return level
    return TOP_SCORE_LEVEL


def get_skill_confidence(skill: Any) -> float:
    """Confidence of a skill entry; bare numbers count as fully confident."""
    if isinstance(skill, dict) and is_number(skill.get("confidence")):
        return skill["confidence"]
    return 1.0


def is_skill_inferred(skill: Any) -> bool:
    """True when a skill is flagged as inferred or has low confidence."""
    if not isinstance(skill, dict):
        return False
    return skill.get("is_inferred") is True or get_skill_confidence(skill) < INFERRED_CONFIDENCE_THRESHOLD


def find_weak_areas(assessment: Dict[str, Any], threshold: float = WEAK_AREA_THRESHOLD) -> List[Dict[str, Any]]:
    """
    List skills scoring below a threshold.

    Args:
        assessment: Scored assessment
        threshold: Skills strictly below this are weak

    Returns:
        [{"name": "dimension.skill", "score": n}] sorted by ascending score
    """
    weak_areas = []
    for dimension_key, dimension in (assessment.get("dimensions") or {}).items():
        if not isinstance(dimension, dict):
            continue
        for skill_name, skill in (dimension.get("skills") or {}).items():
            value = get_skill_value(skill)
            if value < threshold:
                weak_areas.append({"name": f"{dimension_key}.{skill_name}", "score": value})

    weak_areas.sort(key=lambda area: area["score"])
    return weak_areas


def calculate_skill_priority(current_score: float, dimension_weight: float, skill_name: str) -> str:
    """Priority of improving a skill: low scores in heavy dimensions come first."""
    urgency = (100 - current_score) * dimension_weight * SKILL_IMPORTANCE.get(skill_name, 1.0)
    if urgency > 15:
        return "high"
    if urgency > 8:
        return "medium"
    return "low"


def determine_overall_strategy(overall_score: float) -> str:
    if overall_score < 30:
        return "foundation_building"
    if overall_score < 60:
        return "skill_strengthening"
    if overall_score < 80:
        return "advanced_development"
    return "specialization"


def analyze_skill_gaps(assessment: Dict[str, Any]) -> Dict[str, Any]:
    """
    Find skills with meaningful room to grow and rank them.

    Each skill targets +20 points, capped at 85; gaps of 5 points or less
    are ignored. Roughly 5 points of improvement per week is assumed.

    Args:
        assessment: Scored assessment

    Returns:
        Dict with:
            - skill_gaps: gap records, high priority first
            - top_priorities: up to 5 high-priority "dimension.skill" names
            - overall_strategy: strategy label for the overall score
    """
    priority_order = {"high": 0, "medium": 1, "low": 2}
    skill_gaps = []

    for dimension_key, dimension in (assessment.get("dimensions") or {}).items():
        if not isinstance(dimension, dict):
            continue
        weight = dimension.get("weight", DIMENSION_WEIGHTS.get(dimension_key, 0))
        if not is_number(weight):
            weight = DIMENSION_WEIGHTS.get(dimension_key, 0)

        for skill_name, skill in (dimension.get("skills") or {}).items():
            current = get_skill_value(skill)
            target = min(current + 20, 85)
            gap = target - current
            if gap <= 5:
                continue

            skill_gaps.append({
                "name": f"{dimension_key}.{skill_name}",
                "dimension": dimension_key,
                "skill": skill_name,
                "current_score": current,
                "target_score": target,
                "gap": gap,
                "priority": calculate_skill_priority(current, weight, skill_name),
                "estimated_weeks": math.ceil(gap / 5),
            })

    skill_gaps.sort(key=lambda gap: priority_order[gap["priority"]])

    top_priorities = [gap["name"] for gap in skill_gaps if gap["priority"] == "high"][:5]

    return {
        "skill_gaps": skill_gaps,
        "top_priorities": top_priorities,
        "overall_strategy": determine_overall_strategy(assessment.get("overall_score", 0)),
    }
