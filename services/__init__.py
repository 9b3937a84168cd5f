"""
Business Logic Services Module

This module contains the business logic of the learning agent:
- Chat service: Main coordinator for user interactions
- Scoring: Assessment validation, weighted scoring and skill gap analysis
- Assessment service: Running, saving, reporting and planning from assessments
- Plan cache: Memoized improvement plans per assessment

Services orchestrate tools and the LLM and apply domain-specific business rules.
"""

from .chat_service import (
    ChatService,
    ChatResponse,
    AgentInteraction,
    generate_suggestions,
    generate_smart_suggestions,
)

from .scoring import (
    validate_and_fix_assessment,
    calculate_overall_score,
    score_assessment,
    get_score_level,
    find_weak_areas,
    analyze_skill_gaps,
)

from .assessment_service import (
    AssessmentService,
    AssessmentInput,
)

from .plan_cache import (
    PlanCache,
    assessment_hash,
)

__all__ = [
    # Chat Service
    "ChatService",
    "ChatResponse",
    "AgentInteraction",
    "generate_suggestions",
    "generate_smart_suggestions",

    # Scoring
    "validate_and_fix_assessment",
    "calculate_overall_score",
    "score_assessment",
    "get_score_level",
    "find_weak_areas",
    "analyze_skill_gaps",

    # Assessment Service
    "AssessmentService",
    "AssessmentInput",

    # Plan Cache
    "PlanCache",
    "assessment_hash",
]
