"""
Configuration module for the learning agent.

This module provides centralized configuration management including:
- Application settings (models, API keys, paths)
- Ability assessment constants (dimension weights, skill catalogue)
- Prompt templates and tool definitions

All configurable values should be imported from this module to ensure
consistency across the application.
"""

from .settings import (
    # Paths
    BASE_DIR,
    DATA_DIR,
    PROFILE_STORE_PATH,

    # API Keys
    GOOGLE_API_KEY,

    # LLM Settings
    GEMINI_MODEL,
    TEMPERATURE,
    MAX_TOKENS,
    TOP_P,
    TOP_K,
    MAX_RETRIES,
    RETRY_DELAY,
    TIMEOUT,
    MAX_TOOL_ROUNDS,

    # Langfuse Settings
    LANGFUSE_PUBLIC_KEY,
    LANGFUSE_SECRET_KEY,
    LANGFUSE_HOST,
    LANGFUSE_ENABLED,

    # Assessment Settings
    DIMENSION_WEIGHTS,
    DIMENSION_KEYS,
    DIMENSION_SKILLS,
    DIMENSION_NAMES,
    SKILL_NAMES,
    SKILL_IMPORTANCE,
    SCORE_LEVELS,
    TOP_SCORE_LEVEL,
    WEAK_AREA_THRESHOLD,

    # Cache / Data Health
    PLAN_CACHE_TTL_HOURS,
    GOAL_FRESHNESS_DAYS,

    # Debug
    DEBUG,
    LOG_LEVEL,
    configure_logging,
    validate_dimension_weights,
)

from .prompts import (
    # Prompts
    SYSTEM_PROMPT,
    ASSESSMENT_PROMPT,
    IMPROVEMENT_STRATEGY_PROMPT,

    # Tool Definitions
    TOOL_DEFINITIONS,

    # Utilities
    format_prompt,
    get_tool_by_name,
    get_tool_definitions,
    build_assessment_prompt,
)

__all__ = [
    # Settings
    "BASE_DIR",
    "DATA_DIR",
    "PROFILE_STORE_PATH",
    "GOOGLE_API_KEY",
    "GEMINI_MODEL",
    "TEMPERATURE",
    "MAX_TOKENS",
    "TOP_P",
    "TOP_K",
    "MAX_RETRIES",
    "RETRY_DELAY",
    "TIMEOUT",
    "MAX_TOOL_ROUNDS",
    "LANGFUSE_PUBLIC_KEY",
    "LANGFUSE_SECRET_KEY",
    "LANGFUSE_HOST",
    "LANGFUSE_ENABLED",
    "DIMENSION_WEIGHTS",
    "DIMENSION_KEYS",
    "DIMENSION_SKILLS",
    "DIMENSION_NAMES",
    "SKILL_NAMES",
    "SKILL_IMPORTANCE",
    "SCORE_LEVELS",
    "TOP_SCORE_LEVEL",
    "WEAK_AREA_THRESHOLD",
    "PLAN_CACHE_TTL_HOURS",
    "GOAL_FRESHNESS_DAYS",
    "DEBUG",
    "LOG_LEVEL",
    "configure_logging",
    "validate_dimension_weights",

    # Prompts
    "SYSTEM_PROMPT",
    "ASSESSMENT_PROMPT",
    "IMPROVEMENT_STRATEGY_PROMPT",
    "TOOL_DEFINITIONS",
    "format_prompt",
    "get_tool_by_name",
    "get_tool_definitions",
    "build_assessment_prompt",
]
