"""
Application settings and configuration values.

This module centralizes all configuration values including:
- File paths
- API keys and credentials
- Model parameters
- Scoring constants (dimension weights, skill catalogue, level bands)
- Cache and data-health windows

Environment variables are loaded via python-dotenv.
"""

import os
import logging
from pathlib import Path
from typing import Dict, List, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# ============================================================================
# PATHS
# ============================================================================

BASE_DIR = Path(__file__).parent.parent
DATA_DIR = BASE_DIR / "data"

# Optional JSON file backing the profile store (in-memory when unset)
PROFILE_STORE_PATH: Optional[str] = os.getenv("PROFILE_STORE_PATH") or None

# ============================================================================
# LLM CONFIGURATION
# ============================================================================

# Gemini API Settings
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")

# Model Parameters
TEMPERATURE = float(os.getenv("TEMPERATURE", "0.7"))
MAX_TOKENS = int(os.getenv("MAX_TOKENS", "8192"))
TOP_P = float(os.getenv("TOP_P", "0.95"))
TOP_K = int(os.getenv("TOP_K", "40"))

# Retry and Timeout Settings
MAX_RETRIES = int(os.getenv("MAX_RETRIES", "3"))
RETRY_DELAY = float(os.getenv("RETRY_DELAY", "1.0"))  # seconds
TIMEOUT = int(os.getenv("TIMEOUT", "30"))  # seconds, per tool call

# Function-calling rounds allowed in one real-LLM turn
MAX_TOOL_ROUNDS = int(os.getenv("MAX_TOOL_ROUNDS", "5"))

# ============================================================================
# LANGFUSE OBSERVABILITY
# ============================================================================

LANGFUSE_PUBLIC_KEY = os.getenv("LANGFUSE_PUBLIC_KEY")
LANGFUSE_SECRET_KEY = os.getenv("LANGFUSE_SECRET_KEY")
LANGFUSE_HOST = os.getenv("LANGFUSE_HOST", "https://cloud.langfuse.com")

# Enable/disable Langfuse tracing
LANGFUSE_ENABLED = os.getenv("LANGFUSE_ENABLED", "true").lower() == "true"

if LANGFUSE_ENABLED and (not LANGFUSE_PUBLIC_KEY or not LANGFUSE_SECRET_KEY):
    logger.info("Langfuse is enabled but keys are missing. Tracing will be disabled.")
    LANGFUSE_ENABLED = False

# ============================================================================
# ABILITY ASSESSMENT
# ============================================================================

# Fixed dimension weights, must sum to 1.0
DIMENSION_WEIGHTS: Dict[str, float] = {
    "programming": 0.30,
    "algorithm": 0.20,
    "project": 0.25,
    "system_design": 0.15,
    "communication": 0.10,
}

DIMENSION_KEYS: List[str] = list(DIMENSION_WEIGHTS.keys())

# Leaf skills the assessment prompt asks for, per dimension
DIMENSION_SKILLS: Dict[str, List[str]] = {
    "programming": ["syntax", "data_structures", "error_handling", "code_quality", "tooling"],
    "algorithm": [
        "string_processing", "recursion", "dynamic_programming", "graph",
        "tree", "sorting", "searching", "greedy",
    ],
    "project": ["planning", "architecture", "implementation", "testing", "deployment", "documentation"],
    "system_design": ["scalability", "reliability", "performance", "security", "database_design"],
    "communication": ["code_review", "technical_writing", "team_collaboration", "mentoring", "presentation"],
}

# Display names used in exported reports
DIMENSION_NAMES: Dict[str, str] = {
    "programming": "编程基本功",
    "algorithm": "算法能力",
    "project": "项目能力",
    "system_design": "系统设计",
    "communication": "沟通协作",
}

SKILL_NAMES: Dict[str, str] = {
    "syntax": "基础语法",
    "data_structures": "数据结构",
    "error_handling": "错误处理",
    "code_quality": "代码质量",
    "tooling": "开发工具",
    "string_processing": "字符串处理",
    "recursion": "递归",
    "dynamic_programming": "动态规划",
    "graph": "图算法",
    "tree": "树算法",
    "sorting": "排序算法",
    "searching": "搜索算法",
    "greedy": "贪心算法",
    "planning": "项目规划",
    "architecture": "架构设计",
    "implementation": "实现能力",
    "testing": "测试能力",
    "deployment": "部署运维",
    "documentation": "文档能力",
    "scalability": "可扩展性",
    "reliability": "可靠性",
    "performance": "性能优化",
    "security": "安全设计",
    "database_design": "数据库设计",
    "code_review": "代码评审",
    "technical_writing": "技术写作",
    "team_collaboration": "团队协作",
    "mentoring": "指导他人",
    "presentation": "演讲展示",
}

# Extra weight for skills that unlock the most downstream learning
SKILL_IMPORTANCE: Dict[str, float] = {
    "syntax": 1.5,
    "data_structures": 1.8,
    "error_handling": 1.3,
    "code_quality": 1.4,
    "tooling": 1.2,
    "recursion": 1.6,
    "dynamic_programming": 1.7,
    "tree": 1.5,
    "sorting": 1.3,
    "planning": 1.4,
    "architecture": 1.7,
    "implementation": 1.8,
    "testing": 1.5,
    "scalability": 1.6,
    "performance": 1.5,
    "security": 1.4,
    "team_collaboration": 1.3,
    "code_review": 1.2,
}

# Upper bounds (inclusive) of each score level
SCORE_LEVELS = [
    (20, "novice"),
    (40, "beginner"),
    (60, "intermediate"),
    (80, "advanced"),
]
TOP_SCORE_LEVEL = "expert"

# Skills scoring below this are reported as weak areas
WEAK_AREA_THRESHOLD = 60

# ============================================================================
# CACHE AND DATA HEALTH
# ============================================================================

PLAN_CACHE_TTL_HOURS = int(os.getenv("PLAN_CACHE_TTL_HOURS", "24"))
GOAL_FRESHNESS_DAYS = int(os.getenv("GOAL_FRESHNESS_DAYS", "30"))

# ============================================================================
# DEVELOPMENT / DEBUG SETTINGS
# ============================================================================

DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging for an entry point.

    Args:
        level: Log level name; defaults to LOG_LEVEL (DEBUG when DEBUG=true)
    """
    level_name = level or ("DEBUG" if DEBUG else LOG_LEVEL)
    logging.basicConfig(
        level=getattr(logging, level_name.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def validate_dimension_weights(weights: Dict[str, float]) -> bool:
    """
    Check that a weight table covers every dimension and sums to 1.0.

    Args:
        weights: Mapping of dimension key to weight

    Returns:
        True if the table is usable for overall scoring
    """
    if set(weights) != set(DIMENSION_KEYS):
        return False
    return abs(sum(weights.values()) - 1.0) < 1e-6
