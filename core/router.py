"""
Intent Classification Router

Maps a user utterance to an intent and the tools that satisfy it, using a
fixed, ordered keyword table. Classification is a deterministic lookup:

- The utterance is lower-cased and each keyword is matched as a substring
- Confidence for an entry is |matched keywords| / |entry keywords|
- The entry with the strictly highest confidence wins, so on ties the
  earlier entry in INTENT_DEFINITIONS is kept
- With no match at all the fallback intent is "general"

Table order encodes priority: query intents, then analysis, creation,
tracking, and finally help intents.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True)
class IntentDefinition:
    """One row of the intent table."""
    type: str
    keywords: Tuple[str, ...]
    tools: Tuple[str, ...]


@dataclass
class Intent:
    """
    Result of intent classification.

    Attributes:
        type: Intent type from the table, or "general"
        confidence: Fraction of the entry's keywords found (0.0 - 1.0)
        matched_keywords: Keywords found, in table order
        suggested_tools: Tools to run for this intent, in order
    """
    type: str
    confidence: float = 0.0
    matched_keywords: List[str] = field(default_factory=list)
    suggested_tools: List[str] = field(default_factory=list)


GENERAL_INTENT = "general"
FALLBACK_TOOLS = ("suggest_next_action",)


# ============================================================================
# INTENT TABLE
# ============================================================================

INTENT_DEFINITIONS: Tuple[IntentDefinition, ...] = (
    # Query intents
    IntentDefinition(
        "query_goals",
        ("我的目标", "有哪些目标", "查看目标", "显示目标", "目标列表", "学习目标"),
        ("get_learning_goals",),
    ),
    IntentDefinition(
        "query_paths",
        ("我的路径", "有哪些路径", "查看路径", "显示路径", "路径列表", "学习路径"),
        ("get_learning_paths",),
    ),
    IntentDefinition(
        "query_courses",
        ("我的课程", "有哪些课程", "查看课程", "显示课程", "课程列表", "学习内容"),
        ("get_course_units",),
    ),
    IntentDefinition(
        "query_progress",
        ("我的进度", "学习情况", "进度查询", "学习统计", "学习摘要"),
        ("get_learning_summary",),
    ),
    IntentDefinition(
        "query_context",
        ("我的学习状态", "学习上下文", "整体情况", "学习概况"),
        ("get_learning_context",),
    ),

    # Analysis intents
    IntentDefinition(
        "ability_analysis",
        ("能力", "评估", "技能", "水平", "测试"),
        ("analyze_user_ability",),
    ),

    # Creation intents
    IntentDefinition(
        "goal_setting",
        ("创建目标", "设定目标", "新目标", "想学", "学习方向"),
        ("create_learning_goal",),
    ),
    IntentDefinition(
        "path_generation",
        ("生成路径", "创建路径", "制定计划", "怎么学", "学习路线"),
        ("create_learning_path", "generate_path_nodes"),
    ),
    IntentDefinition(
        "content_request",
        ("生成内容", "创建课程", "教程", "学习材料"),
        ("create_course_unit",),
    ),

    # Tracking intents
    IntentDefinition(
        "progress_tracking",
        ("跟踪进度", "完成情况", "学习进度"),
        ("track_learning_progress",),
    ),

    # Help intents
    IntentDefinition(
        "difficulty_help",
        ("困难", "不懂", "问题", "帮助", "解释"),
        ("handle_learning_difficulty",),
    ),
    IntentDefinition(
        "pace_adjustment",
        ("快一点", "慢一点", "简单", "复杂", "调整"),
        ("adjust_learning_pace",),
    ),
    IntentDefinition(
        "next_action",
        ("下一步", "接下来", "什么", "建议"),
        ("suggest_next_action",),
    ),
    IntentDefinition(
        "schedule_planning",
        ("时间", "安排", "计划", "时间表"),
        ("recommend_study_schedule",),
    ),
)

INTENT_DESCRIPTIONS = {
    "query_goals": "查询学习目标",
    "query_paths": "查询学习路径",
    "query_courses": "查询课程内容",
    "query_progress": "查询学习摘要",
    "query_context": "查询学习状态",
    "ability_analysis": "能力分析",
    "goal_setting": "设定学习目标",
    "path_generation": "生成学习路径",
    "content_request": "生成学习内容",
    "progress_tracking": "跟踪学习进度",
    "difficulty_help": "学习困难帮助",
    "pace_adjustment": "调整学习节奏",
    "next_action": "下一步建议",
    "schedule_planning": "学习时间规划",
    GENERAL_INTENT: "通用对话",
}


# ============================================================================
# CLASSIFICATION
# ============================================================================

def classify_intent(
    utterance: str,
    context: Optional[Dict[str, Any]] = None,
    definitions: Sequence[IntentDefinition] = INTENT_DEFINITIONS,
) -> Intent:
    """
    Classify a user utterance against the keyword table.

    Args:
        utterance: The user's message
        context: Conversation context (accepted for interface symmetry; unused)
        definitions: Ordered intent table

    Returns:
        Best matching Intent, or the "general" fallback with confidence 0
    """
    message = (utterance or "").lower()
    best = Intent(
        type=GENERAL_INTENT,
        confidence=0.0,
        matched_keywords=[],
        suggested_tools=list(FALLBACK_TOOLS),
    )

    for definition in definitions:
        if not definition.keywords:
            continue
        matched = [keyword for keyword in definition.keywords if keyword in message]
        confidence = len(matched) / len(definition.keywords)

        if confidence > best.confidence:
            best = Intent(
                type=definition.type,
                confidence=confidence,
                matched_keywords=matched,
                suggested_tools=list(definition.tools),
            )

    logger.info(f"🎯 Intent: {best.type} (confidence: {best.confidence:.2f})")
    if best.matched_keywords:
        logger.debug(f"   Matched keywords: {best.matched_keywords}")
    return best


def get_intent_description(intent_type: str) -> str:
    """Human-readable (Chinese) label for an intent type."""
    return INTENT_DESCRIPTIONS.get(intent_type, "未知意图")


# Keyword heuristics for labelling free-form LLM turns with likely tools
_TOOL_HINTS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("能力", "评估", "技能"), "analyze_user_ability"),
    (("目标", "学习计划"), "create_learning_goal"),
    (("路径", "学习路线"), "generate_path_nodes"),
    (("进度", "统计"), "track_learning_progress"),
    (("困难", "不懂", "问题"), "handle_learning_difficulty"),
    (("建议", "推荐"), "suggest_next_action"),
    (("时间", "计划表", "安排"), "recommend_study_schedule"),
)


def extract_tools_from_message(user_message: str, ai_response: str) -> List[str]:
    """
    Guess which tools a free-form exchange touched, from its wording.

    Returns:
        Tool names in a fixed order, or ["smart_analysis"] when none apply
    """
    text = f"{user_message} {ai_response}".lower()
    tools = [tool for keywords, tool in _TOOL_HINTS if any(keyword in text for keyword in keywords)]
    return tools or ["smart_analysis"]
