"""
Tool Parameter Synthesizer

Builds the keyword arguments for a suggested tool from the user's message
and the conversation context. Values come from explicit context fields
first, then from simple heuristics over the message, then from fixed
defaults. Tools without a rule get an empty parameter map.

Recognized context fields:
    current_node_id, current_path_id, current_goal_id, available_hours,
    preferred_times, learning_style, difficulty, time_range, active_goals,
    active_paths (lists of goal / path dicts)
"""

import logging
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_AVAILABLE_HOURS = 10
DEFAULT_STUDY_TIMES = ["evening"]
DEFAULT_LEARNING_STYLE = "visual"
DEFAULT_CONTENT_DIFFICULTY = 3
DEFAULT_TIME_RANGE = "week"


# ============================================================================
# MESSAGE HEURISTICS
# ============================================================================

def infer_preferred_solution(message: str) -> str:
    """Help style the learner asked for: example / practice / alternative / explanation."""
    if "例子" in message or "示例" in message:
        return "example"
    if "练习" in message or "练一练" in message:
        return "practice"
    if "换个" in message or "其他" in message:
        return "alternative"
    return "explanation"


def infer_pace_adjustment(message: str) -> str:
    """Pace direction from the message; slowing down is the default."""
    if "快" in message or "加速" in message:
        return "faster"
    if "慢" in message or "减速" in message:
        return "slower"
    if "简单" in message or "容易" in message:
        return "easier"
    if "难" in message or "挑战" in message:
        return "harder"
    return "slower"


def _first_id(context: Dict[str, Any], key: str) -> Optional[str]:
    entities = context.get(key) or []
    if entities and isinstance(entities[0], dict):
        return entities[0].get("id")
    return None


def _focus_goal(context: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    goal_id = context.get("current_goal_id")
    goals = [goal for goal in context.get("active_goals") or [] if isinstance(goal, dict)]
    if goal_id:
        return next((goal for goal in goals if goal.get("id") == goal_id), {"id": goal_id})
    return goals[0] if goals else None


# ============================================================================
# PER-TOOL RULES
# ============================================================================

def _handle_learning_difficulty(message: str, context: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "node_id": context.get("current_node_id"),
        "difficulty": message,
        "preferred_solution": infer_preferred_solution(message),
    }


def _adjust_learning_pace(message: str, context: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "path_id": context.get("current_path_id") or _first_id(context, "active_paths"),
        "feedback": message,
        "adjustment": infer_pace_adjustment(message),
    }


def _recommend_study_schedule(message: str, context: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "available_hours_per_week": context.get("available_hours") or DEFAULT_AVAILABLE_HOURS,
        "preferred_study_times": context.get("preferred_times") or list(DEFAULT_STUDY_TIMES),
        "goal_id": context.get("current_goal_id") or _first_id(context, "active_goals"),
    }


def _generate_personalized_content(message: str, context: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "node_id": context.get("current_node_id"),
        "learning_style": context.get("learning_style") or DEFAULT_LEARNING_STYLE,
        "difficulty": context.get("difficulty") or DEFAULT_CONTENT_DIFFICULTY,
    }


def _track_learning_progress(message: str, context: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "path_id": context.get("current_path_id"),
        "time_range": context.get("time_range") or DEFAULT_TIME_RANGE,
    }


def _get_learning_summary(message: str, context: Dict[str, Any]) -> Dict[str, Any]:
    return {"time_range": context.get("time_range") or "all"}


def _get_learning_goals(message: str, context: Dict[str, Any]) -> Dict[str, Any]:
    return {"status": context.get("goal_status"), "category": context.get("goal_category")}


def _get_learning_paths(message: str, context: Dict[str, Any]) -> Dict[str, Any]:
    return {"goal_id": context.get("current_goal_id"), "status": context.get("path_status")}


def _get_course_units(message: str, context: Dict[str, Any]) -> Dict[str, Any]:
    return {"node_id": context.get("current_node_id")}


def _create_learning_path(message: str, context: Dict[str, Any]) -> Dict[str, Any]:
    goal = _focus_goal(context) or {}
    title = goal.get("title")
    return {
        "goal_id": goal.get("id"),
        "title": f"{title} 学习路径" if title else None,
    }


def _generate_path_nodes(message: str, context: Dict[str, Any]) -> Dict[str, Any]:
    return {"goal_id": (_focus_goal(context) or {}).get("id")}


PARAMETER_RULES: Dict[str, Callable[[str, Dict[str, Any]], Dict[str, Any]]] = {
    "handle_learning_difficulty": _handle_learning_difficulty,
    "adjust_learning_pace": _adjust_learning_pace,
    "recommend_study_schedule": _recommend_study_schedule,
    "generate_personalized_content": _generate_personalized_content,
    "track_learning_progress": _track_learning_progress,
    "get_learning_summary": _get_learning_summary,
    "get_learning_goals": _get_learning_goals,
    "get_learning_paths": _get_learning_paths,
    "get_course_units": _get_course_units,
    "create_learning_path": _create_learning_path,
    "generate_path_nodes": _generate_path_nodes,
}


def synthesize_parameters(
    tool_name: str,
    utterance: str,
    context: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build parameters for a tool call.

    Args:
        tool_name: Tool to build parameters for
        utterance: The user's message
        context: Conversation context (see module docstring)

    Returns:
        Parameter map; {} for tools without a rule
    """
    rule = PARAMETER_RULES.get(tool_name)
    if rule is None:
        return {}

    parameters = rule(utterance or "", context or {})
    logger.debug(f"Parameters for {tool_name}: {parameters}")
    return parameters
