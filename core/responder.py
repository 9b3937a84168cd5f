"""
Response Synthesizer

Turns the coordinator's tool results into a reply for the classified
intent. Each renderer reads the first tool result and falls back to a
"no data yet" message when the fields it needs are absent.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from utils import round_half_up, is_number

logger = logging.getLogger(__name__)

DEFAULT_REPLY = "我正在分析您的请求。根据当前情况，建议您明确学习目标或告诉我您希望我帮您做什么。"


def _get(result: Any, key: str, default: Any = None) -> Any:
    return result.get(key, default) if isinstance(result, dict) else default


def _list(result: Any, key: str) -> List[Any]:
    value = _get(result, key)
    return value if isinstance(value, list) else []


def _records(result: Any, key: str) -> List[Dict[str, Any]]:
    """List items under key that are objects; anything else is skipped."""
    return [item for item in _list(result, key) if isinstance(item, dict)]


def _texts(result: Any, key: str) -> List[str]:
    return [str(item) for item in _list(result, key)]


def _mapping(result: Any, key: str) -> Dict[str, Any]:
    value = _get(result, key)
    return value if isinstance(value, dict) else {}


# ============================================================================
# QUERY RENDERERS
# ============================================================================

def _render_goals(result: Any) -> str:
    goals = _records(result, "goals")
    if not goals:
        return "您还没有设定任何学习目标。建议您先创建一个学习目标来开始您的学习之旅！我可以帮您推荐一些适合的目标。"

    lines = "\n".join(
        f"{i}. {goal.get('title')} ({goal.get('category')}, {goal.get('status')})"
        for i, goal in enumerate(goals, start=1)
    )
    total = _get(result, "total", len(goals))
    filtered = _get(result, "filtered", len(goals))
    if not is_number(total) or not is_number(filtered):
        total = filtered = len(goals)
    more = "使用筛选条件可以查看更多目标。" if total > filtered else ""
    return f"您当前有 {total} 个学习目标，其中筛选后显示 {filtered} 个：\n\n{lines}\n\n{more}您想了解哪个目标的详细信息吗？"


def _render_paths(result: Any) -> str:
    paths = _records(result, "paths")
    if not paths:
        return "您还没有生成任何学习路径。建议您先设定学习目标，然后我可以为您生成个性化的学习路径。"

    lines = "\n".join(
        f"{i}. {path.get('title')} - 进度: {path.get('completed_nodes', 0)}/{path.get('total_nodes', 0)} 节点 ({path.get('status')})"
        for i, path in enumerate(paths, start=1)
    )
    return (
        f"您当前有 {_get(result, 'total', len(paths))} 条学习路径，"
        f"其中筛选后显示 {_get(result, 'filtered', len(paths))} 条：\n\n{lines}\n\n您想查看哪条路径的详细内容吗？"
    )


def _render_courses(result: Any) -> str:
    units = _list(result, "units")
    if not units:
        return "您还没有任何课程内容。建议您先创建学习路径，然后为路径节点生成相应的课程内容。"

    by_type = "，".join(f"{unit_type}: {count} 个" for unit_type, count in _mapping(result, "units_by_type").items())
    return (
        f"您当前有 {_get(result, 'total', len(units))} 个课程单元，"
        f"其中筛选后显示 {_get(result, 'filtered', len(units))} 个。\n按类型分布：{by_type}\n\n您想查看具体的课程内容吗？"
    )


def _render_summary(result: Any) -> str:
    summary = _mapping(result, "summary")
    if not summary:
        return "暂时无法生成学习摘要。建议您先完成能力评估并设定学习目标。"

    recommendations = _texts(result, "recommendations")
    tip = recommendations[0] if recommendations else "继续保持学习节奏！"
    return (
        "📊 学习摘要报告：\n\n"
        f"整体进度：{summary.get('overall_progress', 0)}%\n"
        f"活跃目标：{summary.get('active_goals', 0)} 个\n"
        f"活跃路径：{summary.get('active_paths', 0)} 个\n"
        f"已完成节点：{summary.get('completed_nodes', 0)}/{summary.get('total_nodes', 0)}\n"
        f"主要学习领域：{summary.get('top_learning_area') or '无'}\n\n"
        f"💡 建议：{tip}"
    )


def _render_context(result: Any) -> str:
    if not result:
        return "无法获取学习上下文信息。请稍后重试。"

    profile = "✅" if _get(result, "has_ability_profile") else "❌"
    return (
        "📋 学习上下文概览：\n\n"
        f"{profile} 能力档案\n"
        f"活跃目标：{_get(result, 'active_goals', 0)} 个\n"
        f"活跃路径：{_get(result, 'active_paths', 0)} 个\n"
        f"课程单元：{_get(result, 'total_course_units', 0)} 个\n"
        f"当前重点：{_get(result, 'current_focus', 'None')}\n\n"
        f"💡 推荐：{_get(result, 'next_recommendation', '')}"
    )


# ============================================================================
# ANALYSIS / CREATION RENDERERS
# ============================================================================

def _render_ability(result: Any) -> str:
    if not _get(result, "has_ability_data"):
        return "您还没有完成能力评估。建议先进行能力测试，这样我就能为您提供更个性化的学习建议了。"

    return (
        f"根据您的能力评估，您的总体水平为 {_get(result, 'overall_score', 0)}/100。"
        f"优势领域包括：{', '.join(_texts(result, 'strengths'))}。"
        f"建议重点提升：{', '.join(_texts(result, 'weaknesses'))}。"
        f"{_get(result, 'recommendation', '')}"
    )


def _render_goal_created(result: Any) -> str:
    reply = "我已经帮您创建了学习目标。接下来我们可以为这个目标制定详细的学习路径。您希望以什么样的节奏进行学习？"
    system_message = _get(result, "system_message")
    return f"{reply}\n\n{system_message}" if system_message else reply


def _render_path(result: Any) -> str:
    nodes = _records(result, "nodes")
    if not nodes:
        return "生成学习路径需要先设定明确的学习目标。请告诉我您想学习什么？"

    titles = "、".join(str(node.get("title", "")) for node in nodes[:3])
    return (
        f"我为您生成了包含 {len(nodes)} 个学习节点的学习路径，"
        f"预计需要 {_get(result, 'total_estimated_hours', 0)} 小时完成。路径包括：{titles}等内容。"
    )


# ============================================================================
# TRACKING / HELP RENDERERS
# ============================================================================

def _render_progress(result: Any) -> str:
    progress = _get(result, "overall_progress")
    if not is_number(progress):
        return "您还没有开始任何学习路径。建议先设定学习目标并生成学习计划。"

    completed = _get(result, "completed_nodes")
    total = _get(result, "total_nodes")
    if not is_number(completed) or not is_number(total):
        completed = total = 0
    insights = _texts(result, "insights")
    return (
        f"您当前的学习进度是 {round_half_up(progress)}%。"
        f"已完成 {completed}/{total} 个学习节点，还有 {total - completed} 个待完成。"
        f"{insights[0] if insights else '继续保持！'}"
    )


def _render_difficulty(result: Any) -> str:
    suggestions = _texts(_get(result, "solution"), "suggestions")
    advice = "、".join(suggestions) or "寻求更详细的解释和练习"
    return f"我理解您遇到的困难。{_get(result, 'message') or ''}我建议您：{advice}。需要我为您提供更具体的帮助吗？"


def _render_pace(result: Any) -> str:
    message = _get(result, "message") or "我已经根据您的反馈调整了学习节奏。"
    action = _get(_get(result, "adjustments"), "recommended_action") or "保持当前的学习计划"
    return f"{message}建议：{action}"


def _render_next_action(result: Any) -> str:
    suggestions = _texts(result, "suggestions")
    if not suggestions:
        return "让我分析一下您的学习状态，稍等片刻..."

    status = _mapping(result, "current_status")
    status_text = (
        f"您目前有 {status.get('active_goals', 0)} 个活跃目标和 {status.get('active_paths', 0)} 个学习路径。"
        if status else ""
    )
    return f"根据您当前的学习状态，我建议您：{'，或者'.join(suggestions)}。{status_text}"


def _render_schedule(result: Any) -> str:
    if not _get(result, "schedule"):
        return "制定学习计划需要了解您的可用时间。请告诉我您每周能投入多少时间学习？"

    tips = _texts(result, "tips")
    return (
        f"基于您每周 {_get(result, 'weekly_hours')} 小时的学习时间，我为您制定了学习计划。"
        f"预计 {_get(result, 'estimated_completion_weeks')} 周完成目标。"
        f"建议您：{tips[0] if tips else '保持规律的学习习惯'}"
    )


RENDERERS: Dict[str, Callable[[Any], str]] = {
    "query_goals": _render_goals,
    "query_paths": _render_paths,
    "query_courses": _render_courses,
    "query_progress": _render_summary,
    "query_context": _render_context,
    "ability_analysis": _render_ability,
    "goal_setting": _render_goal_created,
    "path_generation": _render_path,
    "progress_tracking": _render_progress,
    "difficulty_help": _render_difficulty,
    "pace_adjustment": _render_pace,
    "next_action": _render_next_action,
    "schedule_planning": _render_schedule,
}


# ============================================================================
# PUBLIC API
# ============================================================================

def render_error(errors: List[str]) -> str:
    return f"我在处理您的请求时遇到了一些问题：{', '.join(errors)}。请提供更多信息或尝试其他操作。"


def render_response(
    intent_type: str,
    first_result: Any,
    utterance: str = "",
    errors: Optional[List[str]] = None,
) -> str:
    """
    Render the reply for an intent.

    Args:
        intent_type: Classified intent type
        first_result: First successful tool result (may be None)
        utterance: The user's message
        errors: Tool errors from the coordinator; any error short-circuits
            to an error summary

    Returns:
        Reply text
    """
    if errors:
        return render_error(errors)

    renderer = RENDERERS.get(intent_type)
    if renderer is None:
        return DEFAULT_REPLY
    return renderer(first_result)


def synthesize_response(intent, execution, utterance: str = "") -> str:
    """Render the reply for an Intent and its ToolExecutionResult."""
    first_result = execution.results[0] if execution.results else None
    return render_response(intent.type, first_result, utterance, errors=execution.errors)
