"""
Learning Tools

Function calling tools over the learner's profile store: querying goals,
paths and course units, summarizing progress, analyzing the current ability
assessment, and creating goals, paths and course units.

Every tool takes the store as its first argument; get_tool_registry() binds
it so the agent only supplies the JSON parameters. Tools raise ValueError on
bad input or unknown ids; the coordinator records that as a tool failure.
"""

import math
import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from config import DIMENSION_KEYS, DIMENSION_NAMES
from utils import round_half_up, utc_now, to_iso
from clients.profile_store import new_id

logger = logging.getLogger(__name__)

MAX_ACTIVE_GOALS = 3
PAUSED_GOAL_MESSAGE = "由于已有3个激活目标，新目标已创建为暂停状态。可以手动激活。"

STRENGTH_THRESHOLD = 70
WEAKNESS_THRESHOLD = 50

HOURS_PER_GOAL_WEEK = 10
STUDY_DAYS_PER_WEEK = 5
STUDY_DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
SCHEDULE_TIPS = ["保持规律的学习时间", "设置学习提醒", "定期回顾进度"]

SOLUTION_SUGGESTIONS = {
    "explanation": ["重新梳理相关的基础概念", "换一个角度理解核心原理"],
    "example": ["查看具体的代码示例", "跟着示例逐步动手实现"],
    "practice": ["完成针对性的小练习", "从简单题目开始逐步加深难度"],
    "alternative": ["尝试其他学习资源", "换一种讲解方式重新学习"],
}

PACE_ADJUSTMENTS = {
    "faster": ("加快", 0.8, "适当增加每周学习时间，跳过已经掌握的内容"),
    "slower": ("放慢", 1.25, "减少每周学习量，增加复习时间"),
    "easier": ("降低难度", 1.25, "先回顾前置知识，选择更基础的学习资源"),
    "harder": ("提高难度", 1.0, "增加实践项目的复杂度，尝试更有挑战性的练习"),
}


# ============================================================================
# HELPERS
# ============================================================================

def _now() -> str:
    return to_iso(utc_now())


def _active(entities: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [entity for entity in entities if entity.get("status") == "active"]


def _node_counts(paths: List[Dict[str, Any]]) -> Dict[str, int]:
    """Completed / in-progress / total node counts across paths."""
    nodes = [node for path in paths for node in (path.get("nodes") or [])]
    return {
        "completed": sum(1 for node in nodes if node.get("status") == "completed"),
        "in_progress": sum(1 for node in nodes if node.get("status") == "in_progress"),
        "total": len(nodes),
    }


def _require_goal(store, goal_id: Optional[str]) -> Dict[str, Any]:
    goal = store.get_goal(goal_id) if goal_id else None
    if goal is None:
        raise ValueError(f"Goal with id {goal_id} not found")
    return goal


def basic_path_nodes(goal: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Three starter nodes (preparation, core study, practice) for a goal."""
    title = goal.get("title", "学习目标")
    stages = [
        ("基础准备", "学习基础概念，准备学习环境", 15),
        ("核心学习", "深入学习核心知识和技能", 40),
        ("实践应用", "通过实际项目应用所学知识", 30),
    ]
    return [
        {
            "id": new_id("node"),
            "title": f"{title} - {stage}",
            "description": description,
            "order": order,
            "status": "not_started",
            "estimated_hours": hours,
        }
        for order, (stage, description, hours) in enumerate(stages, start=1)
    ]


# ============================================================================
# QUERY TOOLS
# ============================================================================

def get_learning_goals(
    store,
    status: Optional[str] = None,
    category: Optional[str] = None,
    priority: Optional[int] = None,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """
    List learning goals with optional filters.

    Returns:
        Dictionary with:
            - goals (list): Matching goals (at most `limit`)
            - total (int): Number of goals overall
            - filtered (int): Number of goals matching the filters
            - has_more (bool): Whether `limit` cut the list short
    """
    goals = store.get_goals()
    matching = [
        goal for goal in goals
        if (status is None or goal.get("status") == status)
        and (category is None or goal.get("category") == category)
        and (priority is None or goal.get("priority") == priority)
    ]
    shown = matching[:limit] if limit else matching

    logger.info(f"🎯 Listed {len(shown)} of {len(goals)} goals")
    return {
        "goals": shown,
        "total": len(goals),
        "filtered": len(matching),
        "has_more": len(shown) < len(matching),
    }


def get_learning_paths(
    store,
    goal_id: Optional[str] = None,
    status: Optional[str] = None,
) -> Dict[str, Any]:
    """List learning paths, each annotated with completed_nodes / total_nodes."""
    paths = store.get_paths()
    matching = [
        path for path in paths
        if (goal_id is None or path.get("goal_id") == goal_id)
        and (status is None or path.get("status") == status)
    ]
    for path in matching:
        counts = _node_counts([path])
        path["completed_nodes"] = counts["completed"]
        path["total_nodes"] = counts["total"]

    return {
        "paths": matching,
        "total": len(paths),
        "filtered": len(matching),
        "has_more": False,
    }


def get_course_units(
    store,
    node_id: Optional[str] = None,
    type: Optional[str] = None,
) -> Dict[str, Any]:
    """List course units with a per-type breakdown of the matches."""
    units = store.get_course_units()
    matching = [
        unit for unit in units
        if (node_id is None or unit.get("node_id") == node_id)
        and (type is None or unit.get("type") == type)
    ]

    return {
        "units": matching,
        "total": len(units),
        "filtered": len(matching),
        "units_by_type": dict(Counter(unit.get("type", "unknown") for unit in matching)),
        "has_more": False,
    }


def get_learning_context(store) -> Dict[str, Any]:
    """Compact overview of the learner's state, used as LLM context."""
    active_goals = _active(store.get_goals())
    active_paths = _active(store.get_paths())
    units = store.get_course_units()

    if not active_goals:
        next_recommendation = "建议设定第一个学习目标"
    elif not active_paths:
        next_recommendation = "建议为当前目标创建学习路径"
    elif not units:
        next_recommendation = "建议添加学习内容"
    else:
        next_recommendation = "继续当前的学习计划"

    return {
        "has_ability_profile": store.get_assessment() is not None,
        "active_goals": len(active_goals),
        "active_paths": len(active_paths),
        "total_course_units": len(units),
        "current_focus": active_goals[0]["title"] if active_goals else "None",
        "next_recommendation": next_recommendation,
    }


def _summary_recommendations(
    goal_stats: Dict[str, int],
    path_stats: Dict[str, int],
    progress: float,
    has_assessment: bool,
) -> List[str]:
    recommendations = []

    if not has_assessment:
        recommendations.append("完成能力评估以获得个性化学习建议")

    if goal_stats["active"] == 0:
        recommendations.append("设定新的学习目标开始学习之旅")
    elif goal_stats["active"] > 3:
        recommendations.append("考虑专注于1-2个主要目标，避免分散注意力")

    if path_stats["active"] == 0 and goal_stats["active"] > 0:
        recommendations.append("为现有目标生成学习路径")

    if progress < 20 and path_stats["active"] > 0:
        recommendations.append("建议先完成当前路径的基础内容")
    elif progress > 80:
        recommendations.append("恭喜！考虑设定更高级的学习目标")

    if path_stats["draft"] > 0:
        recommendations.append("激活草稿状态的学习路径开始学习")

    return recommendations[:3]


def get_learning_summary(store, time_range: str = "all") -> Dict[str, Any]:
    """
    Summarize goals, paths, course units and overall progress.

    Overall progress counts the nodes of active paths only.
    """
    goals = store.get_goals()
    paths = store.get_paths()
    units = store.get_course_units()
    has_assessment = store.get_assessment() is not None

    goal_stats = {
        "total": len(goals),
        "active": len(_active(goals)),
        "completed": sum(1 for goal in goals if goal.get("status") == "completed"),
        "paused": sum(1 for goal in goals if goal.get("status") == "paused"),
    }
    path_stats = {
        "total": len(paths),
        "active": len(_active(paths)),
        "completed": sum(1 for path in paths if path.get("status") == "completed"),
        "draft": sum(1 for path in paths if path.get("status") == "draft"),
    }

    counts = _node_counts(_active(paths))
    progress = counts["completed"] / counts["total"] * 100 if counts["total"] else 0

    categories = Counter(goal.get("category") for goal in goals if goal.get("category"))
    top_area = categories.most_common(1)[0][0] if categories else "无"

    return {
        "summary": {
            "has_ability_profile": has_assessment,
            "overall_progress": round_half_up(progress),
            "active_goals": goal_stats["active"],
            "active_paths": path_stats["active"],
            "completed_nodes": counts["completed"],
            "total_nodes": counts["total"],
            "top_learning_area": top_area,
        },
        "goal_stats": goal_stats,
        "path_stats": path_stats,
        "unit_stats": {
            "total": len(units),
            "by_type": dict(Counter(unit.get("type", "unknown") for unit in units)),
        },
        "recommendations": _summary_recommendations(goal_stats, path_stats, progress, has_assessment),
        "time_range": time_range,
        "generated_at": _now(),
    }


def track_learning_progress(
    store,
    path_id: Optional[str] = None,
    time_range: str = "week",
) -> Dict[str, Any]:
    """
    Node completion progress for one path, or for all active paths.

    Returns:
        Dictionary with overall_progress (None when nothing is being
        tracked), completed_nodes, in_progress_nodes, total_nodes, insights

    Raises:
        ValueError: If path_id is given but unknown
    """
    if path_id:
        path = store.get_path(path_id)
        if path is None:
            raise ValueError(f"Learning path with id {path_id} not found")
        scope = [path]
    else:
        scope = _active(store.get_paths())

    counts = _node_counts(scope)
    if not scope:
        progress = None
        insights = []
    else:
        progress = counts["completed"] / counts["total"] * 100 if counts["total"] else 0.0
        insights = []
        if counts["in_progress"]:
            insights.append(f"有 {counts['in_progress']} 个节点正在学习中，建议优先完成它们。")
        if progress >= 80:
            insights.append("即将完成当前路径，坚持到底！")
        elif progress < 20:
            insights.append("刚刚起步，建议保持每天固定的学习时间。")

    logger.info(f"📈 Tracked progress over {len(scope)} path(s): {progress}")
    return {
        "path_id": path_id,
        "time_range": time_range,
        "overall_progress": progress,
        "completed_nodes": counts["completed"],
        "in_progress_nodes": counts["in_progress"],
        "total_nodes": counts["total"],
        "insights": insights,
        "timestamp": _now(),
    }


# ============================================================================
# ANALYSIS TOOLS
# ============================================================================

def analyze_user_ability(store) -> Dict[str, Any]:
    """Strong and weak dimensions of the current assessment, with a recommendation."""
    assessment = store.get_assessment()
    if not assessment:
        return {
            "has_ability_data": False,
            "recommendation": "建议先完成能力评估",
            "analysis": None,
        }

    dimensions = assessment.get("dimensions") or {}
    strengths = []
    weaknesses = []
    for key in DIMENSION_KEYS:
        score = (dimensions.get(key) or {}).get("score", 0)
        label = f"{DIMENSION_NAMES[key]}: {score}分"
        if score >= STRENGTH_THRESHOLD:
            strengths.append(label)
        elif score < WEAKNESS_THRESHOLD:
            weaknesses.append(label)

    overall = assessment.get("overall_score", 0)
    if overall >= 80:
        recommendation = "您的能力水平很高，建议挑战更高难度的学习目标"
    elif overall >= 60:
        recommendation = "您有良好的基础，建议选择中等难度的学习目标"
    elif overall >= 40:
        recommendation = "建议从基础开始，循序渐进地提升技能"
    else:
        recommendation = "建议先完成基础技能训练，建立扎实的基础"

    return {
        "has_ability_data": True,
        "overall_score": overall,
        "strengths": strengths or ["需要更多评估数据"],
        "weaknesses": weaknesses or ["暂无明显薄弱环节"],
        "recommendation": recommendation,
        "last_assessed": (assessment.get("metadata") or {}).get("assessment_date"),
    }


def _action(type_: str, priority: str, title: str, description: str, estimated_time: str) -> Dict[str, str]:
    return {
        "type": type_,
        "priority": priority,
        "title": title,
        "description": description,
        "estimated_time": estimated_time,
    }


def suggest_next_action(store, goal_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Suggest next steps, in general or for one goal.

    Raises:
        ValueError: If goal_id is given but unknown
    """
    goals = store.get_goals()
    active_goals = _active(goals)
    active_paths = _active(store.get_paths())
    has_assessment = store.get_assessment() is not None
    actions = []

    if goal_id:
        goal = _require_goal(store, goal_id)
        goal_paths = [path for path in store.get_paths() if path.get("goal_id") == goal_id]
        if not goal_paths:
            actions.append(_action("create_path", "high", "创建学习路径", "为这个目标创建详细的学习路径", "30分钟"))
        if goal.get("status") in ("paused", "cancelled"):
            actions.append(_action("activate_goal", "medium", "激活学习目标", "开始执行这个学习目标", "5分钟"))
        if not has_assessment:
            actions.append(_action("ability_assessment", "high", "完成能力评估", "进行能力评估以获得个性化建议", "15分钟"))
    else:
        if not has_assessment:
            actions.append(_action("ability_assessment", "high", "完成能力评估", "进行能力评估以获得个性化建议", "15分钟"))

        if not goals:
            actions.append(_action("create_goal", "high", "创建学习目标", "设定明确的学习目标来开始学习之旅", "10分钟"))
        elif not active_goals:
            actions.append(_action("activate_goal", "medium", "激活学习目标", "选择一个目标并开始执行", "5分钟"))
        else:
            focus = active_goals[0]
            if not any(path.get("goal_id") == focus["id"] for path in store.get_paths()):
                actions.append(_action(
                    "create_path", "high", "创建学习路径",
                    f"为目标\"{focus['title']}\"创建详细的学习路径", "30分钟",
                ))
            else:
                actions.append(_action(
                    "continue_learning", "medium", "继续学习",
                    f"继续执行目标\"{focus['title']}\"的学习路径", "1小时",
                ))

    return {
        "goal_id": goal_id,
        "actions": actions,
        "suggestions": [action["title"] for action in actions],
        "current_status": {
            "active_goals": len(active_goals),
            "active_paths": len(active_paths),
        },
        "timestamp": _now(),
    }


# ============================================================================
# HELP TOOLS
# ============================================================================

def handle_learning_difficulty(
    store,
    difficulty: str = "",
    node_id: Optional[str] = None,
    preferred_solution: str = "explanation",
) -> Dict[str, Any]:
    """Suggest ways past a learning difficulty, shaped by the preferred solution style."""
    suggestions = SOLUTION_SUGGESTIONS.get(preferred_solution, SOLUTION_SUGGESTIONS["explanation"])

    node_title = None
    if node_id:
        for path in store.get_paths():
            for node in path.get("nodes") or []:
                if node.get("id") == node_id:
                    node_title = node.get("title")

    message = f"在学习「{node_title}」时遇到问题是很正常的。" if node_title else "遇到困难是学习过程中的正常现象。"

    return {
        "node_id": node_id,
        "difficulty": difficulty,
        "message": message,
        "solution": {
            "type": preferred_solution,
            "suggestions": list(suggestions),
        },
        "timestamp": _now(),
    }


def adjust_learning_pace(
    store,
    path_id: Optional[str] = None,
    feedback: str = "",
    adjustment: str = "slower",
) -> Dict[str, Any]:
    """
    Adjust the pace of a path's goal by scaling its estimated weeks.

    Raises:
        ValueError: If the adjustment is unknown or path_id does not exist
    """
    if adjustment not in PACE_ADJUSTMENTS:
        raise ValueError(f"Unknown pace adjustment: {adjustment}")
    label, factor, recommended_action = PACE_ADJUSTMENTS[adjustment]

    adjustments = {"direction": adjustment, "recommended_action": recommended_action}

    if path_id:
        path = store.get_path(path_id)
        if path is None:
            raise ValueError(f"Learning path with id {path_id} not found")
        goal = store.get_goal(path.get("goal_id")) if path.get("goal_id") else None
        if goal:
            old_weeks = goal.get("estimated_time_weeks") or 12
            new_weeks = max(1, round_half_up(old_weeks * factor))
            store.update_goal(goal["id"], {"estimated_time_weeks": new_weeks, "updated_at": _now()})
            adjustments.update({"old_weeks": old_weeks, "new_weeks": new_weeks})
            logger.info(f"⏱️  Goal {goal['id']} pace adjusted: {old_weeks} -> {new_weeks} weeks")

    return {
        "path_id": path_id,
        "feedback": feedback,
        "message": f"我已经根据您的反馈{label}了学习节奏。",
        "adjustments": adjustments,
    }


def recommend_study_schedule(
    store,
    available_hours_per_week: float = 10,
    preferred_study_times: Optional[List[str]] = None,
    goal_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Weekly study schedule and milestones for a goal.

    Falls back to the first active goal, then to a 12-week default.

    Raises:
        ValueError: If available_hours_per_week is not positive or goal_id is unknown
    """
    if not available_hours_per_week or available_hours_per_week <= 0:
        raise ValueError("available_hours_per_week must be positive")

    if goal_id:
        goal = _require_goal(store, goal_id)
    else:
        active_goals = _active(store.get_goals())
        goal = active_goals[0] if active_goals else None

    goal_weeks = (goal or {}).get("estimated_time_weeks") or 12
    total_hours = goal_weeks * HOURS_PER_GOAL_WEEK
    weeks = math.ceil(total_hours / available_hours_per_week)
    time_slots = preferred_study_times or ["evening"]
    hours_per_day = math.ceil(available_hours_per_week / STUDY_DAYS_PER_WEEK)

    schedule = [
        {
            "day": STUDY_DAYS[i],
            "hours": hours_per_day,
            "time_slot": time_slots[i % len(time_slots)],
            "activities": ["学习新内容", "复习练习", "项目实践"],
        }
        for i in range(STUDY_DAYS_PER_WEEK)
    ]

    title = (goal or {}).get("title", "学习目标")
    milestone_count = min(4, max(2, weeks // 3))
    milestones = [
        {
            "week": (weeks * i) // milestone_count,
            "title": f"{title} - 里程碑 {i}",
            "description": f"完成第{i}阶段的学习目标",
            "progress": (100 * i) // milestone_count,
        }
        for i in range(1, milestone_count + 1)
    ]

    return {
        "goal_id": (goal or {}).get("id"),
        "weekly_hours": available_hours_per_week,
        "total_hours": total_hours,
        "estimated_completion_weeks": weeks,
        "schedule": schedule,
        "milestones": milestones,
        "tips": list(SCHEDULE_TIPS),
    }


# ============================================================================
# CREATION TOOLS
# ============================================================================

def create_learning_goal(
    store,
    title: Optional[str] = None,
    description: str = "",
    category: str = "programming",
    priority: int = 3,
    target_level: str = "intermediate",
    estimated_time_weeks: int = 8,
    required_skills: Optional[List[str]] = None,
    outcomes: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Create a learning goal.

    New goals are active unless the learner already has three active goals,
    in which case the goal is created paused and carries a system_message.

    Raises:
        ValueError: If title is missing
    """
    if not title:
        raise ValueError("title is required")

    now = _now()
    over_limit = len(_active(store.get_goals())) >= MAX_ACTIVE_GOALS

    goal = store.add_goal({
        "id": new_id("goal"),
        "title": title,
        "description": description,
        "category": category,
        "priority": priority,
        "target_level": target_level,
        "estimated_time_weeks": estimated_time_weeks,
        "required_skills": required_skills or [],
        "outcomes": outcomes or [],
        "status": "paused" if over_limit else "active",
        "created_at": now,
        "updated_at": now,
    })

    if over_limit:
        goal["system_message"] = PAUSED_GOAL_MESSAGE
        logger.warning(f"⚠️  Goal '{title}' created paused: {MAX_ACTIVE_GOALS} goals already active")
    else:
        logger.info(f"✅ Created goal '{title}' ({goal['id']})")
    return goal


def create_learning_path(
    store,
    goal_id: Optional[str] = None,
    title: Optional[str] = None,
    description: str = "",
    nodes: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """
    Create a draft learning path for a goal.

    Without explicit nodes the path is seeded with the three starter nodes.

    Raises:
        ValueError: If the goal does not exist or title is missing
    """
    goal = _require_goal(store, goal_id)
    if not title:
        raise ValueError("title is required")

    if nodes is None:
        nodes = basic_path_nodes(goal)

    normalized = []
    for order, node in enumerate(nodes, start=1):
        node = dict(node)
        node.setdefault("id", new_id("node"))
        node.setdefault("order", order)
        node.setdefault("status", "not_started")
        node.setdefault("estimated_hours", 0)
        normalized.append(node)

    now = _now()
    path = store.add_path({
        "id": new_id("path"),
        "goal_id": goal_id,
        "title": title,
        "description": description,
        "nodes": normalized,
        "total_estimated_hours": sum(node.get("estimated_hours") or 0 for node in normalized),
        "status": "draft",
        "created_at": now,
        "updated_at": now,
    })
    logger.info(f"✅ Created path '{title}' with {len(normalized)} nodes for goal {goal_id}")
    return path


def generate_path_nodes(store, goal_id: Optional[str] = None) -> Dict[str, Any]:
    """Starter nodes for a goal, without creating a path."""
    goal = _require_goal(store, goal_id)
    nodes = basic_path_nodes(goal)
    return {
        "goal_id": goal_id,
        "nodes": nodes,
        "total_estimated_hours": sum(node["estimated_hours"] for node in nodes),
        "difficulty": goal.get("target_level", "intermediate"),
    }


def create_course_unit(
    store,
    node_id: Optional[str] = None,
    title: Optional[str] = None,
    type: str = "theory",
    description: str = "",
) -> Dict[str, Any]:
    """
    Create a course unit attached to a path node.

    Raises:
        ValueError: If node_id or title is missing
    """
    if not node_id:
        raise ValueError("node_id is required")
    if not title:
        raise ValueError("title is required")

    return store.add_course_unit({
        "id": new_id("unit"),
        "node_id": node_id,
        "title": title,
        "type": type,
        "description": description,
        "created_at": _now(),
    })
