"""
Learning System Status

Derives where the learner is in their journey, and how healthy their data
is, from the persisted entities. Nothing here is stored: every call
recomputes the status from the store, so it cannot drift from the data.

Phases, decided in this order:
    assessment     no ability assessment yet
    goal_setting   assessed, but no active goal
    path_planning  active goals, but no active path
    learning       some active path has an in-progress node
    review         otherwise
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from config import GOAL_FRESHNESS_DAYS
from utils import utc_now, to_iso, parse_timestamp

logger = logging.getLogger(__name__)

PHASES = ("assessment", "goal_setting", "path_planning", "learning", "review")

PHASE_ACTIONS = {
    "assessment": "完成能力评估",
    "goal_setting": "设定学习目标",
    "path_planning": "生成学习路径",
    "learning": "继续学习当前课程",
    "review": "复习已完成的内容",
}


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class SystemHealth:
    data_integrity: bool
    issues: List[str] = field(default_factory=list)
    missing_data: List[str] = field(default_factory=list)
    core_data_size: int = 0
    last_sync_time: Optional[str] = None


@dataclass
class SystemStatus:
    """
    Snapshot of the learner's journey.

    Attributes:
        setup_complete: Assessment, active goal and active path all exist
        current_phase: One of PHASES
        progress: Counts and node completion over active paths
        recommendations: Up to 5 context-aware suggestions
        next_actions: Up to 3 short next steps
        system_health: Data integrity report
    """
    setup_complete: bool
    current_phase: str
    progress: Dict[str, Any]
    recommendations: List[str]
    next_actions: List[str]
    system_health: SystemHealth

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def determine_phase(has_assessment: bool, active_goals: int, active_paths: List[Dict[str, Any]]) -> str:
    """
    Learning phase from the entity set.

    Args:
        has_assessment: Whether an ability assessment exists
        active_goals: Number of active goals
        active_paths: The active paths themselves (their nodes decide learning vs review)
    """
    if not has_assessment:
        return "assessment"
    if active_goals == 0:
        return "goal_setting"
    if not active_paths:
        return "path_planning"
    if any(node.get("status") == "in_progress" for path in active_paths for node in path.get("nodes") or []):
        return "learning"
    return "review"


def get_default_next_actions(phase: str, has_assessment: bool, goal_count: int, path_count: int) -> List[str]:
    """Short next steps for a phase, capped at 3."""
    actions = []
    if phase in PHASE_ACTIONS:
        actions.append(PHASE_ACTIONS[phase])

    if not has_assessment:
        actions.insert(0, "进行能力评估")
    if goal_count == 0:
        actions.append("创建第一个学习目标")
    if path_count == 0 and goal_count > 0:
        actions.append("为目标制定学习计划")

    return actions[:3]


# ============================================================================
# STATUS MANAGER
# ============================================================================

class LearningStatusManager:
    """
    Computes SystemStatus from a profile store.

    Args:
        store: ProfileStore (or anything with the same getters)
        clock: Returns the current aware datetime
        freshness_days: Goals not updated for longer than this are stale
    """

    def __init__(
        self,
        store,
        clock: Optional[Callable[[], datetime]] = None,
        freshness_days: int = GOAL_FRESHNESS_DAYS,
    ):
        self.store = store
        self.clock = clock or utc_now
        self.freshness_days = freshness_days

    def get_system_status(self) -> SystemStatus:
        goals = self.store.get_goals()
        paths = self.store.get_paths()
        units = self.store.get_course_units()
        has_assessment = self.store.get_assessment() is not None

        active_goals = [goal for goal in goals if goal.get("status") == "active"]
        active_paths = [path for path in paths if path.get("status") == "active"]
        nodes = [node for path in active_paths for node in path.get("nodes") or []]
        completed = sum(1 for node in nodes if node.get("status") == "completed")

        phase = determine_phase(has_assessment, len(active_goals), active_paths)

        missing_data = []
        if not has_assessment:
            missing_data.append("ability_assessment")
        if not active_goals:
            missing_data.append("active_goals")
        if active_goals and not active_paths:
            missing_data.append("learning_paths")
        if active_paths and not units:
            missing_data.append("course_units")

        integrity = self.check_data_integrity()

        status = SystemStatus(
            setup_complete=bool(has_assessment and active_goals and active_paths),
            current_phase=phase,
            progress={
                "has_ability_profile": has_assessment,
                "active_goals": len(active_goals),
                "active_paths": len(active_paths),
                "completed_nodes": completed,
                "total_nodes": len(nodes),
                "overall_progress": completed / len(nodes) * 100 if nodes else 0,
            },
            recommendations=self.get_smart_recommendations(),
            next_actions=get_default_next_actions(phase, has_assessment, len(active_goals), len(active_paths)),
            system_health=SystemHealth(
                data_integrity=integrity["is_valid"],
                issues=integrity["issues"],
                missing_data=missing_data,
                core_data_size=len(goals) + len(paths) + len(units),
                last_sync_time=to_iso(self.clock()),
            ),
        )
        logger.debug(f"📍 Learning phase: {phase}")
        return status

    def get_smart_recommendations(self) -> List[str]:
        """Up to 5 suggestions based on assessment score, goals, paths and content."""
        assessment = self.store.get_assessment()
        goals = self.store.get_goals()
        paths = self.store.get_paths()
        units = self.store.get_course_units()
        recommendations = []

        score = (assessment or {}).get("overall_score", 0)
        if assessment is None:
            recommendations.append("建议先完成能力评估，了解当前技能水平")
        elif score < 40:
            recommendations.append("建议从基础课程开始，夯实编程基础")
        elif score >= 70:
            recommendations.append("您的基础较好，可以考虑挑战性更高的学习目标")

        active_goals = [goal for goal in goals if goal.get("status") == "active"]
        active_paths = [path for path in paths if path.get("status") == "active"]

        if not active_goals:
            if assessment is not None and score >= 50:
                recommendations.append("基于您的能力评估，建议设定中级水平的学习目标")
            else:
                recommendations.append("设定明确的学习目标，制定学习方向")
        elif any(not any(path.get("goal_id") == goal.get("id") for path in active_paths) for goal in active_goals):
            recommendations.append("为现有目标生成个性化学习路径")

        unit_nodes = {unit.get("node_id") for unit in units}
        if any(node.get("id") not in unit_nodes for path in active_paths for node in path.get("nodes") or []):
            recommendations.append("为学习路径生成具体的课程内容")

        if any(node.get("status") == "in_progress" for path in active_paths for node in path.get("nodes") or []):
            recommendations.append("继续完成正在进行的学习节点")

        return recommendations[:5]

    def check_data_integrity(self) -> Dict[str, Any]:
        """
        Look for orphaned or stale data.

        Returns:
            {"is_valid": bool, "issues": [...]} with one message per problem kind
        """
        goals = self.store.get_goals()
        paths = self.store.get_paths()
        units = self.store.get_course_units()
        issues = []

        goal_ids = {goal.get("id") for goal in goals}
        orphaned_paths = [path for path in paths if path.get("goal_id") not in goal_ids]
        if orphaned_paths:
            issues.append(f"发现 {len(orphaned_paths)} 个孤立的学习路径")

        node_ids = {node.get("id") for path in paths for node in path.get("nodes") or []}
        orphaned_units = [unit for unit in units if unit.get("node_id") not in node_ids]
        if orphaned_units:
            issues.append(f"发现 {len(orphaned_units)} 个孤立的课程单元")

        if goals and self.store.get_assessment() is None:
            issues.append("有学习目标但缺少能力评估数据")

        cutoff = self.clock() - timedelta(days=self.freshness_days)
        updated_times = [parse_timestamp(goal.get("updated_at")) for goal in goals]
        stale_goals = [updated for updated in updated_times if updated is not None and updated < cutoff]
        if stale_goals:
            issues.append(f"发现 {len(stale_goals)} 个超过{self.freshness_days}天未更新的目标")

        if issues:
            logger.warning(f"⚠️  Data integrity issues: {issues}")
        return {"is_valid": not issues, "issues": issues}
