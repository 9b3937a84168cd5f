"""
Assessment Service - Ability Assessment Lifecycle

Handles everything that happens to an ability assessment after the user
hands over a resume or questionnaire:
- Prompting the LLM and recovering its (often imperfect) JSON
- Scoring and saving the assessment, with a history snapshot per save
- Summaries, weak areas and a Markdown report
- AI improvement plans, cached per assessment, optionally turned into
  real goals and paths through the tool executor
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from ai import call_llm
from clients import extract_resume_text, new_id
from config import (
    DIMENSION_KEYS,
    DIMENSION_NAMES,
    SKILL_NAMES,
    IMPROVEMENT_STRATEGY_PROMPT,
    build_assessment_prompt,
    format_prompt,
)
from errors import AssessmentParseError, JSONRecoveryError, StrategyParseError
from utils import parse_llm_json, round_half_up, is_number, utc_now, to_iso, parse_timestamp

from .plan_cache import PlanCache, CACHE_KEY_PREFIX
from .scoring import (
    score_assessment,
    get_score_level,
    get_skill_value,
    find_weak_areas,
    analyze_skill_gaps,
)

logger = logging.getLogger(__name__)

INPUT_TYPES = ("resume", "questionnaire", "resume_pdf")

METHOD_LABELS = {
    "resume": "简历分析",
    "questionnaire": "问卷评估",
}

INFERRED_NOTE = '*注：标有"基于整体信息推理"的分数是 AI 根据您的整体背景推测得出，可能与实际情况有偏差。*'


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class AssessmentInput:
    """
    Material to assess.

    Attributes:
        type: "resume" (text), "questionnaire" (answers dict) or "resume_pdf" (file path)
        content: The resume text, questionnaire answers, or PDF path
    """
    type: str
    content: Union[str, Dict[str, Any]]


# ============================================================================
# STRATEGY VALIDATION
# ============================================================================

def _goal_entry_problem(goal_data: Any) -> Optional[str]:
    """Describe why a strategy goal entry cannot become a goal, or None if it can."""
    if not isinstance(goal_data, dict):
        return "is not an object"
    title = goal_data.get("title")
    if not isinstance(title, str) or not title.strip():
        return "has no title"

    path_structure = goal_data.get("path_structure")
    if path_structure is None:
        return None
    if not isinstance(path_structure, dict):
        return "has a path_structure that is not an object"

    nodes = path_structure.get("nodes")
    if nodes is None:
        return None
    if not isinstance(nodes, list):
        return "has path nodes that are not a list"
    for node in nodes:
        if not isinstance(node, dict):
            return "has a path node that is not an object"
        hours = node.get("estimated_hours")
        if hours is not None and not is_number(hours):
            return "has a path node with non-numeric estimated_hours"
    return None


# ============================================================================
# ASSESSMENT SERVICE
# ============================================================================

class AssessmentService:
    """
    Service for running and managing ability assessments.

    Args:
        store: ProfileStore holding the assessment and its history
        llm_call: Callable taking a prompt and returning the model's text
        plan_cache: Improvement plan cache (defaults to one over the same store)
        tool_executor: When given, improvement plans create goals and paths through it
        clock: Returns the current aware datetime
    """

    def __init__(
        self,
        store,
        llm_call: Callable[..., str] = call_llm,
        plan_cache: Optional[PlanCache] = None,
        tool_executor=None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.llm_call = llm_call
        self.clock = clock or utc_now
        self.plan_cache = plan_cache or PlanCache(store, clock=self.clock)
        self.tool_executor = tool_executor
        logger.info("✅ AssessmentService initialized")

    # ========================================================================
    # RUNNING ASSESSMENTS
    # ========================================================================

    def _prepare_content(self, assessment_input: AssessmentInput) -> Tuple[str, str]:
        input_type = assessment_input.type
        if input_type not in INPUT_TYPES:
            raise ValueError(f"Unsupported assessment input type: {input_type}")

        if input_type == "questionnaire":
            content = assessment_input.content
            if not isinstance(content, str):
                content = json.dumps(content, ensure_ascii=False, indent=2)
            return content, "questionnaire"

        if input_type == "resume_pdf":
            return extract_resume_text(assessment_input.content), "resume"

        if not assessment_input.content or not str(assessment_input.content).strip():
            raise ValueError("Resume text is empty")
        return str(assessment_input.content), "resume"

    def execute_assessment(self, assessment_input: AssessmentInput) -> Dict[str, Any]:
        """
        Assess a resume or questionnaire and save the result.

        Args:
            assessment_input: What to assess

        Returns:
            The scored assessment

        Raises:
            ValueError: Unsupported input type, empty resume, or unreadable PDF
            AssessmentParseError: The LLM's reply held no recoverable JSON
        """
        content, method = self._prepare_content(assessment_input)
        logger.info(f"🧠 Running {method} assessment ({len(content)} chars)")

        prompt = build_assessment_prompt(content, method)
        raw_text = self.llm_call(prompt)

        try:
            raw = parse_llm_json(raw_text)
        except JSONRecoveryError as e:
            logger.error(f"❌ Assessment response could not be parsed: {e}")
            raise AssessmentParseError(f"Could not parse assessment: {e}", raw_text=raw_text) from e

        metadata = raw.get("metadata")
        if not isinstance(metadata, dict):
            metadata = {}
            raw["metadata"] = metadata
        metadata.setdefault("assessment_method", method)

        assessment = score_assessment(raw, now=self.clock())
        self._save(assessment)

        logger.info(f"✅ Assessment complete: {assessment['overall_score']}/100")
        return assessment

    def _save(self, assessment: Dict[str, Any]) -> None:
        self.store.set_assessment(assessment)
        self.store.add_assessment_snapshot({
            "date": assessment["metadata"].get("assessment_date"),
            "overall_score": assessment["overall_score"],
            "level": get_score_level(assessment["overall_score"]),
        })

    def get_current_assessment(self) -> Optional[Dict[str, Any]]:
        return self.store.get_assessment()

    def get_assessment_history(self) -> List[Dict[str, Any]]:
        return self.store.get_assessment_history()

    def update_assessment(self, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Merge top-level fields into the current assessment and re-score it.

        Returns:
            The updated assessment, or None when there is no assessment yet
        """
        current = self.get_current_assessment()
        if current is None:
            return None

        merged = dict(current)
        merged.update(updates)
        assessment = score_assessment(merged, now=self.clock())
        self._save(assessment)

        logger.info(f"📝 Assessment updated ({', '.join(updates)}): {assessment['overall_score']}/100")
        return assessment

    # ========================================================================
    # SUMMARIES AND REPORTS
    # ========================================================================

    def _require_assessment(self, assessment: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        target = assessment or self.get_current_assessment()
        if target is None:
            raise ValueError("No assessment data available")
        return target

    def get_ability_summary(self) -> Dict[str, Any]:
        """Overview of the current assessment (or a needs-assessment marker)."""
        assessment = self.get_current_assessment()
        if assessment is None:
            return {
                "has_assessment": False,
                "overall_score": 0,
                "level": "unknown",
                "assessment_date": None,
                "needs_assessment": True,
            }

        return {
            "has_assessment": True,
            "overall_score": assessment["overall_score"],
            "level": get_score_level(assessment["overall_score"]),
            "assessment_date": assessment["metadata"].get("assessment_date"),
            "strengths": assessment["report"].get("strengths", []),
            "improvements": assessment["report"].get("improvements", []),
            "needs_assessment": False,
            "confidence": assessment["metadata"].get("confidence"),
        }

    def analyze_weak_areas(self, assessment: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        target = assessment or self.get_current_assessment()
        if target is None:
            return []
        return find_weak_areas(target)

    def export_report(self, assessment: Optional[Dict[str, Any]] = None) -> str:
        """
        Render an assessment as a Markdown report.

        Raises:
            ValueError: If there is no assessment
        """
        target = self._require_assessment(assessment)
        metadata = target["metadata"]
        report = target["report"]

        date_value = metadata.get("assessment_date")
        parsed = parse_timestamp(date_value)
        date_text = f"{parsed.year}/{parsed.month}/{parsed.day}" if parsed else str(date_value)
        confidence = metadata.get("confidence") or 0

        lines = [
            "# 能力评估报告",
            "",
            "## 基本信息",
            f"- 评估日期：{date_text}",
            f"- 评估方式：{METHOD_LABELS.get(metadata.get('assessment_method'), '问卷评估')}",
            f"- 置信度：{round_half_up(confidence * 100)}%",
            "",
            "## 总体评分",
            f"- **总分：{target['overall_score']}/100**",
            f"- **等级：{get_score_level(target['overall_score'])}**",
            "",
            "## 各维度评分",
        ]

        for index, key in enumerate(DIMENSION_KEYS, start=1):
            dimension = target["dimensions"][key]
            lines.append("")
            lines.append(f"### {index}. {DIMENSION_NAMES[key]} ({dimension['score']}分)")
            for skill_name, skill in (dimension.get("skills") or {}).items():
                line = f"- {SKILL_NAMES.get(skill_name, skill_name)}: {get_skill_value(skill)}分"
                if isinstance(skill, dict) and skill.get("is_inferred") is True:
                    line += " *（基于整体信息推理）*"
                lines.append(line)

        sections = [
            ("优势领域", report.get("strengths", [])),
            ("待改进项", report.get("improvements", [])),
            ("发展建议", report.get("recommendations", [])),
        ]
        lines.extend(["", "## 评估总结", str(report.get("summary", ""))])
        for title, items in sections:
            lines.extend(["", f"## {title}"])
            lines.extend(f"- {item}" for item in items)

        lines.extend(["", "---", INFERRED_NOTE, ""])
        return "\n".join(lines)

    # ========================================================================
    # IMPROVEMENT PLANS
    # ========================================================================

    def _build_strategy_prompt(self, assessment: Dict[str, Any], gap_analysis: Dict[str, Any]) -> str:
        level = get_score_level(assessment["overall_score"])
        dimension_lines = "\n".join(
            f"- {DIMENSION_NAMES[key]}: {assessment['dimensions'][key]['score']}分 "
            f"(权重 {round_half_up(assessment['dimensions'][key]['weight'] * 100)}%)"
            for key in DIMENSION_KEYS
        )

        gaps_by_name = {gap["name"]: gap for gap in gap_analysis["skill_gaps"]}
        priority_lines = "\n".join(
            f"- {name}: 当前 {gaps_by_name[name]['current_score']}分 → 目标 {gaps_by_name[name]['target_score']}分"
            for name in gap_analysis["top_priorities"]
        ) or "- 暂无高优先级技能"

        report = assessment["report"]
        return format_prompt(
            IMPROVEMENT_STRATEGY_PROMPT,
            level=level,
            overall_score=assessment["overall_score"],
            confidence_percent=round_half_up((assessment["metadata"].get("confidence") or 0) * 100),
            overall_strategy=gap_analysis["overall_strategy"],
            dimension_lines=dimension_lines,
            priority_lines=priority_lines,
            strengths="、".join(report.get("strengths", [])) or "无",
            improvements="、".join(report.get("improvements", [])) or "无",
        )

    def _generate_strategy(self, assessment: Dict[str, Any], gap_analysis: Dict[str, Any]) -> Dict[str, Any]:
        raw_text = self.llm_call(self._build_strategy_prompt(assessment, gap_analysis))

        try:
            strategy = parse_llm_json(raw_text)
        except JSONRecoveryError as e:
            raise StrategyParseError(f"Could not parse improvement strategy: {e}", raw_text=raw_text) from e

        for field_name in ("short_term_goals", "medium_term_goals"):
            if not isinstance(strategy.get(field_name), list):
                raise StrategyParseError(
                    f"Improvement strategy is missing a '{field_name}' list",
                    raw_text=raw_text,
                )
            for index, goal_data in enumerate(strategy[field_name]):
                problem = _goal_entry_problem(goal_data)
                if problem:
                    raise StrategyParseError(
                        f"Improvement strategy {field_name}[{index}] {problem}",
                        raw_text=raw_text,
                    )
        return strategy

    def _materialize_goal(self, goal_data: Dict[str, Any], duration: str) -> Dict[str, Any]:
        path_structure = goal_data.get("path_structure") or {}
        title = goal_data.get("title")
        generated = {
            "title": title,
            "description": goal_data.get("description", ""),
            "category": goal_data.get("category", "programming"),
            "duration": duration,
            "priority": goal_data.get("priority", 3),
            "target_level": goal_data.get("target_level", "intermediate"),
            "estimated_time_weeks": goal_data.get("estimated_time_weeks", 8),
            "required_skills": goal_data.get("required_skills", []),
            "outcomes": goal_data.get("outcomes", []),
            "goal_id": None,
            "associated_path": {
                "title": path_structure.get("title") or f"{title} 学习路径",
                "description": path_structure.get("description", ""),
                "path_id": None,
                "node_count": len(path_structure.get("nodes") or []),
            },
        }
        if self.tool_executor is None:
            return generated

        goal = self.tool_executor.execute("create_learning_goal", {
            key: generated[key]
            for key in (
                "title", "description", "category", "priority", "target_level",
                "estimated_time_weeks", "required_skills", "outcomes",
            )
        })
        path = self.tool_executor.execute("create_learning_path", {
            "goal_id": goal["id"],
            "title": generated["associated_path"]["title"],
            "description": generated["associated_path"]["description"],
            "nodes": path_structure.get("nodes") or None,
        })

        generated["goal_id"] = goal["id"]
        generated["associated_path"]["path_id"] = path["id"]
        generated["associated_path"]["node_count"] = len(path.get("nodes") or [])
        logger.info(f"🎯 Created goal {goal['id']} with path {path['id']}")
        return generated

    def generate_improvement_plan(self, assessment: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Generate (or reuse) an AI improvement plan for an assessment.

        Flow: cache lookup → skill gap analysis → strategy prompt → LLM →
        JSON recovery → plan (goals and paths created when a tool executor
        is configured) → cache.

        Args:
            assessment: Assessment to plan for (defaults to the current one)

        Returns:
            Plan dict with metadata, generated_goals, overall_strategy and visual_data

        Raises:
            ValueError: If there is no assessment
            StrategyParseError: If the LLM's strategy is unusable
        """
        target = self._require_assessment(assessment)

        cached = self.plan_cache.get(target)
        if cached is not None:
            logger.info("♻️  Using cached improvement plan")
            return cached

        gap_analysis = analyze_skill_gaps(target)
        strategy = self._generate_strategy(target, gap_analysis)

        plan = {
            "id": new_id("plan"),
            "created_at": to_iso(self.clock()),
            "metadata": {
                "base_score": target["overall_score"],
                "target_improvement": strategy.get("target_improvement"),
                "estimated_time_months": strategy.get("estimated_time_months"),
                "plan_type": strategy.get("plan_type"),
                "confidence": target["metadata"].get("confidence"),
            },
            "generated_goals": {
                "short_term": [
                    self._materialize_goal(goal, "short") for goal in strategy["short_term_goals"]
                ],
                "medium_term": [
                    self._materialize_goal(goal, "medium") for goal in strategy["medium_term_goals"]
                ],
            },
            "overall_strategy": strategy.get("strategy") or {},
            "visual_data": {
                "skill_gap_chart": gap_analysis["skill_gaps"],
                "progress_timeline": strategy.get("timeline") or [],
                "priority_matrix": strategy.get("priority_matrix") or [],
            },
        }

        self.plan_cache.put(plan, target)
        goal_count = len(plan["generated_goals"]["short_term"]) + len(plan["generated_goals"]["medium_term"])
        logger.info(f"✅ Improvement plan {plan['id']} generated with {goal_count} goals")
        return plan

    def clear_improvement_plan_cache(self) -> int:
        """Drop every cached improvement plan; returns how many were removed."""
        removed = self.store.clear_cache(f"{CACHE_KEY_PREFIX}:")
        logger.info(f"🗑️  Cleared {removed} cached improvement plan(s)")
        return removed
