"""
Chat Service - Main Coordinator

Orchestrates the entire user interaction flow:
1. Receives user message and context
2. Routes to the rule-based agent orchestrator, or to the real LLM
   (Gemini with function calling) when the context asks for it
3. Computes the learner's system status and follow-up suggestions
4. Records each turn in the interaction history
5. Returns a ChatResponse

This is the main entry point for the console app.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ai import chat_with_tools
from clients import new_id
from config import TIMEOUT, get_tool_definitions
from core import (
    AgentOrchestrator,
    AgentStatus,
    LearningStatusManager,
    SystemStatus,
    extract_tools_from_message,
)
from utils import round_half_up, utc_now, to_iso

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "抱歉，我遇到了一些问题。请稍后再试或提供更具体的信息。"
FALLBACK_SUGGESTIONS = ["重新表述您的问题", "检查系统状态", "尝试从基础操作开始"]

LLM_UNAVAILABLE_REPLY = (
    "抱歉，AI助手暂时不可用。错误信息：{error}\n\n"
    "请检查：\n"
    "1. API Key是否正确配置\n"
    "2. 网络连接是否正常\n"
    "3. API额度是否充足\n\n"
    "您可以尝试使用其他演示功能。"
)
LLM_UNAVAILABLE_SUGGESTIONS = ["检查API配置", "尝试其他演示功能", "查看系统状态"]

CHAT_HISTORY_TURNS = 3


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class ChatResponse:
    """
    Response from the chat service.

    Attributes:
        message: The response text to display to the user
        success: Whether the request was handled without errors
        tools_used: Tools that ran (or, for real-LLM turns without tool calls, were implied)
        suggestions: Follow-up suggestions for the user
        system_status: Learner status after the turn (None if it could not be computed)
        metadata: Execution details (intent, errors, timings)
    """
    message: str
    success: bool
    tools_used: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    system_status: Optional[SystemStatus] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AgentInteraction:
    """One recorded turn of the conversation."""
    id: str
    timestamp: str
    user_message: str
    agent_response: str
    tools_used: List[str]
    context: Dict[str, Any] = field(default_factory=dict)


# ============================================================================
# SUGGESTIONS
# ============================================================================

def generate_suggestions(system_status: SystemStatus, user_message: str) -> List[str]:
    """
    Follow-up suggestions for a rule-based turn.

    Based on the learner's progress first, then on the message itself.
    Capped at 3.
    """
    progress = system_status.progress
    suggestions = []

    if not progress["has_ability_profile"]:
        suggestions.append("完成能力评估以获得个性化建议")
    if progress["active_goals"] == 0:
        suggestions.append("设定您的第一个学习目标")
    if progress["active_paths"] == 0 and progress["active_goals"] > 0:
        suggestions.append("为目标生成学习路径")
    if progress["total_nodes"] > 0 and progress["overall_progress"] > 0:
        suggestions.append("查看学习进度报告")

    if "困难" in user_message or "不懂" in user_message:
        suggestions.append("获得针对性的学习帮助")
    if "时间" in user_message or "安排" in user_message:
        suggestions.append("制定个性化学习时间表")

    return suggestions[:3]


def generate_smart_suggestions(reply: str, system_status: SystemStatus) -> List[str]:
    """
    Follow-up suggestions for a real-LLM turn, from the reply's content
    and the learner's progress. Deduplicated, capped at 4.
    """
    text = reply.lower()
    progress = system_status.progress
    suggestions = []

    if "评估" in text or "能力" in text:
        suggestions.append("查看详细能力分析")
    if "目标" in text or "学习" in text:
        suggestions.append("设定新的学习目标")
    if "路径" in text or "计划" in text:
        suggestions.append("生成学习路径")
    if "进度" in text or "状态" in text:
        suggestions.append("查看学习进度")
    if "困难" in text or "问题" in text:
        suggestions.append("获取学习帮助")

    if not progress["has_ability_profile"]:
        suggestions.append("完成能力评估")
    if progress["active_goals"] == 0:
        suggestions.append("创建学习目标")
    if progress["active_paths"] == 0 and progress["active_goals"] > 0:
        suggestions.append("生成学习路径")

    return list(dict.fromkeys(suggestions))[:4]


# ============================================================================
# CHAT SERVICE
# ============================================================================

class ChatService:
    """
    Main chat service coordinator.

    Args:
        tool_executor: Object with execute(tool_name, parameters)
        store: ProfileStore the tools and status manager read from
        status_manager: Learning status manager (defaults to one over the store)
        llm_chat: Chat-with-tools callable for real-LLM turns
        timeout: Per-tool timeout in seconds for rule-based turns
        max_workers: Concurrent tool dispatch for rule-based turns
        clock: Returns the current aware datetime
    """

    def __init__(
        self,
        tool_executor,
        store,
        status_manager: Optional[LearningStatusManager] = None,
        llm_chat: Optional[Callable[..., Dict[str, Any]]] = None,
        timeout: Optional[float] = TIMEOUT,
        max_workers: int = 1,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.tool_executor = tool_executor
        self.store = store
        self.clock = clock or utc_now
        self.status_manager = status_manager or LearningStatusManager(store, clock=self.clock)
        self.llm_chat = llm_chat or chat_with_tools
        self.orchestrator = AgentOrchestrator(tool_executor, timeout=timeout, max_workers=max_workers)
        self.interaction_history: List[AgentInteraction] = []
        logger.info("✅ ChatService initialized")

    def process_message(self, user_message: str, context: Optional[Dict[str, Any]] = None) -> ChatResponse:
        """
        Process a user message and generate a response.

        Args:
            user_message: The user's input text
            context: Conversation context. "use_real_llm" routes the turn to
                Gemini; "chat_history" ([{"type", "content"}]) feeds its
                context; other keys steer tool parameters.

        Returns:
            ChatResponse with the agent's reply, suggestions and status
        """
        context = dict(context or {})
        logger.info(f"💬 Processing message: {user_message[:50]}...")

        if context.get("use_real_llm"):
            return self._process_with_llm(user_message, context)

        try:
            return self._process_with_rules(user_message, context)
        except Exception as e:
            logger.error(f"❌ ChatService error: {e}", exc_info=True)
            self._record(user_message, FALLBACK_REPLY, [], {"error": str(e)})
            return ChatResponse(
                message=FALLBACK_REPLY,
                success=False,
                suggestions=list(FALLBACK_SUGGESTIONS),
                system_status=self._safe_status(),
                metadata={"error": str(e)},
            )

    def _process_with_rules(self, user_message: str, context: Dict[str, Any]) -> ChatResponse:
        goals = self.store.get_goals()
        paths = self.store.get_paths()
        context.setdefault("active_goals", [goal for goal in goals if goal.get("status") == "active"])
        context.setdefault("active_paths", [path for path in paths if path.get("status") == "active"])

        state = self.orchestrator.run(user_message, context)
        if state.status == AgentStatus.ERROR:
            raise RuntimeError(state.error_message)

        system_status = self.status_manager.get_system_status()
        suggestions = generate_suggestions(system_status, user_message)
        summary = state.get_execution_summary()

        self._record(user_message, state.final_response, list(state.execution.tools_used), {
            "intent": state.intent.type,
            "execution": summary,
            "system_status": system_status.to_dict(),
        })

        return ChatResponse(
            message=state.final_response,
            success=state.execution.success,
            tools_used=list(state.execution.tools_used),
            suggestions=suggestions,
            system_status=system_status,
            metadata=summary,
        )

    # ========================================================================
    # REAL LLM
    # ========================================================================

    def build_context_info(self, system_status: SystemStatus, chat_history: Optional[List[Dict]] = None) -> str:
        """Describe the learner's state (and the recent conversation) for the model."""
        progress = system_status.progress
        lines = [
            "学习系统状态：",
            f"当前阶段: {system_status.current_phase}",
            f"设置完成度: {'已完成' if system_status.setup_complete else '进行中'}",
            f"学习进度: {round_half_up(progress['overall_progress'])}%",
            f"活跃目标: {progress['active_goals']}个",
            f"活跃路径: {progress['active_paths']}个",
        ]

        assessment = self.store.get_assessment()
        if assessment:
            report = assessment.get("report") or {}
            lines.extend([
                "",
                "能力评估信息：",
                f"总体评分: {assessment.get('overall_score')}/100",
                f"评估日期: {(assessment.get('metadata') or {}).get('assessment_date')}",
                f"优势领域: {', '.join(report.get('strengths', []))}",
                f"待改进: {', '.join(report.get('improvements', []))}",
            ])

        goals = self.store.get_goals()
        if goals:
            lines.extend(["", "学习目标："])
            for index, goal in enumerate(goals[:3], start=1):
                lines.append(f"{index}. {goal.get('title')} ({goal.get('category')}, {goal.get('status')})")

        paths = self.store.get_paths()
        if paths:
            lines.extend(["", "学习路径："])
            for index, path in enumerate(paths[:2], start=1):
                lines.append(f"{index}. {path.get('title')} ({len(path.get('nodes') or [])}个节点, {path.get('status')})")

        recent = (chat_history or [])[-CHAT_HISTORY_TURNS:]
        if recent:
            lines.extend(["", "对话历史："])
            for message in recent:
                if message.get("type") == "user":
                    lines.append(f"用户: {message.get('content', '')}")
                elif message.get("type") == "agent":
                    lines.append(f"AI: {message.get('content', '')[:100]}...")

        return "\n".join(lines)

    def _process_with_llm(self, user_message: str, context: Dict[str, Any]) -> ChatResponse:
        logger.info("🤖 Using real LLM for chat")
        try:
            system_status = self.status_manager.get_system_status()
            context_info = self.build_context_info(system_status, context.get("chat_history"))

            result = self.llm_chat(user_message, context_info, get_tool_definitions(), self.tool_executor)
            reply = result["response"]
            tool_calls = result.get("tool_calls") or []

            called = [call["name"] for call in tool_calls if call.get("success")]
            tools_used = called or extract_tools_from_message(user_message, reply)
            # Tool calls may have changed goals or paths
            if tool_calls:
                system_status = self.status_manager.get_system_status()
            suggestions = generate_smart_suggestions(reply, system_status)

        except Exception as e:
            logger.error(f"❌ Real LLM chat failed: {e}", exc_info=True)
            return ChatResponse(
                message=LLM_UNAVAILABLE_REPLY.format(error=str(e) or "未知错误"),
                success=False,
                suggestions=list(LLM_UNAVAILABLE_SUGGESTIONS),
                system_status=self._safe_status(),
                metadata={"error": str(e), "use_real_llm": True},
            )

        self._record(user_message, reply, tools_used, {
            "use_real_llm": True,
            "tool_calls": tool_calls,
            "system_status": system_status.to_dict(),
        }, prefix="interaction_llm")

        return ChatResponse(
            message=reply,
            success=True,
            tools_used=tools_used,
            suggestions=suggestions,
            system_status=system_status,
            metadata={"use_real_llm": True, "tool_calls": tool_calls},
        )

    # ========================================================================
    # HISTORY AND STATUS
    # ========================================================================

    def _record(
        self,
        user_message: str,
        agent_response: str,
        tools_used: List[str],
        context: Dict[str, Any],
        prefix: str = "interaction",
    ) -> None:
        self.interaction_history.append(AgentInteraction(
            id=new_id(prefix),
            timestamp=to_iso(self.clock()),
            user_message=user_message,
            agent_response=agent_response,
            tools_used=tools_used,
            context=context,
        ))

    def _safe_status(self) -> Optional[SystemStatus]:
        try:
            return self.status_manager.get_system_status()
        except Exception as e:
            logger.error(f"❌ Could not compute system status: {e}")
            return None

    def get_system_status(self) -> SystemStatus:
        return self.status_manager.get_system_status()

    def get_interaction_history(self) -> List[Dict[str, Any]]:
        return [asdict(interaction) for interaction in self.interaction_history]

    def clear_interaction_history(self) -> None:
        self.interaction_history = []
        logger.info("🗑️  Interaction history cleared")
