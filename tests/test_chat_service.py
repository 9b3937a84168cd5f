"""
Unit Tests for Chat Service

Tests the main chat coordinator: rule-based turns over the real learning
tools, the fallback reply, real-LLM turns with a mocked Gemini chat, and
the interaction history.
"""

from unittest.mock import Mock, patch

import pytest

from core.status import LearningStatusManager
from errors import ConfigurationError
from services.chat_service import (
    ChatService,
    ChatResponse,
    FALLBACK_REPLY,
    FALLBACK_SUGGESTIONS,
    LLM_UNAVAILABLE_SUGGESTIONS,
    generate_suggestions,
    generate_smart_suggestions,
)
from services.scoring import score_assessment
from tests.conftest import make_path


@pytest.fixture
def llm_chat():
    return Mock()


@pytest.fixture
def chat_service(store, executor, llm_chat, clock):
    """ChatService over the in-memory store with a mocked LLM chat."""
    return ChatService(executor, store, llm_chat=llm_chat, clock=clock)


@pytest.fixture
def learning_store(store):
    """Store with one active goal and a path that is 30% complete."""
    store.add_goal({"id": "goal_1", "title": "掌握 Python", "category": "programming", "status": "active"})
    store.add_path(make_path("goal_1", completed=3, in_progress=1, not_started=6))
    return store


class TestRuleBasedTurns:
    """Test process_message without the real LLM."""

    def test_progress_question(self, chat_service, learning_store):
        """Test the progress question returns the tracked progress."""
        response = chat_service.process_message("我的学习进度如何？")

        assert isinstance(response, ChatResponse)
        assert response.success is True
        assert "30%" in response.message
        assert response.tools_used == ["track_learning_progress"]
        assert response.suggestions == ["完成能力评估以获得个性化建议", "查看学习进度报告"]
        assert response.system_status.current_phase == "assessment"
        assert response.metadata["intent"] == "progress_tracking"

    def test_progress_without_paths(self, chat_service):
        response = chat_service.process_message("我的学习进度如何？")

        assert response.message == "您还没有开始任何学习路径。建议先设定学习目标并生成学习计划。"
        assert response.suggestions == ["完成能力评估以获得个性化建议", "设定您的第一个学习目标"]

    def test_active_entities_reach_tool_parameters(self, chat_service, learning_store):
        """Test active goals from the store steer parameter synthesis."""
        response = chat_service.process_message("帮我安排一下学习时间")

        assert response.tools_used == ["recommend_study_schedule"]
        assert "每周 10 小时" in response.message

    def test_tool_failure_is_reported(self, chat_service):
        response = chat_service.process_message("我的学习进度如何？", {"current_path_id": "missing"})

        assert response.success is False
        assert "我在处理您的请求时遇到了一些问题" in response.message
        assert response.metadata["errors"] == [
            "track_learning_progress: Learning path with id missing not found"
        ]

    def test_goal_setting_without_title(self, chat_service, store):
        """Test goal creation from a bare message fails cleanly: no title can be synthesized."""
        response = chat_service.process_message("我想学Python，帮我设定目标")

        assert response.success is False
        assert response.metadata["errors"] == ["create_learning_goal: title is required"]
        assert store.get_goals() == []

    def test_orchestrator_error_falls_back(self, chat_service):
        """Test a failed agent turn gives the fallback reply and is still recorded."""
        chat_service.orchestrator.classifier = Mock(side_effect=RuntimeError("classifier down"))

        response = chat_service.process_message("你好")

        assert response.message == FALLBACK_REPLY
        assert response.success is False
        assert response.suggestions == FALLBACK_SUGGESTIONS
        assert response.metadata == {"error": "classifier down"}
        assert response.system_status is not None

        history = chat_service.get_interaction_history()
        assert history[0]["agent_response"] == FALLBACK_REPLY
        assert history[0]["tools_used"] == []

    def test_status_failure_during_fallback(self, executor, store, clock):
        status_manager = Mock()
        status_manager.get_system_status.side_effect = RuntimeError("store offline")
        service = ChatService(executor, store, status_manager=status_manager, clock=clock)

        response = service.process_message("你好")

        assert response.success is False
        assert response.system_status is None


class TestRealLLMTurns:
    """Test process_message with use_real_llm."""

    def test_tool_calls_are_reported(self, chat_service, llm_chat, executor):
        llm_chat.return_value = {
            "response": "我已经为您创建了学习目标。",
            "tool_calls": [
                {"name": "create_learning_goal", "arguments": {"title": "掌握 Python"}, "success": True},
                {"name": "create_learning_path", "arguments": {}, "success": False},
            ],
        }

        response = chat_service.process_message("帮我定个目标", {"use_real_llm": True})

        assert response.success is True
        assert response.message == "我已经为您创建了学习目标。"
        assert response.tools_used == ["create_learning_goal"]
        assert response.suggestions == ["设定新的学习目标", "完成能力评估", "创建学习目标"]
        assert response.metadata["use_real_llm"] is True

        message, context_info, tools, tool_executor = llm_chat.call_args[0]
        assert message == "帮我定个目标"
        assert context_info.startswith("学习系统状态：")
        assert any(tool["name"] == "create_learning_goal" for tool in tools)
        assert tool_executor is executor

    def test_tools_inferred_without_calls(self, chat_service, llm_chat):
        llm_chat.return_value = {"response": "你好！", "tool_calls": []}

        response = chat_service.process_message("你好", {"use_real_llm": True})

        assert response.tools_used == ["smart_analysis"]

    def test_interaction_recorded(self, chat_service, llm_chat):
        llm_chat.return_value = {"response": "你好！", "tool_calls": []}

        chat_service.process_message("你好", {"use_real_llm": True})

        history = chat_service.get_interaction_history()
        assert len(history) == 1
        assert history[0]["id"].startswith("interaction_llm_")
        assert history[0]["context"]["use_real_llm"] is True

    def test_llm_unavailable(self, chat_service, llm_chat):
        """Test a failing LLM returns the configuration hint and records nothing."""
        llm_chat.side_effect = ConfigurationError("GOOGLE_API_KEY is not set")

        response = chat_service.process_message("你好", {"use_real_llm": True})

        assert response.success is False
        assert "GOOGLE_API_KEY is not set" in response.message
        assert "API Key是否正确配置" in response.message
        assert response.suggestions == LLM_UNAVAILABLE_SUGGESTIONS
        assert chat_service.get_interaction_history() == []


class TestContextInfo:
    """Test build_context_info."""

    def test_includes_assessment_goals_and_history(self, chat_service, learning_store, assessment_payload):
        learning_store.set_assessment(score_assessment(assessment_payload))
        chat_history = [
            {"type": "user", "content": "第一条"},
            {"type": "user", "content": "你好"},
            {"type": "agent", "content": "您好" * 80},
            {"type": "user", "content": "我的进度呢"},
        ]

        info = chat_service.build_context_info(chat_service.get_system_status(), chat_history)

        assert "当前阶段: learning" in info
        assert "学习进度: 30%" in info
        assert "总体评分: 66/100" in info
        assert "1. 掌握 Python (programming, active)" in info
        assert "1. Python 学习路径 (10个节点, active)" in info
        assert "第一条" not in info
        assert "用户: 你好" in info
        assert f"AI: {('您好' * 80)[:100]}..." in info
        assert "用户: 我的进度呢" in info

    def test_minimal_context(self, chat_service):
        info = chat_service.build_context_info(chat_service.get_system_status())

        assert "能力评估信息" not in info
        assert "对话历史" not in info


class TestSuggestions:
    """Test the suggestion helpers."""

    @pytest.fixture
    def empty_status(self, store, clock):
        return LearningStatusManager(store, clock=clock).get_system_status()

    def test_rule_suggestions_capped(self, empty_status):
        suggestions = generate_suggestions(empty_status, "学习有困难，也没时间")

        assert suggestions == ["完成能力评估以获得个性化建议", "设定您的第一个学习目标", "获得针对性的学习帮助"]

    def test_smart_suggestions_deduplicated(self, empty_status):
        suggestions = generate_smart_suggestions("先做能力评估，再定学习目标和路径计划", empty_status)

        assert suggestions == ["查看详细能力分析", "设定新的学习目标", "生成学习路径", "完成能力评估"]


class TestInteractionHistory:
    """Test history bookkeeping."""

    def test_history_records_rule_turns(self, chat_service, fixed_now):
        chat_service.process_message("你好")
        chat_service.process_message("我的学习进度如何？")

        history = chat_service.get_interaction_history()

        assert [item["user_message"] for item in history] == ["你好", "我的学习进度如何？"]
        assert history[0]["id"].startswith("interaction_")
        assert history[0]["timestamp"] == fixed_now.isoformat()
        assert history[1]["context"]["intent"] == "progress_tracking"

    def test_clear_history(self, chat_service):
        chat_service.process_message("你好")

        chat_service.clear_interaction_history()

        assert chat_service.get_interaction_history() == []

    @patch("services.chat_service.LearningStatusManager")
    def test_default_status_manager_uses_store(self, mock_manager, executor, store, clock):
        ChatService(executor, store, clock=clock)

        mock_manager.assert_called_once_with(store, clock=clock)
