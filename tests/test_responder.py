"""
Unit Tests for the Response Synthesizer

Tests each intent's reply, the "no data yet" fallbacks and the error
short-circuit.
"""

from core.orchestrator import ToolExecutionResult
from core.responder import DEFAULT_REPLY, render_response, synthesize_response
from core.router import Intent


class TestRenderResponse:
    """Test render_response per intent."""

    def test_progress_reply(self):
        """Test the progress reply carries the rounded percentage and node counts."""
        reply = render_response(
            "progress_tracking",
            {"overall_progress": 42, "completed_nodes": 3, "total_nodes": 10, "insights": []},
        )

        assert "42%" in reply
        assert "3/10" in reply
        assert "还有 7 个待完成" in reply
        assert "继续保持！" in reply

    def test_progress_rounds_half_up(self):
        reply = render_response("progress_tracking", {"overall_progress": 42.5, "completed_nodes": 1, "total_nodes": 2})

        assert "43%" in reply

    def test_progress_without_paths(self):
        reply = render_response("progress_tracking", {"overall_progress": None})

        assert reply == "您还没有开始任何学习路径。建议先设定学习目标并生成学习计划。"

    def test_goals_reply_lists_goals(self):
        result = {
            "goals": [{"title": "掌握 Python", "category": "programming", "status": "active"}],
            "total": 1,
            "filtered": 1,
        }

        reply = render_response("query_goals", result)

        assert "您当前有 1 个学习目标" in reply
        assert "1. 掌握 Python (programming, active)" in reply

    def test_goals_reply_without_goals(self):
        reply = render_response("query_goals", {"goals": [], "total": 0, "filtered": 0})

        assert reply.startswith("您还没有设定任何学习目标")

    def test_ability_reply(self):
        result = {
            "has_ability_data": True,
            "overall_score": 66,
            "strengths": ["沟通协作: 90分"],
            "weaknesses": ["系统设计: 40分"],
            "recommendation": "您有良好的基础，建议选择中等难度的学习目标",
        }

        reply = render_response("ability_analysis", result)

        assert "66/100" in reply
        assert "沟通协作: 90分" in reply
        assert "系统设计: 40分" in reply

    def test_ability_without_assessment(self):
        reply = render_response("ability_analysis", {"has_ability_data": False})

        assert "您还没有完成能力评估" in reply

    def test_goal_created_with_system_message(self):
        reply = render_response("goal_setting", {"id": "goal_1", "system_message": "新目标已暂停"})

        assert reply.endswith("新目标已暂停")

    def test_path_reply(self):
        result = {
            "nodes": [{"title": "基础"}, {"title": "核心"}, {"title": "实践"}, {"title": "复习"}],
            "total_estimated_hours": 85,
        }

        reply = render_response("path_generation", result)

        assert "4 个学习节点" in reply
        assert "85 小时" in reply
        assert "基础、核心、实践等内容" in reply

    def test_difficulty_reply(self):
        result = {"message": "遇到困难是学习过程中的正常现象。", "solution": {"suggestions": ["看示例", "做练习"]}}

        reply = render_response("difficulty_help", result)

        assert "看示例、做练习" in reply

    def test_next_action_reply(self):
        result = {"suggestions": ["完成能力评估", "创建学习目标"], "current_status": {"active_goals": 0, "active_paths": 0}}

        reply = render_response("next_action", result)

        assert "完成能力评估，或者创建学习目标" in reply
        assert "您目前有 0 个活跃目标和 0 个学习路径" in reply

    def test_schedule_reply(self):
        result = {"schedule": [{"day": "Monday"}], "weekly_hours": 10, "estimated_completion_weeks": 12, "tips": ["保持规律的学习时间"]}

        reply = render_response("schedule_planning", result)

        assert "每周 10 小时" in reply
        assert "预计 12 周" in reply

    def test_missing_result_degrades(self):
        """Test renderers cope with no result at all."""
        assert "暂时无法生成学习摘要" in render_response("query_progress", None)
        assert "制定学习计划需要了解您的可用时间" in render_response("schedule_planning", None)
        assert "我已经根据您的反馈调整了学习节奏" in render_response("pace_adjustment", None)

    def test_malformed_nested_fields_degrade(self):
        """Test wrongly typed nested fields fall back instead of raising."""
        reply = render_response("difficulty_help", {"solution": "read docs"})
        assert "寻求更详细的解释和练习" in reply

        reply = render_response("pace_adjustment", {"adjustments": "faster"})
        assert reply.endswith("建议：保持当前的学习计划")

        reply = render_response("next_action", {"suggestions": ["完成能力评估"], "current_status": "busy"})
        assert reply == "根据您当前的学习状态，我建议您：完成能力评估。"

        assert "暂时无法生成学习摘要" in render_response("query_progress", {"summary": "ok"})
        assert "您还没有开始任何学习路径" in render_response("progress_tracking", {"overall_progress": "42"})

    def test_non_object_list_items_skipped(self):
        result = {"goals": ["掌握 Python", {"title": "学习 Go", "category": "programming", "status": "active"}]}

        reply = render_response("query_goals", result)

        assert "您当前有 1 个学习目标" in reply
        assert "1. 学习 Go (programming, active)" in reply
        assert "掌握 Python" not in reply

        assert render_response("path_generation", {"nodes": ["基础", "核心"]}).startswith("生成学习路径需要先设定")

    def test_unknown_intent_default_reply(self):
        assert render_response("general", {"anything": 1}) == DEFAULT_REPLY

    def test_errors_short_circuit(self):
        """Test any tool error replaces the intent's reply."""
        reply = render_response(
            "progress_tracking",
            {"overall_progress": 42, "completed_nodes": 3, "total_nodes": 10},
            errors=["track_learning_progress: boom"],
        )

        assert reply == (
            "我在处理您的请求时遇到了一些问题：track_learning_progress: boom。"
            "请提供更多信息或尝试其他操作。"
        )


class TestSynthesizeResponse:
    """Test the intent / execution glue."""

    def test_uses_first_result(self):
        intent = Intent(type="progress_tracking", confidence=1 / 3, suggested_tools=["track_learning_progress"])
        execution = ToolExecutionResult(
            success=True,
            results=[{"overall_progress": 50, "completed_nodes": 1, "total_nodes": 2}],
            tools_used=["track_learning_progress"],
        )

        assert "50%" in synthesize_response(intent, execution)

    def test_no_results(self):
        intent = Intent(type="next_action")
        execution = ToolExecutionResult(success=True)

        assert synthesize_response(intent, execution) == "让我分析一下您的学习状态，稍等片刻..."
