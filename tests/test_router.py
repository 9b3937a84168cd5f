"""
Unit Tests for Intent Routing and Parameter Synthesis

Tests the keyword table, tie-breaking, the fallback intent and the
per-tool parameter rules.
"""

import pytest

from core.router import (
    INTENT_DEFINITIONS,
    IntentDefinition,
    classify_intent,
    get_intent_description,
    extract_tools_from_message,
)
from core.parameters import (
    synthesize_parameters,
    infer_pace_adjustment,
    infer_preferred_solution,
)


class TestIntentTable:
    """Test the shape of the intent table."""

    def test_table_order(self):
        """Test query intents come first and help intents last."""
        types = [definition.type for definition in INTENT_DEFINITIONS]

        assert types == [
            "query_goals", "query_paths", "query_courses", "query_progress", "query_context",
            "ability_analysis",
            "goal_setting", "path_generation", "content_request",
            "progress_tracking",
            "difficulty_help", "pace_adjustment", "next_action", "schedule_planning",
        ]

    def test_every_entry_has_keywords_and_tools(self):
        for definition in INTENT_DEFINITIONS:
            assert definition.keywords
            assert definition.tools


class TestClassifyIntent:
    """Test classify_intent."""

    def test_progress_question(self):
        """Test the progress question routes to progress tracking."""
        intent = classify_intent("我的学习进度如何？")

        assert intent.type == "progress_tracking"
        assert intent.confidence == pytest.approx(1 / 3)
        assert intent.matched_keywords == ["学习进度"]
        assert intent.suggested_tools == ["track_learning_progress"]

    def test_confidence_is_matched_fraction(self):
        intent = classify_intent("评估一下我的编程能力和技能水平")

        assert intent.type == "ability_analysis"
        assert intent.confidence == pytest.approx(0.8)
        assert intent.suggested_tools == ["analyze_user_ability"]

    def test_multiple_keywords_same_entry(self):
        intent = classify_intent("显示目标列表")

        assert intent.type == "query_goals"
        assert intent.confidence == pytest.approx(2 / 6)

    def test_tie_keeps_earlier_entry(self):
        """Test equal confidence resolves to the earlier table entry."""
        intent = classify_intent("我遇到困难，需要调整")

        assert intent.type == "difficulty_help"
        assert intent.confidence == pytest.approx(0.2)

    def test_path_generation_suggests_two_tools(self):
        intent = classify_intent("帮我生成路径")

        assert intent.type == "path_generation"
        assert intent.suggested_tools == ["create_learning_path", "generate_path_nodes"]

    def test_no_keywords_falls_back_to_general(self):
        intent = classify_intent("你好")

        assert intent.type == "general"
        assert intent.confidence == 0
        assert intent.matched_keywords == []
        assert intent.suggested_tools == ["suggest_next_action"]

    def test_empty_utterance(self):
        assert classify_intent("").type == "general"

    def test_case_insensitive(self):
        """Test matching lower-cases the utterance."""
        definitions = [IntentDefinition("greeting", ("hello",), ("say_hello",))]

        intent = classify_intent("HELLO there", definitions=definitions)

        assert intent.type == "greeting"
        assert intent.confidence == 1.0

    def test_deterministic(self):
        first = classify_intent("我想学Python，怎么学？")
        second = classify_intent("我想学Python，怎么学？")

        assert first == second

    def test_suggested_tools_are_copies(self):
        """Test callers cannot mutate the table through an intent."""
        intent = classify_intent("我的学习进度如何？")
        intent.suggested_tools.append("other")

        assert classify_intent("我的学习进度如何？").suggested_tools == ["track_learning_progress"]


class TestRouterHelpers:
    """Test descriptions and the free-form tool heuristic."""

    def test_intent_description(self):
        assert get_intent_description("progress_tracking") == "跟踪学习进度"
        assert get_intent_description("something_else") == "未知意图"

    def test_extract_tools(self):
        tools = extract_tools_from_message("我的进度怎么样", "建议您每天安排一小时")

        assert tools == ["track_learning_progress", "suggest_next_action", "recommend_study_schedule"]

    def test_extract_tools_default(self):
        assert extract_tools_from_message("你好", "你好！") == ["smart_analysis"]


class TestParameterSynthesis:
    """Test synthesize_parameters and its heuristics."""

    @pytest.mark.parametrize("message,expected", [
        ("能给个例子吗", "example"),
        ("我想多练习", "practice"),
        ("换个方式讲", "alternative"),
        ("这里看不懂", "explanation"),
    ])
    def test_preferred_solution(self, message, expected):
        assert infer_preferred_solution(message) == expected

    @pytest.mark.parametrize("message,expected", [
        ("能不能快一点", "faster"),
        ("请慢一点", "slower"),
        ("内容再简单些", "easier"),
        ("想要更有挑战", "harder"),
        ("调整一下", "slower"),
    ])
    def test_pace_adjustment(self, message, expected):
        assert infer_pace_adjustment(message) == expected

    def test_difficulty_parameters(self):
        params = synthesize_parameters(
            "handle_learning_difficulty", "递归不懂，有例子吗", {"current_node_id": "node_1"}
        )

        assert params == {
            "node_id": "node_1",
            "difficulty": "递归不懂，有例子吗",
            "preferred_solution": "example",
        }

    def test_pace_uses_first_active_path(self):
        context = {"active_paths": [{"id": "path_a"}, {"id": "path_b"}]}

        params = synthesize_parameters("adjust_learning_pace", "快一点", context)

        assert params["path_id"] == "path_a"
        assert params["adjustment"] == "faster"

    def test_pace_prefers_current_path(self):
        context = {"current_path_id": "path_x", "active_paths": [{"id": "path_a"}]}

        assert synthesize_parameters("adjust_learning_pace", "慢一点", context)["path_id"] == "path_x"

    def test_schedule_defaults(self):
        params = synthesize_parameters("recommend_study_schedule", "帮我安排时间")

        assert params == {
            "available_hours_per_week": 10,
            "preferred_study_times": ["evening"],
            "goal_id": None,
        }

    def test_schedule_from_context(self):
        context = {"available_hours": 6, "preferred_times": ["morning"], "active_goals": [{"id": "goal_1"}]}

        params = synthesize_parameters("recommend_study_schedule", "安排", context)

        assert params == {
            "available_hours_per_week": 6,
            "preferred_study_times": ["morning"],
            "goal_id": "goal_1",
        }

    def test_content_defaults(self):
        params = synthesize_parameters("generate_personalized_content", "")

        assert params == {"node_id": None, "learning_style": "visual", "difficulty": 3}

    def test_progress_defaults(self):
        assert synthesize_parameters("track_learning_progress", "进度") == {"path_id": None, "time_range": "week"}

    def test_create_path_from_active_goal(self):
        context = {"active_goals": [{"id": "goal_1", "title": "掌握 Python"}]}

        params = synthesize_parameters("create_learning_path", "生成路径", context)

        assert params == {"goal_id": "goal_1", "title": "掌握 Python 学习路径"}

    def test_unknown_tool_gets_empty_parameters(self):
        assert synthesize_parameters("analyze_user_ability", "能力") == {}
        assert synthesize_parameters("no_such_tool", "x") == {}
