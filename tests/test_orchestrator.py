"""
Unit Tests for Tool Coordination and the Agent Orchestrator

Tests ordered execution, partial failures, timeouts, concurrent dispatch
and the full utterance -> reply loop.
"""

import threading
import time
from unittest.mock import Mock

from core.orchestrator import (
    AgentOrchestrator,
    AgentStatus,
    ToolCoordinator,
    run_agent_loop,
)
from core.router import Intent
from errors import ToolNotFoundError, WriteCancelledError
from tools import ToolExecutor
from tests.conftest import make_path


def _intent(*tools, intent_type="custom"):
    return Intent(type=intent_type, confidence=1.0, suggested_tools=list(tools))


class TestToolCoordinator:
    """Test ToolCoordinator.execute_intent."""

    def test_runs_tools_in_order(self):
        calls = []
        executor = ToolExecutor({
            "first": lambda **kwargs: calls.append("first") or {"n": 1},
            "second": lambda **kwargs: calls.append("second") or {"n": 2},
        })

        execution = ToolCoordinator(executor).execute_intent(_intent("first", "second"), "hi")

        assert calls == ["first", "second"]
        assert execution.success is True
        assert execution.results == [{"n": 1}, {"n": 2}]
        assert execution.tools_used == ["first", "second"]
        assert execution.errors == []

    def test_parameters_are_synthesized(self):
        """Test each tool receives parameters built from the message and context."""
        executor = Mock()
        executor.execute.return_value = {"ok": True}

        ToolCoordinator(executor).execute_intent(
            _intent("track_learning_progress"), "进度", {"current_path_id": "path_1"}
        )

        executor.execute.assert_called_once_with(
            "track_learning_progress", {"path_id": "path_1", "time_range": "week"}
        )

    def test_partial_failure(self):
        """Test one failing tool does not stop the others."""
        def broken(**kwargs):
            raise ValueError("boom")

        executor = ToolExecutor({"ok_a": lambda **kwargs: "a", "broken": broken, "ok_b": lambda **kwargs: "b"})

        execution = ToolCoordinator(executor).execute_intent(_intent("ok_a", "broken", "ok_b"), "hi")

        assert execution.success is False
        assert execution.results == ["a", "b"]
        assert execution.tools_used == ["ok_a", "ok_b"]
        assert execution.errors == ["broken: boom"]

    def test_unknown_tool_recorded_as_error(self):
        executor = ToolExecutor({})

        execution = ToolCoordinator(executor).execute_intent(_intent("missing"), "hi")

        assert execution.success is False
        assert execution.errors == [f"missing: {ToolNotFoundError('missing')}"]

    def test_no_tools(self):
        execution = ToolCoordinator(ToolExecutor({})).execute_intent(_intent(), "hi")

        assert execution.success is True
        assert execution.results == []

    def test_timeout_recorded_and_next_tool_runs(self):
        """Test a hung tool times out without blocking the following tool."""
        release = threading.Event()

        def hung(**kwargs):
            release.wait(5)
            return "late"

        executor = ToolExecutor({"hung": hung, "fast": lambda **kwargs: "fast"})

        try:
            execution = ToolCoordinator(executor, timeout=0.2).execute_intent(_intent("hung", "fast"), "hi")
        finally:
            release.set()

        assert execution.results == ["fast"]
        assert execution.tools_used == ["fast"]
        assert execution.errors == ["hung: timed out after 0.2s"]

    def test_timed_out_tool_cannot_write_later(self, store):
        """Test a write attempted after the timeout is refused and the next tool's write lands."""
        release = threading.Event()
        finished = threading.Event()
        late_errors = []

        def slow(**kwargs):
            release.wait(5)
            try:
                store.add_goal({"title": "late"})
            except WriteCancelledError as e:
                late_errors.append(e)
            finally:
                finished.set()

        def fast(**kwargs):
            return store.add_goal({"title": "on time"})

        executor = ToolExecutor({"slow": slow, "fast": fast}, store=store)

        try:
            execution = ToolCoordinator(executor, timeout=0.1).execute_intent(_intent("slow", "fast"), "hi")
        finally:
            release.set()

        assert finished.wait(5)
        assert execution.errors == ["slow: timed out after 0.1s"]
        assert execution.tools_used == ["fast"]
        assert [goal["title"] for goal in store.get_goals()] == ["on time"]
        assert len(late_errors) == 1

    def test_parallel_results_keep_suggested_order(self):
        """Test concurrent dispatch still reports results in suggested order."""
        def slow(**kwargs):
            time.sleep(0.2)
            return "slow"

        executor = ToolExecutor({"slow": slow, "quick": lambda **kwargs: "quick"})

        execution = ToolCoordinator(executor, max_workers=2).execute_intent(_intent("slow", "quick"), "hi")

        assert execution.results == ["slow", "quick"]
        assert execution.tools_used == ["slow", "quick"]


class TestAgentOrchestrator:
    """Test AgentOrchestrator.run."""

    def test_progress_question_end_to_end(self):
        """Test the progress question flows through classification, one tool call and rendering."""
        executor = Mock()
        executor.execute.return_value = {"overall_progress": 42, "completed_nodes": 3, "total_nodes": 10}

        state = AgentOrchestrator(executor).run("我的学习进度如何？")

        assert state.intent.type == "progress_tracking"
        assert state.intent.suggested_tools == ["track_learning_progress"]
        executor.execute.assert_called_once()
        assert executor.execute.call_args[0][0] == "track_learning_progress"
        assert state.status == AgentStatus.COMPLETED
        for fragment in ("42", "3", "10"):
            assert fragment in state.final_response

    def test_progress_question_with_real_tools(self, store, executor):
        """Test the same question against the learning tools and a stored path."""
        store.add_goal({"id": "goal_1", "title": "掌握 Python", "status": "active"})
        store.add_path(make_path("goal_1", completed=3, in_progress=1, not_started=6))

        state = run_agent_loop("我的学习进度如何？", executor)

        assert state.status == AgentStatus.COMPLETED
        assert "30%" in state.final_response
        assert "3/10" in state.final_response
        assert "有 1 个节点正在学习中" in state.final_response

    def test_tool_failure_gives_error_reply(self):
        executor = Mock()
        executor.execute.side_effect = ValueError("Learning path with id p1 not found")

        state = AgentOrchestrator(executor).run("我的学习进度如何？")

        assert state.status == AgentStatus.COMPLETED
        assert state.execution.success is False
        assert "我在处理您的请求时遇到了一些问题" in state.final_response
        assert state.get_execution_summary()["success"] is False

    def test_general_utterance_uses_fallback_tool(self, executor):
        state = AgentOrchestrator(executor).run("你好")

        assert state.intent.type == "general"
        assert state.execution.tools_used == ["suggest_next_action"]

    def test_classifier_failure_marks_error(self):
        classifier = Mock(side_effect=RuntimeError("classifier down"))

        state = AgentOrchestrator(Mock(), classifier=classifier).run("hi")

        assert state.status == AgentStatus.ERROR
        assert state.error_message == "classifier down"
        assert state.final_response is None

    def test_execution_summary(self):
        executor = Mock()
        executor.execute.return_value = {"overall_progress": 0, "completed_nodes": 0, "total_nodes": 3}

        summary = AgentOrchestrator(executor).run("我的学习进度如何？").get_execution_summary()

        assert summary["intent"] == "progress_tracking"
        assert summary["tools_used"] == ["track_learning_progress"]
        assert summary["success"] is True
        assert summary["execution_time"] >= 0
