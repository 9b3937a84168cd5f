"""
Unit Tests for the LLM Service

Tests the Gemini wrapper with the SDK patched out: configuration checks,
retry behaviour, plain calls and the function-calling chat loop.
"""

from types import SimpleNamespace
from unittest.mock import Mock, patch

import pytest

from ai.llm_service import (
    call_llm,
    chat_with_tools,
    health_check,
    is_retryable_error,
    retry_on_error,
)
from errors import ConfigurationError


def text_response(text):
    part = SimpleNamespace(text=text, function_call=None)
    return SimpleNamespace(
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))],
        usage_metadata=None,
        text=text,
    )


def call_response(*calls):
    parts = [
        SimpleNamespace(text="", function_call=SimpleNamespace(name=name, args=args))
        for name, args in calls
    ]
    return SimpleNamespace(
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))],
        usage_metadata=None,
        text="",
    )


@pytest.fixture
def mock_genai():
    """Gemini SDK with a configured key."""
    with patch("ai.llm_service.GOOGLE_API_KEY", "test-key"), \
            patch("ai.llm_service._configured", False), \
            patch("ai.llm_service.genai") as genai:
        yield genai


@pytest.fixture
def model(mock_genai):
    return mock_genai.GenerativeModel.return_value


@pytest.fixture
def chat(model):
    return model.start_chat.return_value


class TestConfiguration:
    """Test the lazy API key check."""

    def test_missing_key_raises(self):
        with patch("ai.llm_service.GOOGLE_API_KEY", None), patch("ai.llm_service.genai") as genai:
            with pytest.raises(ConfigurationError, match="GOOGLE_API_KEY"):
                call_llm("hi")

            genai.GenerativeModel.assert_not_called()

    def test_configures_once(self, mock_genai, model):
        model.generate_content.return_value = text_response("OK")

        call_llm("hi")
        call_llm("hi again")

        mock_genai.configure.assert_called_once_with(api_key="test-key")


class TestRetry:
    """Test retry_on_error and is_retryable_error."""

    @pytest.mark.parametrize("message,retryable", [
        ("429 Resource has been exhausted", True),
        ("Quota exceeded for this project", True),
        ("Deadline exceeded: timeout", True),
        ("503 Service Unavailable", True),
        ("400 Invalid argument", False),
        ("API key not valid", False),
    ])
    def test_retryable_errors(self, message, retryable):
        assert is_retryable_error(Exception(message)) is retryable

    @patch("ai.llm_service.time.sleep")
    def test_retries_with_backoff(self, mock_sleep):
        attempts = []

        @retry_on_error(max_retries=3, delay=1.0)
        def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise Exception("429 rate limit")
            return "ok"

        assert flaky() == "ok"
        assert len(attempts) == 3
        assert [c[0][0] for c in mock_sleep.call_args_list] == [1.0, 2.0]

    @patch("ai.llm_service.time.sleep")
    def test_gives_up_after_max_retries(self, mock_sleep):
        @retry_on_error(max_retries=2, delay=0.5)
        def always_busy():
            raise Exception("503 overloaded")

        with pytest.raises(Exception, match="503"):
            always_busy()
        assert mock_sleep.call_count == 1

    @patch("ai.llm_service.time.sleep")
    def test_non_retryable_raises_immediately(self, mock_sleep):
        @retry_on_error(max_retries=3, delay=1.0)
        def invalid():
            raise ValueError("400 bad request")

        with pytest.raises(ValueError):
            invalid()
        mock_sleep.assert_not_called()

    @patch("ai.llm_service.time.sleep")
    def test_configuration_error_not_retried(self, mock_sleep):
        @retry_on_error(max_retries=3, delay=1.0)
        def unconfigured():
            raise ConfigurationError("timeout while reading key")

        with pytest.raises(ConfigurationError):
            unconfigured()
        mock_sleep.assert_not_called()


class TestCallLLM:
    """Test call_llm."""

    def test_returns_text(self, mock_genai, model):
        model.generate_content.return_value = text_response("你好")

        assert call_llm("hi", system_instruction="be brief", temperature=0.2) == "你好"

        kwargs = mock_genai.GenerativeModel.call_args.kwargs
        assert kwargs["system_instruction"] == "be brief"
        assert kwargs["generation_config"].temperature == 0.2
        model.generate_content.assert_called_once_with("hi")

    def test_no_candidates(self, mock_genai, model):
        model.generate_content.return_value = SimpleNamespace(candidates=[], usage_metadata=None, text="")

        with pytest.raises(RuntimeError, match="No response candidates"):
            call_llm("hi")


class TestChatWithTools:
    """Test the function-calling chat loop."""

    def test_text_answer_without_tools(self, chat):
        chat.send_message.return_value = text_response("你好！")
        executor = Mock()

        result = chat_with_tools("你好", "学习系统状态：", [], executor)

        assert result == {"response": "你好！", "tool_calls": []}
        chat.send_message.assert_called_once_with("学习系统状态：\n\n用户消息：你好")
        executor.execute.assert_not_called()

    def test_executes_tool_calls(self, mock_genai, chat):
        """Test a tool call is executed and its result sent back to the model."""
        chat.send_message.side_effect = [
            call_response(("track_learning_progress", {"path_id": "path_1"})),
            text_response("您的进度是 42%。"),
        ]
        executor = Mock()
        executor.execute.return_value = {"overall_progress": 42}

        result = chat_with_tools("我的学习进度如何？", "", [], executor)

        assert result == {
            "response": "您的进度是 42%。",
            "tool_calls": [
                {"name": "track_learning_progress", "arguments": {"path_id": "path_1"}, "success": True},
            ],
        }
        executor.execute.assert_called_once_with("track_learning_progress", {"path_id": "path_1"})
        mock_genai.protos.FunctionResponse.assert_called_once_with(
            name="track_learning_progress",
            response={"result": {"overall_progress": 42}},
        )
        assert chat.send_message.call_count == 2

    def test_tool_error_sent_as_payload(self, mock_genai, chat):
        chat.send_message.side_effect = [
            call_response(("create_learning_goal", {})),
            text_response("请告诉我目标名称。"),
        ]
        executor = Mock()
        executor.execute.side_effect = ValueError("title is required")

        result = chat_with_tools("帮我定目标", "", [], executor)

        assert result["tool_calls"] == [{"name": "create_learning_goal", "arguments": {}, "success": False}]
        mock_genai.protos.FunctionResponse.assert_called_once_with(
            name="create_learning_goal",
            response={"error": "title is required"},
        )

    def test_stops_after_max_rounds(self, chat):
        chat.send_message.return_value = call_response(("suggest_next_action", {}))
        executor = Mock()
        executor.execute.return_value = {}

        result = chat_with_tools("下一步？", "", [], executor, max_rounds=2)

        assert len(result["tool_calls"]) == 2
        assert result["response"] == ""
        assert chat.send_message.call_count == 3


class TestHealthCheck:
    """Test health_check."""

    @patch("ai.llm_service.get_langfuse_client", return_value=None)
    @patch("ai.llm_service.call_llm", return_value="OK")
    def test_healthy(self, mock_call, mock_langfuse):
        status = health_check()

        assert status["gemini_api"] == "✅ healthy"
        assert status["langfuse"] == "➖ disabled"

    @patch("ai.llm_service.get_langfuse_client", return_value=None)
    @patch("ai.llm_service.call_llm", side_effect=ConfigurationError("no key"))
    def test_not_configured(self, mock_call, mock_langfuse):
        assert health_check()["gemini_api"] == "❌ not configured: no key"
