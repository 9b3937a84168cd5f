"""
Domain exceptions for the learning agent.

These let the services and the chat coordinator tell apart:
- Unrecoverable LLM output (JSON recovery, assessment and strategy parsing)
- Tool execution failures and unknown tools
- Store writes from a tool call that was abandoned
- Missing configuration (API credentials)
"""

from typing import Optional


class AgentCoreError(Exception):
    """Base class for all learning agent errors."""


# ============================================================================
# LLM OUTPUT ERRORS
# ============================================================================

class JSONRecoveryError(AgentCoreError):
    """
    No JSON object could be recovered from a block of LLM text.

    Attributes:
        text: The text the last parse attempt ran against
        position: Character offset reported by the decoder (if any)
        snippet: Slice of text around the offset, for diagnostics
    """

    def __init__(
        self,
        message: str,
        text: str = "",
        position: Optional[int] = None,
        snippet: str = "",
    ):
        self.text = text
        self.position = position
        self.snippet = snippet
        detail = f" near: {snippet!r}" if snippet else ""
        super().__init__(f"{message}{detail}")


class AssessmentParseError(AgentCoreError):
    """The LLM assessment response could not be turned into an assessment."""

    def __init__(self, message: str, raw_text: str = ""):
        self.raw_text = raw_text
        super().__init__(message)


class StrategyParseError(AgentCoreError):
    """The LLM improvement strategy is unreadable or lacks required goal lists."""

    def __init__(self, message: str, raw_text: str = ""):
        self.raw_text = raw_text
        super().__init__(message)


# ============================================================================
# TOOL ERRORS
# ============================================================================

class ToolError(AgentCoreError):
    """A tool raised while executing."""

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        super().__init__(f"Tool '{tool_name}' failed: {message}")


class ToolNotFoundError(ToolError):
    """The requested tool is not in the registry."""

    def __init__(self, tool_name: str):
        super().__init__(tool_name, "not found in registry")


# ============================================================================
# STORE ERRORS
# ============================================================================

class WriteCancelledError(AgentCoreError):
    """A store write was refused because the tool call that made it was abandoned."""


# ============================================================================
# CONFIGURATION
# ============================================================================

class ConfigurationError(AgentCoreError):
    """Required configuration (e.g. GOOGLE_API_KEY) is missing or invalid."""
