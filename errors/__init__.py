"""
Error Types Module

Typed exceptions shared by every layer of the learning agent.
"""

from .exceptions import (
    AgentCoreError,
    JSONRecoveryError,
    AssessmentParseError,
    StrategyParseError,
    ToolError,
    ToolNotFoundError,
    WriteCancelledError,
    ConfigurationError,
)

__all__ = [
    "AgentCoreError",
    "JSONRecoveryError",
    "AssessmentParseError",
    "StrategyParseError",
    "ToolError",
    "ToolNotFoundError",
    "WriteCancelledError",
    "ConfigurationError",
]
