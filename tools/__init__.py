"""
Function Calling Tools Module

This module contains all tools (functions) that the agent can invoke, either
through the rule-based coordinator or through Gemini function calling. These
are the "hands" of the agent - the actions it can take on the learner's
profile.

Each tool is designed to:
- Have a clear, single purpose
- Accept JSON-shaped keyword parameters
- Return a JSON-shaped dict
- Raise on bad input so the caller can record the failure

Tools are bound to a profile store in get_tool_registry() and dispatched by
ToolExecutor.
"""

import logging
import threading
from functools import partial
from typing import Any, Callable, Dict, List, Optional

from errors import ToolNotFoundError

from .learning_tools import (
    get_learning_goals,
    get_learning_paths,
    get_course_units,
    get_learning_summary,
    get_learning_context,
    track_learning_progress,
    suggest_next_action,
    analyze_user_ability,
    handle_learning_difficulty,
    adjust_learning_pace,
    recommend_study_schedule,
    create_learning_goal,
    create_learning_path,
    generate_path_nodes,
    create_course_unit,
)

logger = logging.getLogger(__name__)


# Tool registry for the agent
def get_tool_registry(store) -> Dict[str, Callable[..., Dict[str, Any]]]:
    """
    Get the complete registry of available tools, bound to a profile store.

    Args:
        store: ProfileStore the tools read from and write to

    Returns:
        Dictionary mapping tool names to callables taking keyword parameters
    """
    tools = [
        # Query tools
        get_learning_goals,
        get_learning_paths,
        get_course_units,
        get_learning_summary,
        get_learning_context,
        track_learning_progress,

        # Analysis tools
        suggest_next_action,
        analyze_user_ability,

        # Help tools
        handle_learning_difficulty,
        adjust_learning_pace,
        recommend_study_schedule,

        # Creation tools
        create_learning_goal,
        create_learning_path,
        generate_path_nodes,
        create_course_unit,
    ]
    return {tool.__name__: partial(tool, store) for tool in tools}


class ToolExecutor:
    """
    Dispatches tool calls by name.

    Parameters whose value is None are treated as omitted so each tool's
    own defaults apply.

    Args:
        registry: Tool name -> callable (see get_tool_registry)
        store: ProfileStore the tools write to; when given, a call made with
            a cancellation event cannot write once the event is set
    """

    def __init__(self, registry: Dict[str, Callable[..., Dict[str, Any]]], store=None):
        self.registry = registry
        self.store = store

    @property
    def tool_names(self) -> List[str]:
        return list(self.registry)

    def execute(
        self,
        tool_name: str,
        parameters: Optional[Dict[str, Any]] = None,
        cancelled: Optional[threading.Event] = None,
    ) -> Dict[str, Any]:
        """
        Run a tool.

        Args:
            tool_name: Registered tool name
            parameters: Keyword parameters for the tool
            cancelled: Set by the caller when it stops waiting for this call

        Raises:
            ToolNotFoundError: If the tool is not registered
            Exception: Whatever the tool itself raises
        """
        tool = self.registry.get(tool_name)
        if tool is None:
            logger.error(f"❌ Unknown tool: {tool_name}")
            raise ToolNotFoundError(tool_name)

        kwargs = {key: value for key, value in (parameters or {}).items() if value is not None}
        logger.info(f"🔧 Executing tool: {tool_name}")
        logger.debug(f"   Parameters: {kwargs}")
        if cancelled is None or self.store is None:
            return tool(**kwargs)
        with self.store.write_guard(cancelled):
            return tool(**kwargs)


__all__ = [
    # Query tools
    "get_learning_goals",
    "get_learning_paths",
    "get_course_units",
    "get_learning_summary",
    "get_learning_context",
    "track_learning_progress",

    # Analysis tools
    "suggest_next_action",
    "analyze_user_ability",

    # Help tools
    "handle_learning_difficulty",
    "adjust_learning_pace",
    "recommend_study_schedule",

    # Creation tools
    "create_learning_goal",
    "create_learning_path",
    "generate_path_nodes",
    "create_course_unit",

    # Registry
    "get_tool_registry",
    "ToolExecutor",
]
