"""
Core Agent Logic Module

This module contains the brain of the learning agent:
- Intent classification (router): Understands what the user wants
- Parameter synthesis: Builds arguments for each suggested tool
- Tool coordination and orchestration: Runs tools, isolates failures
- Response synthesis: Turns tool results into a reply
- Learning status: Derives the learner's phase and data health

A turn flows utterance -> intent -> tool calls -> reply, with every step
deterministic and auditable.
"""

from .router import (
    IntentDefinition,
    Intent,
    INTENT_DEFINITIONS,
    classify_intent,
    get_intent_description,
    extract_tools_from_message,
)

from .parameters import (
    synthesize_parameters,
    infer_pace_adjustment,
    infer_preferred_solution,
)

from .responder import (
    render_response,
    synthesize_response,
)

from .orchestrator import (
    AgentStatus,
    ToolExecutionResult,
    ToolCoordinator,
    AgentOrchestrator,
    AgentState,
    run_agent_loop,
)

from .status import (
    SystemStatus,
    SystemHealth,
    LearningStatusManager,
    determine_phase,
    get_default_next_actions,
)

__all__ = [
    # Router
    "IntentDefinition",
    "Intent",
    "INTENT_DEFINITIONS",
    "classify_intent",
    "get_intent_description",
    "extract_tools_from_message",

    # Parameters
    "synthesize_parameters",
    "infer_pace_adjustment",
    "infer_preferred_solution",

    # Responder
    "render_response",
    "synthesize_response",

    # Orchestrator
    "AgentStatus",
    "ToolExecutionResult",
    "ToolCoordinator",
    "AgentOrchestrator",
    "AgentState",
    "run_agent_loop",

    # Status
    "SystemStatus",
    "SystemHealth",
    "LearningStatusManager",
    "determine_phase",
    "get_default_next_actions",
]
