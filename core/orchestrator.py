"""
Agent Orchestrator - Rule-based agent loop

Implements the agentic workflow for one user turn:
1. Observe: Classify the utterance into an intent
2. Act: Run each suggested tool with synthesized parameters
3. Respond: Render the first tool result into a reply

Tool failures are isolated: one failing (or timed out) tool is recorded as
an error and the remaining tools still run. Results always follow the
intent's suggested tool order, even when tools run concurrently. A timed
out call is abandoned: its cancellation event is set, and an executor bound
to a store refuses any write the call attempts afterwards.
"""

import time
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from .router import Intent, classify_intent
from .parameters import synthesize_parameters
from .responder import synthesize_response

logger = logging.getLogger(__name__)


# ============================================================================
# DATA STRUCTURES
# ============================================================================

class AgentStatus(Enum):
    """Agent execution status."""
    IDLE = "idle"
    THINKING = "thinking"
    CALLING_TOOL = "calling_tool"
    SYNTHESIZING = "synthesizing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class ToolExecutionResult:
    """
    Aggregate outcome of running an intent's tools.

    Attributes:
        success: True only when no tool failed
        results: Results of the tools that succeeded, in suggested order
        tools_used: Names of the tools that succeeded (parallel to results)
        errors: "tool_name: message" for every failed tool
    """
    success: bool
    results: List[Any] = field(default_factory=list)
    tools_used: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass
class AgentState:
    """
    State of one agent turn.

    Tracks the intent, tool execution, reply and timing.
    """
    utterance: str
    context: Dict[str, Any] = field(default_factory=dict)

    intent: Optional[Intent] = None
    execution: Optional[ToolExecutionResult] = None

    status: AgentStatus = AgentStatus.IDLE
    final_response: Optional[str] = None
    error_message: Optional[str] = None

    start_time: float = field(default_factory=time.time)
    total_execution_time: float = 0.0

    def get_execution_summary(self) -> Dict[str, Any]:
        """Get a summary of the execution."""
        return {
            "intent": self.intent.type if self.intent else "unknown",
            "confidence": self.intent.confidence if self.intent else 0.0,
            "status": self.status.value,
            "tools_used": list(self.execution.tools_used) if self.execution else [],
            "errors": list(self.execution.errors) if self.execution else [],
            "success": self.status == AgentStatus.COMPLETED and bool(self.execution and self.execution.success),
            "execution_time": self.total_execution_time,
        }


# ============================================================================
# TOOL COORDINATOR
# ============================================================================

class ToolCoordinator:
    """
    Runs an intent's suggested tools and aggregates partial success.

    Args:
        tool_executor: Object with execute(tool_name, parameters); given a
            timeout or several workers it is also passed cancelled=<Event>
        timeout: Seconds to wait for each tool (None waits indefinitely)
        max_workers: Tools allowed to run at once (1 runs them one by one)
    """

    def __init__(self, tool_executor, timeout: Optional[float] = None, max_workers: int = 1):
        self.tool_executor = tool_executor
        self.timeout = timeout
        self.max_workers = max(1, max_workers)

    def _invoke(
        self,
        tool_name: str,
        utterance: str,
        context: Dict[str, Any],
        cancelled: Optional[threading.Event] = None,
    ) -> Any:
        parameters = synthesize_parameters(tool_name, utterance, context)
        if cancelled is None:
            return self.tool_executor.execute(tool_name, parameters)
        return self.tool_executor.execute(tool_name, parameters, cancelled=cancelled)

    def _call_directly(self, tool_name: str, utterance: str, context: Dict[str, Any]) -> Tuple[bool, Any]:
        try:
            return True, self._invoke(tool_name, utterance, context)
        except Exception as e:
            logger.error(f"❌ Tool {tool_name} failed: {e}", exc_info=True)
            return False, str(e)

    def _wait(self, tool_name: str, future, cancelled: threading.Event) -> Tuple[bool, Any]:
        try:
            return True, future.result(timeout=self.timeout)
        except FutureTimeoutError:
            cancelled.set()
            logger.error(f"⏰ Tool {tool_name} timed out after {self.timeout}s")
            return False, f"timed out after {self.timeout}s"
        except Exception as e:
            logger.error(f"❌ Tool {tool_name} failed: {e}", exc_info=True)
            return False, str(e)

    def _dispatch(self, tool_names: List[str], utterance: str, context: Dict[str, Any]) -> List[Tuple[bool, Any]]:
        parallel = self.max_workers > 1
        # One thread per tool in sequential mode, so a hung tool cannot block the next
        pool = ThreadPoolExecutor(
            max_workers=self.max_workers if parallel else len(tool_names),
            thread_name_prefix="tool",
        )
        events = [threading.Event() for _ in tool_names]
        try:
            if parallel:
                futures = [
                    pool.submit(self._invoke, name, utterance, context, event)
                    for name, event in zip(tool_names, events)
                ]
                return [
                    self._wait(name, future, event)
                    for name, future, event in zip(tool_names, futures, events)
                ]

            outcomes = []
            for name, event in zip(tool_names, events):
                future = pool.submit(self._invoke, name, utterance, context, event)
                outcomes.append(self._wait(name, future, event))
            return outcomes
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

    def execute_intent(
        self,
        intent: Intent,
        utterance: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> ToolExecutionResult:
        """
        Run every suggested tool of an intent.

        Args:
            intent: Classified intent
            utterance: The user's message (used for parameter synthesis)
            context: Conversation context

        Returns:
            ToolExecutionResult in suggested tool order
        """
        context = context or {}
        tool_names = list(intent.suggested_tools)

        if self.timeout is None and self.max_workers == 1:
            outcomes = [self._call_directly(name, utterance, context) for name in tool_names]
        elif tool_names:
            outcomes = self._dispatch(tool_names, utterance, context)
        else:
            outcomes = []

        execution = ToolExecutionResult(success=True)
        for name, (ok, value) in zip(tool_names, outcomes):
            if ok:
                execution.results.append(value)
                execution.tools_used.append(name)
            else:
                execution.errors.append(f"{name}: {value}")
        execution.success = not execution.errors

        logger.info(
            f"🔧 Ran {len(tool_names)} tool(s): "
            f"{len(execution.tools_used)} succeeded, {len(execution.errors)} failed"
        )
        return execution


# ============================================================================
# AGENT ORCHESTRATOR
# ============================================================================

class AgentOrchestrator:
    """
    Rule-based agent: classify, run tools, render.

    Args:
        tool_executor: Object with execute(tool_name, parameters)
        timeout: Per-tool timeout in seconds
        max_workers: Concurrent tool dispatch (1 = sequential)
        classifier: Intent classifier (defaults to the keyword table)
    """

    def __init__(
        self,
        tool_executor,
        timeout: Optional[float] = None,
        max_workers: int = 1,
        classifier: Callable[..., Intent] = classify_intent,
    ):
        self.coordinator = ToolCoordinator(tool_executor, timeout=timeout, max_workers=max_workers)
        self.classifier = classifier

    def run(self, utterance: str, context: Optional[Dict[str, Any]] = None) -> AgentState:
        """
        Execute one turn.

        Errors raised by classification or rendering mark the state as
        ERROR with error_message set; tool failures never do.

        Returns:
            AgentState with intent, execution and final response
        """
        state = AgentState(utterance=utterance, context=context or {})

        try:
            # Step 1: Observe - Classify intent
            state.status = AgentStatus.THINKING
            state.intent = self.classifier(utterance, state.context)

            # Step 2: Act - Run the suggested tools
            state.status = AgentStatus.CALLING_TOOL
            state.execution = self.coordinator.execute_intent(state.intent, utterance, state.context)

            # Step 3: Respond - Render the reply
            state.status = AgentStatus.SYNTHESIZING
            state.final_response = synthesize_response(state.intent, state.execution, utterance)
            state.status = AgentStatus.COMPLETED

            logger.info(f"✅ Agent completed with {len(state.execution.tools_used)} tool call(s)")

        except Exception as e:
            logger.error(f"❌ Agent execution failed: {e}", exc_info=True)
            state.status = AgentStatus.ERROR
            state.error_message = str(e)

        state.total_execution_time = time.time() - state.start_time
        return state


# ============================================================================
# CONVENIENCE FUNCTION
# ============================================================================

def run_agent_loop(
    utterance: str,
    tool_executor,
    context: Optional[Dict[str, Any]] = None,
    timeout: Optional[float] = None,
    max_workers: int = 1,
) -> AgentState:
    """
    Convenience function to run one agent turn.

    Args:
        utterance: User's input message
        tool_executor: Object with execute(tool_name, parameters)
        context: Conversation context
        timeout: Per-tool timeout in seconds
        max_workers: Concurrent tool dispatch

    Returns:
        Final AgentState with results
    """
    orchestrator = AgentOrchestrator(tool_executor, timeout=timeout, max_workers=max_workers)
    return orchestrator.run(utterance, context)
