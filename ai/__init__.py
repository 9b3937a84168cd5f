"""
AI Infrastructure Module

This module provides the LLM infrastructure for the learning agent:
- Gemini API client with error handling and retry logic
- Langfuse observability integration
- Token usage tracking
- Function calling, including the multi-round chat-with-tools loop

All LLM calls should go through this module to ensure consistent
observability, error handling, and configuration.
"""

from .llm_service import (
    # Main LLM functions
    call_llm,
    call_llm_with_tools,
    chat_with_tools,

    # Utility functions
    retry_on_error,
    is_retryable_error,
    health_check,

    # Observability
    get_langfuse_client,
)

__all__ = [
    "call_llm",
    "call_llm_with_tools",
    "chat_with_tools",
    "retry_on_error",
    "is_retryable_error",
    "health_check",
    "get_langfuse_client",
]
