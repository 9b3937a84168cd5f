"""
LLM Service - Gemini API Wrapper with Langfuse Observability

This service provides the learning agent's interface to Google's Gemini API:
- Automatic retry logic with exponential backoff
- Langfuse tracing for LLM calls (when enabled and keys are configured)
- Token usage tracking
- Function calling, including a multi-round chat loop that executes the
  model's tool calls and feeds the results back

The API key is checked lazily: importing this module never fails, the first
call without GOOGLE_API_KEY raises ConfigurationError.
"""

import time
import logging
from functools import wraps
from typing import Any, Dict, List, Optional

import google.generativeai as genai
from google.generativeai.types import GenerationConfig, HarmCategory, HarmBlockThreshold
from langfuse import Langfuse, observe

from config import (
    GOOGLE_API_KEY,
    GEMINI_MODEL,
    SYSTEM_PROMPT,
    TEMPERATURE,
    MAX_TOKENS,
    TOP_P,
    TOP_K,
    MAX_RETRIES,
    RETRY_DELAY,
    MAX_TOOL_ROUNDS,
    LANGFUSE_PUBLIC_KEY,
    LANGFUSE_SECRET_KEY,
    LANGFUSE_HOST,
    LANGFUSE_ENABLED,
)
from errors import ConfigurationError

logger = logging.getLogger(__name__)

# ============================================================================
# INITIALIZATION
# ============================================================================

_configured = False
_langfuse_client: Optional[Langfuse] = None


def _ensure_configured() -> None:
    """Configure the Gemini SDK on first use."""
    global _configured

    if not GOOGLE_API_KEY:
        raise ConfigurationError(
            "GOOGLE_API_KEY not found in environment variables. "
            "Please create a .env file with your API key."
        )
    if not _configured:
        genai.configure(api_key=GOOGLE_API_KEY)
        _configured = True


def get_langfuse_client() -> Optional[Langfuse]:
    """Get the Langfuse client, creating it on first use (None when disabled)."""
    global _langfuse_client

    if not LANGFUSE_ENABLED:
        return None
    if _langfuse_client is None:
        try:
            _langfuse_client = Langfuse(
                public_key=LANGFUSE_PUBLIC_KEY,
                secret_key=LANGFUSE_SECRET_KEY,
                host=LANGFUSE_HOST,
            )
            logger.info("✅ Langfuse observability initialized")
        except Exception as e:
            logger.warning(f"⚠️  Langfuse initialization failed: {e}. Continuing without tracing.")
            return None
    return _langfuse_client


def traced(name: str):
    """Wrap a function in a Langfuse observation when tracing is enabled."""
    def decorator(func):
        if not LANGFUSE_ENABLED:
            return func
        return observe(name=name, as_type="generation")(func)
    return decorator


def _record_usage(response, model_name: str, latency: float) -> None:
    usage = getattr(response, "usage_metadata", None)
    if usage is None:
        return

    client = get_langfuse_client()
    if client:
        client.update_current_generation(
            model=model_name,
            usage_details={
                "input": usage.prompt_token_count,
                "output": usage.candidates_token_count,
                "total": usage.total_token_count,
            },
        )

    logger.debug(
        f"📊 Tokens: {usage.prompt_token_count} in, "
        f"{usage.candidates_token_count} out, "
        f"⏱️  {latency:.2f}s"
    )


# ============================================================================
# SAFETY SETTINGS
# ============================================================================

SAFETY_SETTINGS = {
    HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
}


# ============================================================================
# GENERATION CONFIGURATION
# ============================================================================

def get_generation_config(
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> GenerationConfig:
    """
    Create a generation configuration for Gemini API calls.

    Args:
        temperature: Sampling temperature (0.0 - 2.0). Defaults to config value.
        max_tokens: Maximum tokens to generate. Defaults to config value.

    Returns:
        GenerationConfig object
    """
    return GenerationConfig(
        temperature=TEMPERATURE if temperature is None else temperature,
        max_output_tokens=max_tokens or MAX_TOKENS,
        top_p=TOP_P,
        top_k=TOP_K,
    )


def _build_model(
    model_name: Optional[str],
    system_instruction: Optional[str],
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    tools: Optional[List[Dict]] = None,
):
    _ensure_configured()
    kwargs = {
        "model_name": model_name or GEMINI_MODEL,
        "generation_config": get_generation_config(temperature, max_tokens),
        "safety_settings": SAFETY_SETTINGS,
        "system_instruction": system_instruction,
    }
    if tools:
        kwargs["tools"] = tools
    return genai.GenerativeModel(**kwargs)


# ============================================================================
# RETRY DECORATOR
# ============================================================================

def is_retryable_error(error: Exception) -> bool:
    """Rate limits, quota, timeouts and 5xx/429 responses are worth retrying."""
    message = str(error).lower()
    return any([
        "rate limit" in message,
        "quota" in message,
        "timeout" in message,
        "503" in message,
        "429" in message,
        "500" in message,
    ])


def retry_on_error(max_retries: int = MAX_RETRIES, delay: float = RETRY_DELAY):
    """
    Decorator to retry function calls on retryable errors.
    Implements exponential backoff.

    Args:
        max_retries: Maximum number of attempts
        delay: Initial delay between retries (seconds)
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            current_delay = delay

            for attempt in range(1, max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except ConfigurationError:
                    raise
                except Exception as e:
                    if not is_retryable_error(e) or attempt >= max_retries:
                        logger.error(f"❌ {func.__name__} failed: {type(e).__name__}: {e}")
                        raise

                    logger.warning(
                        f"⚠️  {func.__name__} failed (attempt {attempt}/{max_retries}): "
                        f"{type(e).__name__}. Retrying in {current_delay}s..."
                    )
                    time.sleep(current_delay)
                    current_delay *= 2

        return wrapper
    return decorator


# ============================================================================
# RESPONSE PARSING
# ============================================================================

def _to_plain(value: Any) -> Any:
    """Convert proto map/repeated values from function call args into dicts and lists."""
    if isinstance(value, (str, bytes, int, float, bool)) or value is None:
        return value
    if hasattr(value, "items"):
        return {key: _to_plain(item) for key, item in value.items()}
    if hasattr(value, "__iter__"):
        return [_to_plain(item) for item in value]
    return value


def _response_parts(response) -> List[Any]:
    if not response.candidates:
        return []
    content = response.candidates[0].content
    return list(content.parts) if content and content.parts else []


def _extract_function_calls(response) -> List[Dict[str, Any]]:
    calls = []
    for part in _response_parts(response):
        function_call = getattr(part, "function_call", None)
        if function_call and function_call.name:
            calls.append({
                "name": function_call.name,
                "args": _to_plain(function_call.args) if function_call.args else {},
            })
    return calls


def _extract_text(response) -> str:
    texts = [part.text for part in _response_parts(response) if getattr(part, "text", None)]
    return "".join(texts)


# ============================================================================
# CORE LLM FUNCTIONS
# ============================================================================

@traced("call_llm")
@retry_on_error()
def call_llm(
    prompt: str,
    system_instruction: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    model_name: Optional[str] = None,
) -> str:
    """
    Make a basic LLM call to Gemini API.

    Args:
        prompt: The user prompt/query
        system_instruction: System prompt to set agent behavior
        temperature: Sampling temperature (overrides default)
        max_tokens: Max output tokens (overrides default)
        model_name: Model to use (overrides default)

    Returns:
        Generated text response

    Raises:
        ConfigurationError: If GOOGLE_API_KEY is missing
        Exception: If the API call fails after retries
    """
    model = _build_model(model_name, system_instruction, temperature, max_tokens)

    start_time = time.time()
    response = model.generate_content(prompt)
    latency = time.time() - start_time

    if not response.candidates:
        raise RuntimeError("No response candidates returned from Gemini API")

    _record_usage(response, model_name or GEMINI_MODEL, latency)
    return response.text


@traced("call_llm_with_tools")
@retry_on_error()
def call_llm_with_tools(
    prompt: str,
    tools: List[Dict],
    system_instruction: Optional[str] = None,
    temperature: Optional[float] = None,
    model_name: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Make a single LLM call with function calling enabled.

    Args:
        prompt: The user prompt/query
        tools: Function declaration dicts
        system_instruction: System prompt
        temperature: Sampling temperature
        model_name: Model to use

    Returns:
        Dict with:
            - response_text: The text response ("" if the model only called tools)
            - tool_calls: [{"name", "args"}] requested by the model
            - latency: Seconds spent in the API call
    """
    model = _build_model(model_name, system_instruction, temperature, tools=tools)

    start_time = time.time()
    response = model.generate_content(prompt)
    latency = time.time() - start_time

    _record_usage(response, model_name or GEMINI_MODEL, latency)
    result = {
        "response_text": _extract_text(response),
        "tool_calls": _extract_function_calls(response),
        "latency": latency,
    }
    logger.debug(f"🔧 Tool call: {len(result['tool_calls'])} functions, ⏱️  {latency:.2f}s")
    return result


@retry_on_error()
def _send(chat, content):
    return chat.send_message(content)


@traced("chat_with_tools")
def chat_with_tools(
    message: str,
    context_info: str,
    tools: List[Dict],
    tool_executor,
    max_rounds: int = MAX_TOOL_ROUNDS,
    system_instruction: Optional[str] = SYSTEM_PROMPT,
    model_name: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Chat with the model, executing any tools it calls.

    Each round, every function call in the model's reply is executed through
    the tool executor and the results (or error payloads) are sent back. The
    loop ends when the model answers in text or max_rounds is reached.

    Args:
        message: The user's message
        context_info: Learner context text prepended to the message
        tools: Function declaration dicts the model may call
        tool_executor: Object with execute(tool_name, parameters)
        max_rounds: Maximum tool-call rounds
        system_instruction: System prompt
        model_name: Model to use

    Returns:
        {"response": str, "tool_calls": [{"name", "arguments", "success"}]}
    """
    model = _build_model(model_name, system_instruction, tools=tools)
    chat = model.start_chat()

    prompt = f"{context_info}\n\n用户消息：{message}" if context_info else message
    response = _send(chat, prompt)
    tool_calls: List[Dict[str, Any]] = []

    for round_num in range(1, max_rounds + 1):
        calls = _extract_function_calls(response)
        if not calls:
            break

        logger.info(f"🔧 Round {round_num}: model requested {[call['name'] for call in calls]}")
        parts = []
        for call in calls:
            try:
                result = tool_executor.execute(call["name"], call["args"])
                payload = {"result": result}
                success = True
            except Exception as e:
                logger.warning(f"⚠️  Tool {call['name']} failed during chat: {e}")
                payload = {"error": str(e)}
                success = False

            tool_calls.append({"name": call["name"], "arguments": call["args"], "success": success})
            parts.append(genai.protos.Part(
                function_response=genai.protos.FunctionResponse(name=call["name"], response=payload)
            ))

        response = _send(chat, parts)
    else:
        if _extract_function_calls(response):
            logger.warning(f"⚠️  Reached max tool rounds ({max_rounds}); returning partial answer")

    return {"response": _extract_text(response), "tool_calls": tool_calls}


# ============================================================================
# HEALTH CHECK
# ============================================================================

def health_check() -> Dict[str, Any]:
    """
    Perform a health check on the LLM service.

    Returns:
        Dict with service status information
    """
    status = {
        "gemini_api": "unknown",
        "langfuse": "unknown",
        "model": GEMINI_MODEL,
    }

    try:
        test_response = call_llm("Say 'OK' if you can read this.", temperature=0.0)
        status["gemini_api"] = "✅ healthy" if "ok" in test_response.lower() else "⚠️  degraded"
    except ConfigurationError as e:
        status["gemini_api"] = f"❌ not configured: {e}"
    except Exception as e:
        status["gemini_api"] = f"❌ error: {str(e)[:100]}"

    client = get_langfuse_client()
    if client:
        try:
            client.flush()
            status["langfuse"] = "✅ connected"
        except Exception as e:
            status["langfuse"] = f"⚠️  {str(e)[:50]}"
    else:
        status["langfuse"] = "➖ disabled"

    return status
