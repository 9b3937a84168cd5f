"""
JSON recovery for LLM output.

LLM responses are supposed to carry one JSON object, usually inside a
```json fence, but frequently arrive truncated or slightly malformed. This
module finds candidate spans, applies textual repairs, and parses the first
candidate that yields an object.

Repairs that change the payload (completing literals, closing brackets,
closing strings, stubbing an incomplete report) mark the result as lossy so
callers can tell a clean parse from a patched one.
"""

import json
import re
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from errors import JSONRecoveryError

logger = logging.getLogger(__name__)

SNIPPET_RADIUS = 60

REPORT_STUB = (
    '"report": {"summary": "解析中断，请重试", '
    '"strengths": [], "improvements": [], "recommendations": []}'
)

# Repairs that alter structure rather than just syntax
LOSSY_REPAIRS = {"report_stub", "close_string", "close_brackets", "complete_literal"}

_JSON_FENCE = re.compile(r"```json\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_ANY_FENCE = re.compile(r"```[A-Za-z0-9_-]*[ \t]*\n?(.*?)```", re.DOTALL)

_TRUNCATED_LITERALS = [
    (re.compile(r"(:\s*)(?:fals|fal|fa|f)\s*$"), "false"),
    (re.compile(r"(:\s*)(?:tru|tr|t)\s*$"), "true"),
    (re.compile(r"(:\s*)(?:nul|nu|n)\s*$"), "null"),
]

_MISSING_COMMAS = [
    (re.compile(r'"\s*\n\s*"'), '",\n"'),
    (re.compile(r'}\s*\n\s*"'), '},\n"'),
    (re.compile(r']\s*\n\s*"'), '],\n"'),
]

_INCOMPLETE_REPORT = re.compile(r'"report"\s*:\s*\{[^}]*$', re.DOTALL)


@dataclass
class RecoveryResult:
    """
    Outcome of a successful recovery.

    Attributes:
        data: The parsed JSON object
        source: Which extraction strategy produced the winning candidate
        repairs: Repair steps applied to the candidate, in order
        lossy: True when the structure was patched (brackets, strings, stubs)
    """
    data: Dict[str, Any]
    source: str
    repairs: List[str] = field(default_factory=list)
    lossy: bool = False


# ============================================================================
# CANDIDATE EXTRACTION
# ============================================================================

def _balanced_spans(text: str) -> List[str]:
    """Return every top-level {...} span, skipping braces inside strings."""
    spans = []
    depth = 0
    start = -1
    in_string = False
    escaped = False

    for i, ch in enumerate(text):
        if depth > 0 and in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"' and depth > 0:
            in_string = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                spans.append(text[start:i + 1])

    return spans


def _collect_candidates(text: str) -> List[Tuple[str, str]]:
    """Gather (source, candidate) pairs in priority order, without duplicates."""
    found: List[Tuple[str, str]] = []
    seen = set()

    def add(source: str, candidate: str) -> None:
        candidate = candidate.strip()
        if candidate and candidate not in seen:
            seen.add(candidate)
            found.append((source, candidate))

    # Fences tagged json
    for match in _JSON_FENCE.finditer(text):
        add("json_fence", match.group(1))

    lowered = text.lower()
    opener = lowered.find("```json")
    if opener != -1:
        body_start = opener + len("```json")
        closer = text.rfind("```")
        if closer >= body_start:
            # Outermost fence: nested fences inside the payload survive
            add("json_fence_outer", text[body_start:closer])
        else:
            add("json_fence_open", text[body_start:])

    # Any other fence holding an object
    for match in _ANY_FENCE.finditer(text):
        if "{" in match.group(1):
            add("fence", match.group(1))

    # Raw spans
    first = text.find("{")
    last = text.rfind("}")
    if first != -1 and last > first:
        add("brace_span", text[first:last + 1])

    for span in _balanced_spans(text):
        add("balanced_span", span)

    if first != -1:
        add("brace_tail", text[first:])

    return found


def extract_json_candidates(text: str) -> List[str]:
    """
    List candidate JSON texts found in an LLM response.

    Order: json-tagged fences, the outermost json fence, an unterminated json
    fence, other fences containing '{', the widest brace span, each balanced
    top-level span, and finally the tail from the first '{'.

    Args:
        text: Raw LLM output

    Returns:
        Candidate strings, highest priority first
    """
    return [candidate for _, candidate in _collect_candidates(text)]


# ============================================================================
# TEXT REPAIR
# ============================================================================

def _scan_brackets(text: str) -> Tuple[List[str], bool]:
    """Return (unclosed openers, ends inside a string)."""
    stack: List[str] = []
    in_string = False
    escaped = False

    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append(ch)
        elif ch in "}]":
            if stack and ((ch == "}" and stack[-1] == "{") or (ch == "]" and stack[-1] == "[")):
                stack.pop()

    return stack, in_string


def repair_json_text(text: str) -> Tuple[str, List[str]]:
    """
    Apply textual repairs to a JSON candidate.

    Args:
        text: Candidate JSON text

    Returns:
        Tuple of (repaired text, names of repairs applied)
    """
    repairs: List[str] = []
    fixed = text.strip()

    stripped = re.sub(r"^```(?:json)?\s*", "", fixed, flags=re.IGNORECASE)
    stripped = re.sub(r"\s*```$", "", stripped)
    if stripped != fixed:
        repairs.append("strip_fence")
        fixed = stripped

    # Only a literal cut off at the very end, and never inside a string
    for pattern, literal in _TRUNCATED_LITERALS:
        match = pattern.search(fixed)
        if match and not _scan_brackets(fixed[:match.start()])[1]:
            fixed = fixed[:match.start()] + match.group(1) + literal
            repairs.append("complete_literal")
            break

    for pattern, replacement in _MISSING_COMMAS:
        patched = pattern.sub(replacement, fixed)
        if patched != fixed:
            repairs.append("insert_comma")
            fixed = patched

    without_trailing = re.sub(r",\s*([}\]])", r"\1", fixed)
    without_trailing = re.sub(r",\s*$", "", without_trailing)
    if without_trailing != fixed:
        repairs.append("drop_trailing_comma")
        fixed = without_trailing

    stack, in_string = _scan_brackets(fixed)
    if not stack and not in_string:
        return fixed, repairs

    if '"report"' in fixed:
        report_tail = fixed[fixed.rfind('"report"'):]
        if '"summary"' not in report_tail and '"recommendations"' not in report_tail:
            stubbed = _INCOMPLETE_REPORT.sub(lambda m: REPORT_STUB, fixed)
            if stubbed != fixed:
                repairs.append("report_stub")
                fixed = stubbed
                stack, in_string = _scan_brackets(fixed)

    if in_string:
        fixed += '"'
        repairs.append("close_string")

    if stack:
        fixed = re.sub(r",\s*$", "", fixed.rstrip())
        closers = "".join("}" if opener == "{" else "]" for opener in reversed(stack))
        fixed += closers
        repairs.append("close_brackets")

    return fixed, repairs


# ============================================================================
# PARSING
# ============================================================================

def recover_json(text: Optional[str]) -> RecoveryResult:
    """
    Recover a JSON object from LLM output.

    Args:
        text: Raw LLM output

    Returns:
        RecoveryResult for the first candidate that parses to an object

    Raises:
        JSONRecoveryError: Empty input, no candidates, or no candidate parses
    """
    if not text or not text.strip():
        raise JSONRecoveryError("Empty LLM response")

    candidates = _collect_candidates(text)
    if not candidates:
        raise JSONRecoveryError("No JSON object found in LLM response", text=text)

    first_error: Optional[Tuple[json.JSONDecodeError, str]] = None

    for source, candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            data = None
        if isinstance(data, dict):
            return RecoveryResult(data=data, source=source)

        repaired, repairs = repair_json_text(candidate)
        try:
            data = json.loads(repaired)
        except json.JSONDecodeError as e:
            logger.debug(f"Candidate from {source} failed to parse: {e.msg}")
            if first_error is None:
                first_error = (e, repaired)
            continue

        if not isinstance(data, dict):
            logger.debug(f"Candidate from {source} is a {type(data).__name__}, not an object")
            continue

        lossy = any(step in LOSSY_REPAIRS for step in repairs)
        return RecoveryResult(data=data, source=source, repairs=repairs, lossy=lossy)

    if first_error is None:
        raise JSONRecoveryError("LLM response JSON is not an object", text=text)

    error, repaired = first_error
    start = max(0, error.pos - SNIPPET_RADIUS)
    snippet = repaired[start:error.pos + SNIPPET_RADIUS]
    logger.error(f"❌ JSON recovery failed at offset {error.pos}: {error.msg}")
    raise JSONRecoveryError(
        f"Could not parse JSON: {error.msg} (line {error.lineno}, column {error.colno})",
        text=repaired,
        position=error.pos,
        snippet=snippet,
    )


def parse_llm_json(text: Optional[str]) -> Dict[str, Any]:
    """
    Recover and return a JSON object from LLM output.

    Logs a warning when the object was structurally patched.
    """
    result = recover_json(text)
    if result.lossy:
        logger.warning(f"⚠️  LLM JSON was patched to parse ({', '.join(result.repairs)})")
    return result.data
