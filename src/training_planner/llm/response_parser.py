"""
Extract a plan object from raw model output.

Model output is not guaranteed to be well-formed JSON, so parsing runs an
ordered cascade of strategies, each trading precision for recall:

1. explicit "no plan" signal (empty, ``null``, ``undefined``) is rejected
2. the whole text as JSON
3. the first top-level ``{...}`` block (prose and markdown fences around it)
4. the block after textual repair (quotes, bare keys, commas, NaN)
5. partial reconstruction of ``id``, ``metadata`` and ``plan_weeks``

Each strategy is a pure ``text -> Optional[dict]``; the first non-None
result wins. Structural correctness is left to the plan repairer.
"""

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..exceptions import EmptyOrNullResponseError, UnparsableResponseError
from ..planning.defaults import default_metadata

logger = logging.getLogger(__name__)

ParseStrategy = Callable[[str], Optional[Dict[str, Any]]]

_NULL_PREFIXES = ("null", "undefined")
_CLOSERS = {"{": "}", "[": "]"}


# ============================================================================
# Scanning helpers
# ============================================================================

def _scan_balanced(text: str, start: int) -> Optional[int]:
    """
    Find the index of the bracket closing the one at ``start``.

    Brackets inside single- or double-quoted strings are ignored.
    Returns None when the text ends before the bracket is closed.
    """
    stack: List[str] = []
    quote: Optional[str] = None
    escaped = False

    for i in range(start, len(text)):
        ch = text[i]
        if quote:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
            continue

        if ch in ('"', "'"):
            quote = ch
        elif ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
        elif ch in ("}", "]"):
            if not stack or stack.pop() != ch:
                return None
            if not stack:
                return i
    return None


def _object_blocks(text: str) -> List[str]:
    """
    Candidate ``{...}`` blocks in order of appearance.

    Balanced top-level blocks come first, then the span from the first
    opening brace to the last closing one.
    """
    start = text.find("{")
    if start == -1:
        return []

    candidates = []
    pos = start
    while pos != -1:
        end = _scan_balanced(text, pos)
        if end is None:
            break
        candidates.append(text[pos:end + 1])
        pos = text.find("{", end + 1)

    last = text.rfind("}")
    if last > start:
        greedy = text[start:last + 1]
        if greedy not in candidates:
            candidates.append(greedy)
    return candidates


def _loads_dict(text: str) -> Optional[Dict[str, Any]]:
    try:
        result = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    return result if isinstance(result, dict) else None


# ============================================================================
# Textual repair
# ============================================================================

_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_$][\w$-]*)(\s*:)")
_BAD_LITERAL = re.compile(r"([:\[,]\s*)(undefined|NaN|-?Infinity)\b")
_REPEATED_COMMAS = re.compile(r",(\s*,)+")
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")


def _split_strings(text: str) -> List[Tuple[bool, str]]:
    """
    Split text into (is_string, chunk) segments.

    Single-quoted strings are re-emitted as JSON double-quoted strings.
    An unterminated string runs to the end of the text.
    """
    segments: List[Tuple[bool, str]] = []
    code_start = 0
    i = 0
    n = len(text)

    while i < n:
        quote = text[i]
        if quote not in ('"', "'"):
            i += 1
            continue

        if code_start < i:
            segments.append((False, text[code_start:i]))

        j = i + 1
        chars: List[str] = []
        while j < n and text[j] != quote:
            if text[j] == "\\" and j + 1 < n:
                chars.append(text[j:j + 2])
                j += 2
                continue
            chars.append(text[j])
            j += 1

        body = "".join(chars).replace("\n", "\\n")
        if quote == "'":
            body = body.replace("\\'", "'").replace('"', '\\"')
        closing = '"' if j < n else ""
        segments.append((True, '"' + body + closing))

        i = j + 1
        code_start = i

    if code_start < n:
        segments.append((False, text[code_start:]))
    return segments


def repair_json_text(text: str) -> str:
    """
    Apply textual repairs to almost-JSON.

    Normalizes single quotes to double quotes, quotes bare keys, collapses
    repeated commas, replaces ``undefined``/``NaN`` with ``null`` and strips
    trailing commas. String contents are kept apart from escaping raw
    newlines.
    """
    repaired: List[str] = []
    for is_string, chunk in _split_strings(text):
        if is_string:
            repaired.append(chunk)
            continue
        chunk = _REPEATED_COMMAS.sub(",", chunk)
        chunk = _BAD_LITERAL.sub(r"\1null", chunk)
        chunk = _BARE_KEY.sub(r'\1"\2"\3', chunk)
        chunk = _TRAILING_COMMA.sub(r"\1", chunk)
        repaired.append(chunk)
    return "".join(repaired)


# ============================================================================
# Strategies
# ============================================================================

def reject_empty_or_null(text: str) -> Optional[Dict[str, Any]]:
    """Strategy 1: the model explicitly returned no plan."""
    stripped = (text or "").strip()
    if not stripped or stripped.startswith(_NULL_PREFIXES):
        raise EmptyOrNullResponseError(raw_response=text)
    return None


def parse_direct(text: str) -> Optional[Dict[str, Any]]:
    """Strategy 2: whole-text JSON parse."""
    return _loads_dict(text.strip())


def parse_embedded_block(text: str) -> Optional[Dict[str, Any]]:
    """Strategy 3: first top-level ``{...}`` block inside prose or fences."""
    for block in _object_blocks(text):
        result = _loads_dict(block)
        if result is not None:
            return result
    return None


def parse_repaired(text: str) -> Optional[Dict[str, Any]]:
    """Strategy 4: textual repair, then reparse."""
    candidates = _object_blocks(text) or [text.strip()]
    for candidate in candidates:
        result = _loads_dict(repair_json_text(candidate))
        if result is not None:
            return result
    return None


_ID_PATTERN = re.compile(r"""["']?\bid["']?\s*:\s*["']([^"'\n]+)["']""")
_METADATA_PATTERN = re.compile(r"""["']?\bmetadata["']?\s*:\s*\{""")
_PLAN_WEEKS_PATTERN = re.compile(r"""["']?\bplan_weeks["']?\s*:\s*\[""")


def _parse_fragment(fragment: str) -> Any:
    for candidate in (fragment, repair_json_text(fragment)):
        try:
            return json.loads(candidate)
        except (json.JSONDecodeError, ValueError):
            continue
    return None


def _extract_metadata(text: str) -> Optional[Dict[str, Any]]:
    match = _METADATA_PATTERN.search(text)
    if not match:
        return None
    start = match.end() - 1
    end = _scan_balanced(text, start)
    if end is None:
        return None
    result = _parse_fragment(text[start:end + 1])
    return result if isinstance(result, dict) else None


def _extract_plan_weeks(text: str) -> Optional[List[Any]]:
    """Recover the weeks array, salvaging complete week objects if it is cut off."""
    match = _PLAN_WEEKS_PATTERN.search(text)
    if not match:
        return None
    start = match.end() - 1
    end = _scan_balanced(text, start)
    if end is not None:
        result = _parse_fragment(text[start:end + 1])
        if isinstance(result, list):
            return result

    weeks: List[Any] = []
    pos = start + 1
    while True:
        obj_start = text.find("{", pos)
        if obj_start == -1:
            break
        obj_end = _scan_balanced(text, obj_start)
        if obj_end is None:
            break
        week = _parse_fragment(text[obj_start:obj_end + 1])
        if isinstance(week, dict):
            weeks.append(week)
        pos = obj_end + 1
        # Stop at the end of the array
        tail = text[pos:].lstrip()
        if tail.startswith("]"):
            break
    return weeks or None


def parse_partial(text: str) -> Optional[Dict[str, Any]]:
    """
    Strategy 5: rebuild the plan from independently extracted parts.

    Succeeds when at least one of id, metadata or plan_weeks is recovered;
    a failed metadata or plan_weeks is replaced with a default and a
    missing id is left for the repairer to synthesize.
    """
    id_match = _ID_PATTERN.search(text)
    metadata = _extract_metadata(text)
    plan_weeks = _extract_plan_weeks(text)

    if id_match is None and metadata is None and plan_weeks is None:
        return None

    plan: Dict[str, Any] = {}
    if id_match is not None:
        plan["id"] = id_match.group(1).strip()
    plan["metadata"] = metadata if metadata is not None else default_metadata()
    plan["plan_weeks"] = plan_weeks if plan_weeks is not None else []
    return plan


PARSE_STRATEGIES: List[Tuple[str, ParseStrategy]] = [
    ("empty_or_null", reject_empty_or_null),
    ("direct", parse_direct),
    ("embedded_block", parse_embedded_block),
    ("repaired", parse_repaired),
    ("partial", parse_partial),
]


def parse_plan_response(text: Optional[str]) -> Dict[str, Any]:
    """
    Parse raw model output into a plan dictionary.

    Args:
        text: Raw text, already unwrapped from the provider envelope

    Returns:
        The first dictionary any strategy recovers

    Raises:
        EmptyOrNullResponseError: If the model returned no plan
        UnparsableResponseError: If every strategy failed
    """
    text = text or ""
    for name, strategy in PARSE_STRATEGIES:
        result = strategy(text)
        if result is not None:
            logger.debug(f"Parsed model response with strategy '{name}'")
            if name != "direct":
                logger.info(f"Model response required fallback parsing strategy '{name}'")
            return result

    logger.warning(f"All parsing strategies failed for response: {text[:200]}...")
    raise UnparsableResponseError(raw_response=text)
