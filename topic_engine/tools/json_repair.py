"""
Defensive parsing for completion-service replies.

Replies are expected to sometimes be non-conforming, so nothing here uses
strict schema parsing. Handles:
- Markdown code block wrapping
- Prose before/after the JSON object (bracket extraction)
- Truncated JSON (unclosed brackets/strings)
- Control characters inside strings
- The legacy "TITLE: ... / SUPPORT: ... / OPPOSE: ..." line format

Every entry point returns Parsed(...) or Fallback(reason); none raise.
"""

import json
import logging
import re
from typing import Any, Dict, Iterable, List, Tuple

from ..schemas.results import Fallback, Parsed, ParseResult

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r'^```(?:json)?\s*\n?', re.IGNORECASE)
_FENCE_CLOSE = re.compile(r'\n?```\s*$')


def strip_code_fence(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_OPEN.sub('', cleaned)
        cleaned = _FENCE_CLOSE.sub('', cleaned)
    return cleaned.strip()


def parse_json_object(response: str) -> ParseResult[Dict[str, Any]]:
    """Extract and parse the first JSON object in a completion reply."""
    if not response or not response.strip():
        return Fallback("empty response")

    cleaned = strip_code_fence(response)
    if '{' not in cleaned:
        return Fallback("no JSON object in response")

    json_str = extract_json_string(cleaned)
    for candidate, kwargs in (
        (json_str, {}),
        # Local models insert literal newlines/tabs inside string values
        (json_str, {"strict": False}),
        (re.sub(r'[\x00-\x1f\x7f]', ' ', json_str), {}),
    ):
        try:
            data = json.loads(candidate, **kwargs)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return Parsed(data)
        return Fallback(f"expected JSON object, got {type(data).__name__}")

    logger.debug(f"Unparseable JSON payload: {json_str[:200]}")
    return Fallback("malformed JSON")


def _scan(text: str) -> Iterable[Tuple[int, str, bool]]:
    """Yield (index, char, in_string) skipping escaped characters."""
    in_string = False
    escape_next = False
    for i, ch in enumerate(text):
        if escape_next:
            escape_next = False
            continue
        if ch == '\\' and in_string:
            escape_next = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        yield i, ch, in_string


def _ends_inside_string(text: str) -> bool:
    in_string = False
    escape_next = False
    for ch in text:
        if escape_next:
            escape_next = False
            continue
        if ch == '\\' and in_string:
            escape_next = True
            continue
        if ch == '"':
            in_string = not in_string
    return in_string


def extract_json_string(text: str) -> str:
    """Return the outermost {...} block using bracket counting.

    If the brackets never balance the reply was truncated; the tail is
    handed to repair_truncated_json.
    """
    start = text.find('{')
    if start == -1:
        return text
    depth = 0
    for i, ch, in_string in _scan(text[start:]):
        if in_string:
            continue
        if ch == '{':
            depth += 1
        elif ch == '}':
            depth -= 1
            if depth == 0:
                return text[start:start + i + 1]
    return repair_truncated_json(text[start:])


def repair_truncated_json(text: str) -> str:
    """Close an open string and any open brackets, innermost first."""
    if _ends_inside_string(text):
        text = text + '"'

    stack: List[str] = []
    for _, ch, in_string in _scan(text):
        if in_string:
            continue
        if ch in ('{', '['):
            stack.append(ch)
        elif ch == '}' and stack and stack[-1] == '{':
            stack.pop()
        elif ch == ']' and stack and stack[-1] == '[':
            stack.pop()

    text = text.rstrip().rstrip(',')
    close_map = {'{': '}', '[': ']'}
    for bracket in reversed(stack):
        text += close_map[bracket]
    return text


def parse_labeled_lines(response: str, labels: Iterable[str]) -> ParseResult[Dict[str, str]]:
    """Parse "LABEL: value" lines (case-insensitive, markdown bold tolerated).

    Returns Parsed only if at least one requested label was found.
    """
    if not response:
        return Fallback("empty response")

    wanted = {label.upper() for label in labels}
    found: Dict[str, str] = {}
    for raw_line in response.splitlines():
        line = raw_line.strip().lstrip('-*# ').replace('**', '')
        if ':' not in line:
            continue
        key, _, value = line.partition(':')
        key = key.strip().upper()
        value = value.strip().strip('"').strip()
        if key in wanted and value and key not in found:
            found[key] = value

    if not found:
        return Fallback("no labeled lines found")
    return Parsed(found)
