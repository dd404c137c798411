"""
Recover a JSON object from free-form model output.

Steps, in order:
  1. keep the text between the first '{' and the last '}'
  2. drop // and /* */ comments outside strings, blank out control characters
  3. one left-to-right scan inserting missing commas between adjacent values
     and dropping trailing commas, only outside string literals
  4. json.loads, raising ParseError with position and context on failure
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from ..errors import ParseError

logger = logging.getLogger(__name__)

CONTROL_CHARS_RE = re.compile(r'[\x00-\x1f\x7f-\x9f]')
CONTEXT_WINDOW = 40

OUTSIDE, INSIDE = "outside-string", "inside-string"


def extract_json_object(text: str) -> str:
    start = text.find('{')
    end = text.rfind('}')
    if start == -1 or end < start:
        raise ParseError("No JSON object found in model response")
    return text[start:end + 1]


def strip_comments(text: str) -> str:
    out: List[str] = []
    state = OUTSIDE
    escaped = False
    i = 0
    length = len(text)
    while i < length:
        ch = text[i]
        if state == INSIDE:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == '\\':
                escaped = True
            elif ch == '"':
                state = OUTSIDE
            i += 1
            continue

        if ch == '/' and i + 1 < length and text[i + 1] == '/':
            newline = text.find('\n', i)
            i = length if newline == -1 else newline
            continue
        if ch == '/' and i + 1 < length and text[i + 1] == '*':
            close = text.find('*/', i + 2)
            i = length if close == -1 else close + 2
            continue
        if ch == '"':
            state = INSIDE
        out.append(ch)
        i += 1
    return ''.join(out)


def remove_control_characters(text: str) -> str:
    # A raw newline inside a string literal is invalid JSON; a space is not.
    return CONTROL_CHARS_RE.sub(' ', text)


def _ends_value(ch: Optional[str]) -> bool:
    # closing quote, closing bracket, or the tail of a number / true / false / null
    return ch is not None and (ch in '"]}' or ch.isalnum())


def repair_commas(text: str) -> str:
    """
    Insert the commas models tend to drop (``["a" "b"]``, ``{...} {...}``,
    ``"k": "v" "k2": 1``) and drop trailing ones (``[1, 2,]``).

    State: outside-string / inside-string, an escape flag, and a bracket
    stack. Repairs only happen outside string literals and inside a container.
    """
    out: List[str] = []
    stack: List[str] = []
    state = OUTSIDE
    escaped = False
    last: Optional[str] = None      # last significant char emitted outside a string
    last_index = -1                 # its position in ``out``

    for ch in text:
        if state == INSIDE:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == '\\':
                escaped = True
            elif ch == '"':
                state = OUTSIDE
                last, last_index = '"', len(out) - 1
            continue

        if ch.isspace():
            out.append(ch)
            continue

        if ch in '"{[' and stack and _ends_value(last):
            out.append(',')
        elif ch in ']}' and last == ',':
            out[last_index] = ''

        if ch == '"':
            state = INSIDE
            out.append(ch)
            continue
        if ch in '{[':
            stack.append(ch)
        elif ch in ']}' and stack:
            stack.pop()

        out.append(ch)
        last, last_index = ch, len(out) - 1

    return ''.join(out)


def repair_json(text: str) -> str:
    candidate = extract_json_object(text)
    candidate = strip_comments(candidate)
    candidate = remove_control_characters(candidate)
    return repair_commas(candidate)


def parse_model_json(text: str) -> Dict[str, Any]:
    """Repair and parse the model output into a dict, or raise ParseError."""
    if not text or not text.strip():
        raise ParseError("Empty model response")

    candidate = repair_json(text)
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        start = max(0, e.pos - CONTEXT_WINDOW)
        context = candidate[start:e.pos + CONTEXT_WINDOW]
        logger.error(f"❌ JSON parse error at position {e.pos}: {e.msg}")
        logger.error(f"Context: ...{context}...")
        raise ParseError(
            f"Failed to parse Gemini response: {e.msg} at position {e.pos} (near: ...{context}...)",
            position=e.pos,
            context=context,
        ) from e

    if not isinstance(data, dict):
        raise ParseError(f"Expected a JSON object, got {type(data).__name__}")
    return data
