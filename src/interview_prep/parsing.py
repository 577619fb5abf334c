# AI Output Parsing
"""
Tolerant extraction of JSON payloads from free-form model output.

Models frequently wrap the requested JSON in prose, markdown fences or a
``<think>`` reasoning block. The helpers here discard that noise and
return the first balanced JSON object that actually decodes.
"""

import json
import re
from typing import Any, Dict, Optional

from interview_prep.errors import OutputParseError

_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.IGNORECASE | re.DOTALL)
_UNCLOSED_THINK = re.compile(r"<think>.*", re.IGNORECASE | re.DOTALL)


def strip_reasoning(text: str) -> str:
    """Remove ``<think>...</think>`` blocks (and a trailing unclosed one)."""
    cleaned = _THINK_BLOCK.sub("", text or "")
    cleaned = _UNCLOSED_THINK.sub("", cleaned)
    return cleaned.strip()


def _balanced_end(text: str, start: int) -> Optional[int]:
    """Index just past the object opening at ``start``, or None if unbalanced."""
    depth = 0
    in_string = False
    escaped = False

    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return None


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Locate and decode the first balanced JSON object in ``text``.

    Args:
        text: Raw model output

    Returns:
        The decoded object

    Raises:
        OutputParseError: If no balanced, decodable object is present
    """
    cleaned = strip_reasoning(text)
    if not cleaned:
        raise OutputParseError("Model output is empty")

    position = cleaned.find("{")
    while position != -1:
        end = _balanced_end(cleaned, position)
        if end is None:
            break
        try:
            payload = json.loads(cleaned[position:end])
        except json.JSONDecodeError:
            payload = None
        if isinstance(payload, dict):
            return payload
        position = cleaned.find("{", position + 1)

    raise OutputParseError("No JSON object found in model output")
