"""Tool-call extraction from free-form model output.

Model output is unreliable: the JSON payload may be wrapped in prose or a
markdown fence, or appear next to other JSON-looking text. Fenced ``json``
blocks are tried first so that an intentional call wins over incidental
objects in the prose.
"""

from __future__ import annotations

import json
import re
from typing import Any

FENCED_JSON = re.compile(r"```json[ \t]*\r?\n?(.*?)```", re.DOTALL | re.IGNORECASE)


def _as_tool_call(candidate: str) -> dict[str, Any] | None:
    try:
        obj = json.loads(candidate)
    except (ValueError, RecursionError):
        return None
    if isinstance(obj, dict) and obj.get("tool") and obj.get("arguments"):
        return obj
    return None


def _balanced_objects(text: str):
    """Yield every brace-balanced substring that starts at a ``{``.

    Braces inside JSON string literals are ignored. Scanning resumes at the
    character after each candidate's opening brace, so nested objects are
    candidates too.
    """
    for start, char in enumerate(text):
        if char != "{":
            continue
        depth = 0
        in_string = False
        escaped = False
        for pos in range(start, len(text)):
            c = text[pos]
            if in_string:
                if escaped:
                    escaped = False
                elif c == "\\":
                    escaped = True
                elif c == '"':
                    in_string = False
                continue
            if c == '"':
                in_string = True
            elif c == "{":
                depth += 1
            elif c == "}":
                depth -= 1
                if depth == 0:
                    yield text[start : pos + 1]
                    break


def extract_tool_call(text: str) -> dict[str, Any] | None:
    """Find an embedded tool call payload in model text.

    Args:
        text: Raw or partial model output

    Returns:
        The parsed ``{"tool": ..., "arguments": ...}`` object, or None
    """
    if not isinstance(text, str) or "{" not in text:
        return None

    for match in FENCED_JSON.finditer(text):
        call = _as_tool_call(match.group(1).strip())
        if call is not None:
            return call

    for candidate in _balanced_objects(text):
        call = _as_tool_call(candidate)
        if call is not None:
            return call

    return None
