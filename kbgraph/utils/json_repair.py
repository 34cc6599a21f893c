"""
Lenient JSON parsing for LLM output.

Models wrap JSON in markdown fences and, when they hit the token limit, stop
mid-object. parse_json_response strips fences, tries a strict parse, then makes
one repair attempt before giving up.
"""

import json
import re
from typing import Any

from kbgraph.utils.exceptions import JSONParseError
from kbgraph.utils.logger import get_logger

logger = get_logger(__name__)

PREVIEW_LENGTH = 200

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```\s*$")

# Trailing fragments left behind by a truncated response, tried in order
_INCOMPLETE_TAILS = (
    re.compile(r',\s*"[^"]*":\s*\.{0,3}$'),  # , "key": ...
    re.compile(r',\s*"[^"]*":\s*$'),  # , "key":
    re.compile(r",\s*$"),  # trailing comma
)


def strip_code_fences(content: str) -> str:
    """Remove a surrounding ```json ... ``` (or bare ```) fence."""
    cleaned = content.strip()
    cleaned = _FENCE_OPEN.sub("", cleaned)
    cleaned = _FENCE_CLOSE.sub("", cleaned)
    return cleaned.strip()


def repair_truncated_json(content: str) -> str:
    """
    Close a JSON document that was cut off mid-stream.

    Tracks open braces/brackets outside of string literals, closes a dangling
    string, drops a trailing incomplete key/value pair, then appends the
    missing closers in nesting order.
    """
    stack: list[str] = []
    in_string = False
    escaped = False

    for char in content:
        if escaped:
            escaped = False
            continue
        if char == "\\" and in_string:
            escaped = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char in "{[":
            stack.append(char)
        elif char in "}]" and stack:
            stack.pop()

    repaired = content.rstrip()
    if in_string:
        repaired += '"'

    for pattern in _INCOMPLETE_TAILS:
        repaired = pattern.sub("", repaired)

    closers = {"{": "}", "[": "]"}
    repaired += "".join(closers[opener] for opener in reversed(stack))
    return repaired


def parse_json_response(content: str) -> Any:
    """
    Parse JSON produced by an LLM.

    Args:
        content: Raw response text

    Returns:
        Parsed JSON value

    Raises:
        JSONParseError: If the content is not valid JSON even after repair
    """
    cleaned = strip_code_fences(content)

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    repaired = repair_truncated_json(cleaned)
    try:
        data = json.loads(repaired)
        logger.warning(
            "Recovered truncated JSON response",
            extra={"original_length": len(cleaned), "repaired_length": len(repaired)},
        )
        return data
    except json.JSONDecodeError as e:
        preview = content[:PREVIEW_LENGTH]
        raise JSONParseError(
            f"Failed to parse JSON response: {preview}...",
            preview=preview,
            context={"error": str(e)},
        ) from e
