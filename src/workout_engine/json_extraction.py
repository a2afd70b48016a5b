"""Extract one JSON payload from free-form generator text."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Literal

from .errors import JSONParseError

logger = logging.getLogger(__name__)

ExpectedShape = Literal["object", "array"]

_FENCE_OPEN_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?")
_FENCE_CLOSE_RE = re.compile(r"\n?```\s*$")
_FENCED_BLOCK_RE = re.compile(r"```[a-zA-Z0-9_-]*\s*\n(.*?)\n?```", re.DOTALL)

_decoder = json.JSONDecoder()


def strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_OPEN_RE.sub("", cleaned)
        cleaned = _FENCE_CLOSE_RE.sub("", cleaned)
        return cleaned.strip()
    block = _FENCED_BLOCK_RE.search(cleaned)
    if block:
        return block.group(1).strip()
    return cleaned


def _matches(value: Any, expect: ExpectedShape | None) -> bool:
    if expect == "object":
        return isinstance(value, dict)
    if expect == "array":
        return isinstance(value, list)
    return isinstance(value, (dict, list))


def extract_json(text: str | None, expect: ExpectedShape | None = None) -> Any:
    """Parse the first JSON object or array found in ``text``.

    Handles fenced code blocks, leading prose and trailing text. Raises
    JSONParseError if nothing of the expected shape can be decoded.
    """
    if not text or not isinstance(text, str) or not text.strip():
        raise JSONParseError("Invalid input: text must be a non-empty string", text)

    cleaned = strip_code_fences(text)
    try:
        value = json.loads(cleaned)
    except json.JSONDecodeError:
        pass
    else:
        if _matches(value, expect):
            return value

    openers = "{" if expect == "object" else "[" if expect == "array" else "{["
    for index, char in enumerate(cleaned):
        if char not in openers:
            continue
        try:
            value, _end = _decoder.raw_decode(cleaned, index)
        except json.JSONDecodeError:
            continue
        if _matches(value, expect):
            return value

    logger.warning("Could not extract JSON (%s) from %d chars of generator output", expect or "any", len(text))
    raise JSONParseError(
        "Could not extract valid JSON from response. The generator may have returned an unexpected format.",
        text,
    )
