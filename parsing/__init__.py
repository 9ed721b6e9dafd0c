# parsing/__init__.py
"""Parsing helpers for JSON-shaped model output."""

from __future__ import annotations

import json
import re
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

_FENCE_OPEN_RE = re.compile(r"^\s*```(?:json|JSON)?\s*")
_FENCE_CLOSE_RE = re.compile(r"\s*```\s*$")


class ParseError(Exception):
    """Custom exception for parsing errors."""


def strip_code_fences(text: str) -> str:
    """Remove a leading/trailing markdown code fence if present."""
    cleaned = (text or "").strip()
    cleaned = _FENCE_OPEN_RE.sub("", cleaned, count=1)
    cleaned = _FENCE_CLOSE_RE.sub("", cleaned, count=1)
    return cleaned.strip()


def _extract_between(text: str, opener: str, closer: str) -> Any:
    cleaned = strip_code_fences(text)
    if not cleaned:
        raise ParseError("Model output is empty")
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    first = cleaned.find(opener)
    last = cleaned.rfind(closer)
    if first == -1 or last == -1 or last < first:
        raise ParseError(f"No JSON {opener}...{closer} found in model output")
    try:
        return json.loads(cleaned[first : last + 1])
    except json.JSONDecodeError as exc:
        raise ParseError(f"Malformed JSON in model output: {exc}") from exc


def parse_json_object(text: str) -> dict[str, Any]:
    """Parse the JSON object embedded in ``text``.

    Tolerates code fences and prose around the object.
    """
    data = _extract_between(text, "{", "}")
    if not isinstance(data, dict):
        raise ParseError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def parse_json_array(text: str) -> list[Any]:
    """Parse the JSON array embedded in ``text``.

    Tolerates code fences and prose around the array.
    """
    data = _extract_between(text, "[", "]")
    if not isinstance(data, list):
        raise ParseError(f"Expected a JSON array, got {type(data).__name__}")
    return data
