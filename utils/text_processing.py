"""Small text helpers shared by grading and prompt construction."""

from __future__ import annotations

ANSWER_DELIMITER = "|"


def normalize_answer(text: object) -> str:
    """Lower-case and trim an answer. ``None`` normalizes to ``""``."""
    if text is None:
        return ""
    if not isinstance(text, str):
        text = str(text)
    return text.strip().lower()


def split_answer_tokens(text: object, delimiter: str = ANSWER_DELIMITER) -> list[str]:
    """Split a delimiter-joined answer into normalized, non-empty tokens."""
    return [
        token
        for token in (normalize_answer(part) for part in normalize_answer(text).split(delimiter))
        if token
    ]
