# utils/__init__.py
"""General utility functions for the ExamForge engine."""

from __future__ import annotations

from .logging import setup_logging
from .similarity import find_most_similar, numpy_cosine_similarity
from .text_processing import normalize_answer, split_answer_tokens

__all__ = [
    "setup_logging",
    "find_most_similar",
    "numpy_cosine_similarity",
    "normalize_answer",
    "split_answer_tokens",
]
