# processing/answer_grader.py
"""Deterministic grading of quiz submissions."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence

import structlog
from orchestration.errors import InvalidRequestError
from utils.text_processing import normalize_answer, split_answer_tokens

from models import GradableQuestion, QuestionResult, QuestionType, SubmissionResult

logger = structlog.get_logger(__name__)


def _grade_multiple_correct(submitted: str, correct: str) -> bool:
    submitted_tokens = sorted(split_answer_tokens(submitted))
    correct_tokens = sorted(split_answer_tokens(correct))
    return bool(submitted_tokens) and submitted_tokens == correct_tokens


def _grade_match(submitted: str, correct: str) -> bool:
    submitted_pairs = split_answer_tokens(submitted)
    correct_pairs = split_answer_tokens(correct)
    if not submitted_pairs or len(submitted_pairs) != len(correct_pairs):
        return False
    return all(p in correct_pairs for p in submitted_pairs) and all(
        p in submitted_pairs for p in correct_pairs
    )


def grade_answer(question_type: str, submitted: str | None, correct: str) -> bool:
    """Return whether ``submitted`` matches ``correct`` for ``question_type``.

    Comparison is case-insensitive and ignores surrounding whitespace. An
    absent or blank answer is always incorrect. Unknown types are compared by
    normalized equality.
    """
    submitted_norm = normalize_answer(submitted)
    if not submitted_norm:
        return False

    qtype = normalize_answer(question_type)
    if qtype == QuestionType.MULTIPLE_CORRECT.value:
        return _grade_multiple_correct(submitted_norm, correct)
    if qtype == QuestionType.MATCH.value:
        return _grade_match(submitted_norm, correct)
    return submitted_norm == normalize_answer(correct)


def compute_score(correct_count: int, total_count: int) -> float:
    """Percentage with one decimal place, rounding halves up."""
    if total_count <= 0:
        return 0.0
    return math.floor(correct_count * 1000 / total_count + 0.5) / 10


def grade_submission(
    questions: Sequence[GradableQuestion],
    answers: Mapping[str, str | None],
) -> SubmissionResult:
    """Grade every question against ``answers`` (question id → answer).

    Raises ``InvalidRequestError`` for an empty question list or a question
    without a canonical answer. Grading itself never raises.
    """
    if not questions:
        raise InvalidRequestError("At least one question is required for grading")
    missing = [q.id for q in questions if not normalize_answer(q.correct_answer)]
    if missing:
        raise InvalidRequestError(
            f"Questions without a correct answer cannot be graded: {', '.join(missing)}"
        )

    per_question: list[QuestionResult] = []
    for q in questions:
        raw = answers.get(q.id)
        submitted = raw if isinstance(raw, str) else ("" if raw is None else str(raw))
        correct = grade_answer(q.type, submitted, q.correct_answer)
        per_question.append(
            QuestionResult(
                question_id=q.id,
                question=q.question,
                type=q.type,
                submitted_answer=submitted,
                correct_answer=q.correct_answer,
                correct=correct,
                explanation=q.explanation,
                difficulty=q.difficulty,
                unit=q.unit,
            )
        )

    correct_count = sum(1 for r in per_question if r.correct)
    score = compute_score(correct_count, len(questions))
    logger.info(
        f"Graded submission: {correct_count}/{len(questions)} correct, score {score}."
    )
    return SubmissionResult(
        score=score,
        correct_count=correct_count,
        total_count=len(questions),
        per_question=per_question,
    )
