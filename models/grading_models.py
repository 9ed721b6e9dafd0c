# models/grading_models.py
"""Quiz questions, submissions and grading results."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class QuestionType(str, Enum):
    MCQ = "mcq"
    TRUE_FALSE = "true_false"
    SHORT = "short"
    MULTIPLE_CORRECT = "multiple_correct"
    MATCH = "match"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class GradableQuestion(BaseModel):
    """A generated quiz question. Immutable once created.

    ``correct_answer`` encoding depends on ``type``: an option letter for
    ``mcq``, ``True``/``False`` for ``true_false``, a model answer for
    ``short``, ``|``-joined options for ``multiple_correct`` and
    ``|``-joined ``left:right`` pairs for ``match``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: str
    question: str = ""
    options: tuple[str, ...] | None = None
    correct_answer: str
    explanation: str = ""
    difficulty: str | None = None
    unit: str | None = None


class QuestionResult(BaseModel):
    question_id: str
    question: str
    type: str
    submitted_answer: str
    correct_answer: str
    correct: bool
    explanation: str = ""
    difficulty: str | None = None
    unit: str | None = None


class SubmissionResult(BaseModel):
    score: float
    correct_count: int
    total_count: int
    per_question: list[QuestionResult] = Field(default_factory=list)


class QuizRequest(BaseModel):
    """Parameters for generating a quiz from source material."""

    subject_name: str
    question_count: int = Field(default=10, ge=1, le=50)
    difficulty: str = "mixed"
    question_types: list[QuestionType] = Field(
        default_factory=lambda: [
            QuestionType.MCQ,
            QuestionType.TRUE_FALSE,
            QuestionType.SHORT,
        ]
    )
    selected_topics: list[str] = Field(default_factory=list)
    focus_topic: str | None = None


class GeneratedQuiz(BaseModel):
    title: str
    questions: list[GradableQuestion]
