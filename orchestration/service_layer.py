# orchestration/service_layer.py
"""Service layer exposing the study-material engine operations."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import structlog
from agents.quiz_agent import QuizAgent
from agents.refine_agent import RefineAgent, valid_refinement_types
from agents.tutor_agent import DEFAULT_SUGGESTIONS, TutorAgent
from config import settings
from core.llm_interface import ModelGatewayError
from processing.answer_grader import grade_submission as grade_questions
from processing.semantic_cache import SimilarityCache

from models import (
    ChatAnswer,
    GeneratedArtifact,
    GeneratedQuiz,
    GradableQuestion,
    NotesResult,
    PlanningHints,
    QuizRequest,
    RefineRequest,
    SubjectContext,
    SubmissionResult,
)
from orchestration.errors import InvalidRequestError
from orchestration.staged_generator import StagedGenerator
from orchestration.token_accountant import TaskLabel, TokenAccountant

logger = structlog.get_logger(__name__)


def quick_notes_key(scope: str, module_id: str | None = None) -> str:
    """Synthetic query text under which quick notes are cached."""
    if module_id:
        return f"QUICK_NOTES_MODULE_{module_id}"
    return f"QUICK_NOTES_SUBJECT_{scope}"


def _require(value: str | None, name: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidRequestError(f"{name} is required")
    return str(value).strip()


class StudyEngine:
    """Coordinate the cache, the agents and the staged generator."""

    def __init__(
        self,
        cache: SimilarityCache | None = None,
        tutor_agent: TutorAgent | None = None,
        quiz_agent: QuizAgent | None = None,
        refine_agent: RefineAgent | None = None,
        staged_generator: StagedGenerator | None = None,
        token_accountant: TokenAccountant | None = None,
    ) -> None:
        self.token_accountant = token_accountant or TokenAccountant()
        self.cache = cache or SimilarityCache()
        self.tutor_agent = tutor_agent or TutorAgent()
        self.quiz_agent = quiz_agent or QuizAgent()
        self.refine_agent = refine_agent or RefineAgent()
        self.staged_generator = staged_generator or StagedGenerator(
            token_accountant=self.token_accountant
        )

    def _record_usage(self, task: TaskLabel, usage: dict[str, int] | None) -> None:
        try:
            self.token_accountant.record_usage(task, usage)
        except Exception as e:  # pragma: no cover - accounting is best effort
            logger.warning(f"Failed to record usage for '{task.value}': {e}")

    async def answer_with_cache(
        self,
        scope: str,
        query_text: str,
        subject: SubjectContext,
        source_material: str,
        history: Iterable[Mapping[str, Any]] | None = None,
    ) -> ChatAnswer:
        """Answer a tutoring question, reusing a semantically similar answer if cached."""
        scope = _require(scope, "scope")
        query_text = _require(query_text, "query_text")

        lookup = await self.cache.lookup(scope, query_text)
        if lookup.hit and lookup.entry is not None:
            return ChatAnswer(text=lookup.entry.response_text, cached=True)

        text, usage = await self.tutor_agent.answer(
            query_text, subject, source_material, history
        )
        self._record_usage(TaskLabel.CHAT, usage)
        await self.cache.store(scope, query_text, lookup.query_vector, text)
        return ChatAnswer(text=text, cached=False)

    async def generate_quick_notes(
        self,
        scope: str,
        source_material: str,
        topic_label: str,
        module_id: str | None = None,
    ) -> NotesResult:
        """Return cached quick notes for the subject/module or generate them once."""
        scope = _require(scope, "scope")
        topic_label = _require(topic_label, "topic_label")
        key = quick_notes_key(scope, module_id)

        lookup = await self.cache.lookup_exact(scope, key)
        if lookup.hit and lookup.entry is not None:
            return NotesResult(notes=lookup.entry.response_text, cached=True)

        _require(source_material, "source_material")
        notes, usage = await self.tutor_agent.quick_notes(
            topic_label, source_material, is_module=bool(module_id)
        )
        self._record_usage(TaskLabel.NOTES, usage)
        await self.cache.store_exact(scope, key, notes)
        return NotesResult(notes=notes, cached=False)

    async def generate_artifact(
        self, source_material: str, hints: PlanningHints
    ) -> GeneratedArtifact:
        """Generate a slide deck or question paper through the staged generator."""
        return await self.staged_generator.generate(source_material, hints)

    async def generate_quiz(
        self, request: QuizRequest, source_material: str
    ) -> GeneratedQuiz:
        _require(source_material, "source_material")
        quiz, usage = await self.quiz_agent.generate_quiz(request, source_material)
        self._record_usage(TaskLabel.QUIZ_GEN, usage)
        return quiz

    async def socratic_hint(
        self, question: str, subject_name: str, unit: str | None = None
    ) -> str:
        question = _require(question, "question")
        subject_name = _require(subject_name, "subject_name")
        hint, usage = await self.quiz_agent.socratic_hint(question, subject_name, unit)
        self._record_usage(TaskLabel.HINT, usage)
        return hint

    async def suggest_prompts(self, subject_name: str, source_material: str) -> list[str]:
        """Starter questions for a subject. Never raises; falls back to defaults."""
        if not (subject_name or "").strip() or not (source_material or "").strip():
            return list(DEFAULT_SUGGESTIONS)
        try:
            suggestions, usage = await self.tutor_agent.suggest_prompts(
                subject_name.strip(), source_material
            )
        except ModelGatewayError as e:
            logger.warning(f"Suggested prompts unavailable, using defaults: {e}")
            return list(DEFAULT_SUGGESTIONS)
        self._record_usage(TaskLabel.CHAT, usage)
        return suggestions

    async def refine_content(
        self, request: RefineRequest, source_material: str = ""
    ) -> str:
        """Refine existing material along the requested refinement types.

        Raises ``InvalidRequestError`` for empty or oversized content and when
        no known refinement type is requested.
        """
        content = _require(request.content_to_refine, "content_to_refine")
        if len(content) > settings.MAX_REFINE_CHARS:
            raise InvalidRequestError(
                f"content_to_refine is too long (max {settings.MAX_REFINE_CHARS} characters)"
            )
        refinement_types = valid_refinement_types(request.refinement_types)
        if not refinement_types:
            raise InvalidRequestError("At least one valid refinement type is required")

        refined, usage = await self.refine_agent.refine(
            request, refinement_types, source_material
        )
        self._record_usage(TaskLabel.REFINE, usage)
        return refined

    def grade_submission(
        self,
        questions: Sequence[GradableQuestion],
        answers: Mapping[str, str | None],
    ) -> SubmissionResult:
        """Grade a quiz submission. Pure; makes no external calls."""
        return grade_questions(questions, answers)
