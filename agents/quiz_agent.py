# agents/quiz_agent.py
from typing import Any

import structlog
from config import settings
from core.llm_interface import llm_service, truncate_text_by_tokens
from orchestration.errors import GenerationError
from parsing import ParseError, parse_json_object
from prompt_renderer import render_prompt

from models import Difficulty, GeneratedQuiz, GradableQuestion, QuestionType, QuizRequest

logger = structlog.get_logger(__name__)

DEFAULT_QUESTION_TYPES = frozenset(
    {QuestionType.MCQ, QuestionType.TRUE_FALSE, QuestionType.SHORT}
)
OPTION_TYPES = frozenset(
    {
        QuestionType.MCQ.value,
        QuestionType.MULTIPLE_CORRECT.value,
        QuestionType.MATCH.value,
    }
)
_VALID_TYPES = {t.value for t in QuestionType}
_VALID_DIFFICULTIES = {d.value for d in Difficulty}


def _topic_scope(request: QuizRequest) -> str:
    if request.selected_topics:
        topics = ", ".join(request.selected_topics)
        if request.focus_topic:
            return (
                f'Generate questions ONLY from "{request.focus_topic}" within these selected topics: '
                f"{topics}. Use the full syllabus as background context."
            )
        return (
            f"Generate questions ONLY from these selected topics: {topics}. "
            "Use the full syllabus as background context."
        )
    return "Generate questions spread across the full syllabus."


def _difficulty_scope(difficulty: str) -> str:
    if difficulty == "mixed":
        return "Distribute difficulty roughly equally: about one-third easy, one-third medium, one-third hard."
    return f"All questions must be {difficulty} difficulty."


def _type_scope(question_types: list[QuestionType]) -> str:
    if set(question_types) == DEFAULT_QUESTION_TYPES:
        return "Include a mix of mcq, true_false, and short questions."
    return f"Only use these question types: {', '.join(t.value for t in question_types)}."


class QuizAgent:
    """Generates quizzes and Socratic hints."""

    def _parse_quiz_output(self, text: str) -> tuple[str | None, list[GradableQuestion]]:
        """Parse quiz JSON, dropping any question that is malformed.

        A question needs a known type, non-empty question text, correct
        answer and explanation, and a known difficulty.
        """
        try:
            data = parse_json_object(text)
        except ParseError as e:
            logger.error(f"Failed to parse quiz output: {e}. Text: {text[:500]}...")
            return None, []

        raw_questions = data.get("questions")
        if not isinstance(raw_questions, list):
            logger.warning("Quiz output has no 'questions' list.")
            return None, []

        questions: list[GradableQuestion] = []
        seen_ids: set[str] = set()
        for i, item in enumerate(raw_questions):
            if not isinstance(item, dict):
                continue
            qtype = item.get("type")
            question = str(item.get("question") or "").strip()
            if qtype not in _VALID_TYPES or not question:
                logger.debug(f"Dropping quiz item {i + 1}: bad type or empty question.")
                continue

            correct_answer = str(item.get("correctAnswer") or item.get("correct_answer") or "").strip()
            explanation = str(item.get("explanation") or "").strip()
            difficulty = item.get("difficulty")
            if not correct_answer or not explanation or difficulty not in _VALID_DIFFICULTIES:
                logger.debug(f"Dropping quiz item {i + 1}: incomplete answer metadata.")
                continue

            qid = str(item.get("id") or f"q{i + 1}")
            if qid in seen_ids:
                qid = f"{qid}-{i + 1}"
            seen_ids.add(qid)

            options: Any = item.get("options")
            questions.append(
                GradableQuestion(
                    id=qid,
                    type=qtype,
                    question=question,
                    options=tuple(str(o) for o in options)
                    if isinstance(options, list) and qtype in OPTION_TYPES
                    else None,
                    correct_answer=correct_answer,
                    explanation=explanation,
                    difficulty=difficulty,
                    unit=str(item["unit"]) if item.get("unit") is not None else None,
                )
            )

        title = data.get("title")
        return (title if isinstance(title, str) and title.strip() else None), questions

    async def generate_quiz(
        self, request: QuizRequest, source_material: str
    ) -> tuple[GeneratedQuiz, dict[str, int] | None]:
        """Generate a quiz. Raises ``GenerationError`` if no valid question survives."""
        prompt = render_prompt(
            "quiz_agent/generate_quiz.j2",
            {
                "subject_name": request.subject_name,
                "source_material": truncate_text_by_tokens(
                    source_material,
                    settings.model_for_task("quiz_gen"),
                    settings.MAX_SOURCE_TOKENS,
                ),
                "question_count": request.question_count,
                "topic_scope": _topic_scope(request),
                "difficulty_scope": _difficulty_scope(request.difficulty),
                "type_scope": _type_scope(request.question_types),
            },
        )
        raw_text, usage = await llm_service.async_generate(
            "quiz_gen",
            [{"role": "user", "content": prompt}],
            temperature=settings.TEMPERATURE_QUIZ,
            auto_clean_response=True,
        )
        title, questions = self._parse_quiz_output(raw_text)
        if not questions:
            raise GenerationError("Quiz generation produced no valid questions")
        if len(questions) != request.question_count:
            logger.warning(
                f"Quiz asked for {request.question_count} questions, got {len(questions)} valid ones."
            )
        return (
            GeneratedQuiz(
                title=title or f"{request.subject_name} Quiz",
                questions=questions,
            ),
            usage,
        )

    async def socratic_hint(
        self, question: str, subject_name: str, unit: str | None = None
    ) -> tuple[str, dict[str, int] | None]:
        prompt = render_prompt(
            "quiz_agent/socratic_hint.j2",
            {"question": question, "subject_name": subject_name, "unit": unit},
        )
        text, usage = await llm_service.async_generate(
            "hint",
            [{"role": "user", "content": prompt}],
            temperature=settings.TEMPERATURE_DEFAULT,
            max_tokens=512,
            auto_clean_response=True,
        )
        return text.strip(), usage
