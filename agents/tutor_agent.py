# agents/tutor_agent.py
from collections.abc import Iterable, Mapping
from typing import Any

import structlog
from config import settings
from core.llm_interface import llm_service, truncate_text_by_tokens
from parsing import ParseError, parse_json_array
from prompt_renderer import render_prompt

from models import ChatMessage, SubjectContext

logger = structlog.get_logger(__name__)

DEFAULT_SUGGESTIONS = (
    "Explain the most important concept in simple terms",
    "What are the key topics I should focus on for exams?",
    "Give me a real-world example of a core concept",
    "What's the difference between the main topics in this subject?",
)

EXPLANATION_STYLES = {
    "beginner": "Use very simple language, avoid jargon, explain every term",
    "intermediate": "Use clear language with some technical terms, provide examples",
    "advanced": "Use technical language, assume foundational knowledge, focus on depth",
}


def complexity_level(semester: int) -> str:
    """Map a semester number to the tutor's explanation level."""
    if semester <= 2:
        return "beginner"
    if semester <= 4:
        return "intermediate"
    return "advanced"


def normalize_history(
    history: Iterable[Mapping[str, Any]] | None,
    max_turns: int = settings.CHAT_HISTORY_TURNS,
) -> list[ChatMessage]:
    """Keep the last ``max_turns`` well-formed user/assistant messages."""
    valid: list[ChatMessage] = [
        {"role": m["role"], "content": m["content"]}
        for m in (history or [])
        if isinstance(m, Mapping)
        and m.get("role") in ("user", "assistant")
        and isinstance(m.get("content"), str)
    ]
    if max_turns <= 0:
        return []
    return valid[-max_turns:]


class TutorAgent:
    """Answers study questions and writes quick notes for one subject."""

    def build_system_prompt(self, subject: SubjectContext, source_material: str) -> str:
        level = complexity_level(subject.semester)
        return render_prompt(
            "tutor_agent/system_prompt.j2",
            {
                "subject_name": subject.subject_name,
                "subject_code": subject.subject_code,
                "semester": subject.semester,
                "branch": subject.branch,
                "complexity_level": level,
                "explanation_style": EXPLANATION_STYLES[level],
                "source_material": self._source(source_material),
                "reference_books": subject.reference_books,
            },
        )

    def _source(self, source_material: str) -> str:
        return truncate_text_by_tokens(
            source_material or "",
            settings.model_for_task("chat"),
            settings.MAX_SOURCE_TOKENS,
        )

    async def answer(
        self,
        query_text: str,
        subject: SubjectContext,
        source_material: str,
        history: Iterable[Mapping[str, Any]] | None = None,
    ) -> tuple[str, dict[str, int] | None]:
        """Answer ``query_text`` given recent chat history.

        Raises ``ModelGatewayError`` if the gateway cannot answer.
        """
        messages = normalize_history(history)
        messages.append({"role": "user", "content": query_text})
        logger.info(
            f"TutorAgent answering for '{subject.subject_name}' with {len(messages) - 1} history messages."
        )
        text, usage = await llm_service.async_generate(
            "chat",
            messages,
            system_prompt=self.build_system_prompt(subject, source_material),
            temperature=settings.TEMPERATURE_DEFAULT,
        )
        return text.strip(), usage

    async def quick_notes(
        self,
        topic_label: str,
        source_material: str,
        is_module: bool = False,
    ) -> tuple[str, dict[str, int] | None]:
        prompt = render_prompt(
            "tutor_agent/quick_notes.j2",
            {
                "subject_name": topic_label,
                "module_name": topic_label if is_module else None,
                "topic_label": topic_label,
                "source_material": self._source(source_material),
            },
        )
        text, usage = await llm_service.async_generate(
            "notes",
            [{"role": "user", "content": prompt}],
            temperature=settings.TEMPERATURE_DEFAULT,
        )
        return text.strip(), usage

    def _parse_suggestions(self, text: str, expected: int) -> list[str] | None:
        try:
            items = parse_json_array(text)
        except ParseError as e:
            logger.warning(f"Suggested prompts were not a JSON array: {e}")
            return None
        suggestions = [s.strip() for s in items if isinstance(s, str) and s.strip()]
        if len(suggestions) != expected:
            logger.warning(
                f"Expected {expected} suggested prompts, got {len(suggestions)}."
            )
            return None
        return suggestions

    async def suggest_prompts(
        self, subject_name: str, source_material: str
    ) -> tuple[list[str], dict[str, int] | None]:
        """Ask for starter questions; falls back to ``DEFAULT_SUGGESTIONS``.

        Raises ``ModelGatewayError`` if the gateway cannot answer.
        """
        expected = settings.SUGGESTED_PROMPT_COUNT
        prompt = render_prompt(
            "tutor_agent/suggested_prompts.j2",
            {
                "subject_name": subject_name,
                "source_material": self._source(source_material),
                "prompt_count": expected,
            },
        )
        text, usage = await llm_service.async_generate(
            "chat",
            [{"role": "user", "content": prompt}],
            temperature=settings.TEMPERATURE_DEFAULT,
            auto_clean_response=True,
        )
        suggestions = self._parse_suggestions(text, expected)
        return (suggestions or list(DEFAULT_SUGGESTIONS)), usage
