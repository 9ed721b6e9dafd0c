# agents/artifact_profiles.py
"""Per-artifact settings for staged generation (slide decks, question papers)."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from config import settings

from models import ArtifactType, PlanningHints, UnitKind

NO_PAST_PAPERS_CONTEXT = (
    "No previous year questions uploaded yet. "
    "Generate questions based on syllabus content and standard university examination patterns."
)


@dataclass(frozen=True)
class ArtifactProfile:
    """Templates, routing and unit vocabulary for one artifact type."""

    artifact_type: ArtifactType
    task_label: str
    allowed_kinds: tuple[UnitKind, ...]
    outline_template: str
    batch_template: str

    def accepts(self, kind: UnitKind) -> bool:
        return kind in self.allowed_kinds

    def target_range(self, hints: PlanningHints) -> str:
        """Soft unit-count guideline for the planner."""
        if self.artifact_type is ArtifactType.PAPER and hints.paper_config:
            # one instructions unit plus every configured question
            return str(hints.paper_config.question_count + 1)
        if hints.is_module:
            return settings.DECK_TARGET_RANGE_MODULE
        return settings.DECK_TARGET_RANGE_TOPIC

    def planning_context(self, hints: PlanningHints, source_material: str) -> dict[str, Any]:
        context: dict[str, Any] = {
            "subject_name": hints.subject_name,
            "subject_code": hints.subject_code,
            "source_material": source_material,
            "topic": hints.topic,
            "complexity": hints.complexity.value,
            "target_range": self.target_range(hints),
            "allowed_kinds": [k.value for k in self.allowed_kinds],
        }
        if self.artifact_type is ArtifactType.PAPER:
            context["paper"] = hints.paper_config
            context["past_paper_context"] = (
                hints.past_paper_context or NO_PAST_PAPERS_CONTEXT
            )
        return context

    def fill_context(
        self,
        hints: PlanningHints,
        source_material: str,
        units: list[dict[str, Any]],
    ) -> dict[str, Any]:
        context: dict[str, Any] = {
            "subject_name": hints.subject_name,
            "source_material": source_material,
            "complexity": hints.complexity.value,
            "units": units,
        }
        if self.artifact_type is ArtifactType.PAPER:
            context["past_paper_context"] = (
                hints.past_paper_context or NO_PAST_PAPERS_CONTEXT
            )
            context["uniqueness_mode"] = (
                hints.paper_config.uniqueness_mode if hints.paper_config else "all_new"
            )
        return context


DECK = ArtifactProfile(
    artifact_type=ArtifactType.DECK,
    task_label="ppt_gen",
    allowed_kinds=(
        UnitKind.TITLE,
        UnitKind.OVERVIEW,
        UnitKind.CONCEPT,
        UnitKind.DIAGRAM,
        UnitKind.EXAMPLE,
        UnitKind.PRACTICE,
        UnitKind.SUMMARY,
    ),
    outline_template="planner_agent/deck_outline.j2",
    batch_template="content_agent/deck_batch.j2",
)

PAPER = ArtifactProfile(
    artifact_type=ArtifactType.PAPER,
    task_label="qpaper_gen",
    allowed_kinds=(UnitKind.INSTRUCTIONS, UnitKind.QUESTION),
    outline_template="planner_agent/paper_blueprint.j2",
    batch_template="content_agent/paper_batch.j2",
)

PROFILES: dict[ArtifactType, ArtifactProfile] = {
    ArtifactType.DECK: DECK,
    ArtifactType.PAPER: PAPER,
}


def profile_for(artifact_type: ArtifactType) -> ArtifactProfile:
    return PROFILES[artifact_type]


def build_past_paper_context(documents: Iterable[Mapping[str, Any]]) -> str:
    """Summarize available past papers (``title``/``year`` mappings) for prompts."""
    titles = [
        f"{doc.get('title') or 'Untitled'} ({doc.get('year') or 'year N/A'})"
        for doc in documents
    ]
    if not titles:
        return NO_PAST_PAPERS_CONTEXT
    return (
        f"Previous Year Questions available for this subject: {'; '.join(titles)}\n"
        "Use these to understand the university exam style and question patterns.\n"
        "Key insight: match the complexity, terminology and format of these papers."
    )
