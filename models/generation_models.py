# models/generation_models.py
"""Models describing staged artifact generation (slide decks, question papers)."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .agent_models import UnitOutline


class ArtifactType(str, Enum):
    DECK = "deck"
    PAPER = "paper"


class ComplexityTier(str, Enum):
    """Target rigor of generated material. Does not affect unit count."""

    BASIC = "basic"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @classmethod
    def parse(cls, value: str | None) -> ComplexityTier:
        """Parse a tier name, falling back to ``INTERMEDIATE``."""
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.INTERMEDIATE


class UnitKind(str, Enum):
    TITLE = "title"
    OVERVIEW = "overview"
    CONCEPT = "concept"
    DIAGRAM = "diagram"
    EXAMPLE = "example"
    PRACTICE = "practice"
    SUMMARY = "summary"
    INSTRUCTIONS = "instructions"
    QUESTION = "question"


class GenerationUnit(BaseModel):
    """One addressable piece of an artifact (a slide, a question)."""

    index: int = Field(ge=0)
    kind: UnitKind
    title: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    content: dict[str, Any] | None = None

    @property
    def has_content(self) -> bool:
        return bool(self.content)

    def outline(self) -> UnitOutline:
        """Return the planning tuple sent to a fill call."""
        data: UnitOutline = {
            "index": self.index,
            "type": self.kind.value,
            "title": self.title,
        }
        if self.attributes:
            data["attributes"] = self.attributes
        return data


class SectionConfig(BaseModel):
    """One section of a question paper configuration."""

    section_label: str
    question_type: str = "short"
    custom_type_name: str | None = None
    number_of_questions: int = Field(ge=1)
    marks_per_question: float = Field(gt=0)
    has_sub_questions: bool = False
    sub_questions_count: int | None = None
    sub_questions_marks: float | None = None
    instructions: str | None = None


class PaperConfig(BaseModel):
    """Exam paper configuration supplied by the caller."""

    total_marks: float = Field(gt=0)
    duration_minutes: int = Field(gt=0)
    uniqueness_mode: str = "all_new"
    sections: list[SectionConfig]
    general_instructions: str | None = None

    @field_validator("uniqueness_mode")
    @classmethod
    def _known_mode(cls, value: str) -> str:
        return value if value in {"all_new", "mixed"} else "all_new"

    @property
    def question_count(self) -> int:
        return sum(s.number_of_questions for s in self.sections)


class PlanningHints(BaseModel):
    """Everything the planner needs besides the source material."""

    artifact_type: ArtifactType = ArtifactType.DECK
    subject_name: str
    subject_code: str = ""
    module_name: str | None = None
    custom_topic: str | None = None
    complexity: ComplexityTier = ComplexityTier.INTERMEDIATE
    paper_config: PaperConfig | None = None
    past_paper_context: str | None = None

    @field_validator("complexity", mode="before")
    @classmethod
    def _parse_complexity(cls, value: object) -> ComplexityTier:
        if isinstance(value, ComplexityTier):
            return value
        return ComplexityTier.parse(str(value) if value is not None else None)

    @property
    def topic(self) -> str:
        return self.module_name or self.custom_topic or "the module"

    @property
    def is_module(self) -> bool:
        return bool(self.module_name)


class ArtifactPlan(BaseModel):
    """Result of the planning phase."""

    title: str
    subject: str
    topic: str
    units: list[GenerationUnit]


class GenerationState(str, Enum):
    PLANNING = "planning"
    FILLING = "filling"
    ASSEMBLING = "assembling"
    DONE = "done"
    FAILED = "failed"


class BatchStatus(str, Enum):
    FILLED = "filled"
    SKIPPED = "skipped"


class BatchReport(BaseModel):
    batch_number: int
    unit_indices: list[int]
    status: BatchStatus
    reason: str | None = None


class GeneratedArtifact(BaseModel):
    """Assembled artifact: only units that received content, in index order."""

    artifact_type: ArtifactType
    title: str
    subject: str
    topic: str
    units: list[GenerationUnit]
    planned_count: int
    batches: list[BatchReport] = Field(default_factory=list)
    degraded: bool = False
    state: GenerationState = GenerationState.DONE

    @property
    def filled_count(self) -> int:
        return len(self.units)

    @property
    def skipped_batches(self) -> list[BatchReport]:
        return [b for b in self.batches if b.status is BatchStatus.SKIPPED]
