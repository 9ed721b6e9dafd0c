"""Central package for ExamForge data models."""

from .agent_models import (
    ChatMessage,
    RefinementType,
    RefineRequest,
    SubjectContext,
    UnitOutline,
)
from .cache_models import CacheEntry, CacheLookupResult, ChatAnswer, NotesResult
from .generation_models import (
    ArtifactPlan,
    ArtifactType,
    BatchReport,
    BatchStatus,
    ComplexityTier,
    GeneratedArtifact,
    GenerationState,
    GenerationUnit,
    PaperConfig,
    PlanningHints,
    SectionConfig,
    UnitKind,
)
from .grading_models import (
    Difficulty,
    GeneratedQuiz,
    GradableQuestion,
    QuestionResult,
    QuestionType,
    QuizRequest,
    SubmissionResult,
)

__all__ = [
    "SubjectContext",
    "RefinementType",
    "RefineRequest",
    "ChatMessage",
    "UnitOutline",
    "CacheEntry",
    "CacheLookupResult",
    "ChatAnswer",
    "NotesResult",
    "ArtifactPlan",
    "ArtifactType",
    "BatchReport",
    "BatchStatus",
    "ComplexityTier",
    "GeneratedArtifact",
    "GenerationState",
    "GenerationUnit",
    "PaperConfig",
    "PlanningHints",
    "SectionConfig",
    "UnitKind",
    "Difficulty",
    "GeneratedQuiz",
    "GradableQuestion",
    "QuestionResult",
    "QuestionType",
    "QuizRequest",
    "SubmissionResult",
]
