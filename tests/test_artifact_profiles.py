# tests/test_artifact_profiles.py
from agents.artifact_profiles import (
    DECK,
    NO_PAST_PAPERS_CONTEXT,
    PAPER,
    build_past_paper_context,
    profile_for,
)

from models import ArtifactType, PaperConfig, PlanningHints, SectionConfig, UnitKind


def test_profile_lookup_and_kinds():
    assert profile_for(ArtifactType.DECK) is DECK
    assert profile_for(ArtifactType.PAPER) is PAPER
    assert DECK.accepts(UnitKind.DIAGRAM)
    assert not DECK.accepts(UnitKind.QUESTION)
    assert PAPER.accepts(UnitKind.INSTRUCTIONS)


def test_target_ranges():
    assert DECK.target_range(PlanningHints(subject_name="S", module_name="M1")) == "20-25"
    assert DECK.target_range(PlanningHints(subject_name="S", custom_topic="T")) == "12-15"
    config = PaperConfig(
        total_marks=50,
        duration_minutes=90,
        sections=[
            SectionConfig(section_label="A", number_of_questions=5, marks_per_question=2),
            SectionConfig(section_label="B", number_of_questions=4, marks_per_question=10),
        ],
    )
    hints = PlanningHints(artifact_type=ArtifactType.PAPER, subject_name="S", paper_config=config)
    assert PAPER.target_range(hints) == "10"


def test_planning_context_for_paper_defaults_past_papers():
    config = PaperConfig(
        total_marks=10,
        duration_minutes=30,
        sections=[SectionConfig(section_label="A", number_of_questions=1, marks_per_question=10)],
    )
    hints = PlanningHints(artifact_type=ArtifactType.PAPER, subject_name="S", paper_config=config)
    context = PAPER.planning_context(hints, "source")
    assert context["paper"] is config
    assert context["past_paper_context"] == NO_PAST_PAPERS_CONTEXT
    assert "paper" not in DECK.planning_context(PlanningHints(subject_name="S"), "source")


def test_build_past_paper_context():
    assert build_past_paper_context([]) == NO_PAST_PAPERS_CONTEXT
    text = build_past_paper_context([{"title": "End Sem", "year": 2023}, {}])
    assert "End Sem (2023)" in text
    assert "Untitled (year N/A)" in text
