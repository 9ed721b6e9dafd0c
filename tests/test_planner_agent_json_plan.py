# tests/test_planner_agent_json_plan.py
import json

import pytest
from agents.artifact_profiles import DECK, PAPER
from agents.planner_agent import PlannerAgent
from core.llm_interface import ModelGatewayError, llm_service
from orchestration.errors import PlanningError

from models import PlanningHints, UnitKind

HINTS = PlanningHints(subject_name="Thermodynamics", module_name="Module 2")


def _plan(outline, **extra):
    return json.dumps({"title": "Deck", "subject": "Thermo", "topic": "M2", "outline": outline, **extra})


def test_parse_plan_valid():
    agent = PlannerAgent()
    plan = agent._parse_plan_output(
        _plan(
            [
                {"index": 0, "type": "title", "title": "Intro"},
                {"index": 1, "type": "concept", "title": "Entropy"},
            ]
        ),
        DECK,
        HINTS,
    )
    assert plan.title == "Deck"
    assert [(u.index, u.kind, u.title) for u in plan.units] == [
        (0, UnitKind.TITLE, "Intro"),
        (1, UnitKind.CONCEPT, "Entropy"),
    ]


def test_parse_plan_drops_invalid_and_renumbers():
    agent = PlannerAgent()
    plan = agent._parse_plan_output(
        _plan(
            [
                {"index": 4, "type": "summary", "title": "Wrap up"},
                {"index": 0, "type": "title", "title": "Intro"},
                {"index": 1, "type": "poem", "title": "Odd"},
                {"index": 2, "type": "concept", "title": "  "},
                {"index": 3, "type": "question", "title": "Not a slide"},
                "garbage",
                {"index": 2, "type": "Example", "title": "Worked example"},
            ]
        ),
        DECK,
        HINTS,
    )
    assert [u.index for u in plan.units] == [0, 1, 2]
    assert [u.title for u in plan.units] == ["Intro", "Worked example", "Wrap up"]
    assert plan.units[1].kind is UnitKind.EXAMPLE


def test_parse_plan_fenced_with_prose():
    agent = PlannerAgent()
    text = "Here is the outline:\n```json\n" + _plan([{"index": 0, "type": "title", "title": "T"}]) + "\n```"
    plan = agent._parse_plan_output(text, DECK, HINTS)
    assert len(plan.units) == 1


def test_parse_plan_caps_unit_count():
    agent = PlannerAgent(max_units=3)
    outline = [{"index": i, "type": "concept", "title": f"C{i}"} for i in range(10)]
    plan = agent._parse_plan_output(_plan(outline), DECK, HINTS)
    assert [u.title for u in plan.units] == ["C0", "C1", "C2"]


def test_parse_plan_keeps_paper_attributes():
    agent = PlannerAgent()
    plan = agent._parse_plan_output(
        _plan(
            [
                {"index": 0, "type": "instructions", "title": "General Instructions"},
                {
                    "index": 1,
                    "type": "question",
                    "title": "Carnot cycle",
                    "attributes": {"section_label": "Section A", "marks": 2},
                },
            ]
        ),
        PAPER,
        HINTS,
    )
    assert plan.units[1].attributes == {"section_label": "Section A", "marks": 2}


def test_parse_plan_defaults_title_from_hints():
    agent = PlannerAgent()
    plan = agent._parse_plan_output(
        json.dumps({"outline": [{"type": "title", "title": "T"}]}), DECK, HINTS
    )
    assert plan.title == "Thermodynamics: Module 2"
    assert plan.subject == "Thermodynamics"


@pytest.mark.parametrize(
    "text",
    [
        "invalid",
        json.dumps({"outline": []}),
        json.dumps({"title": "x"}),
        _plan([{"index": 0, "type": "unknown", "title": "T"}]),
    ],
)
def test_parse_plan_unusable_raises(text):
    with pytest.raises(PlanningError):
        PlannerAgent()._parse_plan_output(text, DECK, HINTS)


@pytest.mark.asyncio
async def test_plan_artifact_uses_deck_prompt(monkeypatch):
    captured = {}

    async def fake_generate(task_label, messages, **kwargs):
        captured["task"] = task_label
        captured["prompt"] = messages[0]["content"]
        return _plan([{"index": 0, "type": "title", "title": "T"}]), {"completion_tokens": 3}

    monkeypatch.setattr(llm_service, "async_generate", fake_generate)
    plan, usage = await PlannerAgent().plan_artifact(DECK, HINTS, "Syllabus text")

    assert captured["task"] == "ppt_gen"
    assert "20-25" in captured["prompt"]
    assert "Syllabus text" in captured["prompt"]
    assert len(plan.units) == 1
    assert usage == {"completion_tokens": 3}


@pytest.mark.asyncio
async def test_plan_artifact_topic_range(monkeypatch):
    prompts = []

    async def fake_generate(task_label, messages, **kwargs):
        prompts.append(messages[0]["content"])
        return _plan([{"index": 0, "type": "title", "title": "T"}]), None

    monkeypatch.setattr(llm_service, "async_generate", fake_generate)
    hints = PlanningHints(subject_name="Thermo", custom_topic="Entropy", complexity="expert")
    await PlannerAgent().plan_artifact(DECK, hints, "Syllabus")
    assert "12-15" in prompts[0]
    assert "Depth level: intermediate" in prompts[0]


@pytest.mark.asyncio
async def test_plan_artifact_gateway_failure(monkeypatch):
    async def fake_generate(task_label, messages, **kwargs):
        raise ModelGatewayError("down")

    monkeypatch.setattr(llm_service, "async_generate", fake_generate)
    with pytest.raises(PlanningError):
        await PlannerAgent().plan_artifact(DECK, HINTS, "Syllabus")
