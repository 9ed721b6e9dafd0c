# tests/test_content_agent.py
import json

import pytest
from agents.artifact_profiles import DECK
from agents.content_agent import ContentAgent
from core.llm_interface import llm_service
from parsing import ParseError

from models import GenerationUnit, PlanningHints, UnitKind

UNITS = [
    GenerationUnit(index=3, kind=UnitKind.CONCEPT, title="Entropy"),
    GenerationUnit(index=4, kind=UnitKind.EXAMPLE, title="Entropy change"),
]
HINTS = PlanningHints(subject_name="Thermodynamics", custom_topic="Entropy")


def test_validate_batch_output_strips_planning_keys():
    contents = ContentAgent()._validate_batch_output(
        [
            {"index": 3, "type": "concept", "title": "Entropy", "bullets": ["a"]},
            {"type": "example", "example": {"problem": "p", "steps": [], "answer": "x"}},
        ],
        UNITS,
    )
    assert contents[0] == {"title": "Entropy", "bullets": ["a"]}
    assert "example" in contents[1]
    assert "type" not in contents[1]


@pytest.mark.parametrize(
    "items",
    [
        [{"bullets": []}],
        [{"bullets": []}, {"bullets": []}, {"bullets": []}],
        [{"index": 4, "bullets": []}, {"bullets": []}],
        [{"type": "diagram"}, {"bullets": []}],
        ["text", {"bullets": []}],
    ],
)
def test_validate_batch_output_mismatch(items):
    with pytest.raises(ParseError):
        ContentAgent()._validate_batch_output(items, UNITS)


@pytest.mark.asyncio
async def test_fill_batch_sends_only_batch_units(monkeypatch):
    prompts = []

    async def fake_generate(task_label, messages, **kwargs):
        prompts.append(messages[0]["content"])
        return json.dumps([{"bullets": ["x"]}, {"bullets": ["y"]}]), {"completion_tokens": 9}

    monkeypatch.setattr(llm_service, "async_generate", fake_generate)
    contents, usage = await ContentAgent().fill_batch(DECK, HINTS, "Syllabus", UNITS)

    assert contents == [{"bullets": ["x"]}, {"bullets": ["y"]}]
    assert usage == {"completion_tokens": 9}
    assert '"index": 3' in prompts[0]
    assert '"title": "Entropy change"' in prompts[0]
    assert "(2)" in prompts[0]


@pytest.mark.parametrize(
    "items",
    [
        [{}, {"bullets": ["y"]}],
        [{"index": 3, "type": "concept"}, {"index": 4, "type": "example"}],
        [{"bullets": ["x"]}, {"kind": "example"}],
    ],
)
def test_validate_batch_output_rejects_items_without_content(items):
    with pytest.raises(ParseError):
        ContentAgent()._validate_batch_output(items, UNITS)


@pytest.mark.asyncio
async def test_fill_batch_with_empty_items_raises(monkeypatch):
    async def fake_generate(task_label, messages, **kwargs):
        return json.dumps([{}, {"index": 4, "type": "example"}]), None

    monkeypatch.setattr(llm_service, "async_generate", fake_generate)
    with pytest.raises(ParseError):
        await ContentAgent().fill_batch(DECK, HINTS, "Syllabus", UNITS)
