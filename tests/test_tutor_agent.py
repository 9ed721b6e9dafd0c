# tests/test_tutor_agent.py
import pytest
from agents.tutor_agent import TutorAgent, complexity_level, normalize_history
from core.llm_interface import llm_service

from models import SubjectContext


@pytest.mark.parametrize(
    "semester, expected",
    [(1, "beginner"), (2, "beginner"), (3, "intermediate"), (4, "intermediate"), (5, "advanced"), (8, "advanced")],
)
def test_complexity_level(semester, expected):
    assert complexity_level(semester) == expected


def test_normalize_history_keeps_last_valid_turns():
    history = [{"role": "user", "content": f"m{i}"} for i in range(8)]
    history.insert(3, {"role": "system", "content": "ignore me"})
    history.insert(5, {"role": "assistant", "content": None})
    history.append("garbage")

    result = normalize_history(history, max_turns=6)
    assert [m["content"] for m in result] == ["m2", "m3", "m4", "m5", "m6", "m7"]


def test_normalize_history_empty():
    assert normalize_history(None) == []
    assert normalize_history([{"role": "user", "content": "hi"}], max_turns=0) == []


def test_build_system_prompt_mentions_subject():
    subject = SubjectContext(subject_name="Thermodynamics", subject_code="ME201", semester=5, branch="Mechanical")
    prompt = TutorAgent().build_system_prompt(subject, "Laws of thermodynamics")
    assert "Thermodynamics" in prompt
    assert "ME201" in prompt
    assert "advanced" in prompt
    assert "Laws of thermodynamics" in prompt


@pytest.mark.asyncio
async def test_answer_sends_history_and_system_prompt(monkeypatch):
    captured = {}

    async def fake_generate(task_label, messages, **kwargs):
        captured.update(task=task_label, messages=messages, **kwargs)
        return " Entropy measures disorder. ", {"prompt_tokens": 3, "completion_tokens": 4}

    monkeypatch.setattr(llm_service, "async_generate", fake_generate)
    history = [{"role": "user", "content": "hi"}, {"role": "assistant", "content": "hello"}]
    text, usage = await TutorAgent().answer(
        "What is entropy?", SubjectContext(subject_name="Thermo"), "syllabus", history
    )

    assert text == "Entropy measures disorder."
    assert captured["task"] == "chat"
    assert captured["messages"][-1] == {"role": "user", "content": "What is entropy?"}
    assert len(captured["messages"]) == 3
    assert "Thermo" in captured["system_prompt"]


@pytest.mark.asyncio
async def test_quick_notes_for_module(monkeypatch):
    captured = {}

    async def fake_generate(task_label, messages, **kwargs):
        captured.update(task=task_label, prompt=messages[0]["content"])
        return "# Module 2\n- notes", None

    monkeypatch.setattr(llm_service, "async_generate", fake_generate)
    notes, _ = await TutorAgent().quick_notes("Module 2", "syllabus", is_module=True)

    assert notes.startswith("# Module 2")
    assert captured["task"] == "notes"
    assert 'module "Module 2"' in captured["prompt"]


@pytest.mark.asyncio
async def test_suggest_prompts_accepts_fenced_array(monkeypatch):
    captured = {}

    async def fake_generate(task_label, messages, **kwargs):
        captured["prompt"] = messages[0]["content"]
        return '```json\n["What is entropy?", "Key exam topics?", "Example of a heat engine?", "Compare the laws?"]\n```', None

    monkeypatch.setattr(llm_service, "async_generate", fake_generate)
    suggestions, _ = await TutorAgent().suggest_prompts("Thermodynamics", "Laws of thermodynamics")

    assert suggestions[0] == "What is entropy?"
    assert len(suggestions) == 4
    assert "exactly 4" in captured["prompt"]
